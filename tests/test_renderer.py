"""Tests for the direct-lighting renderer.

Tests cover:
- Settings validation, lighting mode cycling and shadow toggling
- Each lighting mode on a single visible light
- Shadow rays excluding occluded point and directional lights, also in
  COMBINED mode
- Hue-preserving clamping and pixel packing
- Parallel and serialized kernels producing identical frames
- Picking, image export and end-to-end sphere renders
"""

import numpy as np
import pytest

# Odd size so pixel (16, 16) looks exactly along +Z
SIZE = 33
CENTER = SIZE // 2


def _renderer(mode, shadows=True, width=SIZE, height=SIZE, parallel=True):
    from tracelight.core.renderer import Renderer, RenderSettings

    return Renderer(
        RenderSettings(
            width=width,
            height=height,
            lighting_mode=mode,
            shadows_enabled=shadows,
            parallel=parallel,
        )
    )


def _wall_scene(material=None):
    """A wall at z = 10 facing the default camera, plus an off-axis occluder.

    The occluder sits halfway between the wall's center and the point
    (0, 5, 5), so it blocks light arriving from that direction without
    blocking the camera's center ray.
    """
    from tracelight.scene.manager import Scene

    scene = Scene()
    material_id = 0 if material is None else scene.add_lambert_material(*material)
    scene.add_plane((0.0, 0.0, 10.0), (0.0, 0.0, -1.0), material_id)
    scene.add_sphere((0.0, 2.5, 7.5), 0.5, material_id)
    return scene


class TestRendererSettings:
    """Tests for renderer configuration."""

    @pytest.mark.parametrize("width, height", [(0, 10), (10, -1), (4000, 10), (10, 2000)])
    def test_invalid_dimensions(self, width, height):
        """Test dimensions must be positive and within the preallocated buffer."""
        from tracelight.core.renderer import LightingMode

        with pytest.raises(ValueError):
            _renderer(LightingMode.COMBINED, width=width, height=height)

    def test_cycle_lighting_mode_wraps(self):
        """Test cycling visits every mode and wraps after COMBINED."""
        from tracelight.core.renderer import LightingMode

        renderer = _renderer(LightingMode.COMBINED)
        visited = [renderer.cycle_lighting_mode() for _ in range(4)]

        assert visited == [
            LightingMode.OBSERVED_AREA,
            LightingMode.RADIANCE,
            LightingMode.BRDF,
            LightingMode.COMBINED,
        ]

    def test_toggle_shadows(self):
        """Test toggle_shadows flips the flag."""
        from tracelight.core.renderer import LightingMode

        renderer = _renderer(LightingMode.COMBINED)
        assert renderer.toggle_shadows() is False
        assert renderer.toggle_shadows() is True

    def test_pixels_before_render(self):
        """Test reading pixels before the first frame fails."""
        from tracelight.core.renderer import LightingMode

        with pytest.raises(RuntimeError, match="render"):
            _renderer(LightingMode.COMBINED).get_pixels()

    def test_pixel_outside_image(self):
        """Test single-pixel queries are bounds checked."""
        from tracelight.core.renderer import LightingMode

        renderer = _renderer(LightingMode.COMBINED)
        with pytest.raises(ValueError, match="outside"):
            renderer.shade_pixel(_wall_scene(), SIZE, 0)


class TestLightingModes:
    """Tests for the per-light terms of each lighting mode."""

    def test_observed_area(self):
        """Test OBSERVED_AREA adds the cosine between normal and light direction."""
        from tracelight.core.renderer import LightingMode

        scene = _wall_scene()
        scene.add_point_light((0.0, 0.0, 5.0), 10.0)
        color = _renderer(LightingMode.OBSERVED_AREA).shade_pixel(scene, CENTER, CENTER)

        assert color == pytest.approx((1.0, 1.0, 1.0), abs=1e-5)

    def test_radiance(self):
        """Test RADIANCE adds the inverse-square falloff of a point light."""
        from tracelight.core.renderer import LightingMode

        scene = _wall_scene()
        scene.add_point_light((0.0, 0.0, 8.0), 4.0, (0.5, 0.25, 0.125))
        color = _renderer(LightingMode.RADIANCE).shade_pixel(scene, CENTER, CENTER)

        assert color == pytest.approx((0.5, 0.25, 0.125), rel=1e-4)

    def test_brdf_of_default_material(self):
        """Test BRDF mode shows the solid red default material."""
        from tracelight.core.renderer import LightingMode

        scene = _wall_scene()
        scene.add_point_light((0.0, 0.0, 5.0), 1.0)
        color = _renderer(LightingMode.BRDF).shade_pixel(scene, CENTER, CENTER)

        assert color == pytest.approx((1.0, 0.0, 0.0))

    def test_combined_is_hue_preserving(self):
        """Test an over-bright COMBINED result is scaled so its largest channel is one."""
        from tracelight.core.renderer import LightingMode

        scene = _wall_scene(material=((1.0, 0.5, 0.25), 1.0))
        scene.add_point_light((0.0, 0.0, 5.0), 1000.0)
        color = _renderer(LightingMode.COMBINED).shade_pixel(scene, CENTER, CENTER)

        assert color == pytest.approx((1.0, 0.5, 0.25), rel=1e-4)

    def test_combined_value(self):
        """Test COMBINED is radiance * BRDF * cosine for an unclamped result."""
        import math

        from tracelight.core.renderer import LightingMode

        scene = _wall_scene(material=((0.5, 0.5, 0.5), 1.0))
        scene.add_point_light((0.0, 0.0, 8.0), 4.0)
        color = _renderer(LightingMode.COMBINED).shade_pixel(scene, CENTER, CENTER)

        expected = 1.0 * 0.5 / math.pi
        assert color == pytest.approx((expected, expected, expected), rel=1e-4)

    def test_light_behind_surface(self):
        """Test lights behind the surface contribute nothing in OBSERVED_AREA."""
        from tracelight.core.renderer import LightingMode

        scene = _wall_scene()
        scene.add_point_light((0.0, 0.0, 15.0), 10.0)
        color = _renderer(LightingMode.OBSERVED_AREA, shadows=False).shade_pixel(
            scene, CENTER, CENTER
        )

        assert color == pytest.approx((0.0, 0.0, 0.0))


class TestShadows:
    """Tests for shadow rays."""

    @pytest.mark.parametrize("directional", [False, True], ids=["point", "directional"])
    def test_occluded_light_is_excluded(self, directional):
        """Test a blocked light contributes nothing while shadows are on."""
        from tracelight.core.renderer import LightingMode

        scene = _wall_scene()
        if directional:
            scene.add_directional_light((0.0, -1.0, 1.0), 1.0)
        else:
            scene.add_point_light((0.0, 5.0, 5.0), 10.0)

        shadowed = _renderer(LightingMode.OBSERVED_AREA, shadows=True)
        lit = _renderer(LightingMode.OBSERVED_AREA, shadows=False)

        assert shadowed.shade_pixel(scene, CENTER, CENTER) == pytest.approx((0.0, 0.0, 0.0))
        cosine = 1.0 / np.sqrt(2.0)
        assert lit.shade_pixel(scene, CENTER, CENTER) == pytest.approx(
            (cosine, cosine, cosine), abs=1e-5
        )

    def test_occluded_light_in_combined_mode(self):
        """Test a blocked light adds nothing to COMBINED and its full term when unshadowed."""
        import math

        from tracelight.core.renderer import LightingMode

        scene = _wall_scene(material=((0.5, 0.5, 0.5), 1.0))
        scene.add_point_light((0.0, 5.0, 5.0), 10.0)

        shadowed = _renderer(LightingMode.COMBINED, shadows=True)
        lit = _renderer(LightingMode.COMBINED, shadows=False)

        # radiance 10 / 50, Lambert 0.5 / pi, cosine 1 / sqrt(2)
        expected = (10.0 / 50.0) * (0.5 / math.pi) / math.sqrt(2.0)
        assert shadowed.shade_pixel(scene, CENTER, CENTER) == pytest.approx((0.0, 0.0, 0.0))
        assert lit.shade_pixel(scene, CENTER, CENTER) == pytest.approx(
            (expected, expected, expected), rel=1e-4
        )

    def test_light_before_occluder_is_visible(self):
        """Test the shadow ray stops at the light instead of running to infinity."""
        from tracelight.core.renderer import LightingMode

        scene = _wall_scene()
        # Between the wall and the occluder, on the same line
        scene.add_point_light((0.0, 1.0, 9.0), 10.0)
        color = _renderer(LightingMode.OBSERVED_AREA).shade_pixel(scene, CENTER, CENTER)

        assert color[0] > 0.0

    def test_unblocked_light_still_counts(self):
        """Test one occluded light does not hide another visible one."""
        from tracelight.core.renderer import LightingMode

        scene = _wall_scene()
        scene.add_point_light((0.0, 5.0, 5.0), 10.0)
        scene.add_point_light((0.0, 0.0, 5.0), 10.0)
        color = _renderer(LightingMode.OBSERVED_AREA).shade_pixel(scene, CENTER, CENTER)

        assert color == pytest.approx((1.0, 1.0, 1.0), abs=1e-5)


class TestFrames:
    """Tests for full frames."""

    def test_serial_matches_parallel(self):
        """Test both kernels produce the same packed pixels."""
        from tracelight.core.renderer import LightingMode
        from tracelight.scene.reference_scene import create_reference_scene

        scene = create_reference_scene()
        parallel = _renderer(LightingMode.COMBINED, width=64, height=48, parallel=True)
        serial = _renderer(LightingMode.COMBINED, width=64, height=48, parallel=False)
        parallel.render(scene)
        serial.render(scene)

        np.testing.assert_array_equal(parallel.get_pixels(), serial.get_pixels())

    def test_packing_matches_colors(self):
        """Test packed pixels are the truncated 8-bit clamped colors."""
        from tracelight.core.renderer import LightingMode
        from tracelight.scene.reference_scene import create_reference_scene

        renderer = _renderer(LightingMode.COMBINED, width=64, height=48)
        renderer.render(create_reference_scene())

        pixels = renderer.get_pixels()
        colors = renderer.get_image_numpy()
        image = renderer.get_image_uint8()

        assert pixels.shape == (64 * 48,)
        assert np.all(pixels <= 0xFFFFFF)
        assert colors.min() >= 0.0 and colors.max() <= 1.0
        expected = np.floor(colors * 255.0)
        assert np.max(np.abs(image.astype(np.float64) - expected)) <= 1.0

    def test_sphere_end_to_end(self):
        """Test a lit sphere fills the center and leaves the corners black."""
        from tracelight.core.renderer import LightingMode
        from tracelight.scene.manager import Scene

        scene = Scene()
        white = scene.add_lambert_material((1.0, 1.0, 1.0))
        scene.add_sphere((0.0, 0.0, 5.0), 1.0, white)
        scene.add_point_light((0.0, 0.0, 0.0), 50.0)

        renderer = _renderer(LightingMode.COMBINED, width=96, height=48)
        renderer.render(scene)
        pixels = renderer.get_pixels().reshape(48, 96)

        assert pixels[0, 0] == 0
        assert pixels[47, 95] == 0
        center = int(pixels[24, 48])
        red, green, blue = (center >> 16) & 0xFF, (center >> 8) & 0xFF, center & 0xFF
        assert red > 0 and red == green == blue

        info = renderer.pick(scene, 48, 24)
        assert info.hit
        assert info.material_id == white
        assert not renderer.pick(scene, 0, 0).hit

    def test_red_sphere_scenario(self):
        """Test the default red material on a large distant sphere seen from the origin."""
        from tracelight.core.renderer import LightingMode
        from tracelight.materials import MaterialType
        from tracelight.scene.manager import Scene

        scene = Scene()
        scene.add_sphere((0.0, 0.0, 100.0), 50.0, 0)
        scene.add_point_light((0.0, 0.0, 0.0), 1.0)
        assert scene.camera.fov_angle == pytest.approx(45.0)

        # 4:3 so the corner rays pass outside the sphere's 30 degree disk
        renderer = _renderer(LightingMode.BRDF, width=64, height=48)
        renderer.render(scene)

        center = renderer.pick(scene, 32, 24)
        assert center.hit
        material = scene.get_material_info(center.material_id)
        assert material.material_type == MaterialType.SOLID_COLOR
        assert material.params["color"] == (1.0, 0.0, 0.0)
        assert renderer.get_pixels().reshape(48, 64)[24, 32] == 0xFF0000

        for px, py in ((0, 0), (63, 0), (0, 47), (63, 47)):
            assert not renderer.pick(scene, px, py).hit, (px, py)

    def test_save_image(self, tmp_path):
        """Test the last frame is written as an RGB image of the right size."""
        from PIL import Image

        from tracelight.core.renderer import LightingMode

        scene = _wall_scene()
        scene.add_point_light((0.0, 0.0, 5.0), 10.0)
        renderer = _renderer(LightingMode.OBSERVED_AREA, width=20, height=10)
        renderer.render(scene)

        path = tmp_path / "frame.png"
        renderer.save_image(path)

        with Image.open(path) as image:
            assert image.size == (20, 10)
            assert image.mode == "RGB"
