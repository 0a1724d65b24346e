"""Unit tests for the Scene aggregate and scene-level queries.

Tests cover:
- The default material and material id assignment across types
- Primitive validation
- Closest-hit ordering, tie breaking and the miss record
- Agreement between closest_hit and any_hit
- The reference scene and its animation
"""

import math

import numpy as np
import pytest


class TestSceneMaterials:
    """Tests for material registration through the Scene."""

    def test_default_material_is_red(self):
        """Test a new scene has exactly the solid red material 0."""
        from tracelight.materials import MaterialType
        from tracelight.scene.manager import Scene

        scene = Scene()
        info = scene.get_material_info(0)

        assert scene.get_material_count() == 1
        assert info.material_type == MaterialType.SOLID_COLOR
        assert info.params["color"] == (1.0, 0.0, 0.0)

    def test_material_ids_span_types(self):
        """Test ids are assigned in insertion order regardless of type."""
        from tracelight.materials import MaterialType
        from tracelight.scene.manager import Scene

        scene = Scene()
        lambert = scene.add_lambert_material((0.5, 0.5, 0.5))
        metal = scene.add_cook_torrance_material((0.9, 0.9, 0.9), 1.0, 0.3)
        second_lambert = scene.add_lambert_material((0.2, 0.2, 0.2), kd=0.5)

        assert (lambert, metal, second_lambert) == (1, 2, 3)
        assert scene.get_material_info(2).material_type == MaterialType.COOK_TORRANCE
        assert scene.get_material_info(3).type_index == 1
        assert scene.get_material_info(99) is None

    def test_clear_restores_default(self):
        """Test clear() removes everything but the default material."""
        from tracelight.scene.manager import Scene

        scene = Scene()
        white = scene.add_lambert_material((1.0, 1.0, 1.0))
        scene.add_sphere((0.0, 0.0, 5.0), 1.0, white)
        scene.add_point_light((0.0, 5.0, 0.0), 10.0)
        scene.clear()

        assert scene.get_material_count() == 1
        assert scene.get_sphere_count() == 0
        assert scene.get_light_count() == 0


class TestScenePrimitives:
    """Tests for primitive validation."""

    @pytest.mark.parametrize("radius", [0.0, -1.0])
    def test_sphere_radius_must_be_positive(self, radius):
        """Test non-positive radii are rejected."""
        from tracelight.scene.manager import Scene

        with pytest.raises(ValueError, match="radius"):
            Scene().add_sphere((0.0, 0.0, 0.0), radius)

    def test_unknown_material_rejected(self):
        """Test primitives must reference a registered material."""
        from tracelight.scene.manager import Scene

        scene = Scene()
        with pytest.raises(ValueError, match="material_id"):
            scene.add_sphere((0.0, 0.0, 0.0), 1.0, material_id=1)
        with pytest.raises(ValueError, match="material_id"):
            scene.add_triangle_mesh(material_id=-1)

    def test_zero_plane_normal_rejected(self):
        """Test a plane needs a non-zero normal."""
        from tracelight.scene.manager import Scene

        with pytest.raises(ValueError, match="Plane normal"):
            Scene().add_plane((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))

    def test_degenerate_triangle_rejected(self):
        """Test collinear vertices are rejected."""
        from tracelight.scene.manager import Scene

        with pytest.raises(ValueError, match="Degenerate"):
            Scene().add_triangle((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (2.0, 0.0, 0.0))

    def test_zero_query_direction_rejected(self):
        """Test queries need a non-zero direction."""
        from tracelight.scene.manager import Scene

        with pytest.raises(ValueError, match="Ray direction"):
            Scene().closest_hit((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))

    def test_plane_normal_is_normalized(self):
        """Test the stored plane normal has unit length."""
        from tracelight.scene.manager import Scene

        scene = Scene()
        scene.add_plane((0.0, -1.0, 0.0), (0.0, 3.0, 0.0))
        info = scene.closest_hit((0.0, 0.0, 0.0), (0.0, -1.0, 0.0))

        assert info.hit
        assert info.normal == pytest.approx((0.0, 1.0, 0.0))


class TestSceneQueries:
    """Tests for closest_hit and any_hit."""

    def test_miss_record(self):
        """Test a miss reports t = inf and material 0."""
        from tracelight.scene.manager import Scene

        info = Scene().closest_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))

        assert not info.hit
        assert math.isinf(info.t)
        assert info.material_id == 0

    def test_closest_of_several_primitives(self):
        """Test the nearest primitive wins regardless of insertion order."""
        from tracelight.scene.manager import Scene

        scene = Scene()
        far = scene.add_lambert_material((0.5, 0.5, 0.5))
        near = scene.add_lambert_material((0.9, 0.9, 0.9))
        scene.add_plane((0.0, 0.0, 20.0), (0.0, 0.0, -1.0), far)
        scene.add_sphere((0.0, 0.0, 10.0), 1.0, far)
        scene.add_triangle((-1.0, 2.0, 4.0), (1.0, -1.0, 4.0), (-1.0, -1.0, 4.0), material_id=near)

        info = scene.closest_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0))

        assert info.hit
        assert info.t == pytest.approx(4.0)
        assert info.material_id == near
        assert info.point == pytest.approx((0.0, 0.0, 4.0), abs=1e-5)

    def test_tie_keeps_first_primitive(self):
        """Test identical spheres resolve to the one added first."""
        from tracelight.scene.manager import Scene

        scene = Scene()
        first = scene.add_lambert_material((0.5, 0.5, 0.5))
        second = scene.add_lambert_material((0.9, 0.9, 0.9))
        scene.add_sphere((0.0, 0.0, 5.0), 1.0, first)
        scene.add_sphere((0.0, 0.0, 5.0), 1.0, second)

        assert scene.closest_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0)).material_id == first

    def test_bounds_are_respected(self):
        """Test t_min and t_max exclude hits outside the interval."""
        from tracelight.scene.manager import Scene

        scene = Scene()
        scene.add_sphere((0.0, 0.0, 5.0), 1.0)

        assert not scene.closest_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), t_max=3.0).hit
        inside = scene.closest_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), t_min=5.0)
        assert inside.t == pytest.approx(6.0)

    def test_any_hit_agrees_with_closest_hit(self):
        """Test any_hit reports a hit exactly when closest_hit does."""
        from tracelight.scene.reference_scene import create_reference_scene

        scene = create_reference_scene()
        rng = np.random.default_rng(5)
        for _ in range(32):
            origin = rng.uniform((-4.0, 0.5, -8.0), (4.0, 9.0, 9.0))
            direction = rng.normal(size=3)
            t_max = float(rng.uniform(0.5, 20.0))
            closest = scene.closest_hit(origin, direction, t_max=t_max)
            assert scene.any_hit(origin, direction, t_max=t_max) == closest.hit


class TestReferenceScene:
    """Tests for the reference scene factory."""

    def test_contents(self):
        """Test the reference scene's primitive, material and light counts."""
        from tracelight.geometry.triangle import CullMode
        from tracelight.scene.reference_scene import create_reference_scene

        scene = create_reference_scene()

        assert scene.get_plane_count() == 5
        assert scene.get_sphere_count() == 6
        assert scene.get_triangle_count() == 0
        assert scene.get_mesh_count() == 3
        assert scene.get_light_count() == 3
        assert scene.get_material_count() == 9
        assert [m.cull_mode for m in scene.meshes] == [
            CullMode.BACK_FACE,
            CullMode.FRONT_FACE,
            CullMode.NONE,
        ]
        np.testing.assert_allclose(scene.camera.origin, (0.0, 3.0, -9.0))

    def test_center_ray_hits_middle_plastic_sphere(self):
        """Test the camera's forward ray hits the top-middle sphere."""
        from tracelight.materials import MaterialType
        from tracelight.scene.reference_scene import create_reference_scene

        scene = create_reference_scene()
        info = scene.closest_hit((0.0, 3.0, -9.0), (0.0, 0.0, 1.0))

        assert info.hit
        assert info.t == pytest.approx(8.25, abs=1e-4)
        assert info.normal == pytest.approx((0.0, 0.0, -1.0), abs=1e-5)
        material = scene.get_material_info(info.material_id)
        assert material.material_type == MaterialType.COOK_TORRANCE
        assert material.params["metalness"] == 0.0
        assert material.params["roughness"] == 0.6

    def test_animation_does_not_accumulate(self):
        """Test animating twice to the same time gives the same rotation."""
        from tracelight.core.transform import rotation_y
        from tracelight.scene.reference_scene import animate_reference_scene, create_reference_scene

        scene = create_reference_scene()
        animate_reference_scene(scene, 2.0)
        animate_reference_scene(scene, 2.0)

        yaw = math.cos(3.0) * math.pi
        for mesh in scene.meshes:
            np.testing.assert_allclose(mesh.rotation_transform, rotation_y(yaw), atol=1e-6)

    def test_load_obj_mesh(self, tmp_path):
        """Test an OBJ file becomes a hittable scene mesh."""
        from tracelight.geometry.triangle import CullMode
        from tracelight.scene.manager import Scene

        path = tmp_path / "tri.obj"
        path.write_text("v -1 -1 3\nv -1 1 3\nv 1 -1 3\nf 1 2 3\n", encoding="utf-8")

        scene = Scene()
        white = scene.add_lambert_material((1.0, 1.0, 1.0))
        mesh = scene.load_obj_mesh(path, CullMode.NONE, white)
        info = scene.closest_hit((-0.25, -0.25, 0.0), (0.0, 0.0, 1.0))

        assert mesh.triangle_count == 1
        assert info.hit
        assert info.t == pytest.approx(3.0)
        assert info.material_id == white
