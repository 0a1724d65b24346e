"""Direct-lighting renderer.

This module turns a Scene into an image. Every pixel is shaded once:

1. The primary ray through the pixel center finds the closest surface.
2. For every light, a shadow ray leaves the hit point (offset along the
   normal) towards the light, bounded by the distance to it. When shadows
   are enabled and anything blocks that segment, the light contributes
   nothing.
3. The remaining lights add a term chosen by the lighting mode:

       OBSERVED_AREA: max(0, N.L) as white
       RADIANCE:      incident radiance of the light
       BRDF:          material BRDF for (L, V)
       COMBINED:      radiance * BRDF * max(0, N.L)

4. The sum is scaled so its largest channel is at most 1 (hue preserving),
   truncated to 8 bits per channel and packed as 0x00RRGGBB.

Pixels are independent. The parallel kernel and the serialized fallback
produce identical buffers.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from tracelight.core.renderer import Renderer, RenderSettings
    >>> from tracelight.scene.reference_scene import create_reference_scene
    >>>
    >>> scene = create_reference_scene()
    >>> renderer = Renderer(RenderSettings(width=640, height=480))
    >>> renderer.render(scene)
    >>> renderer.save_image("reference.png")
"""

import logging
import time
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm
from PIL import Image as PILImage

from tracelight.camera.camera import get_primary_ray, setup_camera
from tracelight.core.ray import T_MIN, Ray, make_bounded_ray, max_to_one
from tracelight.lights.light import get_direction_to_light, get_radiance, num_lights
from tracelight.materials import MaterialType
from tracelight.materials.cook_torrance import eval_cook_torrance, get_cook_torrance_params
from tracelight.materials.lambert import eval_lambert, get_lambert_albedo, get_lambert_kd
from tracelight.materials.solid_color import eval_solid_color, get_solid_color
from tracelight.scene.intersection import SceneHitRecord, any_hit, closest_hit
from tracelight.scene.manager import (
    HitInfo,
    Scene,
    get_material_type,
    get_material_type_index,
    read_closest_hit,
    write_query_result,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# Distance the shadow ray origin is pushed along the surface normal
SHADOW_OFFSET = 1e-4


class LightingMode(IntEnum):
    """Which lighting term the renderer accumulates per light."""

    OBSERVED_AREA = 0
    RADIANCE = 1
    BRDF = 2
    COMBINED = 3


@dataclass
class RenderSettings:
    """Configuration for the renderer.

    Attributes:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).
        lighting_mode: The lighting term to accumulate.
        shadows_enabled: Whether occluded lights are excluded.
        parallel: Render with the parallel kernel instead of the serialized
            fallback.
    """

    width: int = 640
    height: int = 480
    lighting_mode: LightingMode = LightingMode.COMBINED
    shadows_enabled: bool = True
    parallel: bool = True


# =============================================================================
# Render Target (Pixel Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 1920
MAX_IMAGE_HEIGHT = 1080
MAX_PIXELS = MAX_IMAGE_WIDTH * MAX_IMAGE_HEIGHT

# Packed 0x00RRGGBB pixels, row-major: index = px + py * width
_pixels = ti.field(dtype=ti.u32, shape=MAX_PIXELS)

# Clamped linear color per pixel, same layout
_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PIXELS)


# =============================================================================
# Shading (Taichi-side)
# =============================================================================


@ti.func
def eval_brdf(material_id: ti.i32, normal: vec3, l: vec3, v: vec3) -> vec3:  # noqa: E741
    """Dispatch BRDF evaluation on the material's type.

    Args:
        material_id: The scene material ID.
        normal: The surface normal.
        l: Unit direction towards the light.
        v: Unit direction towards the viewer.

    Returns:
        The BRDF value (RGB). Black for unknown material IDs.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    result = vec3(0.0, 0.0, 0.0)
    if mat_type == int(MaterialType.SOLID_COLOR):
        result = eval_solid_color(get_solid_color(type_index))
    elif mat_type == int(MaterialType.LAMBERT):
        result = eval_lambert(get_lambert_albedo(type_index), get_lambert_kd(type_index))
    elif mat_type == int(MaterialType.COOK_TORRANCE):
        albedo, metalness, roughness = get_cook_torrance_params(type_index)
        result = eval_cook_torrance(albedo, metalness, roughness, normal, l, v)
    return result


@ti.func
def shade_hit(rec: SceneHitRecord, v: vec3, lighting_mode: ti.i32, shadows_enabled: ti.i32) -> vec3:
    """Sum the contribution of every visible light at a hit point.

    Args:
        rec: The closest hit (must have hit == 1).
        v: Unit direction from the hit point towards the viewer.
        lighting_mode: A LightingMode value.
        shadows_enabled: 1 to exclude occluded lights.

    Returns:
        The unclamped accumulated color.
    """
    color = vec3(0.0, 0.0, 0.0)
    shadow_origin = rec.point + rec.normal * SHADOW_OFFSET

    for i in range(num_lights[None]):
        l, distance = get_direction_to_light(i, shadow_origin)

        visible = 1
        if shadows_enabled == 1:
            shadow_ray = make_bounded_ray(shadow_origin, l, T_MIN, distance)
            if any_hit(shadow_ray) == 1:
                visible = 0

        if visible == 1:
            cosine = ti.max(0.0, tm.dot(rec.normal, l))
            if lighting_mode == int(LightingMode.OBSERVED_AREA):
                color += vec3(cosine, cosine, cosine)
            elif lighting_mode == int(LightingMode.RADIANCE):
                color += get_radiance(i, rec.point)
            elif lighting_mode == int(LightingMode.BRDF):
                color += eval_brdf(rec.material_id, rec.normal, l, v)
            else:
                brdf = eval_brdf(rec.material_id, rec.normal, l, v)
                color += get_radiance(i, rec.point) * brdf * cosine

    return color


@ti.func
def shade_ray(ray: Ray, lighting_mode: ti.i32, shadows_enabled: ti.i32) -> vec3:
    """Shade a primary ray: black on a miss, clamped with max_to_one."""
    color = vec3(0.0, 0.0, 0.0)
    rec = closest_hit(ray)
    if rec.hit == 1:
        color = shade_hit(rec, -ray.direction, lighting_mode, shadows_enabled)
    return max_to_one(color)


@ti.func
def pack_color(color: vec3) -> ti.u32:
    """Pack a [0, 1] color as 0x00RRGGBB, truncating each channel."""
    c = tm.clamp(color, 0.0, 1.0) * 255.0
    r = ti.cast(c.x, ti.u32)
    g = ti.cast(c.y, ti.u32)
    b = ti.cast(c.z, ti.u32)
    return (r << 16) | (g << 8) | b


@ti.func
def _render_pixel(i: ti.i32, width: ti.i32, lighting_mode: ti.i32, shadows_enabled: ti.i32):
    px = i % width
    py = i // width
    color = shade_ray(get_primary_ray(px, py), lighting_mode, shadows_enabled)
    _colors[i] = color
    _pixels[i] = pack_color(color)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_parallel(width: ti.i32, height: ti.i32, lighting_mode: ti.i32, shadows_enabled: ti.i32):
    for i in range(width * height):
        _render_pixel(i, width, lighting_mode, shadows_enabled)


@ti.kernel
def _render_serial(width: ti.i32, height: ti.i32, lighting_mode: ti.i32, shadows_enabled: ti.i32):
    ti.loop_config(serialize=True)
    for i in range(width * height):
        _render_pixel(i, width, lighting_mode, shadows_enabled)


@ti.kernel
def _shade_single_pixel(px: ti.i32, py: ti.i32, lighting_mode: ti.i32, shadows_enabled: ti.i32) -> vec3:
    return shade_ray(get_primary_ray(px, py), lighting_mode, shadows_enabled)


@ti.kernel
def _pick_kernel(px: ti.i32, py: ti.i32):
    write_query_result(closest_hit(get_primary_ray(px, py)))


# =============================================================================
# Public Rendering API
# =============================================================================


class Renderer:
    """Renders a Scene into a packed pixel buffer.

    The pixel buffer is a module-level Taichi field preallocated for
    MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT; each render overwrites the active
    width * height region.

    Attributes:
        settings: The active RenderSettings. lighting_mode and
            shadows_enabled may be changed between frames.
    """

    def __init__(self, settings: RenderSettings | None = None) -> None:
        """Initialize the renderer.

        Args:
            settings: Render configuration. Defaults to RenderSettings().

        Raises:
            ValueError: If the dimensions are not positive or exceed the
                maximum supported size.
        """
        self.settings = settings if settings is not None else RenderSettings()
        width, height = self.settings.width, self.settings.height
        if width <= 0 or height <= 0:
            raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
        if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({width}x{height}) exceed maximum supported "
                f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
            )
        self._has_frame = False

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.settings.width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.settings.height

    def _mode_args(self) -> tuple[int, int]:
        return int(self.settings.lighting_mode), int(self.settings.shadows_enabled)

    def render(self, scene: Scene) -> None:
        """Render one frame of the scene into the pixel buffer.

        Args:
            scene: The scene to render. Its camera is uploaded first.
        """
        setup_camera(scene.camera, self.width, self.height)
        mode, shadows = self._mode_args()

        start = time.perf_counter()
        if self.settings.parallel:
            _render_parallel(self.width, self.height, mode, shadows)
        else:
            _render_serial(self.width, self.height, mode, shadows)
        ti.sync()
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        self._has_frame = True
        logger.info(
            "Rendered %dx%d frame in %.1f ms (mode=%s, shadows=%s, parallel=%s)",
            self.width,
            self.height,
            elapsed_ms,
            self.settings.lighting_mode.name,
            self.settings.shadows_enabled,
            self.settings.parallel,
        )

    def cycle_lighting_mode(self) -> LightingMode:
        """Advance to the next lighting mode, wrapping after COMBINED.

        Returns:
            The new lighting mode.
        """
        next_mode = (int(self.settings.lighting_mode) + 1) % len(LightingMode)
        self.settings.lighting_mode = LightingMode(next_mode)
        logger.debug("Lighting mode: %s", self.settings.lighting_mode.name)
        return self.settings.lighting_mode

    def toggle_shadows(self) -> bool:
        """Flip shadow testing on or off.

        Returns:
            The new shadows_enabled value.
        """
        self.settings.shadows_enabled = not self.settings.shadows_enabled
        logger.debug("Shadows enabled: %s", self.settings.shadows_enabled)
        return self.settings.shadows_enabled

    def _check_pixel(self, px: int, py: int) -> None:
        if not (0 <= px < self.width and 0 <= py < self.height):
            raise ValueError(f"Pixel ({px}, {py}) is outside {self.width}x{self.height}")

    def pick(self, scene: Scene, px: int, py: int) -> HitInfo:
        """Find what the primary ray through a pixel hits.

        Raises:
            ValueError: If the pixel is outside the image.
        """
        self._check_pixel(px, py)
        setup_camera(scene.camera, self.width, self.height)
        _pick_kernel(px, py)
        return read_closest_hit()

    def shade_pixel(self, scene: Scene, px: int, py: int) -> tuple[float, float, float]:
        """Shade a single pixel with the current settings.

        Returns:
            The clamped (R, G, B) color in [0, 1].

        Raises:
            ValueError: If the pixel is outside the image.
        """
        self._check_pixel(px, py)
        setup_camera(scene.camera, self.width, self.height)
        mode, shadows = self._mode_args()
        color = _shade_single_pixel(px, py, mode, shadows)
        return (float(color[0]), float(color[1]), float(color[2]))

    def _check_frame(self) -> None:
        if not self._has_frame:
            raise RuntimeError("No frame rendered yet. Call render() first.")

    def get_pixels(self) -> npt.NDArray[np.uint32]:
        """Get the packed pixels of the last frame.

        Returns:
            A uint32 array of length height * width, row-major from the
            top-left pixel, each value 0x00RRGGBB.

        Raises:
            RuntimeError: If nothing has been rendered yet.
        """
        self._check_frame()
        return _pixels.to_numpy()[: self.width * self.height].astype(np.uint32)

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the clamped linear colors of the last frame.

        Returns:
            A float32 array of shape (height, width, 3) in [0, 1].

        Raises:
            RuntimeError: If nothing has been rendered yet.
        """
        self._check_frame()
        colors = _colors.to_numpy()[: self.width * self.height]
        return colors.reshape(self.height, self.width, 3).astype(np.float32)

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Unpack the pixel buffer into an (height, width, 3) uint8 image."""
        pixels = self.get_pixels().reshape(self.height, self.width)
        image = np.empty((self.height, self.width, 3), dtype=np.uint8)
        image[..., 0] = (pixels >> 16) & 0xFF
        image[..., 1] = (pixels >> 8) & 0xFF
        image[..., 2] = pixels & 0xFF
        return image

    def save_image(self, filepath: str | Path) -> None:
        """Save the last frame as an 8-bit RGB image (format from the extension).

        Raises:
            RuntimeError: If nothing has been rendered yet.
        """
        pil_image = PILImage.fromarray(self.get_image_uint8())
        pil_image.save(filepath)
        logger.info("Saved %s", filepath)
