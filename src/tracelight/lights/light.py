"""Point and directional light sources.

Lights are stored in Taichi fields (structure of arrays) so the render kernel
can loop over them. Two kinds exist:

    POINT:       origin + intensity + color; radiance falls off with the
                 inverse square of the distance.
    DIRECTIONAL: unit direction the light travels in + intensity + color;
                 no falloff, infinitely far away.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from tracelight.lights.light import add_point_light, get_radiance
    >>> add_point_light((0.0, 5.0, -5.0), 70.0, (1.0, 1.0, 1.0))
    >>> # Inside a kernel: radiance = get_radiance(0, hit_point)
"""

import math
from collections.abc import Sequence
from enum import IntEnum

import taichi as ti
import taichi.math as tm

from tracelight.core.ray import T_INFINITY

# Type alias for 3D vectors
vec3 = tm.vec3


class LightType(IntEnum):
    """Enumeration of supported light types."""

    POINT = 0
    DIRECTIONAL = 1


# =============================================================================
# Light Field Storage
# =============================================================================

MAX_LIGHTS = 64

light_types = ti.field(dtype=ti.i32, shape=MAX_LIGHTS)
light_origins = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_directions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_intensities = ti.field(dtype=ti.f32, shape=MAX_LIGHTS)
light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())


def clear_lights() -> None:
    """Clear all lights.

    Resets the light count to zero. Existing data in the fields will be
    overwritten when new lights are added.
    """
    num_lights[None] = 0


def get_light_count() -> int:
    """Get the number of lights in the registry."""
    return int(num_lights[None])


def _validate_light(intensity: float, color: Sequence[float]) -> None:
    """Validate parameters shared by all light types."""
    if intensity <= 0.0:
        raise ValueError(f"Light intensity must be positive, got {intensity}")
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"Light color component {i} = {component} is negative")


def _next_light_index() -> int:
    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
    return idx


def add_point_light(
    origin: Sequence[float],
    intensity: float,
    color: Sequence[float] = (1.0, 1.0, 1.0),
) -> int:
    """Add a point light.

    Args:
        origin: Light position in world space.
        intensity: Radiant power (must be positive).
        color: Light color as (R, G, B).

    Returns:
        The index of the added light.

    Raises:
        ValueError: If intensity is not positive or a color component is
            negative.
        RuntimeError: If the maximum number of lights is exceeded.
    """
    _validate_light(intensity, color)
    idx = _next_light_index()

    light_types[idx] = int(LightType.POINT)
    light_origins[idx] = [float(c) for c in origin]
    light_directions[idx] = [0.0, 0.0, 0.0]
    light_intensities[idx] = intensity
    light_colors[idx] = [float(c) for c in color]
    num_lights[None] = idx + 1
    return idx


def add_directional_light(
    direction: Sequence[float],
    intensity: float,
    color: Sequence[float] = (1.0, 1.0, 1.0),
) -> int:
    """Add a directional light.

    Args:
        direction: Direction the light travels in. Normalized on insert.
        intensity: Irradiance scale (must be positive).
        color: Light color as (R, G, B).

    Returns:
        The index of the added light.

    Raises:
        ValueError: If the direction is zero-length, intensity is not
            positive or a color component is negative.
        RuntimeError: If the maximum number of lights is exceeded.
    """
    _validate_light(intensity, color)
    norm = math.sqrt(sum(float(c) * float(c) for c in direction))
    if norm < 1e-8:
        raise ValueError(f"Directional light direction must be non-zero, got {tuple(direction)}")
    idx = _next_light_index()

    light_types[idx] = int(LightType.DIRECTIONAL)
    light_origins[idx] = [0.0, 0.0, 0.0]
    light_directions[idx] = [float(c) / norm for c in direction]
    light_intensities[idx] = intensity
    light_colors[idx] = [float(c) for c in color]
    num_lights[None] = idx + 1
    return idx


# =============================================================================
# Light Queries (Taichi-side)
# =============================================================================


@ti.func
def get_direction_to_light(light_id: ti.i32, target: vec3):
    """Get the unit direction from a point towards a light and its distance.

    Args:
        light_id: Index of the light.
        target: The shaded point.

    Returns:
        A tuple (direction, distance). Directional lights return the
        reversed light direction and an infinite distance.
    """
    direction = -light_directions[light_id]
    distance = T_INFINITY
    if light_types[light_id] == int(LightType.POINT):
        to_light = light_origins[light_id] - target
        distance = tm.length(to_light)
        direction = to_light / distance
    return direction, distance


@ti.func
def get_radiance(light_id: ti.i32, target: vec3) -> vec3:
    """Get the radiance a light delivers at a point.

    Point lights: color * intensity / distance^2.
    Directional lights: color * intensity.

    Args:
        light_id: Index of the light.
        target: The shaded point.

    Returns:
        The incident radiance (RGB).
    """
    radiance = light_colors[light_id] * light_intensities[light_id]
    if light_types[light_id] == int(LightType.POINT):
        to_light = light_origins[light_id] - target
        radiance = radiance / tm.dot(to_light, to_light)
    return radiance
