"""Ray data structure and vector utilities for the direct-lighting tracer.

This module provides the Ray dataclass used by every hit test together with
the small set of vector helpers the geometry, lighting and shading code share.
All functions are Taichi functions so they can be called from kernels.

A ray carries its own parametric bounds. Hit tests only accept distances
inside [t_min, t_max]; shadow rays use t_max to stop at the light.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from tracelight.core.ray import Ray, make_ray, ray_at
    >>> # Inside a Taichi kernel:
    >>> # ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, 1.0))
    >>> # point = ray_at(ray, 5.0)
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# =============================================================================
# Numeric Constants
# =============================================================================

# Default parametric bounds for rays
T_MIN = 1e-4
T_MAX = 3.402823466e38  # FLT_MAX

# Machine epsilon for 32-bit floats
FLT_EPSILON = 1.1920929e-7

# Initial distance of an empty hit record
T_INFINITY = float("inf")


@ti.dataclass
class Ray:
    """A ray with an origin, a unit direction and parametric bounds.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction of the ray (vec3). Expected to be unit
            length; hit distances are only meaningful in that case.
        t_min: Smallest accepted hit distance.
        t_max: Largest accepted hit distance.
    """

    origin: vec3
    direction: vec3
    t_min: ti.f32
    t_max: ti.f32


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray with the default bounds [T_MIN, T_MAX].

    Args:
        origin: The starting point of the ray.
        direction: The direction vector (should be normalized).

    Returns:
        A new Ray instance.
    """
    return Ray(origin=origin, direction=direction, t_min=T_MIN, t_max=T_MAX)


@ti.func
def make_bounded_ray(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32) -> Ray:
    """Create a ray with explicit bounds.

    Args:
        origin: The starting point of the ray.
        direction: The direction vector (should be normalized).
        t_min: Smallest accepted hit distance.
        t_max: Largest accepted hit distance.

    Returns:
        A new Ray instance.
    """
    return Ray(origin=origin, direction=direction, t_min=t_min, t_max=t_max)


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Compute the dot product of two vectors."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Compute the cross product a x b."""
    return tm.cross(a, b)


@ti.func
def length(v: vec3) -> ti.f32:
    """Compute the Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector.

    Cheaper than length() when only comparing magnitudes.
    """
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    A zero-length input produces non-finite components; callers are expected
    to pass well-formed directions.
    """
    return v / tm.length(v)


@ti.func
def max_to_one(color: vec3) -> vec3:
    """Scale a color down so that its largest channel is at most 1.0.

    Dividing every channel by the maximum keeps the ratio between channels
    (the hue) intact instead of clipping each channel separately.

    Args:
        color: The accumulated linear color.

    Returns:
        The color unchanged if no channel exceeds 1.0, otherwise the color
        divided by its maximum channel.
    """
    max_channel = tm.max(color.x, tm.max(color.y, color.z))
    result = color
    if max_channel > 1.0:
        result = color / max_channel
    return result
