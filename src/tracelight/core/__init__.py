"""Core rendering module.

Components:
    ray: Ray data structure and vector utilities
    transform: 4x4 row-vector affine transforms (NumPy)
    renderer: Direct-lighting renderer and pixel buffer

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    FLT_EPSILON,
    T_INFINITY,
    T_MAX,
    T_MIN,
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_bounded_ray,
    make_ray,
    max_to_one,
    normalize,
    ray_at,
    vec3,
)

# Note: renderer is NOT imported here to avoid circular imports.
# Import it directly:
#   from tracelight.core.renderer import Renderer, RenderSettings

__all__ = [
    "Ray",
    "make_ray",
    "make_bounded_ray",
    "ray_at",
    "vec3",
    "dot",
    "cross",
    "length",
    "length_squared",
    "normalize",
    "max_to_one",
    "T_MIN",
    "T_MAX",
    "T_INFINITY",
    "FLT_EPSILON",
]
