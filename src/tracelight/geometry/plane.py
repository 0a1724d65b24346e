"""Infinite plane primitive with ray-plane intersection.

A plane is defined by a point on it and a unit normal. The hit distance is

    t = dot(origin - ray.origin, normal) / dot(ray.direction, normal)

A ray parallel to the plane divides by (nearly) zero. That case is not
special-cased: the resulting infinite or NaN distance fails the bounds check
and the test reports a miss.

The normal is returned as stored, so the facing convention is up to whoever
builds the scene (walls of a box point inward, a floor points up, ...).
"""

import taichi as ti
import taichi.math as tm

from tracelight.core.ray import Ray, ray_at
from tracelight.geometry.sphere import HitRecord, make_miss_record

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Plane:
    """An infinite plane.

    Attributes:
        origin: Any point on the plane (vec3).
        normal: The unit plane normal (vec3).
    """

    origin: vec3
    normal: vec3


@ti.func
def _intersect_plane(ray: Ray, plane: Plane):
    """Compute the ray-plane distance and whether it lies inside the ray bounds."""
    t = tm.dot(plane.origin - ray.origin, plane.normal) / tm.dot(ray.direction, plane.normal)
    did_hit = 0
    # Written so that a NaN distance is rejected as well
    if t > ray.t_min and t < ray.t_max:
        did_hit = 1
    return did_hit, t


@ti.func
def hit_plane(ray: Ray, plane: Plane) -> HitRecord:
    """Test for ray-plane intersection and fill a hit record.

    Args:
        ray: The ray to test (unit direction).
        plane: The plane to test against.

    Returns:
        A HitRecord whose normal is the plane normal.
    """
    did_hit, t = _intersect_plane(ray, plane)
    record = make_miss_record()
    if did_hit == 1:
        record = HitRecord(hit=1, t=t, point=ray_at(ray, t), normal=plane.normal)
    return record


@ti.func
def hit_plane_any(ray: Ray, plane: Plane) -> ti.i32:
    """Test whether the ray hits the plane without building a record."""
    did_hit, _ = _intersect_plane(ray, plane)
    return did_hit
