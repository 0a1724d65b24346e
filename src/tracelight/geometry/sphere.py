"""Sphere primitive with ray-sphere intersection.

This module provides the Sphere dataclass, the HitRecord shared by all
primitive hit tests, and the sphere intersection functions.

The intersection solves |o + t*d - c|^2 = r^2 for a unit direction d in the
half-b form:

    b = dot(d, o - c)
    c = |o - c|^2 - r^2
    discriminant = b^2 - c

A non-positive discriminant is a miss. The smaller root -b - sqrt(disc) is
preferred; when it lies before t_min (the ray starts inside the sphere) the
larger root -b + sqrt(disc) is used, so the exit point is reported.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from tracelight.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, 100), radius=50.0)
    >>> # Use hit_sphere / hit_sphere_any within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from tracelight.core.ray import Ray, ray_at

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (positive float).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: Whether the ray intersected the primitive (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
            Only valid if hit == 1.
        point: The 3D point where the ray intersected the surface.
            Only valid if hit == 1.
        normal: The unit surface normal at the intersection point. Not
            flipped towards the ray; each primitive documents its convention.
            Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(hit=0, t=0.0, point=vec3(0.0, 0.0, 0.0), normal=vec3(0.0, 0.0, 0.0))


@ti.func
def _intersect_sphere(ray: Ray, sphere: Sphere):
    """Solve the ray-sphere quadratic.

    Args:
        ray: The ray to test (unit direction).
        sphere: The sphere to test against.

    Returns:
        A tuple (hit, t) where hit is 1 when a root lies in the ray bounds.
    """
    oc = ray.origin - sphere.center
    b = tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = b * b - c

    did_hit = 0
    t = 0.0

    if discriminant > 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t = -b - sqrt_d
        if t < ray.t_min:
            # Origin inside the sphere: use the exit point
            t = -b + sqrt_d
        if t >= ray.t_min and t <= ray.t_max:
            did_hit = 1

    return did_hit, t


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere) -> HitRecord:
    """Test for ray-sphere intersection and fill a hit record.

    Args:
        ray: The ray to test (unit direction).
        sphere: The sphere to test against.

    Returns:
        A HitRecord. The normal is (point - center) / radius, i.e. it always
        points outward, also for hits from inside the sphere.
    """
    did_hit, t = _intersect_sphere(ray, sphere)
    record = make_miss_record()
    if did_hit == 1:
        point = ray_at(ray, t)
        record = HitRecord(
            hit=1,
            t=t,
            point=point,
            normal=(point - sphere.center) / sphere.radius,
        )
    return record


@ti.func
def hit_sphere_any(ray: Ray, sphere: Sphere) -> ti.i32:
    """Test whether the ray hits the sphere without building a record."""
    did_hit, _ = _intersect_sphere(ray, sphere)
    return did_hit
