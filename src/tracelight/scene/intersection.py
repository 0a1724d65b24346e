"""Scene-level primitive storage and intersection testing.

This module stores every primitive of the scene in Taichi fields (structure
of arrays) and answers the two queries the renderer needs:

    closest_hit(ray): the nearest surface along the ray, with its material
    any_hit(ray):     whether anything at all lies inside the ray's bounds

Primitives are scanned in a fixed order: spheres, planes, triangles, meshes.
closest_hit only replaces its current best on a strictly smaller distance,
so on an exact tie the primitive scanned first wins. any_hit stops testing
as soon as one primitive reports a hit.

Meshes keep their geometry in tracelight.geometry.mesh; this module only
adds the per-mesh material ids.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from tracelight.scene.intersection import add_sphere, clear_scene, closest_hit
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, 5.0), 1.0, material_id=0)
    >>> # Use closest_hit within a Taichi kernel
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from tracelight.core.ray import T_INFINITY, Ray
from tracelight.geometry.mesh import (
    clear_meshes,
    hit_mesh,
    hit_mesh_any,
    mesh_material_ids,
    num_meshes,
)
from tracelight.geometry.plane import Plane, hit_plane, hit_plane_any
from tracelight.geometry.sphere import HitRecord, Sphere, hit_sphere, hit_sphere_any
from tracelight.geometry.triangle import CullMode, Triangle, hit_triangle, hit_triangle_any

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: Whether the ray intersected any primitive (1 if hit, 0 if miss).
        t: Distance along the ray. +inf on a miss.
        point: The 3D point where the ray intersected the surface.
            Only valid if hit == 1.
        normal: The unit surface normal of the hit primitive.
            Only valid if hit == 1.
        material_id: The scene material id of the hit primitive. 0 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    material_id: ti.i32


# Maximum number of primitives supported in the scene
MAX_SPHERES = 1024
MAX_PLANES = 256
MAX_TRIANGLES = 4096

# Sphere storage
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Plane storage
plane_origins = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_material_ids = ti.field(dtype=ti.i32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())

# Standalone triangle storage
triangle_v0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_cull_modes = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
triangle_material_ids = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all primitives from the scene.

    Resets the primitive counts to zero and releases every mesh slot. The
    field data is overwritten when new primitives are added.
    """
    num_spheres[None] = 0
    num_planes[None] = 0
    num_triangles[None] = 0
    clear_meshes()


def _to_list(v: Sequence[float]) -> list[float]:
    return [float(c) for c in v]


def add_sphere(center: Sequence[float], radius: float, material_id: int = 0) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere.
        material_id: The material ID to associate with this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = _to_list(center)
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def add_plane(origin: Sequence[float], normal: Sequence[float], material_id: int = 0) -> int:
    """Add an infinite plane to the scene.

    Args:
        origin: Any point on the plane.
        normal: The unit plane normal.
        material_id: The material ID to associate with this plane.

    Returns:
        The index of the added plane.

    Raises:
        RuntimeError: If the maximum number of planes is exceeded.
    """
    idx = num_planes[None]
    if idx >= MAX_PLANES:
        raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")
    plane_origins[idx] = _to_list(origin)
    plane_normals[idx] = _to_list(normal)
    plane_material_ids[idx] = material_id
    num_planes[None] = idx + 1
    return idx


def add_triangle(
    v0: Sequence[float],
    v1: Sequence[float],
    v2: Sequence[float],
    normal: Sequence[float],
    cull_mode: CullMode = CullMode.BACK_FACE,
    material_id: int = 0,
) -> int:
    """Add a standalone triangle to the scene.

    Args:
        v0, v1, v2: The triangle vertices.
        normal: The unit face normal.
        cull_mode: Which side, if any, is invisible.
        material_id: The material ID to associate with this triangle.

    Returns:
        The index of the added triangle.

    Raises:
        RuntimeError: If the maximum number of triangles is exceeded.
    """
    idx = num_triangles[None]
    if idx >= MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")
    triangle_v0[idx] = _to_list(v0)
    triangle_v1[idx] = _to_list(v1)
    triangle_v2[idx] = _to_list(v2)
    triangle_normals[idx] = _to_list(normal)
    triangle_cull_modes[idx] = int(cull_mode)
    triangle_material_ids[idx] = material_id
    num_triangles[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_plane_count() -> int:
    """Get the number of planes in the scene."""
    return int(num_planes[None])


def get_triangle_count() -> int:
    """Get the number of standalone triangles in the scene."""
    return int(num_triangles[None])


# =============================================================================
# Scene Queries (Taichi-side)
# =============================================================================


@ti.func
def _to_scene_hit_record(rec: HitRecord, material_id: ti.i32) -> SceneHitRecord:
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        material_id=material_id,
    )


@ti.func
def make_scene_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection (t = +inf)."""
    return SceneHitRecord(
        hit=0,
        t=T_INFINITY,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        material_id=0,
    )


@ti.func
def _get_triangle(i: ti.i32) -> Triangle:
    return Triangle(
        v0=triangle_v0[i],
        v1=triangle_v1[i],
        v2=triangle_v2[i],
        normal=triangle_normals[i],
        cull_mode=triangle_cull_modes[i],
    )


@ti.func
def closest_hit(ray: Ray) -> SceneHitRecord:
    """Find the closest intersection of a ray with the scene.

    Args:
        ray: The ray to trace. Its [t_min, t_max] bounds apply to every
            primitive.

    Returns:
        The closest SceneHitRecord, or a miss record.
    """
    best = make_scene_miss_record()

    for i in range(num_spheres[None]):
        rec = hit_sphere(ray, Sphere(center=sphere_centers[i], radius=sphere_radii[i]))
        if rec.hit == 1 and rec.t < best.t:
            best = _to_scene_hit_record(rec, sphere_material_ids[i])

    for i in range(num_planes[None]):
        rec = hit_plane(ray, Plane(origin=plane_origins[i], normal=plane_normals[i]))
        if rec.hit == 1 and rec.t < best.t:
            best = _to_scene_hit_record(rec, plane_material_ids[i])

    for i in range(num_triangles[None]):
        rec = hit_triangle(ray, _get_triangle(i))
        if rec.hit == 1 and rec.t < best.t:
            best = _to_scene_hit_record(rec, triangle_material_ids[i])

    for i in range(num_meshes[None]):
        rec = hit_mesh(ray, i)
        if rec.hit == 1 and rec.t < best.t:
            best = _to_scene_hit_record(rec, mesh_material_ids[i])

    return best


@ti.func
def any_hit(ray: Ray) -> ti.i32:
    """Test if the ray hits any primitive within its bounds (shadow query).

    Stops testing primitives after the first hit.

    Args:
        ray: The ray to test.

    Returns:
        1 if any primitive was hit, 0 otherwise.
    """
    found = 0

    for i in range(num_spheres[None]):
        if found == 0:
            found = hit_sphere_any(ray, Sphere(center=sphere_centers[i], radius=sphere_radii[i]))

    for i in range(num_planes[None]):
        if found == 0:
            found = hit_plane_any(ray, Plane(origin=plane_origins[i], normal=plane_normals[i]))

    for i in range(num_triangles[None]):
        if found == 0:
            found = hit_triangle_any(ray, _get_triangle(i))

    for i in range(num_meshes[None]):
        if found == 0:
            found = hit_mesh_any(ray, i)

    return found
