"""Triangle primitive with ray-triangle intersection and face culling.

Triangles are wound clockwise as seen from their front face. The stored
normal is normalize((v1 - v0) x (v2 - v0)) and is computed once on the host
when the triangle is added to a scene.

The hit test works in three steps:
1. Reject rays (nearly) parallel to the triangle plane and apply the cull mode
   using the sign of dot(normal, direction).
2. Intersect the triangle's plane and check the ray bounds.
3. Check that the hit point lies on the inner side of all three edges.

Cull modes:
    NONE:       both sides are hit
    FRONT_FACE: rays with dot(normal, direction) < 0 are rejected
    BACK_FACE:  rays with dot(normal, direction) > 0 are rejected
"""

from collections.abc import Sequence
from enum import IntEnum

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from tracelight.core.ray import FLT_EPSILON, Ray, ray_at
from tracelight.geometry.sphere import HitRecord, make_miss_record

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


class CullMode(IntEnum):
    """Which side of a triangle is ignored by hit tests."""

    NONE = 0
    FRONT_FACE = 1
    BACK_FACE = 2


@ti.dataclass
class Triangle:
    """A single triangle.

    Attributes:
        v0: First vertex (vec3).
        v1: Second vertex (vec3).
        v2: Third vertex (vec3).
        normal: Precomputed unit normal (vec3).
        cull_mode: One of the CullMode values.
    """

    v0: vec3
    v1: vec3
    v2: vec3
    normal: vec3
    cull_mode: ti.i32


def triangle_normal(
    v0: Sequence[float], v1: Sequence[float], v2: Sequence[float]
) -> npt.NDArray[np.float32]:
    """Compute the unit normal of a clockwise-wound triangle on the host.

    Degenerate (collinear) vertices yield non-finite components.

    Args:
        v0: First vertex.
        v1: Second vertex.
        v2: Third vertex.

    Returns:
        normalize((v1 - v0) x (v2 - v0)) as a float32 array.
    """
    a = np.asarray(v0, dtype=np.float32)
    b = np.asarray(v1, dtype=np.float32)
    c = np.asarray(v2, dtype=np.float32)
    n = np.cross(b - a, c - a)
    with np.errstate(invalid="ignore", divide="ignore"):
        return (n / np.linalg.norm(n)).astype(np.float32)


def face_normals(
    positions: npt.NDArray[np.float32], indices: npt.NDArray[np.int32]
) -> npt.NDArray[np.float32]:
    """Compute triangle_normal for every index triple at once.

    Args:
        positions: Vertex positions, shape (N, 3).
        indices: Flat triangle indices into positions.

    Returns:
        One normal per triangle, shape (M, 3). Collinear vertices yield
        non-finite rows.
    """
    if len(indices) == 0:
        return np.zeros((0, 3), dtype=np.float32)
    tris = positions[indices.reshape(-1, 3)]
    n = np.cross(tris[:, 1] - tris[:, 0], tris[:, 2] - tris[:, 0])
    with np.errstate(invalid="ignore", divide="ignore"):
        return (n / np.linalg.norm(n, axis=1, keepdims=True)).astype(np.float32)


@ti.func
def _is_culled(normal_dot_direction: ti.f32, cull_mode: ti.i32) -> ti.i32:
    """Apply the cull mode to the sign of dot(normal, direction)."""
    culled = 0
    if cull_mode == int(CullMode.FRONT_FACE) and normal_dot_direction < 0.0:
        culled = 1
    elif cull_mode == int(CullMode.BACK_FACE) and normal_dot_direction > 0.0:
        culled = 1
    return culled


@ti.func
def _is_inside_edge(start: vec3, end: vec3, point: vec3, normal: vec3) -> ti.i32:
    """Check that point lies on the normal's side of the edge start->end."""
    edge = end - start
    return tm.dot(tm.cross(edge, point - start), normal) >= 0.0


@ti.func
def _intersect_triangle(ray: Ray, triangle: Triangle):
    """Run the plane, cull and edge tests.

    Returns:
        A tuple (hit, t).
    """
    did_hit = 0
    t = 0.0

    n_dot_d = tm.dot(triangle.normal, ray.direction)

    if ti.abs(n_dot_d) >= FLT_EPSILON and _is_culled(n_dot_d, triangle.cull_mode) == 0:
        t = tm.dot(triangle.v0 - ray.origin, triangle.normal) / n_dot_d
        if t >= ray.t_min and t <= ray.t_max:
            point = ray_at(ray, t)
            if (
                _is_inside_edge(triangle.v0, triangle.v1, point, triangle.normal)
                and _is_inside_edge(triangle.v1, triangle.v2, point, triangle.normal)
                and _is_inside_edge(triangle.v2, triangle.v0, point, triangle.normal)
            ):
                did_hit = 1

    return did_hit, t


@ti.func
def hit_triangle(ray: Ray, triangle: Triangle) -> HitRecord:
    """Test for ray-triangle intersection and fill a hit record.

    Args:
        ray: The ray to test (unit direction).
        triangle: The triangle to test against.

    Returns:
        A HitRecord whose normal is the triangle's stored normal, not flipped
        towards the ray.
    """
    did_hit, t = _intersect_triangle(ray, triangle)
    record = make_miss_record()
    if did_hit == 1:
        record = HitRecord(hit=1, t=t, point=ray_at(ray, t), normal=triangle.normal)
    return record


@ti.func
def hit_triangle_any(ray: Ray, triangle: Triangle) -> ti.i32:
    """Test whether the ray hits the triangle without building a record."""
    did_hit, _ = _intersect_triangle(ray, triangle)
    return did_hit
