"""Triangle meshes: host-side transform cache, GPU storage and hit tests.

A TriangleMesh keeps its original-space vertex positions, one normal per
triangle and a flat index list (three indices per triangle). Translation,
rotation and scale are stored as separate 4x4 matrices and combined as
scale -> rotate -> translate.

The world-space ("transformed") positions, normals and bounding box are a
cache. They are only valid after update_transforms() has been called
following any translate/rotate_y/scale or append_triangle call. A mesh that
belongs to a scene also pushes its transformed data into the mesh storage
fields from update_transforms(), so the render kernels never see a half
updated mesh.

Intersection is two staged:
1. A slab test against the transformed axis-aligned bounding box.
2. A Möller–Trumbore test on every triangle, keeping the closest hit.

The Möller–Trumbore determinant a = dot(e1, cross(d, e2)) equals
-dot(d, e1 x e2), so its sign is the opposite of dot(normal, direction) used
by standalone triangles. Back-face culling therefore skips a < 0 and
front-face culling skips a > 0, which matches the standalone rule.

Example:
    >>> mesh = TriangleMesh(cull_mode=CullMode.BACK_FACE)
    >>> mesh.append_triangle((-0.75, 1.5, 0.0), (0.75, 0.0, 0.0), (-0.75, 0.0, 0.0))
    >>> mesh.translate((0.0, 4.5, 0.0))
    >>> mesh.update_transforms()
"""

import logging
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from tracelight.core.ray import FLT_EPSILON, T_INFINITY, Ray, ray_at
from tracelight.core.transform import (
    identity,
    rotation_y,
    scaling,
    transform_points,
    transform_vectors,
    translation,
)
from tracelight.geometry.sphere import HitRecord, make_miss_record
from tracelight.geometry.triangle import CullMode, face_normals

logger = logging.getLogger(__name__)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# =============================================================================
# Mesh Storage (shared pools for every mesh in the scene)
# =============================================================================

MAX_MESHES = 64
MAX_MESH_VERTICES = 1 << 16
MAX_MESH_INDICES = 3 << 16

# Transformed (world-space) vertex positions of all meshes
mesh_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MESH_VERTICES)
# Triangle indices of all meshes, local to each mesh's vertex range
mesh_indices = ti.field(dtype=ti.i32, shape=MAX_MESH_INDICES)

# Per-mesh ranges into the pools
mesh_vertex_offsets = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_vertex_capacities = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_index_offsets = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_index_capacities = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_index_counts = ti.field(dtype=ti.i32, shape=MAX_MESHES)

# Per-mesh state used by the hit tests
mesh_cull_modes = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_material_ids = ti.field(dtype=ti.i32, shape=MAX_MESHES)
mesh_min_aabb = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MESHES)
mesh_max_aabb = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MESHES)

num_meshes = ti.field(dtype=ti.i32, shape=())
_vertices_used = ti.field(dtype=ti.i32, shape=())
_indices_used = ti.field(dtype=ti.i32, shape=())


def clear_meshes() -> None:
    """Release every mesh slot and reset the shared pools."""
    num_meshes[None] = 0
    _vertices_used[None] = 0
    _indices_used[None] = 0


def get_mesh_count() -> int:
    """Get the number of mesh slots in use."""
    return int(num_meshes[None])


def allocate_mesh_slot(cull_mode: CullMode) -> int:
    """Reserve a mesh slot with empty vertex and index ranges.

    Args:
        cull_mode: The cull mode applied to every triangle of the mesh.

    Returns:
        The slot index.

    Raises:
        RuntimeError: If the maximum number of meshes is exceeded.
    """
    slot = num_meshes[None]
    if slot >= MAX_MESHES:
        raise RuntimeError(f"Maximum number of meshes ({MAX_MESHES}) exceeded")
    mesh_vertex_offsets[slot] = 0
    mesh_vertex_capacities[slot] = 0
    mesh_index_offsets[slot] = 0
    mesh_index_capacities[slot] = 0
    mesh_index_counts[slot] = 0
    mesh_cull_modes[slot] = int(cull_mode)
    mesh_material_ids[slot] = 0
    mesh_min_aabb[slot] = vec3(0.0, 0.0, 0.0)
    mesh_max_aabb[slot] = vec3(0.0, 0.0, 0.0)
    num_meshes[None] = slot + 1
    return slot


@ti.kernel
def _write_positions(offset: ti.i32, count: ti.i32, src: ti.types.ndarray()):
    for i in range(count):
        mesh_positions[offset + i] = vec3(src[i, 0], src[i, 1], src[i, 2])


@ti.kernel
def _write_indices(offset: ti.i32, count: ti.i32, src: ti.types.ndarray()):
    for i in range(count):
        mesh_indices[offset + i] = src[i]


def upload_mesh(
    slot: int,
    positions: npt.NDArray[np.float32],
    indices: npt.NDArray[np.int32],
    min_aabb: npt.NDArray[np.float32],
    max_aabb: npt.NDArray[np.float32],
    cull_mode: CullMode,
    material_id: int = 0,
) -> None:
    """Copy a mesh's transformed data into its storage slot.

    The slot keeps its ranges while the mesh fits in them. A mesh that grew
    since the last upload gets fresh ranges at the end of the pools; the old
    ranges are not reused until clear_meshes().

    Args:
        slot: The slot returned by allocate_mesh_slot().
        positions: Transformed positions, shape (N, 3).
        indices: Flat triangle indices into positions.
        min_aabb: Transformed bounding box minimum.
        max_aabb: Transformed bounding box maximum.
        cull_mode: The mesh's cull mode.
        material_id: The scene material of the whole mesh.

    Raises:
        RuntimeError: If the vertex or index pool is exhausted.
    """
    vertex_count = len(positions)
    index_count = len(indices)

    if vertex_count > mesh_vertex_capacities[slot]:
        offset = _vertices_used[None]
        if offset + vertex_count > MAX_MESH_VERTICES:
            raise RuntimeError(
                f"Mesh vertex pool exhausted ({offset + vertex_count} > {MAX_MESH_VERTICES})"
            )
        mesh_vertex_offsets[slot] = offset
        mesh_vertex_capacities[slot] = vertex_count
        _vertices_used[None] = offset + vertex_count

    if index_count > mesh_index_capacities[slot]:
        offset = _indices_used[None]
        if offset + index_count > MAX_MESH_INDICES:
            raise RuntimeError(
                f"Mesh index pool exhausted ({offset + index_count} > {MAX_MESH_INDICES})"
            )
        mesh_index_offsets[slot] = offset
        mesh_index_capacities[slot] = index_count
        _indices_used[None] = offset + index_count

    if vertex_count > 0:
        _write_positions(
            mesh_vertex_offsets[slot],
            vertex_count,
            np.ascontiguousarray(positions, dtype=np.float32),
        )
    if index_count > 0:
        _write_indices(
            mesh_index_offsets[slot],
            index_count,
            np.ascontiguousarray(indices, dtype=np.int32),
        )

    mesh_index_counts[slot] = index_count
    mesh_cull_modes[slot] = int(cull_mode)
    mesh_material_ids[slot] = material_id
    mesh_min_aabb[slot] = [float(c) for c in min_aabb]
    mesh_max_aabb[slot] = [float(c) for c in max_aabb]
    logger.debug("Uploaded mesh %d: %d vertices, %d triangles", slot, vertex_count, index_count // 3)


# =============================================================================
# Host-side Mesh
# =============================================================================


class TriangleMesh:
    """A triangle mesh with a model transform and a world-space cache.

    Attributes:
        positions: Original-space vertex positions, shape (N, 3).
        normals: Original-space unit normal per triangle, shape (M, 3).
        indices: Flat triangle indices, length 3 * M.
        cull_mode: Cull mode applied to every triangle.
        material_id: Material of the whole mesh. Like cull_mode, changes
            reach the scene on the next update_transforms().
        transformed_positions: World-space positions (valid after
            update_transforms()).
        transformed_normals: World-space triangle normals (same validity).
        min_aabb, max_aabb: Original-space bounding box.
        transformed_min_aabb, transformed_max_aabb: World-space bounding box.
    """

    def __init__(
        self,
        positions: npt.ArrayLike | None = None,
        indices: npt.ArrayLike | None = None,
        cull_mode: CullMode = CullMode.BACK_FACE,
        material_id: int = 0,
        normals: npt.ArrayLike | None = None,
    ) -> None:
        """Create a mesh from optional raw positions and indices.

        Args:
            positions: Vertex positions, shape (N, 3).
            indices: Flat triangle indices into positions.
            cull_mode: Cull mode for every triangle.
            material_id: Material of the mesh.
            normals: Precomputed per-triangle normals. Computed from the
                geometry when omitted.
        """
        self.positions = np.zeros((0, 3), dtype=np.float32)
        self.indices = np.zeros(0, dtype=np.int32)
        if positions is not None:
            self.positions = np.asarray(positions, dtype=np.float32).reshape(-1, 3)
        if indices is not None:
            self.indices = np.asarray(indices, dtype=np.int32).reshape(-1)
        if len(self.indices) % 3 != 0:
            raise ValueError(f"Index count {len(self.indices)} is not a multiple of 3")

        self.cull_mode = CullMode(cull_mode)
        self.material_id = material_id

        self.translation_transform = identity()
        self.rotation_transform = identity()
        self.scale_transform = identity()

        if normals is not None:
            self.normals = np.asarray(normals, dtype=np.float32).reshape(-1, 3)
        else:
            self.calculate_normals()

        self.transformed_positions = np.zeros((0, 3), dtype=np.float32)
        self.transformed_normals = np.zeros((0, 3), dtype=np.float32)
        self.min_aabb = np.zeros(3, dtype=np.float32)
        self.max_aabb = np.zeros(3, dtype=np.float32)
        self.transformed_min_aabb = np.zeros(3, dtype=np.float32)
        self.transformed_max_aabb = np.zeros(3, dtype=np.float32)
        self.update_aabb()

        # Storage slot when the mesh belongs to a scene
        self.slot: int | None = None

    @property
    def triangle_count(self) -> int:
        """Number of triangles in the mesh."""
        return len(self.indices) // 3

    @property
    def transform(self) -> npt.NDArray[np.float32]:
        """The combined model transform (scale, then rotation, then translation)."""
        return self.scale_transform @ self.rotation_transform @ self.translation_transform

    def translate(self, offset: Sequence[float]) -> None:
        """Add a translation to the model transform."""
        self.translation_transform = self.translation_transform @ translation(offset)

    def rotate_y(self, yaw: float) -> None:
        """Add a rotation about the Y axis (radians) to the model transform."""
        self.rotation_transform = self.rotation_transform @ rotation_y(yaw)

    def scale(self, factors: Sequence[float]) -> None:
        """Multiply the model scale by per-axis factors."""
        self.scale_transform = self.scale_transform @ scaling(factors)

    def reset_transform(self) -> None:
        """Reset translation, rotation and scale to identity."""
        self.translation_transform = identity()
        self.rotation_transform = identity()
        self.scale_transform = identity()

    def append_triangle(
        self,
        v0: Sequence[float],
        v1: Sequence[float],
        v2: Sequence[float],
        ignore_transform_update: bool = False,
    ) -> None:
        """Append a clockwise-wound triangle with its own three vertices.

        Args:
            v0: First vertex.
            v1: Second vertex.
            v2: Third vertex.
            ignore_transform_update: Skip update_transforms(); the caller
                must call it before the mesh is rendered.
        """
        start = len(self.positions)
        new_positions = np.asarray([v0, v1, v2], dtype=np.float32)
        self.positions = np.concatenate([self.positions, new_positions])
        self.indices = np.concatenate(
            [self.indices, np.arange(start, start + 3, dtype=np.int32)]
        )
        self.calculate_normals()
        self.update_aabb()

        if not ignore_transform_update:
            self.update_transforms()

    def calculate_normals(self) -> None:
        """Recompute one unit normal per triangle from the original positions.

        Collinear vertices produce non-finite normals; mesh loaders are
        expected to provide valid topology.
        """
        self.normals = face_normals(self.positions, self.indices)

    def update_aabb(self) -> None:
        """Recompute the original-space bounding box."""
        if len(self.positions) == 0:
            self.min_aabb = np.zeros(3, dtype=np.float32)
            self.max_aabb = np.zeros(3, dtype=np.float32)
            return
        self.min_aabb = self.positions.min(axis=0)
        self.max_aabb = self.positions.max(axis=0)

    def _update_transformed_aabb(self, matrix: npt.NDArray[np.float32]) -> None:
        """Transform all eight corners of the original box and re-fit."""
        lo, hi = self.min_aabb, self.max_aabb
        corners = np.array(
            [[x, y, z] for x in (lo[0], hi[0]) for y in (lo[1], hi[1]) for z in (lo[2], hi[2])],
            dtype=np.float32,
        )
        transformed = transform_points(matrix, corners)
        self.transformed_min_aabb = transformed.min(axis=0)
        self.transformed_max_aabb = transformed.max(axis=0)

    def update_transforms(self) -> None:
        """Rebuild the world-space cache and push it to scene storage.

        Must be called after any transform or geometry change before the
        mesh is rendered or queried.
        """
        matrix = self.transform
        self.transformed_positions = transform_points(matrix, self.positions)

        rotated = transform_vectors(self.rotation_transform, self.normals)
        with np.errstate(invalid="ignore", divide="ignore"):
            norms = np.linalg.norm(rotated, axis=1, keepdims=True)
            self.transformed_normals = (rotated / norms).astype(np.float32)

        self._update_transformed_aabb(matrix)

        if self.slot is not None:
            upload_mesh(
                self.slot,
                self.transformed_positions,
                self.indices,
                self.transformed_min_aabb,
                self.transformed_max_aabb,
                self.cull_mode,
                self.material_id,
            )

    def __repr__(self) -> str:
        """Return a short description of the mesh."""
        return (
            f"TriangleMesh(triangles={self.triangle_count}, "
            f"cull_mode={self.cull_mode.name}, material_id={self.material_id})"
        )


# =============================================================================
# Intersection (Taichi-side)
# =============================================================================


@ti.func
def slab_test(ray: Ray, box_min: vec3, box_max: vec3) -> ti.i32:
    """Intersect a ray with an axis-aligned box using per-axis slabs.

    Args:
        ray: The ray to test.
        box_min: Minimum corner of the box.
        box_max: Maximum corner of the box.

    Returns:
        1 unless the interval is empty (tmax < tmin) or behind the ray
        (tmax < 0).
    """
    inside = 1
    tmin = -T_INFINITY
    tmax = T_INFINITY
    for i in ti.static(range(3)):
        if ray.direction[i] == 0.0:
            # Parallel to this slab: no interval, only containment
            if ray.origin[i] < box_min[i] or ray.origin[i] > box_max[i]:
                inside = 0
        else:
            t1 = (box_min[i] - ray.origin[i]) / ray.direction[i]
            t2 = (box_max[i] - ray.origin[i]) / ray.direction[i]
            tmin = tm.max(tmin, tm.min(t1, t2))
            tmax = tm.min(tmax, tm.max(t1, t2))

    result = 0
    if inside == 1 and tmax >= 0.0 and tmax >= tmin:
        result = 1
    return result


@ti.func
def _intersect_mesh_triangle(ray: Ray, v0: vec3, v1: vec3, v2: vec3, cull_mode: ti.i32):
    """Möller–Trumbore test of one mesh triangle.

    Returns:
        A tuple (hit, t, edge1, edge2).
    """
    edge1 = v1 - v0
    edge2 = v2 - v0

    h = tm.cross(ray.direction, edge2)
    a = tm.dot(edge1, h)

    did_hit = 0
    t = 0.0

    culled = 0
    # Parallel to the triangle plane
    if ti.abs(a) < FLT_EPSILON:
        culled = 1
    if a < -FLT_EPSILON and cull_mode == int(CullMode.BACK_FACE):
        culled = 1
    if a > FLT_EPSILON and cull_mode == int(CullMode.FRONT_FACE):
        culled = 1

    if culled == 0:
        f = 1.0 / a
        s = ray.origin - v0
        u = f * tm.dot(s, h)
        if u >= 0.0 and u <= 1.0:
            q = tm.cross(s, edge1)
            v = f * tm.dot(ray.direction, q)
            if v >= 0.0 and u + v <= 1.0:
                t = f * tm.dot(edge2, q)
                if t >= ray.t_min and t <= ray.t_max:
                    did_hit = 1

    return did_hit, t, edge1, edge2


@ti.func
def _mesh_triangle_vertices(mesh_id: ti.i32, triangle: ti.i32):
    """Fetch the transformed vertices of one triangle of a mesh."""
    base = mesh_index_offsets[mesh_id] + 3 * triangle
    vertex_offset = mesh_vertex_offsets[mesh_id]
    v0 = mesh_positions[vertex_offset + mesh_indices[base]]
    v1 = mesh_positions[vertex_offset + mesh_indices[base + 1]]
    v2 = mesh_positions[vertex_offset + mesh_indices[base + 2]]
    return v0, v1, v2


@ti.func
def hit_mesh(ray: Ray, mesh_id: ti.i32) -> HitRecord:
    """Find the closest hit between a ray and one stored mesh.

    Args:
        ray: The ray to test (unit direction).
        mesh_id: The mesh storage slot.

    Returns:
        A HitRecord for the closest triangle. Its normal is
        normalize(cross(e1, e2)) of that triangle.
    """
    record = make_miss_record()

    if slab_test(ray, mesh_min_aabb[mesh_id], mesh_max_aabb[mesh_id]) == 1:
        cull_mode = mesh_cull_modes[mesh_id]
        closest_t = T_INFINITY
        found = 0
        best_e1 = vec3(0.0, 0.0, 0.0)
        best_e2 = vec3(0.0, 0.0, 0.0)

        for k in range(mesh_index_counts[mesh_id] // 3):
            v0, v1, v2 = _mesh_triangle_vertices(mesh_id, k)
            did_hit, t, e1, e2 = _intersect_mesh_triangle(ray, v0, v1, v2, cull_mode)
            if did_hit == 1 and t < closest_t:
                found = 1
                closest_t = t
                best_e1 = e1
                best_e2 = e2

        if found == 1:
            record = HitRecord(
                hit=1,
                t=closest_t,
                point=ray_at(ray, closest_t),
                normal=tm.normalize(tm.cross(best_e1, best_e2)),
            )

    return record


@ti.func
def hit_mesh_any(ray: Ray, mesh_id: ti.i32) -> ti.i32:
    """Test whether the ray hits any triangle of a stored mesh."""
    found = 0
    if slab_test(ray, mesh_min_aabb[mesh_id], mesh_max_aabb[mesh_id]) == 1:
        cull_mode = mesh_cull_modes[mesh_id]
        for k in range(mesh_index_counts[mesh_id] // 3):
            if found == 0:
                v0, v1, v2 = _mesh_triangle_vertices(mesh_id, k)
                did_hit, _, _, _ = _intersect_mesh_triangle(ray, v0, v1, v2, cull_mode)
                if did_hit == 1:
                    found = 1
    return found
