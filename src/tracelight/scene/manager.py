"""Scene aggregate coordinating primitives, materials, lights and the camera.

This module provides the Scene class, the single owner of everything the
renderer reads. It tracks which material type (SolidColor, Lambert,
Cook-Torrance) each scene material id corresponds to, so the renderer can
dispatch to the right BRDF.

All storage lives in module-level Taichi fields, so only one Scene is live
at a time: constructing a Scene clears every primitive, material and light
registry and registers material 0 as solid red, the fallback for geometry
without an explicit material.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from tracelight.scene.manager import Scene
    >>> scene = Scene()
    >>> white = scene.add_lambert_material((1.0, 1.0, 1.0), kd=1.0)
    >>> scene.add_sphere((0.0, 1.0, 0.0), 0.75, white)
    >>> scene.add_point_light((0.0, 5.0, -5.0), 70.0)
    >>> info = scene.closest_hit((0.0, 1.0, -5.0), (0.0, 0.0, 1.0))
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import taichi as ti
import taichi.math as tm

from tracelight.camera.camera import Camera
from tracelight.core.ray import T_MAX, T_MIN, make_bounded_ray
from tracelight.geometry.mesh import TriangleMesh, allocate_mesh_slot, get_mesh_count
from tracelight.geometry.obj_loader import parse_obj
from tracelight.geometry.triangle import CullMode, triangle_normal
from tracelight.lights import light as lights
from tracelight.materials import MaterialType
from tracelight.materials.cook_torrance import (
    add_cook_torrance_material,
    clear_cook_torrance_materials,
)
from tracelight.materials.lambert import add_lambert_material, clear_lambert_materials
from tracelight.materials.solid_color import (
    add_solid_color_material,
    clear_solid_color_materials,
)
from tracelight.scene import intersection

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# Color of the default material 0
DEFAULT_MATERIAL_COLOR = (1.0, 0.0, 0.0)

# Maximum number of materials across all types
MAX_MATERIALS = 768  # 256 per type * 3 types

# material_types[i] stores the MaterialType for material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] stores the type-local index for material_id i
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Clear the material tracking fields."""
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material type for a given material ID.

    Args:
        material_id: The scene material ID.

    Returns:
        The material type as an integer (see MaterialType enum).
        Returns -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the index into the type-specific registry for a material ID.

    Returns:
        The type-local index, or -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


# =============================================================================
# Python-callable Scene Queries
# =============================================================================

_query_hit = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_material_id = ti.field(dtype=ti.i32, shape=())


@ti.func
def write_query_result(rec: intersection.SceneHitRecord):
    """Store a SceneHitRecord where read_closest_hit() picks it up."""
    _query_hit[None] = rec.hit
    _query_t[None] = rec.t
    _query_point[None] = rec.point
    _query_normal[None] = rec.normal
    _query_material_id[None] = rec.material_id


@ti.kernel
def _closest_hit_kernel(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
):
    ray = make_bounded_ray(vec3(ox, oy, oz), vec3(dx, dy, dz), t_min, t_max)
    write_query_result(intersection.closest_hit(ray))


@ti.kernel
def _any_hit_kernel(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
):
    ray = make_bounded_ray(vec3(ox, oy, oz), vec3(dx, dy, dz), t_min, t_max)
    _query_hit[None] = intersection.any_hit(ray)


def _unit_direction(v: Sequence[float], what: str = "Ray direction") -> tuple[float, float, float]:
    norm = math.sqrt(sum(float(c) * float(c) for c in v))
    if norm == 0.0:
        raise ValueError(f"{what} must be non-zero, got {tuple(v)}")
    return (float(v[0]) / norm, float(v[1]) / norm, float(v[2]) / norm)


@dataclass
class HitInfo:
    """Result of a Python-side closest-hit query.

    Attributes:
        hit: Whether anything was hit.
        t: Distance along the ray (inf on a miss).
        point: The hit point.
        normal: The unit surface normal of the hit primitive.
        material_id: The scene material id (0 on a miss).
    """

    hit: bool
    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    material_id: int


def read_closest_hit() -> HitInfo:
    """Read the result of the last closest-hit query kernel."""
    p = _query_point[None]
    n = _query_normal[None]
    return HitInfo(
        hit=bool(_query_hit[None]),
        t=float(_query_t[None]),
        point=(float(p[0]), float(p[1]), float(p[2])),
        normal=(float(n[0]), float(n[1]), float(n[2])),
        material_id=int(_query_material_id[None]),
    )


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The scene material ID.
        material_type: The type of material.
        type_index: The index within the type-specific material registry.
        params: The material parameters as provided during creation.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any] = field(default_factory=dict)


class Scene:
    """The scene: geometry, materials, lights and camera.

    Attributes:
        camera: The camera used to render the scene.
        materials: MaterialInfo for every registered material, by id.
        meshes: Every TriangleMesh added to the scene, by slot.

    Example:
        >>> scene = Scene()
        >>> gray = scene.add_cook_torrance_material((0.75, 0.75, 0.75), 0.0, 0.6)
        >>> scene.add_sphere((0.0, 3.0, 0.0), 0.75, gray)
        >>> scene.add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    """

    def __init__(self) -> None:
        """Initialize an empty scene with the default red material."""
        self.camera = Camera()
        self.materials: list[MaterialInfo] = []
        self.meshes: list[TriangleMesh] = []
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        intersection.clear_scene()
        lights.clear_lights()
        clear_solid_color_materials()
        clear_lambert_materials()
        clear_cook_torrance_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.meshes.clear()

        self.add_solid_color_material(DEFAULT_MATERIAL_COLOR)
        logger.debug("Scene storage cleared")

    def clear(self) -> None:
        """Remove every primitive, light and material except the default."""
        self._clear_all()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self, material_type: MaterialType, type_index: int, params: dict[str, Any]
    ) -> int:
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_solid_color_material(self, color: Sequence[float]) -> int:
        """Add a solid color material.

        Returns:
            The scene material ID.

        Raises:
            ValueError: If any color component is negative.
            RuntimeError: If a material registry is full.
        """
        type_index = add_solid_color_material(color)
        return self._register_material(MaterialType.SOLID_COLOR, type_index, {"color": tuple(color)})

    def add_lambert_material(self, albedo: Sequence[float], kd: float = 1.0) -> int:
        """Add a Lambert material.

        Args:
            albedo: The diffuse color, each component in [0, 1].
            kd: The diffuse reflectance in [0, 1].

        Returns:
            The scene material ID.

        Raises:
            ValueError: If albedo or kd is outside [0, 1].
            RuntimeError: If a material registry is full.
        """
        type_index = add_lambert_material(albedo, kd)
        return self._register_material(
            MaterialType.LAMBERT, type_index, {"albedo": tuple(albedo), "kd": kd}
        )

    def add_cook_torrance_material(
        self, albedo: Sequence[float], metalness: float, roughness: float
    ) -> int:
        """Add a Cook-Torrance material.

        Args:
            albedo: The base color, each component in [0, 1].
            metalness: Metalness in [0, 1].
            roughness: Roughness in (0, 1].

        Returns:
            The scene material ID.

        Raises:
            ValueError: If a parameter is out of range.
            RuntimeError: If a material registry is full.
        """
        type_index = add_cook_torrance_material(albedo, metalness, roughness)
        return self._register_material(
            MaterialType.COOK_TORRANCE,
            type_index,
            {"albedo": tuple(albedo), "metalness": metalness, "roughness": roughness},
        )

    def get_material_count(self) -> int:
        """Get the total number of materials, including the default."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if unknown."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def _check_material(self, material_id: int) -> None:
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(self, center: Sequence[float], radius: float, material_id: int = 0) -> int:
        """Add a sphere.

        Args:
            center: The center as (x, y, z).
            radius: The radius (must be positive).
            material_id: The scene material ID.

        Returns:
            The index of the added sphere.

        Raises:
            ValueError: If radius is not positive or material_id is invalid.
            RuntimeError: If the maximum number of spheres is exceeded.
        """
        if not radius > 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")
        self._check_material(material_id)
        return intersection.add_sphere(center, radius, material_id)

    def add_plane(
        self, origin: Sequence[float], normal: Sequence[float], material_id: int = 0
    ) -> int:
        """Add an infinite plane. The normal is normalized on insert.

        Raises:
            ValueError: If the normal is zero-length or material_id is invalid.
            RuntimeError: If the maximum number of planes is exceeded.
        """
        self._check_material(material_id)
        return intersection.add_plane(origin, _unit_direction(normal, "Plane normal"), material_id)

    def add_triangle(
        self,
        v0: Sequence[float],
        v1: Sequence[float],
        v2: Sequence[float],
        cull_mode: CullMode = CullMode.BACK_FACE,
        material_id: int = 0,
    ) -> int:
        """Add a standalone triangle with its face normal computed from the vertices.

        Raises:
            ValueError: If the triangle is degenerate or material_id is invalid.
            RuntimeError: If the maximum number of triangles is exceeded.
        """
        self._check_material(material_id)
        normal = triangle_normal(v0, v1, v2)
        if not np.all(np.isfinite(normal)):
            raise ValueError(f"Degenerate triangle: {tuple(v0)}, {tuple(v1)}, {tuple(v2)}")
        return intersection.add_triangle(v0, v1, v2, normal, cull_mode, material_id)

    def add_triangle_mesh(
        self,
        cull_mode: CullMode = CullMode.BACK_FACE,
        material_id: int = 0,
        positions: Sequence[Sequence[float]] | None = None,
        indices: Sequence[int] | None = None,
    ) -> TriangleMesh:
        """Add a triangle mesh, empty or from raw positions and indices.

        The returned mesh is bound to a storage slot; every later
        update_transforms() call re-uploads it.

        Raises:
            ValueError: If material_id is invalid or indices are malformed.
            RuntimeError: If the maximum number of meshes is exceeded.
        """
        self._check_material(material_id)
        mesh = TriangleMesh(positions, indices, cull_mode=cull_mode, material_id=material_id)
        slot = allocate_mesh_slot(cull_mode)
        mesh.slot = slot
        mesh.update_transforms()
        self.meshes.append(mesh)
        logger.debug("Added mesh %d with %d triangles", slot, mesh.triangle_count)
        return mesh

    def load_obj_mesh(
        self,
        filepath: str | Path,
        cull_mode: CullMode = CullMode.BACK_FACE,
        material_id: int = 0,
    ) -> TriangleMesh:
        """Load a Wavefront OBJ file as a triangle mesh.

        Raises:
            FileNotFoundError: If the file does not exist.
            ValueError: If the file is malformed or material_id is invalid.
        """
        self._check_material(material_id)
        positions, normals, indices = parse_obj(filepath)
        mesh = TriangleMesh(
            positions, indices, cull_mode=cull_mode, material_id=material_id, normals=normals
        )
        slot = allocate_mesh_slot(cull_mode)
        mesh.slot = slot
        mesh.update_transforms()
        self.meshes.append(mesh)
        logger.info("Loaded %s: %d triangles", filepath, mesh.triangle_count)
        return mesh

    def update_meshes(self) -> None:
        """Call update_transforms() on every mesh of the scene."""
        for mesh in self.meshes:
            mesh.update_transforms()

    def get_sphere_count(self) -> int:
        """Get the number of spheres."""
        return intersection.get_sphere_count()

    def get_plane_count(self) -> int:
        """Get the number of planes."""
        return intersection.get_plane_count()

    def get_triangle_count(self) -> int:
        """Get the number of standalone triangles."""
        return intersection.get_triangle_count()

    def get_mesh_count(self) -> int:
        """Get the number of triangle meshes."""
        return get_mesh_count()

    # =========================================================================
    # Light Management
    # =========================================================================

    def add_point_light(
        self, origin: Sequence[float], intensity: float, color: Sequence[float] = (1.0, 1.0, 1.0)
    ) -> int:
        """Add a point light. See lights.add_point_light."""
        return lights.add_point_light(origin, intensity, color)

    def add_directional_light(
        self,
        direction: Sequence[float],
        intensity: float,
        color: Sequence[float] = (1.0, 1.0, 1.0),
    ) -> int:
        """Add a directional light. See lights.add_directional_light."""
        return lights.add_directional_light(direction, intensity, color)

    def get_light_count(self) -> int:
        """Get the number of lights."""
        return lights.get_light_count()

    # =========================================================================
    # Queries
    # =========================================================================

    def closest_hit(
        self,
        origin: Sequence[float],
        direction: Sequence[float],
        t_min: float = T_MIN,
        t_max: float = T_MAX,
    ) -> HitInfo:
        """Find the closest surface along a ray.

        Args:
            origin: The ray origin.
            direction: The ray direction. Normalized before tracing.
            t_min: Smallest accepted distance.
            t_max: Largest accepted distance.

        Returns:
            A HitInfo; hit is False when nothing was hit.

        Raises:
            ValueError: If direction is zero-length.
        """
        dx, dy, dz = _unit_direction(direction)
        _closest_hit_kernel(
            float(origin[0]), float(origin[1]), float(origin[2]), dx, dy, dz, t_min, t_max
        )
        return read_closest_hit()

    def any_hit(
        self,
        origin: Sequence[float],
        direction: Sequence[float],
        t_min: float = T_MIN,
        t_max: float = T_MAX,
    ) -> bool:
        """Test whether anything lies along a ray within [t_min, t_max].

        Raises:
            ValueError: If direction is zero-length.
        """
        dx, dy, dz = _unit_direction(direction)
        _any_hit_kernel(
            float(origin[0]), float(origin[1]), float(origin[2]), dx, dy, dz, t_min, t_max
        )
        return bool(_query_hit[None])

    def __repr__(self) -> str:
        """Return a short summary of the scene contents."""
        return (
            f"Scene(spheres={self.get_sphere_count()}, planes={self.get_plane_count()}, "
            f"triangles={self.get_triangle_count()}, meshes={self.get_mesh_count()}, "
            f"materials={self.get_material_count()}, lights={self.get_light_count()})"
        )

