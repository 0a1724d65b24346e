"""Geometry module for shape primitives and their hit tests.

Components:
    sphere: Sphere primitive and the shared HitRecord
    plane: Infinite plane primitive
    triangle: Single triangle with face culling
    mesh: Triangle mesh with transform cache, AABB rejection and storage
    obj_loader: OBJ reader (PyWavefront) producing mesh positions and indices

Every primitive exposes a full hit test returning a HitRecord and an any-hit
test returning 1/0 for shadow rays. Both share one solver per primitive; a
miss is a flag, never an error:

    record = hit_sphere(ray, sphere)
    blocked = hit_sphere_any(ray, sphere)
"""

from .mesh import (
    MAX_MESHES,
    TriangleMesh,
    allocate_mesh_slot,
    clear_meshes,
    get_mesh_count,
    hit_mesh,
    hit_mesh_any,
    slab_test,
    upload_mesh,
)
from .obj_loader import parse_obj
from .plane import Plane, hit_plane, hit_plane_any
from .sphere import HitRecord, Sphere, hit_sphere, hit_sphere_any, make_miss_record
from .triangle import (
    CullMode,
    Triangle,
    face_normals,
    hit_triangle,
    hit_triangle_any,
    triangle_normal,
)

__all__ = [
    "HitRecord",
    "make_miss_record",
    "Sphere",
    "hit_sphere",
    "hit_sphere_any",
    "Plane",
    "hit_plane",
    "hit_plane_any",
    "CullMode",
    "Triangle",
    "hit_triangle",
    "hit_triangle_any",
    "triangle_normal",
    "face_normals",
    "TriangleMesh",
    "MAX_MESHES",
    "allocate_mesh_slot",
    "upload_mesh",
    "clear_meshes",
    "get_mesh_count",
    "hit_mesh",
    "hit_mesh_any",
    "slab_test",
    "parse_obj",
]
