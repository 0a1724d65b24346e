"""Scene module for scene storage and ray-scene queries.

Components:
    intersection: Primitive storage and the closest-hit / any-hit queries
    manager: The Scene aggregate tracking materials, lights and the camera
    reference_scene: Factory for the reference material/culling scene
"""

from .intersection import (
    MAX_PLANES,
    MAX_SPHERES,
    MAX_TRIANGLES,
    SceneHitRecord,
    any_hit,
    clear_scene,
    closest_hit,
    make_scene_miss_record,
)
from .manager import (
    MAX_MATERIALS,
    HitInfo,
    MaterialInfo,
    Scene,
    get_material_type,
    get_material_type_index,
)
from .reference_scene import animate_reference_scene, create_reference_scene

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "closest_hit",
    "any_hit",
    "clear_scene",
    "make_scene_miss_record",
    "MAX_SPHERES",
    "MAX_PLANES",
    "MAX_TRIANGLES",
    # Manager module
    "Scene",
    "HitInfo",
    "MaterialInfo",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    # Reference scene
    "create_reference_scene",
    "animate_reference_scene",
]
