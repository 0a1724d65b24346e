"""Camera module for primary ray generation.

Components:
    camera: Perspective camera with an explicit right/up/forward frame
"""

from .camera import (
    MAX_FOV_ANGLE,
    MIN_FOV_ANGLE,
    Camera,
    get_camera_info,
    get_primary_ray,
    setup_camera,
)

__all__ = [
    "Camera",
    "MIN_FOV_ANGLE",
    "MAX_FOV_ANGLE",
    "setup_camera",
    "get_primary_ray",
    "get_camera_info",
]
