"""Perspective camera with an explicit orthonormal frame.

The camera is described by an origin, a vertical field of view and a forward
direction. Right and up are derived from forward and the world up axis:

    right = normalize(UnitY x forward)
    up    = normalize(forward x right)

Image space maps to camera space so that the pixel (0, 0) is the top-left
corner and the image plane sits at unit distance along forward:

    x = (2 (px + 0.5) / W - 1) * aspect * fov_value
    y = (1 - 2 (py + 0.5) / H) * fov_value
    direction = normalize(x * right + y * up + forward)

where fov_value = tan(fov_angle / 2).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from tracelight.camera.camera import Camera, setup_camera, get_primary_ray
    >>>
    >>> camera = Camera(origin=(0.0, 3.0, -9.0), fov_angle=45.0)
    >>> setup_camera(camera, 640, 480)
    >>>
    >>> @ti.kernel
    ... def render():
    ...     ray = get_primary_ray(320, 240)  # Ray through image center
"""

import math
from dataclasses import dataclass, field

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from tracelight.core import transform
from tracelight.core.ray import Ray, make_ray, vec3

UNIT_X = (1.0, 0.0, 0.0)
UNIT_Y = (0.0, 1.0, 0.0)
UNIT_Z = (0.0, 0.0, 1.0)

MIN_FOV_ANGLE = 10.0
MAX_FOV_ANGLE = 179.0


def _as_vector(values) -> npt.NDArray[np.float32]:
    return np.asarray(values, dtype=np.float32).reshape(3).copy()


def _normalized(v: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    return (v / np.linalg.norm(v)).astype(np.float32)


# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class Camera:
    """Configuration and orientation state of the perspective camera.

    Setting ``fov_angle`` recomputes ``fov_value``.

    Attributes:
        origin: Camera position in world space (x, y, z).
        fov_angle: Vertical field of view in degrees.
        fov_value: tan(fov_angle / 2), the image plane half-height.
        forward: Unit viewing direction.
        up: Unit up direction of the camera frame.
        right: Unit right direction of the camera frame.
        total_pitch: Accumulated rotation about the X axis in radians.
        total_yaw: Accumulated rotation about the Y axis in radians.
    """

    origin: npt.NDArray[np.float32] = field(default_factory=lambda: _as_vector((0.0, 0.0, 0.0)))
    fov_angle: float = 45.0
    fov_value: float = field(init=False)
    forward: npt.NDArray[np.float32] = field(default_factory=lambda: _as_vector(UNIT_Z))
    up: npt.NDArray[np.float32] = field(default_factory=lambda: _as_vector(UNIT_Y))
    right: npt.NDArray[np.float32] = field(default_factory=lambda: _as_vector(UNIT_X))
    total_pitch: float = 0.0
    total_yaw: float = 0.0

    def __post_init__(self) -> None:
        self.origin = _as_vector(self.origin)
        self.forward = _normalized(_as_vector(self.forward))
        self.up = _as_vector(self.up)
        self.right = _as_vector(self.right)

    def __setattr__(self, name: str, value) -> None:
        super().__setattr__(name, value)
        if name == "fov_angle":
            super().__setattr__("fov_value", math.tan(math.radians(value) / 2.0))

    def calculate_camera_to_world(self) -> npt.NDArray[np.float32]:
        """Re-orthonormalize the frame and build the camera-to-world matrix.

        Returns:
            A 4x4 row-vector matrix with rows right, up, forward and origin.
        """
        right = np.cross(np.asarray(UNIT_Y, dtype=np.float32), self.forward)
        # Looking straight up or down leaves right undefined; keep world X
        if np.linalg.norm(right) < 1e-6:
            right = np.asarray(UNIT_X, dtype=np.float32)
        self.right = _normalized(right)
        self.up = _normalized(np.cross(self.forward, self.right))

        matrix = transform.identity()
        matrix[0, :3] = self.right
        matrix[1, :3] = self.up
        matrix[2, :3] = self.forward
        matrix[3, :3] = self.origin
        matrix[:, 3] = 0.0
        return matrix

    # =========================================================================
    # Motion Helpers (for interactive controllers)
    # =========================================================================

    def set_fov(self, angle: float) -> None:
        """Set the field of view, clamped to [10, 179] degrees."""
        self.fov_angle = min(max(angle, MIN_FOV_ANGLE), MAX_FOV_ANGLE)

    def move(self, forward: float = 0.0, right: float = 0.0, up: float = 0.0) -> None:
        """Translate the camera along its own axes."""
        self.origin = (
            self.origin + forward * self.forward + right * self.right + up * self.up
        ).astype(np.float32)

    def rotate(self, d_pitch: float, d_yaw: float) -> None:
        """Accumulate pitch and yaw (radians) and rebuild forward.

        Forward is UnitZ rotated by the accumulated angles, so repeated small
        rotations never drift.
        """
        self.total_pitch += d_pitch
        self.total_yaw += d_yaw
        orientation = transform.rotation_x(self.total_pitch) @ transform.rotation_y(self.total_yaw)
        self.forward = _normalized(transform.transform_vector(orientation, UNIT_Z))


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_right = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_up = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_forward = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_fov_value = ti.field(dtype=ti.f32, shape=())
_camera_aspect_ratio = ti.field(dtype=ti.f32, shape=())
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per frame)
# =============================================================================


def setup_camera(camera: Camera, width: int, height: int) -> None:
    """Upload the camera frame and image dimensions to Taichi fields.

    Args:
        camera: The camera to upload. Its frame is re-orthonormalized.
        width: Image width in pixels.
        height: Image height in pixels.

    Raises:
        ValueError: If width or height is not positive.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")

    matrix = camera.calculate_camera_to_world()
    _camera_right[None] = matrix[0, :3].tolist()
    _camera_up[None] = matrix[1, :3].tolist()
    _camera_forward[None] = matrix[2, :3].tolist()
    _camera_origin[None] = matrix[3, :3].tolist()
    _camera_fov_value[None] = camera.fov_value
    _camera_aspect_ratio[None] = width / height
    _image_width[None] = width
    _image_height[None] = height


# =============================================================================
# Ray Generation (Taichi-side)
# =============================================================================


@ti.func
def get_primary_ray(px: ti.i32, py: ti.i32) -> Ray:
    """Generate the ray through the center of pixel (px, py).

    Args:
        px: Pixel column (0 = left).
        py: Pixel row (0 = top).

    Returns:
        A Ray from the camera origin with default bounds.
    """
    width = ti.cast(_image_width[None], ti.f32)
    height = ti.cast(_image_height[None], ti.f32)
    fov = _camera_fov_value[None]

    x = (2.0 * (ti.cast(px, ti.f32) + 0.5) / width - 1.0) * _camera_aspect_ratio[None] * fov
    y = (1.0 - 2.0 * (ti.cast(py, ti.f32) + 0.5) / height) * fov

    direction = tm.normalize(x * _camera_right[None] + y * _camera_up[None] + _camera_forward[None])
    return make_ray(_camera_origin[None], direction)


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Get the uploaded camera frame for debugging.

    Returns:
        Dictionary with origin, right, up and forward.
    """
    info = {}
    for name, value in (
        ("origin", _camera_origin[None]),
        ("right", _camera_right[None]),
        ("up", _camera_up[None]),
        ("forward", _camera_forward[None]),
    ):
        info[name] = (float(value[0]), float(value[1]), float(value[2]))
    return info
