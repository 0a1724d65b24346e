"""4x4 affine transforms for Python-side scene setup.

Matrices use the row-vector convention: a point p is transformed as
[x, y, z, 1] @ M, so the translation lives in the last row and the first three
rows are the images of the X, Y and Z axes. The camera-to-world matrix follows
the same layout (rows right, up, forward, origin).

These helpers run on the host with NumPy. Transformed data is uploaded to
Taichi fields afterwards; nothing here is called from kernels.

Example:
    >>> from tracelight.core.transform import translation, rotation_y, transform_points
    >>> m = rotation_y(math.pi / 2) @ translation((0.0, 1.0, 0.0))
    >>> transform_points(m, np.array([[1.0, 0.0, 0.0]]))
"""

import math
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

Vector3Like = Sequence[float] | npt.NDArray[np.float32]


def identity() -> npt.NDArray[np.float32]:
    """Return the 4x4 identity matrix."""
    return np.eye(4, dtype=np.float32)


def translation(offset: Vector3Like) -> npt.NDArray[np.float32]:
    """Create a translation matrix.

    Args:
        offset: The (x, y, z) translation.

    Returns:
        A 4x4 matrix with the offset in its last row.
    """
    m = identity()
    m[3, :3] = np.asarray(offset, dtype=np.float32)
    return m


def scaling(factors: Vector3Like) -> npt.NDArray[np.float32]:
    """Create a non-uniform scale matrix.

    Args:
        factors: The (x, y, z) scale factors.

    Returns:
        A 4x4 diagonal matrix.
    """
    m = identity()
    m[0, 0], m[1, 1], m[2, 2] = (float(f) for f in factors)
    return m


def rotation_x(angle: float) -> npt.NDArray[np.float32]:
    """Create a rotation about the X axis (radians)."""
    c, s = math.cos(angle), math.sin(angle)
    m = identity()
    m[1, 1], m[1, 2] = c, s
    m[2, 1], m[2, 2] = -s, c
    return m


def rotation_y(angle: float) -> npt.NDArray[np.float32]:
    """Create a rotation about the Y axis (radians)."""
    c, s = math.cos(angle), math.sin(angle)
    m = identity()
    m[0, 0], m[0, 2] = c, -s
    m[2, 0], m[2, 2] = s, c
    return m


def rotation_z(angle: float) -> npt.NDArray[np.float32]:
    """Create a rotation about the Z axis (radians)."""
    c, s = math.cos(angle), math.sin(angle)
    m = identity()
    m[0, 0], m[0, 1] = c, s
    m[1, 0], m[1, 1] = -s, c
    return m


def rotation(pitch: float, yaw: float, roll: float = 0.0) -> npt.NDArray[np.float32]:
    """Create a combined rotation, applied as X (pitch), then Y (yaw), then Z (roll)."""
    return rotation_x(pitch) @ rotation_y(yaw) @ rotation_z(roll)


def transform_points(
    matrix: npt.NDArray[np.float32], points: npt.NDArray[np.float32]
) -> npt.NDArray[np.float32]:
    """Transform an (N, 3) array of points, applying translation.

    Args:
        matrix: A 4x4 row-vector transform.
        points: Points to transform, shape (N, 3).

    Returns:
        The transformed points as float32, shape (N, 3).
    """
    pts = np.asarray(points, dtype=np.float32).reshape(-1, 3)
    return (pts @ matrix[:3, :3] + matrix[3, :3]).astype(np.float32)


def transform_vectors(
    matrix: npt.NDArray[np.float32], vectors: npt.NDArray[np.float32]
) -> npt.NDArray[np.float32]:
    """Transform an (N, 3) array of direction vectors, ignoring translation."""
    vecs = np.asarray(vectors, dtype=np.float32).reshape(-1, 3)
    return (vecs @ matrix[:3, :3]).astype(np.float32)


def transform_point(matrix: npt.NDArray[np.float32], point: Vector3Like) -> npt.NDArray[np.float32]:
    """Transform a single point, applying translation."""
    return transform_points(matrix, np.asarray(point, dtype=np.float32))[0]


def transform_vector(
    matrix: npt.NDArray[np.float32], vector: Vector3Like
) -> npt.NDArray[np.float32]:
    """Transform a single direction vector, ignoring translation."""
    return transform_vectors(matrix, np.asarray(vector, dtype=np.float32))[0]
