"""Wavefront OBJ loading for triangle meshes.

Parsing is delegated to PyWavefront with face collection enabled, so
"v/vt/vn" face tokens, relative indices and polygon triangulation follow its
rules. Only vertex positions and face indices are kept; materials, texture
coordinates and vertex normals in the file are ignored.

One normal per face is computed from the positions, so the result plugs
directly into TriangleMesh.

Example:
    >>> positions, normals, indices = parse_obj("resources/lowpoly_bunny.obj")
    >>> mesh = scene.add_triangle_mesh(CullMode.BACK_FACE, material_id, positions, indices)
"""

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
import pywavefront

from tracelight.geometry.triangle import face_normals

logger = logging.getLogger(__name__)


def parse_obj(
    filepath: str | Path,
) -> tuple[npt.NDArray[np.float32], npt.NDArray[np.float32], npt.NDArray[np.int32]]:
    """Read positions and triangle indices from an OBJ file.

    Args:
        filepath: Path to the OBJ file.

    Returns:
        Tuple of (positions, normals, indices) where positions has shape
        (N, 3), normals has one unit normal per triangle, shape (M, 3), and
        indices is a flat, 0-based int32 array of length 3 * M.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a record is malformed or a face references a missing
            vertex.
    """
    path = Path(filepath)
    if not path.is_file():
        raise FileNotFoundError(f"OBJ file not found: {path}")

    try:
        obj = pywavefront.Wavefront(
            str(path), collect_faces=True, create_materials=True, encoding="utf-8"
        )
    except IndexError as e:
        raise ValueError(f"{path}: face references a missing vertex") from e

    positions = np.asarray([v[:3] for v in obj.vertices], dtype=np.float32).reshape(-1, 3)
    faces = [face for mesh in obj.mesh_list for face in mesh.faces]
    indices = np.asarray(faces, dtype=np.int32).reshape(-1)

    if len(indices) > 0 and (indices.min() < 0 or indices.max() >= len(positions)):
        raise ValueError(
            f"{path}: face index out of range (have {len(positions)} vertices)"
        )

    logger.debug("Parsed %s: %d vertices, %d faces", path, len(positions), len(indices) // 3)
    return positions, face_normals(positions, indices), indices
