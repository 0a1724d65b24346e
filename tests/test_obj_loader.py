"""Unit tests for the OBJ loader.

Tests cover:
- Vertex and face parsing with 0-based output indices
- "v//vn" face tokens and polygon triangulation
- Per-face normals
- Error handling for missing files and missing vertices
"""

import numpy as np
import pytest


def _write(tmp_path, text):
    path = tmp_path / "mesh.obj"
    path.write_text(text, encoding="utf-8")
    return path


class TestParseObj:
    """Tests for parse_obj."""

    def test_single_triangle(self, tmp_path):
        """Test a plain triangle is read with 0-based indices and its face normal."""
        from tracelight.geometry.obj_loader import parse_obj

        path = _write(
            tmp_path,
            "# reference triangle\n"
            "v -0.75 1.5 0.0\n"
            "v 0.75 0.0 0.0\n"
            "v -0.75 0.0 0.0\n"
            "f 1 2 3\n",
        )
        positions, normals, indices = parse_obj(path)

        assert positions.shape == (3, 3)
        assert positions.dtype == np.float32
        assert indices.dtype == np.int32
        np.testing.assert_array_equal(indices, [0, 1, 2])
        np.testing.assert_allclose(normals, [[0.0, 0.0, -1.0]], atol=1e-6)

    def test_normal_references_are_ignored(self, tmp_path):
        """Test "v//vn" tokens keep the position index only."""
        from tracelight.geometry.obj_loader import parse_obj

        path = _write(
            tmp_path,
            "v 0 0 0\nv 1 0 0\nv 0 1 0\nv 1 1 0\n"
            "vn 0 0 1\n"
            "f 1//1 2//1 3//1\n"
            "f 2//1 4//1 3//1\n",
        )
        positions, normals, indices = parse_obj(path)

        assert positions.shape == (4, 3)
        np.testing.assert_array_equal(indices, [0, 1, 2, 1, 3, 2])
        assert normals.shape == (2, 3)
        np.testing.assert_allclose(np.linalg.norm(normals, axis=1), [1.0, 1.0], atol=1e-6)

    def test_quad_is_triangulated(self, tmp_path):
        """Test a quad face becomes two triangles over its own vertices."""
        from tracelight.geometry.obj_loader import parse_obj

        path = _write(tmp_path, "v 0 0 0\nv 1 0 0\nv 1 1 0\nv 0 1 0\nf 1 2 3 4\n")
        _, normals, indices = parse_obj(path)

        assert len(indices) == 6
        assert set(indices.tolist()) == {0, 1, 2, 3}
        np.testing.assert_allclose(normals[0], normals[1], atol=1e-6)

    def test_no_faces(self, tmp_path):
        """Test a file without faces yields empty index and normal arrays."""
        from tracelight.geometry.obj_loader import parse_obj

        positions, normals, indices = parse_obj(_write(tmp_path, "v 0 0 0\n"))

        assert positions.shape == (1, 3)
        assert normals.shape == (0, 3)
        assert len(indices) == 0

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        from tracelight.geometry.obj_loader import parse_obj

        with pytest.raises(FileNotFoundError):
            parse_obj(tmp_path / "missing.obj")

    def test_missing_vertex_rejected(self, tmp_path):
        """Test a face referencing a vertex that does not exist raises ValueError."""
        from tracelight.geometry.obj_loader import parse_obj

        path = _write(tmp_path, "v 0 0 0\nv 1 0 0\nv 0 1 0\nf 1 2 4\n")
        with pytest.raises(ValueError):
            parse_obj(path)
