"""Unit tests for infinite plane intersection.

Tests cover:
- Hits from either side
- Rays parallel to the plane
- Planes behind the ray and beyond t_max
"""

import taichi as ti


def _trace_plane(origin, direction, plane_origin, plane_normal, t_min=1e-4, t_max=1e30):
    """Run hit_plane and hit_plane_any for one ray; return (hit, t, normal, any)."""
    from tracelight.core.ray import make_bounded_ray, vec3
    from tracelight.geometry.plane import Plane, hit_plane, hit_plane_any

    ox, oy, oz = origin
    dx, dy, dz = direction
    px, py, pz = plane_origin
    nx, ny, nz = plane_normal

    hit = ti.field(dtype=ti.i32, shape=())
    any_hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel():
        ray = make_bounded_ray(vec3(ox, oy, oz), vec3(dx, dy, dz), t_min, t_max)
        plane = Plane(origin=vec3(px, py, pz), normal=vec3(nx, ny, nz))
        record = hit_plane(ray, plane)
        hit[None] = record.hit
        t_val[None] = record.t
        normal[None] = record.normal
        any_hit[None] = hit_plane_any(ray, plane)

    test_kernel()
    return hit[None], t_val[None], normal[None], any_hit[None]


class TestPlaneIntersection:
    """Tests for ray-plane intersection."""

    def test_hit_from_above(self):
        """Test a downward ray hits the floor at the right distance."""
        hit, t, n, any_hit = _trace_plane(
            (0.0, 3.0, 0.0), (0.0, -1.0, 0.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0)
        )
        assert hit == 1
        assert any_hit == 1
        assert abs(t - 3.0) < 1e-5
        assert abs(n[1] - 1.0) < 1e-6

    def test_hit_from_below(self):
        """Test planes are two-sided."""
        hit, t, _, _ = _trace_plane(
            (0.0, -2.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0)
        )
        assert hit == 1
        assert abs(t - 2.0) < 1e-5

    def test_parallel_ray_misses(self):
        """Test a ray parallel to the plane never hits."""
        hit, _, _, any_hit = _trace_plane(
            (0.0, 1.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0)
        )
        assert hit == 0
        assert any_hit == 0

    def test_ray_in_plane_misses(self):
        """Test a ray lying inside the plane (0/0 distance) misses."""
        hit, _, _, any_hit = _trace_plane(
            (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0)
        )
        assert hit == 0
        assert any_hit == 0

    def test_plane_behind_ray(self):
        """Test a plane behind the origin is not hit."""
        hit, _, _, _ = _trace_plane(
            (0.0, 3.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0)
        )
        assert hit == 0

    def test_beyond_t_max(self):
        """Test a plane past t_max is not hit."""
        hit, _, _, any_hit = _trace_plane(
            (0.0, 3.0, 0.0), (0.0, -1.0, 0.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), t_max=2.0
        )
        assert hit == 0
        assert any_hit == 0
