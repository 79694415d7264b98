"""Unit tests for sphere intersection.

Tests cover:
- Ray hitting a sphere head-on from outside
- Ray missing a sphere
- Only strictly closer hits than t_best are reported
- Ray starting inside a sphere (near root only)
"""

import pytest
import taichi as ti


def _run_hit(origin, direction, center, radius, t_best=1e30):
    """Run hit_sphere in a kernel and return (hit, t, normal)."""
    from lumitrace.geometry.sphere import SphereShape, hit_sphere, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(
        o: ti.types.vector(3, ti.f32),
        d: ti.types.vector(3, ti.f32),
        c: ti.types.vector(3, ti.f32),
        r2: ti.f32,
        best: ti.f32,
    ):
        rec = hit_sphere(o, ti.math.normalize(d), SphereShape(center=c, radius_squared=r2), best)
        hit[None] = rec.hit
        t_val[None] = rec.t
        normal[None] = rec.normal

    test_kernel(vec3(*origin), vec3(*direction), vec3(*center), radius * radius, t_best)
    return hit[None], t_val[None], normal[None].to_numpy()


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    @pytest.mark.parametrize("distance, radius", [(5.0, 1.0), (10.0, 0.5), (3.0, 2.0)])
    def test_head_on_hit_distance(self, distance, radius):
        """A ray from (0, 0, -D) toward the origin hits at t = D - r."""
        hit, t, normal = _run_hit((0.0, 0.0, -distance), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), radius)

        assert hit == 1
        assert t == pytest.approx(distance - radius, abs=1e-4)
        assert normal == pytest.approx([0.0, 0.0, -1.0], abs=1e-5)

    def test_miss(self):
        hit, _, _ = _run_hit((0.0, 2.0, -5.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 0

    def test_sphere_behind_ray(self):
        hit, _, _ = _run_hit((0.0, 0.0, 5.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 0

    def test_t_best_is_strict(self):
        """A hit at exactly t_best is not closer and is not reported."""
        hit, _, _ = _run_hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0, t_best=4.0)
        assert hit == 0

        hit, t, _ = _run_hit((0.0, 0.0, -5.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0, t_best=4.5)
        assert hit == 1
        assert t == pytest.approx(4.0, abs=1e-4)

    def test_origin_inside_sphere_has_no_near_hit(self):
        hit, _, _ = _run_hit((0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 0

    def test_oblique_hit_normal_is_unit(self):
        hit, _, normal = _run_hit((0.5, 0.3, -4.0), (0.0, 0.0, 1.0), (0.0, 0.0, 0.0), 1.0)
        assert hit == 1
        assert float((normal**2).sum()) == pytest.approx(1.0, abs=1e-5)
        assert normal[2] < 0.0
