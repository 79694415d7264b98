"""Unit tests for sampling routines.

Tests cover:
- Hemisphere sampling formula
- Disk and lens sampling radius
- Directional light cone sampling
- GGX visible-normal sampling
- Tangent frames
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestHemisphereAndDisk:
    """Tests for sample_hemisphere, sample_disk and sample_lens."""

    def test_hemisphere_uses_r1_as_height(self):
        from lumitrace.core.sampling import sample_hemisphere

        result = ti.Vector.field(3, dtype=ti.f32, shape=3)

        @ti.kernel
        def sample():
            result[0] = sample_hemisphere(0.0, 0.0)
            result[1] = sample_hemisphere(0.5, 0.25)
            result[2] = sample_hemisphere(0.99, 0.7)

        sample()
        arr = result.to_numpy()
        assert arr[0] == pytest.approx([1.0, 0.0, 0.0], abs=1e-6)
        assert arr[1] == pytest.approx([0.0, 0.5, math.sqrt(0.75)], abs=1e-5)
        assert arr[2][1] == pytest.approx(0.99, abs=1e-6)
        assert np.allclose(np.linalg.norm(arr, axis=1), 1.0, atol=1e-5)

    def test_disk_radius_is_sqrt(self):
        from lumitrace.core.sampling import sample_disk

        radius = ti.field(dtype=ti.f32, shape=())
        phi = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def sample():
            r, p = sample_disk(0.25, 0.5)
            radius[None] = r
            phi[None] = p

        sample()
        assert radius[None] == pytest.approx(0.5)
        assert phi[None] == pytest.approx(math.pi, abs=1e-5)

    def test_lens_samples_inside_radius(self):
        from lumitrace.core.rng import next_float, seed_stream
        from lumitrace.core.sampling import sample_lens

        n = 1024
        offsets = ti.Vector.field(2, dtype=ti.f32, shape=n)

        @ti.kernel
        def sample():
            for k in range(n):
                state = seed_stream(0, 1, k)
                u1, state = next_float(state)
                u2, state = next_float(state)
                offsets[k] = sample_lens(u1, u2, 0.002)

        sample()
        lengths = np.linalg.norm(offsets.to_numpy(), axis=1)
        assert np.all(lengths <= 0.002 + 1e-7)


class TestLightSampling:
    """Tests for sample_light_direction."""

    def test_zero_angle_returns_axis(self):
        from lumitrace.core.sampling import sample_light_direction, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def sample():
            result[None] = sample_light_direction(
                vec3(0.0, 1.0, 0.0), vec3(0.0, 0.0, -1.0), vec3(-1.0, 0.0, 0.0), 1.0, 0.7, 0.3
            )

        sample()
        assert result[None].to_numpy() == pytest.approx([0.0, 1.0, 0.0])

    def test_samples_stay_inside_cone(self):
        from lumitrace.core.rng import next_float, seed_stream
        from lumitrace.core.sampling import sample_light_direction, vec3
        from lumitrace.scene.components import DirectionalLight

        light = DirectionalLight(direction=(1, -1, 1), disk_angle=10.0)
        light.derive()

        n = 1024
        dirs = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def sample(
            d: ti.types.vector(3, ti.f32),
            t: ti.types.vector(3, ti.f32),
            b: ti.types.vector(3, ti.f32),
            half_angle_cos: ti.f32,
        ):
            for k in range(n):
                state = seed_stream(0, 1, k)
                u1, state = next_float(state)
                u2, state = next_float(state)
                dirs[k] = sample_light_direction(d, t, b, half_angle_cos, u1, u2)

        sample(
            vec3(*light.light_dir),
            vec3(*light.tangent),
            vec3(*light.bitangent),
            light.half_angle_cos,
        )
        arr = dirs.to_numpy()
        cosines = arr @ np.array(light.light_dir)
        assert np.allclose(np.linalg.norm(arr, axis=1), 1.0, atol=1e-5)
        assert np.all(cosines >= light.half_angle_cos - 1e-5)


class TestVisibleNormalSampling:
    """Tests for sample_ggx_vndf."""

    @pytest.mark.parametrize("alpha", [0.0, 0.05, 0.5, 1.0])
    def test_half_vector_is_unit_and_above(self, alpha):
        from lumitrace.core.rng import next_float, seed_stream
        from lumitrace.core.sampling import sample_ggx_vndf, vec3

        n = 512
        halves = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def sample(a: ti.f32):
            view = ti.math.normalize(vec3(0.3, -0.2, 0.8))
            for k in range(n):
                state = seed_stream(1, 1, k)
                u1, state = next_float(state)
                u2, state = next_float(state)
                halves[k] = sample_ggx_vndf(view, a, u1, u2)

        sample(alpha)
        arr = halves.to_numpy()
        assert np.all(arr[:, 2] > 0.0)
        assert np.allclose(np.linalg.norm(arr, axis=1), 1.0, atol=1e-4)

    @pytest.mark.parametrize("alpha", [0.2, 0.5, 0.9])
    def test_samples_follow_visible_normal_density(self, alpha):
        """Weighting each H by (H.N)(V.N) / (G1(V)(V.H)) integrates D(H)(H.N) over H.

        The projected GGX distribution integrates to one and is symmetric
        about the normal, so the weights average to one and their x moment
        averages to zero.
        """
        from lumitrace.core.rng import next_float, seed_stream
        from lumitrace.core.sampling import sample_ggx_vndf, vec3
        from lumitrace.materials.microfacet import smith_g1

        n = 1 << 16
        weights = ti.field(dtype=ti.f32, shape=n)
        x_moments = ti.field(dtype=ti.f32, shape=n)

        @ti.kernel
        def sample(a: ti.f32):
            view = ti.math.normalize(vec3(0.3, -0.2, 0.8))
            g1 = smith_g1(a * a, view.z)
            for k in range(n):
                state = seed_stream(5, 1, k)
                u1, state = next_float(state)
                u2, state = next_float(state)
                h = sample_ggx_vndf(view, a, u1, u2)
                w = h.z * view.z / (g1 * ti.math.dot(view, h))
                weights[k] = w
                x_moments[k] = w * h.x

        sample(alpha)
        w = weights.to_numpy().astype(np.float64)
        assert np.all(np.isfinite(w))
        assert w.mean() == pytest.approx(1.0, abs=0.04)
        assert x_moments.to_numpy().astype(np.float64).mean() == pytest.approx(0.0, abs=0.03)

    def test_smooth_surface_samples_normal(self):
        from lumitrace.core.sampling import sample_ggx_vndf, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def sample():
            result[None] = sample_ggx_vndf(vec3(0.0, 0.6, 0.8), 0.0, 0.4, 0.9)

        sample()
        assert result[None].to_numpy() == pytest.approx([0.0, 0.0, 1.0], abs=1e-6)


class TestTangentFrame:
    """Tests for tangent_frame and the local/world transforms."""

    @pytest.mark.parametrize(
        "normal",
        [(0.0, 1.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.577350, 0.577350, 0.577350)],
    )
    def test_frame_is_orthonormal(self, normal):
        from lumitrace.core.sampling import tangent_frame, vec3

        tangent = ti.Vector.field(3, dtype=ti.f32, shape=())
        bitangent = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def frame(n: ti.types.vector(3, ti.f32)):
            t, b = tangent_frame(n)
            tangent[None] = t
            bitangent[None] = b

        n = np.array(normal) / np.linalg.norm(normal)
        frame(vec3(*n))
        t = tangent[None].to_numpy()
        b = bitangent[None].to_numpy()
        assert np.linalg.norm(t) == pytest.approx(1.0, abs=1e-5)
        assert np.linalg.norm(b) == pytest.approx(1.0, abs=1e-5)
        assert abs(np.dot(t, n)) < 1e-5
        assert abs(np.dot(b, n)) < 1e-5
        assert abs(np.dot(t, b)) < 1e-5

    def test_local_world_round_trip(self):
        from lumitrace.core.sampling import tangent_frame, to_local, to_world, vec3

        result = ti.Vector.field(3, dtype=ti.f32, shape=())

        @ti.kernel
        def round_trip():
            n = vec3(0.0, 0.0, 1.0)
            t, b = tangent_frame(n)
            v = vec3(0.2, -0.5, 0.7)
            result[None] = to_world(to_local(v, t, b, n), t, b, n)

        round_trip()
        assert result[None].to_numpy() == pytest.approx([0.2, -0.5, 0.7], abs=1e-6)

    def test_numpy_frame_matches(self):
        from lumitrace.core.sampling import tangent_frame_np

        t, b = tangent_frame_np((0.0, 1.0, 0.0))
        assert t == pytest.approx([0.0, 0.0, 1.0])
        assert b == pytest.approx([1.0, 0.0, 0.0])
