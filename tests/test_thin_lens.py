"""Tests for the thin-lens camera.

Tests cover:
- Camera basis, including the straight-down fallback
- Pinhole directions through pixel centres
- Thin-lens rays converging on the focus plane
- Pinhole limit for a vanishing lens
- PDF factor and exposure
"""

import math

import numpy as np
import pytest
import taichi as ti


def _camera(**kwargs):
    from lumitrace.scene.components import Camera

    params = {"position": (0.0, 1.0, -5.0), "direction": (0.0, 0.0, 1.0)}
    params.update(kwargs)
    camera = Camera(**params)
    camera.derive()
    return camera


def _generate(width, height, pixels, seed=0):
    """Generate one thin-lens ray per (i, j) pixel; returns (origins, directions, pinholes)."""
    from lumitrace.camera.thin_lens import generate_ray, pinhole_direction
    from lumitrace.core.rng import seed_stream

    n = len(pixels)
    coords = ti.Vector.field(2, dtype=ti.i32, shape=n)
    origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
    directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
    pinholes = ti.Vector.field(3, dtype=ti.f32, shape=n)
    coords.from_numpy(np.array(pixels, dtype=np.int32))

    @ti.kernel
    def test_kernel(w: ti.i32, h: ti.i32, s: ti.u32):
        for k in range(n):
            i = coords[k][0]
            j = coords[k][1]
            state = seed_stream(s, 1, k)
            origin, direction, state = generate_ray(i, j, w, h, state)
            origins[k] = origin
            directions[k] = direction
            pinholes[k] = pinhole_direction(i, j, w, h)

    test_kernel(width, height, seed)
    return origins.to_numpy(), directions.to_numpy(), pinholes.to_numpy()


class TestCameraBasis:
    """Tests for compute_camera_basis."""

    def test_level_camera(self):
        from lumitrace.camera.thin_lens import compute_camera_basis

        forward, right, up = compute_camera_basis((0.0, 0.0, 2.0))
        assert forward == pytest.approx([0.0, 0.0, 1.0])
        assert right == pytest.approx([1.0, 0.0, 0.0])
        assert up == pytest.approx([0.0, 1.0, 0.0])

    def test_straight_down_uses_fallback(self):
        from lumitrace.camera.thin_lens import compute_camera_basis

        forward, right, up = compute_camera_basis((0.0, -1.0, 0.0))
        assert np.all(np.isfinite(right))
        assert right == pytest.approx([1.0, 0.0, 0.0])
        assert up == pytest.approx([0.0, 0.0, 1.0])

    def test_basis_is_orthonormal(self):
        from lumitrace.camera.thin_lens import compute_camera_basis

        forward, right, up = compute_camera_basis((0.3, -0.4, 0.8))
        for v in (forward, right, up):
            assert np.linalg.norm(v) == pytest.approx(1.0)
        assert np.dot(forward, right) == pytest.approx(0.0, abs=1e-12)
        assert np.dot(forward, up) == pytest.approx(0.0, abs=1e-12)
        assert np.dot(right, up) == pytest.approx(0.0, abs=1e-12)
        # Level right axis
        assert right[1] == pytest.approx(0.0, abs=1e-12)


class TestCameraSetup:
    """Tests for setup_camera and the exposure values."""

    def test_pdf_factor_and_exposure(self):
        from lumitrace.camera.thin_lens import MM_TO_SCENE_UNITS, get_camera_info, setup_camera

        camera = _camera()
        setup_camera(camera)
        info = get_camera_info()

        assert info["enabled"] is True
        assert info["pdf_factor"] == pytest.approx(12.0 / (math.pi * 35.0), rel=1e-6)
        assert info["exposure"] == pytest.approx(camera.lens_area / 1200.0 * 300.0, rel=1e-6)
        assert info["lens_radius"] == pytest.approx(camera.lens_radius * MM_TO_SCENE_UNITS, rel=1e-6)

    def test_disable(self):
        from lumitrace.camera.thin_lens import disable_camera, is_camera_enabled, setup_camera

        setup_camera(_camera())
        assert is_camera_enabled()
        disable_camera()
        assert not is_camera_enabled()


class TestRayGeneration:
    """Tests for pinhole_direction and generate_ray."""

    def test_centre_pixel_looks_forward(self):
        from lumitrace.camera.thin_lens import setup_camera

        setup_camera(_camera(aperture=1e9))
        _, _, pinholes = _generate(3, 3, [(1, 1)])
        assert pinholes[0] == pytest.approx([0.0, 0.0, 1.0], abs=1e-6)

    def test_pixel_offsets_follow_sensor(self):
        """Pixel (0, 0) is bottom-left; its direction leans left and down."""
        from lumitrace.camera.thin_lens import setup_camera

        setup_camera(_camera(aperture=1e9))
        width, height = 16, 8
        _, _, pinholes = _generate(width, height, [(0, 0), (width - 1, height - 1)])

        sx = (0.5 / width - 0.5) * 35.0
        sy = (0.5 / height - 0.5) * 24.0
        expected = np.array([sx, sy, 35.0])
        expected /= np.linalg.norm(expected)
        assert pinholes[0] == pytest.approx(expected, abs=1e-5)
        assert pinholes[1][0] > 0.0 and pinholes[1][1] > 0.0

    def test_vanishing_lens_is_a_pinhole(self):
        from lumitrace.camera.thin_lens import setup_camera

        camera = _camera(aperture=1e9)
        setup_camera(camera)
        pixels = [(0, 0), (5, 3), (31, 23), (16, 12)]
        origins, directions, pinholes = _generate(32, 24, pixels)

        assert np.allclose(origins, np.array(camera.position), atol=1e-5)
        assert np.allclose(directions, pinholes, atol=1e-5)

    def test_rays_converge_on_focus_plane(self):
        """Every lens sample of a pixel passes through the same focus point."""
        from lumitrace.camera.thin_lens import setup_camera

        camera = _camera(aperture=1.4, focus_distance=6.0)
        setup_camera(camera)
        pixels = [(7, 5)] * 16
        origins, directions, pinholes = _generate(20, 10, pixels, seed=3)

        position = np.array(camera.position)
        focus_point = position + pinholes[0] * (6.0 / pinholes[0][2])
        # Lens samples spread the origins
        assert np.ptp(origins[:, 0]) > 0.0
        for origin, direction in zip(origins, directions):
            t = (focus_point[2] - origin[2]) / direction[2]
            assert origin + t * direction == pytest.approx(focus_point, abs=1e-4)
        # Origins stay on the lens disk
        offsets = np.linalg.norm(origins - position, axis=1)
        assert np.all(offsets <= camera.lens_radius * 1e-3 + 1e-6)
