"""Thin-lens camera model with photographic exposure.

The camera is described the way a photographer would: a sensor of
``sensor_width`` x ``sensor_height`` millimetres behind a lens of
``focal_length`` millimetres at f-number ``aperture``, exposed for
1/``shutter`` seconds at ``iso`` sensitivity.

Primary rays:
    1. The pinhole direction goes from the camera position through the
       centre of pixel (i, j) on a virtual sensor placed ``focal_length`` in
       front of the camera. Pixel (0, 0) is the bottom-left pixel.
    2. The focus point is where that direction meets the plane
       ``focus_distance`` in front of the camera.
    3. The ray origin is a uniform sample on the lens disk of radius
       focal_length / 2 / aperture millimetres, converted to scene units
       with MM_TO_SCENE_UNITS; the ray aims at the focus point.

A lens radius of zero collapses every origin onto the camera position, which
reproduces a pinhole camera.

Exposure:
    Each radiance sample is multiplied by ``pdf_factor`` =
    aperture / (pi * focal_length), and the running mean is scaled by
    ``exposure`` = lens_area / shutter * iso before clamping to [0, 1].

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lumitrace.camera.thin_lens import setup_camera, generate_ray
    >>> from lumitrace.scene.components import Camera
    >>>
    >>> camera = Camera(position=(0, 4, -12), direction=(0, -0.15, 1))
    >>> camera.derive()
    >>> setup_camera(camera)
    >>>
    >>> @ti.kernel
    ... def render():
    ...     origin, direction, state = generate_ray(0, 0, 64, 64, ti.u32(1))
"""

import logging
import math
from typing import TYPE_CHECKING, Any

import numpy as np
import taichi as ti
import taichi.math as tm

from lumitrace.core.rng import next_float
from lumitrace.core.sampling import sample_lens

if TYPE_CHECKING:
    from lumitrace.scene.components import Camera

logger = logging.getLogger(__name__)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Lens offsets are computed in millimetres; the scene is in metres
MM_TO_SCENE_UNITS = 1e-3

# World up used to build the camera basis, and the fallback when looking
# straight up or down
WORLD_UP = (0.0, 1.0, 0.0)
FALLBACK_UP = (0.0, 0.0, 1.0)

# =============================================================================
# Camera State (Taichi fields)
# =============================================================================

_camera_enabled = ti.field(dtype=ti.i32, shape=())
_camera_position = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_forward = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_right = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_up = ti.Vector.field(3, dtype=ti.f32, shape=())

# Sensor and lens
_sensor_size = ti.Vector.field(2, dtype=ti.f32, shape=())  # mm
_focal_length = ti.field(dtype=ti.f32, shape=())  # mm
_lens_radius = ti.field(dtype=ti.f32, shape=())  # scene units
_focus_distance = ti.field(dtype=ti.f32, shape=())  # scene units

# Exposure
_pdf_factor = ti.field(dtype=ti.f32, shape=())
_exposure = ti.field(dtype=ti.f32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def compute_camera_basis(direction) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Build the (forward, right, up) basis for a view direction.

    right = normalize(cross(world_up, forward)) and up = cross(forward, right),
    so the image's right and up axes match the viewer's for a level camera.

    Args:
        direction: View direction, any non-zero vector.

    Returns:
        Tuple (forward, right, up) of unit float64 arrays.
    """
    forward = np.asarray(direction, dtype=np.float64)
    forward = forward / np.linalg.norm(forward)

    world_up = np.array(WORLD_UP)
    if abs(float(np.dot(forward, world_up))) > 0.999:
        world_up = np.array(FALLBACK_UP)

    right = np.cross(world_up, forward)
    right = right / np.linalg.norm(right)
    up = np.cross(forward, right)
    return forward, right, up


def setup_camera(camera: "Camera") -> None:
    """Upload a derived camera.

    Args:
        camera: Camera whose derive step has run.

    Note:
        This function writes to Taichi fields and should be called from
        Python (not from within a Taichi kernel).
    """
    forward, right, up = compute_camera_basis(camera.direction)

    _camera_position[None] = list(camera.position)
    _camera_forward[None] = forward.tolist()
    _camera_right[None] = right.tolist()
    _camera_up[None] = up.tolist()

    _sensor_size[None] = [camera.sensor_width, camera.sensor_height]
    _focal_length[None] = camera.focal_length
    _lens_radius[None] = camera.lens_radius * MM_TO_SCENE_UNITS
    _focus_distance[None] = camera.focus_distance

    _pdf_factor[None] = camera.aperture / (math.pi * camera.focal_length)
    _exposure[None] = camera.lens_area / camera.shutter * camera.iso
    _camera_enabled[None] = 1

    logger.debug(
        "Camera at %s, lens radius %.4g mm, exposure %.4g",
        camera.position,
        camera.lens_radius,
        _exposure[None],
    )


def disable_camera() -> None:
    """Mark the camera as unset."""
    _camera_enabled[None] = 0


def is_camera_enabled() -> bool:
    """Check whether a camera has been uploaded."""
    return bool(_camera_enabled[None])


# =============================================================================
# Ray Generation (Taichi-compatible)
# =============================================================================


@ti.func
def pinhole_direction(i: ti.i32, j: ti.i32, width: ti.i32, height: ti.i32) -> vec3:
    """Unit direction from the camera position through the centre of pixel (i, j).

    Args:
        i: Pixel column (0 = left).
        j: Pixel row (0 = bottom).
        width: Image width in pixels.
        height: Image height in pixels.
    """
    sensor = _sensor_size[None]
    sx = ((ti.cast(i, ti.f32) + 0.5) / ti.cast(width, ti.f32) - 0.5) * sensor.x
    sy = ((ti.cast(j, ti.f32) + 0.5) / ti.cast(height, ti.f32) - 0.5) * sensor.y
    return tm.normalize(
        _camera_forward[None] * _focal_length[None]
        + _camera_right[None] * sx
        + _camera_up[None] * sy
    )


@ti.func
def generate_ray(i: ti.i32, j: ti.i32, width: ti.i32, height: ti.i32, state: ti.u32):
    """Generate a thin-lens primary ray for pixel (i, j).

    Always consumes two random numbers from the stream, so the stream stays
    aligned whether or not the lens has a radius.

    Returns:
        Tuple (origin, direction, state).
    """
    rng = state
    u1, rng = next_float(rng)
    u2, rng = next_float(rng)

    position = _camera_position[None]
    direction = pinhole_direction(i, j, width, height)
    origin = position

    lens_radius = _lens_radius[None]
    if lens_radius > 0.0:
        forward = _camera_forward[None]
        focus_point = position + direction * (_focus_distance[None] / tm.dot(direction, forward))
        offset = sample_lens(u1, u2, lens_radius)
        origin = position + _camera_right[None] * offset.x + _camera_up[None] * offset.y
        direction = tm.normalize(focus_point - origin)

    return origin, direction, rng


@ti.func
def camera_pdf_factor() -> ti.f32:
    """Per-sample weight, aperture / (pi * focal_length)."""
    return _pdf_factor[None]


@ti.func
def camera_exposure() -> ti.f32:
    """Display scale applied to the running mean, lens_area / shutter * iso."""
    return _exposure[None]


# =============================================================================
# Utility Functions
# =============================================================================


def get_camera_info() -> dict[str, Any]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with position, forward, right, up, lens_radius (scene
        units), focus_distance, pdf_factor and exposure.
    """

    def _vec(field: Any) -> tuple[float, float, float]:
        v = field[None]
        return (float(v[0]), float(v[1]), float(v[2]))

    return {
        "enabled": is_camera_enabled(),
        "position": _vec(_camera_position),
        "forward": _vec(_camera_forward),
        "right": _vec(_camera_right),
        "up": _vec(_camera_up),
        "lens_radius": float(_lens_radius[None]),
        "focus_distance": float(_focus_distance[None]),
        "pdf_factor": float(_pdf_factor[None]),
        "exposure": float(_exposure[None]),
    }
