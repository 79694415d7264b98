"""Path tracing integrator and the per-pixel sample pass.

Each path starts at the camera and, at every surface it reaches:

    1. Samples a direction inside the directional light's cone, casts a
       visibility ray and adds the BRDF-weighted light radiance (next event
       estimation). This happens at every depth, including the last.
    2. While the bounce limit allows, samples a microfacet normal H from the
       GGX visible-normal distribution, reflects the ray about H and scales
       the throughput by the BRDF sample weight. A bounce that ends up
       below the surface terminates the path.

Rays that leave the scene contribute nothing: the light is only reached
through explicit light samples. The loop carries a depth counter, a
throughput and an accumulator instead of recursing, with an ``active`` flag
standing in for ``break`` (Taichi functions allow a single return).

A sample pass (``render_pass``) traces one path per pixel, multiplies it by
the camera PDF factor, zeroes NaN, Inf and negative components, adds it into
the persistent per-pixel radiance sum, and writes the exposure-mapped running
mean into an RGBA8 frame. Each pixel owns its accumulator slot, so the
parallel loop over pixels needs no synchronisation.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lumitrace.core.integrator import setup_render_target, render_pass
    >>> setup_render_target(560, 384)
    >>> # after uploading scene, camera and light:
    >>> render_pass(sample_index=1, seed=0)
"""

import logging
from typing import TYPE_CHECKING

import numpy as np
import taichi as ti
import taichi.math as tm

from lumitrace.camera.thin_lens import camera_exposure, camera_pdf_factor, generate_ray
from lumitrace.core.ray import Ray, make_ray, reflect
from lumitrace.core.rng import next_float, seed_stream
from lumitrace.core.sampling import (
    sample_ggx_vndf,
    sample_light_direction,
    tangent_frame,
    to_local,
    to_world,
)
from lumitrace.materials.microfacet import (
    SurfaceMaterial,
    eval_direct,
    indirect_weight,
    load_material,
)
from lumitrace.scene.intersection import intersect_scene, is_visible

if TYPE_CHECKING:
    from lumitrace.scene.components import DirectionalLight

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Default number of indirect bounces after the primary hit
DEFAULT_MAX_BOUNCES = 10

_max_bounces = ti.field(dtype=ti.i32, shape=())
_max_bounces[None] = DEFAULT_MAX_BOUNCES


def set_max_bounces(max_bounces: int) -> None:
    """Set the number of indirect bounces traced per path.

    Args:
        max_bounces: Bounce count; 0 keeps direct lighting only.

    Raises:
        ValueError: If max_bounces is negative.
    """
    if max_bounces < 0:
        raise ValueError(f"max_bounces must be non-negative, got {max_bounces}")
    _max_bounces[None] = max_bounces


def get_max_bounces() -> int:
    """Get the number of indirect bounces traced per path."""
    return int(_max_bounces[None])


# =============================================================================
# Light Source Configuration
# =============================================================================

_light_enabled = ti.field(dtype=ti.i32, shape=())
_light_dir = ti.Vector.field(3, dtype=ti.f32, shape=())
_light_tangent = ti.Vector.field(3, dtype=ti.f32, shape=())
_light_bitangent = ti.Vector.field(3, dtype=ti.f32, shape=())
_light_half_angle_cos = ti.field(dtype=ti.f32, shape=())
_light_intensity_map = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_light(light: "DirectionalLight") -> None:
    """Upload a derived directional light.

    Args:
        light: Light whose derive step has run.
    """
    _light_dir[None] = list(light.light_dir)
    _light_tangent[None] = list(light.tangent)
    _light_bitangent[None] = list(light.bitangent)
    _light_half_angle_cos[None] = light.half_angle_cos
    _light_intensity_map[None] = list(light.intensity_map)
    _light_enabled[None] = 1


def disable_light() -> None:
    """Mark the light as unset."""
    _light_enabled[None] = 0


def is_light_enabled() -> bool:
    """Check if a light has been uploaded."""
    return bool(_light_enabled[None])


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Per-pixel sum of all radiance samples so far
_radiance_sum = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Display frame, RGBA8
_frame = ti.Vector.field(4, dtype=ti.u8, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and zero the accumulator.

    Buffers are preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT; only
    the active region is used.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If dimensions are not positive or exceed the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Zero the accumulator and the frame."""
    _radiance_sum.fill(0.0)
    _frame.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions.

    Returns:
        Tuple of (width, height).
    """
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def _field_to_image(field_data: np.ndarray) -> np.ndarray:
    """Crop a (MAX_W, MAX_H, C) buffer to the active region as (H, W, C), top row first."""
    width, height = get_image_dimensions()
    image = field_data[:width, :height]
    # Taichi uses (x, y) with y up; images are (row, column) with row 0 at the top
    return np.ascontiguousarray(np.flipud(np.transpose(image, (1, 0, 2))))


def get_radiance_sum() -> np.ndarray:
    """Get the per-pixel radiance sum as a (height, width, 3) float32 array.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return _field_to_image(_radiance_sum.to_numpy())


def get_mean_radiance_numpy(sample_count: int) -> np.ndarray:
    """Get the linear running mean, radiance sum / sample_count.

    Args:
        sample_count: Number of passes accumulated so far.

    Returns:
        Float32 array of shape (height, width, 3); zeros if no samples.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    image = get_radiance_sum()
    if sample_count <= 0:
        return np.zeros_like(image)
    return (image / np.float32(sample_count)).astype(np.float32)


def get_frame_numpy() -> np.ndarray:
    """Get the last written frame as a (height, width, 4) uint8 RGBA array.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return _field_to_image(_frame.to_numpy())


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def _sample_direct_light(point: vec3, normal: vec3, view: vec3, material: SurfaceMaterial, state: ti.u32):
    """Estimate light arriving from the directional light's cone.

    Returns:
        Tuple (radiance, state).
    """
    rng = state
    u1, rng = next_float(rng)
    u2, rng = next_float(rng)
    light = sample_light_direction(
        _light_dir[None],
        _light_tangent[None],
        _light_bitangent[None],
        _light_half_angle_cos[None],
        u1,
        u2,
    )

    radiance = vec3(0.0, 0.0, 0.0)
    if _light_enabled[None] == 1 and tm.dot(normal, light) > 0.0:
        if is_visible(point, light) == 1:
            radiance = eval_direct(material, normal, view, light, _light_intensity_map[None])

    return radiance, rng


@ti.func
def trace_path(ray: Ray, state: ti.u32):
    """Trace one path and return its radiance estimate.

    Args:
        ray: Primary ray with a unit direction.
        state: Random stream state for this pixel.

    Returns:
        Tuple (radiance, state).
    """
    rng = state
    origin = ray.origin
    direction = ray.direction

    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)

    # Active flag for path continuation (Taichi doesn't support break in ti.func loops)
    active = 1
    max_bounces = _max_bounces[None]

    for depth in range(max_bounces + 1):
        if active == 1:
            rec = intersect_scene(make_ray(origin, direction))

            if rec.hit == 0:
                active = 0
            else:
                material = load_material(rec.material_id)
                view = -direction

                direct, rng = _sample_direct_light(rec.point, rec.normal, view, material, rng)
                radiance += throughput * direct

                if depth >= max_bounces:
                    active = 0
                else:
                    u1, rng = next_float(rng)
                    u2, rng = next_float(rng)

                    tangent, bitangent = tangent_frame(rec.normal)
                    view_local = to_local(view, tangent, bitangent, rec.normal)
                    half_local = sample_ggx_vndf(view_local, material.alpha, u1, u2)
                    half = to_world(half_local, tangent, bitangent, rec.normal)

                    bounce = tm.normalize(reflect(direction, half))
                    weight = indirect_weight(material, rec.normal, view, bounce, half)

                    if tm.dot(bounce, rec.normal) <= 0.0 or ti.max(weight.x, ti.max(weight.y, weight.z)) <= 0.0:
                        active = 0
                    else:
                        throughput *= weight
                        origin = rec.point
                        direction = bounce

    return radiance, rng


@ti.func
def _sanitize(radiance: vec3) -> vec3:
    """Zero NaN, Inf and negative components."""
    result = radiance
    for c in ti.static(range(3)):
        if tm.isnan(result[c]) or tm.isinf(result[c]) or result[c] < 0.0:
            result[c] = 0.0
    return result


@ti.func
def _sample_pixel(i: ti.i32, j: ti.i32, width: ti.i32, height: ti.i32, sample_index: ti.i32, seed: ti.u32) -> vec3:
    """One camera-weighted, sanitized radiance sample for pixel (i, j)."""
    rng = seed_stream(seed, sample_index, j * width + i)
    origin, direction, rng = generate_ray(i, j, width, height, rng)
    radiance, rng = trace_path(make_ray(origin, direction), rng)
    return _sanitize(radiance * camera_pdf_factor())


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_pass_kernel(width: ti.i32, height: ti.i32, sample_index: ti.i32, seed: ti.u32):
    """Accumulate one sample into every pixel and refresh the frame."""
    for i, j in ti.ndrange(width, height):
        _radiance_sum[i, j] += _sample_pixel(i, j, width, height, sample_index, seed)

        mean = _radiance_sum[i, j] / ti.cast(sample_index, ti.f32)
        display = tm.clamp(mean * camera_exposure(), 0.0, 1.0) * 255.0
        _frame[i, j] = ti.Vector(
            [
                ti.cast(display.x, ti.u8),
                ti.cast(display.y, ti.u8),
                ti.cast(display.z, ti.u8),
                ti.cast(255, ti.u8),
            ]
        )


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32, pixel_j: ti.i32, width: ti.i32, height: ti.i32, sample_index: ti.i32, seed: ti.u32
) -> vec3:
    """Trace one sample for a specific pixel without accumulating it."""
    return _sample_pixel(pixel_i, pixel_j, width, height, sample_index, seed)


# =============================================================================
# Public Rendering API
# =============================================================================


def render_pass(sample_index: int, seed: int = 0) -> None:
    """Run one sample pass over all pixels.

    The pass adds one sample into every pixel's radiance sum and writes
    the frame for the mean over ``sample_index`` samples. Passes must be
    run with consecutive indices starting at 1 after the accumulator is
    cleared.

    Args:
        sample_index: 1-based index of this pass.
        seed: Render seed; together with sample_index and the pixel it
            determines every random number of the pass.

    Raises:
        ValueError: If sample_index < 1.
        RuntimeError: If render target has not been set up.
    """
    if sample_index < 1:
        raise ValueError(f"sample_index must be >= 1, got {sample_index}")
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    logger.debug("Sample pass %d over %dx%d pixels", sample_index, width, height)
    _render_pass_kernel(width, height, sample_index, seed & 0xFFFFFFFF)


def trace_single_pixel(
    pixel_i: int, pixel_j: int, sample_index: int = 1, seed: int = 0
) -> tuple[float, float, float]:
    """Trace one sample for a single pixel (testing and debugging).

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        sample_index: Sample index used to seed the stream.
        seed: Render seed.

    Returns:
        Tuple of (R, G, B) camera-weighted radiance.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    color = _render_single_pixel(pixel_i, pixel_j, width, height, sample_index, seed & 0xFFFFFFFF)

    return (float(color[0]), float(color[1]), float(color[2]))
