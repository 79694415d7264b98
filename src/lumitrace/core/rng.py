"""Counter-based random number streams for Taichi kernels.

Kernels never call ``ti.random()``. Each pixel owns an explicit 32-bit state
derived from the render seed, the sample index and the pixel index, and every
draw returns the advanced state alongside the value:

    value, state = next_float(state)

Because a stream depends only on (seed, sample_index, pixel_index), a pass is
deterministic regardless of thread scheduling, and rendering samples 1..N in
one batch or several batches yields bit-identical accumulators.

The generator is a PCG-style LCG step followed by the RXS-M-XS output
permutation (O'Neill, "PCG: A Family of Simple Fast Space-Efficient
Statistically Good Algorithms for Random Number Generation").

Example:
    >>> @ti.kernel
    ... def draw(seed: ti.u32) -> ti.f32:
    ...     state = seed_stream(seed, 1, 0)
    ...     value, state = next_float(state)
    ...     return value
"""

import taichi as ti

# LCG constants; the increment must be odd
LCG_MULTIPLIER = 747796405
LCG_INCREMENT = 1442695041
PERMUTE_MULTIPLIER = 277803737

# 2^-24: floats are built from the top 24 bits of a draw
FLOAT_SCALE = 1.0 / 16777216.0


@ti.func
def _lcg_step(state: ti.u32) -> ti.u32:
    return state * ti.cast(LCG_MULTIPLIER, ti.u32) + ti.cast(LCG_INCREMENT, ti.u32)


@ti.func
def _permute(state: ti.u32) -> ti.u32:
    shift = (state >> ti.cast(28, ti.u32)) + ti.cast(4, ti.u32)
    word = ((state >> shift) ^ state) * ti.cast(PERMUTE_MULTIPLIER, ti.u32)
    return (word >> ti.cast(22, ti.u32)) ^ word


@ti.func
def pcg_hash(value: ti.u32) -> ti.u32:
    """Hash a 32-bit value with one PCG step and permutation."""
    return _permute(_lcg_step(value))


@ti.func
def seed_stream(seed: ti.u32, sample_index: ti.i32, pixel_index: ti.i32) -> ti.u32:
    """Derive the stream state for one pixel of one sample pass.

    Args:
        seed: Render seed shared by all pixels and passes.
        sample_index: 1-based index of the sample pass.
        pixel_index: Linear pixel index (j * width + i).

    Returns:
        The initial 32-bit state of the stream.
    """
    h = pcg_hash(seed)
    h = pcg_hash(h + ti.cast(sample_index, ti.u32))
    return pcg_hash(h + ti.cast(pixel_index, ti.u32))


@ti.func
def next_uint(state: ti.u32):
    """Draw a 32-bit unsigned integer.

    Returns:
        Tuple of (value, new_state).
    """
    new_state = _lcg_step(state)
    return _permute(new_state), new_state


@ti.func
def next_float(state: ti.u32):
    """Draw a uniform float in [0, 1).

    Returns:
        Tuple of (value, new_state).
    """
    word, new_state = next_uint(state)
    value = ti.cast(word >> ti.cast(8, ti.u32), ti.f32) * FLOAT_SCALE
    return value, new_state
