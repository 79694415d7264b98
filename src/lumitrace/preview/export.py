"""Image export utilities for rendered frames.

Frames are RGBA8 arrays of shape (height, width, 4), top row first, exactly
as returned by ``ProgressiveRenderer.render_sample``. They are already
exposure-mapped and quantized, so export writes them unchanged.

Supported formats:
    - PNG (8-bit RGBA or RGB via Pillow)

Example:
    >>> from lumitrace.preview.export import save_png
    >>> renderer.render(scene, num_samples=64)
    >>> save_png(renderer, "output.png")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from lumitrace.core.progressive import ProgressiveRenderer


def frame_to_rgb(frame: npt.NDArray[np.uint8]) -> npt.NDArray[np.uint8]:
    """Drop the alpha channel of an RGBA8 frame.

    Raises:
        ValueError: If the frame is not of shape (H, W, 4) or (H, W, 3).
    """
    if frame.ndim != 3 or frame.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (H, W, 4) or (H, W, 3) frame, got {frame.shape}")
    return np.ascontiguousarray(frame[..., :3])


def save_frame_png(
    frame: npt.NDArray[np.uint8],
    filepath: str | Path,
    *,
    keep_alpha: bool = True,
) -> None:
    """Save an RGBA8 frame as a PNG file.

    Args:
        frame: Array of shape (H, W, 4) (or (H, W, 3)) with dtype uint8.
        filepath: Output file path (should end in .png).
        keep_alpha: Write an RGBA PNG when True, RGB otherwise.

    Raises:
        ValueError: If the frame has the wrong shape or dtype.
    """
    if frame.dtype != np.uint8:
        raise ValueError(f"Frame must be uint8, got {frame.dtype}")

    if keep_alpha and frame.ndim == 3 and frame.shape[2] == 4:
        pil_image = PILImage.fromarray(np.ascontiguousarray(frame))
    else:
        pil_image = PILImage.fromarray(frame_to_rgb(frame))
    pil_image.save(str(filepath))


def save_png(renderer: ProgressiveRenderer, filepath: str | Path, *, keep_alpha: bool = True) -> None:
    """Save the current frame of a renderer as a PNG file.

    Example:
        >>> renderer = ProgressiveRenderer(560, 384)
        >>> renderer.render(scene, 100)
        >>> save_png(renderer, "output.png")
    """
    save_frame_png(renderer.get_frame(), filepath, keep_alpha=keep_alpha)


def mean_squared_difference(
    image_a: npt.NDArray[np.floating[npt.NBitBase]],
    image_b: npt.NDArray[np.floating[npt.NBitBase]],
) -> float:
    """Mean of the squared per-channel differences between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.mean(diff**2))


def compute_rmse(
    image_a: npt.NDArray[np.floating[npt.NBitBase]],
    image_b: npt.NDArray[np.floating[npt.NBitBase]],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    return float(np.sqrt(mean_squared_difference(image_a, image_b)))
