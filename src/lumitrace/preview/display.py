"""Matplotlib-based preview display for rendered frames.

Features:
    - Static preview of an RGBA8 frame or a renderer's current frame
    - Sample count in the title
    - Side-by-side comparison with an amplified difference view

Matplotlib is imported inside each function so that headless code paths
(export, tests) never pull in a plotting backend.

Example:
    >>> from lumitrace.preview.display import show_preview
    >>> renderer.render(scene, 100)
    >>> show_preview(renderer)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

from lumitrace.preview.export import compute_rmse, frame_to_rgb

if TYPE_CHECKING:
    from lumitrace.core.progressive import ProgressiveRenderer


def show_frame(
    frame: npt.NDArray[np.uint8],
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 6),
    block: bool = True,
) -> None:
    """Display an RGBA8 frame in a Matplotlib figure.

    Args:
        frame: Array of shape (H, W, 4) with dtype uint8, top row first.
        title: Optional figure title.
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(frame_to_rgb(frame))
    ax.axis("off")
    if title is not None:
        ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_preview(
    renderer: ProgressiveRenderer,
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 6),
    block: bool = True,
) -> None:
    """Display the current frame of a renderer.

    The sample count is shown in the title unless a custom title is given.

    Example:
        >>> renderer = ProgressiveRenderer(560, 384)
        >>> renderer.render(scene, 100)
        >>> show_preview(renderer)
    """
    if title is None:
        title = f"Render Preview - {renderer.sample_count} SPP"
    show_frame(renderer.get_frame(), title=title, figsize=figsize, block=block)


def show_comparison(
    frame_a: npt.NDArray[np.uint8],
    frame_b: npt.NDArray[np.uint8],
    *,
    labels: tuple[str, str] = ("A", "B"),
    diff_scale: float = 10.0,
    figsize: tuple[float, float] = (16, 6),
    block: bool = True,
) -> float:
    """Display two frames side by side with their amplified difference.

    Returns:
        RMSE between the two frames, in [0, 1] display units.
    """
    import matplotlib.pyplot as plt

    rgb_a = frame_to_rgb(frame_a).astype(np.float32) / 255.0
    rgb_b = frame_to_rgb(frame_b).astype(np.float32) / 255.0
    rmse = compute_rmse(rgb_a, rgb_b)
    diff_amplified = np.clip(np.abs(rgb_a - rgb_b) * diff_scale, 0.0, 1.0)

    fig, axes = plt.subplots(1, 3, figsize=figsize)

    axes[0].imshow(rgb_a)
    axes[0].set_title(labels[0])
    axes[0].axis("off")

    axes[1].imshow(rgb_b)
    axes[1].set_title(labels[1])
    axes[1].axis("off")

    axes[2].imshow(diff_amplified)
    axes[2].set_title(f"Difference ({diff_scale}x) - RMSE: {rmse:.6f}")
    axes[2].axis("off")

    plt.tight_layout()
    plt.show(block=block)

    return rmse
