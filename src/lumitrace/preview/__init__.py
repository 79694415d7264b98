"""Preview module: PNG export, Matplotlib display and the interactive window.

Components:
    export: Save RGBA8 frames to PNG, image comparison metrics
    display: Matplotlib preview of a frame or a renderer
    interactive: Taichi GGUI window rendering one pass per refresh

Note: interactive declares Taichi fields lazily and is NOT imported here.
"""

from .display import show_comparison, show_frame, show_preview
from .export import compute_rmse, frame_to_rgb, mean_squared_difference, save_frame_png, save_png

__all__ = [
    "compute_rmse",
    "frame_to_rgb",
    "mean_squared_difference",
    "save_frame_png",
    "save_png",
    "show_comparison",
    "show_frame",
    "show_preview",
]
