"""Interactive preview window using Taichi GGUI.

The window renders one sample pass per refresh through
``ProgressiveRenderer.render_sample`` and shows the running mean. Moving a
slider rebuilds the floor-and-spheres scene and restarts accumulation at
sample index 1.

Features:
    - Taichi GGUI window, created lazily so headless code can import this module
    - Sliders for light intensity, light disk angle, roughness and metalness
    - Frame time and FPS readout
    - Export of the current frame to a timestamped PNG

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.gpu)
    >>> from lumitrace.preview.interactive import InteractivePreview
    >>> from lumitrace.scene.demo_scenes import FloorAndSpheresParams
    >>>
    >>> preview = InteractivePreview(560, 384)
    >>> preview.set_params(FloorAndSpheresParams(light_intensity=1500.0))
    >>> preview.run_reactive()  # Renders until the window is closed
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import os
import time
from datetime import datetime
from typing import TYPE_CHECKING, Any

import numpy as np
import taichi as ti

from lumitrace.scene.demo_scenes import FloorAndSpheresParams, create_floor_and_spheres_scene

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)

# Slider ranges: (label, attribute, minimum, maximum)
_SLIDERS = (
    ("Intensity", "light_intensity", 0.0, 5000.0),
    ("Disk Angle", "disk_angle", 0.0, 10.0),
    ("Roughness", "roughness", 0.0, 1.0),
    ("Metalness", "metalness", 0.0, 1.0),
)

# Weight of the newest frame in the smoothed frame time
_FRAME_TIME_SMOOTHING = 0.1


class InteractivePreview:
    """Interactive preview window using Taichi GGUI.

    Attributes:
        width: Window width in pixels.
        height: Window height in pixels.
        display_image: Taichi field storing the display image (RGB float),
            indexed (x, y) with y = 0 at the bottom.
    """

    def __init__(
        self,
        width: int,
        height: int,
        *,
        title: str = "Lumitrace - Interactive Preview",
        seed: int = 0,
    ) -> None:
        """Initialize the preview.

        Note:
            Taichi must already be initialized. The window is created on
            the first call that needs it.
        """
        self.width = width
        self.height = height
        self._title = title
        self._seed = seed

        self._window: ti.ui.Window | None = None
        self._canvas: ti.ui.Canvas | None = None

        self._params = FloorAndSpheresParams()
        self._current_params: FloorAndSpheresParams | None = None
        self._scene: Any = None
        self._renderer: Any = None
        self._sample_index = 0
        self._frame_time = 0.0

        self.display_image: ti.MatrixField = ti.Vector.field(
            3, dtype=ti.f32, shape=(width, height)
        )

    def _initialize_window(self) -> None:
        if self._window is not None:
            return
        self._window = ti.ui.Window(
            name=self._title,
            res=(self.width, self.height),
            vsync=True,
        )
        self._canvas = self._window.get_canvas()

    @property
    def window(self) -> ti.ui.Window:
        """Get the Taichi GGUI window, initializing if needed."""
        self._initialize_window()
        assert self._window is not None
        return self._window

    @property
    def canvas(self) -> ti.ui.Canvas:
        """Get the canvas for rendering."""
        self._initialize_window()
        assert self._canvas is not None
        return self._canvas

    def update_frame(self, frame: npt.NDArray[np.uint8]) -> None:
        """Update the display image from an RGBA8 frame.

        Args:
            frame: Array of shape (height, width, 4) with dtype uint8, top
                row first.

        Raises:
            ValueError: If the frame shape doesn't match the window.
        """
        expected_shape = (self.height, self.width, 4)
        if frame.shape != expected_shape:
            raise ValueError(
                f"Frame shape {frame.shape} doesn't match expected {expected_shape}"
            )

        # NumPy rows run top to bottom; the field is (x, y) with y up
        rgb = frame[..., :3].astype(np.float32) / 255.0
        self.display_image.from_numpy(
            np.ascontiguousarray(np.transpose(np.flipud(rgb), (1, 0, 2)))
        )

    def is_running(self) -> bool:
        return self.window.running

    def show_frame(self) -> None:
        """Present the current display image."""
        self.canvas.set_image(self.display_image)
        self.window.show()

    def close(self) -> None:
        if self._window is not None:
            self._window.running = False

    @staticmethod
    def is_display_available() -> bool:
        """Check if a display is available for GUI rendering.

        Returns:
            True if a display is available, False for headless environments.
        """
        display = os.environ.get("DISPLAY")
        wayland = os.environ.get("WAYLAND_DISPLAY")

        if os.name == "nt":
            return True

        if os.uname().sysname == "Darwin":
            return not (os.environ.get("SSH_CONNECTION") and not display)

        return bool(display or wayland)

    # =========================================================================
    # Reactive Rendering
    # =========================================================================

    def set_params(self, params: FloorAndSpheresParams) -> None:
        """Set the scene parameters; the scene is rebuilt on the next frame."""
        self._params = copy.deepcopy(params)

    def get_params(self) -> FloorAndSpheresParams:
        return copy.deepcopy(self._params)

    def _params_changed(self) -> bool:
        return self._current_params is None or self._params != self._current_params

    def _rebuild_scene(self) -> None:
        """Rebuild the scene from the current parameters and restart accumulation."""
        self._scene = create_floor_and_spheres_scene(self._params)
        self._current_params = copy.deepcopy(self._params)
        self._sample_index = 0
        logger.debug("Rebuilt scene with %s", self._current_params)

    def _ensure_renderer(self) -> None:
        from lumitrace.core.progressive import ProgressiveRenderer

        if self._renderer is None:
            self._renderer = ProgressiveRenderer(self.width, self.height, seed=self._seed)

    def step(self) -> npt.NDArray[np.uint8]:
        """Render one pass, rebuilding the scene first if parameters changed.

        Returns:
            The RGBA8 frame of the running mean.
        """
        self._ensure_renderer()
        if self._params_changed():
            self._rebuild_scene()

        start = time.perf_counter()
        self._sample_index += 1
        frame = self._renderer.render_sample(self._sample_index, self._scene)
        elapsed = time.perf_counter() - start

        if self._frame_time == 0.0:
            self._frame_time = elapsed
        else:
            self._frame_time += _FRAME_TIME_SMOOTHING * (elapsed - self._frame_time)
        return frame

    def run_reactive(self) -> None:
        """Render continuously until the window is closed.

        Each refresh reads the sliders, rebuilds the scene when a value
        moved, renders one pass and presents the frame.
        """
        self._initialize_window()
        while self.is_running():
            frame = self.step()
            self.update_frame(frame)
            self._draw_gui_panel()
            self.show_frame()

    def get_sample_count(self) -> int:
        return self._sample_index

    def get_frame_time(self) -> float:
        """Smoothed wall time of one pass, in seconds."""
        return self._frame_time

    def get_fps(self) -> float:
        return 1.0 / self._frame_time if self._frame_time > 0.0 else 0.0

    def get_renderer(self) -> Any:
        """Get the underlying progressive renderer, or None before the first frame."""
        return self._renderer

    def _draw_gui_panel(self) -> None:
        values = {}
        with self.window.GUI.sub_window("Scene", 0.02, 0.02, 0.3, 0.3) as gui:
            gui.text(f"{self.get_sample_count()} SPP")
            gui.text(f"{self._frame_time * 1000.0:.1f} ms ({self.get_fps():.1f} FPS)")
            for label, attribute, minimum, maximum in _SLIDERS:
                values[attribute] = gui.slider_float(
                    label, getattr(self._params, attribute), minimum=minimum, maximum=maximum
                )
            if gui.button("Export PNG"):
                self._export_png()

        if any(
            abs(values[attribute] - getattr(self._params, attribute)) > 1e-6
            for attribute in values
        ):
            self._params = dataclasses.replace(self._params, **values)

    def _export_png(self) -> str | None:
        """Export the current frame to lumitrace_YYYYMMDD_HHMMSS.png.

        Returns:
            The file name, or None when nothing has been rendered yet.
        """
        from lumitrace.preview.export import save_png

        if self._renderer is None:
            logger.error("No renderer available for export")
            return None

        filename = f"lumitrace_{datetime.now().strftime('%Y%m%d_%H%M%S')}.png"
        save_png(self._renderer, filename)
        logger.info("Exported %s (%d SPP)", filename, self.get_sample_count())
        return filename
