"""Progressive renderer for iterative sample accumulation.

This module wraps the integrator's sample pass in a host-facing API:
- ``render_sample``: one pass for a given 1-based sample index, returning
  the RGBA8 frame of the running mean (what an interactive host calls once
  per display refresh)
- ``render`` / ``render_progressive``: batch rendering with progress
  reporting, continuing from the internal sample counter
- ``configure_viewport``: resize and zero the accumulator

The scene is re-derived and re-uploaded at the start of every call, since
its components may have been edited between frames. A scene with no camera
or no light, or with a camera or light that fails validation, renders as an
opaque black frame and leaves the accumulator untouched.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lumitrace.core.progressive import ProgressiveRenderer
    >>> from lumitrace.scene.demo_scenes import create_floor_and_spheres_scene
    >>>
    >>> scene = create_floor_and_spheres_scene()
    >>> renderer = ProgressiveRenderer(560, 384)
    >>> frame = renderer.render_sample(1, scene)  # (384, 560, 4) uint8
    >>> renderer.render(scene, num_samples=63)
    >>> renderer.save_image("render.png")
"""

import logging
from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt

from lumitrace.camera.thin_lens import disable_camera, get_camera_info, setup_camera
from lumitrace.core.integrator import (
    clear_render_target,
    disable_light,
    get_frame_numpy,
    get_mean_radiance_numpy,
    render_pass,
    setup_light,
    setup_render_target,
)
from lumitrace.materials.microfacet import upload_materials
from lumitrace.scene.components import SceneData, derive_scene
from lumitrace.scene.intersection import upload_geometry

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


def black_frame(width: int, height: int) -> npt.NDArray[np.uint8]:
    """Return an opaque black RGBA8 frame of shape (height, width, 4)."""
    frame = np.zeros((height, width, 4), dtype=np.uint8)
    frame[..., 3] = 255
    return frame


class ProgressiveRenderer:
    """A progressive renderer that accumulates samples over time.

    The renderer tracks the viewport size and the number of accumulated
    samples, and delegates storage to the integrator's preallocated Taichi
    fields (there is one accumulator per process).

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        seed: Render seed feeding every per-pixel random stream.
    """

    def __init__(self, width: int, height: int, *, seed: int = 0) -> None:
        """Initialize the progressive renderer.

        Args:
            width: Image width in pixels (max 2048).
            height: Image height in pixels (max 2048).
            seed: Render seed. Equal seeds reproduce equal images.

        Raises:
            ValueError: If dimensions are not positive or exceed the maximum.
        """
        self._seed = seed
        self._scene_ready = False
        self.configure_viewport(width, height)

    @property
    def width(self) -> int:
        """Get the image width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self._height

    @property
    def seed(self) -> int:
        """Get the render seed."""
        return self._seed

    @property
    def sample_count(self) -> int:
        """Get the current number of accumulated samples per pixel."""
        return self._sample_count

    def configure_viewport(self, width: int, height: int) -> None:
        """Set the viewport size and zero the accumulator.

        Args:
            width: New image width in pixels.
            height: New image height in pixels.

        Raises:
            ValueError: If dimensions are not positive or exceed the maximum.
        """
        setup_render_target(width, height)
        self._width = width
        self._height = height
        self._sample_count = 0
        logger.info("Viewport configured to %dx%d", width, height)

    def resize(self, width: int, height: int) -> None:
        """Resize the render target and reset accumulator."""
        self.configure_viewport(width, height)

    def reset(self) -> None:
        """Reset the accumulator for a new render.

        Clears the radiance sums without changing the image dimensions.
        """
        clear_render_target()
        self._sample_count = 0

    def upload_scene(self, scene: SceneData) -> bool:
        """Derive a scene and upload it for rendering.

        Args:
            scene: The scene to render.

        Returns:
            True if the scene has a camera and a light and was uploaded,
            False if it cannot be rendered (a component is missing or has
            invalid inputs, such as a non-positive aperture).

        Raises:
            RuntimeError: If the scene exceeds primitive or material capacity.
        """
        try:
            derive_scene(scene)
        except ValueError as exc:
            logger.warning("Scene is invalid (%s); rendering a black frame", exc)
            disable_camera()
            disable_light()
            self._scene_ready = False
            return False

        camera = scene.camera()
        light = scene.light()
        if camera is None or light is None:
            missing = "camera" if camera is None else "light"
            logger.warning("Scene has no %s; rendering a black frame", missing)
            disable_camera()
            disable_light()
            self._scene_ready = False
            return False

        material_ids = upload_materials(scene)
        upload_geometry(scene, material_ids)
        setup_camera(camera)
        setup_light(light)
        self._scene_ready = True
        return True

    def render_sample(self, sample_index: int, scene: SceneData) -> npt.NDArray[np.uint8]:
        """Render one sample pass and return the updated frame.

        Sample index 1 starts a new accumulation; the host is expected to
        pass consecutive indices afterwards.

        Args:
            sample_index: 1-based index of the pass.
            scene: The scene to render.

        Returns:
            RGBA8 array of shape (height, width, 4), top row first, alpha 255.

        Raises:
            ValueError: If sample_index < 1.
        """
        if sample_index < 1:
            raise ValueError(f"sample_index must be >= 1, got {sample_index}")

        if not self.upload_scene(scene):
            return black_frame(self._width, self._height)

        if sample_index == 1:
            clear_render_target()

        render_pass(sample_index, self._seed)
        self._sample_count = sample_index
        return get_frame_numpy()

    def render(
        self,
        scene: SceneData,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Render samples progressively with optional progress callback.

        Accumulates the specified number of samples into the existing buffer.
        Can be called multiple times to continue refining the image.

        Args:
            scene: The scene to render.
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each callback.
            callback: Optional callback function called after each batch.
                Receives (current_total_samples, target_total_samples).

        Example:
            >>> def progress(current, target):
            ...     print(f"Progress: {current}/{target} samples")
            >>> renderer.render(scene, 100, batch_size=10, callback=progress)
        """
        for current, target in self.render_progressive(scene, num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        scene: SceneData,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Render samples progressively, yielding progress after each batch.

        Args:
            scene: The scene to render.
            num_samples: Total number of samples to add.
            batch_size: Number of samples to render before each yield.

        Yields:
            Tuple of (current_total_samples, target_total_samples).

        Example:
            >>> for current, target in renderer.render_progressive(scene, 100, 10):
            ...     print(f"Progress: {current}/{target} samples")
        """
        if num_samples <= 0:
            return
        if not self.upload_scene(scene):
            return

        batch_size = max(1, batch_size)
        target_samples = self._sample_count + num_samples

        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            for _ in range(batch):
                self._sample_count += 1
                render_pass(self._sample_count, self._seed)
            remaining -= batch
            yield (self._sample_count, target_samples)

    def get_frame(self) -> npt.NDArray[np.uint8]:
        """Get the current RGBA8 frame, shape (height, width, 4).

        Black when nothing has been rendered or the last scene could not be
        rendered.
        """
        if not self._scene_ready or self._sample_count == 0:
            return black_frame(self._width, self._height)
        return get_frame_numpy()

    def get_mean_radiance(self) -> npt.NDArray[np.float32]:
        """Get the linear running mean radiance, shape (height, width, 3)."""
        return get_mean_radiance_numpy(self._sample_count)

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the exposure-mapped image as a float NumPy array.

        This is the frame before 8-bit quantization: the running mean scaled
        by the camera exposure and clamped to [0, 1].

        Args:
            gamma: Gamma correction value. Default 1.0 (no correction).

        Returns:
            NumPy array of shape (height, width, 3) with dtype float32.
        """
        if not self._scene_ready:
            return np.zeros((self._height, self._width, 3), dtype=np.float32)

        exposure = get_camera_info()["exposure"]
        image = np.clip(self.get_mean_radiance() * exposure, 0.0, 1.0).astype(np.float32)

        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)

        return image

    def save_image(self, filepath: str) -> None:
        """Save the current frame to a PNG file.

        Args:
            filepath: Path to save the image (e.g., "output.png").
        """
        from lumitrace.preview.export import save_frame_png

        save_frame_png(self.get_frame(), filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count})"
        )
