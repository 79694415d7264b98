"""Render settings and Taichi backend initialization.

``RenderConfig`` gathers the knobs shared by the example scripts: viewport
size, sample count, progress batching, seed, bounce limit, backend and
output path. It can be built from keyword arguments or from a mapping (for
instance a JSON file), and ``validate`` rejects out-of-range values before
any Taichi state is touched.

``init_taichi`` must be called before importing the modules that declare
Taichi fields (see ``lumitrace`` package docs).

Example:
    >>> from lumitrace.config import RenderConfig, init_taichi
    >>> config = RenderConfig(width=320, height=240, samples=32)
    >>> config.validate()
    >>> init_taichi(config)
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import taichi as ti

from lumitrace.scene.components import SceneData

logger = logging.getLogger(__name__)

# Backends accepted by ``init_taichi``; "gpu" lets Taichi pick CUDA, Vulkan or Metal
_ARCHS = {
    "cpu": ti.cpu,
    "gpu": ti.gpu,
    "cuda": ti.cuda,
    "vulkan": ti.vulkan,
    "metal": ti.metal,
}

# Largest viewport the render target can hold
MAX_DIMENSION = 2048


@dataclass
class RenderConfig:
    """Settings for one rendering run.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples: Number of sample passes to accumulate.
        batch_size: Passes rendered between progress reports.
        seed: Render seed feeding the per-pixel random streams.
        arch: Taichi backend name ("cpu", "gpu", "cuda", "vulkan", "metal").
        max_bounces: Maximum number of indirect bounces per path.
        output: Output PNG path.
        scene_path: Optional JSON scene file; the demo scene is used when None.
    """

    width: int = 560
    height: int = 384
    samples: int = 64
    batch_size: int = 8
    seed: int = 0
    arch: str = "cpu"
    max_bounces: int = 10
    output: str = "render.png"
    scene_path: str | None = None

    def validate(self) -> None:
        """Check that every setting is in range.

        Raises:
            ValueError: If a setting is out of range or the backend is unknown.
        """
        if not 0 < self.width <= MAX_DIMENSION:
            raise ValueError(f"width must be within [1, {MAX_DIMENSION}], got {self.width}")
        if not 0 < self.height <= MAX_DIMENSION:
            raise ValueError(f"height must be within [1, {MAX_DIMENSION}], got {self.height}")
        if self.samples < 1:
            raise ValueError(f"samples must be >= 1, got {self.samples}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if not 0 <= self.seed < 2**32:
            raise ValueError(f"seed must be within [0, 2**32), got {self.seed}")
        if self.max_bounces < 0:
            raise ValueError(f"max_bounces must be >= 0, got {self.max_bounces}")
        if self.arch.lower() not in _ARCHS:
            raise ValueError(f"Unknown arch: {self.arch!r} (expected one of {sorted(_ARCHS)})")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> RenderConfig:
        """Build a config from a mapping, rejecting unknown keys.

        Raises:
            ValueError: If the mapping has keys that are not settings.
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown render setting(s): {sorted(unknown)}")
        config = cls(**dict(data))
        config.validate()
        return config


def init_taichi(config: RenderConfig) -> str:
    """Initialize Taichi for a config, falling back to the CPU backend.

    Args:
        config: Validated render config.

    Returns:
        Name of the backend that was initialized.
    """
    arch_name = config.arch.lower()
    if arch_name == "cpu":
        ti.init(arch=ti.cpu, random_seed=config.seed)
        return "cpu"

    try:
        ti.init(arch=_ARCHS[arch_name], random_seed=config.seed)
    except RuntimeError as exc:
        logger.warning("Backend %s unavailable (%s); using cpu", arch_name, exc)
        ti.init(arch=ti.cpu, random_seed=config.seed)
        return "cpu"
    logger.info("Using %s backend", arch_name)
    return arch_name


def load_scene(path: str | Path) -> SceneData:
    """Load a scene from a JSON file written by ``save_scene``.

    Raises:
        ValueError: If the file contains unknown keys.
        OSError: If the file cannot be read.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    scene = SceneData.from_dict(data)
    logger.info("Loaded scene %s: %s", path, scene.component_counts())
    return scene


def save_scene(scene: SceneData, path: str | Path) -> None:
    """Write a scene to a JSON file."""
    with open(path, "w", encoding="utf-8") as f:
        json.dump(scene.to_dict(), f, indent=2)
