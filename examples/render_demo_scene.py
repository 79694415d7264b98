#!/usr/bin/env python3
"""Render a scene to a PNG file.

Renders the floor-and-spheres demo scene (or a scene loaded from JSON) with
progressive refinement and saves the final frame.

Usage:
    python -m examples.render_demo_scene [options]

Options:
    --width WIDTH         Image width in pixels (default: 560)
    --height HEIGHT       Image height in pixels (default: 384)
    --samples SAMPLES     Number of sample passes (default: 64)
    --batch-size SIZE     Samples per progress update (default: 8)
    --seed SEED           Render seed (default: 0)
    --max-bounces N       Maximum indirect bounces (default: 10)
    --arch ARCH           Taichi backend: cpu, gpu, cuda, vulkan, metal (default: cpu)
    --scene PATH          JSON scene file (default: built-in demo scene)
    --shadow-test         Render the shadow test scene instead of the demo scene
    --output OUTPUT       Output file path (default: render.png)
    --quiet               Suppress progress output
    --verbose             Enable debug logging

Example:
    python -m examples.render_demo_scene --width 280 --height 192 --samples 32
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from lumitrace.config import RenderConfig, init_taichi, load_scene

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    defaults = RenderConfig()
    parser = argparse.ArgumentParser(
        description="Render a scene with the progressive path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=defaults.width, help="Image width in pixels")
    parser.add_argument("--height", type=int, default=defaults.height, help="Image height in pixels")
    parser.add_argument("--samples", type=int, default=defaults.samples, help="Number of sample passes")
    parser.add_argument(
        "--batch-size", type=int, default=defaults.batch_size, help="Samples per progress update"
    )
    parser.add_argument("--seed", type=int, default=defaults.seed, help="Render seed")
    parser.add_argument(
        "--max-bounces", type=int, default=defaults.max_bounces, help="Maximum indirect bounces"
    )
    parser.add_argument("--arch", type=str, default=defaults.arch, help="Taichi backend")
    parser.add_argument("--scene", type=str, default=None, help="JSON scene file")
    parser.add_argument(
        "--shadow-test", action="store_true", help="Render the shadow test scene"
    )
    parser.add_argument("--output", type=str, default=defaults.output, help="Output file path")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def render_scene(config: RenderConfig, *, shadow_test: bool = False, quiet: bool = False) -> Path:
    """Render a scene and save the final frame.

    Args:
        config: Validated render settings; Taichi must be initialized.
        shadow_test: Use the shadow test scene when no scene file is given.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Field-declaring modules are imported after ti.init
    from lumitrace.core.integrator import set_max_bounces
    from lumitrace.core.progressive import ProgressiveRenderer
    from lumitrace.preview.export import save_png
    from lumitrace.scene.demo_scenes import (
        create_floor_and_spheres_scene,
        create_shadow_test_scene,
    )

    if config.scene_path is not None:
        scene = load_scene(config.scene_path)
    elif shadow_test:
        scene = create_shadow_test_scene()
    else:
        scene = create_floor_and_spheres_scene()

    set_max_bounces(config.max_bounces)
    renderer = ProgressiveRenderer(config.width, config.height, seed=config.seed)

    if not quiet:
        print(f"Rendering {config.samples} samples at {config.width}x{config.height}...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            samples_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples "
                f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
            )

    renderer.render(
        scene,
        num_samples=config.samples,
        batch_size=config.batch_size,
        callback=progress_callback,
    )

    if not quiet:
        print()

    output_file = Path(config.output)
    save_png(renderer, output_file)

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = RenderConfig(
        width=args.width,
        height=args.height,
        samples=args.samples,
        batch_size=args.batch_size,
        seed=args.seed,
        arch=args.arch,
        max_bounces=args.max_bounces,
        output=args.output,
        scene_path=args.scene,
    )
    try:
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    backend = init_taichi(config)
    if not args.quiet:
        print(f"Taichi backend: {backend}")

    try:
        render_scene(config, shadow_test=args.shadow_test, quiet=args.quiet)
        return 0
    except (OSError, ValueError, RuntimeError) as e:
        logger.debug("Render failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
