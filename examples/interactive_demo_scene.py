#!/usr/bin/env python3
"""Interactive floor-and-spheres renderer with live parameter controls.

Usage:
    python -m examples.interactive_demo_scene [--arch gpu] [--seed 0]

Controls:
    - Intensity: Light intensity (0-5000)
    - Disk Angle: Angular diameter of the light in degrees (0-10)
    - Roughness: Roughness of every material
    - Metalness: Metalness of the spheres
    - Export PNG: Save the current frame with a timestamp

One sample pass is rendered per refresh. Accumulation restarts whenever a
slider moves.
"""

from __future__ import annotations

import argparse
import logging
import sys

from lumitrace.config import RenderConfig, init_taichi


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the interactive renderer.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = argparse.ArgumentParser(description="Interactive progressive path tracer.")
    parser.add_argument("--arch", type=str, default="gpu", help="Taichi backend")
    parser.add_argument("--seed", type=int, default=0, help="Render seed")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    config = RenderConfig(arch=args.arch, seed=args.seed)
    config.validate()
    backend = init_taichi(config)
    print(f"Taichi backend: {backend}")

    # Import after Taichi initialization
    from lumitrace.preview.interactive import InteractivePreview
    from lumitrace.scene.demo_scenes import FloorAndSpheresParams

    if not InteractivePreview.is_display_available():
        print("Error: No display available. Cannot run interactive preview.")
        print("This script requires a graphical display environment.")
        return 1

    print(f"Creating interactive preview window ({config.width}x{config.height})...")
    preview = InteractivePreview(config.width, config.height, seed=config.seed)
    preview.set_params(FloorAndSpheresParams())

    print("Starting interactive rendering...")
    print("  - Adjust sliders to modify scene parameters")
    print("  - Click 'Export PNG' to save current render")
    print("  - Close window to exit")
    print()

    try:
        preview.run_reactive()
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
    finally:
        preview.close()
        print("Preview window closed.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
