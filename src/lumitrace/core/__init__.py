"""Core rendering module.

Components:
    ray: Ray data structure and vector helpers
    rng: Counter-based random streams threaded through kernels
    sampling: Hemisphere, VNDF, disk, lens and light-cone sampling
    integrator: Path integrator and per-pixel sample pass
    progressive: Progressive accumulation API

All per-pixel work runs inside Taichi kernels.
"""

from .ray import Ray, luminance, make_ray, ray_at, reflect, vec3

# Note: integrator and progressive are NOT imported here because they declare
# Taichi fields. Import them directly after ti.init():
#   from lumitrace.core.progressive import ProgressiveRenderer

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "reflect",
    "luminance",
]
