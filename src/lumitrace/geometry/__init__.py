"""Geometry module containing primitive shapes and intersection algorithms.

Primitives:
    sphere: Ray-sphere intersection by projection onto the ray
    quad: Ray-quad intersection as two triangles sharing a diagonal
"""

from .quad import QuadShape, hit_quad, inside_triangle
from .sphere import HitRecord, SphereShape, hit_sphere, sphere_normal

__all__ = [
    "HitRecord",
    "SphereShape",
    "hit_sphere",
    "sphere_normal",
    "QuadShape",
    "hit_quad",
    "inside_triangle",
]
