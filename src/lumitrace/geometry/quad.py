"""Quad primitive intersected as two triangles.

A quad is given by three corners v0, v1, v2; the fourth corner and the
normal are derived on the host:

    v3     = v0 + (v2 - v1)
    normal = normalize(cross(v1 - v0, v2 - v0))

A ray first hits the supporting plane, then the hit point must lie inside
triangle (v0, v1, v2) or triangle (v0, v2, v3). A point is inside a triangle
when, for every edge, cross(edge, point - edge_start) agrees in sign with the
face normal.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lumitrace.geometry.quad import QuadShape, hit_quad
    >>> # Floor quad at y=0 spanning x, z in [-1, 1]
    >>> quad = QuadShape(
    ...     v0=ti.math.vec3(-1, 0, -1),
    ...     v1=ti.math.vec3(-1, 0, 1),
    ...     v2=ti.math.vec3(1, 0, 1),
    ...     v3=ti.math.vec3(1, 0, -1),
    ...     normal=ti.math.vec3(0, 1, 0),
    ... )
    >>> # Use hit_quad within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Rays closer than this to parallel with the plane are rejected
PARALLEL_EPSILON = 1e-8


@ti.dataclass
class QuadShape:
    """A quad as uploaded to the GPU side.

    Attributes:
        v0: First corner.
        v1: Second corner.
        v2: Third corner, diagonal to v0.
        v3: Derived fourth corner, v0 + (v2 - v1).
        normal: Derived unit normal, normalize(cross(v1 - v0, v2 - v0)).
    """

    v0: vec3
    v1: vec3
    v2: vec3
    v3: vec3
    normal: vec3


@ti.func
def inside_triangle(p: vec3, a: vec3, b: vec3, c: vec3, normal: vec3) -> ti.i32:
    """Return 1 if p (on the triangle's plane) lies inside triangle abc.

    Points exactly on an edge count as inside.
    """
    inside = 1
    if tm.dot(normal, tm.cross(b - a, p - a)) < 0.0:
        inside = 0
    if tm.dot(normal, tm.cross(c - b, p - b)) < 0.0:
        inside = 0
    if tm.dot(normal, tm.cross(a - c, p - c)) < 0.0:
        inside = 0
    return inside


@ti.func
def hit_quad(
    ray_origin: vec3,
    ray_direction: vec3,
    quad: QuadShape,
    t_best: ti.f32,
) -> HitRecord:
    """Test if a ray hits a quad closer than the current best hit.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: Unit direction of the ray.
        quad: The quad to test against.
        t_best: Distance of the closest hit found so far.

    Returns:
        A HitRecord carrying the quad's stored normal; hit is 1 when the
        plane hit lies in front of the origin, closer than t_best and inside
        one of the two triangles.
    """
    rec = HitRecord(hit=0, t=0.0, normal=quad.normal)

    denom = tm.dot(quad.normal, ray_direction)
    if ti.abs(denom) >= PARALLEL_EPSILON:
        t = tm.dot(quad.v0 - ray_origin, quad.normal) / denom
        if t > 0.0 and t < t_best:
            p = ray_origin + t * ray_direction
            if (
                inside_triangle(p, quad.v0, quad.v1, quad.v2, quad.normal) == 1
                or inside_triangle(p, quad.v0, quad.v2, quad.v3, quad.normal) == 1
            ):
                rec.hit = 1
                rec.t = t

    return rec
