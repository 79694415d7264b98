"""Ray data structure and vector helpers used inside Taichi kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, 1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> point = ray_at(ray, 5.0)  # Point 5 units along the ray
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Rec. 709 luminance weights
LUMINANCE_WEIGHTS = (0.2126, 0.7152, 0.0722)


@ti.dataclass
class Ray:
    """A ray with an origin point and a unit direction.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction of the ray (vec3), unit length.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction inside a kernel."""
    return Ray(origin=origin, direction=direction)


@ti.func
def reflect(v: vec3, n: vec3) -> vec3:
    """Reflect v about the unit vector n.

    Computes v - 2 * dot(v, n) * n. The incoming vector points toward the
    surface; the result points away from it.
    """
    return v - 2.0 * tm.dot(v, n) * n


@ti.func
def luminance(rgb: vec3) -> ti.f32:
    """Rec. 709 luminance of a linear RGB triple."""
    return (
        LUMINANCE_WEIGHTS[0] * rgb.x
        + LUMINANCE_WEIGHTS[1] * rgb.y
        + LUMINANCE_WEIGHTS[2] * rgb.z
    )
