"""Sphere primitive with geometric ray-sphere intersection.

The test projects the sphere center onto the ray instead of solving the
quadratic directly:

    tca = dot(center - origin, direction)
    d2  = |center - origin|^2 - tca^2      (squared distance ray-to-center)
    thc = sqrt(r^2 - d2)
    t   = tca - thc                        (near root)

Only the near root is considered, so a ray starting inside a sphere does not
hit it. That matches how the integrator uses spheres: every bounce origin is
biased off the surface it leaves.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lumitrace.geometry.sphere import SphereShape, hit_sphere
    >>> sphere = SphereShape(center=ti.math.vec3(0, 0, 0), radius_squared=1.0)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class SphereShape:
    """A sphere as uploaded to the GPU side.

    Attributes:
        center: The center point of the sphere (vec3).
        radius_squared: The squared radius (precomputed by the derive step).
    """

    center: vec3
    radius_squared: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: Whether the ray intersected the primitive (1 if hit, 0 if miss).
        t: Distance along the ray to the intersection. Only valid if hit == 1.
        normal: Geometric normal at the intersection (unit length, not yet
            oriented toward the ray). Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    normal: vec3


@ti.func
def sphere_normal(point: vec3, center: vec3) -> vec3:
    """Outward unit normal of a sphere at a surface point."""
    return tm.normalize(point - center)


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: SphereShape,
    t_best: ti.f32,
) -> HitRecord:
    """Test if a ray hits a sphere closer than the current best hit.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: Unit direction of the ray.
        sphere: The sphere to test against.
        t_best: Distance of the closest hit found so far. Only strictly
            closer hits are reported.

    Returns:
        A HitRecord; hit is 1 when 0 < t < t_best.
    """
    rec = HitRecord(hit=0, t=0.0, normal=vec3(0.0, 0.0, 0.0))

    to_center = sphere.center - ray_origin
    tca = tm.dot(to_center, ray_direction)
    d2 = tm.dot(to_center, to_center) - tca * tca

    if d2 <= sphere.radius_squared:
        thc = ti.sqrt(sphere.radius_squared - d2)
        t = tca - thc
        if t > 0.0 and t < t_best:
            rec.hit = 1
            rec.t = t
            rec.normal = sphere_normal(ray_origin + t * ray_direction, sphere.center)

    return rec
