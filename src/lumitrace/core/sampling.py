"""Sampling routines for the path integrator.

All Taichi functions here are pure: they take uniform random numbers drawn
by the caller (see ``lumitrace.core.rng``) and return directions or offsets.

Local frames:
    - ``sample_hemisphere`` works in a y-up frame (y is the normal).
    - ``sample_ggx_vndf``, ``to_local`` and ``to_world`` use a z-up frame
      built by ``tangent_frame``.

Reference:
    Heitz, "Sampling the GGX Distribution of Visible Normals", JCGT 2018
"""

import numpy as np
import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3
vec2 = tm.vec2

# Floor on the z component of a sampled microfacet normal
MIN_VNDF_Z = 1e-6


@ti.func
def sample_hemisphere(r1: ti.f32, r2: ti.f32) -> vec3:
    """Sample a direction on the unit hemisphere around +y.

    Uniform in the cosine of the polar angle, so uniform in solid angle.
    Generic diffuse-bounce primitive; the integrator samples every bounce
    with ``sample_ggx_vndf`` and does not call this.

    Args:
        r1: Uniform number in [0, 1), used directly as the y component.
        r2: Uniform number in [0, 1), mapped to the azimuth.

    Returns:
        Unit vector (sin_theta * cos(phi), r1, sin_theta * sin(phi)).
    """
    sin_theta = ti.sqrt(ti.max(0.0, 1.0 - r1 * r1))
    phi = 2.0 * tm.pi * r2
    return vec3(sin_theta * ti.cos(phi), r1, sin_theta * ti.sin(phi))


@ti.func
def sample_disk(u1: ti.f32, u2: ti.f32):
    """Sample the unit disk uniformly by area.

    Returns:
        Tuple of (radius, phi) with radius = sqrt(u1) and phi = 2 * pi * u2.
    """
    return ti.sqrt(u1), 2.0 * tm.pi * u2


@ti.func
def sample_lens(u1: ti.f32, u2: ti.f32, lens_radius: ti.f32) -> vec2:
    """Sample an offset on a lens disk of the given radius."""
    radius, phi = sample_disk(u1, u2)
    return vec2(ti.cos(phi), ti.sin(phi)) * (radius * lens_radius)


@ti.func
def sample_light_direction(
    light_dir: vec3,
    light_tangent: vec3,
    light_bitangent: vec3,
    half_angle_cos: ti.f32,
    u1: ti.f32,
    u2: ti.f32,
) -> vec3:
    """Sample a direction inside the cone subtended by a directional light.

    Reuses the disk primitive with the squared radius remapped to the cosine
    of the declination, lerp(1, half_angle_cos, radius^2), which is uniform
    over the solid angle of the cap. The azimuth is the disk angle.

    Args:
        light_dir: Unit direction toward the light (cone axis).
        light_tangent: First tangent of the frame around light_dir.
        light_bitangent: Second tangent of the frame around light_dir.
        half_angle_cos: Cosine of half the light's angular diameter.
        u1: Uniform number in [0, 1).
        u2: Uniform number in [0, 1).

    Returns:
        A unit direction. Exactly light_dir when the disk angle is zero.
    """
    result = light_dir
    if half_angle_cos < 1.0:
        radius, phi = sample_disk(u1, u2)
        cos_theta = 1.0 + (half_angle_cos - 1.0) * radius * radius
        sin_theta = ti.sqrt(ti.max(0.0, 1.0 - cos_theta * cos_theta))
        result = tm.normalize(
            light_tangent * (sin_theta * ti.cos(phi))
            + light_bitangent * (sin_theta * ti.sin(phi))
            + light_dir * cos_theta
        )
    return result


@ti.func
def sample_ggx_vndf(v_local: vec3, alpha: ti.f32, u1: ti.f32, u2: ti.f32) -> vec3:
    """Sample a GGX microfacet normal from the distribution of visible normals.

    Args:
        v_local: View direction in the z-up local frame (pointing away from
            the surface).
        alpha: GGX roughness (roughness squared).
        u1: Uniform number in [0, 1).
        u2: Uniform number in [0, 1).

    Returns:
        The sampled half vector H in the local frame, unit length, z > 0.
    """
    # Stretch the view vector to the hemisphere configuration
    vh = tm.normalize(vec3(alpha * v_local.x, alpha * v_local.y, v_local.z))

    lensq = vh.x * vh.x + vh.y * vh.y
    t1 = vec3(1.0, 0.0, 0.0)
    if lensq > 0.0:
        t1 = vec3(-vh.y, vh.x, 0.0) / ti.sqrt(lensq)
    t2 = tm.cross(vh, t1)

    radius, phi = sample_disk(u1, u2)
    p1 = radius * ti.cos(phi)
    p2 = radius * ti.sin(phi)
    s = 0.5 * (1.0 + vh.z)
    p2 = (1.0 - s) * ti.sqrt(ti.max(0.0, 1.0 - p1 * p1)) + s * p2

    nh = p1 * t1 + p2 * t2 + ti.sqrt(ti.max(0.0, 1.0 - p1 * p1 - p2 * p2)) * vh

    # Unstretch; the z floor keeps alpha == 0 from collapsing to a zero vector
    return tm.normalize(vec3(alpha * nh.x, alpha * nh.y, ti.max(MIN_VNDF_Z, nh.z)))


@ti.func
def tangent_frame(normal: vec3):
    """Build a stable orthonormal frame around a unit normal.

    The same normal always yields the same frame.

    Returns:
        Tuple (tangent, bitangent); with the normal they form a right-handed
        z-up basis.
    """
    a = vec3(1.0, 0.0, 0.0)
    if ti.abs(normal.x) > 0.9:
        a = vec3(0.0, 1.0, 0.0)
    tangent = tm.normalize(tm.cross(a, normal))
    bitangent = tm.cross(normal, tangent)
    return tangent, bitangent


@ti.func
def to_local(v: vec3, tangent: vec3, bitangent: vec3, normal: vec3) -> vec3:
    """Express a world-space vector in the z-up frame (tangent, bitangent, normal)."""
    return vec3(tm.dot(v, tangent), tm.dot(v, bitangent), tm.dot(v, normal))


@ti.func
def to_world(v: vec3, tangent: vec3, bitangent: vec3, normal: vec3) -> vec3:
    """Transform a z-up local vector back to world space."""
    return v.x * tangent + v.y * bitangent + v.z * normal


def tangent_frame_np(normal) -> tuple[np.ndarray, np.ndarray]:
    """NumPy counterpart of ``tangent_frame`` for host-side setup.

    Args:
        normal: Unit vector, any sequence of three floats.

    Returns:
        Tuple (tangent, bitangent) as float64 arrays.
    """
    n = np.asarray(normal, dtype=np.float64)
    a = np.array([0.0, 1.0, 0.0]) if abs(n[0]) > 0.9 else np.array([1.0, 0.0, 0.0])
    tangent = np.cross(a, n)
    tangent /= np.linalg.norm(tangent)
    bitangent = np.cross(n, tangent)
    return tangent, bitangent
