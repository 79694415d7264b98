"""GGX microfacet BRDF with a Lambertian diffuse lobe.

The model combines a diffuse term and a GGX specular term weighted by a
Schlick Fresnel factor F:

    f(l, v) * NdotL = (1 - F) * diffuse_reflectance * NdotL
                      + F * G2 * D * NdotL

where D is the GGX normal distribution, clamped to 10 to tame fireflies on
very smooth surfaces, and G2 is the height-correlated Smith masking term in
Lagarde's form (which already contains the 1 / (4 NdotL NdotV) denominator).

For indirect bounces the half vector H comes from the visible-normal
distribution (``sample_ggx_vndf``), so the specular sample weight reduces to
G2 / G1(V). The diffuse lobe shares the same direction and keeps its
(1 - F) * diffuse_reflectance * NdotL weight. For base colours in [0, 1] the
combined weight never exceeds 1 per channel.

References:
    - Boksansky, "Crash Course in BRDF Implementation", 2021
    - Lagarde, de Rousiers, "Moving Frostbite to Physically Based Rendering", 2014
    - Karis, "Real Shading in Unreal Engine 4", 2013 (spherical-Gaussian
      Fresnel)

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lumitrace.materials.microfacet import load_material, eval_direct
    >>> # Inside a Taichi kernel:
    >>> # material = load_material(material_id)
    >>> # radiance = eval_direct(material, normal, view, light, light_radiance)
"""

from typing import TYPE_CHECKING

import taichi as ti
import taichi.math as tm

if TYPE_CHECKING:
    from lumitrace.scene.components import SceneData

# Type alias for 3D vectors
vec3 = tm.vec3

# Upper bound on the GGX distribution value
MAX_NDF_VALUE = 10.0

# Floors keeping the smooth limit finite
MIN_ALPHA_SQUARED = 1e-8
MIN_DENOMINATOR = 1e-20


@ti.dataclass
class SurfaceMaterial:
    """Derived material values as consumed by the shader.

    Attributes:
        diffuse_reflectance: Lambertian reflectance (RGB).
        alpha: GGX roughness (perceptual roughness squared).
        alpha_squared: alpha^2.
        specular_f0: Specular reflectance at normal incidence (RGB).
        shadowed_f90: Reflectance at grazing incidence.
    """

    diffuse_reflectance: vec3
    alpha: ti.f32
    alpha_squared: ti.f32
    specular_f0: vec3
    shadowed_f90: ti.f32


# =============================================================================
# BRDF Terms
# =============================================================================


@ti.func
def ggx_d(alpha_squared: ti.f32, n_dot_h: ti.f32) -> ti.f32:
    """GGX / Trowbridge-Reitz normal distribution, clamped to MAX_NDF_VALUE."""
    a2 = ti.max(alpha_squared, MIN_ALPHA_SQUARED)
    b = (a2 - 1.0) * n_dot_h * n_dot_h + 1.0
    return ti.min(a2 / ti.max(tm.pi * b * b, MIN_DENOMINATOR), MAX_NDF_VALUE)


@ti.func
def smith_g2_height_correlated(
    alpha_squared: ti.f32, n_dot_l: ti.f32, n_dot_v: ti.f32
) -> ti.f32:
    """Height-correlated Smith G2 divided by 4 NdotL NdotV (Lagarde)."""
    a = n_dot_v * ti.sqrt(alpha_squared + n_dot_l * (n_dot_l - alpha_squared * n_dot_l))
    b = n_dot_l * ti.sqrt(alpha_squared + n_dot_v * (n_dot_v - alpha_squared * n_dot_v))
    return 0.5 / ti.max(a + b, MIN_DENOMINATOR)


@ti.func
def smith_g1(alpha_squared: ti.f32, n_dot_s: ti.f32) -> ti.f32:
    """Smith G1 masking term for GGX."""
    n_dot_s2 = ti.max(n_dot_s * n_dot_s, MIN_DENOMINATOR)
    return 2.0 / (ti.sqrt((alpha_squared * (1.0 - n_dot_s2) + n_dot_s2) / n_dot_s2) + 1.0)


@ti.func
def smith_g2_ratio(alpha_squared: ti.f32, n_dot_l: ti.f32, n_dot_v: ti.f32) -> ti.f32:
    """Height-correlated G2 / G1(V), the VNDF sample weight.

    Written as G1(L) / (G1(V) + G1(L) - G1(V) * G1(L)), which lies in [0, 1].
    """
    g1_v = smith_g1(alpha_squared, n_dot_v)
    g1_l = smith_g1(alpha_squared, n_dot_l)
    return g1_l / ti.max(g1_v + g1_l - g1_v * g1_l, MIN_DENOMINATOR)


@ti.func
def fresnel_schlick(f0: vec3, f90: ti.f32, l_dot_h: ti.f32) -> vec3:
    """Schlick Fresnel with the spherical-Gaussian exponent approximation."""
    return f0 + (f90 - f0) * 2.0 ** ((-5.55473 * l_dot_h - 6.98315) * l_dot_h)


# =============================================================================
# Shading
# =============================================================================


@ti.func
def eval_direct(
    material: SurfaceMaterial, normal: vec3, view: vec3, light: vec3, radiance: vec3
) -> vec3:
    """Reflected radiance toward the viewer from one light direction.

    Args:
        material: Shading parameters of the surface.
        normal: Unit surface normal facing the viewer.
        view: Unit direction toward the viewer.
        light: Unit direction toward the light.
        radiance: Incoming radiance along ``light``.

    Returns:
        Outgoing radiance; zero when the light or the viewer is below the
        surface.
    """
    result = vec3(0.0, 0.0, 0.0)
    n_dot_l = tm.dot(normal, light)
    n_dot_v = tm.dot(normal, view)

    if n_dot_l > 0.0 and n_dot_v > 0.0:
        h = tm.normalize(light + view)
        n_dot_h = tm.clamp(tm.dot(normal, h), 0.0, 1.0)
        l_dot_h = tm.clamp(tm.dot(light, h), 0.0, 1.0)

        f = fresnel_schlick(material.specular_f0, material.shadowed_f90, l_dot_h)
        d = ggx_d(material.alpha_squared, n_dot_h)
        g2 = smith_g2_height_correlated(material.alpha_squared, n_dot_l, n_dot_v)

        diffuse = material.diffuse_reflectance * n_dot_l
        specular = g2 * d * n_dot_l
        result = ((1.0 - f) * diffuse + f * specular) * radiance

    return result


@ti.func
def indirect_weight(
    material: SurfaceMaterial, normal: vec3, view: vec3, light: vec3, half: vec3
) -> vec3:
    """Throughput weight of a bounce sampled from the visible normals.

    Args:
        material: Shading parameters of the surface.
        normal: Unit surface normal facing the viewer.
        view: Unit direction toward the viewer.
        light: Unit bounce direction, reflect(-view, half).
        half: Sampled microfacet normal.

    Returns:
        (1 - F) * diffuse_reflectance * NdotL + F * G2 / G1(V); zero when
        the bounce leaves below the surface.
    """
    result = vec3(0.0, 0.0, 0.0)
    n_dot_l = tm.dot(normal, light)
    n_dot_v = tm.dot(normal, view)

    if n_dot_l > 0.0 and n_dot_v > 0.0:
        l_dot_h = tm.clamp(tm.dot(light, half), 0.0, 1.0)
        f = fresnel_schlick(material.specular_f0, material.shadowed_f90, l_dot_h)
        ratio = smith_g2_ratio(material.alpha_squared, n_dot_l, n_dot_v)
        result = (1.0 - f) * material.diffuse_reflectance * n_dot_l + f * ratio

    return result


# =============================================================================
# Material Storage
# =============================================================================

MAX_MATERIALS = 256

material_diffuse = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_alpha = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_alpha_squared = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_f0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_f90 = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Reset the material table.

    Field data is left in place and overwritten by the next upload.
    """
    num_materials[None] = 0


def get_material_count() -> int:
    """Get the number of uploaded materials."""
    return int(num_materials[None])


def upload_materials(scene: "SceneData") -> dict[str, int]:
    """Write every derived material of a scene into the material table.

    Args:
        scene: Scene whose materials have been derived.

    Returns:
        Mapping from entity id to material index.

    Raises:
        RuntimeError: If the scene has more than MAX_MATERIALS materials.
    """
    if len(scene.materials) > MAX_MATERIALS:
        raise RuntimeError(
            f"Maximum number of materials ({MAX_MATERIALS}) exceeded: "
            f"{len(scene.materials)}"
        )

    indices: dict[str, int] = {}
    for idx, (entity_id, material) in enumerate(scene.materials.items()):
        material_diffuse[idx] = vec3(*material.diffuse_reflectance)
        material_alpha[idx] = material.alpha
        material_alpha_squared[idx] = material.alpha_squared
        material_f0[idx] = vec3(*material.specular_f0)
        material_f90[idx] = material.shadowed_f90
        indices[entity_id] = idx

    num_materials[None] = len(indices)
    return indices


@ti.func
def load_material(material_id: ti.i32) -> SurfaceMaterial:
    """Read a material from the table.

    A negative id yields an all-zero material, which reflects nothing.
    """
    material = SurfaceMaterial(
        diffuse_reflectance=vec3(0.0, 0.0, 0.0),
        alpha=1.0,
        alpha_squared=1.0,
        specular_f0=vec3(0.0, 0.0, 0.0),
        shadowed_f90=0.0,
    )
    if material_id >= 0:
        material.diffuse_reflectance = material_diffuse[material_id]
        material.alpha = material_alpha[material_id]
        material.alpha_squared = material_alpha_squared[material_id]
        material.specular_f0 = material_f0[material_id]
        material.shadowed_f90 = material_f90[material_id]
    return material
