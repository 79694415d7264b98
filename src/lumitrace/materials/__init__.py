"""Materials module for the GGX microfacet BRDF.

Components:
    microfacet: GGX distribution, Smith masking, Schlick Fresnel, direct
        and indirect shading, and the material table

Note: microfacet declares Taichi fields and is NOT imported here. Import it
directly after ti.init():
    from lumitrace.materials.microfacet import eval_direct, indirect_weight
"""
