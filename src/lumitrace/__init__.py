"""Progressive Monte Carlo path tracer built on Taichi.

This package renders small scenes made of spheres and quads, lit by a single
directional light with an angular disk and viewed through a thin-lens camera.
Every sample pass traces one path per pixel, adds it into a persistent
radiance accumulator and produces an 8-bit RGBA frame of the running mean.

Subpackages:
    core: Ray type, random streams, sampling, path integrator, accumulator
    geometry: Sphere and quad intersection routines
    materials: GGX microfacet BRDF and the material table
    scene: Scene components, scene upload and intersection, demo scenes
    camera: Thin-lens camera ray generation and exposure
    preview: PNG export and on-screen display

Note:
    Modules that declare Taichi fields (scene.intersection,
    materials.microfacet, camera.thin_lens, core.integrator,
    core.progressive) must be imported after ``ti.init()``.
"""

__version__ = "0.1.0"
