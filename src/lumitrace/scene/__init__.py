"""Scene module: components, upload and intersection, demo scenes.

Components:
    components: Camera, light, primitive and material components, the
        SceneData container and the derive step
    intersection: Taichi-side primitive storage, closest-hit and
        visibility queries
    demo_scenes: Ready-made scenes for examples and tests

Note: intersection declares Taichi fields and is NOT imported here. Import it
directly after ti.init():
    from lumitrace.scene.intersection import intersect_scene, is_visible
"""

from .components import (
    Camera,
    DirectionalLight,
    Material,
    Plane,
    SceneData,
    Sphere,
    derive_scene,
    diffuse_map,
    gray_rgb,
    grayscale,
    new_entity_id,
)
from .demo_scenes import create_floor_and_spheres_scene, create_shadow_test_scene

__all__ = [
    "Camera",
    "DirectionalLight",
    "Material",
    "Plane",
    "SceneData",
    "Sphere",
    "derive_scene",
    "diffuse_map",
    "gray_rgb",
    "grayscale",
    "new_entity_id",
    "create_floor_and_spheres_scene",
    "create_shadow_test_scene",
]
