"""Pytest configuration for lumitrace tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_render_state():
    """Reset uploaded geometry, materials, camera, light and bounce limit.

    Field modules are imported here, after the session fixture has run
    ti.init().
    """
    from lumitrace.camera.thin_lens import disable_camera
    from lumitrace.core.integrator import DEFAULT_MAX_BOUNCES, disable_light, set_max_bounces
    from lumitrace.materials.microfacet import clear_materials
    from lumitrace.scene.intersection import clear_geometry

    def _clear_all():
        clear_geometry()
        clear_materials()
        disable_camera()
        disable_light()
        set_max_bounces(DEFAULT_MAX_BOUNCES)

    _clear_all()
    yield
    _clear_all()


@pytest.fixture
def shadow_scene():
    """The shadow test scene: a white quad under a white sphere, lit from above."""
    from lumitrace.scene.demo_scenes import create_shadow_test_scene

    return create_shadow_test_scene()


@pytest.fixture
def demo_scene():
    """The floor-and-spheres demo scene."""
    from lumitrace.scene.demo_scenes import create_floor_and_spheres_scene

    return create_floor_and_spheres_scene()
