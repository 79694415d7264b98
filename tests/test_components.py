"""Unit tests for scene components and the derive step.

Tests cover:
- Derived camera, light, sphere, plane and material values
- Input validation at derive time
- Primary camera and light selection
- Dictionary round trip and unknown-key rejection
"""

import math

import numpy as np
import pytest


class TestHelpers:
    """Tests for colour helpers."""

    def test_diffuse_map(self):
        from lumitrace.scene.components import diffuse_map

        result = diffuse_map((255, 0, 127.5))
        assert result[0] == pytest.approx(1.0 / math.pi)
        assert result[1] == 0.0
        assert result[2] == pytest.approx(0.5 / math.pi)

    def test_grayscale(self):
        from lumitrace.scene.components import grayscale

        assert grayscale((255, 255, 255)) == pytest.approx(1.0)
        assert grayscale((0, 0, 0)) == 0.0
        assert grayscale((255, 0, 0)) == pytest.approx(0.299)
        assert grayscale((0, 255, 0)) == pytest.approx(0.587)
        assert grayscale((0, 0, 255)) == pytest.approx(0.114)

    def test_grayscale_is_clamped(self):
        from lumitrace.scene.components import grayscale

        assert grayscale((400, 400, 400)) == 1.0
        assert grayscale((-20, -20, -20)) == 0.0

    def test_gray_rgb(self):
        from lumitrace.scene.components import gray_rgb

        assert gray_rgb(180) == (180.0, 180.0, 180.0)

    def test_entity_ids_are_unique(self):
        from lumitrace.scene.components import new_entity_id

        ids = {new_entity_id() for _ in range(100)}
        assert len(ids) == 100


class TestCameraDerive:
    """Tests for Camera.derive."""

    def test_lens_values(self):
        from lumitrace.scene.components import Camera

        camera = Camera(position=(0, 4, -12), direction=(0, -0.15, 1))
        camera.derive()

        # 35 mm at f/12
        assert camera.lens_radius == pytest.approx(35.0 / 2.0 / 12.0)
        assert camera.lens_area == pytest.approx(math.pi * (35.0 / 24.0) ** 2)

    def test_direction_is_normalized(self):
        from lumitrace.scene.components import Camera

        camera = Camera(position=(0, 0, 0), direction=(0, 0, 5))
        camera.derive()
        assert camera.direction == pytest.approx((0.0, 0.0, 1.0))

    def test_zero_aperture_raises(self):
        from lumitrace.scene.components import Camera

        camera = Camera(position=(0, 0, 0), direction=(0, 0, 1), aperture=0.0)
        with pytest.raises(ValueError, match="aperture"):
            camera.derive()

    def test_zero_direction_raises(self):
        from lumitrace.scene.components import Camera

        camera = Camera(position=(0, 0, 0), direction=(0, 0, 0))
        with pytest.raises(ValueError, match="direction"):
            camera.derive()


class TestLightDerive:
    """Tests for DirectionalLight.derive."""

    def test_light_dir_points_toward_light(self):
        from lumitrace.scene.components import DirectionalLight

        light = DirectionalLight(direction=(0, -2, 0))
        light.derive()
        assert light.light_dir == pytest.approx((0.0, 1.0, 0.0))

    def test_cone_and_intensity(self):
        from lumitrace.scene.components import DirectionalLight

        light = DirectionalLight(direction=(1, -1, 1), intensity=1000.0, disk_angle=2.0)
        light.derive()

        angle = math.radians(2.0)
        assert light.angle_radians == pytest.approx(angle)
        assert light.half_angle_cos == pytest.approx(math.cos(angle / 2.0))
        assert light.intensity_map == pytest.approx((1000.0 / 3.0 * angle,) * 3)

    def test_zero_disk_angle_has_no_radiance(self):
        from lumitrace.scene.components import DirectionalLight

        light = DirectionalLight(direction=(0, -1, 0), intensity=300.0, disk_angle=0.0)
        light.derive()
        assert light.half_angle_cos == pytest.approx(1.0)
        assert light.intensity_map == (0.0, 0.0, 0.0)

    def test_radiance_shrinks_with_disk_angle(self):
        from lumitrace.scene.components import DirectionalLight

        values = []
        for angle in (1.0, 1e-2, 1e-4, 0.0):
            light = DirectionalLight(direction=(0, -1, 0), intensity=300.0, disk_angle=angle)
            light.derive()
            values.append(light.intensity_map[0])

        assert values == sorted(values, reverse=True)
        assert values[2] == pytest.approx(100.0 * math.radians(1e-4))

    def test_frame_is_orthonormal(self):
        from lumitrace.scene.components import DirectionalLight

        light = DirectionalLight(direction=(1, -1, 1))
        light.derive()
        d = np.array(light.light_dir)
        t = np.array(light.tangent)
        b = np.array(light.bitangent)
        for v in (d, t, b):
            assert np.linalg.norm(v) == pytest.approx(1.0)
        assert np.dot(d, t) == pytest.approx(0.0, abs=1e-9)
        assert np.dot(d, b) == pytest.approx(0.0, abs=1e-9)
        assert np.dot(t, b) == pytest.approx(0.0, abs=1e-9)

    def test_zero_direction_raises(self):
        from lumitrace.scene.components import DirectionalLight

        with pytest.raises(ValueError):
            DirectionalLight(direction=(0, 0, 0)).derive()


class TestPrimitiveDerive:
    """Tests for Sphere and Plane derive steps."""

    def test_sphere_radius_squared(self):
        from lumitrace.scene.components import Sphere

        sphere = Sphere(center=(0, 1, 0), radius=3.0)
        sphere.derive()
        assert sphere.radius_squared == pytest.approx(9.0)

    def test_plane_fourth_corner_and_normal(self):
        from lumitrace.scene.components import Plane

        plane = Plane(v0=(-1, 0, -1), v1=(-1, 0, 1), v2=(1, 0, 1))
        plane.derive()
        assert plane.v3 == pytest.approx((1.0, 0.0, -1.0))
        assert plane.normal == pytest.approx((0.0, 1.0, 0.0))
        assert plane.area == pytest.approx(4.0)


class TestMaterialDerive:
    """Tests for Material.derive."""

    def test_dielectric(self):
        from lumitrace.scene.components import MIN_DIELECTRIC_F0, Material

        material = Material(base_color=(0.2, 0.4, 0.6), roughness=0.5, metalness=0.0)
        material.derive()
        assert material.diffuse_reflectance == pytest.approx((0.2, 0.4, 0.6))
        assert material.alpha == pytest.approx(0.25)
        assert material.alpha_squared == pytest.approx(0.0625)
        assert material.specular_f0 == pytest.approx((MIN_DIELECTRIC_F0,) * 3)
        assert material.shadowed_f90 == pytest.approx(1.0)

    def test_metal_has_no_diffuse(self):
        from lumitrace.scene.components import Material

        material = Material(base_color=(0.9, 0.6, 0.2), metalness=1.0)
        material.derive()
        assert material.diffuse_reflectance == pytest.approx((0.0, 0.0, 0.0))
        assert material.specular_f0 == pytest.approx((0.9, 0.6, 0.2))

    def test_dark_f0_shadows_f90(self):
        from lumitrace.scene.components import Material

        material = Material(base_color=(0.01, 0.01, 0.01), metalness=1.0)
        material.derive()
        assert material.shadowed_f90 == pytest.approx(0.01 / 0.04)

    def test_inputs_are_clamped(self):
        from lumitrace.scene.components import Material

        material = Material(base_color=(2.0, -1.0, 0.5), roughness=3.0, metalness=-1.0)
        material.derive()
        assert material.base_color == pytest.approx((1.0, 0.0, 0.5))
        assert material.roughness == 1.0
        assert material.metalness == 0.0


class TestSceneData:
    """Tests for SceneData builders, lookup and serialization."""

    def test_first_camera_becomes_primary(self):
        from lumitrace.scene.components import Camera, SceneData

        scene = SceneData()
        first = scene.add_camera(Camera(position=(0, 0, 0), direction=(0, 0, 1)))
        scene.add_camera(Camera(position=(1, 0, 0), direction=(0, 0, 1)))
        assert scene.primary_camera == first
        assert scene.camera() is scene.cameras[first]

    def test_explicit_primary_light(self):
        from lumitrace.scene.components import DirectionalLight, SceneData

        scene = SceneData()
        scene.add_light(DirectionalLight(direction=(0, -1, 0)))
        second = scene.add_light(DirectionalLight(direction=(1, -1, 0)), primary=True)
        assert scene.light() is scene.lights[second]

    def test_missing_components(self):
        from lumitrace.scene.components import SceneData

        scene = SceneData()
        assert scene.camera() is None
        assert scene.light() is None

    def test_set_material_requires_primitive(self):
        from lumitrace.scene.components import Material, SceneData

        scene = SceneData()
        sphere_id = scene.add_sphere((0, 0, 0), 1.0)
        scene.set_material(sphere_id, Material(base_color=(0.5, 0.5, 0.5)))
        assert sphere_id in scene.materials

        with pytest.raises(KeyError):
            scene.set_material("missing", Material(base_color=(0.5, 0.5, 0.5)))

    def test_dict_round_trip(self, demo_scene):
        from lumitrace.scene.components import SceneData

        restored = SceneData.from_dict(demo_scene.to_dict())
        assert restored.component_counts() == demo_scene.component_counts()
        assert restored.primary_camera == demo_scene.primary_camera
        assert restored.names == demo_scene.names
        for entity_id, sphere in demo_scene.spheres.items():
            assert restored.spheres[entity_id].center == tuple(sphere.center)
            assert restored.spheres[entity_id].radius == sphere.radius

    def test_unknown_scene_key_raises(self):
        from lumitrace.scene.components import SceneData

        with pytest.raises(ValueError, match="Unknown scene key"):
            SceneData.from_dict({"meshes": {}})

    def test_unknown_component_field_raises(self):
        from lumitrace.scene.components import SceneData

        with pytest.raises(ValueError, match="Sphere"):
            SceneData.from_dict({"spheres": {"a": {"center": [0, 0, 0], "radius": 1, "mass": 2}}})

    def test_derive_scene(self, demo_scene):
        from lumitrace.scene.components import derive_scene

        derive_scene(demo_scene)
        for sphere in demo_scene.spheres.values():
            assert sphere.radius_squared == pytest.approx(sphere.radius**2)
        assert demo_scene.component_counts() == {
            "cameras": 1,
            "lights": 1,
            "spheres": 3,
            "planes": 1,
            "materials": 4,
        }
