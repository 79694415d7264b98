"""Scene components and the per-render derive step.

A scene is a set of named component collections keyed by opaque entity ids.
An entity may own several components; a sphere or plane finds its material
by looking up the material registered under the same entity id.

Every component stores the values a user edits plus derived values that the
renderer consumes. ``derive_scene`` recomputes the derived values in place
and must run before each upload, since inputs may have changed between
frames.

Example:
    >>> from lumitrace.scene.components import (
    ...     Camera, DirectionalLight, Material, SceneData, derive_scene
    ... )
    >>> scene = SceneData()
    >>> scene.add_camera(Camera(position=(0, 4, -12), direction=(0, -0.15, 1)))
    >>> scene.add_light(DirectionalLight(direction=(1, -1, 1), intensity=1000))
    >>> scene.add_sphere((0, 1, 0), 1.0, material=Material.from_rgb255((200, 40, 40)))
    >>> derive_scene(scene)
"""

from __future__ import annotations

import dataclasses
import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from lumitrace.core.sampling import tangent_frame_np

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]

# Reflectance at normal incidence shared by all dielectrics
MIN_DIELECTRIC_F0 = 0.04

# Rec. 709 luminance weights
LUMINANCE_WEIGHTS = (0.2126, 0.7152, 0.0722)


def new_entity_id() -> str:
    """Return a fresh opaque entity id."""
    return uuid.uuid4().hex


def diffuse_map(rgb) -> Vec3:
    """Convert 0-255 colour channels to Lambertian reflectance (c / 255 / pi)."""
    return tuple(float(c) / 255.0 / math.pi for c in rgb)


def grayscale(rgb) -> float:
    """Perceived brightness of a 0-255 colour, as a value in [0, 1].

    Uses the Rec. 601 weights (0.299, 0.587, 0.114).
    """
    r, g, b = (float(c) for c in rgb)
    return min(max((0.299 * r + 0.587 * g + 0.114 * b) / 255.0, 0.0), 1.0)


def gray_rgb(value: float) -> Vec3:
    """Return a grey 0-255 colour triple."""
    return (float(value), float(value), float(value))


def luminance(rgb) -> float:
    """Rec. 709 luminance of a linear RGB triple."""
    return float(sum(w * c for w, c in zip(LUMINANCE_WEIGHTS, rgb)))


def _normalized(v) -> np.ndarray:
    arr = np.asarray(v, dtype=np.float64)
    norm = np.linalg.norm(arr)
    if norm == 0.0:
        return arr
    return arr / norm


def _as_vec3(v) -> Vec3:
    return (float(v[0]), float(v[1]), float(v[2]))


# =============================================================================
# Components
# =============================================================================


@dataclass
class Camera:
    """Thin-lens camera with photographic exposure parameters.

    Sensor size and focal length are in millimetres; ``focus_distance`` is in
    scene units along the view direction.

    Attributes:
        position: Camera position in world space.
        direction: View direction; normalized by ``derive``.
        sensor_width: Sensor width in mm.
        sensor_height: Sensor height in mm.
        focal_length: Focal length in mm.
        aperture: f-number, must be positive.
        shutter: Shutter speed denominator (1/shutter seconds).
        iso: Sensor sensitivity.
        focus_distance: Distance to the plane in focus.
        lens_radius: Derived, focal_length / 2 / aperture (mm).
        lens_area: Derived, pi * lens_radius^2 (mm^2).
    """

    position: Vec3
    direction: Vec3
    sensor_width: float = 35.0
    sensor_height: float = 24.0
    focal_length: float = 35.0
    aperture: float = 12.0
    shutter: float = 1200.0
    iso: float = 300.0
    focus_distance: float = 10.0
    lens_radius: float = field(default=0.0, init=False)
    lens_area: float = field(default=0.0, init=False)

    def derive(self) -> None:
        """Normalize the direction and recompute lens values.

        Raises:
            ValueError: If aperture is not positive or direction is zero.
        """
        if self.aperture <= 0.0:
            raise ValueError(f"Camera aperture must be positive, got {self.aperture}")
        forward = _normalized(self.direction)
        if not np.any(forward):
            raise ValueError("Camera direction must be non-zero")
        self.position = _as_vec3(self.position)
        self.direction = _as_vec3(forward)
        self.lens_radius = self.focal_length / 2.0 / self.aperture
        self.lens_area = math.pi * self.lens_radius**2


@dataclass
class DirectionalLight:
    """Directional light subtending a small angular disk.

    Attributes:
        direction: Direction the light travels (from the light into the scene).
        intensity: Scalar intensity.
        disk_angle: Angular diameter of the light's disk in degrees.
        light_dir: Derived unit vector pointing toward the light.
        angle_radians: Derived disk angle in radians.
        half_angle_cos: Derived cosine of half the disk angle.
        intensity_map: Derived RGB radiance scale used by the shader.
        tangent: Derived first tangent of the frame around light_dir.
        bitangent: Derived second tangent of the frame around light_dir.
    """

    direction: Vec3
    intensity: float = 1000.0
    disk_angle: float = 2.0
    light_dir: Vec3 = field(default=(0.0, 1.0, 0.0), init=False)
    angle_radians: float = field(default=0.0, init=False)
    half_angle_cos: float = field(default=1.0, init=False)
    intensity_map: Vec3 = field(default=(0.0, 0.0, 0.0), init=False)
    tangent: Vec3 = field(default=(1.0, 0.0, 0.0), init=False)
    bitangent: Vec3 = field(default=(0.0, 0.0, 1.0), init=False)

    def derive(self) -> None:
        """Recompute the light direction, cone and radiance scale.

        The radiance scale is intensity / 3 * angle_radians, so it shrinks to
        zero with the disk; a zero disk angle gives a light that adds nothing.

        Raises:
            ValueError: If direction is zero.
        """
        to_light = -_normalized(self.direction)
        if not np.any(to_light):
            raise ValueError("Light direction must be non-zero")
        self.direction = _as_vec3(self.direction)
        self.light_dir = _as_vec3(to_light)
        self.angle_radians = math.radians(self.disk_angle)
        self.half_angle_cos = math.cos(self.angle_radians / 2.0)
        value = self.intensity / 3.0 * self.angle_radians
        self.intensity_map = (value, value, value)
        tangent, bitangent = tangent_frame_np(to_light)
        self.tangent = _as_vec3(tangent)
        self.bitangent = _as_vec3(bitangent)


@dataclass
class Sphere:
    """Sphere primitive.

    Attributes:
        center: Sphere center.
        radius: Sphere radius.
        radius_squared: Derived squared radius.
    """

    center: Vec3
    radius: float
    radius_squared: float = field(default=0.0, init=False)

    def derive(self) -> None:
        self.center = _as_vec3(self.center)
        self.radius_squared = float(self.radius) ** 2


@dataclass
class Plane:
    """Quad primitive given by three corners.

    Attributes:
        v0: First corner.
        v1: Second corner.
        v2: Third corner, diagonal to v0.
        v3: Derived fourth corner.
        normal: Derived unit normal.
        area: Derived area of the quad.
    """

    v0: Vec3
    v1: Vec3
    v2: Vec3
    v3: Vec3 = field(default=(0.0, 0.0, 0.0), init=False)
    normal: Vec3 = field(default=(0.0, 1.0, 0.0), init=False)
    area: float = field(default=0.0, init=False)

    def derive(self) -> None:
        v0 = np.asarray(self.v0, dtype=np.float64)
        v1 = np.asarray(self.v1, dtype=np.float64)
        v2 = np.asarray(self.v2, dtype=np.float64)
        n = np.cross(v1 - v0, v2 - v0)
        self.v0, self.v1, self.v2 = _as_vec3(v0), _as_vec3(v1), _as_vec3(v2)
        self.v3 = _as_vec3(v0 + (v2 - v1))
        self.area = float(np.linalg.norm(n))
        self.normal = _as_vec3(_normalized(n))


@dataclass
class Material:
    """Metal/roughness material for the GGX microfacet BRDF.

    ``base_color`` is a linear reflectance; use ``Material.from_rgb255`` to
    build one from 0-255 colour channels.

    Attributes:
        base_color: Linear base colour, each channel in [0, 1].
        roughness: Perceptual roughness in [0, 1].
        metalness: Metalness in [0, 1].
        diffuse_reflectance: Derived, base_color * (1 - metalness).
        alpha: Derived GGX alpha, roughness^2.
        alpha_squared: Derived alpha^2.
        specular_f0: Derived reflectance at normal incidence.
        shadowed_f90: Derived grazing reflectance, reduced for dark F0.
    """

    base_color: Vec3
    roughness: float = 1.0
    metalness: float = 0.0
    diffuse_reflectance: Vec3 = field(default=(0.0, 0.0, 0.0), init=False)
    alpha: float = field(default=1.0, init=False)
    alpha_squared: float = field(default=1.0, init=False)
    specular_f0: Vec3 = field(default=(0.0, 0.0, 0.0), init=False)
    shadowed_f90: float = field(default=1.0, init=False)

    @classmethod
    def from_rgb255(cls, rgb, roughness: float = 1.0, metalness: float = 0.0) -> Material:
        """Create a material from 0-255 colour channels via ``diffuse_map``."""
        return cls(base_color=diffuse_map(rgb), roughness=roughness, metalness=metalness)

    def derive(self) -> None:
        base = np.clip(np.asarray(self.base_color, dtype=np.float64), 0.0, 1.0)
        self.roughness = min(max(float(self.roughness), 0.0), 1.0)
        self.metalness = min(max(float(self.metalness), 0.0), 1.0)
        self.base_color = _as_vec3(base)
        self.diffuse_reflectance = _as_vec3(base * (1.0 - self.metalness))
        self.alpha = self.roughness * self.roughness
        self.alpha_squared = self.alpha * self.alpha
        f0 = MIN_DIELECTRIC_F0 * (1.0 - self.metalness) + base * self.metalness
        self.specular_f0 = _as_vec3(f0)
        self.shadowed_f90 = min(1.0, luminance(f0) / MIN_DIELECTRIC_F0)


_COMPONENT_TYPES: dict[str, type] = {
    "cameras": Camera,
    "lights": DirectionalLight,
    "spheres": Sphere,
    "planes": Plane,
    "materials": Material,
}


def _component_to_dict(component: Any) -> dict[str, Any]:
    """Serialize the user-editable fields of a component."""
    result: dict[str, Any] = {}
    for f in dataclasses.fields(component):
        if not f.init:
            continue
        value = getattr(component, f.name)
        result[f.name] = list(value) if isinstance(value, tuple) else value
    return result


def _component_from_dict(cls: type, data: dict[str, Any]) -> Any:
    """Build a component from its serialized fields.

    Raises:
        ValueError: If data contains keys the component does not accept.
    """
    accepted = {f.name for f in dataclasses.fields(cls) if f.init}
    unknown = set(data) - accepted
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} field(s): {sorted(unknown)}")
    kwargs = {
        key: tuple(value) if isinstance(value, list) else value
        for key, value in data.items()
    }
    return cls(**kwargs)


# =============================================================================
# Scene
# =============================================================================


@dataclass
class SceneData:
    """Named component collections making up one scene.

    Attributes:
        cameras: Camera components by entity id.
        lights: Directional light components by entity id.
        planes: Plane components by entity id.
        spheres: Sphere components by entity id.
        materials: Material components by entity id.
        primary_camera: Entity id of the camera to render through, or None
            to use the first camera.
        primary_light: Entity id of the light to shade with, or None to use
            the first light.
        names: Optional display names by entity id.
    """

    cameras: dict[str, Camera] = field(default_factory=dict)
    lights: dict[str, DirectionalLight] = field(default_factory=dict)
    planes: dict[str, Plane] = field(default_factory=dict)
    spheres: dict[str, Sphere] = field(default_factory=dict)
    materials: dict[str, Material] = field(default_factory=dict)
    primary_camera: str | None = None
    primary_light: str | None = None
    names: dict[str, str] = field(default_factory=dict)

    # =========================================================================
    # Primary Component Lookup
    # =========================================================================

    def camera(self) -> Camera | None:
        """Return the camera to render through, or None if there is none."""
        if self.primary_camera is not None and self.primary_camera in self.cameras:
            return self.cameras[self.primary_camera]
        return next(iter(self.cameras.values()), None)

    def light(self) -> DirectionalLight | None:
        """Return the light to shade with, or None if there is none."""
        if self.primary_light is not None and self.primary_light in self.lights:
            return self.lights[self.primary_light]
        return next(iter(self.lights.values()), None)

    # =========================================================================
    # Builders
    # =========================================================================

    def _register(self, name: str | None) -> str:
        entity_id = new_entity_id()
        if name is not None:
            self.names[entity_id] = name
        return entity_id

    def add_camera(
        self, camera: Camera, *, name: str | None = None, primary: bool = False
    ) -> str:
        """Add a camera and return its entity id.

        The camera becomes primary when ``primary`` is set or when no
        primary camera is designated yet.
        """
        entity_id = self._register(name)
        self.cameras[entity_id] = camera
        if primary or self.primary_camera is None:
            self.primary_camera = entity_id
        return entity_id

    def add_light(
        self, light: DirectionalLight, *, name: str | None = None, primary: bool = False
    ) -> str:
        """Add a light and return its entity id (see ``add_camera``)."""
        entity_id = self._register(name)
        self.lights[entity_id] = light
        if primary or self.primary_light is None:
            self.primary_light = entity_id
        return entity_id

    def add_sphere(
        self,
        center: Vec3,
        radius: float,
        *,
        material: Material | None = None,
        name: str | None = None,
    ) -> str:
        """Add a sphere, optionally with its material, and return its entity id."""
        entity_id = self._register(name)
        self.spheres[entity_id] = Sphere(center=center, radius=radius)
        if material is not None:
            self.materials[entity_id] = material
        return entity_id

    def add_plane(
        self,
        v0: Vec3,
        v1: Vec3,
        v2: Vec3,
        *,
        material: Material | None = None,
        name: str | None = None,
    ) -> str:
        """Add a quad, optionally with its material, and return its entity id."""
        entity_id = self._register(name)
        self.planes[entity_id] = Plane(v0=v0, v1=v1, v2=v2)
        if material is not None:
            self.materials[entity_id] = material
        return entity_id

    def set_material(self, entity_id: str, material: Material) -> None:
        """Attach or replace the material of an entity.

        Raises:
            KeyError: If the entity has no sphere or plane.
        """
        if entity_id not in self.spheres and entity_id not in self.planes:
            raise KeyError(f"No sphere or plane with entity id {entity_id!r}")
        self.materials[entity_id] = material

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        data: dict[str, Any] = {
            key: {
                entity_id: _component_to_dict(component)
                for entity_id, component in getattr(self, key).items()
            }
            for key in _COMPONENT_TYPES
        }
        data["primary_camera"] = self.primary_camera
        data["primary_light"] = self.primary_light
        data["names"] = dict(self.names)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SceneData:
        """Load a scene from a dictionary.

        Args:
            data: Dictionary as produced by ``to_dict``.

        Raises:
            ValueError: If the dictionary contains unknown keys.
        """
        allowed = set(_COMPONENT_TYPES) | {"primary_camera", "primary_light", "names"}
        unknown = set(data) - allowed
        if unknown:
            raise ValueError(f"Unknown scene key(s): {sorted(unknown)}")

        scene = cls(
            primary_camera=data.get("primary_camera"),
            primary_light=data.get("primary_light"),
            names=dict(data.get("names", {})),
        )
        for key, component_type in _COMPONENT_TYPES.items():
            collection = getattr(scene, key)
            for entity_id, fields in data.get(key, {}).items():
                collection[entity_id] = _component_from_dict(component_type, fields)
        return scene

    def component_counts(self) -> dict[str, int]:
        """Return the number of components in each collection."""
        return {key: len(getattr(self, key)) for key in _COMPONENT_TYPES}


def derive_scene(scene: SceneData) -> None:
    """Recompute derived values of every component in place.

    Raises:
        ValueError: If a camera or light has invalid inputs.
    """
    for key in _COMPONENT_TYPES:
        for component in getattr(scene, key).values():
            component.derive()
    logger.debug("Derived scene components: %s", scene.component_counts())
