"""Ready-made scenes for the example scripts and tests.

Scenes:
    - Floor and spheres: a grey floor with three coloured diffuse spheres,
      lit by a slanted directional light and seen from a camera slightly
      above the floor. Parameterized by ``FloorAndSpheresParams`` for the
      interactive preview.
    - Shadow test: a white quad with a white sphere hovering above it, lit
      straight from above and seen from an oblique camera, so the sphere's
      shadow on the quad is in view.

Example:
    >>> from lumitrace.scene.demo_scenes import create_floor_and_spheres_scene
    >>> scene = create_floor_and_spheres_scene()
    >>> scene.component_counts()
    {'cameras': 1, 'lights': 1, 'spheres': 3, 'planes': 1, 'materials': 4}
"""

import math
from dataclasses import dataclass

from lumitrace.scene.components import (
    Camera,
    DirectionalLight,
    Material,
    SceneData,
    gray_rgb,
)

# Half extent of the floor quad; large enough to fill the view to the horizon
FLOOR_HALF_SIZE = 50.0


@dataclass
class FloorAndSpheresParams:
    """Parameters for configuring the floor-and-spheres scene.

    Attributes:
        light_intensity: Intensity of the directional light.
        disk_angle: Angular diameter of the light in degrees.
        floor_gray: Grey level of the floor, 0-255.
        roughness: Roughness shared by all materials.
        metalness: Metalness shared by the spheres.
    """

    light_intensity: float = 1000.0
    disk_angle: float = 2.0
    floor_gray: float = 180.0
    roughness: float = 1.0
    metalness: float = 0.0


def create_floor_and_spheres_scene(params: FloorAndSpheresParams | None = None) -> SceneData:
    """Create the floor-and-spheres scene.

    The camera sits at (0, 4, -12) looking along (0, -0.15, 1) with a 35 mm
    lens at f/12, 1/1200 s, ISO 300, matching a 560x384 viewport.

    Args:
        params: Optional scene parameters (defaults used when None).

    Returns:
        The scene.
    """
    if params is None:
        params = FloorAndSpheresParams()

    scene = SceneData()

    s = FLOOR_HALF_SIZE
    scene.add_plane(
        (-s, 0.0, -s),
        (-s, 0.0, s),
        (s, 0.0, s),
        material=Material.from_rgb255(gray_rgb(params.floor_gray), roughness=params.roughness),
        name="Floor",
    )

    spheres = [
        ((-2.0, 1.0, 0.0), 1.0, (150, 30, 20)),
        ((2.0, 2.0, 3.0), 2.0, (30, 50, 150)),
        ((-3.0, 3.0, 6.0), 3.0, (50, 150, 50)),
    ]
    for index, (center, radius, rgb) in enumerate(spheres, start=1):
        scene.add_sphere(
            center,
            radius,
            material=Material.from_rgb255(
                rgb, roughness=params.roughness, metalness=params.metalness
            ),
            name=f"Sphere {index}",
        )

    scene.add_light(
        DirectionalLight(
            direction=(1.0, -1.0, 1.0),
            intensity=params.light_intensity,
            disk_angle=params.disk_angle,
        ),
        name="Directional Light",
    )
    scene.add_camera(
        Camera(
            position=(0.0, 4.0, -12.0),
            direction=(0.0, -0.15, 1.0),
            sensor_width=35.0,
            sensor_height=24.0,
            focal_length=35.0,
            aperture=12.0,
            shutter=1200.0,
            iso=300.0,
            focus_distance=12.0,
        ),
        name="Main Camera",
    )
    return scene


def create_shadow_test_scene() -> SceneData:
    """Create a white quad with a white sphere casting a shadow straight down.

    The quad spans x, z in [-5, 5] at y = 0; the sphere of radius 0.5 is
    centred at (0, 1, 0); the light travels along (0, -1, 0). The camera at
    (0, 4, -8) looks at the origin, where the shadow's centre lies.

    Returns:
        The scene.
    """
    scene = SceneData()
    white = (255, 255, 255)

    scene.add_plane(
        (-5.0, 0.0, -5.0),
        (-5.0, 0.0, 5.0),
        (5.0, 0.0, 5.0),
        material=Material.from_rgb255(white),
        name="Ground",
    )
    scene.add_sphere((0.0, 1.0, 0.0), 0.5, material=Material.from_rgb255(white), name="Blocker")
    scene.add_light(
        DirectionalLight(direction=(0.0, -1.0, 0.0), intensity=1000.0, disk_angle=2.0),
        name="Sun",
    )
    scene.add_camera(
        Camera(
            position=(0.0, 4.0, -8.0),
            direction=(0.0, -4.0, 8.0),
            focus_distance=math.hypot(4.0, 8.0),
        ),
        name="Camera",
    )
    return scene
