"""Scene-level intersection and visibility queries.

Primitives live in Taichi fields (Structure of Arrays) written by
``upload_geometry`` from a derived ``SceneData``. Each primitive carries the
index of the material registered under the same entity id, or -1 when the
entity has no material (such primitives still occlude but reflect nothing).

Traversal is a linear scan: spheres first, then quads, replacing the best hit
only when a candidate is strictly closer.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from lumitrace.materials.microfacet import upload_materials
    >>> from lumitrace.scene.intersection import upload_geometry
    >>> material_ids = upload_materials(scene)
    >>> upload_geometry(scene, material_ids)
    >>> # Use intersect_scene / is_visible within a Taichi kernel
"""

from typing import TYPE_CHECKING

import taichi as ti
import taichi.math as tm

from lumitrace.core.ray import Ray
from lumitrace.geometry.quad import QuadShape, hit_quad
from lumitrace.geometry.sphere import SphereShape, hit_sphere

if TYPE_CHECKING:
    from lumitrace.scene.components import SceneData

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Offset applied along the normal to keep secondary rays off the surface
SURFACE_BIAS = 1e-4

# Distance reported by rays that hit nothing
T_MAX = 1e30


@ti.dataclass
class SceneHitRecord:
    """Record of the closest ray-scene intersection.

    Attributes:
        hit: Whether the ray intersected any primitive (1 if hit, 0 if miss).
        t: Distance along the ray to the intersection. Only valid if hit == 1.
        point: Intersection point, offset by SURFACE_BIAS along the normal.
            Only valid if hit == 1.
        normal: Unit surface normal, oriented to face the incoming ray.
            Only valid if hit == 1.
        material_id: Index into the material table, -1 for none.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    material_id: ti.i32


# Maximum number of primitives supported in the scene
MAX_SPHERES = 256
MAX_PLANES = 256

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii_squared = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Quad storage: three given corners, the derived fourth corner and normal
plane_v0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_v1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_v2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_v3 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_material_ids = ti.field(dtype=ti.i32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())


def clear_geometry() -> None:
    """Remove all primitives.

    Resets the primitive counts to zero. Field data is left in place and
    overwritten by the next upload.
    """
    num_spheres[None] = 0
    num_planes[None] = 0


def upload_geometry(scene: "SceneData", material_ids: dict[str, int]) -> None:
    """Write the derived spheres and planes of a scene into the fields.

    Args:
        scene: Scene whose components have been derived.
        material_ids: Mapping from entity id to material index, as returned
            by ``upload_materials``.

    Raises:
        RuntimeError: If the maximum number of spheres or planes is exceeded.
    """
    if len(scene.spheres) > MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    if len(scene.planes) > MAX_PLANES:
        raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")

    for idx, (entity_id, sphere) in enumerate(scene.spheres.items()):
        sphere_centers[idx] = vec3(*sphere.center)
        sphere_radii_squared[idx] = sphere.radius_squared
        sphere_material_ids[idx] = material_ids.get(entity_id, -1)
    num_spheres[None] = len(scene.spheres)

    for idx, (entity_id, plane) in enumerate(scene.planes.items()):
        plane_v0[idx] = vec3(*plane.v0)
        plane_v1[idx] = vec3(*plane.v1)
        plane_v2[idx] = vec3(*plane.v2)
        plane_v3[idx] = vec3(*plane.v3)
        plane_normals[idx] = vec3(*plane.normal)
        plane_material_ids[idx] = material_ids.get(entity_id, -1)
    num_planes[None] = len(scene.planes)


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_plane_count() -> int:
    """Get the number of planes in the scene."""
    return int(num_planes[None])


@ti.func
def _sphere_at(i: ti.i32) -> SphereShape:
    return SphereShape(center=sphere_centers[i], radius_squared=sphere_radii_squared[i])


@ti.func
def _plane_at(i: ti.i32) -> QuadShape:
    return QuadShape(
        v0=plane_v0[i],
        v1=plane_v1[i],
        v2=plane_v2[i],
        v3=plane_v3[i],
        normal=plane_normals[i],
    )


@ti.func
def intersect_scene(ray: Ray) -> SceneHitRecord:
    """Find the closest primitive hit by a ray.

    Args:
        ray: Ray with a unit direction.

    Returns:
        A SceneHitRecord for the closest hit, or one with hit == 0.
    """
    result = SceneHitRecord(
        hit=0,
        t=T_MAX,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        material_id=-1,
    )

    for i in range(num_spheres[None]):
        rec = hit_sphere(ray.origin, ray.direction, _sphere_at(i), result.t)
        if rec.hit == 1:
            result.hit = 1
            result.t = rec.t
            result.normal = rec.normal
            result.material_id = sphere_material_ids[i]

    for i in range(num_planes[None]):
        rec = hit_quad(ray.origin, ray.direction, _plane_at(i), result.t)
        if rec.hit == 1:
            result.hit = 1
            result.t = rec.t
            result.normal = rec.normal
            result.material_id = plane_material_ids[i]

    if result.hit == 1:
        if tm.dot(result.normal, ray.direction) > 0.0:
            result.normal = -result.normal
        result.point = ray.origin + result.t * ray.direction + SURFACE_BIAS * result.normal

    return result


@ti.func
def is_visible(point: vec3, direction: vec3) -> ti.i32:
    """Return 1 if nothing lies along the ray from point in direction.

    Any primitive hit at a positive distance occludes; there is no partial
    transmission.
    """
    visible = 1

    for i in range(num_spheres[None]):
        if visible == 1:
            rec = hit_sphere(point, direction, _sphere_at(i), T_MAX)
            if rec.hit == 1:
                visible = 0

    for i in range(num_planes[None]):
        if visible == 1:
            rec = hit_quad(point, direction, _plane_at(i), T_MAX)
            if rec.hit == 1:
                visible = 0

    return visible
