"""Reference scene configuration.

This module provides a factory for the reference direct-lighting scene used
to compare materials and culling modes side by side:

- A box of five gray-blue Lambert planes (back, floor, ceiling, left, right)
- Two rows of three Cook-Torrance spheres: metals in the bottom row, plastics
  in the top row, roughness decreasing from left to right (1.0, 0.6, 0.1)
- Three white single-triangle meshes above the spheres with back-face,
  front-face and no culling
- Three colored point lights

The camera sits at (0, 3, -9) looking down +Z with a 45 degree field of view.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from tracelight.scene.reference_scene import create_reference_scene
    >>> scene = create_reference_scene()
    >>> # Rotate the triangles as the frame time advances
    >>> animate_reference_scene(scene, total_time=1.5)
"""

import math

from tracelight.camera.camera import Camera
from tracelight.core.transform import rotation_y
from tracelight.geometry.triangle import CullMode
from tracelight.scene.manager import Scene

# =============================================================================
# Reference Scene Parameters
# =============================================================================

CAMERA_ORIGIN = (0.0, 3.0, -9.0)
CAMERA_FOV_ANGLE = 45.0

METAL_ALBEDO = (0.972, 0.960, 0.915)
PLASTIC_ALBEDO = (0.75, 0.75, 0.75)
WALL_ALBEDO = (0.49, 0.57, 0.57)
WHITE = (1.0, 1.0, 1.0)

SPHERE_RADIUS = 0.75
ROUGHNESS_STEPS = (1.0, 0.6, 0.1)
COLUMN_X = (-1.75, 0.0, 1.75)

# Clockwise winding
BASE_TRIANGLE = ((-0.75, 1.5, 0.0), (0.75, 0.0, 0.0), (-0.75, 0.0, 0.0))
TRIANGLE_HEIGHT = 4.5
TRIANGLE_CULL_MODES = (CullMode.BACK_FACE, CullMode.FRONT_FACE, CullMode.NONE)

# (origin, intensity, color)
POINT_LIGHTS = (
    ((0.0, 5.0, 5.0), 50.0, (1.0, 0.61, 0.45)),  # backlight
    ((-2.5, 5.0, -5.0), 70.0, (1.0, 0.8, 0.45)),  # front left
    ((2.5, 2.5, -5.0), 50.0, (0.34, 0.47, 0.68)),
)


def create_reference_scene() -> Scene:
    """Create the reference scene.

    Returns:
        A new Scene with the reference geometry, materials, lights and
        camera. Meshes are in scene.meshes in culling order back, front,
        none.
    """
    scene = Scene()
    scene.camera = Camera(origin=CAMERA_ORIGIN, fov_angle=CAMERA_FOV_ANGLE)

    metals = [
        scene.add_cook_torrance_material(METAL_ALBEDO, metalness=1.0, roughness=r)
        for r in ROUGHNESS_STEPS
    ]
    plastics = [
        scene.add_cook_torrance_material(PLASTIC_ALBEDO, metalness=0.0, roughness=r)
        for r in ROUGHNESS_STEPS
    ]
    wall = scene.add_lambert_material(WALL_ALBEDO, kd=1.0)
    white = scene.add_lambert_material(WHITE, kd=1.0)

    # Box
    scene.add_plane((0.0, 0.0, 10.0), (0.0, 0.0, -1.0), wall)  # back
    scene.add_plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), wall)  # floor
    scene.add_plane((0.0, 10.0, 0.0), (0.0, -1.0, 0.0), wall)  # ceiling
    scene.add_plane((5.0, 0.0, 0.0), (-1.0, 0.0, 0.0), wall)  # right
    scene.add_plane((-5.0, 0.0, 0.0), (1.0, 0.0, 0.0), wall)  # left

    for x, metal, plastic in zip(COLUMN_X, metals, plastics):
        scene.add_sphere((x, 1.0, 0.0), SPHERE_RADIUS, metal)
        scene.add_sphere((x, 3.0, 0.0), SPHERE_RADIUS, plastic)

    for x, cull_mode in zip(COLUMN_X, TRIANGLE_CULL_MODES):
        mesh = scene.add_triangle_mesh(cull_mode, white)
        mesh.append_triangle(*BASE_TRIANGLE, ignore_transform_update=True)
        mesh.translate((x, TRIANGLE_HEIGHT, 0.0))
        mesh.update_transforms()

    for origin, intensity, color in POINT_LIGHTS:
        scene.add_point_light(origin, intensity, color)

    return scene


def animate_reference_scene(scene: Scene, total_time: float) -> None:
    """Spin the reference triangles about Y for the given elapsed time.

    The yaw follows (cos(t + 1) / 2) * 2 pi and replaces any previous
    rotation, so calling this every frame does not accumulate.

    Args:
        scene: A scene created by create_reference_scene().
        total_time: Seconds since the animation started.
    """
    yaw = math.cos(total_time + 1.0) / 2.0 * 2.0 * math.pi
    for mesh in scene.meshes:
        mesh.rotation_transform = rotation_y(yaw)
        mesh.update_transforms()
