"""Taichi-based direct-lighting ray tracer.

This package renders scenes of spheres, planes, triangles and triangle meshes
lit by point and directional lights, with hard shadows and physically based
materials (solid color, Lambert, Cook-Torrance).

Subpackages:
    core: Rays, transforms and the renderer
    geometry: Shape primitives, triangle meshes and their hit tests
    lights: Point and directional lights
    materials: BRDF material models
    camera: Perspective camera with primary ray generation
    scene: Scene storage, queries and the reference scene
"""

__version__ = "0.1.0"
