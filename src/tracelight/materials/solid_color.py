"""Solid color material.

The BRDF of a solid color material is simply its color, independent of the
light and view directions and of the surface normal. It is mostly used for
debugging geometry and as the scene's default material (index 0, red).
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def eval_solid_color(color: vec3) -> vec3:
    """Evaluate the solid color BRDF (the color itself)."""
    return color


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_SOLID_COLOR_MATERIALS = 256

solid_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SOLID_COLOR_MATERIALS)
num_solid_color_materials = ti.field(dtype=ti.i32, shape=())


def clear_solid_color_materials() -> None:
    """Clear all solid color materials."""
    num_solid_color_materials[None] = 0


def add_solid_color_material(color: Sequence[float]) -> int:
    """Add a solid color material to the registry.

    Args:
        color: The color as (R, G, B). Components must be non-negative.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any color component is negative.
    """
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"Color component {i} = {component} is negative")

    idx = num_solid_color_materials[None]
    if idx >= MAX_SOLID_COLOR_MATERIALS:
        raise RuntimeError(
            f"Maximum number of solid color materials ({MAX_SOLID_COLOR_MATERIALS}) exceeded"
        )

    solid_colors[idx] = [float(c) for c in color]
    num_solid_color_materials[None] = idx + 1
    return idx


def get_solid_color_material_count() -> int:
    """Get the number of solid color materials in the registry."""
    return int(num_solid_color_materials[None])


@ti.func
def get_solid_color(material_idx: ti.i32) -> vec3:
    """Get the color of a solid color material by index."""
    return solid_colors[material_idx]
