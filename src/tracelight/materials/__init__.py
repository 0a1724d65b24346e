"""Materials module for BRDF evaluation.

Components:
    solid_color: Constant color, used for debugging and as the default material
    lambert: Ideal diffuse reflection
    cook_torrance: Microfacet specular + diffuse (metallic/roughness)

Materials are a closed set dispatched by a MaterialType tag. Each type keeps
its parameters in its own registry; the scene maps a global material id to
(type, index into that registry).
"""

from enum import IntEnum

from .cook_torrance import (
    add_cook_torrance_material,
    clear_cook_torrance_materials,
    eval_cook_torrance,
    fresnel_schlick,
    geometry_smith,
    get_cook_torrance_material_count,
    get_cook_torrance_params,
    normal_distribution_ggx,
)
from .lambert import (
    add_lambert_material,
    clear_lambert_materials,
    eval_lambert,
    get_lambert_albedo,
    get_lambert_kd,
    get_lambert_material_count,
)
from .solid_color import (
    add_solid_color_material,
    clear_solid_color_materials,
    eval_solid_color,
    get_solid_color,
    get_solid_color_material_count,
)


class MaterialType(IntEnum):
    """Enumeration of supported material types."""

    SOLID_COLOR = 0
    LAMBERT = 1
    COOK_TORRANCE = 2


__all__ = [
    "MaterialType",
    # Solid color
    "eval_solid_color",
    "add_solid_color_material",
    "clear_solid_color_materials",
    "get_solid_color",
    "get_solid_color_material_count",
    # Lambert
    "eval_lambert",
    "add_lambert_material",
    "clear_lambert_materials",
    "get_lambert_albedo",
    "get_lambert_kd",
    "get_lambert_material_count",
    # Cook-Torrance
    "eval_cook_torrance",
    "fresnel_schlick",
    "normal_distribution_ggx",
    "geometry_smith",
    "add_cook_torrance_material",
    "clear_cook_torrance_materials",
    "get_cook_torrance_params",
    "get_cook_torrance_material_count",
]
