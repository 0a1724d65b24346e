"""Lights module for direct illumination.

Components:
    light: Point and directional lights, their field storage and the
        direction/radiance queries used by the renderer
"""

from .light import (
    MAX_LIGHTS,
    LightType,
    add_directional_light,
    add_point_light,
    clear_lights,
    get_direction_to_light,
    get_light_count,
    get_radiance,
    light_colors,
    light_directions,
    light_intensities,
    light_origins,
    light_types,
    num_lights,
)

__all__ = [
    "LightType",
    "MAX_LIGHTS",
    "add_point_light",
    "add_directional_light",
    "clear_lights",
    "get_light_count",
    "get_direction_to_light",
    "get_radiance",
    "light_types",
    "light_origins",
    "light_directions",
    "light_intensities",
    "light_colors",
    "num_lights",
]
