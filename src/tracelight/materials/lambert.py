"""Lambert (ideal diffuse) material implementation.

The Lambert BRDF scatters incident light uniformly over the hemisphere:

    f_r(wi, wo) = kd * albedo / pi

where kd in [0, 1] is the diffuse reflectance and albedo the surface color.
The cosine term is not part of the BRDF; the renderer applies it separately.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from tracelight.materials.lambert import add_lambert_material
    >>> add_lambert_material(albedo=(0.49, 0.57, 0.57), kd=1.0)
    >>> # Inside a kernel: brdf = eval_lambert(albedo, kd)
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def eval_lambert(albedo: vec3, kd: ti.f32) -> vec3:
    """Evaluate the Lambert BRDF.

    Args:
        albedo: The diffuse color (RGB).
        kd: The diffuse reflectance coefficient in [0, 1].

    Returns:
        The BRDF value albedo * kd / pi.
    """
    return albedo * kd / tm.pi


@ti.func
def eval_lambert_colored(kd: vec3, albedo: vec3) -> vec3:
    """Evaluate the Lambert BRDF with a per-channel reflectance.

    Used by the Cook-Torrance material, whose diffuse weight (1 - F) varies
    per channel.
    """
    return kd * albedo / tm.pi


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_LAMBERT_MATERIALS = 256

lambert_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERT_MATERIALS)
lambert_kds = ti.field(dtype=ti.f32, shape=MAX_LAMBERT_MATERIALS)
num_lambert_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambert_materials() -> None:
    """Clear all Lambert materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_lambert_materials[None] = 0


def add_lambert_material(albedo: Sequence[float], kd: float = 1.0) -> int:
    """Add a Lambert material to the material registry.

    Args:
        albedo: The diffuse color as (R, G, B) tuple.
            Each component should be in [0, 1] for energy conservation.
        kd: The diffuse reflectance coefficient in [0, 1].

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any albedo component or kd is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo component {i} = {component} is outside [0, 1]. "
                "This would violate energy conservation."
            )
    if kd < 0.0 or kd > 1.0:
        raise ValueError(f"Diffuse reflectance kd = {kd} is outside [0, 1]")

    idx = num_lambert_materials[None]
    if idx >= MAX_LAMBERT_MATERIALS:
        raise RuntimeError(f"Maximum number of Lambert materials ({MAX_LAMBERT_MATERIALS}) exceeded")

    lambert_albedos[idx] = [float(c) for c in albedo]
    lambert_kds[idx] = kd
    num_lambert_materials[None] = idx + 1
    return idx


def get_lambert_material_count() -> int:
    """Get the number of Lambert materials in the registry."""
    return int(num_lambert_materials[None])


@ti.func
def get_lambert_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo of a Lambert material by index."""
    return lambert_albedos[material_idx]


@ti.func
def get_lambert_kd(material_idx: ti.i32) -> ti.f32:
    """Get the diffuse reflectance of a Lambert material by index."""
    return lambert_kds[material_idx]
