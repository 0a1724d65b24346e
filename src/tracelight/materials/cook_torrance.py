"""Cook-Torrance microfacet material implementation.

This module implements a metallic/roughness Cook-Torrance BRDF built from
three terms evaluated on the half vector H = normalize(L + V):

    F: Fresnel-Schlick,   F = f0 + (1 - f0)(1 - H.V)^5
    D: GGX (Trowbridge-Reitz) normal distribution with alpha = roughness^2
    G: Smith geometry term using Schlick-GGX for both V and L,
       with k = (alpha + 1)^2 / 8

The specular lobe is D*F*G / (4 (N.V)(N.L)). Non-metals add a Lambert
diffuse lobe weighted by (1 - F)(1 - metalness). The base reflectance f0 is
0.04 for dielectrics and the albedo for metals, blended linearly by
metalness.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from tracelight.materials.cook_torrance import add_cook_torrance_material
    >>> add_cook_torrance_material((0.972, 0.960, 0.915), metalness=1.0, roughness=0.1)
    >>> # Inside a kernel:
    >>> # brdf = eval_cook_torrance(albedo, metalness, roughness, normal, l, v)
"""

from collections.abc import Sequence

import taichi as ti
import taichi.math as tm

from tracelight.materials.lambert import eval_lambert_colored

# Type alias for 3D vectors
vec3 = tm.vec3

# Base reflectance of dielectrics at normal incidence
DIELECTRIC_F0 = 0.04

# Lower bound of the specular denominator 4 (N.V)(N.L)
SPECULAR_DENOMINATOR_MIN = 1e-4


@ti.func
def fresnel_schlick(h: vec3, v: vec3, f0: vec3) -> vec3:
    """Schlick's approximation of the Fresnel reflectance.

    Args:
        h: The normalized half vector.
        v: The normalized view direction (towards the viewer).
        f0: Base reflectance at normal incidence (RGB).

    Returns:
        The Fresnel reflectance (RGB).
    """
    cos_theta = ti.max(tm.dot(h, v), 0.0)
    return f0 + (vec3(1.0, 1.0, 1.0) - f0) * ti.pow(1.0 - cos_theta, 5.0)


@ti.func
def normal_distribution_ggx(n: vec3, h: vec3, roughness: ti.f32) -> ti.f32:
    """Trowbridge-Reitz GGX normal distribution function.

    Args:
        n: The surface normal.
        h: The normalized half vector.
        roughness: Perceptual roughness; alpha = roughness^2.

    Returns:
        The microfacet density in the direction of h.
    """
    alpha = roughness * roughness
    alpha2 = alpha * alpha
    n_dot_h = ti.max(tm.dot(n, h), 0.0)
    denom = n_dot_h * n_dot_h * (alpha2 - 1.0) + 1.0
    return alpha2 / (tm.pi * denom * denom)


@ti.func
def geometry_schlick_ggx(n: vec3, w: vec3, k: ti.f32) -> ti.f32:
    """Schlick-GGX masking for a single direction."""
    n_dot_w = ti.max(tm.dot(n, w), 0.0)
    return n_dot_w / (n_dot_w * (1.0 - k) + k)


@ti.func
def geometry_smith(n: vec3, v: vec3, l: vec3, roughness: ti.f32) -> ti.f32:  # noqa: E741
    """Smith shadowing-masking: product of Schlick-GGX for V and L."""
    alpha = roughness * roughness
    k = (alpha + 1.0) * (alpha + 1.0) / 8.0
    return geometry_schlick_ggx(n, v, k) * geometry_schlick_ggx(n, l, k)


@ti.func
def eval_cook_torrance(
    albedo: vec3,
    metalness: ti.f32,
    roughness: ti.f32,
    n: vec3,
    l: vec3,  # noqa: E741
    v: vec3,
) -> vec3:
    """Evaluate the Cook-Torrance BRDF.

    Args:
        albedo: Base color (RGB, each component in [0, 1]).
        metalness: 0 for dielectrics, 1 for metals.
        roughness: Perceptual roughness in (0, 1].
        n: The surface normal (normalized).
        l: Direction towards the light (normalized).
        v: Direction towards the viewer (normalized).

    Returns:
        The BRDF value (diffuse + specular), without the cosine term.
    """
    h = tm.normalize(l + v)
    f0 = vec3(DIELECTRIC_F0, DIELECTRIC_F0, DIELECTRIC_F0) * (1.0 - metalness) + albedo * metalness

    f = fresnel_schlick(h, v, f0)
    d = normal_distribution_ggx(n, h, roughness)
    g = geometry_smith(n, v, l, roughness)

    denom = 4.0 * tm.dot(n, v) * tm.dot(n, l)
    specular = d * f * g / ti.max(denom, SPECULAR_DENOMINATOR_MIN)

    kd = (vec3(1.0, 1.0, 1.0) - f) * (1.0 - metalness)
    diffuse = eval_lambert_colored(kd, albedo)

    return diffuse + specular


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

MAX_COOK_TORRANCE_MATERIALS = 256

cook_torrance_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_COOK_TORRANCE_MATERIALS)
cook_torrance_metalness = ti.field(dtype=ti.f32, shape=MAX_COOK_TORRANCE_MATERIALS)
cook_torrance_roughness = ti.field(dtype=ti.f32, shape=MAX_COOK_TORRANCE_MATERIALS)
num_cook_torrance_materials = ti.field(dtype=ti.i32, shape=())


def clear_cook_torrance_materials() -> None:
    """Clear all Cook-Torrance materials."""
    num_cook_torrance_materials[None] = 0


def add_cook_torrance_material(
    albedo: Sequence[float],
    metalness: float,
    roughness: float,
) -> int:
    """Add a Cook-Torrance material to the registry.

    Args:
        albedo: Base color as (R, G, B), each component in [0, 1].
        metalness: Metalness in [0, 1]; 0 is a dielectric, 1 a metal.
        roughness: Perceptual roughness in (0, 1].

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If albedo or metalness is outside [0, 1], or roughness
            is outside (0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(f"Albedo component {i} = {component} is outside [0, 1]")
    if metalness < 0.0 or metalness > 1.0:
        raise ValueError(f"Metalness {metalness} is outside [0, 1]")
    if roughness <= 0.0 or roughness > 1.0:
        raise ValueError(f"Roughness {roughness} is outside (0, 1]")

    idx = num_cook_torrance_materials[None]
    if idx >= MAX_COOK_TORRANCE_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Cook-Torrance materials ({MAX_COOK_TORRANCE_MATERIALS}) exceeded"
        )

    cook_torrance_albedos[idx] = [float(c) for c in albedo]
    cook_torrance_metalness[idx] = metalness
    cook_torrance_roughness[idx] = roughness
    num_cook_torrance_materials[None] = idx + 1
    return idx


def get_cook_torrance_material_count() -> int:
    """Get the number of Cook-Torrance materials in the registry."""
    return int(num_cook_torrance_materials[None])


@ti.func
def get_cook_torrance_params(material_idx: ti.i32):
    """Get (albedo, metalness, roughness) of a Cook-Torrance material."""
    return (
        cook_torrance_albedos[material_idx],
        cook_torrance_metalness[material_idx],
        cook_torrance_roughness[material_idx],
    )
