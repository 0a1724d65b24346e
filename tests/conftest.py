"""Pytest configuration for tracelight tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear every module-level registry before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here so Taichi is initialized before any field is created
    from tracelight.lights.light import clear_lights
    from tracelight.materials.cook_torrance import clear_cook_torrance_materials
    from tracelight.materials.lambert import clear_lambert_materials
    from tracelight.materials.solid_color import clear_solid_color_materials
    from tracelight.scene.intersection import clear_scene
    from tracelight.scene.manager import _clear_material_tracking

    def _clear_all():
        clear_scene()
        clear_lights()
        clear_solid_color_materials()
        clear_lambert_materials()
        clear_cook_torrance_materials()
        _clear_material_tracking()

    _clear_all()

    yield

    _clear_all()
