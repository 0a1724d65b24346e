#!/usr/bin/env python3
"""Render the reference scene.

This script renders the reference direct-lighting scene (Cook-Torrance
spheres, Lambert box, three culled triangles, three point lights) and saves
the result as an image.

Usage:
    python examples/render_reference_scene.py [options]

Options:
    --width WIDTH       Image width in pixels (default: 640)
    --height HEIGHT     Image height in pixels (default: 480)
    --mode MODE         observed_area, radiance, brdf or combined (default: combined)
    --no-shadows        Disable shadow rays
    --serial            Use the serialized render kernel
    --time SECONDS      Animation time for the spinning triangles (default: 0)
    --obj PATH          Also load an OBJ mesh into the scene
    --output OUTPUT     Output file path (default: reference_scene.png)
    --verbose           Log debug messages

Example:
    python examples/render_reference_scene.py --width 320 --height 240 --mode brdf
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import taichi as ti

logger = logging.getLogger("render_reference_scene")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the reference scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=640,
        help="Image width in pixels (default: 640)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=480,
        help="Image height in pixels (default: 480)",
    )
    parser.add_argument(
        "--mode",
        choices=["observed_area", "radiance", "brdf", "combined"],
        default="combined",
        help="Lighting mode (default: combined)",
    )
    parser.add_argument(
        "--no-shadows",
        action="store_true",
        help="Disable shadow rays",
    )
    parser.add_argument(
        "--serial",
        action="store_true",
        help="Use the serialized render kernel",
    )
    parser.add_argument(
        "--time",
        type=float,
        default=0.0,
        help="Animation time in seconds for the spinning triangles (default: 0)",
    )
    parser.add_argument(
        "--obj",
        type=str,
        default=None,
        help="Optional OBJ mesh to add to the scene",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="reference_scene.png",
        help="Output file path (default: reference_scene.png)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log debug messages",
    )
    return parser.parse_args()


def render_reference_scene(
    width: int = 640,
    height: int = 480,
    mode: str = "combined",
    shadows: bool = True,
    parallel: bool = True,
    total_time: float = 0.0,
    obj_path: str | None = None,
    output_path: str = "reference_scene.png",
) -> Path:
    """Render the reference scene and save it to a file.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        mode: Lighting mode name.
        shadows: Whether to trace shadow rays.
        parallel: Use the parallel render kernel.
        total_time: Animation time for the spinning triangles.
        obj_path: Optional OBJ mesh to add, placed on the floor.
        output_path: Output image path.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from tracelight.core.renderer import LightingMode, Renderer, RenderSettings
    from tracelight.geometry.triangle import CullMode
    from tracelight.scene.reference_scene import animate_reference_scene, create_reference_scene

    scene = create_reference_scene()
    animate_reference_scene(scene, total_time)

    if obj_path is not None:
        white = scene.add_lambert_material((1.0, 1.0, 1.0), kd=1.0)
        mesh = scene.load_obj_mesh(obj_path, CullMode.BACK_FACE, white)
        mesh.translate((0.0, 0.0, -2.0))
        scene.update_meshes()

    logger.info("Scene: %r", scene)

    settings = RenderSettings(
        width=width,
        height=height,
        lighting_mode=LightingMode[mode.upper()],
        shadows_enabled=shadows,
        parallel=parallel,
    )
    renderer = Renderer(settings)
    renderer.render(scene)

    output_file = Path(output_path)
    renderer.save_image(output_file)
    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ti.init(arch=ti.cpu)

    try:
        output = render_reference_scene(
            width=args.width,
            height=args.height,
            mode=args.mode,
            shadows=not args.no_shadows,
            parallel=not args.serial,
            total_time=args.time,
            obj_path=args.obj,
            output_path=args.output,
        )
    except (OSError, ValueError, RuntimeError) as e:
        logger.error("Render failed: %s", e)
        return 1

    print(f"Saved to: {output.absolute()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
