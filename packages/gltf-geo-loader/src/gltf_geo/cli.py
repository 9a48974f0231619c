# SPDX-License-Identifier: MIT
"""Command-line interface for gltf-geo-loader."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from gltf_geo.asset import AssetOptions, GeoAsset
from gltf_geo.globe import GeoScene
from gltf_geo.parser.transport import FileTransport
from gltf_geo.render.backend import RecordingBackend


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Load a glTF model, place it on the globe and render one frame"
    )
    parser.add_argument(
        "input",
        type=Path,
        help="Input .gltf or .glb file",
    )
    parser.add_argument(
        "--root",
        type=str,
        default=None,
        help="Root path for the model and its resources (default: the input's directory)",
    )
    parser.add_argument(
        "--lng",
        type=float,
        default=0.0,
        help="Longitude in degrees (default: %(default)s)",
    )
    parser.add_argument(
        "--lat",
        type=float,
        default=0.0,
        help="Latitude in degrees (default: %(default)s)",
    )
    parser.add_argument(
        "--height",
        type=float,
        default=0.0,
        help="Height above the ellipsoid in meters (default: %(default)s)",
    )
    parser.add_argument(
        "--no-vertical",
        action="store_true",
        help="Do not align the model's up axis with the surface normal",
    )
    parser.add_argument(
        "--scale",
        type=float,
        default=1.0,
        help="Uniform scale factor (default: %(default)s)",
    )
    parser.add_argument(
        "--anim-id",
        type=int,
        default=0,
        help="Index of the animation to play (default: %(default)s)",
    )
    parser.add_argument(
        "--time",
        type=float,
        default=0.0,
        help="Animation time in seconds of the rendered frame (default: %(default)s)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Render one frame of a geo-placed model into the recording backend."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.root is None and not args.input.exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        return 1

    if args.root is None:
        root = f"{args.input.parent.as_posix()}/"
        model = args.input.name
    else:
        root = args.root
        model = args.input.as_posix()

    options = AssetOptions(
        lng=args.lng,
        lat=args.lat,
        h=args.height,
        vertical=not args.no_vertical,
        scale=args.scale,
        anim_id=args.anim_id,
    )

    backend = RecordingBackend()
    scene = GeoScene(backend)
    asset = scene.add(GeoAsset(root, model, options, transport=FileTransport()))

    print(f"Rendering {root}{model}...")
    draws = scene.render(args.time)

    if asset.load_error is not None:
        print(f"Error: {asset.load_error}", file=sys.stderr)
        scene.close()
        return 1

    description = asset.description
    print(f"Format version: {int(description.version)}")
    print(
        f"Nodes: {len(description.nodes)}, meshes: {len(description.meshes)}, "
        f"skins: {len(description.skins)}, animations: {len(description.animations)}"
    )
    print(
        f"Mesh nodes: {len(description.get_mesh_nodes())}, "
        f"primitives: {len(description.get_primitives())}"
    )
    print(
        f"Programs: {backend.count_resources('program')}, "
        f"buffers: {backend.count_resources('buffer')}"
    )
    print(f"Draw calls: {draws}")
    translation = asset.geo_transform_matrix[:3, 3]
    print(f"Placement origin (ECEF): {translation[0]:.3f} {translation[1]:.3f} {translation[2]:.3f}")

    scene.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
