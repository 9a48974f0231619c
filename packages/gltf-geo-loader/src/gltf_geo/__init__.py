# SPDX-License-Identifier: MIT
"""gltf-geo-loader - Load glTF assets and render them placed on the globe."""

from gltf_geo.asset import AssetOptions, GeoAsset
from gltf_geo.geo import WGS84, Ellipsoid, GeoPlacement, placement
from gltf_geo.globe import GeoScene, InitStep, SceneConfig
from gltf_geo.loader import BinaryModel, ImmediateExecutor, LoadState, LoadTask
from gltf_geo.parser import parse, parse_container, read_container
from gltf_geo.render import PerspectiveCamera, RecordingBackend, RenderBackend

__version__ = "0.1.0"
__all__ = [
    "WGS84",
    "AssetOptions",
    "BinaryModel",
    "Ellipsoid",
    "GeoAsset",
    "GeoPlacement",
    "GeoScene",
    "ImmediateExecutor",
    "InitStep",
    "LoadState",
    "LoadTask",
    "PerspectiveCamera",
    "RecordingBackend",
    "RenderBackend",
    "SceneConfig",
    "parse",
    "parse_container",
    "placement",
    "read_container",
]
