# SPDX-License-Identifier: MIT
"""Geodesy module: ellipsoid model and asset placement."""

from .ellipsoid import WGS84, Ellipsoid, Geographic
from .placement import GeoPlacement, placement

__all__ = [
    "WGS84",
    "Ellipsoid",
    "Geographic",
    "GeoPlacement",
    "placement",
]
