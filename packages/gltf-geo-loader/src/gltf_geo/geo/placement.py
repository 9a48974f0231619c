# SPDX-License-Identifier: MIT
"""Geodetic placement of an asset on the ellipsoid."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from gltf_geo.geo.ellipsoid import WGS84, Ellipsoid
from gltf_geo.scene.transforms import (
    rotation_x_matrix,
    rotation_z_matrix,
    scale_matrix,
    translation_matrix,
)


def placement(
    lng: float,
    lat: float,
    height: float = 0.0,
    vertical: bool = True,
    scale: float | tuple[float, float, float] = 1.0,
    ellipsoid: Ellipsoid = WGS84,
) -> np.ndarray:
    """Build the matrix placing an asset's origin at a geographic position.

    With ``vertical`` the result is ``T(surface) @ Rz(lng - 90) @ Rx(lat) @ S``,
    which turns the asset's +Y axis onto the surface normal. Without it the
    asset stays at the origin and is only scaled.

    Args:
        lng: Longitude in degrees
        lat: Latitude in degrees
        height: Height above the ellipsoid in meters
        vertical: Align the asset to the local surface
        scale: Uniform factor or per-axis factors
        ellipsoid: Reference ellipsoid

    Returns:
        4x4 geo transform matrix
    """
    scaling = scale_matrix(scale)
    if not vertical:
        return scaling

    surface = ellipsoid.geographic_to_space(math.radians(lng), math.radians(lat), height)
    return (
        translation_matrix(surface)
        @ rotation_z_matrix(math.radians(lng - 90.0))
        @ rotation_x_matrix(math.radians(lat))
        @ scaling
    )


@dataclass
class GeoPlacement:
    """Placement parameters of an asset."""

    lng: float = 0.0
    lat: float = 0.0
    h: float = 0.0
    vertical: bool = True
    scale: float | tuple[float, float, float] = 1.0

    def matrix(self, ellipsoid: Ellipsoid = WGS84) -> np.ndarray:
        """Derive the geo transform matrix for these parameters."""
        return placement(self.lng, self.lat, self.h, self.vertical, self.scale, ellipsoid)
