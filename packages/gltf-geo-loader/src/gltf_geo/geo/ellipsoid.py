# SPDX-License-Identifier: MIT
"""Reference ellipsoid and geographic coordinates."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Geographic:
    """A geographic position in radians and meters."""

    lng: float
    lat: float
    height: float = 0.0

    @classmethod
    def from_degrees(cls, lng: float, lat: float, height: float = 0.0) -> Geographic:
        """Create a position from degrees."""
        return cls(math.radians(lng), math.radians(lat), height)


@dataclass(frozen=True)
class Ellipsoid:
    """An oblate ellipsoid of revolution around the Z axis."""

    semi_major_axis: float
    semi_minor_axis: float

    @property
    def eccentricity_squared(self) -> float:
        """First eccentricity squared."""
        a, b = self.semi_major_axis, self.semi_minor_axis
        return (a * a - b * b) / (a * a)

    @property
    def maximum_radius(self) -> float:
        return max(self.semi_major_axis, self.semi_minor_axis)

    def prime_vertical_radius(self, lat: float) -> float:
        """Radius of curvature in the prime vertical at latitude ``lat``."""
        sin_lat = math.sin(lat)
        return self.semi_major_axis / math.sqrt(
            1.0 - self.eccentricity_squared * sin_lat * sin_lat
        )

    def geographic_to_space(self, lng: float, lat: float, height: float = 0.0) -> np.ndarray:
        """Convert geodetic coordinates (radians, meters) to Cartesian XYZ.

        Args:
            lng: Longitude in radians
            lat: Latitude in radians
            height: Height above the surface in meters

        Returns:
            Earth-centred XYZ as a length-3 array
        """
        n = self.prime_vertical_radius(lat)
        cos_lat = math.cos(lat)
        return np.array(
            [
                (n + height) * cos_lat * math.cos(lng),
                (n + height) * cos_lat * math.sin(lng),
                (n * (1.0 - self.eccentricity_squared) + height) * math.sin(lat),
            ],
            dtype=np.float64,
        )

    def space_to_geographic(self, point, iterations: int = 8) -> Geographic:
        """Convert Cartesian XYZ back to geodetic coordinates.

        Uses fixed-point iteration on latitude, which converges to well below
        a millimetre within a handful of steps for points near the surface.
        """
        x, y, z = (float(v) for v in point)
        e2 = self.eccentricity_squared
        p = math.hypot(x, y)
        lng = math.atan2(y, x)

        if p < 1e-9:
            # On the polar axis
            lat = math.copysign(math.pi / 2, z) if z != 0 else 0.0
            return Geographic(lng, lat, abs(z) - self.semi_minor_axis)

        lat = math.atan2(z, p * (1.0 - e2))
        height = 0.0
        for _ in range(iterations):
            n = self.prime_vertical_radius(lat)
            height = p / math.cos(lat) - n
            lat = math.atan2(z, p * (1.0 - e2 * n / (n + height)))

        return Geographic(lng, lat, height)

    def surface_normal(self, lng: float, lat: float) -> np.ndarray:
        """Unit geodetic surface normal at the given position (radians)."""
        cos_lat = math.cos(lat)
        return np.array(
            [cos_lat * math.cos(lng), cos_lat * math.sin(lng), math.sin(lat)],
            dtype=np.float64,
        )


WGS84 = Ellipsoid(semi_major_axis=6378137.0, semi_minor_axis=6356752.3142451793)
