# SPDX-License-Identifier: MIT
"""Camera interface consumed by the render walker."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np


class Camera(Protocol):
    """Anything exposing projection and view matrices."""

    @property
    def projection_matrix(self) -> np.ndarray: ...

    @property
    def view_matrix(self) -> np.ndarray: ...


def perspective_matrix(fov_y: float, aspect: float, near: float, far: float) -> np.ndarray:
    """OpenGL-style perspective projection.

    Args:
        fov_y: Vertical field of view in radians
        aspect: Width divided by height
        near: Near clipping distance
        far: Far clipping distance
    """
    f = 1.0 / math.tan(fov_y / 2.0)
    matrix = np.zeros((4, 4), dtype=np.float64)
    matrix[0, 0] = f / aspect
    matrix[1, 1] = f
    matrix[2, 2] = (far + near) / (near - far)
    matrix[2, 3] = 2.0 * far * near / (near - far)
    matrix[3, 2] = -1.0
    return matrix


def look_at_matrix(eye, target, up) -> np.ndarray:
    """View matrix for a camera at ``eye`` looking at ``target``."""
    eye = np.asarray(eye, dtype=np.float64)
    forward = np.asarray(target, dtype=np.float64) - eye
    forward /= np.linalg.norm(forward)
    side = np.cross(forward, np.asarray(up, dtype=np.float64))
    side_norm = np.linalg.norm(side)
    if side_norm < 1e-12:
        raise ValueError("Camera up vector is parallel to the view direction")
    side /= side_norm
    true_up = np.cross(side, forward)

    matrix = np.eye(4, dtype=np.float64)
    matrix[0, :3] = side
    matrix[1, :3] = true_up
    matrix[2, :3] = -forward
    matrix[:3, 3] = -matrix[:3, :3] @ eye
    return matrix


@dataclass
class PerspectiveCamera:
    """A perspective camera with a look-at pose."""

    fov: float = 60.0
    """Vertical field of view in degrees."""

    width: float = 800.0
    """Viewport width in pixels."""

    height: float = 600.0
    """Viewport height in pixels."""

    near: float = 0.01
    """The near clipping plane of the camera."""

    far: float = 1000.0
    """The far clipping plane of the camera."""

    position: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))
    target: np.ndarray = field(default_factory=lambda: np.zeros(3))
    up: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 1.0]))

    def look_at(self, target) -> None:
        """Point the camera at ``target``."""
        self.target = np.asarray(target, dtype=np.float64)

    @property
    def projection_matrix(self) -> np.ndarray:
        return perspective_matrix(
            math.radians(self.fov), self.width / self.height, self.near, self.far
        )

    @property
    def view_matrix(self) -> np.ndarray:
        up = np.asarray(self.up, dtype=np.float64)
        direction = np.asarray(self.target, dtype=np.float64) - np.asarray(self.position)
        # Fall back to +Y when looking straight along the up axis
        if np.linalg.norm(np.cross(direction, up)) < 1e-9 * max(np.linalg.norm(direction), 1.0):
            up = np.array([0.0, 1.0, 0.0])
        return look_at_matrix(self.position, self.target, up)
