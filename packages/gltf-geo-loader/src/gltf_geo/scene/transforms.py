# SPDX-License-Identifier: MIT
"""Matrix and quaternion utilities for glTF scene data.

Matrices are 4x4 numpy arrays acting on column vectors (``M @ v``). glTF
stores matrices column-major, so they are transposed on the way in and on
the way out to the render backend.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from gltf_geo.exceptions import NonInvertibleTransformError

# Determinant magnitude below which a matrix is treated as singular
SINGULAR_EPSILON = 1e-30


@dataclass
class Transform:
    """Decomposed transform with translation, rotation, and scale."""

    translation: tuple[float, float, float]
    rotation: tuple[float, float, float, float]  # Quaternion (x, y, z, w)
    scale: tuple[float, float, float]

    @classmethod
    def identity(cls) -> Transform:
        """Create an identity transform."""
        return cls(
            translation=(0.0, 0.0, 0.0),
            rotation=(0.0, 0.0, 0.0, 1.0),
            scale=(1.0, 1.0, 1.0),
        )

    def to_matrix(self) -> np.ndarray:
        """Compose ``T @ R @ S`` into a 4x4 affine matrix."""
        return (
            translation_matrix(self.translation)
            @ quaternion_to_matrix(self.rotation)
            @ scale_matrix(self.scale)
        )


def translation_matrix(translation) -> np.ndarray:
    """Build a 4x4 translation matrix."""
    matrix = np.eye(4, dtype=np.float64)
    matrix[:3, 3] = np.asarray(translation, dtype=np.float64)[:3]
    return matrix


def scale_matrix(scale) -> np.ndarray:
    """Build a 4x4 scale matrix from a scalar or a 3-vector."""
    factors = np.broadcast_to(np.asarray(scale, dtype=np.float64), (3,))
    return np.diag([factors[0], factors[1], factors[2], 1.0])


def rotation_x_matrix(angle: float) -> np.ndarray:
    """Rotation about +X by ``angle`` radians."""
    c, s = math.cos(angle), math.sin(angle)
    matrix = np.eye(4, dtype=np.float64)
    matrix[1, 1] = c
    matrix[1, 2] = -s
    matrix[2, 1] = s
    matrix[2, 2] = c
    return matrix


def rotation_z_matrix(angle: float) -> np.ndarray:
    """Rotation about +Z by ``angle`` radians."""
    c, s = math.cos(angle), math.sin(angle)
    matrix = np.eye(4, dtype=np.float64)
    matrix[0, 0] = c
    matrix[0, 1] = -s
    matrix[1, 0] = s
    matrix[1, 1] = c
    return matrix


def quaternion_to_matrix(rotation) -> np.ndarray:
    """Convert a quaternion (x, y, z, w) to a 4x4 rotation matrix."""
    x, y, z, w = (float(v) for v in rotation)
    return np.array(
        [
            [1 - 2 * y * y - 2 * z * z, 2 * x * y - 2 * z * w, 2 * x * z + 2 * y * w, 0],
            [2 * x * y + 2 * z * w, 1 - 2 * x * x - 2 * z * z, 2 * y * z - 2 * x * w, 0],
            [2 * x * z - 2 * y * w, 2 * y * z + 2 * x * w, 1 - 2 * x * x - 2 * y * y, 0],
            [0, 0, 0, 1],
        ],
        dtype=np.float64,
    )


def parse_transform_matrix(matrix_data: list[float] | np.ndarray) -> np.ndarray:
    """Parse a column-major 4x4 matrix from glTF format.

    Args:
        matrix_data: 16 floats in column-major order

    Returns:
        4x4 numpy array
    """
    data = np.asarray(matrix_data, dtype=np.float64).ravel()

    if len(data) != 16:
        raise ValueError(f"Expected 16 matrix elements, got {len(data)}")

    # Column-major to row-major conversion
    return data.reshape(4, 4).T.copy()


def matrix_to_column_major(matrix: np.ndarray) -> np.ndarray:
    """Flatten a 4x4 matrix into 16 column-major values."""
    return np.asarray(matrix, dtype=np.float64).T.ravel()


def matrix_to_trs(matrix: np.ndarray) -> Transform:
    """Decompose a 4x4 matrix into translation, rotation, scale.

    Args:
        matrix: 4x4 transformation matrix

    Returns:
        Transform with decomposed TRS
    """
    translation = (float(matrix[0, 3]), float(matrix[1, 3]), float(matrix[2, 3]))

    # Extract scale from column magnitudes
    sx = np.linalg.norm(matrix[:3, 0])
    sy = np.linalg.norm(matrix[:3, 1])
    sz = np.linalg.norm(matrix[:3, 2])

    # A mirrored basis carries its reflection in the x scale
    if np.linalg.det(matrix[:3, :3]) < 0:
        sx = -sx
    scale = (float(sx), float(sy), float(sz))

    rot_matrix = np.zeros((3, 3), dtype=np.float64)
    rot_matrix[:, 0] = matrix[:3, 0] / sx if abs(sx) > 1e-10 else matrix[:3, 0]
    rot_matrix[:, 1] = matrix[:3, 1] / sy if sy > 1e-10 else matrix[:3, 1]
    rot_matrix[:, 2] = matrix[:3, 2] / sz if sz > 1e-10 else matrix[:3, 2]

    return Transform(
        translation=translation,
        rotation=rotation_matrix_to_quaternion(rot_matrix),
        scale=scale,
    )


def rotation_matrix_to_quaternion(
    rot: np.ndarray,
) -> tuple[float, float, float, float]:
    """Convert a 3x3 rotation matrix to quaternion (x, y, z, w).

    Args:
        rot: 3x3 rotation matrix

    Returns:
        Quaternion as (x, y, z, w)
    """
    # Shepperd's method for numerical stability
    trace = rot[0, 0] + rot[1, 1] + rot[2, 2]

    if trace > 0:
        s = 0.5 / math.sqrt(trace + 1.0)
        w = 0.25 / s
        x = (rot[2, 1] - rot[1, 2]) * s
        y = (rot[0, 2] - rot[2, 0]) * s
        z = (rot[1, 0] - rot[0, 1]) * s
    elif rot[0, 0] > rot[1, 1] and rot[0, 0] > rot[2, 2]:
        s = 2.0 * math.sqrt(1.0 + rot[0, 0] - rot[1, 1] - rot[2, 2])
        w = (rot[2, 1] - rot[1, 2]) / s
        x = 0.25 * s
        y = (rot[0, 1] + rot[1, 0]) / s
        z = (rot[0, 2] + rot[2, 0]) / s
    elif rot[1, 1] > rot[2, 2]:
        s = 2.0 * math.sqrt(1.0 + rot[1, 1] - rot[0, 0] - rot[2, 2])
        w = (rot[0, 2] - rot[2, 0]) / s
        x = (rot[0, 1] + rot[1, 0]) / s
        y = 0.25 * s
        z = (rot[1, 2] + rot[2, 1]) / s
    else:
        s = 2.0 * math.sqrt(1.0 + rot[2, 2] - rot[0, 0] - rot[1, 1])
        w = (rot[1, 0] - rot[0, 1]) / s
        x = (rot[0, 2] + rot[2, 0]) / s
        y = (rot[1, 2] + rot[2, 1]) / s
        z = 0.25 * s

    return (float(x), float(y), float(z), float(w))


def quaternion_slerp(q0: np.ndarray, q1: np.ndarray, t: float) -> np.ndarray:
    """Spherical linear interpolation between two (x, y, z, w) quaternions."""
    q0 = np.asarray(q0, dtype=np.float64)
    q1 = np.asarray(q1, dtype=np.float64)

    dot = float(np.dot(q0, q1))
    # Take the short way round
    if dot < 0.0:
        q1 = -q1
        dot = -dot

    if dot > 0.9995:
        result = q0 + t * (q1 - q0)
    else:
        theta = math.acos(min(dot, 1.0))
        sin_theta = math.sin(theta)
        result = (
            math.sin((1.0 - t) * theta) / sin_theta * q0
            + math.sin(t * theta) / sin_theta * q1
        )

    return normalize_quaternion(result)


def normalize_quaternion(quat: np.ndarray) -> np.ndarray:
    """Return ``quat`` scaled to unit length (identity for a zero quaternion)."""
    quat = np.asarray(quat, dtype=np.float64)
    norm = np.linalg.norm(quat)
    if norm < 1e-12:
        return np.array([0.0, 0.0, 0.0, 1.0])
    return quat / norm


def invert_matrix(matrix: np.ndarray) -> np.ndarray:
    """Invert a 4x4 matrix.

    Raises:
        NonInvertibleTransformError: If the matrix is singular
    """
    det = np.linalg.det(matrix)
    if not np.isfinite(det) or abs(det) < SINGULAR_EPSILON:
        raise NonInvertibleTransformError(f"Matrix is singular (det={det})")
    try:
        inverse = np.linalg.inv(matrix)
    except np.linalg.LinAlgError as e:
        raise NonInvertibleTransformError(str(e)) from e
    return inverse
