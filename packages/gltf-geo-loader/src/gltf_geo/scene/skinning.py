# SPDX-License-Identifier: MIT
"""Joint matrix evaluation for skinned meshes."""

from __future__ import annotations

import logging

import numpy as np

from gltf_geo.exceptions import NonInvertibleTransformError
from gltf_geo.scene.nodes import Skin
from gltf_geo.scene.transforms import invert_matrix

logger = logging.getLogger(__name__)


def safe_inverse(matrix: np.ndarray) -> np.ndarray:
    """Invert ``matrix``, falling back to identity when it is singular.

    A singular mesh world matrix renders the skin visibly wrong but keeps
    the frame going.
    """
    try:
        return invert_matrix(matrix)
    except NonInvertibleTransformError as e:
        logger.warning("Non-invertible world matrix, using identity: %s", e)
        return np.eye(4)


def joint_matrix_stack(skin: Skin, mesh_world_inverse: np.ndarray) -> np.ndarray:
    """Compute the (n, 4, 4) joint matrices of ``skin`` in its current pose.

    Each joint gets ``mesh_world_inverse @ joint_world @ inverse_bind @
    bind_shape``.
    """
    count = len(skin.joints)
    stack = np.empty((count, 4, 4), dtype=np.float64)
    for i, joint in enumerate(skin.joints):
        stack[i] = (
            mesh_world_inverse
            @ joint.world_matrix()
            @ skin.inverse_bind_matrices[i]
            @ skin.bind_shape_matrix
        )
    return stack


def compute_joint_matrices(skin: Skin, mesh_world_inverse: np.ndarray) -> np.ndarray:
    """Refresh ``skin.joint_matrix_data`` for the current pose.

    Args:
        skin: Skin whose joints are posed by the node hierarchy
        mesh_world_inverse: Inverse world matrix of the skinned mesh's node

    Returns:
        Flat float32 buffer of column-major 4x4 matrices, one per joint
    """
    stack = joint_matrix_stack(skin, mesh_world_inverse)
    # Column-major per matrix, as the shader uniform expects
    skin.joint_matrix_data = stack.transpose(0, 2, 1).astype(np.float32).ravel()
    return skin.joint_matrix_data
