# SPDX-License-Identifier: MIT
"""Scene representation module: nodes, draw preparation and traversal."""

from .builder import SceneGraphBuilder
from .nodes import (
    Accessor,
    AssetDescription,
    FormatVersion,
    Mesh,
    Node,
    Primitive,
    PrimitiveKind,
    PrimitiveMode,
    RenderCache,
    Scene,
    Skin,
)
from .skinning import compute_joint_matrices, safe_inverse
from .transforms import (
    Transform,
    invert_matrix,
    matrix_to_trs,
    parse_transform_matrix,
)
from .walker import RenderWalker

__all__ = [
    "Accessor",
    "AssetDescription",
    "FormatVersion",
    "Mesh",
    "Node",
    "Primitive",
    "PrimitiveKind",
    "PrimitiveMode",
    "RenderCache",
    "RenderWalker",
    "Scene",
    "SceneGraphBuilder",
    "Skin",
    "Transform",
    "compute_joint_matrices",
    "invert_matrix",
    "matrix_to_trs",
    "parse_transform_matrix",
    "safe_inverse",
]
