# SPDX-License-Identifier: MIT
"""In-memory description of a decoded glTF asset."""

from __future__ import annotations

import weakref
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any

import numpy as np

from gltf_geo.scene.transforms import Transform

if TYPE_CHECKING:
    from gltf_geo.animation.animation_data import Animation


class FormatVersion(IntEnum):
    """Major glTF format version."""

    V1 = 1
    V2 = 2


class PrimitiveMode(IntEnum):
    """Draw topology of a primitive (values match the GL enums)."""

    POINTS = 0
    LINES = 1
    LINE_LOOP = 2
    LINE_STRIP = 3
    TRIANGLES = 4
    TRIANGLE_STRIP = 5
    TRIANGLE_FAN = 6


class PrimitiveKind(Enum):
    """Shader variant a primitive is drawn with."""

    STATIC = "static"
    SKINNED = "skinned"


def primitive_kind(attributes: dict[str, Any]) -> PrimitiveKind:
    """Skinned iff the primitive carries both joint and weight attributes."""
    if "JOINTS_0" in attributes and "WEIGHTS_0" in attributes:
        return PrimitiveKind.SKINNED
    return PrimitiveKind.STATIC


@dataclass(eq=False)
class Accessor:
    """A typed view over buffer data, already decoded to numpy."""

    component_type: int
    count: int
    type: str  # SCALAR, VEC2, VEC3, VEC4, MAT2, MAT3, MAT4
    data: np.ndarray
    normalized: bool = False
    name: str | None = None

    @property
    def num_components(self) -> int:
        """Components per element (1 for SCALAR, 16 for MAT4)."""
        return 1 if self.data.ndim == 1 else int(self.data.shape[1])


@dataclass(eq=False)
class RenderCache:
    """Backend handles created once for a primitive."""

    program: Any
    attributes: dict[str, Any]
    index_buffer: Any
    uniforms: dict[str, Any]
    count: int
    index_component_type: int | None
    mode: PrimitiveMode
    vertex_buffers: list[Any] = field(default_factory=list)

    def handles(self) -> list[Any]:
        """All handles owned by this cache, the program last."""
        handles = [*self.uniforms.values(), *self.attributes.values(), *self.vertex_buffers]
        if self.index_buffer is not None:
            handles.append(self.index_buffer)
        handles.append(self.program)
        return handles


@dataclass(eq=False)
class Primitive:
    """A drawable part of a mesh."""

    attributes: dict[str, Accessor]
    indices: Accessor | None = None
    mode: PrimitiveMode = PrimitiveMode.TRIANGLES
    material: int | None = None
    kind: PrimitiveKind = PrimitiveKind.STATIC
    cache: RenderCache | None = None

    @property
    def is_prepared(self) -> bool:
        return self.cache is not None

    @property
    def vertex_count(self) -> int:
        position = self.attributes.get("POSITION")
        return position.count if position is not None else 0


@dataclass(eq=False)
class Mesh:
    """A named, ordered list of primitives shared between nodes."""

    name: str | None
    primitives: list[Primitive] = field(default_factory=list)


@dataclass(eq=False)
class Skin:
    """Joints and inverse bind matrices driving vertex deformation."""

    joints: list[Node]
    inverse_bind_matrices: np.ndarray  # (n, 4, 4)
    bind_shape_matrix: np.ndarray = field(default_factory=lambda: np.eye(4))
    skeleton: Node | None = None
    name: str | None = None
    joint_matrix_data: np.ndarray = field(
        default_factory=lambda: np.zeros(0, dtype=np.float32)
    )


@dataclass(eq=False)
class Node:
    """A node in the asset hierarchy.

    ``model_matrix`` always equals ``T @ R @ S`` of the local transform; call
    :meth:`update_model_matrix` after changing the TRS fields.
    """

    index: int
    name: str | None = None
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))
    rotation: np.ndarray = field(default_factory=lambda: np.array([0.0, 0.0, 0.0, 1.0]))
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    children: list[Node] = field(default_factory=list)
    mesh: Mesh | None = None
    skin: Skin | None = None
    model_matrix: np.ndarray = field(default_factory=lambda: np.eye(4))
    _parent: weakref.ref | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.translation = np.asarray(self.translation, dtype=np.float64)
        self.rotation = np.asarray(self.rotation, dtype=np.float64)
        self.scale = np.asarray(self.scale, dtype=np.float64)
        self.update_model_matrix()

    @property
    def parent(self) -> Node | None:
        return self._parent() if self._parent is not None else None

    def add_child(self, child: Node) -> None:
        """Append ``child`` and point its parent reference here."""
        self.children.append(child)
        child._parent = weakref.ref(self)

    def update_model_matrix(self) -> np.ndarray:
        """Recompute the local matrix from translation, rotation, scale."""
        self.model_matrix = Transform(
            translation=tuple(self.translation),
            rotation=tuple(self.rotation),
            scale=tuple(self.scale),
        ).to_matrix()
        return self.model_matrix

    def world_matrix(self) -> np.ndarray:
        """Get the world matrix by combining all ancestor model matrices.

        Returns:
            4x4 matrix from this node's space to asset space
        """
        matrix = self.model_matrix
        node = self.parent
        while node is not None:
            matrix = node.model_matrix @ matrix
            node = node.parent
        return matrix

    def iter_tree(self):
        """Yield this node and its descendants depth-first, parents first."""
        yield self
        for child in self.children:
            yield from child.iter_tree()


@dataclass(eq=False)
class Scene:
    """A set of root nodes."""

    nodes: list[Node] = field(default_factory=list)
    name: str | None = None


@dataclass(eq=False)
class AssetDescription:
    """Complete decoded asset, produced once per load."""

    version: FormatVersion
    nodes: list[Node] = field(default_factory=list)
    meshes: list[Mesh] = field(default_factory=list)
    skins: list[Skin] = field(default_factory=list)
    animations: list[Animation] = field(default_factory=list)
    scenes: list[Scene] = field(default_factory=list)
    scene: Scene = field(default_factory=Scene)
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None
    root_path: str = ""

    def get_mesh_nodes(self) -> list[Node]:
        """Get all nodes that reference a mesh."""
        return [n for n in self.nodes if n.mesh is not None]

    def get_primitives(self) -> list[Primitive]:
        """Get every primitive of every mesh, in declaration order."""
        return [p for mesh in self.meshes for p in mesh.primitives]
