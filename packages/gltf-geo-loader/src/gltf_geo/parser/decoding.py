# SPDX-License-Identifier: MIT
"""Helpers shared by the version 1 and version 2 decoders."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

import numpy as np

from gltf_geo.animation.animation_data import (
    AnimationChannel,
    AnimationSampler,
    Interpolation,
    TargetPath,
)
from gltf_geo.exceptions import MalformedContainerError, MissingReferenceError
from gltf_geo.parser.accessors import normalize_integers
from gltf_geo.scene.nodes import Accessor, Node, Primitive, PrimitiveMode, primitive_kind
from gltf_geo.scene.transforms import matrix_to_trs, parse_transform_matrix

logger = logging.getLogger(__name__)

T = TypeVar("T")


def lookup(collection: Sequence[T] | Mapping[Any, T], reference: Any, kind: str) -> T:
    """Resolve an index (V2) or id (V1) into ``collection``.

    Raises:
        MissingReferenceError: If nothing is stored under ``reference``
    """
    if isinstance(collection, Mapping):
        if reference in collection:
            return collection[reference]
        raise MissingReferenceError(kind, reference)

    if isinstance(reference, bool) or not isinstance(reference, int):
        raise MissingReferenceError(kind, reference)
    if 0 <= reference < len(collection):
        return collection[reference]
    raise MissingReferenceError(kind, reference)


def build_node(index: int, data: Mapping[str, Any]) -> Node:
    """Create a node from its local transform fields.

    A ``matrix`` is decomposed into TRS so that animation channels can
    override individual components.
    """
    node = Node(index=index, name=data.get("name"))

    if "matrix" in data:
        transform = matrix_to_trs(parse_transform_matrix(data["matrix"]))
        node.translation = np.array(transform.translation)
        node.rotation = np.array(transform.rotation)
        node.scale = np.array(transform.scale)
    else:
        if "translation" in data:
            node.translation = np.asarray(data["translation"], dtype=np.float64)
        if "rotation" in data:
            node.rotation = np.asarray(data["rotation"], dtype=np.float64)
        if "scale" in data:
            node.scale = np.asarray(data["scale"], dtype=np.float64)

    node.update_model_matrix()
    return node


def link_children(nodes: Sequence[Node], child_refs: Sequence[Sequence[Any]], resolve) -> None:
    """Attach children to their parents.

    Args:
        nodes: Nodes in declaration order
        child_refs: For each node, the references of its children
        resolve: Callable mapping a child reference to a Node
    """
    for node, refs in zip(nodes, child_refs):
        for ref in refs:
            child = resolve(ref)
            if child.parent is not None:
                raise ValueError(f"Node {child.index} has more than one parent")
            node.add_child(child)


def build_primitive(
    attributes: dict[str, Accessor],
    indices: Accessor | None,
    mode: int | None,
    material: Any = None,
) -> Primitive:
    """Create a primitive and classify its shader variant once."""
    return Primitive(
        attributes=attributes,
        indices=indices,
        mode=PrimitiveMode(mode if mode is not None else PrimitiveMode.TRIANGLES),
        material=material,
        kind=primitive_kind(attributes),
    )


def build_channel(
    node: Node,
    path: str,
    times: Accessor,
    values: Accessor,
    interpolation: str | None,
) -> AnimationChannel | None:
    """Create an animation channel, or None for unsupported target paths.

    Raises:
        MalformedContainerError: If the sampler has no keyframes or its output
            count does not match its input count
    """
    try:
        target = TargetPath(path)
    except ValueError:
        logger.info("Skipping animation channel targeting %r on node %s", path, node.index)
        return None

    mode = Interpolation(interpolation or "LINEAR")
    key_count = len(times.data)
    if key_count == 0:
        raise MalformedContainerError(
            f"Animation channel on node {node.index} has no keyframes"
        )
    expected = key_count * 3 if mode == Interpolation.CUBICSPLINE else key_count
    if len(values.data) != expected:
        raise MalformedContainerError(
            f"Animation channel on node {node.index} has {len(values.data)} output "
            f"values for {key_count} keyframes, expected {expected}"
        )

    data = values.data
    if values.normalized:
        data = normalize_integers(data)

    sampler = AnimationSampler(
        times=times.data,
        values=data,
        interpolation=mode,
        is_rotation=target == TargetPath.ROTATION,
    )
    return AnimationChannel(node=node, path=target, sampler=sampler)


def check_inverse_bind_matrices(matrices: np.ndarray, joint_count: int) -> np.ndarray:
    """Ensure a skin has one inverse bind matrix per joint.

    Raises:
        MalformedContainerError: If there are fewer matrices than joints
    """
    if len(matrices) < joint_count:
        raise MalformedContainerError(
            f"Skin has fewer inverse bind matrices ({len(matrices)}) than joints ({joint_count})"
        )
    return matrices
