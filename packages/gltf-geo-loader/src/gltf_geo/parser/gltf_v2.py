# SPDX-License-Identifier: MIT
"""Decoder for glTF 2.0 documents."""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from gltf_geo.animation.animation_data import Animation
from gltf_geo.exceptions import MalformedContainerError
from gltf_geo.parser.accessors import (
    component_count,
    component_dtype,
    mat4_array,
    read_accessor,
)
from gltf_geo.parser.buffers import BufferResolver
from gltf_geo.parser.decoding import (
    build_channel,
    build_node,
    build_primitive,
    check_inverse_bind_matrices,
    link_children,
    lookup,
)
from gltf_geo.scene.nodes import (
    Accessor,
    AssetDescription,
    FormatVersion,
    Mesh,
    Node,
    Scene,
    Skin,
)

logger = logging.getLogger(__name__)


class GltfV2Decoder:
    """Turns a glTF 2.0 JSON document into an AssetDescription."""

    def __init__(self, root_path: str, document: dict[str, Any], resolver: BufferResolver):
        self._root_path = root_path
        self._doc = document
        self._resolver = resolver
        self._buffers: dict[int, bytes] = {}
        self._accessors: dict[int, Accessor] = {}

    def decode(self) -> AssetDescription:
        """Decode the whole document, resolving every reference."""
        doc = self._doc

        meshes = [self._decode_mesh(m) for m in doc.get("meshes", [])]

        node_data = doc.get("nodes", [])
        nodes = [build_node(i, data) for i, data in enumerate(node_data)]
        link_children(
            nodes,
            [data.get("children", []) for data in node_data],
            lambda ref: lookup(nodes, ref, "node"),
        )
        for node, data in zip(nodes, node_data):
            if "mesh" in data:
                node.mesh = lookup(meshes, data["mesh"], "mesh")

        skins = [self._decode_skin(s, nodes) for s in doc.get("skins", [])]
        for node, data in zip(nodes, node_data):
            if "skin" not in data:
                continue
            skin = lookup(skins, data["skin"], "skin")
            if node.mesh is None:
                logger.warning("Node %s has a skin but no mesh; ignoring the skin", node.index)
                continue
            node.skin = skin

        animations = [self._decode_animation(a, nodes) for a in doc.get("animations", [])]

        scenes = [
            Scene(
                nodes=[lookup(nodes, ref, "node") for ref in s.get("nodes", [])],
                name=s.get("name"),
            )
            for s in doc.get("scenes", [])
        ]
        if "scene" in doc:
            scene = lookup(scenes, doc["scene"], "scene")
        elif scenes:
            scene = scenes[0]
        else:
            # No scenes declared: every parentless node is a root
            scene = Scene(nodes=[n for n in nodes if n.parent is None])

        return AssetDescription(
            version=FormatVersion.V2,
            nodes=nodes,
            meshes=meshes,
            skins=skins,
            animations=animations,
            scenes=scenes,
            scene=scene,
            extensions=doc.get("extensions", {}),
            extras=doc.get("extras"),
            root_path=self._root_path,
        )

    def _buffer(self, index: int) -> bytes:
        if index not in self._buffers:
            data = lookup(self._doc.get("buffers", []), index, "buffer")
            uri = data.get("uri")
            if uri is None:
                self._buffers[index] = self._resolver.resolve_binary_chunk(f"buffers[{index}]")
            else:
                self._buffers[index] = self._resolver.resolve(uri).data
        return self._buffers[index]

    def _buffer_view(self, index: int) -> tuple[memoryview, int | None]:
        view = lookup(self._doc.get("bufferViews", []), index, "bufferView")
        buffer = self._buffer(view.get("buffer"))
        start = view.get("byteOffset", 0)
        end = start + view["byteLength"]
        if end > len(buffer):
            raise MalformedContainerError(f"bufferView {index} runs past the end of its buffer")
        return memoryview(buffer)[start:end], view.get("byteStride")

    def accessor(self, index: Any) -> Accessor:
        """Get a decoded accessor, decoding it on first use."""
        data = lookup(self._doc.get("accessors", []), index, "accessor")
        if index in self._accessors:
            return self._accessors[index]

        component_type = data["componentType"]
        count = data["count"]
        accessor_type = data["type"]

        if "bufferView" in data:
            view, stride = self._buffer_view(data["bufferView"])
            values = read_accessor(
                view,
                data.get("byteOffset", 0),
                component_type,
                count,
                accessor_type,
                stride,
            )
        else:
            components = component_count(accessor_type)
            shape = (count,) if components == 1 else (count, components)
            values = np.zeros(shape, dtype=component_dtype(component_type))

        if "sparse" in data:
            values = self._apply_sparse(values, data["sparse"], component_type, accessor_type)

        accessor = Accessor(
            component_type=component_type,
            count=count,
            type=accessor_type,
            data=values,
            normalized=data.get("normalized", False),
            name=data.get("name"),
        )
        self._accessors[index] = accessor
        return accessor

    def _apply_sparse(
        self,
        values: np.ndarray,
        sparse: dict[str, Any],
        component_type: int,
        accessor_type: str,
    ) -> np.ndarray:
        """Substitute the sparse elements into a copy of ``values``."""
        count = sparse["count"]
        idx = sparse["indices"]
        idx_view, _ = self._buffer_view(idx["bufferView"])
        positions = read_accessor(
            idx_view, idx.get("byteOffset", 0), idx["componentType"], count, "SCALAR"
        )
        val = sparse["values"]
        val_view, _ = self._buffer_view(val["bufferView"])
        substitutes = read_accessor(
            val_view, val.get("byteOffset", 0), component_type, count, accessor_type
        )

        result = values.copy()
        result[positions.astype(np.int64)] = substitutes
        return result

    def _decode_mesh(self, data: dict[str, Any]) -> Mesh:
        primitives = []
        for prim in data.get("primitives", []):
            attributes = {
                name: self.accessor(ref) for name, ref in prim.get("attributes", {}).items()
            }
            indices = self.accessor(prim["indices"]) if "indices" in prim else None
            primitives.append(
                build_primitive(attributes, indices, prim.get("mode"), prim.get("material"))
            )
        return Mesh(name=data.get("name"), primitives=primitives)

    def _decode_skin(self, data: dict[str, Any], nodes: list[Node]) -> Skin:
        joints = [lookup(nodes, ref, "node") for ref in data.get("joints", [])]
        if "inverseBindMatrices" in data:
            matrices = mat4_array(self.accessor(data["inverseBindMatrices"]).data)
            check_inverse_bind_matrices(matrices, len(joints))
        else:
            matrices = np.tile(np.eye(4), (len(joints), 1, 1))

        skeleton = lookup(nodes, data["skeleton"], "node") if "skeleton" in data else None
        return Skin(
            joints=joints,
            inverse_bind_matrices=matrices,
            skeleton=skeleton,
            name=data.get("name"),
        )

    def _decode_animation(self, data: dict[str, Any], nodes: list[Node]) -> Animation:
        samplers = data.get("samplers", [])
        animation = Animation(name=data.get("name"))

        for channel_data in data.get("channels", []):
            target = channel_data.get("target", {})
            sampler = lookup(samplers, channel_data.get("sampler"), "animation sampler")
            if "node" not in target:
                # Targets supplied only through extensions
                continue
            node = lookup(nodes, target["node"], "node")
            channel = build_channel(
                node,
                target.get("path", ""),
                self.accessor(sampler["input"]),
                self.accessor(sampler["output"]),
                sampler.get("interpolation"),
            )
            if channel is not None:
                animation.add_channel(channel)

        return animation


def decode_v2(
    root_path: str,
    document: dict[str, Any],
    resolver: BufferResolver,
) -> AssetDescription:
    """Decode a glTF 2.0 document.

    Args:
        root_path: Prefix for relative buffer URIs
        document: Parsed JSON document
        resolver: Resolver for buffers (binary chunk, data URIs, transport)

    Returns:
        AssetDescription with all references resolved
    """
    return GltfV2Decoder(root_path, document, resolver).decode()
