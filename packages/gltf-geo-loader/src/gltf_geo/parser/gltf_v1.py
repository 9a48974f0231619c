# SPDX-License-Identifier: MIT
"""Decoder for glTF 1.0 documents.

Version 1 keys every top-level collection by string id instead of by
index. The decoder keeps declaration order, so ``nodes[i]`` of the result is
the i-th entry of the document's ``nodes`` object.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from gltf_geo.animation.animation_data import Animation
from gltf_geo.exceptions import MalformedContainerError
from gltf_geo.parser.accessors import mat4_array, read_accessor
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
from gltf_geo.scene.transforms import parse_transform_matrix

logger = logging.getLogger(__name__)

# Buffer id reserved by KHR_binary_glTF for the container body
BINARY_BUFFER_ID = "binary_glTF"

# Version 1 attribute semantics renamed to their version 2 equivalents
ATTRIBUTE_ALIASES = {
    "JOINT": "JOINTS_0",
    "WEIGHT": "WEIGHTS_0",
    "TEXCOORD": "TEXCOORD_0",
    "COLOR": "COLOR_0",
}


class GltfV1Decoder:
    """Turns a glTF 1.0 JSON document into an AssetDescription."""

    def __init__(self, root_path: str, document: dict[str, Any], resolver: BufferResolver):
        self._root_path = root_path
        self._doc = document
        self._resolver = resolver
        self._buffers: dict[str, bytes] = {}
        self._accessors: dict[str, Accessor] = {}

    def decode(self) -> AssetDescription:
        """Decode the whole document, resolving every id."""
        doc = self._doc

        mesh_data: dict[str, Any] = doc.get("meshes", {})
        meshes_by_id = {mesh_id: self._decode_mesh(mesh_id, m) for mesh_id, m in mesh_data.items()}
        meshes = list(meshes_by_id.values())

        node_data: dict[str, Any] = doc.get("nodes", {})
        nodes_by_id: dict[str, Node] = {}
        for index, (node_id, data) in enumerate(node_data.items()):
            node = build_node(index, data)
            node.name = data.get("name", node_id)
            nodes_by_id[node_id] = node
        nodes = list(nodes_by_id.values())

        link_children(
            nodes,
            [data.get("children", []) for data in node_data.values()],
            lambda ref: lookup(nodes_by_id, ref, "node"),
        )

        for node, data in zip(nodes, node_data.values()):
            mesh_refs = data.get("meshes", [])
            if len(mesh_refs) == 1:
                node.mesh = lookup(meshes_by_id, mesh_refs[0], "mesh")
            elif mesh_refs:
                node.mesh = self._merge_meshes(mesh_refs, meshes_by_id, meshes)

        skins_by_id: dict[str, Skin] = {}
        for skin_id, data in doc.get("skins", {}).items():
            skins_by_id[skin_id] = self._decode_skin(skin_id, data, node_data, nodes_by_id)

        for node, data in zip(nodes, node_data.values()):
            if "skin" not in data:
                continue
            skin = lookup(skins_by_id, data["skin"], "skin")
            if node.mesh is None:
                logger.warning("Node %s has a skin but no mesh; ignoring the skin", node.name)
                continue
            skeletons = data.get("skeletons", [])
            if skeletons:
                skin.skeleton = lookup(nodes_by_id, skeletons[0], "node")
            node.skin = skin

        animations = [
            self._decode_animation(anim_id, data, nodes_by_id)
            for anim_id, data in doc.get("animations", {}).items()
        ]

        scenes_by_id = {
            scene_id: Scene(
                nodes=[lookup(nodes_by_id, ref, "node") for ref in s.get("nodes", [])],
                name=s.get("name", scene_id),
            )
            for scene_id, s in doc.get("scenes", {}).items()
        }
        scenes = list(scenes_by_id.values())
        if "scene" in doc:
            scene = lookup(scenes_by_id, doc["scene"], "scene")
        elif scenes:
            scene = scenes[0]
        else:
            scene = Scene(nodes=[n for n in nodes if n.parent is None])

        return AssetDescription(
            version=FormatVersion.V1,
            nodes=nodes,
            meshes=meshes,
            skins=list(skins_by_id.values()),
            animations=animations,
            scenes=scenes,
            scene=scene,
            extensions=doc.get("extensions", {}),
            extras=doc.get("extras"),
            root_path=self._root_path,
        )

    def _buffer(self, buffer_id: str) -> bytes:
        if buffer_id not in self._buffers:
            data = lookup(self._doc.get("buffers", {}), buffer_id, "buffer")
            if buffer_id == BINARY_BUFFER_ID and self._resolver.binary_chunk is not None:
                self._buffers[buffer_id] = self._resolver.binary_chunk
            elif buffer_id == BINARY_BUFFER_ID or "uri" not in data:
                self._buffers[buffer_id] = self._resolver.resolve_binary_chunk(buffer_id)
            else:
                self._buffers[buffer_id] = self._resolver.resolve(data["uri"]).data
        return self._buffers[buffer_id]

    def accessor(self, accessor_id: str) -> Accessor:
        """Get a decoded accessor, decoding it on first use."""
        data = lookup(self._doc.get("accessors", {}), accessor_id, "accessor")
        if accessor_id in self._accessors:
            return self._accessors[accessor_id]

        view = lookup(self._doc.get("bufferViews", {}), data["bufferView"], "bufferView")
        buffer = self._buffer(view["buffer"])
        start = view.get("byteOffset", 0)
        length = view.get("byteLength", len(buffer) - start)
        if start + length > len(buffer):
            raise MalformedContainerError(
                f"bufferView {data['bufferView']} runs past the end of its buffer"
            )

        values = read_accessor(
            memoryview(buffer)[start : start + length],
            data.get("byteOffset", 0),
            data["componentType"],
            data["count"],
            data["type"],
            data.get("byteStride"),
        )
        accessor = Accessor(
            component_type=data["componentType"],
            count=data["count"],
            type=data["type"],
            data=values,
            name=data.get("name", accessor_id),
        )
        self._accessors[accessor_id] = accessor
        return accessor

    def _decode_mesh(self, mesh_id: str, data: dict[str, Any]) -> Mesh:
        primitives = []
        for prim in data.get("primitives", []):
            attributes = {
                ATTRIBUTE_ALIASES.get(name, name): self.accessor(ref)
                for name, ref in prim.get("attributes", {}).items()
            }
            indices = self.accessor(prim["indices"]) if "indices" in prim else None
            primitives.append(
                build_primitive(attributes, indices, prim.get("mode"), prim.get("material"))
            )
        return Mesh(name=data.get("name", mesh_id), primitives=primitives)

    def _merge_meshes(
        self,
        mesh_refs: list[str],
        meshes_by_id: dict[str, Mesh],
        meshes: list[Mesh],
    ) -> Mesh:
        """Version 1 nodes may list several meshes; draw them as one."""
        parts = [lookup(meshes_by_id, ref, "mesh") for ref in mesh_refs]
        merged = Mesh(
            name="+".join(str(p.name) for p in parts),
            primitives=[prim for part in parts for prim in part.primitives],
        )
        meshes.append(merged)
        return merged

    def _decode_skin(
        self,
        skin_id: str,
        data: dict[str, Any],
        node_data: dict[str, Any],
        nodes_by_id: dict[str, Node],
    ) -> Skin:
        # Joints are matched by the jointName property of nodes
        by_joint_name = {
            nd["jointName"]: nodes_by_id[node_id]
            for node_id, nd in node_data.items()
            if "jointName" in nd
        }
        joints = [lookup(by_joint_name, name, "joint") for name in data.get("jointNames", [])]

        if "inverseBindMatrices" in data:
            matrices = mat4_array(self.accessor(data["inverseBindMatrices"]).data)
            check_inverse_bind_matrices(matrices, len(joints))
        else:
            matrices = np.tile(np.eye(4), (len(joints), 1, 1))

        bind_shape = (
            parse_transform_matrix(data["bindShapeMatrix"])
            if "bindShapeMatrix" in data
            else np.eye(4)
        )
        return Skin(
            joints=joints,
            inverse_bind_matrices=matrices,
            bind_shape_matrix=bind_shape,
            name=data.get("name", skin_id),
        )

    def _decode_animation(
        self,
        anim_id: str,
        data: dict[str, Any],
        nodes_by_id: dict[str, Node],
    ) -> Animation:
        # Samplers name their input and output through the parameters table
        parameters = data.get("parameters", {})
        samplers = data.get("samplers", {})
        animation = Animation(name=data.get("name", anim_id))

        for channel_data in data.get("channels", []):
            target = channel_data.get("target", {})
            node = lookup(nodes_by_id, target.get("id"), "node")
            sampler = lookup(samplers, channel_data.get("sampler"), "animation sampler")
            times = self.accessor(lookup(parameters, sampler.get("input"), "animation parameter"))
            values = self.accessor(lookup(parameters, sampler.get("output"), "animation parameter"))
            channel = build_channel(
                node,
                target.get("path", ""),
                times,
                values,
                sampler.get("interpolation"),
            )
            if channel is not None:
                animation.add_channel(channel)

        return animation


def decode_v1(
    root_path: str,
    document: dict[str, Any],
    resolver: BufferResolver,
) -> AssetDescription:
    """Decode a glTF 1.0 document.

    Args:
        root_path: Prefix for relative buffer URIs
        document: Parsed JSON document
        resolver: Resolver for buffers (binary body, data URIs, transport)

    Returns:
        AssetDescription with all references resolved
    """
    return GltfV1Decoder(root_path, document, resolver).decode()
