# SPDX-License-Identifier: MIT
"""Prepare backend draw state for every primitive of a scene."""

from __future__ import annotations

import logging
from typing import Any

from gltf_geo.render.backend import BufferTarget, RenderBackend, ShaderVariant
from gltf_geo.scene.nodes import Node, Primitive, PrimitiveKind, RenderCache, Scene

logger = logging.getLogger(__name__)

# Shader attribute name for each vertex semantic, per variant
VARIANT_ATTRIBUTES: dict[PrimitiveKind, dict[str, str]] = {
    PrimitiveKind.STATIC: {
        "POSITION": "a_position",
    },
    PrimitiveKind.SKINNED: {
        "POSITION": "a_position",
        "JOINTS_0": "a_joints_0",
        "WEIGHTS_0": "a_weights_0",
    },
}

VARIANT_SHADERS: dict[PrimitiveKind, ShaderVariant] = {
    PrimitiveKind.STATIC: ShaderVariant.STATIC,
    PrimitiveKind.SKINNED: ShaderVariant.SKINNED,
}

CAMERA_UNIFORMS = ("u_projectionMatrix", "u_viewMatrix", "u_modelMatrix")
JOINT_UNIFORM = "u_jointMatrix"


class SceneGraphBuilder:
    """Creates programs, buffers and uniform handles once per primitive."""

    def __init__(self, backend: RenderBackend):
        self._backend = backend
        self._prepared: list[Primitive] = []

    @property
    def prepared_primitives(self) -> list[Primitive]:
        return list(self._prepared)

    def prepare(self, scene: Scene) -> int:
        """Walk the scene depth-first and prepare every primitive.

        Primitives that already carry a render cache are skipped, so calling
        this twice, or reaching a mesh through several nodes, creates no
        additional backend resources.

        Returns:
            Number of primitives prepared by this call
        """
        before = len(self._prepared)
        for root in scene.nodes:
            self._prepare_node(root)
        count = len(self._prepared) - before
        logger.debug("Prepared %d primitives", count)
        return count

    def _prepare_node(self, node: Node) -> None:
        if node.mesh is not None:
            for primitive in node.mesh.primitives:
                self.prepare_primitive(primitive)
        for child in node.children:
            self._prepare_node(child)

    def prepare_primitive(self, primitive: Primitive) -> RenderCache:
        """Build the render cache of one primitive, unless it already has one."""
        if primitive.cache is not None:
            return primitive.cache

        backend = self._backend
        program = backend.create_program(VARIANT_SHADERS[primitive.kind])
        backend.use_program(program)

        attributes: dict[str, Any] = {}
        vertex_buffers: list[Any] = []
        for semantic, shader_name in VARIANT_ATTRIBUTES[primitive.kind].items():
            accessor = primitive.attributes.get(semantic)
            if accessor is None:
                continue
            buffer = backend.create_buffer(accessor.data, BufferTarget.ARRAY_BUFFER)
            vertex_buffers.append(buffer)
            attributes[semantic] = backend.link_attribute(program, buffer, shader_name, accessor)

        index_buffer = None
        index_component_type = None
        if primitive.indices is not None:
            index_buffer = backend.create_buffer(
                primitive.indices.data, BufferTarget.ELEMENT_ARRAY_BUFFER
            )
            index_component_type = primitive.indices.component_type
            count = primitive.indices.count
        else:
            count = primitive.vertex_count

        uniform_names = list(CAMERA_UNIFORMS)
        if primitive.kind == PrimitiveKind.SKINNED:
            uniform_names.append(JOINT_UNIFORM)
        uniforms = {name: backend.get_uniform(program, name) for name in uniform_names}

        primitive.cache = RenderCache(
            program=program,
            attributes=attributes,
            index_buffer=index_buffer,
            uniforms=uniforms,
            count=count,
            index_component_type=index_component_type,
            mode=primitive.mode,
            vertex_buffers=vertex_buffers,
        )
        self._prepared.append(primitive)
        return primitive.cache

    def release(self) -> None:
        """Release every handle created by this builder."""
        for primitive in self._prepared:
            cache = primitive.cache
            if cache is None:
                continue
            for handle in cache.handles():
                self._backend.release(handle)
            primitive.cache = None
        self._prepared.clear()
