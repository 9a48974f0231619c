# SPDX-License-Identifier: MIT
"""Depth-first draw traversal of the node hierarchy."""

from __future__ import annotations

import logging

import numpy as np

from gltf_geo.render.backend import RenderBackend
from gltf_geo.render.camera import Camera
from gltf_geo.scene.builder import JOINT_UNIFORM
from gltf_geo.scene.nodes import Node, PrimitiveKind
from gltf_geo.scene.skinning import compute_joint_matrices, safe_inverse
from gltf_geo.scene.transforms import matrix_to_column_major

logger = logging.getLogger(__name__)


def matrix_uniform(matrix: np.ndarray) -> np.ndarray:
    """Pack a 4x4 matrix the way the joint matrices are packed: 16 column-major float32."""
    return matrix_to_column_major(matrix).astype(np.float32)


class RenderWalker:
    """Composes world matrices and submits draw calls for a node tree."""

    def __init__(self, backend: RenderBackend):
        self._backend = backend

    def draw(
        self,
        node: Node,
        camera: Camera,
        parent_world: np.ndarray | None = None,
        geo_transform: np.ndarray | None = None,
    ) -> int:
        """Draw ``node`` and its descendants.

        The world matrix is passed down the recursion rather than stored on
        the node, so the same tree can be walked for several purposes.

        Args:
            node: Node to draw
            camera: Source of the projection and view matrices
            parent_world: World matrix of the parent, None for a root
            geo_transform: Placement matrix applied on top of every world matrix

        Returns:
            Number of draw calls issued
        """
        world = node.model_matrix if parent_world is None else parent_world @ node.model_matrix
        if geo_transform is None:
            geo_transform = np.eye(4)

        # Skin and mesh share this node; joints are expressed relative to it
        if node.skin is not None:
            compute_joint_matrices(node.skin, safe_inverse(world))

        draws = 0
        if node.mesh is not None:
            draws += self._draw_mesh(node, camera, world, geo_transform)

        for child in node.children:
            draws += self.draw(child, camera, world, geo_transform)
        return draws

    def _draw_mesh(
        self,
        node: Node,
        camera: Camera,
        world: np.ndarray,
        geo_transform: np.ndarray,
    ) -> int:
        backend = self._backend
        model = matrix_uniform(geo_transform @ world)
        projection = matrix_uniform(camera.projection_matrix)
        view = matrix_uniform(camera.view_matrix)

        draws = 0
        for primitive in node.mesh.primitives:
            cache = primitive.cache
            if cache is None:
                logger.warning("Skipping unprepared primitive of mesh %r", node.mesh.name)
                continue

            backend.use_program(cache.program)
            for attribute in cache.attributes.values():
                backend.bind_attribute(attribute)
            if cache.index_buffer is not None:
                backend.bind_index_buffer(cache.index_buffer)

            uniforms = cache.uniforms
            backend.set_uniform(uniforms["u_projectionMatrix"], projection)
            backend.set_uniform(uniforms["u_viewMatrix"], view)
            backend.set_uniform(uniforms["u_modelMatrix"], model)
            if primitive.kind == PrimitiveKind.SKINNED and node.skin is not None:
                backend.set_uniform(uniforms[JOINT_UNIFORM], node.skin.joint_matrix_data)

            if cache.index_buffer is not None:
                backend.draw_elements(cache.mode, cache.count, cache.index_component_type, 0)
            else:
                backend.draw_arrays(cache.mode, 0, cache.count)
            draws += 1

        return draws
