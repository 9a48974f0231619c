# SPDX-License-Identifier: MIT
"""Tests for scene module."""

import logging

import numpy as np
import pytest

from .conftest import unpack_matrix_uniform


class TestTransforms:
    """Tests for transform utilities."""

    def test_identity_transform(self):
        """Test creating identity transform."""
        from gltf_geo.scene.transforms import Transform

        t = Transform.identity()

        assert t.translation == (0.0, 0.0, 0.0)
        assert t.rotation == (0.0, 0.0, 0.0, 1.0)
        assert t.scale == (1.0, 1.0, 1.0)
        np.testing.assert_array_equal(t.to_matrix(), np.eye(4))

    def test_parse_transform_matrix_with_translation(self):
        """Test parsing a column-major matrix with translation."""
        from gltf_geo.scene.transforms import matrix_to_column_major, parse_transform_matrix

        # Column-major: last four values hold the translation column
        matrix = [1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, 1, 2, 3, 1]

        result = parse_transform_matrix(matrix)

        np.testing.assert_array_equal(result[:3, 3], [1, 2, 3])
        np.testing.assert_array_equal(matrix_to_column_major(result), matrix)

    def test_parse_transform_matrix_wrong_size(self):
        """Test rejecting a matrix with the wrong number of elements."""
        from gltf_geo.scene.transforms import parse_transform_matrix

        with pytest.raises(ValueError):
            parse_transform_matrix([1, 0, 0])

    def test_trs_composition_order(self):
        """Test that the model matrix scales, then rotates, then translates."""
        from gltf_geo.scene.transforms import Transform

        # 90 degrees about Z
        t = Transform(
            translation=(10.0, 0.0, 0.0),
            rotation=(0.0, 0.0, 0.7071067811865476, 0.7071067811865476),
            scale=(2.0, 2.0, 2.0),
        )

        point = t.to_matrix() @ np.array([1.0, 0.0, 0.0, 1.0])

        np.testing.assert_allclose(point, [10.0, 2.0, 0.0, 1.0], atol=1e-12)

    def test_matrix_to_trs_round_trip(self):
        """Test decomposing a composed matrix back into its parts."""
        from gltf_geo.scene.transforms import Transform, matrix_to_trs

        original = Transform(
            translation=(1.0, -2.0, 3.0),
            rotation=(0.0, 0.3826834323650898, 0.0, 0.9238795325112867),
            scale=(1.0, 2.0, 3.0),
        )

        result = matrix_to_trs(original.to_matrix())

        np.testing.assert_allclose(result.translation, original.translation, atol=1e-12)
        np.testing.assert_allclose(result.rotation, original.rotation, atol=1e-12)
        np.testing.assert_allclose(result.scale, original.scale, atol=1e-12)

    def test_invert_singular_matrix(self):
        """Test that inverting a singular matrix raises."""
        from gltf_geo.exceptions import NonInvertibleTransformError
        from gltf_geo.scene.transforms import invert_matrix

        with pytest.raises(NonInvertibleTransformError):
            invert_matrix(np.diag([1.0, 0.0, 1.0, 1.0]))

    def test_invert_small_scale_matrix(self):
        """Test that a tiny but regular scale is still invertible."""
        from gltf_geo.scene.transforms import invert_matrix

        matrix = np.diag([1e-4, 1e-4, 1e-4, 1.0])

        np.testing.assert_allclose(invert_matrix(matrix) @ matrix, np.eye(4), atol=1e-9)

    def test_slerp_halfway(self):
        """Test slerp between identity and a 90 degree turn."""
        from gltf_geo.scene.transforms import quaternion_slerp

        result = quaternion_slerp(
            [0.0, 0.0, 0.0, 1.0], [0.0, 0.0, 0.7071067811865476, 0.7071067811865476], 0.5
        )

        np.testing.assert_allclose(
            result, [0.0, 0.0, 0.3826834323650898, 0.9238795325112867], atol=1e-12
        )


class TestNodes:
    """Tests for the node hierarchy."""

    def test_world_matrix_three_levels(self):
        """Test that world matrices compose parent before child."""
        from gltf_geo.scene import Node

        grandparent = Node(index=0, translation=[1.0, 0.0, 0.0])
        parent = Node(index=1, rotation=[0.0, 0.0, 0.7071067811865476, 0.7071067811865476])
        child = Node(index=2, translation=[0.0, 0.0, 1.0], scale=[3.0, 3.0, 3.0])
        grandparent.add_child(parent)
        parent.add_child(child)

        expected = grandparent.model_matrix @ parent.model_matrix @ child.model_matrix

        np.testing.assert_allclose(child.world_matrix(), expected, atol=1e-12)
        assert child.parent is parent
        assert [n.index for n in grandparent.iter_tree()] == [0, 1, 2]

    def test_update_model_matrix(self):
        """Test recomputing the model matrix after changing TRS."""
        from gltf_geo.scene import Node

        node = Node(index=0)
        node.translation = np.array([4.0, 5.0, 6.0])

        np.testing.assert_array_equal(node.model_matrix, np.eye(4))
        node.update_model_matrix()
        np.testing.assert_array_equal(node.model_matrix[:3, 3], [4.0, 5.0, 6.0])

    def test_primitive_kind(self):
        """Test that only joints plus weights select the skinned variant."""
        from gltf_geo.scene import PrimitiveKind
        from gltf_geo.scene.nodes import primitive_kind

        assert primitive_kind({"POSITION": None}) == PrimitiveKind.STATIC
        assert primitive_kind({"POSITION": None, "JOINTS_0": None}) == PrimitiveKind.STATIC
        assert (
            primitive_kind({"POSITION": None, "JOINTS_0": None, "WEIGHTS_0": None})
            == PrimitiveKind.SKINNED
        )


class TestSceneGraphBuilder:
    """Tests for preparing draw state."""

    def test_prepare_static_primitive(self, two_node_document):
        """Test creating a program, buffers and uniforms for a static primitive."""
        from gltf_geo.parser import parse
        from gltf_geo.render import RecordingBackend, ShaderVariant
        from gltf_geo.scene import SceneGraphBuilder

        asset = parse("", two_node_document)
        backend = RecordingBackend()

        prepared = SceneGraphBuilder(backend).prepare(asset.scene)

        assert prepared == 1
        cache = asset.nodes[1].mesh.primitives[0].cache
        assert backend.resources[cache.program] == ("program", ShaderVariant.STATIC)
        assert list(cache.attributes) == ["POSITION"]
        assert cache.count == 3
        assert cache.index_component_type == 5123
        assert sorted(backend.uniform_names()) == [
            "u_modelMatrix",
            "u_projectionMatrix",
            "u_viewMatrix",
        ]

    def test_prepare_is_idempotent(self, two_node_document):
        """Test that preparing twice creates no new backend resources."""
        from gltf_geo.parser import parse
        from gltf_geo.render import RecordingBackend
        from gltf_geo.scene import SceneGraphBuilder

        asset = parse("", two_node_document)
        backend = RecordingBackend()
        builder = SceneGraphBuilder(backend)

        builder.prepare(asset.scene)
        created = len(backend.resources)
        assert builder.prepare(asset.scene) == 0

        assert len(backend.resources) == created

    def test_shared_mesh_prepared_once(self, builder):
        """Test that a mesh referenced by two nodes gets one cache."""
        from gltf_geo.parser import parse
        from gltf_geo.render import RecordingBackend
        from gltf_geo.scene import SceneGraphBuilder

        mesh = builder.add_triangle_mesh()
        builder.document["nodes"] = [{"mesh": mesh}, {"mesh": mesh}]
        asset = parse("", builder.embedded())
        backend = RecordingBackend()

        assert SceneGraphBuilder(backend).prepare(asset.scene) == 1
        assert backend.count_resources("program") == 1

    def test_prepare_skinned_primitive(self, skinned_document):
        """Test that skinned primitives get joint attributes and the joint uniform."""
        from gltf_geo.parser import parse
        from gltf_geo.render import RecordingBackend, ShaderVariant
        from gltf_geo.scene import SceneGraphBuilder

        document, _ = skinned_document
        asset = parse("", document)
        backend = RecordingBackend()

        SceneGraphBuilder(backend).prepare(asset.scene)

        cache = asset.nodes[0].mesh.primitives[0].cache
        assert backend.resources[cache.program][1] == ShaderVariant.SKINNED
        assert list(cache.attributes) == ["POSITION", "JOINTS_0", "WEIGHTS_0"]
        assert "u_jointMatrix" in cache.uniforms

    def test_release(self, two_node_document):
        """Test that release frees every handle and clears the caches."""
        from gltf_geo.parser import parse
        from gltf_geo.render import RecordingBackend
        from gltf_geo.scene import SceneGraphBuilder

        asset = parse("", two_node_document)
        backend = RecordingBackend()
        builder = SceneGraphBuilder(backend)
        builder.prepare(asset.scene)

        builder.release()

        assert sorted(backend.released) == sorted(backend.resources)
        assert not asset.nodes[1].mesh.primitives[0].is_prepared
        assert builder.prepared_primitives == []


class TestSkinning:
    """Tests for joint matrix evaluation."""

    def test_rest_pose_equals_inverse_bind(self, skinned_document):
        """Test that identity-posed joints yield the inverse bind matrices."""
        from gltf_geo.parser import parse
        from gltf_geo.scene import compute_joint_matrices

        document, inverse_bind = skinned_document
        asset = parse("", document)
        skin = asset.skins[0]

        data = compute_joint_matrices(skin, np.eye(4))

        assert data.dtype == np.float32
        assert data.shape == (32,)
        matrices = data.reshape(2, 4, 4).transpose(0, 2, 1)
        np.testing.assert_allclose(matrices, inverse_bind, atol=1e-6)
        assert skin.joint_matrix_data is data

    def test_joint_follows_pose(self):
        """Test that a moved joint moves its joint matrix."""
        from gltf_geo.scene import Node, Skin
        from gltf_geo.scene.skinning import joint_matrix_stack

        joint = Node(index=0, translation=[0.0, 1.0, 0.0])
        skin = Skin(joints=[joint], inverse_bind_matrices=np.eye(4)[None])
        mesh_world_inverse = np.eye(4)
        mesh_world_inverse[:3, 3] = [-5.0, 0.0, 0.0]

        stack = joint_matrix_stack(skin, mesh_world_inverse)

        np.testing.assert_allclose(stack[0][:3, 3], [-5.0, 1.0, 0.0])

    def test_bind_shape_matrix_applied_last(self):
        """Test that the bind shape matrix is the rightmost factor."""
        from gltf_geo.scene import Node, Skin
        from gltf_geo.scene.skinning import joint_matrix_stack

        joint = Node(index=0, rotation=[0.0, 0.0, 0.7071067811865476, 0.7071067811865476])
        bind_shape = np.eye(4)
        bind_shape[:3, 3] = [1.0, 0.0, 0.0]
        skin = Skin(joints=[joint], inverse_bind_matrices=np.eye(4)[None], bind_shape_matrix=bind_shape)

        stack = joint_matrix_stack(skin, np.eye(4))

        np.testing.assert_allclose(stack[0][:3, 3], [0.0, 1.0, 0.0], atol=1e-12)

    def test_safe_inverse_falls_back_to_identity(self, caplog):
        """Test that a singular world matrix logs and yields identity."""
        from gltf_geo.scene import safe_inverse

        with caplog.at_level(logging.WARNING, logger="gltf_geo.scene.skinning"):
            result = safe_inverse(np.zeros((4, 4)))

        np.testing.assert_array_equal(result, np.eye(4))
        assert "Non-invertible" in caplog.text


class TestRenderWalker:
    """Tests for draw traversal."""

    def test_draw_order_and_model_matrix(self, two_node_document):
        """Test that one draw is issued with geo @ root @ child."""
        from gltf_geo.parser import parse
        from gltf_geo.render import PerspectiveCamera, RecordingBackend
        from gltf_geo.scene import RenderWalker, SceneGraphBuilder

        asset = parse("", two_node_document)
        backend = RecordingBackend()
        SceneGraphBuilder(backend).prepare(asset.scene)
        geo = np.eye(4)
        geo[:3, 3] = [100.0, 0.0, 0.0]

        draws = RenderWalker(backend).draw(asset.scene.nodes[0], PerspectiveCamera(), geo_transform=geo)

        assert draws == 1
        root, child = asset.nodes
        expected = geo @ root.model_matrix @ child.model_matrix
        call = backend.draw_calls[0]
        np.testing.assert_allclose(
            unpack_matrix_uniform(call.uniforms["u_modelMatrix"]), expected, atol=1e-5
        )
        assert call.attributes == ["a_position"]
        assert call.count == 3

    def test_unprepared_primitive_is_skipped(self, two_node_document):
        """Test that drawing before preparation issues nothing."""
        from gltf_geo.parser import parse
        from gltf_geo.render import PerspectiveCamera, RecordingBackend
        from gltf_geo.scene import RenderWalker

        asset = parse("", two_node_document)
        backend = RecordingBackend()

        assert RenderWalker(backend).draw(asset.scene.nodes[0], PerspectiveCamera()) == 0
        assert backend.draw_calls == []

    def test_non_indexed_primitive_uses_draw_arrays(self, builder):
        """Test that a primitive without indices draws its vertices directly."""
        from gltf_geo.parser import parse
        from gltf_geo.render import PerspectiveCamera, RecordingBackend
        from gltf_geo.scene import RenderWalker, SceneGraphBuilder

        positions = builder.add_accessor([[0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 1, 0]])
        builder.document["meshes"] = [
            {"primitives": [{"attributes": {"POSITION": positions}, "mode": 5}]}
        ]
        builder.document["nodes"] = [{"mesh": 0}]
        asset = parse("", builder.embedded())
        backend = RecordingBackend()
        SceneGraphBuilder(backend).prepare(asset.scene)

        RenderWalker(backend).draw(asset.nodes[0], PerspectiveCamera())

        call = backend.draw_calls[0]
        assert call.component_type is None
        assert call.mode == 5
        assert call.count == 4

    def test_skinned_draw_sets_joint_uniform(self, skinned_document):
        """Test that skinned primitives receive the joint matrices."""
        from gltf_geo.parser import parse
        from gltf_geo.render import PerspectiveCamera, RecordingBackend
        from gltf_geo.scene import RenderWalker, SceneGraphBuilder

        document, inverse_bind = skinned_document
        asset = parse("", document)
        backend = RecordingBackend()
        SceneGraphBuilder(backend).prepare(asset.scene)

        RenderWalker(backend).draw(asset.nodes[0], PerspectiveCamera())

        joint_data = backend.draw_calls[0].uniforms["u_jointMatrix"]
        matrices = joint_data.reshape(2, 4, 4).transpose(0, 2, 1)
        np.testing.assert_allclose(matrices, inverse_bind, atol=1e-6)

    def test_matrix_uniforms_share_one_layout(self, skinned_document):
        """Test that camera, model and joint matrices are all flat column-major float32."""
        from gltf_geo.parser import parse
        from gltf_geo.render import PerspectiveCamera, RecordingBackend
        from gltf_geo.scene import RenderWalker, SceneGraphBuilder

        document, _ = skinned_document
        document["nodes"][0]["translation"] = [5.0, 6.0, 7.0]
        asset = parse("", document)
        backend = RecordingBackend()
        SceneGraphBuilder(backend).prepare(asset.scene)
        camera = PerspectiveCamera()

        RenderWalker(backend).draw(asset.nodes[0], camera)

        uniforms = backend.draw_calls[0].uniforms
        for name in ("u_modelMatrix", "u_viewMatrix", "u_projectionMatrix"):
            assert uniforms[name].dtype == np.float32
            assert uniforms[name].shape == (16,)
        assert uniforms["u_jointMatrix"].dtype == np.float32
        assert uniforms["u_jointMatrix"].shape == (32,)

        # Translation sits in the last column, elements 12..14
        np.testing.assert_allclose(uniforms["u_modelMatrix"][12:15], [5.0, 6.0, 7.0])
        np.testing.assert_allclose(
            unpack_matrix_uniform(uniforms["u_projectionMatrix"]),
            camera.projection_matrix,
            rtol=1e-6,
            atol=1e-6,
        )
        np.testing.assert_allclose(
            unpack_matrix_uniform(uniforms["u_viewMatrix"]), camera.view_matrix, rtol=1e-6, atol=1e-6
        )

    def test_singular_mesh_world_still_draws(self, skinned_document):
        """Test that a collapsed skinned node is drawn with identity inverse."""
        from gltf_geo.parser import parse
        from gltf_geo.render import PerspectiveCamera, RecordingBackend
        from gltf_geo.scene import RenderWalker, SceneGraphBuilder

        document, _ = skinned_document
        document["nodes"][0]["scale"] = [0.0, 0.0, 0.0]
        asset = parse("", document)
        backend = RecordingBackend()
        SceneGraphBuilder(backend).prepare(asset.scene)

        assert RenderWalker(backend).draw(asset.nodes[0], PerspectiveCamera()) == 1
