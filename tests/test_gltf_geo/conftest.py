# SPDX-License-Identifier: MIT
"""Synthetic glTF documents shared by the gltf_geo tests."""

import base64
import json
import struct

import numpy as np
import pytest

COMPONENT_DTYPES = {
    5120: np.int8,
    5121: np.uint8,
    5122: np.int16,
    5123: np.uint16,
    5125: np.uint32,
    5126: np.float32,
}

TRIANGLE_POSITIONS = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]
TRIANGLE_INDICES = [0, 1, 2]


def pad4(data: bytes, fill: bytes = b"\x00") -> bytes:
    return data + fill * (-len(data) % 4)


def pack_glb(document: dict, binary: bytes | None = None) -> bytes:
    """Pack a document and binary body into a version 2 container."""
    content = pad4(json.dumps(document).encode("utf-8"), b" ")
    chunks = struct.pack("<II", len(content), 0x4E4F534A) + content
    if binary is not None:
        body = pad4(binary)
        chunks += struct.pack("<II", len(body), 0x004E4942) + body
    return struct.pack("<4sII", b"glTF", 2, 12 + len(chunks)) + chunks


def unpack_matrix_uniform(values: np.ndarray) -> np.ndarray:
    """Rebuild a 4x4 matrix from 16 column-major uniform values."""
    return np.asarray(values, dtype=np.float64).reshape(4, 4).T


def pack_glb_v1(document: dict, binary: bytes) -> bytes:
    """Pack a document and binary body into a KHR_binary_glTF container."""
    content = pad4(json.dumps(document).encode("utf-8"), b" ")
    total = 20 + len(content) + len(binary)
    return struct.pack("<4sIIII", b"glTF", 1, total, len(content), 0) + content + binary


class DocumentBuilder:
    """Assembles a glTF 2.0 document whose accessors share one buffer."""

    def __init__(self):
        self.document = {
            "asset": {"version": "2.0"},
            "buffers": [],
            "bufferViews": [],
            "accessors": [],
        }
        self.blob = bytearray()

    def add_accessor(self, values, component_type=5126, accessor_type="VEC3", **extra) -> int:
        array = np.asarray(values, dtype=COMPONENT_DTYPES[component_type])
        self.blob.extend(b"\x00" * (-len(self.blob) % 4))
        offset = len(self.blob)
        self.blob.extend(array.tobytes())

        self.document["bufferViews"].append(
            {"buffer": 0, "byteOffset": offset, "byteLength": array.nbytes}
        )
        accessor = {
            "bufferView": len(self.document["bufferViews"]) - 1,
            "componentType": component_type,
            "count": int(array.shape[0]),
            "type": accessor_type,
        }
        accessor.update(extra)
        self.document["accessors"].append(accessor)
        return len(self.document["accessors"]) - 1

    def add_triangle_mesh(self, **attributes) -> int:
        """Add a mesh with one indexed triangle; extra attributes by semantic."""
        prim_attributes = {"POSITION": self.add_accessor(TRIANGLE_POSITIONS)}
        prim_attributes.update(attributes)
        indices = self.add_accessor(TRIANGLE_INDICES, 5123, "SCALAR")
        meshes = self.document.setdefault("meshes", [])
        meshes.append({"primitives": [{"attributes": prim_attributes, "indices": indices}]})
        return len(meshes) - 1

    def embedded(self) -> dict:
        """The document with its buffer inlined as a base64 data URI."""
        encoded = base64.b64encode(bytes(self.blob)).decode("ascii")
        self.document["buffers"] = [
            {
                "byteLength": len(self.blob),
                "uri": f"data:application/octet-stream;base64,{encoded}",
            }
        ]
        return self.document

    def glb(self) -> bytes:
        """The document packed into a binary container with its buffer as BIN chunk."""
        self.document["buffers"] = [{"byteLength": len(self.blob)}]
        return pack_glb(self.document, bytes(self.blob))


@pytest.fixture
def builder():
    return DocumentBuilder()


@pytest.fixture
def two_node_document():
    """Root node with one child carrying a static triangle mesh."""
    doc = DocumentBuilder()
    mesh = doc.add_triangle_mesh()
    doc.document["nodes"] = [
        {"name": "root", "translation": [1.0, 2.0, 3.0], "children": [1]},
        {
            "name": "child",
            "translation": [0.0, 0.5, 0.0],
            "rotation": [0.0, 0.0, 0.7071067811865476, 0.7071067811865476],
            "scale": [2.0, 2.0, 2.0],
            "mesh": mesh,
        },
    ]
    doc.document["scenes"] = [{"nodes": [0]}]
    doc.document["scene"] = 0
    return doc.embedded()


@pytest.fixture
def skinned_document():
    """A skinned triangle driven by a two-joint chain at rest pose."""
    doc = DocumentBuilder()
    joints = doc.add_accessor([[0, 0, 0, 0], [1, 0, 0, 0], [1, 0, 0, 0]], 5121, "VEC4")
    weights = doc.add_accessor(
        [[1.0, 0.0, 0.0, 0.0], [1.0, 0.0, 0.0, 0.0], [1.0, 0.0, 0.0, 0.0]], 5126, "VEC4"
    )
    mesh = doc.add_triangle_mesh(JOINTS_0=joints, WEIGHTS_0=weights)

    inverse_bind = np.stack([np.eye(4), np.eye(4)])
    inverse_bind[0, :3, 3] = [-1.0, 0.0, 0.0]
    inverse_bind[1, :3, 3] = [0.0, -2.0, 0.0]
    # Stored column-major, one flattened matrix per element
    ibm = doc.add_accessor(inverse_bind.transpose(0, 2, 1).reshape(2, 16), 5126, "MAT4")

    doc.document["nodes"] = [
        {"name": "body", "mesh": mesh, "skin": 0},
        {"name": "hip", "children": [2]},
        {"name": "knee"},
    ]
    doc.document["skins"] = [{"joints": [1, 2], "inverseBindMatrices": ibm, "skeleton": 1}]
    doc.document["scenes"] = [{"nodes": [0, 1]}]
    return doc.embedded(), inverse_bind


@pytest.fixture
def animated_document():
    """One node animated on translation, rotation and scale."""
    doc = DocumentBuilder()
    mesh = doc.add_triangle_mesh()
    times = doc.add_accessor([0.0, 1.0, 2.0], 5126, "SCALAR")
    translations = doc.add_accessor([[0.0, 0.0, 0.0], [1.0, 2.0, 3.0], [4.0, 4.0, 4.0]])
    rotations = doc.add_accessor(
        [
            [0.0, 0.0, 0.0, 1.0],
            [0.0, 0.0, 0.7071067811865476, 0.7071067811865476],
            [0.0, 0.0, 1.0, 0.0],
        ],
        5126,
        "VEC4",
    )
    scales = doc.add_accessor([[1.0, 1.0, 1.0], [2.0, 2.0, 2.0], [0.5, 0.5, 0.5]])
    doc.document["nodes"] = [{"name": "mover", "mesh": mesh}]
    doc.document["animations"] = [
        {
            "name": "move",
            "samplers": [
                {"input": times, "output": translations},
                {"input": times, "output": rotations},
                {"input": times, "output": scales, "interpolation": "STEP"},
            ],
            "channels": [
                {"sampler": 0, "target": {"node": 0, "path": "translation"}},
                {"sampler": 1, "target": {"node": 0, "path": "rotation"}},
                {"sampler": 2, "target": {"node": 0, "path": "scale"}},
                {"sampler": 0, "target": {"node": 0, "path": "weights"}},
            ],
        }
    ]
    return doc.embedded()


@pytest.fixture
def v1_document():
    """A glTF 1.0 document keyed by ids, with a KHR_binary_glTF body."""
    positions = np.asarray(TRIANGLE_POSITIONS, dtype=np.float32).tobytes()
    indices = pad4(np.asarray(TRIANGLE_INDICES, dtype=np.uint16).tobytes())
    binary = positions + indices
    document = {
        "asset": {"version": "1.0"},
        "buffers": {"binary_glTF": {"byteLength": len(binary)}},
        "bufferViews": {
            "bv_positions": {"buffer": "binary_glTF", "byteOffset": 0, "byteLength": len(positions)},
            "bv_indices": {
                "buffer": "binary_glTF",
                "byteOffset": len(positions),
                "byteLength": 6,
            },
        },
        "accessors": {
            "acc_position": {
                "bufferView": "bv_positions",
                "byteOffset": 0,
                "componentType": 5126,
                "count": 3,
                "type": "VEC3",
            },
            "acc_indices": {
                "bufferView": "bv_indices",
                "byteOffset": 0,
                "componentType": 5123,
                "count": 3,
                "type": "SCALAR",
            },
        },
        "meshes": {
            "mesh_triangle": {
                "primitives": [
                    {"attributes": {"POSITION": "acc_position"}, "indices": "acc_indices"}
                ]
            }
        },
        "nodes": {
            "node_root": {"children": ["node_child"], "translation": [0.0, 0.0, 5.0]},
            "node_child": {
                "meshes": ["mesh_triangle"],
                "matrix": [1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, 3, 0, 0, 1],
            },
        },
        "scenes": {"defaultScene": {"nodes": ["node_root"]}},
        "scene": "defaultScene",
    }
    return document, binary
