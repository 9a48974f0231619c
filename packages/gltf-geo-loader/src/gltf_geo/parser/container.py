# SPDX-License-Identifier: MIT
"""Read binary glTF containers (GLB and KHR_binary_glTF)."""

from __future__ import annotations

import json
import struct
from dataclasses import dataclass
from typing import Any

from gltf_geo.exceptions import MalformedContainerError, UnsupportedVersionError

GLB_MAGIC = b"glTF"

HEADER_V1 = struct.Struct("<4sIIII")  # magic, version, length, contentLength, contentFormat
HEADER_V2 = struct.Struct("<4sII")  # magic, version, length
CHUNK_HEADER = struct.Struct("<II")  # chunkLength, chunkType

CHUNK_TYPE_JSON = 0x4E4F534A  # b"JSON"
CHUNK_TYPE_BIN = 0x004E4942  # b"BIN\0"

CONTENT_FORMAT_JSON = 0


@dataclass
class ContainerChunks:
    """JSON document and optional binary body extracted from a container."""

    version: int
    document: dict[str, Any]
    binary: bytes | None = None


def is_container(buffer: bytes, byte_offset: int = 0) -> bool:
    """Check whether ``buffer`` starts with the binary glTF magic."""
    return bytes(buffer[byte_offset : byte_offset + 4]) == GLB_MAGIC


def read_container(buffer: bytes | bytearray | memoryview, byte_offset: int = 0) -> ContainerChunks:
    """Split a binary container into its JSON document and binary chunk.

    Args:
        buffer: Bytes holding the container, possibly embedded in a larger blob
        byte_offset: Offset of the container header inside ``buffer``

    Returns:
        ContainerChunks with the decoded document

    Raises:
        MalformedContainerError: If the header or chunk lengths are inconsistent
        UnsupportedVersionError: If the container version is not 1 or 2
    """
    data = memoryview(buffer)[byte_offset:]

    if len(data) < HEADER_V2.size:
        raise MalformedContainerError("Container too small for header")

    magic, version, total_length = HEADER_V2.unpack_from(data, 0)
    if magic != GLB_MAGIC:
        raise MalformedContainerError(f"Bad container magic: {bytes(magic)!r}")
    if total_length > len(data) or total_length < HEADER_V2.size:
        raise MalformedContainerError(
            f"Container length {total_length} does not fit {len(data)} bytes"
        )
    data = data[:total_length]

    if version == 1:
        content, binary = _read_v1_chunks(data)
    elif version == 2:
        content, binary = _read_v2_chunks(data)
    else:
        raise UnsupportedVersionError(version)

    return ContainerChunks(version=version, document=_decode_document(content), binary=binary)


def _read_v1_chunks(data: memoryview) -> tuple[bytes, bytes | None]:
    """KHR_binary_glTF: fixed header, JSON content, then the binary body."""
    if len(data) < HEADER_V1.size:
        raise MalformedContainerError("Container too small for version 1 header")

    _, _, total_length, content_length, content_format = HEADER_V1.unpack_from(data, 0)
    if content_format != CONTENT_FORMAT_JSON:
        raise MalformedContainerError(f"Unknown content format: {content_format}")

    start = HEADER_V1.size
    end = start + content_length
    if end > total_length:
        raise MalformedContainerError("Content chunk runs past the container end")

    content = bytes(data[start:end])
    binary = bytes(data[end:total_length]) if end < total_length else None
    return content, binary


def _read_v2_chunks(data: memoryview) -> tuple[bytes, bytes | None]:
    """GLB 2.0: a sequence of length/type-prefixed chunks."""
    total_length = len(data)
    content: bytes | None = None
    binary: bytes | None = None

    offset = HEADER_V2.size
    while offset < total_length:
        if offset + CHUNK_HEADER.size > total_length:
            raise MalformedContainerError("Truncated chunk header")
        chunk_length, chunk_type = CHUNK_HEADER.unpack_from(data, offset)
        offset += CHUNK_HEADER.size
        if offset + chunk_length > total_length:
            raise MalformedContainerError("Truncated chunk data")
        chunk = bytes(data[offset : offset + chunk_length])
        offset += chunk_length

        # Unknown chunk types are skipped
        if chunk_type == CHUNK_TYPE_JSON and content is None:
            content = chunk
        elif chunk_type == CHUNK_TYPE_BIN and binary is None:
            binary = chunk

    if content is None:
        raise MalformedContainerError("Missing JSON chunk")
    return content, binary


def _decode_document(content: bytes) -> dict[str, Any]:
    try:
        # JSON chunks are space padded; some exporters pad with NUL instead
        document = json.loads(content.rstrip(b"\x00 ").decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedContainerError(f"Invalid JSON chunk: {e}") from e

    if not isinstance(document, dict):
        raise MalformedContainerError("JSON root is not an object")
    return document
