# SPDX-License-Identifier: MIT
"""Version dispatch for glTF documents and containers."""

from __future__ import annotations

import logging
from typing import Any

from gltf_geo.exceptions import UnsupportedVersionError
from gltf_geo.parser.buffers import BufferResolver
from gltf_geo.parser.container import read_container
from gltf_geo.parser.gltf_v1 import decode_v1
from gltf_geo.parser.gltf_v2 import decode_v2
from gltf_geo.parser.transport import Transport
from gltf_geo.scene.nodes import AssetDescription, FormatVersion

logger = logging.getLogger(__name__)


def document_version(document: dict[str, Any]) -> FormatVersion:
    """Read the major format version of a document.

    ``asset.version`` is a string such as ``"2.0"``. Documents without an
    ``asset`` object predate the field and are treated as version 1.

    Raises:
        UnsupportedVersionError: For anything other than version 1 or 2
    """
    asset = document.get("asset")
    if asset is None:
        return FormatVersion.V1

    raw = asset.get("version", "1.0") if isinstance(asset, dict) else asset
    try:
        major = int(str(raw).strip().split(".")[0])
    except ValueError:
        raise UnsupportedVersionError(raw) from None

    try:
        return FormatVersion(major)
    except ValueError:
        raise UnsupportedVersionError(raw) from None


def parse(
    root_path: str,
    document: dict[str, Any],
    binary_chunk: bytes | None = None,
    transport: Transport | None = None,
) -> AssetDescription:
    """Decode a glTF document of either version.

    Args:
        root_path: Prefix joined with relative buffer URIs
        document: Parsed JSON document
        binary_chunk: Binary body when the document came from a container
        transport: Transport for external buffers (local files by default)

    Returns:
        Fully resolved AssetDescription

    Raises:
        UnsupportedVersionError: If the version is neither 1 nor 2
        MissingReferenceError: If the document references undefined objects
        TransportError: If an external buffer cannot be fetched
    """
    version = document_version(document)
    resolver = BufferResolver(root_path, binary_chunk=binary_chunk, transport=transport)
    logger.debug("Decoding glTF version %d document from %s", version, root_path or "<memory>")

    if version == FormatVersion.V2:
        return decode_v2(root_path, document, resolver)
    return decode_v1(root_path, document, resolver)


def parse_container(
    root_path: str,
    buffer: bytes | bytearray | memoryview,
    byte_offset: int = 0,
    transport: Transport | None = None,
) -> AssetDescription:
    """Read a binary container and decode its document.

    Raises:
        MalformedContainerError: If the container layout is inconsistent
    """
    chunks = read_container(buffer, byte_offset)
    return parse(root_path, chunks.document, chunks.binary, transport)
