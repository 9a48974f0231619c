# SPDX-License-Identifier: MIT
"""Parser module for glTF documents and binary containers."""

from .buffers import BufferResolver
from .container import ContainerChunks, is_container, read_container
from .gltf_parser import document_version, parse, parse_container
from .transport import FileTransport, MemoryTransport, Transport, fetch_json

__all__ = [
    "BufferResolver",
    "ContainerChunks",
    "FileTransport",
    "MemoryTransport",
    "Transport",
    "document_version",
    "fetch_json",
    "is_container",
    "parse",
    "parse_container",
    "read_container",
]
