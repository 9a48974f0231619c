# SPDX-License-Identifier: MIT
"""Resolve glTF buffer references to bytes."""

from __future__ import annotations

import base64
import logging
import re
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes

from gltf_geo.exceptions import MissingReferenceError
from gltf_geo.parser.transport import FileTransport, Transport

logger = logging.getLogger(__name__)

# Data URI pattern: data:<mimetype>;base64,<data>
DATA_URI_PATTERN = re.compile(r"data:([^;,]*)(?:;([^,]+))?,(.*)", re.DOTALL)


@dataclass
class ResolvedBuffer:
    """A resolved buffer with its decoded data."""

    mime_type: str
    data: bytes
    key: str


class BufferResolver:
    """Resolves buffer URIs against the binary chunk, data URIs or the transport."""

    def __init__(
        self,
        root_path: str,
        binary_chunk: bytes | None = None,
        transport: Transport | None = None,
    ):
        """Initialize the resolver.

        Args:
            root_path: Prefix joined with relative buffer URIs
            binary_chunk: Binary body of a container, if any
            transport: Transport for external buffers
        """
        self._root_path = root_path
        self._binary_chunk = binary_chunk
        self._transport = transport or FileTransport()
        self._cache: dict[str, ResolvedBuffer] = {}

    @property
    def binary_chunk(self) -> bytes | None:
        return self._binary_chunk

    def resolve_binary_chunk(self, reference: object) -> bytes:
        """Get the container's binary chunk.

        Raises:
            MissingReferenceError: If the asset was not loaded from a container
        """
        if self._binary_chunk is None:
            raise MissingReferenceError("binary chunk", reference)
        return self._binary_chunk

    def resolve(self, uri: str) -> ResolvedBuffer:
        """Resolve a buffer URI.

        Args:
            uri: A data URI or a path relative to the root path

        Returns:
            ResolvedBuffer with decoded data

        Raises:
            TransportError: If an external buffer cannot be fetched
            ValueError: If a data URI cannot be decoded
        """
        if uri in self._cache:
            return self._cache[uri]

        if uri.startswith("data:"):
            resolved = self._parse_data_uri(uri)
        else:
            url = self._root_path + unquote_to_bytes(uri).decode("utf-8")
            logger.debug("Fetching buffer %s", url)
            resolved = ResolvedBuffer(
                mime_type="application/octet-stream",
                data=self._transport.fetch(url),
                key=url,
            )

        self._cache[uri] = resolved
        return resolved

    def _parse_data_uri(self, data_uri: str) -> ResolvedBuffer:
        """Parse a data URI into its components."""
        match = DATA_URI_PATTERN.match(data_uri)
        if not match:
            raise ValueError(f"Malformed data URI: {data_uri[:40]}...")

        mime_type = match.group(1) or "application/octet-stream"
        encoding = match.group(2)
        data_str = match.group(3)

        try:
            if encoding == "base64":
                data = base64.b64decode(data_str, validate=False)
            else:
                data = unquote_to_bytes(data_str)
        except ValueError as e:
            raise ValueError(f"Failed to decode data URI: {e}") from e

        return ResolvedBuffer(mime_type=mime_type, data=data, key=data_uri[:64])
