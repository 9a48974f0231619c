# SPDX-License-Identifier: MIT
"""Transport boundary used to fetch documents and external buffers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

from gltf_geo.exceptions import TransportError


class Transport(Protocol):
    """Fetches raw bytes for a URL or path."""

    def fetch(self, url: str) -> bytes: ...


class FileTransport:
    """Transport that reads from the local filesystem."""

    def fetch(self, url: str) -> bytes:
        """Read the file at ``url``.

        Raises:
            TransportError: If the file cannot be read
        """
        path = Path(url.removeprefix("file://"))
        try:
            return path.read_bytes()
        except OSError as e:
            raise TransportError(f"Failed to read {path}: {e}") from e


class MemoryTransport:
    """Transport serving bytes from a dictionary, keyed by URL."""

    def __init__(self, files: dict[str, bytes] | None = None):
        self._files = dict(files or {})
        self.requests: list[str] = []

    def add(self, url: str, data: bytes) -> None:
        self._files[url] = data

    def fetch(self, url: str) -> bytes:
        self.requests.append(url)
        try:
            return self._files[url]
        except KeyError:
            raise TransportError(f"No such resource: {url}") from None


def fetch_json(transport: Transport, url: str) -> dict[str, Any]:
    """Fetch ``url`` and decode it as a JSON object.

    Raises:
        TransportError: If the body is not a JSON object
    """
    body = transport.fetch(url)
    try:
        document = json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise TransportError(f"Invalid JSON document at {url}: {e}") from e
    if not isinstance(document, dict):
        raise TransportError(f"JSON document at {url} is not an object")
    return document
