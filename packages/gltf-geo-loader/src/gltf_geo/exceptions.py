# SPDX-License-Identifier: MIT
"""Exceptions raised while loading and rendering geo-placed glTF assets."""

from __future__ import annotations


class GltfGeoError(Exception):
    """Base class for all gltf_geo errors."""


class UnsupportedVersionError(GltfGeoError, ValueError):
    """The document or container declares a version other than 1 or 2."""

    def __init__(self, version: object):
        super().__init__(f"Unsupported glTF version: {version!r}")
        self.version = version


class MalformedContainerError(GltfGeoError, ValueError):
    """A binary container, buffer view or accessor has an inconsistent layout.

    Raised for bad container headers and chunk tables, for views and accessors
    that run past their buffers, and for animation or skin data whose element
    counts do not line up.
    """


class MissingReferenceError(GltfGeoError, ValueError):
    """An index or id refers to an object the document does not define."""

    def __init__(self, kind: str, reference: object):
        super().__init__(f"Missing {kind} reference: {reference!r}")
        self.kind = kind
        self.reference = reference


class NonInvertibleTransformError(GltfGeoError):
    """A world matrix is singular and cannot be inverted."""


class TransportError(GltfGeoError):
    """Fetching a document or buffer through the transport failed."""
