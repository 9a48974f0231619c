# SPDX-License-Identifier: MIT
"""Render boundary: backend protocol, recording backend, cameras."""

from .backend import BufferTarget, DrawCall, RecordingBackend, RenderBackend, ShaderVariant
from .camera import Camera, PerspectiveCamera, look_at_matrix, perspective_matrix

__all__ = [
    "BufferTarget",
    "Camera",
    "DrawCall",
    "PerspectiveCamera",
    "RecordingBackend",
    "RenderBackend",
    "ShaderVariant",
    "look_at_matrix",
    "perspective_matrix",
]
