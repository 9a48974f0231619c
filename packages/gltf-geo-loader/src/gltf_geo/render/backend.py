# SPDX-License-Identifier: MIT
"""Render backend boundary and an in-memory recording implementation."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TYPE_CHECKING, Any, Protocol

import numpy as np

if TYPE_CHECKING:
    from gltf_geo.scene.nodes import Accessor

logger = logging.getLogger(__name__)


class ShaderVariant(Enum):
    """The two fixed shader programs glTF primitives are drawn with."""

    STATIC = "gltf-noskin"
    SKINNED = "gltf-skin"


class BufferTarget(IntEnum):
    """Buffer binding targets (values match the GL enums)."""

    ARRAY_BUFFER = 34962
    ELEMENT_ARRAY_BUFFER = 34963


class RenderBackend(Protocol):
    """Draw-call submission surface the scene renders into.

    Handles are opaque to the caller. Calls are synchronous from the caller's
    point of view.

    Every matrix uniform passed to ``set_uniform`` is a flat float32 array of
    column-major 4x4 matrices: 16 values for the model, view and projection
    matrices, 16 per joint for the joint matrix array. A GL backend uploads it
    unchanged with ``transpose=False``.
    """

    def create_program(self, variant: ShaderVariant) -> Any: ...

    def create_buffer(self, data: np.ndarray, target: BufferTarget) -> Any: ...

    def link_attribute(self, program: Any, buffer: Any, name: str, accessor: Accessor) -> Any: ...

    def get_uniform(self, program: Any, name: str) -> Any: ...

    def use_program(self, program: Any) -> None: ...

    def bind_attribute(self, attribute: Any) -> None: ...

    def bind_index_buffer(self, buffer: Any) -> None: ...

    def set_uniform(self, uniform: Any, value: np.ndarray) -> None: ...

    def draw_elements(self, mode: int, count: int, component_type: int, offset: int) -> None: ...

    def draw_arrays(self, mode: int, first: int, count: int) -> None: ...

    def release(self, handle: Any) -> None: ...


@dataclass
class DrawCall:
    """A draw submitted to the recording backend."""

    program: int
    variant: ShaderVariant
    mode: int
    count: int
    component_type: int | None
    offset: int
    attributes: list[str]
    uniforms: dict[str, np.ndarray] = field(default_factory=dict)


class RecordingBackend:
    """Backend that records resources and draw calls instead of rasterizing.

    Used headless by the CLI and by tests. Handles are increasing integers.
    """

    def __init__(self):
        self._ids = itertools.count(1)
        self.resources: dict[int, tuple[str, Any]] = {}
        self.released: list[int] = []
        self.draw_calls: list[DrawCall] = []
        self._uniform_values: dict[int, dict[str, np.ndarray]] = {}
        self._current_program: int | None = None
        self._bound_attributes: list[str] = []
        self._bound_index_buffer: int | None = None

    def _new_handle(self, kind: str, info: Any) -> int:
        handle = next(self._ids)
        self.resources[handle] = (kind, info)
        return handle

    def _kind(self, handle: int) -> str:
        if handle not in self.resources:
            raise KeyError(f"Unknown handle: {handle}")
        return self.resources[handle][0]

    def create_program(self, variant: ShaderVariant) -> int:
        handle = self._new_handle("program", variant)
        self._uniform_values[handle] = {}
        return handle

    def create_buffer(self, data: np.ndarray, target: BufferTarget) -> int:
        return self._new_handle("buffer", (target, np.array(data, copy=True)))

    def link_attribute(self, program: int, buffer: int, name: str, accessor: Accessor) -> int:
        self._kind(program)
        self._kind(buffer)
        return self._new_handle("attribute", (program, buffer, name, accessor.num_components))

    def get_uniform(self, program: int, name: str) -> int:
        self._kind(program)
        return self._new_handle("uniform", (program, name))

    def use_program(self, program: int) -> None:
        if self._kind(program) != "program":
            raise ValueError(f"Handle {program} is not a program")
        self._current_program = program
        self._bound_attributes = []
        self._bound_index_buffer = None

    def bind_attribute(self, attribute: int) -> None:
        _, _, name, _ = self.resources[attribute][1]
        self._bound_attributes.append(name)

    def bind_index_buffer(self, buffer: int) -> None:
        self._kind(buffer)
        self._bound_index_buffer = buffer

    def set_uniform(self, uniform: int, value: np.ndarray) -> None:
        program, name = self.resources[uniform][1]
        self._uniform_values[program][name] = np.array(value, copy=True)

    def draw_elements(self, mode: int, count: int, component_type: int, offset: int) -> None:
        if self._bound_index_buffer is None:
            raise RuntimeError("draw_elements called without an index buffer bound")
        self._record_draw(mode, count, component_type, offset)

    def draw_arrays(self, mode: int, first: int, count: int) -> None:
        self._record_draw(mode, count, None, first)

    def _record_draw(self, mode: int, count: int, component_type: int | None, offset: int) -> None:
        program = self._current_program
        if program is None:
            raise RuntimeError("Draw issued without a program in use")
        self.draw_calls.append(
            DrawCall(
                program=program,
                variant=self.resources[program][1],
                mode=int(mode),
                count=int(count),
                component_type=component_type,
                offset=offset,
                attributes=list(self._bound_attributes),
                uniforms=dict(self._uniform_values[program]),
            )
        )

    def release(self, handle: int) -> None:
        if handle in self.released:
            logger.warning("Handle %s released twice", handle)
            return
        self._kind(handle)
        self.released.append(handle)

    def count_resources(self, kind: str, live_only: bool = True) -> int:
        """Count created resources of ``kind`` (program, buffer, ...)."""
        released = set(self.released) if live_only else set()
        return sum(
            1
            for handle, (k, _) in self.resources.items()
            if k == kind and handle not in released
        )

    def uniform_names(self) -> list[str]:
        """Names of every uniform handle ever allocated."""
        return [info[1] for kind, info in self.resources.values() if kind == "uniform"]
