# SPDX-License-Identifier: MIT
"""One-shot asynchronous asset loading."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from concurrent.futures import CancelledError, Executor, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gltf_geo.parser.container import read_container
from gltf_geo.parser.gltf_parser import parse
from gltf_geo.parser.transport import FileTransport, Transport, fetch_json
from gltf_geo.scene.nodes import AssetDescription

logger = logging.getLogger(__name__)


@dataclass
class BinaryModel:
    """A binary container already held in memory."""

    buffer: bytes | bytearray | memoryview
    byte_offset: int = 0

    @classmethod
    def from_mapping(cls, model: Mapping[str, Any]) -> BinaryModel:
        """Accept the ``{buffer, byteOffset}`` shape used by callers."""
        return cls(
            buffer=model["buffer"],
            byte_offset=model.get("byteOffset", model.get("byte_offset", 0)),
        )


ModelSource = str | BinaryModel | Mapping[str, Any]


class LoadState(Enum):
    """Terminal and non-terminal states of a load task."""

    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ImmediateExecutor(Executor):
    """Executor running each submitted call inline on the caller's thread."""

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        if not future.set_running_or_notify_cancel():
            return future
        try:
            result = fn(*args, **kwargs)
        except BaseException as e:  # captured into the future
            future.set_exception(e)
        else:
            future.set_result(result)
        return future


class LoadTask:
    """A fetch-then-parse job with a single terminal outcome.

    The render loop polls :attr:`state`; it sees either PENDING or a finished
    task, never a half-decoded asset.
    """

    def __init__(self, future: Future, description: str = ""):
        self._future = future
        self._cancelled = False
        self.description = description

    @property
    def state(self) -> LoadState:
        if self._cancelled or self._future.cancelled():
            return LoadState.CANCELLED
        if not self._future.done():
            return LoadState.PENDING
        if self._future.exception() is not None:
            return LoadState.FAILED
        return LoadState.RESOLVED

    @property
    def done(self) -> bool:
        return self.state != LoadState.PENDING

    @property
    def error(self) -> BaseException | None:
        """The failure of a FAILED task, else None."""
        if self.state != LoadState.FAILED:
            return None
        return self._future.exception()

    def result(self) -> AssetDescription:
        """The decoded asset of a RESOLVED task.

        Raises:
            CancelledError: If the task was cancelled
            Exception: The load failure of a FAILED task
        """
        if self._cancelled:
            raise CancelledError(self.description)
        return self._future.result()

    def wait(self, timeout: float | None = None) -> LoadState:
        """Block until the task finishes or ``timeout`` elapses."""
        try:
            self._future.exception(timeout=timeout)
        except (CancelledError, FutureTimeoutError):
            pass
        return self.state

    def cancel(self) -> None:
        """Cancel the task; a completion arriving later is ignored."""
        self._cancelled = True
        self._future.cancel()


def load_model(
    root_path: str,
    model: ModelSource,
    transport: Transport | None = None,
) -> AssetDescription:
    """Fetch (if needed) and decode a model synchronously.

    Args:
        root_path: Prefix of the model file and its relative resources
        model: File name joined to ``root_path``, or an in-memory container
        transport: Transport for the document and external buffers

    Returns:
        Fully decoded AssetDescription
    """
    transport = transport or FileTransport()

    if isinstance(model, Mapping):
        model = BinaryModel.from_mapping(model)

    if isinstance(model, BinaryModel):
        chunks = read_container(model.buffer, model.byte_offset)
        return parse(root_path, chunks.document, chunks.binary, transport)

    url = root_path + model
    logger.debug("Loading %s", url)
    if model.lower().endswith(".glb"):
        chunks = read_container(transport.fetch(url))
        return parse(root_path, chunks.document, chunks.binary, transport)
    return parse(root_path, fetch_json(transport, url), None, transport)


def start_load(
    root_path: str,
    model: ModelSource,
    transport: Transport | None = None,
    executor: Executor | None = None,
) -> LoadTask:
    """Submit :func:`load_model` to ``executor`` and wrap it in a LoadTask."""
    executor = executor or ImmediateExecutor()
    name = model if isinstance(model, str) else "<binary>"
    future = executor.submit(load_model, root_path, model, transport)
    return LoadTask(future, description=f"{root_path}{name}")
