# SPDX-License-Identifier: MIT
"""Animation data structures and keyframe interpolation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import numpy as np

from gltf_geo.scene.transforms import normalize_quaternion, quaternion_slerp

if TYPE_CHECKING:
    from gltf_geo.scene.nodes import Node


class TargetPath(Enum):
    """Node properties an animation channel can drive."""

    TRANSLATION = "translation"
    ROTATION = "rotation"
    SCALE = "scale"


class Interpolation(Enum):
    """Keyframe interpolation modes."""

    LINEAR = "LINEAR"
    STEP = "STEP"
    CUBICSPLINE = "CUBICSPLINE"


@dataclass(eq=False)
class AnimationSampler:
    """Keyframe times and values for one animated property.

    ``values`` has one row per keyframe; for CUBICSPLINE each keyframe holds
    three rows (in-tangent, value, out-tangent).
    """

    times: np.ndarray
    values: np.ndarray
    interpolation: Interpolation = Interpolation.LINEAR
    is_rotation: bool = False

    def __post_init__(self) -> None:
        self.times = np.asarray(self.times, dtype=np.float64).ravel()
        values = np.asarray(self.values, dtype=np.float64)
        if values.ndim == 1:
            values = values.reshape(len(values), 1)
        self.values = values

    def __len__(self) -> int:
        """Return number of keyframes."""
        return len(self.times)

    @property
    def min_time(self) -> float:
        return float(self.times[0]) if len(self.times) else 0.0

    @property
    def max_time(self) -> float:
        return float(self.times[-1]) if len(self.times) else 0.0

    @property
    def duration(self) -> float:
        return self.max_time - self.min_time

    def get_value_at(self, index: int) -> np.ndarray:
        """Get the stored value at a given keyframe index."""
        if self.interpolation == Interpolation.CUBICSPLINE:
            return self.values[index * 3 + 1].copy()
        return self.values[index].copy()

    def wrap_time(self, time_value: float) -> float:
        """Map an arbitrary time onto the keyframe range.

        Times inside ``[min_time, max_time]`` are returned unchanged, later
        times loop modulo the duration and earlier times clamp to the start.
        """
        start, end = self.min_time, self.max_time
        if time_value <= end:
            return max(time_value, start)
        duration = end - start
        if duration <= 0.0:
            return start
        return start + (time_value - start) % duration

    def sample(self, time_value: float) -> np.ndarray:
        """Interpolate the animated value at ``time_value`` seconds."""
        count = len(self.times)
        if count == 0:
            raise ValueError("Cannot sample an empty animation sampler")

        t = self.wrap_time(float(time_value))
        times = self.times
        if count == 1 or t <= times[0]:
            return self._finish(self.get_value_at(0))
        if t >= times[-1]:
            return self._finish(self.get_value_at(count - 1))

        # times[i] <= t < times[i + 1]
        i = int(np.searchsorted(times, t, side="right")) - 1
        t0, t1 = float(times[i]), float(times[i + 1])
        delta = t1 - t0
        u = (t - t0) / delta if delta > 0.0 else 0.0

        if u == 0.0 or self.interpolation == Interpolation.STEP:
            return self._finish(self.get_value_at(i))

        if self.interpolation == Interpolation.CUBICSPLINE:
            return self._finish(self._cubic(i, u, delta))

        v0 = self.values[i]
        v1 = self.values[i + 1]
        if self.is_rotation:
            return quaternion_slerp(v0, v1, u)
        return v0 + (v1 - v0) * u

    def _cubic(self, i: int, u: float, delta: float) -> np.ndarray:
        """Hermite spline between keyframes ``i`` and ``i + 1``."""
        p0 = self.values[i * 3 + 1]
        m0 = self.values[i * 3 + 2] * delta  # out-tangent of key i
        p1 = self.values[(i + 1) * 3 + 1]
        m1 = self.values[(i + 1) * 3] * delta  # in-tangent of key i + 1

        u2 = u * u
        u3 = u2 * u
        return (
            (2 * u3 - 3 * u2 + 1) * p0
            + (u3 - 2 * u2 + u) * m0
            + (-2 * u3 + 3 * u2) * p1
            + (u3 - u2) * m1
        )

    def _finish(self, value: np.ndarray) -> np.ndarray:
        if self.is_rotation and self.interpolation == Interpolation.CUBICSPLINE:
            return normalize_quaternion(value)
        return value


@dataclass(eq=False)
class AnimationChannel:
    """Binds a sampler to one property of one node."""

    node: Node
    path: TargetPath
    sampler: AnimationSampler


@dataclass(eq=False)
class Animation:
    """A named collection of channels played together."""

    name: str | None = None
    channels: list[AnimationChannel] = field(default_factory=list)

    @property
    def duration(self) -> float:
        """Get the latest keyframe time across all channels."""
        if not self.channels:
            return 0.0
        return max(channel.sampler.max_time for channel in self.channels)

    def add_channel(self, channel: AnimationChannel) -> None:
        """Add a channel to the animation."""
        self.channels.append(channel)
