# SPDX-License-Identifier: MIT
"""Scene driver: camera, loader executor and the per-frame render loop."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field

import numpy as np

from gltf_geo.asset import GeoAsset
from gltf_geo.geo import WGS84
from gltf_geo.loader import ImmediateExecutor
from gltf_geo.render.backend import RenderBackend
from gltf_geo.render.camera import PerspectiveCamera

logger = logging.getLogger(__name__)

# Default viewpoint, in ECEF meters, looking at the globe centre
DEFAULT_CAMERA_POSITION = (-5441407.598258391, 12221601.56749016, 8664632.212488363)


@dataclass(frozen=True)
class InitStep:
    """A named setup action run once when a GeoScene is created."""

    name: str
    func: Callable[[GeoScene], None]


def setup_camera(scene: GeoScene) -> None:
    config = scene.config
    camera = PerspectiveCamera(
        fov=config.fov,
        width=config.width,
        height=config.height,
        near=config.near,
        far=WGS84.maximum_radius * 3,
        position=np.array(DEFAULT_CAMERA_POSITION),
    )
    camera.look_at(np.zeros(3))
    scene.camera = camera


def setup_executor(scene: GeoScene) -> None:
    workers = scene.config.load_workers
    if workers > 0:
        scene.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gltf-load")
    else:
        scene.executor = ImmediateExecutor()


DEFAULT_INIT_STEPS = (
    InitStep("camera", setup_camera),
    InitStep("executor", setup_executor),
)


@dataclass
class SceneConfig:
    """Configuration of a GeoScene."""

    width: float = 800.0
    height: float = 600.0
    fov: float = 60.0
    """Vertical field of view in degrees."""

    near: float = 0.01
    time_scale: float = 1.0
    """Factor converting clock units to animation seconds."""

    load_workers: int = 0
    """Threads for loading assets; 0 loads inline."""

    init_steps: tuple[InitStep, ...] = field(default=DEFAULT_INIT_STEPS)


class GeoScene:
    """Owns the camera and renders every added asset each frame."""

    def __init__(
        self,
        backend: RenderBackend,
        config: SceneConfig | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.backend = backend
        self.config = config or SceneConfig()
        self.camera: PerspectiveCamera | None = None
        self.executor: Executor | None = None
        self.assets: list[GeoAsset] = []
        self._clock = clock

        for step in self.config.init_steps:
            logger.debug("Running init step %r", step.name)
            step.func(self)

        self._start = clock()

    def elapsed(self) -> float:
        """Animation time in seconds since the scene was created."""
        return (self._clock() - self._start) * self.config.time_scale

    def add(self, asset: GeoAsset) -> GeoAsset:
        """Start loading ``asset`` and include it in every frame."""
        asset.init(self.backend, self.executor)
        self.assets.append(asset)
        return asset

    def remove(self, asset: GeoAsset) -> None:
        self.assets.remove(asset)
        asset.destroy()

    def render(self, time_value: float | None = None) -> int:
        """Render one frame.

        Args:
            time_value: Animation time in seconds; the scene clock when None

        Returns:
            Number of draw calls issued
        """
        if time_value is None:
            time_value = self.elapsed()
        return sum(asset.render(self.camera, time_value) for asset in self.assets)

    def close(self) -> None:
        """Destroy every asset and shut down the loader executor."""
        for asset in self.assets:
            asset.destroy()
        self.assets.clear()
        if self.executor is not None:
            self.executor.shutdown(wait=False, cancel_futures=True)
            self.executor = None
