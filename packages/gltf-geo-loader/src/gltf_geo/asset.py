# SPDX-License-Identifier: MIT
"""Geo-placed glTF asset: load, prepare, animate and draw."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any

import numpy as np

from gltf_geo.animation import Animation, apply_animation
from gltf_geo.geo import WGS84, Ellipsoid, GeoPlacement
from gltf_geo.loader import LoadState, LoadTask, ModelSource, start_load
from gltf_geo.parser.transport import Transport
from gltf_geo.render.backend import RenderBackend
from gltf_geo.render.camera import Camera
from gltf_geo.scene.builder import SceneGraphBuilder
from gltf_geo.scene.nodes import AssetDescription, Node, Scene, Skin
from gltf_geo.scene.walker import RenderWalker

logger = logging.getLogger(__name__)


@dataclass
class AssetOptions:
    """Placement and playback options of a GeoAsset."""

    lng: float = 0.0
    """Longitude in degrees."""

    lat: float = 0.0
    """Latitude in degrees."""

    h: float = 0.0
    """Height above the ellipsoid in meters."""

    vertical: bool = True
    """Align the asset's +Y axis with the surface normal."""

    scale: float | tuple[float, float, float] = 1.0
    anim_id: int = 0

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> AssetOptions:
        """Build options from a mapping using the ``animId`` spelling.

        Missing keys and None values take the defaults.
        """
        defaults = cls()

        def value(*names: str, default: Any) -> Any:
            for name in names:
                if options.get(name) is not None:
                    return options[name]
            return default

        return cls(
            lng=float(value("lng", default=defaults.lng)),
            lat=float(value("lat", default=defaults.lat)),
            h=float(value("h", default=defaults.h)),
            vertical=bool(value("vertical", default=defaults.vertical)),
            scale=value("scale", default=defaults.scale),
            anim_id=int(value("animId", "anim_id", default=defaults.anim_id)),
        )

    def placement(self) -> GeoPlacement:
        return GeoPlacement(
            lng=self.lng, lat=self.lat, h=self.h, vertical=self.vertical, scale=self.scale
        )


class GeoAsset:
    """A glTF asset positioned on the ellipsoid.

    Lifecycle: construct, :meth:`init` with a backend (starts loading), call
    :meth:`render` every frame, :meth:`destroy` when done. Rendering is a
    no-op until the load resolves and stays one after a failed load.

    Example:
        asset = GeoAsset("models/", "duck.glb", {"lng": 114, "lat": 30})
        asset.init(backend)
        asset.render(camera, time_value=0.5)
    """

    def __init__(
        self,
        root_path: str,
        model: ModelSource,
        options: AssetOptions | Mapping[str, Any] | None = None,
        *,
        transport: Transport | None = None,
        ellipsoid: Ellipsoid = WGS84,
    ):
        if options is None:
            options = AssetOptions()
        elif not isinstance(options, AssetOptions):
            options = AssetOptions.from_dict(options)

        self.root_path = root_path
        self.model = model
        self.anim_id = options.anim_id
        self._transport = transport
        self._ellipsoid = ellipsoid
        self._placement = options.placement()
        self._geo_transform = self._placement.matrix(ellipsoid)

        self._task: LoadTask | None = None
        self._builder: SceneGraphBuilder | None = None
        self._walker: RenderWalker | None = None
        self._description: AssetDescription | None = None
        self._load_error: BaseException | None = None
        self._destroyed = False

    # Placement

    @property
    def lng(self) -> float:
        return self._placement.lng

    @lng.setter
    def lng(self, value: float) -> None:
        self._placement.lng = value
        self._update_geo_transform()

    @property
    def lat(self) -> float:
        return self._placement.lat

    @lat.setter
    def lat(self, value: float) -> None:
        self._placement.lat = value
        self._update_geo_transform()

    @property
    def h(self) -> float:
        return self._placement.h

    @h.setter
    def h(self, value: float) -> None:
        self._placement.h = value
        self._update_geo_transform()

    @property
    def vertical(self) -> bool:
        return self._placement.vertical

    @vertical.setter
    def vertical(self, value: bool) -> None:
        self._placement.vertical = value
        self._update_geo_transform()

    @property
    def scale(self) -> float | tuple[float, float, float]:
        return self._placement.scale

    @scale.setter
    def scale(self, value: float | tuple[float, float, float]) -> None:
        self._placement.scale = value
        self._update_geo_transform()

    @property
    def geo_transform_matrix(self) -> np.ndarray:
        return self._geo_transform

    def set_geo_transform(self, matrix) -> None:
        """Replace the derived geo transform with an explicit 4x4 matrix."""
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (4, 4):
            raise ValueError(f"Geo transform must be 4x4, got shape {matrix.shape}")
        self._geo_transform = matrix

    def _update_geo_transform(self) -> None:
        self._geo_transform = self._placement.matrix(self._ellipsoid)

    # Loaded content

    @property
    def is_loaded(self) -> bool:
        return self._description is not None

    @property
    def load_error(self) -> BaseException | None:
        return self._load_error

    @property
    def description(self) -> AssetDescription | None:
        return self._description

    @property
    def nodes(self) -> list[Node]:
        return self._description.nodes if self._description else []

    @property
    def skins(self) -> list[Skin]:
        return self._description.skins if self._description else []

    @property
    def animations(self) -> list[Animation]:
        return self._description.animations if self._description else []

    @property
    def scene(self) -> Scene | None:
        return self._description.scene if self._description else None

    # Lifecycle

    def init(self, backend: RenderBackend, executor: Executor | None = None) -> LoadTask:
        """Bind to ``backend`` and start loading the model.

        Args:
            backend: Render backend receiving programs, buffers and draws
            executor: Runs the load; inline when None

        Returns:
            The load task, also polled by :meth:`render`
        """
        if self._destroyed:
            raise RuntimeError("GeoAsset has been destroyed")
        if self._task is not None:
            return self._task

        self._builder = SceneGraphBuilder(backend)
        self._walker = RenderWalker(backend)
        self._task = start_load(self.root_path, self.model, self._transport, executor)
        return self._task

    def poll(self) -> bool:
        """Install a finished load.

        Called by :meth:`render`; draw state is prepared here, on the render
        thread, and the decoded asset becomes visible only once that is done.

        Returns:
            True if the asset is loaded
        """
        if self._description is not None:
            return True
        task = self._task
        if task is None or self._destroyed or self._load_error is not None:
            return False

        state = task.state
        if state == LoadState.PENDING or state == LoadState.CANCELLED:
            return False
        if state == LoadState.FAILED:
            self._load_error = task.error
            logger.error("Failed to load %s: %s", task.description, self._load_error)
            return False

        description = task.result()
        try:
            self._builder.prepare(description.scene)
        except Exception as e:
            self._builder.release()
            self._load_error = e
            logger.exception("Failed to prepare %s", task.description)
            return False

        self._description = description
        logger.debug(
            "Loaded %s: %d nodes, %d meshes, %d animations",
            task.description,
            len(description.nodes),
            len(description.meshes),
            len(description.animations),
        )
        return True

    def render(self, camera: Camera, time_value: float = 0.0) -> int:
        """Draw the asset for one frame.

        Args:
            camera: Source of the projection and view matrices
            time_value: Animation time in seconds

        Returns:
            Number of draw calls issued
        """
        if not self.poll():
            return 0

        description = self._description
        if 0 <= self.anim_id < len(description.animations):
            apply_animation(description.animations[self.anim_id], time_value)

        draws = 0
        for root in description.scene.nodes:
            draws += self._walker.draw(root, camera, geo_transform=self._geo_transform)
        return draws

    def destroy(self) -> None:
        """Cancel an in-flight load and release backend resources."""
        if self._destroyed:
            return
        self._destroyed = True
        if self._task is not None:
            self._task.cancel()
        if self._builder is not None:
            self._builder.release()
        self._description = None
