# SPDX-License-Identifier: MIT
"""Apply sampled animation values to scene nodes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gltf_geo.animation.animation_data import Animation, TargetPath

if TYPE_CHECKING:
    from gltf_geo.scene.nodes import Node


def apply_animation(animation: Animation, time_value: float) -> list[Node]:
    """Pose every node targeted by ``animation`` at ``time_value``.

    Each channel overwrites its node's rotation, translation or scale, and
    every touched node gets its model matrix recomputed once.

    Args:
        animation: Animation to evaluate
        time_value: Seconds since the animation started

    Returns:
        The nodes whose local transform changed, in first-touched order
    """
    touched: dict[int, Node] = {}

    for channel in animation.channels:
        node = channel.node
        value = channel.sampler.sample(time_value)

        if channel.path == TargetPath.ROTATION:
            node.rotation = value
        elif channel.path == TargetPath.TRANSLATION:
            node.translation = value
        elif channel.path == TargetPath.SCALE:
            node.scale = value

        touched.setdefault(id(node), node)

    for node in touched.values():
        node.update_model_matrix()

    return list(touched.values())
