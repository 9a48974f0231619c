# SPDX-License-Identifier: MIT
"""Animation module: keyframe samplers and node posing."""

from .animation_data import (
    Animation,
    AnimationChannel,
    AnimationSampler,
    Interpolation,
    TargetPath,
)
from .sampler import apply_animation

__all__ = [
    "Animation",
    "AnimationChannel",
    "AnimationSampler",
    "Interpolation",
    "TargetPath",
    "apply_animation",
]
