# SPDX-License-Identifier: MIT
"""Decode accessor data from raw buffer bytes."""

from __future__ import annotations

import numpy as np

from gltf_geo.exceptions import MalformedContainerError

COMPONENT_DTYPES: dict[int, np.dtype] = {
    5120: np.dtype("<i1"),  # BYTE
    5121: np.dtype("<u1"),  # UNSIGNED_BYTE
    5122: np.dtype("<i2"),  # SHORT
    5123: np.dtype("<u2"),  # UNSIGNED_SHORT
    5125: np.dtype("<u4"),  # UNSIGNED_INT
    5126: np.dtype("<f4"),  # FLOAT
}

TYPE_COMPONENT_COUNT: dict[str, int] = {
    "SCALAR": 1,
    "VEC2": 2,
    "VEC3": 3,
    "VEC4": 4,
    "MAT2": 4,
    "MAT3": 9,
    "MAT4": 16,
}


def component_dtype(component_type: int) -> np.dtype:
    """Get the numpy dtype for a glTF component type."""
    try:
        return COMPONENT_DTYPES[component_type]
    except KeyError:
        raise ValueError(f"Unknown accessor component type: {component_type}") from None


def component_count(accessor_type: str) -> int:
    """Get the number of components for an accessor type string."""
    try:
        return TYPE_COMPONENT_COUNT[accessor_type]
    except KeyError:
        raise ValueError(f"Unknown accessor type: {accessor_type}") from None


def read_accessor(
    view: bytes | memoryview,
    byte_offset: int,
    component_type: int,
    count: int,
    accessor_type: str,
    byte_stride: int | None = None,
) -> np.ndarray:
    """Read ``count`` elements out of a buffer view.

    Args:
        view: Bytes of the buffer view
        byte_offset: Offset of the first element inside the view
        component_type: glTF component type code
        count: Number of elements
        accessor_type: SCALAR, VEC2 ... MAT4
        byte_stride: Distance between elements, None or 0 when tightly packed

    Returns:
        Array of shape (count,) for SCALAR, else (count, components)

    Raises:
        MalformedContainerError: If the elements run past the end of the view
    """
    dtype = component_dtype(component_type)
    components = component_count(accessor_type)
    element_size = dtype.itemsize * components
    stride = byte_stride or element_size

    if count == 0:
        shape = (0,) if components == 1 else (0, components)
        return np.zeros(shape, dtype=dtype)

    needed = byte_offset + stride * (count - 1) + element_size
    if needed > len(view):
        raise MalformedContainerError(
            f"Accessor needs {needed} bytes but buffer view has {len(view)}"
        )

    raw = np.frombuffer(view, dtype=np.uint8, count=needed - byte_offset, offset=byte_offset)
    if stride == element_size:
        data = raw.view(dtype)[: count * components].copy()
    else:
        rows = np.lib.stride_tricks.as_strided(raw, shape=(count, element_size), strides=(stride, 1))
        data = np.ascontiguousarray(rows).view(dtype).ravel()

    if components == 1:
        return data
    return data.reshape(count, components)


def normalize_integers(data: np.ndarray) -> np.ndarray:
    """Map normalized integer components onto [0, 1] or [-1, 1] floats."""
    if data.dtype.kind == "f":
        return data
    info = np.iinfo(data.dtype)
    result = data.astype(np.float32) / float(info.max)
    if info.min < 0:
        result = np.maximum(result, -1.0)
    return result


def mat4_array(data: np.ndarray) -> np.ndarray:
    """Reshape column-major MAT4 accessor rows into (n, 4, 4) matrices."""
    return np.asarray(data, dtype=np.float64).reshape(-1, 4, 4).transpose(0, 2, 1).copy()
