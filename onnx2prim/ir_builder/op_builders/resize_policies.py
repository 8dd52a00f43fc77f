"""Index-mapping policies for Resize lowering.

Two pluggable tables:

- ``CoordinateTransformMode``: output coordinate -> continuous source coordinate,
  ``f(in_len, out_len, out_coord, scale)``.
- ``NearestMode``: continuous source coordinate -> integer source index,
  ``g(in_len, coord)``, clamped to ``[0, in_len - 1]``.

Each table entry is a pure function of its arguments. Members are resolved
from ONNX attribute strings once per lowering call.
"""
from __future__ import annotations

import math
from enum import Enum
from typing import Callable, Dict


class InterpolationMode(Enum):
    NEAREST = "nearest"
    LINEAR = "linear"

    def __str__(self):
        return self.value


def _half_pixel(in_len: int, out_len: int, out_coord: int, scale: float) -> float:
    return (out_coord + 0.5) / scale - 0.5


def _half_pixel_symmetric(in_len: int, out_len: int, out_coord: int, scale: float) -> float:
    adjustment = out_len / (scale * in_len) if in_len > 0 else 1.0
    center = in_len / 2.0
    offset = center * (1.0 - adjustment)
    return offset + (out_coord + 0.5) / scale - 0.5


def _pytorch_half_pixel(in_len: int, out_len: int, out_coord: int, scale: float) -> float:
    if out_len > 1:
        return (out_coord + 0.5) / scale - 0.5
    return 0.0


def _align_corners(in_len: int, out_len: int, out_coord: int, scale: float) -> float:
    if out_len > 1:
        return out_coord * (in_len - 1) / (out_len - 1)
    return 0.0


def _asymmetric(in_len: int, out_len: int, out_coord: int, scale: float) -> float:
    return out_coord / scale


def _tf_half_pixel_for_nn(in_len: int, out_len: int, out_coord: int, scale: float) -> float:
    return (out_coord + 0.5) / scale


class CoordinateTransformMode(Enum):
    HALF_PIXEL = "half_pixel"
    HALF_PIXEL_SYMMETRIC = "half_pixel_symmetric"
    PYTORCH_HALF_PIXEL = "pytorch_half_pixel"
    ALIGN_CORNERS = "align_corners"
    ASYMMETRIC = "asymmetric"
    TF_HALF_PIXEL_FOR_NN = "tf_half_pixel_for_nn"
    # Recognized so it can be rejected by name. Has no table entry.
    TF_CROP_AND_RESIZE = "tf_crop_and_resize"

    def __str__(self):
        return self.value

    def is_supported(self) -> bool:
        return self in _COORDINATE_TRANSFORMS

    def __call__(self, in_len: int, out_len: int, out_coord: int, scale: float) -> float:
        fn = _COORDINATE_TRANSFORMS.get(self, None)
        if fn is None:
            raise NotImplementedError(f"No coordinate transform is defined for {self.value}")
        return float(fn(int(in_len), int(out_len), int(out_coord), float(scale)))


_COORDINATE_TRANSFORMS: Dict[CoordinateTransformMode, Callable[[int, int, int, float], float]] = {
    CoordinateTransformMode.HALF_PIXEL: _half_pixel,
    CoordinateTransformMode.HALF_PIXEL_SYMMETRIC: _half_pixel_symmetric,
    CoordinateTransformMode.PYTORCH_HALF_PIXEL: _pytorch_half_pixel,
    CoordinateTransformMode.ALIGN_CORNERS: _align_corners,
    CoordinateTransformMode.ASYMMETRIC: _asymmetric,
    CoordinateTransformMode.TF_HALF_PIXEL_FOR_NN: _tf_half_pixel_for_nn,
}


def _clamp_index(in_len: int, idx: int) -> int:
    return int(max(0, min(int(in_len) - 1, int(idx))))


class NearestMode(Enum):
    ROUND_PREFER_FLOOR = "round_prefer_floor"
    ROUND_PREFER_CEIL = "round_prefer_ceil"
    FLOOR = "floor"
    CEIL = "ceil"

    def __str__(self):
        return self.value

    def __call__(self, in_len: int, coord: float) -> int:
        return _clamp_index(in_len, _ROUNDINGS[self](float(coord)))


_ROUNDINGS: Dict[NearestMode, Callable[[float], int]] = {
    NearestMode.ROUND_PREFER_FLOOR: lambda x: int(math.ceil(x - 0.5)),
    NearestMode.ROUND_PREFER_CEIL: lambda x: int(math.floor(x + 0.5)),
    NearestMode.FLOOR: lambda x: int(math.floor(x)),
    NearestMode.CEIL: lambda x: int(math.ceil(x)),
}
