from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from onnx2prim.ir_builder.errors import (
    MissingScaleOrSizeInput,
    OutputRankMismatch,
    RankMismatch,
    UnsupportedCoordinateTransformMode,
    UnsupportedExcludeOutside,
    UnsupportedInterpolationMode,
    UnsupportedNearestMode,
    ZeroLengthInputDimension,
)
from onnx2prim.ir_builder.ir import InstructionRef, Shape
from onnx2prim.ir_builder.op_builders.resize_policies import (
    CoordinateTransformMode,
    InterpolationMode,
    NearestMode,
)
from onnx2prim.utils.enums import INTEGER_IR_DTYPES


@dataclass(frozen=True)
class ResizeConfig:
    mode: InterpolationMode = InterpolationMode.NEAREST
    coord_transform: CoordinateTransformMode = CoordinateTransformMode.HALF_PIXEL
    nearest_mode: NearestMode = NearestMode.ROUND_PREFER_FLOOR
    exclude_outside: bool = False


@dataclass(frozen=True)
class ScaleResolution:
    """Outcome of scanning attributes and arguments for scales/sizes.

    When ``is_constant`` is False the lowering must defer to a runtime
    ``RESIZE`` and ``scales``/``out_lens`` are not meaningful.
    ``scale_size_arg`` is the argument the values came from, or ``None``
    when they came from the deprecated ``scales`` attribute.
    """
    scales: List[float] = field(default_factory=list)
    out_lens: List[int] = field(default_factory=list)
    is_constant: bool = True
    scale_size_arg: Optional[InstructionRef] = None


def _attr_str(attrs: Dict[str, Any], name: str, default: str) -> str:
    value = attrs.get(name, default)
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    return str(value).lower()


def resolve_resize_config(
    attrs: Dict[str, Any],
    *,
    node_name: str = "",
    node_op: str = "Resize",
) -> ResizeConfig:
    coord_trans_mode = _attr_str(attrs, "coordinate_transformation_mode", "half_pixel")
    if coord_trans_mode == CoordinateTransformMode.TF_CROP_AND_RESIZE.value:
        raise UnsupportedCoordinateTransformMode(
            f"coordinate_transformation_mode tf_crop_and_resize is not supported. op={node_name}",
            node_name=node_name,
            node_op=node_op,
        )
    try:
        coord_transform = CoordinateTransformMode(coord_trans_mode)
    except ValueError as ex:
        raise UnsupportedCoordinateTransformMode(
            f"Unknown coordinate_transformation_mode. op={node_name} "
            f"coordinate_transformation_mode={coord_trans_mode}",
            node_name=node_name,
            node_op=node_op,
        ) from ex

    mode_str = _attr_str(attrs, "mode", "nearest")
    try:
        mode = InterpolationMode(mode_str)
    except ValueError as ex:
        raise UnsupportedInterpolationMode(
            f"Only nearest and linear modes are supported. op={node_name} mode={mode_str}",
            node_name=node_name,
            node_op=node_op,
        ) from ex

    nearest_mode_str = _attr_str(attrs, "nearest_mode", "round_prefer_floor")
    try:
        nearest_mode = NearestMode(nearest_mode_str)
    except ValueError as ex:
        raise UnsupportedNearestMode(
            f"Unknown nearest_mode. op={node_name} nearest_mode={nearest_mode_str}",
            node_name=node_name,
            node_op=node_op,
        ) from ex

    exclude_outside = bool(int(attrs.get("exclude_outside", 0)))
    if exclude_outside:
        raise UnsupportedExcludeOutside(
            f"exclude_outside=1 is not supported. op={node_name}",
            node_name=node_name,
            node_op=node_op,
        )

    return ResizeConfig(
        mode=mode,
        coord_transform=coord_transform,
        nearest_mode=nearest_mode,
        exclude_outside=exclude_outside,
    )


def _out_lens_from_scales(in_lens: Sequence[int], scales: Sequence[float]) -> List[int]:
    return [int(float(d) * float(s)) for d, s in zip(in_lens, scales)]


def _is_unset_argument(arg: InstructionRef) -> bool:
    if arg.is_undefined():
        return True
    shape = arg.get_shape()
    return shape.rank == 0 or (not shape.dynamic() and shape.elements() == 0)


def _sizes_to_scales(
    in_lens: Sequence[int],
    out_lens: Sequence[int],
    node_name: str,
    node_op: str,
) -> List[float]:
    scales: List[float] = []
    for axis, (i, o) in enumerate(zip(in_lens, out_lens)):
        if int(i) == 0:
            if int(o) != 0:
                raise ZeroLengthInputDimension(
                    f"Cannot resize a zero-length dimension to a non-zero size. op={node_name} "
                    f"axis={axis} input_len=0 size={int(o)}",
                    node_name=node_name,
                    node_op=node_op,
                )
            scales.append(1.0)
        else:
            scales.append(float(o) / float(i))
    return scales


def _scan_arguments(
    args: Sequence[InstructionRef],
    in_shape: Shape,
    node_name: str,
    node_op: str,
) -> ScaleResolution:
    in_lens = list(in_shape.lens)
    candidates = [arg for arg in list(args)[1:] if not _is_unset_argument(arg)]
    if not in_shape.rank_known and len(candidates) > 0:
        # Without a rank roi cannot be told apart by length. It always
        # precedes scales/sizes, so the last set input drives the resize.
        arg = candidates[-1]
        return ScaleResolution(is_constant=arg.evaluate() is not None, scale_size_arg=arg)

    rejected_scale_arg: Optional[InstructionRef] = None
    for arg in candidates:
        arg_shape = arg.get_shape()

        if arg_shape.dtype in INTEGER_IR_DTYPES:
            sizes = arg.evaluate()
            if sizes is None:
                return ScaleResolution(is_constant=False, scale_size_arg=arg)
            out_lens = [int(v) for v in np.asarray(sizes).reshape(-1).tolist()]
            if len(out_lens) != len(in_lens):
                raise OutputRankMismatch(
                    f"Specified output size's rank does not match input rank. op={node_name} "
                    f"sizes={out_lens} input_rank={len(in_lens)}",
                    node_name=node_name,
                    node_op=node_op,
                )
            return ScaleResolution(
                scales=_sizes_to_scales(in_lens, out_lens, node_name, node_op),
                out_lens=out_lens,
                is_constant=True,
                scale_size_arg=arg,
            )

        if not arg_shape.dynamic() and int(arg_shape.lens[0]) != len(in_lens):
            # roi slot, or a scales input of the wrong rank
            if rejected_scale_arg is None:
                rejected_scale_arg = arg
            continue
        values = arg.evaluate()
        if values is None:
            return ScaleResolution(is_constant=False, scale_size_arg=arg)
        scales = [float(v) for v in np.asarray(values).reshape(-1).tolist()]
        return ScaleResolution(
            scales=scales,
            out_lens=_out_lens_from_scales(in_lens, scales),
            is_constant=True,
            scale_size_arg=arg,
        )

    if rejected_scale_arg is not None:
        raise RankMismatch(
            f"Ranks of input and scale are different. op={node_name} "
            f"scale_shape={rejected_scale_arg.get_shape().signature} input_rank={len(in_lens)}",
            node_name=node_name,
            node_op=node_op,
        )
    raise MissingScaleOrSizeInput(
        f"No sizes or scales input provided. op={node_name}",
        node_name=node_name,
        node_op=node_op,
    )


def resolve_scales_and_out_lens(
    attrs: Dict[str, Any],
    args: Sequence[InstructionRef],
    in_shape: Shape,
    *,
    node_name: str = "",
    node_op: str = "Resize",
) -> ScaleResolution:
    in_lens = list(in_shape.lens)
    attr_scales = [float(v) for v in list(attrs.get("scales", []) or [])]
    if len(attr_scales) > 0:
        resolution = ScaleResolution(
            scales=attr_scales,
            out_lens=_out_lens_from_scales(in_lens, attr_scales) if in_shape.rank_known else [],
            is_constant=True,
            scale_size_arg=None,
        )
    else:
        resolution = _scan_arguments(args, in_shape, node_name, node_op)

    if not in_shape.rank_known:
        return resolution
    if resolution.is_constant and len(resolution.scales) != len(in_lens):
        raise RankMismatch(
            f"Ranks of input and scale are different. op={node_name} "
            f"scales={resolution.scales} input_rank={len(in_lens)}",
            node_name=node_name,
            node_op=node_op,
        )
    return resolution
