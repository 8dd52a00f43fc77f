from __future__ import annotations

from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from onnx2prim.ir_builder.errors import UnsupportedDynamicLinear
from onnx2prim.ir_builder.graph import GraphBuilder
from onnx2prim.ir_builder.ir import InstructionRef, Shape
from onnx2prim.ir_builder.op_builders.neighbors import calc_neighbor_points
from onnx2prim.ir_builder.op_builders.resize_config import (
    ResizeConfig,
    ScaleResolution,
    resolve_resize_config,
    resolve_scales_and_out_lens,
)
from onnx2prim.ir_builder.op_builders.resize_policies import (
    InterpolationMode,
    NearestMode,
)
from onnx2prim.utils.enums import FLOAT_IR_DTYPES
from onnx2prim.utils.logging import Color, debug, warn


def _index_dtype(in_shape: Shape) -> Tuple[str, type]:
    if in_shape.elements() > int(np.iinfo(np.int32).max):
        return "INT64", np.int64
    return "INT32", np.int32


def _source_coords(
    config: ResizeConfig,
    in_lens: Sequence[int],
    out_lens: Sequence[int],
    scales: Sequence[float],
    axis: int,
) -> List[float]:
    idx_op = config.coord_transform
    return [
        idx_op(in_lens[axis], out_lens[axis], out_idx, scales[axis])
        for out_idx in range(int(out_lens[axis]))
    ]


def _broadcast_along_axis(values: np.ndarray, axis: int, out_lens: Sequence[int]) -> np.ndarray:
    view_shape = [1 for _ in out_lens]
    view_shape[axis] = int(out_lens[axis])
    return np.broadcast_to(values.reshape(view_shape), tuple(int(v) for v in out_lens))


def _reshape_to_flat(builder: GraphBuilder, data: InstructionRef, in_shape: Shape) -> InstructionRef:
    return builder.add_instruction(
        "RESHAPE",
        {"newShape": [int(in_shape.elements())]},
        data,
    )


def make_gather_instruction(
    builder: GraphBuilder,
    config: ResizeConfig,
    data: InstructionRef,
    in_shape: Shape,
    out_lens: Sequence[int],
    scales: Sequence[float],
) -> InstructionRef:
    """Nearest resize with every index known at compile time: reshape + gather."""
    in_lens = list(in_shape.lens)
    strides = in_shape.strides()
    index_dtype, index_np_dtype = _index_dtype(in_shape)

    # Per-axis source offsets; their broadcast sum is the flat index.
    ind = np.zeros(tuple(int(v) for v in out_lens), dtype=np.int64)
    for axis in range(len(in_lens)):
        coords = _source_coords(config, in_lens, out_lens, scales, axis)
        in_idx = np.asarray(
            [config.nearest_mode(in_lens[axis], c) for c in coords],
            dtype=np.int64,
        )
        ind = ind + _broadcast_along_axis(in_idx * int(strides[axis]), axis, out_lens)

    rsp = _reshape_to_flat(builder, data, in_shape)
    ins_ind = builder.add_literal(
        Shape(lens=tuple(int(v) for v in out_lens), dtype=index_dtype),
        ind.astype(index_np_dtype),
    )
    return builder.add_instruction("GATHER", {"axis": 0}, rsp, ins_ind)


def build_linear_tables(
    config: ResizeConfig,
    in_shape: Shape,
    out_lens: Sequence[int],
    scales: Sequence[float],
) -> Tuple[np.ndarray, np.ndarray]:
    """Floor/ceil source index table ``[rank, 2, m]`` and deltas ``[rank, m]``."""
    in_lens = list(in_shape.lens)
    n_dim = len(in_lens)
    out_elements = int(np.prod(out_lens, dtype=np.int64)) if n_dim > 0 else 1
    vvv_ind = np.zeros((n_dim, 2, out_elements), dtype=np.int64)
    delta = np.zeros((n_dim, out_elements), dtype=np.float64)
    for axis in range(n_dim):
        coords = [
            min(max(c, 0.0), float(in_lens[axis] - 1))
            for c in _source_coords(config, in_lens, out_lens, scales, axis)
        ]
        lo = np.asarray([NearestMode.FLOOR(in_lens[axis], c) for c in coords], dtype=np.int64)
        hi = np.asarray([NearestMode.CEIL(in_lens[axis], c) for c in coords], dtype=np.int64)
        frac = np.asarray(coords, dtype=np.float64) - lo
        vvv_ind[axis, 0] = _broadcast_along_axis(lo, axis, out_lens).reshape(-1)
        vvv_ind[axis, 1] = _broadcast_along_axis(hi, axis, out_lens).reshape(-1)
        delta[axis] = _broadcast_along_axis(frac, axis, out_lens).reshape(-1)
    return vvv_ind, delta


def make_linear_instructions(
    builder: GraphBuilder,
    config: ResizeConfig,
    data: InstructionRef,
    in_shape: Shape,
    out_lens: Sequence[int],
    scales: Sequence[float],
) -> InstructionRef:
    """Multilinear resize as one gather of all corners followed by per-axis blends."""
    out_lens = [int(v) for v in out_lens]
    n_dim = len(out_lens)
    vvv_ind, delta = build_linear_tables(config, in_shape, out_lens, scales)
    ind = calc_neighbor_points(vvv_ind, in_shape)
    index_dtype, index_np_dtype = _index_dtype(in_shape)
    delta_dtype = in_shape.dtype if in_shape.dtype in FLOAT_IR_DTYPES else "FLOAT32"

    rsp = _reshape_to_flat(builder, data, in_shape)
    ind_lens = list(out_lens)
    ind_lens[0] *= (1 << n_dim)
    ins_ind = builder.add_literal(
        Shape(lens=tuple(ind_lens), dtype=index_dtype),
        ind.astype(index_np_dtype),
    )
    data = builder.add_instruction("GATHER", {"axis": 0}, rsp, ins_ind)

    dim_lens = list(out_lens)
    dim_lens[0] *= (1 << (n_dim - 1))
    for i in range(n_dim):
        # Blocks with the top remaining bit clear are the low corners.
        repeats = 1 << (n_dim - i - 1)
        delta_data = np.tile(delta[n_dim - i - 1], repeats)
        ins_delta = builder.add_literal(Shape(lens=tuple(dim_lens), dtype=delta_dtype), delta_data)

        slc_stride = int(dim_lens[0])
        low = builder.add_instruction(
            "SLICE",
            {"axes": [0], "starts": [0], "ends": [slc_stride]},
            data,
        )
        hi = builder.add_instruction(
            "SLICE",
            {"axes": [0], "starts": [slc_stride], "ends": [2 * slc_stride]},
            data,
        )
        diff = builder.add_instruction("SUB", {}, hi, low)
        ddf = builder.add_instruction("MUL", {}, diff, ins_delta)
        data = builder.add_instruction("ADD", {}, ddf, low)
        dim_lens[0] //= 2
    return data


def make_runtime_resize_instruction(
    builder: GraphBuilder,
    config: ResizeConfig,
    attrs: Dict[str, Any],
    data: InstructionRef,
    resolution: ScaleResolution,
    node_name: str,
) -> InstructionRef:
    scale_size_arg = resolution.scale_size_arg
    if scale_size_arg is None:
        warn(
            f'Resize with a dynamic input and a scales attribute is lowered '
            f'with a literal scales input. op={node_name}'
        )
        scales = [float(v) for v in attrs.get("scales", [])]
        scale_size_arg = builder.add_literal(
            Shape(lens=(len(scales),), dtype="FLOAT32"),
            np.asarray(scales, dtype=np.float32),
        )
    return builder.add_instruction(
        "RESIZE",
        {
            "nearestMode": str(config.nearest_mode),
            "coordinateTransformationMode": str(config.coord_transform),
        },
        data,
        scale_size_arg,
    )


def lower_resize(
    *,
    builder: GraphBuilder,
    attrs: Dict[str, Any],
    args: Sequence[InstructionRef],
    node_name: str = "",
    node_op: str = "Resize",
) -> InstructionRef:
    """Lower one Resize/Upsample node into primitive IR instructions.

    Parameters
    ----------
    builder: GraphBuilder
        Receives every emitted instruction and literal.

    attrs: dict
        Decoded node attributes.

    args: list of InstructionRef
        Node inputs in ONNX positional order, the data input first.
        Unset optional inputs are undefined refs.

    Returns
    -------
    ref: InstructionRef
        The terminal instruction: either a runtime ``RESIZE`` or the last
        instruction of the precomputed gather subgraph.
    """
    config = resolve_resize_config(attrs, node_name=node_name, node_op=node_op)

    data = args[0]
    data_shape = data.get_shape()
    resolution = resolve_scales_and_out_lens(
        attrs,
        args,
        data_shape,
        node_name=node_name,
        node_op=node_op,
    )

    if data_shape.dynamic() or not resolution.is_constant:
        if config.mode == InterpolationMode.LINEAR:
            raise UnsupportedDynamicLinear(
                f"linear mode is not supported for non-constant inputs. op={node_name}",
                node_name=node_name,
                node_op=node_op,
            )
        debug(
            Color.GREEN('Resize:'),
            f'{node_name} runtime RESIZE '
            f'nearest_mode={config.nearest_mode} '
            f'coordinate_transformation_mode={config.coord_transform}'
        )
        return make_runtime_resize_instruction(builder, config, attrs, data, resolution, node_name)

    debug(
        Color.GREEN('Resize:'),
        f'{node_name} {config.mode} gather '
        f'in_lens={list(data_shape.lens)} out_lens={resolution.out_lens} scales={resolution.scales}'
    )
    if config.mode == InterpolationMode.NEAREST:
        return make_gather_instruction(
            builder,
            config,
            data,
            data_shape,
            resolution.out_lens,
            resolution.scales,
        )
    return make_linear_instructions(
        builder,
        config,
        data,
        data_shape,
        resolution.out_lens,
        resolution.scales,
    )


def build_resize_op(node: Any, ctx: Any) -> None:
    args = [ctx.get_ref(i.name) for i in node.inputs]
    output_name = node.outputs[0].name
    with ctx.transaction():
        result = lower_resize(
            builder=ctx,
            attrs=node.attrs,
            args=args,
            node_name=node.name,
            node_op=node.op,
        )
        ctx.bind_output(output_name, result)
