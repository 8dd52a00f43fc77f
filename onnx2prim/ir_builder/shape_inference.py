from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from onnx2prim.ir_builder.ir import Shape


def _normalize_axis_for_rank(axis: int, rank: int) -> int:
    a = int(axis)
    if a < 0:
        a += int(rank)
    if a < 0 or a >= int(rank):
        raise NotImplementedError(f"axis is out of range. axis={axis} normalized={a} rank={rank}")
    return int(a)


def _infer_reshape(options: Dict[str, Any], inputs: Sequence[Shape]) -> Shape:
    new_shape = [int(v) for v in options.get("newShape", [])]
    src = inputs[0]
    if -1 in new_shape:
        known = int(np.prod([v for v in new_shape if v != -1], dtype=np.int64))
        missing = src.elements() // known if known > 0 else 0
        new_shape = [int(missing) if v == -1 else v for v in new_shape]
    elif int(np.prod(new_shape, dtype=np.int64)) != src.elements() and not src.dynamic():
        raise ValueError(
            f"RESHAPE element count mismatch. input_lens={list(src.lens)} newShape={new_shape}"
        )
    return Shape(lens=tuple(new_shape), dtype=src.dtype)


def _infer_gather(options: Dict[str, Any], inputs: Sequence[Shape]) -> Shape:
    params, indices = inputs[0], inputs[1]
    axis = _normalize_axis_for_rank(int(options.get("axis", 0)), params.rank)
    lens = list(params.lens[:axis]) + list(indices.lens) + list(params.lens[axis + 1:])
    dyn = (
        list(params.dynamic_dims[:axis])
        + list(indices.dynamic_dims)
        + list(params.dynamic_dims[axis + 1:])
    )
    return Shape(lens=tuple(lens), dtype=params.dtype, dynamic_dims=tuple(dyn))


def _infer_slice(options: Dict[str, Any], inputs: Sequence[Shape]) -> Shape:
    src = inputs[0]
    lens = list(src.lens)
    axes = [int(v) for v in options.get("axes", [])]
    starts = [int(v) for v in options.get("starts", [])]
    ends = [int(v) for v in options.get("ends", [])]
    if not (len(axes) == len(starts) == len(ends)):
        raise ValueError(
            f"SLICE axes/starts/ends length mismatch. axes={axes} starts={starts} ends={ends}"
        )
    for axis_raw, start, end in zip(axes, starts, ends):
        axis = _normalize_axis_for_rank(axis_raw, src.rank)
        dim = int(lens[axis])
        start = max(0, min(start + dim if start < 0 else start, dim))
        end = max(0, min(end + dim if end < 0 else end, dim))
        lens[axis] = int(max(end - start, 0))
    return Shape(lens=tuple(lens), dtype=src.dtype, dynamic_dims=src.dynamic_dims)


def _infer_binary(options: Dict[str, Any], inputs: Sequence[Shape]) -> Shape:
    a, b = inputs[0], inputs[1]
    lens = np.broadcast_shapes(tuple(a.lens), tuple(b.lens))
    rank = len(lens)
    a_dyn = [False] * (rank - a.rank) + list(a.dynamic_dims)
    b_dyn = [False] * (rank - b.rank) + list(b.dynamic_dims)
    dyn = [x or y for x, y in zip(a_dyn, b_dyn)]
    return Shape(lens=tuple(lens), dtype=a.dtype, dynamic_dims=tuple(dyn))


def _infer_resize(
    options: Dict[str, Any],
    inputs: Sequence[Shape],
    constant_inputs: Sequence[Optional[np.ndarray]],
) -> Shape:
    src = inputs[0]
    if not src.rank_known:
        return Shape.from_signature(None, src.dtype)
    scale_size = constant_inputs[1] if len(constant_inputs) > 1 else None
    if scale_size is None or src.dynamic():
        return Shape(
            lens=tuple(1 for _ in src.lens),
            dtype=src.dtype,
            dynamic_dims=tuple(True for _ in src.lens),
        )
    values = np.asarray(scale_size).reshape(-1)
    if np.issubdtype(values.dtype, np.integer):
        lens = [int(v) for v in values.tolist()]
    else:
        lens = [int(float(d) * float(s)) for d, s in zip(src.lens, values.tolist())]
    return Shape(lens=tuple(lens), dtype=src.dtype)


def infer_output_shape(
    op_type: str,
    options: Dict[str, Any],
    inputs: List[Shape],
    constant_inputs: Optional[List[Optional[np.ndarray]]] = None,
) -> Shape:
    if op_type == "RESHAPE":
        return _infer_reshape(options, inputs)
    if op_type == "GATHER":
        return _infer_gather(options, inputs)
    if op_type == "SLICE":
        return _infer_slice(options, inputs)
    if op_type in ["ADD", "SUB", "MUL"]:
        return _infer_binary(options, inputs)
    if op_type == "RESIZE":
        return _infer_resize(options, inputs, constant_inputs or [])
    raise NotImplementedError(f"Output shape computation is not supported for op_type={op_type}")
