from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import onnx
from onnx import numpy_helper

from onnx2prim.ir_builder.dispatcher import dispatch_node
from onnx2prim.ir_builder.errors import NodeValidationError
from onnx2prim.ir_builder.graph import LoweringContext
from onnx2prim.ir_builder.ir import ModelIR
from onnx2prim.utils.enums import ir_dtype_from_numpy, ir_dtype_from_onnx
from onnx2prim.utils.logging import Color, debug, info, set_log_level


def _env_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ["0", "false", "no", "off", ""]
    return bool(value)


def _resolve_lowering_controls(kwargs: Dict[str, Any]) -> Dict[str, Any]:
    verbosity = kwargs.get(
        "verbosity",
        os.environ.get("ONNX2PRIM_VERBOSITY", "error"),
    )
    enable_shape_inference = kwargs.get(
        "enable_shape_inference",
        os.environ.get("ONNX2PRIM_ENABLE_SHAPE_INFERENCE", "1"),
    )
    return {
        "verbosity": str(verbosity) if verbosity is not None else "error",
        "enable_shape_inference": _env_flag(enable_shape_inference),
    }


def _extract_tensor_info(
    onnx_graph: onnx.ModelProto,
) -> Tuple[Dict[str, List[Any]], Dict[str, str]]:
    shape_map: Dict[str, List[Any]] = {}
    dtype_map: Dict[str, str] = {}

    def _fill_value_info(value_info):
        if not value_info.type.HasField("tensor_type"):
            return
        name = value_info.name
        tensor_type = value_info.type.tensor_type
        if tensor_type.HasField("shape"):
            dims: List[Any] = []
            for d in tensor_type.shape.dim:
                if d.HasField("dim_value") and d.dim_value >= 0:
                    dims.append(int(d.dim_value))
                else:
                    dims.append(-1)
            shape_map[name] = dims
        dtype_map[name] = ir_dtype_from_onnx(tensor_type.elem_type)

    for vi in onnx_graph.graph.input:
        _fill_value_info(vi)
    for vi in onnx_graph.graph.value_info:
        _fill_value_info(vi)
    for vi in onnx_graph.graph.output:
        _fill_value_info(vi)

    for ini in onnx_graph.graph.initializer:
        arr = numpy_helper.to_array(ini)
        shape_map[ini.name] = list(arr.shape)
        dtype_map[ini.name] = ir_dtype_from_numpy(arr.dtype)

    return shape_map, dtype_map


def _infer_shapes_with_fallback(onnx_graph: onnx.ModelProto) -> onnx.ModelProto:
    try:
        return onnx.shape_inference.infer_shapes(onnx_graph)
    except Exception as ex:
        debug(Color.YELLOW('Shape inference skipped:'), ex)
        return onnx_graph


def _constant_node_value(node: onnx.NodeProto) -> np.ndarray:
    for attr in node.attribute:
        if attr.name == "value":
            return np.asarray(numpy_helper.to_array(attr.t))
        if attr.name == "value_float":
            return np.asarray(attr.f, dtype=np.float32)
        if attr.name == "value_floats":
            return np.asarray(list(attr.floats), dtype=np.float32)
        if attr.name == "value_int":
            return np.asarray(attr.i, dtype=np.int64)
        if attr.name == "value_ints":
            return np.asarray(list(attr.ints), dtype=np.int64)
    raise NotImplementedError(f"Constant node without a supported value is not supported. op={node.name}")


class _NodeWrap:
    def __init__(self, n: onnx.NodeProto):
        self.name = n.name if n.name else n.op_type
        self.op = n.op_type
        self.attrs: Dict[str, Any] = {}
        for a in n.attribute:
            if a.type == onnx.AttributeProto.INT:
                self.attrs[a.name] = int(a.i)
            elif a.type == onnx.AttributeProto.FLOAT:
                self.attrs[a.name] = float(a.f)
            elif a.type == onnx.AttributeProto.INTS:
                self.attrs[a.name] = [int(v) for v in a.ints]
            elif a.type == onnx.AttributeProto.FLOATS:
                self.attrs[a.name] = [float(v) for v in a.floats]
            elif a.type == onnx.AttributeProto.STRING:
                self.attrs[a.name] = a.s.decode("utf-8")
        # Unset optional inputs stay as empty names to keep positions.
        self.inputs = [type("In", (), {"name": i}) for i in n.input]
        while len(self.inputs) > 0 and self.inputs[-1].name == "":
            self.inputs.pop()
        self.outputs = [type("Out", (), {"name": o}) for o in n.output if o != ""]


def lower_onnx_to_ir(
    onnx_graph: onnx.ModelProto,
    output_file_name: str = "model",
    **kwargs: Any,
) -> ModelIR:
    controls = _resolve_lowering_controls(kwargs)
    set_log_level(controls["verbosity"])

    info('')
    info(Color.REVERSE(f'Primitive lowering started'), '=' * 56)

    if controls["enable_shape_inference"]:
        onnx_graph = _infer_shapes_with_fallback(onnx_graph)

    shape_map, dtype_map = _extract_tensor_info(onnx_graph)
    constants: Dict[str, np.ndarray] = {}
    for ini in onnx_graph.graph.initializer:
        constants[ini.name] = np.asarray(numpy_helper.to_array(ini))

    model_ir = ModelIR(name=output_file_name)
    ctx = LoweringContext(
        model_ir=model_ir,
        shape_map=shape_map,
        dtype_map=dtype_map,
    )

    # Inputs
    initializer_names = {ini.name for ini in onnx_graph.graph.initializer}
    for graph_input in onnx_graph.graph.input:
        if graph_input.name in initializer_names:
            continue
        model_ir.inputs.append(ctx.ensure_tensor(str(graph_input.name)))

    # Initializers as tensors
    for name, value in constants.items():
        ctx.add_const_tensor(name, value)

    # Nodes
    for node in onnx_graph.graph.node:
        if node.op_type == "Constant":
            output_name = str(node.output[0])
            name = ctx.add_const_tensor(output_name, _constant_node_value(node))
            if name != output_name:
                ctx.aliases[output_name] = name
            continue

        wrapped = _NodeWrap(node)
        debug(Color.GREEN('Lowering:'), f'op={wrapped.op} node={wrapped.name}')
        try:
            dispatch_node(wrapped, ctx)
        except NodeValidationError as ve:
            raise NotImplementedError(
                f"onnx2prim lowering failed: "
                f"op={ve.node_op} node={ve.node_name} "
                f"reason_code={ve.reason_code} message={ve.message}"
            ) from ve

    # Outputs
    for graph_output in onnx_graph.graph.output:
        model_ir.outputs.append(ctx.ensure_tensor(str(graph_output.name)))

    info(Color.GREEN(f'Primitive lowering complete!'))
    return model_ir


def build_lowering_report(model_ir: ModelIR) -> Dict[str, Any]:
    op_counts: Dict[str, int] = {}
    for op in model_ir.operators:
        op_counts[str(op.op_type)] = int(op_counts.get(str(op.op_type), 0) + 1)
    literals = [
        {
            "name": t.name,
            "dtype": t.dtype,
            "shape": [int(v) for v in t.shape],
            "nbytes": int(t.data.nbytes),
        }
        for t in model_ir.tensors.values()
        if isinstance(t.data, np.ndarray)
    ]
    return {
        "model_name": model_ir.name,
        "inputs": list(model_ir.inputs),
        "outputs": list(model_ir.outputs),
        "operator_count": int(len(model_ir.operators)),
        "operator_counts": dict(sorted(op_counts.items())),
        "literal_count": int(len(literals)),
        "literal_bytes": int(sum(v["nbytes"] for v in literals)),
        "literals": literals,
        "operators": [
            {
                "op_type": op.op_type,
                "inputs": list(op.inputs),
                "outputs": list(op.outputs),
                "options": dict(op.options),
            }
            for op in model_ir.operators
        ],
    }


def write_lowering_report(
    *,
    report: Dict[str, Any],
    output_report_path: str,
) -> str:
    import json

    os.makedirs(os.path.dirname(output_report_path) or ".", exist_ok=True)
    with open(output_report_path, "w", encoding="utf-8") as f:
        json.dump(report, f, ensure_ascii=False, indent=2)
    return output_report_path
