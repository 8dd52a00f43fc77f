from __future__ import annotations

from typing import Dict, Optional

import numpy as np
import pytest

from onnx2prim.ir_builder.ir import ModelIR


def run_model_ir(
    model_ir: ModelIR,
    feeds: Dict[str, np.ndarray],
    output_name: Optional[str] = None,
) -> np.ndarray:
    """Reference numpy execution of the primitive ops emitted by the lowering."""
    values: Dict[str, np.ndarray] = {
        name: np.asarray(t.data)
        for name, t in model_ir.tensors.items()
        if t.data is not None
    }
    values.update({k: np.asarray(v) for k, v in feeds.items()})
    for op in model_ir.operators:
        ins = [values[name] for name in op.inputs]
        if op.op_type == "RESHAPE":
            out = np.reshape(ins[0], [int(v) for v in op.options["newShape"]])
        elif op.op_type == "GATHER":
            out = np.take(ins[0], ins[1], axis=int(op.options["axis"]))
        elif op.op_type == "SLICE":
            slices = [slice(None)] * ins[0].ndim
            for axis, start, end in zip(
                op.options["axes"], op.options["starts"], op.options["ends"]
            ):
                slices[int(axis)] = slice(int(start), int(end))
            out = ins[0][tuple(slices)]
        elif op.op_type == "ADD":
            out = ins[0] + ins[1]
        elif op.op_type == "SUB":
            out = ins[0] - ins[1]
        elif op.op_type == "MUL":
            out = ins[0] * ins[1]
        else:
            raise NotImplementedError(f"reference execution does not support {op.op_type}")
        values[op.outputs[0]] = out
    if output_name is None:
        output_name = model_ir.outputs[0] if model_ir.outputs else model_ir.operators[-1].outputs[0]
    return values[output_name]


@pytest.fixture
def ir_runner():
    return run_model_ir
