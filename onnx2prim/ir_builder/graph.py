from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Protocol

import numpy as np

from onnx2prim.ir_builder.ir import (
    InstructionRef,
    ModelIR,
    OperatorIR,
    Shape,
    TensorIR,
    normalize_onnx_shape,
)
from onnx2prim.ir_builder.shape_inference import infer_output_shape
from onnx2prim.utils.enums import IR_DTYPES_TO_NUMPY_DTYPES, ir_dtype_from_numpy


class GraphBuilder(Protocol):
    def add_instruction(
        self,
        op_type: str,
        options: Dict[str, Any],
        *inputs: InstructionRef,
    ) -> InstructionRef:
        ...

    def add_literal(self, shape: Shape, data: Any) -> InstructionRef:
        ...


class LoweringContext:
    def __init__(
        self,
        model_ir: ModelIR,
        shape_map: Optional[Dict[str, List[Any]]] = None,
        dtype_map: Optional[Dict[str, str]] = None,
        constants: Optional[Dict[str, np.ndarray]] = None,
    ):
        self.model_ir = model_ir
        self.shape_map = dict(shape_map) if shape_map is not None else {}
        self.dtype_map = dict(dtype_map) if dtype_map is not None else {}
        self.constants = dict(constants) if constants is not None else {}
        self.aliases: Dict[str, str] = {}
        self._serial = 0

    def _next_name(self, base: str) -> str:
        self._serial += 1
        return f"{base}_{self._serial}"

    def _unique_name(self, base: str) -> str:
        name = base
        while name in self.model_ir.tensors or name in self.aliases:
            name = self._next_name(base)
        return name

    def resolve_name(self, name: str) -> str:
        seen = set()
        while name in self.aliases and name not in seen:
            seen.add(name)
            name = self.aliases[name]
        return name

    def get_ref(self, name: str) -> InstructionRef:
        if name == "":
            return InstructionRef(name="", graph=self)
        return InstructionRef(name=self.resolve_name(name), graph=self)

    def get_shape(self, name: str) -> Shape:
        name = self.resolve_name(name)
        if name in self.model_ir.tensors:
            return self.model_ir.tensors[name].to_shape()
        if name in self.constants:
            data = np.asarray(self.constants[name])
            return Shape(lens=tuple(data.shape), dtype=ir_dtype_from_numpy(data.dtype))
        return Shape.from_signature(self.shape_map.get(name, None), self.dtype_map.get(name, "FLOAT32"))

    def get_constant_array(self, name: str) -> Optional[np.ndarray]:
        name = self.resolve_name(name)
        if name in self.constants:
            return self.constants[name]
        t = self.model_ir.tensors.get(name, None)
        if t is not None and isinstance(t.data, np.ndarray):
            return t.data
        return None

    def ensure_tensor(self, name: str, dtype: Optional[str] = None, shape: Optional[List[Any]] = None) -> str:
        if name == "":
            raise ValueError("Tensor name must not be empty in onnx2prim lowering.")
        name = self.resolve_name(name)
        if name in self.model_ir.tensors:
            return name
        if dtype is None:
            dtype = self.dtype_map.get(name, "FLOAT32")
        if shape is None:
            if name in self.constants:
                shape = list(np.asarray(self.constants[name]).shape)
            else:
                shape = self.shape_map.get(name, None)
        norm_shape, signature = normalize_onnx_shape(shape)
        self.model_ir.tensors[name] = TensorIR(
            name=name,
            dtype=dtype,
            shape=list(norm_shape),
            shape_signature=list(signature) if shape is not None else None,
            data=self.constants.get(name, None),
        )
        return name

    def add_const_tensor(self, base_name: str, data: np.ndarray) -> str:
        name = self._unique_name(base_name)
        data = np.asarray(data)
        self.model_ir.tensors[name] = TensorIR(
            name=name,
            dtype=ir_dtype_from_numpy(data.dtype),
            shape=[int(v) for v in data.shape],
            shape_signature=[int(v) for v in data.shape],
            data=data,
        )
        self.constants[name] = data
        return name

    def add_intermediate_tensor(self, base_name: str, shape: Shape) -> str:
        if base_name == "":
            raise ValueError("Tensor name must not be empty in onnx2prim lowering.")
        name = self._unique_name(base_name)
        self.model_ir.tensors[name] = TensorIR(
            name=name,
            dtype=shape.dtype,
            shape=[int(v) for v in shape.lens],
            shape_signature=[int(v) for v in shape.signature] if shape.rank_known else None,
            data=None,
        )
        return name

    def add_operator(self, op: OperatorIR) -> None:
        self.model_ir.operators.append(op)

    def add_literal(self, shape: Shape, data: Any) -> InstructionRef:
        if shape.dynamic():
            raise ValueError(f"Literal shape must be static. signature={shape.signature}")
        np_dtype = IR_DTYPES_TO_NUMPY_DTYPES.get(shape.dtype, None)
        if np_dtype is None:
            raise NotImplementedError(f"Unsupported literal dtype in onnx2prim: {shape.dtype}")
        arr = np.asarray(data, dtype=np_dtype)
        if int(arr.size) != shape.elements():
            raise ValueError(
                f"Literal data size does not match shape. size={int(arr.size)} lens={list(shape.lens)}"
            )
        name = self.add_const_tensor("literal", arr.reshape(shape.lens))
        return InstructionRef(name=name, graph=self)

    def add_instruction(
        self,
        op_type: str,
        options: Dict[str, Any],
        *inputs: InstructionRef,
    ) -> InstructionRef:
        op_type = str(op_type).upper()
        input_names = [self.ensure_tensor(ref.name) for ref in inputs]
        input_shapes = [self.get_shape(name) for name in input_names]
        constant_inputs = [self.get_constant_array(name) for name in input_names]
        output_shape = infer_output_shape(op_type, dict(options), input_shapes, constant_inputs)
        output_name = self.add_intermediate_tensor(op_type.lower(), output_shape)
        self.add_operator(
            OperatorIR(
                op_type=op_type,
                inputs=input_names,
                outputs=[output_name],
                options=dict(options),
            )
        )
        return InstructionRef(name=output_name, graph=self)

    def _rename_tensor(self, src_name: str, dst_name: str) -> None:
        tensor = self.model_ir.tensors.pop(src_name)
        tensor.name = dst_name
        self.model_ir.tensors[dst_name] = tensor
        for op in self.model_ir.operators:
            op.inputs = [dst_name if n == src_name else n for n in op.inputs]
            op.outputs = [dst_name if n == src_name else n for n in op.outputs]
        for key, value in list(self.aliases.items()):
            if value == src_name:
                self.aliases[key] = dst_name

    def bind_output(self, onnx_name: str, ref: InstructionRef) -> str:
        """Make ``onnx_name`` refer to the value produced as ``ref``.

        Operator outputs are renamed so that graph-visible names stay stable.
        Anything else (graph inputs, constants) is aliased.
        """
        if onnx_name == ref.name:
            return onnx_name
        if onnx_name in self.model_ir.tensors:
            placeholder = self.model_ir.tensors[onnx_name]
            if placeholder.data is not None or any(onnx_name in op.outputs for op in self.model_ir.operators):
                raise ValueError(f"Tensor is already produced in onnx2prim lowering: {onnx_name}")
            del self.model_ir.tensors[onnx_name]
        produced = any(ref.name in op.outputs for op in self.model_ir.operators)
        if not produced or ref.name in self.model_ir.inputs:
            self.aliases[onnx_name] = ref.name
            return ref.name
        self._rename_tensor(ref.name, onnx_name)
        return onnx_name

    @contextmanager
    def transaction(self) -> Iterator["LoweringContext"]:
        operator_count = len(self.model_ir.operators)
        tensor_names = set(self.model_ir.tensors.keys())
        constant_names = set(self.constants.keys())
        alias_snapshot = dict(self.aliases)
        serial = self._serial
        try:
            yield self
        except BaseException:
            del self.model_ir.operators[operator_count:]
            for name in [n for n in self.model_ir.tensors.keys() if n not in tensor_names]:
                del self.model_ir.tensors[name]
            for name in [n for n in self.constants.keys() if n not in constant_names]:
                del self.constants[name]
            self.aliases = alias_snapshot
            self._serial = serial
            raise
