from onnx2prim.ir_builder.op_builders.resize import (
    build_resize_op,
    lower_resize,
)

__all__ = [
    "build_resize_op",
    "lower_resize",
]
