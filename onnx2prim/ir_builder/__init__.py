from onnx2prim.ir_builder.errors import (
    DimensionOverflow,
    MissingScaleOrSizeInput,
    NodeValidationError,
    OutputRankMismatch,
    RankMismatch,
    ResizeLoweringError,
    UnsupportedCoordinateTransformMode,
    UnsupportedDynamicLinear,
    UnsupportedExcludeOutside,
    UnsupportedInterpolationMode,
    UnsupportedNearestMode,
    ZeroLengthInputDimension,
)
from onnx2prim.ir_builder.graph import GraphBuilder, LoweringContext
from onnx2prim.ir_builder.ir import InstructionRef, ModelIR, OperatorIR, Shape, TensorIR
from onnx2prim.ir_builder.lower_from_onnx import (
    build_lowering_report,
    lower_onnx_to_ir,
    write_lowering_report,
)
from onnx2prim.ir_builder.op_builders import lower_resize

__all__ = [
    "DimensionOverflow",
    "MissingScaleOrSizeInput",
    "NodeValidationError",
    "OutputRankMismatch",
    "RankMismatch",
    "ResizeLoweringError",
    "UnsupportedCoordinateTransformMode",
    "UnsupportedDynamicLinear",
    "UnsupportedExcludeOutside",
    "UnsupportedInterpolationMode",
    "UnsupportedNearestMode",
    "ZeroLengthInputDimension",
    "GraphBuilder",
    "LoweringContext",
    "InstructionRef",
    "ModelIR",
    "OperatorIR",
    "Shape",
    "TensorIR",
    "build_lowering_report",
    "lower_onnx_to_ir",
    "write_lowering_report",
    "lower_resize",
]
