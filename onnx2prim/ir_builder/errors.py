from __future__ import annotations

from typing import Any, Dict


class NodeValidationError(ValueError):
    def __init__(
        self,
        *,
        reason_code: str,
        message: str,
        node_name: str = "",
        node_op: str = "",
    ) -> None:
        super().__init__(message)
        self.reason_code = str(reason_code)
        self.node_name = str(node_name)
        self.node_op = str(node_op)
        self.message = str(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_name": self.node_name,
            "onnx_op": self.node_op,
            "reason_code": self.reason_code,
            "message": self.message,
        }


class ResizeLoweringError(NodeValidationError):
    reason_code_default = "resize_lowering_error"

    def __init__(self, message: str, *, node_name: str = "", node_op: str = "Resize") -> None:
        super().__init__(
            reason_code=self.reason_code_default,
            message=message,
            node_name=node_name,
            node_op=node_op,
        )


class UnsupportedCoordinateTransformMode(ResizeLoweringError):
    reason_code_default = "unsupported_coordinate_transformation_mode"


class UnsupportedInterpolationMode(ResizeLoweringError):
    reason_code_default = "unsupported_interpolation_mode"


class UnsupportedNearestMode(ResizeLoweringError):
    reason_code_default = "unsupported_nearest_mode"


class UnsupportedExcludeOutside(ResizeLoweringError):
    reason_code_default = "unsupported_exclude_outside"


class RankMismatch(ResizeLoweringError):
    reason_code_default = "scale_rank_mismatch"


class OutputRankMismatch(ResizeLoweringError):
    reason_code_default = "output_rank_mismatch"


class MissingScaleOrSizeInput(ResizeLoweringError):
    reason_code_default = "missing_scale_or_size_input"


class DimensionOverflow(ResizeLoweringError):
    reason_code_default = "dimension_overflow"


class UnsupportedDynamicLinear(ResizeLoweringError):
    reason_code_default = "unsupported_dynamic_linear"


class ZeroLengthInputDimension(ResizeLoweringError):
    reason_code_default = "zero_length_input_dimension"
