import numpy as np
import pytest

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
from onnx2prim.ir_builder.graph import LoweringContext
from onnx2prim.ir_builder.ir import ModelIR, Shape
from onnx2prim.ir_builder.op_builders.resize_config import (
    ResizeConfig,
    resolve_resize_config,
    resolve_scales_and_out_lens,
)
from onnx2prim.ir_builder.op_builders.resize_policies import (
    CoordinateTransformMode,
    InterpolationMode,
    NearestMode,
)


def _make_ctx(shape_map=None, dtype_map=None) -> LoweringContext:
    return LoweringContext(
        model_ir=ModelIR(name="resize_config_test"),
        shape_map=shape_map or {"x": [1, 1, 4]},
        dtype_map=dtype_map or {},
    )


def test_resize_config_defaults() -> None:
    config = resolve_resize_config({})
    assert config == ResizeConfig(
        mode=InterpolationMode.NEAREST,
        coord_transform=CoordinateTransformMode.HALF_PIXEL,
        nearest_mode=NearestMode.ROUND_PREFER_FLOOR,
        exclude_outside=False,
    )


def test_resize_config_reads_all_attributes() -> None:
    config = resolve_resize_config(
        {
            "mode": "linear",
            "coordinate_transformation_mode": "align_corners",
            "nearest_mode": "ceil",
            "exclude_outside": 0,
        }
    )
    assert config.mode == InterpolationMode.LINEAR
    assert config.coord_transform == CoordinateTransformMode.ALIGN_CORNERS
    assert config.nearest_mode == NearestMode.CEIL


@pytest.mark.parametrize(
    "extra_attrs",
    [
        {},
        {"mode": "linear"},
        {"mode": "cubic"},
        {"nearest_mode": "floor"},
        {"nearest_mode": "bogus"},
        {"exclude_outside": 1},
    ],
)
def test_tf_crop_and_resize_is_always_rejected(extra_attrs) -> None:
    attrs = {"coordinate_transformation_mode": "tf_crop_and_resize"}
    attrs.update(extra_attrs)
    with pytest.raises(UnsupportedCoordinateTransformMode) as exc_info:
        resolve_resize_config(attrs, node_name="ResizeNode")
    assert exc_info.value.reason_code == "unsupported_coordinate_transformation_mode"
    assert exc_info.value.node_name == "ResizeNode"


@pytest.mark.parametrize(
    "extra_attrs",
    [
        {},
        {"mode": "linear"},
        {"coordinate_transformation_mode": "asymmetric"},
        {"nearest_mode": "round_prefer_ceil"},
    ],
)
def test_exclude_outside_is_always_rejected(extra_attrs) -> None:
    attrs = {"exclude_outside": 1}
    attrs.update(extra_attrs)
    with pytest.raises(UnsupportedExcludeOutside):
        resolve_resize_config(attrs)


def test_unknown_modes_are_rejected_at_config_time() -> None:
    with pytest.raises(UnsupportedInterpolationMode):
        resolve_resize_config({"mode": "cubic"})
    with pytest.raises(UnsupportedCoordinateTransformMode):
        resolve_resize_config({"coordinate_transformation_mode": "stretch"})
    with pytest.raises(UnsupportedNearestMode):
        resolve_resize_config({"nearest_mode": "round"})


def test_resolution_errors_serialize_to_dict() -> None:
    with pytest.raises(UnsupportedInterpolationMode) as exc_info:
        resolve_resize_config({"mode": "cubic"}, node_name="n0", node_op="Upsample")
    assert exc_info.value.to_dict() == {
        "node_name": "n0",
        "onnx_op": "Upsample",
        "reason_code": "unsupported_interpolation_mode",
        "message": exc_info.value.message,
    }


def test_scales_attribute_bypasses_arguments() -> None:
    ctx = _make_ctx()
    ctx.add_const_tensor("bogus_sizes", np.asarray([9, 9], dtype=np.int64))
    resolution = resolve_scales_and_out_lens(
        {"scales": [1.0, 1.0, 2.5]},
        [ctx.get_ref("x"), ctx.get_ref("bogus_sizes")],
        Shape(lens=(1, 1, 4)),
    )
    assert resolution.is_constant
    assert resolution.scales == [1.0, 1.0, 2.5]
    assert resolution.out_lens == [1, 1, 10]
    assert resolution.scale_size_arg is None


def test_scales_attribute_with_wrong_rank_fails() -> None:
    ctx = _make_ctx()
    with pytest.raises(RankMismatch):
        resolve_scales_and_out_lens(
            {"scales": [1.0, 2.0]},
            [ctx.get_ref("x")],
            Shape(lens=(1, 1, 4)),
        )


def test_sizes_argument_back_computes_scales() -> None:
    ctx = _make_ctx()
    ctx.add_const_tensor("sizes", np.asarray([1, 1, 6], dtype=np.int64))
    resolution = resolve_scales_and_out_lens(
        {},
        [ctx.get_ref("x"), ctx.get_ref(""), ctx.get_ref(""), ctx.get_ref("sizes")],
        Shape(lens=(1, 1, 4)),
    )
    assert resolution.is_constant
    assert resolution.out_lens == [1, 1, 6]
    assert resolution.scales == pytest.approx([1.0, 1.0, 1.5])
    assert resolution.scale_size_arg.name == "sizes"


def test_sizes_argument_with_wrong_rank_fails() -> None:
    ctx = _make_ctx()
    ctx.add_const_tensor("sizes", np.asarray([1, 6], dtype=np.int32))
    with pytest.raises(OutputRankMismatch):
        resolve_scales_and_out_lens(
            {},
            [ctx.get_ref("x"), ctx.get_ref("sizes")],
            Shape(lens=(1, 1, 4)),
        )


def test_scales_argument_truncates_output_lengths() -> None:
    ctx = _make_ctx()
    ctx.add_const_tensor("scales", np.asarray([1.0, 1.0, 1.9], dtype=np.float32))
    resolution = resolve_scales_and_out_lens(
        {},
        [ctx.get_ref("x"), ctx.get_ref("scales")],
        Shape(lens=(1, 1, 4)),
    )
    assert resolution.is_constant
    assert resolution.out_lens == [1, 1, 7]
    assert resolution.scales == pytest.approx([1.0, 1.0, 1.9])


def test_unset_optional_inputs_are_skipped() -> None:
    ctx = _make_ctx()
    ctx.add_const_tensor("roi_empty", np.zeros((0,), dtype=np.float32))
    ctx.add_const_tensor("scalar", np.asarray(3.0, dtype=np.float32))
    ctx.add_const_tensor("scales", np.asarray([1.0, 1.0, 2.0], dtype=np.float32))
    resolution = resolve_scales_and_out_lens(
        {},
        [ctx.get_ref("x"), ctx.get_ref(""), ctx.get_ref("roi_empty"), ctx.get_ref("scalar"), ctx.get_ref("scales")],
        Shape(lens=(1, 1, 4)),
    )
    assert resolution.scale_size_arg.name == "scales"
    assert resolution.out_lens == [1, 1, 8]


def test_roi_argument_is_passed_over() -> None:
    ctx = _make_ctx()
    ctx.add_const_tensor("roi", np.asarray([0, 0, 0, 1, 1, 1], dtype=np.float32))
    ctx.add_const_tensor("scales", np.asarray([1.0, 1.0, 2.0], dtype=np.float32))
    resolution = resolve_scales_and_out_lens(
        {},
        [ctx.get_ref("x"), ctx.get_ref("roi"), ctx.get_ref("scales")],
        Shape(lens=(1, 1, 4)),
    )
    assert resolution.scale_size_arg.name == "scales"


def test_scales_argument_with_wrong_rank_fails() -> None:
    ctx = _make_ctx()
    ctx.add_const_tensor("scales", np.asarray([1.0, 2.0], dtype=np.float32))
    with pytest.raises(RankMismatch):
        resolve_scales_and_out_lens(
            {},
            [ctx.get_ref("x"), ctx.get_ref("scales")],
            Shape(lens=(1, 1, 4)),
        )


def test_runtime_scales_defer_to_runtime() -> None:
    ctx = _make_ctx(shape_map={"x": [1, 1, 4], "scales": [3]})
    resolution = resolve_scales_and_out_lens(
        {},
        [ctx.get_ref("x"), ctx.get_ref("scales")],
        Shape(lens=(1, 1, 4)),
    )
    assert resolution.is_constant is False
    assert resolution.scale_size_arg.name == "scales"


def test_runtime_sizes_defer_to_runtime() -> None:
    ctx = _make_ctx(
        shape_map={"x": [1, 1, 4], "sizes": [3]},
        dtype_map={"sizes": "INT64"},
    )
    resolution = resolve_scales_and_out_lens(
        {},
        [ctx.get_ref("x"), ctx.get_ref("sizes")],
        Shape(lens=(1, 1, 4)),
    )
    assert resolution.is_constant is False


def test_missing_scale_or_size_input() -> None:
    ctx = _make_ctx()
    with pytest.raises(MissingScaleOrSizeInput):
        resolve_scales_and_out_lens({}, [ctx.get_ref("x")], Shape(lens=(1, 1, 4)))
    with pytest.raises(MissingScaleOrSizeInput):
        resolve_scales_and_out_lens(
            {"scales": []},
            [ctx.get_ref("x"), ctx.get_ref(""), ctx.get_ref("")],
            Shape(lens=(1, 1, 4)),
        )


def test_resolution_is_idempotent() -> None:
    ctx = _make_ctx()
    ctx.add_const_tensor("scales", np.asarray([1.0, 1.0, 1.7], dtype=np.float32))
    attrs = {"mode": "linear", "coordinate_transformation_mode": "pytorch_half_pixel"}
    args = [ctx.get_ref("x"), ctx.get_ref("scales")]
    assert resolve_resize_config(attrs) == resolve_resize_config(attrs)
    first = resolve_scales_and_out_lens(attrs, args, Shape(lens=(1, 1, 4)))
    second = resolve_scales_and_out_lens(attrs, args, Shape(lens=(1, 1, 4)))
    assert first == second
    assert len(ctx.model_ir.operators) == 0


def test_unknown_input_rank_takes_last_set_argument() -> None:
    ctx = LoweringContext(model_ir=ModelIR(name="resize_config_test"))
    ctx.add_const_tensor("roi", np.asarray([0, 0, 1, 1], dtype=np.float32))
    ctx.add_const_tensor("scales", np.asarray([1.0, 1.0, 2.0, 2.0], dtype=np.float32))
    resolution = resolve_scales_and_out_lens(
        {},
        [ctx.get_ref("x"), ctx.get_ref("roi"), ctx.get_ref("scales")],
        ctx.get_shape("x"),
    )
    assert resolution.scale_size_arg.name == "scales"
    assert resolution.is_constant


def test_unknown_input_rank_accepts_scales_attribute() -> None:
    ctx = LoweringContext(model_ir=ModelIR(name="resize_config_test"))
    resolution = resolve_scales_and_out_lens(
        {"scales": [1.0, 1.0, 2.0, 2.0]},
        [ctx.get_ref("x")],
        ctx.get_shape("x"),
    )
    assert resolution.scales == [1.0, 1.0, 2.0, 2.0]
    assert resolution.scale_size_arg is None


def test_zero_length_dimension_cannot_grow() -> None:
    ctx = _make_ctx(shape_map={"x": [1, 1, 0]})
    ctx.add_const_tensor("sizes", np.asarray([1, 1, 3], dtype=np.int64))
    with pytest.raises(ZeroLengthInputDimension) as exc_info:
        resolve_scales_and_out_lens(
            {},
            [ctx.get_ref("x"), ctx.get_ref(""), ctx.get_ref(""), ctx.get_ref("sizes")],
            Shape(lens=(1, 1, 0)),
        )
    assert exc_info.value.reason_code == "zero_length_input_dimension"


def test_zero_length_dimension_may_stay_empty() -> None:
    ctx = _make_ctx(shape_map={"x": [1, 1, 0]})
    ctx.add_const_tensor("sizes", np.asarray([1, 2, 0], dtype=np.int64))
    resolution = resolve_scales_and_out_lens(
        {},
        [ctx.get_ref("x"), ctx.get_ref(""), ctx.get_ref(""), ctx.get_ref("sizes")],
        Shape(lens=(1, 1, 0)),
    )
    assert resolution.out_lens == [1, 2, 0]
    assert resolution.scales == [1.0, 2.0, 1.0]
