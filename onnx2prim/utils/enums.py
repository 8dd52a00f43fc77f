import numpy as np
from onnx import TensorProto

ONNX_DTYPES_TO_IR_DTYPES = {
    TensorProto.FLOAT16: "FLOAT16",
    TensorProto.FLOAT: "FLOAT32",
    TensorProto.DOUBLE: "FLOAT64",

    TensorProto.UINT8: "UINT8",
    TensorProto.UINT16: "UINT16",
    TensorProto.UINT32: "UINT32",
    TensorProto.UINT64: "UINT64",

    TensorProto.INT8: "INT8",
    TensorProto.INT16: "INT16",
    TensorProto.INT32: "INT32",
    TensorProto.INT64: "INT64",

    TensorProto.BOOL: "BOOL",
}

NUMPY_DTYPES_TO_IR_DTYPES = {
    np.dtype('float16'): "FLOAT16",
    np.dtype('float32'): "FLOAT32",
    np.dtype('float64'): "FLOAT64",

    np.dtype('uint8'): "UINT8",
    np.dtype('uint16'): "UINT16",
    np.dtype('uint32'): "UINT32",
    np.dtype('uint64'): "UINT64",

    np.dtype('int8'): "INT8",
    np.dtype('int16'): "INT16",
    np.dtype('int32'): "INT32",
    np.dtype('int64'): "INT64",

    np.dtype('bool_'): "BOOL",
}

IR_DTYPES_TO_NUMPY_DTYPES = {
    ir_dtype: np_dtype for np_dtype, ir_dtype in NUMPY_DTYPES_TO_IR_DTYPES.items()
}

FLOAT_IR_DTYPES = {"FLOAT16", "FLOAT32", "FLOAT64"}

INTEGER_IR_DTYPES = {
    "INT8", "INT16", "INT32", "INT64",
    "UINT8", "UINT16", "UINT32", "UINT64",
}


def ir_dtype_from_numpy(np_dtype: np.dtype) -> str:
    np_dtype = np.dtype(np_dtype)
    if np_dtype not in NUMPY_DTYPES_TO_IR_DTYPES:
        raise NotImplementedError(f"Unsupported numpy dtype for onnx2prim: {np_dtype}")
    return NUMPY_DTYPES_TO_IR_DTYPES[np_dtype]


def ir_dtype_from_onnx(elem_type) -> str:
    if elem_type is None or elem_type == TensorProto.UNDEFINED:
        return "FLOAT32"
    if elem_type not in ONNX_DTYPES_TO_IR_DTYPES:
        raise NotImplementedError(f"Unsupported ONNX dtype for onnx2prim: elem_type={elem_type}")
    return ONNX_DTYPES_TO_IR_DTYPES[elem_type]
