from onnx2prim.onnx2prim import lower, main

__version__ = '0.1.0'
