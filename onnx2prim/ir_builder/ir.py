from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

if TYPE_CHECKING:
    from onnx2prim.ir_builder.graph import LoweringContext


@dataclass(frozen=True)
class Shape:
    """Static view of a tensor shape.

    Dynamic dimensions are kept with length 1 in ``lens`` and flagged in
    ``dynamic_dims``. ``signature`` gives the usual -1 encoding back.
    A shape with ``rank_known=False`` carries no usable ``lens``: only its
    dtype is meaningful.
    """
    lens: Tuple[int, ...]
    dtype: str = "FLOAT32"
    dynamic_dims: Tuple[bool, ...] = ()
    rank_known: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "lens", tuple(int(v) for v in self.lens))
        if len(self.dynamic_dims) == 0:
            object.__setattr__(self, "dynamic_dims", tuple(False for _ in self.lens))
        else:
            object.__setattr__(self, "dynamic_dims", tuple(bool(v) for v in self.dynamic_dims))
        if len(self.dynamic_dims) != len(self.lens):
            raise ValueError(
                f"dynamic_dims length must match lens. lens={list(self.lens)} "
                f"dynamic_dims={list(self.dynamic_dims)}"
            )
        if any(v < 0 for v in self.lens):
            raise ValueError(f"Shape lengths must be non-negative. lens={list(self.lens)}")

    @classmethod
    def from_signature(cls, signature: Optional[Sequence[Any]], dtype: str = "FLOAT32") -> "Shape":
        if signature is None:
            return cls(lens=(1,), dtype=dtype, dynamic_dims=(True,), rank_known=False)
        lens: List[int] = []
        dynamic_dims: List[bool] = []
        for dim in signature:
            if isinstance(dim, (int, np.integer)) and int(dim) >= 0:
                lens.append(int(dim))
                dynamic_dims.append(False)
            else:
                lens.append(1)
                dynamic_dims.append(True)
        return cls(lens=tuple(lens), dtype=dtype, dynamic_dims=tuple(dynamic_dims))

    @property
    def rank(self) -> int:
        return len(self.lens)

    @property
    def signature(self) -> List[int]:
        return [-1 if dyn else int(v) for v, dyn in zip(self.lens, self.dynamic_dims)]

    def dynamic(self) -> bool:
        return not self.rank_known or any(self.dynamic_dims)

    def elements(self) -> int:
        return int(np.prod(self.lens, dtype=np.int64)) if len(self.lens) > 0 else 1

    def strides(self) -> List[int]:
        strides = [1 for _ in self.lens]
        for axis in range(len(self.lens) - 2, -1, -1):
            strides[axis] = strides[axis + 1] * int(self.lens[axis + 1])
        return strides

    def index(self, coords: Sequence[int]) -> int:
        if len(coords) != len(self.lens):
            raise ValueError(
                f"Coordinate rank does not match shape rank. coords={list(coords)} lens={list(self.lens)}"
            )
        return int(sum(int(c) * s for c, s in zip(coords, self.strides())))


@dataclass
class TensorIR:
    name: str
    dtype: str
    shape: List[int]
    # None when even the rank is unknown
    shape_signature: Optional[List[int]] = None
    data: Optional[np.ndarray] = None

    def to_shape(self) -> Shape:
        return Shape.from_signature(self.shape_signature, self.dtype)


@dataclass
class OperatorIR:
    op_type: str
    inputs: List[str]
    outputs: List[str]
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ModelIR:
    name: str
    description: str = "onnx2prim primitive lowering"
    tensors: Dict[str, TensorIR] = field(default_factory=dict)
    operators: List[OperatorIR] = field(default_factory=list)
    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class InstructionRef:
    """Handle to a value already present in a lowering graph."""
    name: str
    graph: Optional["LoweringContext"] = field(default=None, repr=False, compare=False)

    def is_undefined(self) -> bool:
        return self.name == ""

    def get_shape(self) -> Shape:
        if self.is_undefined() or self.graph is None:
            return Shape(lens=(), dtype="FLOAT32")
        return self.graph.get_shape(self.name)

    def evaluate(self) -> Optional[np.ndarray]:
        if self.is_undefined() or self.graph is None:
            return None
        return self.graph.get_constant_array(self.name)


def normalize_onnx_shape(shape: Optional[List[Any]]) -> Tuple[List[int], List[int]]:
    if shape is None:
        return [1], [-1]
    norm_shape: List[int] = []
    signature: List[int] = []
    for dim in shape:
        if isinstance(dim, (int, np.integer)) and int(dim) >= 0:
            norm_shape.append(int(dim))
            signature.append(int(dim))
        else:
            norm_shape.append(1)
            signature.append(-1)
    return norm_shape, signature
