from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from onnx2prim.ir_builder.errors import DimensionOverflow
from onnx2prim.ir_builder.ir import Shape

# Corner selectors are bitmasks over one bit per dimension.
ENUMERATION_BITS = 64


def calc_neighbor_points(
    table: Union[np.ndarray, Sequence[Sequence[Sequence[int]]]],
    in_shape: Shape,
) -> np.ndarray:
    """Flat source offsets of every interpolation corner of every output element.

    ``table[dim][corner][element]`` holds the floor (corner 0) and ceil
    (corner 1) source index of ``dim`` for each output element. For every
    selector ``v`` in ``[0, 2**rank)``, bit ``d`` of ``v`` picks the corner
    used for dimension ``d``, so the last dimension is the most significant
    bit. The result is ``2**rank`` contiguous blocks of ``m_elements``
    offsets, ordered by ascending ``v``.
    """
    vvv_ind = np.asarray(table, dtype=np.int64)
    n_bits = int(vvv_ind.shape[0]) if vvv_ind.ndim > 0 else 0
    if n_bits >= ENUMERATION_BITS:
        raise DimensionOverflow(
            f"Shape dimension {n_bits} exceeds {ENUMERATION_BITS}"
        )
    if vvv_ind.ndim != 3 or int(vvv_ind.shape[1]) != 2:
        raise ValueError(
            f"Neighbor table must have shape [rank, 2, m_elements]. shape={list(vvv_ind.shape)}"
        )
    if n_bits != in_shape.rank:
        raise ValueError(
            f"Neighbor table rank does not match input rank. "
            f"table_rank={n_bits} input_rank={in_shape.rank}"
        )
    m_elements = int(vvv_ind.shape[2])
    strides = np.asarray(in_shape.strides(), dtype=np.int64)
    dims = np.arange(n_bits, dtype=np.int64)

    blocks = []
    for val in range(1 << n_bits):
        bits_val = (val >> dims) & 1
        indices = vvv_ind[dims, bits_val, :]
        blocks.append(np.sum(indices * strides[:, None], axis=0))
    if len(blocks) == 0 or m_elements == 0:
        return np.zeros((0,), dtype=np.int64)
    return np.concatenate(blocks).astype(np.int64)
