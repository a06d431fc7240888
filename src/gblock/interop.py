"""
NumPy interop.

``to_numpy`` and ``wrap_numpy`` are zero-copy in both directions;
``from_numpy`` copies. Supported dtypes: float64, int32, uint8 (bool
arrays are copied as uint8).
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np

from ._base import BlockBase
from ._dtypes import Kind, validate_kind
from ._errors import InvalidRange, KindMismatch
from .block import Block
from .view import BlockView

__all__ = ['kind_from_dtype', 'dtype_from_kind', 'to_numpy', 'from_numpy', 'wrap_numpy']


_NUMPY_DTYPES: Dict[Kind, np.dtype] = {
    Kind.FLOAT64: np.dtype(np.float64),
    Kind.INT32: np.dtype(np.int32),
    Kind.UINT8: np.dtype(np.uint8),
}


def dtype_from_kind(kind) -> np.dtype:
    """Get numpy dtype equivalent of a kind."""
    return _NUMPY_DTYPES[validate_kind(kind)]


def kind_from_dtype(dtype) -> Kind:
    """
    Get the kind stored by numpy ``dtype``.

    Raises:
        KindMismatch: If no kind has this dtype's layout
    """
    dtype = np.dtype(dtype)
    for kind, np_dtype in _NUMPY_DTYPES.items():
        if dtype == np_dtype:
            return kind
    raise KindMismatch(f"Unsupported dtype: {dtype}")


def to_numpy(obj: BlockBase, copy: bool = False) -> np.ndarray:
    """
    Convert a block or view to a 1-D numpy array.

    Args:
        obj: Block or BlockView
        copy: Return an independent copy instead of an alias

    Returns:
        numpy.ndarray (read-only when the block is read-only)
    """
    if not isinstance(obj, BlockBase):
        raise KindMismatch(f"Expected a block or view, got {type(obj).__name__}")
    dtype = _NUMPY_DTYPES[obj.kind]
    if isinstance(obj, BlockView):
        base = to_numpy(obj.base)
        if obj.size == 0:
            arr = base[0:0]
        else:
            stop = obj.offset + obj.size * obj.stride
            arr = base[obj.offset:(stop if stop >= 0 else None):obj.stride]
    else:
        data = obj._storage()
        if data is None:
            arr = np.empty(0, dtype=dtype)
        else:
            arr = np.frombuffer(data, dtype=dtype)
            if obj.readonly:
                arr.flags.writeable = False
    return arr.copy() if copy else arr


def from_numpy(arr, kind=None) -> Block:
    """
    Create an owning block from a numpy array (copies data).

    Multi-dimensional arrays are flattened in C order. With ``kind`` given,
    values are validated against that kind instead of requiring a matching
    dtype.
    """
    arr = np.asarray(arr)
    if arr.dtype == np.bool_:
        arr = arr.astype(np.uint8)
    if kind is None:
        kind = kind_from_dtype(arr.dtype)
    else:
        kind = validate_kind(kind)

    flat = arr.ravel()
    if flat.dtype != _NUMPY_DTYPES[kind]:
        return Block.from_values(flat.tolist(), kind)

    blk = Block.allocate(kind, flat.size)
    if flat.size:
        np.frombuffer(blk._storage(), dtype=flat.dtype)[:] = flat
    return blk


def wrap_numpy(arr: np.ndarray, readonly: Optional[bool] = None) -> Block:
    """
    Create a non-owning block aliasing a numpy array (zero-copy).

    Raises:
        InvalidRange: If the array is not C-contiguous
        KindMismatch: If the dtype has no matching kind
    """
    if not isinstance(arr, np.ndarray):
        raise KindMismatch(f"Expected numpy.ndarray, got {type(arr).__name__}")
    if not arr.flags["C_CONTIGUOUS"]:
        raise InvalidRange(
            "Array must be C-contiguous. "
            "Use np.ascontiguousarray() before wrapping."
        )
    kind = kind_from_dtype(arr.dtype)
    return Block.wrap(arr, arr.size, kind, readonly)
