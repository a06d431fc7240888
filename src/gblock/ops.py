"""
gblock Ops - element-wise operations

Comparisons and logical operations return ``ByteBlock`` masks of 0/1, the
same convention native block routines use for flags. Operands may be
blocks, views or scalars; block operands must have equal length.
"""

from __future__ import annotations

import operator
from typing import Any, Callable, List, Union

from ._base import BlockBase
from ._dtypes import convert_value, validate_kind
from ._errors import InvalidRange, KindMismatch
from .block import Block, ByteBlock, IntBlock

Operand = Union[BlockBase, int, float]

__all__ = [
    "eq", "ne", "gt", "ge", "lt", "le",
    "logical_and", "logical_or", "logical_xor", "logical_not",
    "any_nonzero", "all_nonzero", "none_nonzero",
    "where", "collect",
]


def _operands(a: Operand, b: Operand):
    """Expand two operands into equal-length value lists."""
    if isinstance(a, BlockBase) and isinstance(b, BlockBase):
        if a.size != b.size:
            raise InvalidRange(f"Operand lengths differ: {a.size} != {b.size}")
        return a.to_list(), b.to_list()
    if isinstance(a, BlockBase):
        return a.to_list(), [_scalar(b)] * a.size
    if isinstance(b, BlockBase):
        return [_scalar(a)] * b.size, b.to_list()
    raise KindMismatch("At least one operand must be a block or view")


def _scalar(value: Any):
    if isinstance(value, (int, float)) or hasattr(value, "__index__") or hasattr(value, "__float__"):
        return value
    raise KindMismatch(f"Expected a numeric scalar, got {type(value).__name__}")


def _mask(values: List) -> ByteBlock:
    return ByteBlock.from_values([1 if v else 0 for v in values])


def _compare(op: Callable[[Any, Any], bool], a: Operand, b: Operand) -> ByteBlock:
    xs, ys = _operands(a, b)
    return _mask([op(x, y) for x, y in zip(xs, ys)])


# =============================================================================
# Comparisons
# =============================================================================

def eq(a: Operand, b: Operand) -> ByteBlock:
    """Element-wise ``a == b``."""
    return _compare(operator.eq, a, b)


def ne(a: Operand, b: Operand) -> ByteBlock:
    """Element-wise ``a != b``."""
    return _compare(operator.ne, a, b)


def gt(a: Operand, b: Operand) -> ByteBlock:
    """Element-wise ``a > b``."""
    return _compare(operator.gt, a, b)


def ge(a: Operand, b: Operand) -> ByteBlock:
    """Element-wise ``a >= b``."""
    return _compare(operator.ge, a, b)


def lt(a: Operand, b: Operand) -> ByteBlock:
    """Element-wise ``a < b``."""
    return _compare(operator.lt, a, b)


def le(a: Operand, b: Operand) -> ByteBlock:
    """Element-wise ``a <= b``."""
    return _compare(operator.le, a, b)


# =============================================================================
# Logical operations (non-zero is true)
# =============================================================================

def logical_and(a: Operand, b: Operand) -> ByteBlock:
    return _compare(lambda x, y: bool(x) and bool(y), a, b)


def logical_or(a: Operand, b: Operand) -> ByteBlock:
    return _compare(lambda x, y: bool(x) or bool(y), a, b)


def logical_xor(a: Operand, b: Operand) -> ByteBlock:
    return _compare(lambda x, y: bool(x) != bool(y), a, b)


def logical_not(a: BlockBase) -> ByteBlock:
    if not isinstance(a, BlockBase):
        raise KindMismatch(f"Expected a block or view, got {type(a).__name__}")
    return _mask([not v for v in a])


# =============================================================================
# Predicates
# =============================================================================

def any_nonzero(a: BlockBase) -> bool:
    """True if any element is non-zero."""
    return any(a)


def all_nonzero(a: BlockBase) -> bool:
    """True if every element is non-zero (True for empty blocks)."""
    return all(a)


def none_nonzero(a: BlockBase) -> bool:
    """True if no element is non-zero."""
    return not any(a)


# =============================================================================
# Selection and mapping
# =============================================================================

def where(mask: BlockBase) -> IntBlock:
    """Indices of non-zero elements, as an IntBlock."""
    return IntBlock.from_values([i for i, v in enumerate(mask) if v])


def collect(source: BlockBase, fn: Callable[[Any], Any], kind=None) -> Block:
    """
    Create an owning block holding ``fn(x)`` for every element.

    Results are stored through the cast policy of the result kind
    (default: the source kind).
    """
    kind = source.kind if kind is None else validate_kind(kind)
    out = Block.allocate(kind, source.size)
    if source.size:
        data = out._storage()
        for i, v in enumerate(source):
            data[i] = convert_value(fn(v), kind)
    return out
