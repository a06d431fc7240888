"""
Error handling for gblock.

Error codes follow the native block binding's status table so that a code
returned by a wrapped routine maps onto the same exception class as a check
performed on the Python side.
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple, Type


# =============================================================================
# Error Codes
# =============================================================================

GBLOCK_OK = 0

# General errors (1-9)
GBLOCK_ERROR_UNKNOWN = 1
GBLOCK_ERROR_OUT_OF_MEMORY = 3

# Argument errors (10-19)
GBLOCK_ERROR_INVALID_ARGUMENT = 10
GBLOCK_ERROR_RANGE_ERROR = 13
GBLOCK_ERROR_INDEX_OUT_OF_BOUNDS = 14

# Type errors (20-29)
GBLOCK_ERROR_TYPE_ERROR = 20
GBLOCK_ERROR_TYPE_MISMATCH = 21
GBLOCK_ERROR_READ_ONLY = 22

# Lifetime errors (30-39)
GBLOCK_ERROR_INVALID_HANDLE = 35


_ERROR_MESSAGES = {
    GBLOCK_OK: "Success",
    GBLOCK_ERROR_UNKNOWN: "Unknown error",
    GBLOCK_ERROR_OUT_OF_MEMORY: "Out of memory",
    GBLOCK_ERROR_INVALID_ARGUMENT: "Invalid argument",
    GBLOCK_ERROR_RANGE_ERROR: "Invalid range",
    GBLOCK_ERROR_INDEX_OUT_OF_BOUNDS: "Index out of bounds",
    GBLOCK_ERROR_TYPE_ERROR: "Type error",
    GBLOCK_ERROR_TYPE_MISMATCH: "Kind mismatch",
    GBLOCK_ERROR_READ_ONLY: "Block is read-only",
    GBLOCK_ERROR_INVALID_HANDLE: "Block storage is no longer valid",
}


# =============================================================================
# Exception Classes
# =============================================================================

class BlockError(Exception):
    """
    Base exception for all gblock errors.

    Every subclass carries a fixed ``code`` from the status table above.
    The base class is raised directly only for unknown codes.
    """

    code = GBLOCK_ERROR_UNKNOWN

    def __init__(self, message: Optional[str] = None, code: Optional[int] = None):
        if code is not None:
            self.code = code
        if message is None:
            message = _ERROR_MESSAGES.get(self.code, f"Unknown error (code={self.code})")
        self.message = message
        super().__init__(message)

    @classmethod
    def from_code(cls, code: int, context: str = "") -> "BlockError":
        """Build the exception registered for ``code`` with optional context."""
        base_msg = _ERROR_MESSAGES.get(code, f"Unknown error (code={code})")
        msg = f"{context}: {base_msg}" if context else base_msg
        exc_type = _CODE_TO_EXCEPTION.get(code, BlockError)
        if exc_type is BlockError:
            return BlockError(msg, code=code)
        return exc_type(msg)


class AllocationFailure(BlockError, MemoryError):
    """Storage request could not be satisfied."""
    code = GBLOCK_ERROR_OUT_OF_MEMORY


class OutOfRange(BlockError, IndexError):
    """Element index outside ``[0, size)``."""
    code = GBLOCK_ERROR_INDEX_OUT_OF_BOUNDS


class InvalidRange(BlockError, ValueError):
    """View or region parameters violate the slicing invariant."""
    code = GBLOCK_ERROR_RANGE_ERROR


class KindMismatch(BlockError, TypeError):
    """Value or block is incompatible with the element kind."""
    code = GBLOCK_ERROR_TYPE_MISMATCH


class ImmutableBuffer(BlockError, TypeError):
    """Write attempted through a read-only alias."""
    code = GBLOCK_ERROR_READ_ONLY


class InvalidBlock(BlockError):
    """Storage was released, directly or through the block it borrows from."""
    code = GBLOCK_ERROR_INVALID_HANDLE


_CODE_TO_EXCEPTION: Dict[int, Type[BlockError]] = {
    GBLOCK_ERROR_OUT_OF_MEMORY: AllocationFailure,
    GBLOCK_ERROR_RANGE_ERROR: InvalidRange,
    GBLOCK_ERROR_INDEX_OUT_OF_BOUNDS: OutOfRange,
    GBLOCK_ERROR_TYPE_MISMATCH: KindMismatch,
    GBLOCK_ERROR_READ_ONLY: ImmutableBuffer,
    GBLOCK_ERROR_INVALID_HANDLE: InvalidBlock,
}


# =============================================================================
# Error Checking Functions
# =============================================================================

def check_error(code: int, context: str = "") -> None:
    """
    Raise the exception matching a native status code.

    Args:
        code: Status code returned by a wrapped routine
        context: Optional context for the message

    Raises:
        BlockError: If code is not GBLOCK_OK
    """
    if code == GBLOCK_OK:
        return
    raise BlockError.from_code(code, context)


def as_index(value, what: str = "Index") -> int:
    """Normalise an integer argument through ``__index__``; bools are rejected."""
    if isinstance(value, bool):
        raise KindMismatch(f"{what} must be an integer, got {value!r}")
    try:
        return value.__index__()
    except AttributeError:
        raise KindMismatch(f"{what} must be an integer, got {type(value).__name__}") from None


def check_index(index, size: int) -> int:
    """Validate an element index. Negative indices are rejected, not wrapped."""
    i = as_index(index)
    if i < 0 or i >= size:
        raise OutOfRange(f"Index {i} out of range [0, {size})")
    return i


def check_range(offset, length, stride, size: int) -> Tuple[int, int, int]:
    """
    Validate a strided window ``offset + k*stride`` for ``k < length``.

    Returns:
        The normalised ``(offset, length, stride)``

    Raises:
        KindMismatch: If an argument is not an integer
        InvalidRange: If the window is empty-stride or leaves ``[0, size)``
    """
    offset = as_index(offset, "Offset")
    length = as_index(length, "Length")
    stride = as_index(stride, "Stride")
    if stride == 0:
        raise InvalidRange("Stride must be non-zero")
    if length < 0:
        raise InvalidRange(f"Length must be non-negative, got {length}")
    if length == 0:
        if offset < 0 or offset > size:
            raise InvalidRange(f"Offset {offset} out of range [0, {size}]")
        return offset, length, stride
    last = offset + (length - 1) * stride
    if offset < 0 or offset >= size or last < 0 or last >= size:
        raise InvalidRange(
            f"Window offset={offset} length={length} stride={stride} "
            f"exceeds block of size {size}"
        )
    return offset, length, stride


__all__ = [
    "GBLOCK_OK",
    "GBLOCK_ERROR_UNKNOWN",
    "GBLOCK_ERROR_OUT_OF_MEMORY",
    "GBLOCK_ERROR_INVALID_ARGUMENT",
    "GBLOCK_ERROR_RANGE_ERROR",
    "GBLOCK_ERROR_INDEX_OUT_OF_BOUNDS",
    "GBLOCK_ERROR_TYPE_ERROR",
    "GBLOCK_ERROR_TYPE_MISMATCH",
    "GBLOCK_ERROR_READ_ONLY",
    "GBLOCK_ERROR_INVALID_HANDLE",
    "BlockError",
    "AllocationFailure",
    "OutOfRange",
    "InvalidRange",
    "KindMismatch",
    "ImmutableBuffer",
    "InvalidBlock",
    "check_error",
    "as_index",
    "check_index",
    "check_range",
]
