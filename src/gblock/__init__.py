"""
gblock - typed numeric blocks for native numeric libraries.

Blocks are raw, typed, contiguous buffers of one element kind (float64,
int32 or uint8) with explicit ownership, plus zero-copy strided views over
them. Their storage can be handed directly to native routines expecting a
flat array pointer and a count.

Blocks:
    RealBlock: double elements
    IntBlock: int elements
    ByteBlock: unsigned char elements (masks, flags)

Usage:
    >>> import gblock
    >>> blk = gblock.allocate(gblock.Kind.FLOAT64, 5)
    >>> for i in range(5):
    ...     blk.set(i, float(i + 1))
    >>> list(blk.slice(1, 3).to_sequence())
    [2.0, 3.0, 4.0]

    # Borrow storage from another buffer (no copy)
    >>> buf = bytearray(16)
    >>> alias = gblock.wrap(gblock.Kind.INT32, buf, 4)

    # Convert between kinds (truncate toward zero, saturate)
    >>> gblock.from_values("float64", [3.9, -3.9]).cast_to("int32").to_list()
    [3, -3]
"""

__version__ = "0.1.0"

from ._dtypes import (
    Kind,
    Real,
    Int,
    Byte,
    validate_kind,
    coerce_value,
    convert_value,
)

from ._errors import (
    BlockError,
    AllocationFailure,
    OutOfRange,
    InvalidRange,
    KindMismatch,
    ImmutableBuffer,
    InvalidBlock,
    check_error,
)

from ._config import (
    MemoryConfig,
    KindConfig,
    DisplayConfig,
    BlockConfig,
    config,
    get_config,
    set_default_kind,
    set_memory,
)

from ._memory import (
    Allocation,
    Allocator,
    AllocatorStats,
    CtypesAllocator,
    get_allocator,
    set_allocator,
    use_allocator,
)

from ._ownership import Ownership, ensure_alive

from .block import (
    Block,
    RealBlock,
    IntBlock,
    ByteBlock,
    block_type,
    allocate,
    zeros,
    ones,
    full,
    from_values,
    wrap,
)

from .view import BlockView, ElementSequence

from .interop import to_numpy, from_numpy, wrap_numpy

from . import ops

__all__ = [
    # Version
    "__version__",
    # Kinds
    "Kind",
    "Real",
    "Int",
    "Byte",
    "validate_kind",
    "coerce_value",
    "convert_value",
    # Errors
    "BlockError",
    "AllocationFailure",
    "OutOfRange",
    "InvalidRange",
    "KindMismatch",
    "ImmutableBuffer",
    "InvalidBlock",
    "check_error",
    # Configuration
    "MemoryConfig",
    "KindConfig",
    "DisplayConfig",
    "BlockConfig",
    "config",
    "get_config",
    "set_default_kind",
    "set_memory",
    # Allocation
    "Allocation",
    "Allocator",
    "AllocatorStats",
    "CtypesAllocator",
    "get_allocator",
    "set_allocator",
    "use_allocator",
    # Ownership
    "Ownership",
    "ensure_alive",
    # Blocks and views
    "Block",
    "RealBlock",
    "IntBlock",
    "ByteBlock",
    "BlockView",
    "ElementSequence",
    "block_type",
    "allocate",
    "zeros",
    "ones",
    "full",
    "from_values",
    "wrap",
    # NumPy interop
    "to_numpy",
    "from_numpy",
    "wrap_numpy",
    # Element-wise operations
    "ops",
]
