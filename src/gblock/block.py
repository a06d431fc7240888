"""
gblock Block - typed, contiguous numeric storage.

A ``Block`` is a run of homogeneous elements of one ``Kind`` laid out in
the kind's native binary representation, with no padding, so its address
and size can be handed straight to native numeric routines.

Types:
    - RealBlock: double (float64)
    - IntBlock: int (int32)
    - ByteBlock: unsigned char (uint8)

Usage:
    blk = RealBlock(5)                 # 5 zeroed doubles
    blk[0] = 1.5
    blk.get(0)                         # -> 1.5
    view = blk.slice(1, 3)             # zero-copy window
    blk.address                        # raw pointer for native calls

Ownership:
    Owning blocks release their storage exactly once, when the last
    reference disappears or on ``release()``. Blocks created with
    ``wrap`` borrow storage and never release it.
"""

from __future__ import annotations

import ctypes
import logging
import weakref
from typing import Any, Dict, Optional, Sequence, Type, Union

from ._base import BlockBase
from ._config import get_config
from ._dtypes import Kind, coerce_value, validate_kind
from ._errors import (
    AllocationFailure,
    InvalidRange,
    KindMismatch,
    as_index,
)
from ._memory import buffer_address, get_allocator
from ._ownership import Ownership, OwnershipTracker, ensure_alive
from .view import BlockView

logger = logging.getLogger("gblock.block")

_BYTE_FORMATS = ("B", "b", "c")


# =============================================================================
# Block Class
# =============================================================================

class Block(BlockBase):
    """
    Typed contiguous block of numeric elements.

    Attributes:
        kind (Kind): Element kind
        size (int): Number of elements
        nbytes (int): Total bytes
        address (int): Start address (0 for empty blocks)
        readonly (bool): Whether writes are rejected
        owns_data (bool): Whether this block releases its storage

    Example:
        >>> blk = Block(4, Kind.INT32)
        >>> blk[1] = 7
        >>> blk.to_list()
        [0, 7, 0, 0]
    """

    __slots__ = (
        "_kind", "_size", "_data", "_address", "_readonly",
        "_ownership", "_finalizer", "_released", "__weakref__",
    )

    # Subclasses pin this to a single kind
    _fixed_kind: Optional[Kind] = None

    def __init__(self, size: int = 0, kind: Union[Kind, str, None] = None):
        """
        Allocate an owning, zero-filled block.

        Args:
            size: Number of elements
            kind: Element kind (default: class kind, else config default)

        Raises:
            InvalidRange: If size is negative
            AllocationFailure: If storage cannot be allocated
            KindMismatch: If kind conflicts with the class kind
        """
        kind = self._resolve_kind(kind)
        size = as_index(size, "Block size")
        if size < 0:
            raise InvalidRange(f"Block size must be non-negative, got {size}")

        self._kind = kind
        self._size = size
        self._readonly = False
        self._ownership = OwnershipTracker.owned()
        self._finalizer = None
        self._released = False
        self._data = None
        self._address = 0

        if size == 0:
            return

        nbytes = size * kind.itemsize
        mem = get_config().memory
        if mem.max_bytes and nbytes > mem.max_bytes:
            raise AllocationFailure(
                f"Request for {nbytes} bytes exceeds limit of {mem.max_bytes}"
            )

        allocator = get_allocator()
        allocation = allocator.allocate(nbytes, mem.alignment)
        try:
            if allocation.raw is not None:
                storage = (kind.ctype * size).from_buffer(allocation.raw, allocation.offset)
            else:
                storage = (kind.ctype * size).from_address(allocation.address)
        except BaseException:
            allocator.free(allocation)
            raise

        self._finalizer = weakref.finalize(self, allocator.free, allocation)
        self._data = _typed_view(memoryview(storage), kind)
        self._address = allocation.address

    @classmethod
    def _resolve_kind(cls, kind) -> Kind:
        fixed = cls._fixed_kind
        if kind is None:
            return fixed if fixed is not None else get_config().default_kind
        kind = validate_kind(kind)
        if fixed is not None and kind != fixed:
            raise KindMismatch(f"{cls.__name__} holds {fixed} elements, not {kind}")
        return kind

    @classmethod
    def _borrowing(cls, kind: Kind, size: int, data: Optional[memoryview],
                   address: int, readonly: bool, source: Any) -> "Block":
        blk = cls.__new__(cls)
        blk._kind = kind
        blk._size = size
        blk._data = data
        blk._address = address
        blk._readonly = readonly
        blk._ownership = OwnershipTracker.borrowed(source)
        blk._finalizer = None
        blk._released = False
        return blk

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def allocate(cls, kind=None, count: int = 0) -> "Block":
        """Allocate an owning zero-filled block of ``count`` elements."""
        kind = cls._resolve_kind(kind)
        return _block_type(cls, kind)(count, kind)

    @classmethod
    def from_values(cls, values: Sequence, kind=None) -> "Block":
        """
        Create an owning block holding a copy of ``values``.

        Raises:
            KindMismatch: If any value is not representable in the kind
        """
        kind = cls._resolve_kind(kind)
        items = [coerce_value(kind, v) for v in values]
        blk = _block_type(cls, kind)(len(items), kind)
        if items:
            data = blk._data
            for i, v in enumerate(items):
                data[i] = v
        return blk

    @classmethod
    def wrap(cls, region, count: Optional[int] = None, kind=None,
             readonly: Optional[bool] = None) -> "Block":
        """
        Create a non-owning block aliasing ``region`` (no copy).

        Args:
            region: Raw address (int), a Block/BlockView, or any object
                supporting the buffer protocol
            count: Number of elements (required for raw addresses)
            kind: Element kind (inferred from typed buffers when omitted)
            readonly: Force a read-only alias

        Raises:
            InvalidRange: If the region is too small or not contiguous
            KindMismatch: If a typed region does not match the kind

        Warning:
            For raw addresses the caller must keep the memory alive for
            as long as the block (or any view of it) exists.
        """
        if isinstance(region, bool):
            raise KindMismatch("Cannot wrap a bool")
        if isinstance(region, int):
            return cls._wrap_address(region, count, kind, bool(readonly))
        if isinstance(region, BlockBase):
            return cls._wrap_block(region, count, kind, bool(readonly))
        return cls._wrap_buffer(region, count, kind, bool(readonly))

    @classmethod
    def _wrap_address(cls, address: int, count: Optional[int], kind, readonly: bool) -> "Block":
        kind = cls._resolve_kind(kind)
        if count is None:
            raise InvalidRange("count is required when wrapping a raw address")
        count = as_index(count, "count")
        if count < 0:
            raise InvalidRange(f"count must be non-negative, got {count}")
        if count > 0 and address == 0:
            raise InvalidRange("Cannot wrap a null address")
        data = None
        if count:
            storage = (kind.ctype * count).from_address(address)
            data = _typed_view(memoryview(storage), kind)
        logger.debug("wrap %d %s elements at raw address 0x%x", count, kind, address)
        return _block_type(cls, kind)._borrowing(kind, count, data, address, readonly, None)

    @classmethod
    def _wrap_block(cls, region: BlockBase, count: Optional[int], kind, readonly: bool) -> "Block":
        kind = cls._resolve_kind(kind if kind is not None else region.kind)
        if region.kind != kind:
            raise KindMismatch(f"Cannot wrap {region.kind} elements as {kind}")
        if isinstance(region, BlockView):
            if region.stride != 1 and region.size > 1:
                raise InvalidRange("Only unit-stride views can be wrapped")
            base, offset = region.base, region.offset
        else:
            base, offset = region, 0
        count = region.size if count is None else as_index(count, "count")
        if count < 0 or count > region.size:
            raise InvalidRange(f"count {count} exceeds region of {region.size} elements")
        data = None
        address = 0
        if count:
            data = base._storage()[offset:offset + count]
            address = base.address + offset * kind.itemsize
        # Aliases of aliases borrow from the owning block directly.
        root = base
        while not root.owns_data and isinstance(root.source, Block):
            root = root.source
        return _block_type(cls, kind)._borrowing(
            kind, count, data, address, readonly or region.readonly, root,
        )

    @classmethod
    def _wrap_buffer(cls, region, count: Optional[int], kind, readonly: bool) -> "Block":
        try:
            mv = memoryview(region)
        except TypeError:
            raise KindMismatch(
                f"{type(region).__name__} does not support the buffer protocol"
            ) from None
        if not mv.c_contiguous:
            raise InvalidRange("Wrapped buffers must be C-contiguous")

        code = mv.format.lstrip("@=<>!")
        if code not in _BYTE_FORMATS:
            exported = Kind.from_format(mv.format)
            if kind is None and cls._fixed_kind is None:
                kind = exported
            kind = cls._resolve_kind(kind)
            if exported != kind:
                raise KindMismatch(f"Buffer holds {exported} elements, not {kind}")
        else:
            kind = cls._resolve_kind(kind)

        raw = mv.cast("B")
        if count is None:
            count = raw.nbytes // kind.itemsize
        count = as_index(count, "count")
        if count < 0:
            raise InvalidRange(f"count must be non-negative, got {count}")
        nbytes = count * kind.itemsize
        if nbytes > raw.nbytes:
            raise InvalidRange(f"Buffer too small: {raw.nbytes} < {nbytes} bytes")

        data = raw[:nbytes].cast(kind.format) if count else None
        address = buffer_address(raw[:nbytes]) if count else 0
        logger.debug("wrap %d %s elements of %s", count, kind, type(region).__name__)
        return _block_type(cls, kind)._borrowing(
            kind, count, data, address, readonly or mv.readonly, region,
        )

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def kind(self) -> Kind:
        return self._kind

    @property
    def size(self) -> int:
        return self._size

    @property
    def nbytes(self) -> int:
        """Total bytes."""
        return self._size * self._kind.itemsize

    @property
    def itemsize(self) -> int:
        """Bytes per element."""
        return self._kind.itemsize

    @property
    def address(self) -> int:
        """Raw start address for native calls (0 for empty blocks)."""
        self._check_alive()
        return self._address

    @property
    def readonly(self) -> bool:
        return self._readonly

    @property
    def owns_data(self) -> bool:
        return self._ownership.is_owned

    @property
    def ownership(self) -> Ownership:
        return self._ownership.mode

    @property
    def source(self) -> Any:
        """Object whose storage this block borrows (None if owned or raw)."""
        return self._ownership.source

    @property
    def released(self) -> bool:
        return self._released

    def get_pointer(self) -> ctypes.c_void_p:
        """Untyped ctypes pointer to the storage."""
        return ctypes.c_void_p(self.address or None)

    def get_typed_pointer(self):
        """Typed ctypes pointer (POINTER(c_double), etc.)."""
        ptr_type = ctypes.POINTER(self._kind.ctype)
        if not self.address:
            return ptr_type()
        return ctypes.cast(self.address, ptr_type)

    # -------------------------------------------------------------------------
    # Storage access
    # -------------------------------------------------------------------------

    def _check_alive(self) -> None:
        ensure_alive(self)

    def _storage(self) -> Optional[memoryview]:
        self._check_alive()
        return self._data

    def _position(self, i: int) -> int:
        return i

    def _positions(self) -> range:
        return range(self._size)

    def _window(self, start: int, length: int, stride: int) -> BlockView:
        return BlockView(self, start, length, stride)

    def to_list(self) -> list:
        data = self._storage()
        if data is None:
            return []
        return data.tolist()

    def tobytes(self) -> bytes:
        data = self._storage()
        if data is None:
            return b""
        return data.tobytes()

    def as_memoryview(self) -> memoryview:
        """Typed memoryview of the storage (read-only for read-only blocks)."""
        data = self._storage()
        if data is None:
            raise BufferError("Empty block has no buffer")
        return data.toreadonly() if self._readonly else data[:]

    def __buffer__(self, flags):
        """Support buffer protocol (Python 3.12+)."""
        return self.as_memoryview()

    def copy(self) -> "Block":
        """Create an owning deep copy."""
        new = _block_type(Block, self._kind)(self._size, self._kind)
        if self._size:
            new._data[:] = self._storage()
        return new

    # -------------------------------------------------------------------------
    # Lifetime
    # -------------------------------------------------------------------------

    def release(self) -> None:
        """
        Give up the storage now.

        Owning blocks free their allocation (exactly once); borrowing
        blocks just drop the alias. Any later access through this block or
        its views raises InvalidBlock. Calling release twice is a no-op.
        """
        if self._released:
            return
        self._released = True
        self._data = None
        if self._finalizer is not None:
            self._finalizer()
        logger.debug("released %s of %d elements", type(self).__name__, self._size)

    def __enter__(self) -> "Block":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    # -------------------------------------------------------------------------
    # Representation
    # -------------------------------------------------------------------------

    def __repr__(self) -> str:
        name = type(self).__name__
        if self._released:
            return f"<{name} [released]>"
        kind = "" if self._fixed_kind is not None else f", kind={self._kind}"
        if self._size <= get_config().display.threshold:
            return f"{name}([{self._format_elements()}]{kind})"
        return f"{name}([{self._format_elements()}], size={self._size}{kind})"


def _typed_view(view: memoryview, kind: Kind) -> memoryview:
    """Cast a contiguous export to a 1-D memoryview of ``kind``."""
    return view.cast("B").cast(kind.format)


# =============================================================================
# Typed Block Classes
# =============================================================================

class RealBlock(Block):
    """
    Block of double (float64) values.

    This is the primary block type for numeric data.
    """

    __slots__ = ()
    _fixed_kind = Kind.FLOAT64


class IntBlock(Block):
    """
    Block of int (int32) values.

    Used for integer data and index lists.
    """

    __slots__ = ()
    _fixed_kind = Kind.INT32


class ByteBlock(Block):
    """
    Block of unsigned char (uint8) values.

    Used for masks and flags.
    """

    __slots__ = ()
    _fixed_kind = Kind.UINT8

    @classmethod
    def from_mask(cls, mask: Sequence[bool]) -> "ByteBlock":
        """Create from a boolean sequence."""
        return cls.from_values([1 if v else 0 for v in mask])

    def count_nonzero(self) -> int:
        """Count non-zero elements."""
        return sum(1 for v in self if v)


_BLOCK_TYPES: Dict[Kind, Type[Block]] = {
    Kind.FLOAT64: RealBlock,
    Kind.INT32: IntBlock,
    Kind.UINT8: ByteBlock,
}


def _block_type(cls: Type[Block], kind: Kind) -> Type[Block]:
    """Concrete class for ``kind``; keeps user subclasses of typed blocks."""
    if cls._fixed_kind is not None:
        return cls
    return _BLOCK_TYPES[kind]


def block_type(kind) -> Type[Block]:
    """Get the typed Block class for ``kind``."""
    return _BLOCK_TYPES[validate_kind(kind)]


# =============================================================================
# Factory Functions
# =============================================================================

def allocate(kind=None, count: int = 0) -> Block:
    """Allocate an owning block of ``count`` zeroed elements."""
    return Block.allocate(kind, count)


def zeros(count: int, kind=None) -> Block:
    """Create zero-initialized block."""
    return Block.allocate(kind, count)


def full(count: int, value, kind=None) -> Block:
    """Create block with every element set to ``value``."""
    blk = Block.allocate(kind, count)
    blk.fill(value)
    return blk


def ones(count: int, kind=None) -> Block:
    """Create block filled with ones."""
    return full(count, 1, kind)


def from_values(kind, values: Sequence) -> Block:
    """Create an owning block holding a copy of ``values``."""
    return Block.from_values(values, kind)


def wrap(kind, region, count: Optional[int] = None,
         readonly: Optional[bool] = None) -> Block:
    """Create a non-owning block aliasing ``region`` (zero-copy)."""
    return Block.wrap(region, count, kind, readonly)


__all__ = [
    "Block",
    "RealBlock",
    "IntBlock",
    "ByteBlock",
    "block_type",
    "allocate",
    "zeros",
    "ones",
    "full",
    "from_values",
    "wrap",
]
