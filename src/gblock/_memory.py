"""
Block storage allocation.

Owning blocks obtain their storage from an ``Allocator``. The default
``CtypesAllocator`` hands out aligned ctypes byte buffers and keeps
counters so callers (and tests) can check that every allocation is
released exactly once.
"""

from __future__ import annotations

import ctypes
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

import numpy as np

from ._errors import AllocationFailure, InvalidBlock

logger = logging.getLogger("gblock.memory")

__all__ = [
    "Allocation",
    "AllocatorStats",
    "Allocator",
    "CtypesAllocator",
    "get_allocator",
    "set_allocator",
    "use_allocator",
    "buffer_address",
]


@dataclass
class AllocatorStats:
    """Counters kept by an allocator."""
    allocations: int = 0
    frees: int = 0
    bytes_live: int = 0
    peak_bytes: int = 0

    @property
    def live(self) -> int:
        """Number of allocations not yet freed."""
        return self.allocations - self.frees


class Allocation:
    """
    A live storage region.

    Attributes:
        address: Aligned start address (0 for zero-byte requests)
        nbytes: Usable size in bytes
    """

    __slots__ = ("address", "nbytes", "offset", "_raw", "_freed", "__weakref__")

    def __init__(self, address: int, nbytes: int, raw=None, offset: int = 0):
        self.address = address
        self.nbytes = nbytes
        self.offset = offset    # start of the aligned region inside raw
        self._raw = raw
        self._freed = False

    @property
    def raw(self):
        """Backing buffer object, or None for address-only allocations."""
        return self._raw

    @property
    def freed(self) -> bool:
        return self._freed

    def __repr__(self) -> str:
        state = "freed" if self._freed else "live"
        return f"Allocation(address=0x{self.address:x}, nbytes={self.nbytes}, {state})"


class Allocator:
    """
    Storage provider for owning blocks.

    Subclasses implement ``_acquire`` and ``_release``; bookkeeping and the
    double-free check live here.
    """

    def __init__(self):
        self.stats = AllocatorStats()
        self._lock = threading.Lock()

    def allocate(self, nbytes: int, alignment: int = 64) -> Allocation:
        """
        Allocate ``nbytes`` of storage aligned to ``alignment``.

        Raises:
            AllocationFailure: If the request cannot be satisfied
        """
        if nbytes < 0:
            raise AllocationFailure(f"Cannot allocate {nbytes} bytes")
        try:
            allocation = self._acquire(nbytes, alignment)
        except (MemoryError, OverflowError) as e:
            raise AllocationFailure(f"Cannot allocate {nbytes} bytes: {e}") from e
        with self._lock:
            self.stats.allocations += 1
            self.stats.bytes_live += nbytes
            self.stats.peak_bytes = max(self.stats.peak_bytes, self.stats.bytes_live)
        logger.debug("allocate %d bytes at 0x%x", nbytes, allocation.address)
        return allocation

    def free(self, allocation: Allocation) -> None:
        """
        Release an allocation.

        Raises:
            InvalidBlock: If the allocation was already released
        """
        with self._lock:
            if allocation._freed:
                raise InvalidBlock(f"Double free of {allocation!r}")
            allocation._freed = True
            self.stats.frees += 1
            self.stats.bytes_live -= allocation.nbytes
        self._release(allocation)
        logger.debug("free %d bytes at 0x%x", allocation.nbytes, allocation.address)

    def reset_stats(self) -> None:
        with self._lock:
            self.stats = AllocatorStats()

    def _acquire(self, nbytes: int, alignment: int) -> Allocation:
        raise NotImplementedError

    def _release(self, allocation: Allocation) -> None:
        raise NotImplementedError


class CtypesAllocator(Allocator):
    """
    Allocator backed by ctypes byte arrays.

    Over-allocates by ``alignment`` bytes and returns the first aligned
    address inside the buffer. Storage is zero-initialised by ctypes.
    """

    def __init__(self):
        super().__init__()
        self._live: Dict[int, Allocation] = {}

    def _acquire(self, nbytes: int, alignment: int) -> Allocation:
        if nbytes == 0:
            return Allocation(0, 0, None)
        if alignment <= 0 or alignment & (alignment - 1):
            raise AllocationFailure(f"Alignment must be a power of two, got {alignment}")

        raw = (ctypes.c_uint8 * (nbytes + alignment))()
        addr = ctypes.addressof(raw)
        aligned_addr = (addr + alignment - 1) & ~(alignment - 1)

        allocation = Allocation(aligned_addr, nbytes, raw, aligned_addr - addr)
        with self._lock:
            self._live[id(allocation)] = allocation
        return allocation

    def _release(self, allocation: Allocation) -> None:
        with self._lock:
            self._live.pop(id(allocation), None)
        allocation._raw = None

    @property
    def live_allocations(self) -> int:
        return len(self._live)


# =============================================================================
# Active Allocator
# =============================================================================

_default_allocator: Allocator = CtypesAllocator()
_active_allocator: Optional[Allocator] = None


def get_allocator() -> Allocator:
    """Get the allocator used for new owning blocks."""
    if _active_allocator is not None:
        return _active_allocator
    return _default_allocator


def set_allocator(allocator: Optional[Allocator]) -> None:
    """Install ``allocator`` for new owning blocks (None restores the default)."""
    global _active_allocator
    _active_allocator = allocator
    logger.debug("active allocator set to %r", allocator)


@contextmanager
def use_allocator(allocator: Allocator) -> Iterator[Allocator]:
    """
    Temporarily install an allocator.

    Blocks created inside the context keep releasing to the allocator
    that created them, even after the context exits.

    Example:
        >>> alloc = CtypesAllocator()
        >>> with use_allocator(alloc):
        ...     blk = zeros(10)
        >>> alloc.stats.allocations
        1
    """
    previous = _active_allocator
    set_allocator(allocator)
    try:
        yield allocator
    finally:
        set_allocator(previous)


def buffer_address(view: memoryview) -> int:
    """
    Start address of a contiguous buffer-protocol export.

    Works for read-only exports too, which ctypes cannot map.
    """
    if view.nbytes == 0:
        return 0
    return int(np.frombuffer(view, dtype=np.uint8).ctypes.data)
