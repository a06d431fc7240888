"""Ownership and Reference Management.

Tracks who is responsible for a block's storage and keeps borrowed
sources alive for as long as something aliases them.

Safety Model:
    1. OWNED data: storage came from an allocator and is released exactly
       once, when the owning block is collected or explicitly released.
    2. BORROWED data: storage belongs to someone else (a raw address or a
       buffer-protocol object). Never released by us. Buffer-protocol
       sources are pinned by a strong reference; raw addresses are the
       caller's responsibility.
    3. VIEW data: a window onto another block. Holds a strong reference to
       the base block and never reaches the release path.
"""

from enum import Enum
from typing import Any, Optional

from ._errors import InvalidBlock

__all__ = [
    'Ownership',
    'OwnershipTracker',
    'ensure_alive',
]


class Ownership(Enum):
    """Storage ownership mode."""
    OWNED = "owned"
    BORROWED = "borrowed"
    VIEW = "view"


class OwnershipTracker:
    """Tracks ownership and validity of a block's storage.

    Attributes:
        mode: Ownership mode.
        source: Object kept alive on behalf of the storage (None for owned
            data and for raw-address borrows).

    Example:
        >>> tracker = OwnershipTracker.borrowed(bytearray(16))
        >>> tracker.is_borrowed
        True
        >>> tracker.ensure_valid()
    """

    __slots__ = ("mode", "_source")

    def __init__(self, mode: Ownership, source: Optional[Any] = None):
        self.mode = mode
        self._source = source

    @classmethod
    def owned(cls) -> 'OwnershipTracker':
        """Create tracker for owned data."""
        return cls(Ownership.OWNED)

    @classmethod
    def borrowed(cls, source: Optional[Any] = None) -> 'OwnershipTracker':
        """Create tracker for borrowed data.

        Args:
            source: Exporting object, or None for a raw address.
        """
        return cls(Ownership.BORROWED, source)

    @classmethod
    def view(cls, base: Any) -> 'OwnershipTracker':
        """Create tracker for a view over ``base``."""
        return cls(Ownership.VIEW, base)

    @property
    def is_owned(self) -> bool:
        return self.mode is Ownership.OWNED

    @property
    def is_borrowed(self) -> bool:
        return self.mode is Ownership.BORROWED

    @property
    def is_view(self) -> bool:
        return self.mode is Ownership.VIEW

    @property
    def source(self) -> Optional[Any]:
        """Object this storage depends on (if any)."""
        return self._source

    @property
    def is_valid(self) -> bool:
        """Check whether the source (if it is a block) still has storage."""
        src = self._source
        if src is None:
            return True
        released = getattr(src, "released", None)
        return not released

    def ensure_valid(self) -> None:
        """Raise if the source block was released.

        Raises:
            InvalidBlock: If the source no longer has storage.
        """
        if not self.is_valid:
            raise InvalidBlock(
                f"Source {type(self._source).__name__} was released; "
                "this alias is no longer valid"
            )

    def __repr__(self) -> str:
        if self._source is None:
            return f"OwnershipTracker({self.mode.value})"
        return f"OwnershipTracker({self.mode.value} of {type(self._source).__name__})"


def ensure_alive(obj: Any) -> None:
    """Ensure an object's storage and every source it depends on are valid.

    Args:
        obj: Block or view to check.

    Raises:
        InvalidBlock: If any storage in the chain was released.
    """
    while obj is not None:
        if getattr(obj, "released", False):
            raise InvalidBlock(f"{type(obj).__name__} storage was released")
        tracker = getattr(obj, "_ownership", None)
        if tracker is None:
            return
        tracker.ensure_valid()
        obj = tracker.source
