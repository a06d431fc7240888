"""
BlockView - strided zero-copy windows onto a block.

A view never owns storage. It keeps its base block alive through a strong
reference and reads and writes the base's storage directly, so writes
through a view are visible through the block and every other view of it.
Views of views are flattened onto the base block.

    blk = from_values(Kind.FLOAT64, [1.0, 2.0, 3.0, 4.0, 5.0])
    v = blk.slice(1, 3)            # [2.0, 3.0, 4.0]
    v.set(0, 9.0)
    blk.get(1)                     # -> 9.0
    rev = blk[::-1]                # negative stride
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Iterator, Optional, Union

from ._base import BlockBase
from ._dtypes import Kind
from ._errors import check_range
from ._ownership import OwnershipTracker

if TYPE_CHECKING:
    from .block import Block

__all__ = ['BlockView', 'ElementSequence']


class BlockView(BlockBase):
    """
    Non-owning strided window onto a Block.

    Logical element ``i`` lives at ``offset + i*stride`` in the base block.

    Attributes:
        base (Block): Block whose storage is viewed
        offset (int): Base index of logical element 0
        length (int): Number of logical elements
        stride (int): Base elements between consecutive logical elements
    """

    __slots__ = ("_base", "_offset", "_length", "_stride", "_ownership")

    def __init__(self, base: "Block", offset: int, length: int, stride: int = 1):
        """
        Args:
            base: Block to view (must not itself be a view)
            offset: Base index of the first element
            length: Number of elements
            stride: Step between elements, may be negative

        Raises:
            InvalidRange: If the window leaves the base block or stride is 0
        """
        if isinstance(base, BlockView):
            raise TypeError("BlockView base must be a Block; slice the view instead")
        offset, length, stride = check_range(offset, length, stride, base.size)
        self._base = base
        self._offset = offset if length else 0
        self._length = length
        self._stride = stride
        self._ownership = OwnershipTracker.view(base)

    @property
    def kind(self) -> Kind:
        return self._base.kind

    @property
    def size(self) -> int:
        return self._length

    @property
    def length(self) -> int:
        return self._length

    @property
    def base(self) -> "Block":
        return self._base

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def stride(self) -> int:
        return self._stride

    @property
    def readonly(self) -> bool:
        return self._base.readonly

    @property
    def is_contiguous(self) -> bool:
        return self._stride == 1 or self._length <= 1

    def _storage(self) -> Optional[memoryview]:
        return self._base._storage()

    def _position(self, i: int) -> int:
        return self._offset + i * self._stride

    def _positions(self) -> range:
        if not self._length:
            return range(0)
        return range(self._offset, self._offset + self._length * self._stride, self._stride)

    def _window(self, start: int, length: int, stride: int) -> "BlockView":
        offset = self._position(start) if length else 0
        return BlockView(self._base, offset, length, self._stride * stride)

    def __repr__(self) -> str:
        return (
            f"BlockView([{self._format_elements()}], kind={self.kind}, "
            f"offset={self._offset}, stride={self._stride})"
        )


class ElementSequence(Sequence):
    """
    Lazy read-only sequence over a block or view.

    Nothing is copied: every access reads the current storage, so the
    sequence is restartable and reflects later writes. Indexing follows
    block rules (no negative indices).
    """

    __slots__ = ("_source",)

    def __init__(self, source: BlockBase):
        self._source = source

    def __len__(self) -> int:
        return self._source.size

    def __getitem__(self, key: Union[int, slice]):
        if isinstance(key, slice):
            return ElementSequence(self._source[key])
        return self._source.get(key)

    def __iter__(self) -> Iterator:
        return iter(self._source)

    def __eq__(self, other) -> bool:
        if isinstance(other, ElementSequence):
            other = list(other)
        if isinstance(other, (list, tuple)):
            return list(self) == list(other)
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"ElementSequence({list(self)!r})"
