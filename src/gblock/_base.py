"""Shared element-access layer for blocks and views.

``BlockBase`` implements everything that only needs a mapping from a
logical index to a position in some typed storage: checked get/set,
iteration, slicing, conversion, in-place arithmetic. ``Block`` maps index
``i`` to ``i``; ``BlockView`` maps it to ``offset + i*stride`` inside its
base block.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, List, Optional, Union

from ._config import get_config
from ._dtypes import Kind, coerce_value, convert_value, validate_kind
from ._errors import (
    ImmutableBuffer,
    InvalidRange,
    KindMismatch,
    check_index,
    check_range,
)

if TYPE_CHECKING:
    from .block import Block
    from .view import BlockView, ElementSequence

__all__ = ['BlockBase', 'resolve_slice']


def resolve_slice(key: slice, size: int):
    """Turn slice syntax into ``(start, length, stride)`` without clamping.

    Negative bounds and bounds past the end are rejected rather than
    wrapped or clipped.

    Raises:
        InvalidRange: If the slice does not describe a window of ``size``.
    """
    stride = 1 if key.step is None else key.step.__index__()
    if stride == 0:
        raise InvalidRange("Slice step must be non-zero")

    if stride > 0:
        start = 0 if key.start is None else key.start.__index__()
        stop = size if key.stop is None else key.stop.__index__()
        if start < 0 or stop < 0 or stop > size or start > size:
            raise InvalidRange(f"Slice {key} out of range for size {size}")
    else:
        start = size - 1 if key.start is None else key.start.__index__()
        stop = -1 if key.stop is None else key.stop.__index__()
        if key.start is not None and (start < 0 or start >= size):
            raise InvalidRange(f"Slice {key} out of range for size {size}")
        if key.stop is not None and (stop < 0 or stop > size):
            raise InvalidRange(f"Slice {key} out of range for size {size}")

    length = len(range(start, stop, stride))
    if length == 0:
        return 0, 0, stride
    return start, length, stride


class BlockBase(ABC):
    """
    Base class for typed element containers.

    Subclasses provide ``kind``, ``size``, ``readonly``, ``_storage()`` and
    ``_positions()``.
    """

    __slots__ = ()

    # -------------------------------------------------------------------------
    # Subclass interface
    # -------------------------------------------------------------------------

    @property
    @abstractmethod
    def kind(self) -> Kind:
        """Element kind."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of logical elements."""

    @property
    @abstractmethod
    def readonly(self) -> bool:
        """Whether writes are rejected."""

    @abstractmethod
    def _storage(self) -> Optional[memoryview]:
        """Typed memoryview over the backing storage (validity-checked)."""

    @abstractmethod
    def _position(self, i: int) -> int:
        """Storage position of logical index ``i`` (unchecked)."""

    @abstractmethod
    def _positions(self) -> range:
        """Storage positions of every logical index, in order."""

    @abstractmethod
    def _window(self, start: int, length: int, stride: int) -> "BlockView":
        """View of logical elements ``start + k*stride``."""

    # -------------------------------------------------------------------------
    # Element access
    # -------------------------------------------------------------------------

    def get(self, index: int):
        """
        Get element at ``index``.

        Raises:
            OutOfRange: If index is outside ``[0, size)``
        """
        i = check_index(index, self.size)
        return self._storage()[self._position(i)]

    def set(self, index: int, value) -> None:
        """
        Set element at ``index`` to ``value``.

        Raises:
            OutOfRange: If index is outside ``[0, size)``
            ImmutableBuffer: If the block is read-only
            KindMismatch: If value is not representable in the kind
        """
        self._check_writable()
        i = check_index(index, self.size)
        v = coerce_value(self.kind, value)
        self._storage()[self._position(i)] = v

    def slice(self, start: int, length: int, stride: int = 1) -> "BlockView":
        """
        Create a zero-copy view of ``length`` elements starting at
        ``start``, ``stride`` elements apart.

        Raises:
            InvalidRange: If the window leaves the block or stride is 0
            KindMismatch: If an argument is not an integer
        """
        start, length, stride = check_range(start, length, stride, self.size)
        return self._window(start, length, stride)

    def __getitem__(self, key: Union[int, slice]):
        if isinstance(key, slice):
            start, length, stride = resolve_slice(key, self.size)
            return self.slice(start, length, stride)
        return self.get(key)

    def __setitem__(self, key: Union[int, slice], value) -> None:
        if isinstance(key, slice):
            target = self[key]
            if isinstance(value, (BlockBase, list, tuple, range)) or (
                    hasattr(value, "__len__") and hasattr(value, "__iter__")
                    and not isinstance(value, (str, bytes))):
                target.assign(value)
            else:
                target.fill(value)
            return
        self.set(key, value)

    def __len__(self) -> int:
        return self.size

    def __bool__(self) -> bool:
        return self.size > 0

    def __iter__(self) -> Iterator:
        data = self._storage()
        for p in self._positions():
            yield data[p]

    def _check_writable(self) -> None:
        if self.readonly:
            raise ImmutableBuffer(f"{type(self).__name__} is read-only")

    # -------------------------------------------------------------------------
    # Conversion
    # -------------------------------------------------------------------------

    def to_sequence(self) -> "ElementSequence":
        """
        Lazy, restartable sequence of the elements in index order.

        Elements are read from storage on access, so later writes through
        any alias are visible.
        """
        from .view import ElementSequence
        return ElementSequence(self)

    def to_list(self) -> List:
        """Materialise elements as a Python list."""
        if self.size == 0:
            return []
        data = self._storage()
        return [data[p] for p in self._positions()]

    def copy(self) -> "Block":
        """Create an owning deep copy."""
        from .block import from_values
        return from_values(self.kind, self.to_list())

    def cast_to(self, kind) -> "Block":
        """
        Create an owning copy converted to ``kind``.

        Floats are truncated toward zero and integer results saturate to the
        target range; NaN becomes 0.
        """
        from .block import Block
        kind = validate_kind(kind)
        values = self.to_list()
        out = Block.allocate(kind, len(values))
        if values:
            data = out._storage()
            for i, v in enumerate(values):
                data[i] = convert_value(v, kind)
        return out

    def tobytes(self) -> bytes:
        """Elements in native binary layout."""
        if self.size == 0:
            return b""
        return self.copy()._storage().tobytes()

    def to_numpy(self, copy: bool = False):
        """
        Convert to a numpy array.

        With ``copy=False`` the array aliases the block's storage.
        """
        from .interop import to_numpy
        return to_numpy(self, copy=copy)

    # -------------------------------------------------------------------------
    # In-place operations
    # -------------------------------------------------------------------------

    def fill(self, value) -> "BlockBase":
        """Set every element to ``value``."""
        self._check_writable()
        v = coerce_value(self.kind, value)
        if self.size:
            data = self._storage()
            for p in self._positions():
                data[p] = v
        return self

    def assign(self, values: Iterable) -> "BlockBase":
        """
        Overwrite elements from a same-length iterable.

        Values are read completely before writing, so overlapping aliases
        are handled.

        Raises:
            InvalidRange: If lengths differ
        """
        self._check_writable()
        kind = self.kind
        if isinstance(values, BlockBase):
            values = values.to_list()
        items = [coerce_value(kind, v) for v in values]
        if len(items) != self.size:
            raise InvalidRange(f"Cannot assign {len(items)} values to {self.size} elements")
        if items:
            data = self._storage()
            for p, v in zip(self._positions(), items):
                data[p] = v
        return self

    def copy_from(self, other: "BlockBase") -> "BlockBase":
        """
        Copy elements from a block or view of the same kind and length.

        Raises:
            KindMismatch: If kinds differ
            InvalidRange: If lengths differ
        """
        if not isinstance(other, BlockBase):
            raise KindMismatch(f"Expected a block or view, got {type(other).__name__}")
        if other.kind != self.kind:
            raise KindMismatch(f"Cannot copy {other.kind} elements into a {self.kind} block")
        return self.assign(other.to_list())

    def _apply(self, fn: Callable[[Any], Any]) -> "BlockBase":
        self._check_writable()
        if self.size:
            kind = self.kind
            data = self._storage()
            for p in self._positions():
                data[p] = convert_value(fn(data[p]), kind)
        return self

    def scale(self, factor) -> "BlockBase":
        """Multiply every element by ``factor`` in place."""
        return self._apply(lambda x: x * factor)

    def add_constant(self, value) -> "BlockBase":
        """Add ``value`` to every element in place."""
        return self._apply(lambda x: x + value)

    def collect_inplace(self, fn: Callable[[Any], Any]) -> "BlockBase":
        """Replace every element ``x`` with ``fn(x)``."""
        return self._apply(fn)

    # -------------------------------------------------------------------------
    # Representation
    # -------------------------------------------------------------------------

    def _format_elements(self) -> str:
        display = get_config().display
        if self.size <= display.threshold:
            return ", ".join(str(x) for x in self)
        edge = display.edge_items
        first = ", ".join(str(self.get(i)) for i in range(edge))
        last = ", ".join(str(self.get(i)) for i in range(self.size - edge, self.size))
        return f"{first}, ..., {last}"
