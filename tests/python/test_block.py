"""
Tests for Block construction, element access and lifetime.
"""

import ctypes
import struct

import pytest

import gblock
from gblock import (
    Block, RealBlock, IntBlock, ByteBlock, Kind,
    OutOfRange, InvalidRange, KindMismatch, InvalidBlock,
    allocate, zeros, ones, full, from_values,
)


class TestBlockCreation:
    """Test block creation methods."""

    def test_allocate_every_index_readable(self, kind):
        """Every index in [0, count) is readable and zero."""
        blk = allocate(kind, 5)
        assert blk.size == 5
        assert blk.kind == kind
        for i in range(5):
            assert blk.get(i) == 0

    def test_allocate_rejects_outside_indices(self, kind):
        """Indices outside [0, count) fail with OutOfRange."""
        blk = allocate(kind, 5)
        for bad in (-1, 5, 6, -100):
            with pytest.raises(OutOfRange):
                blk.get(bad)

    def test_out_of_range_is_index_error(self):
        blk = allocate(Kind.FLOAT64, 2)
        with pytest.raises(IndexError):
            _ = blk[2]

    def test_allocate_zero_count(self, kind):
        """Zero-length blocks are valid, owning and empty."""
        blk = allocate(kind, 0)
        assert blk.size == 0
        assert blk.nbytes == 0
        assert blk.address == 0
        assert blk.owns_data
        assert blk.to_list() == []
        assert list(blk) == []
        with pytest.raises(OutOfRange):
            blk.get(0)

    def test_negative_count(self):
        with pytest.raises(InvalidRange):
            allocate(Kind.FLOAT64, -1)

    def test_typed_classes(self):
        """Factories return the class matching the kind."""
        assert isinstance(allocate(Kind.FLOAT64, 1), RealBlock)
        assert isinstance(allocate(Kind.INT32, 1), IntBlock)
        assert isinstance(allocate(Kind.UINT8, 1), ByteBlock)
        assert RealBlock(3).kind == Kind.FLOAT64
        assert IntBlock.from_values([1, 2]).kind == Kind.INT32

    def test_typed_class_rejects_other_kind(self):
        with pytest.raises(KindMismatch):
            RealBlock(3, kind="int32")
        with pytest.raises(KindMismatch):
            ByteBlock.from_values([1], kind=Kind.FLOAT64)

    def test_kind_names(self):
        assert allocate("double", 1).kind == Kind.FLOAT64
        assert allocate("int", 1).kind == Kind.INT32
        assert allocate("uchar", 1).kind == Kind.UINT8
        with pytest.raises(KindMismatch):
            allocate("complex", 1)

    def test_default_kind_from_config(self):
        assert zeros(2).kind == Kind.FLOAT64
        gblock.set_default_kind("int32")
        assert zeros(2).kind == Kind.INT32

    def test_ones_and_full(self):
        assert ones(3, Kind.INT32).to_list() == [1, 1, 1]
        assert full(2, 2.5).to_list() == [2.5, 2.5]
        with pytest.raises(KindMismatch):
            full(2, 300, Kind.UINT8)


class TestFromValues:
    """Test building blocks from Python sequences."""

    @pytest.mark.parametrize("kind, values", [
        (Kind.FLOAT64, [1.5, -2.0, 0.0, 1e300]),
        (Kind.INT32, [-2 ** 31, -1, 0, 2 ** 31 - 1]),
        (Kind.UINT8, [0, 1, 128, 255]),
    ])
    def test_round_trip(self, kind, values):
        """Representable values come back unchanged."""
        blk = from_values(kind, values)
        assert blk.size == len(values)
        assert list(blk.to_sequence()) == values
        assert blk.to_list() == values

    def test_integral_floats_accepted_for_integer_kinds(self):
        assert from_values(Kind.UINT8, [2.0, 255.0]).to_list() == [2, 255]
        assert from_values(Kind.INT32, [True, False]).to_list() == [1, 0]

    def test_ints_become_floats(self):
        blk = from_values(Kind.FLOAT64, [1, 2])
        assert blk.to_list() == [1.0, 2.0]
        assert isinstance(blk.get(0), float)

    @pytest.mark.parametrize("kind, value", [
        (Kind.INT32, 2 ** 31),
        (Kind.INT32, -2 ** 31 - 1),
        (Kind.INT32, 1.5),
        (Kind.UINT8, -1),
        (Kind.UINT8, 256),
        (Kind.UINT8, float("nan")),
        (Kind.FLOAT64, "1.0"),
        (Kind.FLOAT64, 10 ** 400),
        (Kind.FLOAT64, None),
    ])
    def test_unrepresentable_values(self, kind, value):
        with pytest.raises(KindMismatch):
            from_values(kind, [value])

    def test_accepts_generators(self):
        assert from_values(Kind.INT32, (i * 2 for i in range(3))).to_list() == [0, 2, 4]


class TestBlockProperties:
    """Test block layout and attributes."""

    @pytest.mark.parametrize("kind, itemsize", [
        (Kind.FLOAT64, 8), (Kind.INT32, 4), (Kind.UINT8, 1),
    ])
    def test_sizes(self, kind, itemsize):
        blk = allocate(kind, 10)
        assert blk.itemsize == itemsize
        assert blk.nbytes == 10 * itemsize

    def test_address_aligned(self):
        blk = allocate(Kind.UINT8, 3)
        assert blk.address != 0
        assert blk.address % 64 == 0

    def test_native_layout(self):
        """Storage is packed in each kind's native representation."""
        assert from_values(Kind.FLOAT64, [1.0, -2.5]).tobytes() == struct.pack("=2d", 1.0, -2.5)
        assert from_values(Kind.INT32, [-1, 7]).tobytes() == struct.pack("=2i", -1, 7)
        assert from_values(Kind.UINT8, [1, 255]).tobytes() == b"\x01\xff"

    def test_typed_pointer_aliases_storage(self, real_block):
        ptr = real_block.get_typed_pointer()
        assert ptr[1] == 2.0
        ptr[0] = 7.5
        assert real_block.get(0) == 7.5

    def test_pointer_of_empty_block(self):
        blk = allocate(Kind.INT32, 0)
        assert not blk.get_typed_pointer()
        assert blk.get_pointer().value is None

    def test_memoryview(self, real_block):
        mv = real_block.as_memoryview()
        assert mv.format == "d"
        assert mv.nbytes == real_block.nbytes
        mv[4] = 0.5
        assert real_block.get(4) == 0.5

    def test_ctypes_from_address(self, int_block):
        arr = (ctypes.c_int32 * int_block.size).from_address(int_block.address)
        assert list(arr) == int_block.to_list()


class TestElementAccess:
    """Test get/set and indexing."""

    def test_set_get(self, kind):
        blk = allocate(kind, 3)
        blk.set(2, 7)
        assert blk.get(2) == 7
        blk[0] = 1
        assert blk[0] == 1

    def test_set_out_of_range(self, real_block):
        with pytest.raises(OutOfRange):
            real_block.set(5, 1.0)
        with pytest.raises(OutOfRange):
            real_block[-1] = 1.0

    def test_set_unrepresentable(self):
        blk = allocate(Kind.UINT8, 2)
        with pytest.raises(KindMismatch):
            blk.set(0, 256)
        assert blk.get(0) == 0

    def test_index_must_be_integer(self, real_block):
        with pytest.raises(KindMismatch):
            real_block.get(1.0)
        with pytest.raises(KindMismatch):
            real_block.get(True)

    def test_iteration_is_restartable(self, real_block):
        assert list(real_block) == list(real_block) == [1.0, 2.0, 3.0, 4.0, 5.0]

    def test_fill(self, int_block):
        int_block.fill(3)
        assert int_block.to_list() == [3] * 8

    def test_copy_is_independent(self, real_block):
        dup = real_block.copy()
        assert dup.owns_data
        assert dup.to_list() == real_block.to_list()
        dup.set(0, 100.0)
        assert real_block.get(0) == 1.0

    def test_copy_from(self, real_block):
        other = from_values(Kind.FLOAT64, [9.0, 8.0, 7.0, 6.0, 5.0])
        real_block.copy_from(other)
        assert real_block.to_list() == [9.0, 8.0, 7.0, 6.0, 5.0]

    def test_copy_from_checks_kind_and_length(self, real_block):
        with pytest.raises(KindMismatch):
            real_block.copy_from(from_values(Kind.INT32, [1, 2, 3, 4, 5]))
        with pytest.raises(InvalidRange):
            real_block.copy_from(from_values(Kind.FLOAT64, [1.0]))


class TestLifetime:
    """Test explicit release."""

    def test_release(self, real_block):
        real_block.release()
        assert real_block.released
        with pytest.raises(InvalidBlock):
            real_block.get(0)
        with pytest.raises(InvalidBlock):
            _ = real_block.address
        real_block.release()

    def test_context_manager(self):
        with allocate(Kind.INT32, 4) as blk:
            blk.set(0, 1)
        assert blk.released
        with pytest.raises(InvalidBlock):
            blk.to_list()

    def test_repr(self, real_block):
        assert repr(real_block) == "RealBlock([1.0, 2.0, 3.0, 4.0, 5.0])"
        long_block = from_values(Kind.INT32, list(range(20)))
        assert repr(long_block) == "IntBlock([0, 1, 2, ..., 17, 18, 19], size=20)"
        real_block.release()
        assert "released" in repr(real_block)


class TestEndToEnd:
    """Example from the block documentation."""

    def test_allocate_set_slice_sequence(self):
        blk = allocate(Kind.FLOAT64, 5)
        for i in range(5):
            blk.set(i, float(i + 1))
        view = blk.slice(1, 3, 1)
        assert list(view.to_sequence()) == [2.0, 3.0, 4.0]
