"""
Tests for element-wise operations.
"""

import math

import pytest

from gblock import ByteBlock, IntBlock, Kind, InvalidRange, KindMismatch, from_values, ops


class TestComparisons:
    """Test comparison masks."""

    def test_block_scalar(self, real_block):
        mask = ops.gt(real_block, 2.5)
        assert isinstance(mask, ByteBlock)
        assert mask.to_list() == [0, 0, 1, 1, 1]
        assert ops.le(real_block, 2.0).to_list() == [1, 1, 0, 0, 0]

    def test_scalar_block(self, real_block):
        assert ops.lt(3, real_block).to_list() == [0, 0, 0, 1, 1]

    def test_block_block(self):
        a = from_values(Kind.INT32, [1, 2, 3])
        b = from_values(Kind.FLOAT64, [1.0, 0.0, 3.5])
        assert ops.eq(a, b).to_list() == [1, 0, 0]
        assert ops.ne(a, b).to_list() == [0, 1, 1]
        assert ops.ge(a, b).to_list() == [1, 1, 0]

    def test_views(self, int_block):
        evens = int_block.slice(0, 4, 2)
        odds = int_block.slice(1, 4, 2)
        assert ops.lt(evens, odds).to_list() == [1, 1, 1, 1]

    def test_length_mismatch(self, real_block, int_block):
        with pytest.raises(InvalidRange):
            ops.eq(real_block, int_block)

    def test_bad_operands(self, real_block):
        with pytest.raises(KindMismatch):
            ops.eq(real_block, "1")
        with pytest.raises(KindMismatch):
            ops.eq(1, 2)


class TestLogical:
    """Test logical operations."""

    def test_logical(self):
        a = ByteBlock.from_mask([True, True, False, False])
        b = from_values(Kind.INT32, [5, 0, -1, 0])
        assert ops.logical_and(a, b).to_list() == [1, 0, 0, 0]
        assert ops.logical_or(a, b).to_list() == [1, 1, 1, 0]
        assert ops.logical_xor(a, b).to_list() == [0, 1, 1, 0]
        assert ops.logical_not(b).to_list() == [0, 1, 0, 1]

    def test_logical_not_requires_block(self):
        with pytest.raises(KindMismatch):
            ops.logical_not([1, 0])

    def test_predicates(self):
        mask = ByteBlock.from_mask([False, True, False])
        assert ops.any_nonzero(mask)
        assert not ops.all_nonzero(mask)
        assert not ops.none_nonzero(mask)
        assert mask.count_nonzero() == 1

        empty = ByteBlock(0)
        assert ops.all_nonzero(empty)
        assert ops.none_nonzero(empty)


class TestSelection:
    """Test where and collect."""

    def test_where(self, real_block):
        idx = ops.where(ops.gt(real_block, 3.0))
        assert isinstance(idx, IntBlock)
        assert idx.to_list() == [3, 4]
        assert ops.where(ByteBlock(3)).size == 0

    def test_collect(self, real_block):
        out = ops.collect(real_block, lambda x: x * 2)
        assert out.kind == Kind.FLOAT64
        assert out.to_list() == [2.0, 4.0, 6.0, 8.0, 10.0]
        assert real_block.get(0) == 1.0

    def test_collect_to_kind(self, real_block):
        out = ops.collect(real_block, lambda x: x * 100, Kind.UINT8)
        assert out.to_list() == [100, 200, 255, 255, 255]

    def test_collect_view(self, int_block):
        out = ops.collect(int_block[::-3], lambda x: -x)
        assert out.to_list() == [-7, -4, -1]

    def test_collect_huge_int_to_float(self, int_block):
        out = ops.collect(int_block, lambda x: 10 ** 400, Kind.FLOAT64)
        assert out.to_list() == [math.inf] * 8
