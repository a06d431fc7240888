"""
Tests for the element kind system.
"""

import ctypes

import pytest

from gblock import Byte, Int, Kind, KindMismatch, Real, coerce_value, validate_kind


class TestKindConstants:
    """Test kind attributes."""

    @pytest.mark.parametrize("kind, itemsize, ctype, fmt, name", [
        (Kind.FLOAT64, 8, ctypes.c_double, "d", "float64"),
        (Kind.INT32, 4, ctypes.c_int32, "i", "int32"),
        (Kind.UINT8, 1, ctypes.c_uint8, "B", "uint8"),
    ])
    def test_attributes(self, kind, itemsize, ctype, fmt, name):
        assert kind.itemsize == itemsize
        assert kind.ctype is ctype
        assert kind.format == fmt
        assert kind.type_name == name
        assert str(kind) == name
        assert f"{kind}" == name

    def test_ranges(self):
        assert not Kind.FLOAT64.is_integer
        assert Kind.FLOAT64.min_value is None
        assert (Kind.INT32.min_value, Kind.INT32.max_value) == (-2 ** 31, 2 ** 31 - 1)
        assert (Kind.UINT8.min_value, Kind.UINT8.max_value) == (0, 255)

    def test_aliases(self):
        assert Real is Kind.FLOAT64
        assert Int is Kind.INT32
        assert Byte is Kind.UINT8


class TestValidateKind:
    """Test kind normalization."""

    @pytest.mark.parametrize("value, expected", [
        (None, Kind.FLOAT64),
        (Kind.UINT8, Kind.UINT8),
        ("float64", Kind.FLOAT64),
        ("FLOAT64", Kind.FLOAT64),
        ("double", Kind.FLOAT64),
        ("real", Kind.FLOAT64),
        ("int", Kind.INT32),
        ("integer", Kind.INT32),
        ("byte", Kind.UINT8),
        ("uchar", Kind.UINT8),
        (ctypes.c_double, Kind.FLOAT64),
        (ctypes.c_uint8, Kind.UINT8),
        (float, Kind.FLOAT64),
        (int, Kind.INT32),
        (bool, Kind.UINT8),
    ])
    def test_valid(self, value, expected):
        assert validate_kind(value) == expected

    def test_default(self):
        assert validate_kind(None, default=Kind.INT32) == Kind.INT32

    @pytest.mark.parametrize("value", ["float32", "int64", ctypes.c_int16, complex, 3.5])
    def test_invalid(self, value):
        with pytest.raises(KindMismatch):
            validate_kind(value)

    def test_from_format(self):
        assert Kind.from_format("<d") == Kind.FLOAT64
        assert Kind.from_format("=i") == Kind.INT32
        assert Kind.from_format("B") == Kind.UINT8
        with pytest.raises(KindMismatch):
            Kind.from_format("f")

    def test_from_ctype(self):
        assert Kind.from_ctype(ctypes.c_int32) == Kind.INT32
        with pytest.raises(KindMismatch):
            Kind.from_ctype(ctypes.c_float)


class TestCoerceValue:
    """Test value validation for storage."""

    def test_float(self):
        assert coerce_value(Kind.FLOAT64, 3) == 3.0
        assert coerce_value(Kind.FLOAT64, float("inf")) == float("inf")
        with pytest.raises(KindMismatch):
            coerce_value(Kind.FLOAT64, b"1")

    def test_int_bounds(self):
        assert coerce_value(Kind.INT32, 2 ** 31 - 1) == 2 ** 31 - 1
        assert coerce_value(Kind.UINT8, 255.0) == 255
        with pytest.raises(KindMismatch):
            coerce_value(Kind.UINT8, 255.5)
        with pytest.raises(KindMismatch):
            coerce_value(Kind.INT32, float("inf"))
        with pytest.raises(KindMismatch):
            coerce_value(Kind.INT32, "3")
