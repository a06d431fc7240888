"""
gblock Kinds - Element Kind Definitions

Defines the closed set of element kinds a block can hold, the per-kind
dispatch table (size, ctypes type, struct format, representable range) and
the value conversion rules used when storing into a block or casting
between kinds.

Cast policy (fixed for every kind pairing):
    - Any kind -> FLOAT64: exact for INT32 and UINT8.
    - FLOAT64 -> integer kind: truncate toward zero, then saturate to the
      target range. NaN becomes 0, +/-inf saturate.
    - Integer kind -> narrower integer kind: saturate.
"""

from __future__ import annotations

import math
import struct
from ctypes import c_double, c_int32, c_uint8
from enum import IntEnum
from typing import Any, Callable, Dict, Optional, Type, Union

from ._errors import KindMismatch


# =============================================================================
# Kind Enumeration
# =============================================================================

class Kind(IntEnum):
    """
    Supported element kinds.

    Each kind has a ctypes type, item size and a native struct format
    character used for buffer-protocol access.
    """
    FLOAT64 = 0    # double (Real)
    INT32 = 1      # int
    UINT8 = 2      # unsigned char (Byte/mask)

    @property
    def itemsize(self) -> int:
        """Size in bytes of one element."""
        return _KIND_INFO[self]["size"]

    @property
    def ctype(self) -> Type:
        """Corresponding ctypes type."""
        return _KIND_INFO[self]["ctype"]

    @property
    def format(self) -> str:
        """Native struct format character."""
        return _KIND_INFO[self]["format"]

    @property
    def type_name(self) -> str:
        """Lowercase type name ('float64', 'int32', 'uint8')."""
        return _KIND_INFO[self]["name"]

    @property
    def is_integer(self) -> bool:
        return _KIND_INFO[self]["min"] is not None

    @property
    def min_value(self) -> Optional[int]:
        """Smallest representable value (None for floating kinds)."""
        return _KIND_INFO[self]["min"]

    @property
    def max_value(self) -> Optional[int]:
        """Largest representable value (None for floating kinds)."""
        return _KIND_INFO[self]["max"]

    @classmethod
    def from_ctype(cls, ctype: Type) -> "Kind":
        """Get Kind from ctypes type."""
        for kind, info in _KIND_INFO.items():
            if info["ctype"] == ctype:
                return kind
        raise KindMismatch(f"Unknown ctype: {ctype}")

    @classmethod
    def from_name(cls, name: str) -> "Kind":
        """Get Kind from a type name or alias."""
        name_lower = name.lower()
        for kind, info in _KIND_INFO.items():
            if info["name"] == name_lower:
                return kind
        if name_lower in _ALIASES:
            return _ALIASES[name_lower]
        raise KindMismatch(f"Unknown kind name: {name}")

    @classmethod
    def from_format(cls, fmt: str) -> "Kind":
        """Get Kind from a buffer-protocol format string."""
        code = fmt.lstrip("@=<>!")
        for kind, info in _KIND_INFO.items():
            if code in info["formats"]:
                return kind
        raise KindMismatch(f"No kind for buffer format {fmt!r}")

    def __str__(self) -> str:
        return self.type_name

    def __format__(self, spec: str) -> str:
        return format(self.type_name, spec)


# Kind information table
_KIND_INFO: Dict[Kind, Dict[str, Any]] = {
    Kind.FLOAT64: {
        "ctype": c_double,
        "size": 8,
        "format": "d",
        "formats": ("d",),
        "name": "float64",
        "min": None,
        "max": None,
    },
    Kind.INT32: {
        "ctype": c_int32,
        "size": 4,
        "format": "i",
        "formats": ("i", "l") if struct.calcsize("l") == 4 else ("i",),
        "name": "int32",
        "min": -(2 ** 31),
        "max": 2 ** 31 - 1,
    },
    Kind.UINT8: {
        "ctype": c_uint8,
        "size": 1,
        "format": "B",
        "formats": ("B",),
        "name": "uint8",
        "min": 0,
        "max": 255,
    },
}

_ALIASES: Dict[str, Kind] = {
    "double": Kind.FLOAT64,
    "real": Kind.FLOAT64,
    "float": Kind.FLOAT64,
    "int": Kind.INT32,
    "integer": Kind.INT32,
    "uchar": Kind.UINT8,
    "byte": Kind.UINT8,
}


# =============================================================================
# Type Mapping
# =============================================================================

TYPE_MAP: Dict[type, Kind] = {
    float: Kind.FLOAT64,
    int: Kind.INT32,
    bool: Kind.UINT8,
}

CTYPE_MAP: Dict[Type, Kind] = {
    c_double: Kind.FLOAT64,
    c_int32: Kind.INT32,
    c_uint8: Kind.UINT8,
}

# Primary kinds (named after the GSL block types)
Real = Kind.FLOAT64
Int = Kind.INT32
Byte = Kind.UINT8


def validate_kind(kind: Union[Kind, str, Type, None],
                  default: Kind = Kind.FLOAT64) -> Kind:
    """
    Validate and normalize a kind specification.

    Args:
        kind: Kind enum, type name, ctypes type, Python type, or None
        default: Kind used when ``kind`` is None

    Returns:
        Validated Kind

    Raises:
        KindMismatch: If the specification names no supported kind
    """
    if kind is None:
        return default
    if isinstance(kind, Kind):
        return kind
    if isinstance(kind, str):
        return Kind.from_name(kind)
    if kind in CTYPE_MAP:
        return CTYPE_MAP[kind]
    if kind in TYPE_MAP:
        return TYPE_MAP[kind]
    raise KindMismatch(f"Cannot convert {kind!r} to Kind")


# =============================================================================
# Value Coercion (storing into a block)
# =============================================================================

def _coerce_float(value: Any) -> float:
    if isinstance(value, (str, bytes)):
        raise KindMismatch(f"Cannot store {value!r} in a float64 block")
    try:
        return float(value)
    except OverflowError:
        raise KindMismatch(f"{value!r} is not representable as float64") from None
    except (TypeError, ValueError):
        raise KindMismatch(f"Cannot store {type(value).__name__} in a float64 block") from None


def _make_int_coercer(kind: Kind) -> Callable[[Any], int]:
    lo, hi = _KIND_INFO[kind]["min"], _KIND_INFO[kind]["max"]
    name = _KIND_INFO[kind]["name"]

    def coerce(value: Any) -> int:
        if hasattr(value, "__index__"):
            v = value.__index__()
        elif isinstance(value, float) or hasattr(value, "is_integer"):
            if not float(value).is_integer():
                raise KindMismatch(f"{value!r} is not an integral value for {name}")
            v = int(value)
        else:
            raise KindMismatch(f"Cannot store {type(value).__name__} in a {name} block")
        if v < lo or v > hi:
            raise KindMismatch(f"{v} outside {name} range [{lo}, {hi}]")
        return v

    return coerce


_COERCERS: Dict[Kind, Callable[[Any], Any]] = {
    Kind.FLOAT64: _coerce_float,
    Kind.INT32: _make_int_coercer(Kind.INT32),
    Kind.UINT8: _make_int_coercer(Kind.UINT8),
}


def coerce_value(kind: Kind, value: Any):
    """
    Validate ``value`` for storage in a block of ``kind``.

    Representable values pass through unchanged (as float or int);
    anything else raises KindMismatch.
    """
    return _COERCERS[kind](value)


# =============================================================================
# Cross-kind Conversion (casting)
# =============================================================================

def _saturate(v: int, kind: Kind) -> int:
    lo, hi = kind.min_value, kind.max_value
    if v < lo:
        return lo
    if v > hi:
        return hi
    return v


def convert_value(value, kind: Kind):
    """
    Convert a stored element to ``kind`` using the cast policy.

    Unlike coerce_value this never fails for numeric input: floats are
    truncated toward zero and integers saturate to the target range.
    Integers beyond the float64 range saturate to +/-inf.
    """
    if not kind.is_integer:
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    if isinstance(value, float):
        if math.isnan(value):
            return 0
        if math.isinf(value):
            return kind.max_value if value > 0 else kind.min_value
        value = math.trunc(value)
    return _saturate(int(value), kind)


__all__ = [
    "Kind",
    "Real",
    "Int",
    "Byte",
    "TYPE_MAP",
    "CTYPE_MAP",
    "validate_kind",
    "coerce_value",
    "convert_value",
]
