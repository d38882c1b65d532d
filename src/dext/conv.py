from __future__ import annotations
from enum import Enum
import struct
import sys

from .diagnostics import ConvError

# Fixed-width integer <-> raw bytes, native size, caller-chosen byte order
# (defaults to the host order).

class IntType(Enum):
    BYTE = ("b", "byte")
    UBYTE = ("B", "ubyte")
    SHORT = ("h", "short")
    USHORT = ("H", "ushort")
    INT = ("i", "int")
    UINT = ("I", "uint")
    LONG = ("q", "long")
    ULONG = ("Q", "ulong")

    def __init__(self, fmt: str, type_name: str):
        self.fmt = fmt
        self.type_name = type_name

    @property
    def size(self) -> int:
        return struct.calcsize("=" + self.fmt)

    @property
    def signed(self) -> bool:
        return self.fmt.islower()

    @property
    def min(self) -> int:
        return -(1 << (self.size * 8 - 1)) if self.signed else 0

    @property
    def max(self) -> int:
        bits = self.size * 8
        return (1 << (bits - 1)) - 1 if self.signed else (1 << bits) - 1

    def contains(self, value) -> bool:
        return isinstance(value, int) and not isinstance(value, bool) and self.min <= value <= self.max

    def __call__(self, value) -> int:
        """Range-checked int, so members also work as annotations: ``age: IntType.UBYTE``."""
        if not self.contains(value):
            raise _range_error(value, self)
        return value

    @classmethod
    def by_name(cls, type_name: str) -> "IntType":
        for t in cls:
            if t.type_name == type_name:
                return t
        raise KeyError(type_name)


def _range_error(value, int_type: IntType) -> ConvError:
    return ConvError.make(
        "DXT-CONV-0002",
        f"value {value!r} does not fit in {int_type.type_name} ({int_type.min}..{int_type.max})",
        "Pick a wider IntType or check the value before converting.",
    )


_ORDER = {"little": "<", "big": ">"}

def _order(byteorder: str) -> str:
    try:
        return _ORDER[byteorder]
    except KeyError:
        raise ValueError("byteorder must be 'little' or 'big'") from None


def to_bytes(value: int, int_type: IntType, *, byteorder: str = sys.byteorder) -> bytes:
    """Pack ``value`` into exactly ``int_type.size`` bytes."""
    if not int_type.contains(value):
        raise _range_error(value, int_type)
    return struct.pack(_order(byteorder) + int_type.fmt, value)


def from_bytes(data, int_type: IntType, *, byteorder: str = sys.byteorder) -> int:
    """Unpack a byte sequence of exactly ``int_type.size`` bytes."""
    raw = bytes(data)
    if len(raw) != int_type.size:
        raise ConvError.make(
            "DXT-CONV-0001",
            f"byte array must be equal to {int_type.type_name}.sizeof ({int_type.size}). actual length: {len(raw)}",
        )
    (num,) = struct.unpack(_order(byteorder) + int_type.fmt, raw)
    return num
