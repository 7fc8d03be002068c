"""
core.utils.bytes
================

Lightweight, dependency-free helpers around byte handling:

- Bytes-like normalization: b()
- Little-endian u64 as used by instruction payloads, derivation seeds and
  account layouts: ensure_u64 / u64_le

Examples
--------
>>> u64_le(7)
b'\\x07\\x00\\x00\\x00\\x00\\x00\\x00\\x00'
>>> u64_le(2**64)
Traceback (most recent call last):
...
OverflowError: value out of u64 range: 18446744073709551616
"""

from __future__ import annotations

import struct
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]

U8_MAX = 0xFF
U64_MAX = 0xFFFF_FFFF_FFFF_FFFF

_U64 = struct.Struct("<Q")


def b(x: BytesLike) -> bytes:
    """Normalize bytes-like input (or anything exposing ``__bytes__``) to bytes."""
    if isinstance(x, bytes):
        return x
    if isinstance(x, (bytearray, memoryview)):
        return bytes(x)
    if hasattr(x, "__bytes__"):
        return bytes(x)  # type: ignore[call-overload]
    raise TypeError(f"unsupported type for b(): {type(x)!r}")


def ensure_u64(value: int, *, name: str = "value") -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be int")
    if value < 0 or value > U64_MAX:
        raise OverflowError(f"{name} out of u64 range: {value}")
    return value


def u64_le(value: int) -> bytes:
    return _U64.pack(ensure_u64(value))


__all__ = [
    "BytesLike",
    "U8_MAX",
    "U64_MAX",
    "b",
    "ensure_u64",
    "u64_le",
]
