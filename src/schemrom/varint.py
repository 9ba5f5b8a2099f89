"""Unsigned little-endian base-128 integers used for palette indices."""

from __future__ import annotations

from typing import Iterable, Iterator, Tuple

from .errors import TruncatedBlockData, VarintOverflow

MAX_VARINT_BYTES = 5


def encode_varint(value: int) -> bytes:
    """Return ``value`` as 7-bit groups, continuation bit on all but the last."""

    if value < 0:
        raise ValueError(f"varint values must be non-negative, received {value}")
    out = bytearray()
    while value & ~0x7F:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def decode_varint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode one varint at ``offset``; return ``(value, next_offset)``."""

    value = 0
    length = 0
    position = offset
    while True:
        if position >= len(data):
            raise TruncatedBlockData(offset)
        byte = data[position]
        value |= (byte & 0x7F) << (7 * length)
        length += 1
        position += 1
        if length > MAX_VARINT_BYTES:
            raise VarintOverflow(offset)
        if not byte & 0x80:
            return value, position


def iter_varints(data: bytes) -> Iterator[int]:
    offset = 0
    while offset < len(data):
        value, offset = decode_varint(data, offset)
        yield value


def encode_varints(values: Iterable[int]) -> bytes:
    return b"".join(encode_varint(value) for value in values)


__all__ = [
    "MAX_VARINT_BYTES",
    "decode_varint",
    "encode_varint",
    "encode_varints",
    "iter_varints",
]
