from __future__ import annotations

import pytest

from schemrom.errors import TruncatedBlockData, VarintOverflow
from schemrom.varint import decode_varint, encode_varint, encode_varints, iter_varints


@pytest.mark.parametrize(
    ("value", "encoded"),
    [
        (0, b"\x00"),
        (1, b"\x01"),
        (127, b"\x7f"),
        (128, b"\x80\x01"),
        (300, b"\xac\x02"),
        (16384, b"\x80\x80\x01"),
    ],
)
def test_known_encodings(value: int, encoded: bytes) -> None:
    assert encode_varint(value) == encoded
    assert decode_varint(encoded) == (value, len(encoded))


def test_largest_five_byte_value_decodes() -> None:
    value = (1 << 35) - 1
    encoded = encode_varint(value)

    assert len(encoded) == 5
    assert decode_varint(encoded) == (value, 5)


def test_sixth_byte_is_rejected() -> None:
    encoded = encode_varint(1 << 35)
    assert len(encoded) == 6

    with pytest.raises(VarintOverflow) as excinfo:
        decode_varint(b"\x00" + encoded, 1)

    assert excinfo.value.offset == 1


def test_truncated_value_is_rejected() -> None:
    with pytest.raises(TruncatedBlockData):
        decode_varint(b"\x05\x80", 1)


def test_negative_values_cannot_be_encoded() -> None:
    with pytest.raises(ValueError):
        encode_varint(-1)


def test_iter_varints_walks_stream() -> None:
    values = [0, 5, 128, 2, 70000]

    assert list(iter_varints(encode_varints(values))) == values
    assert list(iter_varints(b"")) == []
