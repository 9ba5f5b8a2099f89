from __future__ import annotations

import gzip
import struct

import pytest

from schemrom import nbt, schematic
from schemrom.errors import NbtDecodeError, NbtEncodeError


def test_write_root_matches_reference_bytes() -> None:
    payload = nbt.write_root("", {"a": nbt.Short(1)})

    assert payload == b"\x0a\x00\x00" + b"\x02\x00\x01a\x00\x01" + b"\x00"


def test_typed_values_survive_round_trip() -> None:
    original = nbt.Compound(
        byte=nbt.Byte(-3),
        short=nbt.Short(300),
        int=nbt.Int(70000),
        long=nbt.Long(1 << 40),
        float=nbt.Float(0.5),
        double=nbt.Double(1.25),
        bytes=nbt.ByteArray(b"\x00\xff\x10"),
        text=nbt.String("héllo"),
        ints=nbt.IntArray([1, -2, 3]),
        longs=nbt.LongArray([1 << 40]),
        items=nbt.List([nbt.Compound(id=nbt.String("minecraft:stone"))], nbt.TAG_COMPOUND),
        nested=nbt.Compound(inner=nbt.Short(7)),
        empty=nbt.List([], nbt.TAG_END),
    )

    name, decoded = nbt.load(nbt.dump("Root", original))

    assert name == "Root"
    assert decoded == original
    for key, value in original.items():
        assert nbt.tag_id_of(decoded[key]) == nbt.tag_id_of(value), key
    assert decoded["items"].subtype == nbt.TAG_COMPOUND


def test_plain_python_values_infer_tags() -> None:
    _, decoded = nbt.read_root(
        nbt.write_root("", {"flag": True, "small": 5, "big": 1 << 33, "name": "x", "xs": [1, 2]})
    )

    assert isinstance(decoded["flag"], nbt.Byte)
    assert isinstance(decoded["small"], nbt.Int)
    assert isinstance(decoded["big"], nbt.Long)
    assert isinstance(decoded["name"], nbt.String)
    assert decoded["xs"].subtype == nbt.TAG_INT


def test_short_out_of_range_is_rejected() -> None:
    with pytest.raises(NbtEncodeError):
        nbt.write_root("", {"Width": nbt.Short(40000)})


def test_mixed_list_is_rejected() -> None:
    with pytest.raises(NbtEncodeError):
        nbt.write_root("", {"xs": [1, "two"]})


def test_unsupported_type_is_rejected() -> None:
    with pytest.raises(NbtEncodeError):
        nbt.write_root("", {"value": object()})


def test_invalid_gzip_raises_decode_error() -> None:
    with pytest.raises(NbtDecodeError):
        nbt.load(b"definitely not gzip")


def test_truncated_stream_reports_offset() -> None:
    payload = nbt.write_root("", {"value": nbt.Int(1)})

    with pytest.raises(NbtDecodeError) as excinfo:
        nbt.read_root(payload[:-3])

    assert excinfo.value.offset is not None


def test_root_must_be_compound() -> None:
    with pytest.raises(NbtDecodeError, match="root tag"):
        nbt.read_root(b"\x01\x00\x00\x05")


def test_unknown_tag_id_is_rejected() -> None:
    raw = b"\x0a\x00\x00" + b"\x0d\x00\x01x" + b"\x00"

    with pytest.raises(NbtDecodeError, match="unknown tag id 13"):
        nbt.read_root(raw)


def test_negative_array_length_is_rejected() -> None:
    raw = b"\x0a\x00\x00" + b"\x07\x00\x01b" + struct.pack(">i", -1) + b"\x00"

    with pytest.raises(NbtDecodeError, match="negative length"):
        nbt.read_root(raw)


def test_trailing_bytes_are_rejected() -> None:
    raw = nbt.write_root("", {}) + b"\x00"

    with pytest.raises(NbtDecodeError, match="trailing"):
        nbt.load(gzip.compress(raw))


def _nested_compounds(levels: int) -> bytes:
    """Root compound plus ``levels - 1`` compounds, each inside the previous one."""

    return b"\x0a\x00\x00" + b"\x0a\x00\x01c" * (levels - 1) + b"\x00" * levels


def test_deepest_allowed_nesting_round_trips() -> None:
    raw = _nested_compounds(nbt.MAX_DEPTH)

    _, decoded = nbt.read_root(raw)

    depth = 1
    while decoded:
        decoded = decoded["c"]
        depth += 1
    assert depth == nbt.MAX_DEPTH
    assert nbt.write_root("", nbt.read_root(raw)[1]) == raw


def test_nesting_past_the_limit_is_rejected() -> None:
    with pytest.raises(NbtDecodeError, match="nested deeper than 512"):
        nbt.read_root(_nested_compounds(nbt.MAX_DEPTH + 1))


def test_deeply_nested_lists_fail_with_decode_error() -> None:
    lists = b"\x09" + struct.pack(">i", 1)
    raw = (
        b"\x0a\x00\x09Schematic"
        + b"\x09\x00\x01X"
        + lists * 1999
        + b"\x00" + struct.pack(">i", 0)
        + b"\x00"
    )

    with pytest.raises(NbtDecodeError, match="nested deeper"):
        schematic.decode(gzip.compress(raw))


def test_deeply_nested_values_are_rejected_on_write() -> None:
    root: dict = {}
    current = root
    for _ in range(nbt.MAX_DEPTH):
        current["c"] = {}
        current = current["c"]

    with pytest.raises(NbtEncodeError, match="nested deeper than 512"):
        nbt.write_root("", root)
