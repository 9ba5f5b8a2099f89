"""Reader and writer for the gzip-compressed, big-endian NBT tag format.

Decoded values keep their tag type through small wrapper classes (``Short``,
``IntArray`` and friends) so records that are only carried through the
codec re-encode with exactly the tags they were read with.
"""

from __future__ import annotations

import gzip
import struct
import zlib
from typing import Any, Callable, Dict, Iterable, Iterator, Tuple

from .errors import NbtDecodeError, NbtEncodeError

TAG_END = 0
TAG_BYTE = 1
TAG_SHORT = 2
TAG_INT = 3
TAG_LONG = 4
TAG_FLOAT = 5
TAG_DOUBLE = 6
TAG_BYTE_ARRAY = 7
TAG_STRING = 8
TAG_LIST = 9
TAG_COMPOUND = 10
TAG_INT_ARRAY = 11
TAG_LONG_ARRAY = 12

_CONTAINER_TAGS = (TAG_LIST, TAG_COMPOUND)

# Nesting limit for lists and compounds, the root compound included.
MAX_DEPTH = 512

_INT_RANGES: Dict[int, Tuple[int, int]] = {
    TAG_BYTE: (-(1 << 7), (1 << 7) - 1),
    TAG_SHORT: (-(1 << 15), (1 << 15) - 1),
    TAG_INT: (-(1 << 31), (1 << 31) - 1),
    TAG_LONG: (-(1 << 63), (1 << 63) - 1),
}


class Byte(int):
    tag_id = TAG_BYTE

    def __repr__(self) -> str:
        return f"Byte({int(self)})"


class Short(int):
    tag_id = TAG_SHORT

    def __repr__(self) -> str:
        return f"Short({int(self)})"


class Int(int):
    tag_id = TAG_INT

    def __repr__(self) -> str:
        return f"Int({int(self)})"


class Long(int):
    tag_id = TAG_LONG

    def __repr__(self) -> str:
        return f"Long({int(self)})"


class Float(float):
    tag_id = TAG_FLOAT

    def __repr__(self) -> str:
        return f"Float({float(self)})"


class Double(float):
    tag_id = TAG_DOUBLE

    def __repr__(self) -> str:
        return f"Double({float(self)})"


class ByteArray(bytes):
    tag_id = TAG_BYTE_ARRAY


class String(str):
    tag_id = TAG_STRING


class IntArray(list):
    tag_id = TAG_INT_ARRAY


class LongArray(list):
    tag_id = TAG_LONG_ARRAY


class List(list):
    """Homogeneous tag list remembering its element tag id."""

    tag_id = TAG_LIST

    def __init__(self, items: Iterable[Any] = (), subtype: int | None = None) -> None:
        super().__init__(items)
        self.subtype = subtype


class Compound(dict):
    tag_id = TAG_COMPOUND


class _Reader:
    """Cursor over an uncompressed tag stream."""

    __slots__ = ("data", "offset")

    def __init__(self, data: bytes) -> None:
        self.data = data
        self.offset = 0

    def read(self, size: int) -> bytes:
        if size < 0:
            raise NbtDecodeError(f"negative length {size}", self.offset)
        end = self.offset + size
        if end > len(self.data):
            raise NbtDecodeError("unexpected end of tag data", self.offset)
        chunk = self.data[self.offset : end]
        self.offset = end
        return chunk

    def unpack(self, fmt: str) -> Any:
        return struct.unpack(fmt, self.read(struct.calcsize(fmt)))[0]

    def read_length(self) -> int:
        start = self.offset
        length = self.unpack(">i")
        if length < 0:
            raise NbtDecodeError(f"negative length {length}", start)
        return length

    def read_string(self) -> str:
        length = self.unpack(">H")
        start = self.offset
        raw = self.read(length)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise NbtDecodeError("string is not valid UTF-8", start) from exc


class _Frame:
    """An open list or compound whose children are still being read."""

    __slots__ = ("container", "remaining")

    def __init__(self, container: Any, remaining: int | None = None) -> None:
        self.container = container
        self.remaining = remaining


def _read_array(reader: _Reader, fmt: str, factory: Callable[[Iterable[int]], Any]) -> Any:
    length = reader.read_length()
    size = struct.calcsize(fmt)
    raw = reader.read(length * size)
    return factory(struct.unpack(f">{length}{fmt}", raw))


_SCALAR_READERS: Dict[int, Callable[[_Reader], Any]] = {
    TAG_BYTE: lambda r: Byte(r.unpack(">b")),
    TAG_SHORT: lambda r: Short(r.unpack(">h")),
    TAG_INT: lambda r: Int(r.unpack(">i")),
    TAG_LONG: lambda r: Long(r.unpack(">q")),
    TAG_FLOAT: lambda r: Float(r.unpack(">f")),
    TAG_DOUBLE: lambda r: Double(r.unpack(">d")),
    TAG_BYTE_ARRAY: lambda r: ByteArray(r.read(r.read_length())),
    TAG_STRING: lambda r: String(r.read_string()),
    TAG_INT_ARRAY: lambda r: _read_array(r, "i", IntArray),
    TAG_LONG_ARRAY: lambda r: _read_array(r, "q", LongArray),
}


def _check_tag(tag_id: int, offset: int) -> None:
    if tag_id not in _SCALAR_READERS and tag_id not in _CONTAINER_TAGS:
        raise NbtDecodeError(f"unknown tag id {tag_id}", offset)


def _open(reader: _Reader, tag_id: int) -> _Frame:
    if tag_id == TAG_COMPOUND:
        return _Frame(Compound())
    start = reader.offset
    subtype = reader.unpack(">B")
    if subtype != TAG_END:
        _check_tag(subtype, start)
    length = reader.read_length()
    if subtype == TAG_END and length:
        raise NbtDecodeError("non-empty list of end tags", start)
    return _Frame(List((), subtype), length)


def _read_container(reader: _Reader, tag_id: int) -> Any:
    """Read a list or compound payload, nesting at most ``MAX_DEPTH`` levels."""

    root = _open(reader, tag_id)
    stack = [root]
    while stack:
        frame = stack[-1]
        name: str | None = None
        if frame.remaining is None:
            child_tag = reader.unpack(">B")
            if child_tag == TAG_END:
                stack.pop()
                continue
            _check_tag(child_tag, reader.offset - 1)
            name = reader.read_string()
        elif frame.remaining:
            frame.remaining -= 1
            child_tag = frame.container.subtype
        else:
            stack.pop()
            continue

        if child_tag in _CONTAINER_TAGS:
            if len(stack) >= MAX_DEPTH:
                raise NbtDecodeError(
                    f"tags nested deeper than {MAX_DEPTH} levels", reader.offset
                )
            child = _open(reader, child_tag)
            stack.append(child)
            value = child.container
        else:
            value = _SCALAR_READERS[child_tag](reader)

        if name is None:
            frame.container.append(value)
        else:
            frame.container[name] = value
    return root.container


def read_root(data: bytes) -> Tuple[str, Compound]:
    """Decode an uncompressed tag stream whose root is a named compound."""

    reader = _Reader(data)
    tag_id = reader.unpack(">B")
    if tag_id != TAG_COMPOUND:
        raise NbtDecodeError(f"root tag must be a compound, found tag id {tag_id}", 0)
    name = reader.read_string()
    payload = _read_container(reader, TAG_COMPOUND)
    if reader.offset != len(data):
        raise NbtDecodeError(
            f"{len(data) - reader.offset} trailing bytes after root compound",
            reader.offset,
        )
    return name, payload


def load(data: bytes) -> Tuple[str, Compound]:
    """Decompress ``data`` and decode its root compound."""

    try:
        raw = gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise NbtDecodeError(f"gzip decompression failed: {exc}") from exc
    return read_root(raw)


def tag_id_of(value: Any) -> int:
    """Return the tag id used to serialise ``value``."""

    explicit = getattr(value, "tag_id", None)
    if explicit is not None:
        return explicit
    if isinstance(value, bool):
        return TAG_BYTE
    if isinstance(value, int):
        return TAG_INT if _fits(TAG_INT, value) else TAG_LONG
    if isinstance(value, float):
        return TAG_DOUBLE
    if isinstance(value, str):
        return TAG_STRING
    if isinstance(value, (bytes, bytearray)):
        return TAG_BYTE_ARRAY
    if isinstance(value, dict):
        return TAG_COMPOUND
    if isinstance(value, (list, tuple)):
        return TAG_LIST
    raise NbtEncodeError(f"unsupported value type for tag encoding: {type(value)!r}")


def _fits(tag_id: int, value: int) -> bool:
    low, high = _INT_RANGES[tag_id]
    return low <= value <= high


def _encode_string(text: str) -> bytes:
    raw = text.encode("utf-8")
    if len(raw) > 0xFFFF:
        raise NbtEncodeError(f"string of {len(raw)} bytes exceeds 65535")
    return struct.pack(">H", len(raw)) + raw


def _encode_int(tag_id: int, value: int) -> bytes:
    if not _fits(tag_id, int(value)):
        raise NbtEncodeError(f"value {value} out of range for tag id {tag_id}")
    fmt = {TAG_BYTE: ">b", TAG_SHORT: ">h", TAG_INT: ">i", TAG_LONG: ">q"}[tag_id]
    return struct.pack(fmt, int(value))


def _encode_array(tag_id: int, values: Iterable[int]) -> bytes:
    items = [int(v) for v in values]
    element = TAG_INT if tag_id == TAG_INT_ARRAY else TAG_LONG
    body = b"".join(_encode_int(element, item) for item in items)
    return struct.pack(">i", len(items)) + body


def _list_children(value: Any, out: bytearray) -> Iterator[Tuple[int, Any]]:
    items = list(value)
    subtype = getattr(value, "subtype", None)
    if subtype is None:
        subtype = tag_id_of(items[0]) if items else TAG_END
    for item in items:
        item_tag = tag_id_of(item)
        if item_tag != subtype and not (
            subtype in _INT_RANGES and isinstance(item, int) and not hasattr(item, "tag_id")
        ):
            raise NbtEncodeError(
                f"list of tag id {subtype} cannot hold a value of tag id {item_tag}"
            )
    out.extend(struct.pack(">Bi", subtype, len(items)))
    for item in items:
        yield subtype, item


def _compound_children(value: Dict[str, Any], out: bytearray) -> Iterator[Tuple[int, Any]]:
    for name, item in value.items():
        item_tag = tag_id_of(item)
        out.extend(struct.pack(">B", item_tag))
        out.extend(_encode_string(name))
        yield item_tag, item
    out.append(TAG_END)


def _children(tag_id: int, value: Any, out: bytearray) -> Iterator[Tuple[int, Any]]:
    if tag_id == TAG_COMPOUND:
        return _compound_children(value, out)
    return _list_children(value, out)


def _encode_scalar(tag_id: int, value: Any) -> bytes:
    if tag_id in _INT_RANGES:
        return _encode_int(tag_id, value)
    if tag_id == TAG_FLOAT:
        return struct.pack(">f", float(value))
    if tag_id == TAG_DOUBLE:
        return struct.pack(">d", float(value))
    if tag_id == TAG_BYTE_ARRAY:
        raw = bytes(value)
        return struct.pack(">i", len(raw)) + raw
    if tag_id == TAG_STRING:
        return _encode_string(value)
    if tag_id in (TAG_INT_ARRAY, TAG_LONG_ARRAY):
        return _encode_array(tag_id, value)
    raise NbtEncodeError(f"unsupported tag id {tag_id}")


def _encode_container(tag_id: int, value: Any, out: bytearray) -> None:
    """Append a list or compound payload, nesting at most ``MAX_DEPTH`` levels."""

    stack = [_children(tag_id, value, out)]
    while stack:
        try:
            child_tag, child = next(stack[-1])
        except StopIteration:
            stack.pop()
            continue
        if child_tag in _CONTAINER_TAGS:
            if len(stack) >= MAX_DEPTH:
                raise NbtEncodeError(f"values nested deeper than {MAX_DEPTH} levels")
            stack.append(_children(child_tag, child, out))
        else:
            out.extend(_encode_scalar(child_tag, child))


def write_root(name: str, payload: Dict[str, Any]) -> bytes:
    """Encode ``payload`` as an uncompressed root compound called ``name``."""

    out = bytearray(struct.pack(">B", TAG_COMPOUND) + _encode_string(name))
    _encode_container(TAG_COMPOUND, payload, out)
    return bytes(out)


def dump(name: str, payload: Dict[str, Any]) -> bytes:
    """Encode and gzip ``payload`` as a root compound called ``name``."""

    return gzip.compress(write_root(name, payload))


__all__ = [
    "Byte",
    "ByteArray",
    "Compound",
    "Double",
    "Float",
    "Int",
    "IntArray",
    "List",
    "Long",
    "LongArray",
    "MAX_DEPTH",
    "Short",
    "String",
    "TAG_BYTE",
    "TAG_BYTE_ARRAY",
    "TAG_COMPOUND",
    "TAG_DOUBLE",
    "TAG_END",
    "TAG_FLOAT",
    "TAG_INT",
    "TAG_INT_ARRAY",
    "TAG_LIST",
    "TAG_LONG",
    "TAG_LONG_ARRAY",
    "TAG_SHORT",
    "TAG_STRING",
    "dump",
    "load",
    "read_root",
    "tag_id_of",
    "write_root",
]
