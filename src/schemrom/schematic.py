"""Codec for version 2 Sponge schematic files (``.schem``).

A schematic is a gzip-compressed root compound named ``Schematic``. Blocks
are stored as a palette (block-state text to index) plus ``BlockData``, one
varint palette index per cell in y-major, z-middle, x-minor order.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from . import nbt
from .blockstate import BlockState, BlockStateRegistry, format_state
from .errors import (
    InvalidPaletteIndex,
    MissingField,
    MissingPaletteEntry,
    NbtDecodeError,
    NbtEncodeError,
    SchematicDecodeError,
)
from .grid import BlockEntity, Grid, Position, SchematicMetadata
from .varint import encode_varint, iter_varints

LOGGER = logging.getLogger(__name__)

ROOT_NAME = "Schematic"
FORMAT_VERSION = 2


def decode(data: bytes, registry: Optional[BlockStateRegistry] = None) -> Grid:
    """Decode gzip-compressed schematic ``data`` into a :class:`Grid`."""

    _, root = nbt.load(data)
    return decode_record(root, registry=registry)


def decode_record(
    root: Mapping[str, Any], registry: Optional[BlockStateRegistry] = None
) -> Grid:
    """Build a :class:`Grid` from an already deserialised ``Schematic`` compound."""

    registry = registry if registry is not None else BlockStateRegistry()

    width = _dimension(root, "Width")
    length = _dimension(root, "Length")
    height = _dimension(root, "Height")
    palette = _require(root, "Palette")
    block_data = bytes(_require(root, "BlockData"))

    LOGGER.info(
        "decoding schematic %dx%dx%d with %d palette entries (PaletteMax=%s)",
        width,
        height,
        length,
        len(palette),
        root.get("PaletteMax"),
    )

    table = decode_palette(palette, registry)
    blocks = decode_block_data(block_data, table, width=width, length=length)

    grid = Grid(source=_source_metadata(root, width, length, height))
    for position, state in blocks.items():
        grid.set_block(position, state)
    for position, entity in _decode_entities(root.get("BlockEntities", ())):
        grid.set_entity(position, entity)
    return grid


def decode_palette(
    palette: Mapping[str, Any], registry: BlockStateRegistry
) -> List[BlockState]:
    """Return the index-to-state table for ``palette``.

    Every index must fall inside ``0..len(palette) - 1`` and every slot must
    be claimed by exactly one entry.
    """

    size = len(palette)
    table: List[Optional[BlockState]] = [None] * size
    for text, raw_index in palette.items():
        if isinstance(raw_index, bool) or not isinstance(raw_index, int):
            raise SchematicDecodeError(
                f"palette entry {text!r} has non-integer index {raw_index!r}"
            )
        index = int(raw_index)
        if not 0 <= index < size:
            raise InvalidPaletteIndex(index, size)
        table[index] = registry.parse(text)

    resolved: List[BlockState] = []
    for index, state in enumerate(table):
        if state is None:
            raise MissingPaletteEntry(index)
        resolved.append(state)
    return resolved


def decode_block_data(
    block_data: bytes, table: List[BlockState], *, width: int, length: int
) -> Dict[Position, BlockState]:
    """Map every non-air cell of ``block_data`` to its box-relative position."""

    layer = width * length
    if block_data and layer <= 0:
        raise SchematicDecodeError(
            f"block data present but declared footprint is {width}x{length}"
        )

    blocks: Dict[Position, BlockState] = {}
    for cell, index in enumerate(iter_varints(block_data)):
        if index >= len(table):
            raise InvalidPaletteIndex(index, len(table))
        state = table[index]
        if state.is_air:
            continue
        position = Position(cell % width, cell // layer, (cell // width) % length)
        blocks[position] = state
    return blocks


def encode(grid: Grid) -> bytes:
    """Serialise ``grid`` into gzip-compressed schematic bytes."""

    return nbt.dump(ROOT_NAME, encode_record(grid))


def encode_record(grid: Grid) -> nbt.Compound:
    """Build the ``Schematic`` compound for ``grid`` without compressing it."""

    box = grid.bounding_box()
    palette = nbt.Compound()
    texts: Dict[BlockState, str] = {}
    block_data = bytearray()

    for position in box.iter_positions():
        state = grid.block_at(position)
        text = texts.get(state)
        if text is None:
            text = texts[state] = format_state(state)
        index = palette.get(text)
        if index is None:
            index = palette[text] = nbt.Int(len(palette))
        block_data += encode_varint(index)

    width, height, length = box.size
    source = grid.source
    LOGGER.info(
        "encoding %dx%dx%d box from %s with %d palette entries",
        width,
        height,
        length,
        tuple(box.minimum),
        len(palette),
    )

    return nbt.Compound(
        BlockData=nbt.ByteArray(block_data),
        BlockEntities=nbt.List(
            (_encode_entity(position, entity) for position, entity in sorted(grid.iter_entities())),
            nbt.TAG_COMPOUND,
        ),
        DataVersion=nbt.Int(source.data_version),
        Height=_encode_dimension("Height", height),
        Length=_encode_dimension("Length", length),
        Metadata=_encode_metadata(source),
        Offset=nbt.IntArray(source.offset),
        Palette=palette,
        PaletteMax=nbt.Int(len(palette)),
        Version=nbt.Int(FORMAT_VERSION),
        Width=_encode_dimension("Width", width),
    )


def read_schematic(path: Path | str) -> Grid:
    return decode(Path(path).read_bytes())


def write_schematic(grid: Grid, path: Path | str) -> None:
    Path(path).write_bytes(encode(grid))


def _require(root: Mapping[str, Any], name: str) -> Any:
    try:
        return root[name]
    except KeyError:
        raise MissingField(name) from None


def _dimension(root: Mapping[str, Any], name: str) -> int:
    value = _require(root, name)
    if isinstance(value, bool) or not isinstance(value, int):
        raise SchematicDecodeError(f"{name} must be an integer, found {value!r}")
    # Sizes are unsigned but stored in a signed short.
    return value & 0xFFFF


def _encode_dimension(name: str, value: int) -> nbt.Short:
    if not 0 <= value <= 0xFFFF:
        raise NbtEncodeError(f"{name} {value} does not fit in 16 bits")
    return nbt.Short(value - 0x10000 if value > 0x7FFF else value)


def _source_metadata(
    root: Mapping[str, Any], width: int, length: int, height: int
) -> SchematicMetadata:
    offset = root.get("Offset", (0, 0, 0))
    if len(offset) != 3:
        raise SchematicDecodeError(f"Offset must hold 3 integers, found {len(offset)}")
    metadata = root.get("Metadata")
    if metadata is not None and not isinstance(metadata, dict):
        raise SchematicDecodeError("Metadata must be a compound")
    return SchematicMetadata(
        width=width,
        length=length,
        height=height,
        offset=(int(offset[0]), int(offset[1]), int(offset[2])),
        data_version=int(root.get("DataVersion", 0)),
        metadata=metadata,
    )


def _decode_entities(records: Any):
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            raise SchematicDecodeError(f"BlockEntities[{index}] is not a compound")
        properties = dict(record)
        try:
            identifier = properties.pop("Id")
            pos = properties.pop("Pos")
        except KeyError as exc:
            raise MissingField(f"BlockEntities[{index}].{exc.args[0]}") from None
        if len(pos) != 3:
            raise SchematicDecodeError(
                f"BlockEntities[{index}].Pos must hold 3 integers, found {len(pos)}"
            )
        yield Position(int(pos[0]), int(pos[1]), int(pos[2])), BlockEntity(
            str(identifier), properties
        )


def _encode_entity(position: Position, entity: BlockEntity) -> nbt.Compound:
    record = nbt.Compound(Id=nbt.String(entity.identifier), Pos=nbt.IntArray(position))
    record.update(entity.properties)
    return record


def _encode_metadata(source: SchematicMetadata) -> nbt.Compound:
    if source.metadata is not None:
        return nbt.Compound(source.metadata)
    return nbt.Compound(
        WEOffsetX=nbt.Int(0),
        WEOffsetY=nbt.Int(0),
        WEOffsetZ=nbt.Int(0),
    )


__all__ = [
    "FORMAT_VERSION",
    "NbtDecodeError",
    "ROOT_NAME",
    "decode",
    "decode_block_data",
    "decode_palette",
    "decode_record",
    "encode",
    "encode_record",
    "read_schematic",
    "write_schematic",
]
