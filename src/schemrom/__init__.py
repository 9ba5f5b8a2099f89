"""Schematic codec and ROM programming tools for redstone computers."""
from __future__ import annotations

from .blockstate import AIR, BlockState, BlockStateRegistry, format_state, parse_state
from .errors import SchemRomError
from .grid import BlockEntity, BoundingBox, Grid, Position, SchematicMetadata
from .instruction import assemble
from .rom_layout import (
    BitLine,
    MarkerConfig,
    find_markers,
    group_into_lines,
    imprint,
    order_lines,
)
from .schematic import decode, encode, read_schematic, write_schematic

__all__ = [
    "AIR",
    "BitLine",
    "BlockEntity",
    "BlockState",
    "BlockStateRegistry",
    "BoundingBox",
    "Grid",
    "MarkerConfig",
    "Position",
    "SchemRomError",
    "SchematicMetadata",
    "assemble",
    "decode",
    "encode",
    "find_markers",
    "format_state",
    "group_into_lines",
    "imprint",
    "order_lines",
    "parse_state",
    "read_schematic",
    "write_schematic",
]
