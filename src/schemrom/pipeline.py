"""End-to-end ROM programming: fetch, decode, imprint, encode, publish."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from . import schematic
from .config import PipelineConfig
from .errors import RomLayoutError
from .grid import Grid
from .rom_layout import (
    MarkerConfig,
    discover_lines,
    find_markers,
    imprint,
)
from .transfer import SchematicTransfer

LOGGER = logging.getLogger(__name__)


def program_rom(
    grid: Grid, program: Sequence[int], markers: MarkerConfig = MarkerConfig()
) -> Grid:
    """Discover the ROM layout of ``grid`` and imprint ``program`` onto it."""

    lines = discover_lines(grid, markers)
    return imprint(grid, program, markers, lines=lines)


def imprint_bytes(
    data: bytes, program: Sequence[int], markers: MarkerConfig = MarkerConfig()
) -> Tuple[Grid, bytes]:
    """Decode ``data``, program its ROM and return the grid and re-encoded bytes."""

    grid = schematic.decode(data)
    programmed = program_rom(grid, program, markers)
    return programmed, schematic.encode(programmed)


def run(
    config: PipelineConfig,
    transfer: SchematicTransfer,
    source_name: str,
    target_name: str,
    program: Optional[Sequence[int]] = None,
) -> Grid:
    """Fetch ``source_name``, program it and publish the result as ``target_name``."""

    words = list(program) if program is not None else config.program()
    LOGGER.info("fetching schematic %s", source_name)
    data = transfer.fetch(source_name)
    LOGGER.info("programming %d words into %d-byte schematic", len(words), len(data))
    programmed, encoded = imprint_bytes(data, words, config.markers)
    LOGGER.info("publishing %d bytes as %s", len(encoded), target_name)
    transfer.publish(encoded, target_name)
    return programmed


@dataclass(frozen=True)
class LayoutReport:
    """Summary of the marker layout found in a grid."""

    marker_count: int
    line_count: int
    y_range: Optional[Tuple[int, int]]
    z_range: Optional[Tuple[int, int]]
    problem: Optional[str] = None

    @property
    def valid(self) -> bool:
        return self.problem is None


def describe_layout(grid: Grid, markers: MarkerConfig = MarkerConfig()) -> LayoutReport:
    """Report marker statistics and whether they form a programmable ROM."""

    found = find_markers(grid, markers.inert)
    keys = {(p.y, p.z) for p in found}
    ys = [y for y, _ in keys]
    zs = [z for _, z in keys]
    problem: Optional[str] = None
    try:
        discover_lines(grid, markers)
    except RomLayoutError as exc:
        problem = str(exc)
    return LayoutReport(
        marker_count=len(found),
        line_count=len(keys),
        y_range=(min(ys), max(ys)) if ys else None,
        z_range=(min(zs), max(zs)) if zs else None,
        problem=problem,
    )


__all__ = [
    "LayoutReport",
    "describe_layout",
    "imprint_bytes",
    "program_rom",
    "run",
]
