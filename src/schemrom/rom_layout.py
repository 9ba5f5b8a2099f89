"""Locate the bit markers of a 128-word ROM and imprint a program onto them.

The ROM is built from marker blocks (wall torches by default). Each memory
word is a *bit line*: 16 markers sharing one ``(y, z)`` pair, bit 0 at the
smallest x. Programming a word swaps the inert marker for the active marker
at every set bit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from .blockstate import AIR
from .errors import AmbiguousLayout, InvalidProgram, MalformedLayout
from .grid import Grid, Position

LOGGER = logging.getLogger(__name__)

WORD_COUNT = 128
WORD_BITS = 16
ROW_COUNT = 8
LINES_PER_ROW = WORD_COUNT // ROW_COUNT
MAX_WORD = (1 << WORD_BITS) - 1

DEFAULT_INERT_MARKER = "minecraft:soul_wall_torch"
DEFAULT_ACTIVE_MARKER = "minecraft:redstone_wall_torch"

LineKey = Tuple[int, int]


@dataclass(frozen=True)
class MarkerConfig:
    """Identifiers of the two marker variants."""

    inert: str = DEFAULT_INERT_MARKER
    active: str = DEFAULT_ACTIVE_MARKER

    def __post_init__(self) -> None:
        if self.inert == self.active:
            raise ValueError("inert and active marker identifiers must differ")


@dataclass(frozen=True)
class BitLine:
    """The 16 marker positions holding one word, ordered by ascending x."""

    y: int
    z: int
    positions: Tuple[Position, ...]

    @property
    def key(self) -> LineKey:
        return (self.y, self.z)

    def bit_position(self, bit: int) -> Position:
        return self.positions[bit]


def find_markers(grid: Grid, inert_marker: str = DEFAULT_INERT_MARKER) -> Set[Position]:
    """Return every position holding the inert marker."""

    return {
        position
        for position, state in grid.iter_blocks()
        if state.identifier == inert_marker
    }


def group_into_lines(markers: Iterable[Position]) -> Dict[LineKey, List[Position]]:
    """Group ``markers`` by ``(y, z)`` and sort each group by x.

    Raises :class:`MalformedLayout` unless there are exactly 128 groups of 16.
    """

    lines: Dict[LineKey, List[Position]] = {}
    for position in markers:
        lines.setdefault((position.y, position.z), []).append(position)
    for positions in lines.values():
        positions.sort(key=lambda p: p.x)

    if len(lines) != WORD_COUNT:
        total = sum(len(group) for group in lines.values())
        raise MalformedLayout(
            f"expected {WORD_COUNT} bit lines, found {len(lines)} "
            f"({total} markers)"
        )
    for (y, z), positions in sorted(lines.items()):
        if len(positions) != WORD_BITS:
            raise MalformedLayout(
                f"bit line at y={y}, z={z} has {len(positions)} markers, "
                f"expected {WORD_BITS}"
            )
    return lines


def order_lines(lines: Dict[LineKey, Sequence[Position]]) -> List[BitLine]:
    """Place the lines into word slots 0..127.

    Each of the 8 rows starts with the lowest remaining line; the next 15
    slots take, among lines further along z than the previous one, the
    lowest. Ties on y go to the smaller z.
    """

    remaining = dict(lines)
    ordered: List[BitLine] = []
    for row in range(ROW_COUNT):
        slot = row * LINES_PER_ROW
        if not remaining:
            raise AmbiguousLayout(slot)
        key = min(remaining)
        ordered.append(_take(remaining, key))
        threshold = key[1]

        for offset in range(1, LINES_PER_ROW):
            candidates = [k for k in remaining if k[1] > threshold]
            if not candidates:
                raise AmbiguousLayout(slot + offset, threshold)
            key = min(candidates)
            ordered.append(_take(remaining, key))
            threshold = key[1]

    LOGGER.debug("ordered %d bit lines, %d left unplaced", len(ordered), len(remaining))
    return ordered


def _take(remaining: Dict[LineKey, Sequence[Position]], key: LineKey) -> BitLine:
    positions = remaining.pop(key)
    return BitLine(y=key[0], z=key[1], positions=tuple(positions))


def discover_lines(grid: Grid, markers: MarkerConfig = MarkerConfig()) -> List[BitLine]:
    """Find, group and order the bit lines of ``grid``."""

    found = find_markers(grid, markers.inert)
    LOGGER.info("found %d %s markers", len(found), markers.inert)
    return order_lines(group_into_lines(found))


def validate_program(program: Sequence[int]) -> Tuple[int, ...]:
    words = tuple(program)
    if len(words) > WORD_COUNT:
        raise InvalidProgram(
            f"program has {len(words)} words; the ROM holds {WORD_COUNT}"
        )
    for address, word in enumerate(words):
        if not 0 <= word <= MAX_WORD:
            raise InvalidProgram(f"word {address} ({word}) is not a 16-bit value")
    return words


def active_positions(lines: Sequence[BitLine], program: Sequence[int]) -> Set[Position]:
    """Return the marker positions whose bit is set in ``program``."""

    selected: Set[Position] = set()
    for line, word in zip(lines, program):
        for bit, position in enumerate(line.positions):
            if (word >> bit) & 1:
                selected.add(position)
    return selected


def imprint(
    grid: Grid,
    program: Sequence[int],
    markers: MarkerConfig = MarkerConfig(),
    lines: Sequence[BitLine] | None = None,
) -> Grid:
    """Return a copy of ``grid`` with ``program`` written onto its markers.

    Markers at set bits become the active marker; all other markers stay
    inert. Every block that is not an inert marker is cleared to air.
    """

    words = validate_program(program)
    if lines is None:
        lines = discover_lines(grid, markers)
    selected = active_positions(lines, words)

    result = grid.copy()
    cleared = 0
    for position, state in grid.iter_blocks():
        if state.identifier == markers.inert:
            if position in selected:
                result.set_block(position, state.with_identifier(markers.active))
        else:
            result.set_block(position, AIR)
            cleared += 1

    LOGGER.info(
        "imprinted %d words: %d bits active, %d non-marker blocks cleared",
        len(words),
        len(selected),
        cleared,
    )
    return result


__all__ = [
    "BitLine",
    "DEFAULT_ACTIVE_MARKER",
    "DEFAULT_INERT_MARKER",
    "LINES_PER_ROW",
    "MarkerConfig",
    "ROW_COUNT",
    "WORD_BITS",
    "WORD_COUNT",
    "active_positions",
    "discover_lines",
    "find_markers",
    "group_into_lines",
    "imprint",
    "order_lines",
    "validate_program",
]
