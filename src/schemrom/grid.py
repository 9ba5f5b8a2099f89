"""Sparse in-memory block grid decoded from, and encoded to, a schematic."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, Mapping, NamedTuple, Optional, Tuple

from .blockstate import AIR, BlockState


class Position(NamedTuple):
    """Absolute block coordinate; tuples order lexicographically by x, y, z."""

    x: int
    y: int
    z: int


@dataclass
class BlockEntity:
    """Metadata attached to a block position, carried through unmodified."""

    identifier: str
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box with an inclusive ``minimum`` and exclusive ``maximum``."""

    minimum: Position
    maximum: Position

    @property
    def size(self) -> Tuple[int, int, int]:
        """Return ``(width, height, length)`` along x, y and z."""

        return (
            self.maximum.x - self.minimum.x,
            self.maximum.y - self.minimum.y,
            self.maximum.z - self.minimum.z,
        )

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

    @property
    def length(self) -> int:
        return self.size[2]

    @property
    def volume(self) -> int:
        width, height, length = self.size
        return width * height * length

    def contains(self, position: Tuple[int, int, int]) -> bool:
        return all(
            low <= value < high
            for low, value, high in zip(self.minimum, position, self.maximum)
        )

    def iter_positions(self) -> Iterator[Position]:
        """Yield every cell with y outermost, then z, then x."""

        low, high = self.minimum, self.maximum
        for y in range(low.y, high.y):
            for z in range(low.z, high.z):
                for x in range(low.x, high.x):
                    yield Position(x, y, z)


EMPTY_BOX = BoundingBox(Position(0, 0, 0), Position(0, 0, 0))


@dataclass
class SchematicMetadata:
    """Structural fields read from a schematic and written back verbatim."""

    width: int = 0
    length: int = 0
    height: int = 0
    offset: Tuple[int, int, int] = (0, 0, 0)
    data_version: int = 0
    metadata: Optional[Dict[str, Any]] = None


class Grid:
    """Mapping from :class:`Position` to :class:`BlockState`.

    Only occupied positions are stored; any absent position reads as air,
    and writing air removes the entry.
    """

    def __init__(
        self,
        blocks: Optional[Mapping[Tuple[int, int, int], BlockState]] = None,
        entities: Optional[Mapping[Tuple[int, int, int], BlockEntity]] = None,
        source: Optional[SchematicMetadata] = None,
    ) -> None:
        self._blocks: Dict[Position, BlockState] = {}
        self._entities: Dict[Position, BlockEntity] = {}
        self.source = source if source is not None else SchematicMetadata()
        for position, state in (blocks or {}).items():
            self.set_block(position, state)
        for position, entity in (entities or {}).items():
            self.set_entity(position, entity)

    def __len__(self) -> int:
        return len(self._blocks)

    def __contains__(self, position: object) -> bool:
        return position in self._blocks

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return self._blocks == other._blocks and self._entities == other._entities

    def __repr__(self) -> str:
        return f"Grid(blocks={len(self._blocks)}, entities={len(self._entities)})"

    def block_at(self, position: Tuple[int, int, int]) -> BlockState:
        return self._blocks.get(Position(*position), AIR)

    def set_block(self, position: Tuple[int, int, int], state: BlockState) -> None:
        key = Position(*position)
        if state.is_air:
            self._blocks.pop(key, None)
        else:
            self._blocks[key] = state

    def remove_block(self, position: Tuple[int, int, int]) -> None:
        self._blocks.pop(Position(*position), None)

    def iter_blocks(self) -> Iterator[Tuple[Position, BlockState]]:
        """Yield occupied positions in ascending coordinate order."""

        for position in sorted(self._blocks):
            yield position, self._blocks[position]

    def positions(self) -> Iterable[Position]:
        return self._blocks.keys()

    def entity_at(self, position: Tuple[int, int, int]) -> Optional[BlockEntity]:
        return self._entities.get(Position(*position))

    def set_entity(self, position: Tuple[int, int, int], entity: BlockEntity) -> None:
        self._entities[Position(*position)] = entity

    def iter_entities(self) -> Iterator[Tuple[Position, BlockEntity]]:
        return iter(self._entities.items())

    @property
    def entity_count(self) -> int:
        return len(self._entities)

    def bounding_box(self) -> BoundingBox:
        """Return the box spanned by occupied positions (empty grids yield a zero box)."""

        if not self._blocks:
            return EMPTY_BOX
        xs, ys, zs = zip(*self._blocks)
        return BoundingBox(
            Position(min(xs), min(ys), min(zs)),
            Position(max(xs) + 1, max(ys) + 1, max(zs) + 1),
        )

    def restricted_to(self, box: BoundingBox) -> "Grid":
        """Return a copy holding only the blocks inside ``box``."""

        inside = {p: s for p, s in self._blocks.items() if box.contains(p)}
        return Grid(inside, copy.deepcopy(self._entities), copy.deepcopy(self.source))

    def copy(self) -> "Grid":
        """Copy block and entity maps; block states are shared, entities are not."""

        clone = Grid(source=copy.deepcopy(self.source))
        clone._blocks = dict(self._blocks)
        clone._entities = copy.deepcopy(self._entities)
        return clone


__all__ = [
    "BlockEntity",
    "BoundingBox",
    "EMPTY_BOX",
    "Grid",
    "Position",
    "SchematicMetadata",
]
