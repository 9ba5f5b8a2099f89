"""Block-state values and their canonical ``id[key=value,...]`` text form."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from .errors import MalformedProperty

AIR_ID = "minecraft:air"
STONE_ID = "minecraft:stone"


@dataclass(frozen=True, eq=False)
class BlockState:
    """Identifier plus an immutable property mapping.

    Equality and hashing ignore property order so two states parsed from
    differently ordered text compare equal.
    """

    identifier: str
    properties: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "properties", MappingProxyType(dict(self.properties))
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BlockState):
            return NotImplemented
        return (
            self.identifier == other.identifier
            and dict(self.properties) == dict(other.properties)
        )

    def __hash__(self) -> int:
        return hash((self.identifier, frozenset(self.properties.items())))

    def __str__(self) -> str:
        return format_state(self)

    def __repr__(self) -> str:
        return f"BlockState({format_state(self)!r})"

    @property
    def is_air(self) -> bool:
        return self.identifier == AIR_ID and not self.properties

    def with_identifier(self, identifier: str) -> "BlockState":
        """Return a copy carrying ``identifier`` and the same properties."""

        return BlockState(identifier, self.properties)

    @classmethod
    def parse(cls, text: str) -> "BlockState":
        return parse_state(text)


AIR = BlockState(AIR_ID)
STONE = BlockState(STONE_ID)


def parse_state(text: str) -> BlockState:
    """Parse ``identifier`` or ``identifier[key=value,...]``."""

    identifier, bracket, remainder = text.partition("[")
    if not bracket:
        return BlockState(text)

    if remainder.endswith("]"):
        remainder = remainder[:-1]

    properties: Dict[str, str] = {}
    for entry in remainder.split(","):
        key, equals, value = entry.partition("=")
        if not equals:
            raise MalformedProperty(entry, text)
        properties[key] = value
    return BlockState(identifier, properties)


def format_state(state: BlockState) -> str:
    """Render ``state`` in canonical text form."""

    if not state.properties:
        return state.identifier
    body = ",".join(f"{key}={value}" for key, value in state.properties.items())
    return f"{state.identifier}[{body}]"


def with_identifier(state: BlockState, identifier: str) -> BlockState:
    return state.with_identifier(identifier)


class BlockStateRegistry:
    """Interns block states so equal values share one instance.

    The decoder resolves every palette entry through a registry, which keeps
    grids built from large schematics from holding one object per cell.
    """

    def __init__(self) -> None:
        self._by_text: Dict[str, BlockState] = {}
        self._by_value: Dict[BlockState, BlockState] = {}
        self.intern(AIR)

    def __len__(self) -> int:
        return len(self._by_value)

    def __contains__(self, state: object) -> bool:
        return state in self._by_value

    def intern(self, state: BlockState) -> BlockState:
        existing = self._by_value.get(state)
        if existing is not None:
            return existing
        self._by_value[state] = state
        self._by_text[format_state(state)] = state
        return state

    def parse(self, text: str) -> BlockState:
        """Return the shared state for ``text``, parsing it on first use."""

        cached = self._by_text.get(text)
        if cached is not None:
            return cached
        state = self.intern(parse_state(text))
        self._by_text[text] = state
        return state

    def lookup(self, text: str) -> Optional[BlockState]:
        return self._by_text.get(text)


__all__ = [
    "AIR",
    "AIR_ID",
    "BlockState",
    "BlockStateRegistry",
    "STONE",
    "STONE_ID",
    "format_state",
    "parse_state",
    "with_identifier",
]
