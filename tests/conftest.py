"""Pytest configuration and shared ROM fixtures for the schemrom suite."""
from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
_root_str = str(_REPO_ROOT)
if _root_str not in sys.path:
    sys.path.insert(0, _root_str)

import sitecustomize  # noqa: F401  # Ensure src/ is on sys.path via sitecustomize hook.

from schemrom.blockstate import BlockState
from schemrom.grid import Grid, Position, SchematicMetadata

INERT_TORCH = BlockState("minecraft:soul_wall_torch", {"facing": "east"})
STONE = BlockState("minecraft:stone")
REPEATER = BlockState("minecraft:repeater", {"facing": "north", "delay": "2"})


def marker_position(word: int, bit: int) -> Position:
    """Position of ``bit`` in ROM word ``word`` for the fixture layout.

    Row ``r`` holds words ``16r..16r+15`` at ``y = 2r``; the word's column
    within the row is its z coordinate and bit ``b`` sits at ``x = b + 1``.
    """

    row, column = divmod(word, 16)
    return Position(bit + 1, 2 * row, column)


def build_rom_grid() -> Grid:
    grid = Grid(
        source=SchematicMetadata(
            width=17,
            length=16,
            height=16,
            offset=(-3, 0, 7),
            data_version=3465,
            metadata={"WEOffsetX": -3, "WEOffsetY": 0, "WEOffsetZ": 7},
        )
    )
    for word in range(128):
        for bit in range(16):
            grid.set_block(marker_position(word, bit), INERT_TORCH)
        row, column = divmod(word, 16)
        grid.set_block(Position(0, 2 * row, column), STONE)
        grid.set_block(Position(0, 2 * row + 1, column), REPEATER)
    return grid


@pytest.fixture
def rom_grid() -> Grid:
    return build_rom_grid()


@pytest.fixture
def rom_grid_factory() -> Callable[[], Grid]:
    return build_rom_grid
