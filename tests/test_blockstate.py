from __future__ import annotations

import pytest

from schemrom.blockstate import (
    AIR,
    BlockState,
    BlockStateRegistry,
    format_state,
    parse_state,
    with_identifier,
)
from schemrom.errors import MalformedProperty


def test_parse_plain_identifier() -> None:
    state = parse_state("minecraft:stone")

    assert state.identifier == "minecraft:stone"
    assert dict(state.properties) == {}


def test_parse_properties() -> None:
    state = parse_state("minecraft:soul_wall_torch[facing=east]")

    assert state.identifier == "minecraft:soul_wall_torch"
    assert dict(state.properties) == {"facing": "east"}


def test_property_order_does_not_affect_equality() -> None:
    first = parse_state("minecraft:repeater[delay=2,facing=north,locked=false]")
    second = parse_state("minecraft:repeater[locked=false,facing=north,delay=2]")

    assert first == second
    assert hash(first) == hash(second)


def test_value_may_contain_equals_sign() -> None:
    state = parse_state("mod:block[expr=a=b]")

    assert dict(state.properties) == {"expr": "a=b"}


def test_entry_without_equals_is_rejected() -> None:
    with pytest.raises(MalformedProperty) as excinfo:
        parse_state("minecraft:repeater[facing=north,delay]")

    assert excinfo.value.entry == "delay"


def test_empty_property_list_is_rejected() -> None:
    with pytest.raises(MalformedProperty):
        parse_state("minecraft:stone[]")


@pytest.mark.parametrize(
    "state",
    [
        BlockState("minecraft:air"),
        BlockState("minecraft:redstone_wall_torch", {"facing": "west", "lit": "true"}),
        BlockState("minecraft:comparator", {"facing": "south", "mode": "subtract", "powered": "false"}),
    ],
)
def test_format_then_parse_returns_equal_state(state: BlockState) -> None:
    assert parse_state(format_state(state)) == state


def test_format_is_identifier_only_without_properties() -> None:
    assert format_state(AIR) == "minecraft:air"
    assert str(BlockState("minecraft:lever", {"powered": "true"})) == "minecraft:lever[powered=true]"


def test_with_identifier_keeps_properties() -> None:
    inert = BlockState("minecraft:soul_wall_torch", {"facing": "east"})

    active = with_identifier(inert, "minecraft:redstone_wall_torch")

    assert active.identifier == "minecraft:redstone_wall_torch"
    assert active.properties == inert.properties
    assert inert.identifier == "minecraft:soul_wall_torch"


def test_properties_are_read_only() -> None:
    state = BlockState("minecraft:lever", {"powered": "true"})

    with pytest.raises(TypeError):
        state.properties["powered"] = "false"  # type: ignore[index]


def test_source_mapping_is_copied() -> None:
    props = {"facing": "east"}
    state = BlockState("minecraft:soul_wall_torch", props)
    props["facing"] = "west"

    assert state.properties["facing"] == "east"


def test_air_detection_requires_plain_air() -> None:
    assert AIR.is_air
    assert not BlockState("minecraft:cave_air").is_air


def test_registry_shares_equal_states() -> None:
    registry = BlockStateRegistry()

    first = registry.parse("minecraft:repeater[delay=1,facing=north]")
    second = registry.parse("minecraft:repeater[facing=north,delay=1]")

    assert first is second
    assert registry.parse("minecraft:air") is registry.intern(AIR)
    assert len(registry) == 2


def test_registry_lookup_by_text() -> None:
    registry = BlockStateRegistry()
    state = registry.parse("minecraft:stone")

    assert registry.lookup("minecraft:stone") is state
    assert registry.lookup("minecraft:dirt") is None
    assert state in registry
