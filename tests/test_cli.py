from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import marker_position
from schemrom import cli, schematic
from schemrom.grid import Grid
from schemrom.rom_layout import DEFAULT_ACTIVE_MARKER


@pytest.fixture
def rom_file(tmp_path: Path, rom_grid: Grid) -> Path:
    path = tmp_path / "rom.schem"
    schematic.write_schematic(rom_grid, path)
    return path


def _active_bits(grid: Grid, word: int) -> list[int]:
    # Imprinting clears the x=0 scaffolding, so decoded markers start at x=0.
    return [
        bit
        for bit in range(16)
        if grid.block_at(marker_position(word, bit)._replace(x=bit)).identifier
        == DEFAULT_ACTIVE_MARKER
    ]


def test_usage_without_command(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main([]) == 0

    output = capsys.readouterr().out
    assert "Usage: schemrom <command>" in output
    assert "imprint" in output


def test_unknown_command(capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["explode"]) == 1
    assert "Unknown command: explode" in capsys.readouterr().out


def test_assemble_prints_words(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "prog.asm"
    source.write_text("nop\njmp 3\n", encoding="utf-8")

    assert cli.main(["assemble", str(source)]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "  0: 1000000010001000 0x8088",
        "  1: 1010000000000011 0xa003",
    ]


def test_assemble_reports_bad_source(tmp_path: Path) -> None:
    source = tmp_path / "prog.asm"
    source.write_text("launch\n", encoding="utf-8")

    assert cli.main(["assemble", str(source)]) == 1


def test_imprint_writes_default_program(tmp_path: Path, rom_file: Path) -> None:
    output = tmp_path / "generated.schem"

    assert cli.main(["imprint", str(rom_file), str(output)]) == 0

    grid = schematic.read_schematic(output)
    assert _active_bits(grid, 0) == [3, 7, 15]
    assert _active_bits(grid, 4) == [13, 15]


def test_imprint_with_program_file(tmp_path: Path, rom_file: Path) -> None:
    program = tmp_path / "prog.asm"
    program.write_text("mov rin, ra\n", encoding="utf-8")
    output = tmp_path / "generated.schem"

    assert cli.main(["imprint", str(rom_file), str(output), "--program", str(program)]) == 0

    grid = schematic.read_schematic(output)
    assert _active_bits(grid, 0) == [4, 5, 7, 15]
    assert _active_bits(grid, 1) == []


def test_imprint_rejects_equal_markers(tmp_path: Path, rom_file: Path) -> None:
    output = tmp_path / "generated.schem"
    args = ["imprint", str(rom_file), str(output), "--active", "minecraft:soul_wall_torch"]

    assert cli.main(args) == 1
    assert not output.exists()


def test_imprint_reports_missing_input(tmp_path: Path) -> None:
    assert cli.main(["imprint", str(tmp_path / "absent.schem"), str(tmp_path / "out")]) == 1


def test_remote_requires_remote_table(tmp_path: Path) -> None:
    config = tmp_path / "schemrom.toml"
    config.write_text("[markers]\n", encoding="utf-8")

    assert cli.main(["remote", "rom-input", "generated", "--config", str(config)]) == 1


def test_inspect_json_report(rom_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["inspect", str(rom_file), "--json"]) == 0

    report = json.loads(capsys.readouterr().out)
    assert report["effective_size"] == [17, 16, 16]
    assert report["offset"] == [-3, 0, 7]
    assert report["data_version"] == 3465
    assert report["blocks"] == 128 * 18
    assert report["distinct_states"] == 3
    assert report["markers"] == 128 * 16
    assert report["bit_lines"] == 128
    assert report["rom_valid"] is True
    assert report["rom_problem"] is None


def test_inspect_text_report(rom_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert cli.main(["inspect", str(rom_file)]) == 0

    output = capsys.readouterr().out
    assert "rom_valid: True" in output
    assert "bit_lines: 128" in output
