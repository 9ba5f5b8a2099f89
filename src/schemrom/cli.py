"""Command-line tools for programming schematic ROMs."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable, Dict, List, Sequence

from . import pipeline, schematic
from .config import PipelineConfig, load_pipeline_config
from .errors import ConfigError, SchemRomError
from .instruction import assemble
from .rom_layout import MarkerConfig

LOGGER = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

CommandFunc = Callable[[argparse.Namespace], int]


def _base_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=LOG_LEVELS,
        help="Logging verbosity (default: INFO)",
    )
    return parser


def _add_program_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="TOML file with [markers], [remote] and [program] tables",
    )
    parser.add_argument(
        "--program",
        type=Path,
        default=None,
        help="Assembly source to imprint (overrides the configured program)",
    )


def _load_config(path: Path | None) -> PipelineConfig:
    return load_pipeline_config(path) if path is not None else PipelineConfig()


def _resolve_program(args: argparse.Namespace, config: PipelineConfig) -> List[int]:
    if args.program is not None:
        return assemble(args.program.read_text(encoding="utf-8"))
    return config.program()


def _resolve_markers(args: argparse.Namespace, config: PipelineConfig) -> MarkerConfig:
    inert = getattr(args, "inert", None) or config.markers.inert
    active = getattr(args, "active", None) or config.markers.active
    try:
        return MarkerConfig(inert=inert, active=active)
    except ValueError as exc:
        raise ConfigError(f"markers: {exc}") from exc


def _imprint_parser() -> argparse.ArgumentParser:
    parser = _base_parser("Imprint a program onto a local schematic file.")
    parser.add_argument("input", type=Path, help="Schematic to read")
    parser.add_argument("output", type=Path, help="Where to write the programmed schematic")
    _add_program_options(parser)
    parser.add_argument("--inert", default=None, help="Inert marker block id")
    parser.add_argument("--active", default=None, help="Active marker block id")
    return parser


def _run_imprint(args: argparse.Namespace) -> int:
    config = _load_config(args.config)
    program = _resolve_program(args, config)
    markers = _resolve_markers(args, config)
    _, encoded = pipeline.imprint_bytes(args.input.read_bytes(), program, markers)
    args.output.write_bytes(encoded)
    LOGGER.info("wrote %s (%d bytes)", args.output, len(encoded))
    return 0


def _remote_parser() -> argparse.ArgumentParser:
    parser = _base_parser("Fetch a schematic from the server, program it and upload it.")
    parser.add_argument("source", help="Remote schematic name to fetch (no extension)")
    parser.add_argument("target", help="Remote schematic name to publish as")
    _add_program_options(parser)
    return parser


def _run_remote(args: argparse.Namespace) -> int:
    config = _load_config(args.config)
    remote = config.require_remote()
    program = _resolve_program(args, config)
    pipeline.run(config, remote.transfer(), args.source, args.target, program)
    return 0


def _inspect_parser() -> argparse.ArgumentParser:
    parser = _base_parser("Summarise a schematic file and its ROM marker layout.")
    parser.add_argument("input", type=Path, help="Schematic to inspect")
    parser.add_argument("--config", type=Path, default=None, help="TOML configuration file")
    parser.add_argument("--json", action="store_true", help="Emit a JSON report")
    return parser


def build_inspect_report(grid_path: Path, markers: MarkerConfig) -> Dict[str, object]:
    grid = schematic.read_schematic(grid_path)
    box = grid.bounding_box()
    layout = pipeline.describe_layout(grid, markers)
    source = grid.source
    return {
        "path": str(grid_path),
        "declared_size": [source.width, source.height, source.length],
        "effective_size": list(box.size),
        "offset": list(source.offset),
        "data_version": source.data_version,
        "blocks": len(grid),
        "block_entities": grid.entity_count,
        "distinct_states": len({state for _, state in grid.iter_blocks()}),
        "markers": layout.marker_count,
        "bit_lines": layout.line_count,
        "rom_valid": layout.valid,
        "rom_problem": layout.problem,
    }


def _run_inspect(args: argparse.Namespace) -> int:
    config = _load_config(args.config)
    report = build_inspect_report(args.input, config.markers)
    if args.json:
        print(json.dumps(report, indent=2))
        return 0
    for key, value in report.items():
        print(f"{key}: {value}")
    return 0


def _assemble_parser() -> argparse.ArgumentParser:
    parser = _base_parser("Assemble a program and print its 16-bit words.")
    parser.add_argument("source", type=Path, help="Assembly source file")
    return parser


def _run_assemble(args: argparse.Namespace) -> int:
    words = assemble(args.source.read_text(encoding="utf-8"))
    for address, word in enumerate(words):
        print(f"{address:3d}: {word:016b} 0x{word:04x}")
    return 0


COMMANDS: Dict[str, tuple[Callable[[], argparse.ArgumentParser], CommandFunc]] = {
    "imprint": (_imprint_parser, _run_imprint),
    "remote": (_remote_parser, _run_remote),
    "inspect": (_inspect_parser, _run_inspect),
    "assemble": (_assemble_parser, _run_assemble),
}


def _print_usage() -> None:
    print("Usage: schemrom <command> [args...]")
    print("Available commands:")
    for name in sorted(COMMANDS):
        print(f"  {name}")


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or args[0] in {"-h", "--help", "help"}:
        _print_usage()
        return 0

    command = args[0]
    entry = COMMANDS.get(command)
    if entry is None:
        print(f"Unknown command: {command}")
        _print_usage()
        return 1

    build_parser, handler = entry
    namespace = build_parser().parse_args(args[1:])
    logging.basicConfig(level=getattr(logging, namespace.log_level))

    try:
        return handler(namespace)
    except (SchemRomError, OSError) as exc:
        LOGGER.error("%s failed: %s", command, exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
