"""Pipeline configuration loaded from TOML files."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional

import tomllib

from .errors import ConfigError, InvalidProgram
from .instruction import DEFAULT_PROGRAM_SOURCE, assemble
from .rom_layout import DEFAULT_ACTIVE_MARKER, DEFAULT_INERT_MARKER, MarkerConfig
from .transfer import ScpTransfer

VALID_PORT_RANGE = range(1, 65536)


@dataclass(frozen=True)
class RemoteConfig:
    """Location of the server's schematic directory."""

    host: str
    user: str
    schematic_dir: str
    port: int = 22
    extension: str = ".schem"

    def transfer(self) -> ScpTransfer:
        return ScpTransfer(
            host=self.host,
            user=self.user,
            schematic_dir=self.schematic_dir,
            port=self.port,
            extension=self.extension,
        )


@dataclass(frozen=True)
class PipelineConfig:
    """Everything a pipeline run needs besides the schematic itself."""

    markers: MarkerConfig = field(default_factory=MarkerConfig)
    remote: Optional[RemoteConfig] = None
    program_source: Optional[str] = None

    def require_remote(self) -> RemoteConfig:
        if self.remote is None:
            raise ConfigError("configuration has no [remote] table")
        return self.remote

    def program(self) -> List[int]:
        """Assemble the configured program, falling back to the default one."""

        source = self.program_source
        if source is None:
            source = DEFAULT_PROGRAM_SOURCE
        return assemble(source)


def load_pipeline_config(config_path: Path) -> PipelineConfig:
    """Parse and validate the pipeline configuration at ``config_path``."""

    try:
        with config_path.open("rb") as stream:
            data = tomllib.load(stream)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{config_path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"cannot read {config_path}: {exc.strerror}") from exc
    return parse_pipeline_config(data)


def parse_pipeline_config(data: Mapping[str, Any]) -> PipelineConfig:
    markers = _parse_markers(_table(data, "markers"))
    remote_table = _table(data, "remote")
    remote = _parse_remote(remote_table) if remote_table else None
    program_source = _parse_program(_table(data, "program"))
    return PipelineConfig(markers=markers, remote=remote, program_source=program_source)


def _table(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    table = data.get(name, {})
    if not isinstance(table, Mapping):
        raise ConfigError(f"[{name}] must be a table")
    return table


def _string(table: Mapping[str, Any], key: str, section: str, default: Optional[str] = None) -> str:
    value = table.get(key, default)
    if value is None:
        raise ConfigError(f"{section}.{key} is required")
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{section}.{key} must be a non-empty string")
    return value


def _parse_markers(table: Mapping[str, Any]) -> MarkerConfig:
    inert = _string(table, "inert", "markers", DEFAULT_INERT_MARKER)
    active = _string(table, "active", "markers", DEFAULT_ACTIVE_MARKER)
    try:
        return MarkerConfig(inert=inert, active=active)
    except ValueError as exc:
        raise ConfigError(f"markers: {exc}") from exc


def _parse_remote(table: Mapping[str, Any]) -> RemoteConfig:
    port = table.get("port", 22)
    if isinstance(port, bool) or not isinstance(port, int) or port not in VALID_PORT_RANGE:
        raise ConfigError(f"remote.port must be an integer in 1-65535, received {port!r}")
    extension = table.get("extension", ".schem")
    if not isinstance(extension, str):
        raise ConfigError("remote.extension must be a string")
    return RemoteConfig(
        host=_string(table, "host", "remote"),
        user=_string(table, "user", "remote"),
        schematic_dir=_string(table, "schematic_dir", "remote"),
        port=port,
        extension=extension,
    )


def _parse_program(table: Mapping[str, Any]) -> Optional[str]:
    source = table.get("source")
    if source is None:
        return None
    if not isinstance(source, str):
        raise ConfigError("program.source must be a string")
    try:
        assemble(source)
    except InvalidProgram as exc:
        raise ConfigError(f"program.source: {exc}") from exc
    return source


__all__ = [
    "PipelineConfig",
    "RemoteConfig",
    "load_pipeline_config",
    "parse_pipeline_config",
]
