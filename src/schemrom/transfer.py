"""Fetch and publish schematic files on the game server."""

from __future__ import annotations

import logging
import shlex
import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Protocol, Sequence

from .errors import TransportError

LOGGER = logging.getLogger(__name__)

CommandRunner = Callable[..., "subprocess.CompletedProcess[bytes]"]


class SchematicTransfer(Protocol):
    """Blocking file transport used at the edges of a pipeline run."""

    def fetch(self, name: str) -> bytes:
        ...

    def publish(self, data: bytes, name: str) -> None:
        ...


@dataclass(frozen=True)
class ScpTransfer:
    """Copies schematics to and from a remote directory with ``scp``."""

    host: str
    user: str
    schematic_dir: str
    port: int = 22
    extension: str = ".schem"
    runner: CommandRunner = field(default=subprocess.run, compare=False, repr=False)

    def remote_path(self, name: str) -> str:
        return f"{self.schematic_dir.rstrip('/')}/{name}{self.extension}"

    def remote_target(self, name: str) -> str:
        return f"{self.user}@{self.host}:{self.remote_path(name)}"

    def fetch(self, name: str) -> bytes:
        with tempfile.TemporaryDirectory(prefix="schemrom-") as workdir:
            local = self._local_path(workdir)
            self._scp([self.remote_target(name), str(local)])
            try:
                return local.read_bytes()
            except OSError as exc:
                raise TransportError(
                    f"scp reported success but {local} could not be read: {exc.strerror}"
                ) from exc

    def publish(self, data: bytes, name: str) -> None:
        with tempfile.TemporaryDirectory(prefix="schemrom-") as workdir:
            local = self._local_path(workdir)
            try:
                local.write_bytes(data)
            except OSError as exc:
                raise TransportError(f"cannot stage {local}: {exc.strerror}") from exc
            self._scp([str(local), self.remote_target(name)])

    def _local_path(self, workdir: str) -> Path:
        # Remote names may contain directories; the staged copy never does.
        return Path(workdir) / f"schematic{self.extension}"

    def _scp(self, paths: Sequence[str]) -> None:
        command = ["scp", "-P", str(self.port), *paths]
        LOGGER.info("%s", shlex.join(command))
        try:
            result = self.runner(command, capture_output=True)
        except OSError as exc:
            raise TransportError(f"could not run scp: {exc}") from exc
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace") if result.stderr else ""
            raise TransportError(
                "scp unsuccessful", returncode=result.returncode, stderr=stderr
            )


@dataclass(frozen=True)
class LocalTransfer:
    """Same interface as :class:`ScpTransfer` backed by a local directory."""

    root: Path
    extension: str = ".schem"

    def path_for(self, name: str) -> Path:
        return Path(self.root) / f"{name}{self.extension}"

    def fetch(self, name: str) -> bytes:
        path = self.path_for(name)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise TransportError(f"cannot read {path}: {exc.strerror}") from exc

    def publish(self, data: bytes, name: str) -> None:
        path = self.path_for(name)
        try:
            path.write_bytes(data)
        except OSError as exc:
            raise TransportError(f"cannot write {path}: {exc.strerror}") from exc
        LOGGER.info("wrote %d bytes to %s", len(data), path)


__all__ = [
    "CommandRunner",
    "LocalTransfer",
    "SchematicTransfer",
    "ScpTransfer",
]
