"""Exception hierarchy shared by the schematic codec and the ROM tooling."""

from __future__ import annotations

from typing import Optional


class SchemRomError(Exception):
    """Base class for every failure raised by :mod:`schemrom`."""


class MalformedProperty(SchemRomError, ValueError):
    """Raised when a block-state property entry lacks an ``=`` separator."""

    def __init__(self, entry: str, text: str) -> None:
        super().__init__(f"property entry {entry!r} in {text!r} has no '='")
        self.entry = entry
        self.text = text


class NbtDecodeError(SchemRomError):
    """Raised when a tag stream cannot be deserialised."""

    def __init__(self, message: str, offset: Optional[int] = None) -> None:
        if offset is not None:
            message = f"{message} (at byte {offset})"
        super().__init__(message)
        self.offset = offset


# Name used by the container format documentation.
BinaryDecodeError = NbtDecodeError


class NbtEncodeError(SchemRomError):
    """Raised when a value cannot be represented as a tag."""


class SchematicDecodeError(SchemRomError):
    """Base class for structural problems inside a decoded schematic record."""


class MissingField(SchematicDecodeError):
    def __init__(self, field: str) -> None:
        super().__init__(f"schematic is missing required field {field!r}")
        self.field = field


class InvalidPaletteIndex(SchematicDecodeError):
    def __init__(self, index: int, size: int) -> None:
        super().__init__(f"palette index {index} outside table of {size} entries")
        self.index = index
        self.size = size


class MissingPaletteEntry(SchematicDecodeError):
    def __init__(self, index: int) -> None:
        super().__init__(f"palette slot {index} was never populated")
        self.index = index


class VarintOverflow(SchematicDecodeError):
    def __init__(self, offset: int) -> None:
        super().__init__(
            f"varint starting at byte {offset} exceeds 5 bytes (data probably corrupted)"
        )
        self.offset = offset


class TruncatedBlockData(SchematicDecodeError):
    def __init__(self, offset: int) -> None:
        super().__init__(f"block data ends inside a varint starting at byte {offset}")
        self.offset = offset


class RomLayoutError(SchemRomError):
    """Base class for marker layouts that do not form a 128x16 ROM."""


class MalformedLayout(RomLayoutError):
    """Raised when marker counts or groupings deviate from 128 lines of 16 bits."""


class AmbiguousLayout(RomLayoutError):
    """Raised when no remaining line satisfies the ordering predicate."""

    def __init__(self, slot: int, threshold: Optional[int] = None) -> None:
        if threshold is None:
            message = f"no unplaced line left for slot {slot}"
        else:
            message = f"no unplaced line with z > {threshold} left for slot {slot}"
        super().__init__(message)
        self.slot = slot
        self.threshold = threshold


class InvalidProgram(SchemRomError, ValueError):
    """Raised for oversized programs, out-of-range words and assembler errors."""

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)
        self.line = line


class TransportError(SchemRomError, RuntimeError):
    """Raised when fetching or publishing a schematic fails."""

    def __init__(
        self, message: str, *, returncode: Optional[int] = None, stderr: str = ""
    ) -> None:
        detail = f"{message}: {stderr.strip()}" if stderr.strip() else message
        super().__init__(detail)
        self.returncode = returncode
        self.stderr = stderr


class ConfigError(SchemRomError, ValueError):
    """Raised when a pipeline configuration file fails validation."""


__all__ = [
    "AmbiguousLayout",
    "BinaryDecodeError",
    "ConfigError",
    "InvalidPaletteIndex",
    "InvalidProgram",
    "MalformedLayout",
    "MalformedProperty",
    "MissingField",
    "MissingPaletteEntry",
    "NbtDecodeError",
    "NbtEncodeError",
    "RomLayoutError",
    "SchemRomError",
    "SchematicDecodeError",
    "TransportError",
    "TruncatedBlockData",
    "VarintOverflow",
]
