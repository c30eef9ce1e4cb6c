"""Dump record models."""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class Direction(StrEnum):
    """Which way a packet travelled, seen from the client."""

    IN = "in"
    OUT = "out"


@dataclass(frozen=True)
class RawRecord:
    """One dump file: filename metadata plus the untouched file bytes."""

    path: Path
    sequence: int
    direction: Direction
    type_discriminator: int | None
    type_name_fragment: str | None = None
    inner_type_name: str | None = None
    payload: bytes = field(default=b"", repr=False)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def display_type(self) -> str:
        """Best available type name for listings."""
        return self.inner_type_name or self.type_name_fragment or "unknown"
