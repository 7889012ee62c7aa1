"""Record store contract consumed by the resolution pipeline."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

MetadataMutator = Callable[[dict[str, Any]], None]


@dataclass(frozen=True)
class Backlink:
    """One reference to a record from another note."""

    source_path: str
    line: int
    col: int
    original: str
    """Exact link markup as written, e.g. ``[[Bob Smith|Bob]]``."""

    target: str
    display_text: str | None = None

    @property
    def display_name(self) -> str:
        return self.display_text or self.target


class RecordStore(Protocol):
    """Protocol for the document/record store.

    All methods are async: every store access is a suspension point.
    Methods taking a path raise RecordNotFoundError when it does not exist.
    """

    async def list_paths(self, pattern: str) -> list[str]:
        """Enumerate record paths matching a glob."""
        ...

    async def read_metadata(self, path: str) -> dict[str, Any]:
        """Read a record's metadata (frontmatter)."""
        ...

    async def update_metadata(self, path: str, mutate: MetadataMutator) -> dict[str, Any]:
        """Read-modify-write a record's metadata; returns the written mapping.

        Raises MetadataParseError instead of rewriting metadata it cannot parse.
        """
        ...

    async def read_text(self, path: str) -> str:
        """Read a record's full text."""
        ...

    async def scan_links(self) -> list[Backlink]:
        """Every internal link in the store, with its source and position."""
        ...

    async def last_modified(self, path: str) -> datetime:
        """Last edit time: explicit metadata field first, else filesystem mtime."""
        ...

    async def create_record(self, folder: str, basename: str, metadata: dict[str, Any]) -> str:
        """Create a record (or return the existing one); returns its path."""
        ...
