"""Markdown-vault record store.

A vault is a directory of ``.md`` notes. Record metadata lives in YAML
frontmatter; internal references are ``[[Target]]`` or
``[[Target|Display]]`` links.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from wikilinker.errors import MetadataParseError, RecordNotFoundError
from wikilinker.extraction.markup import WIKILINK_PATTERN
from wikilinker.store.base import Backlink, MetadataMutator
from wikilinker.utils.text import split_frontmatter

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


class VaultStore:
    """RecordStore over a directory of markdown notes.

    File I/O runs in worker threads so batched metadata fetches overlap.
    Metadata writes are read-modify-write under a per-path lock.
    """

    def __init__(self, root: Path, *, last_modified_field: str = "date_modified") -> None:
        self._root = root
        self._last_modified_field = last_modified_field
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        full = self._root / path
        if not full.is_file():
            raise RecordNotFoundError(path)
        return full

    def _relative(self, full: Path) -> str:
        return full.relative_to(self._root).as_posix()

    # ── Enumeration ──────────────────────────────────────────────────────────

    async def list_paths(self, pattern: str) -> list[str]:
        return await asyncio.to_thread(self._list_paths_sync, pattern)

    def _list_paths_sync(self, pattern: str) -> list[str]:
        return sorted(
            self._relative(p)
            for p in self._root.glob(pattern)
            if p.is_file() and p.suffix == MARKDOWN_SUFFIX
        )

    # ── Reading ──────────────────────────────────────────────────────────────

    async def read_text(self, path: str) -> str:
        full = self._resolve(path)
        return await asyncio.to_thread(full.read_text, "utf-8")

    async def read_metadata(self, path: str) -> dict[str, Any]:
        content = await self.read_text(path)
        return _parse_frontmatter(content, path)

    async def last_modified(self, path: str) -> datetime:
        full = self._resolve(path)
        metadata = await self.read_metadata(path)
        explicit = _coerce_datetime(metadata.get(self._last_modified_field))
        if explicit is not None:
            return explicit
        stat = await asyncio.to_thread(full.stat)
        return datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)

    async def scan_links(self) -> list[Backlink]:
        return await asyncio.to_thread(self._scan_links_sync)

    def _scan_links_sync(self) -> list[Backlink]:
        links: list[Backlink] = []
        for full in sorted(self._root.rglob(f"*{MARKDOWN_SUFFIX}")):
            if not full.is_file():
                continue
            source = self._relative(full)
            try:
                content = full.read_text("utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable note %s: %s", source, e)
                continue
            for line_no, line in enumerate(content.split("\n")):
                for match in WIKILINK_PATTERN.finditer(line):
                    links.append(
                        Backlink(
                            source_path=source,
                            line=line_no,
                            col=match.start(),
                            original=match.group(0),
                            target=match.group(1).strip(),
                            display_text=match.group(2).strip() if match.group(2) else None,
                        )
                    )
        return links

    # ── Writing ──────────────────────────────────────────────────────────────

    async def update_metadata(self, path: str, mutate: MetadataMutator) -> dict[str, Any]:
        async with self._locks[path]:
            content = await self.read_text(path)
            metadata = _parse_frontmatter(content, path, strict=True)
            _, body = split_frontmatter(content)
            mutate(metadata)
            new_content = _render(metadata, body)
            full = self._resolve(path)
            await asyncio.to_thread(full.write_text, new_content, "utf-8")
            return metadata

    async def create_record(self, folder: str, basename: str, metadata: dict[str, Any]) -> str:
        path = f"{folder}/{basename}{MARKDOWN_SUFFIX}" if folder else f"{basename}{MARKDOWN_SUFFIX}"
        async with self._locks[path]:
            full = self._root / path
            if full.exists():
                logger.warning("Record %s already exists; linking to it as-is", path)
                return path
            await asyncio.to_thread(full.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(full.write_text, _render(metadata, "\n"), "utf-8")
            logger.info("Created record %s", path)
            return path


def _parse_frontmatter(content: str, path: str, *, strict: bool = False) -> dict[str, Any]:
    """Frontmatter as a dict.

    Unparseable or non-mapping frontmatter reads as empty, unless ``strict``,
    in which case MetadataParseError is raised so a rewrite cannot drop it.
    """
    raw, _ = split_frontmatter(content)
    if raw is None:
        return {}
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        if strict:
            raise MetadataParseError(path, str(e)) from e
        logger.warning("Unparseable frontmatter in %s: %s", path, e)
        return {}
    if isinstance(data, dict):
        return data
    if strict and data is not None:
        raise MetadataParseError(path, f"expected a mapping, got {type(data).__name__}")
    return {}


def _render(metadata: dict[str, Any], body: str) -> str:
    if not metadata:
        return body
    dumped = yaml.safe_dump(metadata, sort_keys=False, allow_unicode=True)
    return f"---\n{dumped}---\n{body}"


def _coerce_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
