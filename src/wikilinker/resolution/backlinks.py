"""Backlink and recency index.

Derives the disambiguation signals for a record from the links that point
at it:

- popularity: total number of backlinks
- recency: days since the newest edit of any note referencing the record
  (None when the record was never referenced, which ranks it last)
- sample contexts: a recency-biased sample of prior mentions, redacted

The index is built once per resolution run from a single scan of the store.
Source timestamps and texts are cached for the lifetime of the index only.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone

from wikilinker.errors import RecordNotFoundError
from wikilinker.extraction.redaction import vault_context
from wikilinker.models.entity import Occurrence
from wikilinker.models.record import Record
from wikilinker.store.base import Backlink, RecordStore
from wikilinker.utils.sampling import DEFAULT_BIAS_STRENGTH, biased_sample
from wikilinker.utils.text import find_nearest_heading

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 3


def link_key(target: str) -> str:
    """Normalize a link target to the record name it refers to."""
    name = target.strip().rsplit("/", 1)[-1]
    if name.lower().endswith(".md"):
        name = name[:-3]
    return name.casefold()


@dataclass(frozen=True)
class BacklinkSignals:
    """Popularity and recency of one record."""

    count: int
    days_since_last_reference: int | None
    samples: list[Occurrence]


class BacklinkIndex:
    """Backlinks grouped by the record name they target.

    Usage:
        index = await BacklinkIndex.build(store)
        signals = await index.signals(record)
    """

    def __init__(
        self,
        store: RecordStore,
        links: list[Backlink],
        *,
        now: datetime | None = None,
    ) -> None:
        self._store = store
        self._now = now or datetime.now(timezone.utc)
        self._by_target: defaultdict[str, list[Backlink]] = defaultdict(list)
        for link in links:
            self._by_target[link_key(link.target)].append(link)

        self._modified: dict[str, datetime | None] = {}
        self._texts: dict[str, list[str] | None] = {}

    @classmethod
    async def build(cls, store: RecordStore, *, now: datetime | None = None) -> BacklinkIndex:
        links = await store.scan_links()
        logger.debug("Indexed %d links", len(links))
        return cls(store, links, now=now)

    def backlinks_for(self, record: Record) -> list[Backlink]:
        """Links pointing at ``record``, excluding self-references."""
        return [
            link
            for link in self._by_target.get(link_key(record.basename), [])
            if link.source_path != record.path
        ]

    def count(self, record: Record) -> int:
        return len(self.backlinks_for(record))

    async def _source_modified(self, source_path: str) -> datetime | None:
        if source_path not in self._modified:
            try:
                self._modified[source_path] = await self._store.last_modified(source_path)
            except RecordNotFoundError:
                logger.warning("Backlink source %s no longer exists", source_path)
                self._modified[source_path] = None
        return self._modified[source_path]

    async def _source_lines(self, source_path: str) -> list[str] | None:
        if source_path not in self._texts:
            try:
                text = await self._store.read_text(source_path)
            except RecordNotFoundError:
                logger.warning("Backlink source %s no longer exists", source_path)
                self._texts[source_path] = None
            else:
                self._texts[source_path] = text.split("\n")
        return self._texts[source_path]

    async def newest_first(self, record: Record) -> list[tuple[Backlink, datetime]]:
        """Backlinks with their source's last edit time, newest first.

        Links whose source has disappeared are dropped.
        """
        links = self.backlinks_for(record)
        times = await asyncio.gather(*(self._source_modified(link.source_path) for link in links))
        dated = [(link, when) for link, when in zip(links, times) if when is not None]
        dated.sort(key=lambda pair: pair[1], reverse=True)
        return dated

    async def days_since_last_reference(self, record: Record) -> int | None:
        """Whole days since the newest referencing edit; None if never referenced."""
        dated = await self.newest_first(record)
        if not dated:
            return None
        return max(0, (self._now - dated[0][1]).days)

    async def sample_occurrences(
        self,
        record: Record,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        bias_strength: float = DEFAULT_BIAS_STRENGTH,
        rng: random.Random | None = None,
    ) -> list[Occurrence]:
        """Recency-biased sample of redacted prior mentions of ``record``."""
        dated = await self.newest_first(record)
        picked = biased_sample([link for link, _ in dated], sample_size, bias_strength, rng)

        samples: list[Occurrence] = []
        for link in picked:
            lines = await self._source_lines(link.source_path)
            if lines is None or link.line >= len(lines):
                continue
            samples.append(
                Occurrence(
                    display_name=link.display_name,
                    sentence=vault_context(lines[link.line], link.col),
                    header=find_nearest_heading(lines, link.line),
                    line=link.line,
                    col=link.col,
                )
            )
        return samples

    async def signals(
        self,
        record: Record,
        *,
        sample_size: int = DEFAULT_SAMPLE_SIZE,
        bias_strength: float = DEFAULT_BIAS_STRENGTH,
        rng: random.Random | None = None,
    ) -> BacklinkSignals:
        return BacklinkSignals(
            count=self.count(record),
            days_since_last_reference=await self.days_since_last_reference(record),
            samples=await self.sample_occurrences(record, sample_size, bias_strength, rng),
        )
