"""Per-run resolution state.

Everything cached during a resolution run lives here and dies with the run:
candidate pools, fetched records, batched narrowing verdicts and the
backlink index. Nothing is shared across runs.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime

from wikilinker.models.entity import Entity
from wikilinker.models.record import Record
from wikilinker.resolution.backlinks import BacklinkIndex
from wikilinker.resolution.candidate_pool import CandidatePool
from wikilinker.store.base import RecordStore


@dataclass
class RunContext:
    """State scoped to one resolution run."""

    store: RecordStore
    pools: dict[str, CandidatePool]
    """Candidate pool per entity type."""

    entities_by_type: dict[str, list[Entity]]
    cancel_event: asyncio.Event | None = None

    records: dict[str, Record] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    """Records whose metadata has been fetched, by path."""

    narrowed: dict[str, dict[str, list[Record] | None] | None] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    """Batched narrowing verdict per type: canonical name -> surviving records.

    None when the batched call failed.
    """

    narrowing_locks: defaultdict[str, asyncio.Lock] = field(
        default_factory=lambda: defaultdict(asyncio.Lock)
    )

    now: datetime | None = None
    """Reference time for recency; defaults to the time the index is built."""

    _backlinks: BacklinkIndex | None = field(default=None, init=False)
    _backlinks_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    async def backlinks(self) -> BacklinkIndex:
        """The run's backlink index, built on first use."""
        async with self._backlinks_lock:
            if self._backlinks is None:
                self._backlinks = await BacklinkIndex.build(self.store, now=self.now)
            return self._backlinks
