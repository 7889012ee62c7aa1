"""Candidate pool construction.

For each entity type, collects the records eligible to match, choosing a
strategy by pool size:

- LOAD_ALL (pool size <= load_all_threshold): metadata is fetched for every
  record up front. Small pools make this cheap, and it allows one batched
  narrowing call per type.
- PHONETIC (pool size > load_all_threshold): records are indexed by their
  filename-derived names only (basename plus, for multi-word names, the first
  token). Metadata is fetched lazily, only for records that survive phonetic
  pre-filtering against a specific entity.

Metadata fetches always run in concurrent batches of bounded width.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from wikilinker.errors import RecordNotFoundError
from wikilinker.models.entity import Entity, EntityTypeConfig
from wikilinker.models.enums import PoolStrategy
from wikilinker.models.record import Record
from wikilinker.models.selection import Candidate
from wikilinker.resolution.phonetic import best_match_for_any
from wikilinker.store.base import RecordStore

logger = logging.getLogger(__name__)

# Pools up to this size have all metadata loaded eagerly.
LOAD_ALL_THRESHOLD = 150

# Concurrent metadata fetches per batch.
METADATA_BATCH_SIZE = 20


@dataclass
class CandidatePool:
    """Records eligible to match one entity type.

    Built once per run and read-only afterwards.
    """

    type_config: EntityTypeConfig
    strategy: PoolStrategy
    records: list[Record]
    """Fully loaded records (LOAD_ALL) or filename-only stubs (PHONETIC)."""

    @property
    def entity_type(self) -> str:
        return self.type_config.type

    @property
    def size(self) -> int:
        return len(self.records)


def phonetic_candidates(entity: Entity, records: Iterable[Record]) -> list[Candidate]:
    """Records matching any of the entity's observed names, best match first."""
    signatures = entity.signatures
    scored: list[tuple[int, int, Candidate]] = []
    for record in records:
        match = best_match_for_any(signatures, record.phonetic_signatures)
        if match is not None:
            scored.append(
                (match.phonetic_distance, match.display_name_distance, Candidate(record, match))
            )
    scored.sort(key=lambda item: item[:2])
    return [candidate for _, _, candidate in scored]


class CandidatePoolBuilder:
    """Builds candidate pools and fetches record metadata in bounded batches.

    Usage:
        builder = CandidatePoolBuilder(store)
        pool = await builder.build(type_config)
        candidates = await builder.candidates_for(entity, pool, cache)
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        load_all_threshold: int = LOAD_ALL_THRESHOLD,
        batch_size: int = METADATA_BATCH_SIZE,
    ) -> None:
        """Initialize the builder.

        Args:
            store: Record store to enumerate and read.
            load_all_threshold: Largest pool that is loaded eagerly.
            batch_size: Width of each concurrent metadata fetch batch.
        """
        if batch_size < 1:
            msg = f"batch_size must be at least 1, got {batch_size}"
            raise ValueError(msg)
        self._store = store
        self._load_all_threshold = load_all_threshold
        self._batch_size = batch_size

    async def enumerate(self, type_config: EntityTypeConfig) -> list[str]:
        """All record paths matching the type's globs, deduplicated in order."""
        paths: dict[str, None] = {}
        for pattern in type_config.files:
            for path in await self._store.list_paths(pattern):
                paths.setdefault(path)
        return list(paths)

    async def build(self, type_config: EntityTypeConfig) -> CandidatePool:
        paths = await self.enumerate(type_config)

        if len(paths) <= self._load_all_threshold:
            records = await self.fetch_records(paths)
            strategy = PoolStrategy.LOAD_ALL
        else:
            records = [Record.from_path(path, index_first_token=True) for path in paths]
            strategy = PoolStrategy.PHONETIC

        logger.info(
            "Candidate pool for %r: %d records (%s)",
            type_config.type,
            len(records),
            strategy.value,
        )
        return CandidatePool(type_config=type_config, strategy=strategy, records=records)

    async def fetch_records(
        self,
        paths: list[str],
        cache: dict[str, Record] | None = None,
    ) -> list[Record]:
        """Fetch metadata for ``paths`` in concurrent batches of ``batch_size``.

        Records already in ``cache`` are not refetched; fetched records are
        added to it. Paths that no longer exist are skipped.
        """
        cache = cache if cache is not None else {}
        missing = [path for path in dict.fromkeys(paths) if path not in cache]

        for start in range(0, len(missing), self._batch_size):
            batch = missing[start : start + self._batch_size]
            fetched = await asyncio.gather(*(self._fetch_one(path) for path in batch))
            for record in fetched:
                if record is not None:
                    cache[record.path] = record

        return [cache[path] for path in paths if path in cache]

    async def _fetch_one(self, path: str) -> Record | None:
        try:
            metadata = await self._store.read_metadata(path)
        except RecordNotFoundError:
            logger.warning("Record %s disappeared before its metadata was read", path)
            return None
        return Record.from_metadata(path, metadata)

    async def candidates_for(
        self,
        entity: Entity,
        pool: CandidatePool,
        cache: dict[str, Record] | None = None,
    ) -> list[Candidate]:
        """Phonetic candidates for ``entity`` with metadata loaded.

        For PHONETIC pools, survivors of the filename-only pre-filter are
        fetched and re-scored against their full set of names.
        """
        if pool.strategy is PoolStrategy.LOAD_ALL:
            return phonetic_candidates(entity, pool.records)

        survivors = phonetic_candidates(entity, pool.records)
        if not survivors:
            return []
        loaded = await self.fetch_records([c.record.path for c in survivors], cache)
        return phonetic_candidates(entity, loaded)
