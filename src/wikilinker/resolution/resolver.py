"""Entity resolution pipeline.

Each entity runs through a fixed sequence of steps:

1. Full-name heuristic
   - If no occurrence carries a multi-token name, ask whether the text frames
     the entity as newly introduced. If so: unmatched.
2. Single-candidate fast path
   - Exactly one phonetic candidate that is a safe spelling variant (or that
     the same-name check confirms): likely.
3. Narrowing
   - LOAD_ALL pools: one batched call per type, covering every entity of that
     type against the whole pool, made the first time any entity needs it.
   - PHONETIC pools: one call per entity over its phonetic candidates.
   - 0 survivors: unmatched. 1 survivor: likely.
4. Disambiguation
   - 2+ survivors, enriched with popularity, recency, sampled prior contexts
     and a body preview. The verdict's confidence is used as-is; no pick
     means unmatched.

Failure policy:
- Boolean heuristics fail toward matching (not newly introduced, not the
  same name).
- Narrowing fails open: the entity's phonetic candidates all survive.
- Disambiguation fails closed: unmatched.
- A record that disappears mid-run makes that entity unmatched.

Entities resolve concurrently up to a bounded width. Cancellation is
checked before each entity starts; entities already running finish.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from wikilinker.config import settings
from wikilinker.errors import RecordNotFoundError, ResolutionCancelledError, ServiceError
from wikilinker.inference.schemas import (
    DisambiguationCandidate,
    DisambiguationRequest,
    NarrowingCandidate,
    NarrowingEntity,
    NarrowingRequest,
    OccurrenceContext,
)
from wikilinker.inference.services import SemanticServices
from wikilinker.models.entity import Entity, EntityTypeConfig
from wikilinker.models.enums import PoolStrategy, SelectionConfidence
from wikilinker.models.record import Record
from wikilinker.models.selection import Candidate, Selection, sort_by_confidence
from wikilinker.resolution.backlinks import BacklinkIndex
from wikilinker.resolution.candidate_pool import CandidatePool, CandidatePoolBuilder
from wikilinker.resolution.context import RunContext
from wikilinker.store.base import RecordStore
from wikilinker.utils.text import body_preview

logger = logging.getLogger(__name__)


def _occurrence_contexts(entity: Entity) -> list[OccurrenceContext]:
    return [OccurrenceContext(header=o.header, sentence=o.sentence) for o in entity.occurrences]


def _opaque_ids(records: Sequence[Record]) -> dict[str, Record]:
    """Label records c1, c2, ... so paths never reach an external service."""
    return {f"c{i}": record for i, record in enumerate(records, start=1)}


def _records_for_ids(ids: list[str] | None, by_id: dict[str, Record]) -> list[Record] | None:
    """Records named by a narrowing reply.

    None when the reply is unusable for this entity: the entity is missing
    from it, or every id it lists is unknown. An explicit empty list means
    no candidate survived.
    """
    if ids is None:
        return None
    records: list[Record] = []
    for candidate_id in dict.fromkeys(ids):
        record = by_id.get(candidate_id)
        if record is None:
            logger.warning("Narrowing returned unknown candidate id %r", candidate_id)
            continue
        records.append(record)
    if ids and not records:
        return None
    return records


@dataclass
class ResolutionResult:
    """Result of resolving every entity in a document."""

    selections: list[Selection]
    """One selection per entity, least confident first."""

    pools: dict[str, CandidatePool]
    """Candidate pool per entity type, for manual review."""


class EntityResolver:
    """Resolves tagged entities to store records.

    Usage:
        resolver = EntityResolver(store, services)
        result = await resolver.resolve(entities, entity_types)
    """

    def __init__(
        self,
        store: RecordStore,
        services: SemanticServices,
        *,
        pool_builder: CandidatePoolBuilder | None = None,
        max_concurrent_entities: int | None = None,
        sample_size: int | None = None,
        bias_strength: float | None = None,
        body_preview_chars: int | None = None,
        rng: random.Random | None = None,
        now: datetime | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            store: Record store.
            services: External semantic calls.
            pool_builder: Candidate pool builder (default: built over ``store``).
            max_concurrent_entities: Entities resolved at once (default from config).
            sample_size: Prior mentions sampled per candidate (default from config).
            bias_strength: Recency bias of that sample (default from config).
            body_preview_chars: Body preview length (default from config).
            rng: Random source for sampling.
            now: Reference time for recency signals.
        """
        self._store = store
        self._services = services
        self._pool_builder = pool_builder or CandidatePoolBuilder(store)
        self._max_concurrent = max_concurrent_entities or settings.max_concurrent_entities
        self._sample_size = (
            sample_size if sample_size is not None else settings.sample_occurrences
        )
        self._bias_strength = (
            bias_strength if bias_strength is not None else settings.sample_bias_strength
        )
        if self._bias_strength <= 0:
            msg = f"bias_strength must be positive, got {self._bias_strength}"
            raise ValueError(msg)
        self._body_preview_chars = (
            body_preview_chars if body_preview_chars is not None else settings.body_preview_chars
        )
        self._rng = rng
        self._now = now

    async def build_context(
        self,
        entities: list[Entity],
        entity_types: list[EntityTypeConfig],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> RunContext:
        """Build the candidate pools for a run."""
        entities_by_type: dict[str, list[Entity]] = {}
        for entity in entities:
            entities_by_type.setdefault(entity.type, []).append(entity)

        pools: dict[str, CandidatePool] = {}
        for type_config in entity_types:
            pools[type_config.type] = await self._pool_builder.build(type_config)

        return RunContext(
            store=self._store,
            pools=pools,
            entities_by_type=entities_by_type,
            cancel_event=cancel_event,
            now=self._now,
        )

    async def resolve(
        self,
        entities: list[Entity],
        entity_types: list[EntityTypeConfig],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ResolutionResult:
        """Resolve every entity.

        Raises:
            ResolutionCancelledError: If ``cancel_event`` was set during the run.
        """
        ctx = await self.build_context(entities, entity_types, cancel_event=cancel_event)
        logger.info("Resolving %d entities", len(entities))

        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def run_one(entity: Entity) -> Selection | None:
            async with semaphore:
                if ctx.cancelled:
                    return None
                return await self.resolve_entity(entity, ctx)

        results = await asyncio.gather(*(run_one(entity) for entity in entities))
        if ctx.cancelled:
            raise ResolutionCancelledError("Resolution run cancelled")

        selections = sort_by_confidence(r for r in results if r is not None)
        summary = Counter(s.confidence.value for s in selections)
        logger.info("Resolved %d entities: %s", len(selections), dict(summary))
        return ResolutionResult(selections=selections, pools=ctx.pools)

    async def resolve_entity(self, entity: Entity, ctx: RunContext) -> Selection:
        """Run the resolution steps for one entity."""
        pool = ctx.pools.get(entity.type)
        if pool is None:
            logger.warning(
                "No configured entity type %r for %r", entity.type, entity.canonical_name
            )
            return Selection(entity=entity)

        try:
            selection = await self._resolve_in_pool(entity, pool, ctx)
        except RecordNotFoundError as e:
            logger.warning("Giving up on %r: %s", entity.canonical_name, e)
            return Selection(entity=entity)

        logger.debug(
            "%r -> %s (%s)",
            entity.canonical_name,
            selection.target_name,
            selection.confidence.value,
        )
        return selection

    async def _resolve_in_pool(
        self,
        entity: Entity,
        pool: CandidatePool,
        ctx: RunContext,
    ) -> Selection:
        if not entity.has_full_name and await self._is_newly_introduced(entity):
            logger.debug("%r is newly introduced; not matching", entity.canonical_name)
            return Selection(entity=entity)

        candidates = await self._pool_builder.candidates_for(entity, pool, ctx.records)
        if len(candidates) == 1 and await self._confirms_single(candidates[0]):
            return Selection(
                entity=entity,
                candidates=candidates,
                selected_record=candidates[0].record,
                confidence=SelectionConfidence.LIKELY,
            )

        narrowed = await self._narrow(entity, pool, candidates, ctx)
        if not narrowed:
            return Selection(entity=entity, candidates=candidates)
        if len(narrowed) == 1:
            return Selection(
                entity=entity,
                candidates=narrowed,
                selected_record=narrowed[0].record,
                confidence=SelectionConfidence.LIKELY,
            )

        return await self._disambiguate(entity, narrowed, ctx)

    # ── Heuristics ───────────────────────────────────────────────────────────

    async def _is_newly_introduced(self, entity: Entity) -> bool:
        try:
            return await self._services.is_newly_introduced(_occurrence_contexts(entity))
        except ServiceError as e:
            logger.warning("Newly-introduced check failed for %r: %s", entity.canonical_name, e)
            return False

    async def _confirms_single(self, candidate: Candidate) -> bool:
        match = candidate.match
        if match is None:
            return False
        if match.is_safe_variant:
            return True
        try:
            return await self._services.is_same_name(
                match.target.display_name, match.candidate.display_name
            )
        except ServiceError as e:
            logger.warning("Same-name check failed: %s", e)
            return False

    # ── Narrowing ────────────────────────────────────────────────────────────

    async def _narrow(
        self,
        entity: Entity,
        pool: CandidatePool,
        candidates: list[Candidate],
        ctx: RunContext,
    ) -> list[Candidate]:
        if pool.strategy is PoolStrategy.LOAD_ALL:
            by_name = await self._narrow_type(pool, ctx)
            if by_name is None:
                return candidates
            records = by_name.get(entity.canonical_name)
            if records is None:
                return candidates
        else:
            if not candidates:
                return []
            records = await self._narrow_candidates(entity, candidates)
            if records is None:
                return candidates

        matches = {c.record.path: c.match for c in candidates}
        return [Candidate(record=r, match=matches.get(r.path)) for r in records]

    async def _narrow_type(
        self,
        pool: CandidatePool,
        ctx: RunContext,
    ) -> dict[str, list[Record] | None] | None:
        """One batched narrowing call for every entity of a LOAD_ALL type."""
        entity_type = pool.entity_type
        async with ctx.narrowing_locks[entity_type]:
            if entity_type in ctx.narrowed:
                return ctx.narrowed[entity_type]

            entities = ctx.entities_by_type.get(entity_type, [])
            result: dict[str, list[Record] | None] | None
            if not pool.records:
                result = {}
            else:
                by_id = _opaque_ids(pool.records)
                request = self._narrowing_request(entities, by_id)
                try:
                    verdict = await self._services.narrow(request)
                except ServiceError as e:
                    logger.warning(
                        "Batched narrowing failed for type %r; keeping phonetic candidates: %s",
                        entity_type,
                        e,
                    )
                    result = None
                else:
                    result = {
                        entity.canonical_name: _records_for_ids(
                            verdict.ids_for(entity.canonical_name), by_id
                        )
                        for entity in entities
                    }
                    unusable = [name for name, records in result.items() if records is None]
                    if unusable:
                        logger.warning(
                            "Unusable narrowing reply for %s; keeping phonetic candidates",
                            ", ".join(repr(name) for name in unusable),
                        )

            ctx.narrowed[entity_type] = result
            return result

    async def _narrow_candidates(
        self,
        entity: Entity,
        candidates: list[Candidate],
    ) -> list[Record] | None:
        """Narrowing call for one entity over its own phonetic candidates."""
        by_id = _opaque_ids([c.record for c in candidates])
        request = self._narrowing_request([entity], by_id)
        try:
            verdict = await self._services.narrow(request)
        except ServiceError as e:
            logger.warning(
                "Narrowing failed for %r; keeping all candidates: %s", entity.canonical_name, e
            )
            return None
        records = _records_for_ids(verdict.ids_for(entity.canonical_name), by_id)
        if records is None:
            logger.warning(
                "Unusable narrowing reply for %r; keeping all candidates", entity.canonical_name
            )
        return records

    def _narrowing_request(
        self,
        entities: list[Entity],
        by_id: dict[str, Record],
    ) -> NarrowingRequest:
        return NarrowingRequest(
            entities=[
                NarrowingEntity(entity_name=e.canonical_name, display_names=e.display_names)
                for e in entities
            ],
            candidates=[
                NarrowingCandidate(candidate_id=candidate_id, names=list(record.names))
                for candidate_id, record in by_id.items()
            ],
        )

    # ── Disambiguation ───────────────────────────────────────────────────────

    async def _disambiguate(
        self,
        entity: Entity,
        narrowed: list[Candidate],
        ctx: RunContext,
    ) -> Selection:
        index = await ctx.backlinks()
        by_id = dict(zip(_opaque_ids([c.record for c in narrowed]), narrowed))
        enriched = await asyncio.gather(
            *(self._enrich(cid, c.record, index) for cid, c in by_id.items())
        )
        request = DisambiguationRequest(
            occurrences=_occurrence_contexts(entity),
            candidates=list(enriched),
        )

        unmatched = Selection(entity=entity, candidates=narrowed)
        try:
            verdict = await self._services.disambiguate(request)
        except ServiceError as e:
            logger.warning("Disambiguation failed for %r: %s", entity.canonical_name, e)
            return unmatched

        if verdict.candidate_id is None:
            return unmatched
        chosen = by_id.get(verdict.candidate_id)
        if chosen is None:
            logger.warning(
                "Disambiguation returned unknown candidate id %r for %r",
                verdict.candidate_id,
                entity.canonical_name,
            )
            return unmatched

        return Selection(
            entity=entity,
            candidates=narrowed,
            selected_record=chosen.record,
            confidence=SelectionConfidence(verdict.confidence),
        )

    async def _enrich(
        self,
        candidate_id: str,
        record: Record,
        index: BacklinkIndex,
    ) -> DisambiguationCandidate:
        signals = await index.signals(
            record,
            sample_size=self._sample_size,
            bias_strength=self._bias_strength,
            rng=self._rng,
        )
        text = await self._store.read_text(record.path)
        return DisambiguationCandidate(
            candidate_id=candidate_id,
            popularity=signals.count,
            days_since_last_reference=signals.days_since_last_reference,
            body_preview=body_preview(text, self._body_preview_chars),
            sample_contexts=[
                OccurrenceContext(header=o.header, sentence=o.sentence) for o in signals.samples
            ],
        )
