"""Top-level auto-linking engine.

A run has two halves separated by human review:

1. ``prepare``: tag the text, group mentions into entities, resolve them.
   Returns a PendingReview holding selections sorted least confident first.
2. ``complete``: apply the reviewer's outcome. Accepting creates any new
   records, rewrites the tagged text into linked text and writes learned
   misspellings back. Cancelling writes nothing.

``run`` composes both with an async reviewer callback.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from uuid import uuid4

from wikilinker.errors import ConfigError, ReviewCancelledError, WikilinkerError
from wikilinker.extraction.tagged_text import parse_entities, verify_preserved
from wikilinker.inference.services import SemanticServices
from wikilinker.linking.misspellings import MisspellingLearner
from wikilinker.linking.rewriter import LinkRewriter
from wikilinker.models.entity import EntityTypeConfig
from wikilinker.models.selection import Selection, sort_by_confidence
from wikilinker.resolution.candidate_pool import CandidatePool
from wikilinker.resolution.resolver import EntityResolver
from wikilinker.store.base import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class PendingReview:
    """Resolution results awaiting human review."""

    token: str
    original_text: str
    tagged_text: str
    entity_types: list[EntityTypeConfig]
    selections: list[Selection]
    """Pipeline choices, least confident first."""

    pools: dict[str, CandidatePool]
    """Candidate pool per type, for manual picks."""


@dataclass(frozen=True)
class ReviewOutcome:
    """What the reviewer decided: finalized selections, or cancellation.

    Cancellation is distinct from accepting an empty or unchanged list.
    """

    selections: list[Selection] | None

    @classmethod
    def accept(cls, selections: list[Selection]) -> ReviewOutcome:
        return cls(selections=list(selections))

    @classmethod
    def cancel(cls) -> ReviewOutcome:
        return cls(selections=None)

    @property
    def cancelled(self) -> bool:
        return self.selections is None


@dataclass
class LinkResult:
    """Linked text plus the durable changes made to the store."""

    text: str
    selections: list[Selection]
    created_records: dict[str, str] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    """New record basename -> path."""

    misspellings_written: dict[str, list[str]] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]
    """Record path -> variants appended to its misspellings."""


Reviewer = Callable[[PendingReview], Awaitable[ReviewOutcome]]


async def accept_all(review: PendingReview) -> ReviewOutcome:
    """Reviewer that accepts the pipeline's selections unchanged."""
    return ReviewOutcome.accept(review.selections)


def _restore_outer_whitespace(original: str, tagged: str) -> str:
    stripped = original.strip()
    if not stripped:
        return original
    lead = original[: original.index(stripped)]
    trail = original[len(lead) + len(stripped) :]
    return lead + tagged.strip() + trail


class AutoLinkEngine:
    """Tags, resolves and links entity mentions in a document.

    Usage:
        engine = AutoLinkEngine(store, services)
        review = await engine.prepare(text, entity_types)
        result = await engine.complete(review, ReviewOutcome.accept(review.selections))
    """

    def __init__(
        self,
        store: RecordStore,
        services: SemanticServices,
        *,
        resolver: EntityResolver | None = None,
    ) -> None:
        self._store = store
        self._services = services
        self._resolver = resolver or EntityResolver(store, services)
        self._pending: dict[str, PendingReview] = {}

    async def prepare(
        self,
        text: str,
        entity_types: list[EntityTypeConfig],
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> PendingReview:
        """Tag and resolve ``text``; nothing is written to the store.

        The returned review stays pending until passed to ``complete`` or
        ``discard``.

        Raises:
            ConfigError: If no entity types are configured.
            TaggingError: If tagging failed or altered the text.
            ResolutionCancelledError: If ``cancel_event`` was set during resolution.
        """
        if not entity_types:
            raise ConfigError("At least one entity type must be configured")

        tagged = await self._services.tag(text, entity_types)
        verify_preserved(text, tagged)
        tagged = _restore_outer_whitespace(text, tagged)

        entities = parse_entities(tagged, default_type=entity_types[0].type)
        logger.info("Tagged %d entities", len(entities))

        result = await self._resolver.resolve(entities, entity_types, cancel_event=cancel_event)

        review = PendingReview(
            token=uuid4().hex,
            original_text=text,
            tagged_text=tagged,
            entity_types=list(entity_types),
            selections=sort_by_confidence(result.selections),
            pools=result.pools,
        )
        self._pending[review.token] = review
        return review

    def discard(self, review: PendingReview) -> bool:
        """Drop a prepared review without applying it.

        Every prepared review is held until it is completed or discarded.

        Returns:
            True if the review was still pending.
        """
        discarded = self._pending.pop(review.token, None) is not None
        if discarded:
            logger.info("Review %s discarded; nothing written", review.token)
        return discarded

    async def complete(self, review: PendingReview, outcome: ReviewOutcome) -> LinkResult:
        """Apply the review outcome.

        Raises:
            WikilinkerError: If the review token is unknown or already completed.
            ReviewCancelledError: If the reviewer cancelled; nothing is written.
        """
        pending = self._pending.pop(review.token, None)
        if pending is None:
            msg = f"Unknown or already completed review {review.token!r}"
            raise WikilinkerError(msg)

        if outcome.selections is None:
            logger.info("Review %s cancelled; nothing written", review.token)
            raise ReviewCancelledError("Review cancelled")

        selections = outcome.selections
        learner = MisspellingLearner(self._store)
        created = await learner.create_new_records(selections, pending.entity_types)
        text = LinkRewriter(selections).rewrite(pending.tagged_text)
        written = await learner.learn(selections, created)

        logger.info(
            "Linked %d of %d entities; learned misspellings for %d records",
            sum(1 for s in selections if s.is_resolved),
            len(selections),
            len(written),
        )
        return LinkResult(
            text=text,
            selections=selections,
            created_records=created,
            misspellings_written=written,
        )

    async def run(
        self,
        text: str,
        entity_types: list[EntityTypeConfig],
        reviewer: Reviewer = accept_all,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> LinkResult:
        """Prepare, hand the result to ``reviewer``, then complete."""
        review = await self.prepare(text, entity_types, cancel_event=cancel_event)
        try:
            outcome = await reviewer(review)
        except BaseException:
            self.discard(review)
            raise
        return await self.complete(review, outcome)
