"""Pydantic schemas for the external semantic calls.

Each call has an explicit request and verdict model. Verdicts are the
structured output the LLM must produce; a reply that does not validate is
rejected and the caller falls back (narrowing keeps every candidate,
disambiguation gives up).

Candidates are always identified by opaque ids ("c1", "c2", ...), never by
store path, so the model judges names and context rather than file names.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class OccurrenceContext(BaseModel):
    """A redacted mention: the mention itself is replaced by a placeholder."""

    header: str | None = Field(default=None, description="Nearest section heading, if any")
    sentence: str = Field(description="Context around the mention with the mention redacted")


# ── Narrowing ────────────────────────────────────────────────────────────────


class NarrowingEntity(BaseModel):
    entity_name: str = Field(description="Canonical name of the entity in this document")
    display_names: list[str] = Field(description="Every surface form observed for the entity")


class NarrowingCandidate(BaseModel):
    candidate_id: str = Field(description="Opaque candidate identifier")
    names: list[str] = Field(description="Known names: canonical name, aliases, misspellings")


class NarrowingRequest(BaseModel):
    """Many entities judged against one shared candidate list."""

    entities: list[NarrowingEntity]
    candidates: list[NarrowingCandidate]


class NarrowingResult(BaseModel):
    entity_name: str = Field(description="Canonical name of the entity, exactly as given")
    matching_candidate_ids: list[str] = Field(
        description="Ids of candidates whose names are plausible matches for this entity"
    )


class NarrowingVerdict(BaseModel):
    """Plausible name matches per entity."""

    results: list[NarrowingResult]

    def ids_for(self, entity_name: str) -> list[str] | None:
        """Candidate ids returned for an entity, or None if the entity is absent."""
        for result in self.results:
            if result.entity_name == entity_name:
                return result.matching_candidate_ids
        return None


# ── Disambiguation ───────────────────────────────────────────────────────────


class DisambiguationCandidate(BaseModel):
    """A narrowed candidate enriched with backlink-derived signals."""

    candidate_id: str = Field(description="Opaque candidate identifier")
    popularity: int = Field(description="Number of references to this candidate (higher is better)")
    days_since_last_reference: int | None = Field(
        default=None,
        description=(
            "Days since a note referencing this candidate was last edited (lower is better). "
            "null means never referenced."
        ),
    )
    body_preview: str = Field(default="", description="Start of the candidate's note")
    sample_contexts: list[OccurrenceContext] = Field(
        default_factory=list,
        description="Redacted contexts in which this candidate was referenced before",
    )


class DisambiguationRequest(BaseModel):
    occurrences: list[OccurrenceContext] = Field(
        description="Redacted contexts of the entity in the current document"
    )
    candidates: list[DisambiguationCandidate]


class DisambiguationVerdict(BaseModel):
    """The chosen candidate, or ``candidate_id=None`` for no confident match."""

    candidate_id: str | None = Field(
        default=None,
        description="Id of the best candidate, or null if no candidate is a confident match",
    )
    confidence: Literal["certain", "likely", "uncertain"] = Field(
        default="uncertain",
        description=(
            "certain: strong recent context and clear alignment; "
            "likely: good alignment; uncertain: a judgment call"
        ),
    )
    reasoning: str | None = Field(default=None, description="Brief explanation of the choice")


# ── Boolean heuristics ───────────────────────────────────────────────────────


class NewlyIntroducedVerdict(BaseModel):
    newly_introduced: bool = Field(
        description=(
            "True only if the text explicitly frames this as meeting or hearing of "
            "the person for the first time"
        )
    )


class SameNameVerdict(BaseModel):
    same_name: bool = Field(
        description="True if both strings are the same name written with a different spelling"
    )
