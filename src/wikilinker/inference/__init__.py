"""External semantic calls: request/verdict schemas and the LLM implementation."""

from wikilinker.inference.schemas import (
    DisambiguationCandidate,
    DisambiguationRequest,
    DisambiguationVerdict,
    NarrowingCandidate,
    NarrowingEntity,
    NarrowingRequest,
    NarrowingResult,
    NarrowingVerdict,
    NewlyIntroducedVerdict,
    OccurrenceContext,
    SameNameVerdict,
)
from wikilinker.inference.services import LLMSemanticServices, SemanticServices

__all__ = [
    "DisambiguationCandidate",
    "DisambiguationRequest",
    "DisambiguationVerdict",
    "LLMSemanticServices",
    "NarrowingCandidate",
    "NarrowingEntity",
    "NarrowingRequest",
    "NarrowingResult",
    "NarrowingVerdict",
    "NewlyIntroducedVerdict",
    "OccurrenceContext",
    "SameNameVerdict",
    "SemanticServices",
]
