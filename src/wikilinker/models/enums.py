"""Enumerations for the wikilinker data model."""

from __future__ import annotations

from enum import Enum


class SelectionConfidence(str, Enum):
    """How confident the pipeline is in its record choice for an entity.

    The members form a total order (unmatched < uncertain < likely < certain).
    The order drives both auto-accept decisions and human review order
    (least confident first).
    """

    UNMATCHED = "unmatched"  # No record found; entity may be new or too ambiguous
    UNCERTAIN = "uncertain"  # Judgment call among several surviving candidates
    LIKELY = "likely"  # A single candidate survived all filtering
    CERTAIN = "certain"  # Strong recent context and clear alignment

    @property
    def rank(self) -> int:
        """Position in the total order (0 = least confident)."""
        return CONFIDENCE_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SelectionConfidence):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, SelectionConfidence):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, SelectionConfidence):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, SelectionConfidence):
            return NotImplemented
        return self.rank >= other.rank


# Single review order used everywhere: least confident first.
CONFIDENCE_ORDER: tuple[SelectionConfidence, ...] = (
    SelectionConfidence.UNMATCHED,
    SelectionConfidence.UNCERTAIN,
    SelectionConfidence.LIKELY,
    SelectionConfidence.CERTAIN,
)


class PoolStrategy(str, Enum):
    """How a candidate pool was built for an entity type."""

    LOAD_ALL = "load_all"  # Metadata fetched eagerly for every record
    PHONETIC = "phonetic"  # Filename-only index, metadata fetched for survivors
