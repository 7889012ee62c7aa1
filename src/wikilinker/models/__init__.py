"""Domain models for wikilinker."""

from wikilinker.models.entity import Entity, EntityTypeConfig, Occurrence
from wikilinker.models.enums import CONFIDENCE_ORDER, PoolStrategy, SelectionConfidence
from wikilinker.models.record import Record, basename_from_path
from wikilinker.models.selection import Candidate, NewRecord, Selection, sort_by_confidence
from wikilinker.models.signature import PhoneticMatch, PhoneticSignature

__all__ = [
    "CONFIDENCE_ORDER",
    "Candidate",
    "Entity",
    "EntityTypeConfig",
    "NewRecord",
    "Occurrence",
    "PhoneticMatch",
    "PhoneticSignature",
    "PoolStrategy",
    "Record",
    "Selection",
    "SelectionConfidence",
    "basename_from_path",
    "sort_by_confidence",
]
