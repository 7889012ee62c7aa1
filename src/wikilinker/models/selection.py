"""Candidates and selections produced by the resolution pipeline."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from wikilinker.models.entity import Entity
from wikilinker.models.enums import SelectionConfidence
from wikilinker.models.record import Record
from wikilinker.models.signature import PhoneticMatch


@dataclass(frozen=True)
class Candidate:
    """A tentative (entity, record) pairing."""

    record: Record
    match: PhoneticMatch | None = None
    """The matched signature pair; None when the record came from narrowing alone."""


@dataclass(frozen=True)
class NewRecord:
    """A record the reviewer chose to create for an unmatched entity."""

    basename: str
    aliases: tuple[str, ...] = ()
    misspellings: tuple[str, ...] = ()

    @property
    def display_names(self) -> tuple[str, ...]:
        return (self.basename, *self.aliases)


@dataclass
class Selection:
    """The final decision for one entity."""

    entity: Entity
    candidates: list[Candidate] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]
    selected_record: Record | None = None
    new_record: NewRecord | None = None
    confidence: SelectionConfidence = SelectionConfidence.UNMATCHED
    was_manually_resolved: bool = False

    @property
    def target_name(self) -> str | None:
        """Canonical name links should point at, if the entity resolved."""
        if self.selected_record is not None:
            return self.selected_record.basename
        if self.new_record is not None:
            return self.new_record.basename
        return None

    @property
    def target_display_names(self) -> tuple[str, ...]:
        if self.selected_record is not None:
            return self.selected_record.display_names
        if self.new_record is not None:
            return self.new_record.display_names
        return ()

    @property
    def target_misspellings(self) -> tuple[str, ...]:
        if self.selected_record is not None:
            return self.selected_record.misspellings
        if self.new_record is not None:
            return self.new_record.misspellings
        return ()

    @property
    def is_resolved(self) -> bool:
        return self.target_name is not None

    def override(
        self,
        *,
        record: Record | None = None,
        new_record: NewRecord | None = None,
    ) -> Selection:
        """Return a manually resolved copy pointing at ``record`` or ``new_record``.

        Passing neither clears the selection (the reviewer chose "no link").
        """
        return Selection(
            entity=self.entity,
            candidates=list(self.candidates),
            selected_record=record,
            new_record=new_record if record is None else None,
            confidence=self.confidence,
            was_manually_resolved=True,
        )


def sort_by_confidence(selections: Iterable[Selection]) -> list[Selection]:
    """Review order: least confident first, stable within a confidence group."""
    return sorted(selections, key=lambda s: s.confidence.rank)
