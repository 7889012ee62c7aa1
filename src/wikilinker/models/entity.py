"""Entities and occurrences discovered in a tagged document."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from wikilinker.models.signature import PhoneticSignature


@dataclass(frozen=True)
class Occurrence:
    """One mention of an entity in the source text."""

    display_name: str
    """Exact surface text as written."""

    sentence: str
    """Redacted context window around the mention."""

    header: str | None = None
    """Nearest preceding section heading."""

    line: int = 0
    col: int = 0

    @property
    def signature(self) -> PhoneticSignature:
        from wikilinker.resolution.phonetic import encode

        return encode(self.display_name)


@dataclass
class Entity:
    """A unique referent discovered in the document, keyed by canonical name.

    Occurrences keep first-seen-in-document order.
    """

    canonical_name: str
    type: str
    occurrences: list[Occurrence] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]

    def __post_init__(self) -> None:
        if not self.occurrences:
            msg = f"Entity {self.canonical_name!r} must have at least one occurrence"
            raise ValueError(msg)

    @property
    def display_names(self) -> list[str]:
        """Distinct observed surface forms, in first-seen order."""
        return list(dict.fromkeys(o.display_name for o in self.occurrences))

    @property
    def signatures(self) -> list[PhoneticSignature]:
        """One signature per distinct display name."""
        from wikilinker.resolution.phonetic import encode

        return [encode(name) for name in self.display_names if name.strip()]

    @property
    def has_full_name(self) -> bool:
        """True if any occurrence carries a multi-token (first + last) name."""
        return any(len(name.split()) > 1 for name in self.display_names)

    @property
    def first_occurrence(self) -> Occurrence:
        return self.occurrences[0]


class EntityTypeConfig(BaseModel):
    """A configured entity category and where its records live."""

    type: str = Field(description="Entity category name, e.g. 'person'")
    description: str | None = Field(
        default=None, description="Hint passed to the tagger about what counts as this type"
    )
    files: list[str] = Field(
        default_factory=list, description="Store path globs enumerating records of this type"
    )

    @property
    def folder(self) -> str:
        """Static directory prefix of the first glob, where new records are created."""
        if not self.files:
            return ""
        pattern = self.files[0]
        cut = len(pattern)
        for i, ch in enumerate(pattern):
            if ch in "*?[":
                cut = i
                break
        prefix = pattern[:cut]
        return prefix.rsplit("/", 1)[0] if "/" in prefix else ""
