"""Record: the enriched view of a knowledge-store item."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any

from wikilinker.models.signature import PhoneticSignature
from wikilinker.utils.text import to_list


def basename_from_path(path: str) -> str:
    """Derive a record's display name from its store path ("a/Bob Smith.md" -> "Bob Smith")."""
    return PurePosixPath(path).stem


def first_token(name: str) -> str | None:
    """First whitespace token of a multi-word name, or None for single-word names."""
    tokens = name.split()
    if len(tokens) < 2:
        return None
    return tokens[0]


@dataclass(frozen=True)
class Record:
    """A canonical store item an entity may resolve to.

    Records are created fresh for each resolution run and never mutated;
    enriching a filename-only record produces a new instance.
    """

    path: str
    basename: str
    aliases: tuple[str, ...] = ()
    misspellings: tuple[str, ...] = ()

    metadata_loaded: bool = True
    """False for filename-only records built by the phonetic pool strategy."""

    index_names: tuple[str, ...] = ()
    """Extra filename-derived names indexed for phonetic matching (e.g. first token)."""

    phonetic_signatures: tuple[PhoneticSignature, ...] = field(
        default=(), init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        # Local import: the encoder lives in the resolution layer.
        from wikilinker.resolution.phonetic import encode

        names = dict.fromkeys([*self.names, *self.index_names])
        object.__setattr__(
            self,
            "phonetic_signatures",
            tuple(encode(name) for name in names if name.strip()),
        )

    @classmethod
    def from_path(cls, path: str, *, index_first_token: bool = False) -> Record:
        """Build a filename-only record (no metadata fetched yet)."""
        basename = basename_from_path(path)
        extra: tuple[str, ...] = ()
        if index_first_token:
            token = first_token(basename)
            if token:
                extra = (token,)
        return cls(path=path, basename=basename, metadata_loaded=False, index_names=extra)

    @classmethod
    def from_metadata(cls, path: str, metadata: Mapping[str, Any]) -> Record:
        """Build a fully loaded record from its frontmatter.

        ``aliases`` and ``misspellings`` may be a string or a list. The first
        token of a multi-word basename is indexed too, so a bare first name
        can match phonetically.
        """
        basename = basename_from_path(path)
        token = first_token(basename)
        return cls(
            path=path,
            basename=basename,
            aliases=tuple(to_list(metadata.get("aliases"))),
            misspellings=tuple(to_list(metadata.get("misspellings"))),
            index_names=(token,) if token else (),
        )

    @property
    def names(self) -> tuple[str, ...]:
        """All known display names: basename, aliases, misspellings."""
        return (self.basename, *self.aliases, *self.misspellings)

    @property
    def display_names(self) -> tuple[str, ...]:
        """Names a link may display: basename and aliases (not misspellings)."""
        return (self.basename, *self.aliases)

    def knows(self, name: str) -> bool:
        """True if ``name`` equals the basename, an alias or a misspelling (case-insensitive)."""
        folded = name.casefold()
        return any(folded == known.casefold() for known in self.names)
