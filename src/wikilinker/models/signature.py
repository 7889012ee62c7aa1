"""Phonetic signature value types."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PhoneticSignature:
    """Comparable pronunciation-based signature of one display name.

    Immutable: a signature is derived purely from ``display_name``.
    """

    display_name: str
    soundex: str
    metaphones: tuple[str, ...]
    """Primary and (when the algorithm yields one) alternate double-Metaphone codes."""


@dataclass(frozen=True)
class PhoneticMatch:
    """The best (target, candidate) signature pairing found by the matcher."""

    target: PhoneticSignature
    candidate: PhoneticSignature
    phonetic_distance: int
    """Levenshtein distance between the matched Metaphone codes (lower = closer)."""

    display_name_distance: int
    """Levenshtein distance between the raw display names (lower = closer)."""

    @property
    def is_safe_variant(self) -> bool:
        """True if this match needs no semantic confirmation.

        Identical pronunciation codes or identical spelling are by definition
        a valid spelling variant of the candidate name.
        """
        return self.phonetic_distance == 0 or self.display_name_distance == 0
