"""Phonetic encoding and matching of display names.

Matching is two-stage:
1. Soundex gate: a cheap, coarse filter. Candidates whose Soundex code is more
   than ``max_soundex_distance`` edits from the target are rejected outright.
2. Metaphone scoring: every (target code x candidate code) pair of the
   double-Metaphone encodings is compared; pairs beyond
   ``max_metaphone_distance`` are rejected. The surviving pair with the lowest
   Metaphone distance wins, ties broken by raw display-name edit distance.

The Soundex gate is what keeps whole-vault phonetic scans tractable.
"""

from __future__ import annotations

import sys
from collections.abc import Iterable

from jellyfish import soundex
from metaphone import doublemetaphone
from rapidfuzz.distance import Levenshtein

from wikilinker.models.signature import PhoneticMatch, PhoneticSignature

# Thresholds used when any spelling is acceptable (manual links, known misspellings).
UNLIMITED = sys.maxsize

DEFAULT_MAX_METAPHONE_DISTANCE = 1
DEFAULT_MAX_SOUNDEX_DISTANCE = 0


def encode(name: str) -> PhoneticSignature:
    """Encode a display name into its phonetic signature.

    Pure and deterministic: ``encode(x) == encode(x)`` for every input.
    """
    if not name.strip():
        return PhoneticSignature(display_name=name, soundex="", metaphones=())

    primary, alternate = doublemetaphone(name)
    codes = tuple(code for code in dict.fromkeys((primary, alternate)) if code)
    return PhoneticSignature(display_name=name, soundex=soundex(name), metaphones=codes)


def find_best_match(
    target: PhoneticSignature,
    candidates: Iterable[PhoneticSignature],
    max_metaphone_distance: int = DEFAULT_MAX_METAPHONE_DISTANCE,
    max_soundex_distance: int = DEFAULT_MAX_SOUNDEX_DISTANCE,
) -> PhoneticMatch | None:
    """Find the candidate signature that best matches ``target``.

    Args:
        target: Signature being matched (e.g. an observed mention).
        candidates: Signatures to compare against (e.g. a record's names).
        max_metaphone_distance: Maximum edit distance between Metaphone codes.
        max_soundex_distance: Maximum edit distance between Soundex codes
            (default 0: exact Soundex match required).

    Returns:
        The best PhoneticMatch, or None if every candidate was rejected.
    """
    best: PhoneticMatch | None = None

    for candidate in candidates:
        soundex_distance = Levenshtein.distance(target.soundex, candidate.soundex)
        if soundex_distance > max_soundex_distance:
            continue

        name_distance: int | None = None
        for target_code in target.metaphones:
            for candidate_code in candidate.metaphones:
                metaphone_distance = Levenshtein.distance(target_code, candidate_code)
                if metaphone_distance > max_metaphone_distance:
                    continue

                if name_distance is None:
                    name_distance = Levenshtein.distance(
                        target.display_name, candidate.display_name
                    )

                if (
                    best is None
                    or metaphone_distance < best.phonetic_distance
                    or (
                        metaphone_distance == best.phonetic_distance
                        and name_distance < best.display_name_distance
                    )
                ):
                    best = PhoneticMatch(
                        target=target,
                        candidate=candidate,
                        phonetic_distance=metaphone_distance,
                        display_name_distance=name_distance,
                    )

    return best


def best_match_for_any(
    targets: Iterable[PhoneticSignature],
    candidates: Iterable[PhoneticSignature],
    max_metaphone_distance: int = DEFAULT_MAX_METAPHONE_DISTANCE,
    max_soundex_distance: int = DEFAULT_MAX_SOUNDEX_DISTANCE,
) -> PhoneticMatch | None:
    """Best match between any of several targets and a set of candidates.

    Used to score all of an entity's observed names against one record.
    """
    candidate_list = list(candidates)
    best: PhoneticMatch | None = None
    for target in targets:
        match = find_best_match(
            target,
            candidate_list,
            max_metaphone_distance=max_metaphone_distance,
            max_soundex_distance=max_soundex_distance,
        )
        if match is None:
            continue
        if best is None or (match.phonetic_distance, match.display_name_distance) < (
            best.phonetic_distance,
            best.display_name_distance,
        ):
            best = match
    return best
