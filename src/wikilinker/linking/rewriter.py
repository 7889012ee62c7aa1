"""Link rewriting with spelling normalization.

Turns tagged text into linked text:
- A resolved mention becomes ``[[Target]]`` or ``[[Target|Display]]``, where
  the display text is the mention, spelling-corrected when a close known
  name exists.
- Only the first mention of an entity on a line becomes a link; later ones
  on the same line are plain (corrected) text.
- Mentions on heading lines are never linked.
- Unresolved mentions are unwrapped to their surface text.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from wikilinker.extraction.markup import HEADING_PATTERN, TAG_PATTERN, format_link
from wikilinker.models.selection import Selection
from wikilinker.resolution.phonetic import UNLIMITED, encode, find_best_match

# Standard correction thresholds (looser Metaphone than matching, exact Soundex).
CORRECTION_MAX_METAPHONE_DISTANCE = 2
CORRECTION_MAX_SOUNDEX_DISTANCE = 0


def correct_spelling(surface: str, selection: Selection) -> str:
    """Display text for a mention of ``selection``'s target.

    Correction is maximally permissive when the selection was resolved by
    hand or the mention is already a known misspelling of the target;
    otherwise only a close phonetic match replaces the surface text.
    """
    known_names = selection.target_display_names
    if not known_names:
        return surface

    folded = surface.casefold()
    permissive = selection.was_manually_resolved or any(
        folded == m.casefold() for m in selection.target_misspellings
    )
    if permissive:
        max_metaphone, max_soundex = UNLIMITED, UNLIMITED
    else:
        max_metaphone = CORRECTION_MAX_METAPHONE_DISTANCE
        max_soundex = CORRECTION_MAX_SOUNDEX_DISTANCE

    match = find_best_match(
        encode(surface),
        [encode(name) for name in known_names],
        max_metaphone_distance=max_metaphone,
        max_soundex_distance=max_soundex,
    )
    return match.candidate.display_name if match else surface


class LinkRewriter:
    """Rewrites tagged text into linked text for a set of selections."""

    def __init__(self, selections: Iterable[Selection]) -> None:
        self._by_name = {s.entity.canonical_name: s for s in selections}

    def rewrite(self, tagged_text: str) -> str:
        return "\n".join(self._rewrite_line(line) for line in tagged_text.split("\n"))

    def _rewrite_line(self, line: str) -> str:
        is_heading = HEADING_PATTERN.match(line) is not None
        linked: set[str] = set()

        def replace(match: re.Match[str]) -> str:
            surface = match.group("text")
            canonical = match.group("id").strip()
            selection = self._by_name.get(canonical)
            if selection is None or selection.target_name is None:
                return surface

            display = correct_spelling(surface, selection)
            target = selection.target_name
            if is_heading or canonical in linked:
                return display
            linked.add(canonical)
            return format_link(target, display)

        return TAG_PATTERN.sub(replace, line)
