"""Redaction of context snippets sent to external services.

The mention being judged becomes a neutral placeholder; every other entity
tag or internal link in the same line collapses to its plain display text.
The external service must then reason from context, not from markup or the
literal wording of the mention.

Redacted text is always derived fresh from the raw line plus the target's
offset; shared text buffers are never edited in place.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from wikilinker.extraction.markup import PLACEHOLDER, TAG_PATTERN, WIKILINK_PATTERN
from wikilinker.utils.text import extract_sentence


def _redact(
    line: str,
    pattern: re.Pattern[str],
    target_col: int,
    visible_text: Callable[[re.Match[str]], str],
) -> tuple[str, int]:
    parts: list[str] = []
    position = 0
    length = 0
    placeholder_col = -1

    for match in pattern.finditer(line):
        before = line[position : match.start()]
        parts.append(before)
        length += len(before)
        if match.start() == target_col:
            placeholder_col = length
            replacement = PLACEHOLDER
        else:
            replacement = visible_text(match)
        parts.append(replacement)
        length += len(replacement)
        position = match.end()

    parts.append(line[position:])
    return "".join(parts), placeholder_col


def redact_tagged_line(line: str, target_col: int) -> tuple[str, int]:
    """Redact a line of tagged text around the tag starting at ``target_col``.

    Returns:
        (redacted line, column of the placeholder or -1 if no tag starts there)
    """
    return _redact(line, TAG_PATTERN, target_col, lambda m: m.group("text"))


def redact_vault_line(line: str, target_col: int) -> tuple[str, int]:
    """Redact a line of store text around the link starting at ``target_col``."""
    return _redact(
        line, WIKILINK_PATTERN, target_col, lambda m: (m.group(2) or m.group(1)).strip()
    )


def tagged_context(line: str, target_col: int) -> str:
    """Redacted sentence around the tagged mention at ``target_col``."""
    redacted, col = redact_tagged_line(line, target_col)
    return extract_sentence(redacted, max(col, 0)).strip()


def vault_context(line: str, target_col: int) -> str:
    """Redacted sentence around the link at ``target_col`` in store text."""
    redacted, col = redact_vault_line(line, target_col)
    return extract_sentence(redacted, max(col, 0)).strip()
