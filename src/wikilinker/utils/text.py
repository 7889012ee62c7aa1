"""Text helpers shared by extraction, redaction and the vault store."""

from __future__ import annotations

import re
from typing import Any

# Sentence boundary: . ! ? possibly followed by closing quotes/brackets and whitespace.
_SENTENCE_PATTERN = re.compile(r"[^.!?]*[.!?]+[\"')\]]*\s*|[^.!?]+$")
_WORD_PATTERN = re.compile(r"\S+")
_NEAREST_HEADING_PATTERN = re.compile(r"^(##+)\s+(.*)$")
_FRONTMATTER_PATTERN = re.compile(r"^---[ \t]*\n(.*?)\n?---[ \t]*(?:\n|$)", re.DOTALL)

ELLIPSIS = "…"
DEFAULT_CONTEXT_WORDS = 14


def extract_sentence(line: str, col: int, context_words: int = DEFAULT_CONTEXT_WORDS) -> str:
    """Extract the sentence containing column ``col`` of ``line``.

    Sentences shorter than ``context_words`` words are widened to roughly that
    many words around the column. Ellipses mark a snippet that does not reach
    the line boundaries.

    Args:
        line: One line of text.
        col: Character offset of the mention inside ``line``.
        context_words: Minimum words of context to return.

    Returns:
        The context snippet.
    """
    start, end = 0, len(line)
    for match in _SENTENCE_PATTERN.finditer(line):
        if match.start() <= col < match.end():
            start, end = match.start(), match.end()
            break

    snippet = line[start:end].strip()
    if len(snippet.split()) >= context_words or (start == 0 and end == len(line)):
        prefix = ELLIPSIS if start > 0 else ""
        suffix = ELLIPSIS if end < len(line) else ""
        return f"{prefix}{snippet}{suffix}"

    words = list(_WORD_PATTERN.finditer(line))
    if not words:
        return snippet

    target = 0
    for i, word in enumerate(words):
        if word.start() <= col < word.end():
            target = i
            break
        if word.start() > col:
            target = max(0, i - 1)
            break
    else:
        target = len(words) - 1

    first = max(0, target - context_words // 2)
    last = min(len(words), target + (context_words + 1) // 2 + 1)
    expanded = " ".join(w.group() for w in words[first:last])
    prefix = ELLIPSIS if first > 0 else ""
    suffix = ELLIPSIS if last < len(words) else ""
    return f"{prefix}{expanded}{suffix}"


def find_nearest_heading(lines: list[str], line_no: int) -> str | None:
    """Walk backward from ``line_no`` to the closest ``##``-or-deeper heading."""
    for i in range(min(line_no, len(lines) - 1), -1, -1):
        match = _NEAREST_HEADING_PATTERN.match(lines[i])
        if match:
            return match.group(2).strip()
    return None


def split_frontmatter(content: str) -> tuple[str | None, str]:
    """Split markdown into (raw YAML frontmatter or None, body)."""
    match = _FRONTMATTER_PATTERN.match(content)
    if not match:
        return None, content
    return match.group(1), content[match.end() :]


def body_preview(content: str, max_chars: int = 400) -> str:
    """First ``max_chars`` characters of the note body, frontmatter stripped."""
    if max_chars <= 0:
        return ""
    _, body = split_frontmatter(content)
    body = body.lstrip()
    if len(body) <= max_chars:
        return body
    return body[:max_chars] + "..."


def to_list(value: Any) -> list[str]:
    """Normalize a string-or-list metadata value to a list of strings."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v) for v in value if v is not None and str(v).strip()]
    text = str(value)
    return [text] if text.strip() else []
