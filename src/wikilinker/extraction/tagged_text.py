"""Mention extraction from tagged text.

The tagger inserts ``<entity id="Canonical" type="person">surface</entity>``
spans. This module groups those spans into Entities (one per canonical name,
occurrences in document order) with redacted context for each occurrence.
"""

from __future__ import annotations

import logging

from wikilinker.errors import TaggingError
from wikilinker.extraction.markup import HEADING_PATTERN, TAG_PATTERN, strip_tags
from wikilinker.extraction.redaction import tagged_context
from wikilinker.models.entity import Entity, Occurrence

logger = logging.getLogger(__name__)


def parse_entities(tagged_text: str, default_type: str) -> list[Entity]:
    """Group tagged mentions into entities.

    Mentions inside heading lines are skipped (headings are structural) but
    still update the current header for the lines that follow.

    Args:
        tagged_text: Text with entity tags inserted.
        default_type: Type assumed for tags without a ``type`` attribute.

    Returns:
        Entities in order of first mention.
    """
    grouped: dict[str, tuple[str, list[Occurrence]]] = {}
    current_header: str | None = None

    for line_no, line in enumerate(tagged_text.split("\n")):
        heading = HEADING_PATTERN.match(line)
        if heading:
            current_header = strip_tags(heading.group(1)).strip()
            continue

        for match in TAG_PATTERN.finditer(line):
            canonical = match.group("id").strip()
            surface = match.group("text")
            if not canonical or not surface.strip():
                logger.debug("Ignoring empty entity tag on line %d: %r", line_no, match.group(0))
                continue

            occurrence = Occurrence(
                display_name=surface,
                sentence=tagged_context(line, match.start()),
                header=current_header,
                line=line_no,
                col=match.start(),
            )
            entity_type = match.group("type") or default_type
            if canonical not in grouped:
                grouped[canonical] = (entity_type, [])
            elif grouped[canonical][0] != entity_type:
                logger.debug(
                    "Tag for %r on line %d has type %r; keeping first type %r",
                    canonical,
                    line_no,
                    entity_type,
                    grouped[canonical][0],
                )
            grouped[canonical][1].append(occurrence)

    return [
        Entity(canonical_name=name, type=entity_type, occurrences=occurrences)
        for name, (entity_type, occurrences) in grouped.items()
    ]


def verify_preserved(original: str, tagged_text: str) -> None:
    """Check that tagging only inserted tags.

    Raises:
        TaggingError: If any character outside the tags was altered.
    """
    if strip_tags(tagged_text).strip() != original.strip():
        raise TaggingError("tagged text alters characters outside entity tags")
