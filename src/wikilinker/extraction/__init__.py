"""Mention extraction and redaction.

Submodules:
- markup: entity tag / link patterns and link formatting
- tagged_text: grouping tagged mentions into entities
- redaction: neutralising markup in context sent to external services
"""

from wikilinker.extraction.markup import (
    PLACEHOLDER,
    TAG_PATTERN,
    WIKILINK_PATTERN,
    format_link,
    strip_tags,
    strip_wikilinks,
)
from wikilinker.extraction.redaction import tagged_context, vault_context
from wikilinker.extraction.tagged_text import parse_entities, verify_preserved

__all__ = [
    "PLACEHOLDER",
    "TAG_PATTERN",
    "WIKILINK_PATTERN",
    "format_link",
    "parse_entities",
    "strip_tags",
    "strip_wikilinks",
    "tagged_context",
    "vault_context",
    "verify_preserved",
]
