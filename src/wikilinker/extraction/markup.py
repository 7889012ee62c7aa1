"""Markup recognised and emitted by wikilinker."""

from __future__ import annotations

import re

# <entity id="Canonical Name" type="person">surface</entity>; type is optional.
TAG_PATTERN = re.compile(
    r'<entity\s+id="(?P<id>[^"]*)"(?:\s+type="(?P<type>[^"]*)")?\s*>(?P<text>.*?)</entity>'
)

# [[Target]] / [[Target|Display]] / [[Target#Section|Display]]; embeds (![[...]]) excluded.
WIKILINK_PATTERN = re.compile(r"(?<!!)\[\[([^\]|#]+)(?:#[^\]|]*)?(?:\|([^\]]+))?\]\]")

# Any markdown heading line; mentions on these lines are never linked.
HEADING_PATTERN = re.compile(r"^#+\s+(.+)$")

# Neutral token substituted for the mention being judged.
PLACEHOLDER = "<entity/>"


def format_link(target: str, display: str) -> str:
    """Two-token link syntax: ``[[Target]]`` or ``[[Target|Display]]``."""
    if display == target:
        return f"[[{target}]]"
    return f"[[{target}|{display}]]"


def strip_tags(tagged_text: str) -> str:
    """Remove entity tags, keeping their surface text."""
    return TAG_PATTERN.sub(lambda m: m.group("text"), tagged_text)


def strip_wikilinks(text: str) -> str:
    """Replace links with their visible text."""
    return WIKILINK_PATTERN.sub(lambda m: (m.group(2) or m.group(1)).strip(), text)
