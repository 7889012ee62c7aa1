"""Utility modules for wikilinker."""

from wikilinker.utils.sampling import biased_sample
from wikilinker.utils.text import (
    body_preview,
    extract_sentence,
    find_nearest_heading,
    split_frontmatter,
    to_list,
)

__all__ = [
    "biased_sample",
    "body_preview",
    "extract_sentence",
    "find_nearest_heading",
    "split_frontmatter",
    "to_list",
]
