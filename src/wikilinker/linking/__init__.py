"""Link rewriting and misspelling write-back."""

from wikilinker.linking.misspellings import MisspellingLearner, unknown_variants
from wikilinker.linking.rewriter import LinkRewriter, correct_spelling

__all__ = [
    "LinkRewriter",
    "MisspellingLearner",
    "correct_spelling",
    "unknown_variants",
]
