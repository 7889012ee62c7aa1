"""wikilinker: resolve entity mentions in notes to vault records as wikilinks."""

__version__ = "0.1.0"
