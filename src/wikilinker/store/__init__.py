"""Record store contract and the markdown-vault implementation."""

from wikilinker.store.base import Backlink, MetadataMutator, RecordStore
from wikilinker.store.vault import VaultStore

__all__ = [
    "Backlink",
    "MetadataMutator",
    "RecordStore",
    "VaultStore",
]
