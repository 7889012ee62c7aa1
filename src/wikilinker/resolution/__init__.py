"""Entity resolution: phonetic matching, candidate pools and the resolver."""

from wikilinker.resolution.backlinks import BacklinkIndex, BacklinkSignals
from wikilinker.resolution.candidate_pool import (
    LOAD_ALL_THRESHOLD,
    METADATA_BATCH_SIZE,
    CandidatePool,
    CandidatePoolBuilder,
)
from wikilinker.resolution.context import RunContext
from wikilinker.resolution.phonetic import encode, find_best_match
from wikilinker.resolution.resolver import EntityResolver, ResolutionResult

__all__ = [
    "LOAD_ALL_THRESHOLD",
    "METADATA_BATCH_SIZE",
    "BacklinkIndex",
    "BacklinkSignals",
    "CandidatePool",
    "CandidatePoolBuilder",
    "EntityResolver",
    "ResolutionResult",
    "RunContext",
    "encode",
    "find_best_match",
]
