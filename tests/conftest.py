"""Shared pytest fixtures for wikilinker tests."""

from __future__ import annotations

import asyncio
import copy
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timezone
from fnmatch import fnmatchcase
from typing import Any

import pytest

from wikilinker.errors import RecordNotFoundError, ServiceError, TaggingError
from wikilinker.inference.schemas import (
    DisambiguationRequest,
    DisambiguationVerdict,
    NarrowingRequest,
    NarrowingResult,
    NarrowingVerdict,
    OccurrenceContext,
)
from wikilinker.models import Entity, EntityTypeConfig, Occurrence
from wikilinker.store.base import Backlink, MetadataMutator

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


# ─────────────────────────────────────────────────────────────────────────────
# In-memory record store
# ─────────────────────────────────────────────────────────────────────────────


class FakeStore:
    """RecordStore over dicts, recording reads and peak fetch concurrency."""

    def __init__(self) -> None:
        self.metadata: dict[str, dict[str, Any]] = {}
        self.bodies: dict[str, str] = {}
        self.modified: dict[str, datetime] = {}
        self.links: list[Backlink] = []
        self.missing_text: set[str] = set()

        self.read_metadata_calls: list[str] = []
        self.update_calls: list[str] = []
        self.created: list[tuple[str, str, dict[str, Any]]] = []
        self._in_flight = 0
        self.max_in_flight = 0

    def add(
        self,
        path: str,
        metadata: dict[str, Any] | None = None,
        body: str = "",
        modified: datetime | None = None,
    ) -> str:
        self.metadata[path] = dict(metadata or {})
        self.bodies[path] = body
        self.modified[path] = modified or NOW
        return path

    def link(
        self,
        source: str,
        target: str,
        line: int = 0,
        col: int = 0,
        display: str | None = None,
    ) -> None:
        original = f"[[{target}|{display}]]" if display else f"[[{target}]]"
        self.links.append(
            Backlink(
                source_path=source,
                line=line,
                col=col,
                original=original,
                target=target,
                display_text=display,
            )
        )

    def _check(self, path: str) -> None:
        if path not in self.metadata:
            raise RecordNotFoundError(path)

    async def list_paths(self, pattern: str) -> list[str]:
        return sorted(p for p in self.metadata if fnmatchcase(p, pattern))

    async def read_metadata(self, path: str) -> dict[str, Any]:
        self.read_metadata_calls.append(path)
        self._in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            await asyncio.sleep(0)
            self._check(path)
            return copy.deepcopy(self.metadata[path])
        finally:
            self._in_flight -= 1

    async def update_metadata(self, path: str, mutate: MetadataMutator) -> dict[str, Any]:
        self._check(path)
        self.update_calls.append(path)
        metadata = copy.deepcopy(self.metadata[path])
        mutate(metadata)
        self.metadata[path] = metadata
        return metadata

    async def read_text(self, path: str) -> str:
        self._check(path)
        if path in self.missing_text:
            raise RecordNotFoundError(path)
        return self.bodies[path]

    async def scan_links(self) -> list[Backlink]:
        return list(self.links)

    async def last_modified(self, path: str) -> datetime:
        self._check(path)
        return self.modified[path]

    async def create_record(self, folder: str, basename: str, metadata: dict[str, Any]) -> str:
        path = f"{folder}/{basename}.md" if folder else f"{basename}.md"
        self.created.append((folder, basename, metadata))
        self.add(path, metadata)
        return path


# ─────────────────────────────────────────────────────────────────────────────
# Scripted semantic services
# ─────────────────────────────────────────────────────────────────────────────


class FakeServices:
    """SemanticServices with scripted answers.

    - narrowing: entity name -> basenames to keep (unscripted entities keep all)
    - disambiguation_pick: choose the candidate whose body preview contains it
    - newly introduced: true if any context says "for the first time"
    - fail: service names that raise ServiceError
    """

    def __init__(self) -> None:
        self.tagged_text: str | Callable[[str], str] | None = None
        self.narrowing: dict[str, list[str]] = {}
        self.disambiguation_pick: str | None = None
        self.disambiguation_confidence = "likely"
        self.disambiguation_verdict: DisambiguationVerdict | None = None
        self.same_name = False
        self.fail: set[str] = set()
        self.calls: defaultdict[str, list[Any]] = defaultdict(list)

    def _maybe_fail(self, service: str) -> None:
        if service in self.fail:
            if service == "tagging":
                raise TaggingError("scripted failure")
            raise ServiceError(service, "scripted failure")

    async def tag(self, text: str, entity_types: list[EntityTypeConfig]) -> str:
        self.calls["tag"].append(text)
        self._maybe_fail("tagging")
        if callable(self.tagged_text):
            return self.tagged_text(text)
        return self.tagged_text if self.tagged_text is not None else text

    async def narrow(self, request: NarrowingRequest) -> NarrowingVerdict:
        self.calls["narrow"].append(request)
        self._maybe_fail("narrowing")
        results = []
        for entity in request.entities:
            keep = self.narrowing.get(entity.entity_name)
            ids = [
                c.candidate_id
                for c in request.candidates
                if keep is None or c.names[0] in keep
            ]
            results.append(NarrowingResult(entity_name=entity.entity_name, matching_candidate_ids=ids))
        return NarrowingVerdict(results=results)

    async def disambiguate(self, request: DisambiguationRequest) -> DisambiguationVerdict:
        self.calls["disambiguate"].append(request)
        self._maybe_fail("disambiguation")
        if self.disambiguation_verdict is not None:
            return self.disambiguation_verdict
        for candidate in request.candidates:
            if self.disambiguation_pick and self.disambiguation_pick in candidate.body_preview:
                return DisambiguationVerdict(
                    candidate_id=candidate.candidate_id,
                    confidence=self.disambiguation_confidence,
                )
        return DisambiguationVerdict(candidate_id=None)

    async def is_newly_introduced(self, occurrences: list[OccurrenceContext]) -> bool:
        self.calls["is_newly_introduced"].append(occurrences)
        self._maybe_fail("newly_introduced")
        return any("for the first time" in o.sentence for o in occurrences)

    async def is_same_name(self, name_a: str, name_b: str) -> bool:
        self.calls["is_same_name"].append((name_a, name_b))
        self._maybe_fail("same_name")
        return self.same_name


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def make_entity(
    canonical_name: str,
    *display_names: str,
    entity_type: str = "person",
    sentence: str | None = None,
) -> Entity:
    """Entity with one occurrence per display name (default: the canonical name)."""
    names = display_names or (canonical_name,)
    occurrences = [
        Occurrence(
            display_name=name,
            sentence=sentence or "Talked with <entity/> about the garden.",
            line=i,
        )
        for i, name in enumerate(names)
    ]
    return Entity(canonical_name=canonical_name, type=entity_type, occurrences=occurrences)


def tag(canonical: str, surface: str | None = None, entity_type: str | None = None) -> str:
    """Entity tag markup as the tagger emits it."""
    type_attr = f' type="{entity_type}"' if entity_type else ""
    return f'<entity id="{canonical}"{type_attr}>{surface or canonical}</entity>'


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def services() -> FakeServices:
    return FakeServices()


@pytest.fixture
def person_type() -> EntityTypeConfig:
    return EntityTypeConfig(type="person", description="A person", files=["People/*.md"])
