"""Tests for the backlink and recency index."""

from __future__ import annotations

import random
from datetime import timedelta

import pytest

from conftest import NOW, FakeStore
from wikilinker.extraction import PLACEHOLDER
from wikilinker.models import Record
from wikilinker.resolution.backlinks import BacklinkIndex, link_key

RHYS = Record.from_metadata("People/Rhys Duggan.md", {})


def journal(store: FakeStore, name: str, body: str, days_ago: int) -> str:
    return store.add(f"Journal/{name}.md", body=body, modified=NOW - timedelta(days=days_ago))


class TestLinkKey:
    @pytest.mark.parametrize(
        ("target", "key"),
        [
            ("Rhys Duggan", "rhys duggan"),
            ("People/Rhys Duggan", "rhys duggan"),
            ("People/Rhys Duggan.md", "rhys duggan"),
            (" RHYS DUGGAN ", "rhys duggan"),
        ],
    )
    def test_normalizes(self, target: str, key: str) -> None:
        assert link_key(target) == key


class TestPopularityAndRecency:
    @pytest.mark.asyncio
    async def test_count_excludes_self_references(self, store: FakeStore) -> None:
        store.add(RHYS.path)
        old = journal(store, "2025-05-01", "[[Rhys Duggan]]", 31)
        new = journal(store, "2025-05-28", "[[Rhys Duggan|Rhys]]", 4)
        store.link(old, "Rhys Duggan")
        store.link(new, "People/Rhys Duggan", display="Rhys")
        store.link(RHYS.path, "Rhys Duggan")

        index = await BacklinkIndex.build(store, now=NOW)

        assert index.count(RHYS) == 2
        assert await index.days_since_last_reference(RHYS) == 4

    @pytest.mark.asyncio
    async def test_never_referenced(self, store: FakeStore) -> None:
        index = await BacklinkIndex.build(store, now=NOW)
        assert index.count(RHYS) == 0
        assert await index.days_since_last_reference(RHYS) is None

    @pytest.mark.asyncio
    async def test_future_edits_clamped_to_zero(self, store: FakeStore) -> None:
        source = journal(store, "tomorrow", "[[Rhys Duggan]]", -1)
        store.link(source, "Rhys Duggan")

        index = await BacklinkIndex.build(store, now=NOW)

        assert await index.days_since_last_reference(RHYS) == 0

    @pytest.mark.asyncio
    async def test_vanished_source_dropped_from_recency(self, store: FakeStore) -> None:
        store.link("Journal/deleted.md", "Rhys Duggan")

        index = await BacklinkIndex.build(store, now=NOW)

        assert await index.days_since_last_reference(RHYS) is None
        assert await index.sample_occurrences(RHYS) == []

    @pytest.mark.asyncio
    async def test_newest_first(self, store: FakeStore) -> None:
        for days in (10, 2, 30):
            source = journal(store, f"d{days}", "[[Rhys Duggan]]", days)
            store.link(source, "Rhys Duggan")

        index = await BacklinkIndex.build(store, now=NOW)
        dated = await index.newest_first(RHYS)

        assert [link.source_path for link, _ in dated] == [
            "Journal/d2.md",
            "Journal/d10.md",
            "Journal/d30.md",
        ]


class TestSampleOccurrences:
    @pytest.mark.asyncio
    async def test_samples_are_redacted_with_heading(self, store: FakeStore) -> None:
        line = "Went hiking with [[Rhys Duggan|Rhys]] and [[Ann Lee|Ann]]."
        source = journal(store, "trip", f"## Trip\n{line}", 3)
        store.link(source, "Rhys Duggan", line=1, col=line.index("[[Rhys"), display="Rhys")

        index = await BacklinkIndex.build(store, now=NOW)
        signals = await index.signals(RHYS, rng=random.Random(0))

        assert signals.count == 1
        assert signals.days_since_last_reference == 3
        [sample] = signals.samples
        assert sample.display_name == "Rhys"
        assert sample.sentence == f"Went hiking with {PLACEHOLDER} and Ann."
        assert sample.header == "Trip"

    @pytest.mark.asyncio
    async def test_sample_size_bounded(self, store: FakeStore) -> None:
        for i in range(6):
            source = journal(store, f"n{i}", "Saw [[Rhys Duggan]].", i)
            store.link(source, "Rhys Duggan", col=4)

        index = await BacklinkIndex.build(store, now=NOW)
        samples = await index.sample_occurrences(RHYS, sample_size=3, rng=random.Random(7))

        assert len(samples) == 3
        assert all(s.sentence == f"Saw {PLACEHOLDER}." for s in samples)
