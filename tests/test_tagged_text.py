"""Tests for grouping tagged mentions into entities."""

from __future__ import annotations

import logging

import pytest

from conftest import tag
from wikilinker.errors import TaggingError
from wikilinker.extraction import PLACEHOLDER, format_link, parse_entities, strip_tags, verify_preserved


class TestParseEntities:
    def test_groups_by_canonical_name_in_first_seen_order(self) -> None:
        text = "\n".join(
            [
                f"{tag('Rhys Duggan', 'Rhys')} met {tag('Ann Lee', 'Ann')}.",
                f"Later {tag('Rhys Duggan', 'Rhys Duggan')} left.",
            ]
        )
        entities = parse_entities(text, default_type="person")

        assert [e.canonical_name for e in entities] == ["Rhys Duggan", "Ann Lee"]
        rhys = entities[0]
        assert rhys.display_names == ["Rhys", "Rhys Duggan"]
        assert [o.line for o in rhys.occurrences] == [0, 1]
        assert rhys.occurrences[1].col == len("Later ")

    def test_sentence_is_redacted(self) -> None:
        text = f"{tag('Rhys Duggan', 'Rhys')} met {tag('Ann Lee', 'Ann')}."
        rhys, ann = parse_entities(text, default_type="person")
        assert rhys.occurrences[0].sentence == f"{PLACEHOLDER} met Ann."
        assert ann.occurrences[0].sentence == f"Rhys met {PLACEHOLDER}."

    def test_type_attribute_and_default(self) -> None:
        text = f"{tag('Paris', entity_type='place')} with {tag('Ann')}."
        paris, ann = parse_entities(text, default_type="person")
        assert paris.type == "place"
        assert ann.type == "person"

    def test_conflicting_type_keeps_first_and_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        text = f"{tag('Paris', entity_type='place')} and {tag('Paris', entity_type='person')}."

        with caplog.at_level(logging.DEBUG, logger="wikilinker.extraction.tagged_text"):
            [paris] = parse_entities(text, default_type="person")

        assert paris.type == "place"
        assert len(paris.occurrences) == 2
        assert "keeping first type 'place'" in caplog.text

    def test_heading_mentions_skipped_but_set_header(self) -> None:
        text = "\n".join(
            [
                f"## Visit to {tag('Paris', entity_type='place')}",
                f"{tag('Ann')} came along.",
            ]
        )
        entities = parse_entities(text, default_type="person")
        assert [e.canonical_name for e in entities] == ["Ann"]
        assert entities[0].occurrences[0].header == "Visit to Paris"

    def test_empty_tags_ignored(self) -> None:
        text = '<entity id="">Ann</entity> and <entity id="Bob"> </entity>.'
        assert parse_entities(text, default_type="person") == []

    def test_no_tags(self) -> None:
        assert parse_entities("Nothing to see.", default_type="person") == []


class TestVerifyPreserved:
    def test_inserted_tags_only(self) -> None:
        original = "Rhys met Ann."
        verify_preserved(original, f"{tag('Rhys Duggan', 'Rhys')} met {tag('Ann')}.")

    def test_surrounding_whitespace_tolerated(self) -> None:
        verify_preserved("  Rhys met Ann.\n", f"{tag('Rhys')} met Ann.")

    def test_altered_text_rejected(self) -> None:
        with pytest.raises(TaggingError):
            verify_preserved("Rhys met Ann.", f"{tag('Rhys')} met Anne.")

    def test_strip_tags(self) -> None:
        assert strip_tags(f"{tag('Rhys Duggan', 'Rhys')} left") == "Rhys left"


class TestFormatLink:
    def test_same_display_uses_bare_link(self) -> None:
        assert format_link("Rhys", "Rhys") == "[[Rhys]]"

    def test_different_display(self) -> None:
        assert format_link("Rhys Duggan", "Rhys") == "[[Rhys Duggan|Rhys]]"
