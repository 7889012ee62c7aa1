"""Tests for link rewriting and spelling correction."""

from __future__ import annotations

from conftest import make_entity, tag
from wikilinker.linking import LinkRewriter, correct_spelling
from wikilinker.models import NewRecord, Record, Selection, SelectionConfidence

RHYS = Record(path="People/Rhys.md", basename="Rhys")
RHYS_WITH_MISSPELLING = Record(path="People/Rhys.md", basename="Rhys", misspellings=("Rhetts",))
RHYS_DUGGAN = Record(path="People/Rhys Duggan.md", basename="Rhys Duggan")


def resolved(canonical: str, record: Record, *names: str) -> Selection:
    return Selection(
        entity=make_entity(canonical, *names),
        selected_record=record,
        confidence=SelectionConfidence.LIKELY,
    )


class TestCorrectSpelling:
    def test_close_variant_corrected(self) -> None:
        selection = resolved("Aidan", Record(path="People/Aidan.md", basename="Aidan"), "Aiden")
        assert correct_spelling("Aiden", selection) == "Aidan"

    def test_distant_variant_kept(self) -> None:
        assert correct_spelling("Rhetts", resolved("Rhys", RHYS, "Rhetts")) == "Rhetts"

    def test_manual_resolution_is_permissive(self) -> None:
        selection = resolved("Rhys", RHYS, "Rhetts").override(record=RHYS)
        assert correct_spelling("Rhetts", selection) == "Rhys"

    def test_known_misspelling_is_permissive(self) -> None:
        selection = resolved("Rhys", RHYS_WITH_MISSPELLING, "Rhetts")
        assert correct_spelling("rhetts", selection) == "Rhys"

    def test_corrects_to_alias(self) -> None:
        record = Record(path="People/Aidan Clarage.md", basename="Aidan Clarage", aliases=("Aidan",))
        assert correct_spelling("Aiden", resolved("Aidan", record, "Aiden")) == "Aidan"

    def test_unresolved_selection_unchanged(self) -> None:
        assert correct_spelling("Aiden", Selection(entity=make_entity("Aiden"))) == "Aiden"


class TestLinkRewriter:
    def test_single_link_per_line(self) -> None:
        text = f"{tag('Rhys')} waved, then {tag('Rhys')} left.\n{tag('Rhys')} came back."
        rewriter = LinkRewriter([resolved("Rhys", RHYS)])

        assert rewriter.rewrite(text) == "[[Rhys]] waved, then Rhys left.\n[[Rhys]] came back."

    def test_later_mention_on_line_is_corrected_text(self) -> None:
        text = f"{tag('Aidan', 'Aidan')} and {tag('Aidan', 'Aiden')}."
        record = Record(path="People/Aidan.md", basename="Aidan")
        rewriter = LinkRewriter([resolved("Aidan", record, "Aidan", "Aiden")])

        assert rewriter.rewrite(text) == "[[Aidan]] and Aidan."

    def test_distinct_entities_each_linked(self) -> None:
        text = f"{tag('Rhys')} met {tag('Rhys Duggan', 'Rhys')}."
        rewriter = LinkRewriter([resolved("Rhys", RHYS), resolved("Rhys Duggan", RHYS_DUGGAN, "Rhys")])

        assert rewriter.rewrite(text) == "[[Rhys]] met [[Rhys Duggan|Rhys]]."

    def test_manual_override_renders_link(self) -> None:
        text = f"Lunch with {tag('Rhetts')}."
        selection = Selection(entity=make_entity("Rhetts")).override(record=RHYS)

        assert LinkRewriter([selection]).rewrite(text) == "Lunch with [[Rhys]]."

    def test_distant_mention_keeps_surface_as_display(self) -> None:
        text = f"Lunch with {tag('Rhys', 'Rhetts')}."
        rewriter = LinkRewriter([resolved("Rhys", RHYS, "Rhetts")])

        assert rewriter.rewrite(text) == "Lunch with [[Rhys|Rhetts]]."

    def test_known_misspelling_corrected(self) -> None:
        text = f"Lunch with {tag('Rhys', 'Rhetts')}."
        rewriter = LinkRewriter([resolved("Rhys", RHYS_WITH_MISSPELLING, "Rhetts")])

        assert rewriter.rewrite(text) == "Lunch with [[Rhys]]."

    def test_heading_mentions_never_linked(self) -> None:
        text = f"## Lunch with {tag('Aidan', 'Aiden')}\n{tag('Aidan', 'Aiden')} ordered soup."
        record = Record(path="People/Aidan.md", basename="Aidan")
        rewriter = LinkRewriter([resolved("Aidan", record, "Aiden")])

        assert rewriter.rewrite(text) == "## Lunch with Aidan\n[[Aidan]] ordered soup."

    def test_unresolved_mentions_unwrapped(self) -> None:
        text = f"{tag('Zelda')} and {tag('Mystery Person', 'someone')} arrived."
        rewriter = LinkRewriter([Selection(entity=make_entity("Zelda"))])

        assert rewriter.rewrite(text) == "Zelda and someone arrived."

    def test_new_record_target(self) -> None:
        text = f"Met {tag('Mira', 'Mira')} at the market."
        selection = Selection(entity=make_entity("Mira")).override(
            new_record=NewRecord(basename="Mira Patel")
        )

        rewritten = LinkRewriter([selection]).rewrite(text)

        assert rewritten.startswith("Met [[Mira Patel")
        assert rewritten.endswith("]] at the market.")

    def test_plain_text_untouched(self) -> None:
        text = "No mentions here.\n\n- [[Existing link]]"
        assert LinkRewriter([]).rewrite(text) == text
