"""
Tests for section consolidation and the final emission pass.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

from shipit_kernels.suggest.consolidate import (
    consolidate_by_section,
    is_consolidatable_section,
    merge_top_spans,
    section_has_delta_signal,
)
from shipit_kernels.suggest.final_emission import apply_final_emission, bullet_body
from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.models import DropReason, SuggestionType


EXPORT_IDEAS_NOTE = """\
## Export ideas

- Add CSV export to reports
- Add PDF export to invoices
- Add scheduled exports for admins
"""
TIMELINE_NOTE = """\
## Timeline

- Beta opens on March 3
- GA on April 14
"""


def _ideas(factory, section_id, suggestion_type=SuggestionType.IDEA):
    return [
        factory(
            suggestion_id="sug_note-tes_1",
            section_id=section_id,
            title="Add CSV export to reports",
            spans=((2, 2, "- Add CSV export to reports"),),
        ),
        factory(
            suggestion_id="sug_note-tes_2",
            section_id=section_id,
            suggestion_type=suggestion_type,
            title="Add PDF export to invoices",
            spans=((3, 3, "- Add PDF export to invoices"),),
        ),
    ]


class TestConsolidation:

    def test_delta_signal(self):
        assert section_has_delta_signal("Beta slips by 2 weeks")
        assert section_has_delta_signal("moved to Q3 2026")
        assert not section_has_delta_signal("Add CSV export to reports")

    def test_structured_section_is_consolidatable(self, make_classified):
        assert is_consolidatable_section(make_classified(EXPORT_IDEAS_NOTE))
        assert not is_consolidatable_section(make_classified("## Export\n\nAdd CSV export to reports.\n"))

    def test_ideas_collapse_into_one(self, make_classified, suggestion_factory):
        cs = make_classified(EXPORT_IDEAS_NOTE)
        candidates = _ideas(suggestion_factory, cs.section_id)
        result, merged = consolidate_by_section(candidates, {cs.section_id: cs}, IdAllocator())

        assert len(result) == 1
        consolidated = result[0]
        assert consolidated.suggestion_id == "sug_consolidated_note-tes_1"
        assert consolidated.title == "Export ideas"
        assert consolidated.source == "consolidated-section"
        assert consolidated.metadata["merged_ids"] == ["sug_note-tes_1", "sug_note-tes_2"]
        assert len(consolidated.evidence_spans) == 2
        assert consolidated.context.body == "Add CSV export to reports. Add PDF export to invoices."
        assert [pair[1] for pair in merged] == [consolidated.suggestion_id] * 2

    def test_mixed_types_are_left_alone(self, make_classified, suggestion_factory):
        cs = make_classified(EXPORT_IDEAS_NOTE)
        candidates = _ideas(suggestion_factory, cs.section_id, SuggestionType.BUG)
        result, merged = consolidate_by_section(candidates, {cs.section_id: cs}, IdAllocator())
        assert result == candidates
        assert merged == []

    def test_single_candidate_passes_through(self, make_classified, suggestion_factory):
        cs = make_classified(EXPORT_IDEAS_NOTE)
        candidates = _ideas(suggestion_factory, cs.section_id)[:1]
        result, merged = consolidate_by_section(candidates, {cs.section_id: cs}, IdAllocator())
        assert result == candidates

    def test_contained_spans_are_not_repeated(self, suggestion_factory):
        block = "- Add a scoring model\n- Build a ranked queue\n- Show confidence bands"
        candidates = [
            suggestion_factory(suggestion_id="sug_note-tes_1", spans=((2, 4, block),)),
            suggestion_factory(suggestion_id="sug_note-tes_2", spans=((3, 3, "- Build a ranked queue"),)),
            suggestion_factory(suggestion_id="sug_note-tes_3", spans=((6, 6, "- Export the queue"),)),
        ]
        spans = merge_top_spans(candidates)
        assert [(s.start_line, s.end_line) for s in spans] == [(2, 4), (6, 6)]

    def test_wider_span_replaces_contained_ones(self, suggestion_factory):
        candidates = [
            suggestion_factory(suggestion_id="sug_note-tes_1", spans=((2, 2, "- Add a scoring model"),)),
            suggestion_factory(suggestion_id="sug_note-tes_2", spans=((3, 3, "- Build a ranked queue"),)),
            suggestion_factory(
                suggestion_id="sug_note-tes_3",
                spans=((2, 3, "- Add a scoring model\n- Build a ranked queue"),),
            ),
        ]
        spans = merge_top_spans(candidates)
        assert len(spans) == 1
        assert spans[0].text == "- Add a scoring model\n- Build a ranked queue"

    def test_span_limit(self, suggestion_factory):
        candidates = [
            suggestion_factory(suggestion_id=f"sug_note-tes_{n}", spans=((n, n, f"- Item number {n}"),))
            for n in range(1, 8)
        ]
        assert len(merge_top_spans(candidates, limit=5)) == 5


class TestFinalEmission:

    def test_bullet_body(self):
        assert bullet_body(["one", "two"]) == "- one\n- two"

    def test_timeline_section_synthesizes_update(self, make_classified):
        cs = make_classified(TIMELINE_NOTE)
        outcome = apply_final_emission([], {cs.section_id: cs}, IdAllocator())

        assert len(outcome.suggestions) == 1
        update = outcome.suggestions[0]
        assert outcome.synthesized == [update]
        assert update.type == SuggestionType.PROJECT_UPDATE
        assert update.title == "Update: Timeline"
        assert update.payload.after_description == "- Beta opens on March 3\n- GA on April 14"
        assert update.suggestion_id == "sug_timeline_note-tes_1"
        assert (update.evidence_spans[0].start_line, update.evidence_spans[0].end_line) == (2, 3)

    def test_timeline_candidates_collapse(self, make_classified, suggestion_factory):
        cs = make_classified(TIMELINE_NOTE)
        candidates = [
            suggestion_factory(suggestion_id="sug_note-tes_1", section_id=cs.section_id,
                               title="Open beta", spans=((2, 2, "- Beta opens on March 3"),)),
            suggestion_factory(suggestion_id="sug_note-tes_2", section_id=cs.section_id,
                               title="Ship GA", spans=((3, 3, "- GA on April 14"),)),
        ]
        outcome = apply_final_emission(candidates, {cs.section_id: cs}, IdAllocator())

        assert len(outcome.suggestions) == 1
        update = outcome.suggestions[0]
        assert update.suggestion_id == "sug_note-tes_1"
        assert update.type == SuggestionType.PROJECT_UPDATE
        assert outcome.synthesized == []
        assert [(s.suggestion_id, reason, into) for s, reason, into in outcome.suppressed] == [
            ("sug_note-tes_2", DropReason.MERGED, "sug_note-tes_1"),
        ]
