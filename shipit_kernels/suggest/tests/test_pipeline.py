"""
End-to-end tests for the note-to-suggestion pipeline.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

from shipit_kernels.suggest.config import GeneratorConfig
from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.models import (
    DropReason,
    DropStage,
    IntentClassification,
    NoteInput,
    SuggestionType,
)
from shipit_kernels.suggest.pipeline import (
    generate_run_result,
    generate_run_result_with_debug,
    generate_suggestions,
)
from shipit_kernels.suggest.ranking import apply_display_cap


MIXED_NOTE = """\
## Launch plan

Move the launch from the 12th to the 19th.

## Export

Add CSV export to reports.

## Market focus

We should shift from enterprise to SMB customers.

## Notes

The weather was nice today.

## Feedback

The CTO is asking for audit exports before renewal.
"""

BLACK_BOX_NOTE = """\
## Black Box Prioritization System

- Introduce a scoring model that weights revenue impact against effort
- Build a ranked queue of the top opportunities
- Add confidence bands so low-evidence items are flagged
- Create a shared view for sales and support requests
"""


def _note(markdown: str, note_id: str = "note-pipe") -> NoteInput:
    return NoteInput(note_id=note_id, raw_markdown=markdown)


def _section_by_heading(run, heading):
    return next(s for s in run.debug.sections if s.heading_text == heading)


class TestProperties:

    def test_plan_change_with_delta_emits_update(self):
        run = generate_run_result_with_debug(_note(MIXED_NOTE))
        launch = _section_by_heading(run, "Launch plan")
        updates = [
            s for s in run.suggestions
            if s.section_id == launch.section_id and s.type == SuggestionType.PROJECT_UPDATE
        ]
        assert updates
        assert launch.plan_change_protected
        assert launch.emitted
        assert launch.drop_stage != DropStage.ACTIONABILITY

    def test_user_need_not_dropped_at_actionability(self):
        run = generate_run_result_with_debug(
            _note("Users need better error visibility when background jobs fail silently.")
        )
        section = run.debug.sections[0]
        assert section.actionability["actionable"]
        assert section.drop_stage != DropStage.ACTIONABILITY

    def test_strategy_only_section_is_excluded(self):
        run = generate_run_result_with_debug(_note(MIXED_NOTE))
        market = _section_by_heading(run, "Market focus")
        assert not [s for s in run.suggestions if s.section_id == market.section_id]
        assert market.drop_reason == DropReason.STRATEGY_ONLY_EXCLUDED
        assert market.drop_stage == DropStage.TYPE

    def test_structured_ideas_consolidate_to_one(self):
        result = generate_run_result(_note(BLACK_BOX_NOTE))
        ideas = result.by_type(SuggestionType.IDEA)
        assert len(result.suggestions) == 1
        assert len(ideas) == 1
        assert ideas[0].section_id == "sec_note-pip_1"

    def test_gated_timeline_section_still_surfaces_update(self):
        run = generate_run_result_with_debug(_note("## Timeline\n\n- Design review\n- Vendor kickoff\n"))
        updates = run.by_type(SuggestionType.PROJECT_UPDATE)
        assert len(updates) == 1
        assert updates[0].title == "Update: Timeline"
        assert updates[0].payload.after_description == "- Design review\n- Vendor kickoff"
        section = run.debug.sections[0]
        assert section.emitted
        assert section.drop_reason is None
        assert run.debug.invariants["no_internal_errors"]

    def test_sentence_evidence_is_verbatim(self):
        run = generate_run_result_with_debug(_note(MIXED_NOTE))
        raw_by_heading = {
            "Launch plan": "Move the launch from the 12th to the 19th.",
            "Feedback": "The CTO is asking for audit exports before renewal.",
        }
        section_raw = {
            s.section_id: raw_by_heading.get(s.heading_text, "") for s in run.debug.sections
        }
        sourced = [s for s in run.suggestions if s.is_sentence_sourced]
        assert sourced
        for s in sourced:
            for span in s.evidence_spans:
                assert span.text.lower() in section_raw[s.section_id].lower()
        assert run.debug.invariants["sentence_evidence_grounded"]

    def test_updates_survive_any_display_cap(self):
        result = generate_run_result(_note(MIXED_NOTE))
        updates = result.by_type(SuggestionType.PROJECT_UPDATE)
        assert updates
        for cap in (0, 1, 5):
            visible, capped = apply_display_cap(result.suggestions, cap)
            assert all(u in visible for u in updates)
            assert not [s for s in capped if s.type == SuggestionType.PROJECT_UPDATE]


class TestDeterminism:

    def test_identical_input_identical_keys(self):
        first = generate_run_result(_note(MIXED_NOTE))
        second = generate_run_result(_note(MIXED_NOTE))
        assert first.suggestion_keys == second.suggestion_keys
        assert [s.suggestion_id for s in first.suggestions] == [s.suggestion_id for s in second.suggestions]
        assert all(first.suggestion_keys)

    def test_keys_are_unique(self):
        result = generate_run_result(_note(MIXED_NOTE))
        assert len(set(result.suggestion_keys)) == len(result.suggestion_keys)

    def test_shared_allocator_keeps_counting(self):
        allocator = IdAllocator()
        generate_run_result(_note(MIXED_NOTE), allocator=allocator)
        second = generate_run_result(_note(MIXED_NOTE), allocator=allocator)
        fresh = generate_run_result(_note(MIXED_NOTE))
        assert fresh.suggestion_keys
        assert second.suggestion_keys != fresh.suggestion_keys


class TestRunShape:

    def test_updates_ordered_first(self):
        result = generate_run_result(_note(MIXED_NOTE))
        types = [s.type for s in result.suggestions]
        first_other = next((i for i, t in enumerate(types) if t != SuggestionType.PROJECT_UPDATE), len(types))
        assert all(t != SuggestionType.PROJECT_UPDATE for t in types[first_other:])

    def test_every_section_is_accounted_for(self):
        run = generate_run_result_with_debug(_note(MIXED_NOTE))
        assert len(run.debug.sections) == 5
        for section in run.debug.sections:
            assert section.emitted or section.drop_reason is not None
        assert run.debug.invariants["no_internal_errors"]
        assert run.debug.invariants["plan_change_sections_emit_update"]
        assert run.debug.emitted_count == len(run.suggestions)

    def test_small_talk_dropped_not_actionable(self):
        run = generate_run_result_with_debug(_note(MIXED_NOTE))
        notes = _section_by_heading(run, "Notes")
        assert notes.drop_reason == DropReason.NOT_ACTIONABLE

    def test_intent_override_drops_out_of_scope(self):
        note = _note("## Sync\n\nTeam offsite is on Monday next week.\n")
        run = generate_run_result(
            note,
            intents={"sec_note-pip_1": IntentClassification(calendar=0.9)},
            debug=True,
        )
        assert run.suggestions == []
        assert run.debug.sections[0].drop_reason == DropReason.OUT_OF_SCOPE

    def test_debug_only_when_requested(self):
        assert generate_run_result(_note(MIXED_NOTE)).debug is None
        assert generate_run_result(_note(MIXED_NOTE), config=GeneratorConfig(enable_debug=True)).debug
        d = generate_run_result_with_debug(_note(MIXED_NOTE)).to_dict()
        assert set(d) == {"suggestions", "debug"}

    def test_generate_suggestions_matches_run(self):
        suggestions = generate_suggestions(_note(MIXED_NOTE))
        assert [s.suggestion_key for s in suggestions] == generate_run_result(_note(MIXED_NOTE)).suggestion_keys

    def test_empty_note(self):
        result = generate_run_result(_note("   \n\n"))
        assert result.suggestions == []
