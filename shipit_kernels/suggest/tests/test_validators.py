"""
Tests for the candidate validators.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

from shipit_kernels.suggest.config import ThresholdConfig
from shipit_kernels.suggest.models import DropReason, SuggestionType
from shipit_kernels.suggest.validators import (
    apply_validators,
    domain_nouns,
    generic_ratio,
    run_validators,
    validate_grounding,
    validate_v2_anti_vacuity,
    validate_v3_evidence_sanity,
    validate_v4_heading_only,
)


INVOICE_NOTE = "## Exports\n\nFinance asked for a bulk export of invoices.\n"
FOREIGN_SPAN = ((2, 2, "Marketing wants a new homepage banner."),)


class TestVocabulary:

    def test_generic_ratio(self):
        assert generic_ratio("improve process communication") == 1.0
        assert generic_ratio("add bulk invoice export") == 0.0
        assert generic_ratio("") == 0.0

    def test_domain_nouns(self):
        nouns = domain_nouns("Finance asked for a bulk export of invoices")
        assert nouns == ["finance", "asked", "bulk", "export", "invoices"]


class TestValidators:

    def test_grounded_idea_passes_all(self, make_classified, suggestion_factory):
        cs = make_classified(INVOICE_NOTE)
        assert run_validators(suggestion_factory(), cs, ThresholdConfig()) is None

    def test_v2_rejects_generic_text(self, make_classified, suggestion_factory):
        cs = make_classified("## Sync\n\nImprove process communication.\n")
        s = suggestion_factory(
            title="Improve process communication",
            body="Improve alignment and visibility.",
            spans=((2, 2, "Improve process communication."),),
        )
        result = validate_v2_anti_vacuity(s, cs, ThresholdConfig())
        assert not result.passed
        assert result.drop_reason == DropReason.VALIDATION_V2_TOO_GENERIC

    def test_v3_rejects_foreign_evidence(self, make_classified, suggestion_factory):
        cs = make_classified(INVOICE_NOTE)
        result = validate_v3_evidence_sanity(suggestion_factory(spans=FOREIGN_SPAN), cs, ThresholdConfig())
        assert not result.passed
        assert result.drop_reason == DropReason.VALIDATION_V3_EVIDENCE_TOO_WEAK

    def test_v3_rejects_missing_evidence(self, make_classified, suggestion_factory):
        cs = make_classified(INVOICE_NOTE)
        result = validate_v3_evidence_sanity(suggestion_factory(spans=()), cs, ThresholdConfig())
        assert not result.passed

    def test_v4_heading_only_idea(self, make_classified, suggestion_factory):
        cs = make_classified("## Reporting dashboard\n\nThe current dashboard is slow for large accounts.\n")
        s = suggestion_factory(title="Reporting dashboard", title_source="heading")
        result = validate_v4_heading_only(s, cs, ThresholdConfig())
        assert not result.passed
        assert result.drop_reason == DropReason.VALIDATION_V4_HEADING_ONLY

    def test_v4_passes_with_explicit_ask(self, make_classified, suggestion_factory):
        cs = make_classified("## Reporting dashboard\n\nWe should add paging to the dashboard.\n")
        s = suggestion_factory(title="Reporting dashboard", title_source="heading")
        assert validate_v4_heading_only(s, cs, ThresholdConfig()).passed

    def test_grounding_rejects_paraphrase(self, make_classified, suggestion_factory):
        cs = make_classified(INVOICE_NOTE)
        s = suggestion_factory(
            spans=((2, 2, "Finance asked for bulk exports."),),
            metadata={"source": "b-signal"},
        )
        result = validate_grounding(s, cs, ThresholdConfig())
        assert not result.passed
        assert result.drop_reason == DropReason.UNGROUNDED_EVIDENCE

    def test_grounding_ignores_section_sourced(self, make_classified, suggestion_factory):
        cs = make_classified(INVOICE_NOTE)
        s = suggestion_factory(spans=((2, 2, "Finance asked for bulk exports."),))
        assert validate_grounding(s, cs, ThresholdConfig()).passed


class TestApplyValidators:

    def test_update_is_flagged_not_dropped(self, make_classified, suggestion_factory):
        cs = make_classified(INVOICE_NOTE)
        idea = suggestion_factory(suggestion_id="sug_note-tes_1", spans=FOREIGN_SPAN)
        update = suggestion_factory(
            suggestion_id="sug_note-tes_2",
            suggestion_type=SuggestionType.PROJECT_UPDATE,
            title="Invoice export scope",
            spans=FOREIGN_SPAN,
        )
        kept, dropped = apply_validators([idea, update], {cs.section_id: cs}, ThresholdConfig())

        assert [s.suggestion_id for s in kept] == ["sug_note-tes_2"]
        assert kept[0].needs_clarification
        assert not kept[0].is_high_confidence
        assert kept[0].clarification_reasons == ("V3_evidence_sanity",)

        assert len(dropped) == 1
        s, result = dropped[0]
        assert s.suggestion_id == "sug_note-tes_1"
        assert result.validator == "V3_evidence_sanity"
