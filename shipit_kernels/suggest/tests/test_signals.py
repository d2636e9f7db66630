"""
Tests for sentence-level b-signal extraction and seeding.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

from shipit_kernels.suggest.b_signal_seeding import (
    best_rescue_signal,
    collect_section_signals,
    evidence_for_sentence,
    seed_b_signal_candidates,
    timeline_title,
)
from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.models import SuggestionType
from shipit_kernels.suggest.signals import (
    Signal,
    SignalType,
    dedupe_signals,
    extract_object,
    extract_signals,
    is_process_noise,
    signal_title,
)


FEEDBACK_NOTE = """\
## Customer feedback

Customers want SSO before the renewal.
We are pushing the launch date by two weeks.
Checkout is broken for EU cards.
"""


def _types(signals):
    return {s.signal_type for s in signals}


class TestExtractSignals:

    def test_feature_demand(self):
        signals = extract_signals("Customers want SSO before the renewal.", 0)
        assert SignalType.FEATURE_DEMAND in _types(signals)

    def test_demand_amplifier_raises_confidence(self):
        plain = extract_signals("Users need a bulk export for invoices.", 0)
        amplified = extract_signals("Users need bulk export, it is a blocker for expansion.", 0)
        demand = [s for s in plain if s.signal_type == SignalType.FEATURE_DEMAND][0]
        boosted = [s for s in amplified if s.signal_type == SignalType.FEATURE_DEMAND][0]
        assert demand.confidence == 0.65
        assert boosted.confidence == 0.75

    def test_plan_change(self):
        signals = extract_signals("We are pushing the launch date by two weeks.", 1)
        plan = [s for s in signals if s.signal_type == SignalType.PLAN_CHANGE]
        assert plan and plan[0].proposed_type == SuggestionType.PROJECT_UPDATE
        assert plan[0].sentence_index == 1

    def test_bug_needs_unhedged_sentence(self):
        assert SignalType.BUG in _types(extract_signals("Checkout is broken for EU cards.", 0))
        assert SignalType.BUG not in _types(extract_signals("Checkout might be broken for EU cards.", 0))

    def test_pii_risk(self):
        signals = extract_signals("We are logging PII in the request logs.", 0)
        risk = [s for s in signals if s.signal_type == SignalType.SCOPE_RISK]
        assert risk and risk[0].confidence == 0.85

    def test_process_noise_yields_nothing(self):
        assert extract_signals("Unclear who owns the final QA sign-off for the release.", 0) == []


class TestHelpers:

    def test_is_process_noise(self):
        assert is_process_noise("Unclear who owns the sign-off.")
        assert not is_process_noise("Owner: Dana, sign-off by Friday.")
        assert not is_process_noise("Add SSO for enterprise tenants.")

    def test_extract_object(self):
        assert extract_object("Users need a bulk export for invoices.") == "bulk export for invoices"
        assert extract_object("Nothing to see here.") is None

    def test_signal_titles(self):
        demand = Signal(SignalType.FEATURE_DEMAND, "idea", SuggestionType.IDEA, 0.65,
                        "Users need a bulk export for invoices.", 0)
        assert signal_title(demand) == "Implement bulk export for invoices"
        risk = Signal(SignalType.SCOPE_RISK, "risk", SuggestionType.RISK, 0.7, "Security concern.", 0)
        assert signal_title(risk, heading="Security considerations") == "Risk: Security considerations"

    def test_dedupe_keeps_highest_confidence(self):
        low = Signal(SignalType.SCOPE_RISK, "risk", SuggestionType.RISK, 0.7, "s", 0)
        high = Signal(SignalType.SCOPE_RISK, "risk", SuggestionType.RISK, 0.85, "s", 0)
        other = Signal(SignalType.BUG, "bug", SuggestionType.BUG, 0.7, "s", 0)
        result = dedupe_signals([low, other, high])
        assert result == [high, other]


class TestSeeding:

    def test_collect_section_signals(self, make_section):
        signals = collect_section_signals(make_section(FEEDBACK_NOTE))
        types = _types(signals)
        assert SignalType.FEATURE_DEMAND in types
        assert SignalType.PLAN_CHANGE in types
        assert SignalType.BUG in types

    def test_best_rescue_signal(self, make_section):
        signal = best_rescue_signal(make_section(FEEDBACK_NOTE))
        assert signal is not None
        assert signal.confidence >= 0.65
        assert best_rescue_signal(make_section("## Notes\n\nThe weather was nice today.\n")) is None

    def test_evidence_is_verbatim_sentence(self, make_section):
        section = make_section(FEEDBACK_NOTE)
        span = evidence_for_sentence(section, "Checkout is broken for EU cards.")
        assert span.text == "Checkout is broken for EU cards."
        assert span.start_line == span.end_line == 4

    def test_seeded_candidates_are_grounded(self, make_classified):
        cs = make_classified(FEEDBACK_NOTE)
        seeds = seed_b_signal_candidates(cs, IdAllocator(), None)
        assert seeds
        raw = cs.raw_text.lower()
        for seed in seeds:
            assert seed.source == "b-signal"
            assert seed.suggestion_id.startswith("sug_bsig_")
            for span in seed.evidence_spans:
                assert span.text.lower() in raw

    def test_timeline_title_cuts_at_word_boundary(self):
        sentence = "Beta lands on March 3 and GA follows on April 10 if QA signs off."
        title = timeline_title(sentence)
        assert title == "Update: Beta lands on March 3 and GA follows on April 10 if QA"
        assert not title.endswith("...")
        words = sentence.rstrip(".").split()
        assert all(w in words for w in title[len("Update: "):].split())

    def test_short_timeline_title_kept_whole(self):
        assert timeline_title("- Launch: GA on April 14") == "Update: GA on April 14"
