"""
Tests for the rule-based intent scorer.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import pytest

from shipit_kernels.suggest.intent import (
    SENTENCE_RULES,
    classify_intent,
    score_section,
    score_sentence,
    starts_with_action_verb,
)
from shipit_kernels.suggest.models import INTENT_LABELS


class TestScoreSentence:

    def test_rule_order_is_fixed(self):
        assert [r.name for r in SENTENCE_RULES] == [
            "directive_verb",
            "hedged_directive",
            "verb_first",
            "role_assignment",
            "change_operator",
            "pm_request",
            "decision_marker",
            "status_update",
            "implicit_idea",
        ]

    def test_pm_request(self):
        score, fired = score_sentence("users need better error visibility when background jobs fail silently.")
        assert score == pytest.approx(0.76)
        assert "pm_request" in fired

    def test_verb_first(self):
        score, fired = score_sentence("add csv export to the reports page")
        assert score == pytest.approx(0.9)
        assert "verb_first" in fired

    def test_target_bonus_caps_at_one(self):
        score, fired = score_sentence("we should improve onboarding")
        assert score == pytest.approx(1.0)
        assert "target_bonus" in fired

    def test_negation_zeroes_score(self):
        score, fired = score_sentence("don't add more filters to the dashboard")
        assert score == 0.0
        assert fired == set()

    def test_change_operator(self):
        score, fired = score_sentence("move the launch from the 12th to the 19th.")
        assert score == pytest.approx(0.8)
        assert "change_operator" in fired

    def test_no_signal(self):
        score, fired = score_sentence("the weather was nice today.")
        assert score == 0.0

    def test_starts_with_action_verb(self):
        assert starts_with_action_verb("fix the login redirect")
        assert not starts_with_action_verb("the login redirect is broken")
        assert not starts_with_action_verb("")


class TestScoreSection:

    def test_plan_dominant_routing(self, make_section):
        section = make_section("## Launch plan\n\nMove the launch from the 12th to the 19th.\n")
        intent, diag = score_section(section)
        assert diag.plan_dominant
        assert intent.plan_change == pytest.approx(0.8)
        assert intent.new_workstream == pytest.approx(0.32)
        assert intent.top_label() == "plan_change"

    def test_new_workstream_routing(self, make_section):
        section = make_section("Users need better error visibility when background jobs fail silently.")
        intent, diag = score_section(section)
        assert not diag.plan_dominant
        assert intent.new_workstream >= 0.76
        assert intent.top_label() == "new_workstream"

    def test_out_of_scope_categories(self, make_section):
        section = make_section("## Follow-ups\n\nSend the deck to the team on Monday.\n")
        intent = classify_intent(section)
        assert intent.communication == pytest.approx(0.6)
        assert intent.calendar == pytest.approx(0.6)
        assert intent.out_of_scope_signal == pytest.approx(0.6)

    def test_change_operator_clamps_out_of_scope(self, make_section):
        section = make_section("## Launch\n\nMove the launch to Friday and email the customers.\n")
        intent, diag = score_section(section)
        assert diag.oos_clamped
        assert intent.calendar == pytest.approx(0.3)
        assert intent.communication == pytest.approx(0.3)

    def test_multi_verb_bullets(self, make_section):
        section = make_section(
            "## Cleanup\n\n"
            "- Add export to reports\n"
            "- Fix the login redirect\n"
            "- Update the billing docs\n"
        )
        intent, diag = score_section(section)
        assert "multi_verb" in diag.fired_rules
        assert diag.multi_verb_count == 3
        assert intent.actionable_signal >= 0.8

    def test_role_assignment_flag(self, make_section):
        intent = classify_intent(make_section("## Pricing\n\nPM to draft the pricing brief.\n"))
        assert intent.force_role_assignment
        assert not intent.force_decision_marker

    def test_scores_within_unit_interval(self, make_section):
        section = make_section(
            "## Mixed\n\n"
            "We should improve onboarding.\n"
            "Send the notes on Friday.\n"
            "Fix typo in the handbook.\n"
        )
        intent = classify_intent(section)
        for label in INTENT_LABELS:
            assert 0.0 <= getattr(intent, label) <= 1.0

    def test_code_blocks_ignored(self, make_section):
        section = make_section("## Snippet\n\n```\nadd_user(name)\nfix_all()\n```\n")
        intent, diag = score_section(section)
        assert diag.actionable_signal == 0.0
