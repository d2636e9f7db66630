"""
Tests for the actionability gate.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import pytest

from shipit_kernels.suggest.actionability import GATE_RULES, GateContext, RESCUED_SIGNAL_FLOOR
from shipit_kernels.suggest.classify import classify_section, initial_record
from shipit_kernels.suggest.config import ThresholdConfig
from shipit_kernels.suggest.models import IntentClassification


LAUNCH_NOTE = "## Launch plan\n\nMove the launch from the 12th to the 19th.\n"
EXPORT_NOTE = "## Export\n\nAdd CSV export to reports.\n"
SMALL_TALK_NOTE = "## Notes\n\nThe weather was nice today.\n"
CTO_NOTE = "## Feedback\n\nThe CTO is asking for audit exports before renewal.\n"


class TestGateRules:

    def test_priority_order(self):
        assert [r.name for r in GATE_RULES] == [
            "plan_change_protected",
            "out_of_scope_dominant",
            "imperative_floor",
            "below_threshold_rescued",
            "below_threshold",
            "borderline_short_rescued",
            "borderline_short",
            "above_threshold",
        ]
        assert [r.priority for r in GATE_RULES] == sorted(r.priority for r in GATE_RULES)

    def test_short_section_penalty(self, make_section):
        section = make_section(SMALL_TALK_NOTE)
        intent = IntentClassification()
        ctx = GateContext(section, intent, initial_record(section, intent), ThresholdConfig())
        assert ctx.threshold == pytest.approx(0.65)


class TestEvaluateActionability:

    def test_plan_change_bypasses_threshold(self, make_classified):
        cs = make_classified(LAUNCH_NOTE)
        assert cs.record.plan_change_protected
        assert cs.actionability.rule == "plan_change_protected"
        assert cs.is_actionable
        assert "bypassed" in cs.actionability.reason

    def test_user_need_is_actionable(self, make_classified):
        cs = make_classified("Users need better error visibility when background jobs fail silently.")
        assert cs.actionable_signal >= 0.76
        assert cs.is_actionable
        assert cs.actionability.rule == "above_threshold"

    def test_imperative_floor(self, make_classified):
        cs = make_classified(EXPORT_NOTE)
        assert cs.actionability.rule == "imperative_floor"
        assert cs.is_actionable

    def test_below_threshold(self, make_classified):
        cs = make_classified(SMALL_TALK_NOTE)
        assert cs.actionability.rule == "below_threshold"
        assert not cs.is_actionable
        assert not cs.emits

    def test_rescued_by_b_signal(self, make_classified):
        cs = make_classified(CTO_NOTE)
        assert cs.actionability.rule == "below_threshold_rescued"
        assert cs.is_actionable
        assert cs.actionability.rescued_by_b_signal
        assert cs.record.rescued_by_b_signal
        assert cs.actionable_signal == pytest.approx(RESCUED_SIGNAL_FLOOR)

    def test_out_of_scope_dominant(self, make_section):
        section = make_section("## Sync\n\nTeam offsite is on Monday next week.\n")
        cs = classify_section(section, ThresholdConfig(), intent=IntentClassification(calendar=0.9))
        assert cs.actionability.rule == "out_of_scope_dominant"
        assert not cs.is_actionable

    def test_trace_records_gate_rule(self, make_classified):
        cs = make_classified(EXPORT_NOTE)
        assert "gate:imperative_floor" in cs.record.trace

    def test_higher_threshold_from_config(self, make_section):
        section = make_section("Users need better error visibility when background jobs fail silently.")
        cs = classify_section(section, ThresholdConfig(t_action=0.7))
        assert cs.actionability.rule in ("below_threshold", "below_threshold_rescued")
