"""
Tests for the type arbiter and its override rules.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

from shipit_kernels.suggest.models import (
    DropReason,
    IntentClassification,
    SectionType,
    SuggestionType,
)
from shipit_kernels.suggest.type_arbiter import (
    TYPE_RULES,
    arbitrate_type,
    classify_base_type,
    rule_drop_reason,
)


MARKET_NOTE = "## Market focus\n\nWe should shift from enterprise to SMB customers.\n"
PRICING_NOTE = "## Pricing\n\nPM to draft the pricing brief.\n"
BLACK_BOX_NOTE = """\
## Black Box Prioritization System

- Introduce a scoring model that weights revenue impact against effort
- Build a ranked queue of the top opportunities
- Add confidence bands so low-evidence items are flagged
- Create a shared view for sales and support requests
"""
LAUNCH_NOTE = "## Launch plan\n\nMove the launch from the 12th to the 19th.\n"


class TestTypeRules:

    def test_priority_order(self):
        assert [r.name for r in TYPE_RULES] == [
            "decision_or_role_flag",
            "plan_change_protected",
            "strategy_only_initiative",
            "strategy_only_excluded",
            "spec_framework_idea",
            "strategy_heading_idea",
            "new_workstream_rescue",
            "b_signal_rescue",
            "base_non_actionable",
            "base",
        ]

    def test_drop_reasons(self):
        assert rule_drop_reason("strategy_only_excluded") == DropReason.STRATEGY_ONLY_EXCLUDED
        assert rule_drop_reason("base_non_actionable") == DropReason.TYPE_NON_ACTIONABLE
        assert rule_drop_reason("base") is None
        assert rule_drop_reason("no_such_rule") is None


class TestArbitrateType:

    def test_strategy_only_excluded(self, make_classified):
        cs = make_classified(MARKET_NOTE)
        assert cs.record.intent_label == "plan_change"
        assert cs.record.strategy_only
        assert cs.is_actionable
        assert cs.type_decision.rule == "strategy_only_excluded"
        assert cs.type_decision.excluded
        assert cs.type_label is None
        assert not cs.emits

    def test_role_flag_forces_update(self, make_classified):
        cs = make_classified(PRICING_NOTE)
        assert cs.type_decision.rule == "decision_or_role_flag"
        assert cs.type_label == SuggestionType.PROJECT_UPDATE
        assert cs.type_confidence >= 0.8

    def test_plan_change_forces_update(self, make_classified):
        cs = make_classified(LAUNCH_NOTE)
        assert cs.type_decision.rule == "plan_change_protected"
        assert cs.type_label == SuggestionType.PROJECT_UPDATE

    def test_spec_framework_is_idea(self, make_classified):
        cs = make_classified(BLACK_BOX_NOTE)
        assert cs.type_decision.rule == "spec_framework_idea"
        assert cs.type_label == SuggestionType.IDEA
        assert cs.emits

    def test_b_signal_rescue_is_idea(self, make_classified):
        cs = make_classified("## Feedback\n\nThe CTO is asking for audit exports before renewal.\n")
        assert cs.type_decision.rule == "b_signal_rescue"
        assert cs.type_label == SuggestionType.IDEA

    def test_idempotent(self, make_classified):
        cs = make_classified(BLACK_BOX_NOTE)
        first, _ = arbitrate_type(cs.section, cs.intent, cs.actionability, cs.record)
        second, _ = arbitrate_type(cs.section, cs.intent, cs.actionability, cs.record)
        assert first == second
        assert first == cs.type_decision

    def test_label_matches_suggested_type(self, make_classified):
        for note in (PRICING_NOTE, BLACK_BOX_NOTE, LAUNCH_NOTE):
            cs = make_classified(note)
            assert cs.type_label.value == cs.suggested_type.value


class TestBaseType:

    def test_non_actionable_when_both_low(self, make_section):
        section = make_section("## Notes\n\nThe weather was nice today.\n")
        base = classify_base_type(section, IntentClassification())
        assert base.section_type == SectionType.NON_ACTIONABLE

    def test_bullet_heavy_mutation_bonus(self, make_section):
        flat = make_section("## Notes\n\nThe weather was nice today.\n")
        bullets = make_section("## Notes\n\n- Sunny\n- Warm\n- Windy\n")
        intent = IntentClassification()
        assert classify_base_type(bullets, intent).p_mutation > classify_base_type(flat, intent).p_mutation
