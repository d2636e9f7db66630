"""
Type arbiter: plan/update mutation vs. new idea.

A base classifier weighs "mutation" patterns (adjust, current, from..to,
descope) against "artifact" patterns (create a, initiative, goal:, net new)
plus 0.3 of the matching intent score. ``TYPE_RULES`` then applies the
section-level overrides in a fixed priority order; the first matching rule
decides and is the single source of truth for ``type_label``.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from shipit_kernels.suggest.lexicons import (
    EXECUTION_ARTIFACT_PATTERNS,
    PLAN_MUTATION_PATTERNS,
    has_concrete_delta,
)
from shipit_kernels.suggest.models import (
    ActionabilityResult,
    DecisionRecord,
    DropReason,
    IntentClassification,
    Section,
    SectionType,
    SuggestionType,
    TypeDecision,
)
from shipit_kernels.suggest.section_signals import (
    has_initiative_quality,
    is_spec_framework_section,
    is_strategy_heading,
)

logger = logging.getLogger(__name__)

PATTERN_SATURATION = 4 * 0.3
INTENT_WEIGHT = 0.3
NON_ACTIONABLE_FLOOR = 0.2
BULLET_HEAVY_ITEMS = 3
BULLET_MUTATION_BONUS = 0.15
FORCED_MUTATION_FLOOR = 0.8
STRATEGY_IDEA_CONFIDENCE = 0.5
NEW_WORKSTREAM_RESCUE = 0.5


@dataclass(frozen=True)
class BaseType:
    section_type: SectionType
    confidence: float
    p_mutation: float
    p_artifact: float


def _strength(text: str, patterns) -> float:
    count = sum(1 for p in patterns if p.search(text))
    return min(1.0, count / max(1.0, PATTERN_SATURATION))


def classify_base_type(section: Section, intent: IntentClassification) -> BaseType:
    """Pattern density plus 0.3-weighted intent; non_actionable when both < 0.2."""
    text = section.full_text
    p_mut = _strength(text, PLAN_MUTATION_PATTERNS) + INTENT_WEIGHT * intent.plan_change
    p_art = _strength(text, EXECUTION_ARTIFACT_PATTERNS) + INTENT_WEIGHT * intent.new_workstream
    if section.structural_features.num_list_items >= BULLET_HEAVY_ITEMS:
        p_mut += BULLET_MUTATION_BONUS
    if intent.force_decision_marker or intent.force_role_assignment:
        p_mut = max(p_mut, FORCED_MUTATION_FLOOR)
    p_mut, p_art = min(1.0, p_mut), min(1.0, p_art)

    if p_mut < NON_ACTIONABLE_FLOOR and p_art < NON_ACTIONABLE_FLOOR:
        return BaseType(SectionType.NON_ACTIONABLE, 1.0 - max(p_mut, p_art), p_mut, p_art)
    confidence = min(1.0, 0.5 + abs(p_mut - p_art))
    if p_mut > p_art:
        return BaseType(SectionType.PROJECT_UPDATE, confidence, p_mut, p_art)
    return BaseType(SectionType.IDEA, confidence, p_mut, p_art)


# ---------------------------------------------------------------------------
# Override rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TypeContext:
    section: Section
    intent: IntentClassification
    actionability: ActionabilityResult
    record: DecisionRecord
    base: BaseType

    @property
    def plan_change_label(self) -> bool:
        return self.record.intent_label == "plan_change"


@dataclass(frozen=True)
class TypeRule:
    """A rule with a ``drop_reason`` excludes the section; the final ``base``
    rule keeps the base classification."""
    name: str
    priority: int
    predicate: Callable[[TypeContext], bool]
    outcome: Optional[SectionType]
    confidence: Callable[[TypeContext], float]
    drop_reason: Optional[DropReason] = None


def _base_confidence(c: TypeContext) -> float:
    return c.base.confidence


def _strategy_heading_idea(c: TypeContext) -> bool:
    s = c.section
    return (
        is_strategy_heading(s.heading_text)
        and s.structural_features.num_list_items >= 3
        and not has_concrete_delta(s.full_text)
    )


TYPE_RULES: Tuple[TypeRule, ...] = (
    TypeRule("decision_or_role_flag", 1,
             lambda c: c.intent.force_decision_marker or c.intent.force_role_assignment,
             SectionType.PROJECT_UPDATE, lambda c: max(c.base.confidence, FORCED_MUTATION_FLOOR)),
    TypeRule("plan_change_protected", 2,
             lambda c: c.plan_change_label and not c.record.strategy_only,
             SectionType.PROJECT_UPDATE, _base_confidence),
    TypeRule("strategy_only_initiative", 3,
             lambda c: c.plan_change_label and c.record.strategy_only
             and has_initiative_quality(c.section.full_text),
             SectionType.IDEA, lambda c: STRATEGY_IDEA_CONFIDENCE),
    TypeRule("strategy_only_excluded", 4,
             lambda c: c.plan_change_label and c.record.strategy_only,
             None, lambda c: 0.0, DropReason.STRATEGY_ONLY_EXCLUDED),
    TypeRule("spec_framework_idea", 5,
             lambda c: is_spec_framework_section(c.section),
             SectionType.IDEA, _base_confidence),
    TypeRule("strategy_heading_idea", 6, _strategy_heading_idea,
             SectionType.IDEA, _base_confidence),
    TypeRule("new_workstream_rescue", 7,
             lambda c: c.base.section_type == SectionType.NON_ACTIONABLE
             and c.intent.new_workstream >= NEW_WORKSTREAM_RESCUE,
             SectionType.IDEA, lambda c: max(c.base.confidence, c.intent.new_workstream)),
    TypeRule("b_signal_rescue", 8,
             lambda c: c.record.rescued_by_b_signal,
             SectionType.IDEA, _base_confidence),
    TypeRule("base_non_actionable", 9,
             lambda c: c.base.section_type == SectionType.NON_ACTIONABLE,
             None, _base_confidence, DropReason.TYPE_NON_ACTIONABLE),
    TypeRule("base", 10, lambda c: True, None, _base_confidence),
)

_LABELS = {
    SectionType.IDEA: SuggestionType.IDEA,
    SectionType.PROJECT_UPDATE: SuggestionType.PROJECT_UPDATE,
}


def rule_drop_reason(rule_name: str) -> Optional[DropReason]:
    return next((r.drop_reason for r in TYPE_RULES if r.name == rule_name), None)


def arbitrate_type(
    section: Section,
    intent: IntentClassification,
    actionability: ActionabilityResult,
    record: DecisionRecord,
) -> Tuple[TypeDecision, DecisionRecord]:
    """Apply ``TYPE_RULES`` in order. Pure, so applying it twice changes nothing."""
    base = classify_base_type(section, intent)
    ctx = TypeContext(section, intent, actionability, record, base)
    rule = next(r for r in TYPE_RULES if r.predicate(ctx))

    if rule.drop_reason is not None:
        outcome = None
    elif rule.name == "base":
        outcome = base.section_type
    else:
        outcome = rule.outcome
    excluded = outcome is None
    decision = TypeDecision(
        suggested_type=outcome if outcome is not None else SectionType.NON_ACTIONABLE,
        type_confidence=rule.confidence(ctx),
        type_label=_LABELS.get(outcome) if outcome is not None else None,
        rule=rule.name,
        excluded=excluded,
        p_mutation=base.p_mutation,
        p_artifact=base.p_artifact,
    )
    logger.debug(
        f"[type] {section.section_id} rule={rule.name} label="
        f"{decision.type_label.value if decision.type_label else None} "
        f"p_mut={base.p_mutation:.2f} p_art={base.p_artifact:.2f}"
    )
    return decision, record.with_trace(f"type:{rule.name}")
