"""
Per-section classification: intent -> actionability gate -> type arbiter.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

from typing import Optional

from shipit_kernels.suggest.actionability import evaluate_actionability
from shipit_kernels.suggest.config import ThresholdConfig
from shipit_kernels.suggest.intent import classify_intent
from shipit_kernels.suggest.lexicons import has_concrete_delta, has_schedule_event
from shipit_kernels.suggest.models import (
    ClassifiedSection,
    DecisionRecord,
    IntentClassification,
    Section,
)
from shipit_kernels.suggest.type_arbiter import arbitrate_type


def initial_record(section: Section, intent: IntentClassification) -> DecisionRecord:
    """Facts every later stage relies on, fixed before the gate runs."""
    label = intent.top_label()
    text = section.full_text
    delta = has_concrete_delta(text)
    schedule = has_schedule_event(text)
    plan_change = label == "plan_change"
    return DecisionRecord(
        intent_label=label,
        has_concrete_delta=delta,
        has_schedule_event=schedule,
        strategy_only=plan_change and not (delta or schedule),
        plan_change_protected=plan_change and (delta or schedule),
        force_role_assignment=intent.force_role_assignment,
        force_decision_marker=intent.force_decision_marker,
    )


def classify_section(
    section: Section,
    thresholds: ThresholdConfig,
    intent: Optional[IntentClassification] = None,
) -> ClassifiedSection:
    """Classify one section; ``intent`` overrides the rule-based scorer (LLM blend)."""
    if intent is None:
        intent = classify_intent(section)
    record = initial_record(section, intent)
    actionability, record = evaluate_actionability(section, intent, record, thresholds)
    type_decision, record = arbitrate_type(section, intent, actionability, record)
    return ClassifiedSection(
        section=section,
        intent=intent,
        actionability=actionability,
        type_decision=type_decision,
        record=record,
    )
