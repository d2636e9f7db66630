"""
Actionability gate: does a section yield any suggestion at all?

The decision is an ordered list of ``GateRule`` entries evaluated top-down;
the first rule whose predicate holds decides. The order is a literal tuple
so that regressions show up in diffs and in ``test_actionability``.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Callable, Optional, Tuple

from shipit_kernels.suggest.b_signal_seeding import best_rescue_signal
from shipit_kernels.suggest.config import ThresholdConfig
from shipit_kernels.suggest.intent import starts_with_action_verb
from shipit_kernels.suggest.models import (
    ActionabilityResult,
    DecisionRecord,
    IntentClassification,
    LineType,
    Section,
)
from shipit_kernels.suggest.signals import Signal
from shipit_kernels.suggest.text_utils import preprocess_line, split_sentences

logger = logging.getLogger(__name__)

OOS_DOMINANCE_FLOOR = 0.75
OOS_DOMINANCE_MARGIN = 0.20
SHORT_SECTION_LINES = 2
BORDERLINE_LINES = 3
BORDERLINE_MARGIN = 0.1
RESCUED_SIGNAL_FLOOR = 0.7


@dataclass(frozen=True)
class GateContext:
    """Everything a gate predicate may look at."""
    section: Section
    intent: IntentClassification
    record: DecisionRecord
    thresholds: ThresholdConfig

    @property
    def num_lines(self) -> int:
        return self.section.structural_features.num_lines

    @property
    def threshold(self) -> float:
        penalty = self.thresholds.short_section_penalty if self.num_lines <= SHORT_SECTION_LINES else 0.0
        return self.thresholds.t_action + penalty

    @property
    def margin(self) -> float:
        return self.intent.actionable_signal - self.threshold

    @cached_property
    def rescue_signal(self) -> Optional[Signal]:
        return best_rescue_signal(self.section)


def _out_of_scope_dominant(c: GateContext) -> bool:
    i = c.intent
    oos = max(i.calendar, i.communication)
    in_scope = max(i.plan_change, i.micro_tasks, i.new_workstream, i.status_informational, i.research)
    return oos >= OOS_DOMINANCE_FLOOR and oos - in_scope >= OOS_DOMINANCE_MARGIN


def _imperative_floor(c: GateContext) -> bool:
    for line in c.section.body_lines:
        if line.line_type in (LineType.BLANK, LineType.CODE):
            continue
        if any(starts_with_action_verb(s) for s in split_sentences(preprocess_line(line.text))):
            return True
    return False


def _below_threshold(c: GateContext) -> bool:
    return c.margin < 0


def _borderline_short(c: GateContext) -> bool:
    return c.num_lines <= BORDERLINE_LINES and c.margin < BORDERLINE_MARGIN


@dataclass(frozen=True)
class GateRule:
    name: str
    priority: int
    predicate: Callable[[GateContext], bool]
    actionable: bool
    rescued: bool = False


GATE_RULES: Tuple[GateRule, ...] = (
    GateRule("plan_change_protected", 1, lambda c: c.record.plan_change_protected, True),
    GateRule("out_of_scope_dominant", 2, _out_of_scope_dominant, False),
    GateRule("imperative_floor", 3, _imperative_floor, True),
    GateRule("below_threshold_rescued", 4, lambda c: _below_threshold(c) and c.rescue_signal is not None,
             True, rescued=True),
    GateRule("below_threshold", 5, _below_threshold, False),
    GateRule("borderline_short_rescued", 6, lambda c: _borderline_short(c) and c.rescue_signal is not None,
             True, rescued=True),
    GateRule("borderline_short", 7, _borderline_short, False),
    GateRule("above_threshold", 8, lambda c: True, True),
)


def _reason(rule: GateRule, c: GateContext) -> str:
    s, t = c.intent.actionable_signal, c.threshold
    if rule.name == "plan_change_protected":
        return "plan_change intent with concrete delta or schedule event (threshold bypassed)"
    if rule.name == "out_of_scope_dominant":
        return (f"out-of-scope signal {max(c.intent.calendar, c.intent.communication):.2f} "
                f"dominates in-scope signals")
    if rule.name == "imperative_floor":
        return "sentence opens with an action verb"
    if rule.rescued:
        sig = c.rescue_signal
        return (f"signal {s:.2f} below {t:.2f}, rescued by {sig.signal_type.value} "
                f"(confidence {sig.confidence:.2f})")
    if rule.name == "below_threshold":
        return f"signal {s:.2f} below threshold {t:.2f}"
    if rule.name == "borderline_short":
        return f"short section with borderline margin {s - t:.2f}"
    return f"signal {s:.2f} meets threshold {t:.2f}"


def evaluate_actionability(
    section: Section,
    intent: IntentClassification,
    record: DecisionRecord,
    thresholds: ThresholdConfig,
) -> Tuple[ActionabilityResult, DecisionRecord]:
    """Apply ``GATE_RULES`` in order; returns the result and the extended record."""
    ctx = GateContext(section, intent, record, thresholds)
    rule = next(r for r in GATE_RULES if r.predicate(ctx))
    signal = intent.actionable_signal
    if rule.rescued:
        signal = max(signal, RESCUED_SIGNAL_FLOOR)

    result = ActionabilityResult(
        actionable=rule.actionable,
        reason=_reason(rule, ctx),
        rule=rule.name,
        actionable_signal=signal,
        out_of_scope_signal=intent.out_of_scope_signal,
        rescued_by_b_signal=rule.rescued,
    )
    record = record.with_trace(f"gate:{rule.name}", rescued_by_b_signal=rule.rescued)
    logger.debug(
        f"[actionability] {section.section_id} actionable={result.actionable} "
        f"rule={rule.name} signal={signal:.2f}"
    )
    return result, record
