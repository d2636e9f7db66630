"""
Rule-based intent scorer: Section -> IntentClassification.

Every body line is preprocessed (quotes, case, markers, whitespace) and split
into sentences; each sentence is scored by the maximum of the independent
positive rules in ``SENTENCE_RULES``. The section's actionable signal is the
best sentence score, boosted by product nouns and by several distinct
action-prefixed bullets. Calendar, communication and micro-admin markers
form the out-of-scope signal, clamped when a real plan change is present.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Set, Tuple

from shipit_kernels.suggest.lexicons import (
    ACTION_VERBS,
    ACTION_VERBS_RE,
    ACTIONABILITY_VERB_PREFIX_RE,
    CALENDAR_RE,
    CAPABILITY_NOUNS_RE,
    CHANGE_OPERATORS_RE,
    COMMUNICATION_RE,
    COMPLETION_RE,
    DECISION_RE,
    DIRECTIVE_RE,
    HEDGED_RE,
    IMPLICIT_NEED_RE,
    IMPLICIT_PURPOSE_RE,
    MICRO_TASK_RE,
    NEGATION_RE,
    PAIN_CONTEXT_RE,
    PAIN_RE,
    PM_REQUEST_RE,
    PRODUCT_NOUNS_RE,
    ROLE_ASSIGNMENT_RE,
    STATUS_RE,
    STRUCTURED_TASK_RE,
)
from shipit_kernels.suggest.models import IntentClassification, LineType, Section
from shipit_kernels.suggest.text_utils import ascii_quotes, preprocess_line, split_sentences

logger = logging.getLogger(__name__)

TARGET_BONUS = 0.2
TARGET_BONUS_FLOOR = 0.6
MULTI_VERB_SIGNAL = 0.8
MULTI_VERB_MAX_OOS = 0.4
OOS_CLAMP = 0.3
PLAN_SHARE = 0.4
MIN_SENTENCE_CHARS = 5

OOS_SCORES = {"calendar": 0.6, "communication": 0.6, "micro_tasks": 0.4}


def starts_with_action_verb(sentence: str) -> bool:
    """True when the (preprocessed) sentence opens with a recognised action verb."""
    first = sentence.split(" ", 1)[0].strip(",:;") if sentence else ""
    return first in ACTION_VERBS


def _implicit_idea(s: str) -> bool:
    return bool(
        IMPLICIT_NEED_RE.search(s)
        and IMPLICIT_PURPOSE_RE.search(s)
        and CAPABILITY_NOUNS_RE.search(s)
        and not CALENDAR_RE.search(s)
        and not COMPLETION_RE.search(s)
    )


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SentenceRule:
    name: str
    score: float
    predicate: Callable[[str], bool]
    plan_dominant: bool = False


SENTENCE_RULES: Tuple[SentenceRule, ...] = (
    SentenceRule("directive_verb", 1.0, lambda s: bool(DIRECTIVE_RE.search(s))),
    SentenceRule("hedged_directive", 0.9, lambda s: bool(HEDGED_RE.search(s))),
    SentenceRule("verb_first", 0.9, starts_with_action_verb),
    SentenceRule("role_assignment", 0.85, lambda s: bool(ROLE_ASSIGNMENT_RE.search(s)), plan_dominant=True),
    SentenceRule("change_operator", 0.8, lambda s: bool(CHANGE_OPERATORS_RE.search(s)), plan_dominant=True),
    SentenceRule("pm_request", 0.76, lambda s: bool(PM_REQUEST_RE.search(s))),
    SentenceRule("decision_marker", 0.70, lambda s: bool(DECISION_RE.search(s)), plan_dominant=True),
    SentenceRule("status_update", 0.70, lambda s: bool(STATUS_RE.search(s)), plan_dominant=True),
    SentenceRule("implicit_idea", 0.61, _implicit_idea),
)

STRUCTURED_TASK_SCORE = 0.8
IMPLICIT_FEATURE_REQUEST_SCORE = 0.76

PLAN_DOMINANT_RULES: FrozenSet[str] = frozenset(
    [r.name for r in SENTENCE_RULES if r.plan_dominant] + ["structured_task"]
)


@dataclass
class IntentDiagnostics:
    """How a section's intent vector was reached (debug and explain output)."""
    actionable_signal: float = 0.0
    out_of_scope_signal: float = 0.0
    fired_rules: Set[str] = field(default_factory=set)
    oos_categories: Dict[str, float] = field(default_factory=dict)
    multi_verb_count: int = 0
    oos_clamped: bool = False
    plan_dominant: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "actionable_signal": round(self.actionable_signal, 4),
            "out_of_scope_signal": round(self.out_of_scope_signal, 4),
            "fired_rules": sorted(self.fired_rules),
            "oos_categories": {k: round(v, 4) for k, v in sorted(self.oos_categories.items())},
            "multi_verb_count": self.multi_verb_count,
            "oos_clamped": self.oos_clamped,
            "plan_dominant": self.plan_dominant,
        }


def score_sentence(sentence: str) -> Tuple[float, Set[str]]:
    """Score one preprocessed sentence; negated action sentences score zero."""
    if NEGATION_RE.search(sentence) and ACTION_VERBS_RE.search(sentence):
        return 0.0, set()
    fired = {rule.name for rule in SENTENCE_RULES if rule.predicate(sentence)}
    best = max((rule.score for rule in SENTENCE_RULES if rule.name in fired), default=0.0)
    if best >= TARGET_BONUS_FLOOR and PRODUCT_NOUNS_RE.search(sentence):
        best = min(1.0, best + TARGET_BONUS)
        fired.add("target_bonus")
    return best, fired


# ---------------------------------------------------------------------------
# Section scoring
# ---------------------------------------------------------------------------

def score_section(section: Section) -> Tuple[IntentClassification, IntentDiagnostics]:
    """Compute the seven-category intent vector and its diagnostics."""
    diag = IntentDiagnostics()
    signal = 0.0
    non_hedged_signal = 0.0
    verbs_seen: Set[str] = set()

    for line in section.body_lines:
        if line.line_type in (LineType.BLANK, LineType.CODE):
            continue
        text = preprocess_line(line.text)
        if len(text) < MIN_SENTENCE_CHARS:
            continue

        for category, pattern in (("calendar", CALENDAR_RE), ("communication", COMMUNICATION_RE),
                                  ("micro_tasks", MICRO_TASK_RE)):
            if pattern.search(text):
                diag.oos_categories[category] = max(diag.oos_categories.get(category, 0.0),
                                                    OOS_SCORES[category])

        if line.line_type == LineType.LIST_ITEM:
            m = ACTIONABILITY_VERB_PREFIX_RE.match(text)
            if m:
                verbs_seen.add(m.group(1))

        if STRUCTURED_TASK_RE.match(ascii_quotes(line.text).lower().strip()):
            diag.fired_rules.add("structured_task")
            signal = max(signal, STRUCTURED_TASK_SCORE)
            non_hedged_signal = max(non_hedged_signal, STRUCTURED_TASK_SCORE)

        for sentence in split_sentences(text):
            if len(sentence) < MIN_SENTENCE_CHARS:
                continue
            score, fired = score_sentence(sentence)
            diag.fired_rules |= fired
            signal = max(signal, score)
            if fired - {"hedged_directive", "target_bonus"}:
                non_hedged_signal = max(non_hedged_signal, score)

    context = f"{section.heading_text}\n{section.raw_text}".lower()
    if PAIN_RE.search(context) and PAIN_CONTEXT_RE.search(context):
        diag.fired_rules.add("implicit_feature_request")
        signal = max(signal, IMPLICIT_FEATURE_REQUEST_SCORE)
        non_hedged_signal = max(non_hedged_signal, IMPLICIT_FEATURE_REQUEST_SCORE)

    oos = max(diag.oos_categories.values(), default=0.0)
    diag.multi_verb_count = len(verbs_seen)
    multi_verb = diag.multi_verb_count >= 2 and oos < MULTI_VERB_MAX_OOS
    if multi_verb:
        diag.fired_rules.add("multi_verb")
        signal = max(signal, MULTI_VERB_SIGNAL)

    num_lines = section.structural_features.num_lines
    if ("change_operator" in diag.fired_rules or multi_verb
            or (non_hedged_signal >= 0.8 and num_lines >= 5)):
        if oos > OOS_CLAMP:
            diag.oos_clamped = True
        diag.oos_categories = {k: min(v, OOS_CLAMP) for k, v in diag.oos_categories.items()}
        oos = min(oos, OOS_CLAMP)

    diag.actionable_signal = signal
    diag.out_of_scope_signal = oos
    diag.plan_dominant = bool(diag.fired_rules & PLAN_DOMINANT_RULES)

    if diag.plan_dominant:
        plan_change, new_workstream = signal, PLAN_SHARE * signal
    else:
        plan_change, new_workstream = PLAN_SHARE * signal, signal

    intent = IntentClassification(
        plan_change=plan_change,
        new_workstream=new_workstream,
        status_informational=min(1.0, max(0.0, 0.5 - signal + 0.3 * oos)),
        communication=diag.oos_categories.get("communication", 0.0),
        research=0.0,
        calendar=diag.oos_categories.get("calendar", 0.0),
        micro_tasks=diag.oos_categories.get("micro_tasks", 0.0),
        force_role_assignment="role_assignment" in diag.fired_rules,
        force_decision_marker="decision_marker" in diag.fired_rules,
    )
    logger.debug(
        f"[intent] {section.section_id} signal={signal:.2f} oos={oos:.2f} "
        f"label={intent.top_label()} rules={sorted(diag.fired_rules)}"
    )
    return intent, diag


def classify_intent(section: Section) -> IntentClassification:
    return score_section(section)[0]
