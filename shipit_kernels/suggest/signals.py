"""
Sentence-level signal extractors ("b-signals").

Four independent extractors look at one sentence at a time:

    FEATURE_DEMAND  external actor + desire verb        -> idea
    PLAN_CHANGE     milestone + shift verb              -> project_update
    SCOPE_RISK      actionable conditional, or risk     -> risk
                    vocabulary outside plan-change shape
    BUG             failure vocabulary, not hedged      -> bug

They back both the actionability rescue and the dense-paragraph splitter.
Process-noise sentences (ownership ambiguity, sign-off chatter) are
recognised here too so that every caller filters them the same way.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from shipit_kernels.suggest.models import SuggestionType
from shipit_kernels.suggest.text_utils import collapse_whitespace, truncate_at_word


class SignalType(str, Enum):
    FEATURE_DEMAND = "FEATURE_DEMAND"
    PLAN_CHANGE = "PLAN_CHANGE"
    SCOPE_RISK = "SCOPE_RISK"
    BUG = "BUG"


@dataclass(frozen=True)
class Signal:
    """One extractor hit on one sentence."""
    signal_type: SignalType
    label: str
    proposed_type: SuggestionType
    confidence: float
    sentence: str
    sentence_index: int

    def to_dict(self):
        return {
            "signal_type": self.signal_type.value,
            "label": self.label,
            "proposed_type": self.proposed_type.value,
            "confidence": self.confidence,
            "sentence": self.sentence,
            "sentence_index": self.sentence_index,
        }


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

EXTERNAL_ACTOR_RE = re.compile(r"\b(?:users?|customers?|cto|cs|sales|trial|prospects?|they|them)\b", re.I)
DESIRE_RE = re.compile(r"\b(?:need|needs|require|requires|want|wants|requesting|asking for|screaming for)\b", re.I)
DEMAND_AMPLIFIER_RE = re.compile(r"\b(?:blocker|failing|expansion)\b", re.I)

MILESTONE_RE = re.compile(r"\b(?:date|q[1-4]|launch|release|v1)\b", re.I)
SHIFT_VERB_RE = re.compile(
    r"\b(?:push(?:ing|ed)?|delay(?:ing|ed)?|mov(?:e|ing|ed)|slip(?:ping|ped)?|pull(?:ing|ed)?)\b", re.I
)
TIME_UNIT_RE = re.compile(r"\b(?:\d+\s*)?(?:days?|weeks?|months?|sprints?|quarters?)\b", re.I)

RISK_PREAMBLE_RE = re.compile(
    r"^(?:some\s+)?(?:\w+\s+)?(?:concern|concerns|risk|worry|worried|fear)\s+that\b", re.I
)
ACTIONABLE_CONDITIONAL_RE = re.compile(
    r"\b(?:if we don't|if we do not|might need to be|could require|may force|might be pulled|could block)\b",
    re.I,
)
CONDITIONAL_RE = re.compile(r"\b(?:if|unless)\b", re.I)
RELEASE_TERMS_RE = re.compile(r"\b(?:release|launch|rollout|scope|mobile app|pulled|app store)\b", re.I)
RISK_TOKENS_RE = re.compile(
    r"\b(?:risk|concern|pii|gdpr|compliance|security|vulnerability|exposure|blocker)\b", re.I
)
PII_RE = re.compile(r"\bpii\b", re.I)
PII_CONTEXT_RE = re.compile(r"\b(?:logging|logs?|logged|user\s+ids?|captur\w*)\b", re.I)

BUG_TOKENS_RE = re.compile(
    r"\b(?:failing|broken|latency|error|regression|crash|not behaving|doesn't work|does not work)\b", re.I
)
HEDGE_RE = re.compile(r"\b(?:if|might|could|may|risk|concern)\b", re.I)

PROCESS_NOISE_ALLOW_RE = re.compile(
    r"\bowner\s*:\s*\S|\b(?:pm|engineering|product manager|customer success|cs|design|eng|qa|"
    r"security|legal)\s+to\s+\w",
    re.I,
)
PROCESS_NOISE_RE = re.compile(
    r"\bwho owns\b|\bunclear who\b|\bambiguity around\b|\bambiguous\b|\bhand-?over\b|"
    r"\bsign.?off\b|\bfinal qa\b|\bprocess ownership\b|"
    r"\bownership\s+(?:of|around|for|issue|question|ambiguity|gap|problem|concern)\b",
    re.I,
)

OBJECT_RE = re.compile(
    r"\b(?:need|needs|require|requires|want|wants|requesting|asking\s+for|screaming\s+for|"
    r"implement|build|add|fix|push(?:ing)?|pull(?:ing)?|slip(?:ping)?|mov(?:e|ing|ed)|"
    r"delay(?:ing|ed)?|fail(?:ing)?|block(?:ing)?)\s+([^.,;!?\n]{3,120})",
    re.I,
)
OBJECT_CUT_RE = re.compile(r"\s+\b(?:but|until|because|so|when|unless)\b.*$", re.I)
LEADING_ARTICLE_RE = re.compile(r"^(?:the|a|an)\s+", re.I)

OBJECT_MAX_CHARS = 50


def is_process_noise(text: str) -> bool:
    """Ownership/sign-off chatter, unless it names an explicit owner or role."""
    if PROCESS_NOISE_ALLOW_RE.search(text):
        return False
    return bool(PROCESS_NOISE_RE.search(text))


def extract_object(sentence: str) -> Optional[str]:
    """Object phrase following the first demand/action verb, if any."""
    m = OBJECT_RE.search(sentence)
    if not m:
        return None
    obj = OBJECT_CUT_RE.sub("", m.group(1))
    obj = LEADING_ARTICLE_RE.sub("", collapse_whitespace(obj)).strip(" )(\"'")
    if len(obj) > OBJECT_MAX_CHARS:
        cut = obj[:OBJECT_MAX_CHARS]
        space = cut.rfind(" ")
        obj = cut[:space] if space > 10 else cut
    return obj if len(obj) >= 3 else None


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------

def _feature_demand(sentence: str, index: int) -> Optional[Signal]:
    if not (EXTERNAL_ACTOR_RE.search(sentence) and DESIRE_RE.search(sentence)):
        return None
    confidence = 0.75 if DEMAND_AMPLIFIER_RE.search(sentence) else 0.65
    return Signal(SignalType.FEATURE_DEMAND, "idea", SuggestionType.IDEA, confidence, sentence, index)


def _plan_change(sentence: str, index: int) -> Optional[Signal]:
    if not (MILESTONE_RE.search(sentence) and SHIFT_VERB_RE.search(sentence)):
        return None
    return Signal(SignalType.PLAN_CHANGE, "update", SuggestionType.PROJECT_UPDATE, 0.75, sentence, index)


def is_plan_change_shaped(sentence: str) -> bool:
    """``slip by 2 sprints due to security review`` reads as a schedule change."""
    return bool(SHIFT_VERB_RE.search(sentence) and TIME_UNIT_RE.search(sentence))


def _scope_risk(sentence: str, index: int) -> Optional[Signal]:
    if RISK_PREAMBLE_RE.search(sentence.strip()):
        return None
    fired = bool(ACTIONABLE_CONDITIONAL_RE.search(sentence))
    if not fired and CONDITIONAL_RE.search(sentence) and RELEASE_TERMS_RE.search(sentence):
        fired = True
    if not fired and RISK_TOKENS_RE.search(sentence) and not is_plan_change_shaped(sentence):
        fired = True
    if not fired:
        return None
    confidence = 0.85 if PII_RE.search(sentence) and PII_CONTEXT_RE.search(sentence) else 0.7
    return Signal(SignalType.SCOPE_RISK, "risk", SuggestionType.RISK, confidence, sentence, index)


def _bug(sentence: str, index: int) -> Optional[Signal]:
    if not BUG_TOKENS_RE.search(sentence) or HEDGE_RE.search(sentence):
        return None
    return Signal(SignalType.BUG, "bug", SuggestionType.BUG, 0.7, sentence, index)


EXTRACTORS: Tuple[Tuple[str, Callable[[str, int], Optional[Signal]]], ...] = (
    ("feature_demand", _feature_demand),
    ("plan_change", _plan_change),
    ("scope_risk", _scope_risk),
    ("bug", _bug),
)


def extract_signals(sentence: str, index: int) -> List[Signal]:
    """Run every extractor on one sentence (process noise yields nothing)."""
    if is_process_noise(sentence):
        return []
    hits = []
    for _, extractor in EXTRACTORS:
        signal = extractor(sentence, index)
        if signal is not None:
            hits.append(signal)
    return hits


def dedupe_signals(signals: List[Signal]) -> List[Signal]:
    """Keep the highest-confidence signal per (sentence index, proposed type)."""
    best = {}
    order = []
    for signal in signals:
        key = (signal.sentence_index, signal.proposed_type)
        if key not in best:
            order.append(key)
            best[key] = signal
        elif signal.confidence > best[key].confidence:
            best[key] = signal
    return [best[k] for k in order]


# ---------------------------------------------------------------------------
# Titles
# ---------------------------------------------------------------------------

RISK_HEADING_RE = re.compile(r"\b(?:security|compliance|risk|considerations)\b", re.I)


def signal_title(signal: Signal, heading: str = "") -> str:
    obj = extract_object(signal.sentence)
    if signal.signal_type == SignalType.FEATURE_DEMAND:
        return f"Implement {obj}" if obj else "Implement requested feature"
    if signal.signal_type == SignalType.PLAN_CHANGE:
        return f"Update: {obj}" if obj else "Update: project plan"
    if signal.signal_type == SignalType.SCOPE_RISK:
        if heading and RISK_HEADING_RE.search(heading):
            return f"Risk: {truncate_at_word(heading, 60)}"
        return f"Risk: {obj}" if obj else "Mitigate release risk"
    return f"Fix {obj} issue" if obj else "Fix reported issue"
