"""
Quality validators run on every candidate after synthesis.

    V2  anti-vacuity     generic management-speak with no domain nouns
    V3  evidence sanity  spans must map onto the section text
    V4  heading-only     idea titled by its heading with no explicit ask
    grounding            sentence-sourced evidence must be verbatim

A failing ``idea``/``risk``/``bug`` candidate is dropped with the
validator's reason. A failing ``project_update`` is kept and flagged for
clarification instead, so plan changes are never lost to a validator.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from shipit_kernels.suggest.config import ThresholdConfig
from shipit_kernels.suggest.lexicons import EXPLICIT_ASK_RE
from shipit_kernels.suggest.models import (
    ClassifiedSection,
    DropReason,
    Suggestion,
    SuggestionType,
)
from shipit_kernels.suggest.text_utils import normalize_for_match

logger = logging.getLogger(__name__)

GENERIC_VERBS = frozenset((
    "improve", "optimize", "align", "streamline", "clarify", "enhance",
    "coordinate", "prioritize", "manage", "facilitate", "leverage",
    "synergize", "enable", "empower", "drive", "ensure", "support",
    "address", "discuss", "review", "assess", "evaluate",
))
GENERIC_NOUNS = frozenset((
    "process", "communication", "stakeholders", "priorities", "efficiency",
    "operations", "alignment", "workflows", "collaboration", "productivity",
    "visibility", "transparency", "accountability", "ownership", "outcomes",
    "deliverables", "resources", "bandwidth", "capacity", "synergy",
    "impact", "value",
))
COMMON_WORDS = frozenset((
    "about", "after", "again", "also", "because", "before", "being", "both",
    "could", "does", "doing", "during", "each", "even", "every", "first",
    "from", "going", "good", "have", "having", "here", "into", "just",
    "know", "last", "like", "make", "many", "more", "most", "much", "need",
    "only", "other", "over", "same", "should", "some", "such", "take",
    "than", "that", "their", "them", "then", "there", "these", "they",
    "thing", "this", "those", "through", "time", "very", "want", "well",
    "what", "when", "where", "which", "while", "will", "with", "would",
    "your",
))
TOKEN_RE = re.compile(r"[^a-z0-9\s]")

TITLE_GENERIC_MAX = 0.7
MIN_DOMAIN_NOUNS = 2
MIN_IDEA_CHARS = 20
PARTIAL_MATCH_CHARS = 50


@dataclass(frozen=True)
class ValidationResult:
    passed: bool
    validator: str
    reason: str = ""
    drop_reason: Optional[DropReason] = None


def _pass(name: str) -> ValidationResult:
    return ValidationResult(True, name)


def tokenize(text: str) -> List[str]:
    return [w for w in TOKEN_RE.sub(" ", text.lower()).split() if len(w) > 2]


def generic_ratio(text: str) -> float:
    tokens = tokenize(text)
    if not tokens:
        return 0.0
    generic = sum(1 for t in tokens if t in GENERIC_VERBS or t in GENERIC_NOUNS)
    return generic / len(tokens)


def domain_nouns(text: str) -> List[str]:
    """Distinct tokens of >= 4 chars that are neither generic nor common."""
    seen = []
    for t in tokenize(text):
        if len(t) < 4 or t in GENERIC_VERBS or t in GENERIC_NOUNS or t in COMMON_WORDS:
            continue
        if t not in seen:
            seen.append(t)
    return seen


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------

def validate_v2_anti_vacuity(s: Suggestion, cs: ClassifiedSection, t: ThresholdConfig) -> ValidationResult:
    ratio = generic_ratio(f"{s.title} {s.payload.text}")
    nouns = domain_nouns(cs.raw_text)
    if ratio > t.t_generic and len(nouns) < MIN_DOMAIN_NOUNS:
        return ValidationResult(False, "V2_anti_vacuity",
                                f"too generic (ratio {ratio:.2f}, domain nouns {len(nouns)})",
                                DropReason.VALIDATION_V2_TOO_GENERIC)
    title_ratio = generic_ratio(s.title)
    if title_ratio > TITLE_GENERIC_MAX:
        return ValidationResult(False, "V2_anti_vacuity", f"title too generic (ratio {title_ratio:.2f})",
                                DropReason.VALIDATION_V2_TOO_GENERIC)
    return _pass("V2_anti_vacuity")


def validate_v3_evidence_sanity(s: Suggestion, cs: ClassifiedSection, t: ThresholdConfig) -> ValidationResult:
    if not s.evidence_spans:
        return ValidationResult(False, "V3_evidence_sanity", "no evidence spans",
                                DropReason.VALIDATION_V3_EVIDENCE_TOO_WEAK)
    section_norm = normalize_for_match(cs.raw_text)
    for span in s.evidence_spans:
        span_norm = normalize_for_match(span.text)
        if span_norm not in section_norm and span_norm[:PARTIAL_MATCH_CHARS] not in section_norm:
            return ValidationResult(False, "V3_evidence_sanity", "evidence does not match section text",
                                    DropReason.VALIDATION_V3_EVIDENCE_TOO_WEAK)

    if cs.record.intent_label == "plan_change":
        return _pass("V3_evidence_sanity")

    section_chars = len(re.sub(r"\s", "", cs.raw_text))
    evidence_chars = sum(len(re.sub(r"\s", "", span.text)) for span in s.evidence_spans)
    if section_chars < MIN_IDEA_CHARS and evidence_chars < MIN_IDEA_CHARS:
        return ValidationResult(False, "V3_evidence_sanity",
                                f"evidence too short (section {section_chars}, evidence {evidence_chars})",
                                DropReason.VALIDATION_V3_EVIDENCE_TOO_WEAK)
    return _pass("V3_evidence_sanity")


def validate_v4_heading_only(s: Suggestion, cs: ClassifiedSection, t: ThresholdConfig) -> ValidationResult:
    if s.type != SuggestionType.IDEA or s.title_source != "heading":
        return _pass("V4_heading_only")
    if EXPLICIT_ASK_RE.search(cs.raw_text):
        return _pass("V4_heading_only")
    return ValidationResult(False, "V4_heading_only", "heading-derived title without an explicit ask",
                            DropReason.VALIDATION_V4_HEADING_ONLY)


def validate_grounding(s: Suggestion, cs: ClassifiedSection, t: ThresholdConfig) -> ValidationResult:
    if not s.is_sentence_sourced:
        return _pass("grounding")
    raw = cs.raw_text.lower()
    for span in s.evidence_spans:
        if span.text.strip().lower() not in raw:
            return ValidationResult(False, "grounding", f"span not verbatim: {span.text[:60]!r}",
                                    DropReason.UNGROUNDED_EVIDENCE)
    return _pass("grounding")


VALIDATORS: Tuple[Tuple[str, Callable[[Suggestion, ClassifiedSection, ThresholdConfig], ValidationResult]], ...] = (
    ("V2_anti_vacuity", validate_v2_anti_vacuity),
    ("V3_evidence_sanity", validate_v3_evidence_sanity),
    ("V4_heading_only", validate_v4_heading_only),
    ("grounding", validate_grounding),
)


def run_validators(s: Suggestion, cs: ClassifiedSection, t: ThresholdConfig) -> Optional[ValidationResult]:
    """First failing validator, or None when every validator passes."""
    for _, validator in VALIDATORS:
        result = validator(s, cs, t)
        if not result.passed:
            return result
    return None


def apply_validators(
    candidates: List[Suggestion],
    sections: Dict[str, ClassifiedSection],
    thresholds: ThresholdConfig,
) -> Tuple[List[Suggestion], List[Tuple[Suggestion, ValidationResult]]]:
    """Split candidates into (kept, dropped-with-result); updates are flagged, never dropped."""
    kept: List[Suggestion] = []
    dropped: List[Tuple[Suggestion, ValidationResult]] = []
    for s in candidates:
        cs = sections[s.section_id]
        failure = run_validators(s, cs, thresholds)
        if failure is None:
            kept.append(s)
        elif s.type == SuggestionType.PROJECT_UPDATE:
            logger.debug(f"[validation] {s.suggestion_id} flagged: {failure.validator} ({failure.reason})")
            kept.append(s.flag_clarification(failure.validator))
        else:
            logger.debug(f"[validation] {s.suggestion_id} dropped: {failure.validator} ({failure.reason})")
            dropped.append((s, failure))
    return kept, dropped
