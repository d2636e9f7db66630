"""
Score refinement, threshold filtering, ordering and the display cap.

The pipeline is uncapped: ``rank_suggestions`` never drops a suggestion
for display reasons. ``apply_display_cap`` is a separate presentation
helper, and it never hides a ``project_update``.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Dict, List, Tuple

from shipit_kernels.suggest.config import GeneratorConfig, ScoreWeights, ThresholdConfig
from shipit_kernels.suggest.lexicons import DATE_RE, STOPWORDS
from shipit_kernels.suggest.models import ClassifiedSection, Suggestion, SuggestionScores, SuggestionType
from shipit_kernels.suggest.text_utils import words

logger = logging.getLogger(__name__)

OWNER_RE = re.compile(r"\b(?:owner|assigned to|owned by)\s*:?\s+([A-Z][a-z]+)")


# ---------------------------------------------------------------------------
# Component scores
# ---------------------------------------------------------------------------

def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def section_actionability_score(cs: ClassifiedSection) -> float:
    i = cs.intent
    f = cs.structural_features
    score = cs.actionable_signal
    score -= 0.3 * max(i.communication, i.research, i.calendar, i.micro_tasks)
    if f.has_quarter_refs or f.has_version_refs:
        score += 0.1
    if f.has_launch_keywords:
        score += 0.15
    if f.num_lines <= 2:
        score -= 0.15
    return _clamp(score)


def type_choice_score(cs: ClassifiedSection) -> float:
    pc, nw = cs.intent.plan_change, cs.intent.new_workstream
    margin = abs(pc - nw)
    score = 0.5 + 0.5 * margin
    if pc < 0.3 and nw < 0.3:
        score -= 0.2
    if margin < 0.1:
        score -= 0.15
    if max(pc, nw) > 0.7 and margin > 0.3:
        score += 0.1
    return _clamp(score)


def _content_words(text: str) -> List[str]:
    return [w for w in words(text) if w not in STOPWORDS and len(w) > 2]


def synthesis_score(s: Suggestion, cs: ClassifiedSection) -> float:
    """Grounding of the suggestion text in the section and its evidence."""
    suggestion_words = _content_words(f"{s.title} {s.context.body}")
    if not suggestion_words:
        return 0.7
    section_words = set(_content_words(f"{cs.heading_text} {cs.raw_text}"))
    evidence_words = set(_content_words(" ".join(span.text for span in s.evidence_spans)))

    score = 0.7
    overlap = sum(1 for w in suggestion_words if w in section_words) / len(suggestion_words)
    if overlap > 0.5:
        score += 0.15
    elif overlap < 0.2:
        score -= 0.2

    suggestion_text = f"{s.title} {s.context.body}"
    for owner in OWNER_RE.findall(suggestion_text):
        if owner not in cs.raw_text:
            score -= 0.1
    for date in DATE_RE.findall(suggestion_text):
        if date.lower() not in cs.raw_text.lower():
            score -= 0.1

    coverage = sum(1 for w in suggestion_words if w in evidence_words) / len(suggestion_words)
    if coverage < 0.2:
        score -= 0.15
    return _clamp(score)


def overall_score(scores: SuggestionScores, weights: ScoreWeights) -> float:
    return _clamp(
        weights.actionability * scores.section_actionability
        + weights.type_choice * scores.type_choice_confidence
        + weights.synthesis * scores.synthesis_confidence
    )


def refine_scores(s: Suggestion, cs: ClassifiedSection, weights: ScoreWeights) -> Suggestion:
    type_conf = s.scores.type_choice_confidence if s.metadata.get("explicit_type") else type_choice_score(cs)
    scores = SuggestionScores(
        section_actionability=section_actionability_score(cs),
        type_choice_confidence=type_conf,
        synthesis_confidence=synthesis_score(s, cs),
    )
    scores = replace(scores, overall=overall_score(scores, weights))
    return replace(s, scores=scores)


# ---------------------------------------------------------------------------
# Threshold and ordering
# ---------------------------------------------------------------------------

def apply_thresholds(
    suggestions: List[Suggestion],
    sections: Dict[str, ClassifiedSection],
    thresholds: ThresholdConfig,
) -> Tuple[List[Suggestion], List[Suggestion]]:
    """
    Mark high-confidence candidates and drop the only class the threshold
    may drop: non-update candidates of non-actionable sections whose overall
    score is below ``t_overall_min``.
    """
    kept, dropped = [], []
    for s in suggestions:
        cs = sections.get(s.section_id)
        actionable = cs is not None and cs.is_actionable
        if (
            s.type != SuggestionType.PROJECT_UPDATE
            and not actionable
            and s.scores.overall < thresholds.t_overall_min
        ):
            dropped.append(s)
            continue
        high = (
            s.scores.section_actionability >= thresholds.t_section_min
            and s.scores.overall >= thresholds.t_overall_min
            and not s.needs_clarification
        )
        kept.append(replace(s, is_high_confidence=high))
    if dropped:
        logger.debug(f"[ranking] {len(dropped)} candidate(s) below t_overall_min")
    return kept, dropped


def order_suggestions(suggestions: List[Suggestion]) -> List[Suggestion]:
    """``project_update`` first, then by descending overall; stable on ties."""
    indexed = list(enumerate(suggestions))
    indexed.sort(key=lambda pair: (
        0 if pair[1].type == SuggestionType.PROJECT_UPDATE else 1,
        -pair[1].scores.overall,
        pair[0],
    ))
    return [s for _, s in indexed]


def rank_suggestions(
    suggestions: List[Suggestion],
    sections: Dict[str, ClassifiedSection],
    config: GeneratorConfig,
) -> Tuple[List[Suggestion], List[Suggestion]]:
    """Refine scores, apply thresholds, order. Returns (ranked, dropped)."""
    refined = [
        refine_scores(s, sections[s.section_id], config.weights) if s.section_id in sections else s
        for s in suggestions
    ]
    kept, dropped = apply_thresholds(refined, sections, config.thresholds)
    return order_suggestions(kept), dropped


def apply_display_cap(
    suggestions: List[Suggestion],
    max_suggestions: int,
) -> Tuple[List[Suggestion], List[Suggestion]]:
    """
    Split an ordered list into (visible, capped). Every ``project_update`` is
    visible; the remaining slots, if any, go to other types in order.
    """
    updates = [s for s in suggestions if s.type == SuggestionType.PROJECT_UPDATE]
    others = [s for s in suggestions if s.type != SuggestionType.PROJECT_UPDATE]
    slots = max(0, max_suggestions - len(updates))
    visible_ids = {id(s) for s in updates} | {id(s) for s in others[:slots]}
    visible = [s for s in suggestions if id(s) in visible_ids]
    capped = [s for s in suggestions if id(s) not in visible_ids]
    return visible, capped
