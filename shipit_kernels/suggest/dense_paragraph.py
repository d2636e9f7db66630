"""
Dense-paragraph fallback extractor.

A section with no list structure that is either a single line or a long
run of prose (>= 250 chars), and carries no topic-anchor phrase, is split
into sentences; each sentence runs through the b-signal extractors on its
own, so several distinct asks in one paragraph do not collapse into a single
suggestion.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
import re
from typing import List

from shipit_kernels.suggest.b_signal_seeding import section_sentences, signal_candidate
from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.lexicons import has_concrete_delta, has_schedule_event
from shipit_kernels.suggest.models import ClassifiedSection, LineType, Section, Suggestion, SuggestionType
from shipit_kernels.suggest.signals import dedupe_signals, extract_signals

logger = logging.getLogger(__name__)

DENSE_MIN_CHARS = 250

TOPIC_ANCHOR_RE = re.compile(
    r"^\s*(?:[-*+•]\s+)?(?:new feature|feature request|project timeline|internal operation|"
    r"cultural shift|bug:|risk:)",
    re.I | re.M,
)


def has_topic_anchor(section: Section) -> bool:
    return bool(TOPIC_ANCHOR_RE.search(section.raw_text))


def is_dense_paragraph(section: Section) -> bool:
    """No list items, one content line or >= 250 chars, and no topic anchor."""
    if section.structural_features.num_list_items > 0:
        return False
    if has_topic_anchor(section):
        return False
    content = [
        ln for ln in section.body_lines
        if ln.line_type not in (LineType.BLANK, LineType.CODE) and ln.text.strip()
    ]
    if not content:
        return False
    return len(content) == 1 or len(section.raw_text) >= DENSE_MIN_CHARS


def plan_change_eligible(sentence: str) -> bool:
    """Delta or schedule-event language in this sentence alone."""
    return has_concrete_delta(sentence) or has_schedule_event(sentence)


def extract_dense_candidates(cs: ClassifiedSection, allocator: IdAllocator) -> List[Suggestion]:
    """One candidate per firing (sentence, proposed type), evidence = the sentence."""
    signals = []
    for index, sentence in enumerate(section_sentences(cs.section)):
        signals.extend(extract_signals(sentence, index))

    candidates = []
    for signal in dedupe_signals(signals):
        candidates.append(signal_candidate(
            cs, signal, allocator, "sug_dp", "dense-paragraph",
            sentence_index=signal.sentence_index,
            plan_change_eligible=plan_change_eligible(signal.sentence),
        ))
    logger.debug(
        f"[dense] {cs.section_id} {len(candidates)} candidate(s) from "
        f"{len({s.sentence_index for s in signals})} sentence(s)"
    )
    return candidates


def has_eligible_update(candidates: List[Suggestion]) -> bool:
    return any(
        c.type == SuggestionType.PROJECT_UPDATE and c.metadata.get("plan_change_eligible")
        for c in candidates
    )
