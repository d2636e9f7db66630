"""
Semantic idea candidates for idea-typed sections.

A section (or, when it has no usable heading, each of its paragraphs) that
carries at least two distinct strategy / mechanism / feature-construct
tokens yields one ``idea`` candidate whose evidence is its most
token-dense sentence, verbatim. With a usable heading the heading becomes
the title; the title is marked ``semantic`` so the heading-only validator
does not reject it.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Set

from shipit_kernels.suggest.b_signal_seeding import evidence_for_sentence
from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.models import (
    ClassifiedSection,
    DraftInitiative,
    Suggestion,
    SuggestionContext,
    SuggestionPayload,
    SuggestionScores,
    SuggestionType,
)
from shipit_kernels.suggest.text_utils import (
    capitalize_first,
    marker_pattern,
    split_sentences_verbatim,
    truncate_at_word,
)

logger = logging.getLogger(__name__)

STRATEGY_TOKENS = ("strategy", "approach", "system", "framework", "prioritization", "scoring", "automation")
MECHANISM_TOKENS = ("introduce", "use", "extend", "calculate", "integrate", "automate", "parse", "upload", "layer")
FEATURE_CONSTRUCTS = ("photo upload", "ai parsing", "scoring model", "prioritization system")

SIGNAL_TOKENS_RE = marker_pattern(STRATEGY_TOKENS + MECHANISM_TOKENS + FEATURE_CONSTRUCTS)
MIN_DISTINCT_TOKENS = 2
HEADING_MAX_LEVEL = 3

GENERIC_HEADING_WORDS = frozenset((
    "general", "overview", "summary", "notes", "misc", "other", "details",
    "background", "context", "introduction", "appendix", "todo", "update",
    "updates", "status", "info",
))
PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
SEMANTIC_SYNTHESIS_CONFIDENCE = 0.65


def _distinct_tokens(text: str) -> Set[str]:
    return {m.group(0) for m in SIGNAL_TOKENS_RE.finditer(text.lower())}


def passes_token_gate(text: str) -> bool:
    return len(_distinct_tokens(text)) >= MIN_DISTINCT_TOKENS


def is_generic_heading(heading: str) -> bool:
    words = [w for w in re.split(r"[^a-z]+", heading.lower()) if w]
    return not words or all(w in GENERIC_HEADING_WORDS for w in words)


def best_sentence(text: str) -> Optional[str]:
    """Sentence with the most distinct signal tokens (earliest on ties)."""
    sentences = split_sentences_verbatim(text)
    if not sentences:
        return None
    return max(sentences, key=lambda s: (len(_distinct_tokens(s)), -sentences.index(s)))


def _semantic_title(sentence: str) -> str:
    return capitalize_first(truncate_at_word(sentence.rstrip(" .!?"), 80))


def _candidate(cs: ClassifiedSection, allocator: IdAllocator, sentence: str, title: str, tokens: int) -> Suggestion:
    body = sentence.strip()
    return Suggestion(
        suggestion_id=allocator.next_id("sug_idea", cs.note_id),
        note_id=cs.note_id,
        section_id=cs.section_id,
        type=SuggestionType.IDEA,
        title=title,
        payload=SuggestionPayload(draft_initiative=DraftInitiative(title=title, description=body)),
        evidence_spans=(evidence_for_sentence(cs.section, sentence),),
        scores=SuggestionScores(
            section_actionability=cs.actionable_signal,
            type_choice_confidence=cs.type_confidence if cs.type_confidence is not None else 0.5,
            synthesis_confidence=SEMANTIC_SYNTHESIS_CONFIDENCE,
        ),
        context=SuggestionContext(
            title=title,
            body=body,
            source_section_id=cs.section_id,
            source_heading=cs.heading_text,
        ),
        title_source="semantic",
        metadata={"source": "idea-semantic", "signal_tokens": tokens},
    )


def extract_idea_candidates(
    cs: ClassifiedSection,
    allocator: IdAllocator,
    covered: Iterable[str] = (),
) -> List[Suggestion]:
    """Semantic idea candidates; sentences in ``covered`` are never reused."""
    covered_texts = {c.strip() for c in covered}
    section = cs.section
    heading = cs.heading_text.strip()
    results: List[Suggestion] = []

    if heading and cs.heading_level <= HEADING_MAX_LEVEL and not is_generic_heading(heading):
        full_text = section.full_text
        if not passes_token_gate(full_text):
            return []
        sentence = best_sentence(section.raw_text)
        if sentence and sentence.strip() not in covered_texts and sentence.strip() in section.raw_text:
            results.append(_candidate(cs, allocator, sentence, heading, len(_distinct_tokens(full_text))))
    else:
        paragraphs = [p for p in PARAGRAPH_SPLIT_RE.split(section.raw_text) if p.strip()]
        for para in paragraphs if len(paragraphs) >= 2 else [section.raw_text]:
            if not passes_token_gate(para):
                continue
            sentence = best_sentence(para)
            if not sentence or sentence.strip() in covered_texts or sentence.strip() not in section.raw_text:
                continue
            results.append(_candidate(cs, allocator, sentence, _semantic_title(sentence),
                                      len(_distinct_tokens(para))))
            covered_texts.add(sentence.strip())

    if results:
        logger.debug(f"[idea-semantic] {cs.section_id} -> {len(results)} candidate(s)")
    return results
