"""
B-signal seeding: sentence-level candidates for actionable sections.

The extractors of ``signals`` run over every sentence of a section. Their
hits rescue weak sections at the actionability gate and seed extra
risk/bug/update candidates next to the section-level suggestion. Every
seeded candidate keeps its sentence verbatim as evidence, so the grounding
check can verify it against the section text.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.models import (
    ClassifiedSection,
    DraftInitiative,
    EvidenceSpan,
    Section,
    Suggestion,
    SuggestionContext,
    SuggestionPayload,
    SuggestionScores,
    SuggestionType,
)
from shipit_kernels.suggest.section_signals import is_strategy_heading
from shipit_kernels.suggest.signals import (
    Signal,
    SignalType,
    dedupe_signals,
    extract_signals,
    signal_title,
)
from shipit_kernels.suggest.text_utils import (
    normalize_for_match,
    split_sentences_verbatim,
    truncate_at_word,
)

logger = logging.getLogger(__name__)

RESCUE_MIN_CONFIDENCE = 0.65
PII_PREFERRED_CONFIDENCE = 0.85
SYNTHESIS_CONFIDENCE = 0.7

TIMELINE_SEED_HEADING_RE = re.compile(r"\b(?:timeline|implementation|schedule|roadmap|milestones?)\b", re.I)
TIMELINE_DATE_RE = re.compile(
    r"\b(?:\d+-(?:week|day|month|year|sprint)s?|target\s+\w+|q[1-4]\s*\d{4}|"
    r"january|february|march|april|may|june|july|august|september|october|november|december)\b",
    re.I,
)
SECURITY_TOKENS_RE = re.compile(
    r"\b(?:pii|security|compliance|gdpr|privacy|vulnerability|exposure|logging|blocker)\b", re.I
)
LEADING_LABEL_RE = re.compile(r"^[A-Z][\w ]{0,20}:\s*")


# ---------------------------------------------------------------------------
# Signal collection
# ---------------------------------------------------------------------------

def section_sentences(section: Section) -> List[str]:
    return split_sentences_verbatim(section.raw_text)


def collect_section_signals(section: Section, strategy_only: bool = False) -> List[Signal]:
    """
    All sentence signals of a section after the section-level filters:

    1. timeline headings replace PLAN_CHANGE hits with one built on the
       first dated sentence
    2. strategy headings without a delta drop PLAN_CHANGE hits
    3. a PII-grade risk (>= 0.85) suppresses weaker risks
    4. one signal per (sentence index, proposed type)
    """
    sentences = section_sentences(section)
    signals: List[Signal] = []
    for i, sentence in enumerate(sentences):
        signals.extend(extract_signals(sentence, i))

    if TIMELINE_SEED_HEADING_RE.search(section.heading_text):
        dated = [
            (i, s) for i, s in enumerate(sentences)
            if TIMELINE_DATE_RE.search(s) and not SECURITY_TOKENS_RE.search(s)
        ]
        if dated:
            signals = [s for s in signals if s.signal_type != SignalType.PLAN_CHANGE]
            index, sentence = dated[0]
            signals.append(Signal(
                SignalType.PLAN_CHANGE, "update", SuggestionType.PROJECT_UPDATE, 0.75, sentence, index,
            ))

    if strategy_only and is_strategy_heading(section.heading_text):
        signals = [s for s in signals if s.signal_type != SignalType.PLAN_CHANGE]

    if any(s.proposed_type == SuggestionType.RISK and s.confidence >= PII_PREFERRED_CONFIDENCE
           for s in signals):
        signals = [
            s for s in signals
            if s.proposed_type != SuggestionType.RISK or s.confidence >= PII_PREFERRED_CONFIDENCE
        ]

    return dedupe_signals(signals)


def best_rescue_signal(section: Section) -> Optional[Signal]:
    """Strongest signal with confidence >= 0.65, or None."""
    candidates = [s for s in collect_section_signals(section) if s.confidence >= RESCUE_MIN_CONFIDENCE]
    if not candidates:
        return None
    return max(candidates, key=lambda s: (s.confidence, -s.sentence_index))


# ---------------------------------------------------------------------------
# Candidate construction
# ---------------------------------------------------------------------------

def evidence_for_sentence(section: Section, sentence: str) -> EvidenceSpan:
    """Span whose text is the sentence itself, located on its source line."""
    target = normalize_for_match(sentence)
    for line in section.body_lines:
        norm = normalize_for_match(line.text)
        if not norm:
            continue
        if norm == target or target in norm or (len(norm) >= 40 and norm[:40] in target):
            return EvidenceSpan(line.index, line.index, sentence)
    return EvidenceSpan(section.start_line, section.end_line, sentence)


def timeline_title(sentence: str) -> str:
    text = LEADING_LABEL_RE.sub("", sentence.strip().lstrip("-*• ").strip())
    return f"Update: {truncate_at_word(text, 60)}"


def signal_candidate(
    cs: ClassifiedSection,
    signal: Signal,
    allocator: IdAllocator,
    namespace: str,
    source: str,
    **metadata,
) -> Suggestion:
    """Build a suggestion whose evidence is the signal sentence, verbatim."""
    section = cs.section
    timeline_seed = (
        signal.signal_type == SignalType.PLAN_CHANGE
        and bool(TIMELINE_SEED_HEADING_RE.search(section.heading_text))
        and bool(TIMELINE_DATE_RE.search(signal.sentence))
    )
    title = timeline_title(signal.sentence) if timeline_seed else signal_title(signal, section.heading_text)
    spans = (evidence_for_sentence(section, signal.sentence),)
    body = signal.sentence.strip()

    if signal.proposed_type == SuggestionType.PROJECT_UPDATE:
        payload = SuggestionPayload(after_description=body)
    else:
        payload = SuggestionPayload(draft_initiative=DraftInitiative(title=title, description=body))

    return Suggestion(
        suggestion_id=allocator.next_id(namespace, section.note_id),
        note_id=section.note_id,
        section_id=section.section_id,
        type=signal.proposed_type,
        title=title,
        payload=payload,
        evidence_spans=spans,
        scores=SuggestionScores(
            section_actionability=cs.actionable_signal,
            type_choice_confidence=signal.confidence,
            synthesis_confidence=SYNTHESIS_CONFIDENCE,
        ),
        context=SuggestionContext(
            title=title,
            body=body,
            source_section_id=section.section_id,
            source_heading=section.heading_text,
        ),
        title_source="signal",
        metadata={
            "source": source,
            "label": signal.label,
            "signal_type": signal.signal_type.value,
            "confidence": signal.confidence,
            "explicit_type": True,
            **metadata,
        },
    )


def _keep_seed(signal: Signal, primary_type: Optional[SuggestionType], structured: bool) -> bool:
    if signal.proposed_type in (SuggestionType.RISK, SuggestionType.BUG):
        return True
    if signal.proposed_type == SuggestionType.PROJECT_UPDATE:
        return primary_type != SuggestionType.PROJECT_UPDATE
    return primary_type is None or structured


def seed_b_signal_candidates(
    cs: ClassifiedSection,
    allocator: IdAllocator,
    primary_type: Optional[SuggestionType],
) -> List[Suggestion]:
    """
    Extra candidates next to the section-level suggestion: risks and bugs
    always, an update when the section produced none, and ideas only when
    the section produced nothing or is a structured list that the
    consolidator will merge.
    """
    section = cs.section
    structured = section.heading_level <= 3 and section.structural_features.num_list_items >= 3
    candidates = [
        signal_candidate(cs, signal, allocator, "sug_bsig", "b-signal")
        for signal in collect_section_signals(section, strategy_only=cs.record.strategy_only)
        if _keep_seed(signal, primary_type, structured)
    ]
    if candidates:
        logger.debug(
            f"[b-signal] {section.section_id} seeded {len(candidates)} candidate(s): "
            f"{[c.type.value for c in candidates]}"
        )
    return candidates
