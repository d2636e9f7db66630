"""
Synthesizer: ClassifiedSection -> Suggestion (pre-consolidation, pre-ranking).

Title priority
    idea:            proposal line > friction complaint > heading >
                     creation pattern > key nouns > fallback
    project_update:  heading > change pattern > key nouns > fallback

Bodies follow the same priority (proposal-first for ideas, then the
friction solution, then objective/scope/approach fragments, then an
imperative-first sentence fallback) and are capped at 300 characters.
Evidence spans prefer proposal lines, then list items, then paragraph lines;
lines at most two apart are merged into one span.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.intent import starts_with_action_verb
from shipit_kernels.suggest.lexicons import ACTION_VERBS, PROPOSAL_VERBS
from shipit_kernels.suggest.models import (
    ClassifiedSection,
    DraftInitiative,
    EvidenceSpan,
    Line,
    LineType,
    Suggestion,
    SuggestionContext,
    SuggestionPayload,
    SuggestionScores,
    SuggestionType,
)
from shipit_kernels.suggest.text_utils import (
    capitalize_first,
    collapse_whitespace,
    ensure_period,
    strip_markers,
    truncate_at_word,
)

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 80
BODY_MAX_CHARS = 300
SPAN_MERGE_GAP = 2
SYNTHESIS_CONFIDENCE = 0.7

SOLUTION_VERBS = frozenset(ACTION_VERBS) | frozenset(PROPOSAL_VERBS)
BY_GERUND_RE = re.compile(r"\bby\s+[a-z]+ing\b", re.I)
HEDGE_PREFIX_RE = re.compile(
    r"^(?:we\s+(?:should|could|might|can)|maybe\s+we\s+(?:should|could)|let'?s|"
    r"i\s+think\s+we\s+should|it\s+would\s+be\s+good\s+to|we\s+need\s+to|please)\s+",
    re.I,
)

FRICTION_RE = re.compile(
    r"\b(?:too many (?:clicks|steps)|number of (?:clicks|steps)|friction|extra steps|"
    r"clunky|tedious|takes forever)\b",
    re.I,
)
FRICTION_TARGET_RE = re.compile(
    r"\b(?:to|for|when|in)\s+((?:the\s+|an?\s+)?[a-z][a-z0-9\s\-]{3,40}?)(?=[.,;!?]|$|\s+(?:and|but|because)\b)",
    re.I,
)

GENERIC_HEADINGS = (
    "general", "notes", "discussion", "topics", "items", "agenda",
    "meeting notes", "summary", "overview", "misc", "miscellaneous", "other",
    "next steps", "action items",
)

CHANGE_TITLE_PATTERNS = (
    re.compile(r"\b(?:shift|pivot|refocus)\s+(?:to|towards?)\s+([^.!?\n]+)", re.I),
    re.compile(r"\b(?:narrow|expand|adjust)\s+(?:the\s+)?([^.!?\n]+)", re.I),
    re.compile(r"\bfrom\s+.{5,30}\s+to\s+([^.!?\n]+)", re.I),
)
CREATION_TITLE_PATTERNS = (
    re.compile(r"\b(?:launch|build|create|spin up|kick off)\s+(?:a\s+|an\s+|the\s+)?([^.!?\n]+)", re.I),
    re.compile(r"\bnew\s+(?:initiative|project|workstream|program)\s*(?:for|:)\s*([^.!?\n]+)", re.I),
)

SCOPE_PATTERNS = (
    re.compile(r"\b(?:focus(?:ing)?\s+on|prioritiz(?:e|ing))\s+([^.!?\n]+)", re.I),
    re.compile(r"\b(?:scope|in scope|out of scope)\s*(?::|is|includes?)\s*([^.!?\n]+)", re.I),
    re.compile(r"\b(?:key\s+change|main\s+change|primary\s+focus)\s*(?::|is)\s*([^.!?\n]+)", re.I),
)
OBJECTIVE_PATTERNS = (
    re.compile(r"\b(?:objective|goal|mission|aim|purpose)\s*(?::|is|to)\s*([^.!?\n]+)", re.I),
    re.compile(r"\b(?:success\s+looks\s+like|when\s+complete|outcome)\s*(?::|is)\s*([^.!?\n]+)", re.I),
)
INITIATIVE_SCOPE_PATTERNS = (
    re.compile(r"\b(?:scope|includes?|covers?)\s*(?::|is)\s*([^.!?\n]+)", re.I),
)
APPROACH_PATTERNS = (
    re.compile(r"\b(?:approach|plan|phases?)\s*(?::|is)\s*([^.!?\n]+)", re.I),
    re.compile(r"\b(?:first|phase\s*1|step\s*1)\s*(?::|,)\s*([^.!?\n]+)", re.I),
)

KEY_NOUN_STOPWORDS = frozenset((
    "the", "a", "an", "and", "or", "but", "is", "are", "was", "were", "be",
    "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "must", "shall", "can",
    "this", "that", "these", "those", "to", "for", "with", "from", "by",
    "about", "into", "through", "during", "before", "after", "above",
    "below", "between", "under", "again", "further", "then", "once", "here",
    "there", "when", "where", "why", "how", "all", "each", "few", "more",
    "most", "other", "some", "such", "only", "own", "same", "so", "than",
    "too", "very", "just", "also", "now", "new", "way", "want", "need",
    "we", "our", "they", "their",
))
CAPITALIZED_WORD_RE = re.compile(r"^[A-Z][a-z]+$")
QUOTED_RE = re.compile(r"\"([^\"]+)\"|'([^']+)'")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def is_generic_heading(heading: str) -> bool:
    lowered = heading.lower()
    return any(g in lowered for g in GENERIC_HEADINGS)


def _usable_heading(heading: str) -> bool:
    return 3 < len(heading) < 60 and not is_generic_heading(heading)


def extract_key_nouns(text: str) -> List[str]:
    """Capitalised non-stopwords and quoted phrases, first five unique."""
    nouns: List[str] = []
    for token in text.split():
        word = re.sub(r"[^a-zA-Z0-9]", "", token)
        if len(word) < 3 or word.lower() in KEY_NOUN_STOPWORDS:
            continue
        if CAPITALIZED_WORD_RE.match(word):
            nouns.append(word)
    for m in QUOTED_RE.finditer(text):
        nouns.append(m.group(1) or m.group(2))
    unique = list(dict.fromkeys(nouns))
    return unique[:5]


def content_lines(cs: ClassifiedSection) -> List[Line]:
    return [
        ln for ln in cs.body_lines
        if ln.line_type not in (LineType.BLANK, LineType.CODE) and ln.text.strip()
    ]


def _sentences_with_lines(cs: ClassifiedSection) -> List[Tuple[str, Line]]:
    """Marker-free sentences of the section, each with its source line."""
    out = []
    for line in content_lines(cs):
        text = collapse_whitespace(strip_markers(line.text))
        for sentence in re.split(r"(?<=[.!?])\s+", text):
            sentence = sentence.strip()
            if len(sentence) >= 5:
                out.append((sentence, line))
    return out


def _first_word(sentence: str) -> str:
    return sentence.split(" ", 1)[0].lower().strip(",:;") if sentence else ""


def is_proposal_sentence(sentence: str) -> bool:
    """Opens with a solution verb (after hedges), or uses ``by <gerund>``."""
    unhedged = HEDGE_PREFIX_RE.sub("", sentence.strip())
    return _first_word(unhedged) in SOLUTION_VERBS or bool(BY_GERUND_RE.search(sentence))


def _clean_title(text: str) -> str:
    text = HEDGE_PREFIX_RE.sub("", collapse_whitespace(text).strip())
    text = text.rstrip(" .!?;:")
    return capitalize_first(truncate_at_word(text, TITLE_MAX_CHARS))


def _cap_body(text: str) -> str:
    text = collapse_whitespace(text)
    if len(text) <= BODY_MAX_CHARS:
        return text
    return truncate_at_word(text, BODY_MAX_CHARS, "…")


# ---------------------------------------------------------------------------
# Titles
# ---------------------------------------------------------------------------

def find_proposal(cs: ClassifiedSection) -> Optional[Tuple[str, Line]]:
    return next(((s, ln) for s, ln in _sentences_with_lines(cs) if is_proposal_sentence(s)), None)


def find_friction(cs: ClassifiedSection) -> Optional[Tuple[str, str, Line]]:
    """(sentence, target, line) of the first friction complaint with a target."""
    for sentence, line in _sentences_with_lines(cs):
        m = FRICTION_RE.search(sentence)
        if not m:
            continue
        t = FRICTION_TARGET_RE.search(sentence, m.end()) or FRICTION_TARGET_RE.search(sentence)
        if t:
            target = re.sub(r"^(?:the|an?)\s+", "", t.group(1).strip(), flags=re.I)
            if len(target) > 3:
                return sentence, target, line
    return None


def idea_title(cs: ClassifiedSection) -> Tuple[str, str]:
    """Return (title, title_source) for an idea section."""
    proposal = find_proposal(cs)
    if proposal:
        return _clean_title(proposal[0]), "proposal"
    friction = find_friction(cs)
    if friction:
        return _clean_title(f"Reduce steps to {friction[1]}"), "friction"
    heading = cs.heading_text.strip()
    if _usable_heading(heading):
        return _clean_title(heading), "heading"
    for pattern in CREATION_TITLE_PATTERNS:
        m = pattern.search(cs.raw_text)
        if m and 3 < len(m.group(1).strip()) < 50:
            return _clean_title(m.group(1)), "pattern"
    nouns = extract_key_nouns(cs.raw_text)
    if nouns:
        return _clean_title(" ".join(nouns[:2])), "nouns"
    return "New idea from section", "fallback"


def project_update_title(cs: ClassifiedSection) -> Tuple[str, str]:
    """Return (title, title_source) for a project_update section (unprefixed)."""
    heading = cs.heading_text.strip()
    if _usable_heading(heading):
        return _clean_title(heading), "heading"
    for pattern in CHANGE_TITLE_PATTERNS:
        m = pattern.search(cs.raw_text)
        if m and len(m.group(1).strip()) < 50:
            return _clean_title(m.group(1)), "pattern"
    nouns = extract_key_nouns(cs.raw_text)
    if nouns:
        return _clean_title(f"{' '.join(nouns[:2])} plan"), "nouns"
    return "Project scope and focus", "fallback"


# ---------------------------------------------------------------------------
# Bodies and payloads
# ---------------------------------------------------------------------------

def _fallback_sentences(cs: ClassifiedSection, limit: int) -> List[str]:
    """Imperative sentences first, then the rest, in section order."""
    sentences = [s for s, _ in _sentences_with_lines(cs) if len(s) > 20]
    imperative = [s for s in sentences if starts_with_action_verb(s.lower()) or is_proposal_sentence(s)]
    rest = [s for s in sentences if s not in imperative]
    return (imperative + rest)[:limit]


def _first_match(patterns, text: str) -> str:
    for pattern in patterns:
        m = pattern.search(text)
        if m and m.group(1).strip():
            return capitalize_first(m.group(1).strip())
    return ""


def idea_body(cs: ClassifiedSection) -> str:
    proposal = find_proposal(cs)
    if proposal:
        others = [s for s, _ in _sentences_with_lines(cs) if s != proposal[0] and len(s) > 20][:2]
        return _cap_body(" ".join(ensure_period(s) for s in [proposal[0]] + others))

    friction = find_friction(cs)
    if friction:
        sentence, target, _ = friction
        return _cap_body(f"{ensure_period(sentence)} Reduce the steps required to {target}.")

    text = cs.raw_text
    parts = []
    objective = _first_match(OBJECTIVE_PATTERNS, text)
    scope = _first_match(INITIATIVE_SCOPE_PATTERNS, text)
    approach = _first_match(APPROACH_PATTERNS, text)
    if objective:
        parts.append(f"Objective: {ensure_period(objective)}")
    if scope:
        parts.append(f"Scope: {ensure_period(scope)}")
    if approach:
        parts.append(f"Approach: {ensure_period(approach)}")
    items = cs.section.list_items[:4]
    if items and len(parts) < 3:
        parts.append(f"Key points: {'; '.join(i.rstrip('.') for i in items)}.")
    if parts:
        return _cap_body(" ".join(parts))
    return _cap_body(" ".join(ensure_period(s) for s in _fallback_sentences(cs, 3)))


def after_description(cs: ClassifiedSection) -> str:
    text = cs.raw_text
    points: List[str] = []
    for pattern in SCOPE_PATTERNS:
        for m in pattern.finditer(text):
            if len(m.group(1).strip()) > 10:
                points.append(m.group(1).strip())
    for item in cs.section.list_items[:3]:
        if 15 < len(item) < 200:
            points.append(item)
    if points:
        unique = list(dict.fromkeys(p.rstrip(".") for p in points))[:4]
        return _cap_body(". ".join(capitalize_first(p) for p in unique) + ".")
    sentences = _fallback_sentences(cs, 2)
    return _cap_body(" ".join(ensure_period(s) for s in sentences))


# ---------------------------------------------------------------------------
# Evidence
# ---------------------------------------------------------------------------

def merge_spans(lines: List[Line], section_lines: Tuple[Line, ...] = ()) -> Tuple[EvidenceSpan, ...]:
    """Group lines at most two apart into spans.

    A span covers every section line between its first and last chosen line,
    so its text stays a contiguous excerpt of the section.
    """
    ordered = sorted({ln.index: ln for ln in lines}.values(), key=lambda ln: ln.index)
    spans: List[EvidenceSpan] = []
    group: List[Line] = []
    for line in ordered:
        if group and line.index - group[-1].index > SPAN_MERGE_GAP:
            spans.append(_span(group, section_lines))
            group = []
        group.append(line)
    if group:
        spans.append(_span(group, section_lines))
    return tuple(spans)


def _span(lines: List[Line], section_lines: Tuple[Line, ...]) -> EvidenceSpan:
    start, end = lines[0].index, lines[-1].index
    covered = [ln for ln in section_lines if start <= ln.index <= end] or lines
    return EvidenceSpan(start_line=start, end_line=end, text="\n".join(ln.text for ln in covered))


def evidence_spans(cs: ClassifiedSection, suggestion_type: SuggestionType) -> Tuple[EvidenceSpan, ...]:
    lines = content_lines(cs)
    chosen: List[Line] = []
    if suggestion_type == SuggestionType.IDEA:
        proposal_lines = []
        for sentence, line in _sentences_with_lines(cs):
            if is_proposal_sentence(sentence) and line not in proposal_lines:
                proposal_lines.append(line)
        chosen.extend(proposal_lines[:3])
    if not chosen:
        chosen.extend([ln for ln in lines if ln.line_type == LineType.LIST_ITEM][:3])
    if len(chosen) < 2:
        paragraphs = [
            ln for ln in lines
            if ln.line_type == LineType.PARAGRAPH and len(ln.text.strip()) > 20 and ln not in chosen
        ]
        chosen.extend(paragraphs[: 3 - len(chosen)])
    if not chosen:
        chosen = lines[:3]
    return merge_spans(chosen, cs.body_lines)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def _build(
    cs: ClassifiedSection,
    allocator: IdAllocator,
    suggestion_type: SuggestionType,
    title: str,
    title_source: str,
    body: str,
    spans: Tuple[EvidenceSpan, ...],
    **metadata,
) -> Suggestion:
    if suggestion_type == SuggestionType.PROJECT_UPDATE:
        payload = SuggestionPayload(after_description=body)
    else:
        payload = SuggestionPayload(draft_initiative=DraftInitiative(title=title, description=body))
    return Suggestion(
        suggestion_id=allocator.next_id("sug", cs.note_id),
        note_id=cs.note_id,
        section_id=cs.section_id,
        type=suggestion_type,
        title=title,
        payload=payload,
        evidence_spans=spans,
        scores=SuggestionScores(
            section_actionability=cs.actionable_signal,
            type_choice_confidence=cs.type_confidence if cs.type_confidence is not None else 0.5,
            synthesis_confidence=SYNTHESIS_CONFIDENCE,
        ),
        context=SuggestionContext(
            title=title,
            body=body,
            source_section_id=cs.section_id,
            source_heading=cs.heading_text,
        ),
        title_source=title_source,
        metadata={"source": "section", "type_rule": cs.type_decision.rule, **metadata},
    )


def synthesize_suggestion(cs: ClassifiedSection, allocator: IdAllocator) -> Optional[Suggestion]:
    """Synthesize the section-level suggestion, or None when nothing usable remains."""
    if not cs.emits:
        return None
    suggestion_type = cs.type_label
    if not content_lines(cs):
        logger.debug(f"[synthesis] {cs.section_id} has no content lines")
        return None

    if suggestion_type == SuggestionType.PROJECT_UPDATE:
        title, source = project_update_title(cs)
        body = after_description(cs)
    else:
        title, source = idea_title(cs)
        body = idea_body(cs)
    spans = evidence_spans(cs, suggestion_type)
    if not body or not spans:
        logger.debug(f"[synthesis] {cs.section_id} produced no body or evidence")
        return None

    suggestion = _build(cs, allocator, suggestion_type, title, source, body, spans)
    logger.debug(f"[synthesis] {cs.section_id} -> {suggestion_type.value} {title!r} ({source})")
    return suggestion


def synthesize_plan_change_fallback(cs: ClassifiedSection, allocator: IdAllocator) -> Suggestion:
    """Minimal update for a protected plan-change section that produced nothing."""
    lines = content_lines(cs) or list(cs.body_lines)
    spans = merge_spans(lines[:3], cs.body_lines)
    body = _cap_body(" ".join(ensure_period(strip_markers(ln.text)) for ln in lines[:3] if ln.text.strip()))
    title = f"Review: {cs.heading_text.strip() or 'plan change'}"
    return _build(
        cs, allocator, SuggestionType.PROJECT_UPDATE, title, "fallback",
        body or title, spans, plan_change_fallback=True,
    )
