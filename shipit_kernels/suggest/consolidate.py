"""
Section consolidation: collapse fragmented idea candidates of one
structured section into a single suggestion.

A group is consolidated only when the section has heading level <= 3,
>= 3 list items, no delta/timeline pattern, more than one candidate and
every candidate is an ``idea``. The first candidate is the anchor; up to
five unique evidence spans are merged and the body is rebuilt from them.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Dict, List, Tuple

from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.models import (
    ClassifiedSection,
    EvidenceSpan,
    Suggestion,
    SuggestionType,
)
from shipit_kernels.suggest.section_signals import detect_gamification_cluster
from shipit_kernels.suggest.text_utils import strip_list_marker
from shipit_kernels.suggest.title_contract import normalize_title_prefix

logger = logging.getLogger(__name__)

MAX_MERGED_SPANS = 5
MAX_BODY_SPANS = 4
CONSOLIDATED_BODY_MAX = 320

DELTA_SIGNAL_PATTERNS = (
    re.compile(r"\d+-(?:week|day|month|year|sprint)s?", re.I),
    re.compile(r"\d+\s+(?:week|day|month|year|sprint)s?", re.I),
    re.compile(r"from\s+\d[-–]\w+\s+to\s+\d[-–]\w+", re.I),
    re.compile(r"\d+[-–]\w+\s+to\s+\d+[-–]\w+", re.I),
    re.compile(r"extend(?:ed|ing)?\s+from\s+", re.I),
    re.compile(r"delayed?\s+(?:to|until|by)\s+", re.I),
    re.compile(r"pushed?\s+(?:to|until)\s+", re.I),
    re.compile(r"\d+(?:st|nd|rd|th)\s*[→\-–]\s*\d+(?:st|nd|rd|th)", re.I),
    re.compile(r"Q[1-4]\s+\d{4}", re.I),
    re.compile(r"20\d\d[-–]20\d\d"),
)


def section_has_delta_signal(raw_text: str) -> bool:
    return any(p.search(raw_text) for p in DELTA_SIGNAL_PATTERNS)


def is_consolidatable_section(cs: ClassifiedSection) -> bool:
    return (
        cs.heading_level <= 3
        and cs.structural_features.num_list_items >= 3
        and not section_has_delta_signal(cs.raw_text)
    )


def merge_top_spans(candidates: List[Suggestion], limit: int = MAX_MERGED_SPANS) -> Tuple[EvidenceSpan, ...]:
    """
    Unique spans across the group, in candidate order.

    A span whose text is contained in a kept span is skipped; a span that
    contains kept spans takes the place of the first of them.
    """
    merged: List[EvidenceSpan] = []
    for candidate in candidates:
        for span in candidate.evidence_spans:
            key = span.text.strip()
            if not key or any(key in kept.text for kept in merged):
                continue
            covered = [i for i, kept in enumerate(merged) if kept.text.strip() in key]
            if covered:
                merged[covered[0]] = span
                merged = [kept for i, kept in enumerate(merged) if i not in covered[1:]]
                continue
            merged.append(span)
            if len(merged) >= limit:
                return tuple(merged)
    return tuple(merged)


def build_consolidated_body(spans: Tuple[EvidenceSpan, ...], limit: int = MAX_BODY_SPANS) -> str:
    parts = []
    for span in spans[:limit]:
        for line in span.text.splitlines():
            text = strip_list_marker(line).strip().rstrip(".")
            if text and text not in parts:
                parts.append(text)
    if not parts:
        return ""
    body = ". ".join(parts) + "."
    if len(body) > CONSOLIDATED_BODY_MAX:
        body = body[:CONSOLIDATED_BODY_MAX - 3] + "…"
    return body


def consolidate_group(
    cs: ClassifiedSection,
    group: List[Suggestion],
    allocator: IdAllocator,
) -> Suggestion:
    anchor = group[0]
    spans = merge_top_spans(group)
    cluster = detect_gamification_cluster(cs.section)
    heading = cs.heading_text.strip() or anchor.title
    title = normalize_title_prefix(SuggestionType.IDEA, cluster.title if cluster else heading)
    body = build_consolidated_body(spans) or anchor.context.body
    preview = tuple(s.text.strip() for s in spans[:MAX_BODY_SPANS] if s.text.strip())

    merged = replace(
        anchor,
        suggestion_id=allocator.next_id("sug_consolidated", anchor.note_id),
        evidence_spans=spans,
        title_source="consolidated",
        metadata={
            **anchor.metadata,
            "source": "consolidated-section",
            "merged_ids": [s.suggestion_id for s in group],
        },
    )
    merged = merged.retitled(title).with_body(body)
    return replace(merged, context=replace(merged.context, evidence_preview=preview))


def consolidate_by_section(
    candidates: List[Suggestion],
    sections: Dict[str, ClassifiedSection],
    allocator: IdAllocator,
) -> Tuple[List[Suggestion], List[Tuple[Suggestion, str]]]:
    """
    Returns (result, merged) where ``merged`` pairs every absorbed candidate
    with the id of the suggestion that replaced it.
    """
    groups: Dict[str, List[Suggestion]] = {}
    for candidate in candidates:
        groups.setdefault(candidate.section_id, []).append(candidate)

    result: List[Suggestion] = []
    merged: List[Tuple[Suggestion, str]] = []
    for section_id, group in groups.items():
        cs = sections.get(section_id)
        if (
            cs is None
            or len(group) <= 1
            or not all(s.type == SuggestionType.IDEA for s in group)
            or not is_consolidatable_section(cs)
        ):
            result.extend(group)
            continue
        consolidated = consolidate_group(cs, group, allocator)
        merged.extend((s, consolidated.suggestion_id) for s in group)
        result.append(consolidated)
        logger.debug(f"[consolidate] {section_id}: {len(group)} ideas -> {consolidated.suggestion_id}")
    return result, merged
