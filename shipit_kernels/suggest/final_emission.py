"""
Final emission pass over the whole candidate list (after consolidation).

Rules, in order:

1. spec/framework sections lose their ``project_update`` candidates when an
   ``idea`` candidate exists for the same section (protected plan changes
   are left alone)
2. gamification clusters get the cluster title and a bullet body
3. automation and spec/framework ideas get a multi-bullet body
4. every timeline section surfaces exactly one ``project_update``: its
   candidates collapse into one, or one is synthesized from its bullets

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.models import (
    ClassifiedSection,
    DropReason,
    LineType,
    Suggestion,
    SuggestionContext,
    SuggestionPayload,
    SuggestionScores,
    SuggestionType,
)
from shipit_kernels.suggest.section_signals import (
    SPEC_FRAMEWORK_RE,
    detect_gamification_cluster,
    is_automation_heading,
    is_spec_framework_section,
    is_timeline_heading,
)
from shipit_kernels.suggest.synthesis import merge_spans
from shipit_kernels.suggest.title_contract import normalize_title_prefix

logger = logging.getLogger(__name__)

AUTOMATION_MIN_ITEMS = 2
AUTOMATION_MAX_ITEMS = 4
SPEC_MIN_ITEMS = 3
TIMELINE_EVIDENCE_ITEMS = 3


@dataclass
class EmissionOutcome:
    """Result of the pass: survivors, removals and newly synthesized updates."""
    suggestions: List[Suggestion]
    suppressed: List[Tuple[Suggestion, DropReason, Optional[str]]] = field(default_factory=list)
    synthesized: List[Suggestion] = field(default_factory=list)


def bullet_body(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def suppress_spec_framework_updates(
    suggestions: List[Suggestion],
    sections: Dict[str, ClassifiedSection],
    outcome: EmissionOutcome,
) -> List[Suggestion]:
    with_idea = {s.section_id for s in suggestions if s.type == SuggestionType.IDEA}
    kept = []
    for s in suggestions:
        cs = sections.get(s.section_id)
        if (
            s.type == SuggestionType.PROJECT_UPDATE
            and cs is not None
            and not cs.record.plan_change_protected
            and is_spec_framework_section(cs.section)
            and s.section_id in with_idea
        ):
            outcome.suppressed.append((s, DropReason.SUPPRESSED_SECTION, None))
            continue
        kept.append(s)
    return kept


def enrich(s: Suggestion, cs: ClassifiedSection) -> Suggestion:
    if s.type != SuggestionType.IDEA:
        return s
    items = cs.section.list_items
    cluster = detect_gamification_cluster(cs.section)
    if cluster is not None:
        enriched = s.retitled(normalize_title_prefix(SuggestionType.IDEA, cluster.title))
        return enriched.with_body(cluster.body)
    heading = cs.heading_text
    if is_automation_heading(heading) and len(items) >= AUTOMATION_MIN_ITEMS:
        return s.with_body(bullet_body(items[:AUTOMATION_MAX_ITEMS]))
    if SPEC_FRAMEWORK_RE.search(heading) and len(items) >= SPEC_MIN_ITEMS:
        return s.with_body(bullet_body(items))
    return s


def build_timeline_update(
    cs: ClassifiedSection,
    allocator: IdAllocator,
    base: Optional[Suggestion] = None,
) -> Optional[Suggestion]:
    """One update for a timeline section, from ``base`` or from scratch."""
    items = cs.section.list_items
    if not items:
        return None
    heading = cs.heading_text.strip()
    title = normalize_title_prefix(SuggestionType.PROJECT_UPDATE, heading)
    body = bullet_body(items)
    item_lines = [ln for ln in cs.body_lines if ln.line_type == LineType.LIST_ITEM]
    spans = merge_spans(item_lines[:TIMELINE_EVIDENCE_ITEMS], cs.body_lines)
    context = SuggestionContext(
        title=title,
        body=body,
        source_section_id=cs.section_id,
        source_heading=heading,
        evidence_preview=tuple(items),
    )
    payload = SuggestionPayload(after_description=body)

    if base is not None:
        return replace(
            base,
            type=SuggestionType.PROJECT_UPDATE,
            title=title,
            payload=payload,
            evidence_spans=spans,
            context=context,
            title_source="timeline",
            metadata={**base.metadata, "source": "timeline-section"},
        )
    return Suggestion(
        suggestion_id=allocator.next_id("sug_timeline", cs.note_id),
        note_id=cs.note_id,
        section_id=cs.section_id,
        type=SuggestionType.PROJECT_UPDATE,
        title=title,
        payload=payload,
        evidence_spans=spans,
        scores=SuggestionScores(
            section_actionability=max(cs.actionable_signal, 0.7),
            type_choice_confidence=0.8,
            synthesis_confidence=0.7,
        ),
        context=context,
        title_source="timeline",
        metadata={"source": "timeline-section", "synthesized": True},
    )


def collapse_timeline_sections(
    suggestions: List[Suggestion],
    sections: Dict[str, ClassifiedSection],
    allocator: IdAllocator,
    outcome: EmissionOutcome,
) -> List[Suggestion]:
    timeline_ids = [sid for sid, cs in sections.items() if is_timeline_heading(cs.heading_text)]
    if not timeline_ids:
        return suggestions

    groups: Dict[str, List[Suggestion]] = {}
    result: List[Suggestion] = []
    for s in suggestions:
        if s.section_id in timeline_ids:
            groups.setdefault(s.section_id, []).append(s)
        else:
            result.append(s)

    for section_id, group in groups.items():
        cs = sections[section_id]
        base = next((s for s in group if s.type == SuggestionType.PROJECT_UPDATE), group[0])
        update = build_timeline_update(cs, allocator, base)
        if update is None:
            result.extend(group)
            continue
        for s in group:
            if s is not base:
                outcome.suppressed.append((s, DropReason.MERGED, update.suggestion_id))
        result.append(update)

    for section_id in timeline_ids:
        if section_id in groups:
            continue
        update = build_timeline_update(sections[section_id], allocator)
        if update is not None:
            outcome.synthesized.append(update)
            result.append(update)
            logger.debug(f"[final-emission] synthesized timeline update for {section_id}")
    return result


def apply_final_emission(
    suggestions: List[Suggestion],
    sections: Dict[str, ClassifiedSection],
    allocator: IdAllocator,
) -> EmissionOutcome:
    outcome = EmissionOutcome(suggestions=[])
    current = suppress_spec_framework_updates(suggestions, sections, outcome)
    current = [enrich(s, sections[s.section_id]) if s.section_id in sections else s for s in current]
    current = collapse_timeline_sections(current, sections, allocator, outcome)
    outcome.suggestions = current
    if outcome.suppressed or outcome.synthesized:
        logger.debug(
            f"[final-emission] suppressed={len(outcome.suppressed)} synthesized={len(outcome.synthesized)}"
        )
    return outcome
