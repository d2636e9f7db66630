"""
Note-to-suggestion pipeline.

Stages, in order:

    segment -> classify (intent, gate, type) -> synthesize / dense split /
    b-signal seeding / semantic ideas -> process-noise filter -> validators
    -> consolidation -> final emission -> ranking -> title contract -> keys

Every section and candidate is registered with a ``DebugLedger`` so that a
run can always say why something was not emitted. The ledger is attached
to the ``RunResult`` only when debug output is requested.

The pipeline is synchronous and pure apart from logging; the async entry
point only adds the optional model-based intent classification in front.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from shipit_kernels.suggest.classify import classify_section
from shipit_kernels.suggest.config import GeneratorConfig, get_generator_config
from shipit_kernels.suggest.consolidate import consolidate_by_section
from shipit_kernels.suggest.debug_ledger import DebugLedger
from shipit_kernels.suggest.dense_paragraph import (
    extract_dense_candidates,
    has_eligible_update,
    is_dense_paragraph,
)
from shipit_kernels.suggest.final_emission import apply_final_emission
from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.idea_semantic import extract_idea_candidates
from shipit_kernels.suggest.intent import classify_intent
from shipit_kernels.suggest.keys import dedupe_by_key, with_key
from shipit_kernels.suggest.llm_classifier import (
    LLMProvider,
    blend_intent_scores,
    classify_with_fallback,
)
from shipit_kernels.suggest.models import (
    ClassifiedSection,
    DropReason,
    IntentClassification,
    NoteInput,
    RunResult,
    Section,
    Suggestion,
    SuggestionType,
)
from shipit_kernels.suggest.b_signal_seeding import seed_b_signal_candidates
from shipit_kernels.suggest.ranking import rank_suggestions
from shipit_kernels.suggest.segment import segment_note
from shipit_kernels.suggest.signals import is_process_noise
from shipit_kernels.suggest.synthesis import synthesize_plan_change_fallback, synthesize_suggestion
from shipit_kernels.suggest.title_contract import enforce_title_contract
from shipit_kernels.suggest.type_arbiter import rule_drop_reason
from shipit_kernels.suggest.validators import apply_validators

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Per-section candidate generation
# ---------------------------------------------------------------------------

def _section_drop_reason(cs: ClassifiedSection) -> DropReason:
    if not cs.is_actionable:
        if cs.actionability.rule == "out_of_scope_dominant":
            return DropReason.OUT_OF_SCOPE
        return DropReason.NOT_ACTIONABLE
    return rule_drop_reason(cs.type_decision.rule) or DropReason.TYPE_NON_ACTIONABLE


def _is_structured(cs: ClassifiedSection) -> bool:
    return cs.heading_level <= 3 and cs.structural_features.num_list_items >= 3


def _dense_candidates(
    cs: ClassifiedSection,
    allocator: IdAllocator,
    ledger: DebugLedger,
) -> Optional[List[Suggestion]]:
    """Candidates for a dense section, or None when the split found nothing."""
    children = extract_dense_candidates(cs, allocator)
    if not children:
        return None
    ledger.mark_split(cs.section_id, [c.suggestion_id for c in children])
    candidates = list(children)
    if cs.record.plan_change_protected and not has_eligible_update(children):
        update = synthesize_suggestion(cs, allocator)
        if update is None or update.type != SuggestionType.PROJECT_UPDATE:
            update = synthesize_plan_change_fallback(cs, allocator)
        candidates.append(update)
    return candidates


def generate_section_candidates(
    cs: ClassifiedSection,
    allocator: IdAllocator,
    ledger: DebugLedger,
) -> List[Suggestion]:
    """All raw candidates of one emitting section; records drops in ``ledger``."""
    if is_dense_paragraph(cs.section):
        dense_cs = replace(cs, record=cs.record.with_trace("dense:split", dense_paragraph=True))
        candidates = _dense_candidates(dense_cs, allocator, ledger)
        if candidates is not None:
            return candidates

    primary = synthesize_suggestion(cs, allocator)
    if primary is None and cs.record.plan_change_protected:
        primary = synthesize_plan_change_fallback(cs, allocator)
        logger.info(f"[pipeline] {cs.section_id} protected plan change, using fallback update")

    candidates: List[Suggestion] = [primary] if primary is not None else []
    seeds = seed_b_signal_candidates(cs, allocator, primary.type if primary else None)
    candidates.extend(seeds)

    if cs.type_label == SuggestionType.IDEA and _is_structured(cs):
        covered = [span.text for s in seeds for span in s.evidence_spans]
        candidates.extend(extract_idea_candidates(cs, allocator, covered=covered))

    if not candidates:
        ledger.drop_section(cs.section_id, DropReason.SYNTHESIS_FAILED)
    return candidates


def filter_process_noise(
    candidates: List[Suggestion],
    ledger: DebugLedger,
) -> List[Suggestion]:
    kept = []
    for s in candidates:
        if (
            s.source == "section"
            and s.type != SuggestionType.PROJECT_UPDATE
            and is_process_noise(f"{s.title} {s.context.body}")
        ):
            ledger.drop_candidate(s.suggestion_id, DropReason.PROCESS_NOISE)
            continue
        kept.append(s)
    return kept


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def classify_sections(
    sections: Sequence[Section],
    config: GeneratorConfig,
    intents: Optional[Dict[str, IntentClassification]] = None,
) -> List[ClassifiedSection]:
    intents = intents or {}
    return [
        classify_section(section, config.thresholds, intent=intents.get(section.section_id))
        for section in sections
    ]


def generate_run_result(
    note: NoteInput,
    sections: Optional[Sequence[Section]] = None,
    config: Optional[GeneratorConfig] = None,
    allocator: Optional[IdAllocator] = None,
    intents: Optional[Dict[str, IntentClassification]] = None,
    debug: Optional[bool] = None,
) -> RunResult:
    """
    Run the full pipeline over one note.

    Args:
        note: The raw note
        sections: Pre-segmented sections (segmented from ``note`` when omitted)
        config: Generator configuration (process default when omitted)
        allocator: Id allocator (a fresh one per run when omitted)
        intents: Per-section intent overrides, e.g. blended model scores
        debug: Attach the debug ledger (``config.enable_debug`` when omitted)

    Returns:
        RunResult with the ordered, uncapped suggestions
    """
    config = config or get_generator_config()
    allocator = allocator or IdAllocator()
    debug = config.enable_debug if debug is None else debug
    ledger = DebugLedger(note.note_id)

    with ledger.timed("segment"):
        if sections is None:
            sections = segment_note(note, allocator)
    for section in sections:
        ledger.add_section(section)

    with ledger.timed("classify"):
        classified = classify_sections(sections, config, intents)
    by_id: Dict[str, ClassifiedSection] = {}
    emitting: Dict[str, ClassifiedSection] = {}
    for cs in classified:
        ledger.record_classification(cs)
        by_id[cs.section_id] = cs
        if cs.emits:
            emitting[cs.section_id] = cs
        else:
            ledger.drop_section(cs.section_id, _section_drop_reason(cs))

    with ledger.timed("synthesize"):
        candidates: List[Suggestion] = []
        for cs in emitting.values():
            candidates.extend(generate_section_candidates(cs, allocator, ledger))
    for s in candidates:
        ledger.add_candidate(s)
    candidates = filter_process_noise(candidates, ledger)

    with ledger.timed("validate"):
        candidates, failed = apply_validators(candidates, by_id, config.thresholds)
    for s, result in failed:
        ledger.drop_candidate(s.suggestion_id, result.drop_reason, detail=result.reason)

    with ledger.timed("consolidate"):
        candidates, merged = consolidate_by_section(candidates, emitting, allocator)
    for s in candidates:
        if s.source == "consolidated-section":
            ledger.add_candidate(s)
    for s, merged_into in merged:
        ledger.drop_candidate(s.suggestion_id, DropReason.MERGED, merged_into=merged_into)

    with ledger.timed("final_emission"):
        outcome = apply_final_emission(candidates, by_id, allocator)
    for s in outcome.synthesized:
        ledger.add_candidate(s)
    for s, reason, merged_into in outcome.suppressed:
        ledger.drop_candidate(s.suggestion_id, reason, merged_into=merged_into)

    with ledger.timed("rank"):
        ranked, below = rank_suggestions(outcome.suggestions, by_id, config)
    for s in below:
        ledger.drop_candidate(s.suggestion_id, DropReason.SCORE_BELOW_THRESHOLD)

    with ledger.timed("identity"):
        keyed = [with_key(enforce_title_contract(s)) for s in ranked]
        final, duplicates = dedupe_by_key(keyed)
    for s in keyed:
        ledger.update_candidate(s)
    for s in duplicates:
        ledger.drop_candidate(s.suggestion_id, DropReason.DUPLICATE_KEY)

    ledger.record_invariant("sentence_evidence_grounded", all(
        span.text.lower() in by_id[s.section_id].raw_text.lower()
        for s in final if s.is_sentence_sourced
        for span in s.evidence_spans
    ))
    ledger.finalize(final)

    updates = sum(1 for s in final if s.type == SuggestionType.PROJECT_UPDATE)
    logger.info(
        f"[pipeline] {note.note_id}: {len(classified)} section(s), {len(emitting)} emitting, "
        f"{len(final)} suggestion(s) ({updates} update)"
    )
    return RunResult(suggestions=final, debug=ledger.build(len(final)) if debug else None)


def generate_suggestions(
    note: NoteInput,
    config: Optional[GeneratorConfig] = None,
    allocator: Optional[IdAllocator] = None,
) -> List[Suggestion]:
    return generate_run_result(note, config=config, allocator=allocator, debug=False).suggestions


def generate_run_result_with_debug(
    note: NoteInput,
    sections: Optional[Sequence[Section]] = None,
    config: Optional[GeneratorConfig] = None,
    allocator: Optional[IdAllocator] = None,
) -> RunResult:
    return generate_run_result(note, sections=sections, config=config, allocator=allocator, debug=True)


async def blended_intents(
    sections: Sequence[Section],
    provider: LLMProvider,
) -> Dict[str, IntentClassification]:
    """Classify every section concurrently and blend with the rule-based scores."""
    responses = await asyncio.gather(*(classify_with_fallback(provider, s) for s in sections))
    return {
        section.section_id: blend_intent_scores(response, classify_intent(section))
        for section, response in zip(sections, responses)
    }


async def agenerate_run_result(
    note: NoteInput,
    provider: LLMProvider,
    config: Optional[GeneratorConfig] = None,
    sections: Optional[Sequence[Section]] = None,
    debug: Optional[bool] = None,
) -> RunResult:
    """``generate_run_result`` with model-blended intents; never fails on provider errors."""
    allocator = IdAllocator()
    if sections is None:
        sections = segment_note(note, allocator)
    intents = await blended_intents(sections, provider)
    return generate_run_result(
        note, sections=sections, config=config, allocator=allocator, intents=intents, debug=debug,
    )
