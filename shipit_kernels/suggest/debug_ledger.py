"""
Debug ledger: per-section and per-candidate instrumentation of one run.

Every section gets a ``SectionDebug`` with its classification and, when it
produced nothing, the stage and reason that stopped it. Every candidate
gets a ``CandidateDebug`` that ends up either emitted or dropped with a
named reason. ``finalize`` closes the books and checks the run invariants.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional

from shipit_kernels.suggest.models import (
    DROP_REASON_STAGE,
    ClassifiedSection,
    DropReason,
    DropStage,
    Section,
    Suggestion,
    SuggestionType,
)

logger = logging.getLogger(__name__)

GENERATOR_VERSION = "shipit-suggest-0.1"


@dataclass
class CandidateDebug:
    candidate_id: str
    type: str
    title: str
    source: str
    suggestion_key: str = ""
    emitted: bool = False
    drop_stage: Optional[DropStage] = None
    drop_reason: Optional[DropReason] = None
    detail: str = ""
    merged_into: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "candidate_id": self.candidate_id,
            "type": self.type,
            "title": self.title,
            "source": self.source,
            "suggestion_key": self.suggestion_key,
            "emitted": self.emitted,
            "drop_stage": self.drop_stage.value if self.drop_stage else None,
            "drop_reason": self.drop_reason.value if self.drop_reason else None,
        }
        if self.detail:
            d["detail"] = self.detail
        if self.merged_into:
            d["merged_into"] = self.merged_into
        return d


@dataclass
class SectionDebug:
    section_id: str
    heading_text: str
    heading_level: int
    start_line: int
    end_line: int
    intent: Dict[str, Any] = field(default_factory=dict)
    intent_label: Optional[str] = None
    actionability: Dict[str, Any] = field(default_factory=dict)
    type_decision: Dict[str, Any] = field(default_factory=dict)
    trace: List[str] = field(default_factory=list)
    plan_change_protected: bool = False
    drop_stage: Optional[DropStage] = None
    drop_reason: Optional[DropReason] = None
    split_children: List[str] = field(default_factory=list)
    candidates: List[CandidateDebug] = field(default_factory=list)
    emitted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section_id": self.section_id,
            "heading_text": self.heading_text,
            "heading_level": self.heading_level,
            "line_range": [self.start_line, self.end_line],
            "intent": self.intent,
            "intent_label": self.intent_label,
            "actionability": self.actionability,
            "type": self.type_decision,
            "trace": list(self.trace),
            "plan_change_protected": self.plan_change_protected,
            "drop_stage": self.drop_stage.value if self.drop_stage else None,
            "drop_reason": self.drop_reason.value if self.drop_reason else None,
            "split_children": list(self.split_children),
            "emitted": self.emitted,
            "candidates": [c.to_dict() for c in self.candidates],
        }


@dataclass
class DebugRun:
    note_id: str
    generator_version: str
    sections: List[SectionDebug]
    timings_ms: Dict[str, float]
    invariants: Dict[str, bool]
    emitted_count: int

    def section(self, section_id: str) -> Optional[SectionDebug]:
        return next((s for s in self.sections if s.section_id == section_id), None)

    def candidate(self, candidate_id: str) -> Optional[CandidateDebug]:
        for s in self.sections:
            for c in s.candidates:
                if c.candidate_id == candidate_id:
                    return c
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "note_id": self.note_id,
            "generator_version": self.generator_version,
            "emitted_count": self.emitted_count,
            "timings_ms": {k: round(v, 3) for k, v in self.timings_ms.items()},
            "invariants": dict(self.invariants),
            "sections": [s.to_dict() for s in self.sections],
        }


class DebugLedger:
    """Collects the run's decisions; never alters what the pipeline emits."""

    def __init__(self, note_id: str):
        self.note_id = note_id
        self._sections: Dict[str, SectionDebug] = {}
        self._candidates: Dict[str, CandidateDebug] = {}
        self._candidate_section: Dict[str, str] = {}
        self._timings: Dict[str, float] = {}
        self._invariants: Dict[str, bool] = {}

    # -- sections -----------------------------------------------------------

    def add_section(self, section: Section) -> SectionDebug:
        entry = SectionDebug(
            section_id=section.section_id,
            heading_text=section.heading_text,
            heading_level=section.heading_level,
            start_line=section.start_line,
            end_line=section.end_line,
        )
        self._sections[section.section_id] = entry
        return entry

    def record_classification(self, cs: ClassifiedSection) -> None:
        entry = self._sections.get(cs.section_id) or self.add_section(cs.section)
        entry.intent = cs.intent.to_dict()
        entry.intent_label = cs.record.intent_label
        entry.actionability = cs.actionability.to_dict()
        entry.type_decision = cs.type_decision.to_dict()
        entry.trace = list(cs.record.trace)
        entry.plan_change_protected = cs.record.plan_change_protected

    def drop_section(self, section_id: str, reason: DropReason) -> None:
        entry = self._sections[section_id]
        entry.drop_reason = reason
        entry.drop_stage = DROP_REASON_STAGE[reason]
        logger.debug(f"[ledger] section {section_id} dropped at {entry.drop_stage.value}: {reason.value}")

    def mark_split(self, section_id: str, child_ids: Iterable[str]) -> None:
        entry = self._sections[section_id]
        entry.split_children = list(child_ids)
        entry.drop_reason = DropReason.SPLIT_INTO_SUBSECTIONS
        entry.drop_stage = DropStage.SPLIT_INTO_SUBSECTIONS

    # -- candidates ---------------------------------------------------------

    def add_candidate(self, suggestion: Suggestion) -> None:
        entry = CandidateDebug(
            candidate_id=suggestion.suggestion_id,
            type=suggestion.type.value,
            title=suggestion.title,
            source=suggestion.source,
            suggestion_key=suggestion.suggestion_key,
        )
        self._candidates[suggestion.suggestion_id] = entry
        self._candidate_section[suggestion.suggestion_id] = suggestion.section_id
        section = self._sections.get(suggestion.section_id)
        if section is not None:
            section.candidates.append(entry)

    def update_candidate(self, suggestion: Suggestion) -> None:
        entry = self._candidates.get(suggestion.suggestion_id)
        if entry is None:
            self.add_candidate(suggestion)
            return
        entry.type = suggestion.type.value
        entry.title = suggestion.title
        entry.source = suggestion.source
        entry.suggestion_key = suggestion.suggestion_key

    def drop_candidate(
        self,
        candidate_id: str,
        reason: DropReason,
        detail: str = "",
        merged_into: Optional[str] = None,
    ) -> None:
        entry = self._candidates.get(candidate_id)
        if entry is None:
            logger.warning(f"[ledger] drop for unknown candidate {candidate_id}")
            return
        entry.emitted = False
        entry.drop_reason = reason
        entry.drop_stage = DROP_REASON_STAGE[reason]
        entry.detail = detail
        entry.merged_into = merged_into

    # -- timings ------------------------------------------------------------

    @contextmanager
    def timed(self, stage: str) -> Iterator[None]:
        start = time.perf_counter()
        try:
            yield
        finally:
            self._timings[stage] = self._timings.get(stage, 0.0) + (time.perf_counter() - start) * 1000.0

    # -- finalisation ---------------------------------------------------------

    def finalize(self, emitted: List[Suggestion]) -> None:
        """Mark emitted candidates, resolve unexplained sections, check invariants."""
        emitted_ids = {s.suggestion_id for s in emitted}
        for entry in self._candidates.values():
            if entry.candidate_id in emitted_ids:
                entry.emitted = True
                entry.drop_stage = entry.drop_reason = None
            elif entry.drop_reason is None:
                entry.drop_reason = DropReason.INTERNAL_ERROR
                entry.drop_stage = DropStage.INTERNAL_ERROR
                logger.error(f"[ledger] candidate {entry.candidate_id} vanished without a drop reason")

        for section in self._sections.values():
            section.emitted = any(c.emitted for c in section.candidates)
            if section.drop_reason == DropReason.SPLIT_INTO_SUBSECTIONS:
                known = [cid for cid in section.split_children if cid in self._candidates]
                if not known:
                    logger.error(
                        f"[ledger] section {section.section_id} marked split but none of "
                        f"{section.split_children} exist"
                    )
                    section.drop_reason = DropReason.INTERNAL_ERROR
                    section.drop_stage = DropStage.INTERNAL_ERROR
                continue
            if section.emitted:
                section.drop_stage = section.drop_reason = None
                continue
            if section.drop_reason is not None:
                continue
            dropped = [c for c in section.candidates if c.drop_reason is not None]
            if dropped:
                section.drop_reason = dropped[-1].drop_reason
                section.drop_stage = dropped[-1].drop_stage
            else:
                logger.error(f"[ledger] section {section.section_id} produced nothing without a reason")
                section.drop_reason = DropReason.INTERNAL_ERROR
                section.drop_stage = DropStage.INTERNAL_ERROR

        self._check_invariants(emitted)

    def _check_invariants(self, emitted: List[Suggestion]) -> None:
        updates_by_section = {
            s.section_id for s in emitted if s.type == SuggestionType.PROJECT_UPDATE
        }
        protected = [s for s in self._sections.values() if s.plan_change_protected]
        plan_ok = all(s.section_id in updates_by_section for s in protected)
        self._invariants["plan_change_sections_emit_update"] = plan_ok
        if not plan_ok:
            missing = [s.section_id for s in protected if s.section_id not in updates_by_section]
            logger.error(f"[ledger] protected plan-change sections without an update: {missing}")
        self._invariants["no_internal_errors"] = not any(
            s.drop_reason == DropReason.INTERNAL_ERROR for s in self._sections.values()
        ) and not any(c.drop_reason == DropReason.INTERNAL_ERROR for c in self._candidates.values())

    def record_invariant(self, name: str, held: bool) -> None:
        self._invariants[name] = held
        if not held:
            logger.error(f"[ledger] invariant {name} violated")

    def build(self, emitted_count: int) -> DebugRun:
        return DebugRun(
            note_id=self.note_id,
            generator_version=GENERATOR_VERSION,
            sections=list(self._sections.values()),
            timings_ms=dict(self._timings),
            invariants=dict(self._invariants),
            emitted_count=emitted_count,
        )
