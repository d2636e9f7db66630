"""
Core data models for the ShipIt suggestion kernel family.

Sections are read-only inputs; classifications, decision records and
suggestions are created fresh on every run and derived with
``dataclasses.replace`` rather than mutated. Every model round-trips through
``to_dict()`` / ``from_dict()`` so kernels can persist them as JSON.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from shipit_kernels.suggest.debug_ledger import DebugRun


class SuggestionInputError(ValueError):
    """Raised when a note handed to the pipeline is malformed."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class LineType(str, Enum):
    """Structural role of a note line."""
    HEADING = "heading"
    LIST_ITEM = "list_item"
    PARAGRAPH = "paragraph"
    QUOTE = "quote"
    CODE = "code"
    BLANK = "blank"


class SectionType(str, Enum):
    """Outcome of the base type classifier."""
    IDEA = "idea"
    PROJECT_UPDATE = "project_update"
    NON_ACTIONABLE = "non_actionable"


class SuggestionType(str, Enum):
    """Kinds of emitted suggestions."""
    IDEA = "idea"
    PROJECT_UPDATE = "project_update"
    RISK = "risk"
    BUG = "bug"


class DropStage(str, Enum):
    """Pipeline stage at which a section or candidate was dropped."""
    ACTIONABILITY = "ACTIONABILITY"
    TYPE = "TYPE"
    SYNTHESIS = "SYNTHESIS"
    VALIDATION = "VALIDATION"
    POST_SYNTHESIS_SUPPRESS = "POST_SYNTHESIS_SUPPRESS"
    THRESHOLD = "THRESHOLD"
    DEDUPE = "DEDUPE"
    SPLIT_INTO_SUBSECTIONS = "SPLIT_INTO_SUBSECTIONS"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class DropReason(str, Enum):
    """Named reason attached to a drop."""
    NOT_ACTIONABLE = "NOT_ACTIONABLE"
    OUT_OF_SCOPE = "OUT_OF_SCOPE"
    TYPE_NON_ACTIONABLE = "TYPE_NON_ACTIONABLE"
    STRATEGY_ONLY_EXCLUDED = "STRATEGY_ONLY_EXCLUDED"
    SYNTHESIS_FAILED = "SYNTHESIS_FAILED"
    VALIDATION_V2_TOO_GENERIC = "VALIDATION_V2_TOO_GENERIC"
    VALIDATION_V3_EVIDENCE_TOO_WEAK = "VALIDATION_V3_EVIDENCE_TOO_WEAK"
    VALIDATION_V4_HEADING_ONLY = "VALIDATION_V4_HEADING_ONLY"
    UNGROUNDED_EVIDENCE = "UNGROUNDED_EVIDENCE"
    PROCESS_NOISE = "PROCESS_NOISE"
    SUPPRESSED_SECTION = "SUPPRESSED_SECTION"
    MERGED = "MERGED"
    SCORE_BELOW_THRESHOLD = "SCORE_BELOW_THRESHOLD"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    SPLIT_INTO_SUBSECTIONS = "SPLIT_INTO_SUBSECTIONS"
    INTERNAL_ERROR = "INTERNAL_ERROR"


DROP_REASON_STAGE: Dict[DropReason, DropStage] = {
    DropReason.NOT_ACTIONABLE: DropStage.ACTIONABILITY,
    DropReason.OUT_OF_SCOPE: DropStage.ACTIONABILITY,
    DropReason.TYPE_NON_ACTIONABLE: DropStage.TYPE,
    DropReason.STRATEGY_ONLY_EXCLUDED: DropStage.TYPE,
    DropReason.SYNTHESIS_FAILED: DropStage.SYNTHESIS,
    DropReason.VALIDATION_V2_TOO_GENERIC: DropStage.VALIDATION,
    DropReason.VALIDATION_V3_EVIDENCE_TOO_WEAK: DropStage.VALIDATION,
    DropReason.VALIDATION_V4_HEADING_ONLY: DropStage.VALIDATION,
    DropReason.UNGROUNDED_EVIDENCE: DropStage.VALIDATION,
    DropReason.PROCESS_NOISE: DropStage.POST_SYNTHESIS_SUPPRESS,
    DropReason.SUPPRESSED_SECTION: DropStage.POST_SYNTHESIS_SUPPRESS,
    DropReason.MERGED: DropStage.POST_SYNTHESIS_SUPPRESS,
    DropReason.SCORE_BELOW_THRESHOLD: DropStage.THRESHOLD,
    DropReason.DUPLICATE_KEY: DropStage.DEDUPE,
    DropReason.SPLIT_INTO_SUBSECTIONS: DropStage.SPLIT_INTO_SUBSECTIONS,
    DropReason.INTERNAL_ERROR: DropStage.INTERNAL_ERROR,
}


INTENT_LABELS: Tuple[str, ...] = (
    "plan_change",
    "new_workstream",
    "status_informational",
    "communication",
    "research",
    "calendar",
    "micro_tasks",
)


# ---------------------------------------------------------------------------
# Input: notes, lines, sections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NoteInput:
    """A raw meeting note."""
    note_id: str
    raw_markdown: str

    def __post_init__(self):
        if not isinstance(self.note_id, str) or not self.note_id.strip():
            raise SuggestionInputError("NoteInput.note_id must be a non-empty string")
        if not isinstance(self.raw_markdown, str):
            raise SuggestionInputError(
                f"NoteInput.raw_markdown must be a string, got {type(self.raw_markdown).__name__}"
            )


@dataclass(frozen=True)
class Line:
    """One annotated line of a section body (index is the note line number)."""
    index: int
    text: str
    line_type: LineType
    indent_level: int = 0
    heading_level: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "index": self.index,
            "text": self.text,
            "line_type": self.line_type.value,
            "indent_level": self.indent_level,
        }
        if self.heading_level is not None:
            d["heading_level"] = self.heading_level
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Line":
        return cls(
            index=d["index"],
            text=d["text"],
            line_type=LineType(d.get("line_type", "paragraph")),
            indent_level=d.get("indent_level", 0),
            heading_level=d.get("heading_level"),
        )


@dataclass(frozen=True)
class StructuralFeatures:
    """Counts and boolean markers computed by the segmenter."""
    num_lines: int = 0
    num_list_items: int = 0
    has_dates: bool = False
    has_metrics: bool = False
    has_quarter_refs: bool = False
    has_version_refs: bool = False
    has_launch_keywords: bool = False
    initiative_phrase_density: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "num_lines": self.num_lines,
            "num_list_items": self.num_list_items,
            "has_dates": self.has_dates,
            "has_metrics": self.has_metrics,
            "has_quarter_refs": self.has_quarter_refs,
            "has_version_refs": self.has_version_refs,
            "has_launch_keywords": self.has_launch_keywords,
            "initiative_phrase_density": self.initiative_phrase_density,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "StructuralFeatures":
        return cls(
            num_lines=d.get("num_lines", 0),
            num_list_items=d.get("num_list_items", 0),
            has_dates=d.get("has_dates", False),
            has_metrics=d.get("has_metrics", False),
            has_quarter_refs=d.get("has_quarter_refs", False),
            has_version_refs=d.get("has_version_refs", False),
            has_launch_keywords=d.get("has_launch_keywords", False),
            initiative_phrase_density=d.get("initiative_phrase_density", 0.0),
        )


@dataclass(frozen=True)
class Section:
    """A headed section of a note, read-only input to the pipeline."""
    note_id: str
    section_id: str
    heading_text: str
    heading_level: int
    body_lines: Tuple[Line, ...]
    structural_features: StructuralFeatures
    raw_text: str
    start_line: int
    end_line: int

    @property
    def list_items(self) -> List[str]:
        """List-item texts with their markers stripped."""
        from shipit_kernels.suggest.text_utils import strip_list_marker
        items = []
        for line in self.body_lines:
            if line.line_type == LineType.LIST_ITEM:
                text = strip_list_marker(line.text).strip()
                if text:
                    items.append(text)
        return items

    @property
    def full_text(self) -> str:
        """Heading and body joined, as scanned by the section-level rules."""
        return f"{self.heading_text} {self.raw_text}".strip()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "note_id": self.note_id,
            "section_id": self.section_id,
            "heading_text": self.heading_text,
            "heading_level": self.heading_level,
            "body_lines": [line.to_dict() for line in self.body_lines],
            "structural_features": self.structural_features.to_dict(),
            "raw_text": self.raw_text,
            "start_line": self.start_line,
            "end_line": self.end_line,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Section":
        return cls(
            note_id=d["note_id"],
            section_id=d["section_id"],
            heading_text=d.get("heading_text", ""),
            heading_level=d.get("heading_level", 1),
            body_lines=tuple(Line.from_dict(x) for x in d.get("body_lines", [])),
            structural_features=StructuralFeatures.from_dict(d.get("structural_features", {})),
            raw_text=d.get("raw_text", ""),
            start_line=d.get("start_line", 0),
            end_line=d.get("end_line", 0),
        )


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class IntentClassification:
    """Seven-category intent vector plus routing flags."""
    plan_change: float = 0.0
    new_workstream: float = 0.0
    status_informational: float = 0.0
    communication: float = 0.0
    research: float = 0.0
    calendar: float = 0.0
    micro_tasks: float = 0.0
    force_role_assignment: bool = False
    force_decision_marker: bool = False

    def scores(self) -> Dict[str, float]:
        return {label: getattr(self, label) for label in INTENT_LABELS}

    def top_label(self) -> str:
        """Argmax label; ties resolve to the earliest label in INTENT_LABELS."""
        scores = self.scores()
        best = max(scores.values())
        return next(label for label in INTENT_LABELS if scores[label] == best)

    @property
    def actionable_signal(self) -> float:
        return max(self.plan_change, self.new_workstream)

    @property
    def out_of_scope_signal(self) -> float:
        return max(self.calendar, self.communication, self.micro_tasks)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {label: round(getattr(self, label), 4) for label in INTENT_LABELS}
        flags = {}
        if self.force_role_assignment:
            flags["force_role_assignment"] = True
        if self.force_decision_marker:
            flags["force_decision_marker"] = True
        if flags:
            d["flags"] = flags
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "IntentClassification":
        flags = d.get("flags", {})
        return cls(
            **{label: float(d.get(label, 0.0)) for label in INTENT_LABELS},
            force_role_assignment=flags.get("force_role_assignment", False),
            force_decision_marker=flags.get("force_decision_marker", False),
        )


@dataclass(frozen=True)
class ActionabilityResult:
    """Outcome of the actionability gate."""
    actionable: bool
    reason: str
    rule: str
    actionable_signal: float
    out_of_scope_signal: float
    rescued_by_b_signal: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actionable": self.actionable,
            "reason": self.reason,
            "rule": self.rule,
            "actionable_signal": round(self.actionable_signal, 4),
            "out_of_scope_signal": round(self.out_of_scope_signal, 4),
            "rescued_by_b_signal": self.rescued_by_b_signal,
        }


@dataclass(frozen=True)
class TypeDecision:
    """Outcome of the type arbiter.

    ``type_label`` is authoritative; ``excluded`` marks sections the arbiter
    deliberately silences (strategy-only chatter, non-actionable content).
    """
    suggested_type: Optional[SectionType]
    type_confidence: Optional[float]
    type_label: Optional[SuggestionType]
    rule: str
    excluded: bool = False
    p_mutation: float = 0.0
    p_artifact: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suggested_type": self.suggested_type.value if self.suggested_type else None,
            "type_confidence": self.type_confidence,
            "type_label": self.type_label.value if self.type_label else None,
            "rule": self.rule,
            "excluded": self.excluded,
            "p_mutation": round(self.p_mutation, 4),
            "p_artifact": round(self.p_artifact, 4),
        }


@dataclass(frozen=True)
class DecisionRecord:
    """Cross-stage facts about one section, threaded gate -> arbiter -> synthesis."""
    intent_label: str
    has_concrete_delta: bool = False
    has_schedule_event: bool = False
    strategy_only: bool = False
    plan_change_protected: bool = False
    rescued_by_b_signal: bool = False
    force_role_assignment: bool = False
    force_decision_marker: bool = False
    dense_paragraph: bool = False
    trace: Tuple[str, ...] = ()

    def with_trace(self, *names: str, **changes: Any) -> "DecisionRecord":
        return replace(self, trace=self.trace + tuple(names), **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intent_label": self.intent_label,
            "has_concrete_delta": self.has_concrete_delta,
            "has_schedule_event": self.has_schedule_event,
            "strategy_only": self.strategy_only,
            "plan_change_protected": self.plan_change_protected,
            "rescued_by_b_signal": self.rescued_by_b_signal,
            "force_role_assignment": self.force_role_assignment,
            "force_decision_marker": self.force_decision_marker,
            "dense_paragraph": self.dense_paragraph,
            "trace": list(self.trace),
        }


@dataclass(frozen=True)
class ClassifiedSection:
    """A section together with its intent, gate outcome and type decision."""
    section: Section
    intent: IntentClassification
    actionability: ActionabilityResult
    type_decision: TypeDecision
    record: DecisionRecord

    @property
    def section_id(self) -> str:
        return self.section.section_id

    @property
    def note_id(self) -> str:
        return self.section.note_id

    @property
    def heading_text(self) -> str:
        return self.section.heading_text

    @property
    def heading_level(self) -> int:
        return self.section.heading_level

    @property
    def raw_text(self) -> str:
        return self.section.raw_text

    @property
    def body_lines(self) -> Tuple[Line, ...]:
        return self.section.body_lines

    @property
    def structural_features(self) -> StructuralFeatures:
        return self.section.structural_features

    @property
    def is_actionable(self) -> bool:
        return self.actionability.actionable

    @property
    def actionable_signal(self) -> float:
        return self.actionability.actionable_signal

    @property
    def out_of_scope_signal(self) -> float:
        return self.actionability.out_of_scope_signal

    @property
    def suggested_type(self) -> Optional[SectionType]:
        return self.type_decision.suggested_type

    @property
    def type_label(self) -> Optional[SuggestionType]:
        return self.type_decision.type_label

    @property
    def type_confidence(self) -> Optional[float]:
        return self.type_decision.type_confidence

    @property
    def emits(self) -> bool:
        """True when the section proceeds to synthesis."""
        return (
            self.is_actionable
            and not self.type_decision.excluded
            and self.type_label is not None
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "section_id": self.section_id,
            "heading_text": self.heading_text,
            "intent": self.intent.to_dict(),
            "intent_label": self.intent.top_label(),
            "actionability": self.actionability.to_dict(),
            "type": self.type_decision.to_dict(),
            "record": self.record.to_dict(),
        }


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EvidenceSpan:
    """Lines of the note backing a suggestion."""
    start_line: int
    end_line: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"start_line": self.start_line, "end_line": self.end_line, "text": self.text}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "EvidenceSpan":
        return cls(start_line=d["start_line"], end_line=d["end_line"], text=d["text"])


@dataclass(frozen=True)
class SuggestionScores:
    section_actionability: float
    type_choice_confidence: float
    synthesis_confidence: float
    overall: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "section_actionability": round(self.section_actionability, 4),
            "type_choice_confidence": round(self.type_choice_confidence, 4),
            "synthesis_confidence": round(self.synthesis_confidence, 4),
            "overall": round(self.overall, 4),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SuggestionScores":
        return cls(
            section_actionability=d.get("section_actionability", 0.0),
            type_choice_confidence=d.get("type_choice_confidence", 0.0),
            synthesis_confidence=d.get("synthesis_confidence", 0.0),
            overall=d.get("overall", 0.0),
        )


@dataclass(frozen=True)
class DraftInitiative:
    title: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "description": self.description}


@dataclass(frozen=True)
class SuggestionPayload:
    """``after_description`` for updates, ``draft_initiative`` for ideas."""
    after_description: Optional[str] = None
    draft_initiative: Optional[DraftInitiative] = None

    @property
    def text(self) -> str:
        if self.draft_initiative is not None:
            return f"{self.draft_initiative.title} {self.draft_initiative.description}"
        return self.after_description or ""

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        if self.after_description is not None:
            d["after_description"] = self.after_description
        if self.draft_initiative is not None:
            d["draft_initiative"] = self.draft_initiative.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SuggestionPayload":
        draft = d.get("draft_initiative")
        return cls(
            after_description=d.get("after_description"),
            draft_initiative=DraftInitiative(**draft) if draft else None,
        )


@dataclass(frozen=True)
class SuggestionRouting:
    create_new: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"create_new": self.create_new}


@dataclass(frozen=True)
class SuggestionContext:
    """Display context shown alongside a suggestion."""
    title: str
    body: str
    source_section_id: str
    source_heading: str
    evidence_preview: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "title": self.title,
            "body": self.body,
            "source_section_id": self.source_section_id,
            "source_heading": self.source_heading,
        }
        if self.evidence_preview is not None:
            d["evidence_preview"] = list(self.evidence_preview)
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SuggestionContext":
        preview = d.get("evidence_preview")
        return cls(
            title=d.get("title", ""),
            body=d.get("body", ""),
            source_section_id=d.get("source_section_id", ""),
            source_heading=d.get("source_heading", ""),
            evidence_preview=tuple(preview) if preview is not None else None,
        )


@dataclass(frozen=True)
class Suggestion:
    """The unit of pipeline output."""
    suggestion_id: str
    note_id: str
    section_id: str
    type: SuggestionType
    title: str
    payload: SuggestionPayload
    evidence_spans: Tuple[EvidenceSpan, ...]
    scores: SuggestionScores
    context: SuggestionContext
    routing: SuggestionRouting = field(default_factory=SuggestionRouting)
    suggestion_key: str = ""
    title_source: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    is_high_confidence: bool = True
    needs_clarification: bool = False
    clarification_reasons: Tuple[str, ...] = ()

    @property
    def source(self) -> str:
        """Provenance tag: section, b-signal, dense-paragraph, consolidated-section, ..."""
        return self.metadata.get("source", "section")

    @property
    def is_sentence_sourced(self) -> bool:
        """True for candidates whose evidence must be verbatim section text."""
        return self.source in ("b-signal", "dense-paragraph")

    def retitled(self, title: str) -> "Suggestion":
        """Copy with the title propagated to the context and draft initiative."""
        payload = self.payload
        if payload.draft_initiative is not None:
            payload = replace(payload, draft_initiative=replace(payload.draft_initiative, title=title))
        return replace(self, title=title, payload=payload, context=replace(self.context, title=title))

    def with_body(self, body: str) -> "Suggestion":
        """Copy with the body propagated to the context and the payload."""
        payload = self.payload
        if payload.draft_initiative is not None:
            payload = replace(payload, draft_initiative=replace(payload.draft_initiative, description=body))
        elif payload.after_description is not None:
            payload = replace(payload, after_description=body)
        return replace(self, payload=payload, context=replace(self.context, body=body))

    def flag_clarification(self, reason: str) -> "Suggestion":
        if reason in self.clarification_reasons:
            return self
        return replace(
            self,
            needs_clarification=True,
            is_high_confidence=False,
            clarification_reasons=self.clarification_reasons + (reason,),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suggestion_id": self.suggestion_id,
            "note_id": self.note_id,
            "section_id": self.section_id,
            "type": self.type.value,
            "title": self.title,
            "payload": self.payload.to_dict(),
            "evidence_spans": [s.to_dict() for s in self.evidence_spans],
            "scores": self.scores.to_dict(),
            "routing": self.routing.to_dict(),
            "suggestion_key": self.suggestion_key,
            "title_source": self.title_source,
            "metadata": dict(self.metadata),
            "is_high_confidence": self.is_high_confidence,
            "needs_clarification": self.needs_clarification,
            "clarification_reasons": list(self.clarification_reasons),
            "suggestion": self.context.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Suggestion":
        return cls(
            suggestion_id=d["suggestion_id"],
            note_id=d["note_id"],
            section_id=d["section_id"],
            type=SuggestionType(d["type"]),
            title=d["title"],
            payload=SuggestionPayload.from_dict(d.get("payload", {})),
            evidence_spans=tuple(EvidenceSpan.from_dict(s) for s in d.get("evidence_spans", [])),
            scores=SuggestionScores.from_dict(d.get("scores", {})),
            context=SuggestionContext.from_dict(d.get("suggestion", {})),
            routing=SuggestionRouting(create_new=d.get("routing", {}).get("create_new", True)),
            suggestion_key=d.get("suggestion_key", ""),
            title_source=d.get("title_source", ""),
            metadata=d.get("metadata", {}),
            is_high_confidence=d.get("is_high_confidence", True),
            needs_clarification=d.get("needs_clarification", False),
            clarification_reasons=tuple(d.get("clarification_reasons", [])),
        )


# ---------------------------------------------------------------------------
# Run result
# ---------------------------------------------------------------------------

@dataclass
class RunResult:
    """Suggestions of one run, plus the debug ledger when requested."""
    suggestions: List[Suggestion]
    debug: Optional["DebugRun"] = None

    @property
    def suggestion_keys(self) -> List[str]:
        return [s.suggestion_key for s in self.suggestions]

    def by_type(self, suggestion_type: SuggestionType) -> List[Suggestion]:
        return [s for s in self.suggestions if s.type == suggestion_type]

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"suggestions": [s.to_dict() for s in self.suggestions]}
        if self.debug is not None:
            d["debug"] = self.debug.to_dict()
        return d
