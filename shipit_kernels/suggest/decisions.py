"""
Append-only JSONL store of user decisions on suggestions.

Decisions are keyed by ``(note_id, suggestion_key)``. The key is stable
across regenerations, so a decision recorded once still applies after the
note is reprocessed. Re-deciding appends a new line; the latest line wins.

Thread-safe via threading.Lock.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from shipit_kernels.suggest.models import Suggestion

logger = logging.getLogger(__name__)


class DecisionStatus(str, Enum):
    APPLIED = "applied"
    DISMISSED = "dismissed"


class AppliedMode(str, Enum):
    EXISTING = "existing"
    CREATED = "created"


@dataclass(frozen=True)
class SuggestionDecision:
    note_id: str
    suggestion_key: str
    status: DecisionStatus
    decided_at: str
    initiative_id: Optional[str] = None
    applied_mode: Optional[AppliedMode] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "note_id": self.note_id,
            "suggestion_key": self.suggestion_key,
            "status": self.status.value,
            "decided_at": self.decided_at,
        }
        if self.initiative_id:
            d["initiative_id"] = self.initiative_id
        if self.applied_mode:
            d["applied_mode"] = self.applied_mode.value
        if self.reason:
            d["reason"] = self.reason
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SuggestionDecision":
        mode = d.get("applied_mode")
        return cls(
            note_id=d["note_id"],
            suggestion_key=d["suggestion_key"],
            status=DecisionStatus(d["status"]),
            decided_at=d.get("decided_at", ""),
            initiative_id=d.get("initiative_id"),
            applied_mode=AppliedMode(mode) if mode else None,
            reason=d.get("reason"),
        )


class DecisionStore:
    """JSONL-backed decision log with an in-memory latest-wins index."""

    def __init__(self, path: Path):
        self._path = Path(path)
        self._lock = threading.Lock()
        self._latest: Dict[Tuple[str, str], SuggestionDecision] = {}
        self._count = 0
        if self._path.exists():
            self._load()

    def _load(self) -> None:
        with open(self._path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    decision = SuggestionDecision.from_dict(json.loads(line))
                except (json.JSONDecodeError, KeyError, ValueError) as e:
                    logger.warning(f"[decisions] Skipping malformed line {line_num}: {e}")
                    continue
                self._latest[(decision.note_id, decision.suggestion_key)] = decision
                self._count += 1

    def record(
        self,
        note_id: str,
        suggestion_key: str,
        status: DecisionStatus,
        initiative_id: Optional[str] = None,
        applied_mode: Optional[AppliedMode] = None,
        reason: Optional[str] = None,
    ) -> SuggestionDecision:
        """Append a decision (writes immediately to disk)."""
        if status == DecisionStatus.APPLIED and applied_mode is None and initiative_id:
            applied_mode = AppliedMode.EXISTING
        decision = SuggestionDecision(
            note_id=note_id,
            suggestion_key=suggestion_key,
            status=DecisionStatus(status),
            decided_at=datetime.now(timezone.utc).isoformat(),
            initiative_id=initiative_id,
            applied_mode=applied_mode,
            reason=reason,
        )
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as f:
                f.write(json.dumps(decision.to_dict(), ensure_ascii=False) + "\n")
            self._latest[(note_id, suggestion_key)] = decision
            self._count += 1
        logger.info(f"[decisions] {status.value} {suggestion_key[:12]} on {note_id}")
        return decision

    def lookup(self, note_id: str, suggestion_key: str) -> Optional[SuggestionDecision]:
        with self._lock:
            return self._latest.get((note_id, suggestion_key))

    def for_note(self, note_id: str) -> List[SuggestionDecision]:
        with self._lock:
            return [d for (nid, _), d in self._latest.items() if nid == note_id]

    def attach_decisions(
        self,
        note_id: str,
        suggestions: List[Suggestion],
    ) -> List[Tuple[Suggestion, Optional[SuggestionDecision]]]:
        """Pair each suggestion with its latest decision, matched by key only."""
        return [(s, self.lookup(note_id, s.suggestion_key)) for s in suggestions]

    def undecided(self, note_id: str, suggestions: List[Suggestion]) -> List[Suggestion]:
        """Suggestions with no applied or dismissed decision."""
        return [s for s, d in self.attach_decisions(note_id, suggestions) if d is None]

    @property
    def count(self) -> int:
        with self._lock:
            return self._count
