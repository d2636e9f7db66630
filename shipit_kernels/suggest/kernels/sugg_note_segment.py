"""
Kernel: sugg_note_segment
Stage: 1 (Segmentation)

Reads a meeting note (Markdown or plain text) and splits it into headed
sections with structural features. The raw text travels with the sections
so that later stages never need to re-read the note file.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any, Dict, List

from shipit_kernels.base import Kernel, KernelInput
from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.models import NoteInput
from shipit_kernels.suggest.segment import segment_note

logger = logging.getLogger(__name__)


def default_note_id(note_path: Path) -> str:
    """Stable id from the note's resolved path: ``<stem>_<sha12>``."""
    h = hashlib.sha256(str(note_path.resolve()).encode()).hexdigest()[:12]
    return f"{note_path.stem}_{h}"


class SuggNoteSegmentKernel(Kernel):
    """Note file -> sections."""

    name = "sugg_note_segment"
    version = "1.0.0"
    category = "suggest"
    stage = 1
    description = "Split a meeting note into headed sections with structural features"

    requires: List[str] = []
    provides: List[str] = ["sections"]

    def validate_input(self, input: KernelInput) -> List[str]:
        errors = super().validate_input(input)
        note_path = input.config.get("note_path", "")
        if not note_path:
            errors.append("Missing required config: note_path")
        elif not Path(note_path).is_file():
            errors.append(f"note_path is not a file: {note_path}")
        return errors

    def compute(self, input: KernelInput) -> Dict[str, Any]:
        note_path = Path(input.config["note_path"])
        note_id = input.config.get("note_id") or default_note_id(note_path)
        raw = note_path.read_text(encoding="utf-8", errors="replace")
        note = NoteInput(note_id=note_id, raw_markdown=raw)

        sections = segment_note(note, IdAllocator())
        logger.info(f"[sugg_note_segment] {note_path.name}: {len(sections)} section(s)")
        return {
            "note_id": note_id,
            "note_path": str(note_path),
            "raw_markdown": raw,
            "sections": [s.to_dict() for s in sections],
            "statistics": {
                "sections": len(sections),
                "lines": len(raw.splitlines()),
                "list_items": sum(s.structural_features.num_list_items for s in sections),
            },
        }

    def summarize(self, data: Dict[str, Any]) -> str:
        stats = data.get("statistics", {})
        headings = [s.get("heading_text", "") for s in data.get("sections", [])][:5]
        return (
            f"Note {data.get('note_id', '?')}: {stats.get('sections', 0)} sections, "
            f"{stats.get('lines', 0)} lines, {stats.get('list_items', 0)} list items. "
            f"Headings: {', '.join(headings)}"
        )
