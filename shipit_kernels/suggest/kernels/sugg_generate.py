"""
Kernel: sugg_generate
Stage: 3 (Generation)

Runs the full suggestion pipeline on the stage-1 sections and persists the
RunResult with its debug ledger. The persisted list is uncapped; the
display cap is applied separately and recorded as ``visible_keys``.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List

from shipit_kernels.base import Kernel, KernelInput
from shipit_kernels.suggest.config import config_from_kernel
from shipit_kernels.suggest.models import NoteInput, Section
from shipit_kernels.suggest.pipeline import generate_run_result
from shipit_kernels.suggest.ranking import apply_display_cap

logger = logging.getLogger(__name__)


class SuggGenerateKernel(Kernel):
    """Sections -> suggestions."""

    name = "sugg_generate"
    version = "1.0.0"
    category = "suggest"
    stage = 3
    description = "Synthesize, consolidate, rank and key suggestions"

    requires: List[str] = ["sugg_note_segment"]
    provides: List[str] = ["suggestions", "debug_ledger"]

    def compute(self, input: KernelInput) -> Dict[str, Any]:
        segmented = input.load_dependency("sugg_note_segment")
        note = NoteInput(note_id=segmented["note_id"], raw_markdown=segmented.get("raw_markdown", ""))
        sections = [Section.from_dict(d) for d in segmented.get("sections", [])]
        config = config_from_kernel(input.config)
        max_suggestions = input.config.get("max_suggestions", config.max_suggestions)

        result = generate_run_result(note, sections=sections, config=config, debug=True)
        visible, capped = apply_display_cap(result.suggestions, max_suggestions)

        data = result.to_dict()
        data["note_id"] = note.note_id
        data["visible_keys"] = [s.suggestion_key for s in visible]
        data["capped_keys"] = [s.suggestion_key for s in capped]
        data["statistics"] = {
            "suggestions": len(result.suggestions),
            "visible": len(visible),
            "by_type": dict(Counter(s.type.value for s in result.suggestions)),
            "high_confidence": sum(1 for s in result.suggestions if s.is_high_confidence),
            "needs_clarification": sum(1 for s in result.suggestions if s.needs_clarification),
            "invariants": result.debug.invariants if result.debug else {},
        }
        return data

    def summarize(self, data: Dict[str, Any]) -> str:
        stats = data.get("statistics", {})
        by_type = ", ".join(f"{k}={v}" for k, v in sorted(stats.get("by_type", {}).items()))
        broken = [k for k, ok in stats.get("invariants", {}).items() if not ok]
        titles = [s.get("title", "") for s in data.get("suggestions", [])][:4]
        text = (
            f"{stats.get('suggestions', 0)} suggestions ({by_type or 'none'}), "
            f"{stats.get('visible', 0)} visible, {stats.get('needs_clarification', 0)} need clarification."
        )
        if broken:
            text += f" Invariants violated: {', '.join(broken)}."
        if titles:
            text += f" Top: {'; '.join(titles)}"
        return text
