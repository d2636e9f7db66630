"""
Kernel: sugg_section_classify
Stage: 2 (Classification)

Runs the intent scorer, the actionability gate and the type arbiter on
every section and persists the resulting classification table, including
the decision-record trace of the rules that fired.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Dict, List

from shipit_kernels.base import Kernel, KernelInput
from shipit_kernels.suggest.config import config_from_kernel
from shipit_kernels.suggest.models import Section
from shipit_kernels.suggest.pipeline import classify_sections

logger = logging.getLogger(__name__)


class SuggSectionClassifyKernel(Kernel):
    """Sections -> classification table."""

    name = "sugg_section_classify"
    version = "1.0.0"
    category = "suggest"
    stage = 2
    description = "Intent, actionability and type decision per section"

    requires: List[str] = ["sugg_note_segment"]
    provides: List[str] = ["classification"]

    def compute(self, input: KernelInput) -> Dict[str, Any]:
        segmented = input.load_dependency("sugg_note_segment")
        sections = [Section.from_dict(d) for d in segmented.get("sections", [])]
        config = config_from_kernel(input.config)

        classified = classify_sections(sections, config)
        rows = []
        for cs in classified:
            row = cs.to_dict()
            row["emits"] = cs.emits
            rows.append(row)

        labels = Counter(cs.type_label.value for cs in classified if cs.emits and cs.type_label)
        rules = Counter(cs.actionability.rule for cs in classified)
        return {
            "note_id": segmented.get("note_id", ""),
            "sections": rows,
            "statistics": {
                "sections": len(classified),
                "actionable": sum(1 for cs in classified if cs.is_actionable),
                "emitting": sum(1 for cs in classified if cs.emits),
                "plan_change_protected": sum(1 for cs in classified if cs.record.plan_change_protected),
                "by_type": dict(labels),
                "gate_rules": dict(rules),
            },
        }

    def summarize(self, data: Dict[str, Any]) -> str:
        stats = data.get("statistics", {})
        by_type = ", ".join(f"{k}={v}" for k, v in sorted(stats.get("by_type", {}).items()))
        return (
            f"{stats.get('sections', 0)} sections: {stats.get('actionable', 0)} actionable, "
            f"{stats.get('emitting', 0)} emitting ({by_type or 'none'}), "
            f"{stats.get('plan_change_protected', 0)} protected plan changes."
        )
