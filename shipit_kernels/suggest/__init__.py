"""
ShipIt Suggestion Kernels -- Meeting Notes to Roadmap Suggestions

A kernel family that turns freeform meeting notes into a small set of
evidence-grounded suggestions (project updates, new ideas, risks, bugs)
that a product manager can apply or dismiss.

Stage 1 -- Segmentation (deterministic):
    sugg_note_segment:      Note -> headed sections with structural features

Stage 2 -- Classification (deterministic + optional LLM blend):
    sugg_section_classify:  Intent scores, actionability gate, type arbiter

Stage 3 -- Generation (deterministic):
    sugg_generate:          Synthesis, dense-paragraph split, consolidation,
                            final emission, ranking, title contract, keys

Library entry points: ``generate_run_result``, ``generate_suggestions``
and ``agenerate_run_result`` in ``shipit_kernels.suggest.pipeline``.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

__version__ = "0.1.0"

from shipit_kernels.suggest.models import NoteInput, RunResult, Suggestion, SuggestionType
from shipit_kernels.suggest.pipeline import (
    agenerate_run_result,
    generate_run_result,
    generate_run_result_with_debug,
    generate_suggestions,
)

__all__ = [
    "NoteInput",
    "RunResult",
    "Suggestion",
    "SuggestionType",
    "agenerate_run_result",
    "generate_run_result",
    "generate_run_result_with_debug",
    "generate_suggestions",
]
