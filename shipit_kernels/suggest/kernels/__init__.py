"""
Suggestion kernels, one per pipeline stage.

Stage 1 -- Segmentation:
    sugg_note_segment:      note file -> sections with structural features

Stage 2 -- Classification:
    sugg_section_classify:  sections -> intent, actionability and type table

Stage 3 -- Generation:
    sugg_generate:          sections -> RunResult with debug ledger

Author: ShipIt Suggestion Engine | 2026-10-17
"""
