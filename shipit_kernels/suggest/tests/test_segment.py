"""
Tests for note segmentation: headings, the General section, folding of
heading-only sections, line annotation and structural features.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import pytest

from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.models import LineType, NoteInput, SuggestionInputError
from shipit_kernels.suggest.segment import annotate_lines, segment_note


SAMPLE_NOTE = """\
Weekly product sync, attendees from sales and eng.

## Billing

Finance wants invoices exported in bulk.

## Roadmap

- Ship the v2 importer in Q3
- Add SSO for enterprise tenants
- Move the audit log to the new store
"""


def _segment(markdown: str, note_id: str = "note-seg"):
    return segment_note(NoteInput(note_id=note_id, raw_markdown=markdown), IdAllocator())


class TestSegmentNote:

    def test_general_section_and_headings(self):
        sections = _segment(SAMPLE_NOTE)
        assert [s.heading_text for s in sections] == ["General", "Billing", "Roadmap"]
        assert sections[0].heading_level == 1
        assert sections[1].heading_level == 2

    def test_section_ids_are_sequential(self):
        sections = _segment(SAMPLE_NOTE)
        assert [s.section_id for s in sections] == [
            "sec_note-seg_1", "sec_note-seg_2", "sec_note-seg_3",
        ]

    def test_identical_input_identical_sections(self):
        first = _segment(SAMPLE_NOTE)
        second = _segment(SAMPLE_NOTE)
        assert [s.to_dict() for s in first] == [s.to_dict() for s in second]

    def test_structural_features(self):
        roadmap = _segment(SAMPLE_NOTE)[2]
        f = roadmap.structural_features
        assert f.num_list_items == 3
        assert f.num_lines == 3
        assert f.has_quarter_refs
        assert f.has_version_refs
        assert roadmap.list_items[0] == "Ship the v2 importer in Q3"

    def test_heading_only_section_folds_forward(self):
        sections = _segment("## Platform\n\n### Search\n\nIndex rebuilds take too long.\n")
        assert len(sections) == 1
        assert sections[0].heading_text == "Platform > Search"
        assert sections[0].heading_level == 3

    def test_crlf_normalised(self):
        sections = _segment("## Billing\r\nFinance wants bulk export.\r\n")
        assert sections[0].raw_text == "Finance wants bulk export."

    def test_numbered_heading(self):
        sections = _segment("1. Roadmap\n\nShip the importer.\n")
        assert sections[0].heading_text == "Roadmap"
        assert sections[0].heading_level == 2

    def test_numbered_list_is_not_a_heading(self):
        sections = _segment("1. First step.\n2. Second step.\n")
        assert len(sections) == 1
        assert sections[0].heading_text == "General"
        assert sections[0].structural_features.num_list_items == 2

    def test_line_range(self):
        billing = _segment(SAMPLE_NOTE)[1]
        assert billing.start_line == 2
        assert billing.end_line == 4

    def test_empty_note(self):
        assert _segment("") == []

    def test_invalid_note_rejected(self):
        with pytest.raises(SuggestionInputError):
            NoteInput(note_id="", raw_markdown="x")
        with pytest.raises(SuggestionInputError):
            NoteInput(note_id="n1", raw_markdown=None)


class TestAnnotateLines:

    def test_fenced_code_is_not_a_heading(self):
        lines = annotate_lines("## Build\n```\n# not a heading\n```\n")
        types = [ln.line_type for ln in lines]
        assert types[:4] == [LineType.HEADING, LineType.CODE, LineType.CODE, LineType.CODE]

    def test_list_items_and_quotes(self):
        lines = annotate_lines("- item\n  - nested\n> quoted\nplain text")
        assert lines[0].line_type == LineType.LIST_ITEM
        assert lines[1].line_type == LineType.LIST_ITEM
        assert lines[1].indent_level == 1
        assert lines[2].line_type == LineType.QUOTE
        assert lines[3].line_type == LineType.PARAGRAPH
