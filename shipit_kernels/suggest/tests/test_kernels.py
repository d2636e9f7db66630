"""
Tests for the S1 -> S2 -> S3 suggestion kernels.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import json

import pytest

from shipit_kernels.base import KernelInput
from shipit_kernels.suggest.kernels.sugg_generate import SuggGenerateKernel
from shipit_kernels.suggest.kernels.sugg_note_segment import SuggNoteSegmentKernel, default_note_id
from shipit_kernels.suggest.kernels.sugg_section_classify import SuggSectionClassifyKernel
from shipit_kernels.suggest.models import NoteInput
from shipit_kernels.suggest.pipeline import generate_run_result


NOTE = """\
## Launch plan

Move the launch from the 12th to the 19th.

## Export

Add CSV export to reports.

## Notes

The weather was nice today.
"""


@pytest.fixture
def note_file(tmp_path):
    path = tmp_path / "sync.md"
    path.write_text(NOTE, encoding="utf-8")
    return path


def _segment(workspace, note_file, **extra):
    config = {"note_path": str(note_file), "note_id": "note-kern", **extra}
    return SuggNoteSegmentKernel().run(KernelInput(workspace=workspace, config=config))


@pytest.mark.integration
class TestKernelChain:

    def test_segment_persists_envelope(self, tmp_path, note_file):
        workspace = tmp_path / "ws"
        workspace.mkdir()
        out = _segment(workspace, note_file)

        assert out.success
        assert out.output_file == workspace / "stage1" / "sugg_note_segment.json"
        envelope = json.loads(out.output_file.read_text(encoding="utf-8"))
        assert envelope["_meta"]["kernel_name"] == "sugg_note_segment"
        data = envelope["data"]
        assert data["note_id"] == "note-kern"
        assert data["statistics"]["sections"] == 3
        assert [s["heading_text"] for s in data["sections"]] == ["Launch plan", "Export", "Notes"]
        assert out.output_file.with_suffix(".summary.txt").exists()

    def test_segment_requires_note_path(self, tmp_path):
        out = SuggNoteSegmentKernel().run(KernelInput(workspace=tmp_path, config={}))
        assert not out.success
        assert "note_path" in out.errors[0]

    def test_classify_table(self, tmp_path, note_file):
        seg = _segment(tmp_path, note_file)
        out = SuggSectionClassifyKernel().run(KernelInput(
            workspace=tmp_path,
            config={},
            dependencies={"sugg_note_segment": seg.output_file},
        ))
        assert out.success
        stats = out.data["statistics"]
        assert stats["sections"] == 3
        assert stats["plan_change_protected"] == 1
        assert stats["emitting"] == 2
        assert out.output_file == tmp_path / "stage2" / "sugg_section_classify.json"

    def test_classify_requires_segment(self, tmp_path):
        out = SuggSectionClassifyKernel().run(KernelInput(workspace=tmp_path, config={}))
        assert not out.success
        assert any("sugg_note_segment" in e for e in out.errors)

    def test_generate_matches_direct_run(self, tmp_path, note_file):
        seg = _segment(tmp_path, note_file)
        out = SuggGenerateKernel().run(KernelInput(
            workspace=tmp_path,
            config={"max_suggestions": 1},
            dependencies={"sugg_note_segment": seg.output_file},
        ))
        assert out.success
        data = out.data
        direct = generate_run_result(NoteInput(note_id="note-kern", raw_markdown=NOTE))
        assert [s["suggestion_key"] for s in data["suggestions"]] == direct.suggestion_keys
        assert "debug" in data
        assert data["statistics"]["invariants"]["plan_change_sections_emit_update"]

        updates = [s["suggestion_key"] for s in data["suggestions"] if s["type"] == "project_update"]
        assert updates
        assert set(updates) <= set(data["visible_keys"])
        assert len(data["visible_keys"]) + len(data["capped_keys"]) == len(data["suggestions"])


def test_default_note_id_is_stable(tmp_path, note_file):
    first = default_note_id(note_file)
    assert first == default_note_id(note_file)
    assert first.startswith("sync_")
    assert len(first) == len("sync_") + 12
