"""
Tests for the suggestctl command line.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import json

import pytest

from shipit_kernels.suggest.cli.suggestctl import DECISIONS_FILE, main


NOTE = """\
## Launch plan

Move the launch from the 12th to the 19th.

## Export

Add CSV export to reports.
"""


@pytest.fixture
def workspace(tmp_path):
    note = tmp_path / "sync.md"
    note.write_text(NOTE, encoding="utf-8")
    ws = tmp_path / "ws"
    assert main(["generate", str(note), "--note-id", "note-cli", "-w", str(ws)]) == 0
    return ws


def _keys(ws):
    envelope = json.loads((ws / "stage3" / "sugg_generate.json").read_text(encoding="utf-8"))
    return [s["suggestion_key"] for s in envelope["data"]["suggestions"]]


@pytest.mark.integration
class TestSuggestctl:

    def test_generate_json(self, tmp_path, capsys):
        note = tmp_path / "sync.md"
        note.write_text(NOTE, encoding="utf-8")
        rc = main(["generate", str(note), "--note-id", "note-cli", "-w", str(tmp_path / "ws"), "--json"])
        assert rc == 0
        out = json.loads(capsys.readouterr().out)
        assert out["note_id"] == "note-cli"
        assert any(s["type"] == "project_update" for s in out["suggestions"])

    def test_generate_missing_note(self, tmp_path):
        assert main(["generate", str(tmp_path / "missing.md")]) == 1

    def test_show(self, workspace, capsys):
        assert main(["show", str(workspace), "--all"]) == 0
        out = capsys.readouterr().out
        assert "stage3" in out
        assert "project_update" in out

    def test_show_missing_workspace(self, tmp_path):
        assert main(["show", str(tmp_path / "nowhere")]) == 1

    def test_explain(self, workspace, capsys):
        assert main(["explain", str(workspace)]) == 0
        out = capsys.readouterr().out
        assert "Launch plan" in out
        assert "Invariants:" in out

    def test_decide_and_show(self, workspace, capsys):
        key = _keys(workspace)[0]
        assert main(["decide", str(workspace), key[:10], "--apply", "--initiative", "init-7"]) == 0
        line = (workspace / DECISIONS_FILE).read_text(encoding="utf-8").splitlines()[0]
        record = json.loads(line)
        assert record["suggestion_key"] == key
        assert record["applied_mode"] == "existing"

        capsys.readouterr()
        assert main(["show", str(workspace), "--all"]) == 0
        assert "applied" in capsys.readouterr().out

    def test_decide_unknown_prefix(self, workspace):
        assert main(["decide", str(workspace), "zzzz", "--dismiss"]) == 1
        assert not (workspace / DECISIONS_FILE).exists()

    def test_decisions_survive_regeneration(self, tmp_path, workspace):
        key = _keys(workspace)[0]
        assert main(["decide", str(workspace), key, "--dismiss"]) == 0
        assert main(["generate", str(tmp_path / "sync.md"), "--note-id", "note-cli", "-w", str(workspace)]) == 0
        assert key in _keys(workspace)

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "suggestctl" in capsys.readouterr().out
