"""
suggestctl -- CLI for the ShipIt suggestion kernel family.

Commands:
    generate  Run the S1->S2->S3 pipeline on a meeting note
    show      Display the suggestions stored in a workspace
    explain   Show per-section decisions and drop reasons (debug ledger)
    decide    Record an applied/dismissed decision for a suggestion key

Author: ShipIt Suggestion Engine | 2026-10-17
"""

import argparse
import hashlib
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import logging

logger = logging.getLogger(__name__)

DECISIONS_FILE = "decisions.jsonl"

# ANSI color helpers (auto-disabled for non-TTY)
_USE_COLOR = sys.stdout.isatty()


def _c(code: str, text: str) -> str:
    if not _USE_COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def _bold(text: str) -> str:
    return _c("1", text)


def _green(text: str) -> str:
    return _c("32", text)


def _yellow(text: str) -> str:
    return _c("33", text)


def _red(text: str) -> str:
    return _c("31", text)


def _cyan(text: str) -> str:
    return _c("36", text)


def _dim(text: str) -> str:
    return _c("2", text)


# ---------------------------------------------------------------------------
# Kernel map (lazy imports)
# ---------------------------------------------------------------------------

_KERNEL_MAP = {
    "sugg_note_segment": ("shipit_kernels.suggest.kernels.sugg_note_segment", "SuggNoteSegmentKernel"),
    "sugg_section_classify": ("shipit_kernels.suggest.kernels.sugg_section_classify", "SuggSectionClassifyKernel"),
    "sugg_generate": ("shipit_kernels.suggest.kernels.sugg_generate", "SuggGenerateKernel"),
}


def _get_suggest_kernel(kernel_name: str):
    entry = _KERNEL_MAP.get(kernel_name)
    if entry is None:
        return None

    import importlib
    module_path, class_name = entry
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


# ---------------------------------------------------------------------------
# Workspace helpers
# ---------------------------------------------------------------------------

def _resolve_workspace(note_path: Path, workspace: Optional[Path]) -> Path:
    """Default: <note dir>/.suggest/<stem>_<hash12>/"""
    if workspace:
        return workspace
    h = hashlib.sha256(str(note_path.resolve()).encode()).hexdigest()[:12]
    return note_path.parent / ".suggest" / f"{note_path.stem}_{h}"


def _discover_dependencies(requires: List[str], workspace: Path) -> Dict[str, Path]:
    deps = {}
    for req in requires:
        for stage in ("stage1", "stage2", "stage3"):
            candidate = workspace / stage / f"{req}.json"
            if candidate.exists():
                deps[req] = candidate
                break
    return deps


def _load_stage(workspace: Path, stage: str, kernel: str) -> Optional[Dict[str, Any]]:
    path = workspace / stage / f"{kernel}.json"
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8")).get("data", {})


def _run_kernel(
    kernel_name: str,
    workspace: Path,
    config: dict,
    verbose: bool = False,
    quiet: bool = False,
) -> bool:
    """Run a single kernel by name; returns success."""
    if not quiet:
        print(f"  [{_cyan(kernel_name)}] ", end="", flush=True)

    from shipit_kernels.base import KernelInput

    kernel_cls = _get_suggest_kernel(kernel_name)
    if kernel_cls is None:
        print(_yellow("not found (skipped)"))
        return False

    kernel = kernel_cls()
    ki = KernelInput(
        workspace=workspace,
        config=config,
        dependencies=_discover_dependencies(kernel.requires, workspace),
    )
    result = kernel.run(ki)
    if quiet:
        return result.success
    if result.success:
        print(_green(result.summary or "done"))
        return True

    errors = "; ".join(result.errors) if result.errors else "unknown error"
    print(_red(f"FAILED: {errors}"))
    if verbose:
        for e in result.errors:
            print(f"    {_dim(e)}")
    return False


def _print_suggestion(s: Dict[str, Any], decision: Optional[Dict[str, Any]] = None) -> None:
    kind = s.get("type", "?")
    color = _green if kind == "project_update" else _cyan
    flags = []
    if not s.get("is_high_confidence", True):
        flags.append("low-confidence")
    if s.get("needs_clarification"):
        flags.append("clarify: " + ",".join(s.get("clarification_reasons", [])))
    if decision:
        flags.append(decision.get("status", ""))
    overall = s.get("scores", {}).get("overall", 0.0)
    print(f"  {color(f'[{kind}]')} {_bold(s.get('title', ''))}  {_dim(f'{overall:.2f}')}")
    body = s.get("suggestion", {}).get("body", "")
    for line in body.splitlines()[:4]:
        print(f"      {line}")
    print(f"      {_dim('key ' + s.get('suggestion_key', '')[:12])}"
          + (f"  {_yellow(' | '.join(flags))}" if flags else ""))


# ---------------------------------------------------------------------------
# Command: generate
# ---------------------------------------------------------------------------

def cmd_generate(args: argparse.Namespace) -> int:
    """Run the full suggestion pipeline on one note."""
    note_path = Path(args.note).resolve()
    if not note_path.is_file():
        print(_red(f"Error: Not a file: {note_path}"))
        return 1

    workspace = _resolve_workspace(note_path, Path(args.workspace) if args.workspace else None)
    workspace.mkdir(parents=True, exist_ok=True)

    config: Dict[str, Any] = {"note_path": str(note_path)}
    if args.note_id:
        config["note_id"] = args.note_id
    if args.config:
        config["config_path"] = str(Path(args.config).resolve())
    if args.max is not None:
        config["max_suggestions"] = args.max

    quiet = args.json
    if not quiet:
        print(_bold(f"ShipIt Suggest -- {note_path.name}"))
        print(f"Workspace: {_dim(str(workspace))}")
        print()

    for kernel_name in ("sugg_note_segment", "sugg_section_classify", "sugg_generate"):
        if not _run_kernel(kernel_name, workspace, config, args.verbose, quiet=quiet):
            return 1

    data = _load_stage(workspace, "stage3", "sugg_generate") or {}
    if quiet:
        print(json.dumps({
            "note_id": data.get("note_id"),
            "suggestions": data.get("suggestions", []),
            "visible_keys": data.get("visible_keys", []),
        }, indent=2, ensure_ascii=False))
        return 0

    visible = set(data.get("visible_keys", []))
    suggestions = data.get("suggestions", [])
    print()
    print(_bold(f"Suggestions ({len(visible)} of {len(suggestions)} shown)"))
    for s in suggestions:
        if s.get("suggestion_key") in visible:
            _print_suggestion(s)
    hidden = len(suggestions) - len(visible)
    if hidden:
        print(_dim(f"  ... {hidden} more (suggestctl show {workspace} --all)"))
    return 0


# ---------------------------------------------------------------------------
# Command: show
# ---------------------------------------------------------------------------

def cmd_show(args: argparse.Namespace) -> int:
    """Display the stored suggestions with their decisions."""
    workspace = Path(args.workspace).resolve()
    data = _load_stage(workspace, "stage3", "sugg_generate")
    if data is None:
        print(_red(f"Error: No suggestions found in {workspace}"))
        print(_dim("Run 'suggestctl generate' first."))
        return 1

    from shipit_kernels.suggest.decisions import DecisionStore

    store = DecisionStore(workspace / DECISIONS_FILE)
    note_id = data.get("note_id", "")
    visible = set(data.get("visible_keys", []))

    print(_bold(f"ShipIt Suggest -- {note_id}"))
    for stage_name in ("stage1", "stage2", "stage3"):
        stage_dir = workspace / stage_name
        files = sorted(stage_dir.glob("*.json")) if stage_dir.exists() else []
        status = _green(f"{len(files)} files") if files else _dim("not created")
        print(f"  {_bold(stage_name)}: {status}")
    print()

    for s in data.get("suggestions", []):
        if not args.all and s.get("suggestion_key") not in visible:
            continue
        decision = store.lookup(note_id, s.get("suggestion_key", ""))
        _print_suggestion(s, decision.to_dict() if decision else None)

    invariants = data.get("statistics", {}).get("invariants", {})
    broken = [k for k, ok in invariants.items() if not ok]
    if broken:
        print()
        print(_red(f"Invariants violated: {', '.join(broken)}"))
    return 0


# ---------------------------------------------------------------------------
# Command: explain
# ---------------------------------------------------------------------------

def cmd_explain(args: argparse.Namespace) -> int:
    """Per-section decision trail from the debug ledger."""
    workspace = Path(args.workspace).resolve()
    data = _load_stage(workspace, "stage3", "sugg_generate")
    if data is None or "debug" not in data:
        print(_red(f"Error: No debug ledger found in {workspace}"))
        return 1

    debug = data["debug"]
    for section in debug.get("sections", []):
        if args.section and section.get("section_id") != args.section:
            continue
        heading = section.get("heading_text") or "(untitled)"
        start, end = section.get("line_range", [0, 0])
        if section.get("emitted"):
            status = _green("emitted")
        else:
            status = _yellow(f"{section.get('drop_stage')}: {section.get('drop_reason')}")
        location = f"{section.get('section_id')} L{start}-{end}"
        print(f"{_bold(heading)} {_dim(location)}  {status}")
        print(f"    intent: {section.get('intent_label')}  "
              f"gate: {section.get('actionability', {}).get('rule', '?')}  "
              f"type: {section.get('type', {}).get('rule', '?')}")
        if args.verbose:
            print(f"    trace: {' > '.join(section.get('trace', []))}")
            print(f"    reason: {section.get('actionability', {}).get('reason', '')}")
        for c in section.get("candidates", []):
            mark = _green("+") if c.get("emitted") else _red("-")
            reason = "" if c.get("emitted") else f"  {_dim(str(c.get('drop_reason')))}"
            merged = f" -> {c['merged_into']}" if c.get("merged_into") else ""
            print(f"    {mark} {c.get('type')} {c.get('title')!r} [{c.get('source')}]{reason}{merged}")
    print()
    print(f"Invariants: {json.dumps(debug.get('invariants', {}))}")
    timings = ", ".join(f"{k}={v:.1f}ms" for k, v in debug.get("timings_ms", {}).items())
    print(_dim(f"Timings: {timings}"))
    return 0


# ---------------------------------------------------------------------------
# Command: decide
# ---------------------------------------------------------------------------

def cmd_decide(args: argparse.Namespace) -> int:
    """Record a decision keyed by (note_id, suggestion_key)."""
    workspace = Path(args.workspace).resolve()
    data = _load_stage(workspace, "stage3", "sugg_generate")
    if data is None:
        print(_red(f"Error: No suggestions found in {workspace}"))
        return 1

    keys = [s.get("suggestion_key", "") for s in data.get("suggestions", [])]
    matches = [k for k in keys if k.startswith(args.key)]
    if len(matches) != 1:
        what = "ambiguous" if matches else "unknown"
        print(_red(f"Error: {what} suggestion key prefix {args.key!r}"))
        return 1

    from shipit_kernels.suggest.decisions import AppliedMode, DecisionStatus, DecisionStore

    status = DecisionStatus.APPLIED if args.apply else DecisionStatus.DISMISSED
    store = DecisionStore(workspace / DECISIONS_FILE)
    decision = store.record(
        note_id=data.get("note_id", ""),
        suggestion_key=matches[0],
        status=status,
        initiative_id=args.initiative,
        applied_mode=AppliedMode(args.mode) if args.mode else None,
        reason=args.reason,
    )
    print(_green(f"{decision.status.value}: {matches[0][:12]}") + _dim(f" ({decision.decided_at})"))
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the suggestctl argument parser."""
    parser = argparse.ArgumentParser(
        prog="suggestctl",
        description="ShipIt Suggest -- meeting-note to roadmap-suggestion pipeline",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # --- generate ---
    p_gen = sub.add_parser("generate", help="Run the S1->S2->S3 pipeline on a note")
    p_gen.add_argument("note", help="Path to the meeting note (Markdown or text)")
    p_gen.add_argument("--note-id", default="", help="Note id (default: derived from the path)")
    p_gen.add_argument("--config", default="", help="Generator config YAML")
    p_gen.add_argument("-w", "--workspace", help="Workspace directory (default: auto)")
    p_gen.add_argument("--max", type=int, default=None, help="Display cap (default: from config)")
    p_gen.add_argument("--json", action="store_true", help="Print the suggestions as JSON")
    p_gen.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )
    p_gen.set_defaults(func=cmd_generate)

    # --- show ---
    p_show = sub.add_parser("show", help="Display suggestions in a workspace")
    p_show.add_argument("workspace", help="Path to workspace directory")
    p_show.add_argument("--all", action="store_true", help="Include suggestions beyond the display cap")
    p_show.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )
    p_show.set_defaults(func=cmd_show)

    # --- explain ---
    p_explain = sub.add_parser("explain", help="Per-section decisions and drop reasons")
    p_explain.add_argument("workspace", help="Path to workspace directory")
    p_explain.add_argument("--section", default="", help="Only this section id")
    p_explain.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )
    p_explain.set_defaults(func=cmd_explain)

    # --- decide ---
    p_decide = sub.add_parser("decide", help="Apply or dismiss a suggestion")
    p_decide.add_argument("workspace", help="Path to workspace directory")
    p_decide.add_argument("key", help="Suggestion key (a unique prefix is enough)")
    group = p_decide.add_mutually_exclusive_group(required=True)
    group.add_argument("--apply", action="store_true", help="Mark as applied")
    group.add_argument("--dismiss", action="store_true", help="Mark as dismissed")
    p_decide.add_argument("--initiative", default=None, help="Target initiative id")
    p_decide.add_argument("--mode", choices=["existing", "created"], default=None,
                          help="Applied to an existing initiative or created a new one")
    p_decide.add_argument("--reason", default=None, help="Free-text reason")
    p_decide.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )
    p_decide.set_defaults(func=cmd_decide)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for suggestctl."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    if not args.command:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
