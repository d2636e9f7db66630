"""
Note segmentation: raw Markdown -> annotated lines -> headed sections.

Recognised structure:
    - markdown headings (``#`` .. ``######``) and numbered headings
      (``1. Title`` with at most two leading spaces, treated as level 2)
    - plain-text headings (short unpunctuated lines) while no markdown
      heading has been seen, or inside the implicit ``General`` section
    - pseudo-headings (``Timeline:``, ``Q3 2025``, ``Sprint 4``) before any
      other heading
    - list items, quotes, fenced code, blank lines and paragraphs

Heading-only sections are folded into the next section as
``Parent > Child``. Section ids come from the run's ``IdAllocator``.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.lexicons import (
    DATE_RE,
    INITIATIVE_PHRASE_RE,
    LAUNCH_RE,
    METRIC_RE,
    QUARTER_RE,
    VERSION_RE,
)
from shipit_kernels.suggest.models import Line, LineType, NoteInput, Section, StructuralFeatures

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Compiled regex constants
# ---------------------------------------------------------------------------

CODE_FENCE_RE = re.compile(r"^(`{3,}|~{3,})")
HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
NUMBERED_HEADING_RE = re.compile(r"^\s{0,2}\d+\.\s+(\S.*)$")
LIST_ITEM_RE = re.compile(r"^\s*(?:[-*+•]|\d+[.)])\s")
QUOTE_RE = re.compile(r"^\s*>\s?")
PSEUDO_HEADING_RES = (
    re.compile(r"^(?:plan|roadmap|execution|next steps|decisions|goals|scope|timeline|strategy):", re.I),
    re.compile(r"^(?:q[1-4]|h[12])\s+\d{4}", re.I),
    re.compile(r"^(?:phase|sprint)\s+\d+", re.I),
)

PLAIN_HEADING_MAX_CHARS = 40
GENERAL_HEADING = "General"


# ---------------------------------------------------------------------------
# Line annotation
# ---------------------------------------------------------------------------

def _indent_level(text: str) -> int:
    leading = text[: len(text) - len(text.lstrip())]
    return len(leading.replace("\t", "  ")) // 2


def _is_numbered_heading(raw: str, prev_raw: Optional[str], next_raw: Optional[str]) -> bool:
    """``1. Title`` counts as a heading unless it is part of a numbered list."""
    m = NUMBERED_HEADING_RE.match(raw)
    if not m or m.group(1).rstrip()[-1:] in ".?!":
        return False
    return not any(
        neighbour is not None and NUMBERED_HEADING_RE.match(neighbour)
        for neighbour in (prev_raw, next_raw)
    )


def annotate_lines(raw_markdown: str) -> List[Line]:
    """Classify every line of the note. Fence state is local to this call."""
    text = raw_markdown.replace("\r\n", "\n").replace("\r", "\n")
    raw_lines = text.split("\n")
    non_blank = [i for i, ln in enumerate(raw_lines) if ln.strip()]

    lines: List[Line] = []
    fence: Optional[str] = None
    for i, raw in enumerate(raw_lines):
        stripped = raw.strip()
        fence_match = CODE_FENCE_RE.match(stripped)
        if fence is not None:
            if fence_match and stripped.startswith(fence):
                fence = None
            lines.append(Line(i, raw, LineType.CODE))
            continue
        if fence_match:
            fence = fence_match.group(1)[0] * 3
            lines.append(Line(i, raw, LineType.CODE))
            continue
        if not stripped:
            lines.append(Line(i, raw, LineType.BLANK))
            continue

        m = HEADING_RE.match(stripped)
        if m:
            lines.append(Line(i, raw, LineType.HEADING, heading_level=len(m.group(1))))
            continue
        prev_idx = next((j for j in reversed(non_blank) if j < i), None)
        next_idx = next((j for j in non_blank if j > i), None)
        prev_raw = raw_lines[prev_idx] if prev_idx is not None else None
        next_raw = raw_lines[next_idx] if next_idx is not None else None
        if _is_numbered_heading(raw, prev_raw, next_raw):
            lines.append(Line(i, raw, LineType.HEADING, heading_level=2))
            continue
        if QUOTE_RE.match(raw):
            lines.append(Line(i, raw, LineType.QUOTE))
        elif LIST_ITEM_RE.match(raw):
            lines.append(Line(i, raw, LineType.LIST_ITEM, indent_level=_indent_level(raw)))
        else:
            lines.append(Line(i, raw, LineType.PARAGRAPH))
    return lines


def _heading_text(line: Line) -> str:
    text = line.text.strip()
    m = HEADING_RE.match(text)
    if m:
        return m.group(2).strip()
    m = NUMBERED_HEADING_RE.match(line.text)
    return m.group(1).strip() if m else text


def _is_plain_heading(line: Line, next_line: Optional[Line]) -> bool:
    if line.line_type != LineType.PARAGRAPH:
        return False
    text = line.text.strip()
    if len(text) > PLAIN_HEADING_MAX_CHARS or text[-1] in ".?!":
        return False
    if next_line is None:
        return True
    return next_line.line_type in (LineType.BLANK, LineType.PARAGRAPH, LineType.LIST_ITEM)


def _is_pseudo_heading(text: str) -> bool:
    return any(p.match(text.strip()) for p in PSEUDO_HEADING_RES)


# ---------------------------------------------------------------------------
# Structural features
# ---------------------------------------------------------------------------

def compute_structural_features(body_lines: Tuple[Line, ...]) -> StructuralFeatures:
    content = [ln for ln in body_lines if ln.line_type != LineType.BLANK]
    full_text = " ".join(ln.text for ln in content)
    word_count = len(full_text.split())
    initiative_hits = len(INITIATIVE_PHRASE_RE.findall(full_text))
    return StructuralFeatures(
        num_lines=len(content),
        num_list_items=sum(1 for ln in content if ln.line_type == LineType.LIST_ITEM),
        has_dates=bool(DATE_RE.search(full_text)),
        has_metrics=bool(METRIC_RE.search(full_text)),
        has_quarter_refs=bool(QUARTER_RE.search(full_text)),
        has_version_refs=bool(VERSION_RE.search(full_text)),
        has_launch_keywords=bool(LAUNCH_RE.search(full_text)),
        initiative_phrase_density=min(1.0, initiative_hits / (word_count / 10)) if word_count else 0.0,
    )


# ---------------------------------------------------------------------------
# Sectioning
# ---------------------------------------------------------------------------

def _trim_blank(lines: List[Line]) -> Tuple[Line, ...]:
    start, end = 0, len(lines)
    while start < end and lines[start].line_type == LineType.BLANK:
        start += 1
    while end > start and lines[end - 1].line_type == LineType.BLANK:
        end -= 1
    return tuple(lines[start:end])


def segment_note(note: NoteInput, allocator: IdAllocator) -> List[Section]:
    """Split a note into sections; heading-only sections are folded forward."""
    lines = annotate_lines(note.raw_markdown)
    # (heading_text, heading_level, start_line, body)
    drafts: List[Tuple[str, int, int, List[Line]]] = []
    current: Optional[Tuple[str, int, int, List[Line]]] = None
    seen_markdown_heading = False
    seen_any_heading = False

    for i, line in enumerate(lines):
        next_line = lines[i + 1] if i + 1 < len(lines) else None
        if line.line_type == LineType.HEADING:
            seen_markdown_heading = seen_any_heading = True
            current = (_heading_text(line), line.heading_level or 1, line.index, [])
            drafts.append(current)
            continue

        in_general = current is not None and current[0] == GENERAL_HEADING
        if (not seen_markdown_heading or in_general) and _is_plain_heading(line, next_line):
            seen_any_heading = True
            current = (line.text.strip().rstrip(":").strip(), 2, line.index, [])
            drafts.append(current)
            continue

        if not seen_any_heading and _is_pseudo_heading(line.text):
            seen_any_heading = True
            current = (line.text.strip().rstrip(":").strip(), 2, line.index, [])
            drafts.append(current)
            continue

        if current is None:
            if line.line_type == LineType.BLANK:
                continue
            current = (GENERAL_HEADING, 1, line.index, [])
            drafts.append(current)
        current[3].append(line)

    sections: List[Section] = []
    pending_heading: Optional[str] = None
    for heading, level, start, body in drafts:
        body_lines = _trim_blank(body)
        raw_text = "\n".join(ln.text for ln in body_lines)
        if not raw_text.strip():
            pending_heading = f"{pending_heading} > {heading}" if pending_heading else heading
            continue
        if pending_heading:
            heading = f"{pending_heading} > {heading}"
            pending_heading = None
        sections.append(Section(
            note_id=note.note_id,
            section_id=allocator.next_id("sec", note.note_id),
            heading_text=heading,
            heading_level=level,
            body_lines=body_lines,
            structural_features=compute_structural_features(body_lines),
            raw_text=raw_text,
            start_line=start,
            end_line=body_lines[-1].index,
        ))

    logger.debug(f"[segment] note={note.note_id} lines={len(lines)} sections={len(sections)}")
    return sections
