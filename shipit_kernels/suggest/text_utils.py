"""
Shared text utilities for the suggestion kernels.

Compiled regex constants and pure functions reused by the segmenter, the
intent scorer, the sentence-level extractors and the synthesizer.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import re
from typing import Iterable, List, Tuple

# ---------------------------------------------------------------------------
# Compiled regex constants
# ---------------------------------------------------------------------------

LIST_MARKER_RE = re.compile(r"^\s*(?:[-*+•]|\d+[.)])\s+(?:\[[ xX]\]\s+)?")
HEADING_MARKER_RE = re.compile(r"^\s*#{1,6}\s+")
EMPHASIS_RE = re.compile(r"(\*\*|__|\*|_|`)")
WHITESPACE_RE = re.compile(r"\s+")
PUNCT_RE = re.compile(r"[^\w\s]")
WORD_RE = re.compile(r"[a-z0-9][a-z0-9'\-]*")

SENTENCE_SPLIT_RE = re.compile(r"[.!?]\s+|\.\.\.+\s*")
SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")

_SMART_QUOTES = {
    "‘": "'", "’": "'", "“": '"', "”": '"',
    "–": "-", "—": "-", " ": " ",
}


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

def ascii_quotes(text: str) -> str:
    """Replace typographic quotes and dashes with their ASCII forms."""
    for src, dst in _SMART_QUOTES.items():
        text = text.replace(src, dst)
    return text


def strip_list_marker(text: str) -> str:
    """Remove a leading bullet, number or checkbox marker."""
    return LIST_MARKER_RE.sub("", text, count=1)


def strip_markers(text: str) -> str:
    """Remove list markers, heading hashes and inline emphasis."""
    text = strip_list_marker(text)
    text = HEADING_MARKER_RE.sub("", text, count=1)
    return EMPHASIS_RE.sub("", text).strip()


def collapse_whitespace(text: str) -> str:
    return WHITESPACE_RE.sub(" ", text).strip()


def preprocess_line(text: str) -> str:
    """Lowercased, marker-free, single-spaced form of a line, as scored by rules."""
    return collapse_whitespace(strip_markers(ascii_quotes(text)).lower())


def normalize_for_match(text: str) -> str:
    """Lowercase, punctuation-free, single-spaced form used for containment checks."""
    return collapse_whitespace(PUNCT_RE.sub(" ", ascii_quotes(text).lower()))


def words(text: str) -> List[str]:
    return WORD_RE.findall(text.lower())


# ---------------------------------------------------------------------------
# Sentences
# ---------------------------------------------------------------------------

def split_sentences(text: str) -> List[str]:
    """Split a preprocessed line into sentences (terminal punctuation or ellipsis)."""
    return [s.strip() for s in SENTENCE_SPLIT_RE.split(text) if s.strip()]


def split_sentences_verbatim(text: str) -> List[str]:
    """
    Split raw section text into sentences that are verbatim substrings of it.

    Each line is split after terminal punctuation; a fragment that begins
    with a lowercase letter is merged back into the previous sentence of the
    same line. Leading list markers are dropped (the remainder is still a
    substring of the input).
    """
    sentences: List[str] = []
    for raw_line in text.splitlines():
        line = strip_list_marker(raw_line).strip()
        if not line:
            continue
        spans: List[Tuple[int, int]] = []
        start = 0
        for m in SENTENCE_BOUNDARY_RE.finditer(line):
            spans.append((start, m.start()))
            start = m.end()
        spans.append((start, len(line)))

        merged: List[Tuple[int, int]] = []
        for s, e in spans:
            if s >= e:
                continue
            if merged and line[s].islower():
                merged[-1] = (merged[-1][0], e)
            else:
                merged.append((s, e))
        sentences.extend(line[s:e].strip() for s, e in merged if line[s:e].strip())
    return sentences


# ---------------------------------------------------------------------------
# Marker matching
# ---------------------------------------------------------------------------

def marker_pattern(markers: Iterable[str]) -> re.Pattern:
    """Compile markers into one alternation: single words are word-bounded,
    multi-word markers match as substrings."""
    single = sorted((m for m in markers if " " not in m), key=len, reverse=True)
    multi = sorted((m for m in markers if " " in m), key=len, reverse=True)
    parts = []
    if multi:
        parts.append("|".join(re.escape(m) for m in multi))
    if single:
        parts.append(r"\b(?:" + "|".join(re.escape(m) for m in single) + r")\b")
    return re.compile("|".join(parts) if parts else r"(?!x)x")


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def capitalize_first(text: str) -> str:
    return text[:1].upper() + text[1:] if text else text


def truncate_at_word(text: str, limit: int, ellipsis: str = "") -> str:
    """Cut ``text`` to ``limit`` chars at a word boundary, appending ``ellipsis``."""
    text = text.strip()
    if len(text) <= limit:
        return text
    budget = limit - len(ellipsis)
    cut = text[:budget]
    space = cut.rfind(" ")
    if space > budget // 3:
        cut = cut[:space]
    return cut.rstrip(" ,;:-") + ellipsis


def ensure_period(text: str) -> str:
    text = text.strip()
    if not text or text[-1] in ".!?…":
        return text
    return text + "."
