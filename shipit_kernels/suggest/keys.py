"""
Stable suggestion identity.

The key depends only on (note, section, type, normalised title), so
cosmetically different titles map to the same key and decisions stored
against a key survive regeneration.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import replace
from typing import List, Tuple, Union

from shipit_kernels.suggest.models import Suggestion, SuggestionType

TITLE_KEY_MAX_CHARS = 120
_PUNCT_RE = re.compile(r"[^\w\s]")
_WS_RE = re.compile(r"\s+")


def normalize_title_for_key(title: str) -> str:
    text = _PUNCT_RE.sub("", title.lower())
    return _WS_RE.sub(" ", text).strip()[:TITLE_KEY_MAX_CHARS]


def compute_suggestion_key(
    note_id: str,
    section_id: str,
    suggestion_type: Union[SuggestionType, str],
    title: str,
) -> str:
    type_value = suggestion_type.value if isinstance(suggestion_type, SuggestionType) else str(suggestion_type)
    material = f"{note_id}|{section_id}|{type_value}|{normalize_title_for_key(title)}"
    return hashlib.sha1(material.encode("utf-8")).hexdigest()


def with_key(suggestion: Suggestion) -> Suggestion:
    key = compute_suggestion_key(suggestion.note_id, suggestion.section_id, suggestion.type, suggestion.title)
    if key == suggestion.suggestion_key:
        return suggestion
    return replace(suggestion, suggestion_key=key)


def dedupe_by_key(suggestions: List[Suggestion]) -> Tuple[List[Suggestion], List[Suggestion]]:
    """First occurrence of each key wins; returns (kept, duplicates)."""
    seen = set()
    kept, duplicates = [], []
    for s in suggestions:
        if s.suggestion_key in seen:
            duplicates.append(s)
        else:
            seen.add(s.suggestion_key)
            kept.append(s)
    return kept, duplicates
