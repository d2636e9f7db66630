"""
Deterministic title clean-up and the vacuous-title contract.

``normalize_suggestion_title`` strips hedges and filler, maps weak verbs to
strong ones, drops trailing deadlines and infers a leading verb from the
noun-phrase shape. ``normalize_title_prefix`` applies the per-type prefix
(``Update:``, ``Risk:``). ``enforce_title_contract`` replaces titles made
only of pronouns and generic words with one built from the first concrete
token of the evidence.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import re
from typing import Optional

from shipit_kernels.suggest.lexicons import GENERIC_WORDS, STOPWORDS
from shipit_kernels.suggest.models import Suggestion, SuggestionType
from shipit_kernels.suggest.text_utils import capitalize_first, collapse_whitespace, words

STRONG_VERBS = frozenset((
    "implement", "add", "build", "create", "enable", "investigate", "evaluate",
    "launch", "develop", "improve", "update", "fix", "remove", "migrate",
    "refactor", "optimize", "integrate", "deploy", "configure", "establish",
    "reduce", "streamline", "introduce", "automate", "replace", "allow",
    "track", "surface", "offer", "show", "move", "shift", "mitigate",
))

LEADING_MARKERS = (
    re.compile(r"^suggestion:\s*", re.I),
    re.compile(r"^request\s+for\s+", re.I),
    re.compile(r"^request\s+to\s+", re.I),
    re.compile(r"^it\s+would\s+be\s+good\s+to\s+", re.I),
    re.compile(r"^maybe\s+we\s+could\s+", re.I),
    re.compile(r"^maybe\s+we\s+should\s+", re.I),
    re.compile(r"^we\s+should\s+consider\s+", re.I),
    re.compile(r"^we\s+could\s+consider\s+", re.I),
    re.compile(r"^we\s+(?:should|could|need\s+to)\s+", re.I),
    re.compile(r"^consider\s+", re.I),
    re.compile(r"^could\s+we\s+", re.I),
    re.compile(r"^should\s+we\s+", re.I),
)
POST_VERB_FILLERS = (
    re.compile(r"\s+maybe\s+we\s+could\s+", re.I),
    re.compile(r"\s+we\s+should\s+consider\s+", re.I),
    re.compile(r"\s+we\s+could\s+consider\s+", re.I),
    re.compile(r"\s+consider\s+", re.I),
    re.compile(r"\s+maybe\s+", re.I),
)
TRAILING_DEADLINES = (
    re.compile(r"\s+by\s+end\s+of\s+\w+$", re.I),
    re.compile(r"\s+(?:in|by)\s+Q[1-4](?:\s+\d{4})?$", re.I),
    re.compile(r"\s+before\s+\w+\s+\d{1,2}$", re.I),
    re.compile(r"\s+by\s+\w+\s+\d{1,2}$", re.I),
)
WEAK_VERBS = (
    ("look into", "investigate"),
    ("check out", "evaluate"),
    ("think about", "evaluate"),
    ("explore", "evaluate"),
    ("research", "investigate"),
    ("test", "evaluate"),
)
OPEN_QUESTION_RE = re.compile(r"^(?:whether|if|how|why|what)\b", re.I)
CREATION_NOUNS_RE = re.compile(
    r"\b(?:system|tool|feature|ui|component|service|module|integration|template|dashboard)s?\b", re.I
)

TYPE_PREFIXES = {
    SuggestionType.PROJECT_UPDATE: "Update: ",
    SuggestionType.RISK: "Risk: ",
}
KNOWN_PREFIX_RE = re.compile(r"^(?:project\s+update|update|risk|new\s+idea|idea|bug)\s*:\s*", re.I)
PRONOUNS = frozenset(("it", "this", "that", "these", "those", "they", "them", "something", "things", "stuff"))


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

def _dedupe_leading_verb(title: str) -> str:
    """``Add add X`` -> ``Add X`` (an artefact of filler stripping)."""
    parts = title.split(" ", 2)
    if len(parts) >= 2 and parts[0].lower() == parts[1].lower():
        return " ".join([parts[0]] + parts[2:])
    return title


def _map_weak_verb(title: str) -> str:
    for weak, strong in WEAK_VERBS:
        m = re.match(rf"^{weak}(?:s|ing|ed)?\s+(.+)", title, re.I)
        if m and not OPEN_QUESTION_RE.match(m.group(1)):
            return f"{capitalize_first(strong)} {m.group(1)}"
    return title


def infer_strong_verb(title: str) -> str:
    """Prefix a verb when the title is a bare noun phrase."""
    lowered = title.lower()
    if lowered.startswith("use "):
        return infer_strong_verb(title[4:].strip())
    m = re.match(r"^(?:better|improved|faster|more efficient)\s+", title, re.I)
    if m:
        return "Improve " + title[m.end():]
    if re.match(r"^more\s+", title, re.I):
        return "Add " + title
    m = re.match(r"^(?:a\s+)?new\s+", title, re.I)
    if m:
        return "Add " + title[m.end():]
    if CREATION_NOUNS_RE.search(title):
        return f"Add {title}"
    if re.match(r"^[a-z]+(?:ed|ing)\s+\w+", lowered):
        return f"Add {title}"
    return title


def normalize_suggestion_title(raw_title: str) -> str:
    """Hedge/filler stripping, weak-verb mapping, deadline removal, verb inference."""
    title = (raw_title or "").strip()
    if not title:
        return ""
    for pattern in LEADING_MARKERS:
        title = pattern.sub("", title)
    for pattern in POST_VERB_FILLERS:
        title = pattern.sub(" ", title)
    title = _dedupe_leading_verb(collapse_whitespace(title))
    title = _map_weak_verb(title)
    for pattern in TRAILING_DEADLINES:
        title = pattern.sub("", title)
    title = title.strip().rstrip(" .;:,")

    first = title.split(" ", 1)[0].lower() if title else ""
    is_gerund = first.endswith("ing") and len(first) > 4
    if first not in STRONG_VERBS and not is_gerund:
        title = infer_strong_verb(title)
    return capitalize_first(title)


def strip_type_prefix(title: str) -> str:
    return KNOWN_PREFIX_RE.sub("", title.strip())


def normalize_title_prefix(suggestion_type: SuggestionType, title: str) -> str:
    """One canonical prefix per type; ideas and bugs carry none."""
    content = capitalize_first(strip_type_prefix(title))
    prefix = TYPE_PREFIXES.get(suggestion_type, "")
    return f"{prefix}{content}" if content else prefix.strip()


def normalize_title(suggestion: Suggestion) -> str:
    """Full title normalisation for one candidate."""
    content = strip_type_prefix(suggestion.title)
    if suggestion.type in (SuggestionType.IDEA, SuggestionType.BUG):
        content = normalize_suggestion_title(content) or content
    else:
        for pattern in LEADING_MARKERS:
            content = pattern.sub("", content)
        content = collapse_whitespace(content).rstrip(" .;:,")
    return normalize_title_prefix(suggestion.type, content)


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

def is_vacuous_title(title: str) -> bool:
    """True when every content word is a pronoun or a generic word."""
    tokens = [w for w in words(strip_type_prefix(title)) if w not in STOPWORDS]
    if not tokens:
        return True
    return all(t in PRONOUNS or t in GENERIC_WORDS for t in tokens)


def first_concrete_token(suggestion: Suggestion) -> Optional[str]:
    for span in suggestion.evidence_spans:
        for token in words(span.text):
            if len(token) >= 4 and token not in STOPWORDS and token not in GENERIC_WORDS and token not in PRONOUNS:
                return token
    return None


def fallback_title(suggestion: Suggestion) -> str:
    token = first_concrete_token(suggestion) or suggestion.context.source_heading.strip() or "section notes"
    if suggestion.type == SuggestionType.BUG:
        return f"Fix {token} issue"
    if suggestion.type == SuggestionType.IDEA:
        return f"Follow up on {token}"
    return normalize_title_prefix(suggestion.type, token)


def enforce_title_contract(suggestion: Suggestion) -> Suggestion:
    """Normalise the title; substitute the evidence-based fallback if vacuous."""
    title = normalize_title(suggestion)
    if is_vacuous_title(title):
        title = fallback_title(suggestion)
    if title == suggestion.title:
        return suggestion
    return suggestion.retitled(title)
