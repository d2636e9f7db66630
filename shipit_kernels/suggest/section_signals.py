"""
Section-level heading and body signals shared by the arbiter, the
consolidator and the final emission pass.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional

from shipit_kernels.suggest.lexicons import (
    MECHANISM_VERBS_RE,
    NUMERIC_EXAMPLE_RE,
    SYSTEM_NOUNS_RE,
    has_concrete_delta,
    has_schedule_event,
)
from shipit_kernels.suggest.models import Section

# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

STRATEGY_HEADING_RE = re.compile(
    r"\b(?:strategy|strategic|approach|framework|playbook|vision|principles|"
    r"positioning|philosophy)\b",
    re.I,
)

SPEC_FRAMEWORK_RE = re.compile(
    r"\b(?:scoring|prioriti[sz]ation|three[-\s]factor|eligibility|additionality|"
    r"weighting|framework|system|rubric|criteria|methodology)\b",
    re.I,
)
SPEC_FRAMEWORK_TIMELINE_EXCLUSIONS_RE = re.compile(
    r"\b(?:deploy(?:ed|ing|ment)?|launch(?:ed|ing)?|eta|target\s+date|window|"
    r"shipped|in\s+progress|complete[d]?)\b",
    re.I,
)

TIMELINE_HEADING_RE = re.compile(
    r"\b(?:timeline|schedule|roadmap|milestones?|implementation\s+plan|release\s+plan)\b",
    re.I,
)

AUTOMATION_HEADING_RE = re.compile(
    r"\b(?:data\s+collection\s+automation|automation|parsing|ocr|upload)\b", re.I
)

GAMIFICATION_TOKENS = (
    "next episode", "one more", "worth €", "earning potential",
    "next highest-value field", "next field", "reward", "gamif", "streak", "badge",
)
GAMIFICATION_MIN_ITEMS = 4
GAMIFICATION_MIN_TOKENS = 2


# ---------------------------------------------------------------------------
# Heading predicates
# ---------------------------------------------------------------------------

def is_strategy_heading(heading: Optional[str]) -> bool:
    """True for strategy-style headings (``Go-To-Market Approach``, ``... Strategy``)."""
    return bool(heading) and bool(STRATEGY_HEADING_RE.search(heading))


def is_spec_framework_section(section: Section) -> bool:
    """
    Specification/framework sections describe how something works (a scoring
    rubric, an eligibility model) rather than when it happens: a framework
    word in the heading and no timeline language anywhere in the body.
    """
    if not SPEC_FRAMEWORK_RE.search(section.heading_text):
        return False
    text = section.raw_text
    if SPEC_FRAMEWORK_TIMELINE_EXCLUSIONS_RE.search(text):
        return False
    return not (has_concrete_delta(text) or has_schedule_event(text))


def is_timeline_heading(heading: Optional[str]) -> bool:
    return bool(heading) and bool(TIMELINE_HEADING_RE.search(heading))


def is_automation_heading(heading: Optional[str]) -> bool:
    return bool(heading) and bool(AUTOMATION_HEADING_RE.search(heading))


def has_initiative_quality(text: str) -> bool:
    """A mechanism verb, a system/feature noun or a concrete numeric example."""
    return bool(
        MECHANISM_VERBS_RE.search(text)
        or SYSTEM_NOUNS_RE.search(text)
        or NUMERIC_EXAMPLE_RE.search(text)
    )


# ---------------------------------------------------------------------------
# Gamification cluster
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GamificationCluster:
    title: str
    items: List[str]

    @property
    def body(self) -> str:
        return " ".join(item.rstrip(".") + "." for item in self.items[:4])


def detect_gamification_cluster(section: Section) -> Optional[GamificationCluster]:
    """Sections of >= 4 bullets carrying >= 2 gamification tokens form one cluster."""
    items = section.list_items
    if len(items) < GAMIFICATION_MIN_ITEMS:
        return None
    text = f"{section.heading_text}\n{section.raw_text}".lower()
    hits = sum(1 for token in GAMIFICATION_TOKENS if token in text)
    if hits < GAMIFICATION_MIN_TOKENS:
        return None
    if "next highest-value field" in text or "next field" in text:
        title = "Gamify data collection (next-field rewards)"
    elif "earning potential" in text:
        title = "Gamify data collection (earning-potential rewards)"
    else:
        title = section.heading_text.strip() or "Gamify data collection"
    return GamificationCluster(title=title, items=items)
