"""
Vocabularies and compiled patterns used by the classification stages.

All lists are plain tuples so that changes show up clearly in diffs.
Single-word markers are matched on word boundaries, multi-word markers as
substrings (see ``text_utils.marker_pattern``).

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import re

from shipit_kernels.suggest.text_utils import marker_pattern

# ---------------------------------------------------------------------------
# Intent vocabularies
# ---------------------------------------------------------------------------

REQUEST_STEMS = (
    "please", "can you", "could you", "would you", "i want you to",
    "i'd like you to", "i would like you to", "i would really like you to",
    "we should", "we probably should", "should", "let's", "lets",
    "need to", "we need to", "maybe we need", "we may need to",
    "it would be good to", "asking for", "requested", "want to", "would like",
)

ACTION_VERBS = (
    "add", "implement", "build", "create", "enable", "disable", "remove",
    "delete", "fix", "update", "change", "refactor", "improve", "support",
    "integrate", "adjust", "modify", "revise",
)

PROPOSAL_VERBS = (
    "reduce", "merge", "streamline", "simplify", "remove", "eliminate",
    "consolidate", "log", "cut", "introduce", "automate", "replace",
    "allow", "let", "offer", "show", "surface", "track",
)

# Matched as word-initial stems so that inflections are covered.
CHANGE_OPERATORS = (
    "move\\b", "moving", "moved", "push(?:es|ed|ing)?\\b", "delay", "slip",
    "bring forward", "bringing forward", "brought forward", "postpon",
    "deprioritiz", "prioritiz", "shift", "pivot", "reframe", "reprioritiz",
    "defer", "accelerat", "narrow", "expand", "refocus", "adjust", "modif",
    "revis", "take over", "taking over", "took over", "instead of",
    "now p[012]\\b",
)

STATUS_MARKERS = (
    "done", "shipped", "deployed", "released", "implemented", "merged",
    "blocked", "waiting on", "in progress",
)

PRODUCT_NOUNS = (
    "onboarding", "signup", "flow", "ui", "api", "integration", "pricing",
    "dashboard", "tracking", "analytics",
)

ACTIONABILITY_VERBS = (
    "add", "verify", "update", "share", "remove", "fix", "create", "build",
    "implement", "test", "review", "check", "ensure", "set up", "deploy",
    "migrate", "refactor", "integrate", "move", "send", "confirm", "finalize",
)

HEDGED_DIRECTIVES = (
    "we should", "we probably should", "maybe we need", "we may need to",
    "it would be good to", "let's", "lets",
)

NEGATION_MARKERS = ("don't", "do not", "no need to", "not necessary to")

CALENDAR_MARKERS = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday",
    "sunday", "next week", "this week", "next month",
)
COMMUNICATION_MARKERS = ("email", "send", "slack", "follow up", "reach out", "ping")
MICRO_TASK_MARKERS = ("rename file", "update doc link", "fix typo")

IMPLICIT_NEED_SIGNALS = (
    "we need", "we don't have", "users can't", "it's hard to", "missing",
    "no way to", "can't", "lack of", "lacking",
)
IMPLICIT_PURPOSE_SIGNALS = (
    "so we can", "so we", "so that", "to help", "to see", "because",
    "in order to", "so users can",
)
CAPABILITY_NOUNS = (
    "boundary detection", "dashboard", "errors", "visibility", "alerts",
    "tracking", "monitoring", "reporting", "analytics", "notifications",
    "logging", "metrics", "search", "filtering", "sorting", "pagination",
)
COMPLETION_MARKERS = ("done", "completed", "finished", "shipped")

PAIN_MARKERS = (
    "dissatisfied", "too many clicks", "number of clicks", "confusing",
    "frustrating", "usability issue", "hard to use", "difficult to", "painful",
    "annoying", "slow", "inefficient", "broken", "impacting",
)
PAIN_CONTEXT_MARKERS = (
    "workflow", "attestation", "completion", "usability",
    "customer satisfaction", "user experience", "productivity", "efficiency",
    "employees",
)

ROLE_ASSIGNMENT_MARKERS = (
    "pm to", "cs to", "eng to", "design to", "designer to",
    "project manager to", "product manager to", "engineering to",
    "customer success to",
)
DECISION_MARKERS = (
    "will be logged", "will be", "no near-term", "near-term", "revisit",
    "decided", "agreed", "approved",
)
STRUCTURED_TASK_MARKERS = ("- [ ]", "todo:", "action:", "owner:")

REQUEST_STEMS_RE = marker_pattern(REQUEST_STEMS)
ACTION_VERBS_RE = marker_pattern(ACTION_VERBS)
DIRECTIVE_RE = re.compile(
    r"(?:" + REQUEST_STEMS_RE.pattern + r")\s+(?:\w+\s+){0,2}?"
    r"\b(?:" + "|".join(ACTION_VERBS) + r")\b"
)
CHANGE_OPERATORS_RE = re.compile(r"\b(?:" + "|".join(CHANGE_OPERATORS) + r")")
STATUS_RE = marker_pattern(STATUS_MARKERS)
PRODUCT_NOUNS_RE = marker_pattern(PRODUCT_NOUNS)
HEDGED_RE = re.compile(r"(?:" + marker_pattern(HEDGED_DIRECTIVES).pattern + r")\s+\w")
NEGATION_RE = marker_pattern(NEGATION_MARKERS)
CALENDAR_RE = marker_pattern(CALENDAR_MARKERS)
COMMUNICATION_RE = marker_pattern(COMMUNICATION_MARKERS)
MICRO_TASK_RE = marker_pattern(MICRO_TASK_MARKERS)
IMPLICIT_NEED_RE = marker_pattern(IMPLICIT_NEED_SIGNALS)
IMPLICIT_PURPOSE_RE = marker_pattern(IMPLICIT_PURPOSE_SIGNALS)
CAPABILITY_NOUNS_RE = marker_pattern(CAPABILITY_NOUNS)
COMPLETION_RE = marker_pattern(COMPLETION_MARKERS)
PAIN_RE = marker_pattern(PAIN_MARKERS)
PAIN_CONTEXT_RE = marker_pattern(PAIN_CONTEXT_MARKERS)
ROLE_ASSIGNMENT_RE = re.compile(r"\b(?:" + "|".join(re.escape(m) for m in ROLE_ASSIGNMENT_MARKERS) + r")\s+\w")
DECISION_RE = marker_pattern(DECISION_MARKERS)
STRUCTURED_TASK_RE = re.compile(r"^\s*(?:[-*]\s+\[ \]|todo:|action:|owner:)")

PM_REQUEST_RE = re.compile(
    r"\b(?:users?|customers?|clients?|buyers?)\s+(?:need|needs|want|wants|"
    r"are asking for|keep asking for|have asked for)\b"
    r"|\bfriction (?:around|in|with|when)\b"
    r"|\brequests? to (?:" + "|".join(ACTION_VERBS) + r")\b"
)

ACTIONABILITY_VERB_PREFIX_RE = re.compile(
    r"^(" + "|".join(re.escape(v) for v in sorted(ACTIONABILITY_VERBS, key=len, reverse=True)) + r")\s+\w"
)

# ---------------------------------------------------------------------------
# Timeline vocabulary
# ---------------------------------------------------------------------------

_MONTHS = (
    "january|february|march|april|may|june|july|august|september|october|"
    "november|december|jan|feb|mar|apr|jun|jul|aug|sep|sept|oct|nov|dec"
)

DELTA_PATTERNS = (
    re.compile(r"\b\d+-(?:week|day|month|year|sprint)s?\b", re.I),
    re.compile(r"\b\d+\s+(?:week|day|month|year|sprint)s?\b", re.I),
    re.compile(r"\bfrom\s+\d[-–]\w+\s+to\s+\d[-–]\w+", re.I),
    re.compile(r"\b\d+[-–]\w+\s+to\s+\d+[-–]\w+", re.I),
    re.compile(r"\bextend(?:ed|ing)?\s+from\s+", re.I),
    re.compile(r"\bdelay(?:ed)?\s+(?:to|until|by)\s+", re.I),
    re.compile(r"\bpush(?:ed)?\s+(?:to|until|back\s+to|back\s+by)\s+", re.I),
    re.compile(r"\b\d+(?:st|nd|rd|th)\s*[→\-–]\s*\d+(?:st|nd|rd|th)\b", re.I),
    re.compile(r"\bfrom\s+(?:the\s+)?\d+(?:st|nd|rd|th)?\s+to\s+(?:the\s+)?\d+(?:st|nd|rd|th)?\b", re.I),
    re.compile(r"\bfrom\s+(?:" + _MONTHS + r")\b.{0,12}\bto\s+(?:" + _MONTHS + r")\b", re.I),
    re.compile(r"\bQ[1-4]\s+\d{4}\b", re.I),
    re.compile(r"\b20\d\d[-–]20\d\d\b"),
)

SCHEDULE_EVENT_RE = re.compile(
    r"\b(?:launch(?:es|ed|ing)?|release[sd]?|deadline|go-live|go live|ship date|due date|"
    r"milestones?|rollout|roll-out|code freeze|cutover|target date|eta)\b",
    re.I,
)

DATE_RE = re.compile(
    r"\b(?:\d{4}-\d{2}-\d{2}|\d{1,2}/\d{1,2}(?:/\d{2,4})?|(?:" + _MONTHS + r")\.?\s+\d{1,2}(?:st|nd|rd|th)?"
    r"|\d{1,2}(?:st|nd|rd|th)\b)",
    re.I,
)
QUARTER_RE = re.compile(r"\b(?:q[1-4]|h[12])(?:\s*'?\d{2,4})?\b", re.I)
VERSION_RE = re.compile(r"\bv\d+(?:\.\d+)*\b|\bversion\s+\d", re.I)
METRIC_RE = re.compile(r"\b\d+(?:\.\d+)?\s*(?:%|percent|ms|s\b|k\b|x\b|users|customers|hours|days)", re.I)
LAUNCH_RE = re.compile(r"\b(?:launch|release|ship|go-live|rollout|beta|ga)\b", re.I)
INITIATIVE_PHRASE_RE = re.compile(
    r"\b(?:initiative|project|workstream|program|roadmap|epic|feature|milestone)\b", re.I
)


def has_concrete_delta(text: str) -> bool:
    """True when ``text`` carries a measurable, time-bounded change expression."""
    return any(p.search(text) for p in DELTA_PATTERNS)


def has_schedule_event(text: str) -> bool:
    return bool(SCHEDULE_EVENT_RE.search(text))


# ---------------------------------------------------------------------------
# Base type patterns
# ---------------------------------------------------------------------------

PLAN_MUTATION_PATTERNS = (
    re.compile(r"\b(?:narrow|expand|shift|reframe|reprioritize|defer|adjust|revise|update)\b", re.I),
    re.compile(r"\b(?:current|existing|today's|our current|the current)\b", re.I),
    re.compile(r"\bfrom\s.+\sto\b|\binstead of\b|\brather than\b|\bno longer\b|\bpreviously\b", re.I),
    re.compile(r"\b(?:descope|add to|remove from|in scope|out of scope)\b", re.I),
)

EXECUTION_ARTIFACT_PATTERNS = (
    re.compile(r"\b(?:new|launch|spin up|kick off|create|build|start|introduce)\s+(?:a |an |the )?\w", re.I),
    re.compile(r"\b(?:initiative|project|workstream|program|effort|track)\b", re.I),
    re.compile(r"\b(?:objective|goal|mission)\s*:", re.I),
    re.compile(r"\b(?:from scratch|greenfield|net new|brand new)\b", re.I),
)

# ---------------------------------------------------------------------------
# Initiative quality (strategy-only gate)
# ---------------------------------------------------------------------------

MECHANISM_VERBS_RE = re.compile(
    r"\b(?:introduc\w*|us(?:e|es|ing)|extend\w*|calculat\w*|integrat\w*|automat\w*|"
    r"pars(?:e|es|ing)|upload\w*|layer\w*|build\w*|implement\w*|launch\w*|creat\w*)\b",
    re.I,
)
SYSTEM_NOUNS_RE = re.compile(
    r"\b(?:system|platform|dashboard|tool|tooling|feature|model|engine|pipeline|api|"
    r"integration|workflow|framework|service|portal|app|module|bot|widget|score|scoring)s?\b",
    re.I,
)
NUMERIC_EXAMPLE_RE = re.compile(r"\d")

# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------

GENERIC_WORDS = frozenset((
    "improve", "improvement", "improvements", "enhance", "enhancement", "optimize",
    "optimization", "streamline", "leverage", "synergy", "alignment", "align",
    "strategy", "strategic", "initiative", "initiatives", "process", "processes",
    "things", "stuff", "various", "general", "overall", "better", "best",
    "practices", "efficiency", "effectiveness", "value", "impact", "stakeholders",
    "going", "forward", "moving", "holistic", "robust", "scalable", "solution",
    "solutions", "approach", "focus", "discuss", "discussed", "discussion",
    "review", "it", "this", "that", "these", "those", "something", "work",
))

STOPWORDS = frozenset((
    "a", "an", "the", "and", "or", "but", "of", "to", "in", "on", "for", "with",
    "at", "by", "from", "as", "is", "are", "was", "were", "be", "been", "we",
    "our", "us", "you", "your", "they", "them", "their", "i", "he", "she",
    "so", "if", "then", "than", "into", "about", "up", "out", "not", "no",
    "do", "does", "did", "will", "would", "should", "could", "can", "may",
    "might", "must", "have", "has", "had", "all", "any", "some", "more",
    "most", "other", "such", "only", "own", "same", "too", "very", "just",
    "also", "new", "need", "needs",
))

EXPLICIT_ASK_RE = re.compile(
    r"\b(?:we should|should|need to|needs to|let's|lets|please|propose|proposal|"
    r"request(?:ed|s)?|want to|would like|must|add|build|create|implement|introduce)\b",
    re.I,
)
