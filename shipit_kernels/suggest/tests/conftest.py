"""
Conftest for the ShipIt suggestion kernel tests.

Shared fixtures: a fresh id allocator, the default generator config, and
small builders that turn Markdown into sections and classified sections.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import pytest

from shipit_kernels.suggest.classify import classify_section
from shipit_kernels.suggest.config import GeneratorConfig, ThresholdConfig
from shipit_kernels.suggest.ids import IdAllocator
from shipit_kernels.suggest.models import (
    ClassifiedSection,
    EvidenceSpan,
    NoteInput,
    Section,
    Suggestion,
    SuggestionContext,
    SuggestionPayload,
    SuggestionScores,
    SuggestionType,
    DraftInitiative,
)
from shipit_kernels.suggest.segment import segment_note


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: end-to-end runs through kernels or the CLI")


@pytest.fixture
def allocator():
    return IdAllocator()


@pytest.fixture
def config():
    return GeneratorConfig()


@pytest.fixture
def make_section():
    """Segment ``markdown`` and return its first section."""
    def _make(markdown: str, note_id: str = "note-test") -> Section:
        sections = segment_note(NoteInput(note_id=note_id, raw_markdown=markdown), IdAllocator())
        assert sections, "markdown produced no section"
        return sections[0]
    return _make


@pytest.fixture
def make_classified(make_section):
    """Segment and classify the first section of ``markdown``."""
    def _make(markdown: str, note_id: str = "note-test") -> ClassifiedSection:
        return classify_section(make_section(markdown, note_id), ThresholdConfig())
    return _make


def build_suggestion(
    suggestion_id: str = "sug_note-tes_1",
    section_id: str = "sec_note-tes_1",
    suggestion_type: SuggestionType = SuggestionType.IDEA,
    title: str = "Add bulk invoice export",
    body: str = "Finance asked for a bulk export of invoices.",
    spans: Tuple[Tuple[int, int, str], ...] = ((2, 2, "Finance asked for a bulk export of invoices."),),
    note_id: str = "note-test",
    metadata: Optional[Dict] = None,
    title_source: str = "sentence",
    overall: float = 0.8,
) -> Suggestion:
    """Hand-built suggestion for unit tests of the later stages."""
    if suggestion_type == SuggestionType.IDEA:
        payload = SuggestionPayload(draft_initiative=DraftInitiative(title=title, description=body))
    else:
        payload = SuggestionPayload(after_description=body)
    return Suggestion(
        suggestion_id=suggestion_id,
        note_id=note_id,
        section_id=section_id,
        type=suggestion_type,
        title=title,
        payload=payload,
        evidence_spans=tuple(EvidenceSpan(s, e, t) for s, e, t in spans),
        scores=SuggestionScores(0.7, 0.7, 0.7, overall=overall),
        context=SuggestionContext(
            title=title,
            body=body,
            source_section_id=section_id,
            source_heading="Exports",
        ),
        title_source=title_source,
        metadata=dict(metadata or {}),
    )


@pytest.fixture
def suggestion_factory():
    return build_suggestion
