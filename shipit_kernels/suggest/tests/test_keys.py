"""
Tests for stable suggestion keys.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

from shipit_kernels.suggest.keys import (
    compute_suggestion_key,
    dedupe_by_key,
    normalize_title_for_key,
    with_key,
)
from shipit_kernels.suggest.models import SuggestionType


class TestSuggestionKey:

    def test_cosmetic_title_changes_share_a_key(self):
        a = compute_suggestion_key("note-1", "sec_note-1_1", SuggestionType.IDEA, "Build User Dashboard!")
        b = compute_suggestion_key("note-1", "sec_note-1_1", SuggestionType.IDEA, "build   user  dashboard")
        assert a == b
        assert len(a) == 40

    def test_type_and_section_are_part_of_the_key(self):
        base = compute_suggestion_key("note-1", "sec_note-1_1", SuggestionType.IDEA, "Build dashboard")
        assert base != compute_suggestion_key("note-1", "sec_note-1_1", SuggestionType.BUG, "Build dashboard")
        assert base != compute_suggestion_key("note-1", "sec_note-1_2", SuggestionType.IDEA, "Build dashboard")
        assert base == compute_suggestion_key("note-1", "sec_note-1_1", "idea", "Build dashboard")

    def test_normalize_title_for_key(self):
        assert normalize_title_for_key("  Update: Launch, moved!  ") == "update launch moved"


class TestDedupe:

    def test_first_occurrence_wins(self, suggestion_factory):
        first = with_key(suggestion_factory(suggestion_id="sug_note-tes_1"))
        second = with_key(suggestion_factory(suggestion_id="sug_note-tes_2", title="Add bulk invoice export."))
        other = with_key(suggestion_factory(suggestion_id="sug_note-tes_3", title="Add SSO"))
        kept, dups = dedupe_by_key([first, second, other])
        assert [s.suggestion_id for s in kept] == ["sug_note-tes_1", "sug_note-tes_3"]
        assert dups == [second]

    def test_with_key_is_idempotent(self, suggestion_factory):
        keyed = with_key(suggestion_factory())
        assert keyed.suggestion_key
        assert with_key(keyed) is keyed
