"""
Tests for run-scoped identifier allocation.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from __future__ import annotations

import threading

import pytest

from shipit_kernels.suggest.ids import NAMESPACES, IdAllocator


class TestIdAllocator:

    def test_format_uses_note_prefix(self):
        allocator = IdAllocator()
        assert allocator.next_id("sec", "weekly-sync-2026") == "sec_weekly-s_1"
        assert allocator.next_id("sec", "weekly-sync-2026") == "sec_weekly-s_2"

    def test_namespaces_count_independently(self):
        allocator = IdAllocator()
        allocator.next_id("sug", "note")
        allocator.next_id("sug", "note")
        assert allocator.next_id("sug_dp", "note") == "sug_dp_note_1"
        assert allocator.issued("sug") == 2
        assert allocator.issued("sug_dp") == 1
        assert allocator.issued("sug_timeline") == 0

    def test_ids_never_reused_within_namespace(self):
        allocator = IdAllocator()
        ids = [allocator.next_id("sug_bsig", "note") for _ in range(50)]
        assert len(set(ids)) == 50

    def test_unknown_namespace_rejected(self):
        allocator = IdAllocator()
        with pytest.raises(ValueError, match="sug_unknown"):
            allocator.next_id("sug_unknown", "note")
        assert "sug_unknown" not in NAMESPACES

    def test_reset_restarts_counters(self):
        allocator = IdAllocator()
        allocator.next_id("sec", "note")
        allocator.next_id("sug", "note")
        allocator.reset()
        assert allocator.issued("sec") == 0
        assert allocator.next_id("sec", "note") == "sec_note_1"

    def test_fresh_allocators_are_independent(self):
        first, second = IdAllocator(), IdAllocator()
        first.next_id("sug", "note")
        assert second.next_id("sug", "note") == "sug_note_1"

    def test_concurrent_allocation_is_unique(self):
        allocator = IdAllocator()
        issued = []
        lock = threading.Lock()

        def worker():
            for _ in range(100):
                new_id = allocator.next_id("sug", "note")
                with lock:
                    issued.append(new_id)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(issued) == 400
        assert len(set(issued)) == 400
        assert allocator.issued("sug") == 400
