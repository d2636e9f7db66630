"""
Run-scoped identifier allocation.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from collections import defaultdict
from typing import Dict
import threading

NAMESPACES = (
    "sec",
    "sug",
    "sug_bsig",
    "sug_dp",
    "sug_idea",
    "sug_consolidated",
    "sug_timeline",
)


class IdAllocator:
    """
    Monotonic per-namespace counters producing ``<ns>_<note[:8]>_<n>``.

    One allocator is created per pipeline run (or injected by a test), so
    concurrent runs for different notes never interleave identifiers and
    identical input always yields identical ids.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)

    def next_id(self, namespace: str, note_id: str) -> str:
        if namespace not in NAMESPACES:
            raise ValueError(f"Unknown id namespace {namespace!r}, must be one of {NAMESPACES}")
        with self._lock:
            self._counters[namespace] += 1
            n = self._counters[namespace]
        return f"{namespace}_{note_id[:8]}_{n}"

    def issued(self, namespace: str) -> int:
        """Number of ids issued so far in ``namespace``."""
        with self._lock:
            return self._counters[namespace]

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
