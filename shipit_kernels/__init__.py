"""
ShipIt kernels: deterministic, traceable computation units.

The ``suggest`` family turns meeting notes into roadmap suggestions.

Author: ShipIt Suggestion Engine | 2026-10-17
"""

__version__ = "0.1.0"
