"""
ShipIt suggestion CLI -- suggestctl command-line interface.

Usage:
    python -m shipit_kernels.suggest.cli.suggestctl generate <note>
    python -m shipit_kernels.suggest.cli.suggestctl show <workspace>
    python -m shipit_kernels.suggest.cli.suggestctl explain <workspace>
    python -m shipit_kernels.suggest.cli.suggestctl decide <workspace> <key> --apply

Author: ShipIt Suggestion Engine | 2026-10-17
"""

from shipit_kernels.suggest.cli.suggestctl import main
