"""Scenarios: fixtures, contexts and suites built on the harness.

Usage:
    from xdb_harness.scenarios import array_relationship
"""

from xdb_harness.scenarios import array_relationship

__all__ = ["array_relationship"]
