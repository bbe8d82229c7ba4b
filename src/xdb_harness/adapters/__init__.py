"""Backend capability providers.

Provides the ``BackendProvider`` Protocol, the ``BackendKind`` enumeration
and the PostgreSQL-dialect provider shared by PostgreSQL and Citus.

Usage:
    from xdb_harness.adapters import BackendKind, BackendProvider, PostgresBackend
"""

from xdb_harness.adapters.base import BackendKind, BackendProvider
from xdb_harness.adapters.postgres import PostgresBackend

__all__ = [
    "BackendKind",
    "BackendProvider",
    "PostgresBackend",
]
