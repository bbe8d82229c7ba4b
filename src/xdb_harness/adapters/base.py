"""Backend capability provider protocol and backend kinds.

Defines ``BackendKind``, the closed set of database engines the harness
can provision, and the ``BackendProvider`` Protocol every concrete backend
must implement.  All methods are ``async def``.

Usage:
    from xdb_harness.adapters.base import BackendKind, BackendProvider

    async def provision(backend: BackendProvider, table: Table) -> None:
        await backend.create_table(table)
        await backend.insert_rows(table)
"""

from enum import Enum
from typing import Any, Protocol

from xdb_harness.schema.models import Table


class BackendKind(str, Enum):
    """Database engines a context can be built on."""

    POSTGRES = "postgres"
    CITUS = "citus"

    @property
    def metadata_prefix(self) -> str:
        """Prefix of this backend's metadata call types (``pg_track_table``)."""
        return _METADATA_PREFIXES[self]

    @classmethod
    def parse(cls, value: str) -> "BackendKind":
        """Parse a kind name case-insensitively.

        Raises:
            ValueError: If ``value`` names no known backend.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            available = ", ".join(k.value for k in cls)
            raise ValueError(
                f"Unknown backend kind '{value}'. Available: {available}"
            ) from None


_METADATA_PREFIXES: dict[BackendKind, str] = {
    BackendKind.POSTGRES: "pg",
    BackendKind.CITUS: "citus",
}


class BackendProvider(Protocol):
    """Capabilities the harness needs from a backing database.

    A provider realizes backend-agnostic ``Table`` fixtures as DDL/DML in
    its own engine, and tells the query engine how to connect to it.
    """

    kind: BackendKind
    schema_name: str

    async def create_table(self, table: Table) -> None:
        """Create the fixture's table (and its schema if needed).

        Raises:
            Exception: If the table already exists or the DDL is rejected.
        """
        ...

    async def insert_rows(self, table: Table) -> None:
        """Insert all fixture rows into the table."""
        ...

    async def drop_table(self, table: Table) -> None:
        """Drop the fixture's table.

        Must succeed when the table does not exist, so that teardown can
        run after a partially failed setup.
        """
        ...

    def source_configuration(self) -> dict[str, Any]:
        """Connection configuration handed to the engine's add-source call."""
        ...

    async def close(self) -> None:
        """Close connections and clean up resources."""
        ...
