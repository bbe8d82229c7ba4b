"""Leftover-table detection via information_schema.

After a combination's teardown, the harness can check each backing
database for fixture tables that survived.  Uses psycopg (v3) directly,
outside the async engine, so the check sees committed state only.
"""

import psycopg
from psycopg import Connection

CONNECT_TIMEOUT_SECONDS = 10

TABLES_QUERY = """
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = %s
      AND table_type = 'BASE TABLE'
    ORDER BY table_name
"""


class SchemaIntrospector:
    """Lists fixture tables in a PostgreSQL-dialect database (PostgreSQL, Citus).

    Usage:
        with SchemaIntrospector(database_url) as introspector:
            introspector.get_tables("hasura")
            # ['album', 'artist']
            introspector.find_leftovers("hasura", {"artist", "album"})
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._conn: Connection | None = None

    def _connect_url(self) -> str:
        # psycopg takes libpq URLs; drop any SQLAlchemy driver suffix
        scheme, sep, rest = self.database_url.partition("://")
        url = f"{scheme.split('+', 1)[0]}{sep}{rest}" if sep else self.database_url
        if "connect_timeout" in url:
            return url
        joiner = "&" if "?" in url else "?"
        return f"{url}{joiner}connect_timeout={CONNECT_TIMEOUT_SECONDS}"

    def __enter__(self) -> "SchemaIntrospector":
        self._conn = psycopg.connect(self._connect_url())
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def get_tables(self, schema_name: str) -> list[str]:
        """Base tables in ``schema_name``, sorted by name."""
        if self._conn is None:
            raise RuntimeError("SchemaIntrospector is not connected; use it in a with block")

        with self._conn.cursor() as cursor:
            cursor.execute(TABLES_QUERY, (schema_name,))
            return [name for (name,) in cursor.fetchall()]

    def find_leftovers(self, schema_name: str, table_names: set[str]) -> list[str]:
        """Which of ``table_names`` still exist in ``schema_name``."""
        return sorted(set(self.get_tables(schema_name)) & table_names)
