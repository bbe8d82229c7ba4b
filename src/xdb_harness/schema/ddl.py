"""SQL rendering for table fixtures.

Turns a backend-agnostic ``Table`` into the CREATE/INSERT/DROP statements
understood by PostgreSQL-dialect backends (PostgreSQL, Citus).  Row values
are never inlined: ``insert_rows_statement`` returns named parameters for
SQLAlchemy's ``text()``.

Usage:
    from xdb_harness.schema.ddl import create_table_sql, insert_rows_statement

    sql = create_table_sql(album, "hasura")
    stmt = insert_rows_statement(album, "hasura")
    await backend.execute(stmt.sql, stmt.params)
"""

from dataclasses import dataclass, field
from typing import Any

from xdb_harness.schema.models import Column, ScalarType, Table

SQL_TYPES: dict[ScalarType, str] = {
    ScalarType.INT: "INT",
    ScalarType.STR: "VARCHAR",
}


@dataclass
class Statement:
    """A SQL statement with its named parameters.

    Example:
        stmt = Statement(sql="INSERT INTO t (a) VALUES (:r0_c0)", params={"r0_c0": 1})
    """

    sql: str
    params: dict[str, Any] = field(default_factory=dict)


def quote_ident(name: str) -> str:
    """Quote an identifier, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def qualified_name(schema_name: str, table_name: str) -> str:
    """Schema-qualified, quoted table name."""
    return f"{quote_ident(schema_name)}.{quote_ident(table_name)}"


def create_schema_sql(schema_name: str) -> str:
    return f"CREATE SCHEMA IF NOT EXISTS {quote_ident(schema_name)};"


def _column_sql(col: Column) -> str:
    definition = f"{quote_ident(col.name)} {SQL_TYPES[col.type]}"
    if not col.nullable:
        definition += " NOT NULL"
    return definition


def create_table_sql(table: Table, schema_name: str) -> str:
    """Generate the CREATE TABLE statement for a fixture.

    Example:
        >>> create_table_sql(album, "hasura")
        'CREATE TABLE "hasura"."album" (\\n  "id" INT NOT NULL, ...);'
    """
    parts = [_column_sql(col) for col in table.columns]

    if table.primary_key:
        keys = ", ".join(quote_ident(k) for k in table.primary_key)
        parts.append(f"PRIMARY KEY ({keys})")

    for ref in table.references:
        parts.append(
            f"FOREIGN KEY ({quote_ident(ref.column)}) REFERENCES "
            f"{qualified_name(schema_name, ref.target_table)} "
            f"({quote_ident(ref.target_column)})"
        )

    body = ",\n  ".join(parts)
    return f"CREATE TABLE {qualified_name(schema_name, table.name)} (\n  {body}\n);"


def insert_rows_statement(table: Table, schema_name: str) -> Statement | None:
    """Generate a single multi-row INSERT for all fixture rows.

    Returns:
        ``None`` when the fixture has no rows.
    """
    if not table.rows:
        return None

    columns = ", ".join(quote_ident(c) for c in table.column_names)
    params: dict[str, Any] = {}
    tuples: list[str] = []

    for r, row in enumerate(table.rows):
        placeholders: list[str] = []
        for c, value in enumerate(row):
            param_name = f"r{r}_c{c}"
            placeholders.append(f":{param_name}")
            params[param_name] = value
        tuples.append(f"({', '.join(placeholders)})")

    sql = (
        f"INSERT INTO {qualified_name(schema_name, table.name)} ({columns})\n"
        f"VALUES {', '.join(tuples)};"
    )
    return Statement(sql=sql, params=params)


def drop_table_sql(table: Table, schema_name: str) -> str:
    """DROP statement; safe to run when the table was never created."""
    return f"DROP TABLE IF EXISTS {qualified_name(schema_name, table.name)};"
