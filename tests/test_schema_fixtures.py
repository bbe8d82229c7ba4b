"""Tests for table fixtures and SQL rendering.

Verifies that Table validates its rows against its columns, that
TableIdentity serializes the way the engine metadata API expects, and
that the DDL/DML renderers produce parameterized PostgreSQL statements.
"""

import pytest
from pydantic import ValidationError

from xdb_harness.scenarios.array_relationship import ALBUM, ARTIST
from xdb_harness.schema.ddl import (
    create_schema_sql,
    create_table_sql,
    drop_table_sql,
    insert_rows_statement,
    quote_ident,
)
from xdb_harness.schema.models import (
    Column,
    Reference,
    ScalarType,
    Table,
    TableIdentity,
    column,
    column_null,
)


# ============================================================================
# Test: Column helpers
# ============================================================================


class TestColumns:
    """Verify column constructors and value checks."""

    def test_column_is_not_nullable(self) -> None:
        """column() builds a NOT NULL column."""
        assert column("id", ScalarType.INT).nullable is False

    def test_column_null_is_nullable(self) -> None:
        """column_null() builds a nullable column."""
        assert column_null("id", ScalarType.INT).nullable is True

    def test_int_column_rejects_bool(self) -> None:
        """Booleans are not accepted as INT values."""
        col = Column(name="id", type=ScalarType.INT)
        assert col.accepts(1)
        assert not col.accepts(True)

    def test_null_only_in_nullable_column(self) -> None:
        """None is only accepted by nullable columns."""
        assert not column("id", ScalarType.INT).accepts(None)
        assert column_null("id", ScalarType.INT).accepts(None)


# ============================================================================
# Test: Table validation
# ============================================================================


class TestTableValidation:
    """Verify Table rejects inconsistent fixtures."""

    def test_scenario_fixtures_are_valid(self) -> None:
        """The artist and album fixtures validate."""
        assert ARTIST.column_names == ["id", "name"]
        assert ALBUM.primary_key == ["id"]
        assert ARTIST.rows[3] == [None, "artist_no_id"]

    def test_row_arity_mismatch(self) -> None:
        """A row with the wrong number of values is rejected."""
        with pytest.raises(ValidationError, match="has 1 values, expected 2"):
            Table(
                name="t",
                columns=[column("a", ScalarType.INT), column("b", ScalarType.STR)],
                rows=[[1]],
            )

    def test_wrong_value_type(self) -> None:
        """A string in an INT column is rejected."""
        with pytest.raises(ValidationError, match="not a valid value"):
            Table(name="t", columns=[column("a", ScalarType.INT)], rows=[["x"]])

    def test_null_in_not_null_column(self) -> None:
        """None in a NOT NULL column is rejected."""
        with pytest.raises(ValidationError, match="not a valid value"):
            Table(name="t", columns=[column("a", ScalarType.INT)], rows=[[None]])

    def test_unknown_primary_key(self) -> None:
        """Primary key columns must exist."""
        with pytest.raises(ValidationError, match="Primary key column 'id'"):
            Table(name="t", columns=[column("a", ScalarType.INT)], primary_key=["id"])

    def test_unknown_reference_column(self) -> None:
        """Reference source columns must exist."""
        with pytest.raises(ValidationError, match="Reference column"):
            Table(
                name="t",
                columns=[column("a", ScalarType.INT)],
                references=[Reference(column="b", target_table="u", target_column="id")],
            )

    def test_duplicate_columns(self) -> None:
        """Column names must be unique."""
        with pytest.raises(ValidationError, match="Duplicate column"):
            Table(
                name="t",
                columns=[column("a", ScalarType.INT), column("a", ScalarType.STR)],
            )


# ============================================================================
# Test: TableIdentity
# ============================================================================


class TestTableIdentity:
    """Verify the backend-agnostic table identity."""

    def test_to_json(self) -> None:
        """Serializes as {schema, name}."""
        identity = TableIdentity(schema="hasura", name="album")
        assert identity.to_json() == {"schema": "hasura", "name": "album"}

    def test_table_identity(self) -> None:
        """Table.identity() places the table in the given schema."""
        assert ALBUM.identity("hasura") == TableIdentity(schema="hasura", name="album")

    def test_identity_is_hashable(self) -> None:
        """Identities are frozen and usable as dict keys."""
        identity = TableIdentity(schema="hasura", name="album")
        assert {identity: 1}[TableIdentity(schema="hasura", name="album")] == 1


# ============================================================================
# Test: SQL rendering
# ============================================================================


class TestDDL:
    """Verify CREATE/INSERT/DROP rendering."""

    def test_quote_ident_escapes_quotes(self) -> None:
        """Embedded double quotes are doubled."""
        assert quote_ident('a"b') == '"a""b"'

    def test_create_schema_is_idempotent(self) -> None:
        """Schema creation uses IF NOT EXISTS."""
        assert create_schema_sql("hasura") == 'CREATE SCHEMA IF NOT EXISTS "hasura";'

    def test_create_table_columns_and_key(self) -> None:
        """Nullability and primary key are rendered."""
        sql = create_table_sql(ALBUM, "hasura")
        assert sql.startswith('CREATE TABLE "hasura"."album" (')
        assert '"id" INT NOT NULL' in sql
        assert '"title" VARCHAR NOT NULL' in sql
        assert '"artist_id" INT,' in sql or '"artist_id" INT\n' in sql
        assert 'PRIMARY KEY ("id")' in sql

    def test_create_table_without_key(self) -> None:
        """No PRIMARY KEY clause when the fixture has none."""
        sql = create_table_sql(ARTIST, "hasura")
        assert "PRIMARY KEY" not in sql
        assert '"id" INT,' in sql

    def test_create_table_with_reference(self) -> None:
        """References render as FOREIGN KEY clauses in the same schema."""
        table = Table(
            name="track",
            columns=[column("album_id", ScalarType.INT)],
            references=[Reference(column="album_id", target_table="album", target_column="id")],
        )
        sql = create_table_sql(table, "hasura")
        assert 'FOREIGN KEY ("album_id") REFERENCES "hasura"."album" ("id")' in sql

    def test_insert_is_parameterized(self) -> None:
        """Values travel as named parameters, nulls included."""
        stmt = insert_rows_statement(ARTIST, "hasura")
        assert stmt is not None
        assert stmt.sql.startswith('INSERT INTO "hasura"."artist" ("id", "name")')
        assert "artist1" not in stmt.sql
        assert stmt.params["r0_c0"] == 1
        assert stmt.params["r0_c1"] == "artist1"
        assert stmt.params["r3_c0"] is None
        assert len(stmt.params) == 8

    def test_insert_without_rows(self) -> None:
        """No statement for an empty fixture."""
        table = Table(name="t", columns=[column("a", ScalarType.INT)])
        assert insert_rows_statement(table, "hasura") is None

    def test_drop_if_exists(self) -> None:
        """Drop is safe when the table was never created."""
        assert drop_table_sql(ALBUM, "hasura") == 'DROP TABLE IF EXISTS "hasura"."album";'
