"""Pydantic models for backend-agnostic table fixtures.

This module contains schema-domain models:
- Fixture models: ScalarType, Column, Reference, Table
- Table identity: TableIdentity, the opaque reference handed from an RHS
  context to every LHS context it is combined with

A ``Table`` describes columns, keys and rows once; each backend provider
realizes it as DDL/DML for its own engine (see ``xdb_harness.schema.ddl``).
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator

Value = int | str | None


# ============================================================================
# Column Models
# ============================================================================


class ScalarType(str, Enum):
    """Column scalar types supported by every backend."""

    INT = "int"
    STR = "str"


class Column(BaseModel):
    """A fixture column.

    Example:
        >>> Column(name="id", type=ScalarType.INT).nullable
        False
    """

    name: str
    type: ScalarType
    nullable: bool = False

    def accepts(self, value: Value) -> bool:
        """Whether ``value`` can be stored in this column."""
        if value is None:
            return self.nullable
        if self.type is ScalarType.INT:
            return isinstance(value, int) and not isinstance(value, bool)
        return isinstance(value, str)


def column(name: str, type: ScalarType) -> Column:
    """A NOT NULL column."""
    return Column(name=name, type=type)


def column_null(name: str, type: ScalarType) -> Column:
    """A nullable column."""
    return Column(name=name, type=type, nullable=True)


class Reference(BaseModel):
    """Local foreign-key relationship from one of this table's columns."""

    column: str
    target_table: str
    target_column: str


# ============================================================================
# Table Identity
# ============================================================================


class TableIdentity(BaseModel):
    """Schema-qualified table name, as the engine metadata API spells it.

    Example:
        >>> TableIdentity(schema="hasura", name="album").to_json()
        {'schema': 'hasura', 'name': 'album'}
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_name: str = Field(alias="schema")
    name: str

    def to_json(self) -> dict[str, str]:
        """JSON representation used in metadata payloads."""
        return {"schema": self.schema_name, "name": self.name}

    def __str__(self) -> str:
        return f"{self.schema_name}.{self.name}"


# ============================================================================
# Table Fixture
# ============================================================================


class Table(BaseModel):
    """Backend-agnostic table definition with its rows.

    Rows are positional and must line up with ``columns``.

    Example:
        >>> t = Table(
        ...     name="album",
        ...     columns=[column("id", ScalarType.INT)],
        ...     primary_key=["id"],
        ...     rows=[[1]],
        ... )
        >>> t.column_names
        ['id']
    """

    name: str
    columns: list[Column]
    primary_key: list[str] = Field(default_factory=list)
    references: list[Reference] = Field(default_factory=list)
    rows: list[list[Value]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_consistency(self) -> "Table":
        names = self.column_names
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate column names in table '{self.name}'")

        for key in self.primary_key:
            if key not in names:
                raise ValueError(
                    f"Primary key column '{key}' not found in table '{self.name}'"
                )

        for ref in self.references:
            if ref.column not in names:
                raise ValueError(
                    f"Reference column '{ref.column}' not found in table '{self.name}'"
                )

        for i, row in enumerate(self.rows):
            if len(row) != len(self.columns):
                raise ValueError(
                    f"Row {i} of table '{self.name}' has {len(row)} values, "
                    f"expected {len(self.columns)}"
                )
            for col, value in zip(self.columns, row):
                if not col.accepts(value):
                    raise ValueError(
                        f"Row {i} of table '{self.name}': {value!r} is not a "
                        f"valid value for column '{col.name}'"
                    )
        return self

    @property
    def column_names(self) -> list[str]:
        """Column names in declaration order."""
        return [c.name for c in self.columns]

    def identity(self, schema_name: str) -> TableIdentity:
        """The table's identity inside ``schema_name``."""
        return TableIdentity(schema=schema_name, name=self.name)
