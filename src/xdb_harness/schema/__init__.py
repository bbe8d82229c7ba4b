"""Table fixtures, SQL rendering, and table introspection.

Usage:
    from xdb_harness.schema import Table, TableIdentity, column, column_null
    from xdb_harness.schema import create_table_sql, insert_rows_statement
"""

from xdb_harness.schema.ddl import (
    Statement,
    create_schema_sql,
    create_table_sql,
    drop_table_sql,
    insert_rows_statement,
)
from xdb_harness.schema.introspector import SchemaIntrospector
from xdb_harness.schema.models import (
    Column,
    Reference,
    ScalarType,
    Table,
    TableIdentity,
    Value,
    column,
    column_null,
)

__all__ = [
    "Column",
    "Reference",
    "ScalarType",
    "Table",
    "TableIdentity",
    "Value",
    "column",
    "column_null",
    "Statement",
    "create_schema_sql",
    "create_table_sql",
    "drop_table_sql",
    "insert_rows_statement",
    "SchemaIntrospector",
]
