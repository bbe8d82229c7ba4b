"""Metadata call payloads for the query engine.

Each builder returns the ``{"type": ..., "args": ...}`` document the
engine's metadata endpoint accepts.  Call types are prefixed with the
backend's metadata prefix (``pg_track_table``, ``citus_track_table``).

Relationship and permission declarations are modelled here rather than on
the ``Table`` fixture: they live in engine metadata, not in the database.

Usage:
    from xdb_harness.engine.metadata import RemoteRelationship, track_table

    call = track_table(BackendKind.POSTGRES, "source", artist_identity)
    rel = RemoteRelationship(
        name="albums",
        source="source",
        table=artist_identity,
        target_source="target",
        target_table=album_identity,
        kind=RelationshipKind.ARRAY,
        field_mapping={"id": "artist_id"},
    )
    await engine.post_metadata_bulk([rel.to_metadata(BackendKind.POSTGRES)])
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field

from xdb_harness.adapters.base import BackendKind
from xdb_harness.schema.models import TableIdentity

MetadataCall = dict[str, Any]

CLEAR_METADATA: MetadataCall = {"type": "clear_metadata", "args": {}}
EXPORT_METADATA: MetadataCall = {"type": "export_metadata", "args": {}}


def _call(kind: BackendKind, name: str, args: dict[str, Any]) -> MetadataCall:
    return {"type": f"{kind.metadata_prefix}_{name}", "args": args}


def add_source(
    kind: BackendKind, source: str, configuration: dict[str, Any]
) -> MetadataCall:
    return _call(kind, "add_source", {"name": source, "configuration": configuration})


def track_table(kind: BackendKind, source: str, table: TableIdentity) -> MetadataCall:
    return _call(kind, "track_table", {"source": source, "table": table.to_json()})


def untrack_table(
    kind: BackendKind, source: str, table: TableIdentity, cascade: bool = True
) -> MetadataCall:
    """Untrack a table; ``cascade`` also drops relationships pointing at it."""
    return _call(
        kind,
        "untrack_table",
        {"source": source, "table": table.to_json(), "cascade": cascade},
    )


def bulk(calls: list[MetadataCall]) -> MetadataCall:
    """Wrap calls in an all-or-nothing ``bulk`` call."""
    return {"type": "bulk", "args": list(calls)}


class RelationshipKind(str, Enum):
    """Cardinality of a relationship."""

    OBJECT = "object"
    ARRAY = "array"


class SelectPermission(BaseModel):
    """Row- and column-level select permission for a role.

    Example:
        >>> SelectPermission(role="role1", columns=["title"], limit=1).limit
        1
    """

    role: str
    columns: list[str] | Literal["*"] = "*"
    filter: dict[str, Any] = Field(default_factory=dict)
    limit: int | None = None
    allow_aggregations: bool = False

    def to_metadata(
        self, kind: BackendKind, source: str, table: TableIdentity
    ) -> MetadataCall:
        permission: dict[str, Any] = {"columns": self.columns, "filter": self.filter}
        if self.limit is not None:
            permission["limit"] = self.limit
        if self.allow_aggregations:
            permission["allow_aggregations"] = True
        return _call(
            kind,
            "create_select_permission",
            {
                "source": source,
                "role": self.role,
                "table": table.to_json(),
                "permission": permission,
            },
        )


class RemoteRelationship(BaseModel):
    """A relationship from a table in one source to a table in another.

    ``field_mapping`` maps source-side columns to target-side columns.
    """

    name: str
    source: str
    table: TableIdentity
    target_source: str
    target_table: TableIdentity
    kind: RelationshipKind
    field_mapping: dict[str, str]

    def to_metadata(self, kind: BackendKind) -> MetadataCall:
        return _call(
            kind,
            "create_remote_relationship",
            {
                "source": self.source,
                "table": self.table.to_json(),
                "name": self.name,
                "definition": {
                    "to_source": {
                        "source": self.target_source,
                        "table": self.target_table.to_json(),
                        "relationship_type": self.kind.value,
                        "field_mapping": dict(self.field_mapping),
                    }
                },
            },
        )
