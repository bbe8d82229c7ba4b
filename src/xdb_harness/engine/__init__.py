"""Query engine gateway and metadata call builders.

Usage:
    from xdb_harness.engine import EngineGateway, RemoteRelationship, SelectPermission
"""

from xdb_harness.engine.gateway import EngineGateway
from xdb_harness.engine.metadata import (
    RelationshipKind,
    RemoteRelationship,
    SelectPermission,
)

__all__ = [
    "EngineGateway",
    "RelationshipKind",
    "RemoteRelationship",
    "SelectPermission",
]
