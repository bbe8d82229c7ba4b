"""Array relationships from any source to a database.

The relationship is declared on the LHS and resolved by the engine across
sources: ``artist.albums`` is a one-to-many relationship to ``album`` rows
that live in another source (``id -> artist_id``).

Every combination runs the same GraphQL queries; only the setup differs.
Combinations are the cartesian product of the LHS kinds and RHS kinds
requested: LHS factories are looked up in ``LHS_CONTEXTS``, RHS contexts
are built by ``rhs_context`` for the configured schema.

GraphQL documents and expected responses are templates: ``$schema`` is
replaced with the configured schema name (root fields and types are
prefixed with it, e.g. ``hasura_artist``).

Usage:
    from xdb_harness.scenarios import array_relationship

    contexts = array_relationship.contexts(
        [BackendKind.POSTGRES, BackendKind.CITUS], [BackendKind.POSTGRES],
        config.schema_name,
    )
    reports = await SuiteDriver(state).run(contexts, array_relationship.SUITE)
"""

from collections.abc import Sequence
from string import Template
from typing import Any

from xdb_harness.adapters.base import BackendKind
from xdb_harness.assertions import yaml_literal
from xdb_harness.context.combine import LHSContext, RHSContext, cartesian
from xdb_harness.context.models import BackendName, Context, no_local_state
from xdb_harness.context.runner import TestEnv, describe, it
from xdb_harness.engine.metadata import (
    RelationshipKind,
    RemoteRelationship,
    SelectPermission,
)
from xdb_harness.errors import ConfigurationError
from xdb_harness.schema.models import (
    ScalarType,
    Table,
    TableIdentity,
    column,
    column_null,
)
from xdb_harness.state import HarnessState

LHS_SOURCE = "source"
RHS_SOURCE = "target"

# ============================================================================
# Schema
# ============================================================================

# LHS
ARTIST = Table(
    name="artist",
    columns=[
        column_null("id", ScalarType.INT),
        column("name", ScalarType.STR),
    ],
    rows=[
        [1, "artist1"],
        [2, "artist2"],
        [3, "artist_no_albums"],
        [None, "artist_no_id"],
    ],
)

# RHS
ALBUM = Table(
    name="album",
    columns=[
        column("id", ScalarType.INT),
        column("title", ScalarType.STR),
        column_null("artist_id", ScalarType.INT),
    ],
    primary_key=["id"],
    rows=[
        [1, "album1_artist1", 1],
        [2, "album2_artist1", 1],
        [3, "album3_artist2", 2],
    ],
)

FIXTURE_TABLES = (ARTIST, ALBUM)


# ============================================================================
# LHS contexts
# ============================================================================


async def _lhs_setup(
    kind: BackendKind, rhs_table: TableIdentity, state: HarnessState
) -> None:
    backend = state.backend(kind)
    artist = ARTIST.identity(state.schema_name)

    await state.engine.add_source(kind, LHS_SOURCE, backend.source_configuration())

    # setup tables only
    await backend.create_table(ARTIST)
    await backend.insert_rows(ARTIST)
    await state.engine.track_table(kind, LHS_SOURCE, artist)

    albums = RemoteRelationship(
        name="albums",
        source=LHS_SOURCE,
        table=artist,
        target_source=RHS_SOURCE,
        target_table=rhs_table,
        kind=RelationshipKind.ARRAY,
        field_mapping={"id": "artist_id"},
    )
    await state.engine.post_metadata_bulk([
        SelectPermission(role="role1").to_metadata(kind, LHS_SOURCE, artist),
        SelectPermission(role="role2").to_metadata(kind, LHS_SOURCE, artist),
        albums.to_metadata(kind),
    ])


async def _lhs_teardown(kind: BackendKind, state: HarnessState) -> None:
    artist = ARTIST.identity(state.schema_name)
    await state.engine.untrack_table(kind, LHS_SOURCE, artist)
    await state.backend(kind).drop_table(ARTIST)


def lhs_context(kind: BackendKind) -> LHSContext:
    """LHS context for ``kind``.

    The LHS owns the relationship: it is handed the RHS table identity and
    declares ``albums`` against it.
    """

    def factory(rhs_table: TableIdentity) -> Context[None]:
        async def setup(state: HarnessState, local_state: None) -> None:
            await _lhs_setup(kind, rhs_table, state)

        async def teardown(state: HarnessState, local_state: None) -> None:
            await _lhs_teardown(kind, state)

        return Context(
            name=BackendName(kind),
            mk_local_state=no_local_state,
            setup=setup,
            teardown=teardown,
        )

    return factory


# ============================================================================
# RHS contexts
# ============================================================================


def _check_schema(album: TableIdentity, state: HarnessState) -> None:
    # backends create tables in state.schema_name
    if album.schema_name != state.schema_name:
        raise ConfigurationError(
            f"RHS table {album.schema_name}.{album.name} is not in the "
            f"configured schema '{state.schema_name}'"
        )


async def _rhs_setup(kind: BackendKind, album: TableIdentity, state: HarnessState) -> None:
    _check_schema(album, state)
    backend = state.backend(kind)

    await state.engine.add_source(kind, RHS_SOURCE, backend.source_configuration())

    # setup tables only
    await backend.create_table(ALBUM)
    await backend.insert_rows(ALBUM)
    await state.engine.track_table(kind, RHS_SOURCE, album)

    artist_filter = {"artist_id": {"_eq": "x-hasura-artist-id"}}
    await state.engine.post_metadata_bulk([
        SelectPermission(
            role="role1",
            columns=["title", "artist_id"],
            filter=artist_filter,
        ).to_metadata(kind, RHS_SOURCE, album),
        SelectPermission(
            role="role2",
            columns=["id", "title", "artist_id"],
            filter=artist_filter,
            limit=1,
            allow_aggregations=True,
        ).to_metadata(kind, RHS_SOURCE, album),
    ])


async def _rhs_teardown(kind: BackendKind, album: TableIdentity, state: HarnessState) -> None:
    await state.engine.untrack_table(kind, RHS_SOURCE, album)
    await state.backend(kind).drop_table(ALBUM)


def rhs_context(kind: BackendKind, schema_name: str) -> RHSContext:
    """RHS context for ``kind``: sets up ``album`` and names it for the LHS.

    ``schema_name`` must be the configured schema (``state.schema_name``);
    setup raises ``ConfigurationError`` otherwise, since the LHS would be
    pointed at a table the RHS never tracked.
    """
    album = ALBUM.identity(schema_name)

    async def setup(state: HarnessState, local_state: None) -> None:
        await _rhs_setup(kind, album, state)

    async def teardown(state: HarnessState, local_state: None) -> None:
        await _rhs_teardown(kind, album, state)

    context: Context[None] = Context(
        name=BackendName(kind),
        mk_local_state=no_local_state,
        setup=setup,
        teardown=teardown,
    )
    return album, context


LHS_CONTEXTS: dict[BackendKind, LHSContext] = {
    kind: lhs_context(kind) for kind in BackendKind
}


def contexts(
    lhs_kinds: Sequence[BackendKind],
    rhs_kinds: Sequence[BackendKind],
    schema_name: str,
) -> list[Context[Any]]:
    """All combinations of the requested LHS and RHS kinds.

    Pass the configured ``schema_name``, as in ``contexts(config.lhs,
    config.rhs, config.schema_name)``.
    """
    return cartesian(
        [LHS_CONTEXTS[kind] for kind in lhs_kinds],
        [rhs_context(kind, schema_name) for kind in rhs_kinds],
    )


# ============================================================================
# Tests
# ============================================================================


def _render(env: TestEnv, source: str) -> str:
    return Template(source).substitute(schema=env.state.schema_name)


def _expected(env: TestEnv, source: str) -> Any:
    return yaml_literal(_render(env, source))


async def _query(env: TestEnv, query: str) -> Any:
    return await env.state.engine.post_graphql(_render(env, query))


async def _query_as(env: TestEnv, headers: list[tuple[str, str]], query: str) -> Any:
    return await env.state.engine.post_graphql_with_headers(headers, _render(env, query))


def _field(introspection: Any, name: str) -> dict[str, Any]:
    fields = introspection["data"]["artist_fields"]["fields"]
    for f in fields:
        if f["name"] == name:
            return f
    raise AssertionError(f"field '{name}' not found in {[f['name'] for f in fields]}")


# ------------------------------------------------------------------
# Schema
# ------------------------------------------------------------------

TYPE_INFO_QUERY = """
fragment type_info on __Type {
  name
  kind
  ofType {
    name
    kind
    ofType {
      name
      kind
      ofType {
        name
      }
    }
  }
}
query {
  artist_fields: __type(name: "${schema}_artist") {
    fields {
      name
      type {
        ...type_info
      }
      args {
        name
        type {
          ...type_info
        }
      }
    }
  }
}
"""

RELATIONSHIP_FIELD_ARGS = """
- name: distinct_on
  type:
    kind: LIST
    name: null
    ofType:
      kind: NON_NULL
      name: null
      ofType:
        kind: ENUM
        name: ${schema}_album_select_column
        ofType: null
- name: limit
  type:
    kind: SCALAR
    name: Int
    ofType: null
- name: offset
  type:
    kind: SCALAR
    name: Int
    ofType: null
- name: order_by
  type:
    kind: LIST
    name: null
    ofType:
      kind: NON_NULL
      name: null
      ofType:
        kind: INPUT_OBJECT
        name: ${schema}_album_order_by
        ofType: null
- name: where
  type:
    kind: INPUT_OBJECT
    name: ${schema}_album_bool_exp
    ofType: null
"""


# we introspect the schema and validate it
@it("graphql-schema")
async def graphql_schema(env: TestEnv) -> None:
    introspection = await _query(env, TYPE_INFO_QUERY)
    albums_field = _field(introspection, "albums")
    albums_aggregate_field = _field(introspection, "albums_aggregate")

    # the args of albums and albums_aggregate are the same
    expected_args = _expected(env, RELATIONSHIP_FIELD_ARGS)
    for f in (albums_field, albums_aggregate_field):
        env.should_be_yaml(f["args"], expected_args)

    env.should_be_yaml(
        albums_field["type"],
        _expected(env, """
            kind: NON_NULL
            name: null
            ofType:
              kind: LIST
              name: null
              ofType:
                kind: NON_NULL
                name: null
                ofType:
                  name: ${schema}_album
        """),
    )

    env.should_be_yaml(
        albums_aggregate_field["type"],
        _expected(env, """
            name: null
            kind: NON_NULL
            ofType:
              name: ${schema}_album_aggregate
              kind: OBJECT
              ofType: null
        """),
    )


schema_tests = describe("schema", graphql_schema)


# ------------------------------------------------------------------
# Execution
# ------------------------------------------------------------------


@it("related-data")
async def related_data(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query(env, """
            query {
              artist: ${schema}_artist(where: {name: {_eq: "artist1"}}) {
                name
                albums {
                  title
                }
              }
            }
        """),
        _expected(env, """
            data:
              artist:
              - name: artist1
                albums:
                - title: album1_artist1
                - title: album2_artist1
        """),
    )


# no matching rows: the relationship is []
@it("related-data-empty-array")
async def related_data_empty_array(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query(env, """
            query {
              artist: ${schema}_artist(where: {name: {_eq: "artist_no_albums"}}) {
                name
                albums {
                  title
                }
              }
            }
        """),
        _expected(env, """
            data:
              artist:
              - name: artist_no_albums
                albums: []
        """),
    )


# a null join column: the relationship is null
@it("related-data-null")
async def related_data_null(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query(env, """
            query {
              artist: ${schema}_artist(where: {name: {_eq: "artist_no_id"}}) {
                name
                albums {
                  title
                }
              }
            }
        """),
        _expected(env, """
            data:
              artist:
              - name: artist_no_id
                albums: null
        """),
    )


# null and non-null join columns in one response
@it("related-data-non-null-and-null")
async def related_data_non_null_and_null(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query(env, """
            query {
              artist: ${schema}_artist(
                where: {
                  _or: [
                    {name: {_eq: "artist1"}},
                    {name: {_eq: "artist_no_id"}}
                  ]
                },
                order_by: {id: asc}
              ) {
                name
                albums {
                  title
                }
              }
            }
        """),
        _expected(env, """
            data:
              artist:
              - name: artist1
                albums:
                - title: album1_artist1
                - title: album2_artist1
              - name: artist_no_id
                albums: null
        """),
    )


execution_tests = describe(
    "execution",
    related_data,
    related_data_empty_array,
    related_data_null,
    related_data_non_null_and_null,
)


# ------------------------------------------------------------------
# Permissions
# ------------------------------------------------------------------

ROLE1_ARTIST1 = [("x-hasura-role", "role1"), ("x-hasura-artist-id", "1")]
ROLE2_ARTIST1 = [("x-hasura-role", "role2"), ("x-hasura-artist-id", "1")]

ARTIST_FIELDS_QUERY = """
query {
  artist_fields: __type(name: "${schema}_artist") {
    fields {
      name
    }
  }
}
"""


# only the rows allowed by the target table's filter are returned
@it("only-allowed-rows")
async def only_allowed_rows(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query_as(env, ROLE1_ARTIST1, """
            query {
              artist: ${schema}_artist(order_by: {id: asc}) {
                name
                albums {
                  title
                }
              }
            }
        """),
        _expected(env, """
            data:
              artist:
              - name: artist1
                albums:
                - title: album1_artist1
                - title: album2_artist1
              - name: artist2
                albums: []
              - name: artist_no_albums
                albums: []
              - name: artist_no_id
                albums: null
        """),
    )


# the album type only has the allowed columns, and albums is of that type
@it("only-allowed-columns")
async def only_allowed_columns(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query_as(env, ROLE1_ARTIST1, """
            query {
              album_fields: __type(name: "${schema}_album") {
                fields {
                  name
                }
              }
              artist: ${schema}_artist(where: {name: {_eq: "artist1"}}) {
                name
                albums(limit: 1) {
                  __typename
                }
              }
            }
        """),
        _expected(env, """
            data:
              album_fields:
                fields:
                - name: artist_id
                - name: title
              artist:
              - name: artist1
                albums:
                - __typename: ${schema}_album
        """),
    )


# no _aggregate field unless allow_aggregations is set
@it("aggregations-not-allowed")
async def aggregations_not_allowed(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query_as(env, [("x-hasura-role", "role1")], ARTIST_FIELDS_QUERY),
        _expected(env, """
            data:
              artist_fields:
                fields:
                - name: albums
                - name: id
                - name: name
        """),
    )


@it("aggregations-allowed")
async def aggregations_allowed(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query_as(env, [("x-hasura-role", "role2")], ARTIST_FIELDS_QUERY),
        _expected(env, """
            data:
              artist_fields:
                fields:
                - name: albums
                - name: albums_aggregate
                - name: id
                - name: name
        """),
    )


# the permission limit applies when the query sets none
@it("no-query-limit")
async def no_query_limit(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query_as(env, ROLE2_ARTIST1, """
            query {
              artist: ${schema}_artist(where: {name: {_eq: "artist1"}}) {
                name
                albums(order_by: {id: asc}) {
                  title
                }
              }
            }
        """),
        _expected(env, """
            data:
              artist:
              - name: artist1
                albums:
                - title: album1_artist1
        """),
    )


# query limit <= permission limit: the query limit applies
@it("user-limit-less-than-permission-limit")
async def user_limit_less_than_permission_limit(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query_as(env, ROLE2_ARTIST1, """
            query {
              artist: ${schema}_artist(where: {name: {_eq: "artist1"}}) {
                name
                albums(order_by: {id: asc}, limit: 0) {
                  title
                }
              }
            }
        """),
        _expected(env, """
            data:
              artist:
              - name: artist1
                albums: []
        """),
    )


# query limit > permission limit: the permission limit applies
@it("user-limit-greater-than-permission-limit")
async def user_limit_greater_than_permission_limit(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query_as(env, ROLE2_ARTIST1, """
            query {
              artist: ${schema}_artist(where: {name: {_eq: "artist1"}}) {
                name
                albums(order_by: {id: asc}, limit: 4) {
                  title
                }
              }
            }
        """),
        _expected(env, """
            data:
              artist:
              - name: artist1
                albums:
                - title: album1_artist1
        """),
    )


# the permission limit applies to 'nodes' and 'aggregate' alike
@it("aggregations")
async def aggregations(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query_as(env, ROLE2_ARTIST1, """
            query {
              artist: ${schema}_artist(where: {name: {_eq: "artist1"}}) {
                name
                albums_aggregate(order_by: {id: asc}) {
                  aggregate {
                    count
                  }
                  nodes {
                    title
                  }
                }
              }
            }
        """),
        _expected(env, """
            data:
              artist:
              - name: artist1
                albums_aggregate:
                  aggregate:
                    count: 1
                  nodes:
                  - title: album1_artist1
        """),
    )


# the query limit applies to 'nodes' and 'aggregate' alike
@it("aggregations-query-limit")
async def aggregations_query_limit(env: TestEnv) -> None:
    await env.should_return_yaml(
        _query_as(env, ROLE2_ARTIST1, """
            query {
              artist: ${schema}_artist(where: {name: {_eq: "artist1"}}) {
                name
                albums_aggregate(limit: 1, order_by: {id: asc}) {
                  aggregate {
                    count
                  }
                  nodes {
                    title
                  }
                }
              }
            }
        """),
        _expected(env, """
            data:
              artist:
              - name: artist1
                albums_aggregate:
                  aggregate:
                    count: 1
                  nodes:
                  - title: album1_artist1
        """),
    )


permission_tests = describe(
    "permission",
    only_allowed_rows,
    only_allowed_columns,
    aggregations_not_allowed,
    aggregations_allowed,
    no_query_limit,
    user_limit_less_than_permission_limit,
    user_limit_greater_than_permission_limit,
    aggregations,
    aggregations_query_limit,
)

SUITE = describe("array-relationship", schema_tests, execution_tests, permission_tests)
