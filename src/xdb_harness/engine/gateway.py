"""HTTP gateway to the query engine.

Provides ``EngineGateway``, an async client for the engine's two APIs:

- metadata management (``/v1/metadata``): add source, track/untrack table,
  permissions, relationships, ``bulk``, ``clear_metadata``;
- query execution (``/v1/graphql``): submit a GraphQL document, optionally
  with caller-identity headers (``x-hasura-role`` and claims).

Query execution never mutates engine state.  Caller headers are passed
through unmodified.

Usage:
    from xdb_harness.engine.gateway import EngineGateway

    engine = EngineGateway("http://127.0.0.1:8080")
    await engine.clear_metadata()
    response = await engine.post_graphql_with_headers(
        [("x-hasura-role", "role1"), ("x-hasura-artist-id", "1")],
        "query { hasura_artist { name } }",
    )
    await engine.close()
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import httpx

from xdb_harness.adapters.base import BackendKind
from xdb_harness.engine import metadata
from xdb_harness.engine.metadata import MetadataCall
from xdb_harness.errors import EngineError
from xdb_harness.schema.models import TableIdentity

logger = logging.getLogger(__name__)

Headers = Mapping[str, str] | Sequence[tuple[str, str]]

# Engine error codes meaning "nothing to undo"
MISSING_CODES = frozenset({"already-untracked", "not-exists", "not-found"})


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class EngineGateway:
    """Async client for the engine's metadata and GraphQL endpoints.

    Args:
        url: Engine base URL.
        admin_secret: Sent as ``x-hasura-admin-secret`` on every request
            when set.
        timeout: Per-request timeout in seconds.
        transport: Optional httpx transport (tests use ``MockTransport``).

    Example:
        engine = EngineGateway("http://127.0.0.1:8080", admin_secret="secret")
        await engine.post_metadata({"type": "clear_metadata", "args": {}})
    """

    METADATA_PATH = "/v1/metadata"
    GRAPHQL_PATH = "/v1/graphql"
    HEALTH_PATH = "/healthz"

    def __init__(
        self,
        url: str,
        admin_secret: str | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers: dict[str, str] = {}
        if admin_secret:
            headers["x-hasura-admin-secret"] = admin_secret

        self.url = url
        self._client = httpx.AsyncClient(
            base_url=url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def post_metadata(self, payload: MetadataCall) -> Any:
        """Submit one metadata call and return the decoded response.

        Raises:
            EngineError: If the engine answers with a non-2xx status.
        """
        logger.debug("metadata call: %s", payload.get("type"))
        response = await self._client.post(self.METADATA_PATH, json=payload)
        body = _decode(response)

        if response.is_error:
            code = body.get("code") if isinstance(body, dict) else None
            path = body.get("path") if isinstance(body, dict) else None
            message = body.get("error") if isinstance(body, dict) else body
            raise EngineError(
                f"Metadata call '{payload.get('type')}' failed "
                f"({response.status_code}): {message}",
                status_code=response.status_code,
                code=code,
                path=path,
                body=body,
            )
        return body

    async def post_metadata_bulk(self, calls: list[MetadataCall]) -> Any:
        """Submit calls as one atomic ``bulk`` call.

        Either every call applies or none does.
        """
        return await self.post_metadata(metadata.bulk(calls))

    async def clear_metadata(self) -> None:
        """Drop all sources, relationships and permissions from the engine."""
        await self.post_metadata(metadata.CLEAR_METADATA)

    async def export_metadata(self) -> dict[str, Any]:
        """Return the engine's current metadata document."""
        return await self.post_metadata(metadata.EXPORT_METADATA)

    async def add_source(
        self, kind: BackendKind, source: str, configuration: dict[str, Any]
    ) -> None:
        await self.post_metadata(metadata.add_source(kind, source, configuration))

    async def track_table(
        self, kind: BackendKind, source: str, table: TableIdentity
    ) -> None:
        await self.post_metadata(metadata.track_table(kind, source, table))

    async def untrack_table(
        self,
        kind: BackendKind,
        source: str,
        table: TableIdentity,
        missing_ok: bool = True,
    ) -> None:
        """Untrack a table.

        With ``missing_ok`` an already-untracked table or a missing source
        is not an error, so teardown can follow a partially failed setup.
        """
        try:
            await self.post_metadata(metadata.untrack_table(kind, source, table))
        except EngineError as e:
            if missing_ok and e.code in MISSING_CODES:
                logger.debug("untrack %s on '%s': nothing to untrack (%s)", table, source, e.code)
                return
            raise

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def post_graphql(
        self, query: str, variables: dict[str, Any] | None = None
    ) -> Any:
        """Run a GraphQL document with the gateway's default identity."""
        return await self._post_graphql(query, variables, None)

    async def post_graphql_with_headers(
        self,
        headers: Headers,
        query: str,
        variables: dict[str, Any] | None = None,
    ) -> Any:
        """Run a GraphQL document as the caller described by ``headers``."""
        return await self._post_graphql(query, variables, headers)

    async def _post_graphql(
        self,
        query: str,
        variables: dict[str, Any] | None,
        headers: Headers | None,
    ) -> Any:
        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        response = await self._client.post(self.GRAPHQL_PATH, json=payload, headers=headers)
        body = _decode(response)

        # GraphQL errors come back as 200 with an "errors" key and are part
        # of the response under test; only transport failures raise.
        if response.is_error:
            raise EngineError(
                f"GraphQL request failed ({response.status_code}): {body}",
                status_code=response.status_code,
                body=body,
            )
        return body

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def healthcheck(self) -> bool:
        """Whether the engine answers its health endpoint."""
        try:
            response = await self._client.get(self.HEALTH_PATH)
        except httpx.HTTPError as e:
            logger.warning("engine health check failed: %s", e)
            return False
        return response.is_success

    async def close(self) -> None:
        await self._client.aclose()
