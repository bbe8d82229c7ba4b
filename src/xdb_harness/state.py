"""Harness state: the explicit engine handle shared by every context.

``HarnessState`` bundles the engine gateway and one backend provider per
configured backend kind.  It is opened and closed by the outer driver
(CLI or pytest fixture) and passed to every setup, teardown and query;
no context owns or creates it.

Usage:
    from xdb_harness.state import open_state

    async with open_state(config) as state:
        await state.engine.clear_metadata()
        backend = state.backend(BackendKind.POSTGRES)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from xdb_harness.adapters.base import BackendKind, BackendProvider
from xdb_harness.adapters.postgres import PostgresBackend
from xdb_harness.config.models import HarnessConfig
from xdb_harness.engine.gateway import EngineGateway
from xdb_harness.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class HarnessState:
    """Engine handle plus the backend providers contexts provision with."""

    config: HarnessConfig
    engine: EngineGateway
    backends: dict[BackendKind, BackendProvider] = field(default_factory=dict)

    @property
    def schema_name(self) -> str:
        return self.config.schema_name

    def backend(self, kind: BackendKind) -> BackendProvider:
        """Provider for ``kind``.

        Raises:
            ConfigurationError: If no profile is configured for ``kind``.
        """
        try:
            return self.backends[kind]
        except KeyError:
            configured = ", ".join(k.value for k in self.backends) or "none"
            raise ConfigurationError(
                f"No backend configured for '{kind.value}'. Configured: {configured}"
            ) from None


def create_backends(config: HarnessConfig) -> dict[BackendKind, BackendProvider]:
    """Create one provider per configured backend profile."""
    return {
        kind: PostgresBackend(
            profile.url,
            schema_name=config.schema_name,
            kind=kind,
            engine_database_url=profile.engine_url,
        )
        for kind, profile in config.backends.items()
    }


@asynccontextmanager
async def open_state(
    config: HarnessConfig,
    engine: EngineGateway | None = None,
    backends: dict[BackendKind, BackendProvider] | None = None,
) -> AsyncIterator[HarnessState]:
    """Open the engine handle and backend providers, closing them on exit.

    Args:
        config: Harness configuration.
        engine: Pre-built gateway (default: built from ``config.engine``).
        backends: Pre-built providers (default: built from ``config.backends``).
    """
    missing = config.missing_backends()
    if backends is None and missing:
        raise ConfigurationError(
            "No connection profile for backend(s): "
            + ", ".join(k.value for k in missing)
        )

    if engine is None:
        engine = EngineGateway(
            config.engine.url,
            admin_secret=config.engine.admin_secret,
            timeout=config.engine.timeout,
        )
    if backends is None:
        backends = create_backends(config)

    state = HarnessState(config=config, engine=engine, backends=backends)
    logger.info("opened harness state for engine %s", config.engine.url)
    try:
        yield state
    finally:
        for backend in state.backends.values():
            await backend.close()
        await state.engine.close()
        logger.info("closed harness state")
