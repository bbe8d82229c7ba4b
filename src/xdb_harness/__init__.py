"""xdb-harness: cross-database relationship test harness.

Runs one fixed GraphQL assertion suite over every combination of
left-hand-side and right-hand-side backends: the RHS provisions the
related table, the LHS declares a relationship to it, the suite queries
the engine, and teardown undoes both in reverse order.

Usage:
    from xdb_harness import SuiteDriver, load_harness_config, open_state
    from xdb_harness.scenarios import array_relationship

    config = load_harness_config()
    contexts = array_relationship.contexts(config.lhs, config.rhs, config.schema_name)
    async with open_state(config) as state:
        reports = await SuiteDriver(state).run(contexts, array_relationship.SUITE)
"""

__version__ = "0.1.0"

# Backends
from xdb_harness.adapters.base import BackendKind, BackendProvider
from xdb_harness.adapters.postgres import PostgresBackend

# Config
from xdb_harness.config.loader import load_harness_config
from xdb_harness.config.models import BackendProfile, EngineSettings, HarnessConfig

# Contexts
from xdb_harness.context.combine import cartesian, combine
from xdb_harness.context.models import Context, Options, merge_options
from xdb_harness.context.runner import ContextReport, SuiteDriver, describe, it

# Engine
from xdb_harness.engine.gateway import EngineGateway

# Errors
from xdb_harness.errors import (
    ConfigurationError,
    EngineError,
    HarnessError,
    HarnessFatalError,
    ResponseMismatch,
)

# Fixtures
from xdb_harness.schema.models import Table, TableIdentity

# State
from xdb_harness.state import HarnessState, open_state

__all__ = [
    # Backends
    "BackendKind",
    "BackendProvider",
    "PostgresBackend",
    # Config
    "load_harness_config",
    "BackendProfile",
    "EngineSettings",
    "HarnessConfig",
    # Contexts
    "Context",
    "Options",
    "merge_options",
    "combine",
    "cartesian",
    "ContextReport",
    "SuiteDriver",
    "describe",
    "it",
    # Engine
    "EngineGateway",
    # Errors
    "HarnessError",
    "ConfigurationError",
    "EngineError",
    "HarnessFatalError",
    "ResponseMismatch",
    # Fixtures
    "Table",
    "TableIdentity",
    # State
    "HarnessState",
    "open_state",
]
