"""Contexts, the combinator, and the suite driver.

Usage:
    from xdb_harness.context import Context, cartesian, SuiteDriver, describe, it
"""

from xdb_harness.context.combine import LHSContext, RHSContext, cartesian, combine
from xdb_harness.context.models import (
    BackendName,
    CombinedName,
    Context,
    ContextName,
    Options,
    OptionsConflict,
    merge_options,
    no_local_state,
)
from xdb_harness.context.runner import (
    Case,
    CaseResult,
    ContextReport,
    Group,
    Outcome,
    SuiteDriver,
    TestEnv,
    describe,
    it,
)

__all__ = [
    "BackendName",
    "CombinedName",
    "Context",
    "ContextName",
    "Options",
    "OptionsConflict",
    "merge_options",
    "no_local_state",
    "LHSContext",
    "RHSContext",
    "combine",
    "cartesian",
    "Case",
    "CaseResult",
    "ContextReport",
    "Group",
    "Outcome",
    "SuiteDriver",
    "TestEnv",
    "describe",
    "it",
]
