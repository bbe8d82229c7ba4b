"""Combine an LHS context factory and an RHS context into one combination.

The RHS is set up first; the LHS then declares the relationship to the
RHS table it was handed.  Teardown runs in the opposite order.  Engine
metadata is cleared before each setup.

Local state asymmetry: the combination's local state is the LHS's.  The
RHS always receives ``None``, and its local state is never threaded to
the assertions.

Usage:
    from xdb_harness.context.combine import cartesian

    contexts = cartesian([lhs_postgres, lhs_citus], [rhs_postgres])
    # [from postgres to postgres, from citus to postgres]
"""

import logging
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from xdb_harness.context.models import (
    CombinedName,
    Context,
    OptionsConflict,
    merge_options,
)
from xdb_harness.errors import ConfigurationError
from xdb_harness.schema.models import TableIdentity

if TYPE_CHECKING:
    from xdb_harness.state import HarnessState

logger = logging.getLogger(__name__)

LHSContext = Callable[[TableIdentity], Context[Any]]
"""Builds the LHS context from the identity of the RHS table."""

RHSContext = tuple[TableIdentity, Context[None]]
"""The RHS table identity and the context that provisions it."""


def combine(lhs_factory: LHSContext, rhs: RHSContext) -> Context[Any]:
    """Combine an LHS and an RHS into a single runnable context.

    Raises:
        ConfigurationError: If the LHS and RHS options conflict.  Raised
            here, when the suite is built, never during a run.
    """
    table_identity, rhs_context = rhs
    lhs_context = lhs_factory(table_identity)

    options = merge_options(lhs_context.options, rhs_context.options)
    if isinstance(options, OptionsConflict):
        raise ConfigurationError(
            f"Cannot combine {lhs_context.label} with {rhs_context.label}: "
            f"{options.message}"
        )

    async def setup(state: "HarnessState", local_state: Any) -> None:
        await state.engine.clear_metadata()
        # An RHS failure propagates before any relationship is declared
        await rhs_context.setup(state, None)
        await lhs_context.setup(state, local_state)

    async def teardown(state: "HarnessState", local_state: Any) -> None:
        try:
            await lhs_context.teardown(state, local_state)
        except Exception:
            # the LHS relationship may still reference the RHS table; leave
            # both for the next combination's clear_metadata
            logger.warning(
                "%s teardown failed; skipping %s teardown",
                lhs_context.label, rhs_context.label,
            )
            raise
        await rhs_context.teardown(state, None)

    return Context(
        name=CombinedName(lhs_context.name, rhs_context.name),
        mk_local_state=lhs_context.mk_local_state,
        setup=setup,
        teardown=teardown,
        options=options,
    )


def cartesian(
    lhs_factories: Sequence[LHSContext], rhs_contexts: Sequence[RHSContext]
) -> list[Context[Any]]:
    """Every LHS combined with every RHS, LHS-major."""
    contexts = [combine(lhs, rhs) for lhs in lhs_factories for rhs in rhs_contexts]
    logger.debug("built %d combinations", len(contexts))
    return contexts
