"""Context: the unit of test configuration.

A ``Context`` bundles a name, a local-state factory, a setup and a teardown
procedure, and engine-specific ``Options``.  LHS and RHS fixtures are
built from contexts; the combinator merges one of each into a runnable
combination.

Usage:
    from xdb_harness.context.models import BackendName, Context, no_local_state

    context = Context(
        name=BackendName(BackendKind.POSTGRES),
        mk_local_state=no_local_state,
        setup=setup_album,
        teardown=teardown_album,
    )
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from xdb_harness.adapters.base import BackendKind

if TYPE_CHECKING:
    from xdb_harness.state import HarnessState

LocalState = TypeVar("LocalState")


# ------------------------------------------------------------------
# Names
# ------------------------------------------------------------------


@dataclass(frozen=True)
class BackendName:
    """Name of a single-backend context."""

    kind: BackendKind

    @property
    def label(self) -> str:
        return self.kind.value


@dataclass(frozen=True)
class CombinedName:
    """Name of a combination, identifying both constituent backends.

    Example:
        >>> CombinedName(BackendName(BackendKind.CITUS), BackendName(BackendKind.POSTGRES)).label
        'from citus to postgres'
    """

    lhs: "ContextName"
    rhs: "ContextName"

    @property
    def label(self) -> str:
        return f"from {self.lhs.label} to {self.rhs.label}"


ContextName = BackendName | CombinedName


# ------------------------------------------------------------------
# Options
# ------------------------------------------------------------------


@dataclass(frozen=True)
class Options:
    """Engine-specific execution hints consulted by response assertions.

    Attributes:
        stringify_numbers: The engine renders numeric scalars as strings;
            expected numbers are stringified before comparison.  ``None``
            means "not set".
        unordered_paths: Dotted response paths (e.g. ``"data.artist"``)
            whose list order is not significant.
    """

    stringify_numbers: bool | None = None
    unordered_paths: frozenset[str] = frozenset()


@dataclass(frozen=True)
class OptionsConflict:
    """Two option sets disagree on a flag both of them set."""

    field: str
    lhs: Any
    rhs: Any

    @property
    def message(self) -> str:
        return (
            f"Conflicting option '{self.field}': "
            f"lhs sets {self.lhs!r}, rhs sets {self.rhs!r}"
        )


def merge_options(
    lhs: Options | None, rhs: Options | None
) -> Options | OptionsConflict | None:
    """Merge two option sets without dropping anything either side set.

    - ``None`` on either side yields the other side unchanged.
    - Scalar flags: an unset (``None``) flag yields to a set one, equal
      values merge, different set values are an ``OptionsConflict``.
    - Path sets are unioned.

    Returns:
        The merged ``Options``, an ``OptionsConflict`` describing the first
        conflicting field, or ``None`` if neither side has options.

    Example:
        >>> merge_options(Options(stringify_numbers=True), Options())
        Options(stringify_numbers=True, unordered_paths=frozenset())
        >>> merge_options(Options(stringify_numbers=True), Options(stringify_numbers=False))
        OptionsConflict(field='stringify_numbers', lhs=True, rhs=False)
    """
    if lhs is None:
        return rhs
    if rhs is None:
        return lhs

    merged: dict[str, Any] = {}
    for f in fields(Options):
        left = getattr(lhs, f.name)
        right = getattr(rhs, f.name)
        if isinstance(left, frozenset):
            merged[f.name] = left | right
        elif left is None:
            merged[f.name] = right
        elif right is None or left == right:
            merged[f.name] = left
        else:
            return OptionsConflict(field=f.name, lhs=left, rhs=right)
    return Options(**merged)


# ------------------------------------------------------------------
# Context
# ------------------------------------------------------------------


async def no_local_state(state: "HarnessState") -> None:
    """Local-state factory for contexts that need none."""
    return None


@dataclass(frozen=True)
class Context(Generic[LocalState]):
    """One configuration the fixed test suite can run against.

    ``teardown`` must undo exactly one ``setup`` for the same local state,
    and must be safe to call when ``setup`` failed part-way.

    Attributes:
        name: Context name, used for suite labels and failure attribution.
        mk_local_state: Builds auxiliary per-context state (e.g. a handle
            to a spun-up helper server); most contexts use
            ``no_local_state``.
        setup: Provisions the context.
        teardown: Undoes ``setup``.
        options: Engine-specific execution hints, if any.
    """

    name: ContextName
    mk_local_state: Callable[["HarnessState"], Awaitable[LocalState]]
    setup: Callable[["HarnessState", LocalState], Awaitable[None]]
    teardown: Callable[["HarnessState", LocalState], Awaitable[None]]
    options: Options | None = field(default=None)

    @property
    def label(self) -> str:
        return self.name.label
