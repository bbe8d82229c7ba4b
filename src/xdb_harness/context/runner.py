"""Test suite driver: run a fixed suite against each combination.

For each combination the driver creates the local state, runs setup, runs
every case in order, then runs teardown.  Combinations run one at a time
because they share the engine's metadata.

Failure policy:
- setup failure: no case runs, teardown still runs, the combination fails;
- case failure: the remaining cases of that combination are not run,
  teardown still runs, later combinations are unaffected;
- teardown failure: emitted as a ``TeardownWarning`` and fails the
  combination; ``max_teardown_failures`` consecutive teardown failures
  raise ``HarnessFatalError``.

Usage:
    from xdb_harness.context.runner import SuiteDriver, describe, it

    @it("related-data")
    async def related_data(env: TestEnv) -> None:
        await env.should_return_yaml(env.state.engine.post_graphql(query), expected)

    suite = describe("array-relationship", describe("execution", related_data))
    driver = SuiteDriver(state)
    reports = await driver.run(contexts, suite)
"""

import logging
import warnings
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from xdb_harness.assertions import should_be_yaml, should_return_yaml
from xdb_harness.context.models import Context, Options
from xdb_harness.errors import (
    HarnessFatalError,
    SetupError,
    TeardownError,
    TeardownWarning,
)
from xdb_harness.state import HarnessState

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Suite definition
# ------------------------------------------------------------------


@dataclass
class TestEnv:
    """What a test case receives: the engine handle and its combination."""

    __test__ = False  # not a pytest class

    state: HarnessState
    local_state: Any
    options: Options | None
    context_name: str

    def should_be_yaml(self, actual: Any, expected: Any) -> None:
        should_be_yaml(actual, expected, self.options, self.context_name)

    async def should_return_yaml(self, response: Awaitable[Any], expected: Any) -> None:
        await should_return_yaml(response, expected, self.options, self.context_name)


CaseFn = Callable[[TestEnv], Awaitable[None]]


@dataclass(frozen=True)
class Case:
    name: str
    run: CaseFn


@dataclass(frozen=True)
class Group:
    name: str
    items: tuple["Case | Group", ...]

    def cases(self, prefix: str = "") -> list[tuple[str, Case]]:
        """Flatten to ``(path, case)`` pairs, paths joined with ``/``."""
        path = f"{prefix}/{self.name}" if prefix else self.name
        result: list[tuple[str, Case]] = []
        for item in self.items:
            if isinstance(item, Group):
                result.extend(item.cases(path))
            else:
                result.append((f"{path}/{item.name}", item))
        return result


def describe(name: str, *items: "Case | Group") -> Group:
    return Group(name=name, items=tuple(items))


def it(name: str) -> Callable[[CaseFn], Case]:
    """Decorator turning an async function into a named ``Case``."""

    def decorator(fn: CaseFn) -> Case:
        return Case(name=name, run=fn)

    return decorator


# ------------------------------------------------------------------
# Results
# ------------------------------------------------------------------


class Outcome(str, Enum):
    PASSED = "passed"
    FAILED = "failed"  # assertion failure
    ERROR = "error"  # unexpected exception inside a case
    NOT_RUN = "not run"  # aborted by an earlier failure


@dataclass
class CaseResult:
    path: str
    outcome: Outcome
    message: str = ""


@dataclass
class ContextReport:
    """Outcome of one combination."""

    name: str
    cases: list[CaseResult] = field(default_factory=list)
    setup_error: SetupError | None = None
    teardown_error: TeardownError | None = None

    @property
    def passed(self) -> bool:
        return (
            self.setup_error is None
            and self.teardown_error is None
            and all(c.outcome is Outcome.PASSED for c in self.cases)
        )

    def count(self, outcome: Outcome) -> int:
        return sum(1 for c in self.cases if c.outcome is outcome)

    def format_report(self) -> str:
        """Format the combination's outcome as a human-readable report."""
        if self.passed:
            return f"{self.name}: {len(self.cases)} passed"

        lines = [f"{self.name}: FAILED"]
        if self.setup_error is not None:
            lines.append(f"  setup: {self.setup_error.cause!r}")
        for case in self.cases:
            if case.outcome in (Outcome.FAILED, Outcome.ERROR):
                lines.append(f"  {case.outcome.value}: {case.path}")
                lines.extend(f"    {line}" for line in case.message.splitlines())
        not_run = self.count(Outcome.NOT_RUN)
        if not_run:
            lines.append(f"  not run: {not_run} case(s)")
        if self.teardown_error is not None:
            lines.append(f"  teardown (warning): {self.teardown_error.cause!r}")
        return "\n".join(lines)


LeakCheck = Callable[[Context[Any]], Awaitable[list[str]]]
"""Returns the names of resources a combination left behind after teardown."""


# ------------------------------------------------------------------
# Driver
# ------------------------------------------------------------------


class SuiteDriver:
    """Runs a suite over combinations, one at a time, against one engine.

    Args:
        state: Engine handle shared by every combination.
        max_teardown_failures: Consecutive teardown failures that abort the
            run (default: ``state.config.max_teardown_failures``).
        leak_check: Optional post-teardown check; leftovers count as a
            teardown failure.
    """

    def __init__(
        self,
        state: HarnessState,
        max_teardown_failures: int | None = None,
        leak_check: LeakCheck | None = None,
    ) -> None:
        self.state = state
        self.max_teardown_failures = (
            max_teardown_failures
            if max_teardown_failures is not None
            else state.config.max_teardown_failures
        )
        self.leak_check = leak_check
        self.reports: list[ContextReport] = []
        self._teardown_failures = 0

    async def run(
        self, contexts: Sequence[Context[Any]], suite: Group
    ) -> list[ContextReport]:
        """Run ``suite`` against every combination in order.

        Raises:
            HarnessFatalError: After too many consecutive teardown failures.
                Reports gathered so far remain in ``self.reports``.
        """
        for context in contexts:
            await self.run_context(context, suite)
        return self.reports

    async def run_context(self, context: Context[Any], suite: Group) -> ContextReport:
        """Set up, test and tear down one combination."""
        report = ContextReport(name=context.label)
        self.reports.append(report)
        cases = suite.cases()
        logger.info("[%s] start (%d cases)", report.name, len(cases))

        try:
            local_state = await context.mk_local_state(self.state)
        except Exception as e:
            # Nothing was provisioned, so there is nothing to tear down
            report.setup_error = SetupError(report.name, e)
            report.cases = [CaseResult(path, Outcome.NOT_RUN) for path, _ in cases]
            logger.error("[%s] local state failed: %s", report.name, e)
            return report

        try:
            try:
                await context.setup(self.state, local_state)
            except Exception as e:
                report.setup_error = SetupError(report.name, e)
                report.cases = [CaseResult(path, Outcome.NOT_RUN) for path, _ in cases]
                logger.error("[%s] setup failed: %s", report.name, e)
            else:
                env = TestEnv(
                    state=self.state,
                    local_state=local_state,
                    options=context.options,
                    context_name=report.name,
                )
                report.cases = await self._run_cases(env, cases)
        finally:
            await self._teardown(context, local_state, report)

        logger.info("[%s] %s", report.name, "passed" if report.passed else "failed")
        return report

    async def _run_cases(
        self, env: TestEnv, cases: list[tuple[str, Case]]
    ) -> list[CaseResult]:
        results: list[CaseResult] = []
        aborted = False
        for path, case in cases:
            if aborted:
                results.append(CaseResult(path, Outcome.NOT_RUN))
                continue
            try:
                await case.run(env)
            except AssertionError as e:
                results.append(CaseResult(path, Outcome.FAILED, str(e)))
                aborted = True
            except Exception as e:
                results.append(CaseResult(path, Outcome.ERROR, repr(e)))
                aborted = True
            else:
                results.append(CaseResult(path, Outcome.PASSED))
            if aborted:
                logger.warning("[%s] %s failed, skipping remaining cases", env.context_name, path)
        return results

    async def _teardown(
        self, context: Context[Any], local_state: Any, report: ContextReport
    ) -> None:
        error: Exception | None = None
        try:
            await context.teardown(self.state, local_state)
            if self.leak_check is not None:
                leftovers = await self.leak_check(context)
                if leftovers:
                    error = RuntimeError(f"left behind: {', '.join(leftovers)}")
        except Exception as e:
            error = e

        if error is None:
            self._teardown_failures = 0
            return

        self._teardown_failures += 1
        report.teardown_error = TeardownError(report.name, error)
        logger.warning("[%s] teardown failed: %s", report.name, error)
        warnings.warn(str(report.teardown_error), TeardownWarning, stacklevel=2)

        if self._teardown_failures >= self.max_teardown_failures:
            raise HarnessFatalError(
                f"{self._teardown_failures} consecutive teardown failures "
                f"(last: {report.name}); engine state is no longer trustworthy"
            ) from error
