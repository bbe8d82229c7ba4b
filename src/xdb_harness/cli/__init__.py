"""CLI for running the relationship suite over backend combinations.

Usage:
    xdb-harness contexts
    xdb-harness run
    xdb-harness run --lhs postgres,citus --rhs postgres --check-leaks
    xdb-harness --config ci/harness.toml -v run

Commands:
    contexts  - List the combinations that would run
    run       - Set up, test and tear down every combination

Exit codes:
    0 - every combination passed
    1 - at least one combination failed
    2 - configuration error or fatal harness condition
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from xdb_harness.adapters.base import BackendKind
from xdb_harness.config.loader import load_harness_config
from xdb_harness.config.models import HarnessConfig
from xdb_harness.context.models import BackendName, CombinedName, Context, ContextName
from xdb_harness.context.runner import ContextReport, LeakCheck, Outcome, SuiteDriver
from xdb_harness.errors import ConfigurationError, HarnessFatalError
from xdb_harness.scenarios import array_relationship
from xdb_harness.schema.introspector import SchemaIntrospector
from xdb_harness.state import open_state

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _parse_kinds(value: str | None, default: list[BackendKind]) -> list[BackendKind]:
    """Parse a comma-separated kind list (e.g. ``"postgres,citus"``)."""
    if not value:
        return list(default)
    return [BackendKind.parse(part) for part in value.split(",") if part.strip()]


def _load_config(args: argparse.Namespace) -> HarnessConfig:
    config_path = Path(args.config) if args.config else None
    config = load_harness_config(config_path)
    lhs = _parse_kinds(getattr(args, "lhs", None), config.lhs)
    rhs = _parse_kinds(getattr(args, "rhs", None), config.rhs)
    return config.model_copy(update={"lhs": lhs, "rhs": rhs})


def _name_kinds(name: ContextName) -> list[BackendKind]:
    if isinstance(name, BackendName):
        return [name.kind]
    assert isinstance(name, CombinedName)
    return [*_name_kinds(name.lhs), *_name_kinds(name.rhs)]


def make_leak_check(config: HarnessConfig) -> LeakCheck:
    """Leak check: fixture tables still present in a combination's backends."""
    table_names = {t.name for t in array_relationship.FIXTURE_TABLES}

    def find(kind: BackendKind) -> list[str]:
        with SchemaIntrospector(config.backends[kind].url) as introspector:
            leftovers = introspector.find_leftovers(config.schema_name, table_names)
        return [f"{kind.value}:{config.schema_name}.{t}" for t in leftovers]

    async def check(context: Context[Any]) -> list[str]:
        found: list[str] = []
        for kind in dict.fromkeys(_name_kinds(context.name)):
            found.extend(await asyncio.to_thread(find, kind))
        return found

    return check


def _print_reports(reports: list[ContextReport]) -> None:
    table = Table(title="Combinations")
    table.add_column("Combination", style="cyan")
    table.add_column("Passed", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Not run", justify="right")
    table.add_column("Status")

    for report in reports:
        failed = report.count(Outcome.FAILED) + report.count(Outcome.ERROR)
        if report.passed:
            status = "[green]PASSED[/green]"
        elif report.setup_error is not None:
            status = "[red]SETUP FAILED[/red]"
        elif report.teardown_error is not None and failed == 0:
            status = "[yellow]TEARDOWN FAILED[/yellow]"
        else:
            status = "[red]FAILED[/red]"
        table.add_row(
            report.name,
            str(report.count(Outcome.PASSED)),
            str(failed),
            str(report.count(Outcome.NOT_RUN)),
            status,
        )

    console.print(table)

    for report in reports:
        if not report.passed:
            console.print()
            console.print(report.format_report(), markup=False, highlight=False)


# ============================================================================
# Command implementations
# ============================================================================


def cmd_contexts(args: argparse.Namespace) -> int:
    """List every LHS x RHS combination.

    Returns:
        0 on success, 2 on configuration error.
    """
    try:
        config = _load_config(args)
        contexts = array_relationship.contexts(config.lhs, config.rhs, config.schema_name)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 2

    for context in contexts:
        console.print(f"  {context.label}")
    console.print(f"\n[dim]{len(contexts)} combination(s)[/dim]")
    return 0


async def _async_run(args: argparse.Namespace) -> int:
    """Async implementation for run command.

    Returns:
        0 if all combinations passed, 1 on failures, 2 on fatal errors.
    """
    try:
        config = _load_config(args)
        contexts = array_relationship.contexts(config.lhs, config.rhs, config.schema_name)
    except (ConfigurationError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 2

    console.print(
        f"Running [bold]{len(contexts)}[/bold] combination(s) against "
        f"[bold cyan]{config.engine.url}[/bold cyan]"
    )

    leak_check = make_leak_check(config) if args.check_leaks else None

    try:
        async with open_state(config) as state:
            if not await state.engine.healthcheck():
                console.print(f"[red]Engine not reachable at {config.engine.url}[/red]")
                return 2
            driver = SuiteDriver(state, leak_check=leak_check)
            try:
                await driver.run(contexts, array_relationship.SUITE)
            except HarnessFatalError as e:
                _print_reports(driver.reports)
                console.print(f"\n[bold red]Fatal:[/bold red] {e}")
                return 2
    except ConfigurationError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 2

    _print_reports(driver.reports)
    return 0 if all(r.passed for r in driver.reports) else 1


def cmd_run(args: argparse.Namespace) -> int:
    """Run the suite.  Wraps the async implementation with ``asyncio.run()``."""
    return asyncio.run(_async_run(args))


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="xdb-harness",
        description="Cross-database relationship test harness",
    )
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to harness.toml (default: ./harness.toml if present)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    side_help = "Comma-separated backend kinds (default: from config)"

    p_contexts = subparsers.add_parser(
        "contexts",
        help="List the combinations that would run",
    )
    p_contexts.add_argument("--lhs", help=side_help)
    p_contexts.add_argument("--rhs", help=side_help)
    p_contexts.set_defaults(func=cmd_contexts)

    p_run = subparsers.add_parser(
        "run",
        help="Run the suite over every combination",
    )
    p_run.add_argument("--lhs", help=side_help)
    p_run.add_argument("--rhs", help=side_help)
    p_run.add_argument(
        "--check-leaks",
        action="store_true",
        help="Fail a combination whose fixture tables survive teardown",
    )
    p_run.set_defaults(func=cmd_run)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
