"""Response assertions against YAML-literal expectations.

Expected responses are written as YAML documents.  Comparison is
structural: object key order never matters, list order matters except at
paths listed in ``Options.unordered_paths``.  On mismatch a
``ResponseMismatch`` is raised with a unified diff of both values.

Usage:
    from xdb_harness.assertions import should_be_yaml, yaml_literal

    should_be_yaml(response, yaml_literal('''
        data:
          artist:
          - name: artist1
    '''))
"""

import difflib
import textwrap
from collections.abc import Awaitable
from typing import Any

import yaml

from xdb_harness.context.models import Options
from xdb_harness.errors import ResponseMismatch


def yaml_literal(source: str) -> Any:
    """Parse an indented YAML literal."""
    return yaml.safe_load(textwrap.dedent(source))


def render_yaml(value: Any) -> str:
    """Render a value as block-style YAML with sorted keys."""
    return yaml.safe_dump(value, sort_keys=True, default_flow_style=False, allow_unicode=True)


def stringify_numbers(value: Any) -> Any:
    """Replace every numeric scalar with its string form."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, dict):
        return {k: stringify_numbers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [stringify_numbers(v) for v in value]
    return value


def _sort_unordered(value: Any, paths: frozenset[str], prefix: str = "") -> Any:
    if isinstance(value, dict):
        return {
            k: _sort_unordered(v, paths, f"{prefix}.{k}" if prefix else str(k))
            for k, v in value.items()
        }
    if isinstance(value, list):
        items = [_sort_unordered(v, paths, prefix) for v in value]
        if prefix in paths:
            items.sort(key=render_yaml)
        return items
    return value


def normalize(value: Any, options: Options | None) -> Any:
    """Apply ordering hints from ``options`` to a response value."""
    if options is None or not options.unordered_paths:
        return value
    return _sort_unordered(value, options.unordered_paths)


def should_be_yaml(
    actual: Any,
    expected: Any,
    options: Options | None = None,
    context_name: str | None = None,
) -> None:
    """Assert that ``actual`` matches ``expected``.

    Args:
        actual: Decoded engine response.
        expected: Expected value (usually from ``yaml_literal``).
        options: Combination options; ``stringify_numbers`` is applied to
            ``expected``, ``unordered_paths`` to both values.
        context_name: Combination label included in the failure message.

    Raises:
        ResponseMismatch: If the values differ.
    """
    if options is not None and options.stringify_numbers:
        expected = stringify_numbers(expected)

    actual_n = normalize(actual, options)
    expected_n = normalize(expected, options)
    if actual_n == expected_n:
        return

    diff = "\n".join(
        difflib.unified_diff(
            render_yaml(expected_n).splitlines(),
            render_yaml(actual_n).splitlines(),
            fromfile="expected",
            tofile="actual",
            lineterm="",
        )
    )
    where = f"[{context_name}] " if context_name else ""
    raise ResponseMismatch(
        f"{where}response does not match expected value:\n{diff}",
        expected=expected_n,
        actual=actual_n,
    )


async def should_return_yaml(
    response: Awaitable[Any],
    expected: Any,
    options: Options | None = None,
    context_name: str | None = None,
) -> None:
    """Await ``response`` and assert it matches ``expected``."""
    should_be_yaml(await response, expected, options, context_name)
