"""Tests for YAML response assertions."""

import asyncio

import pytest

from xdb_harness.assertions import (
    should_be_yaml,
    should_return_yaml,
    stringify_numbers,
    yaml_literal,
)
from xdb_harness.context.models import Options
from xdb_harness.errors import ResponseMismatch


# ============================================================================
# Test: YAML literals
# ============================================================================


class TestYamlLiteral:
    """Verify indented literals parse as expected values."""

    def test_indented_literal(self) -> None:
        """Common indentation is stripped before parsing."""
        value = yaml_literal("""
            data:
              artist:
              - name: artist1
                albums: null
        """)
        assert value == {"data": {"artist": [{"name": "artist1", "albums": None}]}}

    def test_empty_list(self) -> None:
        """Flow-style empty lists parse to []."""
        assert yaml_literal("albums: []") == {"albums": []}


# ============================================================================
# Test: should_be_yaml
# ============================================================================


class TestShouldBeYaml:
    """Verify structural comparison and failure messages."""

    def test_key_order_ignored(self) -> None:
        """Object key order does not matter."""
        should_be_yaml({"b": 1, "a": 2}, {"a": 2, "b": 1})

    def test_list_order_matters(self) -> None:
        """List order matters by default."""
        with pytest.raises(ResponseMismatch):
            should_be_yaml({"xs": [1, 2]}, {"xs": [2, 1]})

    def test_null_is_not_empty_list(self) -> None:
        """A null relationship differs from an empty one."""
        with pytest.raises(ResponseMismatch):
            should_be_yaml({"albums": None}, {"albums": []})

    def test_mismatch_message_names_context(self) -> None:
        """The failure carries the combination label and a diff."""
        with pytest.raises(ResponseMismatch) as exc_info:
            should_be_yaml(
                {"title": "album2_artist1"},
                {"title": "album1_artist1"},
                context_name="from citus to postgres",
            )
        message = str(exc_info.value)
        assert message.startswith("[from citus to postgres] response does not match")
        assert "-title: album1_artist1" in message
        assert "+title: album2_artist1" in message
        assert exc_info.value.expected == {"title": "album1_artist1"}

    def test_graphql_errors_are_compared(self) -> None:
        """An errors response does not match a data expectation."""
        with pytest.raises(ResponseMismatch, match="errors"):
            should_be_yaml({"errors": [{"message": "no such field"}]}, {"data": {}})


# ============================================================================
# Test: Options
# ============================================================================


class TestOptions:
    """Verify Options adjust comparison."""

    def test_stringify_numbers(self) -> None:
        """Expected numbers are compared as strings when requested."""
        options = Options(stringify_numbers=True)
        should_be_yaml({"count": "1", "ok": True}, {"count": 1, "ok": True}, options)

    def test_stringify_leaves_bools_and_nulls(self) -> None:
        """Booleans and nulls are not stringified."""
        assert stringify_numbers({"a": [1, True, None, 1.5]}) == {"a": ["1", True, None, "1.5"]}

    def test_unordered_paths(self) -> None:
        """Lists at unordered paths compare as multisets."""
        options = Options(unordered_paths=frozenset({"data.artist"}))
        should_be_yaml(
            {"data": {"artist": [{"name": "b"}, {"name": "a"}]}},
            {"data": {"artist": [{"name": "a"}, {"name": "b"}]}},
            options,
        )

    def test_other_paths_stay_ordered(self) -> None:
        """Only the listed paths are order-insensitive."""
        options = Options(unordered_paths=frozenset({"data.artist"}))
        with pytest.raises(ResponseMismatch):
            should_be_yaml({"data": {"album": [2, 1]}}, {"data": {"album": [1, 2]}}, options)


# ============================================================================
# Test: should_return_yaml
# ============================================================================


def test_should_return_yaml_awaits_response() -> None:
    """The awaitable is resolved before comparison."""

    async def response() -> dict:
        return {"data": {"artist": []}}

    asyncio.run(should_return_yaml(response(), {"data": {"artist": []}}))
