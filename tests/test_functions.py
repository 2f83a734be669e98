"""
Tests for function schemas.
"""

import asyncio
import inspect

import pytest

from schemata import (
    Err,
    IssueCode,
    SchemaError,
    function,
    integer,
    string,
    tuple_,
)


class TestImplement:
    def test_valid_call(self):
        add = function(args=[integer(), integer()], returns=integer()).implement(
            lambda a, b: a + b
        )
        assert add(1, 2) == 3

    def test_invalid_arguments(self):
        add = function(args=[integer(), integer()], returns=integer()).implement(
            lambda a, b: a + b
        )
        with pytest.raises(SchemaError) as exc:
            add(1, "2")
        issue = exc.value.issues[0]
        assert issue.code == IssueCode.INVALID_ARGUMENTS
        [branch] = issue.details["errors"]
        assert branch[0].path == (1,)

    def test_invalid_return(self):
        broken = function(args=[string()], returns=integer()).implement(lambda s: s)
        with pytest.raises(SchemaError) as exc:
            broken("x")
        assert exc.value.issues[0].code == IssueCode.INVALID_RETURN_TYPE

    def test_arguments_are_parsed(self):
        shout = function(args=[string().trim()], returns=string()).implement(str.upper)
        assert shout("  hi ") == "HI"

    def test_args_tuple_schema(self):
        fn = function(args=tuple_([integer()], rest=integer())).implement(lambda *xs: sum(xs))
        assert fn(1, 2, 3) == 6

    def test_unchecked_without_schemas(self):
        fn = function().implement(lambda x: x)
        assert fn("anything") == "anything"

    def test_wraps_metadata(self):
        def greet(name):
            """Say hello."""
            return f"Hello {name}"

        wrapped = function(args=[string()], returns=string()).implement(greet)
        assert wrapped.__name__ == "greet"
        assert wrapped.__doc__ == "Say hello."


class TestImplementAsync:
    def test_async_function(self):
        async def fetch(n):
            await asyncio.sleep(0)
            return n * 2

        fn = function(args=[integer()], returns=integer()).implement_async(fetch)
        assert inspect.iscoroutinefunction(fn)
        assert asyncio.run(fn(2)) == 4

    def test_async_invalid_return(self):
        async def fetch(n):
            return str(n)

        fn = function(args=[integer()], returns=integer()).implement_async(fetch)
        with pytest.raises(SchemaError) as exc:
            asyncio.run(fn(2))
        assert exc.value.issues[0].code == IssueCode.INVALID_RETURN_TYPE


class TestFunctionSchema:
    def test_parse_wraps_callable(self):
        schema = function(args=[integer()], returns=integer())
        wrapped = schema.parse(lambda n: n + 1)
        assert wrapped(1) == 2
        with pytest.raises(SchemaError):
            wrapped("1")

    def test_parse_wraps_coroutine_function(self):
        async def inc(n):
            return n + 1

        wrapped = function(args=[integer()]).parse(inc)
        assert inspect.iscoroutinefunction(wrapped)
        assert asyncio.run(wrapped(1)) == 2

    def test_rejects_non_callable(self):
        result = function().safe_parse(1)
        assert isinstance(result, Err)
        assert result.error.issues[0].expected == "function"
