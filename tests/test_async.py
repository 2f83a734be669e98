"""
Tests for asynchronous validation.
"""

import asyncio

import pytest

from schemata import (
    AsyncParseError,
    Err,
    IssueCode,
    Ok,
    array,
    codec,
    custom,
    integer,
    number,
    object_,
    string,
)


async def is_positive(value):
    await asyncio.sleep(0)
    return value > 0


async def double(value):
    await asyncio.sleep(0)
    return value * 2


class TestSyncEntryPoints:
    def test_safe_parse_returns_async_error(self):
        result = number().refine(is_positive).safe_parse(1)
        assert isinstance(result, Err)
        assert isinstance(result.error, AsyncParseError)
        assert result.error.issues[0].code == IssueCode.ASYNC_REQUIRED

    def test_parse_raises(self):
        with pytest.raises(AsyncParseError):
            number().refine(is_positive).parse(1)

    def test_nested_async_step_detected(self):
        schema = object_({"n": array(number().transform(double))})
        assert schema.is_async
        assert isinstance(schema.safe_parse({"n": [1]}), Err)

    def test_awaitable_from_sync_function(self):
        schema = number().refine(lambda x: is_positive(x))
        assert not schema.is_async
        result = schema.safe_parse(1)
        assert isinstance(result.error, AsyncParseError)

    def test_sync_schema_is_not_async(self):
        assert not object_({"a": string(), "b": array(number())}).is_async


class TestAsyncParse:
    def test_async_refinement(self):
        schema = number().refine(is_positive, "Must be positive")
        assert asyncio.run(schema.parse_async(3)) == 3
        result = asyncio.run(schema.safe_parse_async(-3))
        assert result.error.issues[0].message == "Must be positive"

    def test_async_transform(self):
        assert asyncio.run(number().transform(double).parse_async(2)) == 4

    def test_async_coercion(self):
        async def to_int(value):
            return int(value)

        schema = integer(coerce=to_int)
        assert schema.is_async
        assert asyncio.run(schema.parse_async("7")) == 7

    def test_async_custom(self):
        schema = custom(is_positive)
        assert asyncio.run(schema.safe_parse_async(1)) == Ok(1)
        assert isinstance(asyncio.run(schema.safe_parse_async(0)), Err)

    def test_async_codec(self):
        async def decode(text):
            return int(text)

        schema = codec(string(), integer(), decode=decode, encode=str)
        assert asyncio.run(schema.decode_async("5")) == 5
        assert asyncio.run(schema.encode_async(5)) == "5"

    def test_async_encoder_only_affects_encoding(self):
        async def encode(value):
            return str(value)

        schema = codec(string(), integer(), decode=int, encode=encode)
        assert not schema.is_async
        assert schema.decode("5") == 5
        assert isinstance(schema.safe_encode(5).error, AsyncParseError)
        assert asyncio.run(schema.encode_async(5)) == "5"

    def test_sync_schema_parses_async(self):
        schema = object_({"a": string(), "b": number()})
        assert asyncio.run(schema.parse_async({"a": "x", "b": 1})) == {"a": "x", "b": 1}

    def test_exceptions_propagate(self):
        async def boom(value):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            asyncio.run(number().refine(boom).safe_parse_async(1))


class TestConcurrency:
    def test_fields_run_concurrently(self):
        async def main():
            ready = asyncio.Event()

            async def waits(value):
                await asyncio.wait_for(ready.wait(), timeout=1)
                return True

            async def signals(value):
                ready.set()
                return True

            schema = object_({"a": string().refine(waits), "b": string().refine(signals)})
            return await schema.parse_async({"a": "x", "b": "y"})

        assert asyncio.run(main()) == {"a": "x", "b": "y"}

    def test_issue_order_follows_declaration(self):
        async def slow_fail(value):
            await asyncio.sleep(0.02)
            return False

        async def fast_fail(value):
            return False

        schema = object_(
            {"first": string().refine(slow_fail), "second": string().refine(fast_fail)}
        )
        result = asyncio.run(schema.safe_parse_async({"first": "a", "second": "b"}))
        assert [issue.path for issue in result.error.issues] == [("first",), ("second",)]

    def test_array_items_keep_order(self):
        async def delayed(value):
            await asyncio.sleep(0.001 * (5 - value))
            return value

        schema = array(integer().transform(delayed))
        assert asyncio.run(schema.parse_async([1, 2, 3, 4])) == [1, 2, 3, 4]

    def test_failure_cancels_siblings(self):
        finished = []

        async def boom(value):
            raise RuntimeError("boom")

        async def slow(value):
            await asyncio.sleep(0.05)
            finished.append(value)
            return True

        async def main():
            schema = object_({"x": string().refine(boom), "y": string().refine(slow)})
            with pytest.raises(RuntimeError):
                await schema.parse_async({"x": "x", "y": "y"})
            await asyncio.sleep(0.1)

        asyncio.run(main())
        assert finished == []

    def test_sync_and_async_agree(self):
        schema = object_({"a": string().min(2), "b": array(number()).max(1)})
        data = {"a": "x", "b": [1, "y"]}
        sync = schema.safe_parse(data)
        async_ = asyncio.run(schema.safe_parse_async(data))
        assert sync.error.issues == async_.error.issues
