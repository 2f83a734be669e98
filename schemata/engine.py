"""
Validator engine: drives schema parse generators synchronously or asynchronously.

Every node's parse logic is a generator. It yields requests to its driver:

    Await(awaitable)  - the result of an async user step (coercion, refinement,
                        transform, codec function)
    Gather(tasks)     - independent child parses (object fields, array items)

The sync driver runs gathered tasks one after another and fails on the first
Await. The async driver awaits, and runs gathered tasks concurrently while
keeping their results in declaration order.
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from typing import Any, Awaitable, Generator

import structlog

from .issues import AsyncParseError, Issue

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class Payload:
    """Value and issues being built for one node during a call."""

    value: Any
    issues: list[Issue] = field(default_factory=list)
    aborted: bool = False


@dataclass(frozen=True, slots=True)
class Await:
    awaitable: Awaitable[Any]


@dataclass(frozen=True, slots=True)
class Gather:
    tasks: tuple[Generator[Any, Any, Any], ...]


Task = Generator[Any, Any, Any]


def resolve(result: Any) -> Task:
    """
    Settle the return value of a step.

    Generators are delegated to; awaitables are yielded to the driver as
    Await requests. Anything else is returned unchanged.
    """
    if inspect.isgenerator(result):
        result = yield from result
    elif inspect.isawaitable(result):
        result = yield Await(result)
    return result


def _discard(awaitable: Awaitable[Any]) -> None:
    # Avoid "coroutine was never awaited" warnings
    close = getattr(awaitable, "close", None)
    if close is not None:
        close()


def run_sync(task: Task) -> Any:
    """Drive a parse generator to completion without an event loop."""
    send, arg = task.send, None
    while True:
        try:
            request = send(arg)
        except StopIteration as stop:
            return stop.value

        if isinstance(request, Gather):
            try:
                arg = [run_sync(t) for t in request.tasks]
                send = task.send
            except AsyncParseError:
                task.close()
                raise
            except Exception as e:
                send, arg = task.throw, e
        else:
            _discard(request.awaitable)
            task.close()
            logger.debug("async_step_in_sync_parse")
            raise AsyncParseError()


async def _gather(tasks: tuple[Task, ...]) -> list[Any]:
    """Run child parses concurrently; if one fails, cancel the rest."""
    futures = [asyncio.ensure_future(run_async(t)) for t in tasks]
    try:
        return list(await asyncio.gather(*futures))
    except BaseException:
        for future in futures:
            future.cancel()
        await asyncio.gather(*futures, return_exceptions=True)
        raise


async def run_async(task: Task) -> Any:
    """Drive a parse generator to completion, awaiting async steps."""
    send, arg = task.send, None
    while True:
        try:
            request = send(arg)
        except StopIteration as stop:
            return stop.value

        try:
            if isinstance(request, Gather):
                arg = await _gather(request.tasks)
            else:
                arg = await request.awaitable
            send = task.send
        except Exception as e:
            send, arg = task.throw, e
