"""
Function and codec schema nodes.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Iterable

from .checks import is_async_callable
from .context import ParseContext
from .core import Schema
from .engine import Payload, resolve
from .issues import EncodeError, IssueCode, SchemaDefinitionError, SchemaError
from .types import Err


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class FunctionSchema(Schema):
    """
    Validates callables by wrapping them.

    Parsing a callable returns a wrapper that validates its positional
    arguments against ``args_schema`` and its return value against
    ``returns_schema``. Keyword arguments are passed through unchecked.

    Usage:
        add = function(args=[integer(), integer()], returns=integer()).implement(
            lambda a, b: a + b
        )
        add(1, 2)     # 3
        add(1, "2")   # SchemaError (invalid_arguments)
    """

    args_schema: Schema | None = None
    returns_schema: Schema | None = None

    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        if not callable(payload.value):
            return self._invalid_type(payload, ctx, "function")
        if ctx.forward:
            fn = payload.value
            payload.value = (
                self.implement_async(fn) if inspect.iscoroutinefunction(fn) else self.implement(fn)
            )
        return payload

    def _failure(self, code: IssueCode, value: Any, error: SchemaError) -> SchemaError:
        issue = ParseContext.create().issue(
            code, value, details={"errors": [tuple(error.issues)]}
        )
        return SchemaError([issue])

    def _check_args(self, result: Any, args: tuple[Any, ...]) -> list[Any]:
        if isinstance(result, Err):
            raise self._failure(IssueCode.INVALID_ARGUMENTS, list(args), result.error)
        return list(result.value)

    def _check_returns(self, result: Any, value: Any) -> Any:
        if isinstance(result, Err):
            raise self._failure(IssueCode.INVALID_RETURN_TYPE, value, result.error)
        return result.value

    def implement(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Wrap fn so its arguments and return value are validated."""

        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            parsed = list(args)
            if self.args_schema is not None:
                parsed = self._check_args(self.args_schema.safe_parse(list(args)), args)
            returned = fn(*parsed, **kwargs)
            if self.returns_schema is None:
                return returned
            return self._check_returns(self.returns_schema.safe_parse(returned), returned)

        return wrapper

    def implement_async(self, fn: Callable[..., Any]) -> Callable[..., Any]:
        """Like implement(), for coroutine functions or async schemas."""

        @wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            parsed = list(args)
            if self.args_schema is not None:
                result = await self.args_schema.safe_parse_async(list(args))
                parsed = self._check_args(result, args)
            returned = fn(*parsed, **kwargs)
            if inspect.isawaitable(returned):
                returned = await returned
            if self.returns_schema is None:
                return returned
            result = await self.returns_schema.safe_parse_async(returned)
            return self._check_returns(result, returned)

        return wrapper


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class CodecSchema(Schema):
    """
    Bidirectional conversion between two schemas.

    Decoding (parse) validates against ``input_schema``, applies ``decoder``
    and validates the result against ``output_schema``. Encoding runs the
    same path in reverse with ``encoder``. A codec without an encoder is
    one-way and raises EncodeError when encoded.
    """

    input_schema: Schema
    output_schema: Schema
    decoder: Callable[[Any], Any]
    encoder: Callable[[Any], Any] | None = None

    def __post_init__(self):
        if not callable(self.decoder):
            raise SchemaDefinitionError("codec() requires a callable decode function")
        if self.encoder is not None and not callable(self.encoder):
            raise SchemaDefinitionError("codec() encode must be callable")

    @property
    def is_reversible(self) -> bool:
        return self.encoder is not None

    def _children(self) -> Iterable[Schema]:
        return (self.input_schema, self.output_schema)

    def _has_async_hooks(self) -> bool:
        # An async encoder only matters when encoding; run_sync reports it then
        if is_async_callable(self.decoder):
            return True
        return Schema._has_async_hooks(self)

    def _accepts_missing(self) -> bool:
        return self.input_schema._accepts_missing()

    def _parse(self, payload: Payload, ctx: ParseContext):
        if ctx.forward:
            first, convert, second = self.input_schema, self.decoder, self.output_schema
        else:
            if self.encoder is None:
                raise EncodeError("Codec has no encode function")
            first, convert, second = self.output_schema, self.encoder, self.input_schema

        payload = yield from first._run(payload, ctx)
        if payload.issues:
            return payload
        try:
            payload.value = yield from resolve(convert(payload.value))
        except (ValueError, OverflowError, OSError) as e:
            payload.issues.append(
                ctx.issue(
                    IssueCode.CUSTOM,
                    payload.value,
                    self.message,
                    details={"direction": "decode" if ctx.forward else "encode"},
                    fallback=str(e) or "Invalid input",
                )
            )
            payload.aborted = True
            return payload
        return (yield from second._run(payload, ctx))
