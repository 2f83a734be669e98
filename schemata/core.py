"""
Core schema classes for schemata.

Provides the Schema base dataclass with functional composition, and the
wrapper nodes (optional, nullable, default, prefault, catch, readonly, pipe,
lazy) that every schema can be wrapped in.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping

import structlog

from .checks import (
    Overwrite,
    Refinement,
    Step,
    SuperRefinement,
    Transform,
    is_async_callable,
)
from .context import ErrorMap, MessageLike, ParseContext
from .engine import Await, Payload, resolve, run_async, run_sync
from .issues import AsyncParseError, EncodeError, IssueCode, SchemaError, describe_type
from .types import MISSING, Err, Ok

logger = structlog.get_logger(__name__)

Result = Ok[Any] | Err[SchemaError]


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class Schema:
    """
    Immutable schema node.

    The fundamental building block. Subclasses implement ``_parse`` for their
    base type check; the shared pipeline adds coercion before it and the
    ordered check steps after it. Every modifier returns a new node.
    """

    checks: tuple[Step, ...] = ()
    coerce: bool | Callable[[Any], Any] | None = None
    message: MessageLike = None
    description: str | None = None
    metadata: Mapping[str, Any] | None = None
    brand_tag: str | None = None

    # -------------------------------------------------------------------------
    # Engine hooks
    # -------------------------------------------------------------------------

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        """Check the base type. Returns the payload or a generator producing it."""
        raise NotImplementedError

    def _children(self) -> Iterable[Schema]:
        return ()

    def _coerce_value(self, value: Any) -> Any:
        return value

    def _accepts_missing(self) -> bool:
        return False

    def _accepts_none(self) -> bool:
        return False

    def _has_async_hooks(self) -> bool:
        if callable(self.coerce) and is_async_callable(self.coerce):
            return True
        return any(step.is_async for step in self.checks)

    def _run(self, payload: Payload, ctx: ParseContext):
        if not ctx.forward and any(isinstance(step, Transform) for step in self.checks):
            raise EncodeError("Encountered a one-way transform while encoding")

        if self.coerce and ctx.forward and payload.value is not MISSING:
            payload.value = yield from self._apply_coercion(payload.value)

        payload = yield from resolve(self._parse(payload, ctx))

        if self.checks and not payload.issues:
            for step in self.checks:
                if payload.aborted or (ctx.abort_early and payload.issues):
                    break
                if isinstance(step, Transform) and payload.issues:
                    break
                yield from resolve(step.apply(payload, ctx))

        return payload

    def _apply_coercion(self, value: Any):
        convert = self._coerce_value if self.coerce is True else self.coerce
        try:
            result = convert(value)
            if inspect.isawaitable(result):
                result = yield Await(result)
        except Exception as e:
            logger.debug("coercion_failed", schema=type(self).__name__, error=str(e))
            return value
        return result

    def _invalid_type(self, payload: Payload, ctx: ParseContext, expected: str) -> Payload:
        payload.issues.append(
            ctx.issue(
                IssueCode.INVALID_TYPE,
                payload.value,
                self.message,
                expected=expected,
                received=describe_type(payload.value),
            )
        )
        payload.aborted = True
        return payload

    def _with_step(self, step: Step) -> Schema:
        return replace(self, checks=(*self.checks, step))

    @property
    def is_async(self) -> bool:
        """True if any node reachable from this one has an async step."""
        seen: set[int] = set()
        stack: list[Schema] = [self]
        while stack:
            node = stack.pop()
            if id(node) in seen:
                continue
            seen.add(id(node))
            if node._has_async_hooks():
                return True
            stack.extend(node._children())
        return False

    # -------------------------------------------------------------------------
    # Validation API
    # -------------------------------------------------------------------------

    def safe_parse(
        self,
        value: Any = MISSING,
        *,
        error_map: ErrorMap | None = None,
        report_input: bool | None = None,
        abort_early: bool | None = None,
    ) -> Result:
        """
        Validate a value without raising.

        Returns:
            Ok(parsed value) if validation passes
            Err(SchemaError) carrying every issue if it fails
        """
        ctx = ParseContext.create(
            error_map=error_map, report_input=report_input, abort_early=abort_early
        )
        return self._safe_run(value, ctx)

    def parse(self, value: Any = MISSING, **options: Any) -> Any:
        """
        Validate a value, returning the parsed output.

        Raises:
            SchemaError: If validation fails
        """
        result = self.safe_parse(value, **options)
        if isinstance(result, Err):
            raise result.error
        return result.value

    async def safe_parse_async(
        self,
        value: Any = MISSING,
        *,
        error_map: ErrorMap | None = None,
        report_input: bool | None = None,
        abort_early: bool | None = None,
    ) -> Result:
        ctx = ParseContext.create(
            error_map=error_map, report_input=report_input, abort_early=abort_early
        )
        return await self._safe_run_async(value, ctx)

    async def parse_async(self, value: Any = MISSING, **options: Any) -> Any:
        result = await self.safe_parse_async(value, **options)
        if isinstance(result, Err):
            raise result.error
        return result.value

    def safe_encode(self, value: Any, **options: Any) -> Result:
        """Run the schema backward: codecs encode, pipes run right to left."""
        ctx = ParseContext.create(forward=False, **options)
        return self._safe_run(value, ctx)

    def encode(self, value: Any, **options: Any) -> Any:
        result = self.safe_encode(value, **options)
        if isinstance(result, Err):
            raise result.error
        return result.value

    async def safe_encode_async(self, value: Any, **options: Any) -> Result:
        ctx = ParseContext.create(forward=False, **options)
        return await self._safe_run_async(value, ctx)

    async def encode_async(self, value: Any, **options: Any) -> Any:
        result = await self.safe_encode_async(value, **options)
        if isinstance(result, Err):
            raise result.error
        return result.value

    decode = parse
    safe_decode = safe_parse
    decode_async = parse_async
    safe_decode_async = safe_parse_async

    def _safe_run(self, value: Any, ctx: ParseContext) -> Result:
        if self.is_async:
            logger.debug("sync_parse_on_async_schema", schema=type(self).__name__)
            return Err(AsyncParseError())
        try:
            payload = run_sync(self._run(Payload(value), ctx))
        except AsyncParseError as e:
            return Err(e)
        return self._to_result(payload)

    async def _safe_run_async(self, value: Any, ctx: ParseContext) -> Result:
        payload = await run_async(self._run(Payload(value), ctx))
        return self._to_result(payload)

    def _to_result(self, payload: Payload) -> Result:
        if payload.issues:
            logger.debug(
                "validation_failed",
                schema=type(self).__name__,
                issue_count=len(payload.issues),
            )
            return Err(SchemaError(payload.issues))
        return Ok(payload.value)

    # -------------------------------------------------------------------------
    # Modifiers
    # -------------------------------------------------------------------------

    def optional(self) -> OptionalSchema:
        """Also accept an absent value (MISSING)."""
        return OptionalSchema(inner=self)

    def nullable(self) -> NullableSchema:
        """Also accept None."""
        return NullableSchema(inner=self)

    def nullish(self) -> OptionalSchema:
        """Accept both MISSING and None."""
        return OptionalSchema(inner=NullableSchema(inner=self))

    def default(self, value: Any) -> DefaultSchema:
        """
        Substitute ``value`` for an absent input, skipping validation.

        A callable is called with no arguments each time it is needed.
        """
        return DefaultSchema(inner=self, default_value=value)

    def prefault(self, value: Any) -> PrefaultSchema:
        """Substitute ``value`` for an absent input, then validate it."""
        return PrefaultSchema(inner=self, prefault_value=value)

    def catch(self, value: Any) -> CatchSchema:
        """
        Substitute ``value`` when validation fails, swallowing the issues.

        A callable is called with the swallowed SchemaError.
        """
        return CatchSchema(inner=self, catch_value=value)

    def readonly(self) -> ReadonlySchema:
        """Freeze the output: dicts become mapping proxies, lists tuples, sets frozensets."""
        return ReadonlySchema(inner=self)

    def brand(self, tag: str) -> Schema:
        """Attach a nominal tag. Has no runtime effect."""
        return replace(self, brand_tag=tag)

    def describe(self, description: str) -> Schema:
        return replace(self, description=description)

    def meta(self, **metadata: Any) -> Schema:
        return replace(self, metadata={**(self.metadata or {}), **metadata})

    def with_message(self, message: MessageLike) -> Schema:
        """Return a new schema with a custom message for its type issue."""
        return replace(self, message=message)

    def refine(
        self,
        fn: Callable[[Any], Any],
        message: MessageLike = None,
        *,
        path: tuple[Any, ...] = (),
        abort: bool = False,
        params: Mapping[str, Any] | None = None,
    ) -> Schema:
        """
        Add a predicate run after base validation.

        Usage:
            number().refine(lambda x: x % 2 == 0, "Must be even")
            object_({...}).refine(check, path=("confirm",), abort=True)
        """
        return self._with_step(
            Refinement(fn=fn, message=message, path=tuple(path), abort=abort, params=params)
        )

    def super_refine(self, fn: Callable[[Any, Any], Any]) -> Schema:
        """Add a function that reports issues through ctx.add_issue()."""
        return self._with_step(SuperRefinement(fn=fn))

    def transform(self, fn: Callable[[Any], Any]) -> Schema:
        """Map the value once validation passes. The output is not re-validated."""
        return self._with_step(Transform(fn=fn))

    def overwrite(self, fn: Callable[[Any], Any]) -> Schema:
        return self._with_step(Overwrite(fn=fn))

    def pipe(self, target: Schema) -> PipeSchema:
        """Feed this schema's output into ``target``."""
        return PipeSchema(source=self, target=target)

    def array(self) -> Schema:
        from .composites import ArraySchema

        return ArraySchema(element=self)

    def or_(self, *others: Any) -> Schema:
        from .composites import UnionSchema
        from .factories import to_schema

        return UnionSchema(options=(self, *(to_schema(o) for o in others)))

    def and_(self, other: Any) -> Schema:
        from .composites import IntersectionSchema
        from .factories import to_schema

        return IntersectionSchema(left=self, right=to_schema(other))

    def __or__(self, other: Any) -> Schema:
        return self.or_(other)

    def __ror__(self, other: Any) -> Schema:
        from .factories import to_schema

        return to_schema(other).or_(self)

    def __and__(self, other: Any) -> Schema:
        return self.and_(other)

    def __rand__(self, other: Any) -> Schema:
        from .factories import to_schema

        return to_schema(other).and_(self)

    def is_optional(self) -> bool:
        """True if an absent value is accepted."""
        return self._accepts_missing()

    def is_nullable(self) -> bool:
        return self._accepts_none()


# =============================================================================
# Wrapper nodes
# =============================================================================


def _materialize(value: Any) -> Any:
    return value() if callable(value) else value


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType(value)
    if isinstance(value, list):
        return tuple(value)
    if isinstance(value, set):
        return frozenset(value)
    return value


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class WrapperSchema(Schema):
    """Base for nodes that wrap exactly one inner schema."""

    inner: Schema

    def _children(self) -> Iterable[Schema]:
        return (self.inner,)

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        return self.inner._run(payload, ctx)

    def _accepts_missing(self) -> bool:
        return self.inner._accepts_missing()

    def _accepts_none(self) -> bool:
        return self.inner._accepts_none()

    def unwrap(self) -> Schema:
        return self.inner


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class OptionalSchema(WrapperSchema):
    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        if payload.value is MISSING:
            return payload
        return self.inner._run(payload, ctx)

    def _accepts_missing(self) -> bool:
        return True


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class NullableSchema(WrapperSchema):
    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        if payload.value is None:
            return payload
        return self.inner._run(payload, ctx)

    def _accepts_none(self) -> bool:
        return True


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class DefaultSchema(WrapperSchema):
    default_value: Any = None

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        if payload.value is MISSING and ctx.forward:
            payload.value = _materialize(self.default_value)
            return payload
        return self.inner._run(payload, ctx)

    def _accepts_missing(self) -> bool:
        return True


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class PrefaultSchema(WrapperSchema):
    prefault_value: Any = None

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        if payload.value is MISSING and ctx.forward:
            payload.value = _materialize(self.prefault_value)
        return self.inner._run(payload, ctx)

    def _accepts_missing(self) -> bool:
        return True


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class CatchSchema(WrapperSchema):
    catch_value: Any = None

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        if not ctx.forward:
            return self.inner._run(payload, ctx)
        return self._parse_or_catch(payload, ctx)

    def _parse_or_catch(self, payload: Payload, ctx: ParseContext):
        result = yield from self.inner._run(Payload(payload.value), ctx)
        if result.issues:
            fallback = self.catch_value
            payload.value = (
                fallback(SchemaError(result.issues)) if callable(fallback) else fallback
            )
        else:
            payload.value = result.value
        return payload

    def _accepts_missing(self) -> bool:
        return True


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class ReadonlySchema(WrapperSchema):
    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        return self._parse_and_freeze(payload, ctx)

    def _parse_and_freeze(self, payload: Payload, ctx: ParseContext):
        payload = yield from self.inner._run(payload, ctx)
        if not payload.issues:
            payload.value = _freeze(payload.value)
        return payload


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class PipeSchema(Schema):
    """Validate with ``source``, then feed its output into ``target``."""

    source: Schema
    target: Schema

    def _children(self) -> Iterable[Schema]:
        return (self.source, self.target)

    def _parse(self, payload: Payload, ctx: ParseContext):
        first, second = (
            (self.source, self.target) if ctx.forward else (self.target, self.source)
        )
        payload = yield from first._run(payload, ctx)
        if payload.issues:
            return payload
        return (yield from second._run(payload, ctx))

    def _accepts_missing(self) -> bool:
        return self.source._accepts_missing()

    def _accepts_none(self) -> bool:
        return self.source._accepts_none()


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class LazySchema(Schema):
    """
    Defers schema lookup to parse time, for recursive structures.

    Usage:
        category = object_({
            "name": string(),
            "children": lazy(lambda: category).array(),
        })
    """

    getter: Callable[[], Schema]

    @property
    def schema(self) -> Schema:
        return self.getter()

    def _children(self) -> Iterable[Schema]:
        return (self.schema,)

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        return self.schema._run(payload, ctx)

    def _accepts_missing(self) -> bool:
        return self.schema._accepts_missing()

    def _accepts_none(self) -> bool:
        return self.schema._accepts_none()
