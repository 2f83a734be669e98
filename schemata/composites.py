"""
Composite schema nodes: objects, arrays, tuples, records, maps, sets,
unions, discriminated unions and intersections.

Independent children (object fields, array items, record entries) are
requested from the engine in one Gather so async parses can run them
concurrently; results always come back in declaration order.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping

from .checks import max_size, min_size
from .context import MessageLike, ParseContext
from .core import OptionalSchema, Schema, WrapperSchema
from .engine import Gather, Payload
from .issues import IssueCode, SchemaDefinitionError, prefix_issues
from .primitives import EnumSchema, LiteralSchema, literal_key
from .types import MISSING


def _sequence_like(original: Any, items: list[Any]) -> Any:
    return tuple(items) if isinstance(original, tuple) else items


# =============================================================================
# Objects
# =============================================================================


class UnknownKeys(str, Enum):
    STRIP = "strip"
    STRICT = "strict"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class ObjectSchema(Schema):
    """
    Validator for dict structures with per-key schemas.

    Absent keys are validated as MISSING, so only optional (or defaulted)
    fields may be left out. Unknown keys are stripped by default.
    """

    shape: Mapping[str, Schema] = field(default_factory=dict)
    unknown_keys: UnknownKeys = UnknownKeys.STRIP
    catchall_schema: Schema | None = None

    def _children(self) -> Iterable[Schema]:
        children = list(self.shape.values())
        if self.catchall_schema is not None:
            children.append(self.catchall_schema)
        return children

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        if not isinstance(payload.value, Mapping):
            return self._invalid_type(payload, ctx, "object")
        return self._parse_fields(payload, ctx)

    def _parse_fields(self, payload: Payload, ctx: ParseContext):
        value = payload.value
        keys = list(self.shape)
        extra = [key for key in value if key not in self.shape]

        tasks = [self.shape[key]._run(Payload(value.get(key, MISSING)), ctx) for key in keys]
        if self.catchall_schema is not None:
            tasks += [self.catchall_schema._run(Payload(value[key]), ctx) for key in extra]
            keys += extra
        results = yield Gather(tuple(tasks))

        output: dict[Any, Any] = {}
        for key, result in zip(keys, results):
            payload.issues.extend(prefix_issues(result.issues, key))
            if result.value is not MISSING:
                output[key] = result.value

        if self.catchall_schema is None and extra:
            if self.unknown_keys is UnknownKeys.STRICT:
                for key in extra:
                    payload.issues.append(
                        ctx.issue(
                            IssueCode.UNRECOGNIZED_KEYS,
                            value[key],
                            path=(key,),
                            details={"keys": (key,)},
                        )
                    )
            elif self.unknown_keys is UnknownKeys.PASSTHROUGH:
                for key in extra:
                    output[key] = value[key]

        payload.value = output
        return payload

    # -------------------------------------------------------------------------
    # Derived objects
    # -------------------------------------------------------------------------

    def _ensure_unrefined(self, operation: str) -> None:
        if self.checks:
            raise SchemaDefinitionError(
                f"{operation}() cannot be used on an object schema with refinements"
            )

    def _ensure_keys(self, keys: Iterable[str], operation: str) -> None:
        unknown = [key for key in keys if key not in self.shape]
        if unknown:
            raise SchemaDefinitionError(f"{operation}(): unknown keys {unknown!r}")

    def extend(self, shape: Mapping[str, Any]) -> ObjectSchema:
        """Return a new object schema with fields added or replaced."""
        from .factories import to_schema

        self._ensure_unrefined("extend")
        merged = dict(self.shape)
        merged.update({key: to_schema(value) for key, value in shape.items()})
        return replace(self, shape=merged)

    def merge(self, other: ObjectSchema) -> ObjectSchema:
        """Extend with another object's fields; its unknown-key policy wins."""
        return replace(
            self.extend(other.shape),
            unknown_keys=other.unknown_keys,
            catchall_schema=other.catchall_schema,
        )

    def pick(self, *keys: str) -> ObjectSchema:
        self._ensure_unrefined("pick")
        self._ensure_keys(keys, "pick")
        return replace(self, shape={k: v for k, v in self.shape.items() if k in keys})

    def omit(self, *keys: str) -> ObjectSchema:
        self._ensure_unrefined("omit")
        self._ensure_keys(keys, "omit")
        return replace(self, shape={k: v for k, v in self.shape.items() if k not in keys})

    def partial(self, *keys: str) -> ObjectSchema:
        """Make the given fields (all fields when none are named) optional."""
        self._ensure_keys(keys, "partial")
        selected = set(keys or self.shape)
        shape = {
            key: (
                value.optional()
                if key in selected and not isinstance(value, OptionalSchema)
                else value
            )
            for key, value in self.shape.items()
        }
        return replace(self, shape=shape)

    def required(self, *keys: str) -> ObjectSchema:
        """Undo optional() on the given fields (all fields when none are named)."""
        self._ensure_keys(keys, "required")
        selected = set(keys or self.shape)
        shape = {}
        for key, value in self.shape.items():
            while key in selected and isinstance(value, OptionalSchema):
                value = value.inner
            shape[key] = value
        return replace(self, shape=shape)

    def keyof(self) -> EnumSchema:
        return EnumSchema(entries=tuple(self.shape))

    def strict(self) -> ObjectSchema:
        return replace(self, unknown_keys=UnknownKeys.STRICT, catchall_schema=None)

    def strip(self) -> ObjectSchema:
        return replace(self, unknown_keys=UnknownKeys.STRIP, catchall_schema=None)

    def passthrough(self) -> ObjectSchema:
        return replace(self, unknown_keys=UnknownKeys.PASSTHROUGH, catchall_schema=None)

    loose = passthrough

    def catchall(self, schema: Any) -> ObjectSchema:
        """Validate unknown keys with ``schema`` instead of stripping them."""
        from .factories import to_schema

        return replace(self, catchall_schema=to_schema(schema))


# =============================================================================
# Sequences
# =============================================================================


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class ArraySchema(Schema):
    """Validator for list (or tuple) structures with item validation."""

    element: Schema

    def _children(self) -> Iterable[Schema]:
        return (self.element,)

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        if not isinstance(payload.value, (list, tuple)):
            return self._invalid_type(payload, ctx, "array")
        return self._parse_items(payload, ctx)

    def _parse_items(self, payload: Payload, ctx: ParseContext):
        value = payload.value
        results = yield Gather(tuple(self.element._run(Payload(item), ctx) for item in value))
        items = []
        for i, result in enumerate(results):
            payload.issues.extend(prefix_issues(result.issues, i))
            items.append(result.value)
        payload.value = _sequence_like(value, items)
        return payload

    def min(self, n: int, message: MessageLike = None) -> ArraySchema:
        return self._with_step(min_size(n, "array", message))

    def max(self, n: int, message: MessageLike = None) -> ArraySchema:
        return self._with_step(max_size(n, "array", message))

    def length(self, n: int, message: MessageLike = None) -> ArraySchema:
        return self.min(n, message).max(n, message)

    def nonempty(self, message: MessageLike = None) -> ArraySchema:
        return self.min(1, message)


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class TupleSchema(Schema):
    """
    Fixed-position sequence.

    Trailing optional items may be left out. Items past the declared ones are
    rejected unless ``rest`` validates them.
    """

    items: tuple[Schema, ...]
    rest: Schema | None = None

    def _children(self) -> Iterable[Schema]:
        return (*self.items, *([self.rest] if self.rest is not None else []))

    @property
    def min_length(self) -> int:
        n = len(self.items)
        while n and self.items[n - 1]._accepts_missing():
            n -= 1
        return n

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        value = payload.value
        if not isinstance(value, (list, tuple)):
            return self._invalid_type(payload, ctx, "array")

        if len(value) < self.min_length:
            payload.issues.append(
                ctx.issue(
                    IssueCode.TOO_SMALL,
                    value,
                    details={"origin": "array", "minimum": self.min_length, "inclusive": True},
                )
            )
            payload.aborted = True
            return payload
        if self.rest is None and len(value) > len(self.items):
            payload.issues.append(
                ctx.issue(
                    IssueCode.TOO_BIG,
                    value,
                    details={"origin": "array", "maximum": len(self.items), "inclusive": True},
                )
            )
            payload.aborted = True
            return payload
        return self._parse_items(payload, ctx)

    def _parse_items(self, payload: Payload, ctx: ParseContext):
        value = payload.value
        tasks = [
            schema._run(Payload(value[i] if i < len(value) else MISSING), ctx)
            for i, schema in enumerate(self.items)
        ]
        if self.rest is not None:
            tasks += [self.rest._run(Payload(item), ctx) for item in value[len(self.items):]]
        results = yield Gather(tuple(tasks))

        items = []
        for i, result in enumerate(results):
            payload.issues.extend(prefix_issues(result.issues, i))
            items.append(result.value)
        while items and items[-1] is MISSING:
            items.pop()
        payload.value = _sequence_like(value, items)
        return payload


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class SetSchema(Schema):
    """Validator for set and frozenset; the output keeps the input's type."""

    element: Schema

    def _children(self) -> Iterable[Schema]:
        return (self.element,)

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        if not isinstance(payload.value, (set, frozenset)):
            return self._invalid_type(payload, ctx, "set")
        return self._parse_items(payload, ctx)

    def _parse_items(self, payload: Payload, ctx: ParseContext):
        value = payload.value
        results = yield Gather(tuple(self.element._run(Payload(item), ctx) for item in value))
        items = []
        for result in results:
            # Set members have no stable position, so issues keep the set's path
            payload.issues.extend(result.issues)
            items.append(result.value)
        payload.value = frozenset(items) if isinstance(value, frozenset) else set(items)
        return payload

    def min(self, n: int, message: MessageLike = None) -> SetSchema:
        return self._with_step(min_size(n, "set", message))

    def max(self, n: int, message: MessageLike = None) -> SetSchema:
        return self._with_step(max_size(n, "set", message))

    def size(self, n: int, message: MessageLike = None) -> SetSchema:
        return self.min(n, message).max(n, message)

    def nonempty(self, message: MessageLike = None) -> SetSchema:
        return self.min(1, message)


# =============================================================================
# Key/value collections
# =============================================================================


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class RecordSchema(Schema):
    """
    Dict with homogeneous keys and values.

    When the key schema is an enum or literal and ``exhaustive`` is set, every
    listed key must be present.
    """

    key_schema: Schema
    value_schema: Schema
    exhaustive: bool = True

    _origin = "record"
    _expected = "object"

    def _children(self) -> Iterable[Schema]:
        return (self.key_schema, self.value_schema)

    def _expected_keys(self) -> list[tuple[Any, Any]]:
        """(wire key, parsed key) pairs an exhaustive record must contain."""
        if not self.exhaustive:
            return []
        if isinstance(self.key_schema, EnumSchema):
            return list(zip(self.key_schema.entries, self.key_schema.options))
        if isinstance(self.key_schema, LiteralSchema):
            return [(value, value) for value in self.key_schema.values]
        return []

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        if not isinstance(payload.value, Mapping):
            return self._invalid_type(payload, ctx, self._expected)
        return self._parse_entries(payload, ctx)

    def _entry(self, key: Any, value: Any, ctx: ParseContext):
        key_result = yield from self.key_schema._run(Payload(key), ctx)
        value_result = yield from self.value_schema._run(Payload(value), ctx)
        return key_result, value_result

    def _parse_entries(self, payload: Payload, ctx: ParseContext):
        value = payload.value
        keys = list(value)
        results = yield Gather(tuple(self._entry(key, value[key], ctx) for key in keys))

        # Presence is judged on parsed keys; an enum member and its raw value match
        expected = self._expected_keys()
        if expected:
            present = {
                literal_key(key_result.value) for key_result, _ in results if not key_result.issues
            }
            missing = [wire for wire, parsed in expected if literal_key(parsed) not in present]
            if missing:
                extra = yield Gather(tuple(self._entry(key, MISSING, ctx) for key in missing))
                keys += missing
                results = [*results, *extra]

        output: dict[Any, Any] = {}
        for key, (key_result, value_result) in zip(keys, results):
            if key_result.issues:
                payload.issues.append(
                    ctx.issue(
                        IssueCode.INVALID_KEY,
                        key,
                        path=(key,),
                        details={"origin": self._origin, "errors": [tuple(key_result.issues)]},
                    )
                )
                continue
            payload.issues.extend(prefix_issues(value_result.issues, key))
            if value_result.value is not MISSING:
                output[key_result.value] = value_result.value

        payload.value = output
        return payload


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class MapSchema(RecordSchema):
    """Dict with arbitrary hashable keys; never exhaustive."""

    exhaustive: bool = False

    _origin = "map"
    _expected = "map"


# =============================================================================
# Unions and intersections
# =============================================================================


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class UnionSchema(Schema):
    """
    Tries each option in declared order; the first success wins.

    When every option fails, one invalid_union issue is reported with each
    option's issues under ``details["errors"]``.
    """

    options: tuple[Schema, ...]

    def __post_init__(self):
        if not self.options:
            raise SchemaDefinitionError("union() requires at least one option")

    def _children(self) -> Iterable[Schema]:
        return self.options

    def _accepts_missing(self) -> bool:
        return any(option._accepts_missing() for option in self.options)

    def _accepts_none(self) -> bool:
        return any(option._accepts_none() for option in self.options)

    def _parse(self, payload: Payload, ctx: ParseContext):
        errors = []
        for option in self.options:
            result = yield from option._run(Payload(payload.value), ctx)
            if not result.issues:
                payload.value = result.value
                return payload
            errors.append(tuple(result.issues))

        payload.issues.append(
            ctx.issue(IssueCode.INVALID_UNION, payload.value, self.message, details={"errors": errors})
        )
        payload.aborted = True
        return payload


def _discriminator_values(schema: Schema) -> tuple[Any, ...]:
    while isinstance(schema, WrapperSchema):
        schema = schema.inner
    if isinstance(schema, LiteralSchema):
        return schema.values
    if isinstance(schema, EnumSchema):
        return schema.entries
    return ()


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class DiscriminatedUnionSchema(Schema):
    """
    Union of object schemas selected by the literal value at one key.

    The lookup table is built at construction, so dispatch is a single dict
    lookup regardless of how many options there are.
    """

    discriminator: str
    options: tuple[Schema, ...]
    _lookup: dict[Any, Schema] = field(init=False, repr=False)

    def __post_init__(self):
        if not self.options:
            raise SchemaDefinitionError("discriminated_union() requires at least one option")
        lookup: dict[Any, Schema] = {}
        for option in self.options:
            for tag, target in self._option_tags(option):
                key = literal_key(tag)
                if key in lookup:
                    raise SchemaDefinitionError(
                        f"Duplicate discriminator value {tag!r} for key {self.discriminator!r}"
                    )
                lookup[key] = target
        object.__setattr__(self, "_lookup", lookup)

    def _option_tags(self, option: Schema) -> list[tuple[Any, Schema]]:
        if isinstance(option, DiscriminatedUnionSchema):
            if option.discriminator != self.discriminator:
                raise SchemaDefinitionError(
                    "Nested discriminated unions must share the discriminator key"
                )
            return [(key[1], target) for key, target in option._lookup.items()]
        if not isinstance(option, ObjectSchema):
            raise SchemaDefinitionError("discriminated_union() options must be object schemas")
        field_schema = option.shape.get(self.discriminator)
        values = _discriminator_values(field_schema) if field_schema is not None else ()
        if not values:
            raise SchemaDefinitionError(
                f"Option is missing a literal discriminator at key {self.discriminator!r}"
            )
        return [(value, option) for value in values]

    @property
    def discriminator_values(self) -> list[Any]:
        return [key[1] for key in self._lookup]

    def _children(self) -> Iterable[Schema]:
        return self.options

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        value = payload.value
        if not isinstance(value, Mapping):
            return self._invalid_type(payload, ctx, "object")

        tag = value.get(self.discriminator, MISSING)
        if isinstance(tag, Enum):
            tag = tag.value
        try:
            option = self._lookup.get(literal_key(tag))
        except TypeError:
            option = None

        if option is None:
            payload.issues.append(
                ctx.issue(
                    IssueCode.INVALID_UNION,
                    tag,
                    self.message,
                    path=(self.discriminator,),
                    details={
                        "errors": [],
                        "note": "No matching discriminator",
                        "discriminator": self.discriminator,
                        "options": self.discriminator_values,
                    },
                )
            )
            payload.aborted = True
            return payload
        return option._run(payload, ctx)


def _merge_values(a: Any, b: Any) -> tuple[bool, Any]:
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        merged = dict(a)
        for key, b_value in b.items():
            if key in merged:
                ok, value = _merge_values(merged[key], b_value)
                if not ok:
                    return False, None
                merged[key] = value
            else:
                merged[key] = b_value
        return True, merged
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if len(a) != len(b):
            return False, None
        items = []
        for a_item, b_item in zip(a, b):
            ok, value = _merge_values(a_item, b_item)
            if not ok:
                return False, None
            items.append(value)
        return True, _sequence_like(a, items)
    if a is b or a == b:
        return True, a
    return False, None


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class IntersectionSchema(Schema):
    """Input must satisfy both sides; their outputs are merged."""

    left: Schema
    right: Schema

    def _children(self) -> Iterable[Schema]:
        return (self.left, self.right)

    def _accepts_missing(self) -> bool:
        return self.left._accepts_missing() and self.right._accepts_missing()

    def _parse(self, payload: Payload, ctx: ParseContext):
        left, right = yield Gather(
            (
                self.left._run(Payload(payload.value), ctx),
                self.right._run(Payload(payload.value), ctx),
            )
        )
        payload.issues.extend(left.issues)
        payload.issues.extend(right.issues)
        if payload.issues:
            return payload

        ok, merged = _merge_values(left.value, right.value)
        if not ok:
            payload.issues.append(
                ctx.issue(IssueCode.INVALID_INTERSECTION_TYPES, payload.value, self.message)
            )
            payload.aborted = True
            return payload
        payload.value = merged
        return payload
