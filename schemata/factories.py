"""
Factory functions for schemata.

Provides the construction API: functions returning Schema instances, plus
to_schema() which converts shorthand (types, dicts, lists, literals) into
schemas.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from pydantic import BaseModel

from .composites import (
    ArraySchema,
    DiscriminatedUnionSchema,
    IntersectionSchema,
    MapSchema,
    ObjectSchema,
    RecordSchema,
    SetSchema,
    TupleSchema,
    UnionSchema,
    UnknownKeys,
)
from .context import MessageLike
from .core import LazySchema, OptionalSchema, PipeSchema, Schema
from .functions import CodecSchema, FunctionSchema
from .issues import SchemaDefinitionError
from .primitives import (
    AnySchema,
    BooleanSchema,
    CustomSchema,
    DateSchema,
    DateTimeSchema,
    EnumSchema,
    InstanceOfSchema,
    IntegerSchema,
    LiteralSchema,
    NanSchema,
    NeverSchema,
    NoneSchema,
    NumberSchema,
    StringBoolSchema,
    StringSchema,
    UndefinedSchema,
    UnknownSchema,
)

Coerce = bool | Callable[[Any], Any] | None


def _coerce_flag(coerce: Coerce) -> Coerce:
    if coerce is None or coerce is False:
        return None
    if coerce is True or callable(coerce):
        return coerce
    raise SchemaDefinitionError("coerce must be a bool or a callable")


# =============================================================================
# Primitives
# =============================================================================


def string(*, coerce: Coerce = None, message: MessageLike = None) -> StringSchema:
    """
    String schema.

    Usage:
        string().min(3).max(20)
        string().email()
        string(coerce=True)   # str(value) before checking
    """
    return StringSchema(coerce=_coerce_flag(coerce), message=message)


def number(*, coerce: Coerce = None, message: MessageLike = None) -> NumberSchema:
    """Finite int or float (never bool)."""
    return NumberSchema(coerce=_coerce_flag(coerce), message=message)


def integer(*, coerce: Coerce = None, message: MessageLike = None) -> IntegerSchema:
    return IntegerSchema(coerce=_coerce_flag(coerce), message=message)


def boolean(*, coerce: Coerce = None, message: MessageLike = None) -> BooleanSchema:
    return BooleanSchema(coerce=_coerce_flag(coerce), message=message)


def stringbool(
    *,
    truthy: Iterable[str] | None = None,
    falsy: Iterable[str] | None = None,
    case_sensitive: bool = False,
    message: MessageLike = None,
) -> StringBoolSchema:
    """
    Parse flag-like strings to bool.

    Usage:
        stringbool().parse("yes")   # True
        stringbool().parse("off")   # False
    """
    options: dict[str, Any] = {"case_sensitive": case_sensitive, "message": message}
    if truthy is not None:
        options["truthy"] = tuple(truthy)
    if falsy is not None:
        options["falsy"] = tuple(falsy)
    if not case_sensitive:
        for key in ("truthy", "falsy"):
            if key in options:
                options[key] = tuple(v.lower() for v in options[key])
    return StringBoolSchema(**options)


def nan(*, message: MessageLike = None) -> NanSchema:
    return NanSchema(message=message)


def date_(*, coerce: Coerce = None, message: MessageLike = None) -> DateSchema:
    return DateSchema(coerce=_coerce_flag(coerce), message=message)


def datetime_(*, coerce: Coerce = None, message: MessageLike = None) -> DateTimeSchema:
    return DateTimeSchema(coerce=_coerce_flag(coerce), message=message)


def none(*, message: MessageLike = None) -> NoneSchema:
    """Accepts only None."""
    return NoneSchema(message=message)


def undefined(*, message: MessageLike = None) -> UndefinedSchema:
    """Accepts only an absent value (MISSING)."""
    return UndefinedSchema(message=message)


def any_() -> AnySchema:
    return AnySchema()


def unknown() -> UnknownSchema:
    return UnknownSchema()


def never(*, message: MessageLike = None) -> NeverSchema:
    return NeverSchema(message=message)


def literal(*values: Any, message: MessageLike = None) -> LiteralSchema:
    """
    Exact value(s).

    Usage:
        literal("admin")
        literal(1, 2, 3)
    """
    return LiteralSchema(values=values, message=message)


def enum_(values: Iterable[Any] | type[Enum], *, message: MessageLike = None) -> EnumSchema:
    """
    One of a fixed set of values.

    Usage:
        enum_(["draft", "published"])
        enum_(Color)   # accepts Color members or their values, outputs members
    """
    if isinstance(values, type) and issubclass(values, Enum):
        return EnumSchema(
            entries=tuple(member.value for member in values),
            enum_class=values,
            message=message,
        )
    if isinstance(values, (str, bytes)):
        raise SchemaDefinitionError("enum_() takes an iterable of values, not a string")
    return EnumSchema(entries=tuple(values), message=message)


def custom(
    predicate: Callable[[Any], Any] | None = None, message: MessageLike = None
) -> CustomSchema:
    """
    Schema backed by an arbitrary predicate.

    Usage:
        custom(lambda x: isinstance(x, Decimal), "Must be a Decimal")
    """
    if predicate is not None and not callable(predicate):
        raise SchemaDefinitionError("custom() predicate must be callable")
    return CustomSchema(predicate=predicate, message=message)


def instance_of(cls: type, *, message: MessageLike = None) -> InstanceOfSchema:
    if not isinstance(cls, type):
        raise SchemaDefinitionError("instance_of() requires a class")
    return InstanceOfSchema(cls=cls, message=message)


# =============================================================================
# Composites
# =============================================================================


def object_(shape: Mapping[str, Any] | None = None, *, message: MessageLike = None) -> ObjectSchema:
    """
    Object schema; unknown keys are stripped.

    Usage:
        object_({"username": string(), "xp": number()})
        object_({"name": str, "tags": [str]})   # shorthand values
    """
    fields = {key: to_schema(value) for key, value in (shape or {}).items()}
    return ObjectSchema(shape=fields, message=message)


def strict_object(shape: Mapping[str, Any] | None = None, *, message: MessageLike = None) -> ObjectSchema:
    """Object schema reporting every unknown key."""
    return object_(shape, message=message).strict()


def loose_object(shape: Mapping[str, Any] | None = None, *, message: MessageLike = None) -> ObjectSchema:
    """Object schema keeping unknown keys unchecked."""
    return object_(shape, message=message).passthrough()


def array(element: Any, *, message: MessageLike = None) -> ArraySchema:
    return ArraySchema(element=to_schema(element), message=message)


def tuple_(items: Iterable[Any], rest: Any = None, *, message: MessageLike = None) -> TupleSchema:
    """
    Fixed-position sequence.

    Usage:
        tuple_([string(), number()])
        tuple_([string()], rest=number())   # then any number of numbers
    """
    return TupleSchema(
        items=tuple(to_schema(item) for item in items),
        rest=to_schema(rest) if rest is not None else None,
        message=message,
    )


def set_(element: Any, *, message: MessageLike = None) -> SetSchema:
    return SetSchema(element=to_schema(element), message=message)


def record(key: Any, value: Any, *, message: MessageLike = None) -> RecordSchema:
    """
    Dict with validated keys and values.

    With an enum or literal key schema, every listed key is required.
    """
    return RecordSchema(key_schema=to_schema(key), value_schema=to_schema(value), message=message)


def partial_record(key: Any, value: Any, *, message: MessageLike = None) -> RecordSchema:
    """Like record(), but enum or literal keys may be left out."""
    return RecordSchema(
        key_schema=to_schema(key),
        value_schema=to_schema(value),
        exhaustive=False,
        message=message,
    )


def map_(key: Any, value: Any, *, message: MessageLike = None) -> MapSchema:
    """Dict with arbitrary hashable keys."""
    return MapSchema(key_schema=to_schema(key), value_schema=to_schema(value), message=message)


def union(options: Iterable[Any], *, message: MessageLike = None) -> UnionSchema:
    """
    First matching option wins.

    Usage:
        union([string(), number()])
    """
    return UnionSchema(options=tuple(to_schema(option) for option in options), message=message)


def discriminated_union(
    discriminator: str, options: Iterable[Any], *, message: MessageLike = None
) -> DiscriminatedUnionSchema:
    """
    Union dispatched on the literal value at one key.

    Usage:
        discriminated_union("type", [
            object_({"type": literal("circle"), "radius": number()}),
            object_({"type": literal("square"), "side": number()}),
        ])
    """
    return DiscriminatedUnionSchema(
        discriminator=discriminator,
        options=tuple(to_schema(option) for option in options),
        message=message,
    )


def intersection(left: Any, right: Any, *, message: MessageLike = None) -> IntersectionSchema:
    return IntersectionSchema(left=to_schema(left), right=to_schema(right), message=message)


# =============================================================================
# Functions, codecs, wrappers
# =============================================================================


def function(args: Iterable[Any] | TupleSchema | None = None, returns: Any = None) -> FunctionSchema:
    """
    Schema for callables; see FunctionSchema.

    Usage:
        greet = function(args=[string()], returns=string()).implement(
            lambda name: f"Hello {name}"
        )
    """
    if args is not None and not isinstance(args, TupleSchema):
        args = tuple_(args)
    return FunctionSchema(
        args_schema=args,
        returns_schema=to_schema(returns) if returns is not None else None,
    )


def codec(
    input: Any,
    output: Any,
    *,
    decode: Callable[[Any], Any],
    encode: Callable[[Any], Any] | None = None,
) -> CodecSchema:
    """
    Bidirectional conversion between two schemas.

    Usage:
        to_int = codec(
            string().regex(r"^-?\\d+$"),
            integer(),
            decode=int,
            encode=str,
        )
        to_int.decode("42")   # 42
        to_int.encode(42)     # "42"
    """
    return CodecSchema(
        input_schema=to_schema(input),
        output_schema=to_schema(output),
        decoder=decode,
        encoder=encode,
    )


def lazy(getter: Callable[[], Schema]) -> LazySchema:
    if not callable(getter):
        raise SchemaDefinitionError("lazy() requires a callable returning a schema")
    return LazySchema(getter=getter)


def pipe(source: Any, target: Any) -> PipeSchema:
    return PipeSchema(source=to_schema(source), target=to_schema(target))


def optional(schema: Any) -> OptionalSchema:
    return to_schema(schema).optional()


def nullable(schema: Any) -> Schema:
    return to_schema(schema).nullable()


def nullish(schema: Any) -> OptionalSchema:
    return to_schema(schema).nullish()


# =============================================================================
# Shorthand
# =============================================================================

_TYPE_SCHEMAS: dict[type, Callable[[], Schema]] = {
    bool: boolean,
    int: integer,
    float: number,
    str: string,
    date: date_,
    datetime: datetime_,
    dict: lambda: record(string(), unknown()),
    list: lambda: array(unknown()),
    set: lambda: set_(unknown()),
}


def to_schema(value: Any) -> Schema:
    """
    Coerce a value to a schema.

    Conversion rules:
        Schema -> pass through
        None -> none()
        bool/int/float/str/date/datetime -> the matching primitive
        dict/list/set -> record/array/set of unknown()
        Enum subclass -> enum_()
        pydantic model class -> model_schema()
        other type -> instance_of()
        dict -> object_() with recursive conversion
        list -> array() of list[0]; several items are OR-ed into a union
        tuple -> tuple_()
        str/int/float/bool value -> literal()
        Callable -> custom(predicate)
    """
    if isinstance(value, Schema):
        return value

    if value is None:
        return none()

    if isinstance(value, type):
        if value in _TYPE_SCHEMAS:
            return _TYPE_SCHEMAS[value]()
        if issubclass(value, Enum):
            return enum_(value)
        if issubclass(value, BaseModel):
            from .schema import model_schema

            return model_schema(value)
        return instance_of(value)

    if isinstance(value, dict):
        return object_(value)

    if isinstance(value, list):
        if len(value) == 0:
            raise SchemaDefinitionError("Empty list cannot be converted to a schema")
        if len(value) == 1:
            return array(value[0])
        return ArraySchema(element=union(value))

    if isinstance(value, tuple):
        return tuple_(value)

    if isinstance(value, (str, int, float, bool)):
        return literal(value)

    if callable(value):
        return custom(value)

    raise TypeError(f"Cannot convert {type(value).__name__} to schema")


# Unknown-key policies, re-exported for callers building ObjectSchema directly
STRIP = UnknownKeys.STRIP
STRICT = UnknownKeys.STRICT
PASSTHROUGH = UnknownKeys.PASSTHROUGH
