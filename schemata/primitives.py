"""
Primitive schema nodes: scalar types, literals, enums and custom predicates.

Each node's built-in coercion (``coerce=True``) lives in ``_coerce_value``.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Callable, Iterable

from .checks import (
    Overwrite,
    is_async_callable,
    lower_bound,
    max_size,
    min_size,
    multiple_of,
    string_format,
    upper_bound,
)
from .context import MessageLike, ParseContext
from .core import Schema
from .engine import Payload, resolve
from .formats import FORMATS
from .issues import IssueCode, SchemaDefinitionError, describe_type
from .types import MISSING


def same_literal(a: Any, b: Any) -> bool:
    """Equality that keeps booleans apart from the integers 0 and 1."""
    return isinstance(a, bool) == isinstance(b, bool) and a == b


def literal_key(value: Any) -> tuple[bool, Any]:
    """Hashable lookup key consistent with same_literal()."""
    return (isinstance(value, bool), value)


# =============================================================================
# Strings
# =============================================================================


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class StringSchema(Schema):
    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        if not isinstance(payload.value, str):
            return self._invalid_type(payload, ctx, "string")
        return payload

    def _coerce_value(self, value: Any) -> Any:
        return str(value)

    def min(self, n: int, message: MessageLike = None) -> StringSchema:
        return self._with_step(min_size(n, "string", message))

    def max(self, n: int, message: MessageLike = None) -> StringSchema:
        return self._with_step(max_size(n, "string", message))

    def length(self, n: int, message: MessageLike = None) -> StringSchema:
        return self.min(n, message).max(n, message)

    def nonempty(self, message: MessageLike = None) -> StringSchema:
        return self.min(1, message)

    def regex(self, pattern: str | re.Pattern[str], message: MessageLike = None) -> StringSchema:
        compiled = re.compile(pattern)
        return self._with_step(
            string_format(
                "regex",
                lambda x: compiled.search(x) is not None,
                message,
                pattern=compiled.pattern,
            )
        )

    def _format(self, name: str, message: MessageLike) -> StringSchema:
        return self._with_step(string_format(name, FORMATS[name], message))

    def email(self, message: MessageLike = None) -> StringSchema:
        return self._format("email", message)

    def url(self, message: MessageLike = None) -> StringSchema:
        return self._format("url", message)

    def uuid(self, message: MessageLike = None) -> StringSchema:
        return self._format("uuid", message)

    def ipv4(self, message: MessageLike = None) -> StringSchema:
        return self._format("ipv4", message)

    def ipv6(self, message: MessageLike = None) -> StringSchema:
        return self._format("ipv6", message)

    def iso_datetime(self, message: MessageLike = None) -> StringSchema:
        return self._format("iso_datetime", message)

    def iso_date(self, message: MessageLike = None) -> StringSchema:
        return self._format("iso_date", message)

    def iso_time(self, message: MessageLike = None) -> StringSchema:
        return self._format("iso_time", message)

    def base64(self, message: MessageLike = None) -> StringSchema:
        return self._format("base64", message)

    def starts_with(self, prefix: str, message: MessageLike = None) -> StringSchema:
        return self._with_step(
            string_format("starts_with", lambda x: x.startswith(prefix), message, prefix=prefix)
        )

    def ends_with(self, suffix: str, message: MessageLike = None) -> StringSchema:
        return self._with_step(
            string_format("ends_with", lambda x: x.endswith(suffix), message, suffix=suffix)
        )

    def includes(self, needle: str, message: MessageLike = None) -> StringSchema:
        return self._with_step(
            string_format("includes", lambda x: needle in x, message, includes=needle)
        )

    def lowercase(self, message: MessageLike = None) -> StringSchema:
        return self._with_step(string_format("lowercase", lambda x: x == x.lower(), message))

    def uppercase(self, message: MessageLike = None) -> StringSchema:
        return self._with_step(string_format("uppercase", lambda x: x == x.upper(), message))

    def trim(self) -> StringSchema:
        return self._with_step(Overwrite(fn=str.strip, kind="trim"))

    def to_lower(self) -> StringSchema:
        return self._with_step(Overwrite(fn=str.lower, kind="to_lower"))

    def to_upper(self) -> StringSchema:
        return self._with_step(Overwrite(fn=str.upper, kind="to_upper"))


_TRUTHY = ("true", "1", "yes", "on", "y", "enabled")
_FALSY = ("false", "0", "no", "off", "n", "disabled")


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class StringBoolSchema(Schema):
    """
    String to bool conversion for environment-style flags.

    Parses "true"/"yes"/"1"/... to True and "false"/"no"/"0"/... to False.
    Encoding turns a bool back into the first truthy or falsy string.
    """

    truthy: tuple[str, ...] = _TRUTHY
    falsy: tuple[str, ...] = _FALSY
    case_sensitive: bool = False

    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        value = payload.value
        if not ctx.forward:
            if not isinstance(value, bool):
                return self._invalid_type(payload, ctx, "boolean")
            payload.value = self.truthy[0] if value else self.falsy[0]
            return payload

        if not isinstance(value, str):
            return self._invalid_type(payload, ctx, "string")
        text = value if self.case_sensitive else value.lower()
        if text in self.truthy:
            payload.value = True
        elif text in self.falsy:
            payload.value = False
        else:
            payload.issues.append(
                ctx.issue(
                    IssueCode.INVALID_LITERAL,
                    value,
                    self.message,
                    details={"values": (*self.truthy, *self.falsy)},
                )
            )
            payload.aborted = True
        return payload


# =============================================================================
# Numbers
# =============================================================================


def parse_number(value: Any) -> Any:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return float(text)
    return float(value)


def _to_integer(value: Any) -> int:
    number = parse_number(value)
    if isinstance(number, float):
        if not number.is_integer():
            raise ValueError(f"{value!r} is not integral")
        return int(number)
    return number


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class NumberSchema(Schema):
    """
    Finite int or float. Booleans, NaN and infinities are rejected.
    """

    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        value = payload.value
        if (
            isinstance(value, bool)
            or not isinstance(value, (int, float))
            or (isinstance(value, float) and not math.isfinite(value))
        ):
            return self._invalid_type(payload, ctx, "number")
        return payload

    def _coerce_value(self, value: Any) -> Any:
        return parse_number(value)

    def gt(self, value: Any, message: MessageLike = None) -> NumberSchema:
        return self._with_step(lower_bound(value, "number", inclusive=False, message=message))

    def gte(self, value: Any, message: MessageLike = None) -> NumberSchema:
        return self._with_step(lower_bound(value, "number", message=message))

    def lt(self, value: Any, message: MessageLike = None) -> NumberSchema:
        return self._with_step(upper_bound(value, "number", inclusive=False, message=message))

    def lte(self, value: Any, message: MessageLike = None) -> NumberSchema:
        return self._with_step(upper_bound(value, "number", message=message))

    min = gte
    max = lte

    def positive(self, message: MessageLike = None) -> NumberSchema:
        return self.gt(0, message)

    def nonnegative(self, message: MessageLike = None) -> NumberSchema:
        return self.gte(0, message)

    def negative(self, message: MessageLike = None) -> NumberSchema:
        return self.lt(0, message)

    def nonpositive(self, message: MessageLike = None) -> NumberSchema:
        return self.lte(0, message)

    def multiple_of(self, divisor: Any, message: MessageLike = None) -> NumberSchema:
        return self._with_step(multiple_of(divisor, message))

    step = multiple_of


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class IntegerSchema(NumberSchema):
    """int only; floats are rejected even when integral."""

    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        value = payload.value
        if isinstance(value, bool) or not isinstance(value, int):
            return self._invalid_type(payload, ctx, "integer")
        return payload

    def _coerce_value(self, value: Any) -> Any:
        return _to_integer(value)


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class NanSchema(Schema):
    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        value = payload.value
        if not (isinstance(value, float) and math.isnan(value)):
            return self._invalid_type(payload, ctx, "nan")
        return payload


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class BooleanSchema(Schema):
    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        if not isinstance(payload.value, bool):
            return self._invalid_type(payload, ctx, "boolean")
        return payload

    def _coerce_value(self, value: Any) -> Any:
        return bool(value)


# =============================================================================
# Dates
# =============================================================================


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class DateSchema(Schema):
    """A calendar date. datetime instances are rejected."""

    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        value = payload.value
        if isinstance(value, datetime) or not isinstance(value, date):
            return self._invalid_type(payload, ctx, "date")
        return payload

    def _coerce_value(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            return date.fromisoformat(value.strip())
        return value

    def min(self, value: date, message: MessageLike = None) -> DateSchema:
        return self._with_step(lower_bound(value, "date", message=message))

    def max(self, value: date, message: MessageLike = None) -> DateSchema:
        return self._with_step(upper_bound(value, "date", message=message))


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class DateTimeSchema(Schema):
    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        if not isinstance(payload.value, datetime):
            return self._invalid_type(payload, ctx, "datetime")
        return payload

    def _coerce_value(self, value: Any) -> Any:
        if isinstance(value, str):
            return datetime.fromisoformat(value.strip())
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return datetime.fromtimestamp(value, tz=timezone.utc)
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time())
        return value

    def min(self, value: datetime, message: MessageLike = None) -> DateTimeSchema:
        return self._with_step(lower_bound(value, "datetime", message=message))

    def max(self, value: datetime, message: MessageLike = None) -> DateTimeSchema:
        return self._with_step(upper_bound(value, "datetime", message=message))


# =============================================================================
# Unit types
# =============================================================================


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class NoneSchema(Schema):
    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        if payload.value is not None:
            return self._invalid_type(payload, ctx, "null")
        return payload

    def _accepts_none(self) -> bool:
        return True


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class UndefinedSchema(Schema):
    """Accepts only an absent value."""

    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        if payload.value is not MISSING:
            return self._invalid_type(payload, ctx, "missing")
        return payload

    def _accepts_missing(self) -> bool:
        return True


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class AnySchema(Schema):
    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        return payload

    def _accepts_missing(self) -> bool:
        return True

    def _accepts_none(self) -> bool:
        return True


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class UnknownSchema(AnySchema):
    pass


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class NeverSchema(Schema):
    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        return self._invalid_type(payload, ctx, "never")


# =============================================================================
# Literals and enums
# =============================================================================


def _invalid_value(
    schema: Schema, payload: Payload, ctx: ParseContext, values: tuple[Any, ...]
) -> Payload:
    payload.issues.append(
        ctx.issue(
            IssueCode.INVALID_LITERAL,
            payload.value,
            schema.message,
            received=describe_type(payload.value),
            details={"values": values},
        )
    )
    payload.aborted = True
    return payload


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class LiteralSchema(Schema):
    values: tuple[Any, ...]

    def __post_init__(self):
        if not self.values:
            raise SchemaDefinitionError("literal() requires at least one value")

    @property
    def value(self) -> Any:
        """The single literal value."""
        if len(self.values) != 1:
            raise AttributeError("literal has more than one value; use .values")
        return self.values[0]

    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        if any(same_literal(v, payload.value) for v in self.values):
            return payload
        return _invalid_value(self, payload, ctx, self.values)

    def _accepts_none(self) -> bool:
        return None in self.values


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class EnumSchema(Schema):
    """
    One of a fixed set of values.

    Built from plain values, or from an Enum class: members and their raw
    values are both accepted, and the output is always the member.
    """

    entries: tuple[Any, ...]
    enum_class: type[Enum] | None = None

    def __post_init__(self):
        if not self.entries:
            raise SchemaDefinitionError("enum_() requires at least one value")

    @property
    def options(self) -> list[Any]:
        if self.enum_class is not None:
            return [self.enum_class(entry) for entry in self.entries]
        return list(self.entries)

    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        value = payload.value
        if self.enum_class is not None and isinstance(value, self.enum_class):
            value = value.value
        for entry in self.entries:
            if same_literal(entry, value):
                payload.value = self.enum_class(entry) if self.enum_class else entry
                return payload
        return _invalid_value(self, payload, ctx, self.entries)

    def _raw(self, values: Iterable[Any]) -> list[Any]:
        raw = [v.value if isinstance(v, Enum) else v for v in values]
        unknown = [v for v in raw if not any(same_literal(v, e) for e in self.entries)]
        if unknown:
            raise SchemaDefinitionError(f"Unknown enum values: {unknown!r}")
        return raw

    def extract(self, *values: Any) -> EnumSchema:
        """Narrow to the given values."""
        raw = self._raw(values)
        return EnumSchema(entries=tuple(raw), enum_class=self.enum_class)

    def exclude(self, *values: Any) -> EnumSchema:
        """Remove the given values."""
        raw = self._raw(values)
        kept = tuple(e for e in self.entries if not any(same_literal(e, r) for r in raw))
        return EnumSchema(entries=kept, enum_class=self.enum_class)


# =============================================================================
# Custom checks
# =============================================================================


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class CustomSchema(Schema):
    """Accepts any value the predicate approves; with no predicate, anything."""

    predicate: Callable[[Any], Any] | None = None

    def _has_async_hooks(self) -> bool:
        if self.predicate is not None and is_async_callable(self.predicate):
            return True
        return Schema._has_async_hooks(self)

    def _parse(self, payload: Payload, ctx: ParseContext) -> Any:
        if self.predicate is None:
            return payload
        return self._check_predicate(payload, ctx)

    def _check_predicate(self, payload: Payload, ctx: ParseContext):
        passed = yield from resolve(self.predicate(payload.value))
        if not passed:
            payload.issues.append(ctx.issue(IssueCode.CUSTOM, payload.value, self.message))
            payload.aborted = True
        return payload


@dataclass(frozen=True, slots=True, kw_only=True, eq=False)
class InstanceOfSchema(Schema):
    cls: type

    def _parse(self, payload: Payload, ctx: ParseContext) -> Payload:
        if not isinstance(payload.value, self.cls):
            return self._invalid_type(payload, ctx, self.cls.__name__)
        return payload
