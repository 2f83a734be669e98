"""
Coercing factories.

Same signatures as the plain factories, with built-in conversion enabled:

    from schemata import coerce

    coerce.number().parse("42")        # 42
    coerce.boolean().parse(0)          # False
    coerce.date_().parse("2024-01-31") # date(2024, 1, 31)
"""

from __future__ import annotations

from . import factories
from .context import MessageLike
from .primitives import (
    BooleanSchema,
    DateSchema,
    DateTimeSchema,
    IntegerSchema,
    NumberSchema,
    StringSchema,
)


def string(*, message: MessageLike = None) -> StringSchema:
    return factories.string(coerce=True, message=message)


def number(*, message: MessageLike = None) -> NumberSchema:
    return factories.number(coerce=True, message=message)


def integer(*, message: MessageLike = None) -> IntegerSchema:
    return factories.integer(coerce=True, message=message)


def boolean(*, message: MessageLike = None) -> BooleanSchema:
    """Truthiness conversion: "false" is a non-empty string, so it becomes True."""
    return factories.boolean(coerce=True, message=message)


def date_(*, message: MessageLike = None) -> DateSchema:
    return factories.date_(coerce=True, message=message)


def datetime_(*, message: MessageLike = None) -> DateTimeSchema:
    return factories.datetime_(coerce=True, message=message)


__all__ = ["string", "number", "integer", "boolean", "date_", "datetime_"]
