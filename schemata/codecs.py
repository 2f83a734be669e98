"""
Ready-made codecs for common wire representations.

Each function returns a new CodecSchema; decode() converts the wire form to
the Python value, encode() converts back.

Usage:
    from schemata import codecs

    ts = codecs.iso_datetime_to_datetime()
    ts.decode("2024-01-31T12:00:00")      # datetime(2024, 1, 31, 12, 0)
    ts.encode(datetime(2024, 1, 31, 12))  # "2024-01-31T12:00:00"
"""

from __future__ import annotations

import base64
import json
from datetime import date, datetime, timezone
from typing import Any, Callable

from .factories import codec, date_, datetime_, instance_of, integer, number, string
from .functions import CodecSchema
from .primitives import parse_number
from .types import Predicate

# Canonical forms only: no leading zeros, no trailing fractional zeros, no
# exponent. The round-trip refinements also reject "-0" and a trailing newline.
NUMBER_PATTERN = r"^-?(0|[1-9][0-9]*)(\.[0-9]*[1-9])?$"
INTEGER_PATTERN = r"^-?(0|[1-9][0-9]*)$"


def _round_trips(decode: Callable[[Any], Any], encode: Callable[[Any], Any]) -> Predicate:
    """Accept only wire values that encode back to themselves."""

    def check(value: Any) -> bool:
        try:
            return encode(decode(value)) == value
        except (ValueError, OverflowError, OSError):
            return False

    return check


def string_to_number() -> CodecSchema:
    """Numeric string to int or float, and back."""
    return codec(
        string()
        .regex(NUMBER_PATTERN)
        .refine(_round_trips(parse_number, str), "Number string is not in canonical form"),
        number(),
        decode=parse_number,
        encode=str,
    )


def string_to_int() -> CodecSchema:
    """Integer string to int, and back."""
    return codec(
        string()
        .regex(INTEGER_PATTERN)
        .refine(_round_trips(int, str), "Integer string is not in canonical form"),
        integer(),
        decode=int,
        encode=str,
    )


def iso_datetime_to_datetime() -> CodecSchema:
    return codec(
        string()
        .iso_datetime()
        .refine(
            _round_trips(datetime.fromisoformat, datetime.isoformat),
            "Datetime string is not in canonical ISO 8601 form",
        ),
        datetime_(),
        decode=datetime.fromisoformat,
        encode=datetime.isoformat,
    )


def iso_date_to_date() -> CodecSchema:
    return codec(
        string()
        .iso_date()
        .refine(
            _round_trips(date.fromisoformat, date.isoformat),
            "Date string is not in canonical ISO 8601 form",
        ),
        date_(),
        decode=date.fromisoformat,
        encode=date.isoformat,
    )


def _from_epoch(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def epoch_seconds_to_datetime() -> CodecSchema:
    """
    Unix timestamp (seconds) <-> timezone-aware UTC datetime.

    Timestamps outside the platform's datetime range, or finer than a
    microsecond, are rejected on the way in.
    """
    return codec(
        number().refine(
            _round_trips(_from_epoch, datetime.timestamp),
            "Timestamp is out of range or finer than a microsecond",
        ),
        datetime_(),
        decode=_from_epoch,
        encode=datetime.timestamp,
    )


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def base64_to_bytes() -> CodecSchema:
    return codec(
        string()
        .base64()
        .refine(
            _round_trips(base64.b64decode, _b64encode),
            "Base64 string is not canonically padded",
        ),
        instance_of(bytes),
        decode=base64.b64decode,
        encode=_b64encode,
    )


def _is_json(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def json_string(schema: Any) -> CodecSchema:
    """
    JSON text <-> value validated by ``schema``.

    Decoding accepts any JSON formatting; encoding always writes
    ``json.dumps`` formatting, so only text in that form comes back unchanged.

    Usage:
        payload = codecs.json_string(object_({"id": integer()}))
        payload.decode('{"id": 1}')   # {"id": 1}
        payload.encode({"id": 1})     # '{"id": 1}'
    """
    return codec(
        string().refine(_is_json, "Invalid JSON string"),
        schema,
        decode=json.loads,
        encode=json.dumps,
    )


__all__ = [
    "string_to_number",
    "string_to_int",
    "iso_datetime_to_datetime",
    "iso_date_to_date",
    "epoch_seconds_to_datetime",
    "base64_to_bytes",
    "json_string",
]
