"""
String format predicates used by string() checks.

Email and URL syntax is checked with pydantic's validators; the rest use
the standard parsers for each format.
"""

from __future__ import annotations

import base64
import binascii
import ipaddress
import re
from datetime import date, datetime, time

from pydantic import AnyUrl, EmailStr, TypeAdapter, ValidationError

UUID_PATTERN = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)

_email_adapter = TypeAdapter(EmailStr)
_url_adapter = TypeAdapter(AnyUrl)


def _is_bare(value: str) -> bool:
    # Both adapters trim surrounding whitespace; EmailStr also takes "Name <addr>"
    return value == value.strip() and "<" not in value


def is_email(value: str) -> bool:
    if not _is_bare(value):
        return False
    try:
        _email_adapter.validate_python(value)
    except ValidationError:
        return False
    return True


def is_uuid(value: str) -> bool:
    return UUID_PATTERN.fullmatch(value) is not None


def is_url(value: str) -> bool:
    if not _is_bare(value):
        return False
    try:
        url = _url_adapter.validate_python(value)
    except ValidationError:
        return False
    return bool(url.host)


def is_ipv4(value: str) -> bool:
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def is_ipv6(value: str) -> bool:
    try:
        ipaddress.IPv6Address(value)
    except ValueError:
        return False
    return True


def is_iso_datetime(value: str) -> bool:
    # fromisoformat also accepts bare dates; a datetime needs a time part
    if "T" not in value and " " not in value:
        return False
    try:
        datetime.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_iso_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return len(value) == 10


def is_iso_time(value: str) -> bool:
    try:
        time.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_base64(value: str) -> bool:
    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


FORMATS = {
    "email": is_email,
    "uuid": is_uuid,
    "url": is_url,
    "ipv4": is_ipv4,
    "ipv6": is_ipv6,
    "iso_datetime": is_iso_datetime,
    "iso_date": is_iso_date,
    "iso_time": is_iso_time,
    "base64": is_base64,
}
