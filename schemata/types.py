"""
Type definitions for schemata.

Provides a minimal Result type (Ok/Err), the MISSING sentinel and type aliases.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E")


class _Missing(Enum):
    """
    Sentinel for an absent value.

    Distinct from None: a dict key that is not present, or parse() called
    without an argument, is MISSING. None is the null value.
    """

    MISSING = "MISSING"

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing.MISSING


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success result containing a value."""

    value: T

    @property
    def success(self) -> bool:
        return True

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Error result containing an error value."""

    error: E

    @property
    def success(self) -> bool:
        return False

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True


# Type aliases
Path = tuple[Any, ...]
Predicate = Callable[[Any], bool]
