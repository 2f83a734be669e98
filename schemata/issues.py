"""
Validation issues and the aggregate SchemaError.

An Issue is one structured validation failure. A failed parse produces a
SchemaError carrying every issue found, in traversal order.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence

from .types import MISSING, Path


class IssueCode(str, Enum):
    INVALID_TYPE = "invalid_type"
    INVALID_LITERAL = "invalid_literal"
    UNRECOGNIZED_KEYS = "unrecognized_keys"
    INVALID_UNION = "invalid_union"
    INVALID_KEY = "invalid_key"
    INVALID_INTERSECTION_TYPES = "invalid_intersection_types"
    INVALID_ARGUMENTS = "invalid_arguments"
    INVALID_RETURN_TYPE = "invalid_return_type"
    TOO_SMALL = "too_small"
    TOO_BIG = "too_big"
    INVALID_FORMAT = "invalid_format"
    NOT_MULTIPLE_OF = "not_multiple_of"
    CUSTOM = "custom"
    ASYNC_REQUIRED = "async_required"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Issue:
    """
    One validation failure.

    Attributes:
        code: Failure kind
        path: Keys and indices leading from the root input to the failing value
        message: Human-readable description
        expected: Expected type name (invalid_type issues)
        received: Received type name (invalid_type issues)
        input: The failing input, only populated when report_input is enabled
        details: Kind-specific metadata (minimum, maximum, format, values, ...)
    """

    code: IssueCode
    path: Path = ()
    message: str = ""
    expected: str | None = None
    received: str | None = None
    input: Any = MISSING
    details: Mapping[str, Any] = field(default_factory=dict)

    def with_prefix(self, *keys: Any) -> Issue:
        """Return a copy of this issue with keys prepended to its path."""
        return replace(self, path=(*keys, *self.path))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "code": self.code.value,
            "path": list(self.path),
            "message": self.message,
        }
        if self.expected is not None:
            result["expected"] = self.expected
        if self.received is not None:
            result["received"] = self.received
        if self.input is not MISSING:
            result["input"] = self.input
        for key, value in self.details.items():
            if key == "errors":
                value = [[issue.to_dict() for issue in branch] for branch in value]
            result[key] = value
        return result


def prefix_issues(issues: Iterable[Issue], *keys: Any) -> list[Issue]:
    return [issue.with_prefix(*keys) for issue in issues]


class SchemaError(Exception):
    """
    Aggregate validation error.

    Raised by parse() and returned inside Err by safe_parse(). The message is
    a readable summary; ``issues`` is the machine-readable detail.
    """

    def __init__(self, issues: Sequence[Issue]):
        self.issues: list[Issue] = list(issues)
        super().__init__(self._summary())

    def _summary(self) -> str:
        if not self.issues:
            return "Validation failed"
        lines = []
        for issue in self.issues:
            where = format_path(issue.path)
            lines.append(f"{where}: {issue.message}" if where else issue.message)
        noun = "issue" if len(self.issues) == 1 else "issues"
        return f"{len(self.issues)} validation {noun}: " + "; ".join(lines)

    def flatten(self) -> dict[str, Any]:
        """
        Group messages by their top-level key.

        Returns:
            {"form_errors": [...], "field_errors": {key: [...]}}
            Issues at the root path land in form_errors.
        """
        form_errors: list[str] = []
        field_errors: dict[Any, list[str]] = {}
        for issue in self.issues:
            if issue.path:
                field_errors.setdefault(issue.path[0], []).append(issue.message)
            else:
                form_errors.append(issue.message)
        return {"form_errors": form_errors, "field_errors": field_errors}

    def prettify(self) -> str:
        """Render the issues as a bulleted, human-readable report."""
        lines = []
        for issue in sorted(self.issues, key=lambda i: len(i.path)):
            lines.append(f"✖ {issue.message}")
            if issue.path:
                lines.append(f"  → at {format_path(issue.path)}")
        return "\n".join(lines)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [issue.to_dict() for issue in self.issues]


class AsyncParseError(SchemaError):
    """Raised when a synchronous entry point meets an asynchronous step."""

    def __init__(self) -> None:
        issue = Issue(
            code=IssueCode.ASYNC_REQUIRED,
            message=default_message(Issue(code=IssueCode.ASYNC_REQUIRED)),
        )
        super().__init__([issue])


class SchemaDefinitionError(ValueError):
    """Raised at construction time for a malformed schema."""


class EncodeError(TypeError):
    """Raised when encoding meets a step that only works forward."""


def format_path(path: Path) -> str:
    """
    Render a path tuple in dotted notation.

    Examples:
        ("user", "tags", 0) -> "user.tags[0]"
        (0, "name")         -> "[0].name"
    """
    parts: list[str] = []
    for key in path:
        if isinstance(key, int) and not isinstance(key, bool):
            parts.append(f"[{key}]")
        elif isinstance(key, str) and key.isidentifier():
            parts.append(f".{key}" if parts else key)
        else:
            parts.append(f"[{key!r}]")
    return "".join(parts)


def describe_type(value: Any) -> str:
    """Name the type of a value the way issue messages refer to it."""
    if value is MISSING:
        return "missing"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, float) and math.isnan(value):
        return "nan"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, (set, frozenset)):
        return "set"
    if isinstance(value, datetime):
        return "datetime"
    if isinstance(value, date):
        return "date"
    if isinstance(value, bytes):
        return "bytes"
    if callable(value):
        return "function"
    return type(value).__name__


_SIZE_UNITS = {"string": "characters", "array": "items", "set": "items", "object": "keys"}


def _bound_message(issue: Issue, adjective: str, comparator: str) -> str:
    details = issue.details
    origin = details.get("origin", "value")
    bound = details.get("minimum" if issue.code == IssueCode.TOO_SMALL else "maximum")
    inclusive = details.get("inclusive", True)
    op = f"{comparator}=" if inclusive else comparator
    unit = _SIZE_UNITS.get(origin)
    if unit:
        return f"Too {adjective}: expected {origin} to have {op}{bound} {unit}"
    return f"Too {adjective}: expected {origin} to be {op}{bound}"


def default_message(issue: Issue) -> str:
    """Built-in English message for an issue."""
    details = issue.details
    match issue.code:
        case IssueCode.INVALID_TYPE:
            if issue.received == "missing":
                return "Required"
            return f"Expected {issue.expected}, received {issue.received}"
        case IssueCode.INVALID_LITERAL:
            values = details.get("values", ())
            if len(values) == 1:
                return f"Invalid value: expected {values[0]!r}"
            return "Invalid option: expected one of " + " | ".join(
                repr(v) for v in values
            )
        case IssueCode.UNRECOGNIZED_KEYS:
            keys = ", ".join(repr(k) for k in details.get("keys", ()))
            return f"Unrecognized key: {keys}"
        case IssueCode.INVALID_UNION:
            if details.get("note"):
                return f"Invalid input: {details['note']}"
            return "Invalid input"
        case IssueCode.INVALID_KEY:
            return f"Invalid key in {details.get('origin', 'record')}"
        case IssueCode.INVALID_INTERSECTION_TYPES:
            return "Intersection results could not be merged"
        case IssueCode.INVALID_ARGUMENTS:
            return "Invalid function arguments"
        case IssueCode.INVALID_RETURN_TYPE:
            return "Invalid function return type"
        case IssueCode.TOO_SMALL:
            return _bound_message(issue, "small", ">")
        case IssueCode.TOO_BIG:
            return _bound_message(issue, "big", "<")
        case IssueCode.INVALID_FORMAT:
            fmt = details.get("format", "string")
            if fmt == "regex":
                return f"Invalid string: must match pattern {details.get('pattern')}"
            if fmt == "starts_with":
                return f"Invalid string: must start with {details.get('prefix')!r}"
            if fmt == "ends_with":
                return f"Invalid string: must end with {details.get('suffix')!r}"
            if fmt == "includes":
                return f"Invalid string: must include {details.get('includes')!r}"
            if fmt in ("lowercase", "uppercase"):
                return f"Invalid string: must be {fmt}"
            return f"Invalid {fmt}"
        case IssueCode.NOT_MULTIPLE_OF:
            return f"Invalid number: must be a multiple of {details.get('divisor')}"
        case IssueCode.ASYNC_REQUIRED:
            return (
                "Encountered an asynchronous step during synchronous parsing; "
                "use parse_async() or safe_parse_async()"
            )
    return "Invalid input"
