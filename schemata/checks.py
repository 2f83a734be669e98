"""
Pipeline steps attached to schema nodes.

Steps run in declaration order after a node's base validation succeeds:

    Check          built-in constraint (min length, pattern, bound, ...)
    Refinement     user predicate reporting one custom issue
    SuperRefinement user function adding any number of issues
    Transform      maps the value, possibly to another type (forward only)
    Overwrite      maps the value without changing its type (trim, lower, ...)
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping

from .context import MessageLike, ParseContext
from .engine import Payload, resolve
from .issues import EncodeError, IssueCode, SchemaDefinitionError
from .types import Predicate


def is_async_callable(fn: Any) -> bool:
    """Check whether fn is declared as a coroutine function."""
    return inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(
        getattr(fn, "__call__", None)
    )


def _require_callable(fn: Any, what: str) -> None:
    if not callable(fn):
        raise SchemaDefinitionError(f"{what} requires a callable, got {type(fn).__name__}")


@dataclass(frozen=True, slots=True)
class Check:
    """
    Built-in constraint: predicate plus the issue it reports.

    ``kind`` and ``details`` are kept for introspection (JSON Schema export,
    pydantic interop).
    """

    kind: str
    predicate: Predicate
    code: IssueCode
    details: Mapping[str, Any] = field(default_factory=dict)
    message: MessageLike = None
    abort: bool = False

    @property
    def is_async(self) -> bool:
        return False

    def apply(self, payload: Payload, ctx: ParseContext) -> Payload:
        if not self.predicate(payload.value):
            payload.issues.append(
                ctx.issue(self.code, payload.value, self.message, details=self.details)
            )
            if self.abort:
                payload.aborted = True
        return payload


@dataclass(frozen=True, slots=True)
class Refinement:
    fn: Callable[[Any], Any]
    message: MessageLike = None
    path: tuple[Any, ...] = ()
    abort: bool = False
    params: Mapping[str, Any] | None = None

    def __post_init__(self):
        _require_callable(self.fn, "refine()")

    @property
    def is_async(self) -> bool:
        return is_async_callable(self.fn)

    def apply(self, payload: Payload, ctx: ParseContext):
        passed = yield from resolve(self.fn(payload.value))
        if not passed:
            details = {"params": dict(self.params)} if self.params else None
            payload.issues.append(
                ctx.issue(
                    IssueCode.CUSTOM,
                    payload.value,
                    self.message,
                    path=self.path,
                    details=details,
                )
            )
            if self.abort:
                payload.aborted = True
        return payload


class RefinementContext:
    """
    Handle passed to super_refine() functions.

    Usage:
        def check_passwords(value, ctx):
            if value["password"] != value["confirm"]:
                ctx.add_issue("Passwords do not match", path=("confirm",))
    """

    def __init__(self, payload: Payload, ctx: ParseContext):
        self.value = payload.value
        self._payload = payload
        self._ctx = ctx

    def add_issue(
        self,
        message: str | None = None,
        *,
        code: IssueCode = IssueCode.CUSTOM,
        path: tuple[Any, ...] = (),
        abort: bool = False,
        **details: Any,
    ) -> None:
        self._payload.issues.append(
            self._ctx.issue(code, self.value, message, path=path, details=details)
        )
        if abort:
            self._payload.aborted = True


@dataclass(frozen=True, slots=True)
class SuperRefinement:
    fn: Callable[[Any, RefinementContext], Any]

    def __post_init__(self):
        _require_callable(self.fn, "super_refine()")

    @property
    def is_async(self) -> bool:
        return is_async_callable(self.fn)

    def apply(self, payload: Payload, ctx: ParseContext):
        yield from resolve(self.fn(payload.value, RefinementContext(payload, ctx)))
        return payload


@dataclass(frozen=True, slots=True)
class Transform:
    fn: Callable[[Any], Any]

    def __post_init__(self):
        _require_callable(self.fn, "transform()")

    @property
    def is_async(self) -> bool:
        return is_async_callable(self.fn)

    def apply(self, payload: Payload, ctx: ParseContext):
        if not ctx.forward:
            raise EncodeError("Encountered a one-way transform while encoding")
        payload.value = yield from resolve(self.fn(payload.value))
        return payload


@dataclass(frozen=True, slots=True)
class Overwrite:
    """Type-preserving transform; runs in both directions."""

    fn: Callable[[Any], Any]
    kind: str = "overwrite"

    def __post_init__(self):
        _require_callable(self.fn, "overwrite()")

    @property
    def is_async(self) -> bool:
        return False

    def apply(self, payload: Payload, ctx: ParseContext) -> Payload:
        payload.value = self.fn(payload.value)
        return payload


Step = Check | Refinement | SuperRefinement | Transform | Overwrite


# =============================================================================
# Constraint factories
# =============================================================================


def _size(value: Any) -> int:
    return len(value)


def _non_negative(n: int, what: str) -> None:
    if n < 0:
        raise SchemaDefinitionError(f"{what} must be non-negative, got {n}")


def min_size(n: int, origin: str, message: MessageLike = None) -> Check:
    _non_negative(n, "Minimum size")
    return Check(
        kind="min_size",
        predicate=lambda x: _size(x) >= n,
        code=IssueCode.TOO_SMALL,
        details={"origin": origin, "minimum": n, "inclusive": True},
        message=message,
    )


def max_size(n: int, origin: str, message: MessageLike = None) -> Check:
    _non_negative(n, "Maximum size")
    return Check(
        kind="max_size",
        predicate=lambda x: _size(x) <= n,
        code=IssueCode.TOO_BIG,
        details={"origin": origin, "maximum": n, "inclusive": True},
        message=message,
    )


def lower_bound(
    bound: Any, origin: str, inclusive: bool = True, message: MessageLike = None
) -> Check:
    return Check(
        kind="gte" if inclusive else "gt",
        predicate=(lambda x: x >= bound) if inclusive else (lambda x: x > bound),
        code=IssueCode.TOO_SMALL,
        details={"origin": origin, "minimum": bound, "inclusive": inclusive},
        message=message,
    )


def upper_bound(
    bound: Any, origin: str, inclusive: bool = True, message: MessageLike = None
) -> Check:
    return Check(
        kind="lte" if inclusive else "lt",
        predicate=(lambda x: x <= bound) if inclusive else (lambda x: x < bound),
        code=IssueCode.TOO_BIG,
        details={"origin": origin, "maximum": bound, "inclusive": inclusive},
        message=message,
    )


def _is_multiple(value: Any, divisor: Any) -> bool:
    if isinstance(value, int) and isinstance(divisor, int):
        return value % divisor == 0
    # Decimal arithmetic avoids float remainders such as 0.3 % 0.1
    try:
        return Decimal(str(value)) % Decimal(str(divisor)) == 0
    except InvalidOperation:
        return False


def multiple_of(divisor: Any, message: MessageLike = None) -> Check:
    if divisor == 0:
        raise SchemaDefinitionError("multiple_of() divisor must not be zero")
    return Check(
        kind="multiple_of",
        predicate=lambda x: _is_multiple(x, divisor),
        code=IssueCode.NOT_MULTIPLE_OF,
        details={"divisor": divisor},
        message=message,
    )


def string_format(
    fmt: str,
    predicate: Predicate,
    message: MessageLike = None,
    **details: Any,
) -> Check:
    return Check(
        kind=fmt,
        predicate=predicate,
        code=IssueCode.INVALID_FORMAT,
        details={"format": fmt, **details},
        message=message,
    )
