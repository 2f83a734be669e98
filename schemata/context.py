"""
Parse configuration and the per-call parse context.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Union

from .issues import Issue, IssueCode, default_message
from .types import MISSING

ErrorMap = Callable[[Issue], Union[str, None]]
MessageLike = Union[str, ErrorMap, None]


@dataclass(frozen=True, slots=True)
class ParseConfig:
    """Ambient parse options, overridable per call."""

    error_map: ErrorMap | None = None
    report_input: bool = False
    abort_early: bool = False


# Context variable for ambient configuration
_config: ContextVar[ParseConfig] = ContextVar("schemata_config", default=ParseConfig())


def get_config() -> ParseConfig:
    """Return the configuration currently in effect."""
    return _config.get()


@contextmanager
def validation_context(
    *,
    error_map: ErrorMap | None = None,
    report_input: bool = False,
    abort_early: bool = False,
):
    """
    Context manager for parse configuration.

    Args:
        error_map: Callable receiving a draft Issue and returning a message,
                   or None to fall through to the built-in message.
        report_input: If True, issues carry the failing input value.
        abort_early: If True, each node stops its checks at the first issue.
                     Sibling fields are still validated.

    Example:
        from schemata import string, validation_context

        with validation_context(error_map=lambda issue: "Nope"):
            string().safe_parse(1)  # message "Nope"
    """
    token = _config.set(
        ParseConfig(
            error_map=error_map,
            report_input=report_input,
            abort_early=abort_early,
        )
    )
    try:
        yield
    finally:
        _config.reset(token)


@dataclass(frozen=True, slots=True)
class ParseContext:
    """
    Options for one parse call.

    Shared by every node visited during the call. Holds no issues itself;
    those accumulate on the payloads the engine passes around.
    """

    forward: bool = True
    error_map: ErrorMap | None = None
    fallback_map: ErrorMap | None = None
    report_input: bool = False
    abort_early: bool = False

    @classmethod
    def create(
        cls,
        *,
        forward: bool = True,
        error_map: ErrorMap | None = None,
        report_input: bool | None = None,
        abort_early: bool | None = None,
    ) -> ParseContext:
        config = get_config()
        return cls(
            forward=forward,
            error_map=error_map,
            fallback_map=config.error_map,
            report_input=config.report_input if report_input is None else report_input,
            abort_early=config.abort_early if abort_early is None else abort_early,
        )

    def issue(
        self,
        code: IssueCode,
        value: Any,
        message: MessageLike = None,
        *,
        path: tuple[Any, ...] = (),
        expected: str | None = None,
        received: str | None = None,
        details: Mapping[str, Any] | None = None,
        fallback: str | None = None,
    ) -> Issue:
        """
        Build an issue, resolving its message.

        Precedence: the node or check message, the per-call error map, the
        ambient error map, then ``fallback`` or the built-in message.
        """
        draft = Issue(
            code=code,
            path=tuple(path),
            expected=expected,
            received=received,
            input=value,
            details=dict(details or {}),
        )
        text = None
        for source in (message, self.error_map, self.fallback_map):
            if source is None:
                continue
            text = source if isinstance(source, str) else source(draft)
            if text is not None:
                break
        if text is None:
            text = fallback if fallback is not None else default_message(draft)
        return replace(
            draft,
            message=text,
            input=value if self.report_input else MISSING,
        )
