# src/logging/context.py - v3
"""Contextual logging support: attach request_id, mode, profile, span to records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any, AsyncGenerator, TypeVar

T = TypeVar("T")

# Context variables for structured logging, set per analysis request.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_mode: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "mode", default=None
)
_profile: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "profile", default=None
)
_span: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "span", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    request_id: str | None = None
    mode: str | None = None
    profile: str | None = None
    span: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        mode=_mode.get(),
        profile=_profile.get(),
        span=_span.get(),
    )


def _apply(context: LogContext) -> None:
    _request_id.set(context.request_id)
    _mode.set(context.mode)
    _profile.set(context.profile)
    _span.set(context.span)


def set_request_context(request_id: str, mode: str) -> None:
    """Set request-level context; profile and span start empty."""
    _apply(LogContext(request_id=request_id, mode=mode))


def set_attempt_context(profile: str, span: str | None = None) -> None:
    """Set attempt-level context. A None span keeps the current one."""
    _profile.set(profile)
    if span is not None:
        _span.set(span)


def set_span_context(span: str) -> None:
    """Tag records with the page span being resolved, e.g. "3-4"."""
    _span.set(span)


def clear_context() -> None:
    """Reset all context variables."""
    _apply(LogContext())


async def bind_stream_context(
    steps: AsyncGenerator[T, None], request_id: str, mode: str
) -> AsyncGenerator[T, None]:
    """Re-yield `steps`, applying one request's context only while it advances.

    Every resume installs the stream's own context (including any profile or
    span set by its previous step) and every yield hands the consumer back
    the context it had before. A single task can therefore interleave
    several streams and each keeps its own log fields.
    """
    own = LogContext(request_id=request_id, mode=mode)
    try:
        while True:
            outer = get_context()
            _apply(own)
            try:
                item = await steps.__anext__()
            except StopAsyncIteration:
                return
            finally:
                own = get_context()
                _apply(outer)
            yield item
    finally:
        await steps.aclose()
