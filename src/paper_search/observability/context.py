"""Per-task correlation ids shared by log records and spans.

A search session binds its own context before indexing starts. Worker tasks
created inside that block inherit it, so their log lines carry the session id.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class CorrelationContext:
    """Ids attached to every log record emitted in the current task."""

    trace_id: str
    span_id: str
    session_id: str | None = None

    @classmethod
    def fresh(cls, session_id: str | None = None) -> CorrelationContext:
        return cls(trace_id=new_trace_id(), span_id=new_span_id(), session_id=session_id)


_current: ContextVar[CorrelationContext | None] = ContextVar("paper_search_correlation", default=None)


def new_trace_id() -> str:
    """Generate a 32-char hex trace ID."""
    return uuid4().hex


def new_span_id() -> str:
    """Generate a 16-char hex span ID."""
    return uuid4().hex[:16]


def current_context() -> CorrelationContext:
    """Return the bound context, binding a fresh one on first use."""
    ctx = _current.get()
    if ctx is None:
        ctx = CorrelationContext.fresh()
        _current.set(ctx)
    return ctx


@contextmanager
def bound_session(session_id: str) -> Iterator[CorrelationContext]:
    """Bind a new trace to ``session_id`` for the duration of the block."""
    ctx = CorrelationContext.fresh(session_id)
    token = _current.set(ctx)
    try:
        yield ctx
    finally:
        _current.reset(token)


def record_span(span_id: str) -> Token[CorrelationContext | None]:
    """Point the current context at a newly started span, keeping its trace.

    Pass the returned token to ``restore_span`` when the span ends.
    """
    return _current.set(replace(current_context(), span_id=span_id))


def restore_span(token: Token[CorrelationContext | None]) -> None:
    _current.reset(token)
