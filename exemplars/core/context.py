"""Active trace context for measurements.

A measurement becomes a trace-linked exemplar when a span is active at the
moment it is recorded. The active ``TraceContext`` lives in a ``ContextVar``,
so each thread and asyncio task sees its own. ``ExemplarRecorder.record``
reads it when no context is passed, and ``get_span_context`` reduces
whatever context a producer supplies to the span IDs an exemplar stores.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token, copy_context
from functools import wraps
from typing import Any, Callable

from exemplars.core.span import SpanContext, generate_trace_id

_current_context: ContextVar[TraceContext | None] = ContextVar("_current_context", default=None)


class TraceContext:
    """Identity of one trace as seen by code that records measurements.

    Holds the trace ID, the sampling decision made for the trace, and the
    span contexts currently entered, innermost last. Measurements recorded
    while a span is entered are linked to that span. Spans themselves are
    not created or exported here.
    """

    __slots__ = ("trace_id", "span_stack", "baggage", "sampled")

    def __init__(
        self,
        trace_id: str | None = None,
        sampled: bool = True,
        baggage: dict[str, str] | None = None,
    ) -> None:
        """
        Args:
            trace_id: 32-hex-digit trace ID (a random one if omitted)
            sampled: Whether the trace was sampled; unsampled traces are
                skipped by the trace-based exemplar filter
            baggage: String metadata carried alongside the trace
        """
        self.trace_id = trace_id or generate_trace_id()
        self.span_stack: list[SpanContext] = []
        self.baggage: dict[str, str] = baggage or {}
        self.sampled = sampled

    def current_span(self) -> SpanContext | None:
        """Span that new measurements would be linked to, if any."""
        return self.span_stack[-1] if self.span_stack else None

    def push_span(self, span: SpanContext) -> None:
        self.span_stack.append(span)

    def pop_span(self) -> SpanContext | None:
        """Leave the innermost span, returning it (None when none is entered)."""
        return self.span_stack.pop() if self.span_stack else None

    @contextmanager
    def start_span(self) -> Iterator[SpanContext]:
        """Enter a fresh child span of this trace for the duration of the block.

        The span inherits the trace ID and sampling decision. Measurements
        recorded inside the block carry its span ID.

        Yields:
            The entered span context

        Example:
            >>> ctx = TraceContext()
            >>> with ctx.start_span() as span:
            ...     assert ctx.current_span() is span
        """
        span = SpanContext.generate(trace_id=self.trace_id, sampled=self.sampled)
        self.push_span(span)
        try:
            yield span
        finally:
            self.pop_span()

    def set_baggage(self, key: str, value: str) -> None:
        self.baggage[key] = value

    def get_baggage(self, key: str) -> str | None:
        return self.baggage.get(key)


def get_current_context() -> TraceContext | None:
    """Trace context active in the calling thread or task, if any."""
    return _current_context.get()


def get_current_span() -> SpanContext | None:
    """Span that a measurement recorded right now would be linked to."""
    ctx = get_current_context()
    return ctx.current_span() if ctx else None


def set_context(ctx: TraceContext) -> Token[TraceContext | None]:
    """Make ``ctx`` the active trace context.

    Returns:
        Token to pass to ``reset_context`` to restore the previous context
    """
    return _current_context.set(ctx)


def reset_context(token: Token[TraceContext | None]) -> None:
    """Restore the trace context that was active before ``set_context``."""
    _current_context.reset(token)


@contextmanager
def new_trace_context(
    trace_id: str | None = None, sampled: bool = True, baggage: dict[str, str] | None = None
) -> Iterator[TraceContext]:
    """Activate a new trace context inside a ``with`` block.

    The previous context is restored on exit, even if the block raises.

    Args:
        trace_id: 32-hex-digit trace ID (a random one if omitted)
        sampled: Whether the trace was sampled
        baggage: String metadata carried alongside the trace

    Yields:
        The active trace context

    Example:
        >>> with new_trace_context() as ctx:
        ...     with ctx.start_span():
        ...         recorder.record(0.25, {"route": "/users"})
    """
    ctx = TraceContext(trace_id=trace_id, sampled=sampled, baggage=baggage)
    token = set_context(ctx)
    try:
        yield ctx
    finally:
        reset_context(token)


def get_span_context(context: Any) -> SpanContext | None:
    """Resolve an opaque context object to the active span context.

    Accepts a ``TraceContext`` (its innermost active span is used), a
    ``SpanContext``, or ``None``. Anything else, and span contexts with
    invalid IDs, resolve to None.

    Args:
        context: The context supplied alongside a measurement

    Returns:
        The valid active span context, or None if there is none
    """
    if isinstance(context, TraceContext):
        span = context.current_span()
    elif isinstance(context, SpanContext):
        span = context
    else:
        return None

    if span is None or not span.is_valid:
        return None
    return span


def copy_context_to_thread(func: Callable[..., Any]) -> Callable[..., Any]:
    """Bind ``func`` to the trace context active at wrap time.

    Worker threads start with no active trace context, so measurements they
    record would lose their span link. Wrap the function in the recording
    thread and submit the wrapper instead.

    Args:
        func: Function that records measurements

    Returns:
        Wrapper that runs ``func`` inside a copy of the captured context

    Example:
        >>> with new_trace_context() as ctx, ctx.start_span():
        ...     wrapped = copy_context_to_thread(record_latency)
        ...     with ThreadPoolExecutor() as executor:
        ...         executor.submit(wrapped).result()
    """
    ctx = copy_context()

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return ctx.run(func, *args, **kwargs)

    return wrapper
