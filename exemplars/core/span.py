"""Span identity used to link exemplars back to distributed traces."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Any

INVALID_TRACE_ID = "0" * 32
INVALID_SPAN_ID = "0" * 16


def generate_trace_id() -> str:
    """Generate a random 128-bit trace ID as 32 lowercase hex characters."""
    return secrets.token_hex(16)


def generate_span_id() -> str:
    """Generate a random 64-bit span ID as 16 lowercase hex characters."""
    return secrets.token_hex(8)


@dataclass(frozen=True)
class SpanContext:
    """The identifying part of a span: which trace it belongs to, and which span it is.

    A span context is immutable. Exemplars capture ``span_id`` and
    ``trace_id`` from the span context that was active when a measurement
    was recorded.
    """

    __slots__ = ("trace_id", "span_id", "sampled")

    trace_id: str
    span_id: str
    sampled: bool

    def __init__(self, trace_id: str, span_id: str, sampled: bool = True) -> None:
        """Initialize a span context.

        Args:
            trace_id: Trace this span belongs to
            span_id: Identifier of the span itself
            sampled: Whether the trace is being recorded
        """
        object.__setattr__(self, "trace_id", trace_id)
        object.__setattr__(self, "span_id", span_id)
        object.__setattr__(self, "sampled", sampled)

    @classmethod
    def generate(cls, trace_id: str | None = None, sampled: bool = True) -> SpanContext:
        """Create a span context with a fresh span ID.

        Args:
            trace_id: Existing trace to join (generates a new trace if not provided)
            sampled: Whether the trace is being recorded

        Returns:
            New SpanContext
        """
        return cls(
            trace_id=trace_id or generate_trace_id(),
            span_id=generate_span_id(),
            sampled=sampled,
        )

    @property
    def is_valid(self) -> bool:
        """True if both IDs are present and not the all-zero invalid IDs."""
        return (
            bool(self.trace_id)
            and bool(self.span_id)
            and self.trace_id != INVALID_TRACE_ID
            and self.span_id != INVALID_SPAN_ID
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert span context to dictionary representation."""
        return {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "sampled": self.sampled,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SpanContext:
        """Create span context from dictionary representation."""
        return cls(
            trace_id=data["trace_id"],
            span_id=data["span_id"],
            sampled=data.get("sampled", True),
        )


INVALID_SPAN_CONTEXT = SpanContext(INVALID_TRACE_ID, INVALID_SPAN_ID, sampled=False)
