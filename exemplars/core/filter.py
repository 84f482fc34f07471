"""Exemplar filters.

A filter decides whether a measurement is offered to the exemplar reservoir
at all, before any slot is chosen. Filtering on the trace context keeps
exemplars that link to traces which are actually recorded.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from exemplars.core.clock import HrTime
from exemplars.core.context import get_span_context
from exemplars.core.exemplar import Attributes, Value


class ExemplarFilter(ABC):
    """Abstract base class for exemplar filters."""

    @abstractmethod
    def should_sample(
        self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any
    ) -> bool:
        """Determine if a measurement should be offered to the reservoir.

        Args:
            value: The measured value
            timestamp: When the measurement was recorded
            attributes: Measurement attributes
            context: Trace context active at record time, or None

        Returns:
            True if the measurement should be offered, False otherwise
        """
        pass


class AlwaysOnFilter(ExemplarFilter):
    """Offers every measurement, traced or not."""

    def should_sample(
        self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any
    ) -> bool:
        return True


class AlwaysOffFilter(ExemplarFilter):
    """Offers nothing. Use this to disable exemplars entirely."""

    def should_sample(
        self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any
    ) -> bool:
        return False


class TraceBasedFilter(ExemplarFilter):
    """Offers measurements recorded inside a sampled span.

    Measurements with no active span, or whose trace is not being recorded,
    are not offered.
    """

    def should_sample(
        self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any
    ) -> bool:
        span_context = get_span_context(context)
        return span_context is not None and span_context.sampled


FILTERS: dict[str, type[ExemplarFilter]] = {
    "always_on": AlwaysOnFilter,
    "always_off": AlwaysOffFilter,
    "trace_based": TraceBasedFilter,
}


def filter_from_name(name: str) -> ExemplarFilter:
    """Create a filter from its configuration name.

    Args:
        name: One of "always_on", "always_off" or "trace_based" (case-insensitive)

    Returns:
        The filter instance

    Raises:
        ValueError: If the name is unknown
    """
    key = name.strip().lower().replace("-", "_")
    if key not in FILTERS:
        raise ValueError(
            f"Unknown exemplar filter: {name}. Use one of: {', '.join(sorted(FILTERS))}"
        )
    return FILTERS[key]()
