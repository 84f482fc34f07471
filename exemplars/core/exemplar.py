"""Exemplar: one retained measurement plus its trace linkage."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Union

from exemplars.core.clock import HrTime

# Measurement value, int or float depending on the instrument
Value = Union[int, float]

# Attribute values are scalars (str, bool, int, float) or sequences of them
Attributes = Mapping[str, Any]


@dataclass(frozen=True)
class Exemplar:
    """A single measurement retained for correlation with an aggregated metric point.

    Exemplars are immutable: fields cannot be reassigned and
    ``filtered_attributes`` is a read-only view. Only attributes that are not
    already present, with the same value, on the metric point are kept.
    """

    __slots__ = ("value", "timestamp", "filtered_attributes", "span_id", "trace_id")

    # Attribute values may be lists, so equality is structural but there is no hash
    __hash__ = None  # type: ignore[assignment]

    value: Value
    timestamp: HrTime
    filtered_attributes: Attributes
    span_id: str | None
    trace_id: str | None

    def __init__(
        self,
        value: Value,
        timestamp: HrTime,
        filtered_attributes: Attributes | None = None,
        span_id: str | None = None,
        trace_id: str | None = None,
    ) -> None:
        """Initialize an exemplar.

        Args:
            value: The measured value
            timestamp: When the measurement was recorded
            filtered_attributes: Measurement attributes not implied by the point
            span_id: Span active when the measurement was recorded, if any
            trace_id: Trace active when the measurement was recorded, if any
        """
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "timestamp", tuple(timestamp))
        object.__setattr__(
            self, "filtered_attributes", MappingProxyType(dict(filtered_attributes or {}))
        )
        object.__setattr__(self, "span_id", span_id)
        object.__setattr__(self, "trace_id", trace_id)

    @property
    def has_trace(self) -> bool:
        """True if the exemplar is linked to a trace."""
        return self.span_id is not None and self.trace_id is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert exemplar to dictionary representation."""
        return {
            "value": self.value,
            "timestamp": list(self.timestamp),
            "filtered_attributes": dict(self.filtered_attributes),
            "span_id": self.span_id,
            "trace_id": self.trace_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Exemplar:
        """Create exemplar from dictionary representation."""
        seconds, nanos = data["timestamp"]
        return cls(
            value=data["value"],
            timestamp=(seconds, nanos),
            filtered_attributes=data.get("filtered_attributes", {}),
            span_id=data.get("span_id"),
            trace_id=data.get("trace_id"),
        )
