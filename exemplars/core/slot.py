"""Single-capacity holder for one pending exemplar candidate."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from exemplars.core.clock import HrTime
from exemplars.core.context import get_span_context
from exemplars.core.exemplar import Attributes, Exemplar, Value

_SCALAR_TYPES = (str, bytes, int, float)


class SlotState(Enum):
    """Occupancy of a slot."""

    EMPTY = "empty"
    OCCUPIED = "occupied"


@dataclass(frozen=True)
class _Candidate:
    """The fields captured by the latest offer into an occupied slot."""

    __slots__ = ("value", "timestamp", "attributes", "span_id", "trace_id")

    value: Value
    timestamp: HrTime
    attributes: dict[str, Any]
    span_id: str | None
    trace_id: str | None


def same_attribute_value(point_value: Any, value: Any) -> bool:
    """Shallow comparison used to decide whether a point already implies an attribute.

    Scalars compare by value, except that a ``bool`` never matches a number.
    Anything else (lists, tuples, other objects) compares by identity, so a
    structurally equal but distinct container is not considered the same.
    """
    if isinstance(point_value, _SCALAR_TYPES) and isinstance(value, _SCALAR_TYPES):
        if isinstance(point_value, bool) != isinstance(value, bool):
            return False
        return point_value == value
    return point_value is value


class Slot:
    """Holds at most one measurement offered during the current period.

    An offer into an occupied slot overwrites it (last write wins). Reading
    with ``get_and_reset`` always leaves the slot empty.

    A slot does no locking of its own. Offers and reads touch several fields,
    so the owner of the slot must serialise them.
    """

    __slots__ = ("_candidate",)

    def __init__(self) -> None:
        self._candidate: _Candidate | None = None

    @property
    def state(self) -> SlotState:
        """Current occupancy of the slot."""
        return SlotState.EMPTY if self._candidate is None else SlotState.OCCUPIED

    @property
    def is_empty(self) -> bool:
        return self._candidate is None

    def offer(self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any) -> None:
        """Store a measurement, replacing any unread one.

        Args:
            value: The measured value
            timestamp: When the measurement was recorded
            attributes: Full measurement attributes (copied, never mutated)
            context: Trace context active at record time, or None
        """
        span_context = get_span_context(context)
        self._candidate = _Candidate(
            value=value,
            timestamp=timestamp,
            attributes=dict(attributes) if attributes else {},
            span_id=span_context.span_id if span_context else None,
            trace_id=span_context.trace_id if span_context else None,
        )

    def get_and_reset(self, point_attributes: Attributes) -> Exemplar | None:
        """Turn the pending measurement into an exemplar and empty the slot.

        Attributes whose value is the same as the point's value for that key
        are dropped from the exemplar (see ``same_attribute_value``).

        Args:
            point_attributes: Attributes of the metric point being collected

        Returns:
            The exemplar, or None if the slot was empty
        """
        candidate = self._candidate
        if candidate is None:
            return None
        self._candidate = None

        filtered = {
            key: value
            for key, value in candidate.attributes.items()
            if not (key in point_attributes and same_attribute_value(point_attributes[key], value))
        }
        return Exemplar(
            value=candidate.value,
            timestamp=candidate.timestamp,
            filtered_attributes=filtered,
            span_id=candidate.span_id,
            trace_id=candidate.trace_id,
        )
