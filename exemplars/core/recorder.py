"""Recorder that feeds measurements of one metric stream into an exemplar reservoir."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any

from exemplars.core.clock import HrTime, hr_time
from exemplars.core.context import get_current_context
from exemplars.core.exemplar import Attributes, Exemplar, Value
from exemplars.core.filter import ExemplarFilter, TraceBasedFilter
from exemplars.core.reservoir import ExemplarReservoir, simple_fixed_size_reservoir

logger = logging.getLogger(__name__)

# Global recorder instance
_global_recorder: ExemplarRecorder | None = None


class ExemplarRecorder:
    """
    Owns the exemplar reservoir of a metric stream.

    The recorder is responsible for:
    - Filling in the active trace context and timestamp of each measurement
    - Applying the exemplar filter
    - Serialising offers against the periodic collection

    Example:
        ```python
        from exemplars.core.context import new_trace_context
        from exemplars.core.recorder import ExemplarRecorder
        from exemplars.core.reservoir import simple_fixed_size_reservoir

        recorder = ExemplarRecorder(reservoir=simple_fixed_size_reservoir(4))

        with new_trace_context() as ctx, ctx.start_span():
            recorder.record(0.25, {"route": "/users", "status": 200})

        # Once per export cycle
        exemplars = recorder.collect({"route": "/users"})
        ```
    """

    def __init__(
        self,
        reservoir: ExemplarReservoir | None = None,
        exemplar_filter: ExemplarFilter | None = None,
        name: str = "default",
    ):
        """
        Initialize a recorder.

        Args:
            reservoir: Reservoir to offer measurements to
                (default: single-slot simple reservoir)
            exemplar_filter: Filter applied before offering (default: TraceBasedFilter)
            name: Name of the metric stream, used in log messages
        """
        self.name = name
        self.reservoir = reservoir if reservoir is not None else simple_fixed_size_reservoir(1)
        self.exemplar_filter = exemplar_filter or TraceBasedFilter()
        self._lock = Lock()

    def record(
        self,
        value: Value,
        attributes: Attributes | None = None,
        context: Any = None,
        timestamp: HrTime | None = None,
    ) -> bool:
        """
        Record one measurement as an exemplar candidate.

        Args:
            value: The measured value
            attributes: Measurement attributes
            context: Trace context (default: the currently active context)
            timestamp: When the measurement was taken (default: now)

        Returns:
            True if the measurement passed the filter and was offered.
            A filter that raises counts as rejecting the measurement.
        """
        if context is None:
            context = get_current_context()
        if timestamp is None:
            timestamp = hr_time()
        attributes = attributes or {}

        try:
            sampled = self.exemplar_filter.should_sample(value, timestamp, attributes, context)
        except Exception as e:
            logger.debug("Exemplar filter failed for '%s', dropping measurement: %s", self.name, e)
            return False
        if not sampled:
            return False

        with self._lock:
            self.reservoir.offer_measurement(value, timestamp, attributes, context)
        return True

    def collect(self, point_attributes: Attributes | None = None) -> list[Exemplar]:
        """
        Drain the reservoir for the current period.

        Args:
            point_attributes: Attributes of the metric point being exported

        Returns:
            Retained exemplars ordered by slot index
        """
        with self._lock:
            exemplars = self.reservoir.collect_and_reset(point_attributes)
        logger.debug("Collected %d exemplars for '%s'", len(exemplars), self.name)
        return exemplars

    def set_global(self) -> None:
        """Set this recorder as the global default."""
        global _global_recorder
        _global_recorder = self


def get_recorder() -> ExemplarRecorder | None:
    """
    Get the global recorder instance.

    Returns:
        ExemplarRecorder | None: The global recorder, or None if none is set
    """
    return _global_recorder


def set_global_recorder(recorder: ExemplarRecorder | None) -> None:
    """
    Set the global recorder instance.

    Args:
        recorder: The recorder to set as global, or None to clear it
    """
    global _global_recorder
    _global_recorder = recorder
