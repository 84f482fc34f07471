"""Exemplar reservoirs.

A reservoir retains a bounded, representative set of measurements for one
metric stream during a collection period. Producers call
``offer_measurement`` as measurements are recorded; once per period the
collector calls ``collect_and_reset`` to drain the retained exemplars and
start a new period.
"""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Sequence
from threading import Lock
from typing import Any

from exemplars.core.clock import HrTime
from exemplars.core.exemplar import Attributes, Exemplar, Value
from exemplars.core.selector import (
    AlignedHistogramBucketSelector,
    BaseSelector,
    FunctionSelector,
    IndexFunction,
    SimpleFixedSizeSelector,
)
from exemplars.core.slot import Slot

logger = logging.getLogger(__name__)


class ExemplarReservoir(ABC):
    """Abstract base class for exemplar reservoirs."""

    @abstractmethod
    def offer_measurement(
        self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any
    ) -> None:
        """Offer a measurement to be sampled.

        Args:
            value: The measured value
            timestamp: When the measurement was recorded
            attributes: Full measurement attributes
            context: Trace context active at record time, or None
        """
        pass

    @abstractmethod
    def collect_and_reset(self, point_attributes: Attributes | None = None) -> list[Exemplar]:
        """Return the accumulated exemplars and reset for the next period.

        Args:
            point_attributes: Attributes of the metric point the exemplars belong to

        Returns:
            Retained exemplars, possibly empty
        """
        pass

    @abstractmethod
    def max_size(self) -> int:
        """Return the most exemplars a single collection can produce."""
        pass


class FixedSizeExemplarReservoir(ExemplarReservoir):
    """Reservoir backed by a fixed number of slots.

    Placement is delegated to a selector. An index outside ``[0, size)``,
    including ``DROP``, discards the measurement without touching any slot.
    Selectors that raise are treated as having returned ``DROP``: recording a
    measurement must never fail because of exemplar sampling.

    This class does no locking. Owners that offer and collect from different
    threads must serialise the two, for example with
    ``SynchronizedExemplarReservoir``. Concurrent offers to the same slot
    resolve to whichever write lands last.

    Example:
        ```python
        reservoir = FixedSizeExemplarReservoir(4, SimpleFixedSizeSelector(4))
        reservoir.offer_measurement(0.25, hr_time(), {"route": "/users"}, ctx)
        exemplars = reservoir.collect_and_reset({"route": "/users"})
        ```
    """

    def __init__(self, size: int, selector: BaseSelector | IndexFunction) -> None:
        """Initialize the reservoir.

        Args:
            size: Number of slots, fixed for the lifetime of the reservoir
            selector: Selector instance, or a plain
                ``(value, timestamp, attributes, context) -> int`` function

        Raises:
            TypeError: If size is not an int or selector is not callable
            ValueError: If size is negative
        """
        if isinstance(size, bool) or not isinstance(size, int):
            raise TypeError(f"Reservoir size must be an int, got {type(size).__name__}")
        if size < 0:
            raise ValueError(f"Reservoir size must be non-negative, got {size}")
        if not isinstance(selector, BaseSelector):
            if not callable(selector):
                raise TypeError(f"Selector must be callable, got {type(selector).__name__}")
            selector = FunctionSelector(selector, size=size)

        self._size = size
        self._selector = selector
        self._slots = [Slot() for _ in range(size)]

    @property
    def selector(self) -> BaseSelector:
        return self._selector

    def max_size(self) -> int:
        """Return the number of slots."""
        return self._size

    def _index_for(self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any) -> int | None:
        try:
            index = self._selector.index_for(value, timestamp, attributes, context)
        except Exception as e:
            logger.debug("Exemplar selector failed, dropping measurement: %s", e)
            return None

        if isinstance(index, bool) or not isinstance(index, int):
            return None
        if not 0 <= index < self._size:
            return None
        return index

    def offer_measurement(
        self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any
    ) -> None:
        """Offer a measurement to the slot the selector picks, if any."""
        index = self._index_for(value, timestamp, attributes, context)
        if index is not None:
            self._slots[index].offer(value, timestamp, attributes, context)

    def reset(self) -> None:
        """Clear the selector's per-period state.

        Called at the end of every ``collect_and_reset``.
        """
        self._selector.reset()

    def collect_and_reset(self, point_attributes: Attributes | None = None) -> list[Exemplar]:
        """Drain every slot in index order and start a new period.

        Args:
            point_attributes: Attributes of the metric point; measurement
                attributes with the same value are left out of each exemplar

        Returns:
            One exemplar per occupied slot, ordered by slot index
        """
        point = point_attributes or {}
        exemplars: list[Exemplar] = []
        for slot in self._slots:
            exemplar = slot.get_and_reset(point)
            if exemplar is not None:
                exemplars.append(exemplar)

        try:
            self.reset()
        except Exception as e:
            logger.warning("Failed to reset exemplar selector %r: %s", self._selector, e)

        return exemplars


class SynchronizedExemplarReservoir(ExemplarReservoir):
    """Wraps a reservoir so offers and collections never interleave.

    All calls share one lock, which makes a reservoir safe to use from many
    recording threads and one collecting thread.
    """

    def __init__(self, reservoir: ExemplarReservoir) -> None:
        self.reservoir = reservoir
        self._lock = Lock()

    def max_size(self) -> int:
        return self.reservoir.max_size()

    def offer_measurement(
        self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any
    ) -> None:
        with self._lock:
            self.reservoir.offer_measurement(value, timestamp, attributes, context)

    def collect_and_reset(self, point_attributes: Attributes | None = None) -> list[Exemplar]:
        with self._lock:
            return self.reservoir.collect_and_reset(point_attributes)


def simple_fixed_size_reservoir(
    size: int, rng: random.Random | None = None
) -> FixedSizeExemplarReservoir:
    """Create a reservoir that samples uniformly across each period.

    Args:
        size: Number of exemplars to keep per period
        rng: Random source for the selector

    Returns:
        Reservoir using ``SimpleFixedSizeSelector``
    """
    return FixedSizeExemplarReservoir(size, SimpleFixedSizeSelector(size, rng=rng))


def aligned_histogram_bucket_reservoir(
    boundaries: Sequence[float],
    per_bucket: int = 1,
    rng: random.Random | None = None,
) -> FixedSizeExemplarReservoir:
    """Create a reservoir whose slots follow explicit histogram buckets.

    Args:
        boundaries: Strictly increasing bucket upper boundaries
        per_bucket: Exemplars to keep per bucket per period
        rng: Random source for the selector

    Returns:
        Reservoir with ``(len(boundaries) + 1) * per_bucket`` slots
    """
    selector = AlignedHistogramBucketSelector(boundaries, per_bucket=per_bucket, rng=rng)
    return FixedSizeExemplarReservoir(selector.size, selector)
