"""Index selection strategies for fixed-size exemplar reservoirs.

A selector decides which reservoir slot, if any, a measurement should be
stored in. Selectors return an index in ``[0, size)`` to keep a measurement
or ``DROP`` to discard it. Selectors may keep per-period state (such as a
count of measurements seen), which the reservoir clears through ``reset()``
after every collection.
"""

from __future__ import annotations

import bisect
import math
import random
from abc import ABC, abstractmethod
from collections.abc import Sequence
from threading import Lock
from typing import Any, Callable

from exemplars.core.clock import HrTime
from exemplars.core.exemplar import Attributes, Value

# Index returned when a measurement should not be retained
DROP = -1

IndexFunction = Callable[[Value, HrTime, Attributes, Any], int]


class BaseSelector(ABC):
    """Abstract base class for reservoir index selectors."""

    #: Number of slots this selector addresses, or None if unknown
    size: int | None = None

    @abstractmethod
    def index_for(self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any) -> int:
        """Choose the slot for a measurement.

        Args:
            value: The measured value
            timestamp: When the measurement was recorded
            attributes: Measurement attributes
            context: Trace context active at record time, or None

        Returns:
            Slot index in ``[0, size)``, or DROP to discard the measurement
        """
        pass

    def reset(self) -> None:
        """Clear per-period state. Called after every collection."""

    def __call__(self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any) -> int:
        return self.index_for(value, timestamp, attributes, context)


class FunctionSelector(BaseSelector):
    """Adapts a plain ``(value, timestamp, attributes, context) -> int`` function.

    The function holds no period state, so ``reset()`` does nothing.
    """

    def __init__(self, func: IndexFunction, size: int | None = None) -> None:
        """Initialize the selector.

        Args:
            func: Function returning a slot index or DROP
            size: Number of slots the function addresses, if known
        """
        self.func = func
        self.size = size

    def index_for(self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any) -> int:
        return self.func(value, timestamp, attributes, context)


def _validate_capacity(name: str, capacity: int) -> None:
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        raise TypeError(f"{name} must be an int, got {type(capacity).__name__}")
    if capacity < 0:
        raise ValueError(f"{name} must be non-negative, got {capacity}")


class SimpleFixedSizeSelector(BaseSelector):
    """Uniform reservoir sampling (Algorithm R) over one collection period.

    The first ``size`` measurements of a period fill slots ``0..size-1`` in
    arrival order. The n-th measurement after that replaces a uniformly
    chosen slot with probability ``size / n`` and is dropped otherwise, so
    every measurement of the period is equally likely to survive.
    """

    def __init__(self, size: int, rng: random.Random | None = None) -> None:
        """Initialize the selector.

        Args:
            size: Number of reservoir slots
            rng: Random source (default: a new unseeded ``random.Random``)

        Raises:
            TypeError: If size is not an int
            ValueError: If size is negative
        """
        _validate_capacity("size", size)
        self.size = size
        self._random = rng or random.Random()
        self._measurements_seen = 0
        self._lock = Lock()

    @property
    def measurements_seen(self) -> int:
        """Number of measurements offered since the last reset."""
        return self._measurements_seen

    def index_for(self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any) -> int:
        """Pick a slot using Algorithm R.

        Returns:
            Slot index, or DROP if the measurement loses the draw
        """
        with self._lock:
            seen = self._measurements_seen
            self._measurements_seen += 1
            if seen < self.size:
                return seen
            index = self._random.randrange(seen + 1)

        return index if index < self.size else DROP

    def reset(self) -> None:
        with self._lock:
            self._measurements_seen = 0


class AlignedHistogramBucketSelector(BaseSelector):
    """Keeps exemplars aligned with the buckets of an explicit-bucket histogram.

    A value falls in the first bucket whose upper boundary is greater than or
    equal to it; values above the last boundary fall in the overflow bucket.
    Bucket ``b`` owns slots ``[b * per_bucket, (b + 1) * per_bucket)`` and
    samples its own measurements with Algorithm R, so every bucket that saw a
    measurement in the period contributes at least one exemplar.
    """

    def __init__(
        self,
        boundaries: Sequence[float],
        per_bucket: int = 1,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the selector.

        Args:
            boundaries: Strictly increasing bucket upper boundaries
            per_bucket: Number of slots reserved for each bucket
            rng: Random source (default: a new unseeded ``random.Random``)

        Raises:
            ValueError: If boundaries are not strictly increasing or contain NaN,
                or per_bucket is negative
            TypeError: If per_bucket is not an int
        """
        _validate_capacity("per_bucket", per_bucket)
        bounds = [float(b) for b in boundaries]
        if any(math.isnan(b) for b in bounds):
            raise ValueError("Histogram boundaries must not contain NaN")
        if any(lower >= upper for lower, upper in zip(bounds, bounds[1:])):
            raise ValueError(f"Histogram boundaries must be strictly increasing, got {bounds}")

        self.boundaries = tuple(bounds)
        self.per_bucket = per_bucket
        self.size = (len(bounds) + 1) * per_bucket
        self._random = rng or random.Random()
        self._bucket_seen = [0] * (len(bounds) + 1)
        self._lock = Lock()

    def bucket_for(self, value: Value) -> int:
        """Return the histogram bucket index for a value."""
        return bisect.bisect_left(self.boundaries, value)

    def index_for(self, value: Value, timestamp: HrTime, attributes: Attributes, context: Any) -> int:
        """Pick a slot inside the value's bucket range.

        Returns:
            Slot index, or DROP if the value is NaN or loses the draw
        """
        if self.per_bucket == 0 or math.isnan(value):
            return DROP

        bucket = self.bucket_for(value)
        with self._lock:
            seen = self._bucket_seen[bucket]
            self._bucket_seen[bucket] += 1
            if seen < self.per_bucket:
                position = seen
            else:
                position = self._random.randrange(seen + 1)

        if position >= self.per_bucket:
            return DROP
        return bucket * self.per_bucket + position

    def reset(self) -> None:
        with self._lock:
            self._bucket_seen = [0] * len(self._bucket_seen)
