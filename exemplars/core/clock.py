"""Clock utilities for consistent time handling.

Measurement timestamps are carried as ``HrTime`` tuples of
``(seconds, nanoseconds)`` since the Unix epoch. This keeps full nanosecond
precision without relying on float arithmetic.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Tuple

HrTime = Tuple[int, int]

NANOS_PER_SECOND = 1_000_000_000

ZERO_HR_TIME: HrTime = (0, 0)


def ns_to_hr_time(ns: int) -> HrTime:
    """Convert nanoseconds since the epoch to an HrTime tuple.

    Args:
        ns: Nanoseconds since the Unix epoch

    Returns:
        ``(seconds, nanoseconds)`` with ``0 <= nanoseconds < 1e9``

    Example:
        >>> ns_to_hr_time(1_500_000_000)
        (1, 500000000)
    """
    seconds, nanos = divmod(ns, NANOS_PER_SECOND)
    return (seconds, nanos)


def hr_time_to_ns(t: HrTime) -> int:
    """Convert an HrTime tuple to nanoseconds since the epoch.

    Example:
        >>> hr_time_to_ns((1, 500000000))
        1500000000
    """
    seconds, nanos = t
    return seconds * NANOS_PER_SECOND + nanos


def hr_time() -> HrTime:
    """Get the current wall-clock time as an HrTime tuple.

    Returns:
        Current time as ``(seconds, nanoseconds)``
    """
    return ns_to_hr_time(time.time_ns())


def is_hr_time(value: Any) -> bool:
    """Check whether a value looks like a normalised HrTime tuple."""
    return (
        isinstance(value, tuple)
        and len(value) == 2
        and all(isinstance(part, int) and not isinstance(part, bool) for part in value)
        and 0 <= value[1] < NANOS_PER_SECOND
    )


def monotonic_ns() -> int:
    """Get monotonic time in nanoseconds.

    This is useful for measuring durations as it's not affected by
    system clock adjustments.

    Returns:
        Monotonic time in nanoseconds
    """
    return time.perf_counter_ns()


def format_hr_time(t: HrTime) -> str:
    """Format an HrTime tuple as an ISO 8601 string in UTC.

    Sub-microsecond precision is truncated by ``datetime``.

    Example:
        >>> format_hr_time((1705321845, 123456000))
        '2024-01-15T12:30:45.123456+00:00'
    """
    seconds, nanos = t
    dt = datetime.fromtimestamp(seconds, tz=timezone.utc).replace(microsecond=nanos // 1000)
    return dt.isoformat()
