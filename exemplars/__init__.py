"""Exemplars - trace-linked measurement sampling for metric streams."""

from __future__ import annotations

import logging
import os
import random
from collections.abc import Sequence

from exemplars._version import __version__
from exemplars.core.clock import HrTime, hr_time
from exemplars.core.context import (
    TraceContext,
    get_current_span,
    get_span_context,
    new_trace_context,
)
from exemplars.core.exemplar import Exemplar
from exemplars.core.filter import (
    AlwaysOffFilter,
    AlwaysOnFilter,
    ExemplarFilter,
    TraceBasedFilter,
    filter_from_name,
)
from exemplars.core.recorder import ExemplarRecorder, get_recorder, set_global_recorder
from exemplars.core.reservoir import (
    ExemplarReservoir,
    FixedSizeExemplarReservoir,
    SynchronizedExemplarReservoir,
    aligned_histogram_bucket_reservoir,
    simple_fixed_size_reservoir,
)
from exemplars.core.selector import (
    DROP,
    AlignedHistogramBucketSelector,
    BaseSelector,
    FunctionSelector,
    SimpleFixedSizeSelector,
)
from exemplars.core.span import SpanContext

__all__ = [
    # Version
    "__version__",
    # Main API
    "configure",
    "build_reservoir",
    "parse_boundaries",
    "ExemplarRecorder",
    "get_recorder",
    "set_global_recorder",
    "Exemplar",
    # Reservoirs
    "ExemplarReservoir",
    "FixedSizeExemplarReservoir",
    "SynchronizedExemplarReservoir",
    "simple_fixed_size_reservoir",
    "aligned_histogram_bucket_reservoir",
    # Selectors
    "DROP",
    "BaseSelector",
    "FunctionSelector",
    "SimpleFixedSizeSelector",
    "AlignedHistogramBucketSelector",
    # Filters
    "ExemplarFilter",
    "AlwaysOnFilter",
    "AlwaysOffFilter",
    "TraceBasedFilter",
    "filter_from_name",
    # Context
    "SpanContext",
    "TraceContext",
    "get_current_span",
    "get_span_context",
    "new_trace_context",
    "HrTime",
    "hr_time",
]

DEFAULT_RESERVOIR_SIZE = 1
DEFAULT_STRATEGY = "simple"
DEFAULT_FILTER = "trace_based"
DEFAULT_BOUNDARIES = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
STRATEGIES = ("simple", "histogram")


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def parse_boundaries(raw: str) -> list[float]:
    """Parse a comma-separated list of histogram boundaries.

    Args:
        raw: Boundaries such as ``"0.1, 0.5, 1"``

    Returns:
        The boundaries as floats

    Raises:
        ValueError: If any entry is not a number
    """
    parts = [part.strip() for part in raw.split(",") if part.strip()]
    try:
        return [float(part) for part in parts]
    except ValueError:
        raise ValueError(f"Invalid histogram boundaries: {raw!r}") from None


def build_reservoir(
    strategy: str = DEFAULT_STRATEGY,
    reservoir_size: int = DEFAULT_RESERVOIR_SIZE,
    boundaries: Sequence[float] | None = None,
    per_bucket: int = 1,
    seed: int | None = None,
) -> FixedSizeExemplarReservoir:
    """Create a reservoir for a named sampling strategy.

    Args:
        strategy: "simple" (uniform sampling) or "histogram" (bucket-aligned)
        reservoir_size: Number of slots for the simple strategy
        boundaries: Bucket boundaries for the histogram strategy
        per_bucket: Slots per bucket for the histogram strategy
        seed: Seed for the selector's random source

    Returns:
        The configured reservoir

    Raises:
        ValueError: If the strategy is unknown or its settings are invalid
    """
    rng = random.Random(seed) if seed is not None else None
    if strategy == "simple":
        return simple_fixed_size_reservoir(reservoir_size, rng=rng)
    if strategy == "histogram":
        return aligned_histogram_bucket_reservoir(
            boundaries if boundaries is not None else DEFAULT_BOUNDARIES,
            per_bucket=per_bucket,
            rng=rng,
        )
    raise ValueError(f"Unknown strategy: {strategy}. Use one of: {', '.join(STRATEGIES)}")


def configure(
    reservoir_size: int | None = None,
    strategy: str | None = None,
    boundaries: Sequence[float] | None = None,
    per_bucket: int | None = None,
    exemplar_filter: str | ExemplarFilter | None = None,
    seed: int | None = None,
    name: str = "default",
) -> ExemplarRecorder:
    """
    Configure exemplar sampling with one call.

    Builds a reservoir and filter from the arguments (falling back to
    environment variables), wraps them in an ExemplarRecorder, and installs
    it as the global recorder.

    Args:
        reservoir_size: Slots for the simple strategy (default: $EXEMPLARS_RESERVOIR_SIZE or 1)
        strategy: "simple" or "histogram" (default: $EXEMPLARS_STRATEGY or "simple")
        boundaries: Histogram bucket boundaries
            (default: $EXEMPLARS_BOUNDARIES or Prometheus-style buckets)
        per_bucket: Slots per histogram bucket (default: $EXEMPLARS_PER_BUCKET or 1)
        exemplar_filter: Filter name or instance (default: $EXEMPLARS_FILTER or "trace_based")
        seed: Seed for reproducible sampling (default: $EXEMPLARS_SEED, unseeded)
        name: Name of the metric stream

    Returns:
        Configured ExemplarRecorder (also set as global recorder)

    Environment Variables:
        EXEMPLARS_RESERVOIR_SIZE: Default reservoir size
        EXEMPLARS_STRATEGY: Default strategy ("simple" or "histogram")
        EXEMPLARS_BOUNDARIES: Comma-separated histogram boundaries
        EXEMPLARS_PER_BUCKET: Default slots per histogram bucket
        EXEMPLARS_FILTER: Default filter ("always_on", "always_off", "trace_based")
        EXEMPLARS_SEED: Seed for the selector's random source
        EXEMPLARS_DEBUG: Enable debug logging ("true" or "false")

    Example:
        ```python
        import exemplars

        recorder = exemplars.configure(strategy="histogram", boundaries=[0.1, 0.5, 1.0])

        with exemplars.new_trace_context() as ctx, ctx.start_span():
            recorder.record(0.42, {"route": "/users"})

        for exemplar in recorder.collect({"route": "/users"}):
            print(exemplar.value, exemplar.trace_id)
        ```
    """
    # Read from environment variables with fallbacks
    if reservoir_size is None:
        reservoir_size = _env_int("EXEMPLARS_RESERVOIR_SIZE")
    if reservoir_size is None:
        reservoir_size = DEFAULT_RESERVOIR_SIZE

    strategy = (strategy or os.getenv("EXEMPLARS_STRATEGY") or DEFAULT_STRATEGY).lower()

    if boundaries is None and os.getenv("EXEMPLARS_BOUNDARIES"):
        boundaries = parse_boundaries(os.environ["EXEMPLARS_BOUNDARIES"])

    if per_bucket is None:
        per_bucket = _env_int("EXEMPLARS_PER_BUCKET")
    if per_bucket is None:
        per_bucket = 1

    if seed is None:
        seed = _env_int("EXEMPLARS_SEED")

    if exemplar_filter is None:
        exemplar_filter = os.getenv("EXEMPLARS_FILTER", DEFAULT_FILTER)
    if isinstance(exemplar_filter, str):
        exemplar_filter = filter_from_name(exemplar_filter)

    debug = os.getenv("EXEMPLARS_DEBUG", "false").lower() in ("true", "1", "yes")

    # Configure debug logging if requested
    if debug:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s - %(name)s - %(message)s")
        logging.getLogger("exemplars").setLevel(logging.DEBUG)

    reservoir = build_reservoir(
        strategy=strategy,
        reservoir_size=reservoir_size,
        boundaries=boundaries,
        per_bucket=per_bucket,
        seed=seed,
    )
    recorder = ExemplarRecorder(reservoir=reservoir, exemplar_filter=exemplar_filter, name=name)
    recorder.set_global()

    if debug:
        logging.getLogger("exemplars").debug(
            "Configured '%s' recorder: strategy=%s, slots=%d, filter=%s",
            name,
            strategy,
            reservoir.max_size(),
            type(exemplar_filter).__name__,
        )

    return recorder
