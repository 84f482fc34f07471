"""Core exemplar sampling primitives."""

from exemplars.core.clock import (
    HrTime,
    format_hr_time,
    hr_time,
    hr_time_to_ns,
    monotonic_ns,
    ns_to_hr_time,
)
from exemplars.core.context import (
    TraceContext,
    copy_context_to_thread,
    get_current_context,
    get_current_span,
    get_span_context,
    new_trace_context,
    reset_context,
    set_context,
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
from exemplars.core.slot import Slot, SlotState
from exemplars.core.span import SpanContext, generate_span_id, generate_trace_id

__all__ = [
    "HrTime",
    "hr_time",
    "ns_to_hr_time",
    "hr_time_to_ns",
    "format_hr_time",
    "monotonic_ns",
    "SpanContext",
    "generate_trace_id",
    "generate_span_id",
    "TraceContext",
    "get_current_context",
    "get_current_span",
    "get_span_context",
    "set_context",
    "reset_context",
    "new_trace_context",
    "copy_context_to_thread",
    "Exemplar",
    "Slot",
    "SlotState",
    "DROP",
    "BaseSelector",
    "FunctionSelector",
    "SimpleFixedSizeSelector",
    "AlignedHistogramBucketSelector",
    "ExemplarFilter",
    "AlwaysOnFilter",
    "AlwaysOffFilter",
    "TraceBasedFilter",
    "filter_from_name",
    "ExemplarReservoir",
    "FixedSizeExemplarReservoir",
    "SynchronizedExemplarReservoir",
    "simple_fixed_size_reservoir",
    "aligned_histogram_bucket_reservoir",
    "ExemplarRecorder",
    "get_recorder",
    "set_global_recorder",
]
