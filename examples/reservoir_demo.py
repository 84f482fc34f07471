#!/usr/bin/env python3
"""Demonstration of fixed-size exemplar reservoirs.

Shows how measurements recorded inside a span become exemplars, how
attributes already present on the aggregated point are filtered out, and
how a custom selector decides which slot a measurement lands in.
"""

import random

import exemplars
from exemplars import (
    DROP,
    AlwaysOnFilter,
    ExemplarRecorder,
    FixedSizeExemplarReservoir,
    simple_fixed_size_reservoir,
)

print("=" * 60)
print("Exemplar Reservoir Demo")
print("=" * 60)

# 1. Record inside a trace
print("\n1. Recording measurements inside a span...")
recorder = exemplars.configure(reservoir_size=2, seed=42)

with exemplars.new_trace_context() as ctx, ctx.start_span() as span:
    recorder.record(0.120, {"http.route": "/users", "http.status_code": 200})
    recorder.record(0.480, {"http.route": "/users", "http.status_code": 500})

print(f"✓ Active span: trace={span.trace_id} span={span.span_id}")

# 2. Collect against the point's attributes
print("\n2. Collecting for the point {'http.route': '/users'}...")
for exemplar in recorder.collect({"http.route": "/users"}):
    print(
        f"   value={exemplar.value} "
        f"filtered={dict(exemplar.filtered_attributes)} "
        f"trace={exemplar.trace_id[:8]}..."
    )

print(f"✓ Reservoir is empty after collection: {recorder.collect() == []}")

# 3. Untraced measurements are skipped by the default filter
print("\n3. Recording outside any span...")
offered = recorder.record(1.5, {"http.route": "/users"})
print(f"✓ Offered to reservoir: {offered}")

# 4. Uniform sampling over many measurements
print("\n4. Sampling 10,000 measurements into 4 slots...")
sampler = ExemplarRecorder(
    reservoir=simple_fixed_size_reservoir(4, rng=random.Random(7)),
    exemplar_filter=AlwaysOnFilter(),
)
for i in range(10_000):
    sampler.record(i)

print(f"✓ Kept values: {sorted(e.value for e in sampler.collect())}")

# 5. A custom selector: keep only the last measurement per status class
print("\n5. Custom selector keyed by status class...")


def by_status_class(value, timestamp, attributes, context):
    status = attributes.get("http.status_code")
    if status is None:
        return DROP
    return min(status // 100, 5) - 2  # 2xx -> 0, 3xx -> 1, 4xx -> 2, 5xx -> 3


reservoir = FixedSizeExemplarReservoir(4, by_status_class)
for value, status in [(0.1, 200), (0.2, 404), (0.3, 503), (0.4, 201), (0.5, None)]:
    reservoir.offer_measurement(value, (0, 0), {"http.status_code": status}, None)

for exemplar in reservoir.collect_and_reset():
    print(f"   status={exemplar.filtered_attributes['http.status_code']} value={exemplar.value}")

print("\n" + "=" * 60)
print("Demo complete!")
print("=" * 60)
