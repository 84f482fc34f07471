#!/usr/bin/env python3
"""Demonstration of bucket-aligned exemplars for a latency histogram.

Each histogram bucket gets its own slot, so slow outliers keep an exemplar
even when fast requests dominate the traffic.
"""

import random

from rich.console import Console
from rich.table import Table

from exemplars import AlwaysOnFilter, ExemplarRecorder, aligned_histogram_bucket_reservoir
from exemplars.core.context import TraceContext
from exemplars.core.span import SpanContext

console = Console()
boundaries = [0.05, 0.1, 0.5, 1.0]
rng = random.Random(3)

recorder = ExemplarRecorder(
    reservoir=aligned_histogram_bucket_reservoir(boundaries, rng=rng),
    exemplar_filter=AlwaysOnFilter(),
    name="http.server.duration",
)

console.print("\n[bold blue]Bucket-aligned exemplar demo[/bold blue]\n")

for i in range(5_000):
    latency = rng.lognormvariate(-3.0, 1.2)
    context = TraceContext()
    context.push_span(SpanContext.generate(trace_id=context.trace_id))
    recorder.record(latency, {"http.route": "/search"}, context=context, timestamp=(i, 0))

selector = recorder.reservoir.selector
table = Table(title=f"Exemplars for {recorder.name}")
table.add_column("Bucket", style="cyan")
table.add_column("Value", justify="right", style="green")
table.add_column("Trace")

for exemplar in recorder.collect({"http.route": "/search"}):
    bucket = selector.bucket_for(exemplar.value)
    upper = f"<= {boundaries[bucket]}" if bucket < len(boundaries) else f"> {boundaries[-1]}"
    table.add_row(upper, f"{exemplar.value:.4f}", exemplar.trace_id)

console.print(table)
