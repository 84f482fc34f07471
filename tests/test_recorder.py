"""Tests for ExemplarRecorder."""

from __future__ import annotations

import logging
import threading

import pytest

from exemplars.core.context import TraceContext, new_trace_context
from exemplars.core.exemplar import Exemplar
from exemplars.core.filter import (
    AlwaysOffFilter,
    AlwaysOnFilter,
    ExemplarFilter,
    TraceBasedFilter,
)
from exemplars.core.recorder import ExemplarRecorder, get_recorder, set_global_recorder
from exemplars.core.reservoir import FixedSizeExemplarReservoir, simple_fixed_size_reservoir
from exemplars.core.span import SpanContext


class TestRecorderDefaults:
    """Tests for recorder construction."""

    def test_defaults(self) -> None:
        recorder = ExemplarRecorder()

        assert recorder.name == "default"
        assert isinstance(recorder.exemplar_filter, TraceBasedFilter)
        assert recorder.reservoir.max_size() == 1

    def test_custom(self) -> None:
        reservoir = simple_fixed_size_reservoir(3)
        recorder = ExemplarRecorder(reservoir=reservoir, exemplar_filter=AlwaysOnFilter(), name="latency")

        assert recorder.reservoir is reservoir
        assert isinstance(recorder.exemplar_filter, AlwaysOnFilter)
        assert recorder.name == "latency"


class TestRecord:
    """Tests for ExemplarRecorder.record()."""

    def test_uses_active_context(self) -> None:
        """Test that the current span is captured when no context is passed."""
        recorder = ExemplarRecorder()

        with new_trace_context() as ctx, ctx.start_span() as span:
            assert recorder.record(0.5, {"route": "/users"}, timestamp=(1, 2)) is True

        assert recorder.collect({"route": "/users"}) == [
            Exemplar(0.5, (1, 2), {}, span_id=span.span_id, trace_id=span.trace_id)
        ]

    def test_explicit_context(self) -> None:
        recorder = ExemplarRecorder()
        span = SpanContext.generate()

        recorder.record(3, context=span, timestamp=(0, 0))

        [exemplar] = recorder.collect()
        assert exemplar.span_id == span.span_id

    def test_fills_in_timestamp(self) -> None:
        recorder = ExemplarRecorder(exemplar_filter=AlwaysOnFilter())
        recorder.record(1)

        [exemplar] = recorder.collect()
        assert exemplar.timestamp[0] > 1_600_000_000

    def test_trace_based_filter_skips_untraced(self) -> None:
        """Test that untraced measurements are not offered by default."""
        recorder = ExemplarRecorder()
        assert recorder.record(1, {"a": 1}) is False
        assert recorder.collect() == []

    def test_unsampled_trace_skipped(self) -> None:
        recorder = ExemplarRecorder()
        ctx = TraceContext(sampled=False)
        with ctx.start_span():
            assert recorder.record(1, context=ctx) is False

    def test_always_off(self) -> None:
        recorder = ExemplarRecorder(exemplar_filter=AlwaysOffFilter())
        with new_trace_context() as ctx, ctx.start_span():
            assert recorder.record(1) is False
        assert recorder.collect() == []

    def test_failing_filter_drops_measurement(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that a filter raising an exception drops the measurement."""

        class BrokenFilter(ExemplarFilter):
            def should_sample(self, value, timestamp, attributes, context) -> bool:
                raise RuntimeError("filter unavailable")

        recorder = ExemplarRecorder(exemplar_filter=BrokenFilter(), name="latency")

        with caplog.at_level(logging.DEBUG, logger="exemplars.core.recorder"):
            assert recorder.record(1, {"a": 1}, timestamp=(0, 0)) is False

        assert recorder.collect() == []
        assert "Exemplar filter failed for 'latency'" in caplog.text
        assert "filter unavailable" in caplog.text

    def test_always_on_without_trace(self) -> None:
        recorder = ExemplarRecorder(exemplar_filter=AlwaysOnFilter())
        assert recorder.record(7, {"a": 1}, timestamp=(5, 0)) is True
        assert recorder.collect() == [Exemplar(7, (5, 0), {"a": 1})]


class TestCollect:
    """Tests for ExemplarRecorder.collect()."""

    def test_collect_resets(self) -> None:
        recorder = ExemplarRecorder(exemplar_filter=AlwaysOnFilter())
        recorder.record(1, timestamp=(0, 0))

        assert len(recorder.collect()) == 1
        assert recorder.collect() == []

    def test_logs_count(self, caplog: pytest.LogCaptureFixture) -> None:
        recorder = ExemplarRecorder(exemplar_filter=AlwaysOnFilter(), name="latency")
        recorder.record(1, timestamp=(0, 0))

        with caplog.at_level(logging.DEBUG, logger="exemplars.core.recorder"):
            recorder.collect()

        assert "Collected 1 exemplars for 'latency'" in caplog.text

    def test_concurrent_record_and_collect(self) -> None:
        """Test that records racing collections are each reported exactly once."""
        recorder = ExemplarRecorder(
            reservoir=FixedSizeExemplarReservoir(20_000, lambda v, t, a, c: v),
            exemplar_filter=AlwaysOnFilter(),
        )
        collected: list[Exemplar] = []
        done = threading.Event()

        def produce(offset: int) -> None:
            for i in range(1000):
                recorder.record(offset + i, timestamp=(0, 0))

        def collect() -> None:
            while not done.is_set():
                collected.extend(recorder.collect())

        collector = threading.Thread(target=collect)
        collector.start()
        producers = [threading.Thread(target=produce, args=(n * 5000,)) for n in range(3)]
        for thread in producers:
            thread.start()
        for thread in producers:
            thread.join()
        done.set()
        collector.join()
        collected.extend(recorder.collect())

        assert sorted(e.value for e in collected) == sorted(
            n * 5000 + i for n in range(3) for i in range(1000)
        )


class TestGlobalRecorder:
    """Tests for the global recorder helpers."""

    def test_none_by_default(self) -> None:
        assert get_recorder() is None

    def test_set_global(self) -> None:
        recorder = ExemplarRecorder()
        recorder.set_global()
        assert get_recorder() is recorder

    def test_set_global_recorder(self) -> None:
        recorder = ExemplarRecorder()
        set_global_recorder(recorder)
        assert get_recorder() is recorder
        set_global_recorder(None)
        assert get_recorder() is None
