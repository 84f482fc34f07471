"""Tests for reservoir index selectors."""

from __future__ import annotations

import random
import threading
from collections import Counter

import pytest

from exemplars.core.selector import (
    DROP,
    AlignedHistogramBucketSelector,
    BaseSelector,
    FunctionSelector,
    SimpleFixedSizeSelector,
)

TS = (0, 0)


def offer_many(selector: BaseSelector, values: list[float]) -> list[int]:
    return [selector.index_for(value, TS, {}, None) for value in values]


class TestBaseSelector:
    """Tests for BaseSelector abstract class."""

    def test_cannot_instantiate_directly(self) -> None:
        with pytest.raises(TypeError):
            BaseSelector()  # type: ignore[abstract]

    def test_must_implement_index_for(self) -> None:
        class IncompleteSelector(BaseSelector):
            pass

        with pytest.raises(TypeError):
            IncompleteSelector()  # type: ignore[abstract]

    def test_default_reset_is_noop(self) -> None:
        class FirstSlotSelector(BaseSelector):
            def index_for(self, value, timestamp, attributes, context) -> int:  # type: ignore[no-untyped-def]
                return 0

        selector = FirstSlotSelector()
        selector.reset()
        assert selector.index_for(1, TS, {}, None) == 0

    def test_callable(self) -> None:
        """Test that selectors can be called like index functions."""
        selector = FunctionSelector(lambda v, t, a, c: 3)
        assert selector(1, TS, {}, None) == 3


class TestFunctionSelector:
    """Tests for FunctionSelector."""

    def test_passes_arguments_through(self) -> None:
        calls = []

        def index(value, timestamp, attributes, context):  # type: ignore[no-untyped-def]
            calls.append((value, timestamp, attributes, context))
            return 1

        selector = FunctionSelector(index, size=2)
        ctx = object()

        assert selector.index_for(5, (1, 2), {"a": 1}, ctx) == 1
        assert calls == [(5, (1, 2), {"a": 1}, ctx)]
        assert selector.size == 2


class TestSimpleFixedSizeSelector:
    """Tests for SimpleFixedSizeSelector."""

    def test_size_validation(self) -> None:
        with pytest.raises(ValueError, match="must be non-negative"):
            SimpleFixedSizeSelector(-1)
        with pytest.raises(TypeError, match="must be an int"):
            SimpleFixedSizeSelector(2.0)  # type: ignore[arg-type]
        with pytest.raises(TypeError, match="must be an int"):
            SimpleFixedSizeSelector(True)

    def test_fills_slots_in_arrival_order(self) -> None:
        """Test that the first N offers go to slots 0..N-1."""
        selector = SimpleFixedSizeSelector(4, rng=random.Random(1))
        assert offer_many(selector, [1, 2, 3, 4]) == [0, 1, 2, 3]

    def test_later_offers_stay_in_range(self) -> None:
        """Test that every index is a valid slot or DROP."""
        selector = SimpleFixedSizeSelector(3, rng=random.Random(7))
        indexes = offer_many(selector, list(range(500)))

        assert all(index == DROP or 0 <= index < 3 for index in indexes)
        assert DROP in indexes

    def test_zero_size_always_drops(self) -> None:
        selector = SimpleFixedSizeSelector(0, rng=random.Random(3))
        assert set(offer_many(selector, list(range(50)))) == {DROP}

    def test_counts_measurements(self) -> None:
        selector = SimpleFixedSizeSelector(2)
        offer_many(selector, [1, 2, 3])
        assert selector.measurements_seen == 3

    def test_reset_restarts_period(self) -> None:
        """Test that reset() makes the next offers fill slots from 0 again."""
        selector = SimpleFixedSizeSelector(2, rng=random.Random(5))
        offer_many(selector, list(range(10)))

        selector.reset()

        assert selector.measurements_seen == 0
        assert offer_many(selector, [1, 2]) == [0, 1]

    def test_deterministic_with_seed(self) -> None:
        a = SimpleFixedSizeSelector(3, rng=random.Random(42))
        b = SimpleFixedSizeSelector(3, rng=random.Random(42))
        values = list(range(100))

        assert offer_many(a, values) == offer_many(b, values)

    def test_uniform_survival(self) -> None:
        """Test that every position in a period is about equally likely to survive."""
        size, stream, trials = 2, 10, 4000
        survivors: Counter[int] = Counter()
        rng = random.Random(2024)

        for _ in range(trials):
            selector = SimpleFixedSizeSelector(size, rng=rng)
            slots: list[int | None] = [None] * size
            for position in range(stream):
                index = selector.index_for(position, TS, {}, None)
                if index != DROP:
                    slots[index] = position
            survivors.update(p for p in slots if p is not None)

        expected = trials * size / stream
        for position in range(stream):
            assert abs(survivors[position] - expected) < expected * 0.2

    def test_concurrent_offers_are_counted(self) -> None:
        """Test that no offers are lost when producers run in parallel."""
        selector = SimpleFixedSizeSelector(4)

        def produce() -> None:
            for i in range(1000):
                selector.index_for(i, TS, {}, None)

        threads = [threading.Thread(target=produce) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert selector.measurements_seen == 4000


class TestAlignedHistogramBucketSelector:
    """Tests for AlignedHistogramBucketSelector."""

    def test_size(self) -> None:
        selector = AlignedHistogramBucketSelector([1.0, 5.0, 10.0], per_bucket=2)
        assert selector.size == 8

    def test_boundaries_must_increase(self) -> None:
        with pytest.raises(ValueError, match="strictly increasing"):
            AlignedHistogramBucketSelector([1.0, 1.0])
        with pytest.raises(ValueError, match="strictly increasing"):
            AlignedHistogramBucketSelector([5.0, 1.0])

    def test_boundaries_reject_nan(self) -> None:
        with pytest.raises(ValueError, match="NaN"):
            AlignedHistogramBucketSelector([1.0, float("nan")])

    def test_per_bucket_validation(self) -> None:
        with pytest.raises(ValueError, match="must be non-negative"):
            AlignedHistogramBucketSelector([1.0], per_bucket=-1)

    @pytest.mark.parametrize(
        "value,bucket",
        [(-100, 0), (0.5, 0), (1.0, 0), (1.5, 1), (5.0, 1), (7, 2), (10.0, 2), (10.1, 3)],
    )
    def test_bucket_for(self, value: float, bucket: int) -> None:
        """Test that boundaries close their bucket and overflow goes last."""
        selector = AlignedHistogramBucketSelector([1.0, 5.0, 10.0])
        assert selector.bucket_for(value) == bucket

    def test_one_slot_per_bucket(self) -> None:
        selector = AlignedHistogramBucketSelector([1.0, 5.0, 10.0], rng=random.Random(0))
        assert offer_many(selector, [0.5, 3, 8, 20]) == [0, 1, 2, 3]

    def test_indexes_stay_in_bucket_range(self) -> None:
        """Test that each bucket only addresses its own slots."""
        selector = AlignedHistogramBucketSelector([1.0, 5.0], per_bucket=3, rng=random.Random(9))

        for _ in range(200):
            index = selector.index_for(3.0, TS, {}, None)
            assert index == DROP or 3 <= index < 6

    def test_first_offers_fill_bucket_in_order(self) -> None:
        selector = AlignedHistogramBucketSelector([1.0], per_bucket=3, rng=random.Random(9))
        assert offer_many(selector, [2, 2, 2]) == [3, 4, 5]
        assert offer_many(selector, [0]) == [0]

    def test_nan_is_dropped(self) -> None:
        selector = AlignedHistogramBucketSelector([1.0])
        assert selector.index_for(float("nan"), TS, {}, None) == DROP

    def test_zero_per_bucket_drops(self) -> None:
        selector = AlignedHistogramBucketSelector([1.0], per_bucket=0)
        assert selector.size == 0
        assert selector.index_for(0.5, TS, {}, None) == DROP

    def test_no_boundaries_single_bucket(self) -> None:
        selector = AlignedHistogramBucketSelector([], per_bucket=2, rng=random.Random(1))
        assert selector.size == 2
        assert offer_many(selector, [-5, 1e9]) == [0, 1]

    def test_reset(self) -> None:
        selector = AlignedHistogramBucketSelector([1.0], per_bucket=2, rng=random.Random(4))
        offer_many(selector, [0.1] * 20)

        selector.reset()

        assert offer_many(selector, [0.1, 0.1]) == [0, 1]
