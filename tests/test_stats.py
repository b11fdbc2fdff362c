import math

import pytest

from pipelines.stats import (
    DISTRIBUTION_BUCKETS,
    bucket_counts,
    bucket_for,
    mean,
    median,
    percentile,
    summarize,
    weighted_mean,
)


def test_percentile_selects_floor_index():
    values = list(range(1, 11))  # n=10 -> index 9
    assert percentile(values) == 10.0
    values = list(range(1, 21))  # n=20 -> index 18
    assert percentile(values) == 19.0


def test_percentile_is_order_independent_and_repeatable():
    values = [7.5, 1.0, 3.0, 12.0, 4.0, 9.0, 2.0]  # n=7 -> floor(6.3)=6 -> max
    first = percentile(values)
    assert first == percentile(list(reversed(values))) == percentile(sorted(values))
    assert first == 12.0


def test_percentile_clamps_to_last_index():
    assert percentile([4.0]) == 4.0
    assert percentile([1.0, 2.0], q=1.0) == 2.0
    assert percentile([]) is None


def test_median_even_and_odd():
    assert median([3, 1, 2]) == 2.0
    assert median([4, 1, 3, 2]) == 2.5
    assert median([]) is None


def test_weighted_mean_over_three_day_month():
    # day 1: 10 min avg over 2 incidents, day 2: 20 over 1, day 3: 40 over 1
    values = [10.0, 20.0, 40.0]
    weights = [2, 1, 1]
    assert weighted_mean(values, weights) == pytest.approx((20 + 20 + 40) / 4)


def test_weighted_mean_without_weight():
    assert weighted_mean([1.0, 2.0], [0, 0]) is None
    with pytest.raises(ValueError):
        weighted_mean([1.0], [1, 2])


def test_summarize():
    stats = summarize([2.0, 4.0, 6.0, 8.0])
    assert stats == {"median": 5.0, "mean": 5.0, "p90": 8.0, "count": 4}
    assert summarize([]) == {"median": None, "mean": None, "p90": None, "count": 0}
    assert math.isclose(mean([0.1, 0.2, 0.3]), 0.2)


@pytest.mark.parametrize(
    "minutes, label",
    [
        (0.5, "0-5"),
        (4.999, "0-5"),
        (5, "5-10"),
        (10, "10-15"),
        (29.9, "20-30"),
        (45, "45-60"),
        (119.99, "60-120"),
        (120, "120+"),
        (180, "120+"),
    ],
)
def test_bucket_edges_are_half_open(minutes, label):
    assert bucket_for(minutes) == label


def test_out_of_range_values_have_no_bucket():
    assert bucket_for(180.01) is None
    assert bucket_for(-1) is None


def test_buckets_partition_the_valid_range():
    samples = [step / 4 for step in range(1, 721)]  # (0, 180] in quarter minutes
    counts = dict(bucket_counts(samples))
    assert list(counts) == [label for label, _, _ in DISTRIBUTION_BUCKETS]
    assert sum(counts.values()) == len(samples)
    for value in samples:
        matches = [
            label
            for label, lower, upper in DISTRIBUTION_BUCKETS
            if lower <= value < upper or (label == "120+" and value == upper)
        ]
        assert len(matches) == 1


def test_bucket_counts_reports_empty_buckets():
    counts = dict(bucket_counts([1.0, 2.0]))
    assert counts["0-5"] == 2
    assert counts["120+"] == 0
    assert len(counts) == 9
