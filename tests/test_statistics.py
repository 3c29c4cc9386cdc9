"""Unit tests for the statistics engine."""

from __future__ import annotations

import math

import pytest

from models.records import TrendDirection
from services.statistics import StatisticalSummary, StatisticsEngine, ols_slope


def test_summarize_empty_returns_zeroed_summary() -> None:
    engine = StatisticsEngine()

    summary = engine.summarize([])

    assert summary == StatisticalSummary(
        mean=0, median=0, min=0, max=0, variance=0, std_dev=0
    )


def test_summarize_computes_population_statistics() -> None:
    engine = StatisticsEngine()
    values = [4, 8, 6, 5, 3, 2, 8, 9, 2, 5]

    summary = engine.summarize(values)

    assert summary.mean == pytest.approx(5.2)
    assert summary.median == pytest.approx(5.0)
    assert summary.min == 2
    assert summary.max == 9
    assert summary.variance == pytest.approx(5.76)
    assert summary.std_dev == pytest.approx(2.4)


def test_median_of_even_length_averages_the_middle_pair() -> None:
    assert StatisticsEngine().summarize([1, 2, 3, 4]).median == 2.5


def test_median_of_odd_length_is_the_middle_value() -> None:
    assert StatisticsEngine().summarize([7, 1, 3]).median == 3


def test_summarize_does_not_mutate_input() -> None:
    values = [3.0, 1.0, 2.0]

    StatisticsEngine().summarize(values)

    assert values == [3.0, 1.0, 2.0]


def test_percentile_interpolates_between_ranks() -> None:
    engine = StatisticsEngine()
    values = [10, 20, 30, 40]

    assert engine.percentile(values, 0) == 10
    assert engine.percentile(values, 100) == 40
    assert engine.percentile(values, 25) == pytest.approx(17.5)
    assert engine.percentile(values, 50) == pytest.approx(25.0)


def test_percentile_of_empty_is_zero_and_rejects_out_of_range() -> None:
    engine = StatisticsEngine()

    assert engine.percentile([], 50) == 0.0
    with pytest.raises(ValueError):
        engine.percentile([1, 2], 101)


def test_percentile_50_tracks_median_for_large_uniform_sample() -> None:
    engine = StatisticsEngine()
    values = [float(i) for i in range(1001)]

    assert engine.percentile(values, 50) == pytest.approx(engine.summarize(values).median)


def test_describe_reports_spread_and_direction() -> None:
    described = StatisticsEngine().describe([1.0, 2.0, 3.0, 4.0, 5.0])

    assert described.count == 5
    assert described.range == 4.0
    assert described.slope == pytest.approx(1.0)
    assert described.direction is TrendDirection.rising
    assert described.p95 == pytest.approx(4.8)
    expected_cv = math.sqrt(2.0) / 3.0 * 100
    assert described.coefficient_of_variation == pytest.approx(expected_cv)


def test_describe_with_zero_mean_has_zero_coefficient_of_variation() -> None:
    described = StatisticsEngine().describe([-1.0, 1.0])

    assert described.coefficient_of_variation == 0.0


def test_ols_slope_is_zero_for_short_series() -> None:
    assert ols_slope([]) == 0.0
    assert ols_slope([42.0]) == 0.0
