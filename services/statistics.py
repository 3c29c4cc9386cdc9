"""Descriptive statistics over numeric sensor series."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Sequence

import numpy as np

from models.records import TrendDirection

# Absolute slope (units per reading) below which a series counts as flat.
SLOPE_STABLE_THRESHOLD = 0.1


@dataclass(frozen=True)
class StatisticalSummary:
    """Computed statistics for a snapshot of values."""

    mean: float = 0.0
    median: float = 0.0
    min: float = 0.0
    max: float = 0.0
    variance: float = 0.0
    std_dev: float = 0.0


@dataclass(frozen=True)
class ExtendedSummary:
    """Summary plus the spread, percentile and slope metrics."""

    count: int
    summary: StatisticalSummary
    range: float
    coefficient_of_variation: float
    p25: float
    p75: float
    p95: float
    slope: float
    direction: TrendDirection


def ols_slope(values: Sequence[float]) -> float:
    """Least-squares slope of ``values`` against their index position."""
    series = np.asarray(values, dtype=float)
    if series.size < 2:
        return 0.0
    x = np.arange(series.size, dtype=float)
    x -= x.mean()
    return float(np.dot(x, series - series.mean()) / np.dot(x, x))


def direction_of(slope: float, threshold: float = SLOPE_STABLE_THRESHOLD) -> TrendDirection:
    if abs(slope) < threshold:
        return TrendDirection.stable
    return TrendDirection.rising if slope > 0 else TrendDirection.falling


@lru_cache(maxsize=256)
def _summarize(values: tuple[float, ...]) -> StatisticalSummary:
    if not values:
        return StatisticalSummary()

    series = np.asarray(values, dtype=float)
    return StatisticalSummary(
        mean=float(np.mean(series)),
        median=float(np.median(series)),
        min=float(np.min(series)),
        max=float(np.max(series)),
        variance=float(np.var(series)),
        std_dev=float(np.std(series, ddof=0)),
    )


class StatisticsEngine:
    """Pure statistics component that can be unit tested in isolation."""

    def summarize(self, values: Iterable[float]) -> StatisticalSummary:
        return _summarize(tuple(float(value) for value in values))

    def percentile(self, values: Iterable[float], p: float) -> float:
        """Linearly interpolated percentile; never extrapolates past the max."""
        if not 0 <= p <= 100:
            raise ValueError(f"Percentile must be between 0 and 100 (got {p}).")
        series = np.fromiter((float(value) for value in values), dtype=float)
        if series.size == 0:
            return 0.0
        return float(np.percentile(series, p, method="linear"))

    def describe(self, values: Sequence[float]) -> ExtendedSummary:
        """Summarize ``values`` in their given (chronological) order."""
        series = [float(value) for value in values]
        summary = self.summarize(series)
        slope = ols_slope(series)
        cv = (summary.std_dev / summary.mean) * 100 if summary.mean else 0.0
        p25, p75, p95 = (self.percentile(series, p) for p in (25, 75, 95))
        return ExtendedSummary(
            count=len(series),
            summary=summary,
            range=summary.max - summary.min,
            coefficient_of_variation=cv,
            p25=p25,
            p75=p75,
            p95=p95,
            slope=slope,
            direction=direction_of(slope),
        )
