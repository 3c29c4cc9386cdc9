"""Moving-average and slope computation over time-ordered readings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Sequence

import numpy as np

from models.records import SENSOR_FIELDS, SensorReading, TrendDirection
from services.statistics import direction_of, ols_slope


@dataclass(frozen=True)
class TrendPoint:
    value: float
    moving_average: float
    timestamp: datetime


def chronological(readings: Sequence[SensorReading]) -> List[SensorReading]:
    """Copy of ``readings`` ordered oldest first."""
    return sorted(readings, key=lambda reading: reading.created_at)


def trailing_mean(values: np.ndarray, window: int) -> np.ndarray:
    """Mean of each value and up to ``window - 1`` predecessors."""
    cumulative = np.concatenate(([0.0], np.cumsum(values)))
    ends = np.arange(1, values.size + 1)
    starts = np.maximum(0, ends - window)
    return (cumulative[ends] - cumulative[starts]) / (ends - starts)


class TrendEngine:
    """Trailing moving averages and slope-based direction."""

    def moving_average(
        self, series: Sequence[SensorReading], field: str, window: int
    ) -> List[TrendPoint]:
        if field not in SENSOR_FIELDS:
            raise ValueError(f"Unknown sensor field {field!r}.")
        if isinstance(window, bool) or not isinstance(window, int) or window < 1:
            raise ValueError(f"Moving-average window must be a positive integer (got {window!r}).")

        ordered = chronological(series)
        values = np.array([reading.value_of(field) for reading in ordered], dtype=float)
        averages = trailing_mean(values, window)
        return [
            TrendPoint(value=float(value), moving_average=float(average), timestamp=reading.created_at)
            for reading, value, average in zip(ordered, values, averages)
        ]

    def slope(self, values: Sequence[float]) -> float:
        return ols_slope([float(value) for value in values])

    def classify_slope(self, values: Sequence[float]) -> TrendDirection:
        return direction_of(self.slope(values))

    def latest_change(self, points: Sequence[TrendPoint]) -> float:
        """Difference between the last two moving-average points."""
        if len(points) < 2:
            return 0.0
        return points[-1].moving_average - points[-2].moving_average
