"""Alignment of several devices' readings onto a shared time axis."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Mapping, Sequence

import numpy as np

from models.records import SENSOR_FIELDS, SensorReading
from services.trend import chronological

COMPARISON_TOLERANCE = timedelta(minutes=5)
COMPARISON_FETCH_LIMIT = 50


@dataclass(frozen=True)
class ComparisonPoint:
    timestamp: datetime
    values: Dict[str, float] = field(default_factory=dict)


def compare(
    device_ids: Sequence[str],
    field_name: str,
    readings_by_device: Mapping[str, Sequence[SensorReading]],
    tolerance: timedelta = COMPARISON_TOLERANCE,
) -> List[ComparisonPoint]:
    """Values of ``field_name`` per device at every timestamp any device reported.

    Each device contributes its reading nearest to the timestamp when that
    reading is strictly closer than ``tolerance``; on an exact tie the later
    reading wins. Timestamps where no device contributes are dropped.
    """
    if field_name not in SENSOR_FIELDS:
        raise ValueError(f"Unknown sensor field {field_name!r}.")

    series: Dict[str, tuple[np.ndarray, np.ndarray]] = {}
    instants = set()
    for device_id in device_ids:
        ordered = chronological(readings_by_device.get(device_id, ()))
        instants.update(reading.created_at for reading in ordered)
        series[device_id] = (
            np.array([reading.created_at.timestamp() for reading in ordered], dtype=float),
            np.array([reading.value_of(field_name) for reading in ordered], dtype=float),
        )

    timeline = sorted(instants)
    stamps = np.array([instant.timestamp() for instant in timeline], dtype=float)
    limit = tolerance.total_seconds()
    columns: Dict[str, tuple[np.ndarray, np.ndarray]] = {}
    for device_id, (times, values) in series.items():
        if times.size == 0:
            continue
        after = np.clip(np.searchsorted(times, stamps), 0, times.size - 1)
        before = np.clip(after - 1, 0, times.size - 1)
        after_gap = np.abs(times[after] - stamps)
        before_gap = np.abs(stamps - times[before])
        nearest = np.where(after_gap <= before_gap, after, before)
        columns[device_id] = (values[nearest], np.minimum(after_gap, before_gap) < limit)

    points: List[ComparisonPoint] = []
    for index, instant in enumerate(timeline):
        matched = {
            device_id: float(values[index])
            for device_id, (values, within) in columns.items()
            if within[index]
        }
        if matched:
            points.append(ComparisonPoint(timestamp=instant, values=matched))
    return points
