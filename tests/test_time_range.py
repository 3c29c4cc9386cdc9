"""Unit tests for time-range resolution."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from datastore.reading_store import ReadingStore
from models.records import SensorReading, TimeRange
from services.time_range import (
    TimeRangeResolver,
    TimeRangeSelection,
    day_bounds,
    end_of_day,
    start_of_day,
)

UTC = timezone.utc
REFERENCE = date(2024, 1, 15)


def _resolve(kind: TimeRange, reference=REFERENCE, tz=UTC):
    return TimeRangeResolver().resolve(TimeRangeSelection(range=kind), reference, tz)


def test_24h_covers_the_full_calendar_day() -> None:
    window = _resolve(TimeRange.last_24h)

    assert window.start == datetime(2024, 1, 15, tzinfo=UTC)
    assert window.end == datetime(2024, 1, 15, 23, 59, 59, 999999, tzinfo=UTC)
    assert window.start == start_of_day(REFERENCE)
    assert window.end == end_of_day(REFERENCE)


@pytest.mark.parametrize("kind, hours", [(TimeRange.last_1h, 1), (TimeRange.last_6h, 6)])
def test_hour_ranges_start_at_midnight(kind: TimeRange, hours: int) -> None:
    window = _resolve(kind)

    assert window.start == datetime(2024, 1, 15, tzinfo=UTC)
    assert window.end - window.start == timedelta(hours=hours)


@pytest.mark.parametrize("kind, days", [(TimeRange.last_7d, 7), (TimeRange.last_30d, 30)])
def test_day_ranges_reach_back_from_start_of_day(kind: TimeRange, days: int) -> None:
    window = _resolve(kind)

    assert window.start == start_of_day(REFERENCE - timedelta(days=days))
    assert window.end == end_of_day(REFERENCE)


def test_7d_start_for_month_boundary() -> None:
    window = _resolve(TimeRange.last_7d, reference=date(2024, 3, 3))

    assert window.start == datetime(2024, 2, 25, tzinfo=UTC)


def test_custom_range_is_returned_verbatim_even_when_inverted() -> None:
    start = datetime(2024, 1, 10, 8, 30, tzinfo=UTC)
    end = datetime(2024, 1, 9, 17, 0, tzinfo=UTC)

    window = TimeRangeResolver().resolve(TimeRangeSelection.custom(start, end), REFERENCE)

    assert window.start == start
    assert window.end == end


def test_custom_selection_requires_bounds() -> None:
    with pytest.raises(ValueError):
        TimeRangeSelection(range=TimeRange.custom)


def test_reference_datetime_is_interpreted_in_dashboard_timezone() -> None:
    tz = ZoneInfo("Asia/Singapore")
    # 2024-01-14 20:00 UTC is already 2024-01-15 in Singapore.
    reference = datetime(2024, 1, 14, 20, 0, tzinfo=UTC)

    window = _resolve(TimeRange.last_24h, reference=reference, tz=tz)

    assert window.start == datetime(2024, 1, 15, tzinfo=tz)
    assert window.start.astimezone(UTC) == datetime(2024, 1, 14, 16, 0, tzinfo=UTC)


def test_day_bounds_contains_is_inclusive() -> None:
    bounds = day_bounds(REFERENCE)

    assert bounds.contains(datetime(2024, 1, 15, tzinfo=UTC))
    assert bounds.contains(datetime(2024, 1, 15, 23, 59, 59, 999999, tzinfo=UTC))
    assert not bounds.contains(datetime(2024, 1, 16, tzinfo=UTC))


def test_24h_bounds_exclude_previous_day_from_fetch() -> None:
    store = ReadingStore()
    for reading_id, created_at in [
        ("early", datetime(2024, 1, 15, 0, 10, tzinfo=UTC)),
        ("late", datetime(2024, 1, 15, 23, 50, tzinfo=UTC)),
        ("yesterday", datetime(2024, 1, 14, 23, 59, tzinfo=UTC)),
    ]:
        store.insert_reading(SensorReading(id=reading_id, device_id="X", created_at=created_at))

    window = _resolve(TimeRange.last_24h)
    readings = store.fetch_readings("X", window=window)

    assert [reading.id for reading in readings] == ["late", "early"]


@pytest.mark.parametrize("kind, hours", [(TimeRange.last_1h, 1), (TimeRange.last_6h, 6)])
def test_hour_ranges_exclude_their_end_instant(kind: TimeRange, hours: int) -> None:
    window = _resolve(kind)
    boundary = datetime(2024, 1, 15, hours, tzinfo=UTC)

    assert window.contains(boundary - timedelta(microseconds=1))
    assert not window.contains(boundary)
    assert _resolve(TimeRange.last_24h).contains(end_of_day(REFERENCE))


def test_naive_custom_bounds_are_read_in_dashboard_timezone() -> None:
    tz = ZoneInfo("Asia/Singapore")
    selection = TimeRangeSelection.custom(datetime(2024, 1, 15, 8), datetime(2024, 1, 15, 9))

    window = TimeRangeResolver().resolve(selection, REFERENCE, tz)

    assert window.start == datetime(2024, 1, 15, 8, tzinfo=tz)
    assert window.contains(datetime(2024, 1, 15, 0, 30, tzinfo=UTC))
    assert not window.contains(datetime(2024, 1, 15, 8, 30, tzinfo=UTC))
