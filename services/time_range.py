"""Resolution of symbolic time ranges into concrete query bounds."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union

from models.records import TimeRange

DateLike = Union[date, datetime]


@dataclass(frozen=True)
class TimeWindow:
    """Bounds for a historical query, ``[start, end]`` or ``[start, end)``."""

    start: datetime
    end: datetime
    end_inclusive: bool = True

    def contains(self, instant: datetime) -> bool:
        if self.end_inclusive:
            return self.start <= instant <= self.end
        return self.start <= instant < self.end


@dataclass(frozen=True)
class TimeRangeSelection:
    """A range selector; ``start``/``end`` are only used for custom ranges."""

    range: TimeRange = TimeRange.last_24h
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.range is TimeRange.custom and (self.start is None or self.end is None):
            raise ValueError("Custom time ranges require both start and end.")

    @classmethod
    def custom(cls, start: datetime, end: datetime) -> "TimeRangeSelection":
        return cls(range=TimeRange.custom, start=start, end=end)


_RELATIVE_HOURS = {TimeRange.last_1h: 1, TimeRange.last_6h: 6}
_RELATIVE_DAYS = {TimeRange.last_24h: 0, TimeRange.last_7d: 7, TimeRange.last_30d: 30}


def _as_day(reference: DateLike, tz: tzinfo) -> date:
    if isinstance(reference, datetime):
        if reference.tzinfo is not None:
            reference = reference.astimezone(tz)
        return reference.date()
    return reference


def localize(instant: datetime, tz: tzinfo) -> datetime:
    """Attach ``tz`` to a naive datetime; aware values pass through."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=tz)
    return instant


def start_of_day(reference: DateLike, tz: tzinfo = timezone.utc) -> datetime:
    return datetime.combine(_as_day(reference, tz), time.min, tzinfo=tz)


def end_of_day(reference: DateLike, tz: tzinfo = timezone.utc) -> datetime:
    return datetime.combine(_as_day(reference, tz), time.max, tzinfo=tz)


def day_bounds(reference: DateLike, tz: tzinfo = timezone.utc) -> TimeWindow:
    return TimeWindow(start=start_of_day(reference, tz), end=end_of_day(reference, tz))


class TimeRangeResolver:
    """Maps a selection and reference date to a :class:`TimeWindow`.

    Relative ranges are anchored at calendar-day boundaries of the reference
    date in ``tz``. The ``1h`` and ``6h`` windows exclude their end instant.
    Custom bounds are kept as given, even when inverted; naive ones are read
    as wall-clock times in ``tz``.
    """

    def resolve(
        self,
        selection: TimeRangeSelection,
        reference: DateLike,
        tz: tzinfo = timezone.utc,
    ) -> TimeWindow:
        kind = selection.range
        if kind is TimeRange.custom:
            assert selection.start is not None and selection.end is not None
            return TimeWindow(start=localize(selection.start, tz), end=localize(selection.end, tz))

        if kind in _RELATIVE_HOURS:
            start = start_of_day(reference, tz)
            return TimeWindow(
                start=start,
                end=start + timedelta(hours=_RELATIVE_HOURS[kind]),
                end_inclusive=False,
            )

        day = _as_day(reference, tz)
        days_back = _RELATIVE_DAYS[kind]
        return TimeWindow(
            start=start_of_day(day - timedelta(days=days_back), tz),
            end=end_of_day(day, tz),
        )
