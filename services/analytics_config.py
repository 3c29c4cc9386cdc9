"""Per-session analytics configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from typing import Mapping, Union
from zoneinfo import ZoneInfo

from models.records import TimeRange
from services.health_risk import HealthThresholds, ThresholdBand
from services.time_range import TimeRangeSelection, localize
from settings import get_settings

logger = logging.getLogger(__name__)

MIN_MOVING_AVERAGE_WINDOW = 1
MAX_MOVING_AVERAGE_WINDOW = 50


@dataclass
class AnalyticsConfig:
    """Mutable settings owned by one dashboard session.

    Every mutator validates before assigning, so a rejected update leaves
    the previous value in force.
    """

    thresholds: HealthThresholds = field(default_factory=HealthThresholds.defaults)
    time_range: TimeRangeSelection = field(default_factory=TimeRangeSelection)
    moving_average_window: int = 5
    tz: tzinfo = timezone.utc

    def __post_init__(self) -> None:
        self.set_moving_average_window(self.moving_average_window)

    @classmethod
    def from_settings(cls) -> "AnalyticsConfig":
        settings = get_settings()
        return cls(
            moving_average_window=settings.moving_average_window,
            tz=ZoneInfo(settings.timezone),
        )

    def set_time_range(self, selected: Union[TimeRange, str]) -> None:
        selected = TimeRange(selected)
        if selected is TimeRange.custom:
            raise ValueError("Use set_custom_range to select a custom range.")
        self.time_range = TimeRangeSelection(range=selected)

    def set_custom_range(self, start: datetime, end: datetime) -> None:
        self.time_range = TimeRangeSelection.custom(localize(start, self.tz), localize(end, self.tz))

    def set_moving_average_window(self, window: int) -> None:
        if isinstance(window, bool) or not isinstance(window, int):
            raise ValueError("Moving-average window must be an integer.")
        if not MIN_MOVING_AVERAGE_WINDOW <= window <= MAX_MOVING_AVERAGE_WINDOW:
            raise ValueError(
                f"Moving-average window must be between {MIN_MOVING_AVERAGE_WINDOW} "
                f"and {MAX_MOVING_AVERAGE_WINDOW} (got {window})."
            )
        self.moving_average_window = window

    def update_health_thresholds(self, updates: Mapping[str, ThresholdBand]) -> None:
        """Merge a partial threshold table over the current one."""
        self.thresholds = self.thresholds.merged(updates)
        for name in updates:
            logger.info("Health thresholds updated", extra={"field": name})
