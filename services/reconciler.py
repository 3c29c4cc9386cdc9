"""Merging of live insert events into bounded in-memory state."""

from __future__ import annotations

import logging
from collections import deque
from datetime import date, timezone, tzinfo
from enum import Enum
from typing import Any, Deque, Dict, Iterable, List, Mapping, Optional

from models.records import SensorReading, is_newer, parse_reading
from services.time_range import TimeWindow, day_bounds

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 100


class ReconcilerState(str, Enum):
    uninitialized = "uninitialized"
    loading = "loading"
    ready = "ready"


class LiveDataReconciler:
    """Holds the latest reading per device and the selected device's window.

    Readings are only accepted into ``latest_by_device`` when they are at
    least as new as the stored entry, for live events and bulk loads alike.
    The window is newest-first and evicts from the old end on overflow.
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE, tz: tzinfo = timezone.utc) -> None:
        if window_size < 1:
            raise ValueError("window_size must be positive.")
        self.window_size = window_size
        self.tz = tz
        self.state = ReconcilerState.uninitialized
        self.selected_device_id: Optional[str] = None
        self.selected_date: Optional[date] = None
        self._latest: Dict[str, SensorReading] = {}
        self._window: Deque[SensorReading] = deque(maxlen=window_size)

    @property
    def date_scope(self) -> Optional[TimeWindow]:
        if self.selected_date is None:
            return None
        return day_bounds(self.selected_date, self.tz)

    def begin_loading(self) -> None:
        if self.state is ReconcilerState.uninitialized:
            self.state = ReconcilerState.loading

    def mark_ready(self) -> None:
        self.state = ReconcilerState.ready

    def select_device(self, device_id: Optional[str]) -> None:
        if device_id != self.selected_device_id:
            self._window.clear()
        self.selected_device_id = device_id

    def set_date_scope(self, selected: Optional[date]) -> None:
        if selected != self.selected_date:
            self._window.clear()
        self.selected_date = selected

    def load_latest(self, readings: Iterable[SensorReading]) -> None:
        """Replace the latest-per-device map from a historical batch."""
        latest: Dict[str, SensorReading] = {}
        for reading in readings:
            if is_newer(reading, latest.get(reading.device_id)):
                latest[reading.device_id] = reading
        self._latest = latest

    def load_window(self, readings: Iterable[SensorReading]) -> None:
        """Replace the selected-device window from a historical batch."""
        ordered = sorted(readings, key=lambda reading: reading.created_at, reverse=True)
        self._window = deque(ordered[: self.window_size], maxlen=self.window_size)

    def apply_event(self, payload: Mapping[str, Any]) -> bool:
        """Merge one live insert; returns whether any state was considered.

        Malformed payloads and readings outside the active day are dropped.
        """
        try:
            reading = parse_reading(payload)
        except ValueError as exc:
            logger.warning(
                "Dropping live reading",
                extra={
                    "device_id": payload.get("device_id"),
                    "reading_id": payload.get("id"),
                    "reason": str(exc),
                },
            )
            return False
        return self.apply_reading(reading)

    def apply_reading(self, reading: SensorReading) -> bool:
        scope = self.date_scope
        if scope is not None and not scope.contains(reading.created_at):
            logger.debug(
                "Ignoring live reading outside date scope",
                extra={"device_id": reading.device_id, "timestamp": reading.created_at.isoformat()},
            )
            return False

        if is_newer(reading, self._latest.get(reading.device_id)):
            self._latest[reading.device_id] = reading
        else:
            logger.info(
                "Out-of-order live reading kept out of latest map",
                extra={"device_id": reading.device_id, "reading_id": reading.id},
            )

        if reading.device_id == self.selected_device_id:
            self._window.appendleft(reading)
        return True

    @property
    def latest_by_device(self) -> Dict[str, SensorReading]:
        return dict(self._latest)

    @property
    def selected_device_window(self) -> List[SensorReading]:
        return list(self._window)
