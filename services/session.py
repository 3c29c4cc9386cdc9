"""Dashboard session: wires the data source, reconciler and engines."""

from __future__ import annotations

import asyncio
import itertools
import logging
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from models.records import Device, SensorReading
from services.analytics_config import AnalyticsConfig
from services.analyzer import AnalysisResult, EnvironmentAnalyzer
from services.comparison import COMPARISON_FETCH_LIMIT, ComparisonPoint, compare
from services.health_risk import HealthRiskEngine, RiskAssessment
from services.reconciler import DEFAULT_WINDOW_SIZE, LiveDataReconciler, ReconcilerState
from services.statistics import ExtendedSummary, StatisticsEngine
from services.time_range import TimeRangeResolver, TimeRangeSelection, TimeWindow
from services.trend import TrendEngine, TrendPoint, chronological

logger = logging.getLogger(__name__)


class SubscriptionHandle(Protocol):
    def unsubscribe(self) -> None: ...


class ReadingSource(Protocol):
    """Data-access collaborator; methods may block and may raise."""

    def fetch_devices(self) -> list[Device]: ...

    def fetch_readings(
        self, device_id: str, limit: Optional[int] = None, window: Optional[TimeWindow] = None
    ) -> list[SensorReading]: ...

    def fetch_latest_readings_per_device(
        self, window: Optional[TimeWindow] = None
    ) -> list[SensorReading]: ...

    def subscribe_to_inserts(self, callback: Callable[[dict], None]) -> SubscriptionHandle: ...


class DashboardSession:
    """One client's view of the fleet.

    Fetches run off the event loop; each carries a request token and its
    result is applied only if no newer request was issued in the meantime
    and the device and date it was made for are still selected.
    Fetch failures are logged and leave the previous state untouched.
    """

    def __init__(
        self,
        source: ReadingSource,
        config: Optional[AnalyticsConfig] = None,
        window_size: int = DEFAULT_WINDOW_SIZE,
        fetch_limit: int = 100,
    ) -> None:
        self.source = source
        self.config = config or AnalyticsConfig()
        self.reconciler = LiveDataReconciler(window_size=window_size, tz=self.config.tz)
        self.fetch_limit = fetch_limit
        self.devices: List[Device] = []
        self.resolver = TimeRangeResolver()
        self.statistics_engine = StatisticsEngine()
        self.trend_engine = TrendEngine()
        self.risk_engine = HealthRiskEngine()
        self.analyzer = EnvironmentAnalyzer(self.risk_engine)
        self._subscription: Optional[SubscriptionHandle] = None
        self._request_ids = itertools.count(1)
        self._current_window_request = 0
        self._current_latest_request = 0

    async def start(self) -> None:
        """Subscribe to live inserts and load the initial snapshot."""
        self.reconciler.begin_loading()
        if self._subscription is None:
            self._subscription = self.source.subscribe_to_inserts(self.reconciler.apply_event)
        await self.load_devices()
        await self.refresh_latest()
        await self.refresh_window()

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    @property
    def state(self) -> ReconcilerState:
        return self.reconciler.state

    async def load_devices(self) -> None:
        try:
            devices = await asyncio.to_thread(self.source.fetch_devices)
        except Exception:  # noqa: BLE001 - data-access failures are fail-soft
            logger.exception("Error loading devices")
            return
        self.devices = list(devices)
        if self.reconciler.selected_device_id is None and self.devices:
            self.reconciler.select_device(self.devices[0].id)

    async def select_device(self, device_id: Optional[str]) -> None:
        await self.update_selection(device_id, self.reconciler.selected_date)

    async def set_selected_date(self, selected: Optional[date]) -> None:
        await self.update_selection(self.reconciler.selected_device_id, selected)

    async def update_selection(self, device_id: Optional[str], selected: Optional[date]) -> None:
        """Change device and date scope, then refetch what they affect.

        Fetches still in flight for the previous selection are invalidated
        before anything is awaited.
        """
        date_changed = selected != self.reconciler.selected_date
        self.reconciler.set_date_scope(selected)
        self.reconciler.select_device(device_id)
        self._current_window_request = next(self._request_ids)
        if date_changed:
            self._current_latest_request = next(self._request_ids)
            await self.refresh_latest()
        await self.refresh_window()

    async def refresh_latest(self) -> None:
        request_id = next(self._request_ids)
        self._current_latest_request = request_id
        scope = self.reconciler.date_scope
        try:
            readings = await asyncio.to_thread(self.source.fetch_latest_readings_per_device, scope)
        except Exception:  # noqa: BLE001 - data-access failures are fail-soft
            logger.exception("Error loading latest readings", extra={"request_id": request_id})
            return
        if request_id != self._current_latest_request or scope != self.reconciler.date_scope:
            logger.info("Discarding stale latest-readings response", extra={"request_id": request_id})
            return
        self.reconciler.load_latest(readings)
        self.reconciler.mark_ready()
        logger.debug(
            "Latest readings loaded",
            extra={"request_id": request_id, "reading_count": len(readings)},
        )

    async def refresh_window(self) -> None:
        device_id = self.reconciler.selected_device_id
        request_id = next(self._request_ids)
        self._current_window_request = request_id
        if device_id is None:
            self.reconciler.load_window([])
            return

        scope = self.reconciler.date_scope
        try:
            readings = await asyncio.to_thread(
                self.source.fetch_readings, device_id, self.fetch_limit, scope
            )
        except Exception:  # noqa: BLE001 - data-access failures are fail-soft
            logger.exception(
                "Error loading device readings",
                extra={"device_id": device_id, "request_id": request_id},
            )
            return
        if (
            request_id != self._current_window_request
            or device_id != self.reconciler.selected_device_id
            or scope != self.reconciler.date_scope
        ):
            logger.info(
                "Discarding stale device readings response",
                extra={"device_id": device_id, "request_id": request_id},
            )
            return
        self.reconciler.load_window(readings)
        self.reconciler.mark_ready()

    async def fetch_history(
        self,
        device_id: str,
        reference: Optional[datetime | date] = None,
        selection: Optional[TimeRangeSelection] = None,
    ) -> List[SensorReading]:
        """Readings for a time range (the configured one by default), oldest first.

        Returns an empty list when the source fails.
        """
        window = self.history_window(reference, selection)
        try:
            readings = await asyncio.to_thread(self.source.fetch_readings, device_id, None, window)
        except Exception:  # noqa: BLE001 - data-access failures are fail-soft
            logger.exception("Error loading history", extra={"device_id": device_id})
            return []
        return chronological(readings)

    async def compare_devices(
        self,
        device_ids: Sequence[str],
        field_name: str,
        reference: Optional[datetime | date] = None,
        selection: Optional[TimeRangeSelection] = None,
    ) -> List[ComparisonPoint]:
        """Align the newest readings of several devices for one field.

        A device whose fetch fails contributes no values.
        """
        window = self.history_window(reference, selection)
        fetched = await asyncio.gather(
            *(self._comparison_readings(device_id, window) for device_id in device_ids)
        )
        return compare(device_ids, field_name, dict(zip(device_ids, fetched)))

    async def _comparison_readings(self, device_id: str, window: TimeWindow) -> List[SensorReading]:
        try:
            return await asyncio.to_thread(
                self.source.fetch_readings, device_id, COMPARISON_FETCH_LIMIT, window
            )
        except Exception:  # noqa: BLE001 - data-access failures are fail-soft
            logger.exception("Error loading comparison readings", extra={"device_id": device_id})
            return []

    def history_window(
        self,
        reference: Optional[datetime | date] = None,
        selection: Optional[TimeRangeSelection] = None,
    ) -> TimeWindow:
        if reference is None:
            reference = datetime.now(self.config.tz)
        return self.resolver.resolve(selection or self.config.time_range, reference, self.config.tz)

    @property
    def latest_by_device(self) -> Dict[str, SensorReading]:
        return self.reconciler.latest_by_device

    @property
    def selected_device_window(self) -> List[SensorReading]:
        return self.reconciler.selected_device_window

    def statistics(self, readings: Sequence[SensorReading], field: str) -> ExtendedSummary:
        values = [reading.value_of(field) for reading in chronological(readings)]
        return self.statistics_engine.describe(values)

    def trend(
        self, readings: Sequence[SensorReading], field: str, window: Optional[int] = None
    ) -> List[TrendPoint]:
        size = window if window is not None else self.config.moving_average_window
        return self.trend_engine.moving_average(readings, field, size)

    def risk_assessment(self, readings: Sequence[SensorReading]) -> RiskAssessment:
        return self.risk_engine.assess(readings, self.config.thresholds)

    def analysis(self, readings: Sequence[SensorReading]) -> Optional[AnalysisResult]:
        return self.analyzer.analyze(readings, self.config.thresholds)
