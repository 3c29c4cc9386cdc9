"""HTTP route definitions for the service."""

from __future__ import annotations

from datetime import date, datetime
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import (
    AnalysisResponse,
    ComparisonPointModel,
    ComparisonResponse,
    ConfigResponse,
    DeviceModel,
    FieldRiskModel,
    LatestResponse,
    LiveSnapshot,
    QueryWindow,
    ReadingIn,
    ReadingModel,
    ReadingsResponse,
    RiskAssessmentResponse,
    SelectionUpdate,
    StatisticalSummaryModel,
    StatisticsResponse,
    ThresholdBandModel,
    TimeRangeUpdate,
    TrendPointModel,
    TrendResponse,
    WindowUpdate,
)
from datastore.reading_store import ReadingStore, build_default_store
from models.records import SENSOR_FIELDS, Device, SensorReading, TimeRange, parse_reading
from services.analytics_config import AnalyticsConfig
from services.analyzer import composition, field_averages
from services.health_risk import ThresholdBand
from services.session import DashboardSession
from services.time_range import TimeRangeSelection
from settings import get_settings

router = APIRouter()


@lru_cache
def build_default_session() -> DashboardSession:
    """Factory that wires a session to the default reading store."""
    settings = get_settings()
    return DashboardSession(
        source=build_default_store(),
        config=AnalyticsConfig.from_settings(),
        window_size=settings.live_window_size,
        fetch_limit=settings.history_fetch_limit,
    )


def get_session() -> DashboardSession:
    return build_default_session()


def get_store() -> ReadingStore:
    return build_default_store()


def _require_device(session: DashboardSession, device_id: str) -> None:
    if not any(device.id == device_id for device in session.devices):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Device {device_id!r} not found.",
        )


def _require_field(field: str) -> None:
    if field not in SENSOR_FIELDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown sensor field {field!r}.",
        )


def _selection(
    range_: Optional[TimeRange], start: Optional[datetime], end: Optional[datetime]
) -> Optional[TimeRangeSelection]:
    if range_ is None:
        return None
    try:
        return TimeRangeSelection(range=range_, start=start, end=end)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


async def _history(
    session: DashboardSession,
    device_id: str,
    range_: Optional[TimeRange],
    start: Optional[datetime],
    end: Optional[datetime],
    reference: Optional[date],
) -> tuple[QueryWindow, List[SensorReading]]:
    _require_device(session, device_id)
    selection = _selection(range_, start, end)
    anchor = reference or datetime.now(session.config.tz)
    window = session.history_window(anchor, selection)
    readings = await session.fetch_history(device_id, anchor, selection)
    return QueryWindow.model_validate(window), readings


@router.get("/devices", response_model=List[DeviceModel], summary="List monitoring devices.")
async def list_devices(session: DashboardSession = Depends(get_session)) -> List[DeviceModel]:
    return [DeviceModel.model_validate(device) for device in session.devices]


@router.post(
    "/devices",
    status_code=status.HTTP_201_CREATED,
    response_model=DeviceModel,
    summary="Register or update a device.",
)
async def put_device(
    payload: DeviceModel,
    session: DashboardSession = Depends(get_session),
    store: ReadingStore = Depends(get_store),
) -> DeviceModel:
    store.put_device(Device(id=payload.id, name=payload.name, lat=payload.lat, long=payload.long))
    await session.load_devices()
    return payload


@router.post(
    "/readings",
    status_code=status.HTTP_201_CREATED,
    response_model=ReadingModel,
    summary="Record a reading and publish it to live subscribers.",
)
async def record_reading(
    payload: ReadingIn,
    session: DashboardSession = Depends(get_session),
    store: ReadingStore = Depends(get_store),
) -> ReadingModel:
    _require_device(session, payload.device_id)
    try:
        reading = parse_reading(payload.model_dump())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    store.insert_reading(reading)
    return ReadingModel.model_validate(reading)


@router.get(
    "/devices/{device_id}/readings",
    response_model=ReadingsResponse,
    summary="Readings for a device within a time range, oldest first.",
)
async def device_readings(
    device_id: str,
    range_: Optional[TimeRange] = Query(None, alias="range"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    reference: Optional[date] = Query(None, alias="date"),
    session: DashboardSession = Depends(get_session),
) -> ReadingsResponse:
    window, readings = await _history(session, device_id, range_, start, end, reference)
    return ReadingsResponse(
        device_id=device_id,
        window=window,
        readings=[ReadingModel.model_validate(reading) for reading in readings],
    )


@router.get(
    "/devices/{device_id}/statistics",
    response_model=StatisticsResponse,
    summary="Descriptive statistics for one sensor field.",
)
async def device_statistics(
    device_id: str,
    field: str = "temperature",
    range_: Optional[TimeRange] = Query(None, alias="range"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    reference: Optional[date] = Query(None, alias="date"),
    session: DashboardSession = Depends(get_session),
) -> StatisticsResponse:
    _require_field(field)
    window, readings = await _history(session, device_id, range_, start, end, reference)
    described = session.statistics(readings, field)
    return StatisticsResponse(
        device_id=device_id,
        field=field,
        window=window,
        count=described.count,
        summary=StatisticalSummaryModel.model_validate(described.summary),
        range=described.range,
        coefficient_of_variation=described.coefficient_of_variation,
        p25=described.p25,
        p75=described.p75,
        p95=described.p95,
        slope=described.slope,
        direction=described.direction,
    )


@router.get(
    "/devices/{device_id}/trend",
    response_model=TrendResponse,
    summary="Moving-average trend for one sensor field.",
)
async def device_trend(
    device_id: str,
    field: str = "temperature",
    window: Optional[int] = Query(None, ge=1),
    range_: Optional[TimeRange] = Query(None, alias="range"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    reference: Optional[date] = Query(None, alias="date"),
    session: DashboardSession = Depends(get_session),
) -> TrendResponse:
    _require_field(field)
    _, readings = await _history(session, device_id, range_, start, end, reference)
    size = window or session.config.moving_average_window
    points = session.trend(readings, field, size)
    return TrendResponse(
        device_id=device_id,
        field=field,
        moving_average_window=size,
        direction=session.trend_engine.classify_slope([point.value for point in points]),
        latest_change=session.trend_engine.latest_change(points),
        points=[TrendPointModel.model_validate(point) for point in points],
    )


@router.get(
    "/devices/{device_id}/health-risk",
    response_model=RiskAssessmentResponse,
    summary="Health-risk assessment from averaged readings.",
)
async def device_health_risk(
    device_id: str,
    range_: Optional[TimeRange] = Query(None, alias="range"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    reference: Optional[date] = Query(None, alias="date"),
    session: DashboardSession = Depends(get_session),
) -> RiskAssessmentResponse:
    _, readings = await _history(session, device_id, range_, start, end, reference)
    assessment = session.risk_assessment(readings)
    return RiskAssessmentResponse(
        device_id=device_id,
        reading_count=assessment.reading_count,
        overall=assessment.overall,
        fields=[FieldRiskModel.model_validate(risk) for risk in assessment.fields],
        alerts=[FieldRiskModel.model_validate(risk) for risk in assessment.alerts],
    )


@router.get(
    "/devices/{device_id}/analysis",
    response_model=AnalysisResponse,
    summary="Environment analysis with a plain-language summary.",
)
async def device_analysis(
    device_id: str,
    range_: Optional[TimeRange] = Query(None, alias="range"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    reference: Optional[date] = Query(None, alias="date"),
    session: DashboardSession = Depends(get_session),
) -> AnalysisResponse:
    _, readings = await _history(session, device_id, range_, start, end, reference)
    result = session.analysis(readings)
    if result is None:
        return AnalysisResponse(
            device_id=device_id,
            sufficient_data=False,
            summary="Insufficient data to generate analysis.",
        )
    averages = field_averages(readings)
    return AnalysisResponse.model_validate(
        {
            "device_id": device_id,
            "sufficient_data": True,
            "reading_count": result.reading_count,
            "summary": result.summary,
            "temperature": result.temperature,
            "humidity": result.humidity,
            "air_quality": result.air_quality,
            "noise": result.noise,
            "rain": result.rain,
            "averages": averages,
            "composition": composition(averages),
        },
        from_attributes=True,
    )


@router.get(
    "/compare",
    response_model=ComparisonResponse,
    summary="One sensor field across several devices on a shared time axis.",
)
async def compare_devices(
    device_ids: List[str] = Query(..., alias="device"),
    field: str = "temperature",
    range_: Optional[TimeRange] = Query(None, alias="range"),
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    reference: Optional[date] = Query(None, alias="date"),
    session: DashboardSession = Depends(get_session),
) -> ComparisonResponse:
    _require_field(field)
    unique_ids = list(dict.fromkeys(device_ids))
    for device_id in unique_ids:
        _require_device(session, device_id)
    selection = _selection(range_, start, end)
    anchor = reference or datetime.now(session.config.tz)
    window = session.history_window(anchor, selection)
    points = await session.compare_devices(unique_ids, field, anchor, selection)
    return ComparisonResponse(
        field=field,
        device_ids=unique_ids,
        window=QueryWindow.model_validate(window),
        points=[ComparisonPointModel.model_validate(point) for point in points],
    )


@router.get("/latest", response_model=LatestResponse, summary="Latest reading per device.")
async def latest_readings(session: DashboardSession = Depends(get_session)) -> LatestResponse:
    return LatestResponse(
        state=session.state,
        latest={
            device_id: ReadingModel.model_validate(reading)
            for device_id, reading in session.latest_by_device.items()
        },
    )


def _live_snapshot(session: DashboardSession) -> LiveSnapshot:
    return LiveSnapshot(
        state=session.state,
        selected_device_id=session.reconciler.selected_device_id,
        selected_date=session.reconciler.selected_date,
        window=[ReadingModel.model_validate(reading) for reading in session.selected_device_window],
    )


@router.get("/live", response_model=LiveSnapshot, summary="Live window for the selected device.")
async def live_window(session: DashboardSession = Depends(get_session)) -> LiveSnapshot:
    return _live_snapshot(session)


@router.put("/live/selection", response_model=LiveSnapshot, summary="Change device or date scope.")
async def update_selection(
    payload: SelectionUpdate,
    session: DashboardSession = Depends(get_session),
) -> LiveSnapshot:
    if payload.device_id is not None:
        _require_device(session, payload.device_id)
    await session.update_selection(payload.device_id, payload.selected_date)
    return _live_snapshot(session)


def _config_response(config: AnalyticsConfig) -> ConfigResponse:
    return ConfigResponse(
        time_range=config.time_range.range,
        custom_start=config.time_range.start,
        custom_end=config.time_range.end,
        moving_average_window=config.moving_average_window,
        timezone=str(config.tz),
        thresholds={
            name: ThresholdBandModel.model_validate(band)
            for name, band in config.thresholds.as_dict().items()
        },
    )


@router.get("/config", response_model=ConfigResponse, summary="Current analytics configuration.")
async def get_config(session: DashboardSession = Depends(get_session)) -> ConfigResponse:
    return _config_response(session.config)


@router.put("/config/thresholds", response_model=ConfigResponse, summary="Merge threshold updates.")
async def update_thresholds(
    payload: dict[str, ThresholdBandModel],
    session: DashboardSession = Depends(get_session),
) -> ConfigResponse:
    try:
        session.config.update_health_thresholds(
            {
                name: ThresholdBand(band.moderate, band.unhealthy, band.dangerous)
                for name, band in payload.items()
            }
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _config_response(session.config)


@router.put("/config/window", response_model=ConfigResponse, summary="Set the moving-average window.")
async def update_window(
    payload: WindowUpdate,
    session: DashboardSession = Depends(get_session),
) -> ConfigResponse:
    try:
        session.config.set_moving_average_window(payload.window)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _config_response(session.config)


@router.put("/config/time-range", response_model=ConfigResponse, summary="Select the time range.")
async def update_time_range(
    payload: TimeRangeUpdate,
    session: DashboardSession = Depends(get_session),
) -> ConfigResponse:
    try:
        if payload.range is TimeRange.custom:
            if payload.start is None or payload.end is None:
                raise ValueError("Custom time ranges require both start and end.")
            session.config.set_custom_range(payload.start, payload.end)
        else:
            session.config.set_time_range(payload.range)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return _config_response(session.config)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
