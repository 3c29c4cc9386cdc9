"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.records import RiskLevel, TimeRange, TrendDirection
from services.analyzer import AirQualityStatus, ComfortStatus, NoiseStatus, RainStatus
from services.reconciler import ReconcilerState


class _FromAttributes(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class DeviceModel(_FromAttributes):
    """A monitoring station."""

    id: str = Field(..., min_length=1)
    name: str
    lat: float = Field(..., ge=-90, le=90)
    long: float = Field(..., ge=-180, le=180)


class ReadingIn(BaseModel):
    """Payload for recording a new reading."""

    id: Optional[str] = None
    device_id: str = Field(..., min_length=1)
    created_at: datetime
    temperature: float = 0.0
    humidity: float = 0.0
    co: float = 0.0
    co2: float = 0.0
    nh3: float = 0.0
    lpg: float = 0.0
    smoke: float = 0.0
    alcohol: float = 0.0
    sound_intensity: float = 0.0
    rain_intensity: float = 0.0


class ReadingModel(_FromAttributes):
    id: str
    device_id: str
    created_at: datetime
    temperature: float
    humidity: float
    co: float
    co2: float
    nh3: float
    lpg: float
    smoke: float
    alcohol: float
    sound_intensity: float
    rain_intensity: float


class QueryWindow(_FromAttributes):
    start: datetime
    end: datetime
    end_inclusive: bool = True


class ReadingsResponse(BaseModel):
    device_id: str
    window: QueryWindow
    readings: List[ReadingModel] = Field(default_factory=list)


class StatisticalSummaryModel(_FromAttributes):
    mean: float
    median: float
    min: float
    max: float
    variance: float
    std_dev: float


class StatisticsResponse(BaseModel):
    """Descriptive statistics for one field over the query window."""

    device_id: str
    field: str
    window: QueryWindow
    count: int = Field(..., ge=0)
    summary: StatisticalSummaryModel
    range: float
    coefficient_of_variation: float
    p25: float
    p75: float
    p95: float
    slope: float
    direction: TrendDirection


class TrendPointModel(_FromAttributes):
    value: float
    moving_average: float
    timestamp: datetime


class TrendResponse(BaseModel):
    device_id: str
    field: str
    moving_average_window: int
    direction: TrendDirection
    latest_change: float
    points: List[TrendPointModel] = Field(default_factory=list)


class FieldRiskModel(_FromAttributes):
    field: str
    value: float
    level: RiskLevel


class RiskAssessmentResponse(BaseModel):
    device_id: str
    reading_count: int
    overall: RiskLevel
    fields: List[FieldRiskModel] = Field(default_factory=list)
    alerts: List[FieldRiskModel] = Field(default_factory=list)


class ComfortModel(_FromAttributes):
    avg: float
    trend: TrendDirection
    status: ComfortStatus


class AirQualityModel(_FromAttributes):
    status: AirQualityStatus
    pollutants: List[str] = Field(default_factory=list)


class NoiseModel(_FromAttributes):
    avg: float
    status: NoiseStatus


class RainModel(_FromAttributes):
    avg: float
    status: RainStatus


class AnalysisResponse(BaseModel):
    """Environment analysis; only ``summary`` is set when data is insufficient."""

    device_id: str
    sufficient_data: bool
    reading_count: int = 0
    summary: str
    temperature: Optional[ComfortModel] = None
    humidity: Optional[ComfortModel] = None
    air_quality: Optional[AirQualityModel] = None
    noise: Optional[NoiseModel] = None
    rain: Optional[RainModel] = None
    averages: Dict[str, float] = Field(default_factory=dict)
    composition: Dict[str, float] = Field(default_factory=dict)


class ThresholdBandModel(_FromAttributes):
    moderate: float
    unhealthy: float
    dangerous: float


class WindowUpdate(BaseModel):
    window: int


class TimeRangeUpdate(BaseModel):
    range: TimeRange
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class ConfigResponse(BaseModel):
    time_range: TimeRange
    custom_start: Optional[datetime] = None
    custom_end: Optional[datetime] = None
    moving_average_window: int
    timezone: str
    thresholds: Dict[str, ThresholdBandModel]


class SelectionUpdate(BaseModel):
    device_id: Optional[str] = None
    selected_date: Optional[date] = None


class LiveSnapshot(BaseModel):
    """Current reconciler state for the selected device."""

    state: ReconcilerState
    selected_device_id: Optional[str] = None
    selected_date: Optional[date] = None
    window: List[ReadingModel] = Field(default_factory=list)


class LatestResponse(BaseModel):
    state: ReconcilerState
    latest: Dict[str, ReadingModel] = Field(default_factory=dict)


class ComparisonPointModel(_FromAttributes):
    timestamp: datetime
    values: Dict[str, float] = Field(default_factory=dict)


class ComparisonResponse(BaseModel):
    """One field across several devices, aligned on shared timestamps."""

    field: str
    device_ids: List[str]
    window: QueryWindow
    points: List[ComparisonPointModel] = Field(default_factory=list)
