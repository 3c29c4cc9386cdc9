"""Multi-dimension environment analysis and plain-language summaries."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from models.records import SENSOR_FIELDS, RiskLevel, SensorReading, TrendDirection
from services.health_risk import HealthRiskEngine, HealthThresholds

# Minimum difference between half-means to call a direction.
HALF_TREND_THRESHOLD = 0.5


class ComfortStatus(str, Enum):
    normal = "normal"
    warning = "warning"
    critical = "critical"


class AirQualityStatus(str, Enum):
    good = "good"
    moderate = "moderate"
    poor = "poor"
    unhealthy = "unhealthy"
    hazardous = "hazardous"


class NoiseStatus(str, Enum):
    quiet = "quiet"
    moderate = "moderate"
    loud = "loud"
    very_loud = "very loud"


class RainStatus(str, Enum):
    none = "none"
    light = "light"
    moderate = "moderate"
    heavy = "heavy"


_AIR_QUALITY_ORDER = list(AirQualityStatus)

# (field, label, status reached) in evaluation order.
_POLLUTANT_RULES = (
    ("co2", "High CO2", AirQualityStatus.moderate),
    ("co", "High CO", AirQualityStatus.hazardous),
    ("nh3", "High NH3", AirQualityStatus.poor),
    ("lpg", "High LPG", AirQualityStatus.unhealthy),
    ("smoke", "Smoke detected", AirQualityStatus.poor),
    ("alcohol", "High Alcohol vapor", AirQualityStatus.moderate),
)


@dataclass(frozen=True)
class ComfortAnalysis:
    avg: float
    trend: TrendDirection
    status: ComfortStatus


@dataclass(frozen=True)
class AirQualityAnalysis:
    status: AirQualityStatus
    pollutants: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class NoiseAnalysis:
    avg: float
    status: NoiseStatus


@dataclass(frozen=True)
class RainAnalysis:
    avg: float
    status: RainStatus


@dataclass(frozen=True)
class AnalysisResult:
    reading_count: int
    temperature: ComfortAnalysis
    humidity: ComfortAnalysis
    air_quality: AirQualityAnalysis
    noise: NoiseAnalysis
    rain: RainAnalysis
    summary: str


def _mean(readings: Sequence[SensorReading], name: str) -> float:
    return sum(reading.value_of(name) for reading in readings) / len(readings)


def half_trend(recent: float, older: float) -> TrendDirection:
    difference = recent - older
    if abs(difference) < HALF_TREND_THRESHOLD:
        return TrendDirection.stable
    return TrendDirection.rising if difference > 0 else TrendDirection.falling


def temperature_status(avg: float) -> ComfortStatus:
    if avg > 30:
        return ComfortStatus.critical
    if avg > 28 or avg < 15:
        return ComfortStatus.warning
    return ComfortStatus.normal


def humidity_status(avg: float) -> ComfortStatus:
    if avg > 80 or avg < 20:
        return ComfortStatus.critical
    if avg > 70 or avg < 30:
        return ComfortStatus.warning
    return ComfortStatus.normal


def noise_status(avg: float) -> NoiseStatus:
    if avg > 85:
        return NoiseStatus.very_loud
    if avg > 75:
        return NoiseStatus.loud
    if avg > 60:
        return NoiseStatus.moderate
    return NoiseStatus.quiet


def rain_status(avg: float) -> RainStatus:
    if avg > 7.5:
        return RainStatus.heavy
    if avg > 2.5:
        return RainStatus.moderate
    if avg > 0.1:
        return RainStatus.light
    return RainStatus.none


def _escalate(current: AirQualityStatus, candidate: AirQualityStatus) -> AirQualityStatus:
    if _AIR_QUALITY_ORDER.index(candidate) > _AIR_QUALITY_ORDER.index(current):
        return candidate
    return current


def field_averages(readings: Sequence[SensorReading]) -> Dict[str, float]:
    """Mean of every sensor field; empty input yields an empty mapping."""
    if not readings:
        return {}
    return {name: _mean(readings, name) for name in SENSOR_FIELDS}


def composition(averages: Dict[str, float]) -> Dict[str, float]:
    """Each field's share of the summed averages, as a percentage."""
    total = sum(averages.values())
    return {name: (value / total) * 100 if total else 0.0 for name, value in averages.items()}


class EnvironmentAnalyzer:
    """Derives categorical statuses from a batch of readings.

    Pollutants are flagged once their mean reaches the ``moderate`` band of
    the health thresholds used by :class:`HealthRiskEngine`.
    """

    def __init__(self, risk_engine: Optional[HealthRiskEngine] = None) -> None:
        self.risk_engine = risk_engine or HealthRiskEngine()

    def analyze(
        self, readings: Sequence[SensorReading], thresholds: HealthThresholds
    ) -> Optional[AnalysisResult]:
        """Return ``None`` when there is not enough data to analyze."""
        if not readings:
            return None

        ordered = sorted(readings, key=lambda reading: reading.created_at, reverse=True)
        midpoint = len(ordered) // 2
        recent, older = ordered[:midpoint], ordered[midpoint:]

        temperature = self._comfort(ordered, recent, older, "temperature", temperature_status)
        humidity = self._comfort(ordered, recent, older, "humidity", humidity_status)
        air_quality = self._air_quality(ordered, thresholds)

        sound_avg = _mean(ordered, "sound_intensity")
        noise = NoiseAnalysis(avg=sound_avg, status=noise_status(sound_avg))
        rain_avg = _mean(ordered, "rain_intensity")
        rain = RainAnalysis(avg=rain_avg, status=rain_status(rain_avg))

        return AnalysisResult(
            reading_count=len(ordered),
            temperature=temperature,
            humidity=humidity,
            air_quality=air_quality,
            noise=noise,
            rain=rain,
            summary=self._summary(temperature, humidity, air_quality, noise, rain),
        )

    @staticmethod
    def _comfort(ordered, recent, older, name, status_for) -> ComfortAnalysis:
        avg = _mean(ordered, name)
        if recent and older:
            trend = half_trend(_mean(recent, name), _mean(older, name))
        else:
            trend = TrendDirection.stable
        return ComfortAnalysis(avg=avg, trend=trend, status=status_for(avg))

    def _air_quality(
        self, readings: Sequence[SensorReading], thresholds: HealthThresholds
    ) -> AirQualityAnalysis:
        status = AirQualityStatus.good
        pollutants: List[str] = []
        for name, label, reached in _POLLUTANT_RULES:
            level = self.risk_engine.classify(name, _mean(readings, name), thresholds)
            if level is RiskLevel.safe:
                continue
            pollutants.append(label)
            status = _escalate(status, reached)
        return AirQualityAnalysis(status=status, pollutants=pollutants)

    @staticmethod
    def _summary(temperature, humidity, air_quality, noise, rain) -> str:
        parts = [
            "Environment analysis shows "
            f"temperature is {temperature.avg:.1f}°C ({temperature.trend.value}) "
            f"and humidity is {humidity.avg:.1f}% ({humidity.trend.value})."
        ]
        if air_quality.pollutants:
            parts.append(
                f"Air quality is {air_quality.status.value} with "
                f"{', '.join(air_quality.pollutants)}."
            )
        else:
            parts.append("Air quality is good with no significant pollutants detected.")
        parts.append(f"Noise level is {noise.status.value} at {noise.avg:.1f} dB.")
        if rain.status is RainStatus.none:
            parts.append("No rain detected.")
        else:
            parts.append(f"Rain intensity is {rain.status.value} at {rain.avg:.1f} mm/h.")
        return " ".join(parts)
