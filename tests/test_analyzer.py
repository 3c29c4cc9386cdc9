from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from models.records import SensorReading, TrendDirection
from services.analyzer import (
    AirQualityStatus,
    ComfortStatus,
    EnvironmentAnalyzer,
    NoiseStatus,
    RainStatus,
    composition,
    field_averages,
)
from services.health_risk import HealthThresholds

BASE = datetime(2024, 1, 1, tzinfo=timezone.utc)
NOMINAL = {
    "temperature": 22.0,
    "humidity": 50.0,
    "co": 1.0,
    "co2": 400.0,
    "nh3": 0.5,
    "lpg": 0.5,
    "smoke": 0.5,
    "alcohol": 0.5,
    "sound_intensity": 40.0,
    "rain_intensity": 0.0,
}


def _readings(count: int = 10, **overrides) -> list[SensorReading]:
    values = {**NOMINAL, **overrides}
    return [
        SensorReading(id=f"r{i}", device_id="dev", created_at=BASE + timedelta(minutes=i), **values)
        for i in range(count)
    ]


def _analyze(readings):
    return EnvironmentAnalyzer().analyze(readings, HealthThresholds.defaults())


def test_empty_input_is_insufficient_data() -> None:
    assert _analyze([]) is None


def test_nominal_readings_are_good_quiet_and_dry() -> None:
    result = _analyze(_readings())

    assert result.reading_count == 10
    assert result.temperature.status is ComfortStatus.normal
    assert result.humidity.status is ComfortStatus.normal
    assert result.air_quality.status is AirQualityStatus.good
    assert result.air_quality.pollutants == []
    assert result.noise.status is NoiseStatus.quiet
    assert result.rain.status is RainStatus.none
    assert "no significant pollutants" in result.summary
    assert result.summary.endswith("No rain detected.")


def test_elevated_co2_flags_pollutant() -> None:
    result = _analyze(_readings(co2=1200.0))

    assert result.air_quality.status is AirQualityStatus.moderate
    assert any("CO2" in label for label in result.air_quality.pollutants)


def test_co_forces_hazardous_and_is_never_downgraded() -> None:
    result = _analyze(_readings(co=12.0, lpg=1500.0, alcohol=60.0))

    assert result.air_quality.status is AirQualityStatus.hazardous
    assert result.air_quality.pollutants == ["High CO", "High LPG", "High Alcohol vapor"]


def test_air_quality_escalates_to_highest_contribution() -> None:
    result = _analyze(_readings(smoke=150.0, co2=1500.0))

    assert result.air_quality.status is AirQualityStatus.poor


def test_humidity_warning_sets_humidity_status_only() -> None:
    result = _analyze(_readings(humidity=75.0))

    assert result.humidity.status is ComfortStatus.warning
    assert result.temperature.status is ComfortStatus.normal


@pytest.mark.parametrize(
    "temperature, expected",
    [(31.0, ComfortStatus.critical), (29.0, ComfortStatus.warning), (14.0, ComfortStatus.warning)],
)
def test_temperature_status(temperature: float, expected: ComfortStatus) -> None:
    assert _analyze(_readings(temperature=temperature)).temperature.status is expected


@pytest.mark.parametrize(
    "sound, expected",
    [(90.0, NoiseStatus.very_loud), (80.0, NoiseStatus.loud), (65.0, NoiseStatus.moderate)],
)
def test_noise_ladder(sound: float, expected: NoiseStatus) -> None:
    assert _analyze(_readings(sound_intensity=sound)).noise.status is expected


def test_rain_summary_clause() -> None:
    result = _analyze(_readings(rain_intensity=5.0))

    assert result.rain.status is RainStatus.moderate
    assert "Rain intensity is moderate at 5.0 mm/h." in result.summary


def test_half_split_trend_uses_newest_half_as_recent() -> None:
    readings = [
        SensorReading(
            id=f"r{i}",
            device_id="dev",
            created_at=BASE + timedelta(minutes=i),
            temperature=20.0 + i,
            humidity=50.0,
        )
        for i in range(6)
    ]

    result = _analyze(list(reversed(readings)))

    assert result.temperature.trend is TrendDirection.rising
    assert result.humidity.trend is TrendDirection.stable


def test_single_reading_has_stable_trend() -> None:
    result = _analyze(_readings(count=1))

    assert result.temperature.trend is TrendDirection.stable


def test_pollutant_flags_follow_threshold_updates() -> None:
    from services.health_risk import ThresholdBand

    thresholds = HealthThresholds.defaults().merged({"co2": ThresholdBand(1500, 5000, 40000)})

    result = EnvironmentAnalyzer().analyze(_readings(co2=1200.0), thresholds)

    assert result.air_quality.pollutants == []


def test_composition_shares_sum_to_one_hundred() -> None:
    averages = field_averages(_readings())
    shares = composition(averages)

    assert set(shares) == set(NOMINAL)
    assert sum(shares.values()) == pytest.approx(100.0)
    assert composition({"co": 0.0}) == {"co": 0.0}
    assert field_averages([]) == {}
