"""Unit tests for health-risk classification."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from models.records import RiskLevel, SensorReading
from services.health_risk import HealthRiskEngine, HealthThresholds, ThresholdBand

DEFAULTS = HealthThresholds.defaults()


@pytest.mark.parametrize(
    "field, value, expected",
    [
        ("co", 31, RiskLevel.dangerous),
        ("co", 30, RiskLevel.dangerous),
        ("co", 15, RiskLevel.unhealthy),
        ("co", 9, RiskLevel.moderate),
        ("co", 8, RiskLevel.safe),
        ("co2", 1200, RiskLevel.moderate),
        ("temperature", 36, RiskLevel.unhealthy),
        ("sound_intensity", 100, RiskLevel.dangerous),
    ],
)
def test_classify_against_defaults(field: str, value: float, expected: RiskLevel) -> None:
    assert HealthRiskEngine().classify(field, value, DEFAULTS) is expected


def test_classify_unknown_field_is_rejected() -> None:
    with pytest.raises(ValueError):
        HealthRiskEngine().classify("rain_intensity", 5, DEFAULTS)


def test_aggregate_takes_the_most_severe_level() -> None:
    engine = HealthRiskEngine()

    assert engine.aggregate([RiskLevel.safe, RiskLevel.moderate, RiskLevel.dangerous]) is RiskLevel.dangerous
    assert engine.aggregate([RiskLevel.moderate, RiskLevel.safe]) is RiskLevel.moderate
    assert engine.aggregate([]) is RiskLevel.safe


def test_threshold_band_must_be_strictly_increasing() -> None:
    with pytest.raises(ValueError):
        ThresholdBand(10, 10, 20)
    with pytest.raises(ValueError):
        ThresholdBand(30, 20, 10)


def test_merged_thresholds_apply_partial_updates() -> None:
    updated = DEFAULTS.merged({"co": ThresholdBand(5, 10, 20)})

    assert updated["co"] == ThresholdBand(5, 10, 20)
    assert updated["co2"] == DEFAULTS["co2"]
    assert DEFAULTS["co"] == ThresholdBand(9, 15, 30)


def test_merged_rejects_unknown_fields() -> None:
    with pytest.raises(ValueError):
        DEFAULTS.merged({"pressure": ThresholdBand(1, 2, 3)})


def test_assess_averages_fields_and_sorts_alerts() -> None:
    created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    readings = [
        SensorReading(id="a", device_id="d", created_at=created_at, co=40, temperature=31, humidity=50),
        SensorReading(id="b", device_id="d", created_at=created_at, co=30, temperature=33, humidity=50),
    ]

    assessment = HealthRiskEngine().assess(readings, DEFAULTS)

    assert assessment.reading_count == 2
    assert assessment.overall is RiskLevel.dangerous
    assert [alert.field for alert in assessment.alerts] == ["co", "temperature"]
    assert assessment.alerts[0].value == pytest.approx(35.0)
    assert len(assessment.fields) == 9


def test_assess_empty_is_safe() -> None:
    assessment = HealthRiskEngine().assess([], DEFAULTS)

    assert assessment.reading_count == 0
    assert assessment.overall is RiskLevel.safe
    assert assessment.alerts == []
