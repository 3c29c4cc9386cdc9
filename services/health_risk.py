"""Health-risk classification against tiered thresholds."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Sequence

from models.records import HEALTH_FIELDS, RiskLevel, SensorReading

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThresholdBand:
    """Lower bounds of the moderate, unhealthy and dangerous tiers."""

    moderate: float
    unhealthy: float
    dangerous: float

    def __post_init__(self) -> None:
        if not self.moderate < self.unhealthy < self.dangerous:
            raise ValueError(
                "Threshold bands must satisfy moderate < unhealthy < dangerous "
                f"(got {self.moderate}, {self.unhealthy}, {self.dangerous})."
            )


class HealthThresholds:
    """Immutable table of threshold bands keyed by sensor field."""

    def __init__(self, bands: Mapping[str, ThresholdBand]) -> None:
        unknown = sorted(set(bands) - set(HEALTH_FIELDS))
        if unknown:
            raise ValueError(f"Unknown threshold fields: {', '.join(unknown)}")
        missing = sorted(set(HEALTH_FIELDS) - set(bands))
        if missing:
            raise ValueError(f"Missing threshold fields: {', '.join(missing)}")
        self._bands: Dict[str, ThresholdBand] = dict(bands)

    @classmethod
    def defaults(cls) -> "HealthThresholds":
        return cls(DEFAULT_BANDS)

    def __getitem__(self, field_name: str) -> ThresholdBand:
        try:
            return self._bands[field_name]
        except KeyError:
            raise ValueError(f"No thresholds configured for {field_name!r}.") from None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HealthThresholds):
            return NotImplemented
        return self._bands == other._bands

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._bands.items())))

    def as_dict(self) -> Dict[str, ThresholdBand]:
        return dict(self._bands)

    def merged(self, updates: Mapping[str, ThresholdBand]) -> "HealthThresholds":
        """Return a copy with ``updates`` applied over the current bands."""
        bands = dict(self._bands)
        bands.update(updates)
        return HealthThresholds(bands)


DEFAULT_BANDS: Dict[str, ThresholdBand] = {
    "co": ThresholdBand(9, 15, 30),
    "co2": ThresholdBand(1000, 5000, 40000),
    "nh3": ThresholdBand(25, 35, 50),
    "lpg": ThresholdBand(1000, 2000, 5000),
    "smoke": ThresholdBand(100, 300, 500),
    "alcohol": ThresholdBand(50, 100, 200),
    "temperature": ThresholdBand(30, 35, 40),
    "humidity": ThresholdBand(70, 80, 90),
    "sound_intensity": ThresholdBand(70, 85, 100),
}


@dataclass(frozen=True)
class FieldRisk:
    field: str
    value: float
    level: RiskLevel


@dataclass
class RiskAssessment:
    """Per-field risk levels computed from averaged readings."""

    reading_count: int = 0
    overall: RiskLevel = RiskLevel.safe
    fields: List[FieldRisk] = field(default_factory=list)
    alerts: List[FieldRisk] = field(default_factory=list)


class HealthRiskEngine:
    """Pure classification component; thresholds are passed on every call."""

    def classify(
        self, field_name: str, value: float, thresholds: HealthThresholds
    ) -> RiskLevel:
        band = thresholds[field_name]
        if value >= band.dangerous:
            return RiskLevel.dangerous
        if value >= band.unhealthy:
            return RiskLevel.unhealthy
        if value >= band.moderate:
            return RiskLevel.moderate
        return RiskLevel.safe

    def aggregate(self, levels: Iterable[RiskLevel]) -> RiskLevel:
        worst = RiskLevel.safe
        for level in levels:
            if level.severity > worst.severity:
                worst = level
        return worst

    def assess(
        self, readings: Sequence[SensorReading], thresholds: HealthThresholds
    ) -> RiskAssessment:
        """Classify the mean of each thresholded field over ``readings``."""
        if not readings:
            return RiskAssessment()

        count = len(readings)
        field_risks: List[FieldRisk] = []
        for name in HEALTH_FIELDS:
            mean = sum(reading.value_of(name) for reading in readings) / count
            field_risks.append(
                FieldRisk(field=name, value=mean, level=self.classify(name, mean, thresholds))
            )

        overall = self.aggregate(risk.level for risk in field_risks)
        alerts = sorted(
            (risk for risk in field_risks if risk.level is not RiskLevel.safe),
            key=lambda risk: risk.level.severity,
            reverse=True,
        )
        if alerts:
            logger.debug(
                "Readings exceed safe limits",
                extra={"reading_count": count, "state": overall.value},
            )
        return RiskAssessment(
            reading_count=count,
            overall=overall,
            fields=field_risks,
            alerts=alerts,
        )
