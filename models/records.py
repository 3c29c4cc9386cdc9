"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

SENSOR_FIELDS: tuple[str, ...] = (
    "temperature",
    "humidity",
    "co",
    "co2",
    "nh3",
    "lpg",
    "smoke",
    "alcohol",
    "sound_intensity",
    "rain_intensity",
)

# Fields that carry a health threshold band. Rain has none.
HEALTH_FIELDS: tuple[str, ...] = (
    "co",
    "co2",
    "nh3",
    "lpg",
    "smoke",
    "alcohol",
    "temperature",
    "humidity",
    "sound_intensity",
)

FIELD_UNITS: dict[str, str] = {
    "temperature": "°C",
    "humidity": "%",
    "co": "ppm",
    "co2": "ppm",
    "nh3": "ppm",
    "lpg": "ppm",
    "smoke": "ppm",
    "alcohol": "ppm",
    "sound_intensity": "dB",
    "rain_intensity": "mm/h",
}


class RiskLevel(str, Enum):
    """Health risk tiers, ordered from least to most severe."""

    safe = "safe"
    moderate = "moderate"
    unhealthy = "unhealthy"
    dangerous = "dangerous"

    @property
    def severity(self) -> int:
        return _RISK_ORDER[self]


_RISK_ORDER = {
    RiskLevel.safe: 0,
    RiskLevel.moderate: 1,
    RiskLevel.unhealthy: 2,
    RiskLevel.dangerous: 3,
}


class TimeRange(str, Enum):
    """Symbolic range selectors offered by the dashboard."""

    last_1h = "1h"
    last_6h = "6h"
    last_24h = "24h"
    last_7d = "7d"
    last_30d = "30d"
    custom = "custom"


class TrendDirection(str, Enum):
    rising = "rising"
    falling = "falling"
    stable = "stable"


@dataclass(frozen=True, slots=True)
class Device:
    """A monitoring station and its location."""

    id: str
    name: str
    lat: float
    long: float


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single reading reported by a device."""

    id: str
    device_id: str
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

    def value_of(self, field: str) -> float:
        if field not in SENSOR_FIELDS:
            raise ValueError(f"Unknown sensor field {field!r}.")
        return getattr(self, field)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "device_id": self.device_id,
            "created_at": self.created_at.isoformat(),
        }
        for field in SENSOR_FIELDS:
            payload[field] = getattr(self, field)
        return payload


def is_newer(candidate: SensorReading, current: Optional[SensorReading]) -> bool:
    """Whether ``candidate`` should replace ``current`` as a device's latest reading.

    Ties go to the candidate, so the most recently received of two readings
    with the same timestamp wins.
    """
    return current is None or candidate.created_at >= current.created_at


def parse_timestamp(value: Any) -> datetime:
    """Normalise an ISO-8601 string or datetime to an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        candidate = str(value or "").strip()
        if not candidate:
            raise ValueError("Timestamp is empty.")

        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"

        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise ValueError("Invalid timestamp format") from exc

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed.astimezone(timezone.utc)


def parse_reading(payload: Mapping[str, Any]) -> SensorReading:
    """Build a reading from a raw row, rejecting incomplete payloads.

    Missing measurement fields default to zero, but a present value that is
    not numeric is rejected so that NaN never reaches the engines.
    """
    device_id = str(payload.get("device_id") or "").strip()
    if not device_id:
        raise ValueError("missing device_id")

    raw_timestamp = payload.get("created_at")
    if raw_timestamp is None or raw_timestamp == "":
        raise ValueError("missing created_at")
    try:
        created_at = parse_timestamp(raw_timestamp)
    except ValueError as exc:
        raise ValueError("invalid created_at") from exc

    values: dict[str, float] = {}
    for field in SENSOR_FIELDS:
        raw = payload.get(field)
        if raw is None:
            continue
        if isinstance(raw, bool):
            raise ValueError(f"invalid numeric value for {field}")
        try:
            number = float(raw)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid numeric value for {field}") from exc
        if number != number:
            raise ValueError(f"invalid numeric value for {field}")
        values[field] = number

    reading_id = str(payload.get("id") or "").strip()
    if not reading_id:
        reading_id = f"{device_id}-{created_at.isoformat()}"

    return SensorReading(
        id=reading_id,
        device_id=device_id,
        created_at=created_at,
        **values,
    )
