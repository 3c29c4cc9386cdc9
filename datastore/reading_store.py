from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Callable, Dict, List, Optional

from models.records import Device, SensorReading, is_newer, parse_reading
from services.time_range import TimeWindow
from settings import get_settings

logger = logging.getLogger(__name__)

InsertCallback = Callable[[dict], None]


class Subscription:
    """Handle returned by :meth:`ReadingStore.subscribe_to_inserts`."""

    def __init__(self, store: "ReadingStore", callback: InsertCallback) -> None:
        self._store = store
        self._callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self._store._remove_subscriber(self._callback)
            self.active = False


class ReadingStore:
    """In-memory device and reading tables with optional JSON persistence.

    Subscribers receive the raw row dict of every insert, mirroring a
    database change feed; they are called on the inserting thread.
    """

    def __init__(self, name: str = "readings", persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._devices: Dict[str, Device] = {}
        self._readings: List[SensorReading] = []
        self._subscribers: List[InsertCallback] = []
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_device(self, device: Device) -> None:
        with self._lock:
            self._devices[device.id] = device
            self._persist()

    def fetch_devices(self) -> list[Device]:
        with self._lock:
            return sorted(self._devices.values(), key=lambda device: device.id)

    def get_device(self, device_id: str) -> Device:
        with self._lock:
            device = self._devices.get(device_id)
        if device is None:
            raise KeyError(f"Device {device_id!r} not found.")
        return device

    def insert_reading(self, reading: SensorReading) -> None:
        with self._lock:
            self._readings.append(reading)
            self._persist()
            subscribers = list(self._subscribers)

        payload = reading.to_dict()
        for callback in subscribers:
            try:
                callback(payload)
            except Exception:  # noqa: BLE001 - one subscriber must not break the feed
                logger.exception(
                    "Insert subscriber failed",
                    extra={"device_id": reading.device_id, "reading_id": reading.id},
                )

    def fetch_readings(
        self,
        device_id: str,
        limit: Optional[int] = None,
        window: Optional[TimeWindow] = None,
    ) -> list[SensorReading]:
        """Readings for one device, newest first."""
        with self._lock:
            matches = [
                reading
                for reading in self._readings
                if reading.device_id == device_id
                and (window is None or window.contains(reading.created_at))
            ]
        matches.sort(key=lambda reading: reading.created_at, reverse=True)
        if limit is not None:
            matches = matches[:limit]
        return matches

    def fetch_latest_readings_per_device(
        self, window: Optional[TimeWindow] = None
    ) -> list[SensorReading]:
        latest: Dict[str, SensorReading] = {}
        with self._lock:
            for reading in self._readings:
                if window is not None and not window.contains(reading.created_at):
                    continue
                if is_newer(reading, latest.get(reading.device_id)):
                    latest[reading.device_id] = reading
        return list(latest.values())

    def subscribe_to_inserts(self, callback: InsertCallback) -> Subscription:
        with self._lock:
            self._subscribers.append(callback)
            count = len(self._subscribers)
        logger.debug("Insert subscriber added", extra={"subscriber_count": count})
        return Subscription(self, callback)

    def _remove_subscriber(self, callback: InsertCallback) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            "devices": [
                {"id": d.id, "name": d.name, "lat": d.lat, "long": d.long}
                for d in self._devices.values()
            ],
            "readings": [reading.to_dict() for reading in self._readings],
        }
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable reading store", extra={"reason": "corrupt file"})
            data = {}

        for item in data.get("devices", []):
            device = Device(
                id=str(item["id"]),
                name=str(item.get("name", "")),
                lat=float(item.get("lat", 0.0)),
                long=float(item.get("long", 0.0)),
            )
            self._devices[device.id] = device

        for row in data.get("readings", []):
            try:
                self._readings.append(parse_reading(row))
            except ValueError as exc:
                logger.warning(
                    "Skipping stored reading",
                    extra={"reading_id": row.get("id"), "reason": str(exc)},
                )


@lru_cache
def build_default_store(path: Optional[str] = None) -> ReadingStore:
    settings = get_settings()
    store_path = settings.store_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(persistence_path=persistence)
