"""Unit tests for the in-memory reading store."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone

import pytest

from datastore.reading_store import ReadingStore
from models.records import Device, SensorReading
from services.time_range import TimeWindow

BASE = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _reading(device_id: str, minutes: int, **values) -> SensorReading:
    return SensorReading(
        id=f"{device_id}-{minutes}",
        device_id=device_id,
        created_at=BASE + timedelta(minutes=minutes),
        **values,
    )


def test_devices_are_listed_by_id_and_missing_lookup_raises() -> None:
    store = ReadingStore()
    store.put_device(Device(id="b", name="Garden", lat=1.0, long=2.0))
    store.put_device(Device(id="a", name="Office", lat=1.0, long=2.0))

    assert [device.id for device in store.fetch_devices()] == ["a", "b"]
    assert store.get_device("a").name == "Office"
    with pytest.raises(KeyError):
        store.get_device("missing")


def test_fetch_readings_is_newest_first_limited_and_windowed() -> None:
    store = ReadingStore()
    for minute in range(5):
        store.insert_reading(_reading("a", minute))
    store.insert_reading(_reading("b", 2))

    assert [reading.id for reading in store.fetch_readings("a")] == ["a-4", "a-3", "a-2", "a-1", "a-0"]
    assert [reading.id for reading in store.fetch_readings("a", limit=2)] == ["a-4", "a-3"]

    window = TimeWindow(start=BASE + timedelta(minutes=1), end=BASE + timedelta(minutes=3))
    assert [reading.id for reading in store.fetch_readings("a", window=window)] == ["a-3", "a-2", "a-1"]


def test_latest_readings_per_device() -> None:
    store = ReadingStore()
    store.insert_reading(_reading("a", 5))
    store.insert_reading(_reading("a", 1))
    store.insert_reading(_reading("b", 3))

    latest = {reading.device_id: reading.id for reading in store.fetch_latest_readings_per_device()}
    assert latest == {"a": "a-5", "b": "b-3"}

    window = TimeWindow(start=BASE, end=BASE + timedelta(minutes=2))
    scoped = store.fetch_latest_readings_per_device(window)
    assert [reading.id for reading in scoped] == ["a-1"]


def test_subscribers_receive_row_dicts_until_unsubscribed() -> None:
    store = ReadingStore()
    received: list[dict] = []
    subscription = store.subscribe_to_inserts(received.append)

    store.insert_reading(_reading("a", 1, temperature=21.5))
    subscription.unsubscribe()
    store.insert_reading(_reading("a", 2))

    assert len(received) == 1
    assert received[0]["id"] == "a-1"
    assert received[0]["temperature"] == 21.5
    assert received[0]["created_at"] == "2024-01-01T12:01:00+00:00"
    assert subscription.active is False


def test_failing_subscriber_does_not_block_others(caplog) -> None:
    store = ReadingStore()
    received: list[dict] = []

    def broken(_: dict) -> None:
        raise RuntimeError("boom")

    store.subscribe_to_inserts(broken)
    store.subscribe_to_inserts(received.append)

    with caplog.at_level(logging.ERROR, logger="datastore.reading_store"):
        store.insert_reading(_reading("a", 1))

    assert [row["id"] for row in received] == ["a-1"]
    assert any(record.getMessage() == "Insert subscriber failed" for record in caplog.records)


def test_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "store" / "readings.json"
    store = ReadingStore(persistence_path=path)
    store.put_device(Device(id="a", name="Office", lat=1.35, long=103.82))
    store.insert_reading(_reading("a", 1, co2=450.0))

    payload = json.loads(path.read_text())
    assert payload["devices"][0]["id"] == "a"
    assert payload["readings"][0]["co2"] == 450.0

    reloaded = ReadingStore(persistence_path=path)
    assert reloaded.get_device("a").lat == 1.35
    assert reloaded.fetch_readings("a") == [_reading("a", 1, co2=450.0)]


def test_corrupt_or_invalid_rows_are_skipped(tmp_path, caplog) -> None:
    path = tmp_path / "readings.json"
    path.write_text(
        json.dumps(
            {
                "devices": [],
                "readings": [
                    {"id": "ok", "device_id": "a", "created_at": "2024-01-01T00:00:00+00:00"},
                    {"id": "bad", "device_id": "a", "created_at": "not a date"},
                ],
            }
        )
    )

    with caplog.at_level(logging.WARNING, logger="datastore.reading_store"):
        store = ReadingStore(persistence_path=path)

    assert [reading.id for reading in store.fetch_readings("a")] == ["ok"]
    assert any(getattr(record, "reason", None) == "invalid created_at" for record in caplog.records)

    path.write_text("{not json")
    assert ReadingStore(persistence_path=path).fetch_devices() == []


def test_latest_per_device_tie_goes_to_last_inserted() -> None:
    store = ReadingStore()
    store.insert_reading(SensorReading(id="first", device_id="a", created_at=BASE))
    store.insert_reading(SensorReading(id="second", device_id="a", created_at=BASE))

    assert [reading.id for reading in store.fetch_latest_readings_per_device()] == ["second"]
