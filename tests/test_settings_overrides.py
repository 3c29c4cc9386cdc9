from __future__ import annotations

from typing import Iterable

from app.api import build_default_session
from datastore.reading_store import build_default_store
from settings import get_settings


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch, tmp_path) -> None:
    store_path = tmp_path / "readings.json"

    monkeypatch.setenv("READING_STORE_PATH", str(store_path))
    monkeypatch.setenv("DASHBOARD_TIMEZONE", "Asia/Singapore")
    monkeypatch.setenv("LIVE_WINDOW_SIZE", "25")
    monkeypatch.setenv("MOVING_AVERAGE_WINDOW", "7")
    monkeypatch.setenv("HISTORY_FETCH_LIMIT", "40")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (get_settings, build_default_store, build_default_session)
    _clear_caches(caches)

    try:
        settings = get_settings()
        store = build_default_store()
        session = build_default_session()

        assert settings.log_level == "DEBUG"
        assert store.persistence_path == store_path
        assert session.source is store
        assert session.reconciler.window_size == 25
        assert session.fetch_limit == 40
        assert session.config.moving_average_window == 7
        assert str(session.config.tz) == "Asia/Singapore"
    finally:
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("LIVE_WINDOW_SIZE", "-3")
    monkeypatch.setenv("HISTORY_FETCH_LIMIT", "many")
    monkeypatch.setenv("READING_STORE_PATH", "  ")
    monkeypatch.setenv("DASHBOARD_TIMEZONE", "")
    get_settings.cache_clear()

    try:
        settings = get_settings()
    finally:
        get_settings.cache_clear()

    assert settings.live_window_size == 100
    assert settings.history_fetch_limit == 100
    assert settings.store_path is None
    assert settings.timezone == "UTC"
