from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_STORE_PATH_ENV = "READING_STORE_PATH"
_TIMEZONE_ENV = "DASHBOARD_TIMEZONE"
_LIVE_WINDOW_ENV = "LIVE_WINDOW_SIZE"
_MOVING_AVERAGE_ENV = "MOVING_AVERAGE_WINDOW"
_FETCH_LIMIT_ENV = "HISTORY_FETCH_LIMIT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    store_path: Optional[str]
    timezone: str
    live_window_size: int
    moving_average_window: int
    history_fetch_limit: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        store_path=_read_optional_env(_STORE_PATH_ENV, "./tmp/readings.json"),
        timezone=_read_str_env(_TIMEZONE_ENV, "UTC"),
        live_window_size=_read_positive_int(_LIVE_WINDOW_ENV, 100),
        moving_average_window=_read_positive_int(_MOVING_AVERAGE_ENV, 5),
        history_fetch_limit=_read_positive_int(_FETCH_LIMIT_ENV, 100),
        log_level=_read_log_level("INFO"),
    )
