from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_READINGS_PATH_ENV = "WATERGUARD_READINGS_PATH"
_ALERTS_PATH_ENV = "WATERGUARD_ALERTS_PATH"
_DEVICE_CONFIG_PATH_ENV = "WATERGUARD_DEVICE_CONFIG_PATH"
_ACTIVE_TO_RECENT_ENV = "ALERT_ACTIVE_TO_RECENT_SECONDS"
_RECENT_TO_HISTORY_ENV = "ALERT_RECENT_TO_HISTORY_MINUTES"
_PURGE_GRACE_ENV = "ALERT_PURGE_GRACE_MINUTES"
_SWEEP_INTERVAL_ENV = "ALERT_SWEEP_INTERVAL_SECONDS"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    readings_path: Optional[str]
    alerts_path: Optional[str]
    device_config_path: Optional[str]
    active_to_recent_seconds: float
    recent_to_history_minutes: float
    purge_grace_minutes: float
    sweep_interval_seconds: float
    log_level: str


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
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
        readings_path=_read_optional_env(_READINGS_PATH_ENV, "./tmp/readings.json"),
        alerts_path=_read_optional_env(_ALERTS_PATH_ENV, "./tmp/alerts.json"),
        device_config_path=_read_optional_env(
            _DEVICE_CONFIG_PATH_ENV, "./tmp/device_thresholds.json"
        ),
        active_to_recent_seconds=_read_positive_float(_ACTIVE_TO_RECENT_ENV, 30.0),
        recent_to_history_minutes=_read_positive_float(_RECENT_TO_HISTORY_ENV, 5.0),
        purge_grace_minutes=_read_positive_float(_PURGE_GRACE_ENV, 5.0),
        sweep_interval_seconds=_read_positive_float(_SWEEP_INTERVAL_ENV, 30.0),
        log_level=_read_log_level("INFO"),
    )
