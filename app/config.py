"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


@dataclass(frozen=True)
class ScanSettings:
    """
    Runtime settings for scan creation and batch processing.
    """

    default_batch_size: int = 50
    max_batch_size: int = 200
    resume_batch_size: int = 30
    worker_concurrency: int = 4
    soft_budget_seconds: float = 40.0
    kick_on_create: bool = True
    resume_interval_seconds: int = 60
    resume_cycle_budget_seconds: float = 50.0
    timezone: str = "Europe/Berlin"
    default_start_offset_days: int = 5
    default_days: int = 86
    default_stay_nights: int = 7
    default_adults: int = 2


@dataclass(frozen=True)
class MonitoringSettings:
    """
    Thresholds and windows for scrape health monitoring.
    """

    min_samples: int = 10
    success_rate_floor: float = 80.0
    block_rate_ceiling: float = 20.0
    consecutive_forbidden_limit: int = 3
    default_lookback_days: int = 7
    max_lookback_days: int = 30
    failure_reason_limit: int = 10
    health_check_interval_minutes: int = 15


@lru_cache(maxsize=1)
def get_scan_settings() -> ScanSettings:
    """
    Return cached scan settings from environment variables.
    """

    max_batch_size = max(1, _get_int_env("SCAN_MAX_BATCH_SIZE", 200))
    return ScanSettings(
        default_batch_size=min(max_batch_size, max(1, _get_int_env("SCAN_DEFAULT_BATCH_SIZE", 50))),
        max_batch_size=max_batch_size,
        resume_batch_size=min(max_batch_size, max(1, _get_int_env("SCAN_RESUME_BATCH_SIZE", 30))),
        worker_concurrency=max(1, _get_int_env("SCAN_WORKER_CONCURRENCY", 4)),
        soft_budget_seconds=max(1.0, _get_float_env("SCAN_SOFT_BUDGET_SECONDS", 40.0)),
        kick_on_create=_get_bool_env("SCAN_KICK_ON_CREATE", True),
        resume_interval_seconds=max(5, _get_int_env("SCAN_RESUME_INTERVAL_SECONDS", 60)),
        resume_cycle_budget_seconds=max(
            1.0,
            _get_float_env("SCAN_RESUME_CYCLE_BUDGET_SECONDS", 50.0),
        ),
        timezone=_get_str_env("SCAN_TIMEZONE", "Europe/Berlin"),
        default_start_offset_days=max(0, _get_int_env("SCAN_DEFAULT_START_OFFSET_DAYS", 5)),
        default_days=max(1, _get_int_env("SCAN_DEFAULT_DAYS", 86)),
        default_stay_nights=max(1, _get_int_env("SCAN_DEFAULT_STAY_NIGHTS", 7)),
        default_adults=max(1, _get_int_env("SCAN_DEFAULT_ADULTS", 2)),
    )


@lru_cache(maxsize=1)
def get_monitoring_settings() -> MonitoringSettings:
    """
    Return cached scrape monitoring settings from environment variables.
    """

    max_lookback = max(1, _get_int_env("SCRAPE_HEALTH_MAX_LOOKBACK_DAYS", 30))
    return MonitoringSettings(
        min_samples=max(1, _get_int_env("SCRAPE_ALERT_MIN_SAMPLES", 10)),
        success_rate_floor=_get_float_env("SCRAPE_ALERT_SUCCESS_RATE_FLOOR", 80.0),
        block_rate_ceiling=_get_float_env("SCRAPE_ALERT_BLOCK_RATE_CEILING", 20.0),
        consecutive_forbidden_limit=max(1, _get_int_env("SCRAPE_ALERT_CONSECUTIVE_403", 3)),
        default_lookback_days=min(
            max_lookback,
            max(1, _get_int_env("SCRAPE_HEALTH_LOOKBACK_DAYS", 7)),
        ),
        max_lookback_days=max_lookback,
        failure_reason_limit=max(1, _get_int_env("SCRAPE_HEALTH_FAILURE_REASON_LIMIT", 10)),
        health_check_interval_minutes=max(1, _get_int_env("SCRAPE_HEALTH_CHECK_INTERVAL_MINUTES", 15)),
    )
