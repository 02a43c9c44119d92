"""
Environment + JSON config loader for scan sources.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from app.config import _get_float_env, _get_int_env, _get_str_env
from app.scraping.config.models import ScanSourceConfig, ScrapeSettings


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _resolve_config_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@lru_cache(maxsize=1)
def get_scrape_settings() -> ScrapeSettings:
    """
    Return cached scrape client settings from environment variables.
    """

    sources_path = _get_str_env("SCAN_SOURCES_PATH", "app/scraping/config/sources.json")
    min_delay_ms = max(0, _get_int_env("SCRAPE_MIN_DELAY_MS", 3000))
    return ScrapeSettings(
        sources_path=str(_resolve_config_path(sources_path)),
        active_source=_get_str_env("SCAN_ACTIVE_SOURCE", "booking_com"),
        timeout_seconds=max(1.0, _get_float_env("SCRAPE_TIMEOUT_SECONDS", 30.0)),
        min_delay_ms=min_delay_ms,
        max_delay_ms=max(min_delay_ms, _get_int_env("SCRAPE_MAX_DELAY_MS", 8000)),
        jitter_percent=max(0.0, _get_float_env("SCRAPE_JITTER_PERCENT", 20.0)),
        max_requests_per_session=max(1, _get_int_env("SCRAPE_SESSION_MAX_REQUESTS", 15)),
        max_session_age_seconds=max(
            1.0,
            _get_float_env("SCRAPE_SESSION_MAX_AGE_SECONDS", 1800.0),
        ),
        max_rate_limit_retries=max(0, _get_int_env("SCRAPE_RATE_LIMIT_MAX_RETRIES", 3)),
        rate_limit_base_seconds=max(0.0, _get_float_env("SCRAPE_RATE_LIMIT_BASE_SECONDS", 300.0)),
        rate_limit_max_seconds=max(0.0, _get_float_env("SCRAPE_RATE_LIMIT_MAX_SECONDS", 600.0)),
        max_server_error_retries=max(0, _get_int_env("SCRAPE_SERVER_ERROR_MAX_RETRIES", 3)),
        server_error_base_seconds=max(0.0, _get_float_env("SCRAPE_SERVER_ERROR_BASE_SECONDS", 2.0)),
        max_timeout_retries=max(0, _get_int_env("SCRAPE_TIMEOUT_MAX_RETRIES", 2)),
        timeout_base_seconds=max(0.0, _get_float_env("SCRAPE_TIMEOUT_BASE_SECONDS", 5.0)),
        retry_jitter_percent=max(0.0, _get_float_env("SCRAPE_RETRY_JITTER_PERCENT", 0.0)),
    )


def load_scan_sources(*, config_path: str) -> list[ScanSourceConfig]:
    """
    Load scan source configurations from a JSON file.
    """

    path = _resolve_config_path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Scan source config file not found: {path}")

    raw_data = json.loads(path.read_text(encoding="utf-8"))
    sources = raw_data.get("sources", [])
    if not isinstance(sources, list):
        raise ValueError("Invalid scan source config: 'sources' must be a list.")

    parsed: list[ScanSourceConfig] = []
    for entry in sources:
        if not isinstance(entry, dict):
            continue

        name = str(entry.get("name", "")).strip()
        base_url = str(entry.get("base_url", "")).strip()
        if not name or not base_url:
            continue

        parsed.append(
            ScanSourceConfig(
                name=name,
                scraper_type=str(entry.get("scraper_type", "configurable")).strip().lower(),
                base_url=base_url,
                enabled=_optional_bool(entry.get("enabled"), True),
                selectors=_normalize_selectors(entry.get("selectors", {})),
                rate_limit_ms=_optional_int(entry.get("rate_limit_ms")),
                rotate_user_agent=_optional_bool(entry.get("user_agent_rotation"), True),
                user_agent=_optional_str(entry.get("user_agent")),
                headers=_normalize_headers(entry.get("headers", {})),
                scraper_class=_optional_str(entry.get("scraper_class")),
                currency=(_optional_str(entry.get("currency")) or "EUR").upper(),
                locale=_optional_str(entry.get("locale")) or "de_DE",
                request_template=_optional_dict(entry.get("request_template")),
            )
        )

    return parsed


def find_scan_source(name: str, *, config_path: str) -> ScanSourceConfig:
    """
    Return the enabled source named `name` (case-insensitive).
    """

    wanted = name.strip().lower()
    for source in load_scan_sources(config_path=config_path):
        if source.name.lower() == wanted:
            if not source.enabled:
                raise ValueError(f"Scan source '{source.name}' is disabled.")
            return source
    raise ValueError(f"Unknown scan source '{name}'.")


def _normalize_selectors(selectors: object) -> dict[str, list[str]]:
    if not isinstance(selectors, dict):
        return {}

    normalized: dict[str, list[str]] = {}
    for key, value in selectors.items():
        if not isinstance(key, str):
            continue
        if isinstance(value, str):
            selector_list = [value.strip()] if value.strip() else []
        elif isinstance(value, list):
            selector_list = [item.strip() for item in value if isinstance(item, str) and item.strip()]
        else:
            selector_list = []
        normalized[key.strip().lower()] = selector_list
    return normalized


def _normalize_headers(headers: object) -> dict[str, str]:
    if not isinstance(headers, dict):
        return {}
    return {
        key.strip(): value.strip()
        for key, value in headers.items()
        if isinstance(key, str) and isinstance(value, str) and key.strip() and value.strip()
    }


def _optional_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None


def _optional_dict(value: object) -> dict[str, Any] | None:
    if isinstance(value, dict) and value:
        return value
    return None


def _optional_int(value: object) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_bool(value: object, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return default
