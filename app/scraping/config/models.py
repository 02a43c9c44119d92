"""
Scraping configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ScanSourceConfig:
    """
    One scan source: where availability is checked and how it is parsed.
    """

    name: str
    scraper_type: str
    base_url: str
    enabled: bool = True
    selectors: dict[str, list[str]] = field(default_factory=dict)
    rate_limit_ms: int | None = None
    rotate_user_agent: bool = True
    user_agent: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    scraper_class: str | None = None
    currency: str = "EUR"
    locale: str = "de_DE"
    request_template: dict[str, Any] | None = None


@dataclass(frozen=True)
class ScrapeSettings:
    """
    Runtime settings for the scrape clients.
    """

    sources_path: str
    active_source: str
    timeout_seconds: float = 30.0
    min_delay_ms: int = 3000
    max_delay_ms: int = 8000
    jitter_percent: float = 20.0
    max_requests_per_session: int = 15
    max_session_age_seconds: float = 1800.0
    max_rate_limit_retries: int = 3
    rate_limit_base_seconds: float = 300.0
    rate_limit_max_seconds: float = 600.0
    max_server_error_retries: int = 3
    server_error_base_seconds: float = 2.0
    max_timeout_retries: int = 2
    timeout_base_seconds: float = 5.0
    retry_jitter_percent: float = 0.0
