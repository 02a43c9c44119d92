"""
app/domain/scrape_monitoring.py

Read-side models for scrape event metrics and alerts.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class ScrapeMetrics:
    total_attempts: int
    success_count: int
    success_percentage: float
    error_count: int
    error_percentage: float
    timeout_count: int
    timeout_percentage: float
    block_count: int
    block_percentage: float
    manual_review_count: int
    manual_review_percentage: float
    avg_response_time_ms: float
    avg_retry_count: float
    min_delay_ms: int
    max_delay_ms: int


@dataclass(frozen=True)
class DailyScrapeMetrics:
    date: date
    total_attempts: int
    success_count: int
    success_percentage: float
    block_count: int
    error_count: int
    timeout_count: int
    manual_review_count: int


@dataclass(frozen=True)
class FailureReason:
    reason: str
    scrape_status: str
    count: int


@dataclass(frozen=True)
class ScrapeAlert:
    """
    A breached health threshold. Alerts are reported, never acted upon.
    """

    level: str
    code: str
    message: str
    value: float
    threshold: float
    scan_id: uuid.UUID | None = None
    hotel_id: int | None = None
    hotel_name: str | None = None


@dataclass(frozen=True)
class ForbiddenStreak:
    """
    Longest run of consecutive HTTP 403 attempts against one hotel.
    """

    hotel_id: int
    length: int
    hotel_name: str | None = None
