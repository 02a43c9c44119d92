"""
app/schemas/scrape_monitoring.py

Response schemas for scrape metrics, health rollups and event listings.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ScrapeAlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    level: str
    code: str
    message: str
    value: float
    threshold: float
    scan_id: UUID | None = None
    hotel_id: int | None = None
    hotel_name: str | None = None


class ScrapeMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_attempts: int = Field(..., ge=0)
    success_count: int = Field(..., ge=0)
    success_percentage: float
    error_count: int = Field(..., ge=0)
    error_percentage: float
    timeout_count: int = Field(..., ge=0)
    timeout_percentage: float
    block_count: int = Field(..., ge=0)
    block_percentage: float
    manual_review_count: int = Field(..., ge=0)
    manual_review_percentage: float
    avg_response_time_ms: float
    avg_retry_count: float
    min_delay_ms: int
    max_delay_ms: int
    alerts: list[ScrapeAlertResponse] = Field(default_factory=list)


class DailyScrapeMetricsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    date: date
    total_attempts: int
    success_count: int
    success_percentage: float
    block_count: int
    error_count: int
    timeout_count: int
    manual_review_count: int


class FailureReasonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    reason: str
    scrape_status: str
    count: int


class ScrapeHealthResponse(BaseModel):
    daily_metrics: list[DailyScrapeMetricsResponse]
    failure_reasons: list[FailureReasonResponse]
    days: int


class ScrapeEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    scan_id: UUID | None = None
    hotel_id: int | None = None
    hotel_name: str | None = None
    check_in_date: date | None = None
    url: str | None = None
    scrape_status: str
    http_status: int | None = None
    delay_ms: int | None = None
    retry_count: int = 0
    error_message: str | None = None
    user_agent: str | None = None
    reason: str | None = None
    response_time_ms: int | None = None
    session_id: str | None = None


class ScrapeLogListResponse(BaseModel):
    items: list[ScrapeEventResponse]
    count: int
