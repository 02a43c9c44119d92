"""
app/api/routers/scrape_monitoring.py

Scrape metrics, health rollups and raw event listing.
"""

from __future__ import annotations

from dataclasses import asdict
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.schemas.scrape_monitoring import (
    DailyScrapeMetricsResponse,
    FailureReasonResponse,
    ScrapeAlertResponse,
    ScrapeEventResponse,
    ScrapeHealthResponse,
    ScrapeLogListResponse,
    ScrapeMetricsResponse,
)
from app.services.scrape_monitoring_service import (
    ScrapeMonitoringService,
    get_scrape_monitoring_service,
)

router = APIRouter(tags=["scrape-monitoring"])


@router.get("/scrape-metrics", response_model=ScrapeMetricsResponse)
def get_scrape_metrics(
    scan_id: UUID = Query(..., description="Scan to aggregate"),
    check_thresholds: bool = Query(default=False, description="Evaluate and log alert thresholds"),
    monitoring: ScrapeMonitoringService = Depends(get_scrape_monitoring_service),
) -> ScrapeMetricsResponse:
    metrics, alerts = monitoring.scan_metrics(scan_id, evaluate_thresholds=check_thresholds)
    return ScrapeMetricsResponse(
        **asdict(metrics),
        alerts=[ScrapeAlertResponse.model_validate(alert) for alert in alerts],
    )


@router.get("/scrape-health", response_model=ScrapeHealthResponse)
def get_scrape_health(
    days: int | None = Query(default=None, ge=1, description="Look-back window, capped by settings"),
    scan_id: UUID | None = Query(default=None, description="Limit failure reasons to one scan"),
    monitoring: ScrapeMonitoringService = Depends(get_scrape_monitoring_service),
) -> ScrapeHealthResponse:
    window = monitoring.clamp_days(days)
    return ScrapeHealthResponse(
        daily_metrics=[
            DailyScrapeMetricsResponse.model_validate(row)
            for row in monitoring.daily_metrics(days=window)
        ],
        failure_reasons=[
            FailureReasonResponse.model_validate(row)
            for row in monitoring.failure_reasons(scan_id=scan_id)
        ],
        days=window,
    )


@router.get("/scrape-logs", response_model=ScrapeLogListResponse)
def get_scrape_logs(
    scan_id: UUID | None = Query(default=None),
    scrape_status: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=100, ge=1, le=1000),
    monitoring: ScrapeMonitoringService = Depends(get_scrape_monitoring_service),
) -> ScrapeLogListResponse:
    events = monitoring.recent_events(limit=limit, scan_id=scan_id, scrape_status=scrape_status)
    return ScrapeLogListResponse(
        items=[ScrapeEventResponse.model_validate(event) for event in events],
        count=len(events),
    )
