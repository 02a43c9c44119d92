"""
app/services/scrape_monitoring_service.py

Read-side service over the scrape event log.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from app.config import MonitoringSettings, get_monitoring_settings
from app.domain.scrape_monitoring import DailyScrapeMetrics, FailureReason, ScrapeAlert, ScrapeMetrics
from app.logging_utils import log_event
from app.monitoring.metrics import evaluate_thresholds as evaluate_alert_thresholds
from app.scanning.storage import SQLAlchemyScanStore
from app.scanning.storage.base import ScanStore
from app.scraping.storage import SQLAlchemyScrapeEventLog
from app.scraping.storage.base import ScrapeEventLog
from app.scraping.types import ScrapeEvent
from db.models.scan import ScanStatus

logger = logging.getLogger(__name__)

FAILURE_REASON_WINDOW_DAYS = 7


class ScrapeMonitoringService:
    def __init__(
        self,
        *,
        event_log: ScrapeEventLog,
        scan_store: ScanStore,
        settings: MonitoringSettings | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._event_log = event_log
        self._scan_store = scan_store
        self._settings = settings or get_monitoring_settings()
        self._now = now or (lambda: datetime.now(timezone.utc))

    def scan_metrics(
        self,
        scan_id: uuid.UUID,
        *,
        evaluate_thresholds: bool = False,
    ) -> tuple[ScrapeMetrics, list[ScrapeAlert]]:
        metrics = self._event_log.summary(scan_id)
        alerts = self._alerts(scan_id, metrics) if evaluate_thresholds else []
        return metrics, alerts

    def _alerts(self, scan_id: uuid.UUID, metrics: ScrapeMetrics) -> list[ScrapeAlert]:
        return evaluate_alert_thresholds(
            metrics,
            self._event_log.forbidden_streaks(scan_id),
            settings=self._settings,
            scan_id=scan_id,
        )

    def clamp_days(self, days: int | None) -> int:
        if days is None:
            return self._settings.default_lookback_days
        return max(1, min(days, self._settings.max_lookback_days))

    def daily_metrics(self, *, days: int | None = None) -> list[DailyScrapeMetrics]:
        since = self._now() - timedelta(days=self.clamp_days(days))
        return self._event_log.daily_rollup(since)

    def failure_reasons(self, *, scan_id: uuid.UUID | None = None) -> list[FailureReason]:
        """
        Top failure reasons of one scan, or of the last seven days.
        """

        since = None if scan_id is not None else self._now() - timedelta(days=FAILURE_REASON_WINDOW_DAYS)
        return self._event_log.failure_reasons(
            limit=self._settings.failure_reason_limit,
            scan_id=scan_id,
            since=since,
        )

    def recent_events(
        self,
        *,
        limit: int = 100,
        scan_id: uuid.UUID | None = None,
        scrape_status: str | None = None,
    ) -> list[ScrapeEvent]:
        return self._event_log.recent(limit=limit, scan_id=scan_id, scrape_status=scrape_status)

    def run_health_check(self) -> list[ScrapeAlert]:
        """
        Evaluate thresholds for every running scan.
        """

        alerts: list[ScrapeAlert] = []
        running = self._scan_store.list_scans(limit=50, status=ScanStatus.RUNNING)
        for scan in running:
            alerts.extend(self._alerts(scan.id, self._event_log.summary(scan.id)))
        log_event(
            logger,
            logging.INFO,
            "scrape_health_checked",
            scans=len(running),
            alerts=len(alerts),
        )
        return alerts


@lru_cache(maxsize=1)
def get_scrape_monitoring_service() -> ScrapeMonitoringService:
    """
    Build and cache the scrape monitoring service.
    """

    return ScrapeMonitoringService(
        event_log=SQLAlchemyScrapeEventLog(),
        scan_store=SQLAlchemyScanStore(),
    )
