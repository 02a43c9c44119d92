"""
Storage interface for the append-only scrape event log.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime

from app.domain.scrape_monitoring import DailyScrapeMetrics, FailureReason, ForbiddenStreak, ScrapeMetrics
from app.monitoring import metrics
from app.scraping.types import ScrapeEvent


class ScrapeEventLog(ABC):
    """
    One row per scrape attempt, retries included.

    The aggregate readers default to Python over the raw events; stores
    backed by a database override them with GROUP BY queries.
    """

    @abstractmethod
    def append(self, event: ScrapeEvent) -> None:
        ...

    @abstractmethod
    def events_for_scan(self, scan_id: uuid.UUID) -> list[ScrapeEvent]:
        """
        Events of one scan, oldest first.
        """

    @abstractmethod
    def events_since(self, since: datetime) -> list[ScrapeEvent]:
        """
        Events at or after `since`, oldest first.
        """

    @abstractmethod
    def recent(
        self,
        *,
        limit: int = 100,
        scan_id: uuid.UUID | None = None,
        scrape_status: str | None = None,
    ) -> list[ScrapeEvent]:
        """
        Newest events first, optionally filtered.
        """

    def summary(self, scan_id: uuid.UUID) -> ScrapeMetrics:
        return metrics.summarize(self.events_for_scan(scan_id))

    def daily_rollup(self, since: datetime) -> list[DailyScrapeMetrics]:
        return metrics.daily_rollup(self.events_since(since))

    def failure_reasons(
        self,
        *,
        limit: int,
        scan_id: uuid.UUID | None = None,
        since: datetime | None = None,
    ) -> list[FailureReason]:
        """
        Top failure reasons of one scan, or of every event since `since`.
        """

        if scan_id is not None:
            events = self.events_for_scan(scan_id)
        else:
            if since is None:
                raise ValueError("failure_reasons needs a scan_id or a since bound")
            events = self.events_since(since)
        return metrics.top_failure_reasons(events, limit=limit)

    def forbidden_streaks(self, scan_id: uuid.UUID) -> list[ForbiddenStreak]:
        return metrics.forbidden_streak_rows(self.events_for_scan(scan_id))
