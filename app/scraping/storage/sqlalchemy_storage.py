"""
SQLAlchemy-backed scrape event log.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Callable
from datetime import date, datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.scrape_monitoring import DailyScrapeMetrics, FailureReason, ForbiddenStreak, ScrapeMetrics
from app.monitoring.metrics import build_daily_rows, build_metrics
from app.scraping.identity import truncate_user_agent
from app.scraping.storage.base import ScrapeEventLog
from app.scraping.types import ScrapeClassification, ScrapeEvent
from db.models.scrape_log import ScrapeLog
from db.repositories.scrape_log_repository import ScrapeLogRepository
from db.session import SessionLocal


def _to_row(event: ScrapeEvent) -> ScrapeLog:
    return ScrapeLog(
        timestamp=event.timestamp,
        scan_id=event.scan_id,
        hotel_id=event.hotel_id,
        hotel_name=event.hotel_name,
        check_in_date=event.check_in_date,
        url=event.url,
        scrape_status=event.scrape_status,
        http_status=event.http_status,
        delay_ms=event.delay_ms,
        retry_count=event.retry_count,
        error_message=event.error_message,
        user_agent=truncate_user_agent(event.user_agent),
        reason=event.reason,
        response_time_ms=event.response_time_ms,
        session_id=event.session_id,
    )


def _to_event(row: ScrapeLog) -> ScrapeEvent:
    return ScrapeEvent(
        timestamp=row.timestamp,
        scrape_status=row.scrape_status,
        url=row.url,
        retry_count=row.retry_count,
        scan_id=row.scan_id,
        hotel_id=row.hotel_id,
        hotel_name=row.hotel_name,
        check_in_date=row.check_in_date,
        http_status=row.http_status,
        delay_ms=row.delay_ms,
        error_message=row.error_message,
        user_agent=row.user_agent,
        reason=row.reason,
        response_time_ms=row.response_time_ms,
        session_id=row.session_id,
    )


class SQLAlchemyScrapeEventLog(ScrapeEventLog):
    """
    Writes each event in its own short transaction.
    """

    def __init__(self, *, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def append(self, event: ScrapeEvent) -> None:
        with self._session_factory() as session:
            try:
                ScrapeLogRepository(session).add(_to_row(event))
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise

    def events_for_scan(self, scan_id: uuid.UUID) -> list[ScrapeEvent]:
        with self._session_factory() as session:
            return [_to_event(row) for row in ScrapeLogRepository(session).list_for_scan(scan_id)]

    def events_since(self, since: datetime) -> list[ScrapeEvent]:
        with self._session_factory() as session:
            return [_to_event(row) for row in ScrapeLogRepository(session).list_since(since)]

    def recent(
        self,
        *,
        limit: int = 100,
        scan_id: uuid.UUID | None = None,
        scrape_status: str | None = None,
    ) -> list[ScrapeEvent]:
        with self._session_factory() as session:
            rows = ScrapeLogRepository(session).list_recent(
                limit=limit,
                scan_id=scan_id,
                scrape_status=scrape_status,
            )
            return [_to_event(row) for row in rows]

    def summary(self, scan_id: uuid.UUID) -> ScrapeMetrics:
        with self._session_factory() as session:
            rows = ScrapeLogRepository(session).status_totals(scan_id)
        delays_min = [row.min_delay_ms for row in rows if row.min_delay_ms is not None]
        delays_max = [row.max_delay_ms for row in rows if row.max_delay_ms is not None]
        return build_metrics(
            {row.scrape_status: row.attempts for row in rows},
            response_time_total=sum(row.response_time_total for row in rows),
            response_time_samples=sum(row.response_time_samples for row in rows),
            retry_total=sum(row.retry_total for row in rows),
            min_delay_ms=min(delays_min) if delays_min else None,
            max_delay_ms=max(delays_max) if delays_max else None,
        )

    def daily_rollup(self, since: datetime) -> list[DailyScrapeMetrics]:
        with self._session_factory() as session:
            rows = ScrapeLogRepository(session).daily_status_counts(since)
        counts_by_day: dict[date, dict[str, int]] = defaultdict(dict)
        for row in rows:
            counts_by_day[row.day][row.scrape_status] = row.attempts
        return build_daily_rows(counts_by_day)

    def failure_reasons(
        self,
        *,
        limit: int,
        scan_id: uuid.UUID | None = None,
        since: datetime | None = None,
    ) -> list[FailureReason]:
        if scan_id is None and since is None:
            raise ValueError("failure_reasons needs a scan_id or a since bound")
        with self._session_factory() as session:
            rows = ScrapeLogRepository(session).failure_reason_counts(
                exclude_status=ScrapeClassification.SUCCESS,
                limit=limit,
                scan_id=scan_id,
                since=since if scan_id is None else None,
            )
        return [FailureReason(reason=row.reason, scrape_status=row.scrape_status, count=row.attempts) for row in rows]

    def forbidden_streaks(self, scan_id: uuid.UUID) -> list[ForbiddenStreak]:
        with self._session_factory() as session:
            rows = ScrapeLogRepository(session).longest_http_status_runs(scan_id, http_status=403)
        return [ForbiddenStreak(hotel_id=row.hotel_id, length=row.length, hotel_name=row.hotel_name) for row in rows]
