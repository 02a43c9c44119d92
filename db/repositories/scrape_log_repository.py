"""
Repository for the append-only scrape attempt log.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Row, Select, case, func, select
from sqlalchemy.orm import Session

from db.models.scrape_log import ScrapeLog


class ScrapeLogRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, row: ScrapeLog) -> ScrapeLog:
        self._session.add(row)
        return row

    def list_for_scan(self, scan_id: uuid.UUID) -> list[ScrapeLog]:
        stmt = (
            select(ScrapeLog)
            .where(ScrapeLog.scan_id == scan_id)
            .order_by(ScrapeLog.timestamp.asc(), ScrapeLog.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def list_since(self, since: datetime) -> list[ScrapeLog]:
        stmt = (
            select(ScrapeLog)
            .where(ScrapeLog.timestamp >= since)
            .order_by(ScrapeLog.timestamp.asc(), ScrapeLog.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def list_recent(
        self,
        *,
        limit: int = 100,
        scan_id: uuid.UUID | None = None,
        scrape_status: str | None = None,
    ) -> list[ScrapeLog]:
        stmt: Select[tuple[ScrapeLog]] = select(ScrapeLog)
        if scan_id is not None:
            stmt = stmt.where(ScrapeLog.scan_id == scan_id)
        if scrape_status:
            stmt = stmt.where(ScrapeLog.scrape_status == scrape_status)
        stmt = stmt.order_by(ScrapeLog.timestamp.desc(), ScrapeLog.id.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def status_totals(self, scan_id: uuid.UUID) -> list[Row]:
        """
        Per-status attempt counts and sums for one scan.

        Rows carry `scrape_status`, `attempts`, `response_time_total`,
        `response_time_samples`, `retry_total`, `min_delay_ms` and
        `max_delay_ms`.
        """

        stmt = (
            select(
                ScrapeLog.scrape_status,
                func.count(ScrapeLog.id).label("attempts"),
                func.coalesce(func.sum(ScrapeLog.response_time_ms), 0).label("response_time_total"),
                func.count(ScrapeLog.response_time_ms).label("response_time_samples"),
                func.coalesce(func.sum(ScrapeLog.retry_count), 0).label("retry_total"),
                func.min(ScrapeLog.delay_ms).label("min_delay_ms"),
                func.max(ScrapeLog.delay_ms).label("max_delay_ms"),
            )
            .where(ScrapeLog.scan_id == scan_id)
            .group_by(ScrapeLog.scrape_status)
        )
        return list(self._session.execute(stmt).all())

    def daily_status_counts(self, since: datetime) -> list[Row]:
        """
        Attempts per (UTC day, status) at or after `since`.
        """

        day = func.date(func.timezone("UTC", ScrapeLog.timestamp)).label("day")
        stmt = (
            select(day, ScrapeLog.scrape_status, func.count(ScrapeLog.id).label("attempts"))
            .where(ScrapeLog.timestamp >= since)
            .group_by(day, ScrapeLog.scrape_status)
        )
        return list(self._session.execute(stmt).all())

    def failure_reason_counts(
        self,
        *,
        exclude_status: str,
        limit: int,
        scan_id: uuid.UUID | None = None,
        since: datetime | None = None,
    ) -> list[Row]:
        attempts = func.count(ScrapeLog.id).label("attempts")
        stmt = select(ScrapeLog.reason, ScrapeLog.scrape_status, attempts).where(
            ScrapeLog.scrape_status != exclude_status,
            ScrapeLog.reason.is_not(None),
            ScrapeLog.reason != "",
        )
        if scan_id is not None:
            stmt = stmt.where(ScrapeLog.scan_id == scan_id)
        if since is not None:
            stmt = stmt.where(ScrapeLog.timestamp >= since)
        stmt = (
            stmt.group_by(ScrapeLog.reason, ScrapeLog.scrape_status)
            .order_by(attempts.desc(), ScrapeLog.reason.asc(), ScrapeLog.scrape_status.asc())
            .limit(max(1, limit))
        )
        return list(self._session.execute(stmt).all())

    def longest_http_status_runs(self, scan_id: uuid.UUID, *, http_status: int) -> list[Row]:
        """
        Longest run of consecutive attempts answered with `http_status`, per
        hotel. Rows carry `hotel_id`, `hotel_name` and `length`.

        Runs are found with the difference of two ROW_NUMBER windows: it stays
        constant while the status keeps matching.
        """

        matches = case((ScrapeLog.http_status == http_status, 1), else_=0)
        ordering = (ScrapeLog.timestamp.asc(), ScrapeLog.id.asc())
        attempts = (
            select(
                ScrapeLog.hotel_id.label("hotel_id"),
                ScrapeLog.hotel_name.label("hotel_name"),
                matches.label("matches"),
                (
                    func.row_number().over(partition_by=ScrapeLog.hotel_id, order_by=ordering)
                    - func.row_number().over(partition_by=(ScrapeLog.hotel_id, matches), order_by=ordering)
                ).label("run"),
            )
            .where(ScrapeLog.scan_id == scan_id, ScrapeLog.hotel_id.is_not(None))
            .subquery()
        )
        runs = (
            select(
                attempts.c.hotel_id,
                func.max(attempts.c.hotel_name).label("hotel_name"),
                func.count().label("length"),
            )
            .where(attempts.c.matches == 1)
            .group_by(attempts.c.hotel_id, attempts.c.run)
            .subquery()
        )
        stmt = (
            select(
                runs.c.hotel_id,
                func.max(runs.c.hotel_name).label("hotel_name"),
                func.max(runs.c.length).label("length"),
            )
            .group_by(runs.c.hotel_id)
            .order_by(runs.c.hotel_id.asc())
        )
        return list(self._session.execute(stmt).all())
