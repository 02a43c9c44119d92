"""
tests/test_scrape_log_aggregates.py

The SQL-backed event log computes metrics with GROUP BY queries. A scripted
session stands in for PostgreSQL: it records each statement and hands back
aggregate rows, so both the SQL shape and the row mapping are covered.
"""

from __future__ import annotations

import uuid
from collections import namedtuple
from datetime import date, datetime, timezone
from typing import Any

import pytest
from sqlalchemy.dialects import postgresql

from app.config import MonitoringSettings
from app.domain.scrape_monitoring import ForbiddenStreak
from app.monitoring.metrics import CONSECUTIVE_FORBIDDEN
from app.scanning.storage.memory import InMemoryScanStore
from app.scraping.storage.sqlalchemy_storage import SQLAlchemyScrapeEventLog
from app.scraping.types import ScrapeClassification
from app.services.scrape_monitoring_service import ScrapeMonitoringService

SCAN_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
SINCE = datetime(2026, 10, 12, tzinfo=timezone.utc)

StatusRow = namedtuple(
    "StatusRow",
    "scrape_status attempts response_time_total response_time_samples retry_total min_delay_ms max_delay_ms",
)
DayRow = namedtuple("DayRow", "day scrape_status attempts")
ReasonRow = namedtuple("ReasonRow", "reason scrape_status attempts")
StreakRow = namedtuple("StreakRow", "hotel_id hotel_name length")


class _Result:
    def __init__(self, rows: list[Any]) -> None:
        self._rows = rows

    def all(self) -> list[Any]:
        return self._rows


class ScriptedSession:
    def __init__(self, results: list[list[Any]]) -> None:
        self.results = list(results)
        self.statements: list[Any] = []

    def __enter__(self) -> ScriptedSession:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        return None

    def execute(self, stmt: Any) -> _Result:
        self.statements.append(stmt)
        return _Result(self.results.pop(0))


def _sql(stmt: Any) -> str:
    return str(stmt.compile(dialect=postgresql.dialect())).lower()


def _log(*results: list[Any]) -> tuple[SQLAlchemyScrapeEventLog, ScriptedSession]:
    session = ScriptedSession(list(results))
    return SQLAlchemyScrapeEventLog(session_factory=lambda: session), session


class TestSummary:
    def test_status_groups_fold_into_metrics(self) -> None:
        event_log, session = _log(
            [
                StatusRow(ScrapeClassification.SUCCESS, 3, 1500, 3, 0, 3000, 9000),
                StatusRow(ScrapeClassification.BLOCK, 1, 0, 0, 2, 4000, 4000),
            ]
        )

        metrics = event_log.summary(SCAN_ID)

        assert metrics.total_attempts == 4
        assert metrics.success_percentage == 75.0
        assert metrics.block_count == 1
        assert metrics.avg_response_time_ms == 500.0
        assert metrics.avg_retry_count == 0.5
        assert (metrics.min_delay_ms, metrics.max_delay_ms) == (3000, 9000)
        sql = _sql(session.statements[0])
        assert "group by scrape_logs.scrape_status" in sql
        assert "count(scrape_logs.response_time_ms)" in sql

    def test_scan_without_events(self) -> None:
        event_log, _ = _log([])

        metrics = event_log.summary(SCAN_ID)

        assert metrics.total_attempts == 0
        assert metrics.success_percentage == 0.0
        assert metrics.min_delay_ms == 0


class TestDailyRollup:
    def test_rows_per_day_newest_first(self) -> None:
        event_log, session = _log(
            [
                DayRow(date(2026, 10, 17), ScrapeClassification.SUCCESS, 8),
                DayRow(date(2026, 10, 18), ScrapeClassification.SUCCESS, 2),
                DayRow(date(2026, 10, 17), ScrapeClassification.TIMEOUT, 2),
            ]
        )

        rows = event_log.daily_rollup(SINCE)

        assert [row.date for row in rows] == [date(2026, 10, 18), date(2026, 10, 17)]
        assert rows[1].total_attempts == 10
        assert rows[1].success_percentage == 80.0
        assert rows[1].timeout_count == 2
        sql = _sql(session.statements[0])
        assert "date(timezone(" in sql
        assert "group by" in sql


class TestFailureReasons:
    def test_ranked_in_sql(self) -> None:
        event_log, session = _log([ReasonRow("Bot detection", ScrapeClassification.BLOCK, 5)])

        reasons = event_log.failure_reasons(limit=3, since=SINCE)

        assert [(r.reason, r.scrape_status, r.count) for r in reasons] == [
            ("Bot detection", ScrapeClassification.BLOCK, 5)
        ]
        sql = _sql(session.statements[0])
        assert "scrape_logs.scrape_status != " in sql
        assert "order by attempts desc" in sql
        assert "limit" in sql
        assert "scrape_logs.scan_id" not in sql.split("where", 1)[1]

    def test_scan_scope_ignores_window(self) -> None:
        event_log, session = _log([])

        event_log.failure_reasons(limit=3, scan_id=SCAN_ID, since=SINCE)

        where = _sql(session.statements[0]).split("where", 1)[1]
        assert "scrape_logs.scan_id = " in where
        assert "scrape_logs.timestamp >=" not in where

    def test_needs_a_scope(self) -> None:
        event_log, _ = _log()
        with pytest.raises(ValueError):
            event_log.failure_reasons(limit=3)


class TestForbiddenStreaks:
    def test_runs_found_with_window_functions(self) -> None:
        event_log, session = _log([StreakRow(4, "Hotel Adlon", 5)])

        streaks = event_log.forbidden_streaks(SCAN_ID)

        assert streaks == [ForbiddenStreak(hotel_id=4, length=5, hotel_name="Hotel Adlon")]
        sql = _sql(session.statements[0])
        assert sql.count("row_number() over") == 2
        assert "partition by scrape_logs.hotel_id" in sql


def test_monitoring_service_alerts_from_aggregates() -> None:
    event_log, session = _log(
        [StatusRow(ScrapeClassification.BLOCK, 3, 900, 3, 0, 4000, 4000)],
        [StreakRow(4, "Hotel Adlon", 3)],
    )
    service = ScrapeMonitoringService(
        event_log=event_log,
        scan_store=InMemoryScanStore(),
        settings=MonitoringSettings(min_samples=10),
    )

    metrics, alerts = service.scan_metrics(SCAN_ID, evaluate_thresholds=True)

    assert metrics.block_count == 3
    assert [alert.code for alert in alerts] == [CONSECUTIVE_FORBIDDEN]
    assert alerts[0].hotel_name == "Hotel Adlon"
    assert len(session.statements) == 2
