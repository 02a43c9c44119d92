"""
tests/test_scrape_metrics.py

Pure aggregation over scrape events plus the monitoring service on top of
the in-memory event log.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.config import MonitoringSettings
from app.domain.scanning import HotelRecord, NewScan
from app.monitoring.metrics import (
    CONSECUTIVE_FORBIDDEN,
    HIGH_BLOCK_RATE,
    LOW_SUCCESS_RATE,
    check_thresholds,
    daily_rollup,
    forbidden_streaks,
    summarize,
    top_failure_reasons,
)
from app.scanning.storage.memory import InMemoryScanStore
from app.scraping.storage.memory import InMemoryScrapeEventLog
from app.scraping.types import ScrapeClassification, ScrapeEvent
from app.services.scrape_monitoring_service import ScrapeMonitoringService

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
SCAN_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def _event(
    status: str,
    *,
    minutes: int = 0,
    hotel_id: int = 1,
    http_status: int | None = 200,
    reason: str | None = None,
    retry_count: int = 0,
    delay_ms: int = 4000,
    response_time_ms: int = 500,
    scan_id: uuid.UUID | None = SCAN_ID,
) -> ScrapeEvent:
    return ScrapeEvent(
        timestamp=NOW + timedelta(minutes=minutes),
        scrape_status=status,
        url="https://www.booking.com/hotel/de/x.html",
        retry_count=retry_count,
        scan_id=scan_id,
        hotel_id=hotel_id,
        hotel_name=f"Hotel {hotel_id}",
        http_status=http_status,
        delay_ms=delay_ms,
        reason=reason,
        response_time_ms=response_time_ms,
    )


SETTINGS = MonitoringSettings(min_samples=10, success_rate_floor=80.0, block_rate_ceiling=20.0)


class TestSummarize:
    def test_counts_and_percentages(self) -> None:
        events = [
            _event(ScrapeClassification.SUCCESS, delay_ms=3000, response_time_ms=400),
            _event(ScrapeClassification.SUCCESS, delay_ms=8000, response_time_ms=600),
            _event(ScrapeClassification.BLOCK, http_status=403, retry_count=0),
            _event(ScrapeClassification.ERROR, http_status=500, retry_count=2),
        ]

        metrics = summarize(events)

        assert metrics.total_attempts == 4
        assert metrics.success_count == 2
        assert metrics.success_percentage == 50.0
        assert metrics.block_percentage == 25.0
        assert metrics.error_count == 1
        assert metrics.timeout_count == 0
        assert metrics.avg_retry_count == 0.5
        assert metrics.avg_response_time_ms == 500.0
        assert (metrics.min_delay_ms, metrics.max_delay_ms) == (3000, 8000)

    def test_empty(self) -> None:
        metrics = summarize([])
        assert metrics.total_attempts == 0
        assert metrics.success_percentage == 0.0
        assert metrics.avg_retry_count == 0.0


class TestRollups:
    def test_daily_rollup_newest_first(self) -> None:
        events = [
            _event(ScrapeClassification.SUCCESS, minutes=-60 * 24),
            _event(ScrapeClassification.SUCCESS),
            _event(ScrapeClassification.TIMEOUT, http_status=None),
        ]

        rows = daily_rollup(events)

        assert [row.date for row in rows] == [NOW.date(), (NOW - timedelta(days=1)).date()]
        assert rows[0].total_attempts == 2
        assert rows[0].timeout_count == 1
        assert rows[0].success_percentage == 50.0

    def test_failure_reasons_ranked(self) -> None:
        events = [
            _event(ScrapeClassification.BLOCK, reason="Bot detection - HTTP 403 Forbidden"),
            _event(ScrapeClassification.BLOCK, reason="Bot detection - HTTP 403 Forbidden"),
            _event(ScrapeClassification.ERROR, reason="Server error (HTTP 500)"),
            _event(ScrapeClassification.SUCCESS, reason="Sold out"),
            _event(ScrapeClassification.ERROR),
        ]

        reasons = top_failure_reasons(events, limit=5)

        assert [(r.reason, r.count) for r in reasons] == [
            ("Bot detection - HTTP 403 Forbidden", 2),
            ("Server error (HTTP 500)", 1),
        ]

    def test_forbidden_streak_resets_on_other_status(self) -> None:
        events = [
            _event(ScrapeClassification.BLOCK, minutes=0, http_status=403),
            _event(ScrapeClassification.BLOCK, minutes=1, http_status=403),
            _event(ScrapeClassification.SUCCESS, minutes=2, http_status=200),
            _event(ScrapeClassification.BLOCK, minutes=3, http_status=403),
            _event(ScrapeClassification.BLOCK, minutes=0, hotel_id=2, http_status=403),
        ]

        assert forbidden_streaks(events) == {1: 2, 2: 1}


class TestThresholds:
    def test_healthy_scan_has_no_alerts(self) -> None:
        events = [_event(ScrapeClassification.SUCCESS, minutes=i) for i in range(20)]
        assert check_thresholds(events, settings=SETTINGS) == []

    def test_too_few_samples_skip_rate_alerts(self) -> None:
        events = [_event(ScrapeClassification.ERROR, minutes=i, http_status=500) for i in range(5)]
        assert check_thresholds(events, settings=SETTINGS) == []

    def test_low_success_and_high_block(self) -> None:
        events = [_event(ScrapeClassification.SUCCESS, minutes=i, hotel_id=i) for i in range(6)]
        events += [
            _event(ScrapeClassification.BLOCK, minutes=10 + i, hotel_id=100 + i, http_status=403)
            for i in range(4)
        ]

        alerts = check_thresholds(events, settings=SETTINGS, scan_id=SCAN_ID)

        codes = {alert.code for alert in alerts}
        assert codes == {LOW_SUCCESS_RATE, HIGH_BLOCK_RATE}
        low = next(alert for alert in alerts if alert.code == LOW_SUCCESS_RATE)
        assert low.level == "warning"
        assert low.value == 60.0
        assert low.scan_id == SCAN_ID

    def test_consecutive_forbidden_names_hotel(self) -> None:
        events = [_event(ScrapeClassification.BLOCK, minutes=i, hotel_id=9, http_status=403) for i in range(3)]

        alerts = check_thresholds(events, settings=SETTINGS)

        assert [alert.code for alert in alerts] == [CONSECUTIVE_FORBIDDEN]
        assert alerts[0].hotel_id == 9
        assert alerts[0].hotel_name == "Hotel 9"
        assert alerts[0].level == "error"


class TestMonitoringService:
    @pytest.fixture()
    def event_log(self) -> InMemoryScrapeEventLog:
        log = InMemoryScrapeEventLog()
        for minutes in range(3):
            log.append(_event(ScrapeClassification.SUCCESS, minutes=minutes))
        log.append(_event(ScrapeClassification.BLOCK, minutes=5, http_status=403, reason="Bot detection"))
        log.append(
            _event(ScrapeClassification.ERROR, minutes=-60 * 24 * 10, reason="Server error", scan_id=uuid.uuid4())
        )
        return log

    @pytest.fixture()
    def service(self, event_log) -> ScrapeMonitoringService:
        return ScrapeMonitoringService(
            event_log=event_log,
            scan_store=InMemoryScanStore(),
            settings=MonitoringSettings(default_lookback_days=7, max_lookback_days=30),
            now=lambda: NOW + timedelta(hours=1),
        )

    def test_scan_metrics(self, service) -> None:
        metrics, alerts = service.scan_metrics(SCAN_ID)
        assert metrics.total_attempts == 4
        assert metrics.block_count == 1
        assert alerts == []

    def test_days_clamped(self, service) -> None:
        assert service.clamp_days(None) == 7
        assert service.clamp_days(400) == 30
        assert service.clamp_days(0) == 1

    def test_daily_metrics_respects_window(self, service) -> None:
        rows = service.daily_metrics(days=7)
        assert sum(row.total_attempts for row in rows) == 4

        rows = service.daily_metrics(days=30)
        assert sum(row.total_attempts for row in rows) == 5

    def test_failure_reasons_default_window(self, service) -> None:
        reasons = service.failure_reasons()
        assert [reason.reason for reason in reasons] == ["Bot detection"]

    def test_failure_reasons_for_scan(self, service) -> None:
        assert [r.reason for r in service.failure_reasons(scan_id=SCAN_ID)] == ["Bot detection"]

    def test_recent_events_newest_first(self, service) -> None:
        events = service.recent_events(limit=2, scrape_status=ScrapeClassification.SUCCESS)
        assert [event.timestamp for event in events] == [NOW + timedelta(minutes=2), NOW + timedelta(minutes=1)]

    def test_health_check_covers_running_scans(self, event_log) -> None:
        store = InMemoryScanStore(hotels=[HotelRecord(id=9, name="Hotel 9", code="h9")])
        scan = store.create_scan(
            NewScan(
                base_check_in=NOW.date(),
                days=1,
                stay_nights=1,
                adults=2,
                source_name="booking_com",
                hotel_ids=(9,),
            )
        )
        for minutes in range(3):
            event_log.append(
                _event(ScrapeClassification.BLOCK, minutes=20 + minutes, hotel_id=9, http_status=403, scan_id=scan.id)
            )
        service = ScrapeMonitoringService(event_log=event_log, scan_store=store, settings=SETTINGS)

        alerts = service.run_health_check()

        assert [alert.code for alert in alerts] == [CONSECUTIVE_FORBIDDEN]
        assert alerts[0].scan_id == scan.id
