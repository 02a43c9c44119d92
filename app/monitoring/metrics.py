"""
Aggregations over scrape events: per-scan summary, daily rollups, failure
reasons and health thresholds.

The `build_*` helpers and `evaluate_thresholds` work on pre-aggregated
counts, so SQL GROUP BY results and the in-memory event list share the same
shaping. The event-list functions aggregate in Python first.
"""

from __future__ import annotations

import logging
import uuid
from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping, Sequence
from datetime import date

from app.config import MonitoringSettings
from app.domain.scrape_monitoring import (
    DailyScrapeMetrics,
    FailureReason,
    ForbiddenStreak,
    ScrapeAlert,
    ScrapeMetrics,
)
from app.logging_utils import log_event
from app.scraping.types import ScrapeClassification, ScrapeEvent

logger = logging.getLogger(__name__)

LOW_SUCCESS_RATE = "low_success_rate"
HIGH_BLOCK_RATE = "high_block_rate"
CONSECUTIVE_FORBIDDEN = "consecutive_forbidden"


def _percentage(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(count / total * 100.0, 2)


def _average(total: float, samples: int) -> float:
    if samples <= 0:
        return 0.0
    return round(float(total) / samples, 2)


def build_metrics(
    counts: Mapping[str, int],
    *,
    response_time_total: float = 0,
    response_time_samples: int = 0,
    retry_total: float = 0,
    min_delay_ms: int | None = None,
    max_delay_ms: int | None = None,
) -> ScrapeMetrics:
    """
    Shape per-status attempt counts and sums into a `ScrapeMetrics`.
    """

    total = sum(counts.values())

    def count(status: str) -> int:
        return int(counts.get(status, 0))

    return ScrapeMetrics(
        total_attempts=total,
        success_count=count(ScrapeClassification.SUCCESS),
        success_percentage=_percentage(count(ScrapeClassification.SUCCESS), total),
        error_count=count(ScrapeClassification.ERROR),
        error_percentage=_percentage(count(ScrapeClassification.ERROR), total),
        timeout_count=count(ScrapeClassification.TIMEOUT),
        timeout_percentage=_percentage(count(ScrapeClassification.TIMEOUT), total),
        block_count=count(ScrapeClassification.BLOCK),
        block_percentage=_percentage(count(ScrapeClassification.BLOCK), total),
        manual_review_count=count(ScrapeClassification.MANUAL_REVIEW),
        manual_review_percentage=_percentage(count(ScrapeClassification.MANUAL_REVIEW), total),
        avg_response_time_ms=_average(response_time_total, response_time_samples),
        avg_retry_count=_average(retry_total, total),
        min_delay_ms=min_delay_ms or 0,
        max_delay_ms=max_delay_ms or 0,
    )


def build_daily_rows(counts_by_day: Mapping[date, Mapping[str, int]]) -> list[DailyScrapeMetrics]:
    """
    One row per calendar day, newest day first.
    """

    rows: list[DailyScrapeMetrics] = []
    for day in sorted(counts_by_day, reverse=True):
        counts = counts_by_day[day]
        total = sum(counts.values())
        success = int(counts.get(ScrapeClassification.SUCCESS, 0))
        rows.append(
            DailyScrapeMetrics(
                date=day,
                total_attempts=total,
                success_count=success,
                success_percentage=_percentage(success, total),
                block_count=int(counts.get(ScrapeClassification.BLOCK, 0)),
                error_count=int(counts.get(ScrapeClassification.ERROR, 0)),
                timeout_count=int(counts.get(ScrapeClassification.TIMEOUT, 0)),
                manual_review_count=int(counts.get(ScrapeClassification.MANUAL_REVIEW, 0)),
            )
        )
    return rows


def summarize(events: Sequence[ScrapeEvent]) -> ScrapeMetrics:
    response_times = [event.response_time_ms for event in events if event.response_time_ms is not None]
    delays = [event.delay_ms for event in events if event.delay_ms is not None]
    return build_metrics(
        Counter(event.scrape_status for event in events),
        response_time_total=sum(response_times),
        response_time_samples=len(response_times),
        retry_total=sum(event.retry_count for event in events),
        min_delay_ms=min(delays) if delays else None,
        max_delay_ms=max(delays) if delays else None,
    )


def daily_rollup(events: Iterable[ScrapeEvent]) -> list[DailyScrapeMetrics]:
    """
    One row per UTC calendar day, newest day first.
    """

    counts_by_day: dict[date, Counter[str]] = defaultdict(Counter)
    for event in events:
        counts_by_day[event.timestamp.date()][event.scrape_status] += 1
    return build_daily_rows(counts_by_day)


def top_failure_reasons(events: Iterable[ScrapeEvent], *, limit: int = 10) -> list[FailureReason]:
    """
    Non-success events with a reason, grouped by (reason, classification).
    """

    counts: Counter[tuple[str, str]] = Counter(
        (event.reason, event.scrape_status)
        for event in events
        if event.scrape_status != ScrapeClassification.SUCCESS and event.reason
    )
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0][0], item[0][1]))
    return [
        FailureReason(reason=reason, scrape_status=status, count=count)
        for (reason, status), count in ranked[: max(1, limit)]
    ]


def forbidden_streaks(events: Iterable[ScrapeEvent]) -> dict[int, int]:
    """
    Longest run of consecutive HTTP 403 attempts per hotel, in time order.
    """

    current: dict[int, int] = defaultdict(int)
    longest: dict[int, int] = defaultdict(int)
    for event in sorted(events, key=lambda item: item.timestamp):
        if event.hotel_id is None:
            continue
        if event.http_status == 403:
            current[event.hotel_id] += 1
            longest[event.hotel_id] = max(longest[event.hotel_id], current[event.hotel_id])
        else:
            current[event.hotel_id] = 0
    return dict(longest)


def forbidden_streak_rows(events: Sequence[ScrapeEvent]) -> list[ForbiddenStreak]:
    hotel_names = {event.hotel_id: event.hotel_name for event in events if event.hotel_id is not None}
    return [
        ForbiddenStreak(hotel_id=hotel_id, length=length, hotel_name=hotel_names.get(hotel_id))
        for hotel_id, length in sorted(forbidden_streaks(events).items())
    ]


def evaluate_thresholds(
    metrics: ScrapeMetrics,
    streaks: Iterable[ForbiddenStreak],
    *,
    settings: MonitoringSettings,
    scan_id: uuid.UUID | None = None,
) -> list[ScrapeAlert]:
    """
    Evaluate health thresholds and log each breach as a `scrape_alert`.
    """

    alerts: list[ScrapeAlert] = []

    if metrics.total_attempts >= settings.min_samples:
        if metrics.success_percentage < settings.success_rate_floor:
            alerts.append(
                ScrapeAlert(
                    level="warning",
                    code=LOW_SUCCESS_RATE,
                    message=(
                        f"Low success rate: {metrics.success_percentage:.1f}% "
                        f"({metrics.success_count}/{metrics.total_attempts})"
                    ),
                    value=metrics.success_percentage,
                    threshold=settings.success_rate_floor,
                    scan_id=scan_id,
                )
            )
        if metrics.block_percentage > settings.block_rate_ceiling:
            alerts.append(
                ScrapeAlert(
                    level="error",
                    code=HIGH_BLOCK_RATE,
                    message=(
                        f"High block rate: {metrics.block_percentage:.1f}% "
                        f"({metrics.block_count}/{metrics.total_attempts})"
                    ),
                    value=metrics.block_percentage,
                    threshold=settings.block_rate_ceiling,
                    scan_id=scan_id,
                )
            )

    for streak in sorted(streaks, key=lambda item: item.hotel_id):
        if streak.length < settings.consecutive_forbidden_limit:
            continue
        alerts.append(
            ScrapeAlert(
                level="error",
                code=CONSECUTIVE_FORBIDDEN,
                message=(
                    f"Potential IP ban for hotel {streak.hotel_name or streak.hotel_id}: "
                    f"{streak.length} consecutive HTTP 403"
                ),
                value=float(streak.length),
                threshold=float(settings.consecutive_forbidden_limit),
                scan_id=scan_id,
                hotel_id=streak.hotel_id,
                hotel_name=streak.hotel_name,
            )
        )

    for alert in alerts:
        log_event(
            logger,
            logging.WARNING if alert.level == "warning" else logging.ERROR,
            "scrape_alert",
            code=alert.code,
            message=alert.message,
            scan_id=alert.scan_id,
            hotel_id=alert.hotel_id,
            value=alert.value,
            threshold=alert.threshold,
        )
    return alerts


def check_thresholds(
    events: Sequence[ScrapeEvent],
    *,
    settings: MonitoringSettings,
    scan_id: uuid.UUID | None = None,
) -> list[ScrapeAlert]:
    return evaluate_thresholds(
        summarize(events),
        forbidden_streak_rows(events),
        settings=settings,
        scan_id=scan_id,
    )
