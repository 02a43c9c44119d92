"""
app/scheduler/jobs.py

APScheduler-based background scheduler for scan resumption and scrape health.

Schedule
--------
  scan_resume          every SCAN_RESUME_INTERVAL_SECONDS (default 60s)
  scrape_health_check  every SCRAPE_HEALTH_CHECK_INTERVAL_MINUTES (default 15m)

Both jobs run with ``max_instances=1`` and ``coalesce=True`` so a slow cycle
never overlaps the next one; missed runs collapse into a single run.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import get_monitoring_settings, get_scan_settings
from app.services.scan_service import get_scan_orchestrator
from app.services.scrape_monitoring_service import get_scrape_monitoring_service

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Job: Scan resumption
# ---------------------------------------------------------------------------


def run_scan_resume_cycle() -> None:
    """
    Advance running scans until none is left or the cycle budget runs out.
    """
    try:
        summary = get_scan_orchestrator().run_resume_cycle()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: scan_resume failed: %s", exc)
        return

    if summary.batches:
        logger.info(
            "Scheduler: scan_resume batches=%s processed=%s budget_exhausted=%s",
            summary.batches,
            summary.processed,
            summary.budget_exhausted,
        )


# ---------------------------------------------------------------------------
# Job: Scrape health check
# ---------------------------------------------------------------------------


def run_scrape_health_check() -> None:
    """
    Evaluate alert thresholds for running scans. Alerts are logged only.
    """
    try:
        alerts = get_scrape_monitoring_service().run_health_check()
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: scrape_health_check failed: %s", exc)
        return
    logger.info("Scheduler: scrape_health_check alerts=%s", len(alerts))


# ---------------------------------------------------------------------------
# Scheduler factory
# ---------------------------------------------------------------------------


def build_scheduler() -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    scan_settings = get_scan_settings()
    monitoring_settings = get_monitoring_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_scan_resume_cycle,
        trigger="interval",
        seconds=scan_settings.resume_interval_seconds,
        id="scan_resume",
        name="Resume running scans",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=scan_settings.resume_interval_seconds,
    )
    scheduler.add_job(
        run_scrape_health_check,
        trigger="interval",
        minutes=monitoring_settings.health_check_interval_minutes,
        id="scrape_health_check",
        name="Scrape health check",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=600,
    )

    return scheduler
