"""
Scan lifecycle: creation, cancellation and resumption.

State machine: queued -> running -> {done | error | cancelled}. Terminal
states never change again; every transition is a conditional update guarded
by the allowed source states.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Collection
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from app.config import ScanSettings, get_scan_settings
from app.domain.scanning import (
    BatchResult,
    CellOutcome,
    CreatedScan,
    NewScan,
    ResumeCycleSummary,
    ResumeResult,
    ScanRecord,
)
from app.logging_utils import log_event
from app.scanning.batch_processor import BatchProcessor
from app.scanning.errors import ScanNotFoundError, ScanStateError, ScanValidationError
from app.scanning.storage.base import CellResultStore, ScanStore
from db.models.scan import ScanStatus

logger = logging.getLogger(__name__)

MAX_DAYS = 365
MAX_STAY_NIGHTS = 30
MAX_ADULTS = 10
NOTHING_TO_RESUME = "No running scans to resume"


class ScanOrchestrator:
    def __init__(
        self,
        *,
        scan_store: ScanStore,
        result_store: CellResultStore,
        batch_processor: BatchProcessor,
        default_source_name: str,
        known_sources: Collection[str] | None = None,
        settings: ScanSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], date] | None = None,
    ) -> None:
        self._scan_store = scan_store
        self._result_store = result_store
        self._batch_processor = batch_processor
        self._default_source_name = default_source_name
        self._known_sources = {name.lower() for name in known_sources} if known_sources is not None else None
        self._settings = settings or get_scan_settings()
        self._clock = clock
        self._today = today or self._local_today

    def default_base_check_in(self) -> date:
        return self._today() + timedelta(days=self._settings.default_start_offset_days)

    def create_scan(
        self,
        *,
        base_check_in: date | None = None,
        days: int | None = None,
        stay_nights: int | None = None,
        adults: int | None = None,
        source_name: str | None = None,
        kick: bool | None = None,
    ) -> CreatedScan:
        """
        Validate parameters, snapshot the hotel list and store a running scan.

        With `kick` (default from settings) the first batch runs synchronously;
        a failure there is logged and left to the resume cycle.
        """

        days = self._settings.default_days if days is None else days
        stay_nights = self._settings.default_stay_nights if stay_nights is None else stay_nights
        adults = self._settings.default_adults if adults is None else adults
        source_name = (source_name or self._default_source_name).strip()

        if not 1 <= days <= MAX_DAYS:
            raise ScanValidationError(f"days must be between 1 and {MAX_DAYS}.")
        if not 1 <= stay_nights <= MAX_STAY_NIGHTS:
            raise ScanValidationError(f"stay_nights must be between 1 and {MAX_STAY_NIGHTS}.")
        if not 1 <= adults <= MAX_ADULTS:
            raise ScanValidationError(f"adults must be between 1 and {MAX_ADULTS}.")
        if not source_name:
            raise ScanValidationError("source_name is required.")
        if self._known_sources is not None and source_name.lower() not in self._known_sources:
            raise ScanValidationError(f"Unknown or disabled scan source '{source_name}'.")

        hotels = self._scan_store.list_hotels()
        if not hotels:
            raise ScanValidationError("No hotels to scan.")

        scan = self._scan_store.create_scan(
            NewScan(
                base_check_in=base_check_in or self.default_base_check_in(),
                days=days,
                stay_nights=stay_nights,
                adults=adults,
                source_name=source_name,
                hotel_ids=tuple(hotel.id for hotel in hotels),
                status=ScanStatus.RUNNING,
            )
        )
        log_event(
            logger,
            logging.INFO,
            "scan_created",
            scan_id=scan.id,
            total_cells=scan.total_cells,
            hotels=len(scan.hotel_ids),
            days=scan.days,
            base_check_in=scan.base_check_in,
            source=scan.source_name,
        )

        first_batch: BatchResult | None = None
        if self._settings.kick_on_create if kick is None else kick:
            try:
                first_batch = self._batch_processor.process_batch(
                    scan.id,
                    start_index=0,
                    size=self._settings.default_batch_size,
                )
            except Exception as exc:
                log_event(
                    logger,
                    logging.ERROR,
                    "scan_first_batch_failed",
                    scan_id=scan.id,
                    error=str(exc),
                )
        return CreatedScan(scan=scan, first_batch=first_batch)

    def get_scan(self, scan_id: uuid.UUID) -> ScanRecord:
        scan = self._scan_store.get_scan(scan_id)
        if scan is None:
            raise ScanNotFoundError(f"Scan {scan_id} not found.")
        return scan

    def scan_results(self, scan_id: uuid.UUID) -> list[CellOutcome]:
        self.get_scan(scan_id)
        return self._result_store.results_for_scan(scan_id)

    def list_scans(self, *, limit: int = 100, status: str | None = None) -> list[ScanRecord]:
        return self._scan_store.list_scans(limit=limit, status=status)

    def cancel(self, scan_id: uuid.UUID) -> ScanRecord:
        """
        Cancel a queued or running scan. Takes effect at the next resume
        selection; a batch already in flight finishes.
        """

        scan = self.get_scan(scan_id)
        if scan.status not in ScanStatus.ACTIVE:
            raise ScanStateError(
                f"Scan {scan_id} is {scan.status} and cannot be cancelled.",
                status=scan.status,
            )
        changed = self._scan_store.transition_status(
            scan_id,
            to_status=ScanStatus.CANCELLED,
            from_statuses=ScanStatus.ACTIVE,
        )
        updated = self.get_scan(scan_id)
        if not changed:
            raise ScanStateError(
                f"Scan {scan_id} is {updated.status} and cannot be cancelled.",
                status=updated.status,
            )
        log_event(logger, logging.INFO, "scan_cancelled", scan_id=scan_id)
        return updated

    def process_batch(
        self,
        scan_id: uuid.UUID,
        *,
        start_index: int = 0,
        size: int | None = None,
    ) -> BatchResult:
        return self._batch_processor.process_batch(scan_id, start_index=start_index, size=size)

    def resume(self) -> ResumeResult:
        """
        Process one batch of the oldest running, unfinished scan from its
        completed count.
        """

        scan = self._scan_store.oldest_resumable()
        if scan is None:
            return ResumeResult(message=NOTHING_TO_RESUME)

        try:
            batch = self._batch_processor.process_batch(
                scan.id,
                start_index=scan.completed_cells,
                size=self._settings.resume_batch_size,
            )
        except ScanStateError as exc:
            # Cancelled between selection and processing.
            return ResumeResult(message=str(exc))
        except ScanValidationError as exc:
            # The scan was moved to error, so the next selection skips it.
            return ResumeResult(message=str(exc), failed_scan_id=scan.id)
        return ResumeResult(batch=batch)

    def run_resume_cycle(self, *, budget_seconds: float | None = None) -> ResumeCycleSummary:
        """
        Resume repeatedly until nothing is left or the cycle budget runs out.
        """

        budget = self._settings.resume_cycle_budget_seconds if budget_seconds is None else budget_seconds
        deadline = self._clock() + max(0.0, budget)
        batches = 0
        processed = 0
        touched: list[uuid.UUID] = []
        budget_exhausted = False

        while True:
            if self._clock() >= deadline:
                budget_exhausted = True
                break
            result = self.resume()
            if result.failed_scan_id is not None:
                touched.append(result.failed_scan_id)
                continue
            if result.batch is None:
                break
            batches += 1
            processed += result.batch.processed
            if result.batch.scan_id not in touched:
                touched.append(result.batch.scan_id)
            if result.batch.processed == 0:
                # No progress this cycle: budget spent or every cell failed to persist.
                break

        summary = ResumeCycleSummary(
            batches=batches,
            processed=processed,
            scans_touched=touched,
            budget_exhausted=budget_exhausted,
        )
        if batches:
            log_event(
                logger,
                logging.INFO,
                "resume_cycle_completed",
                batches=summary.batches,
                processed=summary.processed,
                scans=[str(scan_id) for scan_id in touched],
                budget_exhausted=budget_exhausted,
            )
        return summary

    def _local_today(self) -> date:
        return datetime.now(ZoneInfo(self._settings.timezone)).date()
