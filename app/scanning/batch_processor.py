"""
Bounded, resumable processing of one slice of a scan's grid.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from app.config import ScanSettings, get_scan_settings
from app.domain.scanning import BatchResult, CellOutcome, ScanRecord, WorkItem
from app.logging_utils import log_event
from app.scanning.errors import ScanNotFoundError, ScanStateError, ScanValidationError
from app.scanning.storage.base import CellResultStore, ScanStore
from app.scanning.work_items import build_slice
from app.scraping.base import ScraperBase
from app.scraping.types import ScrapeClassification, ScrapeRequest, ScrapeResult, ScrapeStatus
from db.models.scan import ScanStatus
from db.models.scan_result import CellStatus

logger = logging.getLogger(__name__)

ScraperFactory = Callable[[str], ScraperBase]


class SoftDeadline:
    """
    Cancellation token checked by workers before each claim.
    """

    def __init__(self, budget_seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._deadline = clock() + max(0.0, budget_seconds)

    def expired(self) -> bool:
        return self._clock() >= self._deadline

    def remaining(self) -> float:
        return max(0.0, self._deadline - self._clock())


class _BatchCursor:
    def __init__(self, items: list[WorkItem], deadline: SoftDeadline) -> None:
        self._items = items
        self._deadline = deadline
        self._lock = threading.Lock()
        self._position = 0
        self.processed = 0
        self.failures = 0
        self.stopped_early = False

    def claim(self) -> WorkItem | None:
        with self._lock:
            if self._position >= len(self._items):
                return None
            if self._deadline.expired():
                self.stopped_early = True
                return None
            item = self._items[self._position]
            self._position += 1
            return item

    def record(self, *, persisted: bool) -> None:
        with self._lock:
            if persisted:
                self.processed += 1
            else:
                self.failures += 1


class BatchProcessor:
    """
    Processes `[start_index, start_index + size)` of a scan with a fixed-size
    worker pool, then adds the processed count onto the scan's progress.

    Each worker builds its own scraper for the scan's source through
    `scraper_factory`, so sessions and cookie jars are never shared between
    threads.
    """

    def __init__(
        self,
        *,
        scan_store: ScanStore,
        result_store: CellResultStore,
        scraper_factory: ScraperFactory,
        settings: ScanSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._scan_store = scan_store
        self._result_store = result_store
        self._scraper_factory = scraper_factory
        self._settings = settings or get_scan_settings()
        self._clock = clock

    def process_batch(
        self,
        scan_id: uuid.UUID,
        *,
        start_index: int = 0,
        size: int | None = None,
    ) -> BatchResult:
        scan = self._scan_store.get_scan(scan_id)
        if scan is None:
            raise ScanNotFoundError(f"Scan {scan_id} not found.")
        if scan.status in {ScanStatus.CANCELLED, ScanStatus.ERROR}:
            raise ScanStateError(
                f"Scan {scan_id} is {scan.status} and cannot be processed.",
                status=scan.status,
            )
        if not scan.hotel_ids or scan.days <= 0:
            message = "Scan has no hotels or dates to process."
            self._scan_store.transition_status(
                scan_id,
                to_status=ScanStatus.ERROR,
                from_statuses=ScanStatus.ACTIVE,
                error_message=message,
            )
            raise ScanValidationError(message)
        if scan.status == ScanStatus.QUEUED:
            self._scan_store.transition_status(
                scan_id,
                to_status=ScanStatus.RUNNING,
                from_statuses=[ScanStatus.QUEUED],
            )

        batch_size = self._clamp_size(size)
        total = scan.total_cells
        start = max(0, min(start_index, total))
        end = min(total, start + batch_size)

        if start >= end:
            if scan.completed_cells >= total:
                self._mark_done(scan_id)
            return BatchResult(
                scan_id=scan_id,
                processed=0,
                failures=0,
                next_index=total,
                done=True,
                total=total,
                batch_size=0,
            )

        hotels = self._scan_store.get_hotels(list(dict.fromkeys(scan.hotel_ids)))
        items, skipped = build_slice(
            hotel_ids=scan.hotel_ids,
            hotels=hotels,
            base_check_in=scan.base_check_in,
            days=scan.days,
            stay_nights=scan.stay_nights,
            start=start,
            end=end,
        )

        scrapers = self._build_scrapers(scan, count=min(self._settings.worker_concurrency, len(items)))

        started = self._clock()
        cursor = _BatchCursor(items, SoftDeadline(self._settings.soft_budget_seconds, clock=self._clock))
        if scrapers:
            self._run_pool(scan, cursor, scrapers)

        processed = cursor.processed + skipped
        if processed > 0:
            completed = self._scan_store.add_completed(scan_id, processed)
            if completed is not None and completed >= total:
                self._mark_done(scan_id)

        next_index = end
        result = BatchResult(
            scan_id=scan_id,
            processed=processed,
            failures=cursor.failures,
            next_index=next_index,
            done=next_index >= total,
            total=total,
            batch_size=end - start,
            stopped_early=cursor.stopped_early,
        )
        log_event(
            logger,
            logging.INFO,
            "batch_completed",
            scan_id=scan_id,
            start_index=start,
            end_index=end,
            processed=result.processed,
            failures=result.failures,
            skipped=skipped,
            stopped_early=result.stopped_early,
            duration_seconds=round(self._clock() - started, 3),
        )
        return result

    def _build_scrapers(self, scan: ScanRecord, *, count: int) -> list[ScraperBase]:
        """
        One scraper per worker. A source that can no longer be resolved fails
        the scan before any cell is claimed.
        """

        scrapers: list[ScraperBase] = []
        try:
            for _ in range(count):
                scrapers.append(self._scraper_factory(scan.source_name))
        except ValueError as exc:
            for scraper in scrapers:
                scraper.close()
            message = f"Scan source '{scan.source_name}' is unavailable: {exc}"
            self._scan_store.transition_status(
                scan.id,
                to_status=ScanStatus.ERROR,
                from_statuses=ScanStatus.ACTIVE,
                error_message=message,
            )
            log_event(logger, logging.ERROR, "scan_source_unavailable", scan_id=scan.id, source=scan.source_name)
            raise ScanValidationError(message) from exc
        return scrapers

    def _run_pool(self, scan: ScanRecord, cursor: _BatchCursor, scrapers: list[ScraperBase]) -> None:
        with ThreadPoolExecutor(max_workers=len(scrapers), thread_name_prefix="scan-worker") as pool:
            futures = [pool.submit(self._worker, scan, cursor, scraper) for scraper in scrapers]
            for future in futures:
                future.result()

    def _worker(self, scan: ScanRecord, cursor: _BatchCursor, scraper: ScraperBase) -> None:
        try:
            while True:
                item = cursor.claim()
                if item is None:
                    return
                cursor.record(persisted=self._process_item(scan, scraper, item))
        finally:
            scraper.close()

    def _process_item(self, scan: ScanRecord, scraper: ScraperBase, item: WorkItem) -> bool:
        request = ScrapeRequest(
            hotel_identifier=scraper.hotel_identifier(item.hotel),
            check_in=item.check_in,
            check_out=item.check_out,
            adults=scan.adults,
            scan_id=scan.id,
            hotel_id=item.hotel.id,
            hotel_name=item.hotel.name,
        )
        try:
            result = scraper.scrape(request)
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "cell_scrape_failed",
                scan_id=scan.id,
                hotel_id=item.hotel.id,
                check_in=item.check_in,
                error=str(exc),
            )
            result = ScrapeResult(
                status=ScrapeStatus.ERROR,
                payload={"error": str(exc)},
                classification=ScrapeClassification.ERROR,
                error_message=str(exc),
            )

        outcome = CellOutcome(
            scan_id=scan.id,
            hotel_id=item.hotel.id,
            check_in=item.check_in,
            check_out=item.check_out,
            status=CellStatus.GREEN if result.status == ScrapeStatus.GREEN else CellStatus.RED,
            payload=result.payload,
            source_name=scan.source_name,
            price=result.price,
            currency=result.currency,
            error_message=result.error_message,
        )
        try:
            self._result_store.upsert(outcome)
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "cell_persist_failed",
                scan_id=scan.id,
                hotel_id=item.hotel.id,
                check_in=item.check_in,
                error=str(exc),
            )
            return False
        return True

    def _mark_done(self, scan_id: uuid.UUID) -> None:
        if self._scan_store.transition_status(
            scan_id,
            to_status=ScanStatus.DONE,
            from_statuses=[ScanStatus.RUNNING],
        ):
            log_event(logger, logging.INFO, "scan_done", scan_id=scan_id)

    def _clamp_size(self, size: int | None) -> int:
        if size is None:
            size = self._settings.default_batch_size
        return max(1, min(size, self._settings.max_batch_size))
