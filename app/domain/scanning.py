"""
app/domain/scanning.py

Domain models for scan lifecycle and batch processing.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from db.models.scan import ScanStatus


@dataclass(frozen=True)
class HotelRecord:
    id: int
    name: str
    code: str
    booking_url: str | None = None


@dataclass(frozen=True)
class NewScan:
    """
    Validated parameters for a scan about to be stored.
    """

    base_check_in: date
    days: int
    stay_nights: int
    adults: int
    source_name: str
    hotel_ids: tuple[int, ...]
    status: str = ScanStatus.RUNNING

    @property
    def total_cells(self) -> int:
        return len(self.hotel_ids) * self.days


@dataclass(frozen=True)
class ScanRecord:
    """
    Read-only snapshot of one scan row.
    """

    id: uuid.UUID
    created_at: datetime
    base_check_in: date
    days: int
    stay_nights: int
    adults: int
    source_name: str
    hotel_ids: tuple[int, ...]
    total_cells: int
    completed_cells: int
    status: str
    error_message: str | None = None
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in ScanStatus.TERMINAL

    @property
    def is_complete(self) -> bool:
        return self.completed_cells >= self.total_cells

    @property
    def progress_percent(self) -> float:
        if self.total_cells <= 0:
            return 100.0
        return round(self.completed_cells / self.total_cells * 100.0, 2)


@dataclass(frozen=True)
class WorkItem:
    """
    One grid cell resolved from a flat index.
    """

    flat_index: int
    hotel: HotelRecord
    check_in: date
    check_out: date


@dataclass(frozen=True)
class CellOutcome:
    """
    Availability result for one cell, ready for idempotent upsert.
    """

    scan_id: uuid.UUID
    hotel_id: int
    check_in: date
    check_out: date
    status: str
    payload: dict[str, Any] = field(default_factory=dict)
    source_name: str | None = None
    price: Decimal | None = None
    currency: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class BatchResult:
    """
    Outcome of one `process_batch` invocation.

    `processed < batch_size` is a normal outcome when the soft time budget
    ran out; callers resume from the scan's completed count.

    `done` only says the slice reached the end of the grid (`next_index >=
    total`). A last slice cut short by the budget or by persistence failures
    still reports `done=True` while the scan stays running; read the scan's
    status or completed count to know whether it finished.
    """

    scan_id: uuid.UUID
    processed: int
    failures: int
    next_index: int
    done: bool
    total: int
    batch_size: int
    stopped_early: bool = False


@dataclass(frozen=True)
class ResumeResult:
    """
    Outcome of one resume step: a processed batch, nothing to do, or a scan
    that had to be failed (`failed_scan_id`).
    """

    batch: BatchResult | None = None
    message: str | None = None
    failed_scan_id: uuid.UUID | None = None

    @property
    def scan_id(self) -> uuid.UUID | None:
        return self.batch.scan_id if self.batch else None

    @property
    def processed(self) -> int:
        return self.batch.processed if self.batch else 0


@dataclass(frozen=True)
class ResumeCycleSummary:
    batches: int
    processed: int
    scans_touched: list[uuid.UUID] = field(default_factory=list)
    budget_exhausted: bool = False


@dataclass(frozen=True)
class CreatedScan:
    scan: ScanRecord
    first_batch: BatchResult | None = None
