"""
Storage interfaces for scans, hotels and per-cell results.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence

from app.domain.scanning import CellOutcome, HotelRecord, NewScan, ScanRecord


class ScanStore(ABC):
    """
    Scan lifecycle persistence plus the read-only hotel catalogue.
    """

    @abstractmethod
    def list_hotels(self) -> list[HotelRecord]:
        """
        All hotels ordered by id ascending.
        """

    @abstractmethod
    def get_hotels(self, hotel_ids: Sequence[int]) -> dict[int, HotelRecord]:
        """
        Hotels keyed by id; ids that no longer exist are absent.
        """

    @abstractmethod
    def create_scan(self, new_scan: NewScan) -> ScanRecord:
        """
        Persist a new scan with completed_cells = 0.
        """

    @abstractmethod
    def get_scan(self, scan_id: uuid.UUID) -> ScanRecord | None:
        ...

    @abstractmethod
    def list_scans(self, *, limit: int = 100, status: str | None = None) -> list[ScanRecord]:
        """
        Most recent scans first.
        """

    @abstractmethod
    def oldest_resumable(self) -> ScanRecord | None:
        """
        Oldest running scan that still has unprocessed cells.
        """

    @abstractmethod
    def add_completed(self, scan_id: uuid.UUID, count: int) -> int | None:
        """
        Atomically add `count` to completed_cells, capped at total_cells.
        Returns the new completed count, or None for an unknown scan.
        """

    @abstractmethod
    def transition_status(
        self,
        scan_id: uuid.UUID,
        *,
        to_status: str,
        from_statuses: Iterable[str],
        error_message: str | None = None,
    ) -> bool:
        """
        Conditionally move a scan between states. Returns whether it moved.
        """


class CellResultStore(ABC):
    """
    Idempotent per-cell result persistence keyed by (scan, hotel, check-in).
    """

    @abstractmethod
    def upsert(self, outcome: CellOutcome) -> None:
        ...

    @abstractmethod
    def results_for_scan(self, scan_id: uuid.UUID) -> list[CellOutcome]:
        """
        All stored cells of a scan ordered by hotel id then check-in date.
        """
