"""
Mapping-backed stores for single-process runs and tests.

All mutations happen under one lock, which gives the same add-and-cap and
conditional transition guarantees as the SQL statements.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import replace
from datetime import date, datetime, timezone

from app.domain.scanning import CellOutcome, HotelRecord, NewScan, ScanRecord
from app.scanning.storage.base import CellResultStore, ScanStore
from db.models.scan import ScanStatus


class InMemoryScanStore(ScanStore):
    def __init__(self, hotels: Iterable[HotelRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._hotels: dict[int, HotelRecord] = {hotel.id: hotel for hotel in hotels}
        self._scans: dict[uuid.UUID, ScanRecord] = {}

    def add_hotel(self, hotel: HotelRecord) -> None:
        with self._lock:
            self._hotels[hotel.id] = hotel

    def remove_hotel(self, hotel_id: int) -> None:
        with self._lock:
            self._hotels.pop(hotel_id, None)

    def list_hotels(self) -> list[HotelRecord]:
        with self._lock:
            return [self._hotels[hotel_id] for hotel_id in sorted(self._hotels)]

    def get_hotels(self, hotel_ids: Sequence[int]) -> dict[int, HotelRecord]:
        with self._lock:
            return {
                hotel_id: self._hotels[hotel_id]
                for hotel_id in hotel_ids
                if hotel_id in self._hotels
            }

    def create_scan(self, new_scan: NewScan) -> ScanRecord:
        record = ScanRecord(
            id=uuid.uuid4(),
            created_at=datetime.now(timezone.utc),
            base_check_in=new_scan.base_check_in,
            days=new_scan.days,
            stay_nights=new_scan.stay_nights,
            adults=new_scan.adults,
            source_name=new_scan.source_name,
            hotel_ids=tuple(new_scan.hotel_ids),
            total_cells=new_scan.total_cells,
            completed_cells=0,
            status=new_scan.status,
        )
        with self._lock:
            self._scans[record.id] = record
        return record

    def put_scan(self, record: ScanRecord) -> None:
        """
        Store a scan as given, for seeding explicit states.
        """

        with self._lock:
            self._scans[record.id] = record

    def get_scan(self, scan_id: uuid.UUID) -> ScanRecord | None:
        with self._lock:
            return self._scans.get(scan_id)

    def list_scans(self, *, limit: int = 100, status: str | None = None) -> list[ScanRecord]:
        with self._lock:
            rows = [scan for scan in self._scans.values() if not status or scan.status == status]
        rows.sort(key=lambda scan: scan.created_at, reverse=True)
        return rows[: max(1, limit)]

    def oldest_resumable(self) -> ScanRecord | None:
        with self._lock:
            candidates = [
                scan
                for scan in self._scans.values()
                if scan.status == ScanStatus.RUNNING and scan.completed_cells < scan.total_cells
            ]
        if not candidates:
            return None
        return min(candidates, key=lambda scan: scan.created_at)

    def add_completed(self, scan_id: uuid.UUID, count: int) -> int | None:
        with self._lock:
            scan = self._scans.get(scan_id)
            if scan is None:
                return None
            completed = min(scan.total_cells, scan.completed_cells + max(0, count))
            self._scans[scan_id] = replace(scan, completed_cells=completed)
            return completed

    def transition_status(
        self,
        scan_id: uuid.UUID,
        *,
        to_status: str,
        from_statuses: Iterable[str],
        error_message: str | None = None,
    ) -> bool:
        allowed = set(from_statuses)
        with self._lock:
            scan = self._scans.get(scan_id)
            if scan is None or scan.status not in allowed:
                return False
            updated = replace(scan, status=to_status)
            if to_status in ScanStatus.TERMINAL:
                updated = replace(updated, finished_at=datetime.now(timezone.utc))
            if error_message is not None:
                updated = replace(updated, error_message=error_message)
            self._scans[scan_id] = updated
            return True


class InMemoryCellResultStore(CellResultStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cells: dict[tuple[uuid.UUID, int, date], CellOutcome] = {}
        self.write_count = 0

    def upsert(self, outcome: CellOutcome) -> None:
        key = (outcome.scan_id, outcome.hotel_id, outcome.check_in)
        with self._lock:
            self._cells[key] = outcome
            self.write_count += 1

    def results_for_scan(self, scan_id: uuid.UUID) -> list[CellOutcome]:
        with self._lock:
            rows = [cell for key, cell in self._cells.items() if key[0] == scan_id]
        rows.sort(key=lambda cell: (cell.hotel_id, cell.check_in))
        return rows
