"""
SQLAlchemy-backed scan and cell result storage.

Every call opens its own short-lived session so worker threads never share
one; the completed counter relies on a single `UPDATE ... LEAST(...)`.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.scanning import CellOutcome, HotelRecord, NewScan, ScanRecord
from app.scanning.storage.base import CellResultStore, ScanStore
from db.models.hotel import Hotel
from db.models.scan import Scan
from db.models.scan_result import ScanResult
from db.repositories.hotel_repository import HotelRepository
from db.repositories.scan_repository import ScanRepository
from db.repositories.scan_result_repository import ScanResultRepository
from db.session import SessionLocal


def _to_hotel_record(row: Hotel) -> HotelRecord:
    return HotelRecord(
        id=row.id,
        name=row.name,
        code=row.code,
        booking_url=row.booking_url,
    )


def _to_scan_record(row: Scan) -> ScanRecord:
    return ScanRecord(
        id=row.id,
        created_at=row.created_at,
        base_check_in=row.base_check_in,
        days=row.days,
        stay_nights=row.stay_nights,
        adults=row.adults,
        source_name=row.source_name,
        hotel_ids=tuple(int(hotel_id) for hotel_id in (row.hotel_ids or [])),
        total_cells=row.total_cells,
        completed_cells=row.completed_cells,
        status=row.status,
        error_message=row.error_message,
        finished_at=row.finished_at,
    )


def _to_cell_outcome(row: ScanResult) -> CellOutcome:
    return CellOutcome(
        scan_id=row.scan_id,
        hotel_id=row.hotel_id,
        check_in=row.check_in_date,
        check_out=row.check_out_date,
        status=row.status,
        payload=dict(row.response_json or {}),
        source_name=row.source_name,
        price=row.price,
        currency=row.currency,
        error_message=row.error_message,
    )


class SQLAlchemyScanStore(ScanStore):
    """
    Scan persistence through the repository layer.
    """

    def __init__(self, *, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def list_hotels(self) -> list[HotelRecord]:
        with self._session_factory() as session:
            return [_to_hotel_record(row) for row in HotelRepository(session).list_ordered()]

    def get_hotels(self, hotel_ids: Sequence[int]) -> dict[int, HotelRecord]:
        with self._session_factory() as session:
            rows = HotelRepository(session).get_many(hotel_ids)
            return {hotel_id: _to_hotel_record(row) for hotel_id, row in rows.items()}

    def create_scan(self, new_scan: NewScan) -> ScanRecord:
        with self._session_factory() as session:
            try:
                row = ScanRepository(session).create_scan(
                    base_check_in=new_scan.base_check_in,
                    days=new_scan.days,
                    stay_nights=new_scan.stay_nights,
                    adults=new_scan.adults,
                    source_name=new_scan.source_name,
                    hotel_ids=list(new_scan.hotel_ids),
                    status=new_scan.status,
                )
                record = _to_scan_record(row)
                session.commit()
                return record
            except SQLAlchemyError:
                session.rollback()
                raise

    def get_scan(self, scan_id: uuid.UUID) -> ScanRecord | None:
        with self._session_factory() as session:
            row = ScanRepository(session).get_scan(scan_id)
            return _to_scan_record(row) if row is not None else None

    def list_scans(self, *, limit: int = 100, status: str | None = None) -> list[ScanRecord]:
        with self._session_factory() as session:
            rows = ScanRepository(session).list_scans(limit=limit, status=status)
            return [_to_scan_record(row) for row in rows]

    def oldest_resumable(self) -> ScanRecord | None:
        with self._session_factory() as session:
            row = ScanRepository(session).oldest_resumable()
            return _to_scan_record(row) if row is not None else None

    def add_completed(self, scan_id: uuid.UUID, count: int) -> int | None:
        with self._session_factory() as session:
            try:
                completed = ScanRepository(session).add_completed(scan_id=scan_id, count=count)
                session.commit()
                return completed
            except SQLAlchemyError:
                session.rollback()
                raise

    def transition_status(
        self,
        scan_id: uuid.UUID,
        *,
        to_status: str,
        from_statuses: Iterable[str],
        error_message: str | None = None,
    ) -> bool:
        with self._session_factory() as session:
            try:
                changed = ScanRepository(session).transition_status(
                    scan_id=scan_id,
                    to_status=to_status,
                    from_statuses=from_statuses,
                    error_message=error_message,
                )
                session.commit()
                return changed
            except SQLAlchemyError:
                session.rollback()
                raise


class SQLAlchemyCellResultStore(CellResultStore):
    def __init__(self, *, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self._session_factory = session_factory

    def upsert(self, outcome: CellOutcome) -> None:
        with self._session_factory() as session:
            try:
                ScanResultRepository(session).upsert(
                    scan_id=outcome.scan_id,
                    hotel_id=outcome.hotel_id,
                    check_in_date=outcome.check_in,
                    check_out_date=outcome.check_out,
                    status=outcome.status,
                    response_json=outcome.payload,
                    source_name=outcome.source_name,
                    price=outcome.price,
                    currency=outcome.currency,
                    error_message=outcome.error_message,
                )
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                raise

    def results_for_scan(self, scan_id: uuid.UUID) -> list[CellOutcome]:
        with self._session_factory() as session:
            rows = ScanResultRepository(session).list_for_scan(scan_id)
            return [_to_cell_outcome(row) for row in rows]
