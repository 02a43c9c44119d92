"""
Repository for scan lifecycle persistence.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import date, datetime, timezone

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import Session

from db.models.scan import Scan, ScanStatus


class ScanRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_scan(
        self,
        *,
        base_check_in: date,
        days: int,
        stay_nights: int,
        adults: int,
        source_name: str,
        hotel_ids: list[int],
        status: str = ScanStatus.RUNNING,
    ) -> Scan:
        scan = Scan(
            base_check_in=base_check_in,
            days=days,
            stay_nights=stay_nights,
            adults=adults,
            source_name=source_name,
            hotel_ids=hotel_ids,
            total_cells=len(hotel_ids) * days,
            completed_cells=0,
            status=status,
        )
        self._session.add(scan)
        self._session.flush()
        self._session.refresh(scan)
        return scan

    def get_scan(self, scan_id: uuid.UUID) -> Scan | None:
        return self._session.get(Scan, scan_id)

    def list_scans(self, *, limit: int = 100, status: str | None = None) -> list[Scan]:
        stmt: Select[tuple[Scan]] = select(Scan)
        if status:
            stmt = stmt.where(Scan.status == status)
        stmt = stmt.order_by(Scan.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def oldest_resumable(self) -> Scan | None:
        stmt = (
            select(Scan)
            .where(
                Scan.status == ScanStatus.RUNNING,
                Scan.completed_cells < Scan.total_cells,
            )
            .order_by(Scan.created_at.asc())
            .limit(1)
        )
        return self._session.scalars(stmt).first()

    def add_completed(self, *, scan_id: uuid.UUID, count: int) -> int | None:
        """
        Atomically add `count` to completed_cells, capped at total_cells.
        Returns the new completed count, or None if the scan does not exist.
        """

        stmt = (
            update(Scan)
            .where(Scan.id == scan_id)
            .values(
                completed_cells=func.least(
                    Scan.completed_cells + max(0, count),
                    Scan.total_cells,
                ),
                updated_at=func.now(),
            )
            .returning(Scan.completed_cells)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def transition_status(
        self,
        *,
        scan_id: uuid.UUID,
        to_status: str,
        from_statuses: Iterable[str],
        error_message: str | None = None,
    ) -> bool:
        """
        Move the scan to `to_status` only if it is currently in one of
        `from_statuses`. Returns whether a row changed.
        """

        values: dict[str, object] = {"status": to_status, "updated_at": func.now()}
        if to_status in ScanStatus.TERMINAL:
            values["finished_at"] = datetime.now(timezone.utc)
        if error_message is not None:
            values["error_message"] = error_message

        stmt = (
            update(Scan)
            .where(Scan.id == scan_id, Scan.status.in_(list(from_statuses)))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)
        return (result.rowcount or 0) > 0
