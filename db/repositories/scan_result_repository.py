"""
Repository for per-cell availability results.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from db.models.scan_result import ScanResult


class ScanResultRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def upsert(
        self,
        *,
        scan_id: uuid.UUID,
        hotel_id: int,
        check_in_date: date,
        check_out_date: date | None,
        status: str,
        response_json: dict[str, Any] | None,
        source_name: str | None = None,
        price: Decimal | None = None,
        currency: str | None = None,
        error_message: str | None = None,
    ) -> None:
        """
        Insert the cell or overwrite the existing row for the same key.
        """

        stmt = insert(ScanResult).values(
            scan_id=scan_id,
            hotel_id=hotel_id,
            check_in_date=check_in_date,
            check_out_date=check_out_date,
            source_name=source_name,
            status=status,
            response_json=response_json,
            price=price,
            currency=currency,
            error_message=error_message,
        )
        stmt = stmt.on_conflict_do_update(
            constraint="uq_scan_results_scan_hotel_check_in",
            set_={
                "check_out_date": stmt.excluded.check_out_date,
                "source_name": stmt.excluded.source_name,
                "status": stmt.excluded.status,
                "response_json": stmt.excluded.response_json,
                "price": stmt.excluded.price,
                "currency": stmt.excluded.currency,
                "error_message": stmt.excluded.error_message,
                "scraped_at": func.now(),
            },
        )
        self._session.execute(stmt)

    def list_for_scan(self, scan_id: uuid.UUID) -> list[ScanResult]:
        stmt = (
            select(ScanResult)
            .where(ScanResult.scan_id == scan_id)
            .order_by(ScanResult.hotel_id.asc(), ScanResult.check_in_date.asc())
        )
        return list(self._session.scalars(stmt).all())
