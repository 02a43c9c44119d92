"""
Read-only hotel lookups used by scan creation and batch processing.
"""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.hotel import Hotel


class HotelRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def list_ordered(self) -> list[Hotel]:
        stmt = select(Hotel).order_by(Hotel.id.asc())
        return list(self._session.scalars(stmt).all())

    def get_many(self, hotel_ids: Sequence[int]) -> dict[int, Hotel]:
        if not hotel_ids:
            return {}
        stmt = select(Hotel).where(Hotel.id.in_(list(hotel_ids)))
        return {hotel.id: hotel for hotel in self._session.scalars(stmt).all()}
