"""
Flat-index enumeration of the hotel x check-in date grid.

Index `i` maps to hotel `i // days` and date `i % days` (hotel-major), so a
scan resumes from any index without materializing the grid.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date, timedelta

from app.domain.scanning import HotelRecord, WorkItem
from app.logging_utils import log_event

logger = logging.getLogger(__name__)


def locate(hotel_count: int, days: int, flat_index: int) -> tuple[int, int]:
    """
    Return (hotel_ordinal, date_ordinal) for a flat index.
    """

    if days <= 0:
        raise ValueError("days must be positive.")
    if flat_index < 0 or flat_index >= hotel_count * days:
        raise IndexError(f"flat_index {flat_index} outside grid of {hotel_count}x{days}.")
    return flat_index // days, flat_index % days


def date_sequence(base: date, days: int) -> list[date]:
    return [base + timedelta(days=offset) for offset in range(max(0, days))]


def check_out_for(check_in: date, nights: int) -> date:
    return check_in + timedelta(days=nights)


def build_slice(
    *,
    hotel_ids: Sequence[int],
    hotels: Mapping[int, HotelRecord],
    base_check_in: date,
    days: int,
    stay_nights: int,
    start: int,
    end: int,
) -> tuple[list[WorkItem], int]:
    """
    Work items for flat indexes `[start, end)`.

    Returns (items, skipped) where skipped counts indexes whose snapshotted
    hotel no longer exists.
    """

    items: list[WorkItem] = []
    skipped = 0
    missing_logged: set[int] = set()
    for flat_index in range(start, end):
        hotel_ordinal, date_ordinal = locate(len(hotel_ids), days, flat_index)
        hotel_id = hotel_ids[hotel_ordinal]
        hotel = hotels.get(hotel_id)
        if hotel is None:
            skipped += 1
            if hotel_id not in missing_logged:
                missing_logged.add(hotel_id)
                log_event(logger, logging.WARNING, "scan_hotel_missing", hotel_id=hotel_id)
            continue
        check_in = base_check_in + timedelta(days=date_ordinal)
        items.append(
            WorkItem(
                flat_index=flat_index,
                hotel=hotel,
                check_in=check_in,
                check_out=check_out_for(check_in, stay_nights),
            )
        )
    return items, skipped
