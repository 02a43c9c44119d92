"""
Shared scraping runtime data models.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any


class ScrapeClassification:
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"
    BLOCK = "block"
    MANUAL_REVIEW = "manual_review"

    ALL = (SUCCESS, ERROR, TIMEOUT, BLOCK, MANUAL_REVIEW)


class ScrapeStatus:
    GREEN = "green"
    RED = "red"
    ERROR = "error"


@dataclass(frozen=True)
class ScrapeRequest:
    """
    One hotel x date lookup against a scan source.
    """

    hotel_identifier: str
    check_in: date
    check_out: date
    adults: int = 2
    children: int = 0
    rooms: int = 1
    scan_id: uuid.UUID | None = None
    hotel_id: int | None = None
    hotel_name: str | None = None


@dataclass(frozen=True)
class RateOffer:
    name: str | None
    price: Decimal
    currency: str


@dataclass(frozen=True)
class RoomOffer:
    name: str
    rates: list[RateOffer] = field(default_factory=list)


@dataclass(frozen=True)
class Extraction:
    """
    Parsed page content before availability classification.

    `recognized` is False when the page did not match any known layout,
    which keeps ambiguous pages apart from explicit sold-out pages.
    """

    rooms: list[RoomOffer] = field(default_factory=list)
    sold_out: bool = False
    recognized: bool = True
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def has_priced_rate(self) -> bool:
        return any(rate.price > 0 for room in self.rooms for rate in room.rates)

    def lowest_rate(self) -> RateOffer | None:
        rates = [rate for room in self.rooms for rate in room.rates if rate.price > 0]
        if not rates:
            return None
        return min(rates, key=lambda rate: rate.price)

    def to_payload(self, *, source: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "source": source,
            "rooms": [
                {
                    "name": room.name,
                    "rates": [
                        {"name": rate.name, "price": float(rate.price), "currency": rate.currency}
                        for rate in room.rates
                    ],
                }
                for room in self.rooms
            ],
        }
        if self.sold_out:
            payload["sold_out"] = True
        if self.raw:
            payload["raw"] = self.raw
        return payload


@dataclass(frozen=True)
class ScrapeResult:
    """
    Outcome of one lookup after retries.
    """

    status: str
    payload: dict[str, Any] = field(default_factory=dict)
    classification: str = ScrapeClassification.SUCCESS
    price: Decimal | None = None
    currency: str | None = None
    error_message: str | None = None

    @property
    def is_available(self) -> bool:
        return self.status == ScrapeStatus.GREEN


@dataclass(frozen=True)
class ScrapeEvent:
    """
    One scrape attempt as written to the event log.
    """

    timestamp: datetime
    scrape_status: str
    url: str | None
    retry_count: int = 0
    scan_id: uuid.UUID | None = None
    hotel_id: int | None = None
    hotel_name: str | None = None
    check_in_date: date | None = None
    http_status: int | None = None
    delay_ms: int | None = None
    error_message: str | None = None
    user_agent: str | None = None
    reason: str | None = None
    response_time_ms: int | None = None
    session_id: str | None = None
