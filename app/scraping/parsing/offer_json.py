"""
Helpers for JSON offer responses of hotel booking APIs.

Responses vary per provider: rooms may sit at the top level, under `data`,
or under any key spelled `rooms`; rates under `rates`, `prices` or `offers`.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from app.scraping.parsing.html_parsers import DEFAULT_CURRENCY
from app.scraping.types import Extraction, RateOffer, RoomOffer

PRICE_FIELDS = (
    "price",
    "totalPrice",
    "total",
    "amount",
    "value",
    "cost",
    "rate",
    "basePrice",
    "netPrice",
    "grossPrice",
)
RATE_LIST_FIELDS = ("rates", "prices", "offers")
ROOM_NAME_FIELDS = ("name", "roomName", "title", "type")
RATE_NAME_FIELDS = ("name", "rateName", "planName", "title", "type")


def find_rooms(payload: Any) -> list[Any] | None:
    if not isinstance(payload, dict):
        return None
    rooms = payload.get("rooms")
    if isinstance(rooms, list):
        return rooms
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("rooms"), list):
        return data["rooms"]
    for key, value in payload.items():
        if isinstance(key, str) and key.lower() == "rooms" and isinstance(value, list):
            return value
    return None


def has_non_empty_rooms(payload: Any) -> bool:
    rooms = find_rooms(payload)
    return bool(rooms)


def extract_price_value(obj: Any) -> Decimal | None:
    if not isinstance(obj, dict):
        return None
    for field_name in PRICE_FIELDS:
        value = obj.get(field_name)
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            if value >= 0:
                return Decimal(str(value))
        elif isinstance(value, str):
            cleaned = "".join(ch for ch in value if ch.isdigit() or ch in ".-")
            try:
                parsed = Decimal(cleaned)
            except InvalidOperation:
                continue
            if parsed >= 0:
                return parsed
        elif isinstance(value, dict):
            nested = extract_price_value(value)
            if nested is not None:
                return nested
    return None


def parse_offer_response(payload: Any) -> Extraction:
    """
    Map a JSON offer response onto rooms and rates.

    A room without a rate list contributes its own direct price, if any.
    Every entry of a non-empty `rooms` list yields a room, so availability
    follows the list length even when entries are not objects.
    """

    rooms = find_rooms(payload)
    if rooms is None:
        return Extraction(recognized=False, raw={"source": "offer_api"})

    currency = _currency(payload)
    offers: list[RoomOffer] = []
    for room in rooms:
        if not isinstance(room, dict):
            # Bare entries still count as rooms on offer.
            label = room.strip() if isinstance(room, str) else ""
            offers.append(RoomOffer(name=label or "room"))
            continue
        room_name = _first_str(room, ROOM_NAME_FIELDS) or "room"
        rate_items = _rate_items(room)
        rates: list[RateOffer] = []
        if rate_items:
            for rate in rate_items:
                price = extract_price_value(rate)
                if price is None:
                    continue
                rates.append(
                    RateOffer(
                        name=_first_str(rate, RATE_NAME_FIELDS),
                        price=price,
                        currency=_currency(rate, default=currency),
                    )
                )
        else:
            price = extract_price_value(room)
            if price is not None:
                rates.append(
                    RateOffer(
                        name=_first_str(room, ("rateName", "planName")),
                        price=price,
                        currency=_currency(room, default=currency),
                    )
                )
        offers.append(RoomOffer(name=room_name, rates=rates))

    return Extraction(rooms=offers, sold_out=not offers, raw={"source": "offer_api"})


def _rate_items(room: dict[str, Any]) -> list[Any]:
    for field_name in RATE_LIST_FIELDS:
        value = room.get(field_name)
        if isinstance(value, list):
            return value
    for field_name in ("rate", "price"):
        value = room.get(field_name)
        if isinstance(value, dict):
            return [value]
    for key, value in room.items():
        lowered = key.lower()
        if isinstance(value, list) and any(part in lowered for part in ("rate", "price", "offer")):
            return value
    return []


def _first_str(obj: dict[str, Any], fields: tuple[str, ...]) -> str | None:
    for field_name in fields:
        value = obj.get(field_name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _currency(obj: Any, default: str = DEFAULT_CURRENCY) -> str:
    if isinstance(obj, dict):
        value = obj.get("currency")
        if isinstance(value, str) and len(value.strip()) == 3:
            return value.strip().upper()
    return default
