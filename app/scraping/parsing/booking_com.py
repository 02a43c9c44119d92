"""
Room, rate and price extraction for Booking.com hotel pages.

Everything of interest lives under `#available_rooms`. Each room type is a
`.hprt-roomtype-link`; its rates (`.bui-list__item.e2e-cancellation`) sit in
the same table row or in the sibling rows up to the next room type, and each
rate carries a `.bui-price-display__value`.
"""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup, Tag

from app.scraping.parsing.html_parsers import HTMLParsingLayer
from app.scraping.types import Extraction, RateOffer, RoomOffer

logger = logging.getLogger(__name__)

ROOMS_CONTAINER = "#available_rooms"
ROOM_LINK = ".hprt-roomtype-link"
RATE_ITEM = ".bui-list__item.e2e-cancellation"
PRICE_VALUE = ".bui-price-display__value"
SOLD_OUT_SELECTORS = [
    ".sold_out_property",
    ".bui-alert--error .sold_out",
    "[data-component='hotel/new-rooms-table/sold-out']",
]
ROW_CLASSES = {"hprt-table-row"}
RATE_CONTEXT_CLASSES = {"hprt-table-row", "hprt-table-cell"}


def parse_booking_com(html: str) -> Extraction:
    soup = HTMLParsingLayer.make_soup(html)
    container = soup.select_one(ROOMS_CONTAINER)
    if container is None:
        if HTMLParsingLayer.has_sold_out_marker(soup=soup, selectors=SOLD_OUT_SELECTORS):
            return Extraction(sold_out=True, raw={"source": "booking"})
        logger.debug("available_rooms container not found")
        return Extraction(recognized=False, raw={"source": "booking"})

    room_links = container.select(ROOM_LINK)
    if not room_links:
        sold_out = HTMLParsingLayer.has_sold_out_marker(soup=soup, selectors=SOLD_OUT_SELECTORS)
        return Extraction(sold_out=sold_out, recognized=sold_out, raw={"source": "booking"})

    rooms: list[RoomOffer] = []
    for room_link in room_links:
        room_name = HTMLParsingLayer.clean_text(room_link.get_text(" ", strip=True))
        if not room_name:
            continue
        row = _closest(room_link, names={"tr"}, classes=ROW_CLASSES)
        if row is None:
            continue

        rates = _rates_for_row(row)
        if rates:
            rooms.append(RoomOffer(name=room_name, rates=rates))

    if not rooms:
        sold_out = HTMLParsingLayer.has_sold_out_marker(soup=soup, selectors=SOLD_OUT_SELECTORS)
        return Extraction(sold_out=sold_out, recognized=sold_out, raw={"source": "booking"})
    return Extraction(rooms=rooms, raw={"source": "booking"})


def _rates_for_row(row: Tag) -> list[RateOffer]:
    rate_elements = row.select(RATE_ITEM)
    if not rate_elements:
        for sibling in row.find_next_siblings():
            if sibling.select_one(ROOM_LINK) is not None:
                break
            rate_elements.extend(sibling.select(RATE_ITEM))

    rates = [rate for rate in (_rate_from_element(element) for element in rate_elements) if rate]
    if rates:
        return rates

    # Some layouts put the price straight on the room row without rate items.
    direct: list[RateOffer] = []
    for price_element in row.select(PRICE_VALUE):
        parsed = HTMLParsingLayer.parse_price(price_element.get_text(" ", strip=True))
        if parsed is not None:
            direct.append(RateOffer(name=None, price=parsed[0], currency=parsed[1]))
    return direct


def _rate_from_element(element: Tag) -> RateOffer | None:
    price_element = element.select_one(PRICE_VALUE)
    if price_element is None:
        context = _closest(element, names={"tr"}, classes=RATE_CONTEXT_CLASSES)
        if context is not None:
            price_element = context.select_one(PRICE_VALUE)
    if price_element is None:
        return None

    parsed = HTMLParsingLayer.parse_price(price_element.get_text(" ", strip=True))
    if parsed is None:
        return None
    name = HTMLParsingLayer.clean_text(element.get_text(" ", strip=True)) or None
    return RateOffer(name=name, price=parsed[0], currency=parsed[1])


def _closest(node: Tag, *, names: set[str], classes: set[str]) -> Tag | None:
    current: Tag | None = node
    while current is not None and not isinstance(current, BeautifulSoup):
        if current.name in names or classes.intersection(current.get("class") or []):
            return current
        current = current.parent
    return None
