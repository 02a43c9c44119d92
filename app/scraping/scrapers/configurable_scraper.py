"""
Config-driven scraper implementation.
"""

from __future__ import annotations

import requests

from app.scraping.base import ScraperBase
from app.scraping.parsing import HTMLParsingLayer
from app.scraping.types import Extraction, RateOffer, RoomOffer


class ConfigurableAvailabilityScraper(ScraperBase):
    """
    Scraper that relies on `room`, `price` and `sold_out` selectors from the
    source config. Room names and prices are paired by position.
    """

    source_label = "configurable"

    def extract(self, response: requests.Response) -> Extraction:
        soup = HTMLParsingLayer.make_soup(response.text)
        room_names = HTMLParsingLayer.extract_multiple(soup=soup, selectors=self.selectors_for("room"))
        price_texts = HTMLParsingLayer.extract_multiple(soup=soup, selectors=self.selectors_for("price"))
        sold_out_selectors = self.selectors_for("sold_out")
        sold_out = bool(
            sold_out_selectors
            and HTMLParsingLayer.select_elements(soup=soup, selectors=sold_out_selectors)
        )

        rooms: list[RoomOffer] = []
        for index, price_text in enumerate(price_texts):
            parsed = HTMLParsingLayer.parse_price(price_text)
            if parsed is None:
                continue
            name = room_names[index] if index < len(room_names) else f"room {index + 1}"
            rooms.append(RoomOffer(name=name, rates=[RateOffer(name=None, price=parsed[0], currency=parsed[1])]))

        if not rooms:
            rooms = [RoomOffer(name=name) for name in room_names]

        recognized = bool(room_names or price_texts or sold_out)
        return Extraction(rooms=rooms, sold_out=sold_out and not rooms, recognized=recognized)

    def selectors_for(self, key: str) -> list[str]:
        return self.config.selectors.get(key.strip().lower(), [])
