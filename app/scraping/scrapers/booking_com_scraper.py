"""
Booking.com hotel page scraper.
"""

from __future__ import annotations

import requests

from app.domain.scanning import HotelRecord
from app.scraping.base import ScraperBase, merge_query
from app.scraping.parsing import parse_booking_com
from app.scraping.types import Extraction, ScrapeRequest


class BookingComScraper(ScraperBase):
    """
    Hotels are addressed by their own Booking.com listing URL; hotels without
    one fall back to `<base_url>/<code>.html`.
    """

    source_label = "booking"

    def hotel_identifier(self, hotel: HotelRecord) -> str:
        return hotel.booking_url or hotel.code

    def build_url(self, request: ScrapeRequest) -> str:
        identifier = request.hotel_identifier
        if identifier.startswith(("http://", "https://")):
            listing_url = identifier
        else:
            slug = identifier if identifier.endswith(".html") else f"{identifier}.html"
            listing_url = f"{self.config.base_url.rstrip('/')}/{slug.lstrip('/')}"
        params = self.stay_params(request)
        params["no_rooms"] = str(request.rooms)
        return merge_query(listing_url, params)

    def extract(self, response: requests.Response) -> Extraction:
        return parse_booking_com(response.text)
