"""
Response extractors for scan sources.
"""

from app.scraping.parsing.booking_com import parse_booking_com
from app.scraping.parsing.html_parsers import HTMLParsingLayer
from app.scraping.parsing.offer_json import has_non_empty_rooms, parse_offer_response

__all__ = [
    "HTMLParsingLayer",
    "has_non_empty_rooms",
    "parse_booking_com",
    "parse_offer_response",
]
