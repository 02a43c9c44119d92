"""
Scraper for JSON hotel offer endpoints.
"""

from __future__ import annotations

import re
from typing import Any

import requests

from app.scraping.base import ScraperBase
from app.scraping.errors import ExtractionError
from app.scraping.parsing import parse_offer_response
from app.scraping.types import Extraction, ScrapeRequest

# Offer search body of the hotel offer API. Sources may override it with a
# `request_template` using the same placeholders.
DEFAULT_REQUEST_TEMPLATE: dict[str, Any] = {
    "hotelId": "{hotel}",
    "departureDate": "{check_in}",
    "returnDate": "{check_out}",
    "currency": "{currency}",
    "roomConfigurations": [
        {"travellers": {"id": 1, "adultCount": "{adults}", "childrenAges": []}},
    ],
    "locale": "{locale}",
}

_PLACEHOLDER = re.compile(r"\{([a-z_]+)\}")


def render_template(template: Any, values: dict[str, Any]) -> Any:
    """
    Fill `{name}` placeholders in a JSON template.

    A string that is exactly one placeholder takes the value with its type
    (so `"{adults}"` becomes an int); placeholders inside longer strings are
    substituted as text. Unknown placeholders are left untouched.
    """

    if isinstance(template, dict):
        return {key: render_template(value, values) for key, value in template.items()}
    if isinstance(template, list):
        return [render_template(item, values) for item in template]
    if not isinstance(template, str):
        return template

    whole = _PLACEHOLDER.fullmatch(template)
    if whole and whole.group(1) in values:
        return values[whole.group(1)]
    return _PLACEHOLDER.sub(
        lambda match: str(values[match.group(1)]) if match.group(1) in values else match.group(0),
        template,
    )


class OfferApiScraper(ScraperBase):
    """
    POSTs the stay to the source's offer endpoint. A cell is available when
    the response lists at least one room, priced or not.
    """

    source_label = "offer_api"
    http_method = "POST"
    accept = "application/json"

    def build_url(self, request: ScrapeRequest) -> str:
        return self.config.base_url

    def request_body(self, request: ScrapeRequest) -> dict[str, Any] | None:
        template = self.config.request_template or DEFAULT_REQUEST_TEMPLATE
        return render_template(
            template,
            {
                "hotel": request.hotel_identifier,
                "check_in": request.check_in.isoformat(),
                "check_out": request.check_out.isoformat(),
                "adults": request.adults,
                "children": request.children,
                "rooms": request.rooms,
                "currency": self.config.currency,
                "locale": self.config.locale,
            },
        )

    def is_available(self, extraction: Extraction) -> bool:
        return bool(extraction.rooms)

    def extract(self, response: requests.Response) -> Extraction:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ExtractionError(f"Offer response is not JSON: {exc}") from exc
        return parse_offer_response(payload)
