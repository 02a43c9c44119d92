"""
tests/test_parsing.py

Price parsing, Booking.com room extraction and JSON offer extraction.
All inputs are inline fixtures; no network access.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.scraping.parsing import (
    HTMLParsingLayer,
    has_non_empty_rooms,
    parse_booking_com,
    parse_offer_response,
)

BOOKING_PAGE = """
<html><body>
<div id="available_rooms">
  <table><tbody>
    <tr class="hprt-table-row">
      <td><a class="hprt-roomtype-link">Double Room</a></td>
      <td><ul><li class="bui-list__item e2e-cancellation">Free cancellation</li></ul></td>
      <td><div class="bui-price-display__value">€ 120</div></td>
    </tr>
    <tr class="hprt-table-row">
      <td><a class="hprt-roomtype-link">Junior Suite</a></td>
    </tr>
    <tr class="hprt-table-row">
      <td><ul><li class="bui-list__item e2e-cancellation">Non-refundable
        <span class="bui-price-display__value">€ 1.234,56</span></li></ul></td>
    </tr>
  </tbody></table>
</div>
</body></html>
"""

SOLD_OUT_PAGE = """
<html><body><div class="sold_out_property">We have no availability here between these dates</div></body></html>
"""

EMPTY_ROOMS_PAGE = """
<html><body><div id="available_rooms"><p>Loading</p></div></body></html>
"""

UNRELATED_PAGE = "<html><body><h1>Welcome</h1><p>Sign in to continue</p></body></html>"


class TestParsePrice:
    @pytest.mark.parametrize(
        "text,amount,currency",
        [
            ("€ 120", "120.00", "EUR"),
            ("€ 1.234,56", "1234.56", "EUR"),
            ("US$1,234.56", "1234.56", "USD"),
            ("£89.90", "89.90", "GBP"),
            ("120 CHF", "120.00", "CHF"),
            ("1.234", "1234.00", "EUR"),
            ("99,5", "99.50", "EUR"),
        ],
    )
    def test_parses_common_formats(self, text: str, amount: str, currency: str) -> None:
        assert HTMLParsingLayer.parse_price(text) == (Decimal(amount), currency)

    @pytest.mark.parametrize("text", [None, "", "   ", "Price on request", "€ 0"])
    def test_rejects_missing_or_zero(self, text: str | None) -> None:
        assert HTMLParsingLayer.parse_price(text) is None


class TestHTMLParsingLayer:
    def test_extract_multiple_dedupes_in_order(self) -> None:
        soup = HTMLParsingLayer.make_soup("<ul><li>a</li><li> b </li><li>a</li></ul>")
        assert HTMLParsingLayer.extract_multiple(soup=soup, selectors=["li"]) == ["a", "b"]

    def test_extract_text_first_non_empty(self) -> None:
        soup = HTMLParsingLayer.make_soup("<p class='x'> </p><p class='y'>hello   world</p>")
        assert HTMLParsingLayer.extract_text(soup=soup, selectors=[".x", ".y"]) == "hello world"

    def test_sold_out_marker_by_text(self) -> None:
        soup = HTMLParsingLayer.make_soup("<div>Ausgebucht für diese Daten</div>")
        assert HTMLParsingLayer.has_sold_out_marker(soup=soup)


class TestBookingParser:
    def test_rooms_and_rates(self) -> None:
        extraction = parse_booking_com(BOOKING_PAGE)

        assert extraction.recognized
        assert not extraction.sold_out
        assert [room.name for room in extraction.rooms] == ["Double Room", "Junior Suite"]
        assert extraction.rooms[0].rates[0].price == Decimal("120.00")
        assert extraction.rooms[0].rates[0].name == "Free cancellation"
        assert extraction.rooms[1].rates[0].price == Decimal("1234.56")
        assert extraction.has_priced_rate
        assert extraction.lowest_rate().price == Decimal("120.00")

    def test_sold_out_page(self) -> None:
        extraction = parse_booking_com(SOLD_OUT_PAGE)
        assert extraction.sold_out
        assert extraction.rooms == []

    def test_container_without_rooms_is_unrecognized(self) -> None:
        extraction = parse_booking_com(EMPTY_ROOMS_PAGE)
        assert not extraction.sold_out
        assert not extraction.recognized

    def test_unrelated_page_is_unrecognized(self) -> None:
        extraction = parse_booking_com(UNRELATED_PAGE)
        assert not extraction.recognized
        assert not extraction.has_priced_rate


class TestOfferResponse:
    def test_rooms_with_rates(self) -> None:
        payload = {
            "currency": "usd",
            "rooms": [
                {"name": "Standard", "rates": [{"name": "Flex", "price": 150}, {"name": "Saver", "price": "129.50"}]},
                {"roomName": "Deluxe", "totalPrice": {"amount": 210}},
            ],
        }

        extraction = parse_offer_response(payload)

        assert [room.name for room in extraction.rooms] == ["Standard", "Deluxe"]
        assert extraction.lowest_rate().price == Decimal("129.50")
        assert extraction.rooms[0].rates[0].currency == "USD"
        assert extraction.rooms[1].rates[0].price == Decimal("210")

    def test_rooms_under_data_key(self) -> None:
        assert has_non_empty_rooms({"data": {"rooms": [{"name": "A"}]}})

    def test_empty_rooms_is_sold_out(self) -> None:
        extraction = parse_offer_response({"rooms": []})
        assert extraction.sold_out
        assert extraction.recognized

    def test_missing_rooms_is_unrecognized(self) -> None:
        extraction = parse_offer_response({"status": "ok"})
        assert not extraction.recognized
        assert not has_non_empty_rooms({"status": "ok"})
        assert not has_non_empty_rooms(["not", "a", "dict"])

    def test_bare_room_entries_still_count(self) -> None:
        extraction = parse_offer_response({"rooms": ["DZ", 17]})

        assert [room.name for room in extraction.rooms] == ["DZ", "room"]
        assert not extraction.sold_out
        assert not extraction.has_priced_rate
