"""
tests/test_scraper_base.py

Scrape client fetch loop: retries, classification and event emission.

The HTTP layer is replaced by a scripted fake session; pacing is zeroed and
retry sleeps are captured instead of slept.
"""

from __future__ import annotations

import random
import uuid
from datetime import date
from decimal import Decimal
from typing import Any

import pytest
import requests

from app.domain.scanning import HotelRecord
from app.scraping.config.models import ScanSourceConfig, ScrapeSettings
from app.scraping.pacing import RequestPacer
from app.scraping.scrapers import BookingComScraper, OfferApiScraper
from app.scraping.session_manager import SessionManager
from app.scraping.storage.memory import InMemoryScrapeEventLog
from app.scraping.types import ScrapeClassification, ScrapeRequest, ScrapeStatus

GREEN_PAGE = """
<div id="available_rooms"><table><tbody>
  <tr class="hprt-table-row">
    <td><a class="hprt-roomtype-link">Double Room</a></td>
    <td><li class="bui-list__item e2e-cancellation">Flexible
      <span class="bui-price-display__value">€ 145</span></li></td>
  </tr>
</tbody></table></div>
"""
SOLD_OUT_PAGE = "<html><body><div class='sold_out_property'>Sold out</div></body></html>"
UNKNOWN_PAGE = "<html><body><p>Please verify you are human</p></body></html>"


class FakeResponse:
    def __init__(self, status_code: int, text: str = "", payload: Any = None) -> None:
        self.status_code = status_code
        self.text = text
        self._payload = payload

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    """
    Replays a script of responses or exceptions, one per request.
    """

    def __init__(self, script: list[Any]) -> None:
        self.script = list(script)
        self.calls: list[dict[str, Any]] = []
        self.cookies: dict[str, str] = {}

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        pass


SETTINGS = ScrapeSettings(sources_path="unused.json", active_source="booking_com")
BOOKING = ScanSourceConfig(
    name="booking_com",
    scraper_type="booking_com",
    base_url="https://www.booking.com/hotel/de",
)
OFFER_API = ScanSourceConfig(
    name="hotel_offer_api",
    scraper_type="offer_api",
    base_url="https://api.example.test/offers",
)


def _build(scraper_class: type, config: ScanSourceConfig, script: list[Any]):
    session = FakeSession(script)
    event_log = InMemoryScrapeEventLog()
    sleeps: list[float] = []
    scraper = scraper_class(
        config=config,
        settings=SETTINGS,
        event_log=event_log,
        session_manager=SessionManager(session_factory=lambda: session),
        pacer=RequestPacer(min_delay_ms=0, max_delay_ms=0, jitter_percent=0, sleep=sleeps.append),
        sleep=sleeps.append,
        rng=random.Random(1),
    )
    return scraper, session, event_log, sleeps


def _request(**overrides: Any) -> ScrapeRequest:
    values: dict[str, Any] = {
        "hotel_identifier": "grand-berlin",
        "check_in": date(2026, 5, 1),
        "check_out": date(2026, 5, 8),
        "adults": 2,
        "scan_id": uuid.uuid4(),
        "hotel_id": 7,
        "hotel_name": "Grand Berlin",
    }
    values.update(overrides)
    return ScrapeRequest(**values)


class TestFetchRetries:
    def test_forbidden_emits_one_block_event_and_no_retry(self) -> None:
        scraper, session, event_log, sleeps = _build(BookingComScraper, BOOKING, [FakeResponse(403)])

        result = scraper.scrape(_request())

        events = event_log.all()
        assert len(session.calls) == 1
        assert len(events) == 1
        assert events[0].scrape_status == ScrapeClassification.BLOCK
        assert events[0].http_status == 403
        assert events[0].retry_count == 0
        assert sleeps == []
        assert result.status == ScrapeStatus.ERROR
        assert result.classification == ScrapeClassification.BLOCK

    def test_server_error_backs_off_then_gives_up(self) -> None:
        scraper, session, event_log, sleeps = _build(
            BookingComScraper,
            BOOKING,
            [FakeResponse(500) for _ in range(4)],
        )

        result = scraper.scrape(_request())

        events = event_log.all()
        assert sleeps == [2.0, 4.0, 8.0]
        assert len(session.calls) == 4
        assert [event.retry_count for event in events] == [0, 1, 2, 3]
        assert {event.scrape_status for event in events} == {ScrapeClassification.ERROR}
        assert result.status == ScrapeStatus.ERROR

    def test_server_error_then_success(self) -> None:
        scraper, _, event_log, sleeps = _build(
            BookingComScraper,
            BOOKING,
            [FakeResponse(502), FakeResponse(200, GREEN_PAGE)],
        )

        result = scraper.scrape(_request())

        assert sleeps == [2.0]
        assert result.status == ScrapeStatus.GREEN
        last = event_log.all()[-1]
        assert last.scrape_status == ScrapeClassification.SUCCESS
        assert last.retry_count == 1

    def test_rate_limit_delays_grow(self) -> None:
        scraper, _, event_log, sleeps = _build(
            BookingComScraper,
            BOOKING,
            [FakeResponse(429) for _ in range(4)],
        )

        result = scraper.scrape(_request())

        assert len(sleeps) == 3
        assert sleeps == sorted(sleeps)
        assert len(set(sleeps)) == 3
        assert result.classification == ScrapeClassification.BLOCK
        assert len(event_log.all()) == 4

    def test_timeouts_retry_twice(self) -> None:
        scraper, _, event_log, sleeps = _build(
            BookingComScraper,
            BOOKING,
            [requests.Timeout("read timed out") for _ in range(3)],
        )

        result = scraper.scrape(_request())

        assert sleeps == [5.0, 10.0]
        assert result.classification == ScrapeClassification.TIMEOUT
        assert all(event.http_status is None for event in event_log.all())

    def test_connection_error_is_not_retried(self) -> None:
        scraper, session, _, sleeps = _build(
            BookingComScraper,
            BOOKING,
            [requests.ConnectionError("refused")],
        )

        result = scraper.scrape(_request())

        assert len(session.calls) == 1
        assert sleeps == []
        assert result.status == ScrapeStatus.ERROR


class TestClassification:
    def test_priced_room_is_green(self) -> None:
        scraper, session, event_log, _ = _build(BookingComScraper, BOOKING, [FakeResponse(200, GREEN_PAGE)])

        result = scraper.scrape(_request())

        assert result.status == ScrapeStatus.GREEN
        assert result.price == Decimal("145.00")
        assert result.currency == "EUR"
        assert result.payload["rooms"][0]["name"] == "Double Room"
        assert event_log.all()[0].scrape_status == ScrapeClassification.SUCCESS
        assert "checkin=2026-05-01" in session.calls[0]["url"]
        assert "checkout=2026-05-08" in session.calls[0]["url"]

    def test_sold_out_is_red_success(self) -> None:
        scraper, _, event_log, _ = _build(BookingComScraper, BOOKING, [FakeResponse(200, SOLD_OUT_PAGE)])

        result = scraper.scrape(_request())

        assert result.status == ScrapeStatus.RED
        assert result.classification == ScrapeClassification.SUCCESS
        assert event_log.all()[0].reason == "Sold out"

    def test_unknown_page_needs_manual_review(self) -> None:
        scraper, _, event_log, _ = _build(BookingComScraper, BOOKING, [FakeResponse(200, UNKNOWN_PAGE)])

        result = scraper.scrape(_request())

        assert result.status == ScrapeStatus.RED
        assert result.classification == ScrapeClassification.MANUAL_REVIEW
        assert event_log.all()[0].scrape_status == ScrapeClassification.MANUAL_REVIEW

    def test_user_agent_truncated_in_events(self) -> None:
        scraper, _, event_log, _ = _build(BookingComScraper, BOOKING, [FakeResponse(200, GREEN_PAGE)])
        scraper.scrape(_request())
        assert len(event_log.all()[0].user_agent or "") <= 50


class TestBookingUrls:
    @pytest.fixture()
    def scraper(self) -> BookingComScraper:
        return _build(BookingComScraper, BOOKING, [])[0]

    def test_listing_url_used_as_is(self, scraper: BookingComScraper) -> None:
        hotel = HotelRecord(id=1, name="A", code="a", booking_url="https://www.booking.com/hotel/de/a.de.html?aid=1")
        url = scraper.build_url(_request(hotel_identifier=scraper.hotel_identifier(hotel)))
        assert url.startswith("https://www.booking.com/hotel/de/a.de.html?")
        assert "aid=1" in url
        assert "no_rooms=1" in url

    def test_code_falls_back_to_base_url(self, scraper: BookingComScraper) -> None:
        hotel = HotelRecord(id=1, name="B", code="hotel-b")
        url = scraper.build_url(_request(hotel_identifier=scraper.hotel_identifier(hotel)))
        assert url.startswith("https://www.booking.com/hotel/de/hotel-b.html?")
        assert "group_adults=2" in url


class TestOfferApi:
    def test_posts_stay_and_any_room_is_available(self) -> None:
        payload = {"rooms": [{"name": "Standard"}]}
        scraper, session, _, _ = _build(OfferApiScraper, OFFER_API, [FakeResponse(200, payload=payload)])

        result = scraper.scrape(_request())

        call = session.calls[0]
        assert call["method"] == "POST"
        assert call["json"] == {
            "hotelId": "grand-berlin",
            "departureDate": "2026-05-01",
            "returnDate": "2026-05-08",
            "currency": "EUR",
            "roomConfigurations": [{"travellers": {"id": 1, "adultCount": 2, "childrenAges": []}}],
            "locale": "de_DE",
        }
        assert result.status == ScrapeStatus.GREEN
        assert result.price is None

    def test_empty_rooms_is_red(self) -> None:
        scraper, _, _, _ = _build(OfferApiScraper, OFFER_API, [FakeResponse(200, payload={"rooms": []})])
        assert scraper.scrape(_request()).status == ScrapeStatus.RED

    def test_non_json_needs_manual_review(self) -> None:
        scraper, _, _, _ = _build(OfferApiScraper, OFFER_API, [FakeResponse(200, "<html>")])

        result = scraper.scrape(_request())

        assert result.status == ScrapeStatus.RED
        assert result.classification == ScrapeClassification.MANUAL_REVIEW

    def test_string_rooms_are_available(self) -> None:
        scraper, _, _, _ = _build(OfferApiScraper, OFFER_API, [FakeResponse(200, payload={"rooms": ["DZ"]})])
        assert scraper.scrape(_request()).status == ScrapeStatus.GREEN

    def test_source_template_overrides_body(self) -> None:
        config = ScanSourceConfig(
            name="partner_offers",
            scraper_type="offer_api",
            base_url="https://partner.example.test/search",
            currency="CHF",
            locale="fr_CH",
            request_template={
                "property": "{hotel}",
                "stay": "{check_in}/{check_out}",
                "guests": {"adults": "{adults}", "rooms": "{rooms}"},
                "market": "{locale}-{currency}",
                "channel": "{unknown}",
                "flags": [True, 3],
            },
        )
        scraper, session, _, _ = _build(OfferApiScraper, config, [FakeResponse(200, payload={"rooms": []})])

        scraper.scrape(_request(adults=3))

        assert session.calls[0]["json"] == {
            "property": "grand-berlin",
            "stay": "2026-05-01/2026-05-08",
            "guests": {"adults": 3, "rooms": 1},
            "market": "fr_CH-CHF",
            "channel": "{unknown}",
            "flags": [True, 3],
        }
