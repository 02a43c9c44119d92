"""
Base scrape client for availability sources.
"""

from __future__ import annotations

import logging
import random
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from app.domain.scanning import HotelRecord
from app.logging_utils import log_event
from app.scraping.config.models import ScanSourceConfig, ScrapeSettings
from app.scraping.errors import ExtractionError, ScrapeFetchError
from app.scraping.identity import DEFAULT_USER_AGENT, IdentityProvider, truncate_user_agent
from app.scraping.pacing import RequestPacer
from app.scraping.retry_policy import RetryPolicy
from app.scraping.session_manager import SessionManager
from app.scraping.storage.base import ScrapeEventLog
from app.scraping.types import (
    Extraction,
    ScrapeClassification,
    ScrapeEvent,
    ScrapeRequest,
    ScrapeResult,
    ScrapeStatus,
)

logger = logging.getLogger(__name__)

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


@dataclass(frozen=True)
class _Attempt:
    response: requests.Response
    retry_count: int
    delay_ms: int
    user_agent: str
    session_id: str
    response_time_ms: int


class ScraperBase(ABC):
    """
    One scrape client per worker: it owns its identity, its cookie session
    and its pacer, so instances must not be shared across threads.
    """

    source_label = "generic"
    http_method = "GET"
    accept = HTML_ACCEPT

    def __init__(
        self,
        *,
        config: ScanSourceConfig,
        settings: ScrapeSettings,
        event_log: ScrapeEventLog | None = None,
        identity: IdentityProvider | None = None,
        session_manager: SessionManager | None = None,
        pacer: RequestPacer | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self.settings = settings
        self.event_log = event_log
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._clock = clock
        self.identity = identity or IdentityProvider(
            rotate_user_agent=config.rotate_user_agent,
            fixed_user_agent=config.user_agent or DEFAULT_USER_AGENT,
            extra_headers=config.headers,
            rng=self._rng,
        )
        self.session_manager = session_manager or SessionManager(
            max_requests_per_session=settings.max_requests_per_session,
            max_session_age_seconds=settings.max_session_age_seconds,
        )
        self.pacer = pacer or RequestPacer(
            min_delay_ms=settings.min_delay_ms,
            max_delay_ms=settings.max_delay_ms,
            jitter_percent=settings.jitter_percent,
            min_interval_ms=config.rate_limit_ms or 0,
            rng=self._rng,
            sleep=sleep,
        )
        self.retry_policy = retry_policy or RetryPolicy(
            max_rate_limit_retries=settings.max_rate_limit_retries,
            rate_limit_base_seconds=settings.rate_limit_base_seconds,
            rate_limit_max_seconds=settings.rate_limit_max_seconds,
            max_server_error_retries=settings.max_server_error_retries,
            server_error_base_seconds=settings.server_error_base_seconds,
            max_timeout_retries=settings.max_timeout_retries,
            timeout_base_seconds=settings.timeout_base_seconds,
            jitter_percent=settings.retry_jitter_percent,
        )

    def scrape(self, request: ScrapeRequest) -> ScrapeResult:
        """
        Check one hotel x date cell. Never raises for fetch failures.
        """

        url = self.build_url(request)
        try:
            attempt = self._fetch(request=request, url=url)
        except ScrapeFetchError as exc:
            return ScrapeResult(
                status=ScrapeStatus.ERROR,
                payload={
                    "source": self.source_label,
                    "error": str(exc),
                    "reason": exc.reason,
                    "http_status": exc.http_status,
                    "retry_count": exc.retry_count,
                },
                classification=exc.classification,
                error_message=str(exc),
            )

        try:
            extraction = self.extract(attempt.response)
        except ExtractionError as exc:
            self._emit(
                request=request,
                url=url,
                attempt=attempt,
                classification=ScrapeClassification.MANUAL_REVIEW,
                reason="Unparseable response",
                error_message=str(exc),
            )
            return ScrapeResult(
                status=ScrapeStatus.RED,
                payload={"source": self.source_label, "error": str(exc)},
                classification=ScrapeClassification.MANUAL_REVIEW,
                error_message=str(exc),
            )

        return self._classify(request=request, url=url, attempt=attempt, extraction=extraction)

    def hotel_identifier(self, hotel: HotelRecord) -> str:
        return hotel.code

    def build_url(self, request: ScrapeRequest) -> str:
        """
        Source base URL with normalized stay parameters.
        """

        base_url = self.config.base_url
        if "{hotel}" in base_url:
            base_url = base_url.replace("{hotel}", request.hotel_identifier)
            params: dict[str, str] = {}
        else:
            params = {"hotel": request.hotel_identifier}
        params.update(self.stay_params(request))
        return merge_query(base_url, params)

    def stay_params(self, request: ScrapeRequest) -> dict[str, str]:
        return {
            "checkin": request.check_in.isoformat(),
            "checkout": request.check_out.isoformat(),
            "group_adults": str(request.adults),
            "group_children": str(request.children),
        }

    def request_body(self, request: ScrapeRequest) -> dict[str, Any] | None:
        return None

    def is_available(self, extraction: Extraction) -> bool:
        return extraction.has_priced_rate

    @abstractmethod
    def extract(self, response: requests.Response) -> Extraction:
        """
        Parse one successful response. Raise ExtractionError if unparseable.
        """

    def close(self) -> None:
        self.session_manager.close()

    def _classify(
        self,
        *,
        request: ScrapeRequest,
        url: str,
        attempt: _Attempt,
        extraction: Extraction,
    ) -> ScrapeResult:
        payload = extraction.to_payload(source=self.source_label)
        if self.is_available(extraction):
            lowest = extraction.lowest_rate()
            self._emit(
                request=request,
                url=url,
                attempt=attempt,
                classification=ScrapeClassification.SUCCESS,
            )
            return ScrapeResult(
                status=ScrapeStatus.GREEN,
                payload=payload,
                classification=ScrapeClassification.SUCCESS,
                price=lowest.price if lowest else None,
                currency=lowest.currency if lowest else None,
            )

        if extraction.sold_out or (extraction.recognized and not extraction.rooms):
            self._emit(
                request=request,
                url=url,
                attempt=attempt,
                classification=ScrapeClassification.SUCCESS,
                reason="Sold out",
            )
            return ScrapeResult(
                status=ScrapeStatus.RED,
                payload=payload,
                classification=ScrapeClassification.SUCCESS,
            )

        self._emit(
            request=request,
            url=url,
            attempt=attempt,
            classification=ScrapeClassification.MANUAL_REVIEW,
            reason="No room or price found",
        )
        return ScrapeResult(
            status=ScrapeStatus.RED,
            payload=payload,
            classification=ScrapeClassification.MANUAL_REVIEW,
            error_message="No room or price found",
        )

    def _fetch(self, *, request: ScrapeRequest, url: str) -> _Attempt:
        body = self.request_body(request)
        delay_ms = self.pacer.wait()
        retry_count = 0

        while True:
            session = self.session_manager.acquire()
            session_id = self.session_manager.session_id
            user_agent = self.identity.user_agent()
            headers = self.identity.headers(user_agent=user_agent, accept=self.accept)

            http_status: int | None = None
            timed_out = False
            error_message: str | None = None
            started = self._clock()
            try:
                response = session.request(
                    self.http_method,
                    url,
                    headers=headers,
                    json=body,
                    timeout=self.settings.timeout_seconds,
                    allow_redirects=True,
                )
                http_status = response.status_code
                elapsed_ms = int((self._clock() - started) * 1000)
                if 200 <= http_status < 300:
                    return _Attempt(
                        response=response,
                        retry_count=retry_count,
                        delay_ms=delay_ms,
                        user_agent=user_agent,
                        session_id=session_id,
                        response_time_ms=elapsed_ms,
                    )
                error_message = f"HTTP {http_status}"
            except requests.Timeout as exc:
                timed_out = True
                error_message = str(exc) or "Request timed out"
            except requests.RequestException as exc:
                error_message = str(exc) or exc.__class__.__name__
            elapsed_ms = int((self._clock() - started) * 1000)

            decision = self.retry_policy.decide(
                http_status=http_status,
                retry_count=retry_count,
                timed_out=timed_out,
                rng=self._rng,
            )
            self._record(
                ScrapeEvent(
                    timestamp=datetime.now(timezone.utc),
                    scrape_status=decision.classification,
                    url=url,
                    retry_count=retry_count,
                    scan_id=request.scan_id,
                    hotel_id=request.hotel_id,
                    hotel_name=request.hotel_name,
                    check_in_date=request.check_in,
                    http_status=http_status,
                    delay_ms=delay_ms,
                    error_message=error_message,
                    user_agent=truncate_user_agent(user_agent),
                    reason=decision.reason,
                    response_time_ms=elapsed_ms,
                    session_id=session_id,
                )
            )
            if not decision.retry:
                raise ScrapeFetchError(
                    error_message or decision.reason,
                    classification=decision.classification,
                    reason=decision.reason,
                    http_status=http_status,
                    timed_out=timed_out,
                    retry_count=retry_count,
                )

            log_event(
                logger,
                logging.INFO,
                "scrape_retry_scheduled",
                source=self.config.name,
                url=url,
                http_status=http_status,
                timed_out=timed_out,
                retry_count=retry_count + 1,
                delay_seconds=decision.delay_seconds,
            )
            self._sleep(decision.delay_seconds)
            delay_ms = int(decision.delay_seconds * 1000)
            retry_count += 1

    def _emit(
        self,
        *,
        request: ScrapeRequest,
        url: str,
        attempt: _Attempt,
        classification: str,
        reason: str | None = None,
        error_message: str | None = None,
    ) -> None:
        self._record(
            ScrapeEvent(
                timestamp=datetime.now(timezone.utc),
                scrape_status=classification,
                url=url,
                retry_count=attempt.retry_count,
                scan_id=request.scan_id,
                hotel_id=request.hotel_id,
                hotel_name=request.hotel_name,
                check_in_date=request.check_in,
                http_status=attempt.response.status_code,
                delay_ms=attempt.delay_ms,
                error_message=error_message,
                user_agent=truncate_user_agent(attempt.user_agent),
                reason=reason,
                response_time_ms=attempt.response_time_ms,
                session_id=attempt.session_id,
            )
        )

    def _record(self, event: ScrapeEvent) -> None:
        log_event(
            logger,
            logging.INFO if event.scrape_status == ScrapeClassification.SUCCESS else logging.WARNING,
            "scrape_attempt",
            source=self.config.name,
            scan_id=event.scan_id,
            hotel_id=event.hotel_id,
            check_in=event.check_in_date,
            status=event.scrape_status,
            http_status=event.http_status,
            retry_count=event.retry_count,
            delay_ms=event.delay_ms,
            response_time_ms=event.response_time_ms,
            reason=event.reason,
        )
        if self.event_log is None:
            return
        try:
            self.event_log.append(event)
        except Exception as exc:
            log_event(
                logger,
                logging.ERROR,
                "scrape_event_write_failed",
                source=self.config.name,
                scan_id=event.scan_id,
                hotel_id=event.hotel_id,
                error=str(exc),
            )


def merge_query(url: str, params: dict[str, str]) -> str:
    """
    Set `params` on `url`, keeping any query parameters it already has.
    """

    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query, keep_blank_values=True))
    query.update(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))
