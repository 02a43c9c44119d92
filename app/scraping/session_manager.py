"""
Cookie-session lifecycle for one scrape client.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable

import requests

from app.logging_utils import log_event

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Keeps one `requests.Session` (and so one cookie jar) alive for a bounded
    number of requests or a bounded age, then replaces it with a fresh one.

    Owned by exactly one scrape client; never persisted.
    """

    def __init__(
        self,
        *,
        max_requests_per_session: int = 15,
        max_session_age_seconds: float = 1800.0,
        session_factory: Callable[[], requests.Session] = requests.Session,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests_per_session < 1:
            raise ValueError("max_requests_per_session must be >= 1.")
        if max_session_age_seconds <= 0:
            raise ValueError("max_session_age_seconds must be > 0.")
        self._max_requests = max_requests_per_session
        self._max_age_seconds = max_session_age_seconds
        self._session_factory = session_factory
        self._clock = clock
        self._lock = threading.Lock()
        self._session = session_factory()
        self._session_id = uuid.uuid4().hex
        self._started_at = clock()
        self._request_count = 0

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def request_count(self) -> int:
        return self._request_count

    def acquire(self) -> requests.Session:
        """
        Return the live session for the next request, rotating first if the
        request budget or age threshold has been reached.
        """

        with self._lock:
            if self._should_rotate():
                self._rotate_locked(reason="budget")
            self._request_count += 1
            return self._session

    def rotate(self) -> None:
        with self._lock:
            self._rotate_locked(reason="forced")

    def cookie_count(self) -> int:
        return len(self._session.cookies)

    def stats(self) -> dict[str, float | int | str]:
        return {
            "session_id": self._session_id,
            "request_count": self._request_count,
            "session_age_seconds": round(self._clock() - self._started_at, 3),
            "cookie_count": self.cookie_count(),
        }

    def close(self) -> None:
        with self._lock:
            self._session.close()

    def _should_rotate(self) -> bool:
        if self._request_count >= self._max_requests:
            return True
        return (self._clock() - self._started_at) >= self._max_age_seconds

    def _rotate_locked(self, *, reason: str) -> None:
        previous_id = self._session_id
        self._session.close()
        self._session = self._session_factory()
        self._session_id = uuid.uuid4().hex
        self._started_at = self._clock()
        self._request_count = 0
        log_event(
            logger,
            logging.DEBUG,
            "scrape_session_rotated",
            previous_session_id=previous_id,
            session_id=self._session_id,
            reason=reason,
        )
