"""
In-memory scrape event log.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import replace
from datetime import datetime

from app.scraping.identity import truncate_user_agent
from app.scraping.storage.base import ScrapeEventLog
from app.scraping.types import ScrapeEvent


class InMemoryScrapeEventLog(ScrapeEventLog):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[ScrapeEvent] = []

    def append(self, event: ScrapeEvent) -> None:
        stored = replace(event, user_agent=truncate_user_agent(event.user_agent))
        with self._lock:
            self._events.append(stored)

    def all(self) -> list[ScrapeEvent]:
        with self._lock:
            return list(self._events)

    def events_for_scan(self, scan_id: uuid.UUID) -> list[ScrapeEvent]:
        rows = [event for event in self.all() if event.scan_id == scan_id]
        return sorted(rows, key=lambda event: event.timestamp)

    def events_since(self, since: datetime) -> list[ScrapeEvent]:
        rows = [event for event in self.all() if event.timestamp >= since]
        return sorted(rows, key=lambda event: event.timestamp)

    def recent(
        self,
        *,
        limit: int = 100,
        scan_id: uuid.UUID | None = None,
        scrape_status: str | None = None,
    ) -> list[ScrapeEvent]:
        rows = [
            event
            for event in self.all()
            if (scan_id is None or event.scan_id == scan_id)
            and (not scrape_status or event.scrape_status == scrape_status)
        ]
        # Stable sort keeps insertion order for equal timestamps; reverse it.
        rows = list(reversed(rows))
        rows.sort(key=lambda event: event.timestamp, reverse=True)
        return rows[: max(1, limit)]
