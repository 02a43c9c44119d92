"""
Scrape-level exceptions. These never escape `ScraperBase.scrape`.
"""

from __future__ import annotations


class ScrapeFetchError(Exception):
    """
    Raised when a fetch finally fails after the retry policy gave up.
    """

    def __init__(
        self,
        message: str,
        *,
        classification: str,
        reason: str,
        http_status: int | None = None,
        timed_out: bool = False,
        retry_count: int = 0,
    ) -> None:
        super().__init__(message)
        self.classification = classification
        self.reason = reason
        self.http_status = http_status
        self.timed_out = timed_out
        self.retry_count = retry_count


class ExtractionError(Exception):
    """Raised when a response body cannot be parsed at all."""
