"""
Failure-mode specific retry and backoff decisions.

| Failure        | Retries | Delay                                   |
|----------------|---------|-----------------------------------------|
| HTTP 403       | none    | classified as block immediately         |
| HTTP 429       | 3       | 5 to 10 minutes, growing per attempt    |
| HTTP 5xx       | 3       | 2s, 4s, 8s                              |
| Timeout        | 2       | 5s, 10s                                 |
| anything else  | none    |                                         |
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from app.scraping.pacing import apply_jitter
from app.scraping.types import ScrapeClassification


@dataclass(frozen=True)
class RetryDecision:
    retry: bool
    delay_seconds: float
    classification: str
    reason: str


@dataclass(frozen=True)
class RetryPolicy:
    """
    Pure decision function over (http status | timeout, retry count).

    `retry_count` is zero-based: the number of retries already performed
    before the failure being judged.
    """

    max_rate_limit_retries: int = 3
    rate_limit_base_seconds: float = 300.0
    rate_limit_max_seconds: float = 600.0
    max_server_error_retries: int = 3
    server_error_base_seconds: float = 2.0
    max_timeout_retries: int = 2
    timeout_base_seconds: float = 5.0
    jitter_percent: float = 0.0

    def decide(
        self,
        *,
        http_status: int | None,
        retry_count: int,
        timed_out: bool = False,
        rng: random.Random | None = None,
    ) -> RetryDecision:
        if timed_out:
            if retry_count < self.max_timeout_retries:
                return RetryDecision(
                    retry=True,
                    delay_seconds=self._jittered(
                        self.timeout_base_seconds * (2**retry_count),
                        rng,
                    ),
                    classification=ScrapeClassification.TIMEOUT,
                    reason="Request timeout",
                )
            return RetryDecision(
                retry=False,
                delay_seconds=0.0,
                classification=ScrapeClassification.TIMEOUT,
                reason="Request timeout, retries exhausted",
            )

        if http_status == 403:
            return RetryDecision(
                retry=False,
                delay_seconds=0.0,
                classification=ScrapeClassification.BLOCK,
                reason="Bot detection - HTTP 403 Forbidden",
            )

        if http_status == 429:
            if retry_count < self.max_rate_limit_retries:
                return RetryDecision(
                    retry=True,
                    delay_seconds=self._jittered(self.rate_limit_delay(retry_count), rng),
                    classification=ScrapeClassification.BLOCK,
                    reason="Rate limited (HTTP 429)",
                )
            return RetryDecision(
                retry=False,
                delay_seconds=0.0,
                classification=ScrapeClassification.BLOCK,
                reason="Rate limited (HTTP 429), retries exhausted",
            )

        if http_status is not None and 500 <= http_status < 600:
            if retry_count < self.max_server_error_retries:
                return RetryDecision(
                    retry=True,
                    delay_seconds=self._jittered(
                        self.server_error_base_seconds * (2**retry_count),
                        rng,
                    ),
                    classification=ScrapeClassification.ERROR,
                    reason=f"Server error (HTTP {http_status})",
                )
            return RetryDecision(
                retry=False,
                delay_seconds=0.0,
                classification=ScrapeClassification.ERROR,
                reason=f"Server error (HTTP {http_status}), retries exhausted",
            )

        reason = f"HTTP {http_status}" if http_status is not None else "Request failed"
        return RetryDecision(
            retry=False,
            delay_seconds=0.0,
            classification=ScrapeClassification.ERROR,
            reason=reason,
        )

    def rate_limit_delay(self, retry_count: int) -> float:
        steps = max(1, self.max_rate_limit_retries)
        increment = (self.rate_limit_max_seconds - self.rate_limit_base_seconds) / steps
        return self.rate_limit_base_seconds + increment * retry_count

    def delay_schedule(self, *, http_status: int | None, timed_out: bool = False) -> list[float]:
        """
        Delays that would be slept for a failure that keeps repeating.
        """

        delays: list[float] = []
        retry_count = 0
        while True:
            decision = self.decide(
                http_status=http_status,
                retry_count=retry_count,
                timed_out=timed_out,
            )
            if not decision.retry:
                return delays
            delays.append(decision.delay_seconds)
            retry_count += 1

    def _jittered(self, delay_seconds: float, rng: random.Random | None) -> float:
        if self.jitter_percent <= 0:
            return delay_seconds
        return apply_jitter(delay_seconds * 1000.0, self.jitter_percent, rng=rng) / 1000.0
