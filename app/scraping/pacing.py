"""
Randomized request pacing for outbound scrape traffic.
"""

from __future__ import annotations

import random
import threading
import time
from collections.abc import Callable


def random_delay_ms(
    min_ms: int = 3000,
    max_ms: int = 8000,
    *,
    rng: random.Random | None = None,
) -> int:
    """
    Return a uniformly random delay in `[min_ms, max_ms]`.
    """

    low, high = sorted((max(0, min_ms), max(0, max_ms)))
    return (rng or random).randint(low, high)


def apply_jitter(
    delay_ms: float,
    jitter_percent: float = 20.0,
    *,
    rng: random.Random | None = None,
) -> int:
    """
    Spread `delay_ms` by +/- `jitter_percent` and never go below zero.
    """

    jitter_range = delay_ms * (max(0.0, jitter_percent) / 100.0)
    jitter = (rng or random).uniform(-jitter_range, jitter_range)
    return max(0, int(delay_ms + jitter))


class RequestPacer:
    """
    Sleeps a human-looking interval before each request.

    The random delay is floored by the source's minimum interval between
    requests, measured from the previous request of this pacer.
    """

    def __init__(
        self,
        *,
        min_delay_ms: int = 3000,
        max_delay_ms: int = 8000,
        jitter_percent: float = 20.0,
        min_interval_ms: int = 0,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._min_delay_ms = max(0, min_delay_ms)
        self._max_delay_ms = max(self._min_delay_ms, max_delay_ms)
        self._jitter_percent = max(0.0, jitter_percent)
        self._min_interval_ms = max(0, min_interval_ms)
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._clock = clock
        self._last_request_at: float | None = None
        self._lock = threading.Lock()

    def next_delay_ms(self) -> int:
        base = random_delay_ms(self._min_delay_ms, self._max_delay_ms, rng=self._rng)
        return apply_jitter(base, self._jitter_percent, rng=self._rng)

    def wait(self) -> int:
        """
        Block until the next request may go out. Returns the applied delay in ms.
        """

        with self._lock:
            delay_ms = self.next_delay_ms()
            if self._last_request_at is not None and self._min_interval_ms:
                elapsed_ms = (self._clock() - self._last_request_at) * 1000.0
                delay_ms = max(delay_ms, int(self._min_interval_ms - elapsed_ms))
            if delay_ms > 0:
                self._sleep(delay_ms / 1000.0)
            self._last_request_at = self._clock()
            return delay_ms
