from __future__ import annotations

import random
import unittest

from app.scraping.retry_policy import RetryPolicy
from app.scraping.types import ScrapeClassification


class TestRetryPolicy(unittest.TestCase):
    def setUp(self) -> None:
        self.policy = RetryPolicy()

    def test_forbidden_is_never_retried(self) -> None:
        decision = self.policy.decide(http_status=403, retry_count=0)

        self.assertFalse(decision.retry)
        self.assertEqual(decision.classification, ScrapeClassification.BLOCK)
        self.assertEqual(self.policy.delay_schedule(http_status=403), [])

    def test_server_error_backs_off_exponentially(self) -> None:
        self.assertEqual(self.policy.delay_schedule(http_status=500), [2.0, 4.0, 8.0])
        self.assertEqual(self.policy.delay_schedule(http_status=503), [2.0, 4.0, 8.0])

    def test_server_error_classified_error_after_exhaustion(self) -> None:
        decision = self.policy.decide(http_status=502, retry_count=3)

        self.assertFalse(decision.retry)
        self.assertEqual(decision.classification, ScrapeClassification.ERROR)
        self.assertIn("retries exhausted", decision.reason)

    def test_rate_limit_retries_three_times_with_growing_delay(self) -> None:
        delays = self.policy.delay_schedule(http_status=429)

        self.assertEqual(len(delays), 3)
        self.assertTrue(all(later > earlier for earlier, later in zip(delays, delays[1:])))
        self.assertGreaterEqual(delays[0], 300.0)
        self.assertLessEqual(delays[-1], 600.0)

    def test_rate_limit_is_a_block(self) -> None:
        decision = self.policy.decide(http_status=429, retry_count=0)
        self.assertEqual(decision.classification, ScrapeClassification.BLOCK)

    def test_timeout_retries_twice(self) -> None:
        self.assertEqual(self.policy.delay_schedule(http_status=None, timed_out=True), [5.0, 10.0])
        decision = self.policy.decide(http_status=None, retry_count=2, timed_out=True)
        self.assertFalse(decision.retry)
        self.assertEqual(decision.classification, ScrapeClassification.TIMEOUT)

    def test_client_errors_and_connection_failures_are_not_retried(self) -> None:
        for status in (400, 404, None):
            decision = self.policy.decide(http_status=status, retry_count=0)
            self.assertFalse(decision.retry)
            self.assertEqual(decision.classification, ScrapeClassification.ERROR)

    def test_jitter_stays_within_band(self) -> None:
        policy = RetryPolicy(jitter_percent=10.0)
        rng = random.Random(7)
        for _ in range(50):
            decision = policy.decide(http_status=500, retry_count=1, rng=rng)
            self.assertGreaterEqual(decision.delay_seconds, 3.6 - 0.001)
            self.assertLessEqual(decision.delay_seconds, 4.4 + 0.001)


if __name__ == "__main__":
    unittest.main()
