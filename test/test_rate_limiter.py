"""Tests for the per-domain rate limiter."""

from __future__ import annotations

import sys
import threading
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from LibSearch.utils.ratelimit import RateLimiter


class _FakeClock:
    def __init__(self) -> None:
        self.now = 100.0
        self.sleeps: list[float] = []
        self._lock = threading.Lock()

    def clock(self) -> float:
        with self._lock:
            return self.now

    def sleep(self, seconds: float) -> None:
        with self._lock:
            self.sleeps.append(seconds)


class TestRateLimiter(unittest.TestCase):
    def setUp(self) -> None:
        self.fake = _FakeClock()
        self.limiter = RateLimiter(1.0, sleep=self.fake.sleep, clock=self.fake.clock)

    def test_first_request_is_immediate(self) -> None:
        self.assertEqual(self.limiter.acquire("api.example.org"), 0.0)
        self.assertEqual(self.fake.sleeps, [])

    def test_back_to_back_requests_are_spaced(self) -> None:
        self.limiter.acquire("api.example.org")
        self.limiter.acquire("api.example.org")
        self.limiter.acquire("api.example.org")
        self.assertEqual(self.fake.sleeps, [1.0, 2.0])

    def test_elapsed_time_counts_toward_interval(self) -> None:
        self.limiter.acquire("api.example.org")
        self.fake.now += 0.75
        waited = self.limiter.acquire("api.example.org")
        self.assertAlmostEqual(waited, 0.25)

    def test_domains_are_independent_and_case_insensitive(self) -> None:
        self.limiter.acquire("API.Example.org")
        self.assertEqual(self.limiter.acquire("other.example.org"), 0.0)
        self.assertEqual(self.limiter.acquire("api.example.org"), 1.0)

    def test_per_domain_interval(self) -> None:
        self.limiter.set_interval("export.arxiv.org", 3.0)
        self.assertEqual(self.limiter.interval_for("EXPORT.arxiv.org"), 3.0)
        self.limiter.acquire("export.arxiv.org")
        self.assertEqual(self.limiter.acquire("export.arxiv.org"), 3.0)

    def test_constructor_overrides(self) -> None:
        limiter = RateLimiter(0.5, {"eutils.ncbi.nlm.nih.gov": 0.1}, sleep=self.fake.sleep, clock=self.fake.clock)
        self.assertEqual(limiter.interval_for("eutils.ncbi.nlm.nih.gov"), 0.1)
        self.assertEqual(limiter.interval_for("unknown.org"), 0.5)

    def test_reset_forgets_history(self) -> None:
        self.limiter.acquire("api.example.org")
        self.limiter.reset("api.example.org")
        self.assertEqual(self.limiter.acquire("api.example.org"), 0.0)
        self.limiter.acquire("b.example.org")
        self.limiter.reset_all()
        self.assertEqual(self.limiter.acquire("b.example.org"), 0.0)

    def test_negative_interval_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.limiter.set_interval("x.org", -1)
        with self.assertRaises(ValueError):
            RateLimiter(-0.5)

    def test_concurrent_callers_get_distinct_slots(self) -> None:
        waits: list[float] = []
        guard = threading.Lock()

        def worker() -> None:
            waited = self.limiter.acquire("api.example.org")
            with guard:
                waits.append(waited)

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(waits), [0.0, 1.0, 2.0, 3.0, 4.0])


if __name__ == "__main__":
    unittest.main()
