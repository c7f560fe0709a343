"""Per-domain minimum-interval rate limiter shared by all connectors."""

from __future__ import annotations

import threading
import time
from typing import Callable, Mapping

DEFAULT_INTERVAL = 1.0


class RateLimiter:
    """Space out requests to the same domain by a minimum interval.

    Each caller reserves the next free slot for its domain under a lock and
    then sleeps outside the lock until that slot. Domains never seen before
    are admitted immediately.

    Args:
        default_interval: Seconds between requests for domains without an override.
        intervals: Per-domain interval overrides in seconds.
        sleep: Sleep function, replaceable in tests.
        clock: Monotonic clock, replaceable in tests.
    """

    def __init__(
        self,
        default_interval: float = DEFAULT_INTERVAL,
        intervals: Mapping[str, float] | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if default_interval < 0:
            raise ValueError("default_interval must not be negative")
        self._default_interval = float(default_interval)
        self._intervals: dict[str, float] = {}
        self._next_slot: dict[str, float] = {}
        self._lock = threading.Lock()
        self._sleep = sleep
        self._clock = clock
        for domain, interval in (intervals or {}).items():
            self.set_interval(domain, interval)

    def set_interval(self, domain: str, interval: float) -> None:
        """Override the minimum interval for one domain."""
        if interval < 0:
            raise ValueError(f"Rate limit interval for {domain} must not be negative")
        with self._lock:
            self._intervals[domain.lower()] = float(interval)

    def interval_for(self, domain: str) -> float:
        with self._lock:
            return self._intervals.get(domain.lower(), self._default_interval)

    def acquire(self, domain: str) -> float:
        """Block until a request to domain is permitted.

        Args:
            domain: Rate-limit key, normally the remote host.

        Returns:
            Seconds spent waiting.
        """
        key = domain.lower()
        with self._lock:
            now = self._clock()
            interval = self._intervals.get(key, self._default_interval)
            slot = max(now, self._next_slot.get(key, now))
            self._next_slot[key] = slot + interval
        wait = slot - now
        if wait > 0:
            self._sleep(wait)
        return max(wait, 0.0)

    def reset(self, domain: str) -> None:
        """Forget request history for one domain."""
        with self._lock:
            self._next_slot.pop(domain.lower(), None)

    def reset_all(self) -> None:
        with self._lock:
            self._next_slot.clear()
