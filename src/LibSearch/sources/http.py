"""Shared HTTP transport for source API clients.

Every request first waits on the shared ``RateLimiter`` for its domain. Only
HTTP 429 is retried (exponential backoff, ``Retry-After`` honored); any other
non-2xx status or transport failure surfaces as ``ConnectorError``.
"""

from __future__ import annotations

import random
import time
from typing import Any, Callable, Mapping, Optional

import requests

from LibSearch.core.errors import ConnectorError
from LibSearch.utils.log import log
from LibSearch.utils.ratelimit import RateLimiter

USER_AGENT = "LibSearch/1.0 (+https://github.com/libsearch/libsearch)"
DEFAULT_TIMEOUT = 30.0
PROBE_TIMEOUT = 5.0
MAX_ATTEMPTS = 4
TOO_MANY_REQUESTS_BASE_PAUSE = 2.0
TOO_MANY_REQUESTS_MAX_SLEEP = 60.0


class ApiClient:
    """Base HTTP client bound to one source domain.

    Args:
        source: Source tag value used in errors and logs.
        domain: Rate-limit key for this client.
        rate_limiter: Shared limiter; a private one is created when omitted.
        timeout: Request timeout in seconds.
        accept: Value of the Accept header.
        sleep: Sleep function used for 429 backoff, replaceable in tests.
    """

    def __init__(
        self,
        *,
        source: str,
        domain: str,
        rate_limiter: RateLimiter | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        accept: str = "application/json",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.source = source
        self.domain = domain
        self.rate_limiter = rate_limiter or RateLimiter()
        self.timeout = timeout
        self._sleep = sleep
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT, "Accept": accept})

    def close(self) -> None:
        """Close the underlying HTTP session and release pooled connections."""
        self._session.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def get(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> requests.Response:
        """Issue a rate-limited GET with 429 backoff.

        Args:
            url: Endpoint URL.
            params: Query parameters.
            headers: Extra request headers.

        Returns:
            Successful (2xx) response.

        Raises:
            ConnectorError: On transport failure, non-2xx status, or 429 after
                the last attempt.
        """
        for attempt in range(1, MAX_ATTEMPTS + 1):
            self.rate_limiter.acquire(self.domain)
            log.debug("%s request attempt %d/%d: url=%s", self.source, attempt, MAX_ATTEMPTS, url)
            try:
                response = self._session.get(
                    url,
                    params=dict(params or {}),
                    headers=dict(headers or {}),
                    timeout=self.timeout,
                )
            except requests.RequestException as error:
                raise ConnectorError(
                    f"{self.source} request failed: {error}",
                    source=self.source,
                ) from error

            if response.status_code == 429:
                if attempt == MAX_ATTEMPTS:
                    break
                delay = self._backoff_delay(attempt, response)
                log.debug("%s rate limited (HTTP 429), retrying in %.2fs", self.source, delay)
                self._sleep(delay)
                continue

            if not 200 <= response.status_code < 300:
                raise ConnectorError(
                    f"{self.source} returned HTTP {response.status_code}",
                    source=self.source,
                    status_code=response.status_code,
                )
            log.debug("%s response ok: status=%s bytes=%s", self.source, response.status_code, len(response.content))
            return response

        raise ConnectorError(
            f"{self.source} still rate limited after {MAX_ATTEMPTS} attempts",
            source=self.source,
            status_code=429,
        )

    def probe(self, url: str, *, headers: Mapping[str, str] | None = None) -> requests.Response:
        """Send a HEAD request for availability checks.

        Raises:
            requests.RequestException: Transport failures are left to the caller.
        """
        return self._session.head(url, headers=dict(headers or {}), timeout=PROBE_TIMEOUT, allow_redirects=True)

    @staticmethod
    def _backoff_delay(attempt: int, response: requests.Response) -> float:
        """Compute the pause before retrying a 429 response."""
        retry_after = _parse_retry_after(response.headers.get("Retry-After"))
        if retry_after is not None:
            return min(retry_after, TOO_MANY_REQUESTS_MAX_SLEEP)
        delay = TOO_MANY_REQUESTS_BASE_PAUSE * (2 ** (attempt - 1)) + random.uniform(0, 0.5)
        return min(delay, TOO_MANY_REQUESTS_MAX_SLEEP)


def _parse_retry_after(value: Optional[str]) -> float | None:
    """Parse a numeric Retry-After header; HTTP-date values are ignored."""
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None
