"""Semantic Scholar Graph API client."""

from __future__ import annotations

from typing import Any, Mapping

from LibSearch.core.errors import ConnectorError
from LibSearch.core.models import SOURCE_DESCRIPTORS, SourceTag
from LibSearch.sources.http import ApiClient
from LibSearch.utils.log import log
from LibSearch.utils.ratelimit import RateLimiter

S2_API_BASE = "https://api.semanticscholar.org/graph/v1"
S2_SEARCH_URL = f"{S2_API_BASE}/paper/search"

# Keyed access is budgeted at one request per second; the shared pool is slower.
INTERVAL_WITH_KEY = 1.0
INTERVAL_WITHOUT_KEY = 3.0


class SemanticScholarApiClient(ApiClient):
    """HTTP client for the Semantic Scholar paper search endpoint.

    Args:
        api_key: Optional key sent as ``x-api-key``.
    """

    def __init__(
        self,
        *,
        api_key: str = "",
        rate_limiter: RateLimiter | None = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(
            source=SourceTag.SEMANTIC_SCHOLAR.value,
            domain=SOURCE_DESCRIPTORS[SourceTag.SEMANTIC_SCHOLAR].domain,
            rate_limiter=rate_limiter,
            timeout=timeout,
        )
        self.api_key = api_key
        if api_key:
            self.rate_limiter.set_interval(self.domain, INTERVAL_WITH_KEY)
        else:
            log.debug("Semantic Scholar API key not set; using the shared rate pool")
            self.rate_limiter.set_interval(self.domain, INTERVAL_WITHOUT_KEY)

    def search_papers(self, params: Mapping[str, str]) -> list[dict[str, Any]]:
        """Run a paper search and return the ``data`` array.

        Raises:
            ConnectorError: On HTTP failure or a non-JSON payload.
        """
        response = self.get(S2_SEARCH_URL, params=params, headers=self._auth_headers())
        try:
            payload = response.json()
        except ValueError as error:
            raise ConnectorError(f"Semantic Scholar returned invalid JSON: {error}", source=self.source) from error
        data = payload.get("data", []) if isinstance(payload, dict) else []
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict)]

    def probe_status(self) -> int:
        """HEAD the API base and return the status code."""
        return self.probe(S2_API_BASE, headers=self._auth_headers()).status_code

    def _auth_headers(self) -> dict[str, str]:
        return {"x-api-key": self.api_key} if self.api_key else {}
