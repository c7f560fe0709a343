"""Crossref API client."""

from __future__ import annotations

from typing import Any, Mapping

from LibSearch.core.errors import ConnectorError
from LibSearch.core.models import SOURCE_DESCRIPTORS, SourceTag
from LibSearch.sources.http import ApiClient
from LibSearch.utils.ratelimit import RateLimiter

CROSSREF_WORKS_URL = "https://api.crossref.org/works"
CROSSREF_MAX_ROWS = 1000


class CrossrefApiClient(ApiClient):
    """Low-level HTTP client for the Crossref REST API.

    Args:
        mailto: Contact address for Crossref's polite pool; omitted when empty.
    """

    def __init__(
        self,
        *,
        mailto: str = "",
        rate_limiter: RateLimiter | None = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(
            source=SourceTag.CROSSREF.value,
            domain=SOURCE_DESCRIPTORS[SourceTag.CROSSREF].domain,
            rate_limiter=rate_limiter,
            timeout=timeout,
        )
        self.mailto = mailto

    def fetch_works(
        self,
        *,
        query_params: Mapping[str, str] | None,
        max_results: int,
    ) -> list[dict[str, Any]]:
        """Fetch work items from Crossref.

        Args:
            query_params: Compiled Crossref parameters.
            max_results: Number of items to request.

        Returns:
            List of Crossref work item mappings.

        Raises:
            ConnectorError: On HTTP failure or a non-JSON payload.
        """
        params = {"rows": str(min(max_results, CROSSREF_MAX_ROWS))}
        if self.mailto:
            params["mailto"] = self.mailto
        if query_params:
            for key, value in query_params.items():
                normalized_key = str(key).strip()
                normalized_value = str(value).strip()
                if not normalized_key or not normalized_value:
                    continue
                params[normalized_key] = normalized_value

        response = self.get(CROSSREF_WORKS_URL, params=params)
        try:
            payload = response.json()
        except ValueError as error:
            raise ConnectorError(f"Crossref returned invalid JSON: {error}", source=self.source) from error

        message = payload.get("message", {}) if isinstance(payload, dict) else {}
        items = message.get("items", []) if isinstance(message, dict) else []
        if not isinstance(items, list):
            return []
        return [item for item in items if isinstance(item, dict)]

    def is_reachable(self) -> bool:
        return self.probe(f"{CROSSREF_WORKS_URL}?rows=0").ok
