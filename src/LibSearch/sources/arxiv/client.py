"""arXiv API client.

Calls the arXiv Atom API with HTTPS→HTTP fallback on transport failures.
"""

from __future__ import annotations

from LibSearch.core.errors import ConnectorError
from LibSearch.core.models import SOURCE_DESCRIPTORS, SourceTag
from LibSearch.sources.http import ApiClient
from LibSearch.utils.log import log
from LibSearch.utils.ratelimit import RateLimiter

ARXIV_HTTPS = "https://export.arxiv.org/api/query"
ARXIV_HTTP = "http://export.arxiv.org/api/query"
ARXIV_PROBE_URL = "https://arxiv.org"

# arXiv asks API users for one request every three seconds.
ARXIV_MIN_INTERVAL = 3.0


class ArxivApiClient(ApiClient):
    """Low-level HTTP client for the arXiv Atom API.

    Responsible only for making network requests and returning the raw feed XML.
    Parsing and domain mapping are handled elsewhere.
    """

    def __init__(self, *, rate_limiter: RateLimiter | None = None, timeout: float = 45.0) -> None:
        super().__init__(
            source=SourceTag.ARXIV.value,
            domain=SOURCE_DESCRIPTORS[SourceTag.ARXIV].domain,
            rate_limiter=rate_limiter,
            timeout=timeout,
            accept="application/atom+xml,application/xml;q=0.9,*/*;q=0.8",
        )
        self.rate_limiter.set_interval(self.domain, ARXIV_MIN_INTERVAL)

    def fetch_feed(
        self,
        *,
        search_query: str,
        start: int = 0,
        max_results: int = 10,
        sort_by: str = "relevance",
        sort_order: str = "descending",
    ) -> str:
        """Fetch arXiv Atom feed XML.

        Args:
            search_query: arXiv API ``search_query`` string.
            start: Start offset.
            max_results: Maximum number of entries.
            sort_by: Sort field.
            sort_order: Sort order.

        Returns:
            Atom feed XML text.

        Raises:
            ConnectorError: When both endpoints fail or the API answers non-2xx.
        """
        params = {
            "search_query": search_query,
            "start": str(start),
            "max_results": str(max_results),
            "sortBy": sort_by,
            "sortOrder": sort_order,
        }

        last_err: ConnectorError | None = None
        for base_url in (ARXIV_HTTPS, ARXIV_HTTP):
            try:
                log.debug("arXiv fetch feed: base_url=%s query=%s max_results=%s", base_url, search_query, max_results)
                return self.get(base_url, params=params).text
            except ConnectorError as error:
                if error.status_code is not None:
                    raise
                last_err = error
                log.debug("arXiv fetch failed for %s: %s", base_url, error)

        assert last_err is not None
        raise last_err

    def is_reachable(self) -> bool:
        response = self.probe(ARXIV_PROBE_URL)
        return response.ok
