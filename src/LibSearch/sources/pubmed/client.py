"""NCBI E-utilities client for PubMed."""

from __future__ import annotations

from typing import Any

from LibSearch.core.errors import ConnectorError
from LibSearch.core.models import SOURCE_DESCRIPTORS, SourceTag
from LibSearch.sources.http import ApiClient
from LibSearch.utils.log import log
from LibSearch.utils.ratelimit import RateLimiter

EUTILS_BASE = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
ESEARCH_URL = f"{EUTILS_BASE}/esearch.fcgi"
EFETCH_URL = f"{EUTILS_BASE}/efetch.fcgi"
PUBMED_PROBE_URL = "https://pubmed.ncbi.nlm.nih.gov"

# NCBI allows 3 requests/s without an API key and 10 requests/s with one.
INTERVAL_WITHOUT_KEY = 0.34
INTERVAL_WITH_KEY = 0.1


class PubMedApiClient(ApiClient):
    """Two-step ESearch/EFetch client.

    Args:
        api_key: Optional NCBI API key; raises the request budget when set.
        rate_limiter: Shared limiter. The PubMed domain interval is set from
            the key state when the client is created.
    """

    def __init__(
        self,
        *,
        api_key: str = "",
        rate_limiter: RateLimiter | None = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(
            source=SourceTag.PUBMED.value,
            domain=SOURCE_DESCRIPTORS[SourceTag.PUBMED].domain,
            rate_limiter=rate_limiter,
            timeout=timeout,
            accept="application/xml,application/json;q=0.9,*/*;q=0.8",
        )
        self.api_key = api_key
        if api_key:
            self.rate_limiter.set_interval(self.domain, INTERVAL_WITH_KEY)
        else:
            log.warning("PubMed API key not set; limited to 3 requests per second")
            self.rate_limiter.set_interval(self.domain, INTERVAL_WITHOUT_KEY)

    def search_ids(self, term: str, *, max_results: int) -> list[str]:
        """Run ESearch and return matching PMIDs in relevance order.

        Raises:
            ConnectorError: On HTTP failure or an unreadable payload.
        """
        params = self._params(
            db="pubmed",
            term=term,
            retmax=str(max_results),
            retmode="json",
            sort="relevance",
        )
        response = self.get(ESEARCH_URL, params=params)
        try:
            payload = response.json()
        except ValueError as error:
            raise ConnectorError(f"PubMed ESearch returned invalid JSON: {error}", source=self.source) from error

        result = payload.get("esearchresult", {}) if isinstance(payload, dict) else {}
        if isinstance(result, dict) and result.get("ERROR"):
            raise ConnectorError(f"PubMed ESearch error: {result['ERROR']}", source=self.source)
        ids = result.get("idlist", []) if isinstance(result, dict) else []
        return [str(pmid) for pmid in ids if str(pmid).strip()]

    def fetch_articles(self, pmids: list[str]) -> str:
        """Run EFetch for PMIDs and return the PubmedArticleSet XML."""
        params = self._params(db="pubmed", id=",".join(pmids), retmode="xml")
        return self.get(EFETCH_URL, params=params).text

    def is_reachable(self) -> bool:
        return self.probe(PUBMED_PROBE_URL).ok

    def _params(self, **params: Any) -> dict[str, Any]:
        if self.api_key:
            params["api_key"] = self.api_key
        return params
