"""Crossref source connector."""

from __future__ import annotations

from dataclasses import dataclass, field

from LibSearch.core.models import SOURCE_DESCRIPTORS, ResultRecord, SourceDescriptor, SourceTag
from LibSearch.core.query import StructuredQuery
from LibSearch.sources.base import apply_excluded_filter, excluded_terms
from LibSearch.sources.crossref.client import CrossrefApiClient
from LibSearch.sources.crossref.parser import parse_crossref_items
from LibSearch.sources.crossref.query import compile_crossref_params
from LibSearch.utils.log import log


@dataclass(slots=True)
class CrossrefSource:
    """Crossref-backed connector that returns normalized records."""

    client: CrossrefApiClient
    descriptor: SourceDescriptor = field(default_factory=lambda: SOURCE_DESCRIPTORS[SourceTag.CROSSREF])

    def search(self, query: StructuredQuery, *, max_results: int) -> list[ResultRecord]:
        """Search Crossref and drop records mentioning excluded terms.

        Args:
            query: Structured query to compile into Crossref parameters.
            max_results: Maximum number of items requested from Crossref.

        Returns:
            Normalized records filtered by excluded terms.

        Raises:
            ConnectorError: When the API call fails.
        """
        query_params = compile_crossref_params(query)
        items = self.client.fetch_works(query_params=query_params, max_results=max_results)
        records = parse_crossref_items(items)
        return apply_excluded_filter(records, excluded_terms(query))

    def is_available(self) -> bool:
        try:
            return self.client.is_reachable()
        except Exception as error:  # noqa: BLE001 - probe must never raise
            log.debug("Crossref probe failed: %s", error)
            return False

    def close(self) -> None:
        self.client.close()
