"""Semantic Scholar source connector."""

from __future__ import annotations

from dataclasses import dataclass, field

import requests

from LibSearch.core.models import SOURCE_DESCRIPTORS, ResultRecord, SourceDescriptor, SourceTag
from LibSearch.core.query import StructuredQuery
from LibSearch.sources.base import apply_excluded_filter, excluded_terms
from LibSearch.sources.semantic_scholar.client import SemanticScholarApiClient
from LibSearch.sources.semantic_scholar.parser import parse_s2_papers
from LibSearch.sources.semantic_scholar.query import compile_s2_params
from LibSearch.utils.log import log


@dataclass(slots=True)
class SemanticScholarSource:
    """Connector backed by the Semantic Scholar citation graph."""

    client: SemanticScholarApiClient
    descriptor: SourceDescriptor = field(
        default_factory=lambda: SOURCE_DESCRIPTORS[SourceTag.SEMANTIC_SCHOLAR]
    )

    def search(self, query: StructuredQuery, *, max_results: int) -> list[ResultRecord]:
        """Search Semantic Scholar.

        Queries without searchable text return an empty list without a
        remote call.

        Raises:
            ConnectorError: When the API call fails.
        """
        params = compile_s2_params(query, max_results=max_results)
        if not params:
            log.debug("Semantic Scholar skipped: query has no searchable text")
            return []
        items = self.client.search_papers(params)
        records = parse_s2_papers(items)
        return apply_excluded_filter(records, excluded_terms(query))[:max_results]

    def is_available(self) -> bool:
        """Probe the API permissively.

        The API host does not reliably answer HEAD, so only a 5xx answer or a
        refused connection counts as unavailable. Timeouts and any other
        status are treated as available.
        """
        try:
            status = self.client.probe_status()
        except requests.Timeout as error:
            log.debug("Semantic Scholar probe timed out: %s", error)
            return True
        except requests.ConnectionError as error:
            log.debug("Semantic Scholar probe connection failed: %s", error)
            return False
        except Exception as error:  # noqa: BLE001 - ambiguous probe failure counts as available
            log.debug("Semantic Scholar probe inconclusive: %s", error)
            return True
        return status < 500

    def close(self) -> None:
        self.client.close()
