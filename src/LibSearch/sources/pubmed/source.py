"""PubMed source connector."""

from __future__ import annotations

from dataclasses import dataclass, field

from LibSearch.core.models import SOURCE_DESCRIPTORS, ResultRecord, SourceDescriptor, SourceTag
from LibSearch.core.query import StructuredQuery
from LibSearch.sources.pubmed.client import PubMedApiClient
from LibSearch.sources.pubmed.parser import parse_pubmed_articles
from LibSearch.sources.pubmed.query import compile_term
from LibSearch.utils.log import log


@dataclass(slots=True)
class PubMedSource:
    """Connector backed by NCBI PubMed (ESearch, then EFetch)."""

    client: PubMedApiClient
    descriptor: SourceDescriptor = field(default_factory=lambda: SOURCE_DESCRIPTORS[SourceTag.PUBMED])

    def search(self, query: StructuredQuery, *, max_results: int) -> list[ResultRecord]:
        """Search PubMed.

        Returns an empty list without calling EFetch when ESearch finds nothing.

        Raises:
            ConnectorError: When either E-utilities call fails.
        """
        term = compile_term(query)
        if not term:
            log.debug("PubMed skipped: query has no searchable terms")
            return []
        log.debug("PubMed term=%s", term)
        pmids = self.client.search_ids(term, max_results=max_results)
        if not pmids:
            return []
        xml_text = self.client.fetch_articles(pmids)
        return parse_pubmed_articles(xml_text, order=pmids)[:max_results]

    def is_available(self) -> bool:
        try:
            return self.client.is_reachable()
        except Exception as error:  # noqa: BLE001 - probe must never raise
            log.debug("PubMed probe failed: %s", error)
            return False

    def close(self) -> None:
        self.client.close()
