"""arXiv source connector.

Composes query compilation, HTTP fetching and Atom parsing into a
``SourceConnector``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from LibSearch.core.models import SOURCE_DESCRIPTORS, ResultRecord, SourceDescriptor, SourceTag
from LibSearch.core.query import StructuredQuery
from LibSearch.sources.arxiv.client import ArxivApiClient
from LibSearch.sources.arxiv.parser import parse_arxiv_feed
from LibSearch.sources.arxiv.query import compile_search_query
from LibSearch.utils.log import log

# arXiv rejects pages larger than this.
ARXIV_PAGE_LIMIT = 2000


@dataclass(slots=True)
class ArxivSource:
    """Connector backed by the arXiv preprint server."""

    client: ArxivApiClient
    keep_version: bool = False
    descriptor: SourceDescriptor = field(default_factory=lambda: SOURCE_DESCRIPTORS[SourceTag.ARXIV])

    def search(self, query: StructuredQuery, *, max_results: int) -> list[ResultRecord]:
        """Search arXiv, sorted by arXiv's own relevance.

        Raises:
            ConnectorError: When the API call fails or the feed reports an error.
        """
        search_query = compile_search_query(query)
        log.debug("arXiv search_query=%s", search_query)
        xml_text = self.client.fetch_feed(
            search_query=search_query,
            max_results=min(max_results, ARXIV_PAGE_LIMIT),
        )
        return parse_arxiv_feed(xml_text, keep_version=self.keep_version)[:max_results]

    def is_available(self) -> bool:
        try:
            return self.client.is_reachable()
        except Exception as error:  # noqa: BLE001 - probe must never raise
            log.debug("arXiv probe failed: %s", error)
            return False

    def close(self) -> None:
        self.client.close()
