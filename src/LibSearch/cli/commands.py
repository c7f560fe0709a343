"""Command implementations for LibSearch CLI.

Encapsulates the work behind each command, separated from CLI parameter
handling and resource lifecycle.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from LibSearch.core.models import ResultRecord
from LibSearch.renderers import (
    render_index_stats,
    render_report_summary,
    render_source_status,
    render_text,
    write_console,
)
from LibSearch.services import FederatedDispatcher, ResultAggregator, parse
from LibSearch.storage import LocalIndex
from LibSearch.utils.log import log


@dataclass(slots=True)
class SearchCommand:
    """Parse a query, run it online or against the local index, and print results.

    Online searches go through the dispatcher; offline searches read the
    local index only. Citation and year filters are applied to the final
    list in both modes.
    """

    text: str
    dispatcher: FederatedDispatcher | None
    index: LocalIndex | None
    sources: tuple[str, ...] = ()
    offline: bool = False
    max_results: int | None = None
    min_citations: int | None = None

    def execute(self) -> list[ResultRecord]:
        query = parse(self.text)
        log.debug("Parsed query: %s", query.describe())
        aggregator = ResultAggregator()

        if self.offline:
            if self.index is None:
                raise RuntimeError("Offline search requires index.enabled=true")
            records: Sequence[ResultRecord] = self.index.search(query, self.max_results or 50)
            log.info("Local index returned %d results", len(records))
        else:
            if self.dispatcher is None:
                raise RuntimeError("Online search requires a dispatcher")
            if self.max_results is not None:
                self.dispatcher.settings.max_results_per_source = self.max_results
            report = self.dispatcher.search_with_report(query, self.sources or None)
            write_console(render_report_summary(report))
            records = aggregator.filter_by_year(report.results, query.year_from, query.year_to)

        if self.min_citations is not None:
            records = aggregator.filter_by_citations(records, self.min_citations)
        write_console(render_text(records))
        return list(records)


@dataclass(slots=True)
class StatusCommand:
    """Probe every configured source and print its availability."""

    dispatcher: FederatedDispatcher

    def execute(self) -> dict[str, bool]:
        status = self.dispatcher.get_source_status()
        write_console(render_source_status(status))
        return {tag.value: ok for tag, ok in status.items()}


@dataclass(slots=True)
class IndexCommand:
    """Maintenance operations on the local index."""

    index: LocalIndex

    def stats(self) -> None:
        write_console(render_index_stats(self.index.stats()))

    def optimize(self) -> None:
        before = self.index.stats()
        self.index.optimize()
        after = self.index.stats()
        log.info("Optimized index: %s -> %s", before.formatted_size, after.formatted_size)

    def clear(self) -> None:
        removed = self.index.document_count()
        self.index.delete_all()
        log.info("Removed %d documents", removed)
