"""Federated search across source connectors."""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Sequence

from LibSearch.core.errors import SearchError
from LibSearch.core.models import ResultRecord, SourceTag
from LibSearch.core.query import StructuredQuery
from LibSearch.services.aggregate import ResultAggregator
from LibSearch.utils.log import log

if TYPE_CHECKING:
    from LibSearch.sources.base import SourceConnector
    from LibSearch.sources.registry import ConnectorRegistry
    from LibSearch.storage.index import LocalIndex


@dataclass(slots=True)
class DispatcherSettings:
    """Runtime-adjustable dispatcher knobs."""

    max_results_per_source: int = 50
    timeout_seconds: float = 30.0
    max_concurrent_sources: int = 5
    auto_index: bool = True


@dataclass(frozen=True, slots=True)
class SourceOutcome:
    """What one connector contributed to a search."""

    tag: SourceTag
    count: int = 0
    duration_ms: int = 0
    error: str | None = None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.timed_out


@dataclass(frozen=True, slots=True)
class SearchReport:
    """Aggregated results plus per-source timing."""

    results: tuple[ResultRecord, ...]
    elapsed_ms: int
    sources: tuple[SourceOutcome, ...] = field(default_factory=tuple)

    @property
    def failed_sources(self) -> tuple[SourceTag, ...]:
        return tuple(outcome.tag for outcome in self.sources if not outcome.ok)


@dataclass(slots=True)
class _TaskResult:
    records: Sequence[ResultRecord]
    duration_ms: int


class FederatedDispatcher:
    """Fan a query out to connectors concurrently and aggregate the answers.

    Each search runs one task per connector on a bounded thread pool and
    waits up to ``settings.timeout_seconds``. Tasks still running at the
    deadline are detached and their results ignored. A failing connector
    contributes zero records and never aborts its siblings.

    Args:
        registry: Connectors available for dispatch.
        aggregator: Deduplicates and ranks the merged results.
        index: Optional local index that receives aggregated results.
        settings: Dispatcher knobs; defaults apply when omitted.
    """

    def __init__(
        self,
        registry: ConnectorRegistry,
        aggregator: ResultAggregator | None = None,
        index: LocalIndex | None = None,
        settings: DispatcherSettings | None = None,
    ) -> None:
        self.registry = registry
        self.aggregator = aggregator or ResultAggregator()
        self.index = index
        self.settings = settings or DispatcherSettings()

    def search(
        self,
        query: StructuredQuery,
        sources: Iterable[SourceTag | str] | None = None,
        *,
        session_id: str | None = None,
    ) -> list[ResultRecord]:
        """Search the given sources, or every registered connector when None.

        Args:
            query: Parsed query.
            sources: Source tags to query.
            session_id: Caller bookkeeping id; only logged.

        Returns:
            Deduplicated, ranked records.

        Raises:
            SearchError: If no connector resolves, or every task was interrupted.
        """
        return list(self.search_with_report(query, sources, session_id=session_id).results)

    def search_all(self, query: StructuredQuery, *, session_id: str | None = None) -> list[ResultRecord]:
        """Search every registered connector."""
        return self.search(query, None, session_id=session_id)

    def search_with_report(
        self,
        query: StructuredQuery,
        sources: Iterable[SourceTag | str] | None = None,
        *,
        session_id: str | None = None,
    ) -> SearchReport:
        """Search and return results with per-source outcomes.

        Raises:
            SearchError: If no connector resolves, or every task was interrupted.
        """
        connectors = self.registry.all() if sources is None else self.registry.select(sources)
        if not connectors:
            raise SearchError("No search sources are available")

        settings = self.settings
        log.info(
            "Federated search: query=%s sources=%s session=%s",
            query.original or query.to_query_string(),
            ",".join(c.descriptor.tag.value for c in connectors),
            session_id or "-",
        )
        started = time.monotonic()
        pool = ThreadPoolExecutor(
            max_workers=max(1, settings.max_concurrent_sources),
            thread_name_prefix="libsearch-source",
        )
        try:
            futures: dict[Future[_TaskResult], SourceConnector] = {
                pool.submit(_run_source, connector, query, settings.max_results_per_source): connector
                for connector in connectors
            }
            _, pending = wait(futures, timeout=settings.timeout_seconds)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        collected: list[ResultRecord] = []
        outcomes: list[SourceOutcome] = []
        interrupted = 0
        for future, connector in futures.items():
            tag = connector.descriptor.tag
            if future in pending:
                future.cancel()
                log.warning("Search source timed out: source=%s timeout=%.1fs", tag.value, settings.timeout_seconds)
                outcomes.append(SourceOutcome(tag=tag, duration_ms=_elapsed_ms(started), timed_out=True))
                continue
            error = future.exception()
            if error is not None:
                if not isinstance(error, Exception):
                    interrupted += 1
                log.warning("Search source failed: source=%s error=%s", tag.value, error)
                outcomes.append(SourceOutcome(tag=tag, error=str(error) or type(error).__name__))
                continue
            result = future.result()
            log.info(
                "Search source completed: source=%s count=%d duration_ms=%d",
                tag.value,
                len(result.records),
                result.duration_ms,
            )
            collected.extend(result.records)
            outcomes.append(SourceOutcome(tag=tag, count=len(result.records), duration_ms=result.duration_ms))

        if interrupted == len(futures):
            raise SearchError("Every search task was interrupted")

        results = self.aggregator.aggregate(collected)
        if settings.auto_index and self.index is not None and results:
            self._index_results(results)

        elapsed = _elapsed_ms(started)
        log.info("Federated search finished: results=%d elapsed_ms=%d", len(results), elapsed)
        return SearchReport(results=tuple(results), elapsed_ms=elapsed, sources=tuple(outcomes))

    def get_source_status(self) -> dict[SourceTag, bool]:
        """Probe every registered connector."""
        available = {connector.descriptor.tag for connector in self.registry.available()}
        return {tag: tag in available for tag in self.registry.tags()}

    def close(self) -> None:
        """Close connectors and the attached index."""
        self.registry.close()
        if self.index is not None:
            try:
                self.index.close()
            except Exception as error:  # noqa: BLE001 - close failure must be isolated
                log.warning("Local index close failed: error=%s", error)

    def _index_results(self, results: Sequence[ResultRecord]) -> None:
        try:
            count = self.index.ingest(results)
        except Exception as error:  # noqa: BLE001 - indexing must not fail the search
            log.warning("Local index ingest failed: error=%s", error)
            return
        log.debug("Indexed search results: count=%d", count)


def _run_source(connector: SourceConnector, query: StructuredQuery, max_results: int) -> _TaskResult:
    started = time.monotonic()
    records = connector.search(query, max_results=max_results)
    return _TaskResult(records=list(records), duration_ms=_elapsed_ms(started))


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
