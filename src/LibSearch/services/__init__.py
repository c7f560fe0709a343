"""Search service layer for LibSearch.

Provides query parsing, result aggregation and the federated dispatcher,
plus the factory that wires them from configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from LibSearch.services.aggregate import ResultAggregator
from LibSearch.services.query_parser import parse, query_from_keywords, validate_query
from LibSearch.services.search import DispatcherSettings, FederatedDispatcher, SearchReport, SourceOutcome
from LibSearch.sources.registry import build_registry
from LibSearch.utils.ratelimit import RateLimiter

if TYPE_CHECKING:
    from LibSearch.config import AppConfig
    from LibSearch.storage.index import LocalIndex


def create_dispatcher(config: AppConfig, index: LocalIndex | None = None) -> FederatedDispatcher:
    """Create a dispatcher over the configured sources.

    Connectors share one rate limiter. Per-domain intervals from
    ``rate_limit.domains`` are applied after the connectors register their
    own minimums, so configured values win.

    Args:
        config: Application configuration.
        index: Optional local index for auto-indexing.

    Returns:
        Configured FederatedDispatcher instance.
    """
    rate_limiter = RateLimiter(default_interval=config.rate_limit.default_interval)
    registry = build_registry(config, rate_limiter)
    for domain, interval in config.rate_limit.domains.items():
        rate_limiter.set_interval(domain, interval)

    settings = DispatcherSettings(
        max_results_per_source=config.search.max_results_per_source,
        timeout_seconds=config.search.timeout_seconds,
        max_concurrent_sources=config.search.max_concurrent_sources,
        auto_index=config.search.auto_index,
    )
    return FederatedDispatcher(registry, ResultAggregator(), index=index, settings=settings)


__all__ = [
    "DispatcherSettings",
    "FederatedDispatcher",
    "ResultAggregator",
    "SearchReport",
    "SourceOutcome",
    "create_dispatcher",
    "parse",
    "query_from_keywords",
    "validate_query",
]
