"""Connector registry and builders for the configured sources."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Iterable, Iterator

from LibSearch.core.models import SourceTag
from LibSearch.utils.log import log

if TYPE_CHECKING:
    from LibSearch.config import AppConfig
    from LibSearch.sources.base import SourceConnector
    from LibSearch.utils.ratelimit import RateLimiter

SourceBuilder = Callable[["AppConfig", "RateLimiter"], "SourceConnector"]


class ConnectorRegistry:
    """Holds exactly one connector per source tag.

    Entries are only removed by ``reset``, which clears the registry and
    re-runs the loader when one was given.

    Args:
        connectors: Initial connectors.
        loader: Optional callable producing the connectors to load on reset.
    """

    def __init__(
        self,
        connectors: Iterable[SourceConnector] = (),
        *,
        loader: Callable[[], Iterable[SourceConnector]] | None = None,
    ) -> None:
        self._connectors: dict[SourceTag, SourceConnector] = {}
        self._loader = loader
        for connector in connectors:
            self.register(connector)

    def register(self, connector: SourceConnector) -> None:
        """Add a connector, replacing any connector with the same tag."""
        tag = connector.descriptor.tag
        previous = self._connectors.get(tag)
        if previous is not None and previous is not connector:
            log.debug("Replacing connector: source=%s", tag.value)
        self._connectors[tag] = connector

    def get(self, tag: SourceTag | str) -> SourceConnector | None:
        try:
            return self._connectors.get(SourceTag.parse(tag))
        except ValueError:
            return None

    def all(self) -> list[SourceConnector]:
        """Return every registered connector in registration order."""
        return list(self._connectors.values())

    def tags(self) -> tuple[SourceTag, ...]:
        return tuple(self._connectors.keys())

    def select(self, tags: Iterable[SourceTag | str]) -> list[SourceConnector]:
        """Return connectors for the given tags, in the given order.

        Unknown or unregistered tags are logged and skipped.
        """
        selected: list[SourceConnector] = []
        seen: set[SourceTag] = set()
        for raw_tag in tags:
            connector = self.get(raw_tag)
            if connector is None:
                log.warning("Source not registered: source=%s", getattr(raw_tag, "value", raw_tag))
                continue
            tag = connector.descriptor.tag
            if tag in seen:
                continue
            seen.add(tag)
            selected.append(connector)
        return selected

    def available(self) -> list[SourceConnector]:
        """Probe every connector and return those that answered."""
        return [connector for connector in self._connectors.values() if _probe(connector)]

    def reset(self) -> None:
        """Close and drop every connector, then reload from the loader if set."""
        for connector in self._connectors.values():
            try:
                connector.close()
            except Exception as error:  # noqa: BLE001 - close failure must be isolated
                log.warning("Connector close failed: source=%s error=%s", connector.descriptor.tag.value, error)
        self._connectors.clear()
        if self._loader is not None:
            for connector in self._loader():
                self.register(connector)

    def close(self) -> None:
        """Close every connector without removing it."""
        failed: list[str] = []
        for connector in self._connectors.values():
            try:
                connector.close()
            except Exception as error:  # noqa: BLE001 - close failure must be isolated
                failed.append(connector.descriptor.tag.value)
                log.warning("Connector close failed: source=%s error=%s", connector.descriptor.tag.value, error)
        if failed:
            log.warning("Registry close completed with failures: %s", ", ".join(failed))

    def __len__(self) -> int:
        return len(self._connectors)

    def __contains__(self, tag: object) -> bool:
        if not isinstance(tag, (str, SourceTag)):
            return False
        return self.get(tag) is not None

    def __iter__(self) -> Iterator[SourceConnector]:
        return iter(self.all())


def _probe(connector: SourceConnector) -> bool:
    try:
        return bool(connector.is_available())
    except Exception as error:  # noqa: BLE001 - a failing probe means unavailable
        log.debug("Probe raised: source=%s error=%s", connector.descriptor.tag.value, error)
        return False


def build_registry(config: AppConfig, rate_limiter: RateLimiter) -> ConnectorRegistry:
    """Build a registry holding the connectors listed in ``search.sources``.

    Args:
        config: Parsed application configuration.
        rate_limiter: Limiter shared by every connector.

    Returns:
        Loaded registry; ``reset`` rebuilds the same connectors.
    """

    def load() -> list[SourceConnector]:
        return [build_source(name, config=config, rate_limiter=rate_limiter) for name in config.search.sources]

    return ConnectorRegistry(load(), loader=load)


def build_source(source_name: str, *, config: AppConfig, rate_limiter: RateLimiter) -> SourceConnector:
    """Build a connector instance from a registered source name.

    Raises:
        ValueError: If ``source_name`` is not registered.
    """
    builder = _source_builders().get(source_name)
    if builder is None:
        raise ValueError(f"Unsupported source in config.search.sources: {source_name}")
    return builder(config, rate_limiter)


def supported_source_names() -> tuple[str, ...]:
    """Return all source names that can be built, in registry order."""
    return tuple(_source_builders().keys())


def _source_builders() -> dict[str, SourceBuilder]:
    """Return source builder registry."""
    return {
        SourceTag.ARXIV.value: _build_arxiv_source,
        SourceTag.PUBMED.value: _build_pubmed_source,
        SourceTag.CROSSREF.value: _build_crossref_source,
        SourceTag.SEMANTIC_SCHOLAR.value: _build_semantic_scholar_source,
    }


def _build_arxiv_source(config: AppConfig, rate_limiter: RateLimiter) -> SourceConnector:
    """Build arXiv source."""
    from LibSearch.sources.arxiv.client import ArxivApiClient
    from LibSearch.sources.arxiv.source import ArxivSource

    return ArxivSource(
        client=ArxivApiClient(rate_limiter=rate_limiter, timeout=config.sources.request_timeout),
        keep_version=config.sources.arxiv_keep_version,
    )


def _build_pubmed_source(config: AppConfig, rate_limiter: RateLimiter) -> SourceConnector:
    """Build PubMed source."""
    from LibSearch.sources.pubmed.client import PubMedApiClient
    from LibSearch.sources.pubmed.source import PubMedSource

    return PubMedSource(
        client=PubMedApiClient(
            api_key=config.sources.pubmed_api_key,
            rate_limiter=rate_limiter,
            timeout=config.sources.request_timeout,
        )
    )


def _build_crossref_source(config: AppConfig, rate_limiter: RateLimiter) -> SourceConnector:
    """Build Crossref source."""
    from LibSearch.sources.crossref.client import CrossrefApiClient
    from LibSearch.sources.crossref.source import CrossrefSource

    return CrossrefSource(
        client=CrossrefApiClient(
            mailto=config.sources.crossref_mailto,
            rate_limiter=rate_limiter,
            timeout=config.sources.request_timeout,
        )
    )


def _build_semantic_scholar_source(config: AppConfig, rate_limiter: RateLimiter) -> SourceConnector:
    """Build Semantic Scholar source."""
    from LibSearch.sources.semantic_scholar.client import SemanticScholarApiClient
    from LibSearch.sources.semantic_scholar.source import SemanticScholarSource

    return SemanticScholarSource(
        client=SemanticScholarApiClient(
            api_key=config.sources.semantic_scholar_api_key,
            rate_limiter=rate_limiter,
            timeout=config.sources.request_timeout,
        )
    )
