"""Source connector capability and helpers shared by connector parsers."""

from __future__ import annotations

from typing import Protocol, Sequence

from LibSearch.core.models import ResultRecord, SourceDescriptor
from LibSearch.core.query import StructuredQuery

SNIPPET_LENGTH = 200


class SourceConnector(Protocol):
    """Protocol for one remote bibliographic source."""

    descriptor: SourceDescriptor

    def search(self, query: StructuredQuery, *, max_results: int) -> list[ResultRecord]:
        """Search the source and return normalized records.

        Raises:
            ConnectorError: When the remote call fails.
        """
        raise NotImplementedError

    def is_available(self) -> bool:
        """Probe the source; must never raise."""
        raise NotImplementedError

    def close(self) -> None:
        """Close resources held by the connector."""
        raise NotImplementedError


def rank_relevance(position: int, total: int) -> float:
    """Score an item by its rank in the source's own ordering.

    The first of ``total`` items scores 1.0; later items decrease linearly
    but stay positive.
    """
    if total <= 0:
        return 0.0
    return (total - position) / total


def make_snippet(text: str, limit: int = SNIPPET_LENGTH) -> str:
    """Collapse whitespace and cut text to ``limit`` characters plus ``...``."""
    collapsed = " ".join((text or "").split())
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[:limit] + "..."


def excluded_terms(query: StructuredQuery) -> frozenset[str]:
    return frozenset(term.casefold() for term in query.excluded if term.strip())


def apply_excluded_filter(records: Sequence[ResultRecord], terms: frozenset[str]) -> list[ResultRecord]:
    """Drop records whose title or abstract mentions any excluded term (case-insensitive)."""
    if not terms:
        return list(records)
    return [record for record in records if not _matches_any(record, terms)]


def _matches_any(record: ResultRecord, terms: frozenset[str]) -> bool:
    abstract = record.paper.abstract if record.paper is not None else record.snippet
    haystack = f"{record.title} {abstract}".casefold()
    return any(term in haystack for term in terms)
