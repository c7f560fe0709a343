"""Result aggregation: deduplicate, merge and rank records from many sources."""

from __future__ import annotations

import hashlib
import re
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Sequence

from LibSearch.core.models import AccessLevel, PaperDetails, ResultRecord

_TITLE_WS_RE = re.compile(r"\s+")
_TITLE_STRIP_RE = re.compile(r"[^a-z0-9\s]")
_URL_SCHEME_RE = re.compile(r"^https?://")
_DOI_PREFIXES = ("https://doi.org/", "http://doi.org/", "https://dx.doi.org/", "http://dx.doi.org/", "doi:")
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ResultAggregator:
    """Deduplicate, merge and rank records.

    All methods are pure: inputs are never mutated and equal inputs give
    equal outputs.
    """

    def aggregate(self, records: Iterable[ResultRecord]) -> list[ResultRecord]:
        """Collapse duplicates and return the ranked list.

        The first record seen for a key is the merge base; later duplicates
        only fill its gaps (see ``merge_records``).

        Args:
            records: Records from any number of sources, in arrival order.

        Returns:
            Unique records ordered by relevance, citations, publication date
            and retrieval time, all descending.
        """
        merged: dict[str, ResultRecord] = {}
        for record in records:
            key = dedup_key(record)
            existing = merged.get(key)
            merged[key] = record if existing is None else merge_records(existing, record)
        return sorted(merged.values(), key=_rank_key)

    def filter_by_citations(self, records: Sequence[ResultRecord], min_citations: int) -> list[ResultRecord]:
        """Keep papers with at least ``min_citations``; bare records always pass."""
        return [r for r in records if not r.is_paper or r.citation_count >= min_citations]

    def filter_by_year(
        self,
        records: Sequence[ResultRecord],
        year_from: Optional[int] = None,
        year_to: Optional[int] = None,
    ) -> list[ResultRecord]:
        """Keep records published inside the inclusive year range; undated records pass."""
        kept: list[ResultRecord] = []
        for record in records:
            published = record.published
            if published is None:
                kept.append(record)
                continue
            if year_from is not None and published.year < year_from:
                continue
            if year_to is not None and published.year > year_to:
                continue
            kept.append(record)
        return kept

    def group_by_source(self, records: Sequence[ResultRecord]) -> dict[str, list[ResultRecord]]:
        """Group records by source display name, keeping first-seen order."""
        groups: dict[str, list[ResultRecord]] = {}
        for record in records:
            groups.setdefault(record.display_source, []).append(record)
        return groups


def dedup_key(record: ResultRecord) -> str:
    """Build the identity key of a record.

    First available wins: DOI, arXiv id, PubMed id, normalized URL,
    normalized-title hash, raw id.
    """
    paper = record.paper
    if paper is not None:
        doi = normalize_doi(paper.doi)
        if doi:
            return f"doi:{doi}"
        if paper.arxiv_id and paper.arxiv_id.strip():
            return f"arxiv:{paper.arxiv_id.strip().lower().removeprefix('arxiv:')}"
        if paper.pmid and paper.pmid.strip():
            return f"pmid:{paper.pmid.strip()}"
    url = normalize_url(record.url)
    if url:
        return f"url:{url}"
    title = normalize_title(record.title)
    if title:
        return "title:" + hashlib.sha1(title.encode("utf-8")).hexdigest()
    return f"id:{record.id}"


def normalize_doi(doi: str | None) -> str:
    """Normalize DOI for matching across providers."""
    if doi is None:
        return ""
    normalized = doi.strip().lower()
    for prefix in _DOI_PREFIXES:
        if normalized.startswith(prefix):
            normalized = normalized[len(prefix):]
            break
    return normalized.strip()


def normalize_url(url: str | None) -> str:
    """Lower-case and strip protocol, ``www.`` and trailing slashes."""
    if not url:
        return ""
    normalized = _URL_SCHEME_RE.sub("", url.strip().lower())
    if normalized.startswith("www."):
        normalized = normalized[len("www."):]
    return normalized.rstrip("/")


def normalize_title(title: str | None) -> str:
    """Lower-case, drop punctuation and collapse whitespace."""
    if not title:
        return ""
    no_punctuation = _TITLE_STRIP_RE.sub("", title.lower())
    return _TITLE_WS_RE.sub(" ", no_punctuation).strip()


def merge_records(base: ResultRecord, incoming: ResultRecord) -> ResultRecord:
    """Merge a duplicate into the base record and return a new record.

    Blank base fields are filled from ``incoming``; keywords are unioned;
    citation count takes the maximum; relevance is averaged when both are
    positive, otherwise the positive one is kept.
    """
    return replace(
        base,
        title=base.title if base.title.strip() else incoming.title,
        url=base.url or incoming.url,
        authors=base.authors if base.authors.strip() else incoming.authors,
        snippet=base.snippet if base.snippet.strip() else incoming.snippet,
        access=base.access if base.access is not AccessLevel.UNKNOWN else incoming.access,
        relevance=_merge_relevance(base.relevance, incoming.relevance),
        paper=_merge_paper(base.paper, incoming.paper),
    )


def _merge_relevance(left: float, right: float) -> float:
    if left > 0 and right > 0:
        return (left + right) / 2
    return left if left > 0 else right


def _merge_paper(base: PaperDetails | None, incoming: PaperDetails | None) -> PaperDetails | None:
    if base is None:
        return incoming
    if incoming is None:
        return base
    return PaperDetails(
        doi=base.doi or incoming.doi,
        arxiv_id=base.arxiv_id or incoming.arxiv_id,
        pmid=base.pmid or incoming.pmid,
        abstract=base.abstract if base.abstract.strip() else incoming.abstract,
        published=base.published or incoming.published,
        journal=base.journal or incoming.journal,
        venue=base.venue or incoming.venue,
        keywords=tuple(dict.fromkeys((*base.keywords, *incoming.keywords))),
        citation_count=max(base.citation_count, incoming.citation_count),
        pdf_url=base.pdf_url or incoming.pdf_url,
    )


def _rank_key(record: ResultRecord) -> tuple[float, int, int, float]:
    published = record.published or date.min
    retrieved = record.retrieved_at or _EPOCH
    return (-record.relevance, -record.citation_count, -published.toordinal(), -retrieved.timestamp())
