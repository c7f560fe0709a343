"""Semantic Scholar payload parser."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Mapping, Sequence

from LibSearch.core.models import AccessLevel, PaperDetails, ResultRecord, SourceTag
from LibSearch.sources.base import make_snippet, rank_relevance

S2_PAPER_URL = "https://www.semanticscholar.org/paper/{paper_id}"


def parse_s2_papers(
    items: Sequence[Mapping[str, Any]],
    *,
    retrieved_at: datetime | None = None,
) -> list[ResultRecord]:
    """Parse ``/paper/search`` data items into records.

    Venues naming a journal or proceedings are reported as the journal;
    other venues stay as the venue.
    """
    fetched = retrieved_at or datetime.now(timezone.utc)
    records: list[ResultRecord] = []
    for position, item in enumerate(items):
        paper_id = _safe_str(item.get("paperId"))
        if not paper_id:
            continue
        title = _safe_str(item.get("title")) or "Untitled"
        abstract = _safe_str(item.get("abstract"))
        external = item.get("externalIds") if isinstance(item.get("externalIds"), Mapping) else {}
        venue = _safe_str(item.get("venue")) or None
        journal = venue if venue and ("journal" in venue.lower() or "proceedings" in venue.lower()) else None
        pdf_url = _open_access_url(item.get("openAccessPdf"))

        records.append(
            ResultRecord(
                id=paper_id,
                title=title,
                source=SourceTag.SEMANTIC_SCHOLAR,
                url=S2_PAPER_URL.format(paper_id=paper_id),
                authors=", ".join(_extract_authors(item.get("authors"))),
                snippet=make_snippet(abstract or title),
                access=AccessLevel.OPEN if pdf_url else AccessLevel.UNKNOWN,
                retrieved_at=fetched,
                relevance=rank_relevance(position, len(items)),
                paper=PaperDetails(
                    doi=_external_id(external, "DOI"),
                    arxiv_id=_external_id(external, "ArXiv"),
                    pmid=_external_id(external, "PubMed"),
                    abstract=abstract,
                    published=_extract_date(item),
                    journal=journal,
                    venue=None if journal else venue,
                    keywords=tuple(_collect_str_list(item.get("fieldsOfStudy"))),
                    citation_count=_safe_int(item.get("citationCount")),
                    pdf_url=pdf_url,
                ),
            )
        )
    return records


def _extract_date(item: Mapping[str, Any]) -> date | None:
    """Prefer the full publication date, falling back to January 1st of the year."""
    raw = _safe_str(item.get("publicationDate"))
    if raw:
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            pass
    year = item.get("year")
    if isinstance(year, int) and not isinstance(year, bool) and 1 <= year <= 9999:
        return date(year, 1, 1)
    return None


def _extract_authors(raw_authors: Any) -> list[str]:
    if not isinstance(raw_authors, list):
        return []
    return [
        name
        for name in (_safe_str(a.get("name")) for a in raw_authors if isinstance(a, Mapping))
        if name
    ]


def _external_id(external: Mapping[str, Any], key: str) -> str | None:
    value = external.get(key)
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return _safe_str(value) or None


def _open_access_url(value: Any) -> str | None:
    if not isinstance(value, Mapping):
        return None
    return _safe_str(value.get("url")) or None


def _collect_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_safe_str(item) for item in value) if text]


def _safe_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(value, 0)


def _safe_str(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    return ""
