"""Crossref payload parser."""

from __future__ import annotations

import hashlib
import re
from datetime import date, datetime, timezone
from typing import Any, Mapping, Sequence

from dateutil import parser as dt_parser

from LibSearch.core.models import AccessLevel, PaperDetails, ResultRecord, SourceTag
from LibSearch.sources.base import make_snippet, rank_relevance

DOI_URL = "https://doi.org/{doi}"

_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")

_TYPE_LABELS = {
    "journal-article": "Article",
    "book-chapter": "Book Chapter",
    "book": "Book",
    "monograph": "Book",
    "proceedings-article": "Conference Paper",
    "dissertation": "Thesis",
    "posted-content": "Preprint",
    "report": "Report",
    "dataset": "Dataset",
}

_DATE_KEYS = ("published", "published-print", "published-online", "issued")


def parse_crossref_items(
    items: Sequence[Mapping[str, Any]],
    *,
    retrieved_at: datetime | None = None,
) -> list[ResultRecord]:
    """Parse Crossref work items into records.

    Args:
        items: Work items from the ``message.items`` array.
        retrieved_at: Retrieval timestamp stamped on every record.

    Returns:
        Records in response order with rank-based relevance.
    """
    fetched = retrieved_at or datetime.now(timezone.utc)
    records: list[ResultRecord] = []

    for position, item in enumerate(items):
        title = _first_non_empty_text(item.get("title")) or "Untitled"
        doi = _safe_str(item.get("DOI")) or None
        abstract = _clean_abstract(_safe_str(item.get("abstract")))
        journal = _first_non_empty_text(item.get("container-title")) or None
        publisher = _safe_str(item.get("publisher")) or None
        type_label = _TYPE_LABELS.get(_safe_str(item.get("type")).lower())

        keywords = [type_label] if type_label else []
        keywords.extend(_collect_str_list(item.get("subject")))

        url = DOI_URL.format(doi=doi) if doi else (_safe_str(item.get("URL")) or None)
        records.append(
            ResultRecord(
                id=_build_source_id(item, fallback_title=title),
                title=title,
                source=SourceTag.CROSSREF,
                url=url,
                authors=", ".join(_extract_authors(item.get("author"))),
                snippet=make_snippet(abstract or title),
                access=_access_level(item.get("license")),
                retrieved_at=fetched,
                relevance=rank_relevance(position, len(items)),
                paper=PaperDetails(
                    doi=doi,
                    abstract=abstract,
                    published=_extract_date(item),
                    journal=journal,
                    venue=publisher if journal is None else None,
                    keywords=tuple(dict.fromkeys(keywords)),
                    citation_count=_safe_int(item.get("is-referenced-by-count")),
                    pdf_url=_extract_pdf_link(item.get("link")),
                ),
            )
        )

    return records


def _build_source_id(item: Mapping[str, Any], *, fallback_title: str) -> str:
    """Build deterministic source id for Crossref record."""
    doi = _safe_str(item.get("DOI"))
    if doi:
        return doi.lower()

    canonical_url = _safe_str(item.get("URL"))
    if canonical_url:
        return canonical_url

    published = _extract_date(item)
    signature = f"{fallback_title.casefold()}|{published.year if published else ''}"
    digest = hashlib.sha1(signature.encode("utf-8")).hexdigest()[:16]
    return f"crossref:{digest}"


def _extract_authors(raw_authors: Any) -> list[str]:
    """Parse Crossref author objects into display names."""
    if not isinstance(raw_authors, list):
        return []

    names: list[str] = []
    for author in raw_authors:
        if not isinstance(author, Mapping):
            continue
        given = _safe_str(author.get("given"))
        family = _safe_str(author.get("family"))
        full_name = " ".join(part for part in (given, family) if part).strip()
        if not full_name:
            full_name = _safe_str(author.get("name"))
        if full_name:
            names.append(full_name)
    return names


def _extract_date(item: Mapping[str, Any]) -> date | None:
    """Extract publication date using Crossref date fields in preferred order."""
    for key in _DATE_KEYS:
        value = item.get(key)
        if not isinstance(value, Mapping):
            continue
        parsed = _parse_date_parts(value.get("date-parts"))
        if parsed is not None:
            return parsed
        date_time = _safe_str(value.get("date-time"))
        if date_time:
            try:
                return dt_parser.isoparse(date_time).date()
            except (TypeError, ValueError):
                continue
    return None


def _parse_date_parts(raw_value: Any) -> date | None:
    """Parse Crossref date-parts arrays; missing month/day default to 1."""
    if not isinstance(raw_value, list) or not raw_value:
        return None

    first_parts = raw_value[0]
    if not isinstance(first_parts, list) or not first_parts:
        return None

    numbers: list[int] = []
    for idx, part in enumerate(first_parts[:3]):
        if isinstance(part, bool) or not isinstance(part, int):
            return None
        if idx == 1 and not 1 <= part <= 12:
            return None
        if idx == 2 and not 1 <= part <= 31:
            return None
        numbers.append(part)

    year = numbers[0]
    month = numbers[1] if len(numbers) >= 2 else 1
    day = numbers[2] if len(numbers) >= 3 else 1

    try:
        return date(year, month, day)
    except ValueError:
        return None


def _extract_pdf_link(raw_links: Any) -> str | None:
    if not isinstance(raw_links, list):
        return None
    for link in raw_links:
        if not isinstance(link, Mapping):
            continue
        if "pdf" in _safe_str(link.get("content-type")).lower():
            url = _safe_str(link.get("URL"))
            if url:
                return url
    return None


def _access_level(raw_licenses: Any) -> AccessLevel:
    """Creative Commons licensed works are open; other licensed works are licensed."""
    if not isinstance(raw_licenses, list) or not raw_licenses:
        return AccessLevel.UNKNOWN
    for license_item in raw_licenses:
        if isinstance(license_item, Mapping) and "creativecommons.org" in _safe_str(license_item.get("URL")):
            return AccessLevel.OPEN
    return AccessLevel.LICENSED


def _clean_abstract(text: str) -> str:
    """Remove JATS/XML tags and normalize whitespace in abstract text."""
    if not text:
        return ""
    no_tags = _TAG_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", no_tags).strip()


def _first_non_empty_text(value: Any) -> str:
    """Return first non-empty string from value/list value."""
    if isinstance(value, list):
        for item in value:
            text = _safe_str(item)
            if text:
                return text
        return ""
    return _safe_str(value)


def _collect_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [text for text in (_safe_str(item) for item in value) if text]


def _safe_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        return 0
    return max(value, 0)


def _safe_str(value: Any) -> str:
    """Convert scalar value to stripped string."""
    if isinstance(value, str):
        return value.strip()
    return ""
