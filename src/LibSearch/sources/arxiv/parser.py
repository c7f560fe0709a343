"""arXiv Atom feed parser.

Parses arXiv Atom XML into ``ResultRecord`` objects.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
import re
from urllib.parse import urlparse

import feedparser
from dateutil import parser as dt_parser

from LibSearch.core.errors import ConnectorError
from LibSearch.core.models import AccessLevel, PaperDetails, ResultRecord, SourceTag
from LibSearch.sources.base import make_snippet, rank_relevance


def _parse_date(value: str | None) -> date | None:
    """Parse the feed's RFC3339 timestamp into a calendar date."""
    if not value:
        return None
    try:
        return dt_parser.parse(value).date()
    except (TypeError, ValueError, OverflowError):
        return None


def normalize_arxiv_id(raw_id: str, *, keep_version: bool) -> str:
    """Normalize an arXiv id taken from feed entries or URLs.

    Args:
        raw_id: Raw id or abs/pdf URL.
        keep_version: Whether to keep the version suffix (e.g., v1).

    Returns:
        Normalized arXiv id string.
    """
    if not raw_id:
        return ""

    value = raw_id.strip()
    if "arxiv.org" in value:
        path = urlparse(value).path or ""
        if "/abs/" in path:
            value = path.split("/abs/", 1)[1]
        elif "/pdf/" in path:
            value = path.split("/pdf/", 1)[1]
        else:
            value = path.lstrip("/")
        if value.endswith(".pdf"):
            value = value[:-4]
    elif value.lower().startswith("arxiv:"):
        value = value[len("arxiv:"):]

    value = value.strip("/")
    if not value:
        return raw_id
    if not keep_version:
        value = re.sub(r"v\d+$", "", value)
    return value


def parse_arxiv_feed(
    xml_text: str,
    *,
    keep_version: bool = False,
    retrieved_at: datetime | None = None,
) -> list[ResultRecord]:
    """Parse arXiv Atom feed XML into records.

    Args:
        xml_text: Atom feed XML text.
        keep_version: Whether to keep the arXiv version suffix in ids.
        retrieved_at: Retrieval timestamp stamped on every record.

    Returns:
        Records in feed order with rank-based relevance.

    Raises:
        ConnectorError: If the feed is unreadable or reports an API error.
    """
    feed = feedparser.parse(xml_text)
    if feed.bozo and not feed.entries:
        raise ConnectorError(f"arXiv returned an unreadable feed: {feed.get('bozo_exception')}", source="arxiv")

    fetched = retrieved_at or datetime.now(timezone.utc)
    entries = list(feed.entries)
    records: list[ResultRecord] = []
    for position, entry in enumerate(entries):
        entry_id = entry.get("id") or ""
        if "/api/errors" in entry_id:
            raise ConnectorError(f"arXiv API error: {entry.get('summary', '').strip()}", source="arxiv")

        title = " ".join((entry.get("title") or "").split())
        summary = " ".join((entry.get("summary") or "").split())
        authors = [a.get("name", "").strip() for a in entry.get("authors", []) if a.get("name")]

        abstract_url = None
        pdf_url = None
        doi = None
        for link in entry.get("links", []):
            href = link.get("href", "")
            if link.get("rel") == "alternate":
                abstract_url = href
            if link.get("title", "").lower() == "pdf" or link.get("type") == "application/pdf":
                pdf_url = href
            if not doi and "doi.org" in href:
                doi = href

        if not doi:
            doi = entry.get("arxiv_doi") or None

        arxiv_id = normalize_arxiv_id(entry_id, keep_version=keep_version)
        categories = tuple(t.get("term") for t in entry.get("tags", []) if t.get("term"))

        records.append(
            ResultRecord(
                id=arxiv_id,
                title=title,
                source=SourceTag.ARXIV,
                url=abstract_url or entry_id or None,
                authors=", ".join(authors),
                snippet=make_snippet(summary),
                access=AccessLevel.OPEN,
                retrieved_at=fetched,
                relevance=rank_relevance(position, len(entries)),
                paper=PaperDetails(
                    doi=doi,
                    arxiv_id=arxiv_id,
                    abstract=summary,
                    published=_parse_date(entry.get("published")),
                    journal=(entry.get("arxiv_journal_ref") or "").strip() or None,
                    keywords=categories,
                    pdf_url=pdf_url,
                ),
            )
        )
    return records
