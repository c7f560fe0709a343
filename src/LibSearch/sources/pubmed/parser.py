"""PubMed EFetch XML parser."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Sequence
from xml.etree import ElementTree

from LibSearch.core.errors import ConnectorError
from LibSearch.core.models import AccessLevel, PaperDetails, ResultRecord, SourceTag
from LibSearch.sources.base import make_snippet, rank_relevance

PUBMED_ARTICLE_URL = "https://pubmed.ncbi.nlm.nih.gov/{pmid}/"
PMC_PDF_URL = "https://www.ncbi.nlm.nih.gov/pmc/articles/{pmc}/pdf/"

_MONTHS = {
    name: idx
    for idx, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}


def parse_pubmed_articles(
    xml_text: str,
    *,
    order: Sequence[str] = (),
    retrieved_at: datetime | None = None,
) -> list[ResultRecord]:
    """Parse a PubmedArticleSet document into records.

    Args:
        xml_text: EFetch XML payload.
        order: PMIDs in ESearch relevance order; records follow this order
            and are scored by their position in it.
        retrieved_at: Retrieval timestamp stamped on every record.

    Returns:
        Parsed records.

    Raises:
        ConnectorError: If the XML cannot be parsed.
    """
    try:
        root = ElementTree.fromstring(xml_text)
    except ElementTree.ParseError as error:
        raise ConnectorError(f"PubMed returned malformed XML: {error}", source="pubmed") from error

    fetched = retrieved_at or datetime.now(timezone.utc)
    parsed = [
        record
        for record in (_parse_article(article, fetched) for article in root.iter("PubmedArticle"))
        if record is not None
    ]

    rank = {pmid: idx for idx, pmid in enumerate(order)}
    parsed.sort(key=lambda record: rank.get(record.id, len(rank)))
    total = len(parsed)
    return [replace(record, relevance=rank_relevance(position, total)) for position, record in enumerate(parsed)]


def _parse_article(article: ElementTree.Element, fetched: datetime) -> ResultRecord | None:
    citation = article.find("MedlineCitation")
    if citation is None:
        return None
    pmid = _text(citation.find("PMID"))
    if not pmid:
        return None

    info = citation.find("Article")
    title = _text(info.find("ArticleTitle")) if info is not None else ""
    abstract = _extract_abstract(info)
    journal = None
    published = None
    if info is not None:
        journal_node = info.find("Journal")
        if journal_node is not None:
            journal = _text(journal_node.find("Title")) or _text(journal_node.find("ISOAbbreviation")) or None
            published = _extract_pub_date(journal_node.find("JournalIssue/PubDate"))

    article_ids = _article_ids(article)
    doi = article_ids.get("doi") or _elocation_doi(info)
    pmc = article_ids.get("pmc")
    keywords = _unique(
        [_text(node) for node in citation.findall("MeshHeadingList/MeshHeading/DescriptorName")]
        + [_text(node) for node in citation.findall("KeywordList/Keyword")]
    )

    return ResultRecord(
        id=pmid,
        title=title or "Untitled",
        source=SourceTag.PUBMED,
        url=PUBMED_ARTICLE_URL.format(pmid=pmid),
        authors=", ".join(_extract_authors(info)),
        snippet=make_snippet(abstract or title),
        access=AccessLevel.OPEN if pmc else AccessLevel.UNKNOWN,
        retrieved_at=fetched,
        paper=PaperDetails(
            doi=doi or None,
            pmid=pmid,
            abstract=abstract,
            published=published,
            journal=journal,
            keywords=keywords,
            pdf_url=PMC_PDF_URL.format(pmc=pmc) if pmc else None,
        ),
    )


def _extract_abstract(info: ElementTree.Element | None) -> str:
    """Join AbstractText sections, prefixing labelled sections with their label."""
    if info is None:
        return ""
    sections: list[str] = []
    for node in info.findall("Abstract/AbstractText"):
        text = _text(node)
        if not text:
            continue
        label = (node.get("Label") or "").strip()
        sections.append(f"{label}: {text}" if label else text)
    return " ".join(sections)


def _extract_authors(info: ElementTree.Element | None) -> list[str]:
    if info is None:
        return []
    names: list[str] = []
    for author in info.findall("AuthorList/Author"):
        collective = _text(author.find("CollectiveName"))
        if collective:
            names.append(collective)
            continue
        fore = _text(author.find("ForeName")) or _text(author.find("Initials"))
        last = _text(author.find("LastName"))
        full = " ".join(part for part in (fore, last) if part)
        if full:
            names.append(full)
    return names


def _extract_pub_date(node: ElementTree.Element | None) -> date | None:
    """Read Year/Month/Day, falling back to the year in MedlineDate."""
    if node is None:
        return None
    year_text = _text(node.find("Year"))
    if not year_text:
        medline = _text(node.find("MedlineDate"))
        year_text = medline[:4] if medline[:4].isdigit() else ""
    if not year_text.isdigit():
        return None
    month = _parse_month(_text(node.find("Month")))
    day_text = _text(node.find("Day"))
    day = int(day_text) if day_text.isdigit() else 1
    try:
        return date(int(year_text), month, day)
    except ValueError:
        return date(int(year_text), month, 1)


def _parse_month(value: str) -> int:
    if not value:
        return 1
    if value.isdigit():
        month = int(value)
        return month if 1 <= month <= 12 else 1
    return _MONTHS.get(value[:3].lower(), 1)


def _article_ids(article: ElementTree.Element) -> dict[str, str]:
    ids: dict[str, str] = {}
    for node in article.findall("PubmedData/ArticleIdList/ArticleId"):
        id_type = (node.get("IdType") or "").lower()
        value = _text(node)
        if id_type and value and id_type not in ids:
            ids[id_type] = value
    return ids


def _elocation_doi(info: ElementTree.Element | None) -> str:
    if info is None:
        return ""
    for node in info.findall("ELocationID"):
        if (node.get("EIdType") or "").lower() == "doi":
            return _text(node)
    return ""


def _text(node: ElementTree.Element | None) -> str:
    """Return all text under a node, whitespace collapsed."""
    if node is None:
        return ""
    return " ".join("".join(node.itertext()).split())


def _unique(values: list[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            out.append(value)
    return tuple(out)
