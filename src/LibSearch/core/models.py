from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional


class SourceTag(str, Enum):
    """Closed set of remote bibliographic sources."""

    ARXIV = "arxiv"
    PUBMED = "pubmed"
    CROSSREF = "crossref"
    SEMANTIC_SCHOLAR = "semantic_scholar"

    @classmethod
    def parse(cls, value: str | SourceTag) -> SourceTag:
        """Resolve a tag from its value, accepting dashes and any case.

        Raises:
            ValueError: If the value does not name a known source.
        """
        if isinstance(value, SourceTag):
            return value
        normalized = str(value).strip().lower().replace("-", "_")
        return cls(normalized)


class AccessLevel(str, Enum):
    """Access classification of a result's full text."""

    OPEN = "open"
    LICENSED = "licensed"
    RESTRICTED = "restricted"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class SourceDescriptor:
    """Static metadata about one source.

    Attributes:
        tag: Source tag.
        display_name: Human readable name.
        base_url: Landing site of the service.
        domain: Host used as the rate-limit key.
    """

    tag: SourceTag
    display_name: str
    base_url: str
    domain: str


SOURCE_DESCRIPTORS: dict[SourceTag, SourceDescriptor] = {
    SourceTag.ARXIV: SourceDescriptor(
        tag=SourceTag.ARXIV,
        display_name="arXiv",
        base_url="https://arxiv.org",
        domain="export.arxiv.org",
    ),
    SourceTag.PUBMED: SourceDescriptor(
        tag=SourceTag.PUBMED,
        display_name="PubMed",
        base_url="https://pubmed.ncbi.nlm.nih.gov",
        domain="eutils.ncbi.nlm.nih.gov",
    ),
    SourceTag.CROSSREF: SourceDescriptor(
        tag=SourceTag.CROSSREF,
        display_name="Crossref",
        base_url="https://www.crossref.org",
        domain="api.crossref.org",
    ),
    SourceTag.SEMANTIC_SCHOLAR: SourceDescriptor(
        tag=SourceTag.SEMANTIC_SCHOLAR,
        display_name="Semantic Scholar",
        base_url="https://www.semanticscholar.org",
        domain="api.semanticscholar.org",
    ),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class PaperDetails:
    """Scholarly fields carried by records that describe a paper.

    Attributes:
        doi: Digital Object Identifier if available.
        arxiv_id: arXiv preprint id (version suffix kept).
        pmid: PubMed id.
        abstract: Full abstract text.
        published: Publication date if known.
        journal: Journal name.
        venue: Conference or other venue name.
        keywords: Subject terms reported by the source.
        citation_count: Number of citing works.
        pdf_url: Direct URL to a PDF.
    """

    doi: Optional[str] = None
    arxiv_id: Optional[str] = None
    pmid: Optional[str] = None
    abstract: str = ""
    published: Optional[date] = None
    journal: Optional[str] = None
    venue: Optional[str] = None
    keywords: tuple[str, ...] = ()
    citation_count: int = 0
    pdf_url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ResultRecord:
    """Unified result shape that every connector maps to.

    Records are immutable; the aggregator builds merged copies.

    Attributes:
        id: Source-local identifier (not globally unique).
        title: Result title.
        source: Source that produced the record.
        url: Landing page URL.
        authors: Display author list, comma joined.
        snippet: Short excerpt for listings.
        access: Full-text access classification.
        retrieved_at: UTC time the record was fetched.
        relevance: Score used for ranking; 0 when the source gives none.
        paper: Scholarly details, or None for a bare record.
    """

    id: str
    title: str
    source: SourceTag
    url: Optional[str] = None
    authors: str = ""
    snippet: str = ""
    access: AccessLevel = AccessLevel.UNKNOWN
    retrieved_at: datetime = field(default_factory=_utcnow)
    relevance: float = 0.0
    paper: Optional[PaperDetails] = None

    @property
    def is_paper(self) -> bool:
        return self.paper is not None

    @property
    def citation_count(self) -> int:
        """Citation count, 0 for bare records."""
        return self.paper.citation_count if self.paper is not None else 0

    @property
    def published(self) -> Optional[date]:
        return self.paper.published if self.paper is not None else None

    @property
    def display_source(self) -> str:
        return SOURCE_DESCRIPTORS[self.source].display_name
