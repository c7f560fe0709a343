"""Crossref query compiler."""

from __future__ import annotations

from LibSearch.core.query import StructuredQuery

SELECT_FIELDS = (
    "DOI",
    "title",
    "author",
    "abstract",
    "published",
    "published-print",
    "published-online",
    "issued",
    "container-title",
    "publisher",
    "type",
    "subject",
    "is-referenced-by-count",
    "link",
    "license",
    "URL",
)


def compile_crossref_params(query: StructuredQuery) -> dict[str, str]:
    """Compile a structured query into Crossref ``/works`` parameters.

    Terms go to ``query.bibliographic``, the author to ``query.author`` and
    the date window to ``from-pub-date``/``until-pub-date`` filters. Excluded
    terms are not sent; they are applied after fetching.
    """
    parts: list[str] = [f'"{p.strip()}"' for p in query.phrases if p.strip()]
    parts.extend(_dedup_preserve_order([t.strip() for t in query.positive_terms() if t.strip()]))

    params: dict[str, str] = {"select": ",".join(SELECT_FIELDS)}
    text = " ".join(parts).strip()
    if text:
        params["query.bibliographic"] = text
    if query.author and query.author.strip():
        params["query.author"] = query.author.strip()

    filters: list[str] = []
    start, end = query.date_window()
    if start is not None:
        filters.append(f"from-pub-date:{start.isoformat()}")
    if end is not None:
        filters.append(f"until-pub-date:{end.isoformat()}")
    if filters:
        params["filter"] = ",".join(filters)
    return params


def _dedup_preserve_order(terms: list[str]) -> list[str]:
    """Remove duplicates while preserving first occurrence order."""
    seen: set[str] = set()
    unique: list[str] = []
    for term in terms:
        key = term.casefold()
        if key in seen:
            continue
        seen.add(key)
        unique.append(term)
    return unique
