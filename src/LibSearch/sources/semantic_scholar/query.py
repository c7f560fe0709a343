"""Semantic Scholar query compiler."""

from __future__ import annotations

from LibSearch.core.query import StructuredQuery

S2_FIELDS = (
    "paperId",
    "externalIds",
    "title",
    "abstract",
    "year",
    "authors",
    "publicationDate",
    "venue",
    "citationCount",
    "openAccessPdf",
    "fieldsOfStudy",
)
S2_MAX_LIMIT = 100


def compile_s2_params(query: StructuredQuery, *, max_results: int) -> dict[str, str]:
    """Compile a structured query into ``/paper/search`` parameters.

    Returns an empty mapping when the query has no searchable text; the
    search endpoint rejects empty queries.
    """
    parts = [p.strip() for p in query.phrases if p.strip()]
    parts.extend(t.strip() for t in query.positive_terms() if t.strip())
    if query.author and query.author.strip():
        parts.append(query.author.strip())
    text = " ".join(parts)
    if not text:
        return {}

    params = {
        "query": text,
        "fields": ",".join(S2_FIELDS),
        "limit": str(max(1, min(max_results, S2_MAX_LIMIT))),
    }
    year_range = _year_range(query)
    if year_range:
        params["year"] = year_range
    return params


def _year_range(query: StructuredQuery) -> str:
    start, end = query.date_window()
    if start is None and end is None:
        return ""
    first = str(start.year) if start is not None else ""
    last = str(end.year) if end is not None else ""
    if first and first == last:
        return first
    return f"{first}-{last}"
