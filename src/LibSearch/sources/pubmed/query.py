"""PubMed (Entrez) term compiler."""

from __future__ import annotations

from datetime import date

from LibSearch.core.query import StructuredQuery

EARLIEST_YEAR = 1900


def _quote(term: str) -> str:
    value = term.strip().replace('"', "")
    if " " in value:
        return f'"{value}"'
    return value


def compile_term(query: StructuredQuery, *, today: date | None = None) -> str:
    """Compile a structured query into an Entrez ``term`` string.

    Plain and required terms are ANDed, optional terms form one OR group,
    the author maps to ``[Author]``, the date window to ``[pdat]``, and
    excluded terms are appended with ``NOT``.
    """
    parts: list[str] = [f'"{p.strip()}"' for p in query.phrases if p.strip()]
    parts.extend(_quote(t) for t in (*query.required, *query.keywords) if t.strip())
    optional = [_quote(t) for t in query.optional if t.strip()]
    if optional:
        parts.append("(" + " OR ".join(optional) + ")" if len(optional) > 1 else optional[0])
    if query.author and query.author.strip():
        parts.append(f"{_quote(query.author)}[Author]")

    start, end = query.date_window()
    if start is not None or end is not None:
        first = start or date(EARLIEST_YEAR, 1, 1)
        last = end or (today or date.today())
        parts.append(f"{first:%Y/%m/%d}:{last:%Y/%m/%d}[pdat]")

    term = " AND ".join(parts)
    for excluded in query.excluded:
        if excluded.strip():
            term = f"{term} NOT {_quote(excluded)}" if term else ""
    return term
