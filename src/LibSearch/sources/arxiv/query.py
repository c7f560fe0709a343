"""arXiv query compiler.

Compiles a ``StructuredQuery`` into an arXiv Atom API ``search_query`` string.

Mapping
- keywords / required -> all:<term> joined with AND
- optional            -> (all:<a> OR all:<b>)
- phrases             -> all:"<phrase>"
- author              -> au:<name>
- year / after/before -> submittedDate:[YYYYMMDD0000 TO YYYYMMDD2359]
- excluded            -> ANDNOT (all:<x> OR all:<y>)

An empty query compiles to ``all:*``.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Iterable

from LibSearch.core.query import StructuredQuery

_RE_NEEDS_QUOTE = re.compile(r"[\s-]")
_EARLIEST_SUBMISSION = date(1991, 1, 1)


def _quote(term: str) -> str:
    t = term.strip().replace('"', "")
    if not t:
        return ""
    if _RE_NEEDS_QUOTE.search(t):
        return f'"{t}"'
    return t


def _expand_variants(keyword: str) -> list[str]:
    k = keyword.strip()
    out = {k}
    if " " in k:
        out.add(k.replace(" ", "-"))
    if "-" in k:
        out.add(k.replace("-", " "))
    return sorted(out, key=lambda v: (-len(v), v))


def _term_group(field: str, term: str) -> str:
    variants = [v for v in _expand_variants(term) if v]
    if len(variants) == 1:
        return f"{field}:{_quote(variants[0])}"
    return "(" + " OR ".join(f"{field}:{_quote(v)}" for v in variants) + ")"


def _or_group(field: str, terms: Iterable[str]) -> str:
    groups = [_term_group(field, t) for t in terms if t.strip()]
    if not groups:
        return ""
    if len(groups) == 1:
        return groups[0]
    return "(" + " OR ".join(groups) + ")"


def _date_clause(query: StructuredQuery, *, today: date | None = None) -> str:
    start, end = query.date_window()
    if start is None and end is None:
        return ""
    start = start or _EARLIEST_SUBMISSION
    end = end or (today or date.today())
    return f"submittedDate:[{start:%Y%m%d}0000 TO {end:%Y%m%d}2359]"


def compile_search_query(query: StructuredQuery, *, today: date | None = None) -> str:
    """Compile a structured query into an arXiv ``search_query``.

    Args:
        query: Parsed query.
        today: Upper bound used for open-ended date ranges.

    Returns:
        arXiv ``search_query`` string.
    """
    parts: list[str] = []
    for phrase in query.phrases:
        if phrase.strip():
            parts.append(f'all:"{phrase.strip()}"')
    for term in (*query.required, *query.keywords):
        if term.strip():
            parts.append(_term_group("all", term))
    optional = _or_group("all", query.optional)
    if optional:
        parts.append(optional)
    if query.author and _quote(query.author):
        parts.append(f"au:{_quote(query.author)}")
    date_clause = _date_clause(query, today=today)
    if date_clause:
        parts.append(date_clause)

    positive = " AND ".join(parts) if parts else "all:*"
    negative = _or_group("all", query.excluded)
    if negative:
        return f"({positive}) ANDNOT {negative}"
    return positive
