"""Query DSL parser.

Turns free text with embedded filters into a ``StructuredQuery``:

    "graph neural" author:Kipf year:2017..2020 +semi -survey type:article

Filters are extracted in a fixed order (phrases, author, year, type, site,
filetype, after/before), each at most once; the remainder is split into
boolean-marked terms.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Iterable, Sequence

from LibSearch.core.errors import InvalidQuery
from LibSearch.core.query import StructuredQuery
from LibSearch.utils.log import log

_PHRASE_RE = re.compile(r'"([^"]+)"')
# Author words stop before the next ``key:`` token.
_AUTHOR_RE = re.compile(r"author:(\w+(?:[ \t]+(?!\w+:)\w+)*)")
_YEAR_RE = re.compile(r"year:([<>])?(\d{4})(?:(\.\.\.?)(\d{4})?)?(?!\d)")
_TYPE_RE = re.compile(r"type:(\w+)")
_SITE_RE = re.compile(r"site:([\w.-]+)")
_FILETYPE_RE = re.compile(r"filetype:(\w+)")
_AFTER_RE = re.compile(r"after:(\d{4}-\d{2}-\d{2})")
_BEFORE_RE = re.compile(r"before:(\d{4}-\d{2}-\d{2})")

# Symbolic operators only count as standalone tokens.
_BOOLEAN_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\s+AND\s+"), " +"),
    (re.compile(r"\s+&&\s+"), " +"),
    (re.compile(r"\s+OR\s+"), " | "),
    (re.compile(r"\s+\|\|\s+"), " | "),
    (re.compile(r"\s+NOT\s+"), " -"),
    (re.compile(r"\s+!\s+"), " -"),
)
_OR_MARKER = "|"


def parse(text: str) -> StructuredQuery:
    """Parse raw query text.

    Args:
        text: User query text.

    Returns:
        Parsed query. Term tuples keep first-seen order without duplicates.

    Raises:
        InvalidQuery: If text is blank or a date filter is not a real date.
    """
    if text is None or not text.strip():
        raise InvalidQuery("Query text must not be empty")

    working = text
    phrases = [match.strip() for match in _PHRASE_RE.findall(working) if match.strip()]
    working = _PHRASE_RE.sub(" ", working)

    author, working = _take(_AUTHOR_RE, working)
    year_match = _YEAR_RE.search(working)
    year_from: int | None = None
    year_to: int | None = None
    if year_match is not None:
        year_from, year_to = _year_bounds(year_match)
        working = _cut(working, year_match)

    doc_type, working = _take(_TYPE_RE, working)
    site, working = _take(_SITE_RE, working)
    filetype, working = _take(_FILETYPE_RE, working)
    after_raw, working = _take(_AFTER_RE, working)
    before_raw, working = _take(_BEFORE_RE, working)

    keywords, required, excluded = _split_terms(working)
    return StructuredQuery(
        original=text,
        keywords=keywords,
        required=required,
        excluded=excluded,
        phrases=_unique(phrases),
        author=author.strip() if author else None,
        year_from=year_from,
        year_to=year_to,
        doc_type=doc_type,
        site=site,
        filetype=filetype,
        date_after=_parse_date(after_raw, "after") if after_raw else None,
        date_before=_parse_date(before_raw, "before") if before_raw else None,
    )


def validate_query(text: str) -> bool:
    """Return whether text parses into a query with at least one term.

    Never raises; parse failures are logged and reported as invalid.
    """
    try:
        return parse(text).is_valid()
    except InvalidQuery as error:
        log.warning("Invalid query: %s", error)
        return False


def query_from_keywords(
    keywords: Sequence[str],
    *,
    author: str | None = None,
    year_from: int | None = None,
    year_to: int | None = None,
) -> StructuredQuery:
    """Build an OR query from a stored keyword list.

    Multi-word keywords become phrases. Filter arguments that are not None
    override anything parsed from the keywords.

    Raises:
        InvalidQuery: If no keyword is non-blank.
    """
    parts: list[str] = []
    for keyword in keywords:
        value = keyword.strip().replace('"', "")
        if not value:
            continue
        parts.append(f'"{value}"' if " " in value else value)
    query = parse(" OR ".join(parts))

    overrides = {
        name: value
        for name, value in (("author", author), ("year_from", year_from), ("year_to", year_to))
        if value is not None
    }
    return query.with_filters(**overrides) if overrides else query


def _take(pattern: re.Pattern[str], text: str) -> tuple[str | None, str]:
    """Extract the first match's group and cut that occurrence out of text."""
    match = pattern.search(text)
    if match is None:
        return None, text
    return match.group(1), _cut(text, match)


def _cut(text: str, match: re.Match[str]) -> str:
    return f"{text[:match.start()]} {text[match.end():]}"


def _year_bounds(match: re.Match[str]) -> tuple[int | None, int | None]:
    """Translate a ``year:`` match into inclusive bounds."""
    op, first, range_sep, second = match.groups()
    year = int(first)
    if op == ">":
        return year, None
    if op == "<":
        return None, year
    if range_sep:
        return year, int(second) if second else None
    return year, year


def _parse_date(value: str, name: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as error:
        raise InvalidQuery(f"{name}: is not a valid date: {value}") from error


def _split_terms(text: str) -> tuple[tuple[str, ...], tuple[str, ...], tuple[str, ...]]:
    """Normalize boolean connectives and split the remainder into term groups."""
    normalized = f" {text} "
    for pattern, replacement in _BOOLEAN_RULES:
        normalized = pattern.sub(replacement, normalized)

    keywords: list[str] = []
    required: list[str] = []
    excluded: list[str] = []
    for token in normalized.split():
        if token == _OR_MARKER:
            continue
        sign = ""
        while token and token[0] in "+-":
            sign = token[0]
            token = token[1:]
        if not token:
            continue
        if sign == "+":
            required.append(token)
        elif sign == "-":
            excluded.append(token)
        else:
            keywords.append(token)
    return _unique(keywords), _unique(required), _unique(excluded)


def _unique(terms: Iterable[str]) -> tuple[str, ...]:
    seen: set[str] = set()
    out: list[str] = []
    for term in terms:
        if term in seen:
            continue
        seen.add(term)
        out.append(term)
    return tuple(out)
