"""Structured query model shared by connectors and the local index."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date
from typing import Any, Optional


_FILTER_FIELDS = frozenset(
    {
        "author",
        "year_from",
        "year_to",
        "doc_type",
        "site",
        "filetype",
        "date_after",
        "date_before",
    }
)


@dataclass(frozen=True, slots=True)
class StructuredQuery:
    """Parsed user query.

    Term fields are ordered tuples without duplicates. Filter fields are
    optional; year bounds are inclusive.

    Attributes:
        original: Raw query text as typed by the user.
        keywords: Plain terms.
        required: Terms that must match (``+term`` / ``AND``).
        excluded: Terms that must not match (``-term`` / ``NOT``).
        optional: Soft-or terms.
        phrases: Exact phrases taken from double quotes.
        author: Author filter.
        year_from: Inclusive lower year bound.
        year_to: Inclusive upper year bound.
        doc_type: Document type filter (``type:``).
        site: Site filter (``site:``).
        filetype: File type filter (``filetype:``).
        date_after: Lower date bound (``after:``).
        date_before: Upper date bound (``before:``).
    """

    original: str = ""
    keywords: tuple[str, ...] = ()
    required: tuple[str, ...] = ()
    excluded: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()
    phrases: tuple[str, ...] = ()
    author: Optional[str] = None
    year_from: Optional[int] = None
    year_to: Optional[int] = None
    doc_type: Optional[str] = None
    site: Optional[str] = None
    filetype: Optional[str] = None
    date_after: Optional[date] = None
    date_before: Optional[date] = None

    def is_valid(self) -> bool:
        """Return True when the query carries at least one search term.

        Filters alone never make a query valid.
        """
        if not self.original.strip():
            return False
        return bool(self.keywords or self.required or self.optional or self.phrases)

    def positive_terms(self) -> tuple[str, ...]:
        """Return required, optional and plain terms in that order, deduplicated."""
        seen: set[str] = set()
        out: list[str] = []
        for term in (*self.required, *self.optional, *self.keywords):
            key = term.casefold()
            if key in seen:
                continue
            seen.add(key)
            out.append(term)
        return tuple(out)

    def with_filters(self, **overrides: Any) -> StructuredQuery:
        """Return a copy with filter fields replaced.

        Args:
            **overrides: Filter field values, e.g. ``year_from=2020``.

        Returns:
            New query; the receiver is unchanged.

        Raises:
            TypeError: If a name is not a filter field.
        """
        unknown = set(overrides) - _FILTER_FIELDS
        if unknown:
            raise TypeError(f"Not a filter field: {', '.join(sorted(unknown))}")
        return replace(self, **overrides)

    def date_window(self) -> tuple[Optional[date], Optional[date]]:
        """Return the effective (start, end) date bounds.

        Year bounds expand to whole years; explicit ``after:``/``before:``
        dates win when they are narrower.
        """
        start = date(self.year_from, 1, 1) if self.year_from is not None else None
        end = date(self.year_to, 12, 31) if self.year_to is not None else None
        if self.date_after is not None and (start is None or self.date_after > start):
            start = self.date_after
        if self.date_before is not None and (end is None or self.date_before < end):
            end = self.date_before
        return start, end

    def to_query_string(self) -> str:
        """Render terms as one search string.

        Order: quoted phrases, ``+required``, optional, keywords, ``-excluded``.
        """
        parts: list[str] = [f'"{phrase}"' for phrase in self.phrases]
        parts.extend(f"+{term}" for term in self.required)
        parts.extend(self.optional)
        parts.extend(self.keywords)
        parts.extend(f"-{term}" for term in self.excluded)
        return " ".join(parts)

    def describe(self) -> dict[str, Any]:
        """Return non-empty fields as a plain mapping for logging."""
        out: dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value in (None, (), ""):
                continue
            out[item.name] = value
        return out
