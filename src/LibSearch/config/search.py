"""Search dispatch configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from LibSearch.config.common import (
    expect_bool,
    expect_float,
    expect_int,
    expect_str_list,
    get_optional_value,
    get_section,
)
from LibSearch.sources.registry import supported_source_names

_ALLOWED_SOURCES = frozenset(supported_source_names())


@dataclass(frozen=True, slots=True)
class SearchConfig:
    """Store validated sources and dispatcher settings."""

    sources: tuple[str, ...]
    max_results_per_source: int
    timeout_seconds: float
    max_concurrent_sources: int
    auto_index: bool


def load_search(raw: Mapping[str, Any]) -> SearchConfig:
    """Load the ``search`` section.

    Args:
        raw: Root configuration mapping.

    Returns:
        Parsed search configuration.

    Raises:
        TypeError: If config types are invalid.
        ValueError: If the section is missing or lists unknown sources.
    """
    section = get_section(raw, "search", required=True)
    return SearchConfig(
        sources=_parse_sources(get_optional_value(section, "sources", list(supported_source_names()))),
        max_results_per_source=expect_int(
            get_optional_value(section, "max_results_per_source", 50),
            "search.max_results_per_source",
        ),
        timeout_seconds=expect_float(
            get_optional_value(section, "timeout_seconds", 30.0),
            "search.timeout_seconds",
        ),
        max_concurrent_sources=expect_int(
            get_optional_value(section, "max_concurrent_sources", 5),
            "search.max_concurrent_sources",
        ),
        auto_index=expect_bool(get_optional_value(section, "auto_index", True), "search.auto_index"),
    )


def check_search(config: SearchConfig) -> None:
    """Validate search constraints.

    Raises:
        ValueError: If values violate search constraints.
    """
    if config.max_results_per_source <= 0:
        raise ValueError("search.max_results_per_source must be positive")
    if config.timeout_seconds <= 0:
        raise ValueError("search.timeout_seconds must be positive")
    if config.max_concurrent_sources <= 0:
        raise ValueError("search.max_concurrent_sources must be positive")
    if not config.sources:
        raise ValueError("search.sources must include at least one source")


def _parse_sources(value: Any) -> tuple[str, ...]:
    """Normalize configured source names.

    Names are lower-cased with ``-`` mapped to ``_``; blanks and repeats are
    dropped and configured order is kept.

    Raises:
        TypeError: If value is not a string list.
        ValueError: If a name is unknown or nothing remains.
    """
    normalized: list[str] = []
    for item in expect_str_list(value, "search.sources"):
        source = item.strip().lower().replace("-", "_")
        if not source:
            continue
        if source not in _ALLOWED_SOURCES:
            raise ValueError(f"search.sources has unknown source: {source}")
        if source not in normalized:
            normalized.append(source)

    if not normalized:
        raise ValueError("search.sources must include at least one source")
    return tuple(normalized)
