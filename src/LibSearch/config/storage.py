from __future__ import annotations

"""Local index configuration."""

from dataclasses import dataclass
from typing import Any, Mapping

from LibSearch.config.common import (
    expect_bool,
    expect_str,
    get_optional_value,
    get_section,
)

DEFAULT_INDEX_DIR = "~/.libsearch/index"


@dataclass(frozen=True, slots=True)
class IndexConfig:
    """Local index configuration."""

    enabled: bool
    dir: str


def load_index(raw: Mapping[str, Any]) -> IndexConfig:
    """Load the optional ``index`` section."""
    section = get_section(raw, "index", required=False)
    return IndexConfig(
        enabled=expect_bool(get_optional_value(section, "enabled", True), "index.enabled"),
        dir=expect_str(get_optional_value(section, "dir", DEFAULT_INDEX_DIR), "index.dir"),
    )


def check_index(config: IndexConfig) -> None:
    if config.enabled and not config.dir.strip():
        raise ValueError("index.dir must not be empty")
