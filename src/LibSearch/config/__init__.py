from __future__ import annotations

"""Public configuration API for LibSearch."""

from LibSearch.config.app import (
    AppConfig,
    check_cross_domain,
    load_config,
    load_config_with_defaults,
    parse_config_dict,
)
from LibSearch.config.runtime import RuntimeConfig
from LibSearch.config.search import SearchConfig
from LibSearch.config.sources import RateLimitConfig, SourcesConfig
from LibSearch.config.storage import IndexConfig

__all__ = [
    "RuntimeConfig",
    "SearchConfig",
    "IndexConfig",
    "SourcesConfig",
    "RateLimitConfig",
    "AppConfig",
    "load_config",
    "load_config_with_defaults",
    "parse_config_dict",
    "check_cross_domain",
]
