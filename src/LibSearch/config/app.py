from __future__ import annotations

"""Application config orchestration and YAML loading entrypoints."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from LibSearch.config.runtime import RuntimeConfig, check_runtime, load_runtime
from LibSearch.config.search import SearchConfig, check_search, load_search
from LibSearch.config.sources import (
    RateLimitConfig,
    SourcesConfig,
    check_rate_limit,
    check_sources,
    load_rate_limit,
    load_sources,
)
from LibSearch.config.storage import IndexConfig, check_index, load_index

DEFAULT_CONFIG_PATH = Path("config/default.yml")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application root configuration."""

    runtime: RuntimeConfig
    search: SearchConfig
    index: IndexConfig
    sources: SourcesConfig
    rate_limit: RateLimitConfig


def parse_config_dict(raw: Mapping[str, Any]) -> AppConfig:
    """Parse normalized mapping into AppConfig."""
    runtime = load_runtime(raw)
    search = load_search(raw)
    index = load_index(raw)
    sources = load_sources(raw)
    rate_limit = load_rate_limit(raw)

    check_runtime(runtime)
    check_search(search)
    check_index(index)
    check_sources(sources)
    check_rate_limit(rate_limit)

    config = AppConfig(
        runtime=runtime,
        search=search,
        index=index,
        sources=sources,
        rate_limit=rate_limit,
    )
    check_cross_domain(config)
    return config


def load_config(path: Path) -> AppConfig:
    """Load YAML config file without default merge."""
    return load_config_with_defaults(path, default_path=path)


def load_config_with_defaults(config_path: Path, default_path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """Load config by merging defaults and optional override."""
    base = parse_yaml(default_path.read_text(encoding="utf-8"))
    if config_path == default_path:
        return parse_config_dict(base)
    override = parse_yaml(config_path.read_text(encoding="utf-8"))
    return parse_config_dict(merge_config_dicts(base, override))


def check_cross_domain(config: AppConfig) -> None:
    """Validate cross-domain constraints."""
    if config.sources.request_timeout > config.search.timeout_seconds:
        raise ValueError("sources.request_timeout must not exceed search.timeout_seconds")


def parse_yaml(text: str) -> dict[str, Any]:
    """Parse raw YAML text into a mapping."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, Mapping):
        raise ValueError("Config root must be a mapping/object")
    return dict(data)


def merge_config_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge two config mappings; lists and scalars in ``override`` replace."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], Mapping) and isinstance(value, Mapping):
            merged[key] = merge_config_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged
