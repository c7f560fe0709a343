"""Source connector and rate limit configuration.

API keys never live in the YAML file: each source names the environment
variable to read, and the value is resolved when the config is loaded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from LibSearch.config.common import (
    expect_bool,
    expect_float,
    expect_float_map,
    expect_str,
    get_optional_value,
    get_section,
    read_env,
)


@dataclass(frozen=True, slots=True)
class SourcesConfig:
    """Per-source connector settings."""

    request_timeout: float
    arxiv_keep_version: bool
    pubmed_api_key_env: str
    pubmed_api_key: str
    semantic_scholar_api_key_env: str
    semantic_scholar_api_key: str
    crossref_mailto_env: str
    crossref_mailto: str


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    """Minimum seconds between requests, by default and per domain."""

    default_interval: float
    domains: Mapping[str, float] = field(default_factory=dict)


def load_sources(raw: Mapping[str, Any]) -> SourcesConfig:
    """Load the optional ``sources`` section and resolve credentials from the environment.

    Args:
        raw: Root configuration mapping.

    Returns:
        Parsed source configuration.

    Raises:
        TypeError: If config types are invalid.
    """
    section = get_section(raw, "sources", required=False)
    arxiv = get_section(section, "arxiv", required=False)
    pubmed = get_section(section, "pubmed", required=False)
    crossref = get_section(section, "crossref", required=False)
    semantic_scholar = get_section(section, "semantic_scholar", required=False)

    pubmed_env = expect_str(
        get_optional_value(pubmed, "api_key_env", "PUBMED_API_KEY"),
        "sources.pubmed.api_key_env",
    )
    s2_env = expect_str(
        get_optional_value(semantic_scholar, "api_key_env", "SEMANTIC_SCHOLAR_API_KEY"),
        "sources.semantic_scholar.api_key_env",
    )
    mailto_env = expect_str(
        get_optional_value(crossref, "mailto_env", "CROSSREF_MAILTO"),
        "sources.crossref.mailto_env",
    )
    return SourcesConfig(
        request_timeout=expect_float(
            get_optional_value(section, "request_timeout", 30.0),
            "sources.request_timeout",
        ),
        arxiv_keep_version=expect_bool(
            get_optional_value(arxiv, "keep_version", False),
            "sources.arxiv.keep_version",
        ),
        pubmed_api_key_env=pubmed_env,
        pubmed_api_key=read_env(pubmed_env),
        semantic_scholar_api_key_env=s2_env,
        semantic_scholar_api_key=read_env(s2_env),
        crossref_mailto_env=mailto_env,
        crossref_mailto=read_env(mailto_env),
    )


def check_sources(config: SourcesConfig) -> None:
    if config.request_timeout <= 0:
        raise ValueError("sources.request_timeout must be positive")


def load_rate_limit(raw: Mapping[str, Any]) -> RateLimitConfig:
    """Load the optional ``rate_limit`` section."""
    section = get_section(raw, "rate_limit", required=False)
    domains = expect_float_map(get_optional_value(section, "domains", {}) or {}, "rate_limit.domains")
    return RateLimitConfig(
        default_interval=expect_float(
            get_optional_value(section, "default_interval", 1.0),
            "rate_limit.default_interval",
        ),
        domains={domain.strip().lower(): interval for domain, interval in domains.items()},
    )


def check_rate_limit(config: RateLimitConfig) -> None:
    """Validate rate limit constraints.

    Raises:
        ValueError: If an interval is negative or a domain is blank.
    """
    if config.default_interval < 0:
        raise ValueError("rate_limit.default_interval must be >= 0")
    for domain, interval in config.domains.items():
        if not domain:
            raise ValueError("rate_limit.domains keys must not be empty")
        if interval < 0:
            raise ValueError(f"rate_limit.domains.{domain} must be >= 0")
