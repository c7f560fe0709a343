"""Tests for the connector registry and source builders."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from LibSearch.config import parse_config_dict
from LibSearch.core.models import SOURCE_DESCRIPTORS, SourceTag
from LibSearch.sources.arxiv.source import ArxivSource
from LibSearch.sources.pubmed.source import PubMedSource
from LibSearch.sources.registry import ConnectorRegistry, build_registry, build_source, supported_source_names
from LibSearch.utils.ratelimit import RateLimiter


def _connector(tag: SourceTag, *, available: bool = True) -> MagicMock:
    connector = MagicMock()
    connector.descriptor = SOURCE_DESCRIPTORS[tag]
    connector.is_available.return_value = available
    return connector


class TestConnectorRegistry(unittest.TestCase):
    def test_register_replaces_same_tag(self) -> None:
        first = _connector(SourceTag.ARXIV)
        second = _connector(SourceTag.ARXIV)
        registry = ConnectorRegistry([first])

        registry.register(second)

        self.assertEqual(len(registry), 1)
        self.assertIs(registry.get("arxiv"), second)

    def test_get_accepts_names_and_tags(self) -> None:
        arxiv = _connector(SourceTag.ARXIV)
        registry = ConnectorRegistry([arxiv])

        self.assertIs(registry.get(SourceTag.ARXIV), arxiv)
        self.assertIs(registry.get("ARXIV"), arxiv)
        self.assertIsNone(registry.get("nope"))
        self.assertIn("arxiv", registry)
        self.assertNotIn("crossref", registry)
        self.assertNotIn(42, registry)

    def test_select_keeps_order_and_skips_unknown(self) -> None:
        arxiv = _connector(SourceTag.ARXIV)
        pubmed = _connector(SourceTag.PUBMED)
        registry = ConnectorRegistry([arxiv, pubmed])

        selected = registry.select(["pubmed", "unknown", "crossref", "arxiv", "pubmed"])

        self.assertEqual(selected, [pubmed, arxiv])

    def test_available_treats_raising_probe_as_down(self) -> None:
        up = _connector(SourceTag.ARXIV)
        down = _connector(SourceTag.PUBMED, available=False)
        broken = _connector(SourceTag.CROSSREF)
        broken.is_available.side_effect = RuntimeError("boom")
        registry = ConnectorRegistry([up, down, broken])

        self.assertEqual(registry.available(), [up])

    def test_reset_closes_and_reloads(self) -> None:
        old = _connector(SourceTag.ARXIV)
        fresh = _connector(SourceTag.CROSSREF)
        registry = ConnectorRegistry([old], loader=lambda: [fresh])

        registry.reset()

        old.close.assert_called_once()
        self.assertEqual(registry.tags(), (SourceTag.CROSSREF,))
        self.assertEqual(list(registry), [fresh])

    def test_reset_without_loader_empties(self) -> None:
        registry = ConnectorRegistry([_connector(SourceTag.ARXIV)])
        registry.reset()
        self.assertEqual(len(registry), 0)

    def test_close_isolates_failures(self) -> None:
        broken = _connector(SourceTag.ARXIV)
        broken.close.side_effect = OSError("closed twice")
        healthy = _connector(SourceTag.PUBMED)
        registry = ConnectorRegistry([broken, healthy])

        registry.close()

        healthy.close.assert_called_once()
        self.assertEqual(len(registry), 2)


class TestBuildRegistry(unittest.TestCase):
    def _config(self, sources: list[str]):
        return parse_config_dict(
            {
                "log": {"level": "INFO"},
                "search": {"sources": sources},
                "sources": {"arxiv": {"keep_version": True}, "request_timeout": 10},
            }
        )

    def test_supported_names(self) -> None:
        self.assertEqual(supported_source_names(), ("arxiv", "pubmed", "crossref", "semantic_scholar"))

    def test_build_registry_follows_configured_sources(self) -> None:
        with patch.dict("os.environ", {"PUBMED_API_KEY": "k"}):
            config = self._config(["pubmed", "arxiv"])
        registry = build_registry(config, RateLimiter())
        try:
            self.assertEqual(registry.tags(), (SourceTag.PUBMED, SourceTag.ARXIV))
            arxiv = registry.get("arxiv")
            self.assertIsInstance(arxiv, ArxivSource)
            self.assertTrue(arxiv.keep_version)
            self.assertEqual(arxiv.client.timeout, 10.0)
            pubmed = registry.get("pubmed")
            self.assertIsInstance(pubmed, PubMedSource)
            self.assertEqual(pubmed.client.api_key, "k")
        finally:
            registry.close()

    def test_build_source_rejects_unknown_name(self) -> None:
        with self.assertRaises(ValueError):
            build_source("scholar", config=self._config(["arxiv"]), rate_limiter=RateLimiter())


if __name__ == "__main__":
    unittest.main()
