"""Tests for the Semantic Scholar compiler, parser and connector."""

from __future__ import annotations

import sys
import unittest
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

import requests

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from LibSearch.core.models import AccessLevel, SourceTag
from LibSearch.services.query_parser import parse
from LibSearch.sources.semantic_scholar.client import SemanticScholarApiClient
from LibSearch.sources.semantic_scholar.parser import parse_s2_papers
from LibSearch.sources.semantic_scholar.query import compile_s2_params
from LibSearch.sources.semantic_scholar.source import SemanticScholarSource
from LibSearch.utils.ratelimit import RateLimiter

PAPERS = [
    {
        "paperId": "abc123",
        "externalIds": {"DOI": "10.1000/s2", "ArXiv": "2101.00001", "PubMed": 998},
        "title": "Graph Attention Networks",
        "abstract": "We present graph attention networks.",
        "year": 2018,
        "authors": [{"name": "Petar Velickovic"}, {"name": ""}, {"name": "Yoshua Bengio"}],
        "publicationDate": "2018-02-15",
        "venue": "International Conference on Learning Representations",
        "citationCount": 9000,
        "openAccessPdf": {"url": "https://arxiv.org/pdf/1710.10903"},
        "fieldsOfStudy": ["Computer Science", "Mathematics"],
    },
    {
        "paperId": "def456",
        "title": "A journal paper",
        "year": 2020,
        "venue": "Journal of Graphs",
        "citationCount": None,
    },
    {"title": "No id, dropped"},
]


class TestCompileS2Params(unittest.TestCase):
    def test_query_fields_limit_and_year(self) -> None:
        params = compile_s2_params(parse('"graph attention" networks author:Bengio year:2017..2019'), max_results=500)
        self.assertEqual(params["query"], "graph attention networks Bengio")
        self.assertEqual(params["limit"], "100")
        self.assertEqual(params["year"], "2017-2019")
        self.assertIn("citationCount", params["fields"])

    def test_year_forms(self) -> None:
        self.assertEqual(compile_s2_params(parse("x year:2020"), max_results=5)["year"], "2020")
        self.assertEqual(compile_s2_params(parse("x year:>2020"), max_results=5)["year"], "2020-")
        self.assertEqual(compile_s2_params(parse("x year:<2020"), max_results=5)["year"], "-2020")

    def test_no_text_returns_empty(self) -> None:
        self.assertEqual(compile_s2_params(parse("-survey"), max_results=5), {})


class TestS2Parser(unittest.TestCase):
    def test_parse_papers(self) -> None:
        records = parse_s2_papers(PAPERS)

        self.assertEqual(len(records), 2)
        gat, journal = records
        self.assertEqual(gat.id, "abc123")
        self.assertEqual(gat.source, SourceTag.SEMANTIC_SCHOLAR)
        self.assertEqual(gat.url, "https://www.semanticscholar.org/paper/abc123")
        self.assertEqual(gat.authors, "Petar Velickovic, Yoshua Bengio")
        self.assertEqual(gat.access, AccessLevel.OPEN)
        assert gat.paper is not None
        self.assertEqual(gat.paper.doi, "10.1000/s2")
        self.assertEqual(gat.paper.arxiv_id, "2101.00001")
        self.assertEqual(gat.paper.pmid, "998")
        self.assertEqual(gat.paper.published, date(2018, 2, 15))
        self.assertIsNone(gat.paper.journal)
        self.assertEqual(gat.paper.venue, "International Conference on Learning Representations")
        self.assertEqual(gat.paper.citation_count, 9000)
        self.assertEqual(gat.paper.keywords, ("Computer Science", "Mathematics"))

        assert journal.paper is not None
        self.assertEqual(journal.paper.journal, "Journal of Graphs")
        self.assertEqual(journal.paper.published, date(2020, 1, 1))
        self.assertEqual(journal.paper.citation_count, 0)
        self.assertEqual(journal.access, AccessLevel.UNKNOWN)


class TestSemanticScholarSource(unittest.TestCase):
    def test_query_without_text_skips_api(self) -> None:
        client = MagicMock()
        self.assertEqual(SemanticScholarSource(client=client).search(parse("-x"), max_results=5), [])
        client.search_papers.assert_not_called()

    def test_search_applies_excluded_terms(self) -> None:
        client = MagicMock()
        client.search_papers.return_value = PAPERS
        records = SemanticScholarSource(client=client).search(parse("graph -journal"), max_results=5)
        self.assertEqual([r.id for r in records], ["abc123"])

    def test_probe_is_permissive(self) -> None:
        client = MagicMock()
        source = SemanticScholarSource(client=client)

        client.probe_status.return_value = 405
        self.assertTrue(source.is_available())
        client.probe_status.return_value = 503
        self.assertFalse(source.is_available())
        client.probe_status.side_effect = requests.Timeout("slow")
        self.assertTrue(source.is_available())
        client.probe_status.side_effect = requests.ConnectTimeout("slow connect")
        self.assertTrue(source.is_available())
        client.probe_status.side_effect = requests.ConnectionError("refused")
        self.assertFalse(source.is_available())
        client.probe_status.side_effect = ValueError("odd")
        self.assertTrue(source.is_available())

    def test_client_sends_api_key_and_sets_interval(self) -> None:
        limiter = RateLimiter()
        client = SemanticScholarApiClient(api_key="secret", rate_limiter=limiter)
        self.assertEqual(limiter.interval_for("api.semanticscholar.org"), 1.0)
        response = MagicMock()
        response.json.return_value = {"data": PAPERS[:1]}
        client.get = MagicMock(return_value=response)  # type: ignore[method-assign]

        items = client.search_papers({"query": "x"})

        self.assertEqual(items, PAPERS[:1])
        self.assertEqual(client.get.call_args.kwargs["headers"], {"x-api-key": "secret"})
        client.close()

    def test_missing_key_slows_interval(self) -> None:
        limiter = RateLimiter()
        SemanticScholarApiClient(rate_limiter=limiter).close()
        self.assertEqual(limiter.interval_for("api.semanticscholar.org"), 3.0)


if __name__ == "__main__":
    unittest.main()
