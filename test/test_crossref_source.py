"""Tests for the Crossref compiler, parser and excluded-term filter."""

from __future__ import annotations

import sys
import unittest
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock, patch

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from LibSearch.core.models import AccessLevel, PaperDetails, ResultRecord, SourceTag
from LibSearch.core.query import StructuredQuery
from LibSearch.services.query_parser import parse
from LibSearch.sources.base import apply_excluded_filter, excluded_terms
from LibSearch.sources.crossref.client import CrossrefApiClient
from LibSearch.sources.crossref.parser import parse_crossref_items
from LibSearch.sources.crossref.query import compile_crossref_params
from LibSearch.sources.crossref.source import CrossrefSource

ITEM = {
    "DOI": "10.1000/ABC",
    "title": ["Diffusion Models in Vision"],
    "author": [{"given": "Ada", "family": "Lovelace"}, {"name": "Vision Group"}],
    "abstract": "<jats:p>We propose   a <jats:italic>new</jats:italic> method.</jats:p>",
    "published-print": {"date-parts": [[2022, 5]]},
    "issued": {"date-parts": [[2021]]},
    "container-title": ["Journal of Vision"],
    "publisher": "Vision Press",
    "type": "journal-article",
    "subject": ["Computer Vision"],
    "is-referenced-by-count": 42,
    "link": [{"URL": "https://example.org/paper.pdf", "content-type": "application/pdf"}],
    "license": [{"URL": "https://creativecommons.org/licenses/by/4.0/"}],
}


def _make_record(title: str = "", abstract: str = "") -> ResultRecord:
    return ResultRecord(
        id="test-id",
        title=title,
        source=SourceTag.CROSSREF,
        paper=PaperDetails(abstract=abstract),
    )


class TestCompileCrossrefParams(unittest.TestCase):
    def test_bibliographic_author_and_dates(self) -> None:
        params = compile_crossref_params(parse('"diffusion model" +vision author:Ho year:2020..2022 -survey'))
        self.assertEqual(params["query.bibliographic"], '"diffusion model" vision')
        self.assertEqual(params["query.author"], "Ho")
        self.assertEqual(params["filter"], "from-pub-date:2020-01-01,until-pub-date:2022-12-31")
        self.assertIn("DOI", params["select"].split(","))
        self.assertNotIn("survey", params["query.bibliographic"])

    def test_no_terms_no_bibliographic(self) -> None:
        params = compile_crossref_params(StructuredQuery(original="author:x", author="x"))
        self.assertNotIn("query.bibliographic", params)


class TestCrossrefParser(unittest.TestCase):
    def test_parse_item(self) -> None:
        (record,) = parse_crossref_items([ITEM])
        self.assertEqual(record.id, "10.1000/abc")
        self.assertEqual(record.url, "https://doi.org/10.1000/ABC")
        self.assertEqual(record.source, SourceTag.CROSSREF)
        self.assertEqual(record.access, AccessLevel.OPEN)
        self.assertEqual(record.relevance, 1.0)
        assert record.paper is not None
        self.assertEqual(record.paper.abstract, "We propose a new method.")
        self.assertEqual(record.paper.published, date(2022, 5, 1))
        self.assertEqual(record.paper.journal, "Journal of Vision")
        self.assertIsNone(record.paper.venue)
        self.assertEqual(record.paper.keywords, ("Article", "Computer Vision"))
        self.assertEqual(record.paper.citation_count, 42)
        self.assertEqual(record.paper.pdf_url, "https://example.org/paper.pdf")

    def test_publisher_is_venue_without_journal(self) -> None:
        item = {"title": ["Book"], "publisher": "Springer", "license": [{"URL": "https://example.org/tdm"}]}
        (record,) = parse_crossref_items([item])
        assert record.paper is not None
        self.assertEqual(record.paper.venue, "Springer")
        self.assertEqual(record.access, AccessLevel.LICENSED)
        self.assertTrue(record.id.startswith("crossref:"))


class TestExcludedTerms(unittest.TestCase):
    def test_empty_query_returns_empty_set(self) -> None:
        self.assertEqual(excluded_terms(StructuredQuery()), frozenset())

    def test_terms_are_casefolded(self) -> None:
        query = StructuredQuery(excluded=("Survey", "REVIEW"))
        self.assertEqual(excluded_terms(query), frozenset({"survey", "review"}))


class TestApplyExcludedFilter(unittest.TestCase):
    def test_empty_terms_returns_all_records(self) -> None:
        records = [_make_record("A Survey of ML"), _make_record("Diffusion Models")]
        self.assertEqual(apply_excluded_filter(records, frozenset()), records)

    def test_filters_record_with_term_in_title(self) -> None:
        keep = _make_record("Diffusion Models in Vision")
        drop = _make_record("A Survey of Diffusion Models")
        self.assertEqual(apply_excluded_filter([keep, drop], frozenset({"survey"})), [keep])

    def test_filters_record_with_term_in_abstract(self) -> None:
        keep = _make_record("Diffusion Models", abstract="We propose a new method.")
        drop = _make_record("Diffusion Models", abstract="This survey reviews recent work.")
        self.assertEqual(apply_excluded_filter([keep, drop], frozenset({"survey"})), [keep])

    def test_matching_is_case_insensitive(self) -> None:
        self.assertEqual(apply_excluded_filter([_make_record("A SURVEY of Methods")], frozenset({"survey"})), [])

    def test_multiple_terms(self) -> None:
        keep = _make_record("Diffusion Models")
        drop_survey = _make_record("A Survey of Methods")
        drop_review = _make_record("Review of Transformers")
        result = apply_excluded_filter([keep, drop_survey, drop_review], frozenset({"survey", "review"}))
        self.assertEqual(result, [keep])


class TestCrossrefSource(unittest.TestCase):
    def test_search_filters_excluded_terms(self) -> None:
        client = MagicMock()
        client.fetch_works.return_value = [ITEM, {"DOI": "10.1/s", "title": ["A survey of diffusion"]}]

        records = CrossrefSource(client=client).search(parse("diffusion -survey"), max_results=10)

        self.assertEqual([r.id for r in records], ["10.1000/abc"])
        self.assertEqual(client.fetch_works.call_args.kwargs["max_results"], 10)

    def test_client_sends_rows_and_mailto(self) -> None:
        client = CrossrefApiClient(mailto="me@example.org")
        response = MagicMock()
        response.json.return_value = {"message": {"items": [ITEM]}}
        with patch.object(client, "get", return_value=response) as get:
            items = client.fetch_works(query_params={"query.bibliographic": "x", "filter": " "}, max_results=5000)
        client.close()
        params = get.call_args.kwargs["params"]
        self.assertEqual(params["rows"], "1000")
        self.assertEqual(params["mailto"], "me@example.org")
        self.assertNotIn("filter", params)
        self.assertEqual(items, [ITEM])


if __name__ == "__main__":
    unittest.main()
