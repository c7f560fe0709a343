"""Tests for the PubMed term compiler, EFetch parser and connector."""

from __future__ import annotations

import sys
import unittest
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from LibSearch.core.errors import ConnectorError
from LibSearch.core.models import AccessLevel, SourceTag
from LibSearch.services.query_parser import parse
from LibSearch.sources.pubmed.client import INTERVAL_WITH_KEY, INTERVAL_WITHOUT_KEY, PubMedApiClient
from LibSearch.sources.pubmed.parser import parse_pubmed_articles
from LibSearch.sources.pubmed.query import compile_term
from LibSearch.sources.pubmed.source import PubMedSource
from LibSearch.utils.ratelimit import RateLimiter

ARTICLES = """<?xml version="1.0"?>
<PubmedArticleSet>
  <PubmedArticle>
    <MedlineCitation>
      <PMID>111</PMID>
      <Article>
        <Journal>
          <JournalIssue><PubDate><Year>2019</Year><Month>Mar</Month><Day>7</Day></PubDate></JournalIssue>
          <Title>Nature Medicine</Title>
        </Journal>
        <ArticleTitle>Gene therapy outcomes</ArticleTitle>
        <Abstract>
          <AbstractText Label="BACKGROUND">Background text.</AbstractText>
          <AbstractText Label="RESULTS">Results text.</AbstractText>
        </Abstract>
        <AuthorList>
          <Author><LastName>Doe</LastName><ForeName>Jane</ForeName></Author>
          <Author><CollectiveName>Gene Consortium</CollectiveName></Author>
        </AuthorList>
        <ELocationID EIdType="doi">10.1000/eloc</ELocationID>
      </Article>
      <MeshHeadingList>
        <MeshHeading><DescriptorName>Genetic Therapy</DescriptorName></MeshHeading>
      </MeshHeadingList>
    </MedlineCitation>
    <PubmedData>
      <ArticleIdList>
        <ArticleId IdType="pubmed">111</ArticleId>
        <ArticleId IdType="doi">10.1000/gene</ArticleId>
        <ArticleId IdType="pmc">PMC123</ArticleId>
      </ArticleIdList>
    </PubmedData>
  </PubmedArticle>
  <PubmedArticle>
    <MedlineCitation>
      <PMID>222</PMID>
      <Article>
        <Journal>
          <JournalIssue><PubDate><MedlineDate>2015 Nov-Dec</MedlineDate></PubDate></JournalIssue>
          <ISOAbbreviation>J Biol</ISOAbbreviation>
        </Journal>
        <ArticleTitle>Second article</ArticleTitle>
        <ELocationID EIdType="doi">10.1000/second</ELocationID>
      </Article>
      <KeywordList><Keyword>biology</Keyword></KeywordList>
    </MedlineCitation>
  </PubmedArticle>
</PubmedArticleSet>
"""


class TestCompileTerm(unittest.TestCase):
    def test_terms_author_dates_and_exclusions(self) -> None:
        query = parse('"gene therapy" +crispr author:Doudna year:2015..2020 -mouse')
        self.assertEqual(
            compile_term(query),
            '"gene therapy" AND crispr AND Doudna[Author] AND 2015/01/01:2020/12/31[pdat] NOT mouse',
        )

    def test_open_start_defaults_to_1900(self) -> None:
        query = parse("x year:<2000")
        self.assertEqual(compile_term(query), "x AND 1900/01/01:2000/12/31[pdat]")

    def test_only_exclusions_compile_to_empty(self) -> None:
        self.assertEqual(compile_term(parse("-mouse")), "")


class TestPubMedParser(unittest.TestCase):
    def test_parse_articles_in_esearch_order(self) -> None:
        records = parse_pubmed_articles(ARTICLES, order=["222", "111"])

        self.assertEqual([r.id for r in records], ["222", "111"])
        self.assertEqual(records[0].relevance, 1.0)
        self.assertEqual(records[1].relevance, 0.5)

        gene = records[1]
        self.assertEqual(gene.source, SourceTag.PUBMED)
        self.assertEqual(gene.url, "https://pubmed.ncbi.nlm.nih.gov/111/")
        self.assertEqual(gene.authors, "Jane Doe, Gene Consortium")
        self.assertEqual(gene.access, AccessLevel.OPEN)
        assert gene.paper is not None
        self.assertEqual(gene.paper.doi, "10.1000/gene")
        self.assertEqual(gene.paper.pmid, "111")
        self.assertEqual(gene.paper.abstract, "BACKGROUND: Background text. RESULTS: Results text.")
        self.assertEqual(gene.paper.published, date(2019, 3, 7))
        self.assertEqual(gene.paper.journal, "Nature Medicine")
        self.assertEqual(gene.paper.keywords, ("Genetic Therapy",))
        self.assertEqual(gene.paper.pdf_url, "https://www.ncbi.nlm.nih.gov/pmc/articles/PMC123/pdf/")

        second = records[0]
        assert second.paper is not None
        self.assertEqual(second.paper.doi, "10.1000/second")
        self.assertEqual(second.paper.published, date(2015, 1, 1))
        self.assertEqual(second.paper.journal, "J Biol")
        self.assertEqual(second.access, AccessLevel.UNKNOWN)

    def test_malformed_xml_raises(self) -> None:
        with self.assertRaises(ConnectorError):
            parse_pubmed_articles("<PubmedArticleSet><oops>")


class TestPubMedSource(unittest.TestCase):
    def test_no_ids_skips_efetch(self) -> None:
        client = MagicMock()
        client.search_ids.return_value = []
        self.assertEqual(PubMedSource(client=client).search(parse("rare"), max_results=5), [])
        client.fetch_articles.assert_not_called()

    def test_search_fetches_ids(self) -> None:
        client = MagicMock()
        client.search_ids.return_value = ["111", "222"]
        client.fetch_articles.return_value = ARTICLES

        records = PubMedSource(client=client).search(parse("gene"), max_results=5)

        client.search_ids.assert_called_once_with("gene", max_results=5)
        client.fetch_articles.assert_called_once_with(["111", "222"])
        self.assertEqual([r.id for r in records], ["111", "222"])

    def test_empty_term_skips_remote_calls(self) -> None:
        client = MagicMock()
        self.assertEqual(PubMedSource(client=client).search(parse("-mouse"), max_results=5), [])
        client.search_ids.assert_not_called()


class TestPubMedClient(unittest.TestCase):
    def test_interval_depends_on_api_key(self) -> None:
        limiter = RateLimiter()
        with PubMedApiClient(rate_limiter=limiter):
            self.assertEqual(limiter.interval_for("eutils.ncbi.nlm.nih.gov"), INTERVAL_WITHOUT_KEY)
        with PubMedApiClient(api_key="k", rate_limiter=limiter):
            self.assertEqual(limiter.interval_for("eutils.ncbi.nlm.nih.gov"), INTERVAL_WITH_KEY)


if __name__ == "__main__":
    unittest.main()
