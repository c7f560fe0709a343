"""Tests for the arXiv query compiler, feed parser and connector."""

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
from LibSearch.sources.arxiv.parser import normalize_arxiv_id, parse_arxiv_feed
from LibSearch.sources.arxiv.query import compile_search_query
from LibSearch.sources.arxiv.source import ArxivSource

FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom" xmlns:arxiv="http://arxiv.org/schemas/atom">
  <title>ArXiv Query</title>
  <entry>
    <id>http://arxiv.org/abs/1706.03762v5</id>
    <published>2017-06-12T17:57:34Z</published>
    <title>Attention Is All
      You Need</title>
    <summary>  The dominant sequence transduction models are based on complex recurrent networks.  </summary>
    <author><name>Ashish Vaswani</name></author>
    <author><name>Noam Shazeer</name></author>
    <link href="http://arxiv.org/abs/1706.03762v5" rel="alternate" type="text/html"/>
    <link title="pdf" href="http://arxiv.org/pdf/1706.03762v5" rel="related" type="application/pdf"/>
    <category term="cs.CL" scheme="http://arxiv.org/schemas/atom"/>
    <category term="cs.LG" scheme="http://arxiv.org/schemas/atom"/>
  </entry>
  <entry>
    <id>http://arxiv.org/abs/1810.04805v2</id>
    <published>2018-10-11T00:50:01Z</published>
    <title>BERT</title>
    <summary>Language representation pre-training.</summary>
    <author><name>Jacob Devlin</name></author>
    <link href="http://arxiv.org/abs/1810.04805v2" rel="alternate" type="text/html"/>
    <link title="doi" href="http://dx.doi.org/10.18653/v1/N19-1423" rel="related"/>
  </entry>
</feed>
"""

ERROR_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <entry>
    <id>http://arxiv.org/api/errors#incorrect_id_format_for_1234</id>
    <title>Error</title>
    <summary>incorrect id format for 1234</summary>
  </entry>
</feed>
"""


class TestCompileSearchQuery(unittest.TestCase):
    def test_full_query(self) -> None:
        query = parse('"graph neural" +message passing -survey author:Kipf year:2017..2018')
        self.assertEqual(
            compile_search_query(query),
            '(all:"graph neural" AND all:message AND all:passing AND au:Kipf '
            "AND submittedDate:[201701010000 TO 201812312359]) ANDNOT all:survey",
        )

    def test_hyphen_variants(self) -> None:
        query = parse("self-supervised")
        self.assertEqual(compile_search_query(query), '(all:"self supervised" OR all:"self-supervised")')

    def test_open_date_window_uses_today(self) -> None:
        query = parse("x after:2024-02-01")
        self.assertEqual(
            compile_search_query(query, today=date(2024, 3, 5)),
            "all:x AND submittedDate:[202402010000 TO 202403052359]",
        )

    def test_empty_query(self) -> None:
        self.assertEqual(compile_search_query(parse("author:Hinton").with_filters(author=None)), "all:*")


class TestArxivParser(unittest.TestCase):
    def test_normalize_arxiv_id(self) -> None:
        self.assertEqual(normalize_arxiv_id("http://arxiv.org/abs/1706.03762v5", keep_version=False), "1706.03762")
        self.assertEqual(normalize_arxiv_id("http://arxiv.org/abs/1706.03762v5", keep_version=True), "1706.03762v5")
        self.assertEqual(normalize_arxiv_id("https://arxiv.org/pdf/2101.00001v2.pdf", keep_version=False), "2101.00001")
        self.assertEqual(normalize_arxiv_id("arXiv:hep-th/9901001v1", keep_version=False), "hep-th/9901001")

    def test_parse_feed(self) -> None:
        records = parse_arxiv_feed(FEED)

        self.assertEqual(len(records), 2)
        first, second = records
        self.assertEqual(first.id, "1706.03762")
        self.assertEqual(first.source, SourceTag.ARXIV)
        self.assertEqual(first.title, "Attention Is All You Need")
        self.assertEqual(first.authors, "Ashish Vaswani, Noam Shazeer")
        self.assertEqual(first.access, AccessLevel.OPEN)
        self.assertEqual(first.url, "http://arxiv.org/abs/1706.03762v5")
        self.assertEqual(first.relevance, 1.0)
        self.assertEqual(second.relevance, 0.5)
        assert first.paper is not None
        self.assertEqual(first.paper.arxiv_id, "1706.03762")
        self.assertEqual(first.paper.published, date(2017, 6, 12))
        self.assertEqual(first.paper.pdf_url, "http://arxiv.org/pdf/1706.03762v5")
        self.assertEqual(first.paper.keywords, ("cs.CL", "cs.LG"))
        self.assertTrue(first.snippet.startswith("The dominant sequence"))
        assert second.paper is not None
        self.assertEqual(second.paper.doi, "http://dx.doi.org/10.18653/v1/N19-1423")

    def test_api_error_entry_raises(self) -> None:
        with self.assertRaises(ConnectorError):
            parse_arxiv_feed(ERROR_FEED)

    def test_empty_feed(self) -> None:
        empty = '<?xml version="1.0"?><feed xmlns="http://www.w3.org/2005/Atom"><title>x</title></feed>'
        self.assertEqual(parse_arxiv_feed(empty), [])


class TestArxivSource(unittest.TestCase):
    def test_search_passes_compiled_query_and_caps(self) -> None:
        client = MagicMock()
        client.fetch_feed.return_value = FEED
        source = ArxivSource(client=client)

        records = source.search(parse("attention"), max_results=1)

        self.assertEqual(len(records), 1)
        kwargs = client.fetch_feed.call_args.kwargs
        self.assertEqual(kwargs["search_query"], "all:attention")
        self.assertEqual(kwargs["max_results"], 1)

    def test_probe_failure_is_unavailable(self) -> None:
        client = MagicMock()
        client.is_reachable.side_effect = RuntimeError("offline")
        self.assertFalse(ArxivSource(client=client).is_available())


if __name__ == "__main__":
    unittest.main()
