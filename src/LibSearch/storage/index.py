"""Local full-text index of search results.

Records are stored in SQLite with an FTS5 table over title, abstract,
authors, keywords, journal and venue. Re-ingesting an identifier tombstones
the previous document and adds the new one; ``optimize`` purges tombstones.
Readers use their own connection and see a consistent WAL snapshot.
"""

from __future__ import annotations

import json
import re
import sqlite3
import threading
import time
from contextlib import closing
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable, Sequence

from LibSearch.core.models import AccessLevel, PaperDetails, ResultRecord, SourceTag
from LibSearch.core.query import StructuredQuery
from LibSearch.storage.lock import IndexLock
from LibSearch.utils.log import log

INDEX_DB_FILENAME = "index.db"
DEFAULT_MAX_RESULTS = 50
EARLIEST_YEAR = 1900

_WORD_RE = re.compile(r"\w")

_SCHEMA = """
    CREATE TABLE IF NOT EXISTS documents (
      seq INTEGER PRIMARY KEY AUTOINCREMENT,
      doc_id TEXT NOT NULL,
      deleted INTEGER NOT NULL DEFAULT 0,
      source TEXT NOT NULL,
      title TEXT NOT NULL,
      url TEXT,
      authors TEXT NOT NULL DEFAULT '',
      snippet TEXT NOT NULL DEFAULT '',
      access TEXT NOT NULL DEFAULT 'unknown',
      relevance REAL NOT NULL DEFAULT 0,
      retrieved_at TEXT,
      abstract TEXT NOT NULL DEFAULT '',
      doi TEXT,
      arxiv_id TEXT,
      pmid TEXT,
      publication_date TEXT,
      year INTEGER,
      journal TEXT,
      venue TEXT,
      keywords TEXT NOT NULL DEFAULT '[]',
      citation_count INTEGER NOT NULL DEFAULT 0,
      pdf_url TEXT,
      indexed_at INTEGER NOT NULL
    );

    CREATE UNIQUE INDEX IF NOT EXISTS idx_documents_live_id
      ON documents(doc_id)
      WHERE deleted = 0;

    CREATE INDEX IF NOT EXISTS idx_documents_year
      ON documents(year)
      WHERE deleted = 0;

    CREATE INDEX IF NOT EXISTS idx_documents_indexed
      ON documents(indexed_at DESC);

    CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts USING fts5(
      title, abstract, authors, keywords, journal, venue,
      tokenize = 'unicode61 remove_diacritics 2'
    );
"""

_INSERT_DOCUMENT = """
    INSERT INTO documents (
      doc_id, source, title, url, authors, snippet, access, relevance, retrieved_at,
      abstract, doi, arxiv_id, pmid, publication_date, year, journal, venue,
      keywords, citation_count, pdf_url, indexed_at
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


def default_index_dir() -> Path:
    return Path.home() / ".libsearch" / "index"


@dataclass(frozen=True, slots=True)
class IndexStats:
    """Document counts and on-disk size of an index.

    Attributes:
        live_docs: Searchable documents.
        deleted_docs: Tombstoned documents not yet purged by ``optimize``.
        total_docs: Live plus tombstoned documents.
        size_bytes: Total size of the index directory.
    """

    live_docs: int
    deleted_docs: int
    total_docs: int
    size_bytes: int

    @property
    def formatted_size(self) -> str:
        size = float(self.size_bytes)
        if size < 1024:
            return f"{self.size_bytes} B"
        for unit in ("KB", "MB"):
            size /= 1024
            if size < 1024:
                return f"{size:.1f} {unit}"
        return f"{size / 1024:.1f} GB"


class LocalIndex:
    """Single-writer local full-text index.

    Opening takes the directory's write lock (see ``IndexLock``); close the
    index, or use it as a context manager, to release it.

    Args:
        directory: Index directory; defaults to ``~/.libsearch/index``.

    Raises:
        IndexLockError: If the directory is already open in this process or
            locked by another running process.
    """

    def __init__(self, directory: Path | str | None = None) -> None:
        self.directory = Path(directory).expanduser() if directory else default_index_dir()
        self.directory.mkdir(parents=True, exist_ok=True)
        self.db_path = self.directory / INDEX_DB_FILENAME
        self._lock = IndexLock(self.directory)
        self._lock.acquire()
        try:
            self._conn: sqlite3.Connection | None = _connect(self.db_path)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.executescript(_SCHEMA)
            self._conn.commit()
        except Exception:
            self._lock.release()
            raise
        self._guard = threading.RLock()
        log.debug("Local index opened: %s", self.directory)

    def __enter__(self) -> LocalIndex:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._conn is None

    def close(self) -> None:
        """Close the writer connection and release the write lock."""
        with self._guard:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
            self._lock.release()

    def ingest(self, records: Iterable[ResultRecord]) -> int:
        """Add or replace records in one transaction.

        Args:
            records: Records keyed by their identifier.

        Returns:
            Number of records written.
        """
        with self._guard:
            conn = self._writer()
            count = 0
            now_ms = _now_ms()
            try:
                for record in records:
                    _upsert(conn, record, now_ms)
                    count += 1
                conn.commit()
            except Exception:
                conn.rollback()
                raise
        log.debug("Indexed %d records", count)
        return count

    def ingest_one(self, record: ResultRecord) -> None:
        self.ingest((record,))

    def delete(self, record_id: str) -> bool:
        """Tombstone the live document with this identifier.

        Returns:
            True when a document was deleted.
        """
        with self._guard:
            conn = self._writer()
            deleted = _tombstone(conn, record_id)
            conn.commit()
        return deleted

    def delete_all(self) -> None:
        """Remove every document, live or tombstoned."""
        with self._guard:
            conn = self._writer()
            conn.execute("DELETE FROM documents")
            conn.execute("DELETE FROM documents_fts")
            conn.commit()
        log.info("Local index cleared: %s", self.directory)

    def optimize(self) -> None:
        """Purge tombstones, merge FTS segments and compact the database file."""
        with self._guard:
            conn = self._writer()
            conn.execute("DELETE FROM documents WHERE deleted = 1")
            conn.execute("INSERT INTO documents_fts(documents_fts) VALUES ('optimize')")
            conn.commit()
            conn.execute("VACUUM")
            conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
        log.info("Local index optimized: %s", self.directory)

    def stats(self) -> IndexStats:
        with self._guard:
            conn = self._writer()
            live, deleted = conn.execute(
                "SELECT COALESCE(SUM(deleted = 0), 0), COALESCE(SUM(deleted = 1), 0) FROM documents"
            ).fetchone()
        size = sum(path.stat().st_size for path in self.directory.iterdir() if path.is_file())
        return IndexStats(live_docs=live, deleted_docs=deleted, total_docs=live + deleted, size_bytes=size)

    def document_count(self) -> int:
        return self.stats().live_docs

    def search(self, query: StructuredQuery, max_results: int = DEFAULT_MAX_RESULTS) -> list[ResultRecord]:
        """Search live documents.

        Text terms, the author filter and the type filter become one FTS5
        expression; the year range filters the numeric year. A query with
        none of these returns the most recently indexed documents.

        Args:
            query: Parsed query.
            max_results: Maximum number of records.

        Returns:
            Records ordered by BM25 score, or by recency without text clauses.
        """
        self._writer()
        match = build_match_expression(query)
        where = ["d.deleted = 0"]
        params: list[object] = []
        if query.year_from is not None or query.year_to is not None:
            where.append("d.year BETWEEN ? AND ?")
            params.append(query.year_from if query.year_from is not None else EARLIEST_YEAR)
            params.append(query.year_to if query.year_to is not None else date.today().year)

        if match:
            sql = (
                "SELECT d.*, bm25(documents_fts) AS score FROM documents_fts "
                "JOIN documents AS d ON d.seq = documents_fts.rowid "
                f"WHERE documents_fts MATCH ? AND {' AND '.join(where)} "
                "ORDER BY score LIMIT ?"
            )
            params = [match, *params, max_results]
        else:
            sql = (
                "SELECT d.*, NULL AS score FROM documents AS d "
                f"WHERE {' AND '.join(where)} "
                "ORDER BY d.indexed_at DESC, d.seq DESC LIMIT ?"
            )
            params.append(max_results)

        log.debug("Local index search: match=%s params=%s", match, params)
        with closing(self._reader()) as reader:
            rows = reader.execute(sql, params).fetchall()
        return [_row_to_record(row) for row in rows]

    def search_all(self, max_results: int = DEFAULT_MAX_RESULTS) -> list[ResultRecord]:
        """Return the most recently indexed documents."""
        return self.search(StructuredQuery(), max_results)

    def search_by_author(self, author: str, max_results: int = DEFAULT_MAX_RESULTS) -> list[ResultRecord]:
        return self.search(StructuredQuery(original=f"author:{author}", author=author), max_results)

    def search_by_year(
        self,
        year_from: int | None,
        year_to: int | None,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[ResultRecord]:
        return self.search(StructuredQuery(year_from=year_from, year_to=year_to), max_results)

    def search_by_keyword(self, keyword: str, max_results: int = DEFAULT_MAX_RESULTS) -> list[ResultRecord]:
        return self.search(StructuredQuery(original=keyword, keywords=(keyword,)), max_results)

    def _writer(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError(f"Local index is closed: {self.directory}")
        return self._conn

    def _reader(self) -> sqlite3.Connection:
        conn = _connect(self.db_path)
        conn.execute("PRAGMA query_only = ON")
        return conn


def build_match_expression(query: StructuredQuery) -> str:
    """Build the FTS5 MATCH expression for a query, or "" when it has no text clauses."""
    clauses: list[str] = []

    positive = [_fts_phrase(p) for p in query.phrases]
    positive.extend(_fts_phrase(t) for t in query.positive_terms())
    positive = [p for p in positive if p]
    if positive:
        text = " AND ".join(positive)
        for term in query.excluded:
            negated = _fts_phrase(term)
            if negated:
                text = f"({text}) NOT {negated}"
        clauses.append(f"({text})")

    if query.author:
        author = _fts_phrase(query.author)
        if author:
            clauses.append(f"authors : {author}")
    if query.doc_type:
        doc_type = _fts_phrase(query.doc_type)
        if doc_type:
            clauses.append(f"{{venue journal}} : {doc_type}")
    return " AND ".join(clauses)


def _fts_phrase(term: str) -> str:
    value = (term or "").strip()
    if not _WORD_RE.search(value):
        return ""
    return '"' + value.replace('"', '""') + '"'


def _connect(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _tombstone(conn: sqlite3.Connection, record_id: str) -> bool:
    rows = conn.execute("SELECT seq FROM documents WHERE doc_id = ? AND deleted = 0", (record_id,)).fetchall()
    for row in rows:
        conn.execute("DELETE FROM documents_fts WHERE rowid = ?", (row["seq"],))
    conn.execute("UPDATE documents SET deleted = 1 WHERE doc_id = ? AND deleted = 0", (record_id,))
    return bool(rows)


def _upsert(conn: sqlite3.Connection, record: ResultRecord, now_ms: int) -> None:
    _tombstone(conn, record.id)
    paper = record.paper or PaperDetails()
    published = paper.published
    cursor = conn.execute(
        _INSERT_DOCUMENT,
        (
            record.id,
            record.source.value,
            record.title,
            record.url,
            record.authors,
            record.snippet,
            record.access.value,
            record.relevance,
            record.retrieved_at.isoformat() if record.retrieved_at else None,
            paper.abstract,
            paper.doi,
            paper.arxiv_id,
            paper.pmid,
            published.isoformat() if published else None,
            published.year if published else None,
            paper.journal,
            paper.venue,
            json.dumps(list(paper.keywords), ensure_ascii=False),
            paper.citation_count,
            paper.pdf_url,
            now_ms,
        ),
    )
    conn.execute(
        "INSERT INTO documents_fts(rowid, title, abstract, authors, keywords, journal, venue) "
        "VALUES (?, ?, ?, ?, ?, ?, ?)",
        (
            cursor.lastrowid,
            record.title,
            paper.abstract,
            record.authors,
            " ".join(paper.keywords),
            paper.journal or "",
            paper.venue or "",
        ),
    )


def _row_to_record(row: sqlite3.Row) -> ResultRecord:
    """Rebuild a record; paper details exist only when authors or abstract were stored."""
    authors = row["authors"] or ""
    abstract = row["abstract"] or ""
    paper = None
    if authors.strip() or abstract.strip():
        published = row["publication_date"]
        paper = PaperDetails(
            doi=row["doi"],
            arxiv_id=row["arxiv_id"],
            pmid=row["pmid"],
            abstract=abstract,
            published=date.fromisoformat(published) if published else None,
            journal=row["journal"],
            venue=row["venue"],
            keywords=tuple(_load_keywords(row["keywords"])),
            citation_count=row["citation_count"] or 0,
            pdf_url=row["pdf_url"],
        )
    score = row["score"]
    return ResultRecord(
        id=row["doc_id"],
        title=row["title"],
        source=SourceTag(row["source"]),
        url=row["url"],
        authors=authors,
        snippet=row["snippet"] or "",
        access=_access(row["access"]),
        retrieved_at=_parse_timestamp(row["retrieved_at"]),
        relevance=-float(score) if score is not None else float(row["relevance"] or 0.0),
        paper=paper,
    )


def _load_keywords(raw: str | None) -> Sequence[str]:
    if not raw:
        return ()
    try:
        values = json.loads(raw)
    except ValueError:
        return ()
    return [str(v) for v in values] if isinstance(values, list) else ()


def _access(raw: str | None) -> AccessLevel:
    try:
        return AccessLevel(raw or AccessLevel.UNKNOWN.value)
    except ValueError:
        return AccessLevel.UNKNOWN


def _parse_timestamp(raw: str | None) -> datetime:
    if raw:
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            pass
    return datetime.now(timezone.utc)
