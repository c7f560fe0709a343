"""Console text output renderers.

Renders result records, search reports and index statistics into
human-friendly text that the CLI prints through the logger.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Mapping

from LibSearch.core.models import ResultRecord, SourceTag
from LibSearch.services.search import SearchReport
from LibSearch.storage.index import IndexStats
from LibSearch.utils.log import log


def _fmt_date(value: date | None) -> str:
    return value.isoformat() if value else "-"


def render_text(records: Iterable[ResultRecord]) -> str:
    """Render records into a human-readable text block.

    Args:
        records: Records in display order.

    Returns:
        A formatted string ready to be printed.
    """
    lines: list[str] = []
    for idx, record in enumerate(records, start=1):
        lines.append(f"{idx}. {record.title}")
        if record.authors:
            lines.append(f"   Authors: {record.authors}")
        lines.append(f"   Source: {record.display_source}  Access: {record.access.value}")
        paper = record.paper
        if paper is not None:
            venue = paper.journal or paper.venue
            if venue:
                lines.append(f"   Venue: {venue}")
            lines.append(f"   Published: {_fmt_date(paper.published)}  Citations: {paper.citation_count}")
            if paper.doi:
                lines.append(f"   DOI: {paper.doi}")
        if record.url:
            lines.append(f"   URL: {record.url}")
        if paper is not None and paper.pdf_url:
            lines.append(f"   PDF: {paper.pdf_url}")
        if record.snippet:
            lines.append(f"   {record.snippet}")
        lines.append("")
    if not lines:
        return "No results.\n"
    return "\n".join(lines).rstrip() + "\n"


def render_report_summary(report: SearchReport) -> str:
    """Render per-source counts and timing of a federated search."""
    lines = [f"Results: {len(report.results)} in {report.elapsed_ms} ms"]
    for outcome in report.sources:
        if outcome.timed_out:
            status = "timed out"
        elif outcome.error:
            status = f"failed ({outcome.error})"
        else:
            status = f"{outcome.count} results in {outcome.duration_ms} ms"
        lines.append(f"  {outcome.tag.value}: {status}")
    return "\n".join(lines) + "\n"


def render_source_status(status: Mapping[SourceTag, bool]) -> str:
    lines = [f"  {tag.value}: {'available' if ok else 'unavailable'}" for tag, ok in status.items()]
    return "Sources:\n" + "\n".join(lines) + "\n"


def render_index_stats(stats: IndexStats) -> str:
    return (
        f"Live documents: {stats.live_docs}\n"
        f"Deleted documents: {stats.deleted_docs}\n"
        f"Total documents: {stats.total_docs}\n"
        f"Size: {stats.formatted_size}\n"
    )


def write_console(text: str) -> None:
    """Emit rendered text line by line through the logger."""
    for line in text.splitlines():
        log.info(line)
