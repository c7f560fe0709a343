"""Output renderers for command results.

Console rendering only: each renderer returns text and ``write_console``
emits it through the logger.
"""

from __future__ import annotations

from LibSearch.renderers.console import (
    render_index_stats,
    render_report_summary,
    render_source_status,
    render_text,
    write_console,
)

__all__ = [
    "render_index_stats",
    "render_report_summary",
    "render_source_status",
    "render_text",
    "write_console",
]
