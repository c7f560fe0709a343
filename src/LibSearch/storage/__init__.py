"""Local index storage for LibSearch.

Provides the SQLite full-text index that caches search results for offline
queries, and its directory write lock.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from LibSearch.storage.index import IndexStats, LocalIndex
from LibSearch.storage.lock import IndexLock
from LibSearch.utils.log import log

if TYPE_CHECKING:
    from LibSearch.config import AppConfig


def create_index(config: AppConfig) -> LocalIndex | None:
    """Open the local index when enabled in config.

    Args:
        config: Application configuration containing index settings.

    Returns:
        Open index, or None when ``index.enabled`` is false.

    Raises:
        IndexLockError: If the index directory is locked.
    """
    if not config.index.enabled:
        return None
    index = LocalIndex(config.index.dir)
    log.info("Local index enabled: %s", index.directory)
    return index


__all__ = [
    "IndexLock",
    "IndexStats",
    "LocalIndex",
    "create_index",
]
