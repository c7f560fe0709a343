"""Command runner for coordinating CLI execution.

Manages component lifecycle, resource cleanup, logging configuration,
and error handling for command execution.
"""

from __future__ import annotations

from typing import Callable, TypeVar

import click

from LibSearch.cli.commands import IndexCommand, SearchCommand, StatusCommand
from LibSearch.config import AppConfig
from LibSearch.core.errors import IndexLockError
from LibSearch.services import create_dispatcher
from LibSearch.storage import LocalIndex, create_index
from LibSearch.utils.log import configure_logging, log

T = TypeVar("T")


class CommandRunner:
    """Orchestrates command execution with proper resource management.

    Handles logging configuration, component creation, cleanup of the
    dispatcher and index, and error handling for CLI commands.
    """

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    def run_search(
        self,
        action: str,
        *,
        text: str,
        sources: tuple[str, ...] = (),
        offline: bool = False,
        max_results: int | None = None,
        min_citations: int | None = None,
    ) -> None:
        """Execute the search command.

        Args:
            action: The CLI command name (e.g., 'search').
            text: Raw query text.
            sources: Source tags to query; empty means every configured source.
            offline: Search the local index instead of the remote sources.
            max_results: Per-source (online) or total (offline) result limit.
            min_citations: Drop papers cited fewer times.

        Raises:
            click.Abort: When the search fails.
        """

        def run() -> None:
            index = create_index(self.config) if offline else self._open_index_for_caching()
            try:
                dispatcher = None if offline else create_dispatcher(self.config, index=index)
            except Exception:
                if index is not None:
                    index.close()
                raise
            try:
                SearchCommand(
                    text=text,
                    dispatcher=dispatcher,
                    index=index,
                    sources=sources,
                    offline=offline,
                    max_results=max_results,
                    min_citations=min_citations,
                ).execute()
            finally:
                if dispatcher is not None:
                    dispatcher.close()
                elif index is not None:
                    index.close()

        self._run(action, "Search", run)

    def run_status(self, action: str) -> None:
        """Execute the source status command.

        Raises:
            click.Abort: When probing fails.
        """

        def run() -> None:
            dispatcher = create_dispatcher(self.config)
            try:
                StatusCommand(dispatcher).execute()
            finally:
                dispatcher.close()

        self._run(action, "Status", run)

    def run_index(self, action: str, operation: str) -> None:
        """Execute an index maintenance operation: stats, optimize or clear.

        Raises:
            click.Abort: When the index cannot be opened or the operation fails.
        """

        def run() -> None:
            with LocalIndex(self.config.index.dir) as index:
                getattr(IndexCommand(index), operation)()

        self._run(action, f"Index {operation}", run)

    def _open_index_for_caching(self) -> LocalIndex | None:
        """Open the index for auto-indexing online results.

        A locked index only disables caching; the remote search still runs.
        """
        try:
            return create_index(self.config)
        except IndexLockError as error:
            log.warning("Local index unavailable, results will not be cached: %s", error)
            return None

    def _run(self, action: str, label: str, body: Callable[[], T]) -> T:
        configure_logging(
            level=self.config.runtime.level,
            action=action,
            log_to_file=self.config.runtime.to_file,
            log_dir=self.config.runtime.dir,
        )
        try:
            return body()
        except Exception as e:  # noqa: BLE001 - cli boundary
            log.error("%s failed: %s", label, e)
            raise click.Abort from e
