"""CLI package for LibSearch command orchestration."""

from __future__ import annotations

__all__ = ["CommandRunner", "main"]

from LibSearch.cli.runner import CommandRunner
from LibSearch.cli.ui import cli


def main() -> None:
    """Run LibSearch CLI.

    Entry point referenced by console script in pyproject.toml.
    """
    cli()
