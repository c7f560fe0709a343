"""Click CLI interface definitions.

Defines the command-line interface structure and routes commands
to their respective runners.
"""

from __future__ import annotations

from pathlib import Path

import click
from dotenv import load_dotenv

from LibSearch.cli.runner import CommandRunner
from LibSearch.config import load_config, load_config_with_defaults
from LibSearch.config.app import DEFAULT_CONFIG_PATH
from LibSearch.sources.registry import supported_source_names


@click.group(help="LibSearch: federated academic search across arXiv, PubMed, Crossref and Semantic Scholar.")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False, exists=True),
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    help="Path to YAML config file; merged over the default config when it exists.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path) -> None:
    """CLI entry group.

    Loads environment variables from .env file before processing config.
    """
    # API keys are resolved from the environment while the config loads.
    load_dotenv()

    if config_path != DEFAULT_CONFIG_PATH and DEFAULT_CONFIG_PATH.exists():
        cfg = load_config_with_defaults(config_path)
    else:
        cfg = load_config(config_path)
    ctx.obj = CommandRunner(cfg)


@cli.command("search")
@click.argument("query")
@click.option(
    "--source",
    "sources",
    multiple=True,
    type=click.Choice(supported_source_names(), case_sensitive=False),
    help="Source to query; repeat for several. Defaults to all configured sources.",
)
@click.option("--offline", is_flag=True, help="Search the local index only.")
@click.option("--max-results", type=click.IntRange(min=1), default=None, help="Maximum results per source.")
@click.option("--min-citations", type=click.IntRange(min=0), default=None, help="Minimum citation count.")
@click.pass_context
def search_cmd(
    ctx: click.Context,
    query: str,
    sources: tuple[str, ...],
    offline: bool,
    max_results: int | None,
    min_citations: int | None,
) -> None:
    """Search sources with QUERY and print ranked results.

    QUERY accepts quoted phrases, +required and -excluded terms, AND/OR/NOT,
    and filters such as author:, year:, type:, after: and before:.
    """
    runner: CommandRunner = ctx.obj
    runner.run_search(
        ctx.command.name,
        text=query,
        sources=tuple(s.lower() for s in sources),
        offline=offline,
        max_results=max_results,
        min_citations=min_citations,
    )


@cli.command("status")
@click.pass_context
def status_cmd(ctx: click.Context) -> None:
    """Probe configured sources and print their availability."""
    runner: CommandRunner = ctx.obj
    runner.run_status(ctx.command.name)


@cli.group("index")
def index_group() -> None:
    """Maintain the local full-text index."""


@index_group.command("stats")
@click.pass_context
def index_stats_cmd(ctx: click.Context) -> None:
    """Print document counts and size."""
    ctx.obj.run_index("index", "stats")


@index_group.command("optimize")
@click.pass_context
def index_optimize_cmd(ctx: click.Context) -> None:
    """Purge deleted documents and compact the index."""
    ctx.obj.run_index("index", "optimize")


@index_group.command("clear")
@click.confirmation_option(prompt="Remove every document from the local index?")
@click.pass_context
def index_clear_cmd(ctx: click.Context) -> None:
    """Remove every document."""
    ctx.obj.run_index("index", "clear")
