"""CSL style discovery and cache maintenance commands."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from src.domain.errors import ConfigurationError, ResourceFetchError
from src.infrastructure.adapters.resource_cache import CslResourceClient, StyleMetadata
from src.infrastructure.cli.commands.build import load_settings
from src.infrastructure.logging import configure_logging, new_run_correlation_id

app = typer.Typer(help="Browse published CSL styles and manage the resource cache")
console = Console()
logger = logging.getLogger(__name__)


def _client(config_path: Path | None, verbose: bool) -> CslResourceClient:
    configure_logging(logging.INFO, verbose=verbose)
    new_run_correlation_id()
    settings = load_settings(config_path)
    cache = settings.cache
    return CslResourceClient(cache.directory, ttl=cache.ttl, enabled=cache.enabled)


def _display_styles(styles: list[StyleMetadata]) -> None:
    table = Table(title=f"CSL styles ({len(styles)})")
    table.add_column("Name", style="cyan")
    table.add_column("Title")
    table.add_column("Dependent", justify="center")
    for style in styles:
        table.add_row(style.name.removesuffix(".csl"), style.title, "yes" if style.dependent else "")
    console.print(table)


@app.command("list")
def list_styles(
    config_path: Path | None = typer.Option(None, "--config", help="Path to citepress.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """
    List every published CSL style.

    Examples:
        citepress styles list
    """
    with _client(config_path, verbose) as client:
        try:
            styles = client.list_styles()
        except (ResourceFetchError, ConfigurationError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)
    _display_styles(styles)


@app.command("find")
def find_styles(
    query: str = typer.Argument(..., help="Text to look for in style names and titles"),
    config_path: Path | None = typer.Option(None, "--config", help="Path to citepress.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """
    Find styles whose name or title contains QUERY (case-insensitive).

    Examples:
        citepress styles find chicago
    """
    with _client(config_path, verbose) as client:
        try:
            styles = client.find_styles(query)
        except (ResourceFetchError, ConfigurationError) as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1)
    if not styles:
        console.print(f"[yellow]No styles match '{query}'[/yellow]")
        return
    _display_styles(styles)


@app.command("clean")
def clean_cache(
    config_path: Path | None = typer.Option(None, "--config", help="Path to citepress.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Remove expired styles, locales and style listings from the cache."""
    with _client(config_path, verbose) as client:
        removed = client.clean_cache()
    console.print(f"[green]Removed {removed} expired cache entr{'y' if removed == 1 else 'ies'}[/green]")
