"""Zotero library commands."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console

from src.domain.errors import BibliographyParseError, ConfigurationError, ResourceFetchError
from src.infrastructure.adapters.zotero_web import ZoteroWebBibliographySource
from src.infrastructure.cli.commands.build import load_settings
from src.infrastructure.logging import configure_logging, new_run_correlation_id

app = typer.Typer(help="Fetch bibliographies from the Zotero Web API")
console = Console()
logger = logging.getLogger(__name__)


@app.command()
def fetch(
    output: Path | None = typer.Option(
        None, "--output", "-o", help="YAML snapshot path (defaults to citations.zotero.snapshot_path)"
    ),
    config_path: Path | None = typer.Option(None, "--config", help="Path to citepress.toml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """
    Download the configured Zotero library and write it as a YAML bibliography.

    Credentials come from ZOTERO_API_KEY and ZOTERO_USER_ID / ZOTERO_GROUP_ID
    (or the [citations.zotero] section).

    Examples:
        citepress zotero fetch --output refs.yml
    """
    configure_logging(logging.INFO, verbose=verbose)
    new_run_correlation_id()
    settings = load_settings(config_path)

    zotero = settings.citations.zotero
    snapshot_path = output or (zotero.snapshot_path if zotero else None)
    if zotero is None or not zotero.configured:
        typer.echo("Error: Zotero credentials are not configured", err=True)
        typer.echo("Set ZOTERO_API_KEY and ZOTERO_USER_ID or ZOTERO_GROUP_ID", err=True)
        raise typer.Exit(1)
    if snapshot_path is None:
        typer.echo("Error: no output path; pass --output or set citations.zotero.snapshot_path", err=True)
        raise typer.Exit(1)

    library_type, library_id = zotero.library
    try:
        source = ZoteroWebBibliographySource(
            api_key=zotero.api_key,
            library_id=library_id,
            library_type=library_type,
            collection_key=zotero.collection_key or None,
            snapshot_path=snapshot_path,
        )
        try:
            library = source.load()
        finally:
            source.close()
    except (ConfigurationError, ResourceFetchError, BibliographyParseError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    console.print(f"[green]✓ Wrote {len(library)} entries to {snapshot_path}[/green]")
