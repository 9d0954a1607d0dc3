"""Site build command."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from src.application.dto.build import BuildReport, BuildRequest
from src.application.ports.bibliography_source import BibliographySourcePort
from src.application.ports.progress_reporter import NullProgressReporter, ProgressReporterPort
from src.application.services.citation_context import CitationContext, CitationContextService
from src.application.use_cases.build_site import build_site
from src.application.use_cases.process_document import DocumentPipeline
from src.application.use_cases.resolve_citations import CitationResolver
from src.domain.errors import (
    BibliographyParseError,
    BuildFailedError,
    ConfigurationError,
    ResourceFetchError,
)
from src.infrastructure.adapters.bibliography_file import LocalFileBibliographySource
from src.infrastructure.adapters.csl_driver import CslBibliographyDriver
from src.infrastructure.adapters.front_matter import YamlFrontMatterParser
from src.infrastructure.adapters.json_post_store import JsonPostStore
from src.infrastructure.adapters.markdown_renderer import MarkdownRenderer
from src.infrastructure.adapters.pillow_images import PillowImageGenerator
from src.infrastructure.adapters.resource_cache import CslResourceClient
from src.infrastructure.adapters.rich_progress_reporter import RichProgressReporterAdapter
from src.infrastructure.adapters.zotero_web import ZoteroWebBibliographySource
from src.infrastructure.config.environment import get_config_path
from src.infrastructure.config.settings import Settings
from src.infrastructure.logging import configure_logging, new_run_correlation_id

console = Console()
logger = logging.getLogger(__name__)


def load_settings(config_path: Path | None) -> Settings:
    """Load settings or exit with code 1 on configuration errors."""
    path = config_path or get_config_path()
    try:
        return Settings.from_toml(path)
    except ConfigurationError as e:
        typer.echo(f"Error loading configuration: {e}", err=True)
        raise typer.Exit(1)


def create_bibliography_source(settings: Settings) -> BibliographySourcePort:
    """
    Select the configured bibliography source.

    Raises:
        ConfigurationError: If no source is configured or Zotero settings are incomplete
    """
    citations = settings.citations
    if citations.bibliography_path is not None:
        return LocalFileBibliographySource(citations.bibliography_path)
    zotero = citations.zotero
    if zotero is None or not zotero.configured:
        raise ConfigurationError(
            "No bibliography source configured",
            hint="Set citations.bibliography_path or Zotero credentials",
        )
    library_type, library_id = zotero.library
    return ZoteroWebBibliographySource(
        api_key=zotero.api_key,
        library_id=library_id,
        library_type=library_type,
        collection_key=zotero.collection_key or None,
        snapshot_path=zotero.snapshot_path,
    )


def create_citation_context(settings: Settings) -> CitationContext:
    """
    Resolve style, locale and library for the run.

    Raises:
        ConfigurationError, ResourceFetchError, BibliographyParseError
    """
    cache = settings.cache
    source = create_bibliography_source(settings)
    try:
        with CslResourceClient(cache.directory, ttl=cache.ttl, enabled=cache.enabled) as resources:
            service = CitationContextService(resources, source)
            return service.build(settings.citations.style, settings.citations.language_code)
    finally:
        close = getattr(source, "close", None)
        if close is not None:
            close()


def create_pipeline(settings: Settings) -> DocumentPipeline:
    """Wire the document collaborators; the citation context is built here when enabled."""
    renderer = MarkdownRenderer()
    images = PillowImageGenerator(
        settings.public_dir,
        cover_size=(settings.images.cover_width, settings.images.cover_height),
        thumbnail_size=(settings.images.thumbnail_width, settings.images.thumbnail_height),
        filter_type=settings.images.filter_type,
    )

    resolver = None
    context = None
    if settings.citations.enabled:
        context = create_citation_context(settings)
        resolver = CitationResolver(renderer, CslBibliographyDriver)
    else:
        logger.info("No bibliography source configured; citations are left as written")

    return DocumentPipeline(
        front_matter=YamlFrontMatterParser(),
        renderer=renderer,
        resolver=resolver,
        citation_context=context,
        images=images,
    )


def _print_report(report: BuildReport) -> None:
    table = Table(title="Build summary")
    table.add_column("Processed", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Posts", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Duration", justify="right")
    table.add_row(
        str(report.processed),
        str(report.skipped),
        str(report.posts_written),
        str(len(report.failures)),
        f"{report.duration_seconds:.2f}s",
    )
    console.print(table)
    if report.index_path is not None:
        console.print(f"Index written to [bold]{report.index_path}[/bold]")
    for failure in report.failures:
        console.print(f"[red]✗ {failure.source_path}: {failure.error}[/red]")


def build(
    config_path: Path | None = typer.Option(
        None, "--config", help="Path to citepress.toml (defaults to $CITEPRESS_CONFIG or ./citepress.toml)"
    ),
    force: bool = typer.Option(False, "--force", help="Rebuild every document regardless of timestamps"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    no_progress: bool = typer.Option(False, "--no-progress", help="Disable the progress bar"),
    workers: int | None = typer.Option(None, "--workers", min=1, help="Number of worker threads"),
) -> None:
    """
    Build JSON posts and the post index from the Markdown content tree.

    Citations are resolved against the configured bibliography. Unchanged
    documents are skipped unless --force is given. Exits with code 1 when
    configuration is invalid or every document fails. When only some fail,
    the index of the successful posts is written, the failures are listed
    and the exit code is 0.
    """
    configure_logging(logging.INFO, verbose=verbose)
    correlation_id = new_run_correlation_id()

    settings = load_settings(config_path)
    logger.info("Starting build", extra={"correlation_id": correlation_id, "force": force})

    try:
        pipeline = create_pipeline(settings)
    except (ConfigurationError, ResourceFetchError, BibliographyParseError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    reporter: ProgressReporterPort = NullProgressReporter() if no_progress else RichProgressReporterAdapter()
    request = BuildRequest(
        content_dir=settings.content_dir,
        output_dir=settings.output_dir,
        force=force,
        workers=workers or settings.build.max_workers,
    )

    try:
        report = build_site(request, pipeline, JsonPostStore(), progress_reporter=reporter)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    except BuildFailedError as e:
        typer.echo(f"Error: {e}", err=True)
        for source_path, error in e.failures:
            typer.echo(f"  {source_path}: {error}", err=True)
        raise typer.Exit(1)

    _print_report(report)
