from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from ...domain.errors import DocumentProcessingError, MetadataBlockError
from ...domain.services.slug import slug_from_path
from ..dto.posts import CoverImage, Post, PostMetadata
from ..ports.image_generator import DerivativeImagePort
from ..ports.markup_renderer import FrontMatterParserPort, MarkupRendererPort
from ..services.citation_context import CitationContext
from .resolve_citations import CitationResolver

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"


@dataclass(frozen=True)
class DocumentPipeline:
    """
    Collaborators needed to turn one source document into a post.

    Shared by all tasks of a run; every member is safe for concurrent use.

    Attributes:
        front_matter: Splits the metadata block from the body
        renderer: Renders body markup to HTML
        resolver: Citation resolver (None when citations are not configured)
        citation_context: Style, locales and library for the resolver
        images: Cover image derivative generator (None to skip covers)
    """

    front_matter: FrontMatterParserPort
    renderer: MarkupRendererPort
    resolver: CitationResolver | None = None
    citation_context: CitationContext | None = None
    images: DerivativeImagePort | None = None

    @property
    def citations_enabled(self) -> bool:
        return self.resolver is not None and self.citation_context is not None


def process_document(
    source_path: Path,
    pipeline: DocumentPipeline,
    now: datetime | None = None,
) -> Post:
    """
    Turn one Markdown document into a Post.

    Front matter defaults: title 'Untitled', date now (UTC), no tags. The
    slug comes from the file name. A cover path is resolved relative to the
    document; a missing cover file means no cover.

    Args:
        source_path: Markdown source file
        pipeline: Shared collaborators
        now: Timestamp used when the document declares no date

    Returns:
        Post ready to be written

    Raises:
        DocumentProcessingError: If the source cannot be read or rendered
        MetadataBlockError: If the front matter is malformed
        ImageProcessingError: If cover derivatives cannot be produced
    """
    source = str(source_path)
    try:
        text = source_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentProcessingError(source, f"cannot read source: {e}") from e

    raw_metadata, body = pipeline.front_matter.split(text, source)
    try:
        metadata = PostMetadata.model_validate(raw_metadata)
    except ValidationError as e:
        raise MetadataBlockError(source, f"invalid front matter fields: {e}") from e

    slug = slug_from_path(source_path)

    if pipeline.citations_enabled:
        context = pipeline.citation_context
        result = pipeline.resolver.resolve(body, context.library, context.style, context.locales)
        content = result.combined()
        if result.has_citations:
            logger.debug(f"{source_path.name}: {result.cited_count} cited key(s)", extra={"slug": slug})
    else:
        content = pipeline.renderer.render(body)

    cover = _cover_image(source_path, slug, metadata.cover, pipeline.images)

    return Post(
        title=metadata.title or DEFAULT_TITLE,
        date=metadata.date or now or datetime.now(timezone.utc),
        slug=slug,
        content=content,
        description=metadata.description,
        tags=metadata.tags,
        cover=cover,
    )


def _cover_image(
    source_path: Path,
    slug: str,
    cover: str | None,
    images: DerivativeImagePort | None,
) -> CoverImage | None:
    if not cover or images is None:
        return None
    cover_path = source_path.parent / cover
    if not cover_path.is_file():
        logger.debug(f"Cover image not found for {source_path.name}: {cover_path}", extra={"slug": slug})
        return None
    return images.generate(cover_path, slug, cover)
