"""Application services for orchestrating domain logic."""

from .citation_context import CitationContext, CitationContextService

__all__ = ["CitationContext", "CitationContextService"]
