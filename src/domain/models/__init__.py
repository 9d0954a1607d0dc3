"""Domain models for citation resolution and site builds."""

from .bibliography import BibliographyEntry, Library, Person
from .cache_entry import CacheMetadata
from .citation import (
    CitationMarker,
    CitationResult,
    CitationStyle,
    LocaleDefinition,
    LocaleSet,
    ResolvedCitation,
)

__all__ = [
    "BibliographyEntry",
    "CacheMetadata",
    "CitationMarker",
    "CitationResult",
    "CitationStyle",
    "Library",
    "LocaleDefinition",
    "LocaleSet",
    "Person",
    "ResolvedCitation",
]
