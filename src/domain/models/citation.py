"""Domain models for citation styles, locales and resolved citations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

CITATION_FORMATS = {"author-date", "author", "numeric", "label", "note"}


@dataclass(frozen=True)
class CitationStyle:
    """
    Validated formatting ruleset loaded from a CSL style definition.

    Shared read-only across all documents processed in one run.

    Fields:
        name: Normalized style file name (e.g. 'apa.csl')
        title: Human-readable title from the style info block
        citation_format: One of CITATION_FORMATS
        et_al_min: Author count at which names are abbreviated with 'et al.'
        et_al_use_first: Number of names kept before 'et al.'
        sorts_bibliography: True when the style declares a bibliography sort
        default_locale: Locale requested by the style itself (optional)
    """

    name: str
    title: str
    citation_format: str = "author-date"
    et_al_min: int = 3
    et_al_use_first: int = 1
    sorts_bibliography: bool = False
    default_locale: str | None = None

    def __post_init__(self) -> None:
        """Validate style."""
        if self.citation_format not in CITATION_FORMATS:
            raise ValueError(
                f"citation_format must be one of {sorted(CITATION_FORMATS)}, got '{self.citation_format}'"
            )
        if self.et_al_min < 1:
            raise ValueError("et_al_min must be >= 1")
        if self.et_al_use_first < 1:
            raise ValueError("et_al_use_first must be >= 1")

    @property
    def is_numeric(self) -> bool:
        return self.citation_format in ("numeric", "label")


@dataclass(frozen=True)
class LocaleDefinition:
    """Terms of one CSL locale, keyed by term name (e.g. 'and', 'et-al', 'no date')."""

    lang: str
    terms: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class LocaleSet:
    """One or more locale definitions associated with a style, searched in order."""

    locales: tuple[LocaleDefinition, ...] = ()

    def term(self, name: str, default: str) -> str:
        """Look up a term in each locale in order, falling back to default."""
        for locale in self.locales:
            value = locale.terms.get(name)
            if value:
                return value
        return default

    @property
    def primary_lang(self) -> str | None:
        return self.locales[0].lang if self.locales else None


@dataclass(frozen=True)
class CitationMarker:
    """
    A located citation marker within source text.

    Exists only during resolution of a single document.

    Fields:
        start: Start offset of the marker in the source text
        end: End offset (exclusive)
        key: Citation key inside the brackets
        raw: Marker text as written (e.g. '@[smith2020]')
    """

    start: int
    end: int
    key: str
    raw: str


@dataclass(frozen=True)
class ResolvedCitation:
    """Formatted in-text representation of one cited key."""

    key: str
    placeholder: str
    markup: str


@dataclass(frozen=True)
class CitationResult:
    """
    Output of citation resolution for one document.

    Fields:
        html: Rendered document body with citations substituted
        references_html: Reference list block ('' when nothing was cited)
        cited_count: Number of unique keys resolved successfully
    """

    html: str
    references_html: str = ""
    cited_count: int = 0

    @property
    def has_citations(self) -> bool:
        return self.cited_count > 0

    def combined(self) -> str:
        """Body followed by the reference list when anything was cited."""
        if not self.has_citations:
            return self.html
        return f"{self.html}\n{self.references_html}"
