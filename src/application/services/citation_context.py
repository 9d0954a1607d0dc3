"""Application service assembling the shared citation context of a run."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ...domain.models.bibliography import Library
from ...domain.models.citation import CitationStyle, LocaleSet
from ..ports.bibliography_source import BibliographySourcePort
from ..ports.resource_cache import CitationResourcePort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CitationContext:
    """
    Style, locales and library resolved once per run.

    Immutable, so it is shared read-only by every concurrent document task.
    """

    style: CitationStyle
    locales: LocaleSet
    library: Library


class CitationContextService:
    """
    Builds the CitationContext before any document is processed.

    Every failure here is a configuration-level failure of the whole run.
    """

    def __init__(self, resources: CitationResourcePort, source: BibliographySourcePort) -> None:
        """
        Initialize service.

        Args:
            resources: Provider of styles and locales
            source: Bibliography source selected by configuration
        """
        self.resources = resources
        self.source = source

    def build(self, style_name: str, language_code: str) -> CitationContext:
        """
        Resolve style, locale and library.

        Args:
            style_name: Style name with or without '.csl'
            language_code: Locale code (e.g. 'en-US')

        Returns:
            CitationContext

        Raises:
            ConfigurationError: If the style or locale is invalid
            ResourceFetchError: If a remote resource cannot be fetched
            BibliographyParseError: If the bibliography cannot be parsed
        """
        style = self.resources.get_style(style_name)
        locale = self.resources.get_locale(language_code)
        library = self.source.load()
        logger.info(
            f"Citation context ready: style '{style.title}', locale {locale.lang}, {len(library)} entries",
            extra={"style": style.name, "locale": locale.lang, "entry_count": len(library)},
        )
        return CitationContext(style=style, locales=LocaleSet((locale,)), library=library)
