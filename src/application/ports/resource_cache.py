"""Port interface for remote citation resources (styles, locales)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.models.citation import CitationStyle, LocaleDefinition


class CitationResourcePort(ABC):
    """Port for obtaining citation styles and locales by name."""

    @abstractmethod
    def get_style(self, style_name: str) -> CitationStyle:
        """
        Return the parsed style for a name.

        Args:
            style_name: Style name with or without the '.csl' extension

        Returns:
            CitationStyle

        Raises:
            ResourceFetchError: If the style must be fetched and the fetch fails
            ConfigurationError: If the style payload is invalid
        """
        pass

    @abstractmethod
    def get_locale(self, lang_code: str) -> LocaleDefinition:
        """
        Return the parsed locale for a language code.

        Args:
            lang_code: Locale code (e.g. 'en-US')

        Returns:
            LocaleDefinition

        Raises:
            ResourceFetchError: If the locale must be fetched and the fetch fails
            ConfigurationError: If the locale payload is invalid
        """
        pass
