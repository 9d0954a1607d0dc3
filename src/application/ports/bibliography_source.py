from typing import Protocol, runtime_checkable

from ...domain.models.bibliography import Library


@runtime_checkable
class BibliographySourcePort(Protocol):
    """Protocol for producing a normalized Library of bibliographic entries."""

    def load(self) -> Library:
        """
        Build the library.

        Returns:
            Library with every entry of the source, in source order

        Raises:
            BibliographyParseError: If the payload cannot be parsed
            ResourceFetchError: If a remote source cannot be reached
        """
        ...
