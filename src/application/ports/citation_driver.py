from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Protocol, runtime_checkable

from ...domain.models.bibliography import BibliographyEntry
from ...domain.models.citation import CitationStyle, LocaleSet


@dataclass
class DriverOutput:
    """
    Result of finalizing a bibliography driver.

    Attributes:
        citations: Cited key -> formatted in-text citation (plain or inline HTML)
        references: Ordered (key, formatted reference HTML) items
    """

    citations: dict[str, str] = field(default_factory=dict)
    references: list[tuple[str, str]] = field(default_factory=list)


@runtime_checkable
class BibliographyDriverPort(Protocol):
    """
    Protocol for an accumulator that formats citations with a style.

    Fed one citation request per marker, then finalized exactly once. Two
    independent instances are used per document: one for in-text citations
    and one for the reference list.
    """

    def citation(self, entry: BibliographyEntry) -> None:
        """
        Register a citation of entry.

        Args:
            entry: Cited bibliography entry
        """
        ...

    def finish(self) -> DriverOutput:
        """
        Format every registered citation.

        Returns:
            DriverOutput with in-text citations keyed by entry key and the
            ordered reference list

        Raises:
            RuntimeError: If called more than once
        """
        ...


DriverFactory = Callable[[CitationStyle, LocaleSet], BibliographyDriverPort]
