"""Domain models for bibliographic entries and libraries."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)

_YEAR_RE = re.compile(r"(\d{4})")


@dataclass(frozen=True)
class Person:
    """
    A contributor to a bibliographic work.

    Fields:
        family: Family name (or the full name of an institution)
        given: Given names (optional)
        literal: True when the name must be printed as-is (institutional authors)
    """

    family: str
    given: str | None = None
    literal: bool = False

    @classmethod
    def parse(cls, name: str) -> "Person":
        """
        Parse a 'Family, Given' or 'Given Family' name string.

        Names wrapped in braces are treated as literal (e.g. '{World Health Organization}').
        """
        name = " ".join(name.split())
        if name.startswith("{") and name.endswith("}"):
            return cls(family=name[1:-1].strip(), literal=True)
        if "," in name:
            family, _, given = name.partition(",")
            return cls(family=family.strip(), given=given.strip() or None)
        parts = name.rsplit(" ", 1)
        if len(parts) == 2:
            return cls(family=parts[1], given=parts[0])
        return cls(family=name)

    def initials(self) -> str:
        """Given names reduced to initials, e.g. 'John Ronald' -> 'J. R.'."""
        if not self.given:
            return ""
        tokens = re.split(r"[\s.]+", self.given)
        return " ".join(f"{token[0]}." for token in tokens if token)

    def display_name(self) -> str:
        """Name in 'Given Family' order."""
        if self.literal or not self.given:
            return self.family
        return f"{self.given} {self.family}"

    def to_string(self) -> str:
        """Name in 'Family, Given' order, the form used by the bibliography files."""
        if self.literal:
            return self.family
        if self.given:
            return f"{self.family}, {self.given}"
        return self.family


@dataclass(frozen=True)
class BibliographyEntry:
    """
    A uniquely keyed bibliographic record.

    Fields:
        key: Citation key, unique within a Library
        entry_type: Normalized type (article, book, chapter, thesis, report, web, misc, ...)
        title: Work title
        authors: Ordered authors
        editors: Ordered editors
        date: Publication date as 'YYYY', 'YYYY-MM' or 'YYYY-MM-DD' (optional)
        container_title: Journal, book or site the work appears in (optional)
        publisher: Publisher or institution (optional)
        volume: Volume (optional)
        issue: Issue or number (optional)
        pages: Page range (optional)
        doi: DOI without resolver prefix (optional)
        url: URL (optional)
        extra: Any other fields kept verbatim
    """

    key: str
    entry_type: str = "misc"
    title: str | None = None
    authors: tuple[Person, ...] = ()
    editors: tuple[Person, ...] = ()
    date: str | None = None
    container_title: str | None = None
    publisher: str | None = None
    volume: str | None = None
    issue: str | None = None
    pages: str | None = None
    doi: str | None = None
    url: str | None = None
    extra: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate entry."""
        if not self.key or not self.key.strip():
            raise ValueError("key must be non-empty")

    @property
    def year(self) -> int | None:
        """Publication year extracted from date, if any."""
        if not self.date:
            return None
        match = _YEAR_RE.search(self.date)
        return int(match.group(1)) if match else None


class Library:
    """
    Ordered collection of bibliography entries with unique keys.

    Immutable after construction. Insertion order is preserved so reference
    lists are deterministic when a style requests no sorting. When the same
    key is supplied twice, the later entry replaces the earlier one but keeps
    the earlier position.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[BibliographyEntry] = ()) -> None:
        collected: dict[str, BibliographyEntry] = {}
        for entry in entries:
            if entry.key in collected:
                logger.debug(f"Duplicate bibliography key '{entry.key}', keeping latest entry")
            collected[entry.key] = entry
        self._entries = collected

    def get(self, key: str) -> BibliographyEntry | None:
        """Return the entry for key, or None."""
        return self._entries.get(key)

    def keys(self) -> list[str]:
        """Keys in insertion order."""
        return list(self._entries)

    def merged(self, other: Iterable[BibliographyEntry]) -> "Library":
        """Return a new Library with other's entries merged in entry by entry."""
        return Library([*self._entries.values(), *other])

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[BibliographyEntry]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Library({len(self._entries)} entries)"
