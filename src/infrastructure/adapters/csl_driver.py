"""Bibliography driver formatting citations with a CSL style and locale terms."""

from __future__ import annotations

import html
import logging

from ...application.ports.citation_driver import DriverOutput
from ...domain.models.bibliography import BibliographyEntry, Person
from ...domain.models.citation import CitationStyle, LocaleSet

logger = logging.getLogger(__name__)


def _terminate(text: str) -> str:
    """Append a period unless text already ends with terminal punctuation."""
    text = text.rstrip()
    return text if text.endswith((".", "?", "!")) else f"{text}."


class CslBibliographyDriver:
    """
    Accumulates citation requests and formats them in one batch.

    Honors the style's citation format class (author-date vs. numeric),
    et-al abbreviation thresholds and bibliography sort declaration, and the
    locale's 'and', 'et-al' and 'no date' terms. Everything else follows one
    fixed author / date / title / container layout.

    Each instance is owned by a single formatting pass and finalized once.
    """

    def __init__(self, style: CitationStyle, locales: LocaleSet) -> None:
        self._style = style
        self._locales = locales
        self._entries: dict[str, BibliographyEntry] = {}
        self._requests = 0
        self._finished = False

    def citation(self, entry: BibliographyEntry) -> None:
        """Register a citation of entry. Repeated keys keep their first position."""
        if self._finished:
            raise RuntimeError("Cannot register citations after finish()")
        self._requests += 1
        self._entries.setdefault(entry.key, entry)

    def finish(self) -> DriverOutput:
        """Format all registered citations and the reference list."""
        if self._finished:
            raise RuntimeError("finish() may only be called once per driver")
        self._finished = True

        numbers = {key: index for index, key in enumerate(self._entries, start=1)}
        citations = {
            key: self._format_citation(entry, numbers[key]) for key, entry in self._entries.items()
        }

        entries = list(self._entries.values())
        if self._style.sorts_bibliography and not self._style.is_numeric:
            entries.sort(key=self._sort_key)
        references = [(entry.key, self._format_reference(entry, numbers[entry.key])) for entry in entries]

        logger.debug(
            f"Driver finished: {self._requests} request(s), {len(self._entries)} unique entr(y/ies)",
            extra={"style": self._style.name},
        )
        return DriverOutput(citations=citations, references=references)

    # -- terms -----------------------------------------------------------

    def _and(self) -> str:
        return self._locales.term("and", "and")

    def _et_al(self) -> str:
        return self._locales.term("et-al", "et al.")

    def _year(self, entry: BibliographyEntry) -> str:
        if entry.year is not None:
            return str(entry.year)
        return self._locales.term("no date:short", self._locales.term("no date", "n.d."))

    # -- names -----------------------------------------------------------

    @staticmethod
    def _contributors(entry: BibliographyEntry) -> tuple[Person, ...]:
        return entry.authors or entry.editors

    def _short_names(self, people: tuple[Person, ...]) -> str:
        families = [html.escape(person.family) for person in people]
        if len(families) >= self._style.et_al_min:
            kept = families[: self._style.et_al_use_first]
            return f"{', '.join(kept)} {html.escape(self._et_al())}"
        if len(families) == 1:
            return families[0]
        if len(families) == 2:
            return f"{families[0]} {html.escape(self._and())} {families[1]}"
        return f"{', '.join(families[:-1])}, {html.escape(self._and())} {families[-1]}"

    def _long_names(self, people: tuple[Person, ...]) -> str:
        formatted = []
        for person in people:
            initials = person.initials()
            if person.literal or not initials:
                formatted.append(html.escape(person.family))
            else:
                formatted.append(html.escape(f"{person.family}, {initials}"))
        if len(formatted) == 1:
            return formatted[0]
        return f"{', '.join(formatted[:-1])}, {html.escape(self._and())} {formatted[-1]}"

    # -- formatting ------------------------------------------------------

    def _format_citation(self, entry: BibliographyEntry, number: int) -> str:
        if self._style.is_numeric:
            return f"[{number}]"
        people = self._contributors(entry)
        if people:
            label = self._short_names(people)
        elif entry.title:
            label = f"<i>{html.escape(entry.title)}</i>"
        else:
            label = html.escape(entry.key)
        return f"({label}, {html.escape(self._year(entry))})"

    def _format_reference(self, entry: BibliographyEntry, number: int) -> str:
        segments: list[str] = []
        year = html.escape(self._year(entry))
        people = self._contributors(entry)
        title = html.escape(entry.title) if entry.title else None
        if title and not entry.container_title:
            title = f"<i>{title}</i>"

        if people:
            segments.append(f"{self._long_names(people)} ({year}).")
            if title:
                segments.append(_terminate(title))
        elif title:
            segments.append(f"{title} ({year}).")
        else:
            segments.append(f"{html.escape(entry.key)} ({year}).")

        if entry.container_title:
            container = f"<i>{html.escape(entry.container_title)}</i>"
            if entry.volume:
                container += f", {html.escape(entry.volume)}"
            if entry.issue:
                container += f"({html.escape(entry.issue)})"
            if entry.pages:
                container += f", {html.escape(entry.pages)}"
            segments.append(_terminate(container))

        if entry.publisher:
            segments.append(_terminate(html.escape(entry.publisher)))

        if entry.doi:
            segments.append(html.escape(f"https://doi.org/{entry.doi}"))
        elif entry.url:
            segments.append(html.escape(entry.url))

        text = " ".join(segments)
        if self._style.is_numeric:
            return f"[{number}] {text}"
        return text

    def _sort_key(self, entry: BibliographyEntry) -> tuple[str, int, str]:
        people = self._contributors(entry)
        lead = people[0].family if people else (entry.title or entry.key)
        return (lead.casefold(), entry.year or 9999, (entry.title or "").casefold())
