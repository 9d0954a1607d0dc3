from __future__ import annotations

import hashlib
import html
import logging
import re

from ...domain.models.bibliography import Library
from ...domain.models.citation import (
    CitationMarker,
    CitationResult,
    CitationStyle,
    LocaleSet,
    ResolvedCitation,
)
from ..ports.citation_driver import DriverFactory, DriverOutput
from ..ports.markup_renderer import MarkupRendererPort

logger = logging.getLogger(__name__)

MARKER_PATTERN = re.compile(r"@\[([^\]]+)\]")
PLACEHOLDER_PREFIX = "CITATIONPLACEHOLDER"


def find_markers(text: str) -> list[CitationMarker]:
    """
    Scan text for citation markers of the form @[key].

    Markers do not nest and are matched greedily left to right without
    overlapping. A marker missing its closing bracket is plain text. The key
    is the raw text between the brackets, whitespace included.

    Args:
        text: Source text

    Returns:
        Markers in order of appearance
    """
    return [
        CitationMarker(start=match.start(), end=match.end(), key=match.group(1), raw=match.group(0))
        for match in MARKER_PATTERN.finditer(text)
    ]


def placeholder_for(key: str) -> str:
    """
    Placeholder token for a cited key.

    Alphanumeric only so it survives markup parsing as a single text run,
    and fixed-length so no token is a prefix of another.
    """
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:16]
    return f"{PLACEHOLDER_PREFIX}{digest}"


def unknown_citation_text(key: str) -> str:
    """Visible text substituted for a marker whose key is not in the library."""
    return f"[Unknown citation: {key}]"


def citation_markup(key: str, text: str) -> str:
    """In-text citation anchor linking to the reference list item of key."""
    return f'<a href="#ref-{html.escape(key, quote=True)}" class="citation">{text}</a>'


def render_reference_list(references: list[tuple[str, str]]) -> str:
    """
    Reference list block, one addressable item per cited key.

    Args:
        references: Ordered (key, formatted reference HTML) items

    Returns:
        HTML block, or '' when references is empty
    """
    if not references:
        return ""
    parts = [
        '<div class="references">\n',
        "<h2>References</h2>\n",
        '<div class="references-list">\n',
    ]
    for key, content in references:
        parts.append(f'<div id="ref-{html.escape(key, quote=True)}" class="reference-item">{content}</div>\n')
    parts.append("</div>\n")
    parts.append("</div>\n")
    return "".join(parts)


class CitationResolver:
    """
    Two-pass citation engine.

    First pass: replace each marker with a placeholder while feeding two
    independent drivers, one for in-text citations and one for the reference
    list. Second pass: render the markup and swap
    placeholders for formatted citations (or visible unknown-key text) inside
    text runs only. Markers in code keep their text as written.
    """

    def __init__(self, renderer: MarkupRendererPort, driver_factory: DriverFactory) -> None:
        """
        Initialize resolver.

        Args:
            renderer: Markup renderer used for the second pass
            driver_factory: Creates a fresh driver for a style and locale set
        """
        self._renderer = renderer
        self._driver_factory = driver_factory

    def resolve(
        self,
        source_text: str,
        library: Library,
        style: CitationStyle,
        locales: LocaleSet,
    ) -> CitationResult:
        """
        Resolve citation markers and render the document body.

        Deterministic for identical inputs. Unknown keys never abort
        processing: they degrade to visible text in place.

        Args:
            source_text: Body markup containing zero or more @[key] markers
            library: Bibliography to resolve keys against
            style: Citation style
            locales: Locale set paired with the style

        Returns:
            CitationResult with rendered body, reference list block and
            the number of unique keys cited
        """
        in_text_driver = self._driver_factory(style, locales)
        reference_driver = self._driver_factory(style, locales)

        cited: dict[str, CitationMarker] = {}
        unknown: dict[str, CitationMarker] = {}
        pieces: list[str] = []
        cursor = 0
        for marker in find_markers(source_text):
            pieces.append(source_text[cursor:marker.start])
            cursor = marker.end
            entry = library.get(marker.key)
            if entry is None:
                logger.warning(f"Unknown citation key '{marker.key}'", extra={"citation_key": marker.key})
                unknown.setdefault(marker.key, marker)
                pieces.append(placeholder_for(marker.key))
                continue
            in_text_driver.citation(entry)
            reference_driver.citation(entry)
            cited.setdefault(marker.key, marker)
            pieces.append(placeholder_for(marker.key))
        pieces.append(source_text[cursor:])
        working_text = "".join(pieces)

        in_text_output = in_text_driver.finish()
        reference_output = reference_driver.finish()

        resolved = self._resolved_citations(cited, in_text_output)
        inline_html = {citation.placeholder: citation.markup for citation in resolved}
        for key in unknown:
            inline_html[placeholder_for(key)] = html.escape(unknown_citation_text(key), quote=False)

        rendered = self._renderer.render(working_text, inline_html=inline_html or None)

        # Placeholders left after rendering sat in code or attributes: restore the marker as written.
        for key, marker in (cited | unknown).items():
            placeholder = placeholder_for(key)
            if placeholder in rendered:
                rendered = rendered.replace(placeholder, html.escape(marker.raw, quote=False))

        references: list[tuple[str, str]] = []
        listed: set[str] = set()
        for key, content in reference_output.references:
            if key in cited and key not in listed:
                listed.add(key)
                references.append((key, content))
        references_html = render_reference_list(references) if cited else ""

        logger.debug(
            f"Resolved {len(cited)} cited key(s)",
            extra={"cited_count": len(cited), "reference_count": len(references)},
        )
        return CitationResult(html=rendered, references_html=references_html, cited_count=len(cited))

    @staticmethod
    def _resolved_citations(
        cited: dict[str, CitationMarker],
        output: DriverOutput,
    ) -> list[ResolvedCitation]:
        resolved = []
        for key in cited:
            text = output.citations.get(key)
            if text is None:
                logger.warning(f"Driver produced no in-text citation for '{key}'")
                text = html.escape(key)
            resolved.append(
                ResolvedCitation(key=key, placeholder=placeholder_for(key), markup=citation_markup(key, text))
            )
        return resolved
