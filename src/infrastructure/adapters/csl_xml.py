"""Parsers for CSL style and locale definitions."""

from __future__ import annotations

import logging

from lxml import etree

from ...domain.errors import ConfigurationError
from ...domain.models.citation import CITATION_FORMATS, CitationStyle, LocaleDefinition

logger = logging.getLogger(__name__)

CSL_NS = "http://purl.org/net/xbiblio/csl"
XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"
NSMAP = {"csl": CSL_NS}


def _parse_root(content: bytes, expected_tag: str, resource: str) -> etree._Element:
    # lxml parsers must not be shared between threads
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
    try:
        root = etree.fromstring(content, parser)
    except etree.XMLSyntaxError as e:
        raise ConfigurationError(f"Invalid XML in {resource}: {e}") from e
    if root.tag != f"{{{CSL_NS}}}{expected_tag}":
        raise ConfigurationError(
            f"{resource} is not a CSL {expected_tag} (root element is '{etree.QName(root).localname}')"
        )
    return root


def _int_attr(element: etree._Element | None, name: str) -> int | None:
    if element is None:
        return None
    value = element.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        logger.debug(f"Ignoring non-integer CSL attribute {name}={value!r}")
        return None


def parse_style(content: bytes, name: str) -> CitationStyle:
    """
    Parse a CSL independent style.

    Only the parts the formatting driver honors are read: the citation format
    class, et-al abbreviation thresholds, and whether the bibliography is sorted.

    Args:
        content: Style XML payload
        name: Normalized style name (e.g. 'apa.csl')

    Returns:
        CitationStyle

    Raises:
        ConfigurationError: If the payload is not a usable independent style
    """
    root = _parse_root(content, "style", f"style '{name}'")

    parent = root.find("csl:info/csl:link[@rel='independent-parent']", NSMAP)
    if parent is not None:
        raise ConfigurationError(
            f"Style '{name}' is a dependent style",
            hint=f"Configure its independent parent instead: {parent.get('href')}",
        )

    citation = root.find("csl:citation", NSMAP)
    if citation is None:
        raise ConfigurationError(f"Style '{name}' has no <citation> element")

    title = root.findtext("csl:info/csl:title", default="", namespaces=NSMAP).strip() or name

    category = root.find("csl:info/csl:category[@citation-format]", NSMAP)
    citation_format = category.get("citation-format") if category is not None else "author-date"
    if citation_format not in CITATION_FORMATS:
        logger.warning(f"Unknown citation format '{citation_format}' in style '{name}', using author-date")
        citation_format = "author-date"

    # et-al options may sit on a <name> inside the citation layout, on <citation>, or on <style>
    name_element = citation.find(".//csl:name[@et-al-min]", NSMAP)
    et_al_min = _int_attr(name_element, "et-al-min") or _int_attr(citation, "et-al-min") or _int_attr(root, "et-al-min")
    et_al_use_first = (
        _int_attr(name_element, "et-al-use-first")
        or _int_attr(citation, "et-al-use-first")
        or _int_attr(root, "et-al-use-first")
    )

    sorts_bibliography = root.find("csl:bibliography/csl:sort", NSMAP) is not None

    return CitationStyle(
        name=name,
        title=title,
        citation_format=citation_format,
        et_al_min=et_al_min or 3,
        et_al_use_first=et_al_use_first or 1,
        sorts_bibliography=sorts_bibliography,
        default_locale=root.get("default-locale"),
    )


def parse_locale(content: bytes, lang_code: str | None = None) -> LocaleDefinition:
    """
    Parse a CSL locale file into its terms.

    Long-form terms are keyed by name; other forms by 'name:form'. Terms with
    single/multiple variants use the single form, the plural is stored under
    'name:plural'.

    Args:
        content: Locale XML payload
        lang_code: Requested code, used when the file declares no xml:lang

    Returns:
        LocaleDefinition

    Raises:
        ConfigurationError: If the payload is not a CSL locale
    """
    root = _parse_root(content, "locale", f"locale '{lang_code or 'unknown'}'")
    lang = root.get(XML_LANG) or lang_code
    if not lang:
        raise ConfigurationError("Locale file declares no xml:lang")

    terms: dict[str, str] = {}
    for term in root.iterfind("csl:terms/csl:term", NSMAP):
        term_name = term.get("name")
        if not term_name:
            continue
        form = term.get("form", "long")
        key = term_name if form == "long" else f"{term_name}:{form}"
        single = term.findtext("csl:single", namespaces=NSMAP)
        if single is not None:
            terms[key] = single.strip()
            multiple = term.findtext("csl:multiple", namespaces=NSMAP)
            if multiple is not None:
                terms[f"{key}:plural"] = multiple.strip()
        else:
            terms[key] = (term.text or "").strip()

    return LocaleDefinition(lang=lang, terms=terms)
