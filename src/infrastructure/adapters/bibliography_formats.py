"""YAML and CSL-JSON bibliography formats."""

from __future__ import annotations

import datetime as dt
import json
import logging
from typing import Any, Iterable

import yaml

from ...domain.errors import BibliographyParseError
from ...domain.models.bibliography import BibliographyEntry, Person

logger = logging.getLogger(__name__)

# YAML keys consumed by the entry mapping; any other scalar key is kept in extra
_YAML_KNOWN_KEYS = {
    "type",
    "title",
    "author",
    "editor",
    "date",
    "parent",
    "page-range",
    "publisher",
    "volume",
    "issue",
    "doi",
    "serial-number",
    "url",
}

_YAML_TYPES = {
    "article": "article",
    "book": "book",
    "anthology": "book",
    "chapter": "chapter",
    "thesis": "thesis",
    "report": "report",
    "web": "web",
    "blog": "web",
    "conference": "conference",
    "proceedings": "book",
}

_CSL_TYPES = {
    "article": "article",
    "article-journal": "article",
    "article-magazine": "article",
    "article-newspaper": "article",
    "book": "book",
    "chapter": "chapter",
    "thesis": "thesis",
    "report": "report",
    "webpage": "web",
    "post": "web",
    "post-weblog": "web",
    "paper-conference": "conference",
}


def _text(value: Any) -> str | None:
    """Scalar YAML value as a stripped string (YAML may yield ints or dates)."""
    if value is None:
        return None
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()[:10]
    text = str(value).strip()
    return text or None


def _people(value: Any) -> tuple[Person, ...]:
    if value is None:
        return ()
    names = value if isinstance(value, list) else [value]
    return tuple(Person.parse(str(name)) for name in names if str(name).strip())


def _person_string(person: Person) -> str:
    # literal names are written braced
    return f"{{{person.family}}}" if person.literal else person.to_string()


# -- YAML -----------------------------------------------------------------


def _yaml_entry(key: str, data: Any, source: str) -> BibliographyEntry:
    if not isinstance(data, dict):
        raise BibliographyParseError(source, f"entry '{key}' must be a mapping")
    parent = data.get("parent") or {}
    if isinstance(parent, list):
        parent = parent[0] if parent else {}
    if not isinstance(parent, dict):
        raise BibliographyParseError(source, f"entry '{key}': 'parent' must be a mapping")

    serial = data.get("serial-number") or {}
    doi = _text(serial.get("doi")) if isinstance(serial, dict) else None
    url = data.get("url")
    if isinstance(url, dict):
        url = url.get("value")

    entry_type = str(data.get("type", "misc")).strip().lower()
    return BibliographyEntry(
        key=str(key),
        entry_type=_YAML_TYPES.get(entry_type, "misc"),
        title=_text(data.get("title")),
        authors=_people(data.get("author")),
        editors=_people(data.get("editor")),
        date=_text(data.get("date")),
        container_title=_text(parent.get("title")),
        publisher=_text(data.get("publisher")) or _text(parent.get("publisher")),
        volume=_text(data.get("volume")) or _text(parent.get("volume")),
        issue=_text(data.get("issue")) or _text(parent.get("issue")),
        pages=_text(data.get("page-range")),
        doi=_text(data.get("doi")) or doi,
        url=_text(url),
        extra={
            str(name): str(value)
            for name, value in data.items()
            if name not in _YAML_KNOWN_KEYS and not isinstance(value, (dict, list))
        },
    )


def parse_yaml_bibliography(text: str, source: str = "<string>") -> list[BibliographyEntry]:
    """
    Parse a YAML bibliography: a top-level mapping of key to entry fields.

    Recognized entry fields: type, title, author, editor (string or list,
    'Family, Given'), date, parent (title/volume/issue/publisher), page-range,
    publisher, serial-number.doi, url.

    Raises:
        BibliographyParseError: If the YAML is invalid or not shaped as above
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise BibliographyParseError(source, f"invalid YAML: {e}") from e
    if data is None:
        return []
    if not isinstance(data, dict):
        raise BibliographyParseError(source, "top level must be a mapping of citation keys")
    entries = [_yaml_entry(str(key), value, source) for key, value in data.items()]
    logger.debug(f"Parsed {len(entries)} YAML entr(y/ies) from {source}")
    return entries


def _yaml_fields(entry: BibliographyEntry) -> dict[str, Any]:
    fields: dict[str, Any] = {"type": entry.entry_type}
    if entry.title:
        fields["title"] = entry.title
    if entry.authors:
        fields["author"] = [_person_string(person) for person in entry.authors]
    if entry.editors:
        fields["editor"] = [_person_string(person) for person in entry.editors]
    if entry.date:
        fields["date"] = entry.date
    parent = {
        name: value
        for name, value in (
            ("title", entry.container_title),
            ("volume", entry.volume),
            ("issue", entry.issue),
        )
        if value
    }
    if parent:
        fields["parent"] = parent
    else:
        if entry.volume:
            fields["volume"] = entry.volume
        if entry.issue:
            fields["issue"] = entry.issue
    if entry.pages:
        fields["page-range"] = entry.pages
    if entry.publisher:
        fields["publisher"] = entry.publisher
    if entry.doi:
        fields["serial-number"] = {"doi": entry.doi}
    if entry.url:
        fields["url"] = entry.url
    for name, value in entry.extra.items():
        fields.setdefault(name, value)
    return fields


def dump_yaml_bibliography(entries: Iterable[BibliographyEntry]) -> str:
    """Serialize entries to the YAML bibliography format, in iteration order."""
    data = {entry.key: _yaml_fields(entry) for entry in entries}
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)


# -- CSL-JSON -------------------------------------------------------------


def _csl_people(value: Any) -> tuple[Person, ...]:
    if not isinstance(value, list):
        return ()
    people = []
    for name in value:
        if not isinstance(name, dict):
            continue
        if name.get("literal"):
            people.append(Person(family=str(name["literal"]), literal=True))
        elif name.get("family"):
            people.append(Person(family=str(name["family"]), given=_text(name.get("given"))))
    return tuple(people)


def _csl_date(value: Any) -> str | None:
    if not isinstance(value, dict):
        return None
    parts = value.get("date-parts")
    if isinstance(parts, list) and parts and isinstance(parts[0], list) and parts[0]:
        first = [int(part) for part in parts[0][:3]]
        return "-".join([f"{first[0]:04d}", *(f"{part:02d}" for part in first[1:])])
    return _text(value.get("raw") or value.get("literal"))


def parse_csl_json(text: str, source: str = "<string>") -> list[BibliographyEntry]:
    """
    Parse a CSL-JSON bibliography (a list of items keyed by 'id').

    Raises:
        BibliographyParseError: If the JSON is invalid or an item has no id
    """
    try:
        items = json.loads(text)
    except json.JSONDecodeError as e:
        raise BibliographyParseError(source, f"invalid JSON: {e}") from e
    if not isinstance(items, list):
        raise BibliographyParseError(source, "top level must be a list of items")

    entries = []
    for index, item in enumerate(items):
        if not isinstance(item, dict) or not _text(item.get("id")):
            raise BibliographyParseError(source, f"item {index} has no id")
        try:
            date = _csl_date(item.get("issued"))
        except (TypeError, ValueError) as e:
            raise BibliographyParseError(source, f"item '{item['id']}' has an invalid date: {e}") from e
        entries.append(
            BibliographyEntry(
                key=str(item["id"]),
                entry_type=_CSL_TYPES.get(str(item.get("type", "")), "misc"),
                title=_text(item.get("title")),
                authors=_csl_people(item.get("author")),
                editors=_csl_people(item.get("editor")),
                date=date,
                container_title=_text(item.get("container-title")),
                publisher=_text(item.get("publisher")),
                volume=_text(item.get("volume")),
                issue=_text(item.get("issue")),
                pages=_text(item.get("page")),
                doi=_text(item.get("DOI")),
                url=_text(item.get("URL")),
            )
        )
    return entries
