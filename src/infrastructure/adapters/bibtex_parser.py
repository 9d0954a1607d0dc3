"""BibTeX / BibLaTeX parsing into bibliography entries."""

from __future__ import annotations

import logging
import re
import unicodedata

from ...domain.errors import BibliographyParseError
from ...domain.models.bibliography import BibliographyEntry, Person

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"[^\s,={}()\"#%]+")
_KEY_RE = re.compile(r"[^,\s{}()]*")
_AND_RE = re.compile(r"\s+and\s+", re.IGNORECASE)
_ACCENT_RE = re.compile(r"\\(?:([\"'`^~=.])|([uvHc])(?![A-Za-z]))\s*\{?\\?([A-Za-z])\}?")
_FORMAT_COMMAND_RE = re.compile(r"\\(?:textit|textbf|textsc|texttt|textrm|emph|mkbibquote|url)\s*")
_ESCAPED_RE = re.compile(r"\\([&%$#_{}])")
_DOI_PREFIX_RE = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:)", re.IGNORECASE)

# escaped braces survive group removal
_PROTECTED = {"{": "\ue000", "}": "\ue001"}

_COMBINING = {
    '"': "\u0308",
    "'": "\u0301",
    "`": "\u0300",
    "^": "\u0302",
    "~": "\u0303",
    "=": "\u0304",
    ".": "\u0307",
    "u": "\u0306",
    "v": "\u030c",
    "H": "\u030b",
    "c": "\u0327",
}

_MONTHS = {
    name: str(number)
    for number, name in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"], start=1
    )
}

_ENTRY_TYPES = {
    "article": "article",
    "book": "book",
    "mvbook": "book",
    "booklet": "book",
    "inbook": "chapter",
    "incollection": "chapter",
    "inproceedings": "conference",
    "conference": "conference",
    "proceedings": "book",
    "phdthesis": "thesis",
    "mastersthesis": "thesis",
    "thesis": "thesis",
    "techreport": "report",
    "report": "report",
    "online": "web",
    "webpage": "web",
    "electronic": "web",
    "www": "web",
}

_CONTAINER_FIELDS = ("journaltitle", "journal", "booktitle", "maintitle")
_PUBLISHER_FIELDS = ("publisher", "institution", "school", "organization")
_CONSUMED_FIELDS = {
    "title",
    "author",
    "editor",
    "date",
    "year",
    "month",
    "volume",
    "number",
    "issue",
    "pages",
    "doi",
    "url",
    *_CONTAINER_FIELDS,
    *_PUBLISHER_FIELDS,
}


def clean_latex(value: str) -> str:
    """
    Reduce a raw BibTeX field value to plain text.

    Resolves accent commands and escaped characters, drops common formatting
    commands and grouping braces, and collapses whitespace.
    """
    value = _ACCENT_RE.sub(
        lambda m: unicodedata.normalize("NFC", m.group(3) + _COMBINING[m.group(1) or m.group(2)]), value
    )
    value = _FORMAT_COMMAND_RE.sub("", value)
    value = _ESCAPED_RE.sub(lambda m: _PROTECTED.get(m.group(1), m.group(1)), value)
    value = value.replace("{", "").replace("}", "").replace("~", " ")
    value = value.replace(_PROTECTED["{"], "{").replace(_PROTECTED["}"], "}")
    return " ".join(value.split())


def split_names(value: str) -> list[str]:
    """Split a name list on 'and' outside of braces."""
    names: list[str] = []
    depth = 0
    start = 0
    i = 0
    while i < len(value):
        char = value[i]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif depth == 0:
            match = _AND_RE.match(value, i)
            if match:
                names.append(value[start:i])
                start = i = match.end()
                continue
        i += 1
    names.append(value[start:])
    return [name.strip() for name in names if name.strip()]


def parse_names(value: str) -> tuple[Person, ...]:
    """Parse a BibTeX name list. Fully braced names are institutional (literal)."""
    people = []
    for raw in split_names(value):
        if raw.lower() == "others":
            continue
        if raw.startswith("{") and raw.endswith("}") and _is_single_group(raw):
            people.append(Person(family=clean_latex(raw[1:-1]), literal=True))
        else:
            people.append(Person.parse(clean_latex(raw)))
    return tuple(people)


def _is_single_group(value: str) -> bool:
    depth = 0
    for i, char in enumerate(value):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0 and i != len(value) - 1:
                return False
    return depth == 0


class _Scanner:
    """Cursor over BibTeX source text."""

    def __init__(self, text: str, source: str) -> None:
        self.text = text
        self.source = source
        self.pos = 0

    def error(self, reason: str) -> BibliographyParseError:
        line = self.text.count("\n", 0, self.pos) + 1
        return BibliographyParseError(self.source, f"line {line}: {reason}")

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def expect(self, char: str) -> None:
        self.skip_whitespace()
        if self.peek() != char:
            found = self.peek() or "end of input"
            raise self.error(f"expected '{char}', found '{found}'")
        self.pos += 1

    def identifier(self) -> str:
        self.skip_whitespace()
        match = _IDENTIFIER_RE.match(self.text, self.pos)
        if not match:
            raise self.error("expected an identifier")
        self.pos = match.end()
        return match.group(0)

    def key(self) -> str:
        self.skip_whitespace()
        match = _KEY_RE.match(self.text, self.pos)
        self.pos = match.end()
        return match.group(0)

    def braced(self) -> str:
        """Content of a {...} group, nested braces kept. Cursor must be on '{'."""
        start = self.pos
        depth = 0
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == "\\":
                self.pos += 2
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    return self.text[start + 1 : self.pos - 1]
            self.pos += 1
        self.pos = start
        raise self.error("unbalanced braces")

    def quoted(self) -> str:
        """Content of a "..." value; quotes inside braces do not terminate it."""
        start = self.pos
        self.pos += 1
        depth = 0
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if char == "\\":
                self.pos += 2
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
            elif char == '"' and depth == 0:
                self.pos += 1
                return self.text[start + 1 : self.pos - 1]
            self.pos += 1
        self.pos = start
        raise self.error("unterminated quoted value")

    def value(self, macros: dict[str, str]) -> str:
        """A field value: braced, quoted, number or macro parts joined with '#'."""
        parts = []
        while True:
            self.skip_whitespace()
            char = self.peek()
            if char == "{":
                parts.append(self.braced())
            elif char == '"':
                parts.append(self.quoted())
            elif char and char not in ",}#)=":
                name = self.identifier()
                if name.isdigit():
                    parts.append(name)
                elif name.lower() in macros:
                    parts.append(macros[name.lower()])
                else:
                    logger.debug(f"Undefined BibTeX macro '{name}' in {self.source}")
                    parts.append(name)
            else:
                raise self.error("expected a field value")
            self.skip_whitespace()
            if self.peek() != "#":
                return "".join(parts)
            self.pos += 1


def parse_bibtex(text: str, source: str = "<string>") -> list[BibliographyEntry]:
    """
    Parse BibTeX or BibLaTeX text.

    Supports @string macros (month abbreviations predefined), '#'
    concatenation, brace- or parenthesis-delimited entries, and skips
    @comment and @preamble blocks. Text outside entries is ignored.

    Args:
        text: BibTeX source
        source: Origin (file path or URL) for error messages

    Returns:
        Entries in source order

    Raises:
        BibliographyParseError: If an entry is malformed
    """
    scanner = _Scanner(text, source)
    macros = dict(_MONTHS)
    entries: list[BibliographyEntry] = []

    while True:
        at = text.find("@", scanner.pos)
        if at == -1:
            break
        scanner.pos = at + 1
        entry_type = scanner.identifier().lower()
        scanner.skip_whitespace()

        opening = scanner.peek()
        if entry_type == "comment":
            if opening == "{":
                scanner.braced()
            continue
        if opening not in ("{", "("):
            raise scanner.error(f"expected '{{' or '(' after @{entry_type}")
        closing = "}" if opening == "{" else ")"
        scanner.pos += 1

        if entry_type == "preamble":
            scanner.value(macros)
            scanner.expect(closing)
            continue
        if entry_type == "string":
            name = scanner.identifier()
            scanner.expect("=")
            macros[name.lower()] = scanner.value(macros)
            scanner.expect(closing)
            continue

        key = scanner.key()
        if not key:
            raise scanner.error(f"@{entry_type} entry without a citation key")
        fields: dict[str, str] = {}
        while True:
            scanner.skip_whitespace()
            char = scanner.peek()
            if char == closing:
                scanner.pos += 1
                break
            if char == ",":
                scanner.pos += 1
                continue
            if not char:
                raise scanner.error(f"unterminated entry '{key}'")
            name = scanner.identifier().lower()
            scanner.expect("=")
            fields[name] = scanner.value(macros)
        entries.append(entry_from_fields(entry_type, key, fields))

    logger.debug(f"Parsed {len(entries)} BibTeX entr(y/ies) from {source}")
    return entries


def _date_from_fields(fields: dict[str, str]) -> str | None:
    if fields.get("date"):
        return clean_latex(fields["date"])
    year = clean_latex(fields.get("year", ""))
    if not year:
        return None
    month = clean_latex(fields.get("month", "")).lower()
    month = _MONTHS.get(month[:3], month)
    if month.isdigit() and 1 <= int(month) <= 12:
        return f"{year}-{int(month):02d}"
    return year


def entry_from_fields(entry_type: str, key: str, fields: dict[str, str]) -> BibliographyEntry:
    """Map raw BibTeX fields onto a BibliographyEntry."""

    def first(names: tuple[str, ...]) -> str | None:
        for name in names:
            if fields.get(name):
                return clean_latex(fields[name])
        return None

    def single(name: str) -> str | None:
        value = fields.get(name)
        return clean_latex(value) if value else None

    pages = single("pages")
    doi = single("doi")
    return BibliographyEntry(
        key=key,
        entry_type=_ENTRY_TYPES.get(entry_type, "misc"),
        title=single("title"),
        authors=parse_names(fields["author"]) if fields.get("author") else (),
        editors=parse_names(fields["editor"]) if fields.get("editor") else (),
        date=_date_from_fields(fields),
        container_title=first(_CONTAINER_FIELDS),
        publisher=first(_PUBLISHER_FIELDS),
        volume=single("volume"),
        issue=single("number") or single("issue"),
        pages=pages.replace("--", "\u2013") if pages else None,
        doi=_DOI_PREFIX_RE.sub("", doi) if doi else None,
        url=single("url"),
        extra={name: clean_latex(value) for name, value in fields.items() if name not in _CONSUMED_FIELDS},
    )
