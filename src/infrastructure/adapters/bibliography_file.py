"""Bibliography source reading a local file."""

from __future__ import annotations

import logging
from pathlib import Path

from ...domain.errors import BibliographyParseError
from ...domain.models.bibliography import Library
from .bibliography_formats import parse_csl_json, parse_yaml_bibliography
from .bibtex_parser import parse_bibtex

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yml", ".yaml")
JSON_SUFFIXES = (".json",)


class LocalFileBibliographySource:
    """
    Loads a Library from a single file, chosen by extension.

    '.yml'/'.yaml' are read as YAML bibliographies, '.json' as CSL-JSON, and
    anything else as BibTeX/BibLaTeX. The file is read once per load.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> Library:
        """
        Read and parse the bibliography file.

        Raises:
            BibliographyParseError: If the file is missing, unreadable or invalid
        """
        source = str(self.path)
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise BibliographyParseError(source, f"cannot read file: {e}") from e

        suffix = self.path.suffix.lower()
        if suffix in YAML_SUFFIXES:
            entries = parse_yaml_bibliography(text, source)
        elif suffix in JSON_SUFFIXES:
            entries = parse_csl_json(text, source)
        else:
            entries = parse_bibtex(text, source)

        library = Library(entries)
        logger.info(
            f"Loaded {len(library)} bibliography entr(y/ies) from {self.path}",
            extra={"bibliography_path": source, "entry_count": len(library)},
        )
        return library
