"""YAML front-matter splitting."""

from __future__ import annotations

import re
from typing import Any

import yaml

from ...domain.errors import MetadataBlockError

# '---' on the very first line, block closed by a line of '---' or '...'
_FRONT_MATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^(?:---|\.\.\.)[ \t]*\r?$\n?", re.DOTALL | re.MULTILINE)


class YamlFrontMatterParser:
    """Splits a leading YAML block fenced by '---' lines from the document body."""

    def split(self, text: str, source: str = "<string>") -> tuple[dict[str, Any], str]:
        """
        Split front matter from body.

        Args:
            text: Full document text
            source: Document identifier for error messages

        Returns:
            (metadata, body); ({}, text) when the document has no block

        Raises:
            MetadataBlockError: If the block is not valid YAML or not a mapping
        """
        text = text.removeprefix("\ufeff")
        match = _FRONT_MATTER_RE.match(text)
        if not match:
            return {}, text
        try:
            metadata = yaml.safe_load(match.group(1))
        except yaml.YAMLError as e:
            raise MetadataBlockError(source, f"invalid front matter: {e}") from e
        if metadata is None:
            metadata = {}
        if not isinstance(metadata, dict):
            raise MetadataBlockError(source, "front matter must be a mapping")
        return metadata, text[match.end() :]
