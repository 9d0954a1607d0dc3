"""Slug derivation for posts and their derived files."""

from __future__ import annotations

import re
import unicodedata
from pathlib import Path

_UNSAFE = re.compile(r"[^a-z0-9._-]+")
_DASHES = re.compile(r"-{2,}")


def slugify(value: str) -> str:
    """
    Reduce a string to a filesystem- and URL-safe slug.

    Lowercases, strips accents, and collapses everything outside [a-z0-9._-]
    into single dashes. Returns 'untitled' when nothing survives.
    """
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = _UNSAFE.sub("-", normalized.strip().lower())
    slug = _DASHES.sub("-", slug).strip("-.")
    return slug or "untitled"


def slug_from_path(path: Path) -> str:
    """Slug derived from a document's file name (extension removed)."""
    return slugify(path.stem)
