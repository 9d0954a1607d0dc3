"""Pydantic settings for citepress.toml configuration."""

import os
import tomllib
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from ...domain.errors import ConfigurationError
from .environment import get_zotero_overrides, load_environment_variables


class ZoteroSettings(BaseModel):
    """Zotero Web API source. Exactly one of user_id / group_id selects the library."""

    api_key: str = ""
    user_id: str = ""
    group_id: str = ""
    collection_key: str = ""
    snapshot_path: Path | None = None

    @property
    def library(self) -> tuple[str, str]:
        """(library type, library id); user libraries take precedence over groups."""
        if self.user_id:
            return "user", self.user_id
        return "group", self.group_id

    @property
    def configured(self) -> bool:
        return bool(self.api_key or self.user_id or self.group_id)


class CitationSettings(BaseModel):
    """Citation style, locale and bibliography source."""

    style: str = "apa"
    language_code: str = "en-US"
    bibliography_path: Path | None = None
    zotero: ZoteroSettings | None = None

    @property
    def enabled(self) -> bool:
        """True when a bibliography source is configured."""
        return self.bibliography_path is not None or (self.zotero is not None and self.zotero.configured)


class ImageSettings(BaseModel):
    """Cover image derivative settings."""

    cover_width: int = Field(default=1200, gt=0)
    cover_height: int = Field(default=800, gt=0)
    thumbnail_width: int = Field(default=400, gt=0)
    thumbnail_height: int = Field(default=267, gt=0)
    filter_type: str = "Lanczos3"


class CacheSettings(BaseModel):
    """Remote CSL resource cache settings."""

    directory: Path = Path(".cache")
    enabled: bool = True
    ttl_hours: float = Field(default=24, gt=0)

    @property
    def ttl(self) -> timedelta:
        return timedelta(hours=self.ttl_hours)


class BuildSettings(BaseModel):
    """Build execution settings."""

    workers: int = Field(default=0, ge=0)  # 0 -> executor default

    @property
    def max_workers(self) -> int | None:
        return self.workers or None


class Settings(BaseModel):
    """Main settings loaded from citepress.toml."""

    content_dir: Path = Path("content")
    output_dir: Path = Path("build/content")
    public_dir: Path = Path("public")
    citations: CitationSettings = Field(default_factory=CitationSettings)
    images: ImageSettings = Field(default_factory=ImageSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)

    @field_validator("content_dir", "output_dir", "public_dir", mode="before")
    @classmethod
    def expand_paths(cls, v: Any) -> Any:
        """Expand '~' in configured directories."""
        if isinstance(v, str):
            return Path(os.path.expanduser(v))
        return v

    @classmethod
    def from_toml(cls, toml_path: Path | str = "citepress.toml") -> "Settings":
        """
        Load settings from a TOML file with environment variable precedence.

        A missing file yields defaults. ZOTERO_* variables (system env > .env
        file) override or create the [citations.zotero] section.

        Args:
            toml_path: Path to citepress.toml

        Returns:
            Settings instance with loaded configuration

        Raises:
            ConfigurationError: If the file is invalid or both bibliography
                sources are configured
        """
        load_environment_variables()

        toml_path = Path(toml_path)
        data: dict[str, Any] = {}
        if toml_path.exists():
            try:
                with toml_path.open("rb") as f:
                    data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(
                    f"Invalid TOML in {toml_path}: {e}",
                    hint="Fix the file or remove it to use defaults",
                ) from e

        overrides = get_zotero_overrides()
        if overrides:
            citations = data.setdefault("citations", {})
            zotero = citations.get("zotero") or {}
            citations["zotero"] = {**zotero, **overrides}

        try:
            settings = cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration in {toml_path}: {e}") from e
        settings.validate_bibliography_source()
        return settings

    def validate_bibliography_source(self) -> None:
        """
        Ensure at most one bibliography source is configured.

        Raises:
            ConfigurationError: If both a bibliography file and Zotero credentials are set
        """
        zotero = self.citations.zotero
        if self.citations.bibliography_path is not None and zotero is not None and zotero.configured:
            raise ConfigurationError(
                "Both citations.bibliography_path and Zotero credentials are configured",
                hint="Configure exactly one bibliography source",
            )
