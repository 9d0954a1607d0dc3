"""Unit tests for environment loading and settings."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

import pytest

from src.domain.errors import ConfigurationError
from src.infrastructure.config.environment import (
    ZOTERO_ENV_VARS,
    get_config_path,
    get_zotero_overrides,
    load_environment_variables,
)
from src.infrastructure.config.settings import Settings


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path: Path):
    """Isolate tests from the developer's environment and .env files."""
    # setenv first so teardown also removes values loaded from .env files
    for var in [*ZOTERO_ENV_VARS, "CITEPRESS_CONFIG"]:
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)


class TestEnvironmentVariableLoading:
    """Tests for load_environment_variables."""

    def test_load_env_file_automatic_detection(self, tmp_path: Path):
        """A .env in the working directory is loaded without overriding."""
        (tmp_path / ".env").write_text("TEST_KEY=test_value\n")

        with patch("src.infrastructure.config.environment.load_dotenv") as mock_load:
            load_environment_variables()

            mock_load.assert_called_once()
            assert mock_load.call_args[1].get("override", True) is False

    def test_load_env_file_parent_directories(self, tmp_path: Path, monkeypatch):
        """A .env up to three levels above the working directory is found."""
        nested_dir = tmp_path / "level1" / "level2" / "level3"
        nested_dir.mkdir(parents=True)
        monkeypatch.chdir(nested_dir)
        (tmp_path / ".env").write_text("TEST_KEY=test_value\n")

        with patch("src.infrastructure.config.environment.load_dotenv") as mock_load:
            load_environment_variables()
            mock_load.assert_called_once()

    def test_load_env_file_not_found(self):
        with patch("src.infrastructure.config.environment.load_dotenv") as mock_load:
            load_environment_variables()
            mock_load.assert_not_called()

    def test_system_env_takes_precedence(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("ZOTERO_API_KEY", "from-system")
        (tmp_path / ".env").write_text("ZOTERO_API_KEY=from-dotenv\nZOTERO_USER_ID=42\n")

        load_environment_variables()

        assert get_zotero_overrides() == {"api_key": "from-system", "user_id": "42"}


class TestConfigPath:
    """Tests for config path selection."""

    def test_default(self):
        assert get_config_path() == Path("citepress.toml")

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("CITEPRESS_CONFIG", "site/config.toml")
        assert get_config_path() == Path("site/config.toml")


class TestSettings:
    """Tests for Settings.from_toml."""

    def test_missing_file_gives_defaults(self, tmp_path: Path):
        settings = Settings.from_toml(tmp_path / "citepress.toml")
        assert settings.content_dir == Path("content")
        assert settings.output_dir == Path("build/content")
        assert settings.citations.style == "apa"
        assert settings.citations.language_code == "en-US"
        assert not settings.citations.enabled
        assert settings.cache.ttl == timedelta(hours=24)
        assert settings.build.max_workers is None

    def test_toml_values(self, tmp_path: Path):
        config = tmp_path / "citepress.toml"
        config.write_text(
            """
content_dir = "posts"

[citations]
style = "ieee"
bibliography_path = "refs.bib"

[cache]
enabled = false
ttl_hours = 1

[build]
workers = 4
""",
            encoding="utf-8",
        )
        settings = Settings.from_toml(config)
        assert settings.content_dir == Path("posts")
        assert settings.citations.style == "ieee"
        assert settings.citations.enabled
        assert settings.cache.enabled is False
        assert settings.cache.ttl == timedelta(hours=1)
        assert settings.build.max_workers == 4

    def test_zotero_environment_creates_section(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("ZOTERO_API_KEY", "key")
        monkeypatch.setenv("ZOTERO_GROUP_ID", "99")
        settings = Settings.from_toml(tmp_path / "citepress.toml")
        assert settings.citations.enabled
        assert settings.citations.zotero.library == ("group", "99")

    def test_both_sources_rejected(self, monkeypatch, tmp_path: Path):
        config = tmp_path / "citepress.toml"
        config.write_text('[citations]\nbibliography_path = "refs.bib"\n', encoding="utf-8")
        monkeypatch.setenv("ZOTERO_API_KEY", "key")
        monkeypatch.setenv("ZOTERO_USER_ID", "1")
        with pytest.raises(ConfigurationError, match="exactly one"):
            Settings.from_toml(config)

    def test_invalid_toml(self, tmp_path: Path):
        config = tmp_path / "citepress.toml"
        config.write_text("content_dir = ", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            Settings.from_toml(config)

    def test_invalid_values(self, tmp_path: Path):
        config = tmp_path / "citepress.toml"
        config.write_text("[cache]\nttl_hours = -1\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            Settings.from_toml(config)
