"""Integration tests for the citepress CLI."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import httpx
import pytest
import respx
from typer.testing import CliRunner

from src.infrastructure.adapters.resource_cache import CSL_LOCALES_BASE, CSL_STYLES_BASE, STYLES_LIST_URL
from src.infrastructure.cli.main import app
from src.infrastructure.config.environment import ZOTERO_ENV_VARS
from tests.csl_payloads import AUTHOR_DATE_STYLE_XML, LOCALE_XML

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path: Path):
    """Run each command in an empty directory with no Zotero credentials; restore logging afterwards."""
    for var in [*ZOTERO_ENV_VARS, "CITEPRESS_CONFIG"]:
        monkeypatch.setenv(var, "")
        monkeypatch.delenv(var)
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _config(tmp_path: Path, extra: str = "") -> Path:
    config = tmp_path / "citepress.toml"
    config.write_text(
        f"""
content_dir = "{(tmp_path / 'content').as_posix()}"
output_dir = "{(tmp_path / 'build').as_posix()}"
public_dir = "{(tmp_path / 'public').as_posix()}"

[cache]
directory = "{(tmp_path / 'cache').as_posix()}"
{extra}
""",
        encoding="utf-8",
    )
    return config


class TestBuildCommand:
    """Tests for 'citepress build'."""

    def test_build_without_citations(self, tmp_path: Path, write_document):
        write_document(tmp_path / "content", "hello.md", "---\ntitle: Hello\n---\nSee @[smith2020].\n")

        result = runner.invoke(app, ["build", "--config", str(_config(tmp_path)), "--no-progress"])

        assert result.exit_code == 0, result.output
        post = json.loads((tmp_path / "build" / "hello.json").read_text(encoding="utf-8"))
        assert "@[smith2020]" in post["content"]
        assert (tmp_path / "build" / "index.json").exists()
        assert "Build summary" in result.output

    def test_config_from_environment(self, tmp_path: Path, monkeypatch, write_document):
        write_document(tmp_path / "content", "hello.md", "Hi\n")
        monkeypatch.setenv("CITEPRESS_CONFIG", str(_config(tmp_path)))

        result = runner.invoke(app, ["build", "--no-progress", "--workers", "2"])

        assert result.exit_code == 0, result.output
        assert (tmp_path / "build" / "hello.json").exists()

    @respx.mock
    def test_build_with_local_bibliography(self, tmp_path: Path, write_document):
        respx.get(f"{CSL_STYLES_BASE}test.csl").mock(return_value=httpx.Response(200, content=AUTHOR_DATE_STYLE_XML))
        respx.get(f"{CSL_LOCALES_BASE}en-US.xml").mock(return_value=httpx.Response(200, content=LOCALE_XML))
        bib = tmp_path / "refs.bib"
        bib.write_text("@book{smith2020, author={Smith, John}, title={Testing}, year={2020}}", encoding="utf-8")
        extra = f'\n[citations]\nstyle = "test"\nbibliography_path = "{bib.as_posix()}"\n'
        write_document(tmp_path / "content", "cited.md", "See @[smith2020].\n")

        result = runner.invoke(app, ["build", "--config", str(_config(tmp_path, extra)), "--no-progress"])

        assert result.exit_code == 0, result.output
        post = json.loads((tmp_path / "build" / "cited.json").read_text(encoding="utf-8"))
        assert "(Smith, 2020)" in post["content"]
        assert "Smith, J. (2020). <i>Testing</i>." in post["content"]
        assert (tmp_path / "cache" / "styles" / "test.csl").exists()

    @respx.mock
    def test_unavailable_style_exits_before_processing(self, tmp_path: Path, write_document):
        respx.get(f"{CSL_STYLES_BASE}missing.csl").mock(return_value=httpx.Response(404))
        bib = tmp_path / "refs.bib"
        bib.write_text("", encoding="utf-8")
        extra = f'\n[citations]\nstyle = "missing"\nbibliography_path = "{bib.as_posix()}"\n'
        write_document(tmp_path / "content", "post.md", "Body\n")

        result = runner.invoke(app, ["build", "--config", str(_config(tmp_path, extra)), "--no-progress"])

        assert result.exit_code == 1
        assert "HTTP 404" in result.output
        assert not (tmp_path / "build" / "post.json").exists()

    def test_partial_failure_succeeds_and_lists_failures(self, tmp_path: Path, write_document):
        write_document(tmp_path / "content", "good.md", "Fine\n")
        write_document(tmp_path / "content", "bad.md", "---\ntitle: [\n---\n")

        result = runner.invoke(app, ["build", "--config", str(_config(tmp_path)), "--no-progress"])

        assert result.exit_code == 0, result.output
        index = json.loads((tmp_path / "build" / "index.json").read_text(encoding="utf-8"))
        assert [post["slug"] for post in index["posts"]] == ["good"]
        assert "bad.md" in result.output

    def test_total_failure(self, tmp_path: Path, write_document):
        write_document(tmp_path / "content", "bad.md", "---\ntitle: [\n---\n")

        result = runner.invoke(app, ["build", "--config", str(_config(tmp_path)), "--no-progress"])

        assert result.exit_code == 1
        assert "All 1 document(s) failed" in result.output

    def test_invalid_configuration(self, tmp_path: Path):
        config = tmp_path / "citepress.toml"
        config.write_text("content_dir = [", encoding="utf-8")

        result = runner.invoke(app, ["build", "--config", str(config)])

        assert result.exit_code == 1
        assert "Invalid TOML" in result.output


class TestStylesCommands:
    """Tests for 'citepress styles'."""

    @respx.mock
    def test_find(self, tmp_path: Path):
        respx.get(STYLES_LIST_URL).mock(
            return_value=httpx.Response(
                200,
                json=[
                    {"name": "apa.csl", "title": "APA"},
                    {"name": "ieee.csl", "title": "IEEE"},
                ],
            )
        )

        result = runner.invoke(app, ["styles", "find", "ieee", "--config", str(_config(tmp_path))])

        assert result.exit_code == 0, result.output
        assert "ieee" in result.output
        assert "apa" not in result.output

    @respx.mock
    def test_list_fetch_failure(self, tmp_path: Path):
        respx.get(STYLES_LIST_URL).mock(return_value=httpx.Response(500))
        result = runner.invoke(app, ["styles", "list", "--config", str(_config(tmp_path))])
        assert result.exit_code == 1

    def test_clean(self, tmp_path: Path):
        result = runner.invoke(app, ["styles", "clean", "--config", str(_config(tmp_path))])
        assert result.exit_code == 0, result.output
        assert "Removed 0 expired cache entries" in result.output


class TestZoteroCommands:
    """Tests for 'citepress zotero fetch'."""

    def test_fetch_without_credentials(self, tmp_path: Path):
        result = runner.invoke(app, ["zotero", "fetch", "--output", str(tmp_path / "refs.yml")])
        assert result.exit_code == 1
        assert "not configured" in result.output

    @respx.mock
    def test_fetch_writes_snapshot(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("ZOTERO_API_KEY", "secret")
        monkeypatch.setenv("ZOTERO_USER_ID", "123")
        respx.route(method="GET", host="api.zotero.org", path="/users/123/items").mock(
            return_value=httpx.Response(
                200,
                text="@article{a, title={A}, year={2020}}",
                headers={"Total-Results": "1"},
            )
        )
        output = tmp_path / "refs.yml"

        result = runner.invoke(app, ["zotero", "fetch", "--output", str(output)])

        assert result.exit_code == 0, result.output
        assert "Wrote 1 entries" in result.output
        assert output.read_text(encoding="utf-8").startswith("a:")
