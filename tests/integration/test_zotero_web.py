"""Integration tests for the Zotero Web API bibliography source."""

from __future__ import annotations

from pathlib import Path

import httpx
import pytest
import respx

from src.domain.errors import BibliographyParseError, ConfigurationError, ResourceFetchError
from src.infrastructure.adapters.bibliography_formats import parse_yaml_bibliography
from src.infrastructure.adapters.zotero_web import ZoteroWebBibliographySource

ITEMS_PATH = "/users/123/items"


def _bibtex(*keys: str) -> str:
    return "\n".join(f"@article{{{key}, title = {{Title of {key}}}, year = {{2020}}}}" for key in keys)


def _source(**kwargs) -> ZoteroWebBibliographySource:
    return ZoteroWebBibliographySource(api_key="secret", library_id="123", min_request_interval=0, **kwargs)


class TestZoteroWebBibliographySource:
    """Tests for paginated library loading."""

    def test_items_url(self):
        assert _source().items_url == "https://api.zotero.org/users/123/items"
        group = ZoteroWebBibliographySource("k", "9", library_type="group", collection_key="ABCD")
        assert group.items_url == "https://api.zotero.org/groups/9/collections/ABCD/items"

    @pytest.mark.parametrize(
        ("kwargs", "message"),
        [
            ({"api_key": "", "library_id": "1"}, "API key"),
            ({"api_key": "k", "library_id": ""}, "library ID"),
            ({"api_key": "k", "library_id": "1", "library_type": "team"}, "library type"),
        ],
    )
    def test_invalid_configuration(self, kwargs, message):
        with pytest.raises(ConfigurationError, match=message):
            ZoteroWebBibliographySource(**kwargs)

    @respx.mock
    def test_pages_until_total_results(self):
        pages = {0: _bibtex(*(f"a{i}" for i in range(100))), 100: _bibtex(*(f"b{i}" for i in range(50)))}

        def respond(request: httpx.Request) -> httpx.Response:
            start = int(request.url.params["start"])
            assert request.url.params["format"] == "bibtex"
            assert request.url.params["limit"] == "100"
            assert request.headers["Zotero-API-Key"] == "secret"
            assert request.headers["Zotero-API-Version"] == "3"
            return httpx.Response(200, text=pages[start], headers={"Total-Results": "150"})

        route = respx.route(method="GET", host="api.zotero.org", path=ITEMS_PATH).mock(side_effect=respond)

        source = _source()
        library = source.load()
        source.close()

        assert route.call_count == 2
        assert len(library) == 150
        assert library.keys()[0] == "a0"
        assert library.keys()[-1] == "b49"

    @respx.mock
    def test_single_request_without_total_header(self):
        route = respx.route(method="GET", host="api.zotero.org", path=ITEMS_PATH).mock(
            return_value=httpx.Response(200, text=_bibtex("only"))
        )
        assert _source().load().keys() == ["only"]
        assert route.call_count == 1

    @respx.mock
    def test_empty_library(self):
        respx.route(method="GET", host="api.zotero.org", path=ITEMS_PATH).mock(
            return_value=httpx.Response(200, text="", headers={"Total-Results": "0"})
        )
        assert len(_source().load()) == 0

    @respx.mock
    def test_failed_page_aborts_load(self):
        def respond(request: httpx.Request) -> httpx.Response:
            if request.url.params["start"] == "0":
                return httpx.Response(200, text=_bibtex("a"), headers={"Total-Results": "150"})
            return httpx.Response(503)

        respx.route(method="GET", host="api.zotero.org", path=ITEMS_PATH).mock(side_effect=respond)

        with pytest.raises(ResourceFetchError) as exc_info:
            _source().load()
        assert exc_info.value.status_code == 503

    @respx.mock
    def test_invalid_page_raises_parse_error(self):
        respx.route(method="GET", host="api.zotero.org", path=ITEMS_PATH).mock(
            return_value=httpx.Response(200, text="@article{broken, title={", headers={"Total-Results": "1"})
        )
        with pytest.raises(BibliographyParseError):
            _source().load()

    @respx.mock
    def test_snapshot_written(self, tmp_path: Path):
        respx.route(method="GET", host="api.zotero.org", path=ITEMS_PATH).mock(
            return_value=httpx.Response(200, text=_bibtex("x", "y"), headers={"Total-Results": "2"})
        )
        snapshot = tmp_path / "snapshots" / "refs.yml"

        _source(snapshot_path=snapshot).load()

        entries = parse_yaml_bibliography(snapshot.read_text(encoding="utf-8"))
        assert [entry.key for entry in entries] == ["x", "y"]
        assert entries[0].title == "Title of x"
