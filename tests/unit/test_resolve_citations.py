"""Unit tests for the citation resolver."""

from __future__ import annotations

from src.application.ports.citation_driver import DriverOutput
from src.application.use_cases.resolve_citations import (
    CitationResolver,
    find_markers,
    placeholder_for,
    render_reference_list,
)
from src.domain.models.bibliography import BibliographyEntry, Library
from src.domain.models.citation import CitationStyle, LocaleSet
from src.infrastructure.adapters.csl_driver import CslBibliographyDriver
from src.infrastructure.adapters.markdown_renderer import MarkdownRenderer


class FakeDriver:
    """Driver formatting every citation as <KEY> and every reference as 'ref KEY'."""

    instances: list["FakeDriver"] = []

    def __init__(self, style: CitationStyle, locales: LocaleSet) -> None:
        self.requests: list[str] = []
        self.finish_calls = 0
        FakeDriver.instances.append(self)

    def citation(self, entry: BibliographyEntry) -> None:
        self.requests.append(entry.key)

    def finish(self) -> DriverOutput:
        self.finish_calls += 1
        keys = list(dict.fromkeys(self.requests))
        return DriverOutput(
            citations={key: f"&lt;{key.upper()}&gt;" for key in keys},
            references=[(key, f"ref {key}") for key in keys],
        )


def _resolver() -> CitationResolver:
    FakeDriver.instances = []
    return CitationResolver(MarkdownRenderer(), FakeDriver)


class TestFindMarkers:
    """Tests for marker scanning."""

    def test_markers_in_order(self):
        markers = find_markers("A @[one] and @[ two ] end")
        assert [marker.key for marker in markers] == ["one", " two "]
        assert markers[0].raw == "@[one]"
        assert markers[0].start == 2

    def test_unclosed_marker_is_text(self):
        assert find_markers("broken @[key and more") == []

    def test_empty_brackets_are_text(self):
        assert find_markers("@[]") == []


class TestPlaceholder:
    """Tests for placeholder tokens."""

    def test_placeholder_is_alphanumeric_and_fixed_length(self):
        first = placeholder_for("smith2020")
        second = placeholder_for("smith2020a")
        assert first.isalnum()
        assert len(first) == len(second)
        assert first != second
        assert placeholder_for("smith2020") == first


class TestCitationResolver:
    """Tests for CitationResolver.resolve."""

    def test_no_markers_renders_body_without_references(self, library, author_date_style, locales):
        result = _resolver().resolve("Just *text*.", library, author_date_style, locales)
        assert result.html == "<p>Just <em>text</em>.</p>\n"
        assert result.references_html == ""
        assert not result.has_citations
        assert all(driver.finish_calls == 1 for driver in FakeDriver.instances)

    def test_repeated_key_listed_once(self, library, author_date_style, locales):
        resolver = _resolver()
        result = resolver.resolve("See @[smith2020] and again @[smith2020].", library, author_date_style, locales)

        assert result.cited_count == 1
        assert result.html.count('<a href="#ref-smith2020" class="citation">&lt;SMITH2020&gt;</a>') == 2
        assert result.references_html.count("reference-item") == 1
        assert '<div id="ref-smith2020" class="reference-item">ref smith2020</div>' in result.references_html
        # two independent drivers, each fed every citation
        assert len(FakeDriver.instances) == 2
        assert all(driver.requests == ["smith2020", "smith2020"] for driver in FakeDriver.instances)

    def test_unknown_key_becomes_visible_text(self, library, author_date_style, locales):
        result = _resolver().resolve("Cite @[nobody2000].", library, author_date_style, locales)
        assert "[Unknown citation: nobody2000]" in result.html
        assert result.cited_count == 0
        assert result.references_html == ""
        assert all(driver.requests == [] for driver in FakeDriver.instances)

    def test_only_cited_keys_in_references(self, library, author_date_style, locales):
        result = _resolver().resolve("@[doe2019]", library, author_date_style, locales)
        assert "ref doe2019" in result.references_html
        assert "smith2020" not in result.references_html

    def test_marker_in_code_span_restored_as_written(self, library, author_date_style, locales):
        result = _resolver().resolve("Use `@[smith2020]` in prose.", library, author_date_style, locales)
        assert "<code>@[smith2020]</code>" in result.html
        assert "CITATIONPLACEHOLDER" not in result.html

    def test_unknown_marker_in_code_span_restored_as_written(self, library, author_date_style, locales):
        result = _resolver().resolve("Use `@[smith2020]` and `@[nokey]`, not @[nokey].", library, author_date_style, locales)
        assert "<code>@[smith2020]</code> and <code>@[nokey]</code>" in result.html
        assert result.html.count("[Unknown citation: nokey]") == 1
        assert "CITATIONPLACEHOLDER" not in result.html

    def test_padded_key_is_not_trimmed(self, library, author_date_style, locales):
        result = _resolver().resolve("See @[ smith2020 ].", library, author_date_style, locales)
        assert "[Unknown citation:  smith2020 ]" in result.html
        assert result.cited_count == 0

    def test_marker_in_fenced_code_restored(self, library, author_date_style, locales):
        source = "```\n@[doe2019]\n```\n\nText @[doe2019].\n"
        result = _resolver().resolve(source, library, author_date_style, locales)
        assert "@[doe2019]\n</code></pre>" in result.html
        assert "&lt;DOE2019&gt;</a>" in result.html

    def test_deterministic(self, library, author_date_style, locales):
        source = "@[doe2019] then @[smith2020]"
        resolver = CitationResolver(MarkdownRenderer(), CslBibliographyDriver)
        first = resolver.resolve(source, library, author_date_style, locales)
        second = resolver.resolve(source, library, author_date_style, locales)
        assert first == second

    def test_with_csl_driver(self, library, author_date_style, locales):
        resolver = CitationResolver(MarkdownRenderer(), CslBibliographyDriver)
        result = resolver.resolve("As shown @[smith2020].", library, author_date_style, locales)
        assert '<a href="#ref-smith2020" class="citation">(Smith, 2020)</a>' in result.html
        assert "<h2>References</h2>" in result.references_html
        assert "Smith, J. (2020). On Testing." in result.references_html


class TestRenderReferenceList:
    """Tests for the reference list block."""

    def test_empty(self):
        assert render_reference_list([]) == ""

    def test_items_are_addressable(self):
        block = render_reference_list([("a", "A ref"), ("b", "B ref")])
        assert block.startswith('<div class="references">')
        assert block.index('id="ref-a"') < block.index('id="ref-b"')
