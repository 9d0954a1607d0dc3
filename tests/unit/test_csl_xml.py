"""Unit tests for CSL style and locale parsing."""

from __future__ import annotations

import pytest

from src.domain.errors import ConfigurationError
from src.infrastructure.adapters.csl_xml import parse_locale, parse_style
from tests.csl_payloads import AUTHOR_DATE_STYLE_XML, LOCALE_XML, NUMERIC_STYLE_XML

DEPENDENT_STYLE_XML = b"""<?xml version="1.0" encoding="utf-8"?>
<style xmlns="http://purl.org/net/xbiblio/csl" version="1.0" class="in-text">
  <info>
    <title>Some Journal</title>
    <link href="http://www.zotero.org/styles/apa" rel="independent-parent"/>
  </info>
</style>
"""


class TestParseStyle:
    """Tests for parse_style."""

    def test_author_date_style(self):
        style = parse_style(AUTHOR_DATE_STYLE_XML, "test.csl")
        assert style.name == "test.csl"
        assert style.title == "Test Author-Date"
        assert style.citation_format == "author-date"
        assert style.et_al_min == 3
        assert style.et_al_use_first == 1
        assert style.sorts_bibliography is True
        assert style.default_locale == "en-US"

    def test_numeric_style(self):
        style = parse_style(NUMERIC_STYLE_XML, "numeric.csl")
        assert style.is_numeric
        assert style.sorts_bibliography is False

    def test_dependent_style_rejected(self):
        with pytest.raises(ConfigurationError, match="dependent") as exc_info:
            parse_style(DEPENDENT_STYLE_XML, "some-journal.csl")
        assert "apa" in exc_info.value.hint

    def test_invalid_xml_rejected(self):
        with pytest.raises(ConfigurationError, match="Invalid XML"):
            parse_style(b"<style", "broken.csl")

    def test_wrong_root_rejected(self):
        with pytest.raises(ConfigurationError, match="not a CSL style"):
            parse_style(LOCALE_XML, "locale.csl")

    def test_missing_citation_rejected(self):
        content = b'<style xmlns="http://purl.org/net/xbiblio/csl"><info><title>X</title></info></style>'
        with pytest.raises(ConfigurationError, match="no <citation>"):
            parse_style(content, "x.csl")


class TestParseLocale:
    """Tests for parse_locale."""

    def test_terms(self):
        locale = parse_locale(LOCALE_XML, "en-US")
        assert locale.lang == "en-US"
        assert locale.terms["and"] == "and"
        assert locale.terms["et-al"] == "et al."
        assert locale.terms["no date:short"] == "n.d."
        assert locale.terms["page"] == "page"
        assert locale.terms["page:plural"] == "pages"

    def test_lang_falls_back_to_requested_code(self):
        content = b'<locale xmlns="http://purl.org/net/xbiblio/csl"><terms/></locale>'
        assert parse_locale(content, "fr-FR").lang == "fr-FR"

    def test_style_payload_rejected(self):
        with pytest.raises(ConfigurationError):
            parse_locale(AUTHOR_DATE_STYLE_XML, "en-US")
