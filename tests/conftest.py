"""Shared fixtures: a small library, citation style, locales and document pipelines."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.application.services.citation_context import CitationContext
from src.application.use_cases.process_document import DocumentPipeline
from src.application.use_cases.resolve_citations import CitationResolver
from src.domain.models.bibliography import BibliographyEntry, Library, Person
from src.domain.models.citation import CitationStyle, LocaleDefinition, LocaleSet
from src.infrastructure.adapters.csl_driver import CslBibliographyDriver
from src.infrastructure.adapters.front_matter import YamlFrontMatterParser
from src.infrastructure.adapters.markdown_renderer import MarkdownRenderer


@pytest.fixture
def library() -> Library:
    return Library(
        [
            BibliographyEntry(
                key="smith2020",
                entry_type="article",
                title="On Testing",
                authors=(Person(family="Smith", given="John"),),
                date="2020",
                container_title="Journal of Tests",
                volume="4",
                issue="2",
                pages="1–10",
                doi="10.1000/test",
            ),
            BibliographyEntry(
                key="doe2019",
                entry_type="book",
                title="A Book",
                authors=(Person(family="Doe", given="Jane"), Person(family="Roe", given="Richard")),
                date="2019",
                publisher="Example Press",
            ),
        ]
    )


@pytest.fixture
def author_date_style() -> CitationStyle:
    return CitationStyle(name="test.csl", title="Test Author-Date", sorts_bibliography=True)


@pytest.fixture
def locales() -> LocaleSet:
    return LocaleSet((LocaleDefinition(lang="en-US", terms={"and": "and", "et-al": "et al."}),))


@pytest.fixture
def citation_pipeline(library: Library, author_date_style: CitationStyle, locales: LocaleSet) -> DocumentPipeline:
    renderer = MarkdownRenderer()
    return DocumentPipeline(
        front_matter=YamlFrontMatterParser(),
        renderer=renderer,
        resolver=CitationResolver(renderer, CslBibliographyDriver),
        citation_context=CitationContext(style=author_date_style, locales=locales, library=library),
    )


@pytest.fixture
def plain_pipeline() -> DocumentPipeline:
    return DocumentPipeline(front_matter=YamlFrontMatterParser(), renderer=MarkdownRenderer())


@pytest.fixture
def write_document():
    """Writes a Markdown document, creating parent directories."""

    def write(directory: Path, name: str, text: str) -> Path:
        path = directory / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return write
