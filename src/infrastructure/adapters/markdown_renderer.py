"""Markdown rendering with markdown-it-py and Pygments highlighting."""

from __future__ import annotations

import html
import logging
import re
from typing import Mapping

from markdown_it import MarkdownIt
from markdown_it.token import Token
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound

logger = logging.getLogger(__name__)


class MarkdownRenderer:
    """
    CommonMark renderer with tables, strikethrough and highlighted fences.

    Raw HTML in the source is passed through. Inline replacement tokens are
    substituted only inside plain text runs, never inside code, attributes or
    image alt text.
    """

    def __init__(self) -> None:
        self._formatter = HtmlFormatter(nowrap=True)
        self._md = MarkdownIt("commonmark", {"html": True, "highlight": self._highlight}).enable(
            ["table", "strikethrough"]
        )

    def _highlight(self, code: str, lang: str, attrs: str) -> str:
        if not lang:
            return ""
        try:
            lexer = get_lexer_by_name(lang)
        except ClassNotFound:
            logger.debug(f"No highlighter for language '{lang}'")
            return ""
        body = highlight(code, lexer, self._formatter)
        return f'<pre class="highlight"><code class="language-{html.escape(lang, quote=True)}">{body}</code></pre>'

    def render(self, source: str, inline_html: Mapping[str, str] | None = None) -> str:
        """
        Render Markdown to HTML.

        Args:
            source: Markdown body
            inline_html: Optional token -> raw HTML mapping applied to text runs

        Returns:
            Rendered HTML
        """
        env: dict = {}
        tokens = self._md.parse(source, env)
        if inline_html:
            pattern = re.compile("|".join(re.escape(token) for token in sorted(inline_html, key=len, reverse=True)))
            for token in tokens:
                if token.type == "inline" and token.children:
                    token.children = _substitute(token.children, pattern, inline_html)
        return self._md.renderer.render(tokens, self._md.options, env)


def _substitute(children: list[Token], pattern: re.Pattern[str], inline_html: Mapping[str, str]) -> list[Token]:
    """Split text tokens around replacement tokens, emitting the HTML as html_inline."""
    result: list[Token] = []
    for token in children:
        if token.type != "text" or not pattern.search(token.content):
            result.append(token)
            continue
        content = token.content
        position = 0
        for match in pattern.finditer(content):
            if match.start() > position:
                result.append(Token("text", "", 0, level=token.level, content=content[position : match.start()]))
            result.append(Token("html_inline", "", 0, level=token.level, content=inline_html[match.group(0)]))
            position = match.end()
        if position < len(content):
            result.append(Token("text", "", 0, level=token.level, content=content[position:]))
    return result
