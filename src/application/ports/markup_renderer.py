from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class MarkupRendererPort(Protocol):
    """Protocol for rendering document body markup to HTML."""

    def render(self, source: str, inline_html: Mapping[str, str] | None = None) -> str:
        """
        Render markup to HTML.

        Args:
            source: Body markup (without front matter)
            inline_html: Optional token -> raw HTML mapping. Occurrences of a
                token inside text runs are replaced by the HTML; tokens are
                never substituted inside tag attributes. Tokens inside code
                are left for the caller to restore.

        Returns:
            Rendered HTML
        """
        ...


@runtime_checkable
class FrontMatterParserPort(Protocol):
    """Protocol for splitting a document into metadata and body."""

    def split(self, text: str, source: str = "<string>") -> tuple[dict[str, Any], str]:
        """
        Split a leading metadata block from the body.

        Args:
            text: Full document text
            source: Document identifier for error messages

        Returns:
            (metadata mapping, body text); empty mapping when there is no block

        Raises:
            MetadataBlockError: If the block exists but is malformed
        """
        ...
