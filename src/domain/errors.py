"""Domain errors for citation resolution and site builds."""

from __future__ import annotations


class ConfigurationError(Exception):
    """
    Raised when the run cannot start because configuration is invalid.

    Covers invalid or missing styles, locales and bibliography sources.
    Always fatal to the whole run and surfaced before any document is processed.

    Attributes:
        message: Error message
        hint: Actionable hint for resolution (optional)
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        self.message = message
        self.hint = hint
        msg = message
        if hint:
            msg += f". {hint}"
        super().__init__(msg)


class ResourceFetchError(Exception):
    """
    Raised when a remote resource cannot be fetched.

    Not retried automatically. Fatal to every document that depends on the
    resource at the moment of the fetch.

    Attributes:
        resource: Resource name (e.g. 'styles/apa.csl', 'locales/en-US.xml')
        url: URL that was requested
        status_code: HTTP status code if a response was received (optional)
        reason: Underlying failure description (optional)
    """

    def __init__(
        self,
        resource: str,
        url: str,
        status_code: int | None = None,
        reason: str | None = None,
    ) -> None:
        self.resource = resource
        self.url = url
        self.status_code = status_code
        self.reason = reason
        msg = f"Failed to fetch '{resource}' from {url}"
        if status_code is not None:
            msg += f": HTTP {status_code}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class BibliographyParseError(Exception):
    """
    Raised when a bibliography payload cannot be parsed.

    Attributes:
        source: Where the payload came from (file path or URL)
        reason: Detailed reason for failure
    """

    def __init__(self, source: str, reason: str) -> None:
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to parse bibliography from {source}: {reason}")


class DocumentProcessingError(Exception):
    """
    Raised when a single document cannot be turned into a post.

    Recovered at the orchestrator level: the document is excluded from the
    index and reported while other documents continue.

    Attributes:
        path: Source document path
        reason: Detailed reason for failure
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to process {path}: {reason}")


class MetadataBlockError(DocumentProcessingError):
    """Raised when the front-matter block of a document is malformed."""


class ImageProcessingError(DocumentProcessingError):
    """Raised when cover image derivatives cannot be produced."""


class PostReadError(Exception):
    """
    Raised when a previously written post cannot be read back.

    Never surfaced as a build failure: the orchestrator reprocesses the document.

    Attributes:
        path: Output file path
        reason: Detailed reason for failure
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Unreadable post output {path}: {reason}")


class BuildFailedError(Exception):
    """
    Raised when every document of a build failed.

    Attributes:
        failures: List of (source path, error message) pairs
    """

    def __init__(self, failures: list[tuple[str, str]]) -> None:
        self.failures = failures
        super().__init__(f"All {len(failures)} document(s) failed to process")
