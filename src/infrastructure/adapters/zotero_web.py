"""Bibliography source fetching a library from the Zotero Web API."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import httpx

from ...domain.errors import ConfigurationError, ResourceFetchError
from ...domain.models.bibliography import Library
from .bibliography_formats import dump_yaml_bibliography
from .bibtex_parser import parse_bibtex

logger = logging.getLogger(__name__)

ZOTERO_API_BASE = "https://api.zotero.org/"
LIBRARY_TYPES = ("user", "group")


class ZoteroWebBibliographySource:
    """
    Loads a user or group library (optionally one collection) as BibTeX pages.

    Pages of PAGE_LIMIT items are requested until the offset reaches the
    'Total-Results' header. Each page is parsed and merged entry by entry. Any
    failed page aborts the load; a partial library is never returned.
    """

    PAGE_LIMIT = 100
    # Rate limiting: minimum interval between page requests
    MIN_REQUEST_INTERVAL = 0.5  # seconds
    DEFAULT_TIMEOUT_SECONDS = 30.0

    def __init__(
        self,
        api_key: str,
        library_id: str,
        library_type: str = "user",
        collection_key: str | None = None,
        snapshot_path: Path | None = None,
        client: httpx.Client | None = None,
        min_request_interval: float | None = None,
    ) -> None:
        """
        Initialize Zotero web source.

        Args:
            api_key: Zotero API key
            library_id: User or group ID
            library_type: 'user' or 'group'
            collection_key: Restrict to one collection (optional)
            snapshot_path: Write the merged library here as YAML after a successful load (optional)
            client: HTTP client (a client with a 30 s timeout is created if omitted)
            min_request_interval: Override MIN_REQUEST_INTERVAL (seconds)

        Raises:
            ConfigurationError: If credentials or library type are invalid
        """
        if not api_key:
            raise ConfigurationError(
                "Zotero API key not configured",
                hint="Set ZOTERO_API_KEY or [citations.zotero].api_key",
            )
        if not library_id:
            raise ConfigurationError(
                "Zotero library ID not configured",
                hint="Set ZOTERO_USER_ID / ZOTERO_GROUP_ID or the matching [citations.zotero] key",
            )
        if library_type not in LIBRARY_TYPES:
            raise ConfigurationError(f"Zotero library type must be one of {LIBRARY_TYPES}, got '{library_type}'")

        self.api_key = api_key
        self.library_id = library_id
        self.library_type = library_type
        self.collection_key = collection_key or None
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self.DEFAULT_TIMEOUT_SECONDS)
        self._min_request_interval = (
            self.MIN_REQUEST_INTERVAL if min_request_interval is None else min_request_interval
        )
        self._last_request_time = 0.0

    @property
    def items_url(self) -> str:
        """Items endpoint of the configured library or collection."""
        url = f"{ZOTERO_API_BASE}{self.library_type}s/{self.library_id}"
        if self.collection_key:
            url += f"/collections/{self.collection_key}"
        return f"{url}/items"

    def _rate_limit(self) -> None:
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self._min_request_interval:
            time.sleep(self._min_request_interval - elapsed)
        self._last_request_time = time.monotonic()

    def _fetch_page(self, start: int) -> tuple[str, int]:
        """
        Fetch one page of BibTeX.

        Returns:
            (page body, total result count from the Total-Results header, 0 if absent)
        """
        params = {"start": start, "limit": self.PAGE_LIMIT, "format": "bibtex"}
        headers = {"Zotero-API-Version": "3", "Zotero-API-Key": self.api_key}
        self._rate_limit()
        try:
            response = self._client.get(self.items_url, params=params, headers=headers)
        except httpx.HTTPError as e:
            raise ResourceFetchError("zotero items", self.items_url, reason=str(e)) from e
        if not response.is_success:
            raise ResourceFetchError("zotero items", self.items_url, status_code=response.status_code)

        try:
            total = int(response.headers.get("Total-Results", "0"))
        except ValueError:
            total = 0
        return response.text, total

    def load(self) -> Library:
        """
        Fetch every page and merge the entries into one Library.

        Raises:
            ResourceFetchError: If any page request fails
            BibliographyParseError: If any page is not valid BibTeX
        """
        library = Library()
        start = 0
        page = 0
        while True:
            body, total = self._fetch_page(start)
            page += 1
            if body.strip():
                entries = parse_bibtex(body, f"{self.items_url}?start={start}")
                library = library.merged(entries)
            logger.info(
                f"Fetched page {page} of Zotero library",
                extra={"start": start, "total_results": total, "entry_count": len(library)},
            )
            start += self.PAGE_LIMIT
            if start >= total:
                break

        if self.snapshot_path is not None:
            self.write_snapshot(library, self.snapshot_path)
        return library

    @staticmethod
    def write_snapshot(library: Library, path: Path) -> None:
        """Write library to path as a YAML bibliography."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_yaml_bibliography(library), encoding="utf-8")
        logger.info(f"Wrote bibliography snapshot to {path}", extra={"entry_count": len(library)})

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
