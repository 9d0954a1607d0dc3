"""TTL cache for remote CSL resources (styles, locales, style listing)."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Generic, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ...application.ports.resource_cache import CitationResourcePort
from ...domain.errors import ConfigurationError, ResourceFetchError
from ...domain.models.cache_entry import CacheMetadata
from ...domain.models.citation import CitationStyle, LocaleDefinition
from .csl_xml import parse_locale, parse_style

logger = logging.getLogger(__name__)

CSL_STYLES_BASE = "https://raw.githubusercontent.com/citation-style-language/styles/master/"
CSL_LOCALES_BASE = "https://raw.githubusercontent.com/citation-style-language/locales/master/locales-"
STYLES_LIST_URL = CSL_STYLES_BASE + "style-metadata.json"

DEFAULT_TTL = timedelta(hours=24)
DEFAULT_TIMEOUT_SECONDS = 30.0

T = TypeVar("T")


class StyleMetadata(BaseModel):
    """One entry of the published style listing."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    title: str
    published: int | None = None
    dependent: bool = Field(default=False, alias="dependent-style")


def normalize_style_name(style_name: str) -> str:
    """Style file name with the '.csl' extension."""
    style_name = style_name.strip()
    return style_name if style_name.endswith(".csl") else f"{style_name}.csl"


def parse_style_listing(content: bytes, name: str) -> list[StyleMetadata]:
    """Parse the style-metadata.json listing."""
    try:
        raw = json.loads(content)
        if not isinstance(raw, list):
            raise ValueError("expected a JSON list")
        return [StyleMetadata.model_validate(item) for item in raw]
    except (ValueError, ValidationError) as e:
        raise ConfigurationError(f"Invalid style listing '{name}': {e}") from e


class NamedResourceCache(Generic[T]):
    """
    Cache-then-fetch for one kind of named remote resource.

    Each resource is stored as a payload file plus a '.meta' JSON record
    (fetched_at, etag) beside it. A cached payload is used only while its
    metadata is younger than the TTL and the payload still parses; any other
    state triggers a fetch. Fetch failures are raised, never masked by a stale
    payload. Concurrent writers to the same name are not coordinated.
    """

    def __init__(
        self,
        kind: str,
        directory: Path,
        url_for: Callable[[str], str],
        parse: Callable[[bytes, str], T],
        client: httpx.Client,
        payload_suffix: str,
        ttl: timedelta = DEFAULT_TTL,
        enabled: bool = True,
    ) -> None:
        """
        Initialize cache for one resource kind.

        Args:
            kind: Resource kind used in logs and errors (e.g. 'styles')
            directory: Directory holding payloads and metadata
            url_for: Builds the remote URL for a resource name
            parse: Parses a payload; raises ConfigurationError when invalid
            client: HTTP client used for fetches
            payload_suffix: File suffix of payloads in this directory
            ttl: Maximum age of a cached payload
            enabled: When False every get fetches and nothing is written
        """
        self.kind = kind
        self.directory = Path(directory)
        self._url_for = url_for
        self._parse = parse
        self._client = client
        self._payload_suffix = payload_suffix
        self.ttl = ttl
        self.enabled = enabled

    def payload_path(self, name: str) -> Path:
        return self.directory / name

    def meta_path(self, name: str) -> Path:
        return self.payload_path(name).with_suffix(".meta")

    def get(self, name: str) -> T:
        """
        Return the parsed resource, from cache when fresh, else fetched.

        Raises:
            ResourceFetchError: If a fetch is needed and fails or returns non-2xx
            ConfigurationError: If a freshly fetched payload does not parse
        """
        if self.enabled:
            cached = self._read_cached(name)
            if cached is not None:
                logger.debug(f"Cache hit for {self.kind}/{name}")
                return cached

        content, etag = self._fetch(name)
        value = self._parse(content, name)
        if self.enabled:
            self._store(name, content, etag)
        return value

    def clean(self, now: datetime | None = None) -> int:
        """
        Remove expired payload/metadata pairs.

        Returns:
            Number of removed payloads
        """
        if not self.directory.is_dir():
            return 0
        now = now or datetime.now(timezone.utc)
        removed = 0
        for meta_path in sorted(self.directory.glob("*.meta")):
            metadata = self._read_metadata(meta_path)
            if metadata is not None and metadata.is_fresh(self.ttl, now):
                continue
            payload_path = meta_path.with_suffix(self._payload_suffix)
            meta_path.unlink(missing_ok=True)
            if payload_path.exists():
                payload_path.unlink()
                removed += 1
            logger.debug(f"Removed expired cache entry {payload_path}")
        return removed

    def _read_cached(self, name: str) -> T | None:
        metadata = self._read_metadata(self.meta_path(name))
        if metadata is None or not metadata.is_fresh(self.ttl):
            return None
        try:
            content = self.payload_path(name).read_bytes()
        except OSError:
            return None
        try:
            return self._parse(content, name)
        except ConfigurationError as e:
            logger.warning(f"Cached {self.kind}/{name} is invalid, refetching: {e}")
            return None

    @staticmethod
    def _read_metadata(path: Path) -> CacheMetadata | None:
        try:
            return CacheMetadata.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.debug(f"Ignoring unreadable cache metadata {path}: {e}")
            return None

    def _fetch(self, name: str) -> tuple[bytes, str | None]:
        url = self._url_for(name)
        resource = f"{self.kind}/{name}"
        logger.info(f"Fetching {resource}", extra={"url": url})
        try:
            response = self._client.get(url)
        except httpx.HTTPError as e:
            raise ResourceFetchError(resource, url, reason=str(e)) from e
        if not response.is_success:
            raise ResourceFetchError(resource, url, status_code=response.status_code)
        return response.content, response.headers.get("etag")

    def _store(self, name: str, content: bytes, etag: str | None) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        # payload before metadata, not atomic
        self.payload_path(name).write_bytes(content)
        metadata = CacheMetadata(fetched_at=datetime.now(timezone.utc), etag=etag)
        self.meta_path(name).write_text(json.dumps(metadata.to_dict()), encoding="utf-8")


class CslResourceClient(CitationResourcePort):
    """
    Client for CSL styles, locales and the style listing, backed by a disk cache.

    Layout under the cache root: 'styles/<name>.csl', 'locales/<code>.xml',
    'styles-list.json', each with a '.meta' record beside it.
    """

    def __init__(
        self,
        cache_dir: Path,
        ttl: timedelta = DEFAULT_TTL,
        enabled: bool = True,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """
        Initialize client.

        Args:
            cache_dir: Cache root directory
            ttl: Maximum age of cached resources
            enabled: Disable to always fetch and never write
            client: HTTP client (created with the given timeout if omitted)
            timeout: Request timeout in seconds for the default client
        """
        self.cache_dir = Path(cache_dir)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)

        self._styles: NamedResourceCache[CitationStyle] = NamedResourceCache(
            kind="styles",
            directory=self.cache_dir / "styles",
            url_for=lambda name: f"{CSL_STYLES_BASE}{name}",
            parse=lambda content, name: parse_style(content, name),
            client=self._client,
            payload_suffix=".csl",
            ttl=ttl,
            enabled=enabled,
        )
        self._locales: NamedResourceCache[LocaleDefinition] = NamedResourceCache(
            kind="locales",
            directory=self.cache_dir / "locales",
            url_for=lambda name: f"{CSL_LOCALES_BASE}{name}",
            parse=lambda content, name: parse_locale(content, name.removesuffix(".xml")),
            client=self._client,
            payload_suffix=".xml",
            ttl=ttl,
            enabled=enabled,
        )
        self._listing: NamedResourceCache[list[StyleMetadata]] = NamedResourceCache(
            kind="listing",
            directory=self.cache_dir,
            url_for=lambda name: STYLES_LIST_URL,
            parse=parse_style_listing,
            client=self._client,
            payload_suffix=".json",
            ttl=ttl,
            enabled=enabled,
        )

    def get_style(self, style_name: str) -> CitationStyle:
        return self._styles.get(normalize_style_name(style_name))

    def get_locale(self, lang_code: str) -> LocaleDefinition:
        return self._locales.get(f"{lang_code.strip()}.xml")

    def list_styles(self) -> list[StyleMetadata]:
        """All published styles (cached listing)."""
        return self._listing.get("styles-list.json")

    def find_styles(self, query: str) -> list[StyleMetadata]:
        """Styles whose name or title contains query, case-insensitively."""
        needle = query.lower()
        return [
            style
            for style in self.list_styles()
            if needle in style.name.lower() or needle in style.title.lower()
        ]

    def clean_cache(self) -> int:
        """
        Remove expired cache entries.

        Returns:
            Number of removed payloads
        """
        removed = sum(cache.clean() for cache in (self._styles, self._locales, self._listing))
        logger.info(f"Removed {removed} expired cache entr(y/ies)", extra={"cache_dir": str(self.cache_dir)})
        return removed

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> CslResourceClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
