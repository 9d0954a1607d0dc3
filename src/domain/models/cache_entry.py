"""Domain model for cached remote resource metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any


@dataclass
class CacheMetadata:
    """
    Metadata record persisted next to a cached payload.

    Attributes:
        fetched_at: When the payload was downloaded (UTC)
        etag: Validator tag returned by the server (optional)
    """

    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    etag: str | None = None

    def age(self, now: datetime | None = None) -> timedelta:
        """Time elapsed since the fetch."""
        now = now or datetime.now(timezone.utc)
        return now - self.fetched_at

    def is_fresh(self, ttl: timedelta, now: datetime | None = None) -> bool:
        """True while now - fetched_at < ttl."""
        return self.age(now) < ttl

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "fetched_at": self.fetched_at.isoformat(),
            "etag": self.etag,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheMetadata:
        """Deserialize from dict."""
        fetched_at = datetime.fromisoformat(data["fetched_at"])
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        return cls(fetched_at=fetched_at, etag=data.get("etag"))
