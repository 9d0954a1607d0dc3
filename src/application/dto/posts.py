"""DTOs for post artifacts written by the build."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _as_utc(value: Any) -> Any:
    """Coerce dates, ISO strings and naive datetimes to timezone-aware UTC datetimes."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip())
        except ValueError:
            return value
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return value


class CoverImage(BaseModel):
    """URLs of a post's cover image and its derived variants."""

    original: str
    cover: str
    thumbnail: str


class PostMetadata(BaseModel):
    """Fields recognized in a document's front-matter block."""

    title: str | None = None
    date: datetime | None = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    cover: str | None = None

    @field_validator("title", "description", "cover", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        """YAML scalars such as numbers become strings."""
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> Any:
        """Accept YAML dates and datetimes as well as ISO strings."""
        return _as_utc(v)

    @field_validator("date", mode="after")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        """Treat naive timestamps as UTC."""
        return _as_utc(v)

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: Any) -> Any:
        """Accept a comma-separated string or a list; trim and drop empty tags."""
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        if isinstance(v, (list, tuple)):
            return [str(tag).strip() for tag in v if str(tag).strip()]
        return v


class Post(BaseModel):
    """One rendered post, persisted as <slug>.json."""

    title: str
    date: datetime
    slug: str
    content: str
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    cover: CoverImage | None = None

    @field_validator("date", mode="after")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC."""
        return _as_utc(v)

    def to_json_dict(self) -> dict[str, Any]:
        """
        JSON-compatible dict for the post file.

        Omits description and cover when unset and tags when empty.
        """
        data = self.model_dump(mode="json", exclude_none=True)
        if not self.tags:
            data.pop("tags", None)
        return data

    def to_json(self) -> str:
        """Serialized post file content."""
        return json.dumps(self.to_json_dict(), indent=2, ensure_ascii=False)

    def summary(self) -> PostSummary:
        """Index entry for this post."""
        return PostSummary(
            title=self.title,
            date=self.date,
            slug=self.slug,
            description=self.description,
            tags=list(self.tags),
            cover=self.cover,
        )


class PostSummary(BaseModel):
    """Index entry for a post (everything but the rendered content)."""

    title: str
    date: datetime
    slug: str
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    cover: CoverImage | None = None


class PostIndex(BaseModel):
    """Aggregated index of all successfully built posts, newest first."""

    posts: list[PostSummary] = Field(default_factory=list)

    @classmethod
    def from_posts(cls, posts: list[Post]) -> PostIndex:
        """
        Build the index sorted by date descending.

        The sort is stable, so posts with equal dates keep their input order.
        """
        ordered = sorted(posts, key=lambda post: post.date, reverse=True)
        return cls(posts=[post.summary() for post in ordered])

    def to_json(self) -> str:
        """Serialized index file content."""
        return json.dumps(self.model_dump(mode="json"), indent=2, ensure_ascii=False)
