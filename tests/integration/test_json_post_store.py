"""Integration tests for the JSON post store."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from src.application.dto.posts import Post, PostIndex
from src.domain.errors import PostReadError
from src.infrastructure.adapters.json_post_store import JsonPostStore


def _post() -> Post:
    return Post(title="Ünïcode", date=datetime(2024, 1, 1, tzinfo=timezone.utc), slug="post", content="<p>ü</p>")


class TestJsonPostStore:
    """Tests for JsonPostStore."""

    def test_write_and_read_post(self, tmp_path: Path):
        store = JsonPostStore()
        path = tmp_path / "out" / "post.json"

        store.write_post(_post(), path)

        assert "Ünïcode" in path.read_text(encoding="utf-8")
        assert store.read_post(path) == _post()
        assert [p.name for p in path.parent.iterdir()] == ["post.json"]

    def test_write_index(self, tmp_path: Path):
        path = tmp_path / "index.json"
        JsonPostStore().write_index(PostIndex.from_posts([_post()]), path)
        assert '"slug": "post"' in path.read_text(encoding="utf-8")

    @pytest.mark.parametrize(
        ("content", "reason"),
        [
            ("{broken", "invalid JSON"),
            ('{"title": "missing fields"}', "invalid post data"),
        ],
    )
    def test_unreadable_posts(self, tmp_path: Path, content: str, reason: str):
        path = tmp_path / "post.json"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(PostReadError, match=reason):
            JsonPostStore().read_post(path)

    def test_missing_post(self, tmp_path: Path):
        with pytest.raises(PostReadError, match="not found"):
            JsonPostStore().read_post(tmp_path / "missing.json")
