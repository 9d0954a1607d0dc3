"""JSON post store with atomic file writes."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from ...application.dto.posts import Post, PostIndex
from ...application.ports.post_store import PostStorePort
from ...domain.errors import PostReadError

logger = logging.getLogger(__name__)


class JsonPostStore(PostStorePort):
    """Reads and writes post files and the index as UTF-8 JSON."""

    def write_post(self, post: Post, path: Path) -> None:
        self._write_atomic(Path(path), post.to_json())
        logger.debug(f"Post written: {path}", extra={"slug": post.slug, "path": str(path)})

    def read_post(self, path: Path) -> Post:
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise PostReadError(str(path), "file not found") from e
        except (OSError, UnicodeDecodeError) as e:
            raise PostReadError(str(path), f"cannot read file: {e}") from e
        except json.JSONDecodeError as e:
            raise PostReadError(str(path), f"invalid JSON: {e}") from e
        try:
            return Post.model_validate(data)
        except ValidationError as e:
            raise PostReadError(str(path), f"invalid post data: {e.error_count()} validation error(s)") from e

    def write_index(self, index: PostIndex, path: Path) -> None:
        self._write_atomic(Path(path), index.to_json())
        logger.info(f"Index written: {path}", extra={"post_count": len(index.posts), "path": str(path)})

    @staticmethod
    def _write_atomic(path: Path, content: str) -> None:
        """
        Write to a temp file in the target directory, then rename over the target.

        Raises:
            OSError: If the file cannot be written
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.tmp.",
            delete=False,
        ) as temp_file:
            temp_path = Path(temp_file.name)
            try:
                temp_file.write(content)
                temp_file.flush()
                os.fsync(temp_file.fileno())
            except OSError:
                temp_file.close()
                temp_path.unlink(missing_ok=True)
                raise
        try:
            os.replace(temp_path, path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise
