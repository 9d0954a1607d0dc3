"""Port interface for persisting post artifacts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..dto.posts import Post, PostIndex


class PostStorePort(ABC):
    """Port for reading and writing post JSON files and the index."""

    @abstractmethod
    def write_post(self, post: Post, path: Path) -> None:
        """
        Write a post file.

        Args:
            post: Post to persist
            path: Destination file path

        Raises:
            OSError: If the file cannot be written
        """
        pass

    @abstractmethod
    def read_post(self, path: Path) -> Post:
        """
        Read and validate a previously written post.

        Args:
            path: Post file path

        Returns:
            Post

        Raises:
            PostReadError: If the file is missing, unreadable, or invalid
        """
        pass

    @abstractmethod
    def write_index(self, index: PostIndex, path: Path) -> None:
        """
        Write the aggregated index file.

        Args:
            index: PostIndex to persist
            path: Destination file path

        Raises:
            OSError: If the file cannot be written
        """
        pass
