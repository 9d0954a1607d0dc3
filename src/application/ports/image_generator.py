from pathlib import Path
from typing import Protocol, runtime_checkable

from ..dto.posts import CoverImage


@runtime_checkable
class DerivativeImagePort(Protocol):
    """Protocol for producing the cover-image variants of a post."""

    def generate(self, source_path: Path, slug: str, filename: str) -> CoverImage:
        """
        Produce the original copy plus cover- and thumbnail-sized variants.

        Args:
            source_path: Source image on disk
            slug: Slug of the owning post (prefixes output names)
            filename: Cover file name as declared in the front matter

        Returns:
            CoverImage with public URLs of the three outputs

        Raises:
            ImageProcessingError: If the image cannot be read or written
        """
        ...
