"""Cover image derivatives with Pillow."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from ...application.dto.posts import CoverImage
from ...domain.errors import ImageProcessingError
from ...domain.services.staleness import StalenessService

logger = logging.getLogger(__name__)

IMAGE_URL_PREFIX = "/images/blog"

RESAMPLING_FILTERS = {
    "Nearest": Image.Resampling.NEAREST,
    "Triangle": Image.Resampling.BILINEAR,
    "CatmullRom": Image.Resampling.BICUBIC,
    "Gaussian": Image.Resampling.BOX,
    "Lanczos3": Image.Resampling.LANCZOS,
}


def resampling_filter(name: str) -> Image.Resampling:
    """Pillow resampling filter for a configured filter name (Lanczos for unknown names)."""
    return RESAMPLING_FILTERS.get(name, Image.Resampling.LANCZOS)


def fit_within(size: tuple[int, int], bounds: tuple[int, int]) -> tuple[int, int]:
    """Largest size with the aspect ratio of size that fits within bounds."""
    width, height = size
    max_width, max_height = bounds
    ratio = min(max_width / width, max_height / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


class PillowImageGenerator:
    """
    Produces the original copy plus cover and thumbnail variants of a post image.

    Outputs live in '<public_dir>/images/blog/' as '<slug>-<stem>.<ext>',
    '<slug>-<stem>-cover.<ext>' and '<slug>-<stem>-thumb.<ext>'. Generation is
    skipped when all three outputs are newer than the source.
    """

    def __init__(
        self,
        public_dir: Path,
        cover_size: tuple[int, int] = (1200, 800),
        thumbnail_size: tuple[int, int] = (400, 267),
        filter_type: str = "Lanczos3",
    ) -> None:
        """
        Initialize generator.

        Args:
            public_dir: Public assets root
            cover_size: Bounding box (width, height) of the cover variant
            thumbnail_size: Bounding box (width, height) of the thumbnail variant
            filter_type: Resampling filter name (Nearest, Triangle, CatmullRom, Gaussian, Lanczos3)
        """
        self.output_dir = Path(public_dir) / "images" / "blog"
        self.cover_size = cover_size
        self.thumbnail_size = thumbnail_size
        self.resample = resampling_filter(filter_type)

    @staticmethod
    def _names(source_path: Path, slug: str, filename: str) -> tuple[str, str, str]:
        base = f"{slug}-{Path(filename).stem}"
        ext = source_path.suffix.lstrip(".") or "jpg"
        return f"{base}.{ext}", f"{base}-cover.{ext}", f"{base}-thumb.{ext}"

    def generate(self, source_path: Path, slug: str, filename: str) -> CoverImage:
        """
        Produce (or reuse) the three image outputs.

        Raises:
            ImageProcessingError: If the source cannot be decoded or outputs cannot be written
        """
        names = self._names(source_path, slug, filename)
        original, cover, thumbnail = (self.output_dir / name for name in names)
        urls = CoverImage(
            original=f"{IMAGE_URL_PREFIX}/{names[0]}",
            cover=f"{IMAGE_URL_PREFIX}/{names[1]}",
            thumbnail=f"{IMAGE_URL_PREFIX}/{names[2]}",
        )

        try:
            if not any(StalenessService.should_process(source_path, path) for path in (original, cover, thumbnail)):
                logger.debug(f"Image outputs up to date for {source_path}")
                return urls

            self.output_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source_path, original)
            with Image.open(source_path) as image:
                image.load()
                self._write_resized(image, cover, self.cover_size)
                self._write_resized(image, thumbnail, self.thumbnail_size)
        except (OSError, UnidentifiedImageError, ValueError) as e:
            raise ImageProcessingError(str(source_path), f"cannot produce image derivatives: {e}") from e

        logger.info(f"Generated image derivatives for {source_path.name}", extra={"slug": slug})
        return urls

    def _write_resized(self, image: Image.Image, path: Path, bounds: tuple[int, int]) -> None:
        resized = image.resize(fit_within(image.size, bounds), self.resample)
        image_format = Image.registered_extensions().get(path.suffix.lower(), "JPEG")
        if image_format == "JPEG" and resized.mode not in ("RGB", "L"):
            resized = resized.convert("RGB")
        resized.save(path, format=image_format)
