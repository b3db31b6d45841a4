# ABOUTME: Pillow-backed image manager producing resized covers and thumbnails.
# ABOUTME: Tracks the last generated height in a marker file to detect size changes.

import logging
from pathlib import Path

from PIL import Image, ImageDraw

from bookfeed.core.covers import ImageGenerationError
from bookfeed.model.types import Book

logger = logging.getLogger(__name__)

THUMBNAIL_FILENAME = "c2o_thumbnail.jpg"
RESIZED_COVER_FILENAME = "c2o_resizedcover.jpg"
JPEG_QUALITY = 85

_DEFAULT_COVER_SIZE = (400, 600)
_DEFAULT_COVER_BACKGROUND = (230, 230, 225)
_DEFAULT_COVER_BORDER = (120, 120, 115)


class PillowImageManager:
    """Resizes a book's cover.jpg to a fixed height, keeping its aspect ratio.

    Args:
        filename: Name of the resized file inside each book folder.
        height: Target height in pixels.
        marker_path: File recording the height of the previous run.
    """

    def __init__(self, filename: str, height: int, marker_path: Path) -> None:
        self.filename = filename
        self.height = height
        self.marker_path = marker_path
        self._size_changed = self._read_marker() != height

    def _read_marker(self) -> int | None:
        try:
            return int(self.marker_path.read_text(encoding="utf-8").strip())
        except (OSError, ValueError):
            return None

    def resized_filename(self, book: Book) -> str:
        return self.filename

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def last_modified(self, path: Path) -> float:
        return path.stat().st_mtime

    def has_size_changed(self) -> bool:
        return self._size_changed

    def generate(self, target: Path, source: Path) -> None:
        """Write a resized JPEG copy of `source` to `target`.

        Raises:
            ImageGenerationError: If the source cannot be read or the copy written.
        """
        try:
            with Image.open(source) as img:
                img = img.convert("RGB")
                width = max(1, round(img.width * self.height / img.height))
                resized = img.resize((width, self.height), Image.LANCZOS)
                resized.save(target, "JPEG", quality=JPEG_QUALITY)
        except (OSError, ValueError) as exc:
            raise ImageGenerationError(f"Cannot resize {source}: {exc}") from exc
        logger.debug("Resized %s -> %s (%d px)", source, target, self.height)

    def delete(self, path: Path) -> None:
        path.unlink(missing_ok=True)
        logger.debug("Deleted stale image %s", path)

    def record_size(self) -> None:
        """Remember the current height so the next run keeps unchanged images."""
        self.marker_path.parent.mkdir(parents=True, exist_ok=True)
        self.marker_path.write_text(str(self.height), encoding="utf-8")


def write_default_cover(path: Path, size: tuple[int, int] = _DEFAULT_COVER_SIZE) -> Path:
    """Write the placeholder image used for books without a cover."""
    img = Image.new("RGB", size, _DEFAULT_COVER_BACKGROUND)
    draw = ImageDraw.Draw(img)
    margin = min(size) // 20
    draw.rectangle(
        (margin, margin, size[0] - margin, size[1] - margin),
        outline=_DEFAULT_COVER_BORDER,
        width=max(1, margin // 3),
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path, "JPEG", quality=JPEG_QUALITY)
    return path
