"""Data models for images listed from object storage."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif", ".tiff")


@dataclass(frozen=True)
class ImageDescriptor:
    """An image object as returned by the storage provider.

    Attributes:
        key: Full object key (hierarchical path, e.g. "acme/cam-1/2025-03-17/a.jpg")
        last_modified: Timezone-aware modification time reported by storage
        size: Object size in bytes
    """
    key: str
    last_modified: datetime
    size: int = 0

    @property
    def display_name(self) -> str:
        """File name part of the key."""
        return self.key.rstrip("/").split("/")[-1]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the descriptor
        """
        return {
            "key": self.key,
            "last_modified": self.last_modified.isoformat(),
            "size": self.size,
            "display_name": self.display_name,
        }


def is_image_key(key: str) -> bool:
    """Check whether an object key looks like an image file."""
    return key.lower().endswith(IMAGE_EXTENSIONS)


def sort_newest_first(images: Iterable[ImageDescriptor]) -> List[ImageDescriptor]:
    """Return a new list ordered by last_modified, newest first.

    Equal timestamps fall back to descending key order so repeated polls of
    the same listing always produce the same order.
    """
    return sorted(images, key=lambda image: (image.last_modified, image.key), reverse=True)
