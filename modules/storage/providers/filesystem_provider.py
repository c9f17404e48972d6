"""Filesystem-based storage provider for local image folders."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from core.interfaces.storage import IStorageProvider, NotFound, StorageUnavailable
from core.models.image import ImageDescriptor, is_image_key

logger = logging.getLogger(__name__)


class FilesystemStorageProvider(IStorageProvider):
    """Storage provider that reads images from a local directory tree.

    Buckets are sub-directories of ``base_path`` and keys are paths relative
    to the bucket directory, so ``base_path/bucket/acme/cam-1/2025-03-17/a.jpg``
    has the key ``acme/cam-1/2025-03-17/a.jpg``. Useful for offline viewing
    and for synced copies of a bucket.
    """

    def __init__(self):
        """Initialize the filesystem storage provider."""
        self._initialized = False
        self._base_path: Optional[Path] = None

    @property
    def name(self) -> str:
        """Provider name."""
        return "filesystem"

    def initialize(self, config: dict) -> bool:
        """Initialize storage provider with configuration.

        Args:
            config: Dictionary containing configuration:
                - base_path: str, directory holding one folder per bucket

        Returns:
            True if initialization successful, False otherwise
        """
        base_path = Path(config.get('base_path', '/tmp/feedview')).expanduser()
        if not base_path.is_dir():
            logger.error(f"Filesystem storage base path does not exist: {base_path}")
            return False

        self._base_path = base_path.resolve()
        self._initialized = True
        logger.info(f"Filesystem storage initialized at: {self._base_path}")
        return True

    def list_images(self, bucket: str, prefix: str) -> List[ImageDescriptor]:
        """List image files directly inside the prefix directory."""
        folder = self._resolve(bucket, prefix)
        images = []

        try:
            entries = list(folder.iterdir()) if folder.is_dir() else []
            for entry in entries:
                if not entry.is_file() or not is_image_key(entry.name):
                    continue
                stat = entry.stat()
                images.append(ImageDescriptor(
                    key=self._key_for(bucket, entry),
                    last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    size=stat.st_size,
                ))
        except OSError as e:
            raise StorageUnavailable(f"Failed to list {folder}: {e}")

        logger.debug(f"Listed {len(images)} images in {folder}")
        return images

    def list_folders(self, bucket: str, prefix: str) -> List[str]:
        """List sub-directories of the prefix directory."""
        folder = self._resolve(bucket, prefix)
        try:
            if not folder.is_dir():
                return []
            return sorted(entry.name for entry in folder.iterdir() if entry.is_dir())
        except OSError as e:
            raise StorageUnavailable(f"Failed to list folders in {folder}: {e}")

    def fetch_image_bytes(self, bucket: str, key: str) -> bytes:
        """Read an image file."""
        path = self._resolve(bucket, key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            raise NotFound(f"Image not found: {key}")
        except OSError as e:
            raise StorageUnavailable(f"Failed to read {path}: {e}")

    def image_url(self, bucket: str, key: str) -> str:
        """Get a file:// URI for the image."""
        return self._resolve(bucket, key).as_uri()

    def check_connection(self, bucket: str) -> bool:
        """Check that the bucket directory exists."""
        if not self._initialized:
            return False
        exists = (self._base_path / bucket).is_dir()
        if not exists:
            logger.warning(f"Bucket directory not found: {self._base_path / bucket}")
        return exists

    def cleanup(self) -> None:
        """Nothing to release for plain files."""
        self._initialized = False

    def _resolve(self, bucket: str, relative: str) -> Path:
        if not self._initialized:
            raise StorageUnavailable("Filesystem storage provider not initialized")

        bucket_root = (self._base_path / bucket).resolve()
        path = (bucket_root / relative.lstrip("/")).resolve()
        if path != bucket_root and bucket_root not in path.parents:
            raise NotFound(f"Key escapes bucket {bucket}: {relative}")
        return path

    def _key_for(self, bucket: str, path: Path) -> str:
        return path.relative_to((self._base_path / bucket).resolve()).as_posix()
