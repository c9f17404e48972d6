"""Interface for object storage providers."""

from abc import ABC, abstractmethod
from typing import List
from core.models.image import ImageDescriptor


class IStorageProvider(ABC):
    """Interface for object storage providers.

    This abstract base class defines the contract for every place images
    can be listed and read from (S3-compatible buckets, local folders, ...).
    Methods are blocking; callers on the event loop go through
    ``modules.storage.client.StorageClient``.
    """

    @abstractmethod
    def initialize(self, config: dict) -> bool:
        """Initialize storage provider with configuration.

        Args:
            config: Dictionary containing provider-specific configuration

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    def list_images(self, bucket: str, prefix: str) -> List[ImageDescriptor]:
        """List image objects directly under a prefix.

        Args:
            bucket: Bucket name
            prefix: Folder prefix ending in "/" ("" for the bucket root)

        Returns:
            Image descriptors in no particular order

        Raises:
            StorageUnavailable: If the listing fails
        """
        pass

    @abstractmethod
    def list_folders(self, bucket: str, prefix: str) -> List[str]:
        """List child folder names directly under a prefix.

        Args:
            bucket: Bucket name
            prefix: Folder prefix ending in "/" ("" for the bucket root)

        Returns:
            Sorted folder names without trailing slash

        Raises:
            StorageUnavailable: If the listing fails
        """
        pass

    @abstractmethod
    def fetch_image_bytes(self, bucket: str, key: str) -> bytes:
        """Read the raw bytes of an image.

        Args:
            bucket: Bucket name
            key: Full object key

        Returns:
            Image file contents

        Raises:
            NotFound: If the object no longer exists
            StorageUnavailable: If the read fails for any other reason
        """
        pass

    @abstractmethod
    def image_url(self, bucket: str, key: str) -> str:
        """Get a reference the UI can load the original image from.

        Args:
            bucket: Bucket name
            key: Full object key

        Returns:
            URL or local path of the image
        """
        pass

    @abstractmethod
    def check_connection(self, bucket: str) -> bool:
        """Check that storage is reachable and the bucket exists.

        Args:
            bucket: Bucket name

        Returns:
            True if the bucket can be listed
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up resources used by storage provider."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 's3', 'filesystem')."""
        pass


class StorageError(Exception):
    """Exception raised when storage operations fail."""
    pass


class StorageUnavailable(StorageError):
    """Storage could not be reached or the request failed (transient)."""
    pass


class NotFound(StorageError):
    """The requested object does not exist (anymore)."""
    pass
