"""Async access to a blocking storage provider."""

import asyncio
import functools
import logging
from concurrent.futures import Executor
from typing import Any, Callable, List, Optional

from core.interfaces.storage import IStorageProvider, StorageError, StorageUnavailable
from core.models.image import ImageDescriptor

logger = logging.getLogger(__name__)


class StorageClient:
    """Binds a storage provider to one bucket and runs it off the event loop.

    Every provider call runs in an executor, which makes these awaits the
    only points where the poller and the analysis pipeline yield. Anything
    the provider raises that is not already a ``StorageError`` is reported
    as ``StorageUnavailable``.
    """

    def __init__(self, provider: IStorageProvider, bucket: str, executor: Optional[Executor] = None):
        """Initialize the client.

        Args:
            provider: Initialized storage provider
            bucket: Bucket every call targets
            executor: Executor for blocking calls (None = loop default)
        """
        self._provider = provider
        self._bucket = bucket
        self._executor = executor

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def provider_name(self) -> str:
        return self._provider.name

    async def list_images(self, prefix: str) -> List[ImageDescriptor]:
        return await self._call(self._provider.list_images, self._bucket, prefix)

    async def list_folders(self, prefix: str) -> List[str]:
        return await self._call(self._provider.list_folders, self._bucket, prefix)

    async def fetch_image_bytes(self, key: str) -> bytes:
        return await self._call(self._provider.fetch_image_bytes, self._bucket, key)

    async def check_connection(self) -> bool:
        return await self._call(self._provider.check_connection, self._bucket)

    def image_url(self, key: str) -> str:
        """Reference for the original image (no network round trip)."""
        return self._provider.image_url(self._bucket, key)

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, functools.partial(func, *args))
        except StorageError:
            raise
        except Exception as e:
            logger.debug(f"Storage call failed: {e}")
            raise StorageUnavailable(str(e)) from e
