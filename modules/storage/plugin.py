"""Storage module plugin registration."""

import logging
from core.registry.plugin_registry import PluginRegistry
from modules.storage.providers.filesystem_provider import FilesystemStorageProvider
from modules.storage.providers.s3_provider import S3StorageProvider

logger = logging.getLogger(__name__)


def register():
    """Register all storage providers with the plugin registry."""
    registry = PluginRegistry()

    registry.register_storage_provider("s3", S3StorageProvider)
    registry.register_storage_provider("filesystem", FilesystemStorageProvider)

    logger.debug("Storage providers registered")


# Auto-register on import
register()
