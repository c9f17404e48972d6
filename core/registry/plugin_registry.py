"""Plugin registry for managing pluggable providers."""

import logging
from typing import Dict, List, Type, Optional

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Singleton registry for all provider types.

    The plugin registry maintains a catalog of available implementations
    for each pluggable interface (storage, inference). Modules register
    their implementations on import, and the orchestrator looks them up by
    the name given in the configuration.

    Example:
        registry = PluginRegistry()
        registry.register_storage_provider("s3", S3StorageProvider)
        provider_class = registry.get_storage_provider("s3")
        provider = provider_class()
    """

    _instance = None

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the plugin registry."""
        if self._initialized:
            return

        self._storage_providers: Dict[str, Type] = {}
        self._inference_providers: Dict[str, Type] = {}
        self._initialized = True

        logger.info("PluginRegistry initialized")

    # Storage provider methods
    def register_storage_provider(self, name: str, provider_class: Type) -> None:
        """Register a storage provider.

        Args:
            name: Unique name for the provider (e.g., "s3", "filesystem")
            provider_class: Class implementing IStorageProvider
        """
        self._storage_providers[name] = provider_class
        logger.debug(f"Registered storage provider: {name}")

    def get_storage_provider(self, name: str) -> Optional[Type]:
        """Get a storage provider by name.

        Args:
            name: Name of the provider

        Returns:
            Provider class or None if not found
        """
        return self._storage_providers.get(name)

    def list_storage_providers(self) -> List[str]:
        return list(self._storage_providers.keys())

    # Inference provider methods
    def register_inference_provider(self, name: str, provider_class: Type) -> None:
        """Register an inference provider.

        Args:
            name: Unique name for the provider (e.g., "gradio", "http")
            provider_class: Class implementing IInferenceProvider
        """
        self._inference_providers[name] = provider_class
        logger.debug(f"Registered inference provider: {name}")

    def get_inference_provider(self, name: str) -> Optional[Type]:
        """Get an inference provider by name.

        Args:
            name: Name of the provider

        Returns:
            Provider class or None if not found
        """
        return self._inference_providers.get(name)

    def list_inference_providers(self) -> List[str]:
        return list(self._inference_providers.keys())

    def clear(self) -> None:
        """Clear all registrations (mainly for testing)."""
        self._storage_providers.clear()
        self._inference_providers.clear()
        logger.debug("Plugin registry cleared")
