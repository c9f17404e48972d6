"""Inference module plugin registration."""

import logging
from core.registry.plugin_registry import PluginRegistry
from modules.inference.providers.gradio_provider import GradioInferenceProvider
from modules.inference.providers.http_provider import HttpInferenceProvider

logger = logging.getLogger(__name__)


def register():
    """Register all inference providers with the plugin registry."""
    registry = PluginRegistry()

    registry.register_inference_provider("gradio", GradioInferenceProvider)
    registry.register_inference_provider("http", HttpInferenceProvider)

    logger.debug("Inference providers registered")


# Auto-register on import
register()
