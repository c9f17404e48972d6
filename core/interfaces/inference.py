"""Interface for AI inference providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class InferenceResult:
    """Output of one inference call.

    Attributes:
        processed_ref: URL or local path of the annotated image
        analysis_text: Markdown report produced by the model
    """
    processed_ref: Optional[str]
    analysis_text: str


class IInferenceProvider(ABC):
    """Interface for inference providers.

    Providers wrap a remote detection model. Calls are blocking and may be
    slow; callers on the event loop go through
    ``modules.inference.client.InferenceClient``.
    """

    @abstractmethod
    def initialize(self, config: dict) -> bool:
        """Initialize the provider with configuration.

        Args:
            config: Dictionary containing provider-specific configuration

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    def run_inference(
        self,
        image_bytes: bytes,
        model_name: str,
        confidence: float,
        iou: float
    ) -> InferenceResult:
        """Run the detection model on one image.

        Args:
            image_bytes: Raw image file contents
            model_name: Name of the model to run
            confidence: Confidence threshold (0.0-1.0)
            iou: IoU threshold for non-max suppression (0.0-1.0)

        Returns:
            InferenceResult with the processed image and report

        Raises:
            InferenceUnavailable: If the service cannot be reached
            InferenceError: If the call fails for any other reason
        """
        pass

    @abstractmethod
    def model_info(self, model_name: str) -> Dict[str, Any]:
        """Describe a model as reported by the service.

        Args:
            model_name: Name of the model

        Returns:
            Dictionary with at least a "description" entry

        Raises:
            InferenceUnavailable: If the service cannot be reached
            InferenceError: If the call fails for any other reason
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up resources used by the provider."""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'gradio', 'http')."""
        pass


class InferenceError(Exception):
    """Exception raised when an inference call fails."""
    pass


class InferenceUnavailable(InferenceError):
    """The inference service could not be reached."""
    pass
