"""Inference provider for detection models hosted as a Gradio app."""

import io
import logging
import os
import tempfile
from typing import Any, Dict, Optional

import httpx
from gradio_client import Client, handle_file
from PIL import Image, UnidentifiedImageError

from core.interfaces.inference import (
    IInferenceProvider,
    InferenceError,
    InferenceResult,
    InferenceUnavailable,
)

logger = logging.getLogger(__name__)

PROCESS_IMAGE_API = "/process_image"
MODEL_INFO_API = "/update_model_info"

# Raised by the underlying httpx transport when the app goes away mid-call
CONNECTION_ERRORS = (httpx.ConnectError, httpx.TimeoutException, ConnectionError)


class GradioInferenceProvider(IInferenceProvider):
    """Runs images through a Gradio app's ``/process_image`` endpoint.

    The endpoint takes (image, model_name, confidence, iou) and returns the
    annotated image plus a markdown summary. The connection is opened
    lazily and dropped after a failed call so the next call reconnects.
    """

    def __init__(self):
        """Initialize the Gradio provider."""
        self.endpoint: Optional[str] = None
        self.timeout_seconds = 60.0
        self._client: Optional[Client] = None

    @property
    def name(self) -> str:
        """Provider name."""
        return "gradio"

    def initialize(self, config: Dict[str, Any]) -> bool:
        """Initialize with configuration.

        Args:
            config: Configuration dictionary with:
                - endpoint: URL or Space name of the Gradio app
                - timeout_seconds: HTTP timeout per call (default: 60)

        Returns:
            True if an endpoint is configured
        """
        self.endpoint = str(config.get("endpoint", "")).strip()
        self.timeout_seconds = float(config.get("timeout_seconds", 60.0))

        if not self.endpoint:
            logger.error("Gradio inference requires an endpoint")
            return False

        logger.info(f"Gradio inference configured: {self.endpoint}")
        return True

    def run_inference(
        self,
        image_bytes: bytes,
        model_name: str,
        confidence: float,
        iou: float
    ) -> InferenceResult:
        """Send one image to the model."""
        client = self._connect()
        image_path = self._write_temp_png(image_bytes)

        try:
            result = client.predict(
                image=handle_file(image_path),
                model_name=model_name,
                confidence=float(confidence),
                iou=float(iou),
                api_name=PROCESS_IMAGE_API,
            )
        except CONNECTION_ERRORS as e:
            self._client = None
            raise InferenceUnavailable(f"Lost connection to {self.endpoint}: {e}") from e
        except Exception as e:
            self._client = None
            raise InferenceError(f"Gradio prediction failed: {e}") from e
        finally:
            try:
                os.unlink(image_path)
            except OSError:
                logger.debug(f"Could not remove temp file {image_path}")

        if not isinstance(result, (list, tuple)) or len(result) < 2:
            raise InferenceError(f"Unexpected response from {PROCESS_IMAGE_API}: {result!r}")

        return InferenceResult(
            processed_ref=_image_ref(result[0]),
            analysis_text=str(result[1] or ""),
        )

    def model_info(self, model_name: str) -> Dict[str, Any]:
        """Ask the app to describe a model."""
        client = self._connect()
        try:
            result = client.predict(model_name=model_name, api_name=MODEL_INFO_API)
        except CONNECTION_ERRORS as e:
            self._client = None
            raise InferenceUnavailable(f"Lost connection to {self.endpoint}: {e}") from e
        except Exception as e:
            self._client = None
            raise InferenceError(f"Model info request failed: {e}") from e

        return {"model_name": model_name, "description": str(result or "")}

    def cleanup(self) -> None:
        """Drop the cached client."""
        self._client = None

    def _connect(self) -> Client:
        if self._client is not None:
            return self._client
        if not self.endpoint:
            raise InferenceUnavailable("Gradio inference provider not initialized")

        try:
            logger.info(f"Connecting to Gradio app: {self.endpoint}")
            self._client = Client(
                self.endpoint,
                verbose=False,
                httpx_kwargs={"timeout": self.timeout_seconds},
            )
        except Exception as e:
            raise InferenceUnavailable(f"Cannot connect to {self.endpoint}: {e}") from e

        return self._client

    def _write_temp_png(self, image_bytes: bytes) -> str:
        """Decode the image and write it as PNG for upload.

        Returns:
            Path of the temporary file (caller removes it)
        """
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise InferenceError(f"Unsupported image data: {e}") from e

        if image.mode not in ("RGB", "RGBA", "L"):
            image = image.convert("RGB")

        with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as tmp_file:
            image.save(tmp_file, "PNG")
            return tmp_file.name


def _image_ref(value: Any) -> Optional[str]:
    """Extract a URL or path from a Gradio image output."""
    if value is None:
        return None
    if isinstance(value, dict):
        return value.get("url") or value.get("path")
    return str(value)
