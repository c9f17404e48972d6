"""Inference provider for an HTTP proxy in front of the Gradio app."""

import logging
from typing import Any, Dict, Optional

import requests

from core.interfaces.inference import (
    IInferenceProvider,
    InferenceError,
    InferenceResult,
    InferenceUnavailable,
)

logger = logging.getLogger(__name__)


class HttpInferenceProvider(IInferenceProvider):
    """Posts images to a proxy server that talks to the model for us.

    The proxy exposes ``POST /api/gradio/process-image`` (multipart upload,
    JSON ``{"resultImage", "analysisParams"}`` back) and
    ``POST /api/gradio/update-model``. A 503 means the model itself is down.
    """

    def __init__(self):
        """Initialize the HTTP provider."""
        self.api_url: Optional[str] = None
        self.upstream_endpoint: Optional[str] = None
        self.timeout_seconds = 60.0
        self._session: Optional[requests.Session] = None

    @property
    def name(self) -> str:
        """Provider name."""
        return "http"

    def initialize(self, config: Dict[str, Any]) -> bool:
        """Initialize with configuration.

        Args:
            config: Configuration dictionary with:
                - endpoint: Base URL of the proxy server
                - upstream_endpoint: Gradio app the proxy should use (optional)
                - timeout_seconds: HTTP timeout per call (default: 60)

        Returns:
            True if an endpoint is configured
        """
        self.api_url = str(config.get("endpoint", "")).rstrip("/")
        self.upstream_endpoint = config.get("upstream_endpoint")
        self.timeout_seconds = float(config.get("timeout_seconds", 60.0))

        if not self.api_url:
            logger.error("HTTP inference requires an endpoint")
            return False

        self._session = requests.Session()
        logger.info(f"HTTP inference initialized: {self.api_url}")
        return True

    def run_inference(
        self,
        image_bytes: bytes,
        model_name: str,
        confidence: float,
        iou: float
    ) -> InferenceResult:
        """Upload one image to the proxy."""
        data = {
            "modelName": model_name,
            "confidence": str(confidence),
            "iou": str(iou),
        }
        if self.upstream_endpoint:
            data["endpoint"] = self.upstream_endpoint

        result = self._post(
            "/api/gradio/process-image",
            files={"image": ("image.jpg", image_bytes, "application/octet-stream")},
            data=data,
        )

        return InferenceResult(
            processed_ref=result.get("resultImage"),
            analysis_text=str(result.get("analysisParams") or ""),
        )

    def model_info(self, model_name: str) -> Dict[str, Any]:
        """Ask the proxy to describe a model."""
        payload = {"modelName": model_name}
        if self.upstream_endpoint:
            payload["endpoint"] = self.upstream_endpoint

        result = self._post("/api/gradio/update-model", json=payload)
        data = result.get("data")
        description = data[0] if isinstance(data, list) and data else data
        return {"model_name": model_name, "description": str(description or "")}

    def cleanup(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def _post(self, path: str, **kwargs: Any) -> Dict[str, Any]:
        if self._session is None:
            raise InferenceUnavailable("HTTP inference provider not initialized")

        url = f"{self.api_url}{path}"
        try:
            response = self._session.post(url, timeout=self.timeout_seconds, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise InferenceUnavailable(f"Cannot reach {url}: {e}") from e
        except requests.RequestException as e:
            raise InferenceError(f"Request to {url} failed: {e}") from e

        if response.status_code == 503:
            raise InferenceUnavailable(_error_detail(response))
        if not response.ok:
            raise InferenceError(f"HTTP {response.status_code}: {_error_detail(response)}")

        try:
            return response.json()
        except ValueError as e:
            raise InferenceError(f"Invalid JSON from {url}: {e}") from e


def _error_detail(response: requests.Response) -> str:
    """Best-effort error message from a proxy error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason
    return body.get("details") or body.get("error") or response.reason
