"""Analysis pipeline: one image in, one display update out."""

import asyncio
import logging
from typing import Optional, Set

from core.interfaces.inference import InferenceError, InferenceUnavailable
from core.interfaces.storage import NotFound, StorageError
from core.models.config import AnalysisConfig, ModelConfig
from core.models.slideshow import AnalysisRequest
from modules.inference.client import InferenceClient
from modules.storage.client import StorageClient

logger = logging.getLogger(__name__)

MSG_UNAVAILABLE = "AI analysis service unavailable. Please try again later."
MSG_DISABLED = "AI analysis disabled"
MSG_MISSING = "Image no longer available"


class FetchError(Exception):
    """Raised when the image bytes could not be read.

    Attributes:
        missing: True when the object no longer exists
    """

    def __init__(self, message: str, missing: bool = False):
        super().__init__(message)
        self.missing = missing


class AnalysisPipeline:
    """Fetches an image, runs it through the model and reports the result.

    Only one request is live at a time. ``process()`` records the new
    request before yielding, and every outcome is checked against the live
    request when it settles: a slow result for an image the user already
    moved away from is discarded instead of overwriting the newer one.

    Results go to a display sink (the ``SlideshowController``), which must
    provide ``show_raw``, ``show_analysis``, ``show_analysis_error``,
    ``show_analysis_skipped`` and ``on_image_missing``.
    """

    def __init__(
        self,
        storage: StorageClient,
        inference: Optional[InferenceClient],
        model: Optional[ModelConfig] = None,
        analysis: Optional[AnalysisConfig] = None,
        sink=None
    ):
        """Initialize the pipeline.

        Args:
            storage: Storage client bound to the bucket
            inference: Inference client (None = analysis unavailable)
            model: Model parameters sent with every call
            analysis: Analysis settings (enabled flag)
            sink: Display sink receiving results
        """
        self._storage = storage
        self._inference = inference
        self._model = model or ModelConfig()
        self._analysis = analysis or AnalysisConfig()
        self._sink = sink

        self._live: Optional[AnalysisRequest] = None
        self._live_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

        # Statistics
        self._requested = 0
        self._applied = 0
        self._discarded = 0
        self._failed = 0

    def set_sink(self, sink) -> None:
        """Attach the display sink."""
        self._sink = sink

    @property
    def live_request(self) -> Optional[AnalysisRequest]:
        return self._live

    @property
    def enabled(self) -> bool:
        return bool(self._analysis.enabled) and self._inference is not None

    def process(self, key: str) -> Optional[asyncio.Task]:
        """Show an image and start analyzing it.

        The original image is shown before anything is awaited. When the
        same key is already being analyzed, the running task is returned
        instead of starting a duplicate.

        Args:
            key: Object key of the image

        Returns:
            The analysis task, or None when analysis is disabled
        """
        live = self._live
        if live is not None and live.for_key == key and not live.done:
            logger.debug(f"Analysis already in flight for {key}")
            return self._live_task

        request = AnalysisRequest(for_key=key)
        self._live = request
        self._live_task = None
        self._requested += 1

        self._sink.show_raw(key, self._raw_ref(key))

        if not self.enabled:
            request.done = True
            self._sink.show_analysis_skipped(key, MSG_DISABLED)
            return None

        task = asyncio.get_running_loop().create_task(self._run(request), name=f"analysis:{key}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._live_task = task
        return task

    def invalidate(self) -> None:
        """Forget the live request; whatever is in flight gets discarded."""
        if self._live is not None:
            logger.debug(f"Invalidated analysis request for {self._live.for_key}")
        self._live = None
        self._live_task = None

    def update_model(
        self,
        model_name: Optional[str] = None,
        confidence: Optional[float] = None,
        iou: Optional[float] = None
    ) -> ModelConfig:
        """Change model parameters for subsequent requests.

        Returns:
            The updated model configuration
        """
        if model_name is not None:
            self._model.model_name = model_name
        if confidence is not None:
            self._model.confidence = float(confidence)
        if iou is not None:
            self._model.iou = float(iou)

        logger.info(
            f"Model parameters: {self._model.model_name} "
            f"(confidence={self._model.confidence}, iou={self._model.iou})"
        )
        return self._model

    async def shutdown(self) -> None:
        """Cancel outstanding analysis tasks."""
        self.invalidate()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def get_stats(self) -> dict:
        """Get pipeline statistics.

        Returns:
            Dictionary containing statistics
        """
        return {
            "enabled": self.enabled,
            "live_key": self._live.for_key if self._live else None,
            "in_flight": len(self._tasks),
            "requested": self._requested,
            "applied": self._applied,
            "discarded": self._discarded,
            "failed": self._failed,
        }

    async def _run(self, request: AnalysisRequest) -> None:
        key = request.for_key
        try:
            image_bytes = await self._fetch(key)
            result = await self._inference.run_inference(
                image_bytes,
                self._model.model_name,
                self._model.confidence,
                self._model.iou,
            )
        except FetchError as e:
            self._settle_failure(request, e, missing=e.missing)
            return
        except InferenceUnavailable as e:
            self._settle_failure(request, e, message=MSG_UNAVAILABLE)
            return
        except InferenceError as e:
            self._settle_failure(request, e, message=f"Error processing image: {e}")
            return
        finally:
            request.done = True

        if not self._is_live(request):
            self._discarded += 1
            logger.debug(f"Discarding stale analysis result for {key}")
            return

        self._applied += 1
        logger.info(f"Analysis complete for {key}")
        self._sink.show_analysis(key, result.processed_ref, result.analysis_text)

    async def _fetch(self, key: str) -> bytes:
        try:
            return await self._storage.fetch_image_bytes(key)
        except NotFound as e:
            raise FetchError(str(e), missing=True) from e
        except StorageError as e:
            raise FetchError(str(e)) from e

    def _settle_failure(
        self,
        request: AnalysisRequest,
        error: Exception,
        message: Optional[str] = None,
        missing: bool = False
    ) -> None:
        key = request.for_key
        if not self._is_live(request):
            self._discarded += 1
            logger.debug(f"Discarding stale analysis failure for {key}: {error}")
            return

        self._failed += 1
        if missing:
            logger.warning(f"Image disappeared before analysis: {key}")
            self._sink.on_image_missing(key, MSG_MISSING)
            return

        if message is None:
            message = f"Failed to load image: {error}"
        logger.warning(f"Analysis failed for {key}: {error}")
        self._sink.show_analysis_error(key, message)

    def _is_live(self, request: AnalysisRequest) -> bool:
        return self._live is request

    def _raw_ref(self, key: str) -> Optional[str]:
        try:
            return self._storage.image_url(key)
        except StorageError as e:
            logger.warning(f"No display reference for {key}: {e}")
            return None
