"""Async access to a blocking inference provider."""

import asyncio
import functools
import logging
from concurrent.futures import Executor
from typing import Any, Dict, Optional

from core.interfaces.inference import IInferenceProvider, InferenceError, InferenceResult

logger = logging.getLogger(__name__)


class InferenceClient:
    """Runs inference calls off the event loop.

    Unexpected exceptions from a provider are reported as
    ``InferenceError`` so the pipeline only ever sees the two typed failures.
    """

    def __init__(self, provider: IInferenceProvider, executor: Optional[Executor] = None):
        """Initialize the client.

        Args:
            provider: Initialized inference provider
            executor: Executor for blocking calls (None = loop default)
        """
        self._provider = provider
        self._executor = executor

    @property
    def provider_name(self) -> str:
        return self._provider.name

    async def run_inference(
        self,
        image_bytes: bytes,
        model_name: str,
        confidence: float,
        iou: float
    ) -> InferenceResult:
        return await self._call(
            self._provider.run_inference, image_bytes, model_name, confidence, iou
        )

    async def model_info(self, model_name: str) -> Dict[str, Any]:
        return await self._call(self._provider.model_info, model_name)

    async def _call(self, func, *args: Any) -> Any:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, functools.partial(func, *args))
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(str(e)) from e
