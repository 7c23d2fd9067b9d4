"""Shared classification model service with lazy, single-flight loading"""

import asyncio
import inspect
import logging
import time
from typing import Any, List, Optional, Tuple

from photomap.ai_models.content_classification import ClassificationModelConfig, ContentClassifier
from photomap.exceptions import InferenceError, ModelUnavailableError
from photomap.monitoring.metrics import metrics_collector
from photomap.schemas.classification import ModelState

logger = logging.getLogger(__name__)


async def _call(fn, *args):
    """Await coroutine functions; run blocking callables in the default executor"""
    if inspect.iscoroutinefunction(fn):
        return await fn(*args)
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, fn, *args)


class ClassificationModel:
    """
    Process-wide classification model with its own lifecycle.

    State machine: UNLOADED -> LOADING -> READY, or LOADING -> LOAD_FAILED.
    The model is loaded at most once. Callers arriving while a load is in
    flight await that same load. A failed load is final: every waiter and
    every later caller is told the model is unavailable. A cancelled load
    returns the model to UNLOADED so it can be started again.

    The wrapped classifier needs ``load_model()`` and
    ``classify(pixels, top_k)``; either may be a coroutine function.
    """

    def __init__(
        self,
        classifier: Optional[Any] = None,
        config: Optional[ClassificationModelConfig] = None,
    ):
        self.config = config or ClassificationModelConfig()
        self.classifier = classifier or ContentClassifier(self.config)
        self.state = ModelState.UNLOADED
        self.load_error: Optional[str] = None
        self._load_task: Optional[asyncio.Future] = None
        logger.info("Initialized ClassificationModel")

    async def ensure_model_loaded(self) -> bool:
        """
        Load the model if needed.

        A load that was cancelled, or that belongs to an event loop other
        than the running one, never reached a verdict; it is discarded and
        the next caller starts a fresh load.

        Returns:
            True once the model is ready, False if loading failed
        """
        if self.state == ModelState.READY:
            return True
        if self.state == ModelState.LOAD_FAILED:
            return False

        task = self._load_task
        if task is not None and (task.cancelled() or task.get_loop() is not asyncio.get_running_loop()):
            logger.warning("Discarding interrupted classification model load")
            self._reset_load()
            task = None

        if task is None:
            task = self._load_task = asyncio.ensure_future(self._load())

        try:
            # Shield the shared load from cancellation of any single waiter
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            self.load_error = "Model unavailable: load was cancelled"
            return False

    async def _load(self) -> bool:
        self._set_state(ModelState.LOADING)
        logger.info(f"Loading classification model {self.config.model_version}")
        start_time = time.time()

        try:
            await _call(self.classifier.load_model)
        except asyncio.CancelledError:
            logger.warning("Classification model load cancelled")
            if self._load_task is asyncio.current_task():
                self._reset_load()
            raise
        except Exception as e:
            duration = time.time() - start_time
            self.load_error = f"Model unavailable: {e}"
            self._set_state(ModelState.LOAD_FAILED)
            metrics_collector.record_model_load(success=False, duration_seconds=duration)
            logger.error(f"Failed to load classification model: {e}")
            return False

        duration = time.time() - start_time
        self.load_error = None
        self._set_state(ModelState.READY)
        metrics_collector.record_model_load(success=True, duration_seconds=duration)
        logger.info(f"Classification model loaded in {duration * 1000:.2f}ms")
        return True

    def _reset_load(self):
        self._load_task = None
        self._set_state(ModelState.UNLOADED)

    async def classify(self, pixels: Any, top_k: int) -> List[Tuple[str, float]]:
        """
        Run inference on a decoded image.

        Args:
            pixels: Pixel buffer produced by the image decoder
            top_k: Number of predictions requested

        Returns:
            Raw (label, confidence) pairs in model output order

        Raises:
            ModelUnavailableError: if the model is not ready
            InferenceError: if the model call fails
        """
        if self.state != ModelState.READY:
            raise ModelUnavailableError(
                self.load_error or f"Model not ready (state: {self.state.value})"
            )

        try:
            predictions = await _call(self.classifier.classify, pixels, top_k)
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}") from e

        return [(str(label), float(confidence)) for label, confidence in predictions]

    def _set_state(self, state: ModelState):
        self.state = state
        metrics_collector.record_model_state(state.value)
