"""Classification stage - per-photo state machine gated on model and image readiness"""

import asyncio
import logging
import math
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from photomap.ai_models.classification_model import ClassificationModel
from photomap.ai_models.content_classification import decode_to_pixels
from photomap.ai_models.model_loader import model_loader
from photomap.exceptions import DecodeFailure, ImageDecodeError, ModelUnavailableError, PhotoPipelineError
from photomap.monitoring.metrics import metrics_collector
from photomap.schemas.classification import ClassificationState
from photomap.schemas.photo import Prediction, Stage, StageState
from photomap.services.photo_registry import PhotoRegistry
from photomap.services.readiness_join import ReadinessJoin

logger = logging.getLogger(__name__)

ImageDecoder = Callable[[bytes], Awaitable[Any]]

MODEL_SLOT = "model"
IMAGE_SLOT = "image"


def normalize_predictions(raw: Iterable[Tuple[str, float]], top_k: int) -> List[Prediction]:
    """
    Apply the result contract to raw model output.

    Confidences are clamped to [0, 1] (NaN becomes 0), entries are sorted by
    descending confidence with ties kept in model output order, and at most
    ``top_k`` entries are returned.
    """
    cleaned = []
    for label, confidence in raw:
        confidence = float(confidence)
        if math.isnan(confidence):
            confidence = 0.0
        cleaned.append((str(label), min(1.0, max(0.0, confidence))))

    # sorted() is stable, so equal confidences keep model order
    ranked = sorted(cleaned, key=lambda item: -item[1])
    return [Prediction(label=label, confidence=confidence) for label, confidence in ranked[:max(0, top_k)]]


class ClassificationStage:
    """
    Classifies each photo at most once.

    Per photo: PENDING -> AWAITING_MODEL -> AWAITING_IMAGE_READY ->
    CLASSIFYING -> DONE | FAILED. Model loading and image decoding run
    independently and signal a ReadinessJoin; the single classify call
    starts when the later of the two arrives. Repeat triggers for a photo
    that is active or settled are no-ops, decided by photo id and state only.
    """

    def __init__(
        self,
        registry: PhotoRegistry,
        model: Optional[ClassificationModel] = None,
        image_decoder: Optional[ImageDecoder] = None,
        top_k: Optional[int] = None,
    ):
        self.registry = registry
        self.model = model or model_loader.get_classification_model()
        self.image_decoder = image_decoder or self._decode_image
        self.top_k = top_k if top_k is not None else self.model.config.top_k
        self._active: Dict[UUID, ClassificationState] = {}

    def state_of(self, photo_id: UUID) -> Optional[ClassificationState]:
        """
        Current classification state of a photo.

        Returns:
            The state, or None for unknown photo ids
        """
        if photo_id in self._active:
            return self._active[photo_id]

        record = self.registry.get(photo_id)
        if record is None:
            return None

        return {
            StageState.PENDING: ClassificationState.PENDING,
            StageState.IN_PROGRESS: ClassificationState.AWAITING_MODEL,
            StageState.DONE: ClassificationState.DONE,
            StageState.FAILED: ClassificationState.FAILED,
        }[record.classification_state]

    @property
    def active_count(self) -> int:
        return len(self._active)

    async def process(self, photo_id: UUID, image_bytes: Optional[bytes] = None) -> bool:
        """
        Classify a photo and merge the predictions.

        Args:
            photo_id: Registry id of the photo
            image_bytes: Image data; defaults to the record's own bytes

        Returns:
            True if this call ran the stage, False if it was a no-op
        """
        record = self.registry.get(photo_id)
        if record is None:
            logger.debug(f"Skipping classification for unknown photo {photo_id}")
            return False

        if photo_id in self._active or record.classification_state != StageState.PENDING:
            logger.debug(
                f"Skipping classification for photo {photo_id}: "
                f"already {self.state_of(photo_id).value}"
            )
            return False

        if not self.registry.mark_in_progress(photo_id, Stage.CLASSIFICATION):
            return False

        self._active[photo_id] = ClassificationState.AWAITING_MODEL
        if image_bytes is None:
            image_bytes = record.image_bytes

        start_time = time.time()
        join = ReadinessJoin((MODEL_SLOT, IMAGE_SLOT))
        waiters = [
            asyncio.ensure_future(self._await_model(photo_id, join)),
            asyncio.ensure_future(self._await_image(photo_id, image_bytes, join)),
        ]

        try:
            ready = await join.wait()
            if photo_id not in self.registry:
                logger.info(f"Photo {photo_id} was removed before classification, dropping")
                self._active.pop(photo_id, None)
                metrics_collector.record_stale_result(Stage.CLASSIFICATION.value)
                return True

            self._active[photo_id] = ClassificationState.CLASSIFYING
            logger.debug(f"Photo {photo_id} ready for classification")

            raw = await self.model.classify(ready[IMAGE_SLOT], self.top_k)
            predictions = normalize_predictions(raw, self.top_k)
        except PhotoPipelineError as e:
            self._fail(photo_id, str(e), start_time)
            return True
        except Exception as e:
            logger.exception(f"Unexpected classification error for photo {photo_id}")
            self._fail(photo_id, f"Classification error: {e}", start_time)
            return True
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()

        self._active.pop(photo_id, None)
        duration = time.time() - start_time
        if self.registry.merge_classification(photo_id, predictions):
            metrics_collector.record_stage_completion(Stage.CLASSIFICATION.value, "done", duration)
            if predictions:
                metrics_collector.record_classification(predictions[0].confidence)
        return True

    async def _await_model(self, photo_id: UUID, join: ReadinessJoin):
        try:
            ready = await self.model.ensure_model_loaded()
        except Exception as e:
            logger.exception(f"Model acquisition failed for photo {photo_id}")
            join.fail(MODEL_SLOT, ModelUnavailableError(f"Model unavailable: {e}"))
            return

        if not ready:
            join.fail(MODEL_SLOT, ModelUnavailableError(self.model.load_error or "Model unavailable"))
            return

        join.signal(MODEL_SLOT, True)
        if not join.is_ready(IMAGE_SLOT) and photo_id in self._active:
            self._active[photo_id] = ClassificationState.AWAITING_IMAGE_READY

    async def _await_image(self, photo_id: UUID, image_bytes: bytes, join: ReadinessJoin):
        try:
            pixels = await self.image_decoder(image_bytes)
        except DecodeFailure as e:
            join.fail(IMAGE_SLOT, e)
            return
        except Exception as e:
            join.fail(IMAGE_SLOT, ImageDecodeError(f"Cannot decode image: {e}"))
            return

        join.signal(IMAGE_SLOT, pixels)
        logger.debug(f"Decoded image for photo {photo_id}")

    async def _decode_image(self, image_bytes: bytes):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, decode_to_pixels, image_bytes, self.model.config.input_size
        )

    def _fail(self, photo_id: UUID, reason: str, start_time: float):
        self._active.pop(photo_id, None)
        duration = time.time() - start_time
        if self.registry.fail_classification(photo_id, reason):
            metrics_collector.record_stage_completion(Stage.CLASSIFICATION.value, "failed", duration)
