"""Photo pipeline - routes photos from intake through both stages"""

import asyncio
import logging
from collections import Counter
from typing import List, Optional, Set
from uuid import UUID

from photomap.ai_models.classification_model import ClassificationModel
from photomap.monitoring.metrics import metrics_collector
from photomap.schemas.photo import Stage, StageState
from photomap.schemas.pipeline import PipelineMetrics
from photomap.services.classification_stage import ClassificationStage, ImageDecoder
from photomap.services.map_view import MapViewBuilder
from photomap.services.metadata_stage import MetadataDecoder, MetadataExtractionStage
from photomap.services.photo_registry import PhotoRegistry

logger = logging.getLogger(__name__)


class PhotoPipeline:
    """
    Coordinates the registry, both stages and the map view.

    ``intake`` registers a photo and schedules its metadata and
    classification stages as independent asyncio tasks keyed by photo id.
    Stage results flow back only through the registry, whose change
    notifications keep the map view current.
    """

    def __init__(
        self,
        registry: Optional[PhotoRegistry] = None,
        metadata_decoder: Optional[MetadataDecoder] = None,
        model: Optional[ClassificationModel] = None,
        image_decoder: Optional[ImageDecoder] = None,
        top_k: Optional[int] = None,
    ):
        self.registry = registry or PhotoRegistry()
        self.metadata_stage = MetadataExtractionStage(self.registry, decoder=metadata_decoder)
        self.classification_stage = ClassificationStage(
            self.registry,
            model=model,
            image_decoder=image_decoder,
            top_k=top_k,
        )
        self.map_view = MapViewBuilder(self.registry)
        self._tasks: Set[asyncio.Task] = set()
        logger.info("Initialized PhotoPipeline")

    def intake(self, image_bytes: bytes, display_name: str) -> UUID:
        """
        Register a photo and start processing it.

        Never blocks: stages run as background tasks on the running event
        loop. Without a running loop the stages stay pending until
        ``process_pending`` is awaited.

        Args:
            image_bytes: Raw image data
            display_name: Informational name

        Returns:
            The new photo id
        """
        photo_id = self.registry.intake(image_bytes, display_name)
        self.schedule(photo_id)
        return photo_id

    def schedule(self, photo_id: UUID) -> List[asyncio.Task]:
        """
        Schedule both stages for a photo.

        Stages that are not pending ignore the trigger, so this is safe to
        call whenever anything about the photo changes.

        Returns:
            The tasks created (empty without a running event loop)
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No running event loop; photo {photo_id} left pending")
            return []

        record = self.registry.get(photo_id)
        if record is None:
            logger.warning(f"Cannot schedule unknown photo {photo_id}")
            return []

        tasks = []
        if record.metadata_state == StageState.PENDING:
            tasks.append(loop.create_task(self.metadata_stage.process(photo_id)))
        if record.classification_state == StageState.PENDING:
            tasks.append(loop.create_task(self.classification_stage.process(photo_id)))

        for task in tasks:
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        logger.debug(f"Scheduled {len(tasks)} stage task(s) for photo {photo_id}")
        return tasks

    def reprocess(self, photo_id: UUID) -> List[asyncio.Task]:
        """Re-trigger processing for a photo; settled stages are not re-run"""
        return self.schedule(photo_id)

    async def process_photo(self, photo_id: UUID):
        """Run both stages for a photo and wait for them"""
        await asyncio.gather(
            self.metadata_stage.process(photo_id),
            self.classification_stage.process(photo_id),
        )

    async def process_pending(self) -> int:
        """
        Run every stage still pending, e.g. photos taken in without a loop.

        Returns:
            Number of photos with pending work
        """
        pending = [
            r.id for r in self.registry.list_all()
            if StageState.PENDING in (r.metadata_state, r.classification_state)
        ]
        for photo_id in pending:
            self.schedule(photo_id)
        await self.drain()
        return len(pending)

    def remove(self, photo_id: UUID) -> bool:
        """Remove a photo; in-flight results for it will be dropped"""
        return self.registry.remove(photo_id)

    async def drain(self):
        """Wait until every outstanding stage task has finished"""
        while self._tasks:
            tasks = list(self._tasks)
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for result in results:
                if isinstance(result, Exception):
                    logger.error(f"Stage task failed: {result}")

    def get_metrics(self) -> PipelineMetrics:
        """
        Get pipeline metrics.

        Returns:
            PipelineMetrics with current statistics
        """
        records = self.registry.list_all()
        metadata_states = Counter(r.metadata_state.value for r in records)
        classification_states = Counter(r.classification_state.value for r in records)

        metadata_latency = metrics_collector.get_latency_percentiles(Stage.METADATA.value)
        classification_latency = metrics_collector.get_latency_percentiles(Stage.CLASSIFICATION.value)

        return PipelineMetrics(
            total_photos=len(records),
            metadata_states=dict(metadata_states),
            classification_states=dict(classification_states),
            map_ready_photos=len(self.map_view.current_view()),
            model_state=self.classification_stage.model.state.value,
            outstanding_tasks=len(self._tasks),
            p50_metadata_latency_ms=metadata_latency["p50"],
            p90_metadata_latency_ms=metadata_latency["p90"],
            p50_classification_latency_ms=classification_latency["p50"],
            p90_classification_latency_ms=classification_latency["p90"],
        )
