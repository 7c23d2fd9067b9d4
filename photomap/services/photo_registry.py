"""Photo registry - canonical photo records and their lifecycle"""

import logging
from typing import Callable, Dict, List, Optional
from uuid import UUID

from photomap.exceptions import UnknownPhotoError
from photomap.monitoring.metrics import metrics_collector
from photomap.schemas.photo import (
    ChangedField,
    MetadataResult,
    PhotoChange,
    PhotoRecord,
    Prediction,
    Stage,
    StageState,
)

logger = logging.getLogger(__name__)

ChangeListener = Callable[[PhotoChange], None]


class PhotoRegistry:
    """
    Single source of truth for photo identity and the only writer of records.

    Stages never touch record fields directly: every transition and result
    goes through one of the merge/transition methods below, which reject
    writes for removed ids and for stages that already reached a terminal
    state. This gives at-most-once completion per (photo id, stage).
    """

    def __init__(self):
        # dicts keep insertion order, which is the intake order
        self._records: Dict[UUID, PhotoRecord] = {}
        self._listeners: List[ChangeListener] = []

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, photo_id: object) -> bool:
        return photo_id in self._records

    def intake(self, image_bytes: bytes, display_name: str) -> UUID:
        """
        Create a record with both stages pending.

        Args:
            image_bytes: Raw image data, owned by the record from now on
            display_name: Informational name shown to users

        Returns:
            The new record's id
        """
        record = PhotoRecord(image_bytes=bytes(image_bytes), display_name=display_name)
        # uuid4 collisions are not expected, but an id must never be reused
        while record.id in self._records:
            record = PhotoRecord(image_bytes=record.image_bytes, display_name=display_name)

        self._records[record.id] = record
        metrics_collector.record_intake()
        logger.info(f"Registered photo {record.id} ({display_name!r}, {len(image_bytes)} bytes)")
        return record.id

    def get(self, photo_id: UUID) -> Optional[PhotoRecord]:
        """Get a record by id, or None when absent"""
        return self._records.get(photo_id)

    def require(self, photo_id: UUID) -> PhotoRecord:
        """Get a record by id, raising UnknownPhotoError when absent"""
        record = self._records.get(photo_id)
        if record is None:
            raise UnknownPhotoError(photo_id)
        return record

    def list_all(self) -> List[PhotoRecord]:
        """All records in intake order"""
        return list(self._records.values())

    def remove(self, photo_id: UUID) -> bool:
        """
        Remove a record. Results that arrive for it later are dropped.

        Returns:
            True if a record was removed
        """
        record = self._records.pop(photo_id, None)
        if record is None:
            logger.warning(f"Cannot remove unknown photo {photo_id}")
            return False

        metrics_collector.record_removal()
        logger.info(f"Removed photo {photo_id}")
        self._notify(photo_id, ChangedField.REMOVED)
        return True

    def mark_in_progress(self, photo_id: UUID, stage: Stage) -> bool:
        """
        Move a stage from pending to in_progress.

        Returns:
            True if the transition happened; False for unknown ids and for
            stages that are not pending
        """
        record = self._records.get(photo_id)
        if record is None:
            logger.debug(f"Ignoring {stage.value} start for unknown photo {photo_id}")
            return False

        if record.state_of(stage) != StageState.PENDING:
            logger.debug(
                f"Ignoring {stage.value} start for photo {photo_id}: "
                f"already {record.state_of(stage).value}"
            )
            return False

        self._set_state(record, stage, StageState.IN_PROGRESS)
        return True

    def merge_metadata(self, photo_id: UUID, result: MetadataResult) -> bool:
        """
        Store an extraction result and mark the metadata stage done.

        Returns:
            True if merged; False if the record is gone or the stage already settled
        """
        record = self._accept_completion(photo_id, Stage.METADATA)
        if record is None:
            return False

        record.metadata = result
        record.metadata_state = StageState.DONE
        logger.info(
            f"Merged metadata for photo {photo_id} (has_location={result.has_location})"
        )
        self._notify(photo_id, ChangedField.METADATA)
        return True

    def fail_metadata(self, photo_id: UUID, message: str) -> bool:
        """Terminate the metadata stage as failed with a no-location sentinel"""
        record = self._accept_completion(photo_id, Stage.METADATA)
        if record is None:
            return False

        record.metadata = MetadataResult.failed(message)
        record.metadata_error = message
        record.metadata_state = StageState.FAILED
        logger.warning(f"Metadata extraction failed for photo {photo_id}: {message}")
        self._notify(photo_id, ChangedField.METADATA)
        return True

    def merge_classification(self, photo_id: UUID, predictions: List[Prediction]) -> bool:
        """
        Store classification predictions and mark the stage done.

        Returns:
            True if merged; False if the record is gone or the stage already settled
        """
        record = self._accept_completion(photo_id, Stage.CLASSIFICATION)
        if record is None:
            return False

        record.classification = list(predictions)
        record.classification_state = StageState.DONE
        logger.info(f"Merged {len(predictions)} predictions for photo {photo_id}")
        self._notify(photo_id, ChangedField.CLASSIFICATION)
        return True

    def fail_classification(self, photo_id: UUID, reason: str) -> bool:
        """Terminate the classification stage as failed, leaving the field empty"""
        record = self._accept_completion(photo_id, Stage.CLASSIFICATION)
        if record is None:
            return False

        record.classification_error = reason
        record.classification_state = StageState.FAILED
        logger.warning(f"Classification failed for photo {photo_id}: {reason}")
        self._notify(photo_id, ChangedField.CLASSIFICATION)
        return True

    def subscribe(self, listener: ChangeListener):
        """Register a listener for change notifications"""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener):
        """Remove a previously registered listener"""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _accept_completion(self, photo_id: UUID, stage: Stage) -> Optional[PhotoRecord]:
        """Return the record if a completion for this stage may still be written"""
        record = self._records.get(photo_id)
        if record is None:
            logger.info(f"Dropping {stage.value} result for removed or unknown photo {photo_id}")
            metrics_collector.record_stale_result(stage.value)
            return None

        state = record.state_of(stage)
        if state.is_terminal:
            logger.warning(
                f"Rejecting {stage.value} result for photo {photo_id}: stage already {state.value}"
            )
            metrics_collector.record_stale_result(stage.value)
            return None

        return record

    def _set_state(self, record: PhotoRecord, stage: Stage, state: StageState):
        if stage == Stage.METADATA:
            record.metadata_state = state
        else:
            record.classification_state = state

    def _notify(self, photo_id: UUID, changed_field: ChangedField):
        change = PhotoChange(photo_id=photo_id, changed_field=changed_field)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.exception(f"Change listener failed for photo {photo_id}: {e}")
