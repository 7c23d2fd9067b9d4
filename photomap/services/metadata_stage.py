"""Metadata extraction stage - drives the EXIF decoder and normalizes its output"""

import logging
import math
import numbers
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping, Optional, Union
from uuid import UUID

from photomap.monitoring.metrics import metrics_collector
from photomap.schemas.photo import Coordinates, MetadataResult, Stage
from photomap.services.exif_service import ExifService
from photomap.services.photo_registry import PhotoRegistry

logger = logging.getLogger(__name__)

MetadataDecoder = Callable[[bytes], Awaitable[Mapping[str, Any]]]

NO_EXIF_MESSAGE = "No EXIF data found in this image"

# Capture time fields in order of preference
TIMESTAMP_FIELDS = ("DateTimeOriginal", "DateTime", "CreateDate")

EXIF_DATETIME_FORMATS = ("%Y:%m:%d %H:%M:%S", "%Y:%m:%d %H:%M:%S.%f", "%Y:%m:%d")

ORIENTATION_DESCRIPTIONS = {
    1: "Horizontal (normal)",
    2: "Mirror horizontal",
    3: "Rotate 180",
    4: "Mirror vertical",
    5: "Mirror horizontal and rotate 270 CW",
    6: "Rotate 90 CW",
    7: "Mirror horizontal and rotate 90 CW",
    8: "Rotate 270 CW",
}


def _finite_number(value: Any) -> Optional[float]:
    """Return value as float if it is a real, finite number"""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an EXIF or ISO-8601 timestamp; None if unparseable"""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    for fmt in EXIF_DATETIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Unparseable timestamp {text!r}")
        return None


def describe_orientation(value: Any) -> Optional[str]:
    """Render an EXIF orientation tag as a descriptive direction string"""
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        description = ORIENTATION_DESCRIPTIONS.get(int(value), str(value))
    except (TypeError, ValueError):
        description = str(value)
    return f"Orientation: {description}"


def _heading(raw: Mapping[str, Any]) -> Optional[Union[float, str]]:
    direction = raw.get("GPSImgDirection")
    if direction is not None:
        number = _finite_number(direction)
        if number is not None:
            return number
        if isinstance(direction, str) and direction.strip():
            return direction.strip()

    return describe_orientation(raw.get("Orientation"))


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_metadata(raw: Mapping[str, Any]) -> MetadataResult:
    """
    Normalize decoder output into a MetadataResult.

    Location is only reported when both latitude and longitude are finite
    numbers. Capture time prefers DateTimeOriginal, then DateTime, then
    CreateDate. Heading prefers GPSImgDirection, then the orientation tag.

    Args:
        raw: Flat tag mapping produced by the metadata decoder

    Returns:
        Immutable MetadataResult
    """
    if not raw:
        return MetadataResult(has_location=False, message=NO_EXIF_MESSAGE)

    coordinates = None
    lat = _finite_number(raw.get("latitude"))
    lng = _finite_number(raw.get("longitude"))
    if lat is not None and lng is not None:
        coordinates = Coordinates(lat=lat, lng=lng)

    captured_at = None
    for field in TIMESTAMP_FIELDS:
        captured_at = parse_timestamp(raw.get(field))
        if captured_at is not None:
            break

    return MetadataResult(
        has_location=coordinates is not None,
        coordinates=coordinates,
        captured_at=captured_at,
        heading=_heading(raw),
        camera_make=_text(raw.get("Make")),
        camera_model=_text(raw.get("Model")),
        raw_tags=dict(raw),
    )


class MetadataExtractionStage:
    """
    Runs metadata extraction once per photo id.

    The registry's metadata state is the idempotency key: only a pending
    stage is started, so repeated triggers for the same id are ignored.
    """

    def __init__(
        self,
        registry: PhotoRegistry,
        decoder: Optional[MetadataDecoder] = None,
    ):
        self.registry = registry
        self.decoder = decoder or ExifService.extract_metadata

    async def process(self, photo_id: UUID, image_bytes: Optional[bytes] = None) -> bool:
        """
        Extract and merge metadata for a photo.

        Args:
            photo_id: Registry id of the photo
            image_bytes: Image data; defaults to the record's own bytes

        Returns:
            True if this call ran the stage, False if it was a no-op
        """
        record = self.registry.get(photo_id)
        if record is None:
            logger.debug(f"Skipping metadata extraction for unknown photo {photo_id}")
            return False

        if not self.registry.mark_in_progress(photo_id, Stage.METADATA):
            logger.debug(f"Skipping metadata extraction for photo {photo_id}: already started")
            return False

        if image_bytes is None:
            image_bytes = record.image_bytes

        start_time = time.time()
        try:
            raw = await self.decoder(image_bytes)
            result = normalize_metadata(raw or {})
        except Exception as e:
            duration = time.time() - start_time
            logger.error(f"Error extracting EXIF data for photo {photo_id}: {e}")
            if self.registry.fail_metadata(photo_id, f"Error extracting EXIF data: {e}"):
                metrics_collector.record_stage_completion(Stage.METADATA.value, "failed", duration)
            return True

        duration = time.time() - start_time
        if self.registry.merge_metadata(photo_id, result):
            metrics_collector.record_stage_completion(Stage.METADATA.value, "done", duration)
            logger.debug(f"Metadata extraction for photo {photo_id} took {duration * 1000:.1f}ms")
        return True
