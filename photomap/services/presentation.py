"""User-facing summaries of photo records"""

from photomap.schemas.photo import PhotoRecord, StageState
from photomap.schemas.pipeline import PhotoSummary
from photomap.services.map_view import is_map_ready

NO_LOCATION_TEXT = "No location data available for this photo."
CONTENT_UNAVAILABLE_TEXT = "Content unavailable"


def summarize_photo(record: PhotoRecord) -> PhotoSummary:
    """Build the display summary for a record; failed stages read as missing data"""
    metadata = record.metadata
    has_location = is_map_ready(record)

    if has_location:
        coordinates = metadata.coordinates
        location_text = f"{coordinates.lat:.6f}, {coordinates.lng:.6f}"
    else:
        location_text = NO_LOCATION_TEXT

    timestamp_text = direction_text = camera_text = None
    if metadata is not None:
        if metadata.captured_at is not None:
            timestamp_text = metadata.captured_at.isoformat(sep=" ")
        if metadata.heading is not None:
            direction_text = str(metadata.heading)
        camera = " ".join(p for p in (metadata.camera_make, metadata.camera_model) if p)
        camera_text = camera or None

    content_tags = [p.label for p in record.classification or []]
    content_text = None
    if record.classification_state == StageState.FAILED:
        content_text = CONTENT_UNAVAILABLE_TEXT
    elif content_tags:
        content_text = ", ".join(content_tags)

    return PhotoSummary(
        photo_id=record.id,
        display_name=record.display_name,
        location_text=location_text,
        has_location=has_location,
        timestamp_text=timestamp_text,
        direction_text=direction_text,
        camera_text=camera_text,
        content_tags=content_tags,
        content_text=content_text,
        is_processing=not (
            record.metadata_state.is_terminal and record.classification_state.is_terminal
        ),
    )
