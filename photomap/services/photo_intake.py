"""Photo intake - accepts uploaded and camera-captured photos"""

import logging
import time
from datetime import datetime
from typing import Optional
from uuid import UUID

from photomap.config import settings
from photomap.services.photo_pipeline import PhotoPipeline

logger = logging.getLogger(__name__)


class PhotoIntakeService:
    """Front door for the upload and camera capture collaborators"""

    def __init__(self, pipeline: PhotoPipeline, accepted_mime_prefix: Optional[str] = None):
        self.pipeline = pipeline
        self.accepted_mime_prefix = accepted_mime_prefix or settings.accepted_mime_prefix

    def accept_upload(self, file_name: str, content_type: str, data: bytes) -> Optional[UUID]:
        """
        Take in an uploaded file.

        Args:
            file_name: Original file name, used as display name
            content_type: MIME type reported by the picker
            data: File contents

        Returns:
            Photo id, or None if the file is not an image or is empty
        """
        if not content_type or not content_type.lower().startswith(self.accepted_mime_prefix):
            logger.info(f"Ignoring upload {file_name!r} with content type {content_type!r}")
            return None

        if not data:
            logger.info(f"Ignoring empty upload {file_name!r}")
            return None

        return self.pipeline.intake(data, file_name)

    def accept_capture(self, data: bytes, captured_at: Optional[datetime] = None) -> UUID:
        """
        Take in a camera capture (JPEG).

        Args:
            data: Encoded JPEG frame
            captured_at: Capture time; defaults to now

        Returns:
            Photo id
        """
        if captured_at is None:
            millis = int(time.time() * 1000)
        else:
            millis = int(captured_at.timestamp() * 1000)

        return self.pipeline.intake(data, f"capture-{millis}.jpg")
