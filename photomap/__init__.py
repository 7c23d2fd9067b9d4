"""Photo map pipeline: metadata extraction, content classification and map view"""

from photomap.services.photo_pipeline import PhotoPipeline
from photomap.services.photo_registry import PhotoRegistry

__all__ = ["PhotoPipeline", "PhotoRegistry"]

__version__ = "1.0.0"
