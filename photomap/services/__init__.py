"""Services package"""

from .exif_service import ExifService
from .photo_registry import PhotoRegistry
from .metadata_stage import MetadataExtractionStage, normalize_metadata
from .classification_stage import ClassificationStage, normalize_predictions
from .readiness_join import ReadinessJoin
from .map_view import MapViewBuilder, is_map_ready
from .photo_pipeline import PhotoPipeline
from .photo_intake import PhotoIntakeService
from .presentation import summarize_photo

__all__ = [
    "ExifService",
    "PhotoRegistry",
    "MetadataExtractionStage",
    "normalize_metadata",
    "ClassificationStage",
    "normalize_predictions",
    "ReadinessJoin",
    "MapViewBuilder",
    "is_map_ready",
    "PhotoPipeline",
    "PhotoIntakeService",
    "summarize_photo",
]
