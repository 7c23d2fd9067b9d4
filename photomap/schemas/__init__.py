"""Pipeline schemas package"""

from .photo import (
    ChangedField,
    Coordinates,
    MetadataResult,
    PhotoChange,
    PhotoRecord,
    Prediction,
    Stage,
    StageState,
)
from .classification import ClassificationState, ModelState
from .map_view import BoundingBox, MapMarker
from .pipeline import PipelineMetrics, PhotoSummary

__all__ = [
    "ChangedField",
    "Coordinates",
    "MetadataResult",
    "PhotoChange",
    "PhotoRecord",
    "Prediction",
    "Stage",
    "StageState",
    "ClassificationState",
    "ModelState",
    "BoundingBox",
    "MapMarker",
    "PipelineMetrics",
    "PhotoSummary",
]
