"""Content Classification Engine - AI Models Package"""

from .config import ClassificationModelConfig
from .classifier import ContentClassifier
from .labels import CONTENT_LABELS
from .preprocessing import decode_to_pixels

__all__ = [
    "ClassificationModelConfig",
    "ContentClassifier",
    "CONTENT_LABELS",
    "decode_to_pixels",
]
