"""Schemas for the content classification stage"""

from enum import Enum


class ClassificationState(str, Enum):
    """Fine-grained classification progress for a single photo"""
    PENDING = "pending"
    AWAITING_MODEL = "awaiting_model"
    AWAITING_IMAGE_READY = "awaiting_image_ready"
    CLASSIFYING = "classifying"
    DONE = "done"
    FAILED = "failed"


class ModelState(str, Enum):
    """Lifecycle of the shared classification model"""
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    LOAD_FAILED = "load_failed"
