"""Schemas for pipeline metrics and photo presentation"""

from typing import Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, Field


class PipelineMetrics(BaseModel):
    """Snapshot of pipeline progress"""
    model_config = {"protected_namespaces": ()}

    total_photos: int = 0
    metadata_states: Dict[str, int] = Field(default_factory=dict)
    classification_states: Dict[str, int] = Field(default_factory=dict)
    map_ready_photos: int = 0
    model_state: str = "unloaded"
    outstanding_tasks: int = 0
    p50_metadata_latency_ms: float = 0.0
    p90_metadata_latency_ms: float = 0.0
    p50_classification_latency_ms: float = 0.0
    p90_classification_latency_ms: float = 0.0


class PhotoSummary(BaseModel):
    """User-facing summary of a photo record"""

    photo_id: UUID
    display_name: str
    location_text: str
    has_location: bool = False
    timestamp_text: Optional[str] = None
    direction_text: Optional[str] = None
    camera_text: Optional[str] = None
    content_tags: List[str] = Field(default_factory=list)
    content_text: Optional[str] = None
    is_processing: bool = False
