"""Pydantic schemas for photo records and stage results"""

from typing import Any, Dict, List, Optional, Union
from datetime import datetime, timezone
from uuid import UUID, uuid4
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, model_validator


class Stage(str, Enum):
    """Independent processing stages applied to every photo"""
    METADATA = "metadata"
    CLASSIFICATION = "classification"


class StageState(str, Enum):
    """Coarse per-stage status stored on the photo record"""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StageState.DONE, StageState.FAILED)


class ChangedField(str, Enum):
    """Record field affected by a registry change"""
    METADATA = "metadata"
    CLASSIFICATION = "classification"
    REMOVED = "removed"


class Coordinates(BaseModel):
    """Latitude/longitude pair in decimal degrees"""
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class MetadataResult(BaseModel):
    """Normalized metadata extracted from a photo"""
    model_config = ConfigDict(frozen=True)

    has_location: bool = False
    coordinates: Optional[Coordinates] = None
    captured_at: Optional[datetime] = None
    heading: Optional[Union[float, str]] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    raw_tags: Dict[str, Any] = Field(default_factory=dict)
    message: Optional[str] = Field(None, description="Human readable extraction note")

    @model_validator(mode="after")
    def check_location_consistency(self) -> "MetadataResult":
        """Coordinates must be present exactly when has_location is set"""
        if self.has_location and self.coordinates is None:
            raise ValueError("has_location requires coordinates")
        if not self.has_location and self.coordinates is not None:
            raise ValueError("coordinates given without has_location")
        return self

    @classmethod
    def failed(cls, message: str) -> "MetadataResult":
        """Sentinel stored on a record whose extraction failed"""
        return cls(has_location=False, message=message)


class Prediction(BaseModel):
    """Single labeled classification output"""
    model_config = ConfigDict(frozen=True)

    label: str
    confidence: float = Field(ge=0.0, le=1.0)


class PhotoRecord(BaseModel):
    """Canonical photo entity owned by the registry"""

    id: UUID = Field(default_factory=uuid4)
    image_bytes: bytes = Field(repr=False)
    display_name: str = ""
    metadata: Optional[MetadataResult] = None
    classification: Optional[List[Prediction]] = None
    metadata_state: StageState = StageState.PENDING
    classification_state: StageState = StageState.PENDING
    metadata_error: Optional[str] = None
    classification_error: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def state_of(self, stage: Stage) -> StageState:
        """Current state of the given stage"""
        if stage == Stage.METADATA:
            return self.metadata_state
        return self.classification_state


class PhotoChange(BaseModel):
    """Change notification emitted by the registry"""
    model_config = ConfigDict(frozen=True)

    photo_id: UUID
    changed_field: ChangedField
