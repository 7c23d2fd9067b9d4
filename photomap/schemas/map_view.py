"""Schemas for the map-ready view"""

from typing import Optional
from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


class BoundingBox(BaseModel):
    """Rectangle enclosing all map-ready coordinates"""
    model_config = ConfigDict(frozen=True)

    south: float
    west: float
    north: float
    east: float


class MapMarker(BaseModel):
    """Marker and popup data for one map-ready photo"""
    model_config = ConfigDict(frozen=True)

    photo_id: UUID
    display_name: str
    lat: float
    lng: float
    captured_at: Optional[datetime] = None
    location_label: str = Field(..., description="Coordinates formatted for display")
