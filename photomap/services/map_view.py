"""Map-ready view builder - derived set of photos with valid coordinates"""

import logging
import math
import numbers
from typing import List, Optional, Tuple
from uuid import UUID

from photomap.config import settings
from photomap.monitoring.metrics import metrics_collector
from photomap.schemas.map_view import BoundingBox, MapMarker
from photomap.schemas.photo import ChangedField, PhotoChange, PhotoRecord
from photomap.services.photo_registry import PhotoRegistry

logger = logging.getLogger(__name__)


def _is_finite_number(value) -> bool:
    return (
        isinstance(value, numbers.Real)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def is_map_ready(record: PhotoRecord) -> bool:
    """True if the record's metadata carries finite numeric coordinates"""
    metadata = record.metadata
    if metadata is None or not metadata.has_location or metadata.coordinates is None:
        return False
    return _is_finite_number(metadata.coordinates.lat) and _is_finite_number(metadata.coordinates.lng)


class MapViewBuilder:
    """
    Keeps the map-ready view current by reacting to registry notifications.

    The view is recomputed from the registry whenever a photo's metadata
    changes or a photo is removed; classification changes do not affect
    location and are ignored.
    """

    def __init__(
        self,
        registry: PhotoRegistry,
        default_center: Optional[Tuple[float, float]] = None,
    ):
        self.registry = registry
        self.default_center = default_center or settings.default_map_center
        self._view_ids: List[UUID] = []
        self.recompute_count = 0
        self.registry.subscribe(self.on_change)
        self.recompute()

    def close(self):
        """Stop listening to registry changes"""
        self.registry.unsubscribe(self.on_change)

    def on_change(self, change: PhotoChange):
        """Registry listener"""
        if change.changed_field == ChangedField.CLASSIFICATION:
            return
        self.recompute()

    def recompute(self):
        """Rebuild the view from the registry's current records"""
        self._view_ids = [r.id for r in self.registry.list_all() if is_map_ready(r)]
        self.recompute_count += 1
        metrics_collector.record_map_view_size(len(self._view_ids))
        logger.debug(f"Map view recomputed: {len(self._view_ids)} photos with location")

    def current_view(self) -> List[PhotoRecord]:
        """Map-ready records in intake order"""
        records = []
        for photo_id in self._view_ids:
            record = self.registry.get(photo_id)
            if record is not None:
                records.append(record)
        return records

    def _points(self) -> List[Tuple[float, float]]:
        return [
            (r.metadata.coordinates.lat, r.metadata.coordinates.lng)
            for r in self.current_view()
        ]

    def centroid(self) -> Tuple[float, float]:
        """
        Arithmetic mean of all map-ready coordinates.

        Returns:
            (lat, lng); the configured default center when the view is empty
        """
        points = self._points()
        if not points:
            return self.default_center

        n = len(points)
        return (
            sum(lat for lat, _ in points) / n,
            sum(lng for _, lng in points) / n,
        )

    def bounding_box(self) -> Optional[BoundingBox]:
        """Rectangle enclosing all map-ready photos; None for fewer than two"""
        points = self._points()
        if len(points) < 2:
            return None

        lats = [lat for lat, _ in points]
        lngs = [lng for _, lng in points]
        return BoundingBox(south=min(lats), west=min(lngs), north=max(lats), east=max(lngs))

    def markers(self) -> List[MapMarker]:
        """Marker and popup data for each map-ready photo"""
        markers = []
        for record in self.current_view():
            coordinates = record.metadata.coordinates
            markers.append(
                MapMarker(
                    photo_id=record.id,
                    display_name=record.display_name,
                    lat=coordinates.lat,
                    lng=coordinates.lng,
                    captured_at=record.metadata.captured_at,
                    location_label=f"{coordinates.lat:.6f}, {coordinates.lng:.6f}",
                )
            )
        return markers
