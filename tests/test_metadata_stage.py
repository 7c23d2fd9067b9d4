"""Tests for the metadata extraction stage and normalization"""

import asyncio
import math
import pytest
from datetime import datetime
from uuid import uuid4

from photomap.exceptions import MetadataDecodeError
from photomap.schemas.photo import Coordinates, StageState
from photomap.services.metadata_stage import (
    MetadataExtractionStage,
    NO_EXIF_MESSAGE,
    describe_orientation,
    normalize_metadata,
    parse_timestamp,
)
from tests.conftest import FakeMetadataDecoder, settle


class TestNormalizeCoordinates:
    """Location validation during normalization"""

    def test_valid_coordinates(self):
        """Test finite numeric coordinates set has_location"""
        result = normalize_metadata({"latitude": 48.8566, "longitude": 2.3522})

        assert result.has_location is True
        assert result.coordinates == Coordinates(lat=48.8566, lng=2.3522)

    @pytest.mark.parametrize(
        "lat,lng",
        [
            (None, 2.0),
            (48.0, None),
            ("48.0", 2.0),
            (48.0, "east"),
            (math.nan, 2.0),
            (48.0, math.inf),
            (-math.inf, 2.0),
            (True, 2.0),
        ],
    )
    def test_invalid_coordinates(self, lat, lng):
        """Test missing or non-numeric coordinates yield no location"""
        raw = {"Make": "Canon"}
        if lat is not None:
            raw["latitude"] = lat
        if lng is not None:
            raw["longitude"] = lng

        result = normalize_metadata(raw)

        assert result.has_location is False
        assert result.coordinates is None
        assert result.camera_make == "Canon"

    def test_integer_coordinates(self):
        """Test integer degrees are accepted"""
        result = normalize_metadata({"latitude": 10, "longitude": 20})

        assert result.coordinates == Coordinates(lat=10.0, lng=20.0)

    def test_empty_tags(self):
        """Test an image without tags"""
        result = normalize_metadata({})

        assert result.has_location is False
        assert result.message == NO_EXIF_MESSAGE


class TestNormalizeTimestamp:
    """Capture time precedence"""

    def test_prefers_original(self):
        """Test DateTimeOriginal wins over other fields"""
        result = normalize_metadata({
            "DateTimeOriginal": "2023:06:01 09:30:00",
            "DateTime": "2023:06:02 12:00:00",
            "CreateDate": "2023:06:03 08:00:00",
        })

        assert result.captured_at == datetime(2023, 6, 1, 9, 30, 0)

    def test_falls_back_to_modified(self):
        """Test DateTime is used without DateTimeOriginal"""
        result = normalize_metadata({
            "DateTime": "2023:06:02 12:00:00",
            "CreateDate": "2023:06:03 08:00:00",
        })

        assert result.captured_at == datetime(2023, 6, 2, 12, 0, 0)

    def test_falls_back_to_creation(self):
        """Test CreateDate is the last resort"""
        result = normalize_metadata({"CreateDate": "2023-06-03T08:00:00"})

        assert result.captured_at == datetime(2023, 6, 3, 8, 0, 0)

    def test_unparseable_value_is_skipped(self):
        """Test an unreadable timestamp falls through to the next field"""
        result = normalize_metadata({
            "DateTimeOriginal": "0000:00:00 00:00:00",
            "DateTime": "2023:06:02 12:00:00",
        })

        assert result.captured_at == datetime(2023, 6, 2, 12, 0, 0)

    def test_no_timestamp(self):
        """Test capture time is None without any field"""
        assert normalize_metadata({"Make": "Sony"}).captured_at is None

    def test_parse_timestamp_passthrough(self):
        """Test datetime values are kept"""
        moment = datetime(2020, 1, 1, 0, 0, 0)
        assert parse_timestamp(moment) is moment
        assert parse_timestamp("") is None
        assert parse_timestamp(12345) is None


class TestNormalizeHeading:
    """Direction precedence"""

    def test_prefers_gps_direction(self):
        """Test explicit heading wins over orientation"""
        result = normalize_metadata({"GPSImgDirection": 271.5, "Orientation": 6})

        assert result.heading == 271.5

    def test_falls_back_to_orientation(self):
        """Test orientation is rendered as a descriptive string"""
        result = normalize_metadata({"Orientation": 6})

        assert result.heading == "Orientation: Rotate 90 CW"

    def test_no_direction(self):
        """Test heading is None without either tag"""
        assert normalize_metadata({"Make": "Sony"}).heading is None

    def test_unknown_orientation_value(self):
        """Test unknown orientation codes are still described"""
        assert describe_orientation(42) == "Orientation: 42"
        assert describe_orientation(None) is None


class TestNormalizeCamera:
    """Camera fields and raw tags"""

    def test_camera_and_raw_tags(self):
        """Test camera fields are stripped and raw tags carried through"""
        raw = {"Make": " Apple ", "Model": "iPhone 15", "ISOSpeedRatings": 100}

        result = normalize_metadata(raw)

        assert result.camera_make == "Apple"
        assert result.camera_model == "iPhone 15"
        assert result.raw_tags == raw


@pytest.mark.asyncio
class TestMetadataExtractionStage:
    """Stage lifecycle"""

    async def test_process_merges_result(self, registry):
        """Test a successful extraction settles the stage"""
        decoder = FakeMetadataDecoder()
        stage = MetadataExtractionStage(registry, decoder=decoder)
        photo_id = registry.intake(b"jpeg", "a.jpg")

        assert await stage.process(photo_id) is True

        record = registry.get(photo_id)
        assert record.metadata_state == StageState.DONE
        assert record.metadata.coordinates == Coordinates(lat=48.8566, lng=2.3522)
        assert decoder.calls == 1

    async def test_process_is_idempotent(self, registry):
        """Test repeat triggers after completion do nothing"""
        decoder = FakeMetadataDecoder()
        stage = MetadataExtractionStage(registry, decoder=decoder)
        photo_id = registry.intake(b"jpeg", "a.jpg")

        await stage.process(photo_id)
        assert await stage.process(photo_id) is False

        assert decoder.calls == 1

    async def test_retrigger_while_in_progress(self, registry):
        """Test a trigger during extraction is ignored"""
        decoder = FakeMetadataDecoder(hold=True)
        stage = MetadataExtractionStage(registry, decoder=decoder)
        photo_id = registry.intake(b"jpeg", "a.jpg")

        task = asyncio.ensure_future(stage.process(photo_id))
        await settle()
        assert registry.get(photo_id).metadata_state == StageState.IN_PROGRESS

        assert await stage.process(photo_id) is False
        decoder.release()
        await task

        assert decoder.calls == 1
        assert registry.get(photo_id).metadata_state == StageState.DONE

    async def test_decode_failure_marks_failed(self, registry):
        """Test decoder errors settle the stage as failed"""
        decoder = FakeMetadataDecoder(error=MetadataDecodeError("Cannot read image: truncated"))
        stage = MetadataExtractionStage(registry, decoder=decoder)
        photo_id = registry.intake(b"broken", "broken.jpg")

        assert await stage.process(photo_id) is True

        record = registry.get(photo_id)
        assert record.metadata_state == StageState.FAILED
        assert record.metadata.has_location is False
        assert "Error extracting EXIF data" in record.metadata.message
        assert "truncated" in record.metadata_error

    async def test_unexpected_error_is_contained(self, registry):
        """Test arbitrary decoder exceptions never escape the stage"""
        decoder = FakeMetadataDecoder(error=KeyError("boom"))
        stage = MetadataExtractionStage(registry, decoder=decoder)
        photo_id = registry.intake(b"x", "x.jpg")

        await stage.process(photo_id)

        assert registry.get(photo_id).metadata_state == StageState.FAILED

    async def test_unknown_photo(self, registry):
        """Test processing an unknown id is a no-op"""
        stage = MetadataExtractionStage(registry, decoder=FakeMetadataDecoder())
        assert await stage.process(uuid4()) is False

    async def test_removed_mid_flight(self, registry):
        """Test a late result for a removed photo is dropped"""
        decoder = FakeMetadataDecoder(hold=True)
        stage = MetadataExtractionStage(registry, decoder=decoder)
        photo_id = registry.intake(b"jpeg", "a.jpg")

        task = asyncio.ensure_future(stage.process(photo_id))
        await settle()
        registry.remove(photo_id)
        decoder.release()
        await task

        assert registry.get(photo_id) is None
        assert len(registry) == 0

    async def test_real_decoder(self, registry, paris_jpeg):
        """Test the default Pillow decoder end to end"""
        stage = MetadataExtractionStage(registry)
        photo_id = registry.intake(paris_jpeg, "paris.jpg")

        await stage.process(photo_id)

        metadata = registry.get(photo_id).metadata
        assert metadata.has_location is True
        assert metadata.coordinates.lat == pytest.approx(48.8566, abs=1e-6)
        assert metadata.coordinates.lng == pytest.approx(2.3522, abs=1e-6)
        assert metadata.captured_at == datetime(2023, 6, 1, 9, 30, 0)
        assert metadata.camera_make == "Canon"
        assert metadata.heading == "Orientation: Horizontal (normal)"

    async def test_real_decoder_invalid_bytes(self, registry):
        """Test undecodable bytes fail the stage without raising"""
        stage = MetadataExtractionStage(registry)
        photo_id = registry.intake(b"definitely not a jpeg", "bad.jpg")

        await stage.process(photo_id)

        assert registry.get(photo_id).metadata_state == StageState.FAILED
