"""EXIF data extraction service for photo metadata"""

import asyncio
import logging
from typing import Dict, Optional, Any
from PIL import Image, UnidentifiedImageError
from PIL.ExifTags import TAGS, GPSTAGS
from io import BytesIO

from photomap.exceptions import MetadataDecodeError

logger = logging.getLogger(__name__)

EXIF_IFD_TAG = 0x8769
GPS_IFD_TAG = 0x8825


class ExifService:
    """Service for extracting EXIF metadata from photos"""

    @staticmethod
    def _convert_to_degrees(value: tuple) -> Optional[float]:
        """
        Convert GPS coordinates to degrees.

        Args:
            value: Tuple of (degrees, minutes, seconds)

        Returns:
            Decimal degrees
        """
        try:
            d, m, s = value
            return float(d) + (float(m) / 60.0) + (float(s) / 3600.0)
        except (ValueError, TypeError, ZeroDivisionError):
            return None

    @staticmethod
    def _get_gps_coordinates(gps_info: Dict) -> Optional[Dict[str, float]]:
        """
        Extract GPS coordinates from GPS info.

        Args:
            gps_info: GPS info dictionary keyed by GPS tag name

        Returns:
            Dictionary with latitude and longitude or None
        """
        gps_latitude = gps_info.get("GPSLatitude")
        gps_latitude_ref = gps_info.get("GPSLatitudeRef")
        gps_longitude = gps_info.get("GPSLongitude")
        gps_longitude_ref = gps_info.get("GPSLongitudeRef")

        if not all([gps_latitude, gps_latitude_ref, gps_longitude, gps_longitude_ref]):
            return None

        lat = ExifService._convert_to_degrees(gps_latitude)
        lon = ExifService._convert_to_degrees(gps_longitude)

        if lat is None or lon is None:
            return None

        # Adjust for hemisphere
        if ExifService._clean_text(gps_latitude_ref) == "S":
            lat = -lat
        if ExifService._clean_text(gps_longitude_ref) == "W":
            lon = -lon

        return {
            "latitude": lat,
            "longitude": lon,
        }

    @staticmethod
    def _clean_text(value: Any) -> Any:
        """Decode byte strings and strip padding from EXIF text values"""
        if isinstance(value, bytes):
            value = value.decode("utf-8", errors="ignore")
        if isinstance(value, str):
            return value.strip().strip("\x00").strip()
        return value

    @staticmethod
    def _to_plain(value: Any) -> Any:
        """Convert Pillow rationals and tuples into plain Python values"""
        if isinstance(value, (bytes, str)):
            return ExifService._clean_text(value)
        if isinstance(value, tuple):
            return tuple(ExifService._to_plain(v) for v in value)
        if hasattr(value, "numerator") and hasattr(value, "denominator") and not isinstance(value, int):
            try:
                return float(value)
            except (ValueError, ZeroDivisionError):
                return None
        return value

    @staticmethod
    def extract_exif_from_bytes(image_bytes: bytes) -> Dict[str, Any]:
        """
        Extract EXIF data from image bytes.

        Args:
            image_bytes: Image file bytes

        Returns:
            Flat dictionary of EXIF tags. GPS positions are reported as
            signed decimal ``latitude``/``longitude``. An image without
            EXIF yields an empty dictionary.

        Raises:
            MetadataDecodeError: if the bytes are not a readable image
        """
        try:
            image = Image.open(BytesIO(image_bytes))
            exif_raw = image.getexif()
        except (UnidentifiedImageError, OSError, ValueError) as e:
            raise MetadataDecodeError(f"Cannot read image: {e}") from e

        if not exif_raw:
            logger.info("No EXIF data found in image")
            return {}

        exif_data: Dict[str, Any] = {
            "width": image.width,
            "height": image.height,
        }

        # Extract standard EXIF tags
        for tag_id, value in exif_raw.items():
            if tag_id in (EXIF_IFD_TAG, GPS_IFD_TAG):
                continue
            tag_name = TAGS.get(tag_id, str(tag_id))
            exif_data[tag_name] = ExifService._to_plain(value)

        exif_ifd = exif_raw.get_ifd(EXIF_IFD_TAG)
        for tag_id, value in exif_ifd.items():
            tag_name = TAGS.get(tag_id, str(tag_id))
            exif_data[tag_name] = ExifService._to_plain(value)

        # DateTimeDigitized is the creation time of the digital file
        if "DateTimeDigitized" in exif_data:
            exif_data["CreateDate"] = exif_data["DateTimeDigitized"]

        # Extract GPS data if available
        gps_info_raw = exif_raw.get_ifd(GPS_IFD_TAG)
        if gps_info_raw:
            gps_info = {}
            for tag_id, value in gps_info_raw.items():
                tag_name = GPSTAGS.get(tag_id, str(tag_id))
                gps_info[tag_name] = value

            gps_coordinates = ExifService._get_gps_coordinates(gps_info)
            if gps_coordinates:
                exif_data.update(gps_coordinates)

            if "GPSImgDirection" in gps_info:
                exif_data["GPSImgDirection"] = ExifService._to_plain(gps_info["GPSImgDirection"])

        logger.info(f"Extracted EXIF data: {len(exif_data)} fields")
        return exif_data

    @staticmethod
    async def extract_metadata(image_bytes: bytes) -> Dict[str, Any]:
        """
        Extract EXIF data without blocking the event loop.

        Args:
            image_bytes: Image file bytes

        Returns:
            Dictionary containing EXIF metadata
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, ExifService.extract_exif_from_bytes, image_bytes
        )
