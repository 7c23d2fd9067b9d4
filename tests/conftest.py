"""Pytest configuration and shared fixtures"""

import asyncio
from io import BytesIO
from typing import Optional

import numpy as np
import pytest
from PIL import Image

from photomap.ai_models.classification_model import ClassificationModel
from photomap.services.photo_registry import PhotoRegistry


EXIF_IFD = 0x8769
GPS_IFD = 0x8825


def _dms(value: float) -> tuple:
    """Split decimal degrees into (degrees, minutes, seconds)"""
    value = abs(value)
    degrees = int(value)
    minutes_full = (value - degrees) * 60
    minutes = int(minutes_full)
    seconds = round((minutes_full - minutes) * 60, 4)
    return (float(degrees), float(minutes), seconds)


def make_jpeg(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    make: Optional[str] = None,
    model: Optional[str] = None,
    date_time: Optional[str] = None,
    date_time_original: Optional[str] = None,
    orientation: Optional[int] = None,
    size=(64, 48),
    color="red",
) -> bytes:
    """Create JPEG bytes, optionally carrying EXIF and GPS tags"""
    img = Image.new("RGB", size, color=color)
    exif = Image.Exif()

    if make:
        exif[0x010F] = make
    if model:
        exif[0x0110] = model
    if orientation is not None:
        exif[0x0112] = orientation
    if date_time:
        exif[0x0132] = date_time
    if date_time_original:
        exif[EXIF_IFD] = {0x9003: date_time_original}
    if lat is not None and lng is not None:
        exif[GPS_IFD] = {
            1: "N" if lat >= 0 else "S",
            2: _dms(lat),
            3: "E" if lng >= 0 else "W",
            4: _dms(lng),
        }

    img_bytes = BytesIO()
    if len(exif):
        img.save(img_bytes, format="JPEG", exif=exif)
    else:
        img.save(img_bytes, format="JPEG")
    return img_bytes.getvalue()


async def settle(iterations: int = 20):
    """Let pending callbacks and tasks on the event loop run"""
    for _ in range(iterations):
        await asyncio.sleep(0)


class FakeClassifier:
    """Async classifier double with controllable load timing and failures"""

    def __init__(self, predictions=None, load_error=None, classify_error=None, hold_load=False):
        self.predictions = predictions if predictions is not None else [
            ("seashore", 0.6),
            ("lakeside", 0.2),
            ("alp", 0.1),
        ]
        self.load_error = load_error
        self.classify_error = classify_error
        self.hold_load = hold_load
        self.load_released = asyncio.Event()
        self.load_calls = 0
        self.classify_calls = 0
        self.last_top_k = None

    def release_load(self):
        self.load_released.set()

    async def load_model(self):
        self.load_calls += 1
        if self.hold_load:
            await self.load_released.wait()
        if self.load_error:
            raise self.load_error

    async def classify(self, pixels, top_k):
        self.classify_calls += 1
        self.last_top_k = top_k
        if self.classify_error:
            raise self.classify_error
        return list(self.predictions)


class FakeImageDecoder:
    """Async image decoder double"""

    def __init__(self, error=None, hold=False):
        self.error = error
        self.hold = hold
        self.released = asyncio.Event()
        self.calls = 0

    def release(self):
        self.released.set()

    async def __call__(self, image_bytes):
        self.calls += 1
        if self.hold:
            await self.released.wait()
        if self.error:
            raise self.error
        return np.zeros((8, 8, 3), dtype=np.float32)


class FakeMetadataDecoder:
    """Async metadata decoder double returning a fixed tag mapping"""

    def __init__(self, raw=None, error=None, hold=False):
        self.raw = raw if raw is not None else {"latitude": 48.8566, "longitude": 2.3522}
        self.error = error
        self.hold = hold
        self.released = asyncio.Event()
        self.calls = 0

    def release(self):
        self.released.set()

    async def __call__(self, image_bytes):
        self.calls += 1
        if self.hold:
            await self.released.wait()
        if self.error:
            raise self.error
        return dict(self.raw)


@pytest.fixture
def registry():
    """Empty photo registry"""
    return PhotoRegistry()


@pytest.fixture
def sample_jpeg():
    """Plain JPEG without EXIF data"""
    return make_jpeg()


@pytest.fixture
def paris_jpeg():
    """JPEG geotagged at the Paris city center"""
    return make_jpeg(
        lat=48.8566,
        lng=2.3522,
        make="Canon",
        model="EOS R6",
        date_time="2023:06:02 12:00:00",
        date_time_original="2023:06:01 09:30:00",
        orientation=1,
    )


@pytest.fixture
def fake_classifier():
    """Classifier double that loads immediately"""
    return FakeClassifier()


@pytest.fixture
def fake_model(fake_classifier):
    """Classification model service wrapping the classifier double"""
    return ClassificationModel(classifier=fake_classifier)
