"""Image decoding into classifier pixel buffers"""

import logging
from io import BytesIO

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from photomap.exceptions import ImageDecodeError

logger = logging.getLogger(__name__)


def decode_to_pixels(image_bytes: bytes, input_size: int = 224) -> np.ndarray:
    """
    Decode image bytes into a normalized square RGB pixel buffer.

    Args:
        image_bytes: Encoded image data
        input_size: Side length of the square model input

    Returns:
        float32 array of shape (input_size, input_size, 3) scaled to [0, 1]

    Raises:
        ImageDecodeError: if the bytes cannot be decoded
    """
    try:
        image = Image.open(BytesIO(image_bytes))
        image.load()
        # Respect camera orientation so the model sees the upright image
        image = ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise ImageDecodeError(f"Cannot decode image: {e}") from e

    image = image.convert("RGB")
    image = image.resize((input_size, input_size), Image.LANCZOS)

    pixels = np.asarray(image, dtype=np.float32) / 255.0
    logger.debug(f"Decoded image to pixel buffer {pixels.shape}")
    return pixels
