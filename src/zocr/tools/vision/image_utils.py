"""
Image decoding helpers shared by the engine wrappers.
"""

import io
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ...config.ocr_config import Rectangle


def decode_image(
    image: bytes, rectangle: Optional[Rectangle] = None
) -> Tuple[Image.Image, int, int]:
    """
    Decode encoded image bytes and optionally crop to a rectangle.

    Args:
        image: Encoded image bytes
        rectangle: Optional region to crop

    Returns:
        Tuple of (PIL Image, x offset, y offset) where the offsets map
        coordinates in the returned image back to the source image

    Raises:
        ValueError: If the bytes are not a decodable image
    """
    try:
        decoded = Image.open(io.BytesIO(image))
        decoded.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Failed to decode image from bytes: {e}") from e

    if rectangle is None:
        return decoded, 0, 0

    return decoded.crop(rectangle.as_box()), rectangle.left, rectangle.top
