"""
Image compression before upload to the vision model.

Large phone photos are downscaled so the longest side fits `max_dimension`
and re-encoded as JPEG; small images are passed through untouched.
"""
import base64
import io

from PIL import Image, UnidentifiedImageError
from loguru import logger

from bizscan.config import COMPRESS_THRESHOLD_BYTES, IMAGE_MAX_DIMENSION, IMAGE_QUALITY

_MIME_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp", "GIF": "image/gif"}


def compress_image(
    data: bytes,
    max_dimension: int = IMAGE_MAX_DIMENSION,
    quality: int = IMAGE_QUALITY,
    threshold_bytes: int = COMPRESS_THRESHOLD_BYTES,
) -> bytes:
    """
    Reduce image bytes while keeping the text legible for the model.

    Args:
        data: Raw image bytes.
        max_dimension: Longest allowed side in pixels.
        quality: JPEG quality used when re-encoding.
        threshold_bytes: Images at or below this size that already fit
                         `max_dimension` are returned unchanged.

    Returns:
        bytes: Compressed JPEG bytes, or the input when it could not be decoded
               or did not need compressing.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            width, height = img.size
            if len(data) <= threshold_bytes and max(width, height) <= max_dimension:
                return data

            if max(width, height) > max_dimension:
                ratio = min(max_dimension / width, max_dimension / height)
                new_size = (max(1, round(width * ratio)), max(1, round(height * ratio)))
                img = img.resize(new_size, Image.Resampling.LANCZOS)

            if img.mode not in ("RGB", "L"):
                img = img.convert("RGB")

            buffer = io.BytesIO()
            img.save(buffer, format="JPEG", quality=quality, optimize=True)
    except (UnidentifiedImageError, OSError) as e:
        logger.warning(f"🖼️ Could not decode image for compression, sending as-is: {e}")
        return data

    compressed = buffer.getvalue()
    if len(compressed) >= len(data):
        return data
    logger.debug(f"🖼️ Compressed image {len(data)} → {len(compressed)} bytes")
    return compressed


def detect_mime_type(data: bytes) -> str:
    try:
        with Image.open(io.BytesIO(data)) as img:
            return _MIME_TYPES.get(img.format or "", "image/jpeg")
    except (UnidentifiedImageError, OSError):
        return "image/jpeg"


def to_data_url(data: bytes) -> str:
    """Encode image bytes as a base64 data URL accepted by the vision API."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{detect_mime_type(data)};base64,{encoded}"
