import io
import logging
import os

from accountform.core.config import (
    IMAGE_COMPRESSION_THRESHOLD_MB,
    IMAGE_JPEG_QUALITY,
    IMAGE_MAX_DIMENSION,
)
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

COMPRESSIBLE_TYPES = frozenset({"image/jpeg", "image/png"})


def compress_image(
    data: bytes,
    filename: str,
    content_type: str,
    *,
    max_dimension: int = IMAGE_MAX_DIMENSION,
    quality: int = IMAGE_JPEG_QUALITY,
    threshold_bytes: int = IMAGE_COMPRESSION_THRESHOLD_MB * 1024 * 1024,
) -> tuple[bytes, str, str]:
    """Downscale and re-encode a large photo attachment as JPEG.

    Returns:
        (data, filename, content_type); the input is returned unchanged when
        it is not an image, is small enough, or re-encoding does not help.
    """
    if content_type not in COMPRESSIBLE_TYPES or len(data) <= threshold_bytes:
        return data, filename, content_type

    try:
        with Image.open(io.BytesIO(data)) as image:
            frame = ImageOps.exif_transpose(image)
            if frame.mode not in ("RGB", "L"):
                frame = frame.convert("RGB")
            frame.thumbnail((max_dimension, max_dimension))
            out = io.BytesIO()
            frame.save(out, format="JPEG", quality=quality, optimize=True)
    except (OSError, ValueError) as e:
        logger.warning("Image compression skipped for %s: %s", filename, e)
        return data, filename, content_type

    compressed = out.getvalue()
    if len(compressed) >= len(data):
        return data, filename, content_type

    logger.info(
        "Attachment %s compressed %d -> %d bytes", filename, len(data), len(compressed)
    )
    base, _ = os.path.splitext(filename)
    return compressed, f"{base}.jpg", "image/jpeg"
