"""Best-effort gzip for submission payloads.

Compression is a size optimization only: if it fails the raw bytes are
sent instead. Receivers recognise compressed content by the gzip magic
bytes, so both forms can be decoded the same way.
"""

import base64
import binascii
import gzip
import logging
import zlib
from typing import Callable

from accountform.core.config import GZIP_MAGIC

logger = logging.getLogger(__name__)

Compressor = Callable[[bytes], bytes]


def compress_bytes(data: bytes, compressor: Compressor = gzip.compress) -> bytes:
    """Return compressed ``data``, or ``data`` unchanged if compression fails."""
    try:
        compressed = compressor(data)
    except (OSError, ValueError, zlib.error) as e:
        logger.warning("Compression unavailable, sending raw payload: %s", e)
        return data

    logger.debug(
        "Compressed %d -> %d bytes", len(data), len(compressed)
    )
    return compressed


def is_gzip(data: bytes) -> bool:
    return data[:2] == GZIP_MAGIC


def decompress_if_gzip(data: bytes) -> bytes:
    return gzip.decompress(data) if is_gzip(data) else data


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def decode_base64(value: str) -> bytes:
    """Decode base64 content, accepting an optional ``data:...;base64,`` prefix.

    Raises:
        ValueError: If the content is not valid base64
    """
    if value.startswith("data:") and "," in value:
        value = value.split(",", 1)[1]
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 content: {e}") from e
