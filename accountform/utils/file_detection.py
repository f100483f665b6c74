"""
File type detection using magic bytes.

Magic bytes reference:
- PDF:  %PDF (0x25504446)
- JPEG: 0xFFD8FF
- PNG:  0x89504E47 (89 P N G)
"""

from typing import Final, Literal, Optional

FileType = Literal["pdf", "jpeg", "png"]
MimeType = Literal["application/pdf", "image/jpeg", "image/png"]

MAGIC_BYTES_MAP: Final[dict[bytes, tuple[FileType, MimeType]]] = {
    b"%PDF": ("pdf", "application/pdf"),
    b"\xff\xd8\xff": ("jpeg", "image/jpeg"),
    b"\x89PNG": ("png", "image/png"),
}


def detect_file_type_from_bytes(header: bytes) -> Optional[tuple[FileType, MimeType]]:
    """
    Detect file type from magic bytes header.

    Args:
        header: First 8+ bytes of file

    Returns:
        Tuple of (file_type, mime_type) or None if unrecognized

    Example:
        >>> detect_file_type_from_bytes(b'%PDF-1.4')
        ('pdf', 'application/pdf')
    """
    for signature, result in MAGIC_BYTES_MAP.items():
        if header.startswith(signature):
            return result
    return None
