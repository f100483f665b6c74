"""Legal document upload validation.

Checks the declared content type, the size and the magic bytes before the
upload is handed to the submission pipeline as an Attachment.
"""

import logging
import os

from accountform.core.config import MAX_LEGAL_DOCUMENT_SIZE_MB
from accountform.core.exceptions import PayloadTooLargeError, ValidationError
from accountform.submission.package import Attachment
from accountform.utils.file_detection import detect_file_type_from_bytes
from accountform.validation.rules import LEGAL_DOCUMENT_TYPES
from fastapi import UploadFile

logger = logging.getLogger(__name__)

FIELD_NAME = "legalDocument"


def _get_file_size(file: UploadFile) -> int:
    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(0)
    return size


def _validate_file_size(size: int, max_size_mb: int) -> None:
    if size == 0:
        raise ValidationError(
            message="Le fichier est vide",
            field=FIELD_NAME,
            details={"file_size": 0},
        )

    if size > max_size_mb * 1024 * 1024:
        raise PayloadTooLargeError(
            max_size_mb=max_size_mb,
            actual_size_mb=size / (1024 * 1024),
            subject="attachment",
            message=f"Le fichier ne doit pas dépasser {max_size_mb}MB",
        )


async def validate_upload_file(
    file: UploadFile, max_size_mb: int = MAX_LEGAL_DOCUMENT_SIZE_MB
) -> Attachment:
    """Validate the uploaded legal document and read it.

    Args:
        file: FastAPI UploadFile object
        max_size_mb: Upload ceiling in MB

    Returns:
        The upload as an Attachment, typed from its magic bytes.

    Raises:
        ValidationError: If the type is not PDF, PNG or JPEG
        PayloadTooLargeError: If the file exceeds the ceiling
    """
    if file.content_type not in LEGAL_DOCUMENT_TYPES:
        raise ValidationError(
            message="Format de fichier non supporté (PDF, PNG, JPG uniquement)",
            field=FIELD_NAME,
            details={"allowed_types": sorted(LEGAL_DOCUMENT_TYPES)},
        )

    file_size = _get_file_size(file)
    _validate_file_size(file_size, max_size_mb)

    content = await file.read()
    result = detect_file_type_from_bytes(content[:8])
    if result is None:
        raise ValidationError(
            message="Format de fichier non supporté (PDF, PNG, JPG uniquement)",
            field=FIELD_NAME,
            details={
                "magic_bytes": content[:8].hex(),
                "expected_types": ["pdf", "jpeg", "png"],
            },
        )

    detected_type, detected_content_type = result
    if file.content_type != detected_content_type:
        logger.warning(
            "Content-Type mismatch: header=%s detected=%s",
            file.content_type,
            detected_content_type,
        )

    logger.info(
        "Legal document validated: type=%s size=%d",
        detected_type,
        file_size,
    )
    return Attachment(
        filename=file.filename or f"document.{detected_type}",
        content=content,
        content_type=detected_content_type,
    )
