"""Unit tests for legal document upload validation."""

import io

import pytest
from accountform.core.exceptions import PayloadTooLargeError, ValidationError
from accountform.utils.file_detection import detect_file_type_from_bytes
from api.file_validation import validate_upload_file
from fastapi import UploadFile
from starlette.datastructures import Headers


def upload(content: bytes, filename: str, content_type: str) -> UploadFile:
    return UploadFile(
        filename=filename,
        file=io.BytesIO(content),
        headers=Headers({"content-type": content_type}),
    )


class TestDetectFileType:
    """Tests for magic byte detection."""

    @pytest.mark.parametrize(
        "header,expected",
        [
            (b"%PDF-1.7", ("pdf", "application/pdf")),
            (b"\xff\xd8\xff\xe0", ("jpeg", "image/jpeg")),
            (b"\x89PNG\r\n\x1a\n", ("png", "image/png")),
            (b"GIF89a", None),
        ],
    )
    def test_detection(self, header, expected):
        assert detect_file_type_from_bytes(header) == expected


class TestValidateUploadFile:
    """Tests for validate_upload_file function."""

    @pytest.mark.asyncio
    async def test_valid_pdf(self):
        attachment = await validate_upload_file(
            upload(b"%PDF-1.4 content", "kbis.pdf", "application/pdf")
        )

        assert attachment.filename == "kbis.pdf"
        assert attachment.content_type == "application/pdf"
        assert attachment.content == b"%PDF-1.4 content"

    @pytest.mark.asyncio
    async def test_detected_type_wins_over_header(self):
        attachment = await validate_upload_file(
            upload(b"\x89PNG\r\n\x1a\n....", "scan.jpg", "image/jpeg")
        )
        assert attachment.content_type == "image/png"

    @pytest.mark.asyncio
    async def test_disallowed_content_type(self):
        with pytest.raises(ValidationError) as exc_info:
            await validate_upload_file(upload(b"hello", "notes.txt", "text/plain"))

        assert exc_info.value.details["field"] == "legalDocument"
        assert "allowed_types" in exc_info.value.details

    @pytest.mark.asyncio
    async def test_empty_file(self):
        with pytest.raises(ValidationError):
            await validate_upload_file(upload(b"", "kbis.pdf", "application/pdf"))

    @pytest.mark.asyncio
    async def test_bad_magic_bytes(self):
        with pytest.raises(ValidationError) as exc_info:
            await validate_upload_file(upload(b"not a pdf", "kbis.pdf", "application/pdf"))
        assert exc_info.value.details["expected_types"] == ["pdf", "jpeg", "png"]

    @pytest.mark.asyncio
    async def test_too_large(self):
        content = b"%PDF" + b"0" * (2 * 1024 * 1024)
        with pytest.raises(PayloadTooLargeError):
            await validate_upload_file(upload(content, "kbis.pdf", "application/pdf"), max_size_mb=1)
