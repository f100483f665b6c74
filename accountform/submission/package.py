"""Submission package assembly and size ceilings."""

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from accountform.core.config import (
    MAX_ATTACHMENT_SIZE_MB,
    MAX_DOCUMENT_SIZE_MB,
    MAX_PAYLOAD_SIZE_MB,
)
from accountform.core.exceptions import PayloadTooLargeError
from accountform.submission.compression import Compressor, compress_bytes, encode_base64

MB = 1024 * 1024

COMPANY_INFO_FIELDS = (
    "siren",
    "siret",
    "nafApe",
    "tvaIntracom",
    "address",
    "postalCode",
    "city",
    "deliveryAddress",
    "deliveryPostalCode",
    "deliveryCity",
)

CONTACT_FIELDS = (
    "responsableAchatEmail",
    "responsableAchatPhone",
    "serviceComptaEmail",
    "serviceComptaPhone",
)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)


LEGAL_DOCUMENT_FIELD = "legalDocument"
LEGAL_DOCUMENT_MISSING = "Le document légal doit être joint à la soumission"
LEGAL_DOCUMENT_MISMATCH = "Le fichier joint ne correspond pas au document déclaré"


def legal_document_error(
    reference: Mapping[str, Any], attachment: Optional[Attachment]
) -> Optional[str]:
    """Error message unless ``attachment`` is the file declared in the form."""
    if attachment is None:
        return LEGAL_DOCUMENT_MISSING
    if (
        reference.get("filename") != attachment.filename
        or reference.get("contentType") != attachment.content_type
        or reference.get("size") != attachment.size
    ):
        return LEGAL_DOCUMENT_MISMATCH
    return None


@dataclass(frozen=True)
class SizeLimits:
    document_mb: int = MAX_DOCUMENT_SIZE_MB
    attachment_mb: int = MAX_ATTACHMENT_SIZE_MB
    payload_mb: int = MAX_PAYLOAD_SIZE_MB


@dataclass
class SubmissionPackage:
    form_data: dict[str, Any]
    document: Attachment
    user_attachments: list[Attachment] = field(default_factory=list)

    @property
    def attachments(self) -> list[Attachment]:
        """Recap document first, then user-supplied files."""
        return [self.document, *self.user_attachments]


def check_document_size(size: int, limits: SizeLimits) -> None:
    size_mb = size / MB
    if size_mb > limits.document_mb:
        raise PayloadTooLargeError(
            max_size_mb=limits.document_mb,
            actual_size_mb=size_mb,
            subject="document",
            message=(
                f"Le PDF généré est trop volumineux ({size_mb:.2f} MB). "
                f"Taille maximum : {limits.document_mb} MB."
            ),
        )


def check_attachment_size(attachment: Attachment, limits: SizeLimits) -> None:
    size_mb = attachment.size / MB
    if size_mb > limits.attachment_mb:
        raise PayloadTooLargeError(
            max_size_mb=limits.attachment_mb,
            actual_size_mb=size_mb,
            subject="attachment",
            message=(
                f"Le fichier KBIS est trop volumineux ({size_mb:.2f} MB). "
                f"Taille maximum : {limits.attachment_mb} MB."
            ),
        )


def check_payload_size(payload: dict[str, Any], limits: SizeLimits) -> int:
    """Raise if the JSON-encoded payload exceeds the ceiling; return its size."""
    size = len(json.dumps(payload, ensure_ascii=False).encode("utf-8"))
    size_mb = size / MB
    if size_mb > limits.payload_mb:
        raise PayloadTooLargeError(
            max_size_mb=limits.payload_mb,
            actual_size_mb=size_mb,
            subject="payload",
            message=(
                f"Les fichiers sont trop volumineux ({size_mb:.2f} MB). "
                f"Taille maximum après compression : {limits.payload_mb} MB. "
                "Veuillez réduire la taille des fichiers."
            ),
        )
    return size


def build_send_payload(
    package: SubmissionPackage, compressor: Optional[Compressor] = None
) -> dict[str, Any]:
    """JSON body of ``POST /send``; binaries are gzip-compressed then base64."""
    data = package.form_data

    def encode(content: bytes) -> str:
        if compressor is None:
            return encode_base64(content)
        return encode_base64(compress_bytes(content, compressor))

    kbis = package.user_attachments[0] if package.user_attachments else None

    payload: dict[str, Any] = {"companyName": data.get("companyName", "")}
    for name in CONTACT_FIELDS:
        payload[name] = data.get(name, "")
    payload.update(
        {
            "kbisFile": encode(kbis.content) if kbis else None,
            "kbisFileName": kbis.filename if kbis else None,
            "pdfFile": encode(package.document.content),
            "pdfFileName": package.document.filename,
            "signature": data.get("signature") or None,
            "companyInfo": {name: data.get(name) or "" for name in COMPANY_INFO_FIELDS},
        }
    )
    return payload
