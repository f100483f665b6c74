"""Sends the two submission emails: one to the team, one to the client."""

import logging
import zlib
from typing import Any, Optional

from accountform.core.exceptions import ValidationError
from accountform.submission.compression import (
    decode_base64,
    decompress_if_gzip,
    encode_base64,
)
from api.schemas import SendRequest, SendResponse
from core.logging_utils import sanitize_email, sanitize_phone
from core.settings import email_settings
from services.email_client import EmailAttachment, EmailClient, EmailMessage
from services.email_templates import (
    CLIENT_SUBJECT,
    TEAM_SUBJECT,
    render_client_email,
    render_team_email,
)

logger = logging.getLogger(__name__)

NO_CC_LABEL = "aucun (email identique)"


def _decode_attachment(field: str, value: str) -> bytes:
    """Base64 then optional gzip, as produced by the submission pipeline."""
    try:
        return decompress_if_gzip(decode_base64(value))
    except (ValueError, EOFError, OSError, zlib.error) as e:
        raise ValidationError(
            message=f"Contenu de fichier invalide: {field}",
            field=field,
            details={"detail": str(e)},
        ) from e


def same_address(first: str, second: str) -> bool:
    return first.strip().lower() == second.strip().lower()


class SubmissionMailer:
    """In-process delivery of ``/send`` payloads.

    Also usable directly as the submission pipeline's dispatcher.
    """

    def __init__(
        self,
        client: EmailClient,
        from_email: Optional[str] = None,
        team_email: Optional[str] = None,
    ):
        self.client = client
        self.from_email = from_email or email_settings.FROM_EMAIL
        self.team_email = team_email or email_settings.TEAM_EMAIL

    async def dispatch(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self.send_submission(SendRequest.model_validate(payload))
        return response.model_dump()

    async def send_submission(self, request: SendRequest) -> SendResponse:
        attachments = [
            EmailAttachment(
                filename=request.pdfFileName,
                content=encode_base64(_decode_attachment("pdfFile", request.pdfFile)),
            )
        ]
        if request.kbisFile and request.kbisFileName:
            attachments.append(
                EmailAttachment(
                    filename=request.kbisFileName,
                    content=encode_base64(
                        _decode_attachment("kbisFile", request.kbisFile)
                    ),
                )
            )

        team_email_id = await self.client.send(
            EmailMessage(
                from_email=self.from_email,
                to=[self.team_email],
                subject=TEAM_SUBJECT.format(company=request.companyName),
                html=render_team_email(request),
                attachments=attachments,
            )
        )

        is_same = same_address(request.responsableAchatEmail, request.serviceComptaEmail)
        client_email_id = await self.client.send(
            EmailMessage(
                from_email=self.from_email,
                to=[request.responsableAchatEmail],
                cc=[] if is_same else [request.serviceComptaEmail],
                subject=CLIENT_SUBJECT,
                html=render_client_email(request),
            )
        )

        logger.info(
            "Submission emails sent to team and %s (phone %s)",
            sanitize_email(request.responsableAchatEmail),
            sanitize_phone(request.responsableAchatPhone),
        )
        return SendResponse(
            success=True,
            message="Emails envoyés avec succès",
            team_email_id=team_email_id,
            client_email_id=client_email_id,
            recipients={
                "to": request.responsableAchatEmail,
                "cc": NO_CC_LABEL if is_same else request.serviceComptaEmail,
            },
        )
