import logging
from typing import Optional

import httpx
from accountform.core.exceptions import ExternalServiceError
from core.logging_utils import sanitize_email
from core.settings import email_settings
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

SERVICE_NAME = "email"


class EmailAttachment(BaseModel):
    filename: str
    content: str = Field(..., description="Base64-encoded file content")


class EmailMessage(BaseModel):
    from_email: str
    to: list[str]
    subject: str
    html: str
    cc: list[str] = Field(default_factory=list)
    attachments: list[EmailAttachment] = Field(default_factory=list)

    def to_provider_payload(self) -> dict:
        payload = {
            "from": self.from_email,
            "to": self.to,
            "subject": self.subject,
            "html": self.html,
        }
        if self.cc:
            payload["cc"] = self.cc
        if self.attachments:
            payload["attachments"] = [a.model_dump() for a in self.attachments]
        return payload


class EmailClient:
    """Resend REST API client with centralized Pydantic settings."""

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url or email_settings.RESEND_API_URL
        self.api_key = (
            api_key
            if api_key is not None
            else email_settings.RESEND_API_KEY.get_secret_value()
        )
        self.timeout = timeout or email_settings.EMAIL_TIMEOUT_SECONDS
        self._transport = transport

        logger.info(f"EmailClient initialized with URL: {self.api_url}, timeout: {self.timeout}s")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def send(self, message: EmailMessage) -> Optional[str]:
        """Send one email.

        Returns:
            Provider message id, if the provider returned one.

        Raises:
            ExternalServiceError: On missing credentials, HTTP errors or
                connection failures
        """
        if not self.api_key:
            raise ExternalServiceError(
                SERVICE_NAME, "auth", details={"detail": "RESEND_API_KEY missing"}
            )

        recipients = ", ".join(sanitize_email(r) for r in message.to)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                logger.info(
                    f"Sending email to {recipients}: {message.subject}",
                    extra={"service": SERVICE_NAME},
                )
                response = await client.post(
                    self.api_url,
                    json=message.to_provider_payload(),
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                        "Accept": "application/json",
                    },
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error(
                f"Email HTTP error: {status} - {e.response.text[:200]}",
                extra={"service": SERVICE_NAME, "http_status": status},
            )
            if status in (401, 403):
                error_type = "auth"
            elif status == 429:
                error_type = "rate_limited"
            else:
                error_type = "error"
            raise ExternalServiceError(
                SERVICE_NAME, error_type, details={"upstream_status": status}
            ) from e
        except httpx.TimeoutException as e:
            logger.error("Email request timed out", extra={"service": SERVICE_NAME})
            raise ExternalServiceError(SERVICE_NAME, "timeout") from e
        except httpx.TransportError as e:
            logger.error(f"Email connection failed: {str(e)}", extra={"service": SERVICE_NAME})
            raise ExternalServiceError(
                SERVICE_NAME, "network", details={"detail": str(e)}
            ) from e

        try:
            body = response.json()
        except ValueError:
            body = None
        message_id = body.get("id") if isinstance(body, dict) else None
        logger.info(
            f"Email delivered successfully. Id: {message_id}",
            extra={"service": SERVICE_NAME, "http_status": response.status_code},
        )
        return message_id


def create_email_client_from_env() -> EmailClient:
    """Factory function to create EmailClient from centralized settings."""
    return EmailClient(
        api_url=email_settings.RESEND_API_URL,
        api_key=email_settings.RESEND_API_KEY.get_secret_value(),
        timeout=email_settings.EMAIL_TIMEOUT_SECONDS,
    )
