"""Delivery of a submission payload."""

import logging
from typing import Any, Optional, Protocol

import httpx
from accountform.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

SERVICE_NAME = "send_api"


class SubmissionDispatcher(Protocol):
    async def dispatch(self, payload: dict[str, Any]) -> dict[str, Any]: ...


class HttpSendDispatcher:
    """Posts the payload to a ``/send`` endpoint. No retries."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = f"{base_url.rstrip('/')}/send"
        self.timeout = timeout
        self._transport = transport

    async def dispatch(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.url, json=payload)
        except httpx.TimeoutException as e:
            raise ExternalServiceError(SERVICE_NAME, "timeout") from e
        except httpx.TransportError as e:
            raise ExternalServiceError(
                SERVICE_NAME, "network", details={"detail": str(e)}
            ) from e

        if response.is_error:
            logger.error(
                "Send endpoint returned %d",
                response.status_code,
                extra={"service": SERVICE_NAME, "http_status": response.status_code},
            )
            raise ExternalServiceError(
                SERVICE_NAME, "error", details={"upstream_status": response.status_code}
            )
        try:
            body = response.json()
        except ValueError as e:
            raise ExternalServiceError(
                SERVICE_NAME, "error", details={"detail": "Invalid JSON body"}
            ) from e
        if not isinstance(body, dict):
            raise ExternalServiceError(
                SERVICE_NAME, "error", details={"detail": "Unexpected response shape"}
            )
        return body
