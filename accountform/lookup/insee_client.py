"""Async client for the INSEE Sirene establishment search."""

import asyncio
import logging
import re
import time
from typing import Any, Optional

import httpx
from accountform.core.config import (
    INSEE_API_BASE,
    INSEE_API_KEY_HEADER,
    INSEE_RESULT_LIMIT,
    LOOKUP_TIMEOUT_SECONDS,
)
from accountform.core.exceptions import ExternalServiceError, ValidationError
from accountform.lookup.mappers import map_search_response
from accountform.lookup.models import SearchResult
from core.settings import insee_settings

logger = logging.getLogger(__name__)

SERVICE_NAME = "insee"

_SIREN = re.compile(r"^\d{9}$")


def build_name_query(name: str, postal_code: Optional[str] = None) -> str:
    """Sirene ``q`` parameter for a name search.

    Example:
        >>> build_name_query("  acme   industrie ", "75001")
        'denominationUniteLegale:ACME INDUSTRIE AND codePostalEtablissement:75001'
    """
    query = f"denominationUniteLegale:{' '.join(name.upper().split())}"
    if postal_code and len(postal_code.strip()) == 5:
        query += f" AND codePostalEtablissement:{postal_code.strip()}"
    return query


class InseeClient:
    """Sirene v3.11 client.

    A fresh ``httpx.AsyncClient`` is opened per call. Failures are raised as
    ExternalServiceError with ``error_type`` one of auth, rate_limited,
    timeout, network or error.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else ""
        self.base_url = (base_url or INSEE_API_BASE).rstrip("/")
        self.timeout = timeout or LOOKUP_TIMEOUT_SECONDS
        self._transport = transport

    async def search_by_name(
        self, name: str, postal_code: Optional[str] = None
    ) -> list[SearchResult]:
        if not name or len(name.strip()) < 2:
            raise ValidationError(
                message="Le nom doit contenir au moins 2 caractères",
                field="name",
            )
        params = {
            "q": build_name_query(name, postal_code),
            "nombre": str(INSEE_RESULT_LIMIT),
        }
        return await self._search(params)

    async def search_by_siren(self, siren: str) -> list[SearchResult]:
        siren = re.sub(r"\s+", "", siren or "")
        if not _SIREN.match(siren):
            raise ValidationError(
                message="Le SIREN doit contenir exactement 9 chiffres",
                field="siren",
            )
        return await self._search({"q": f"siren:{siren}", "nombre": "1"})

    async def _search(self, params: dict[str, str]) -> list[SearchResult]:
        if not self.api_key:
            logger.error("INSEE API key is not configured")
            raise ExternalServiceError(
                SERVICE_NAME, "auth", details={"detail": "API key missing"}
            )

        started = time.perf_counter()
        try:
            payload = await asyncio.wait_for(self._fetch(params), self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning(
                "INSEE request timed out after %.1fs",
                self.timeout,
                extra={"service": SERVICE_NAME, "error_type": "timeout"},
            )
            raise ExternalServiceError(SERVICE_NAME, "timeout") from e
        except httpx.TransportError as e:
            logger.warning(
                "INSEE unreachable: %s",
                e,
                extra={"service": SERVICE_NAME, "error_type": "network"},
            )
            raise ExternalServiceError(
                SERVICE_NAME, "network", details={"detail": str(e)}
            ) from e

        results = map_search_response(payload) if payload else []
        logger.info(
            "INSEE search returned %d result(s)",
            len(results),
            extra={
                "service": SERVICE_NAME,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return results

    async def _fetch(self, params: dict[str, str]) -> Optional[dict[str, Any]]:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            response = await client.get(
                f"{self.base_url}/siret",
                params=params,
                headers={
                    INSEE_API_KEY_HEADER: self.api_key,
                    "Accept": "application/json",
                },
            )

        if response.status_code == 404:
            return None
        if response.status_code in (401, 403):
            raise ExternalServiceError(
                SERVICE_NAME, "auth", details={"upstream_status": response.status_code}
            )
        if response.status_code == 429:
            raise ExternalServiceError(
                SERVICE_NAME,
                "rate_limited",
                details={"upstream_status": response.status_code},
            )
        if response.is_error:
            logger.error(
                "INSEE error %d: %s",
                response.status_code,
                response.text[:200],
                extra={"service": SERVICE_NAME, "http_status": response.status_code},
            )
            raise ExternalServiceError(
                SERVICE_NAME, "error", details={"upstream_status": response.status_code}
            )

        try:
            payload = response.json()
        except ValueError as e:
            logger.error(
                "INSEE returned a non-JSON body (status %d)",
                response.status_code,
                extra={"service": SERVICE_NAME, "http_status": response.status_code},
            )
            raise ExternalServiceError(
                SERVICE_NAME, "error", details={"detail": "Invalid JSON body"}
            ) from e

        if not isinstance(payload, dict) or not isinstance(
            payload.get("etablissements", []), list
        ):
            logger.error(
                "INSEE response has an unexpected shape",
                extra={"service": SERVICE_NAME},
            )
            raise ExternalServiceError(
                SERVICE_NAME, "error", details={"detail": "Unexpected response shape"}
            )
        return payload


def create_insee_client_from_env() -> InseeClient:
    """Factory function to create InseeClient from centralized settings."""
    return InseeClient(
        api_key=insee_settings.INSEE_API_KEY.get_secret_value(),
        base_url=insee_settings.INSEE_API_BASE,
        timeout=insee_settings.INSEE_TIMEOUT_SECONDS,
    )
