"""Client for this service's own ``GET /search`` endpoint.

Used by front-ends that do not hold INSEE credentials. Problem Details
returned by the endpoint are turned back into ExternalServiceError so that
CompanySearch can classify them exactly like direct INSEE failures.
"""

import logging
from typing import Optional

import httpx
from accountform.core.config import LOOKUP_TIMEOUT_SECONDS
from accountform.core.exceptions import ExternalServiceError
from accountform.lookup.models import SearchResult

logger = logging.getLogger(__name__)

SERVICE_NAME = "search_api"

_KIND_BY_CODE_SUFFIX = (
    ("_AUTH", "auth"),
    ("_RATE_LIMITED", "rate_limited"),
    ("_TIMEOUT", "timeout"),
    ("_NETWORK", "network"),
)

_KIND_BY_STATUS = {
    401: "auth",
    403: "auth",
    429: "rate_limited",
    408: "timeout",
    504: "timeout",
}


def classify_problem(status_code: int, problem: Optional[dict]) -> str:
    """Error kind for a non-2xx ``/search`` response."""
    code = str((problem or {}).get("code") or "")
    if code == "RATE_LIMIT_EXCEEDED":
        return "rate_limited"
    for suffix, kind in _KIND_BY_CODE_SUFFIX:
        if code.endswith(suffix):
            return kind
    return _KIND_BY_STATUS.get(status_code, "error")


class SearchApiClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = LOOKUP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def search_by_name(
        self, name: str, postal_code: Optional[str] = None
    ) -> list[SearchResult]:
        params = {"name": name}
        if postal_code:
            params["postalCode"] = postal_code

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get(f"{self.base_url}/search", params=params)
        except httpx.TimeoutException as e:
            raise ExternalServiceError(SERVICE_NAME, "timeout") from e
        except httpx.TransportError as e:
            raise ExternalServiceError(
                SERVICE_NAME, "network", details={"detail": str(e)}
            ) from e

        if response.is_error:
            try:
                problem = response.json()
            except ValueError:
                problem = None
            kind = classify_problem(response.status_code, problem)
            logger.warning(
                "Search API returned %d (%s)",
                response.status_code,
                kind,
                extra={"service": SERVICE_NAME, "http_status": response.status_code},
            )
            raise ExternalServiceError(
                SERVICE_NAME, kind, details={"upstream_status": response.status_code}
            )

        try:
            body = response.json()
            items = body.get("results", []) if isinstance(body, dict) else None
            if not isinstance(items, list):
                raise ValueError("results is not a list")
            return [SearchResult.model_validate(item) for item in items]
        except ValueError as e:
            logger.warning(
                "Search API returned an unreadable body: %s",
                e,
                extra={"service": SERVICE_NAME, "http_status": response.status_code},
            )
            raise ExternalServiceError(
                SERVICE_NAME, "error", details={"detail": "Invalid response body"}
            ) from e
