"""FastAPI dependency injection functions.

Every collaborator lives on ``app.state`` (see core.lifespan) and is
resolved here, so tests can swap any of them.
"""

import time
from typing import Any, Optional

from accountform.core.config import CSRF_HEADER_NAME, SESSION_COOKIE_NAME
from accountform.core.exceptions import RateLimitError
from accountform.lookup.insee_client import InseeClient
from core.csrf import CsrfManager
from core.rate_limit import RateLimitStore
from core.settings import security_settings
from core.utils import client_identifier
from fastapi import Header, HTTPException, Request, status
from services.company_records import SecureCompanyRepository
from services.form_sessions import FormSessionRegistry
from services.submission_mailer import SubmissionMailer


def _state(request: Request, name: str, label: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} unavailable",
        )
    return value


async def get_insee_client(request: Request) -> InseeClient:
    """Get INSEE client from app state.

    Raises:
        HTTPException: 503 if the client is unavailable
    """
    return _state(request, "insee_client", "Company lookup")


async def get_submission_mailer(request: Request) -> SubmissionMailer:
    return _state(request, "submission_mailer", "Email delivery")


async def get_csrf_manager(request: Request) -> CsrfManager:
    return _state(request, "csrf_manager", "CSRF protection")


async def get_company_repository(request: Request) -> SecureCompanyRepository:
    return _state(request, "company_repository", "Company records")


async def get_form_sessions(request: Request) -> FormSessionRegistry:
    return _state(request, "form_sessions", "Form sessions")


async def enforce_rate_limit(request: Request) -> None:
    """Count the request against the client's window.

    Raises:
        RateLimitError: 429 when the window's budget is exhausted
    """
    if not security_settings.SECURITY_ENABLED:
        return

    store: Optional[RateLimitStore] = getattr(request.app.state, "rate_limit_store", None)
    if store is None:
        return

    decision = store.check(client_identifier(request))
    request.state.rate_limit = decision
    if not decision.allowed:
        raise RateLimitError(retry_after=decision.retry_after(time.time()))


async def require_csrf(
    request: Request,
    csrf_token: Optional[str] = Header(None, alias=CSRF_HEADER_NAME),
) -> str:
    """Validate the anti-forgery header against the session cookie.

    Returns:
        The session id the token belongs to.
    """
    manager = await get_csrf_manager(request)
    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    manager.validate(session_id, csrf_token)
    return session_id
