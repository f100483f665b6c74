"""CSRF token issuance."""

from accountform.core.config import CSRF_HEADER_NAME, SESSION_COOKIE_NAME
from api.schemas import CsrfTokenResponse
from core.csrf import CsrfManager
from core.dependencies import get_csrf_manager
from core.settings import security_settings
from fastapi import APIRouter, Depends, Request, Response

router = APIRouter()


@router.get("/csrf/token", response_model=CsrfTokenResponse, tags=["security"])
async def issue_csrf_token(
    request: Request,
    response: Response,
    manager: CsrfManager = Depends(get_csrf_manager),
):
    """Issue (or rotate) the token of the caller's session.

    The session id travels in an HttpOnly cookie; the token itself is only
    kept server-side and must be echoed in the ``X-CSRF-Token`` header.
    """
    session_id, token = manager.issue(request.cookies.get(SESSION_COOKIE_NAME))
    response.set_cookie(
        SESSION_COOKIE_NAME,
        session_id,
        max_age=manager.ttl_seconds,
        httponly=True,
        secure=security_settings.SESSION_COOKIE_SECURE,
        samesite="strict",
    )
    response.headers["Cache-Control"] = "no-store"
    return CsrfTokenResponse(
        token=token,
        header_name=CSRF_HEADER_NAME,
        expires_in=manager.ttl_seconds,
    )
