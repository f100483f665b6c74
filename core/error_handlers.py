import logging

from accountform.core.exceptions import BaseError, RateLimitError
from api.schemas import ProblemDetail
from core.utils import ensure_trace_id
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic_core import ValidationError as PydanticCoreValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def _problem_response(
    problem: ProblemDetail, trace_id: str, extra_headers: dict | None = None
) -> JSONResponse:
    headers = {"X-Trace-ID": trace_id}
    if extra_headers:
        headers.update(extra_headers)
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        headers=headers,
    )


def _field_errors(errors: list) -> dict[str, str]:
    field_errors = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", []) if part not in ("body", "query")]
        field = ".".join(loc) or "request"
        field_errors.setdefault(field, error.get("msg", "Invalid value"))
    return field_errors


async def handle_validation_error(request: Request, exc: RequestValidationError):
    """Handler for FastAPI/Pydantic request validation errors."""
    trace_id = ensure_trace_id(request)

    first_error = exc.errors()[0] if exc.errors() else {}
    loc = first_error.get("loc", [])
    field = ".".join(
        str(loc_part) for loc_part in loc if loc_part not in ("body", "query")
    )
    msg = first_error.get("msg", "Validation failed")
    detail = f"{field}: {msg}" if field else msg
    error_type = first_error.get("type", "")

    logger.warning(
        f"Validation error: {detail}",
        extra={"trace_id": trace_id, "field": field, "error_type": error_type},
    )

    problem = ProblemDetail(
        type="/errors/VALIDATION_ERROR",
        title="Request validation failed",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=detail,
        instance=request.url.path,
        code="VALIDATION_ERROR",
        category="client_error",
        retryable=False,
        trace_id=trace_id,
        field_errors=_field_errors(exc.errors()),
    )
    return _problem_response(problem, trace_id)


async def handle_pydantic_error(request: Request, exc: PydanticCoreValidationError):
    """Handler for Pydantic errors raised outside request parsing."""
    trace_id = ensure_trace_id(request)
    errors = exc.errors()

    logger.warning(
        "Pydantic validation failed",
        extra={"trace_id": trace_id, "error_type": "pydantic"},
    )

    first_error = errors[0] if errors else {}
    problem = ProblemDetail(
        type="/errors/VALIDATION_ERROR",
        title="Request validation failed",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=first_error.get("msg", "Validation failed"),
        code="VALIDATION_ERROR",
        category="client_error",
        retryable=False,
        instance=request.url.path,
        trace_id=trace_id,
        field_errors=_field_errors(errors),
    )
    return _problem_response(problem, trace_id)


async def handle_app_error(request: Request, exc: BaseError):
    """Handler for application-specific BaseErrors."""
    trace_id = ensure_trace_id(request)
    log_extra = {
        "trace_id": trace_id,
        "error_code": exc.error_code,
        "http_status": exc.http_status,
    }

    if exc.http_status >= 500:
        logger.error("Application error occurred", extra=log_extra, exc_info=True)
    else:
        logger.warning(f"Client error: {exc.message}", extra=log_extra)

    problem = ProblemDetail(
        **exc.to_dict(),
        instance=request.url.path,
        trace_id=trace_id,
        field_errors=exc.details.get("field_errors"),
    )

    headers = None
    if isinstance(exc, RateLimitError):
        headers = {"Retry-After": str(exc.details.get("retry_after", 60))}
    return _problem_response(problem, trace_id, headers)


async def handle_http_error(request: Request, exc: StarletteHTTPException):
    """Handler for standard HTTP exceptions (404, 405, 503...)."""
    trace_id = ensure_trace_id(request)

    logger.warning(
        "HTTP exception",
        extra={"trace_id": trace_id, "http_status": exc.status_code},
    )

    problem = ProblemDetail(
        type=f"/errors/HTTP_{exc.status_code}",
        title=str(exc.detail),
        status=exc.status_code,
        detail=str(exc.detail),
        code=f"HTTP_{exc.status_code}",
        category="server_error" if exc.status_code >= 500 else "client_error",
        retryable=False,
        instance=request.url.path,
        trace_id=trace_id,
    )
    return _problem_response(problem, trace_id)


async def handle_unknown_error(request: Request, exc: Exception):
    """Handler for unexpected 500 errors."""
    trace_id = ensure_trace_id(request)

    logger.exception(
        "Unexpected error occurred",
        extra={"trace_id": trace_id, "error_type": type(exc).__name__},
    )

    problem = ProblemDetail(
        type="/errors/INTERNAL_SERVER_ERROR",
        title="Internal server error",
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred. Please contact support with trace ID.",
        code="INTERNAL_SERVER_ERROR",
        category="server_error",
        retryable=False,
        instance=request.url.path,
        trace_id=trace_id,
    )
    return _problem_response(problem, trace_id)
