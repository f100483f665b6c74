"""Company records with encrypted identifiers, behind CSRF protection."""

import logging

from accountform.core.exceptions import ServerError
from api.schemas import ProblemDetail, SecureCompanyRequest, SecureCompanyResponse
from core.dependencies import enforce_rate_limit, get_company_repository, require_csrf
from fastapi import APIRouter, Depends, Query, Request
from services.company_records import SecureCompanyRepository

router = APIRouter(
    dependencies=[Depends(enforce_rate_limit)],
    responses={403: {"description": "CSRF validation failed", "model": ProblemDetail}},
)
logger = logging.getLogger(__name__)


@router.post(
    "/secure/company",
    response_model=SecureCompanyResponse,
    tags=["security"],
    responses={422: {"description": "Validation Error", "model": ProblemDetail}},
)
async def create_company_record(
    request: Request,
    body: SecureCompanyRequest,
    session_id: str = Depends(require_csrf),
    repository: SecureCompanyRepository = Depends(get_company_repository),
):
    record = repository.create(body.model_dump())
    logger.info(
        "Secure company record created",
        extra={"trace_id": getattr(request.state, "trace_id", None)},
    )
    return SecureCompanyResponse(
        id=record["id"],
        companyName=record["companyName"],
        city=record["city"],
        encrypted_fields=repository.encrypted_fields(record),
        created_at=record["created_at"],
    )


@router.get("/secure/company", tags=["security"])
async def get_company_record(
    id: str = Query(..., description="Record id returned on creation"),
    session_id: str = Depends(require_csrf),
    repository: SecureCompanyRepository = Depends(get_company_repository),
):
    try:
        return repository.get(id)
    except ValueError as e:
        raise ServerError(
            message="Stored record could not be decrypted",
            error_code="DECRYPTION_FAILED",
        ) from e
