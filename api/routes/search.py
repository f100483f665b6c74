"""Company registry search endpoints."""

import logging
import re
from typing import Optional

from accountform.core.exceptions import ValidationError
from accountform.lookup.insee_client import InseeClient
from api.schemas import ProblemDetail, SearchResponse
from core.dependencies import enforce_rate_limit, get_insee_client
from fastapi import APIRouter, Depends, Query, Request

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])
logger = logging.getLogger(__name__)

_POSTAL_CODE = re.compile(r"^\d{5}$")

ERROR_RESPONSES = {
    422: {"description": "Invalid query", "model": ProblemDetail},
    429: {"description": "Rate limited", "model": ProblemDetail},
    502: {"description": "Registry error or authentication failure", "model": ProblemDetail},
    503: {"description": "Registry unreachable", "model": ProblemDetail},
    504: {"description": "Registry timeout", "model": ProblemDetail},
}


@router.get(
    "/search",
    response_model=SearchResponse,
    tags=["company-search"],
    responses=ERROR_RESPONSES,
)
async def search_companies(
    request: Request,
    name: str = Query(..., description="Company name, at least 2 characters"),
    postalCode: Optional[str] = Query(None, description="Optional 5-digit postal code"),
    insee: InseeClient = Depends(get_insee_client),
):
    trace_id = getattr(request.state, "trace_id", None)
    postal = (postalCode or "").strip() or None
    if postal and not _POSTAL_CODE.match(postal):
        raise ValidationError(
            message="Le code postal doit contenir 5 chiffres",
            field="postalCode",
        )

    logger.info(
        "[SEARCH] name=%r postal_code=%s",
        name.strip()[:50],
        postal,
        extra={"trace_id": trace_id},
    )
    results = await insee.search_by_name(name, postal)
    return SearchResponse(results=results)


@router.get(
    "/search/siren/{siren}",
    response_model=SearchResponse,
    tags=["company-search"],
    responses=ERROR_RESPONSES,
)
async def search_by_siren(
    request: Request,
    siren: str,
    insee: InseeClient = Depends(get_insee_client),
):
    results = await insee.search_by_siren(siren)
    return SearchResponse(results=results)
