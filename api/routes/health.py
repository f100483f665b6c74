from api.schemas import HealthResponse
from core.dependencies import get_insee_client, get_submission_mailer
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

router = APIRouter()

SERVICE_NAME = "account-form-api"
SERVICE_VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(
    request: Request,
    insee=Depends(get_insee_client),
    mailer=Depends(get_submission_mailer),
):
    renderer = getattr(request.app.state, "renderer", None)
    pdf_rendering = bool(renderer is not None and renderer.available)

    return JSONResponse(
        status_code=200,
        content=HealthResponse(
            status="healthy",
            service=SERVICE_NAME,
            version=SERVICE_VERSION,
            insee_configured=bool(insee.api_key),
            email_configured=mailer.client.configured,
            pdf_rendering=pdf_rendering,
        ).model_dump(),
    )
