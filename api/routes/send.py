"""Submission email endpoint."""

import logging

from api.schemas import ProblemDetail, SendRequest, SendResponse
from core.dependencies import enforce_rate_limit, get_submission_mailer
from core.logging_utils import sanitize_email
from fastapi import APIRouter, Depends, Request
from services.submission_mailer import SubmissionMailer

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/send",
    response_model=SendResponse,
    tags=["submission"],
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        422: {"description": "Validation Error", "model": ProblemDetail},
        502: {"description": "Email provider error", "model": ProblemDetail},
    },
)
async def send_submission(
    request: Request,
    body: SendRequest,
    mailer: SubmissionMailer = Depends(get_submission_mailer),
):
    trace_id = getattr(request.state, "trace_id", None)
    logger.info(
        "[SEND] company=%r purchasing=%s accounting=%s kbis=%s",
        body.companyName,
        sanitize_email(body.responsableAchatEmail),
        sanitize_email(body.serviceComptaEmail),
        bool(body.kbisFile),
        extra={"trace_id": trace_id},
    )
    return await mailer.send_submission(body)
