"""Account form session endpoints.

Each session wraps one AccountFormController: field updates, step
navigation, company search and the final multipart submission.
"""

import logging
from typing import Optional

from accountform.controller import AccountFormController
from accountform.lookup.models import SearchResult
from api.file_validation import validate_upload_file
from api.schemas import (
    CompanySearchRequest,
    FieldsUpdateRequest,
    ProblemDetail,
    SearchKeyRequest,
)
from core.dependencies import enforce_rate_limit, get_form_sessions
from fastapi import APIRouter, Depends, File, Query, Request, UploadFile
from services.form_sessions import FormSessionRegistry

router = APIRouter(
    prefix="/form/sessions",
    tags=["account-form"],
    dependencies=[Depends(enforce_rate_limit)],
    responses={404: {"description": "Unknown session", "model": ProblemDetail}},
)
logger = logging.getLogger(__name__)


async def get_session(
    session_id: str, sessions: FormSessionRegistry = Depends(get_form_sessions)
) -> AccountFormController:
    return sessions.get(session_id)


@router.post("", status_code=201)
async def open_session(
    session_id: Optional[str] = Query(None, description="Resume this session's draft"),
    sessions: FormSessionRegistry = Depends(get_form_sessions),
):
    await sessions.evict_stale()
    controller = sessions.open(session_id)
    return {
        **controller.snapshot(),
        "draft": controller.draft_store.load(),
    }


@router.get("/{session_id}")
async def get_session_state(controller: AccountFormController = Depends(get_session)):
    return controller.snapshot()


@router.patch("/{session_id}/fields")
async def update_fields(
    body: FieldsUpdateRequest,
    controller: AccountFormController = Depends(get_session),
):
    controller.update_fields(body.fields)
    return controller.snapshot()


@router.post("/{session_id}/next")
async def next_step(controller: AccountFormController = Depends(get_session)):
    advanced = await controller.next_step()
    return {"advanced": advanced, **controller.snapshot()}


@router.post("/{session_id}/previous")
async def previous_step(controller: AccountFormController = Depends(get_session)):
    moved = await controller.previous_step()
    return {"advanced": moved, **controller.snapshot()}


@router.post("/{session_id}/jump/{step_id}")
async def jump_to_step(
    step_id: int, controller: AccountFormController = Depends(get_session)
):
    moved = await controller.jump_to(step_id)
    return {"advanced": moved, **controller.snapshot()}


@router.post("/{session_id}/reset")
async def reset_form(controller: AccountFormController = Depends(get_session)):
    controller.reset()
    return controller.snapshot()


@router.post("/{session_id}/copy-billing")
async def copy_billing(controller: AccountFormController = Depends(get_session)):
    controller.copy_billing_to_delivery()
    return controller.snapshot()


@router.post("/{session_id}/copy-purchasing")
async def copy_purchasing(controller: AccountFormController = Depends(get_session)):
    controller.copy_purchasing_to_accounting()
    return controller.snapshot()


@router.post("/{session_id}/search")
async def search_company(
    body: CompanySearchRequest,
    controller: AccountFormController = Depends(get_session),
):
    await controller.search_company(body.name, body.postalCode, immediate=body.immediate)
    return controller.search.to_dict()


@router.post("/{session_id}/search/key")
async def search_key(
    body: SearchKeyRequest,
    controller: AccountFormController = Depends(get_session),
):
    handled = controller.handle_search_key(body.key)
    return {"handled": handled, **controller.snapshot()}


@router.post("/{session_id}/company")
async def apply_company(
    result: SearchResult,
    controller: AccountFormController = Depends(get_session),
):
    controller.select_company(result)
    return controller.snapshot()


@router.post(
    "/{session_id}/submit",
    responses={
        409: {"description": "Already submitted", "model": ProblemDetail},
        413: {"description": "Document or payload too large", "model": ProblemDetail},
        422: {"description": "Form incomplete", "model": ProblemDetail},
        503: {"description": "Renderer unavailable", "model": ProblemDetail},
    },
)
async def submit_form(
    request: Request,
    legalDocument: Optional[UploadFile] = File(None, description="KBIS (PDF, PNG or JPEG)"),
    controller: AccountFormController = Depends(get_session),
):
    trace_id = getattr(request.state, "trace_id", None)
    attachment = None
    if legalDocument is not None:
        attachment = await validate_upload_file(legalDocument)
        controller.update_fields(
            {
                "legalDocument": {
                    "filename": attachment.filename,
                    "contentType": attachment.content_type,
                    "size": attachment.size,
                }
            }
        )

    logger.info(
        "[SUBMIT] session=%s attachment=%s",
        controller.session_id,
        attachment.filename if attachment else None,
        extra={"trace_id": trace_id, "session_id": controller.session_id},
    )
    await controller.submit(attachment)
    return controller.snapshot()
