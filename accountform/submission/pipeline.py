"""Submission pipeline: validate, render, package, check sizes, dispatch.

Size ceilings are enforced before anything leaves the process. Delivery
failures are reported as a warning and never retried; the draft is cleared
whether or not delivery succeeded, and a local copy of the recap is always
kept.
"""

import asyncio
import gzip
import logging
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Mapping, Optional, Sequence

import httpx
from accountform.core.exceptions import BaseError, FormIncompleteError
from accountform.drafts.store import DraftStore
from accountform.notifications import Notifier
from accountform.steps.model import StepDefinition, all_required_fields
from accountform.submission.compression import Compressor
from accountform.submission.dispatch import SubmissionDispatcher
from accountform.submission.documents import DocumentSink
from accountform.submission.images import compress_image
from accountform.submission.package import (
    Attachment,
    LEGAL_DOCUMENT_FIELD,
    SizeLimits,
    SubmissionPackage,
    build_send_payload,
    check_attachment_size,
    check_document_size,
    check_payload_size,
    legal_document_error,
)
from accountform.submission.renderer import DocumentRenderer, recap_filename
from accountform.validation.validator import FieldValidator

logger = logging.getLogger(__name__)

DELIVERY_FAILED_TITLE = "Erreur lors de l'envoi de vos informations"
DELIVERY_FAILED_MESSAGE = (
    "Nous n'avons pas pu transmettre votre demande pour le moment. "
    "Votre récapitulatif PDF a bien été généré. Réessayez dans quelques "
    "instants ou contactez le support si cela se reproduit."
)
SUBMITTED_TITLE = "Formulaire soumis avec succès"
SUBMITTED_MESSAGE = "Le PDF a été téléchargé"


@dataclass
class SubmissionOutcome:
    document_name: str
    document: bytes
    delivered: bool
    document_path: Optional[str] = None
    delivery_error: Optional[str] = None
    response: Optional[dict[str, Any]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "document_name": self.document_name,
            "document_size": len(self.document),
            "document_path": self.document_path,
            "delivered": self.delivered,
            "delivery_error": self.delivery_error,
        }


class SubmissionPipeline:
    """Turns a complete form record into a delivered submission.

    Args:
        validator: Field validator applied across every step
        steps: Step definitions whose required fields must pass
        renderer: Recap document renderer
        dispatcher: Delivery collaborator
        draft_store: Draft slot cleared at the end of every submission
        notifier: Receives delivery outcome notifications
        document_sink: Keeps a local copy of the rendered recap
        limits: Size ceilings
        compressor: Payload compressor; None disables compression
        today: Returns the date used in the recap file name
    """

    def __init__(
        self,
        validator: FieldValidator,
        steps: Sequence[StepDefinition],
        renderer: DocumentRenderer,
        dispatcher: SubmissionDispatcher,
        draft_store: DraftStore,
        notifier: Notifier,
        *,
        document_sink: Optional[DocumentSink] = None,
        limits: SizeLimits = SizeLimits(),
        compressor: Optional[Compressor] = gzip.compress,
        today: Callable[[], date] = date.today,
    ):
        self.limits = limits
        self._validator = validator
        self._required_fields = all_required_fields(tuple(steps))
        self._renderer = renderer
        self._dispatcher = dispatcher
        self._draft_store = draft_store
        self._notifier = notifier
        self._document_sink = document_sink
        self._compressor = compressor
        self._today = today

    async def submit(
        self,
        form_data: Mapping[str, Any],
        attachment: Optional[Attachment] = None,
    ) -> SubmissionOutcome:
        """Run the full submission.

        Raises:
            FormIncompleteError: If any required field is invalid or the
                declared legal document was not uploaded
            PayloadTooLargeError: If a size ceiling is exceeded
            RendererUnavailableError: If this runtime cannot render documents
        """
        started = time.perf_counter()
        record = dict(form_data)

        field_errors = dict(
            self._validator.validate(record, self._required_fields).field_errors
        )
        if (
            LEGAL_DOCUMENT_FIELD in self._required_fields
            and LEGAL_DOCUMENT_FIELD not in field_errors
        ):
            message = legal_document_error(record[LEGAL_DOCUMENT_FIELD], attachment)
            if message:
                field_errors[LEGAL_DOCUMENT_FIELD] = message
        if field_errors:
            raise FormIncompleteError(field_errors)

        document_name = recap_filename(str(record.get("companyName", "")), self._today())
        document = await asyncio.to_thread(self._renderer.render, record)
        document_path = self._keep_local_copy(document_name, document)

        check_document_size(len(document), self.limits)
        package = SubmissionPackage(
            form_data=record,
            document=Attachment(document_name, document, "application/pdf"),
        )

        if attachment is not None:
            check_attachment_size(attachment, self.limits)
            content, filename, content_type = compress_image(
                attachment.content, attachment.filename, attachment.content_type
            )
            package.user_attachments.append(Attachment(filename, content, content_type))

        payload = build_send_payload(package, self._compressor)
        payload_size = check_payload_size(payload, self.limits)
        logger.info(
            "Submission package ready: %s, payload %d bytes",
            document_name,
            payload_size,
        )

        outcome = SubmissionOutcome(
            document_name=document_name,
            document=document,
            document_path=document_path,
            delivered=False,
        )
        try:
            outcome.response = await self._dispatcher.dispatch(payload)
            outcome.delivered = True
        except (BaseError, httpx.HTTPError) as e:
            outcome.delivery_error = str(e)
            logger.warning(
                "Submission delivery failed: %s",
                e,
                extra={"error_code": getattr(e, "error_code", type(e).__name__)},
            )
            self._notifier.notify("warning", DELIVERY_FAILED_TITLE, DELIVERY_FAILED_MESSAGE)
        else:
            self._notifier.notify("success", SUBMITTED_TITLE, SUBMITTED_MESSAGE)

        self._draft_store.clear()
        logger.info(
            "Submission finished (delivered=%s)",
            outcome.delivered,
            extra={"duration_ms": int((time.perf_counter() - started) * 1000)},
        )
        return outcome

    def _keep_local_copy(self, filename: str, content: bytes) -> Optional[str]:
        if self._document_sink is None:
            return None
        try:
            return self._document_sink.save(filename, content)
        except OSError as e:
            logger.error("Could not keep local copy of %s: %s", filename, e)
            return None
