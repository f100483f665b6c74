"""Account form controller.

Owns one form session: the field values, the step engine, the company
search, the draft slot and the notifier. It is the only place that copies a
selected company into the form and the owner of the confirmation flag.
"""

import logging
from typing import Any, Mapping, Optional, Sequence

from accountform.core.config import STEP_TRANSITION_SECONDS
from accountform.core.exceptions import BaseError, ClientError, FormIncompleteError
from accountform.drafts.store import SAVED_AT_FIELD, DraftStore, has_significant_data
from accountform.lookup.mappers import result_to_form_fields
from accountform.lookup.models import SearchResult
from accountform.lookup.search import CompanySearch
from accountform.notifications import CollectingNotifier
from accountform.steps.engine import StepEngine
from accountform.steps.model import ACCOUNT_FORM_STEPS, StepDefinition
from accountform.submission.dispatch import SubmissionDispatcher
from accountform.submission.documents import DocumentSink
from accountform.submission.package import Attachment
from accountform.submission.pipeline import SubmissionOutcome, SubmissionPipeline
from accountform.submission.renderer import DocumentRenderer
from accountform.validation.rules import build_account_form_validator
from accountform.validation.validator import FieldValidator, ValidationResult

logger = logging.getLogger(__name__)

BILLING_TO_DELIVERY = (
    ("address", "deliveryAddress"),
    ("postalCode", "deliveryPostalCode"),
    ("city", "deliveryCity"),
)
PURCHASING_TO_ACCOUNTING = (
    ("responsableAchatEmail", "serviceComptaEmail"),
    ("responsableAchatPhone", "serviceComptaPhone"),
)


class AccountFormController:
    def __init__(
        self,
        *,
        draft_store: DraftStore,
        search: CompanySearch,
        renderer: DocumentRenderer,
        dispatcher: SubmissionDispatcher,
        document_sink: Optional[DocumentSink] = None,
        validator: Optional[FieldValidator] = None,
        steps: Sequence[StepDefinition] = ACCOUNT_FORM_STEPS,
        transition_delay: float = STEP_TRANSITION_SECONDS,
        notifier: Optional[CollectingNotifier] = None,
        session_id: Optional[str] = None,
    ):
        self.session_id = session_id
        self.data: dict[str, Any] = {}
        self.live_errors: dict[str, str] = {}
        self.confirmed = False
        self.last_outcome: Optional[SubmissionOutcome] = None
        self.scrolled_to: Optional[int] = None
        self.validator = validator or build_account_form_validator()
        self.notifier = notifier or CollectingNotifier()
        self.draft_store = draft_store
        self.search = search
        self.engine = StepEngine(
            steps,
            self.validator,
            lambda: self.data,
            transition_delay=transition_delay,
            on_step_change=self._scroll_to_step,
        )
        self.pipeline = SubmissionPipeline(
            self.validator,
            steps,
            renderer,
            dispatcher,
            draft_store,
            self.notifier,
            document_sink=document_sink,
        )

    def resume(self) -> Optional[dict[str, Any]]:
        """Load a saved draft into the form, if one is still valid."""
        draft = self.draft_store.load()
        if draft is None:
            return None
        self.data = {k: v for k, v in draft.items() if k != SAVED_AT_FIELD}
        logger.info(
            "Draft resumed with %d field(s)",
            len(self.data),
            extra={"session_id": self.session_id},
        )
        return draft

    def update_fields(self, values: Mapping[str, Any]) -> ValidationResult:
        """Merge values, validate them live and schedule the auto-save."""
        self._ensure_editable()
        self.data.update(values)
        result = self.validator.validate(self.data, values.keys())
        for name in values:
            if name in result.field_errors:
                self.live_errors[name] = result.field_errors[name]
            else:
                self.live_errors.pop(name, None)

        if has_significant_data(self.data):
            self.draft_store.save(self.data)
        return result

    def select_company(self, result: SearchResult) -> ValidationResult:
        """Mark ``result`` as selected and copy it into the company fields."""
        self._ensure_editable()
        self.search.select(result)
        return self.update_fields(result_to_form_fields(result))

    def handle_search_key(self, key: str) -> bool:
        """Keyboard navigation; Enter applies the highlighted result to the form."""
        self._ensure_editable()
        search = self.search
        if key == "Enter" and search.show_results:
            if not 0 <= search.selected_index < len(search.results):
                return False
            self.select_company(search.results[search.selected_index])
            return True
        return search.handle_key(key)

    def copy_billing_to_delivery(self) -> ValidationResult:
        return self.update_fields(
            {target: self.data.get(source, "") for source, target in BILLING_TO_DELIVERY}
        )

    def copy_purchasing_to_accounting(self) -> ValidationResult:
        return self.update_fields(
            {
                target: self.data.get(source, "")
                for source, target in PURCHASING_TO_ACCOUNTING
            }
        )

    async def search_company(
        self, name: str, postal_code: Optional[str] = None, *, immediate: bool = False
    ) -> None:
        """Debounced company lookup, or an immediate one when ``immediate``."""
        self._ensure_editable()
        if immediate:
            await self.search.search_now(name, postal_code)
        else:
            self.search.search(name, postal_code)

    async def next_step(self) -> bool:
        self._ensure_editable()
        return await self.engine.request_next()

    async def previous_step(self) -> bool:
        self._ensure_editable()
        return await self.engine.request_previous()

    async def jump_to(self, step_id: int) -> bool:
        self._ensure_editable()
        return await self.engine.request_jump(step_id)

    def reset(self) -> None:
        """Forget everything; callers confirm with the user beforehand."""
        self.engine.reset()
        self.search.clear()
        self.draft_store.clear()
        self.data = {}
        self.live_errors = {}
        self.confirmed = False
        self.last_outcome = None
        logger.info("Form reset", extra={"session_id": self.session_id})

    async def submit(self, attachment: Optional[Attachment] = None) -> SubmissionOutcome:
        self._ensure_editable()
        try:
            outcome = await self.pipeline.submit(self.data, attachment)
        except FormIncompleteError as e:
            self.engine.state.step_submit_attempted = True
            self.engine.field_errors = dict(e.field_errors)
            raise
        except BaseError as e:
            self.notifier.notify("error", "Erreur lors de la soumission", e.message)
            raise

        self.last_outcome = outcome
        self.confirmed = True
        logger.info(
            "Form confirmed (delivered=%s)",
            outcome.delivered,
            extra={"session_id": self.session_id},
        )
        return outcome

    async def close(self) -> None:
        """Write any pending auto-save before the session goes away."""
        await self.draft_store.flush()

    def snapshot(self) -> dict[str, Any]:
        engine = self.engine
        return {
            "session_id": self.session_id,
            "state": engine.state.to_dict(),
            "current_step": {
                "id": engine.current_step.id,
                "title": engine.current_step.title,
            },
            "progress": engine.progress,
            "is_last_step": engine.is_last_step,
            "field_errors": dict(engine.field_errors),
            "live_errors": dict(self.live_errors),
            "data": dict(self.data),
            "search": self.search.to_dict(),
            "confirmed": self.confirmed,
            "outcome": self.last_outcome.to_dict() if self.last_outcome else None,
            "notifications": [n.to_dict() for n in self.notifier.drain()],
        }

    def _ensure_editable(self) -> None:
        # a confirmed form only accepts reset
        if self.confirmed:
            raise ClientError(
                message="Ce formulaire a déjà été soumis",
                error_code="ALREADY_SUBMITTED",
                http_status=409,
            )

    def _scroll_to_step(self, step_id: int) -> None:
        self.scrolled_to = step_id
        logger.debug(
            "Scroll to step %d", step_id, extra={"session_id": self.session_id, "step": step_id}
        )
