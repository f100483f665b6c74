"""Registry of live account form sessions."""

import logging
import re
import time
import uuid
from typing import Callable, Optional

from accountform.controller import AccountFormController
from accountform.core.config import DRAFT_STORAGE_KEY
from accountform.core.exceptions import ResourceNotFoundError
from accountform.drafts.backends import KeyValueBackend
from accountform.drafts.store import DraftStore
from accountform.lookup.search import CompanyDirectory, CompanySearch
from accountform.submission.dispatch import SubmissionDispatcher
from accountform.submission.documents import DocumentSink
from accountform.submission.renderer import DocumentRenderer
from core.settings import FormSettings

logger = logging.getLogger(__name__)

_SESSION_ID = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


class FormSessionRegistry:
    """Builds one AccountFormController per session id.

    Args:
        backend: Draft storage shared by all sessions (one slot each)
        directory: Company registry client
        renderer: Recap document renderer
        dispatcher: Submission delivery
        settings: Form timing and retention settings
        document_sink: Local copies of rendered recaps
        report_errors: Log swallowed draft storage errors
        clock: Monotonic time in seconds, used for idle eviction
    """

    def __init__(
        self,
        *,
        backend: KeyValueBackend,
        directory: CompanyDirectory,
        renderer: DocumentRenderer,
        dispatcher: SubmissionDispatcher,
        settings: FormSettings,
        document_sink: Optional[DocumentSink] = None,
        report_errors: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._backend = backend
        self._directory = directory
        self._renderer = renderer
        self._dispatcher = dispatcher
        self._settings = settings
        self._document_sink = document_sink
        self._report_errors = report_errors
        self._clock = clock
        self._sessions: dict[str, AccountFormController] = {}
        self._last_seen: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def open(self, session_id: Optional[str] = None) -> AccountFormController:
        """Return the live session, or start one (resuming its draft if any)."""
        if session_id and session_id in self._sessions:
            self._last_seen[session_id] = self._clock()
            return self._sessions[session_id]

        if not session_id or not _SESSION_ID.match(session_id):
            session_id = uuid.uuid4().hex

        settings = self._settings
        controller = AccountFormController(
            draft_store=DraftStore(
                self._backend,
                key=f"{DRAFT_STORAGE_KEY}:{session_id}",
                debounce_seconds=settings.DRAFT_DEBOUNCE_SECONDS,
                retention_days=settings.DRAFT_RETENTION_DAYS,
                report_errors=self._report_errors,
            ),
            search=CompanySearch(
                self._directory,
                debounce_seconds=settings.SEARCH_DEBOUNCE_SECONDS,
                min_length=settings.SEARCH_MIN_LENGTH,
            ),
            renderer=self._renderer,
            dispatcher=self._dispatcher,
            document_sink=self._document_sink,
            transition_delay=settings.STEP_TRANSITION_SECONDS,
            session_id=session_id,
        )
        controller.resume()
        self._sessions[session_id] = controller
        self._last_seen[session_id] = self._clock()
        logger.info("Form session opened", extra={"session_id": session_id})
        return controller

    def get(self, session_id: str) -> AccountFormController:
        controller = self._sessions.get(session_id)
        if controller is None:
            raise ResourceNotFoundError("Form session", session_id)
        self._last_seen[session_id] = self._clock()
        return controller

    async def close(self, session_id: str) -> None:
        controller = self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        if controller is not None:
            await controller.close()

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.close(session_id)

    async def evict_stale(self) -> int:
        """Close confirmed sessions and sessions idle past the TTL.

        Pending auto-saves are written before a session is dropped, so an
        evicted unconfirmed form can be resumed from its draft.

        Returns:
            Number of sessions closed
        """
        cutoff = self._clock() - self._settings.SESSION_IDLE_TTL_SECONDS
        stale = [
            session_id
            for session_id, controller in self._sessions.items()
            if controller.confirmed or self._last_seen.get(session_id, 0) < cutoff
        ]
        for session_id in stale:
            await self.close(session_id)
        if stale:
            logger.info("Evicted %d form session(s)", len(stale))
        return len(stale)
