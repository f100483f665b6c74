"""Anti-forgery tokens bound to server-side sessions.

The token is generated and stored here; clients only echo it back in the
``X-CSRF-Token`` header together with their session cookie.
"""

import hmac
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional

from accountform.core.config import CSRF_TOKEN_TTL_SECONDS
from accountform.core.exceptions import CsrfError

logger = logging.getLogger(__name__)


@dataclass
class CsrfSession:
    token: str
    expires_at: float


class CsrfManager:
    def __init__(
        self,
        ttl_seconds: int = CSRF_TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[str, CsrfSession] = {}

    def issue(self, session_id: Optional[str] = None) -> tuple[str, str]:
        """Create or rotate the token of a session.

        Returns:
            (session_id, token); a new session id is minted when the given
            one is unknown.
        """
        if not session_id or session_id not in self._sessions:
            session_id = secrets.token_urlsafe(32)
        token = secrets.token_hex(32)
        self._sessions[session_id] = CsrfSession(
            token=token, expires_at=self._clock() + self.ttl_seconds
        )
        self._purge_expired()
        return session_id, token

    def validate(self, session_id: Optional[str], token: Optional[str]) -> None:
        """Raise CsrfError unless ``token`` matches the session's live token."""
        if not session_id or not token:
            raise CsrfError("Missing session or CSRF token")

        session = self._sessions.get(session_id)
        if session is None:
            raise CsrfError("Unknown session")
        if self._clock() > session.expires_at:
            del self._sessions[session_id]
            raise CsrfError("CSRF token expired")
        if not hmac.compare_digest(session.token.encode(), token.encode()):
            logger.warning("CSRF token mismatch")
            raise CsrfError("CSRF token mismatch")

    def revoke(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    def _purge_expired(self) -> None:
        now = self._clock()
        for sid in [s for s, v in self._sessions.items() if now > v.expires_at]:
            del self._sessions[sid]
