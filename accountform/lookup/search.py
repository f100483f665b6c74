"""Debounced company search with stale-response discard and keyboard selection.

CompanySearch holds the state an autocomplete widget renders: the result
list, a loading flag, an error message and the highlighted index. It never
writes into the form; callers copy the selected result themselves.
"""

import logging
import re
from enum import Enum
from typing import Optional, Protocol

import httpx
from accountform.core.config import SEARCH_DEBOUNCE_SECONDS, SEARCH_MIN_LENGTH
from accountform.core.exceptions import BaseError, ExternalServiceError
from accountform.core.scheduling import DebouncedTask
from accountform.lookup.models import SearchResult

logger = logging.getLogger(__name__)

_POSTAL_CODE = re.compile(r"^\d{5}$")


class CompanyDirectory(Protocol):
    async def search_by_name(
        self, name: str, postal_code: Optional[str] = None
    ) -> list[SearchResult]: ...


class LookupErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NETWORK = "network"
    GENERIC = "error"


ERROR_MESSAGES = {
    LookupErrorKind.AUTH: (
        "Problème d'authentification avec l'API INSEE. Veuillez contacter le support."
    ),
    LookupErrorKind.RATE_LIMITED: (
        "Trop de requêtes. Veuillez patienter quelques instants avant de réessayer."
    ),
    LookupErrorKind.TIMEOUT: "Délai d'attente dépassé. Veuillez réessayer.",
    LookupErrorKind.NETWORK: (
        "Problème de connexion. Vérifiez votre connexion internet."
    ),
    LookupErrorKind.GENERIC: "Une erreur est survenue lors de la recherche",
}

POSTAL_CODE_MESSAGE = "Le code postal doit contenir 5 chiffres"

NOT_FOUND_MESSAGE = (
    'Aucune entreprise trouvée pour "{query}". '
    "Essayez de taper plus de caractères ou vérifiez l'orthographe."
)


def classify_error(error: Exception) -> LookupErrorKind:
    if isinstance(error, ExternalServiceError):
        try:
            return LookupErrorKind(error.error_type)
        except ValueError:
            return LookupErrorKind.GENERIC
    if isinstance(error, httpx.TimeoutException):
        return LookupErrorKind.TIMEOUT
    if isinstance(error, httpx.TransportError):
        return LookupErrorKind.NETWORK
    return LookupErrorKind.GENERIC


class CompanySearch:
    """Autocomplete state machine over a CompanyDirectory.

    Args:
        directory: Registry client (InseeClient or SearchApiClient)
        debounce_seconds: Trailing-edge delay before a search is issued
        min_length: Minimum stripped query length for a network call
    """

    def __init__(
        self,
        directory: CompanyDirectory,
        *,
        debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS,
        min_length: int = SEARCH_MIN_LENGTH,
    ):
        self.min_length = min_length
        self.query = ""
        self.postal_code: Optional[str] = None
        self.results: list[SearchResult] = []
        self.selected: Optional[SearchResult] = None
        self.selected_index = -1
        self.show_results = False
        self.is_loading = False
        self.error: Optional[str] = None
        self.error_kind: Optional[LookupErrorKind] = None
        self._directory = directory
        self._latest: Optional[tuple[str, Optional[str]]] = None
        self._debouncer = DebouncedTask(
            debounce_seconds, self.search_now, name="company-search"
        )

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def search(self, name: str, postal_code: Optional[str] = None) -> None:
        """Record the query and schedule a debounced lookup."""
        self.query = name
        self.postal_code = postal_code
        if not self._accept(name, postal_code):
            self._debouncer.cancel()
            return
        self._debouncer.schedule(name, postal_code)

    async def flush(self) -> None:
        """Issue a pending debounced lookup now and wait for it."""
        await self._debouncer.flush()

    async def search_now(self, name: str, postal_code: Optional[str] = None) -> None:
        """Run a lookup immediately, applying the local guards first."""
        self.query = name
        self.postal_code = postal_code
        if not self._accept(name, postal_code):
            return

        term = name.strip()
        postal = postal_code.strip() if postal_code and postal_code.strip() else None
        key = (term, postal)
        self._latest = key
        self.is_loading = True
        self.error = None
        self.error_kind = None

        try:
            results = await self._directory.search_by_name(term, postal)
        except (BaseError, httpx.HTTPError, ValueError) as e:
            if self._latest != key:
                return
            kind = classify_error(e)
            logger.warning(
                "Company search failed (%s): %s",
                kind.value,
                e,
                extra={"error_type": kind.value},
            )
            self._show_error(kind, ERROR_MESSAGES[kind])
            self.is_loading = False
            return

        if self._latest != key:
            logger.debug("Discarding stale results for %r", term)
            return

        self.is_loading = False
        self.results = list(results)
        self.show_results = True
        self.selected_index = -1
        if not self.results:
            self.error_kind = LookupErrorKind.NOT_FOUND
            self.error = NOT_FOUND_MESSAGE.format(query=term)

    def handle_key(self, key: str) -> bool:
        """Keyboard navigation over the visible results. Returns True if handled."""
        if not self.show_results or not self.results:
            return False

        count = len(self.results)
        if key == "ArrowDown":
            self.selected_index = min(self.selected_index + 1, count - 1)
        elif key == "ArrowUp":
            self.selected_index = max(self.selected_index - 1, 0)
        elif key == "Enter":
            if not 0 <= self.selected_index < count:
                return False
            self.select(self.results[self.selected_index])
        elif key == "Escape":
            self.show_results = False
            self.selected_index = -1
        else:
            return False
        return True

    def select(self, result: SearchResult) -> SearchResult:
        self.selected = result
        self.query = result.legal_name
        self.results = []
        self.show_results = False
        self.selected_index = -1
        self.error = None
        self.error_kind = None
        return result

    def clear(self) -> None:
        self._debouncer.cancel()
        self._latest = None
        self.query = ""
        self.postal_code = None
        self.results = []
        self.selected = None
        self.selected_index = -1
        self.show_results = False
        self.is_loading = False
        self.error = None
        self.error_kind = None

    def to_dict(self) -> dict:
        return {
            "query": self.query,
            "postal_code": self.postal_code,
            "results": [r.model_dump() for r in self.results],
            "selected": self.selected.model_dump() if self.selected else None,
            "selected_index": self.selected_index,
            "show_results": self.show_results,
            "is_loading": self.is_loading,
            "error": self.error,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }

    def _accept(self, name: str, postal_code: Optional[str]) -> bool:
        """Local guards; on rejection the state is updated and no call is made."""
        if len((name or "").strip()) < self.min_length:
            self._latest = None
            self.results = []
            self.show_results = False
            self.selected_index = -1
            self.is_loading = False
            self.error = None
            self.error_kind = None
            return False

        postal = (postal_code or "").strip()
        if postal and not _POSTAL_CODE.match(postal):
            self._latest = None
            self.is_loading = False
            self._show_error(LookupErrorKind.INVALID_INPUT, POSTAL_CODE_MESSAGE)
            return False

        return True

    def _show_error(self, kind: LookupErrorKind, message: str) -> None:
        self.results = []
        self.show_results = False
        self.selected_index = -1
        self.error_kind = kind
        self.error = message
