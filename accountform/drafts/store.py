"""Draft persistence with debounced writes and age-based expiry.

A draft is the JSON-encoded form record plus a ``savedAt`` timestamp in
epoch milliseconds. Storage problems never reach the caller: the store
degrades to "no draft available" and only reports the failure in logs
outside production.
"""

import json
import logging
import time
from typing import Any, Callable, Optional

from accountform.core.config import (
    DRAFT_DEBOUNCE_SECONDS,
    DRAFT_RETENTION_DAYS,
    DRAFT_STORAGE_KEY,
)
from accountform.core.scheduling import DebouncedTask
from accountform.drafts.backends import DraftStorageError, KeyValueBackend

logger = logging.getLogger(__name__)

SAVED_AT_FIELD = "savedAt"

_STORAGE_ERRORS = (DraftStorageError, OSError, TypeError, ValueError)


class DraftStore:
    """Single named draft slot on top of a key-value backend.

    Args:
        backend: Storage backend
        key: Slot name
        debounce_seconds: Trailing-edge delay applied by ``save``
        retention_days: Drafts older than this are purged on ``load``
        clock: Returns the current time in seconds
        report_errors: Log swallowed storage errors (disabled in production)
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        *,
        key: str = DRAFT_STORAGE_KEY,
        debounce_seconds: float = DRAFT_DEBOUNCE_SECONDS,
        retention_days: float = DRAFT_RETENTION_DAYS,
        clock: Callable[[], float] = time.time,
        report_errors: bool = True,
    ):
        self.key = key
        self.retention_ms = int(retention_days * 24 * 60 * 60 * 1000)
        self._backend = backend
        self._clock = clock
        self._report_errors = report_errors
        self._last_written: Optional[str] = None
        self._debouncer = DebouncedTask(
            debounce_seconds, self.save_now, name=f"draft-save:{key}"
        )

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def save(self, data: dict[str, Any]) -> None:
        """Schedule a write of ``data``; a later call replaces this one."""
        self._debouncer.schedule(dict(data))

    def save_now(self, data: dict[str, Any]) -> bool:
        """Write ``data`` immediately.

        Returns:
            True if the backend was written, False when the write was
            skipped (unchanged data) or failed.
        """
        payload = {k: v for k, v in data.items() if k != SAVED_AT_FIELD}
        try:
            serialized = json.dumps(payload, sort_keys=True, ensure_ascii=False)
            if serialized == self._last_written:
                return False

            record = dict(payload)
            record[SAVED_AT_FIELD] = self._now_ms()
            self._backend.set(self.key, json.dumps(record, ensure_ascii=False))
        except _STORAGE_ERRORS as e:
            self._report("save", e)
            return False

        self._last_written = serialized
        return True

    async def flush(self) -> None:
        """Perform any pending debounced write now."""
        await self._debouncer.flush()

    def load(self) -> Optional[dict[str, Any]]:
        """Return the stored draft, or None when absent, unreadable or expired."""
        try:
            raw = self._backend.get(self.key)
        except _STORAGE_ERRORS as e:
            self._report("load", e)
            return None

        if raw is None:
            return None

        try:
            record = json.loads(raw)
        except ValueError as e:
            self._report("decode", e)
            self._delete_quietly()
            return None

        saved_at = record.get(SAVED_AT_FIELD) if isinstance(record, dict) else None
        if not isinstance(saved_at, (int, float)):
            self._delete_quietly()
            return None

        if self._now_ms() - saved_at > self.retention_ms:
            logger.info("Expired draft purged: %s", self.key)
            self._delete_quietly()
            return None

        return record

    def exists(self) -> bool:
        """Presence check that ignores the draft's age."""
        try:
            return self._backend.get(self.key) is not None
        except _STORAGE_ERRORS as e:
            self._report("exists", e)
            return False

    def clear(self) -> None:
        """Delete the draft and cancel any pending write."""
        self._debouncer.cancel()
        self._delete_quietly()

    def _delete_quietly(self) -> None:
        # the next save must write even if its data matches the purged draft
        self._last_written = None
        try:
            self._backend.delete(self.key)
        except _STORAGE_ERRORS as e:
            self._report("delete", e)

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _report(self, operation: str, error: Exception) -> None:
        if self._report_errors:
            logger.warning(
                "Draft %s failed for %s: %s",
                operation,
                self.key,
                error,
                extra={"error_type": type(error).__name__},
            )


def has_significant_data(data: dict[str, Any]) -> bool:
    """True when at least one value is a non-blank string."""
    return any(isinstance(v, str) and v.strip() for v in data.values())
