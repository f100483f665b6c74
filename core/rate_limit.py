"""Request rate limiting behind an injectable store."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def retry_after(self, now: float) -> int:
        return max(1, int(self.reset_at - now + 0.999))


class RateLimitStore(Protocol):
    """Counts requests per key. Production deployments back this with a shared cache."""

    def check(self, key: str) -> RateLimitDecision: ...


class InMemoryRateLimitStore:
    """Fixed-window counter for a single process."""

    MAX_TRACKED_KEYS = 10_000

    def __init__(
        self,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}

    def check(self, key: str) -> RateLimitDecision:
        now = self._clock()
        start, count = self._windows.get(key, (now, 0))
        if now - start >= self.window_seconds:
            start, count = now, 0

        count += 1
        self._windows[key] = (start, count)
        if len(self._windows) > self.MAX_TRACKED_KEYS:
            self._purge(now)

        return RateLimitDecision(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_at=start + self.window_seconds,
        )

    def stats(self) -> dict:
        return {
            "tracked_clients": len(self._windows),
            "window_seconds": self.window_seconds,
            "max_requests": self.max_requests,
        }

    def _purge(self, now: float) -> None:
        expired = [
            key
            for key, (start, _) in self._windows.items()
            if now - start >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]
        logger.debug("Purged %d expired rate limit window(s)", len(expired))
