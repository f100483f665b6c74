"""Single-slot scheduled task with cancel-and-reschedule semantics.

A DebouncedTask owns at most one pending timer. Scheduling again replaces
the pending call, so only the most recent arguments are ever executed
(trailing-edge debounce). Coroutine callbacks are started as tasks and
tracked until they finish.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class DebouncedTask:
    """Trailing-edge debouncer bound to the running event loop.

    Args:
        delay: Seconds to wait after the last ``schedule`` call
        callback: Sync function or coroutine function to invoke
        name: Label used in logs
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[..., Any],
        *,
        name: str = "debounced-task",
    ):
        self.delay = delay
        self.name = name
        self._callback = callback
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending_call: Optional[tuple[tuple, dict]] = None
        self._running: set[asyncio.Future] = set()

    @property
    def pending(self) -> bool:
        """True while a call is scheduled but has not fired yet."""
        return self._handle is not None

    @property
    def running(self) -> bool:
        return bool(self._running)

    def schedule(self, *args: Any, **kwargs: Any) -> None:
        """Replace any pending call with a new one after ``delay`` seconds."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._pending_call = (args, kwargs)
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Drop the pending call, if any. Already-started work is not touched."""
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._pending_call = None

    async def flush(self) -> None:
        """Run the pending call now and wait for it to complete."""
        if self._pending_call is not None:
            args, kwargs = self._pending_call
            self.cancel()
            self._invoke(args, kwargs)
        await self.drain()

    async def drain(self) -> None:
        """Wait for every started coroutine callback to finish."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    def _fire(self) -> None:
        call = self._pending_call
        self._handle = None
        self._pending_call = None
        if call is not None:
            args, kwargs = call
            self._invoke(args, kwargs)

    def _invoke(self, args: tuple, kwargs: dict) -> None:
        result = self._callback(*args, **kwargs)
        if inspect.isawaitable(result):
            future = asyncio.ensure_future(result)
            self._running.add(future)
            future.add_done_callback(self._on_done)

    def _on_done(self, future: asyncio.Future) -> None:
        self._running.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error(
                "Scheduled task %s failed: %s",
                self.name,
                exc,
                exc_info=exc,
            )
