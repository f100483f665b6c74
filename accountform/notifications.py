"""Top-level user notifications (toasts) owned by the form controller."""

import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Notifier(Protocol):
    def notify(self, level: str, title: str, message: str) -> None: ...


@dataclass
class Notification:
    level: str
    title: str
    message: str
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return asdict(self)


class CollectingNotifier:
    """Keeps notifications until the front-end drains them."""

    def __init__(self):
        self.notifications: list[Notification] = []

    def notify(self, level: str, title: str, message: str) -> None:
        logger.log(_LOG_LEVELS.get(level, logging.INFO), "%s: %s", title, message)
        self.notifications.append(Notification(level, title, message))

    def drain(self) -> list[Notification]:
        drained, self.notifications = self.notifications, []
        return drained
