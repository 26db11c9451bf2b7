"""Transient user-facing notifications with severity levels."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Literal
from uuid import uuid4

logger = logging.getLogger(__name__)

Severity = Literal["success", "info", "warning", "error"]

_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    message: str
    severity: Severity = "info"
    id: str = field(default_factory=lambda: uuid4().hex)


Sink = Callable[[Notification], None]


class Notifier:
    """Fans notifications out to the UI sink; keeps the last few for inspection."""

    def __init__(self, sink: Sink | None = None, history_size: int = 20) -> None:
        self.sink = sink
        self.history_size = history_size
        self.history: list[Notification] = []

    def notify(self, message: str, severity: Severity = "info") -> Notification:
        notification = Notification(message=message, severity=severity)
        logger.log(_LOG_LEVELS[severity], "[%s] %s", severity.upper(), message)
        self.history = (self.history + [notification])[-self.history_size :]
        if self.sink is not None:
            self.sink(notification)
        return notification
