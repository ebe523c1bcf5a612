"""Notification surface used to report stream failures and notices."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Deque, List, Protocol

__all__ = ["Notice", "NotificationCenter", "Notifier", "Severity"]

LOGGER = logging.getLogger(__name__)


class Severity(str, Enum):
    """Severity of a user-facing notice."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def log_level(self) -> int:
        return {
            Severity.DEBUG: logging.DEBUG,
            Severity.INFO: logging.INFO,
            Severity.WARNING: logging.WARNING,
            Severity.ERROR: logging.ERROR,
        }[self]


class Notifier(Protocol):
    """Anything able to surface a message to the user."""

    def notify(self, message: str, severity: Severity = Severity.INFO, title: str | None = None) -> None:
        ...


@dataclass(slots=True)
class Notice:
    """A single surfaced message."""

    message: str
    severity: Severity
    title: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class NotificationCenter:
    """Logs notices and keeps a bounded history; listeners may render them."""

    def __init__(self, *, max_history: int = 200, logger: logging.Logger | None = None) -> None:
        self._history: Deque[Notice] = deque(maxlen=max(1, max_history))
        self._listeners: List[Callable[[Notice], None]] = []
        self._logger = logger or LOGGER

    def notify(self, message: str, severity: Severity = Severity.INFO, title: str | None = None) -> None:
        level = Severity(severity)
        notice = Notice(message=str(message), severity=level, title=title)
        self._history.append(notice)
        if title:
            self._logger.log(level.log_level, "%s: %s", title, notice.message)
        else:
            self._logger.log(level.log_level, "%s", notice.message)
        for listener in list(self._listeners):
            listener(notice)

    def add_listener(self, listener: Callable[[Notice], None]) -> None:
        self._listeners.append(listener)

    @property
    def history(self) -> List[Notice]:
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()
