"""
User notifications.

Hosts provide a Notifier that shows toasts; LoggingNotifier is the fallback
that writes them to the log instead.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol


# Milliseconds
NOTICE_TIMEOUT_MS = 10 * 1000
TIMEOUT_LIKE_INFINITY_MS = 24 * 60 * 60 * 1000


class Notice(Protocol):
    def update_message(self, message: str) -> None: ...

    def dismiss(self) -> None: ...


class Notifier(Protocol):
    def notify(self, message: str, timeout_ms: Optional[int] = None) -> Notice: ...


class LoggedNotice:
    def __init__(self, logger: logging.Logger, message: str) -> None:
        self._logger = logger
        self.message = message
        self.dismissed = False

    def update_message(self, message: str) -> None:
        self.message = message
        self._logger.info("%s", message)

    def dismiss(self) -> None:
        self.dismissed = True


class LoggingNotifier:
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger(__name__)

    def notify(self, message: str, timeout_ms: Optional[int] = None) -> LoggedNotice:
        self._logger.info("%s", message)
        return LoggedNotice(self._logger, message)
