"""
utils/notifications.py

Notification sinks: fire-and-forget user messages from the core.

Any object with ``notify(kind, title, message)`` is a sink. Kinds are
success | error | warning | info. Return values are never consumed.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from PySide6.QtCore import QObject, Signal

__all__ = [
    "NOTIFICATION_KINDS",
    "LogNotifier",
    "QtNotifier",
    "show_success",
    "show_error",
    "show_warning",
    "show_info",
]

NOTIFICATION_KINDS = ("success", "error", "warning", "info")

_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _check_kind(kind: str) -> str:
    k = (kind or "").strip().lower()
    if k not in NOTIFICATION_KINDS:
        raise ValueError(f"kind must be one of: {', '.join(NOTIFICATION_KINDS)}")
    return k


class LogNotifier:
    """Fallback sink: writes notifications to the log."""

    def __init__(self, logger: logging.Logger | None = None):
        self._log = logger or logging.getLogger("medishop.notifications")

    def notify(self, kind: str, title: str, message: str) -> None:
        k = _check_kind(kind)
        self._log.log(_LEVELS[k], "[Notification] %s: %s - %s", k, title, message)


class QtNotifier(QObject):
    """
    Sink for PySide6 front-ends: connect a toast widget to ``notified``.
    Keeps a short in-memory history for a notification bell.
    """

    notified = Signal(str, str, str)  # kind, title, message

    def __init__(self, parent: QObject | None = None, history_limit: int = 100):
        super().__init__(parent)
        self._history: List[Tuple[str, str, str]] = []
        self._history_limit = max(1, int(history_limit))

    def notify(self, kind: str, title: str, message: str) -> None:
        k = _check_kind(kind)
        self._history.append((k, title, message))
        if len(self._history) > self._history_limit:
            del self._history[: len(self._history) - self._history_limit]
        self.notified.emit(k, title, message)

    @property
    def history(self) -> List[Tuple[str, str, str]]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()


# ---- convenience wrappers (default titles) ----

def show_success(sink, message: str, title: str = "Success") -> None:
    sink.notify("success", title, message)


def show_error(sink, message: str, title: str = "Error") -> None:
    sink.notify("error", title, message)


def show_warning(sink, message: str, title: str = "Warning") -> None:
    sink.notify("warning", title, message)


def show_info(sink, message: str, title: str = "Info") -> None:
    sink.notify("info", title, message)
