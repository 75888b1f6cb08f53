"""Advisory notification side channel."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from apilink.types import Notification, NotificationType

logger = logging.getLogger(__name__)

_SUCCESS_MESSAGES: dict[str, str] = {
    "POST": "Created successfully",
    "PUT": "Updated successfully",
    "DELETE": "Deleted successfully",
}


@runtime_checkable
class NotificationSink(Protocol):
    """Receives notifications. The return value is ignored."""

    def __call__(self, notification: Notification) -> None: ...


def success_message(method: str) -> str | None:
    """Default success text for a verb, or None if the verb is not announced."""
    return _SUCCESS_MESSAGES.get(method.upper())


class Notifier:
    """Fire-and-forget wrapper around an optional sink.

    Without a sink, notifications are dropped. A sink that raises is
    logged and otherwise ignored.
    """

    def __init__(self, sink: NotificationSink | None = None) -> None:
        self._sink = sink

    @property
    def sink(self) -> NotificationSink | None:
        return self._sink

    @sink.setter
    def sink(self, sink: NotificationSink | None) -> None:
        self._sink = sink

    def notify(self, notification: Notification) -> None:
        if self._sink is None:
            return
        try:
            self._sink(notification)
        except Exception:
            logger.warning("Notification sink raised; dropping %r", notification, exc_info=True)

    def success(self, title: str, message: str) -> None:
        self.notify(Notification(NotificationType.SUCCESS, title, message))

    def error(self, title: str, message: str) -> None:
        self.notify(Notification(NotificationType.ERROR, title, message))

    def info(self, title: str, message: str) -> None:
        self.notify(Notification(NotificationType.INFO, title, message))

    def warning(self, title: str, message: str) -> None:
        self.notify(Notification(NotificationType.WARNING, title, message))
