"""User-visible notifications for terminal clip outcomes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Protocol

from rich.console import Console
from rich.text import Text

from vault_clipper.storage.common import utc_now

logger = logging.getLogger(__name__)

DEFAULT_DISMISS_AFTER_SECONDS = 5.0
DEFAULT_TITLE = "Vault Clipper"
CONNECTION_ERROR_ID = "connection-error"


class NotificationLevel(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class Notification:
    notification_id: str
    title: str
    message: str
    level: NotificationLevel
    created_at: datetime = field(default_factory=utc_now)


NotificationSink = Callable[[Notification], None]


class Notifier(Protocol):
    """Notification surface consumed by the orchestrator."""

    def notify(self, notification_id: str, message: str, level: NotificationLevel) -> None:
        """Show a notification keyed by id."""


def success_message(path: str) -> str:
    return f"Saved to vault: {path}" if path else "Saved to vault."


def fallback_success_message(path: str) -> str:
    target = path or "the vault"
    return f"Sent to {target} via the vault app. Check the app to confirm the note was created."


def error_message(error: str) -> str:
    return f"Clip failed: {error}"


CONNECTION_ERROR_MESSAGE = (
    "Could not connect to the vault. Make sure the app is running with the Local REST API plugin."
)


class NotificationCenter:
    """Keeps active notifications by id and dismisses each after a fixed delay."""

    def __init__(
        self,
        sink: NotificationSink | None = None,
        *,
        dismiss_after_seconds: float = DEFAULT_DISMISS_AFTER_SECONDS,
        title: str = DEFAULT_TITLE,
    ) -> None:
        self.sink = sink
        self.dismiss_after_seconds = dismiss_after_seconds
        self.title = title
        self.active: dict[str, Notification] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}

    def notify(self, notification_id: str, message: str, level: NotificationLevel) -> None:
        self.dismiss(notification_id)
        notification = Notification(
            notification_id=notification_id,
            title=self.title,
            message=message,
            level=level,
        )
        self.active[notification_id] = notification
        if self.sink is not None:
            try:
                self.sink(notification)
            except Exception:  # noqa: BLE001
                logger.warning("Failed to show notification %s", notification_id, exc_info=True)
        self._schedule_dismiss(notification_id)

    def dismiss(self, notification_id: str) -> None:
        timer = self._timers.pop(notification_id, None)
        if timer is not None:
            timer.cancel()
        self.active.pop(notification_id, None)

    def close(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    def _schedule_dismiss(self, notification_id: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._timers[notification_id] = loop.call_later(
            self.dismiss_after_seconds,
            self._expire,
            notification_id,
        )

    def _expire(self, notification_id: str) -> None:
        self._timers.pop(notification_id, None)
        self.active.pop(notification_id, None)


class RichNotificationSink:
    """Prints notifications to the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)

    def __call__(self, notification: Notification) -> None:
        style = "green" if notification.level is NotificationLevel.SUCCESS else "bold red"
        line = Text()
        line.append(f"{notification.title}: ", style=style)
        line.append(notification.message)
        self.console.print(line)
