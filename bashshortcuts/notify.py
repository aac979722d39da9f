"""
Notifications

Turns shortcut lifecycle events into user-visible toasts.
"""

from __future__ import annotations
import logging
import os
import subprocess
from typing import TYPE_CHECKING, Optional

from pubsub import pub

from . import topics
from .events import EventType

if TYPE_CHECKING:
    from .events import ShortcutEvent
    from .store import ShortcutStore

logger = logging.getLogger(__name__)

FINISHED_MESSAGE = "Shortcut execution finished."
CANCELED_MESSAGE = "Shortcut execution was canceled."
LAUNCH_FAILED_MESSAGE = "Shortcut failed. Check the command."
KILL_FAILED_MESSAGE = "Failed to close shortcut."


class NotificationSink:
    """Fire-and-forget user-visible messages."""

    def toast(self, title: str, message: str):
        raise NotImplementedError


class LogNotificationSink(NotificationSink):
    """Writes toasts to the log only."""

    def toast(self, title: str, message: str):
        logger.info("Toast: %s - %s", title, message)


class NotifySendSink(NotificationSink):
    """Shows toasts through a desktop notification command (notify-send)."""

    def __init__(self, command: str = "notify-send", timeout_ms: int = 8000):
        self.command = command
        self.timeout_ms = timeout_ms

    def toast(self, title: str, message: str):
        env = os.environ.copy()
        subprocess.Popen(
            [self.command, "-t", str(self.timeout_ms), title, message],
            start_new_session=True,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            env=env,
        )


class ShortcutNotifier:
    """Shows a toast when a shortcut ends or fails.

    This component subscribes to the shortcut notification topics.

    Responsibilities:
    - SHORTCUT_ENDED: "finished" on status 0, "canceled" otherwise
    - SHORTCUT_LAUNCH_FAILED: launch failure toast
    - SHORTCUT_KILL_FAILED: kill failure toast
    """

    def __init__(self, sink: NotificationSink, store: Optional["ShortcutStore"] = None, bus=pub):
        """Initialize notifier.

        Args:
            sink: Where toasts are sent
            store: Used to look up shortcut names for toast titles
            bus: Event bus instance (Pypubsub)
        """
        self.sink = sink
        self.store = store
        self.bus = bus
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        self.bus.subscribe(self._on_ended, topics.SHORTCUT_ENDED)
        self.bus.subscribe(self._on_launch_failed, topics.SHORTCUT_LAUNCH_FAILED)
        self.bus.subscribe(self._on_kill_failed, topics.SHORTCUT_KILL_FAILED)

    def close(self):
        self.bus.unsubscribe(self._on_ended, topics.SHORTCUT_ENDED)
        self.bus.unsubscribe(self._on_launch_failed, topics.SHORTCUT_LAUNCH_FAILED)
        self.bus.unsubscribe(self._on_kill_failed, topics.SHORTCUT_KILL_FAILED)

    def _title_for(self, shortcut_id: str) -> str:
        if self.store is not None:
            try:
                shortcut = self.store.get_shortcut(shortcut_id)
            except Exception as e:
                logger.warning("Cannot look up shortcut %s: %s", shortcut_id, e)
            else:
                if shortcut is not None:
                    return shortcut.name
        return shortcut_id

    def _on_ended(self, event: "ShortcutEvent"):
        """Handle SHORTCUT_ENDED event."""
        if event.type is not EventType.END:
            return
        message = FINISHED_MESSAGE if event.succeeded else CANCELED_MESSAGE
        self.toast(self._title_for(event.shortcut_id), message)

    def _on_launch_failed(self, event: "ShortcutEvent"):
        """Handle SHORTCUT_LAUNCH_FAILED event."""
        self.toast("Error", LAUNCH_FAILED_MESSAGE)

    def _on_kill_failed(self, event: "ShortcutEvent"):
        """Handle SHORTCUT_KILL_FAILED event."""
        self.toast("Error", KILL_FAILED_MESSAGE)

    def toast(self, title: str, message: str):
        """Send a toast; sink failures are logged and dropped."""
        try:
            self.sink.toast(title, message)
        except Exception as e:
            logger.warning("Toaster error: %s", e)
