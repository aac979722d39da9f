"""
App Lifecycle Signal

App shortcuts may be reparented by the host environment, so their end is
reported out-of-band instead of by the spawned process. The host publishes
``topics.APP_ENDED`` and this bridge turns it into one-shot per-shortcut
callbacks.
"""

from __future__ import annotations
import logging
import threading
from typing import Callable, Dict, Optional

from pubsub import pub

from . import topics

logger = logging.getLogger(__name__)

EndedCallback = Callable[[Optional[int]], None]


class AppLifecycleSignal:
    """Delivers a single terminal "ended" notification per registered app."""

    def __init__(self, bus=pub):
        """Initialize lifecycle bridge.

        Args:
            bus: Event bus instance (Pypubsub)
        """
        self.bus = bus
        self._lock = threading.Lock()
        self._watchers: Dict[str, EndedCallback] = {}
        self.bus.subscribe(self._on_app_ended, topics.APP_ENDED)

    def close(self):
        self.bus.unsubscribe(self._on_app_ended, topics.APP_ENDED)
        with self._lock:
            self._watchers.clear()

    def register(self, shortcut_id: str, callback: EndedCallback):
        """Watch an app shortcut. Replaces any earlier registration for the id."""
        with self._lock:
            self._watchers[shortcut_id] = callback

    def unregister(self, shortcut_id: str):
        with self._lock:
            self._watchers.pop(shortcut_id, None)

    def is_registered(self, shortcut_id: str) -> bool:
        return shortcut_id in self._watchers

    def notify_ended(self, shortcut_id: str, status: Optional[int] = 0):
        """Report that the host closed an app (convenience publisher)."""
        self.bus.sendMessage(topics.APP_ENDED, shortcut_id=shortcut_id, status=status)

    def _on_app_ended(self, shortcut_id: str, status: Optional[int] = 0):
        """Handle APP_ENDED event."""
        with self._lock:
            callback = self._watchers.pop(shortcut_id, None)

        if callback is None:
            logger.debug("Ignoring app end for unwatched shortcut %s", shortcut_id)
            return
        callback(status)
