"""
Event Broadcaster

Fans shortcut lifecycle events out to per-shortcut subscribers.
"""

from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pubsub import pub

from . import topics

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Kind of lifecycle event."""

    START = "start"
    END = "end"
    LAUNCH_FAILED = "launch_failed"
    KILL_FAILED = "kill_failed"


EVENT_TOPICS = {
    EventType.START: topics.SHORTCUT_STARTED,
    EventType.END: topics.SHORTCUT_ENDED,
    EventType.LAUNCH_FAILED: topics.SHORTCUT_LAUNCH_FAILED,
    EventType.KILL_FAILED: topics.SHORTCUT_KILL_FAILED,
}


@dataclass(frozen=True)
class ShortcutEvent:
    """A lifecycle notification for one shortcut."""

    shortcut_id: str
    type: EventType
    status: Optional[int] = None
    killed: bool = False
    message: str = ""

    @property
    def topic(self) -> str:
        return EVENT_TOPICS[self.type]

    @property
    def succeeded(self) -> bool:
        """True for an end event with exit status 0."""
        return self.type is EventType.END and self.status == 0

    def to_dict(self) -> Dict[str, Any]:
        """Wire form sent to the presentation layer."""
        data: Dict[str, Any] = {
            "shortcutId": self.shortcut_id,
            "type": self.type.value,
            "status": self.status,
        }
        if self.killed:
            data["killed"] = True
        if self.message:
            data["message"] = self.message
        return data


Callback = Callable[[ShortcutEvent], None]


class EventBroadcaster:
    """Per-shortcut fan-out on top of the event bus.

    Events are published on the bus under their lifecycle topic, so any
    component may listen. Pypubsub only keeps weak references to listeners,
    so the broadcaster holds the per-shortcut callbacks itself and delivers
    them from a single bus listener.

    Delivery goes to the subscribers registered when the event is published.
    There is no replay for late subscribers.
    """

    def __init__(self, bus=pub):
        """Initialize event broadcaster.

        Args:
            bus: Event bus instance (Pypubsub)
        """
        self.bus = bus
        self._lock = threading.Lock()
        self._subscribers: Dict[str, List[Callback]] = {}
        self._setup_subscriptions()

    def _setup_subscriptions(self):
        """Listen to every shortcut notification topic."""
        for topic in topics.NOTIFICATION_TOPICS:
            self.bus.subscribe(self._on_event, topic)

    def close(self):
        """Detach from the bus and drop all subscribers."""
        for topic in topics.NOTIFICATION_TOPICS:
            self.bus.unsubscribe(self._on_event, topic)
        with self._lock:
            self._subscribers.clear()

    def subscribe(self, shortcut_id: str, callback: Callback):
        """Register a callback for one shortcut's events."""
        with self._lock:
            self._subscribers.setdefault(shortcut_id, []).append(callback)

    def unsubscribe(self, shortcut_id: str, callback: Optional[Callback] = None):
        """Remove one callback, or all callbacks for the id when none is given."""
        with self._lock:
            if callback is None:
                self._subscribers.pop(shortcut_id, None)
                return
            callbacks = self._subscribers.get(shortcut_id)
            if not callbacks:
                return
            self._subscribers[shortcut_id] = [c for c in callbacks if c is not callback]
            if not self._subscribers[shortcut_id]:
                del self._subscribers[shortcut_id]

    def subscriber_count(self, shortcut_id: str) -> int:
        return len(self._subscribers.get(shortcut_id, ()))

    def publish(self, event: ShortcutEvent):
        """Send an event on the bus."""
        self.bus.sendMessage(event.topic, event=event)

    def _on_event(self, event: ShortcutEvent):
        """Deliver a bus event to the shortcut's subscribers."""
        with self._lock:
            callbacks = list(self._subscribers.get(event.shortcut_id, ()))

        for callback in callbacks:
            try:
                callback(event)
            except Exception:
                # A broken subscriber must not stop delivery to the others
                logger.exception(
                    "Subscriber for %s failed on %s event",
                    event.shortcut_id,
                    event.type.value,
                )
