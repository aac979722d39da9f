"""
Bash Shortcuts

Wires the execution core together and exposes it to a presentation layer.
"""

from __future__ import annotations
import logging
import time
from typing import Callable, Dict, FrozenSet, Mapping, Optional

from pubsub import pub

from .config import ShortcutsConfig
from .events import EventBroadcaster, ShortcutEvent
from .execution import ExecutionManager, Flags
from .hooks import HookEngine
from .lifecycle import AppLifecycleSignal
from .notify import LogNotificationSink, NotificationSink, NotifySendSink, ShortcutNotifier
from .runner import CommandRunner
from .shortcut import Shortcut
from .store import SettingsStore, ShortcutStore

logger = logging.getLogger(__name__)


class BashShortcuts:
    """
    Shortcut launcher core.

    Architecture:
    1. Use the event bus (Pypubsub)
    2. Create stores and components - they self-subscribe to events
    3. Reconcile with processes that survived a restart (explicit call)
    """

    def __init__(
        self,
        config: Optional[ShortcutsConfig] = None,
        sink: Optional[NotificationSink] = None,
    ):
        """Initialize the launcher core.

        Args:
            config: Configuration, defaults to ShortcutsConfig()
            sink: Toast sink; defaults to notify-send, or log-only when
                notifications are disabled
        """
        self.config = config or ShortcutsConfig()

        if self.config.debug:
            pub.subscribe(self.debug_event_logger, pub.ALL_TOPICS)

        self.settings = SettingsStore(self.config.settings_path)
        self.store = ShortcutStore(self.settings)

        self.broadcaster = EventBroadcaster(bus=pub)
        self.lifecycle = AppLifecycleSignal(bus=pub) if self.config.host_lifecycle else None
        self.runner = CommandRunner(
            shell=self.config.shell,
            kill_signal=self.config.kill_signal,
            poll_interval=self.config.adopt_poll_interval,
            kill_timeout=self.config.kill_timeout,
        )
        self.hook_engine = HookEngine(self.config.get_hooks())

        # Launch/kill commands (self-subscribes)
        self.execution = ExecutionManager(
            runner=self.runner,
            hook_engine=self.hook_engine,
            broadcaster=self.broadcaster,
            lifecycle=self.lifecycle,
            settings=self.settings,
            bus=pub,
        )

        if sink is None:
            if self.config.notifications:
                sink = NotifySendSink(self.config.notify_command)
            else:
                sink = LogNotificationSink()
        # Toasts for ends and failures (self-subscribes)
        self.notifier = ShortcutNotifier(sink, store=self.store, bus=pub)

    def debug_event_logger(self, topic=pub.AUTO_TOPIC, **kwargs):
        """Log all events published on the event bus."""
        timestamp = time.strftime("%H:%M:%S")
        topic_name = topic.getName()
        data_str = ", ".join(f"{k}={v}" for k, v in kwargs.items() if k != "topic")
        logger.debug("[%s] EVENT: %s | %s", timestamp, topic_name, data_str)

    def close(self):
        """Detach every component from the bus. Running processes keep running."""
        if self.config.debug:
            pub.unsubscribe(self.debug_event_logger, pub.ALL_TOPICS)
        self.notifier.close()
        self.execution.close()
        if self.lifecycle is not None:
            self.lifecycle.close()
        self.broadcaster.close()

    def _resolve(self, shortcut: Shortcut | str) -> Shortcut:
        if isinstance(shortcut, Shortcut):
            return shortcut
        found = self.store.get_shortcut(shortcut)
        if found is None:
            raise KeyError(shortcut)
        return found

    # Execution

    def launch(self, shortcut: Shortcut | str, flags: Optional[Flags] = None) -> bool:
        """Launch a shortcut (or shortcut id). Returns True if it is now running."""
        return self.execution.launch(self._resolve(shortcut), flags)

    def kill(self, shortcut: Shortcut | str) -> bool:
        shortcut_id = shortcut if isinstance(shortcut, str) else shortcut.id
        return self.execution.kill(shortcut_id)

    def is_running(self, shortcut_id: str) -> bool:
        return self.execution.is_running(shortcut_id)

    def running(self) -> FrozenSet[str]:
        return self.execution.running()

    def subscribe(self, shortcut_id: str, callback: Callable[[ShortcutEvent], None]):
        self.broadcaster.subscribe(shortcut_id, callback)

    def unsubscribe(
        self, shortcut_id: str, callback: Optional[Callable[[ShortcutEvent], None]] = None
    ):
        self.broadcaster.unsubscribe(shortcut_id, callback)

    def reconcile(self):
        """Adopt shortcut processes left running by a previous instance."""
        adopted = self.execution.reconcile(self.store.get_shortcuts())
        if adopted:
            logger.info("Reconciled %d running shortcut(s)", len(adopted))
        return adopted

    # Shortcut definitions

    def get_shortcuts(self) -> Dict[str, Shortcut]:
        return self.store.get_shortcuts()

    def set_shortcuts(self, shortcuts: Mapping[str, Shortcut]) -> Dict[str, Shortcut]:
        return self.store.set_shortcuts(shortcuts)

    def add_shortcut(self, shortcut: Shortcut) -> Dict[str, Shortcut]:
        return self.store.add_shortcut(shortcut)

    def mod_shortcut(self, shortcut: Shortcut) -> Dict[str, Shortcut]:
        return self.store.mod_shortcut(shortcut)

    def remove_shortcut(self, shortcut: Shortcut | str) -> Dict[str, Shortcut]:
        return self.store.remove_shortcut(shortcut)
