"""
bash-shortcuts

Launch named shell-command shortcuts and track whether they are running.

This package provides:
- A shortcut data model and JSON-backed shortcut/settings stores
- A command runner for detached process groups
- Pre/post hooks around execution
- An execution manager keeping a run state table consistent
- Per-shortcut lifecycle events on a Pypubsub event bus

Example usage:
    from bashshortcuts import BashShortcuts, Shortcut

    core = BashShortcuts()
    backup = Shortcut.create("Backup", "tar czf /tmp/b.tgz /home")
    core.add_shortcut(backup)
    core.subscribe(backup.id, print)
    core.launch(backup)

Or run directly:
    python -m bashshortcuts list
"""

__version__ = "0.1.0"

from .errors import (
    ShortcutError,
    SpawnError,
    HookError,
    UnknownHookError,
    KillError,
    CommunicationError,
)

from .shortcut import Shortcut, sort_shortcuts, validate_shortcuts

from .runner import CommandRunner, ProcessHandle, ExitSignal

from .hooks import (
    Hook,
    HookAction,
    CallableAction,
    ShellAction,
    ResolvedHooks,
    HookEngine,
    BUILTIN_HOOKS,
)

from .state import RunStateEntry, RunStateTable

from .events import EventBroadcaster, EventType, ShortcutEvent

from .lifecycle import AppLifecycleSignal

from .execution import ExecutionManager, ShortcutState

from .store import SettingsStore, ShortcutStore

from .notify import (
    NotificationSink,
    LogNotificationSink,
    NotifySendSink,
    ShortcutNotifier,
)

from .config import ShortcutsConfig

from .app import BashShortcuts

from . import topics

__all__ = [
    # Version
    "__version__",
    # Errors
    "ShortcutError",
    "SpawnError",
    "HookError",
    "UnknownHookError",
    "KillError",
    "CommunicationError",
    # Data model
    "Shortcut",
    "sort_shortcuts",
    "validate_shortcuts",
    # Runner
    "CommandRunner",
    "ProcessHandle",
    "ExitSignal",
    # Hooks
    "Hook",
    "HookAction",
    "CallableAction",
    "ShellAction",
    "ResolvedHooks",
    "HookEngine",
    "BUILTIN_HOOKS",
    # Run state
    "RunStateEntry",
    "RunStateTable",
    # Events
    "EventBroadcaster",
    "EventType",
    "ShortcutEvent",
    "AppLifecycleSignal",
    # Execution
    "ExecutionManager",
    "ShortcutState",
    # Persistence
    "SettingsStore",
    "ShortcutStore",
    # Notifications
    "NotificationSink",
    "LogNotificationSink",
    "NotifySendSink",
    "ShortcutNotifier",
    # Facade
    "ShortcutsConfig",
    "BashShortcuts",
    # Event topics
    "topics",
]
