"""
Exceptions raised by the shortcut execution core.
"""


class ShortcutError(Exception):
    """Base class for all bash-shortcuts errors."""


class SpawnError(ShortcutError):
    """The command could not be started (empty command, missing shell, permission)."""


class HookError(ShortcutError):
    """A hook action failed."""


class UnknownHookError(HookError):
    """A shortcut references a hook id that is not configured."""

    def __init__(self, hook_id: str):
        super().__init__(f"Unknown hook: {hook_id!r}")
        self.hook_id = hook_id


class KillError(ShortcutError):
    """The termination signal could not be delivered."""


class CommunicationError(ShortcutError):
    """The persistence backend could not be read or written."""
