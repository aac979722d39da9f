"""
Configuration for bash-shortcuts.
"""

from __future__ import annotations
import os
import signal
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from .hooks import BUILTIN_HOOKS, Hook


def default_settings_path() -> Path:
    """Settings file location from the environment."""
    configured = os.getenv("BASH_SHORTCUTS_SETTINGS")
    if configured:
        return Path(configured).expanduser()
    config_home = os.getenv("XDG_CONFIG_HOME") or os.path.expanduser("~/.config")
    return Path(config_home) / "bash-shortcuts" / "settings.json"


def debug_enabled() -> bool:
    return bool(os.getenv("BASH_SHORTCUTS_DEBUG"))


@dataclass
class ShortcutsConfig:
    """Execution core configuration."""

    # Settings file (JSON); None keeps everything in memory
    settings_path: Optional[Path] = field(default_factory=default_settings_path)

    # Shell used for commands (None: /bin/sh)
    shell: Optional[str] = None

    # Signal sent to a shortcut's process group on kill
    kill_signal: int = signal.SIGTERM

    # Seconds between liveness probes of adopted processes
    adopt_poll_interval: float = 1.0

    # Seconds a killed shortcut gets to exit before SIGKILL
    kill_timeout: float = 5.0

    # App shortcuts end on the host's app.ended message; off: on process exit
    host_lifecycle: bool = True

    # Extra hooks, merged over the built-in ones
    hooks: Dict[str, Hook] = field(default_factory=dict)

    # Desktop notifications
    notifications: bool = True
    notify_command: str = "notify-send"

    # Log every bus event
    debug: bool = field(default_factory=debug_enabled)

    def __post_init__(self):
        """Validate values and normalise the settings path."""
        if self.adopt_poll_interval <= 0:
            raise ValueError(
                f"adopt_poll_interval must be positive, got {self.adopt_poll_interval}"
            )
        if self.kill_timeout <= 0:
            raise ValueError(f"kill_timeout must be positive, got {self.kill_timeout}")
        if self.settings_path is not None:
            self.settings_path = Path(self.settings_path).expanduser()
        for hook_id, hook in self.hooks.items():
            if hook_id != hook.id:
                raise ValueError(f"Hook key {hook_id!r} does not match hook id {hook.id!r}")

    def get_hooks(self) -> Dict[str, Hook]:
        """Built-in hooks with configured hooks layered on top."""
        hooks = dict(BUILTIN_HOOKS)
        hooks.update(self.hooks)
        return hooks
