"""
Settings and shortcut persistence.

The settings file is one JSON document. Shortcuts live under its
"shortcuts" key in camelCase wire form.
"""

from __future__ import annotations
import copy
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .errors import CommunicationError
from .shortcut import Shortcut, sort_shortcuts, validate_shortcuts

logger = logging.getLogger(__name__)

SHORTCUTS_KEY = "shortcuts"
RUNNING_PIDS_KEY = "runningPids"


class SettingsStore:
    """Generic key-value settings, optionally backed by a JSON file.

    Values are copied on the way in and out so callers never alias the
    stored document. A file-backed store re-reads the file on every access
    and rewrites only the key being set, so several processes sharing one
    file only race per key: the last writer of a key wins.
    """

    def __init__(self, path: Optional[Path] = None):
        """Initialize settings store.

        Args:
            path: JSON file to load from and write through to, None for memory only

        Raises:
            CommunicationError: If an existing file cannot be read or parsed
        """
        self.path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._data: Dict[str, Any] = self._load()

    def _load(self) -> Dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CommunicationError(f"Failed to read settings {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise CommunicationError(f"Settings file {self.path} is not a JSON object")
        return data

    def _save(self):
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(f"{self.path.suffix}.{os.getpid()}.tmp")
            tmp.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise CommunicationError(f"Failed to write settings {self.path}: {e}") from e

    def _refresh(self):
        if self.path is not None:
            self._data = self._load()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            self._refresh()
            if key not in self._data:
                return default
            return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any):
        with self._lock:
            self._refresh()
            self._data[key] = copy.deepcopy(value)
            self._save()


class ShortcutStore:
    """Authoritative shortcut definitions.

    Every mutating operation returns the updated dictionary, ordered by
    position. Returned dictionaries are fresh copies.
    """

    def __init__(self, settings: SettingsStore):
        self.settings = settings
        self._lock = threading.RLock()

    def _read(self) -> Dict[str, Shortcut]:
        raw = self.settings.get(SHORTCUTS_KEY, {}) or {}
        try:
            return {key: Shortcut.from_dict(value) for key, value in raw.items()}
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CommunicationError(f"Corrupt shortcuts entry: {e}") from e

    def _write(self, shortcuts: Mapping[str, Shortcut]) -> Dict[str, Shortcut]:
        ordered = sort_shortcuts(shortcuts)
        self.settings.set(
            SHORTCUTS_KEY, {key: shortcut.to_dict() for key, shortcut in ordered.items()}
        )
        return ordered

    def get_shortcuts(self) -> Dict[str, Shortcut]:
        with self._lock:
            return sort_shortcuts(self._read())

    def get_shortcut(self, shortcut_id: str) -> Optional[Shortcut]:
        return self.get_shortcuts().get(shortcut_id)

    def set_shortcuts(self, shortcuts: Mapping[str, Shortcut]) -> Dict[str, Shortcut]:
        """Replace the whole dictionary.

        Raises:
            ValueError: If a key does not match its shortcut's id
        """
        validate_shortcuts(shortcuts)
        with self._lock:
            return self._write(shortcuts)

    def add_shortcut(self, shortcut: Shortcut) -> Dict[str, Shortcut]:
        with self._lock:
            shortcuts = self._read()
            if shortcut.id in shortcuts:
                raise ValueError(f"Shortcut {shortcut.id} already exists")
            shortcuts[shortcut.id] = shortcut
            logger.info("Added shortcut %s (%s)", shortcut.id, shortcut.name)
            return self._write(shortcuts)

    def mod_shortcut(self, shortcut: Shortcut) -> Dict[str, Shortcut]:
        """Replace an existing record by id."""
        with self._lock:
            shortcuts = self._read()
            if shortcut.id not in shortcuts:
                raise KeyError(shortcut.id)
            shortcuts[shortcut.id] = shortcut
            logger.info("Modified shortcut %s (%s)", shortcut.id, shortcut.name)
            return self._write(shortcuts)

    def remove_shortcut(self, shortcut: Shortcut | str) -> Dict[str, Shortcut]:
        shortcut_id = shortcut if isinstance(shortcut, str) else shortcut.id
        with self._lock:
            shortcuts = self._read()
            if shortcut_id not in shortcuts:
                raise KeyError(shortcut_id)
            del shortcuts[shortcut_id]
            logger.info("Removed shortcut %s", shortcut_id)
            return self._write(shortcuts)
