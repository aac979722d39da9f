"""
Run State Table

In-memory record of which shortcuts are currently executing.
"""

from __future__ import annotations
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .hooks import ResolvedHooks
    from .runner import ProcessHandle
    from .shortcut import Shortcut


@dataclass(frozen=True)
class RunStateEntry:
    """One in-flight execution.

    Carries the shortcut and its resolved hooks so the stop transition can
    run post-hooks without going back to the store.
    """

    shortcut_id: str
    handle: Optional["ProcessHandle"]
    shortcut: Optional["Shortcut"] = None
    hooks: Optional["ResolvedHooks"] = None
    started_at: float = field(default_factory=time.time)


class RunStateTable:
    """Single source of truth for running shortcuts.

    Only ExecutionManager writes to the table. Writes are short critical
    sections under one lock; reads take no lock and see a consistent dict
    because entries are swapped in and out atomically.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, RunStateEntry] = {}

    def set(self, shortcut_id: str, entry: RunStateEntry) -> bool:
        """Record an entry. Returns False if the id is already present."""
        with self._lock:
            if shortcut_id in self._entries:
                return False
            self._entries[shortcut_id] = entry
            return True

    def clear(
        self, shortcut_id: str, handle: Optional["ProcessHandle"] = None
    ) -> Optional[RunStateEntry]:
        """Remove an entry.

        Args:
            shortcut_id: Id to clear
            handle: If given, only clear when the stored entry has this handle,
                so a stale exit cannot clear a newer run

        Returns:
            The removed entry, or None if nothing was cleared. The caller that
            receives the entry owns the "stopped" transition.
        """
        with self._lock:
            entry = self._entries.get(shortcut_id)
            if entry is None:
                return None
            if handle is not None and entry.handle != handle:
                return None
            del self._entries[shortcut_id]
            return entry

    def get(self, shortcut_id: str) -> Optional[RunStateEntry]:
        return self._entries.get(shortcut_id)

    def __contains__(self, shortcut_id: str) -> bool:
        return shortcut_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def snapshot(self) -> FrozenSet[str]:
        """Ids of all running shortcuts."""
        return frozenset(self._entries.copy())
