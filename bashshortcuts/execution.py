"""
Execution Manager

Launches and kills shortcuts, applies hooks around them, and keeps the run
state table in step with process and app lifecycle events.
"""

from __future__ import annotations
import logging
import shlex
import threading
from collections import defaultdict
from enum import Enum, auto
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from pubsub import pub

from . import topics
from .errors import CommunicationError, HookError, KillError, SpawnError
from .events import EventType, ShortcutEvent
from .hooks import ResolvedHooks
from .state import RunStateEntry, RunStateTable
from .store import RUNNING_PIDS_KEY

if TYPE_CHECKING:
    from .events import EventBroadcaster
    from .hooks import HookEngine
    from .lifecycle import AppLifecycleSignal
    from .runner import CommandRunner, ProcessHandle
    from .shortcut import Shortcut
    from .store import SettingsStore

logger = logging.getLogger(__name__)

Flags = Sequence[Tuple[str, object]]


class ShortcutState(Enum):
    """Per-shortcut execution state."""

    IDLE = auto()
    LAUNCHING = auto()
    RUNNING = auto()
    STOPPING = auto()


def build_command(cmd: str, flags: Optional[Flags] = None) -> str:
    """Append ``-<flag> <value>`` pairs to a command line, shell-quoted."""
    if not flags:
        return cmd
    parts = [cmd]
    for flag, value in flags:
        parts.append(f"-{flag} {shlex.quote(str(value))}")
    return " ".join(parts)


class ExecutionManager:
    """Orchestrates shortcut launch, kill and state queries.

    This component self-subscribes to the launch/kill command topics and is
    the only writer of its RunStateTable.

    State machine per shortcut id:
        IDLE -> LAUNCHING -> RUNNING -> (STOPPING) -> IDLE

    Transitions for one id are serialized by a per-id lock, so a shortcut
    never reports two starts without a stop in between. Whichever of kill
    and natural exit clears the table entry first owns the stop: it runs the
    post-hooks and publishes the single "end" event.
    """

    def __init__(
        self,
        runner: "CommandRunner",
        hook_engine: "HookEngine",
        broadcaster: "EventBroadcaster",
        table: Optional[RunStateTable] = None,
        lifecycle: Optional["AppLifecycleSignal"] = None,
        settings: Optional["SettingsStore"] = None,
        bus=pub,
    ):
        """Initialize execution manager.

        Args:
            runner: Spawns and signals processes
            hook_engine: Resolves and runs pre/post hooks
            broadcaster: Lifecycle event fan-out
            table: Run state table (a fresh one by default)
            lifecycle: App lifecycle bridge; without it app shortcuts fall
                back to their process exit
            settings: Settings store used to remember running pids
            bus: Event bus instance (Pypubsub)
        """
        self.runner = runner
        self.hook_engine = hook_engine
        self.broadcaster = broadcaster
        self.table = table if table is not None else RunStateTable()
        self.lifecycle = lifecycle
        self.settings = settings
        self.bus = bus

        self._lock = threading.Lock()
        self._launching: Set[str] = set()
        self._stopping: Set[str] = set()
        self._transition_locks: Dict[str, threading.RLock] = defaultdict(threading.RLock)

        self._setup_subscriptions()

    def _setup_subscriptions(self):
        """Subscribe to shortcut command events."""
        self.bus.subscribe(self._on_launch_command, topics.CMD_LAUNCH_SHORTCUT)
        self.bus.subscribe(self._on_kill_command, topics.CMD_KILL_SHORTCUT)

    def close(self):
        """Detach from the bus. Running processes are left alone."""
        self.bus.unsubscribe(self._on_launch_command, topics.CMD_LAUNCH_SHORTCUT)
        self.bus.unsubscribe(self._on_kill_command, topics.CMD_KILL_SHORTCUT)

    def _on_launch_command(self, shortcut: "Shortcut", flags: Optional[Flags] = None):
        """Handle CMD_LAUNCH_SHORTCUT command."""
        self.launch(shortcut, flags)

    def _on_kill_command(self, shortcut: "Shortcut"):
        """Handle CMD_KILL_SHORTCUT command."""
        self.kill(shortcut)

    def _transition_lock(self, shortcut_id: str) -> threading.RLock:
        with self._lock:
            return self._transition_locks[shortcut_id]

    # Queries

    def is_running(self, shortcut_id: str) -> bool:
        """Check the run state table. Never blocks on process I/O."""
        return shortcut_id in self.table

    def running(self):
        """Ids of all running shortcuts."""
        return self.table.snapshot()

    def get_state(self, shortcut_id: str) -> ShortcutState:
        with self._lock:
            if shortcut_id in self._launching:
                return ShortcutState.LAUNCHING
            if shortcut_id in self._stopping:
                return ShortcutState.STOPPING
        if shortcut_id in self.table:
            return ShortcutState.RUNNING
        return ShortcutState.IDLE

    # Transitions

    def launch(self, shortcut: "Shortcut", flags: Optional[Flags] = None) -> bool:
        """Run pre-hooks, spawn the shortcut and record it as running.

        Blocks for the duration of the pre-hooks and the spawn, not the run.

        Returns:
            True if the shortcut is now running, False if it was already
            running, has no command, or failed to start
        """
        if not shortcut.cmd or not shortcut.cmd.strip():
            logger.error("Shortcut %s (%s) has no command", shortcut.id, shortcut.name)
            return False

        with self._lock:
            if shortcut.id in self.table or shortcut.id in self._launching:
                logger.info("Shortcut %s is already running", shortcut.id)
                return False
            self._launching.add(shortcut.id)

        try:
            try:
                hooks = self.hook_engine.resolve(shortcut.hooks)
                self.hook_engine.run_pre(hooks, shortcut)
                handle, exit_signal = self.runner.start(build_command(shortcut.cmd, flags))
            except (HookError, SpawnError) as e:
                logger.error("Failed to launch shortcut %s: %s", shortcut.id, e)
                self.broadcaster.publish(
                    ShortcutEvent(shortcut.id, EventType.LAUNCH_FAILED, message=str(e))
                )
                return False

            with self._transition_lock(shortcut.id):
                self.table.set(
                    shortcut.id,
                    RunStateEntry(shortcut.id, handle, shortcut=shortcut, hooks=hooks),
                )
                with self._lock:
                    self._launching.discard(shortcut.id)

                logger.info(
                    "Launched shortcut %s (%s) as pid %d", shortcut.id, shortcut.name, handle.pid
                )
                self.broadcaster.publish(ShortcutEvent(shortcut.id, EventType.START))

                # Watch for the end only after "start" went out
                if shortcut.is_app and self.lifecycle is not None:
                    self.lifecycle.register(
                        shortcut.id,
                        lambda status: self._on_app_ended(shortcut.id, handle, status),
                    )
                else:
                    if not shortcut.is_app:
                        self._remember_pid(shortcut.id, handle.pid)
                    exit_signal.add_callback(
                        lambda code: self._on_exit(shortcut.id, handle, code)
                    )
            return True
        finally:
            with self._lock:
                self._launching.discard(shortcut.id)

    def kill(self, shortcut: "Shortcut | str") -> bool:
        """Terminate a running shortcut, run its post-hooks and clear it.

        Blocks until the process group has exited (escalating to SIGKILL),
        so a relaunch never overlaps the old run.

        Returns:
            True if the process group was terminated. False if the shortcut
            was not running or could not be stopped; in both cases it is no
            longer recorded as running.
        """
        shortcut_id = shortcut if isinstance(shortcut, str) else shortcut.id

        with self._transition_lock(shortcut_id):
            entry = self.table.get(shortcut_id)
            if entry is None:
                logger.info("Shortcut %s is not running", shortcut_id)
                return False

            with self._lock:
                self._stopping.add(shortcut_id)
            try:
                error = ""
                try:
                    signalled = entry.handle is not None and self.runner.kill(entry.handle)
                    if not signalled:
                        error = "Process was not running"
                except KillError as e:
                    signalled = False
                    error = str(e)

                if not signalled:
                    logger.warning("Failed to kill shortcut %s: %s", shortcut_id, error)

                self._finish(entry, status=None, killed=True)
                if not signalled:
                    self.broadcaster.publish(
                        ShortcutEvent(shortcut_id, EventType.KILL_FAILED, message=error)
                    )
            finally:
                with self._lock:
                    self._stopping.discard(shortcut_id)

        return signalled

    def _on_exit(
        self, shortcut_id: str, handle: "ProcessHandle", code: Optional[int]
    ) -> Optional[RunStateEntry]:
        """Natural exit of a process or app. Returns the finished entry."""
        with self._transition_lock(shortcut_id):
            entry = self.table.get(shortcut_id)
            if entry is None or entry.handle != handle:
                # Killed already, or a newer run owns the id
                return None

            with self._lock:
                self._stopping.add(shortcut_id)
            try:
                self._finish(entry, status=code, killed=False)
            finally:
                with self._lock:
                    self._stopping.discard(shortcut_id)
            return entry

    def _on_app_ended(self, shortcut_id: str, handle: "ProcessHandle", status: Optional[int]):
        """The host closed an app; stop whatever its launcher left running."""
        if self._on_exit(shortcut_id, handle, status) is None:
            return
        try:
            self.runner.kill(handle)
        except KillError as e:
            logger.warning("Failed to stop launcher of app %s: %s", shortcut_id, e)

    def _finish(self, entry: RunStateEntry, status: Optional[int], killed: bool):
        """Clear an entry, run post-hooks and announce the end.

        Must be called with the shortcut's transition lock held.
        """
        shortcut_id = entry.shortcut_id
        if self.table.clear(shortcut_id, entry.handle) is None:
            return

        if self.lifecycle is not None:
            self.lifecycle.unregister(shortcut_id)
        self._forget_pid(shortcut_id)

        if entry.hooks and entry.shortcut is not None:
            self.hook_engine.run_post(entry.hooks, entry.shortcut)

        if killed:
            logger.info("Shortcut %s was killed", shortcut_id)
        else:
            logger.info("Shortcut %s ended with status %s", shortcut_id, status)

        self.broadcaster.publish(
            ShortcutEvent(shortcut_id, EventType.END, status=status, killed=killed)
        )

    # Reconciliation

    def reconcile(self, shortcuts: Mapping[str, "Shortcut"]) -> List[str]:
        """Adopt background processes that survived a restart.

        Reads the pids remembered in the settings store, adopts every pid
        that is still alive and belongs to a known shortcut, and forgets the
        rest. Adopted runs end with status None because their exit code
        cannot be observed.

        Returns:
            Ids of the adopted shortcuts
        """
        if self.settings is None:
            return []

        try:
            pids = self.settings.get(RUNNING_PIDS_KEY, {}) or {}
        except CommunicationError as e:
            logger.warning("Cannot read running pids: %s", e)
            return []

        if not isinstance(pids, dict):
            logger.warning("Ignoring malformed running pids: %r", pids)
            pids = {}

        adopted: List[str] = []
        kept: Dict[str, int] = {}
        for shortcut_id, raw_pid in pids.items():
            shortcut = shortcuts.get(shortcut_id)
            if shortcut is None or shortcut.is_app:
                continue
            try:
                pid = int(raw_pid)
            except (TypeError, ValueError):
                pid = 0
            if pid <= 0:
                logger.warning("Ignoring malformed pid %r for shortcut %s", raw_pid, shortcut_id)
                continue
            if shortcut_id in self.table:
                kept[shortcut_id] = pid
                continue

            watched = self.runner.adopt(pid)
            if watched is None:
                logger.info("Dropping stale pid %s for shortcut %s", pid, shortcut_id)
                continue
            handle, exit_signal = watched

            try:
                hooks = self.hook_engine.resolve(shortcut.hooks)
            except HookError as e:
                logger.warning("Adopted shortcut %s has unusable hooks: %s", shortcut_id, e)
                hooks = ResolvedHooks()

            with self._transition_lock(shortcut_id):
                self.table.set(
                    shortcut_id,
                    RunStateEntry(shortcut_id, handle, shortcut=shortcut, hooks=hooks),
                )
                logger.info("Adopted pid %d for shortcut %s", handle.pid, shortcut_id)
                self.broadcaster.publish(ShortcutEvent(shortcut_id, EventType.START))
                exit_signal.add_callback(
                    lambda code, sid=shortcut_id, h=handle: self._on_exit(sid, h, code)
                )
            kept[shortcut_id] = handle.pid
            adopted.append(shortcut_id)

        self._write_pids(kept)
        return adopted

    def _remember_pid(self, shortcut_id: str, pid: int):
        if self.settings is None:
            return
        with self._lock:
            try:
                pids = self.settings.get(RUNNING_PIDS_KEY, {}) or {}
                pids[shortcut_id] = pid
                self.settings.set(RUNNING_PIDS_KEY, pids)
            except CommunicationError as e:
                logger.warning("Cannot record pid for %s: %s", shortcut_id, e)

    def _forget_pid(self, shortcut_id: str):
        if self.settings is None:
            return
        with self._lock:
            try:
                pids = self.settings.get(RUNNING_PIDS_KEY, {}) or {}
                if pids.pop(shortcut_id, None) is not None:
                    self.settings.set(RUNNING_PIDS_KEY, pids)
            except CommunicationError as e:
                logger.warning("Cannot forget pid for %s: %s", shortcut_id, e)

    def _write_pids(self, pids: Dict[str, int]):
        with self._lock:
            try:
                self.settings.set(RUNNING_PIDS_KEY, pids)
            except CommunicationError as e:
                logger.warning("Cannot write running pids: %s", e)
