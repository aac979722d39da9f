"""
Command Runner

Spawns shortcut commands as detached child processes and reports their exit.
"""

from __future__ import annotations
import logging
import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .errors import KillError, SpawnError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessHandle:
    """Opaque reference to a spawned (or adopted) process group."""

    pid: int
    pgid: int
    popen: Optional[subprocess.Popen] = field(default=None, compare=False, repr=False)

    @property
    def adopted(self) -> bool:
        """True when the process was not spawned by this runner."""
        return self.popen is None


class ExitSignal:
    """Single-fire exit notification.

    Fires exactly once. The exit code is the process return code, negative
    when the process died from a signal, or None when it could not be
    observed (adopted processes).
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._fired = threading.Event()
        self._code: Optional[int] = None
        self._callbacks: List[Callable[[Optional[int]], None]] = []

    @property
    def fired(self) -> bool:
        return self._fired.is_set()

    @property
    def code(self) -> Optional[int]:
        return self._code

    def fire(self, code: Optional[int]) -> bool:
        """Deliver the exit code. Returns False if already fired."""
        with self._lock:
            if self._fired.is_set():
                return False
            self._code = code
            self._fired.set()
            callbacks, self._callbacks = self._callbacks, []

        for callback in callbacks:
            callback(code)
        return True

    def add_callback(self, callback: Callable[[Optional[int]], None]):
        """Register a callback. Runs immediately if the signal already fired."""
        with self._lock:
            if not self._fired.is_set():
                self._callbacks.append(callback)
                return
            code = self._code
        callback(code)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until fired. Returns False on timeout."""
        return self._fired.wait(timeout)


def _read_stat(pid) -> Optional[List[str]]:
    """Fields of /proc/<pid>/stat after comm, starting with the state (Linux only)."""
    try:
        with open(f"/proc/{pid}/stat", "r") as f:
            stat = f.read()
    except (IOError, OSError):
        return None
    # comm may contain spaces and parens, state follows the last ')'
    return stat.rpartition(")")[2].split()


def _proc_state(pid: int) -> Optional[str]:
    fields = _read_stat(pid)
    return fields[0] if fields else None


def _group_members(pgid: int) -> List[int]:
    """Live (non-zombie) pids in a process group, scanned from /proc."""
    members = []
    for entry in os.listdir("/proc"):
        if not entry.isdigit():
            continue
        fields = _read_stat(entry)
        # state, ppid, pgrp
        if fields and len(fields) > 2 and fields[0] != "Z" and int(fields[2]) == pgid:
            members.append(int(entry))
    return members


class CommandRunner:
    """Runs shell command lines as detached process groups.

    Responsibilities:
    - start: spawn a command, return its handle and exit signal
    - adopt: watch a pre-existing pid found at startup
    - kill: terminate a process group and wait for it (idempotent)
    - is_alive: liveness probe by pid
    - group_alive: liveness probe by process group
    """

    def __init__(
        self,
        shell: Optional[str] = None,
        kill_signal: int = signal.SIGTERM,
        poll_interval: float = 1.0,
        kill_timeout: float = 5.0,
    ):
        """Initialize command runner.

        Args:
            shell: Shell executable, None for the platform default (/bin/sh)
            kill_signal: Signal sent to the process group on kill
            poll_interval: Liveness polling interval for adopted processes
            kill_timeout: Seconds to wait for the group to exit before
                escalating to SIGKILL (and again after it)
        """
        self.shell = shell
        self.kill_signal = kill_signal
        self.poll_interval = poll_interval
        self.kill_timeout = kill_timeout

    def start(self, cmd: str) -> Tuple[ProcessHandle, ExitSignal]:
        """Spawn a command line in its own session.

        Args:
            cmd: Shell command line to execute

        Returns:
            (handle, exit_signal); returns without waiting for the command

        Raises:
            SpawnError: If the command is empty or could not be spawned
        """
        if not cmd or not cmd.strip():
            raise SpawnError("Empty command")

        try:
            env = os.environ.copy()
            proc = subprocess.Popen(
                cmd,
                shell=True,
                executable=self.shell,
                start_new_session=True,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                env=env,
            )
        except (OSError, ValueError) as e:
            # ValueError: embedded null byte
            raise SpawnError(f"Failed to spawn {cmd!r}: {e}") from e

        # start_new_session makes the child a group leader
        handle = ProcessHandle(pid=proc.pid, pgid=proc.pid, popen=proc)
        exit_signal = ExitSignal()
        threading.Thread(
            target=self._wait_for_exit,
            args=(proc, exit_signal),
            name=f"shortcut-wait-{proc.pid}",
            daemon=True,
        ).start()

        logger.debug("Spawned pid %d: %s", proc.pid, cmd)
        return handle, exit_signal

    def adopt(self, pid: int) -> Optional[Tuple[ProcessHandle, ExitSignal]]:
        """Start watching a process this runner did not spawn.

        Args:
            pid: Process id recorded before a restart

        Returns:
            (handle, exit_signal), or None if the pid is not alive
        """
        try:
            pgid = os.getpgid(pid)
        except ProcessLookupError:
            return None

        handle = ProcessHandle(pid=pid, pgid=pgid)
        if not self.is_alive(handle):
            return None

        exit_signal = ExitSignal()
        threading.Thread(
            target=self._poll_for_exit,
            args=(handle, exit_signal),
            name=f"shortcut-poll-{pid}",
            daemon=True,
        ).start()

        logger.debug("Adopted pid %d (pgid %d)", pid, pgid)
        return handle, exit_signal

    def kill(self, handle: ProcessHandle, timeout: Optional[float] = None) -> bool:
        """Terminate the handle's process group and wait until it is gone.

        Sends the kill signal, then SIGKILL if the group outlives the timeout.

        Args:
            handle: Process to terminate
            timeout: Seconds per wait, defaults to kill_timeout

        Returns:
            True if the group was signalled and has exited, False if it was
            not running

        Raises:
            KillError: If the group could not be signalled or survived SIGKILL
        """
        if timeout is None:
            timeout = self.kill_timeout
        if not self.group_alive(handle):
            return False

        if not self._signal_group(handle, self.kill_signal):
            return False
        if self._wait_group(handle, timeout):
            return True

        logger.warning("pgid %d ignored signal %d, sending SIGKILL", handle.pgid, self.kill_signal)
        self._signal_group(handle, signal.SIGKILL)
        if not self._wait_group(handle, timeout):
            raise KillError(f"Process group {handle.pgid} survived SIGKILL")
        return True

    def _signal_group(self, handle: ProcessHandle, sig: int) -> bool:
        try:
            os.killpg(handle.pgid, sig)
        except ProcessLookupError:
            return False
        except OSError as e:
            raise KillError(f"Failed to signal pid {handle.pid}: {e}") from e
        logger.debug("Sent signal %d to pgid %d", sig, handle.pgid)
        return True

    def _wait_group(self, handle: ProcessHandle, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while self.group_alive(handle):
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.02)
        return True

    def group_alive(self, handle: ProcessHandle) -> bool:
        """Check whether any non-zombie process is left in the handle's group."""
        if os.path.isdir("/proc"):
            return bool(_group_members(handle.pgid))
        try:
            os.killpg(handle.pgid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True

    def is_alive(self, handle: ProcessHandle) -> bool:
        """Check whether the process behind a handle still exists."""
        if handle.popen is not None:
            return handle.popen.poll() is None

        try:
            os.kill(handle.pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists but belongs to someone else
            return True

        # An unreaped zombie still answers signal 0
        return _proc_state(handle.pid) != "Z"

    def _wait_for_exit(self, proc: subprocess.Popen, exit_signal: ExitSignal):
        """Block on the child and fire its exit signal."""
        code = proc.wait()
        logger.debug("pid %d exited with %d", proc.pid, code)
        exit_signal.fire(code)

    def _poll_for_exit(self, handle: ProcessHandle, exit_signal: ExitSignal):
        """Poll an adopted pid until it disappears."""
        while not exit_signal.wait(self.poll_interval):
            if not self.is_alive(handle):
                logger.debug("Adopted pid %d is gone", handle.pid)
                exit_signal.fire(None)
