"""
Shared pytest fixtures for bashshortcuts tests.
"""

import threading

import pytest

from bashshortcuts.events import EventBroadcaster
from bashshortcuts.execution import ExecutionManager
from bashshortcuts.hooks import HookEngine
from bashshortcuts.lifecycle import AppLifecycleSignal
from bashshortcuts.runner import CommandRunner
from bashshortcuts.shortcut import Shortcut
from bashshortcuts.store import SettingsStore


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without child processes")
    config.addinivalue_line("markers", "integration: tests that spawn real processes")


class EventRecorder:
    """Callable subscriber that records events and lets tests wait for them."""

    def __init__(self):
        self.events = []
        self._cond = threading.Condition()

    def __call__(self, event):
        with self._cond:
            self.events.append(event)
            self._cond.notify_all()

    def of_type(self, event_type):
        with self._cond:
            return [e for e in self.events if e.type is event_type]

    def wait_for(self, event_type, count=1, timeout=5.0):
        with self._cond:
            return self._cond.wait_for(
                lambda: len([e for e in self.events if e.type is event_type]) >= count,
                timeout,
            )


class FakeSink:
    """Notification sink that remembers toasts."""

    def __init__(self):
        self.toasts = []

    def toast(self, title, message):
        self.toasts.append((title, message))


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def fake_sink():
    return FakeSink()


@pytest.fixture
def make_shortcut():
    """Factory fixture for shortcuts with readable ids."""

    def _make(id="s1", cmd="sleep 30", name=None, position=0, is_app=False, hooks=()):
        return Shortcut(
            id=id,
            name=name or id,
            cmd=cmd,
            position=position,
            is_app=is_app,
            hooks=hooks,
        )

    return _make


@pytest.fixture
def broadcaster():
    b = EventBroadcaster()
    yield b
    b.close()


@pytest.fixture
def lifecycle():
    signal = AppLifecycleSignal()
    yield signal
    signal.close()


@pytest.fixture
def settings():
    return SettingsStore()


@pytest.fixture
def runner():
    return CommandRunner(poll_interval=0.05, kill_timeout=1.0)


@pytest.fixture
def make_manager(runner, broadcaster, lifecycle, settings):
    """Factory fixture for ExecutionManagers; kills leftovers on teardown."""
    managers = []

    def _make(hooks=None, **kwargs):
        options = dict(
            runner=runner,
            hook_engine=HookEngine(hooks or {}),
            broadcaster=broadcaster,
            lifecycle=lifecycle,
            settings=settings,
        )
        options.update(kwargs)
        manager = ExecutionManager(**options)
        managers.append(manager)
        return manager

    yield _make

    for manager in managers:
        for shortcut_id in manager.running():
            manager.kill(shortcut_id)
        manager.close()


@pytest.fixture
def manager(make_manager):
    return make_manager()
