"""
Unit tests for ShortcutNotifier toasts.
"""

import pytest

from bashshortcuts.events import EventType, ShortcutEvent
from bashshortcuts.notify import (
    CANCELED_MESSAGE,
    FINISHED_MESSAGE,
    KILL_FAILED_MESSAGE,
    LAUNCH_FAILED_MESSAGE,
    LogNotificationSink,
    NotifySendSink,
    ShortcutNotifier,
)
from bashshortcuts.store import SettingsStore, ShortcutStore


@pytest.fixture
def store(make_shortcut):
    store = ShortcutStore(SettingsStore())
    store.add_shortcut(make_shortcut("s1", name="Backup"))
    return store


@pytest.fixture
def notifier(fake_sink, store):
    n = ShortcutNotifier(fake_sink, store=store)
    yield n
    n.close()


@pytest.mark.unit
class TestShortcutNotifier:
    """Test toast messages for lifecycle events."""

    def test_finished(self, notifier, broadcaster, fake_sink):
        broadcaster.publish(ShortcutEvent("s1", EventType.END, status=0))

        assert fake_sink.toasts == [("Backup", FINISHED_MESSAGE)]

    @pytest.mark.parametrize("status,killed", [(1, False), (-15, False), (None, True)])
    def test_canceled(self, notifier, broadcaster, fake_sink, status, killed):
        broadcaster.publish(ShortcutEvent("s1", EventType.END, status=status, killed=killed))

        assert fake_sink.toasts == [("Backup", CANCELED_MESSAGE)]

    def test_launch_failed(self, notifier, broadcaster, fake_sink):
        broadcaster.publish(ShortcutEvent("s1", EventType.LAUNCH_FAILED, message="boom"))

        assert fake_sink.toasts == [("Error", LAUNCH_FAILED_MESSAGE)]

    def test_kill_failed(self, notifier, broadcaster, fake_sink):
        broadcaster.publish(ShortcutEvent("s1", EventType.KILL_FAILED))

        assert fake_sink.toasts == [("Error", KILL_FAILED_MESSAGE)]

    def test_start_is_silent(self, notifier, broadcaster, fake_sink):
        broadcaster.publish(ShortcutEvent("s1", EventType.START))

        assert fake_sink.toasts == []

    def test_unknown_shortcut_titled_by_id(self, notifier, broadcaster, fake_sink):
        broadcaster.publish(ShortcutEvent("ghost", EventType.END, status=0))

        assert fake_sink.toasts == [("ghost", FINISHED_MESSAGE)]

    def test_sink_failure_swallowed(self, broadcaster):
        class BrokenSink:
            def toast(self, title, message):
                raise RuntimeError("no display")

        notifier = ShortcutNotifier(BrokenSink())
        try:
            broadcaster.publish(ShortcutEvent("s1", EventType.END, status=0))
        finally:
            notifier.close()

    def test_missing_notify_command_swallowed(self, broadcaster):
        notifier = ShortcutNotifier(NotifySendSink("/nonexistent/notify-send"))
        try:
            broadcaster.publish(ShortcutEvent("s1", EventType.END, status=0))
        finally:
            notifier.close()

    def test_log_sink(self, caplog):
        with caplog.at_level("INFO"):
            LogNotificationSink().toast("Backup", FINISHED_MESSAGE)

        assert "Backup" in caplog.text
