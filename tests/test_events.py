"""
Unit tests for EventBroadcaster.
"""

import pytest
from pubsub import pub

from bashshortcuts import topics
from bashshortcuts.events import EventType, ShortcutEvent


@pytest.mark.unit
class TestShortcutEvent:
    """Test event wire form."""

    def test_end_wire_form(self):
        event = ShortcutEvent("s1", EventType.END, status=0)

        assert event.to_dict() == {"shortcutId": "s1", "type": "end", "status": 0}
        assert event.succeeded

    def test_killed_wire_form(self):
        event = ShortcutEvent("s1", EventType.END, killed=True)

        assert event.to_dict() == {
            "shortcutId": "s1",
            "type": "end",
            "status": None,
            "killed": True,
        }
        assert not event.succeeded

    def test_topic_per_type(self):
        assert ShortcutEvent("s1", EventType.START).topic == topics.SHORTCUT_STARTED
        assert ShortcutEvent("s1", EventType.END).topic == topics.SHORTCUT_ENDED


@pytest.mark.unit
class TestEventBroadcaster:
    """Test per-shortcut fan-out."""

    def test_delivers_to_subscriber(self, broadcaster, recorder):
        broadcaster.subscribe("s1", recorder)

        broadcaster.publish(ShortcutEvent("s1", EventType.START))

        assert [e.type for e in recorder.events] == [EventType.START]

    def test_fan_out(self, broadcaster, recorder):
        """Test every subscriber of an id is notified."""
        other = []
        broadcaster.subscribe("s1", recorder)
        broadcaster.subscribe("s1", other.append)

        broadcaster.publish(ShortcutEvent("s1", EventType.END, status=0))

        assert len(recorder.events) == 1
        assert len(other) == 1

    def test_filters_by_shortcut_id(self, broadcaster, recorder):
        broadcaster.subscribe("s1", recorder)

        broadcaster.publish(ShortcutEvent("s2", EventType.START))

        assert recorder.events == []

    def test_no_replay_for_late_subscribers(self, broadcaster, recorder):
        broadcaster.publish(ShortcutEvent("s1", EventType.START))
        broadcaster.subscribe("s1", recorder)

        assert recorder.events == []

    def test_unsubscribe_single_callback(self, broadcaster, recorder):
        other = []
        broadcaster.subscribe("s1", recorder)
        broadcaster.subscribe("s1", other.append)

        broadcaster.unsubscribe("s1", recorder)
        broadcaster.publish(ShortcutEvent("s1", EventType.START))

        assert recorder.events == []
        assert len(other) == 1

    def test_unsubscribe_all(self, broadcaster, recorder):
        broadcaster.subscribe("s1", recorder)
        broadcaster.subscribe("s1", recorder)

        broadcaster.unsubscribe("s1")
        broadcaster.publish(ShortcutEvent("s1", EventType.START))

        assert recorder.events == []
        assert broadcaster.subscriber_count("s1") == 0

    def test_unsubscribe_unknown_is_noop(self, broadcaster):
        broadcaster.unsubscribe("nobody")
        broadcaster.unsubscribe("nobody", print)

    def test_failing_subscriber_does_not_block_others(self, broadcaster, recorder):
        def broken(event):
            raise RuntimeError("stale view")

        broadcaster.subscribe("s1", broken)
        broadcaster.subscribe("s1", recorder)

        broadcaster.publish(ShortcutEvent("s1", EventType.START))

        assert len(recorder.events) == 1

    def test_receives_events_sent_on_the_bus(self, broadcaster, recorder):
        """Test events published directly on the bus reach subscribers."""
        broadcaster.subscribe("s1", recorder)

        pub.sendMessage(topics.SHORTCUT_ENDED, event=ShortcutEvent("s1", EventType.END, status=2))

        assert recorder.events[0].status == 2

    def test_close_detaches(self, broadcaster, recorder):
        broadcaster.subscribe("s1", recorder)
        broadcaster.close()

        pub.sendMessage(topics.SHORTCUT_STARTED, event=ShortcutEvent("s1", EventType.START))

        assert recorder.events == []
        # Re-attach so the fixture teardown can close again
        broadcaster._setup_subscriptions()
