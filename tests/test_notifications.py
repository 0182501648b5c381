"""
Tests for transient notifications.
"""

from datetime import timedelta

from thoth.core import NotificationLevel, Notifier
from thoth.models import MessageStatus


class TestNotifier:

    def test_levels_and_listeners(self):
        notifier = Notifier()
        seen = []
        notifier.subscribe(seen.append)

        notifier.error("Failed to send message. Please try again.")
        notifier.success("Registration successful.")

        assert [n.level for n in seen] == [NotificationLevel.ERROR, NotificationLevel.SUCCESS]
        assert notifier.history == seen

    def test_history_is_bounded(self):
        notifier = Notifier(history_size=2)
        for i in range(3):
            notifier.notify(f"n{i}")
        assert [n.message for n in notifier.history] == ["n1", "n2"]

    def test_visibility_expires(self):
        notifier = Notifier(ttl_seconds=5)
        notification = notifier.warning("Your session has expired. Please log in again.")

        assert notifier.visible(notification.created_at + timedelta(seconds=4)) == [notification]
        assert notifier.visible(notification.created_at + timedelta(seconds=5)) == []

    def test_dismiss(self):
        notifier = Notifier()
        keep = notifier.notify("keep")
        drop = notifier.notify("drop")

        notifier.dismiss(drop.id)

        assert notifier.history == [keep]


def test_terminal_statuses():
    assert MessageStatus.DELIVERED.is_terminal
    assert MessageStatus.SENT.is_terminal
    assert not MessageStatus.PENDING.is_terminal
    assert not MessageStatus.FAILED.is_terminal
