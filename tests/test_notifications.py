"""Tests for the notification emitter."""

from datetime import datetime, timedelta

from genieflow.models.notification import Notification
from genieflow.services.notifications import emit_reminder, notify_proposal_ready, reminder_message


def test_reminder_message_pluralizes_days():
    """Test singular and plural day wording."""
    assert reminder_message("File 990", 1) == '"File 990" is due in 1 day. Don\'t forget to complete it!'
    assert reminder_message("File 990", 3) == '"File 990" is due in 3 days. Don\'t forget to complete it!'


def test_emit_reminder_rounds_days_up(test_db):
    """Test a partial day counts as a whole day."""
    now = datetime(2026, 3, 2, 9, 0)

    result = emit_reminder(test_db, "user-1", "File 990", now + timedelta(days=2, hours=4), 12, now=now)
    test_db.commit()

    assert result == {"success": True, "itemId": 12}
    notification = test_db.query(Notification).one()
    assert "is due in 3 days." in notification.message
    assert notification.user_id == "user-1"
    assert notification.read is False
    assert notification.action_url == "/compliance-tracker?highlight=12"


def test_emit_reminder_does_not_commit(test_db):
    """Test the notification is only written with the caller's transaction."""
    now = datetime(2026, 3, 2, 9, 0)

    emit_reminder(test_db, "user-1", "File 990", now + timedelta(days=1), 12, now=now)
    test_db.rollback()

    assert test_db.query(Notification).count() == 0


def test_notify_proposal_ready(test_db):
    """Test the proposal notification content."""
    notify_proposal_ready(test_db, "user-1", "River Cleanup")
    test_db.commit()

    notification = test_db.query(Notification).one()
    assert notification.type == "system"
    assert notification.message == 'Your grant proposal "River Cleanup" has been generated successfully.'
