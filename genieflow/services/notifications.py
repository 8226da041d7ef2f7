"""Notification emitter for compliance reminders and workflow results."""

import logging
from datetime import datetime
from typing import Any, Dict

from sqlalchemy.orm import Session

from genieflow.models.notification import Notification
from genieflow.time_utils import ceil_days

logger = logging.getLogger(__name__)


def reminder_message(item_requirement: str, days_until_due: int) -> str:
    """Build the reminder text shown to the user."""
    day_word = "day" if days_until_due == 1 else "days"
    return f'"{item_requirement}" is due in {days_until_due} {day_word}. Don\'t forget to complete it!'


def compliance_action_url(item_id: int) -> str:
    return f"/compliance-tracker?highlight={item_id}"


def emit_reminder(
    db: Session,
    user_id: str,
    item_requirement: str,
    due_date: datetime,
    item_id: int,
    now: datetime,
) -> Dict[str, Any]:
    """
    Add a reminder notification for a compliance item.

    The record is added to the session but not committed; the workflow engine
    commits it together with the step checkpoint.

    Args:
        db: Database session
        user_id: Owner of the compliance item
        item_requirement: Requirement text
        due_date: Item due date (naive UTC)
        item_id: Compliance item id, used for the deep link
        now: Emission time; days until due is computed from it

    Returns:
        {"success": True, "itemId": item_id}
    """
    days_until_due = ceil_days(now, due_date)

    db.add(
        Notification(
            user_id=user_id,
            type="reminder",
            title="Compliance Deadline Approaching",
            message=reminder_message(item_requirement, days_until_due),
            read=False,
            action_url=compliance_action_url(item_id),
        )
    )
    db.flush()

    logger.info(f"Reminder for item {item_id} (user {user_id}): due in {days_until_due} day(s)")

    return {"success": True, "itemId": item_id}


def notify_proposal_ready(db: Session, user_id: str, grant_title: str) -> Dict[str, Any]:
    """Add a notification telling the user their proposal is ready."""
    db.add(
        Notification(
            user_id=user_id,
            type="system",
            title="Grant Proposal Generated",
            message=f'Your grant proposal "{grant_title}" has been generated successfully.',
            read=False,
        )
    )
    db.flush()

    return {"success": True}
