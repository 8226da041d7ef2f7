"""Compliance reminder workflows.

- daily_compliance_check: finds items due within the lookahead window and
  starts one send_reminder run per item.
- send_reminder: emits a single reminder notification.
- item_reminder: sleeps until 7, 3 and 1 day(s) before the due date and emits
  a reminder at each mark that was still ahead when the run started.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from genieflow.config import settings
from genieflow.errors import NotFoundError, OwnershipError
from genieflow.models.compliance import ComplianceItem
from genieflow.schemas.workflow import ReminderPayload
from genieflow.services.notifications import emit_reminder
from genieflow.time_utils import days_before, days_between
from genieflow.workflows.base import BaseWorkflow

logger = logging.getLogger(__name__)

REMINDER_THRESHOLDS = (7, 3, 1)


def daily_check_key(day: date) -> str:
    """Idempotency key shared by the cron route and the worker schedule."""
    return f"daily-compliance-check:{day.isoformat()}"


def find_upcoming_deadlines(db: Session, days_ahead: int, now: datetime) -> List[ComplianceItem]:
    """Return Upcoming items due within [now, now + days_ahead days]."""
    return (
        db.query(ComplianceItem)
        .filter(
            ComplianceItem.status == "Upcoming",
            ComplianceItem.due_date >= now,
            ComplianceItem.due_date <= now + timedelta(days=days_ahead),
        )
        .order_by(ComplianceItem.due_date, ComplianceItem.id)
        .all()
    )


def get_compliance_item(db: Session, user_id: str, item_id: int) -> ComplianceItem:
    """Return the user's compliance item or raise NotFoundError."""
    item = db.query(ComplianceItem).filter(ComplianceItem.id == item_id).first()
    if not item:
        raise NotFoundError(f"Compliance item {item_id} not found")
    if item.user_id != user_id:
        raise OwnershipError(f"Compliance item {item_id} not found")
    return item


class DailyComplianceCheckWorkflow(BaseWorkflow):
    """Daily sweep over upcoming compliance deadlines."""

    NAME = "daily_compliance_check"

    def _find_items(self, days_ahead: int) -> List[Dict[str, Any]]:
        items = find_upcoming_deadlines(self.db, days_ahead, self.started_at)
        return [
            {
                "id": item.id,
                "userId": item.user_id,
                "requirement": item.requirement,
                "dueDate": item.due_date.isoformat(),
            }
            for item in items
        ]

    def _run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Start one independent reminder run per upcoming item."""
        days_ahead = int(payload.get("daysAhead", settings.REMINDER_LOOKAHEAD_DAYS))
        items = self.step("find-upcoming-deadlines", self._find_items, days_ahead)

        dispatched = []
        for item in items:
            child_run_id = self.start_child(
                f"dispatch:{item['id']}",
                SendReminderWorkflow.NAME,
                {
                    "userId": item["userId"],
                    "itemId": item["id"],
                    "itemRequirement": item["requirement"],
                    "dueDate": item["dueDate"],
                },
                user_id=item["userId"],
                idempotency_key=f"{daily_check_key(self.started_at.date())}:{item['id']}",
            )
            dispatched.append({"itemId": item["id"], "runId": child_run_id})

        logger.info(f"Daily compliance check dispatched {len(dispatched)} reminder(s)")

        return {
            "success": True,
            "remindersSet": len(dispatched),
            "items": dispatched,
        }


class SendReminderWorkflow(BaseWorkflow):
    """Emit one reminder; isolated so each item retries on its own."""

    NAME = "send_reminder"

    def _run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        item = ReminderPayload.model_validate(payload)
        user_id = self.user_id_from(payload)

        return self.step(
            "emit",
            lambda: emit_reminder(
                self.db,
                user_id,
                item.item_requirement,
                item.due_date,
                item.item_id,
                now=self.now(),
            ),
        )


class ItemReminderWorkflow(BaseWorkflow):
    """Reminders at 7, 3 and 1 day(s) before one item's due date."""

    NAME = "item_reminder"

    def _run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        item = ReminderPayload.model_validate(payload)
        user_id = self.user_id_from(payload)

        # Measured from started_at so every replay skips the same thresholds
        days_until_due = days_between(self.started_at, item.due_date)
        if days_until_due <= 0:
            # TODO: decide whether overdue items should get a catch-up reminder
            logger.warning(f"Item {item.item_id} is already past due; no reminders scheduled")

        for threshold in REMINDER_THRESHOLDS:
            if days_until_due <= threshold:
                continue

            self.sleep_until(f"wait-{threshold}d", days_before(item.due_date, threshold))
            self.step(
                f"remind-{threshold}d",
                lambda: emit_reminder(
                    self.db,
                    user_id,
                    item.item_requirement,
                    item.due_date,
                    item.item_id,
                    now=self.now(),
                ),
            )

        return {
            "success": True,
            "itemId": item.item_id,
            "remindersSent": True,
        }
