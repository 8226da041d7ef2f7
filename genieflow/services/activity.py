"""Activity log writer."""

from typing import Optional

from sqlalchemy.orm import Session

from genieflow.models.activity import ActivityLog


def log_activity(
    db: Session,
    user_id: str,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    details: Optional[str] = None,
) -> ActivityLog:
    """Add an activity log entry to the current transaction."""
    entry = ActivityLog(
        user_id=user_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
    )
    db.add(entry)
    db.flush()
    return entry


def genie_label(genie_type: str) -> str:
    """'grant_writing' -> 'grant writing'."""
    return genie_type.replace("_", " ")
