"""Compliance item model."""

from sqlalchemy import Column, DateTime, Index, Integer, Text

from genieflow.database import Base
from genieflow.time_utils import utcnow

COMPLIANCE_STATUSES = ("Upcoming", "InProgress", "Completed", "Overdue")


class ComplianceItem(Base):
    """A tracked obligation with a due date requiring user action."""

    __tablename__ = "compliance_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False)
    requirement = Column(Text, nullable=False)
    due_date = Column(DateTime, nullable=False)
    status = Column(Text, nullable=False, default="Upcoming")  # see COMPLIANCE_STATUSES
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_compliance_items_status_due", "status", "due_date"),
        Index("idx_compliance_items_user_id", "user_id"),
    )
