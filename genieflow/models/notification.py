"""Notification model."""

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, Text

from genieflow.database import Base
from genieflow.time_utils import utcnow

NOTIFICATION_TYPES = ("reminder", "system", "critical", "update")


class Notification(Base):
    """User-facing notification record."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False)
    type = Column(Text, nullable=False)  # see NOTIFICATION_TYPES
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    action_url = Column(Text)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (Index("idx_notifications_user_id", "user_id"),)
