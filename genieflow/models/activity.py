"""Activity log model."""

from sqlalchemy import Column, DateTime, Index, Integer, Text

from genieflow.database import Base
from genieflow.time_utils import utcnow


class ActivityLog(Base):
    """Append-only audit record."""

    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False)
    action = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=False)
    entity_id = Column(Integer)
    details = Column(Text)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (Index("idx_activity_log_user_id", "user_id"),)
