"""Genie session and execution models."""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from genieflow.database import Base, JSONType
from genieflow.time_utils import utcnow

GENIE_TYPES = ("grant_writing", "donor_meeting", "newsletter", "email_management")
SESSION_STATUSES = ("draft", "in_progress", "completed", "archived")


class GenieSession(Base):
    """Durable record of one user's interaction with an AI genie."""

    __tablename__ = "genie_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    genie_type = Column(Text, nullable=False)  # see GENIE_TYPES
    status = Column(Text, nullable=False, default="draft")  # see SESSION_STATUSES
    config = Column(JSONType)
    input_data = Column(JSONType)
    output_content = Column(Text)
    output_metadata = Column(JSONType)
    conversation_history = Column(JSONType)  # [{role, content, timestamp}, ...]
    grant_application_id = Column(Integer)
    donor_id = Column(Integer)
    execution_count = Column(Integer, nullable=False, default=0)
    last_executed_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow)

    # Relationships
    executions = relationship(
        "GenieExecution",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="GenieExecution.execution_number.desc()",
    )

    __table_args__ = (Index("idx_genie_sessions_user_updated", "user_id", "updated_at"),)


class GenieExecution(Base):
    """One logged run of a genie session."""

    __tablename__ = "genie_executions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(Integer, ForeignKey("genie_sessions.id", ondelete="CASCADE"), nullable=False)
    execution_number = Column(Integer, nullable=False)
    input_snapshot = Column(JSONType)
    output_snapshot = Column(Text)
    status = Column(Text, nullable=False, default="success")
    started_at = Column(DateTime)
    completed_at = Column(DateTime)

    session = relationship("GenieSession", back_populates="executions")

    __table_args__ = (UniqueConstraint("session_id", "execution_number", name="uq_genie_executions_number"),)
