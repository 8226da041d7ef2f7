"""Grant application model."""

from sqlalchemy import Column, DateTime, Integer, Text

from genieflow.database import Base
from genieflow.time_utils import utcnow


class GrantApplication(Base):
    """Grant application whose proposal is written by the generation workflow."""

    __tablename__ = "grant_applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False)
    project_name = Column(Text, nullable=False)
    funder_name = Column(Text, nullable=False)
    funding_amount = Column(Text)
    deadline = Column(Text)
    proposal_content = Column(Text)
    status = Column(Text, nullable=False, default="Not Started")
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
