"""Workflow run and step checkpoint models."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from genieflow.database import Base, JSONType
from genieflow.time_utils import utcnow


class WorkflowRun(Base):
    """A durable workflow instance, claimed and resumed by the worker."""

    __tablename__ = "workflow_runs"

    run_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    workflow = Column(Text, nullable=False)  # registered workflow name
    user_id = Column(Text)  # Nullable for system-triggered runs
    status = Column(Text, nullable=False)  # 'queued', 'running', 'sleeping', 'completed', 'degraded', 'failed'
    payload = Column(JSONType)
    result = Column(JSONType)
    idempotency_key = Column(Text, unique=True)
    parent_run_id = Column(Uuid, ForeignKey("workflow_runs.run_id", ondelete="SET NULL"))
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text)
    wake_at = Column(DateTime)
    claimed_at = Column(DateTime)
    started_at = Column(DateTime, nullable=False)
    finished_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    steps = relationship(
        "WorkflowStep",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="WorkflowStep.step_pk",
    )

    __table_args__ = (
        Index("idx_workflow_runs_status_wake", "status", "wake_at"),
        Index("idx_workflow_runs_parent", "parent_run_id"),
    )


class WorkflowStep(Base):
    """Checkpoint for one step or sleep of a workflow run."""

    __tablename__ = "workflow_steps"

    step_pk = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(Uuid, ForeignKey("workflow_runs.run_id", ondelete="CASCADE"), nullable=False)
    step_key = Column(Text, nullable=False)
    kind = Column(Text, nullable=False, default="step")  # 'step', 'sleep'
    status = Column(Text, nullable=False)  # 'running', 'retrying', 'completed', 'failed'
    attempts = Column(Integer, nullable=False, default=0)
    output = Column(JSONType)  # {"value": <checkpointed result>}
    last_error = Column(Text)
    next_attempt_at = Column(DateTime)
    started_at = Column(DateTime)
    completed_at = Column(DateTime)

    run = relationship("WorkflowRun", back_populates="steps")

    __table_args__ = (UniqueConstraint("run_id", "step_key", name="uq_workflow_steps_key"),)
