"""Workflow trigger and run status schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field, PositiveInt, field_validator

from genieflow.schemas.genie_session import CamelModel
from genieflow.time_utils import to_naive_utc


class ReminderPayload(CamelModel):
    """Compliance item fields carried by reminder runs.

    Built from stored items, so the requirement text has no length cap.
    """

    item_id: int
    item_requirement: str
    due_date: datetime

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, value: datetime) -> datetime:
        return to_naive_utc(value)


class ItemReminderTrigger(ReminderPayload):
    """On-demand reminder schedule for one compliance item."""

    item_id: PositiveInt
    item_requirement: str = Field(min_length=1, max_length=500)


class GrantGenerationTrigger(CamelModel):
    """On-demand grant proposal generation."""

    grant_id: PositiveInt
    project_name: str = Field(min_length=1, max_length=500)
    funder_name: str = Field(min_length=1, max_length=300)
    funding_amount: Optional[str] = None
    deadline: Optional[str] = None
    rfp_text: Optional[str] = None
    teaching_materials: Optional[str] = None


class WorkflowAccepted(CamelModel):
    """202 response after a workflow run was enqueued."""

    message: str
    run_id: UUID
    item_id: Optional[int] = None
    grant_id: Optional[int] = None


class WorkflowStepSummary(CamelModel):
    """Checkpoint state of one step."""

    step_key: str
    kind: str
    status: str
    attempts: int
    last_error: Optional[str] = None
    next_attempt_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class WorkflowRunStatus(CamelModel):
    """Workflow run status and progress."""

    run_id: UUID
    workflow: str
    status: str
    attempts: int
    wake_at: Optional[datetime] = None
    started_at: datetime
    finished_at: Optional[datetime] = None
    last_error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    steps: List[WorkflowStepSummary] = []
