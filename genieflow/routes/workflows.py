"""Workflow trigger routes."""

import logging
import uuid
from typing import Any, Dict, Optional

import pydantic
from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session

from genieflow.database import get_db
from genieflow.deps import get_current_user_id
from genieflow.errors import NotFoundError
from genieflow.models.workflow import WorkflowRun
from genieflow.schemas.workflow import (
    GrantGenerationTrigger,
    ItemReminderTrigger,
    WorkflowAccepted,
    WorkflowRunStatus,
    WorkflowStepSummary,
)
from genieflow.workflows.compliance_reminders import (
    DailyComplianceCheckWorkflow,
    ItemReminderWorkflow,
    get_compliance_item,
)
from genieflow.workflows.grant_generation import GrantGenerationWorkflow
from genieflow.workflows.runs import start_workflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.post("/compliance-reminders", response_model=WorkflowAccepted, status_code=202)
def trigger_compliance_reminders(
    body: Optional[Dict[str, Any]] = Body(None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Start an item reminder schedule, or the daily check when no item is given."""
    if body and "itemId" in body:
        try:
            data = ItemReminderTrigger.model_validate(body)
        except pydantic.ValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))

        try:
            get_compliance_item(db, user_id, data.item_id)
        except NotFoundError:
            raise HTTPException(status_code=404, detail="Compliance item not found")

        payload = data.model_dump(mode="json", by_alias=True)
        payload["userId"] = user_id
        run = start_workflow(db, ItemReminderWorkflow.NAME, payload, user_id=user_id)

        return WorkflowAccepted(
            message="Item reminder workflow started",
            run_id=run.run_id,
            item_id=data.item_id,
        )

    run = start_workflow(db, DailyComplianceCheckWorkflow.NAME, {}, user_id=user_id)
    return WorkflowAccepted(message="Daily compliance check workflow started", run_id=run.run_id)


@router.post("/grant-generation", response_model=WorkflowAccepted, status_code=202)
def trigger_grant_generation(
    data: GrantGenerationTrigger,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Start proposal generation for a grant application."""
    payload = data.model_dump(mode="json", by_alias=True)
    payload["userId"] = user_id
    run = start_workflow(db, GrantGenerationWorkflow.NAME, payload, user_id=user_id)

    return WorkflowAccepted(
        message="Grant generation workflow started",
        run_id=run.run_id,
        grant_id=data.grant_id,
    )


@router.get("/runs/{run_id}", response_model=WorkflowRunStatus)
def get_run_status(
    run_id: uuid.UUID,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Get run status, result and step checkpoints."""
    run = db.query(WorkflowRun).filter(WorkflowRun.run_id == run_id).first()
    if not run or (run.user_id is not None and run.user_id != user_id):
        raise HTTPException(status_code=404, detail="Workflow run not found")

    return WorkflowRunStatus(
        run_id=run.run_id,
        workflow=run.workflow,
        status=run.status,
        attempts=run.attempts,
        wake_at=run.wake_at,
        started_at=run.started_at,
        finished_at=run.finished_at,
        last_error=run.last_error,
        result=run.result,
        steps=[WorkflowStepSummary.model_validate(s) for s in run.steps],
    )
