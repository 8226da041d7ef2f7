"""Creating workflow runs."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from genieflow.models.workflow import WorkflowRun
from genieflow.time_utils import utcnow

logger = logging.getLogger(__name__)


def find_run_by_key(db: Session, idempotency_key: str) -> Optional[WorkflowRun]:
    return db.query(WorkflowRun).filter(WorkflowRun.idempotency_key == idempotency_key).first()


def enqueue_run(
    db: Session,
    workflow: str,
    payload: Dict[str, Any],
    user_id: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    parent_run_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> WorkflowRun:
    """
    Add a queued run to the current transaction without committing.

    If a run with the same idempotency key exists, it is returned instead.
    """
    if idempotency_key:
        existing = find_run_by_key(db, idempotency_key)
        if existing:
            logger.info(f"Run for key {idempotency_key} already exists: {existing.run_id}")
            return existing

    run = WorkflowRun(
        workflow=workflow,
        user_id=user_id,
        status="queued",
        payload=payload,
        idempotency_key=idempotency_key,
        parent_run_id=parent_run_id,
        attempts=0,
        started_at=now or utcnow(),
    )
    db.add(run)
    db.flush()  # Flush to get the run_id and surface key conflicts
    return run


def start_workflow(
    db: Session,
    workflow: str,
    payload: Dict[str, Any],
    user_id: Optional[str] = None,
    idempotency_key: Optional[str] = None,
    now: Optional[datetime] = None,
) -> WorkflowRun:
    """Enqueue and commit a run; the worker picks it up asynchronously."""
    try:
        run = enqueue_run(
            db,
            workflow,
            payload,
            user_id=user_id,
            idempotency_key=idempotency_key,
            now=now,
        )
        db.commit()
    except IntegrityError:
        # Another process inserted the same idempotency key first
        db.rollback()
        run = find_run_by_key(db, idempotency_key) if idempotency_key else None
        if run is None:
            raise
        return run

    logger.info(f"Started workflow {workflow} run {run.run_id}")
    return run
