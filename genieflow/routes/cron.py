"""Scheduled trigger routes."""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from genieflow.config import settings
from genieflow.database import get_db
from genieflow.time_utils import utcnow
from genieflow.workflows.compliance_reminders import DailyComplianceCheckWorkflow, daily_check_key
from genieflow.workflows.runs import start_workflow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["cron"])


@router.get("/daily-compliance-check")
def daily_compliance_check(
    authorization: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
):
    """Start today's compliance check (Authorization: Bearer <CRON_SECRET>)."""
    expected = f"Bearer {settings.CRON_SECRET}"
    if not settings.CRON_SECRET or not hmac.compare_digest(authorization or "", expected):
        raise HTTPException(status_code=401, detail="Unauthorized")

    now = utcnow()
    run = start_workflow(
        db,
        DailyComplianceCheckWorkflow.NAME,
        {},
        idempotency_key=daily_check_key(now.date()),
        now=now,
    )
    logger.info(f"Cron started daily compliance check {run.run_id}")

    return {
        "success": True,
        "message": "Daily compliance check workflow started",
        "runId": str(run.run_id),
        "timestamp": now.isoformat(),
    }
