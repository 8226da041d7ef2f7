"""Background worker for executing durable workflow runs."""

import logging
import time
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Type

import pydantic
import sqlalchemy
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from genieflow.config import settings
from genieflow.database import SessionLocal
from genieflow.errors import (
    NotFoundError,
    StepFailedError,
    TerminalGenerationError,
    ValidationError,
    WorkflowSuspended,
)
from genieflow.models.workflow import WorkflowRun
from genieflow.services.llm_client import LLMClient
from genieflow.time_utils import utcnow
from genieflow.workflows.base import BaseWorkflow
from genieflow.workflows.compliance_reminders import (
    DailyComplianceCheckWorkflow,
    ItemReminderWorkflow,
    SendReminderWorkflow,
    daily_check_key,
)
from genieflow.workflows.grant_generation import GrantGenerationWorkflow
from genieflow.workflows.retry_policy import RetryPolicy
from genieflow.workflows.runs import find_run_by_key, start_workflow

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Errors that retrying the whole run cannot fix
PERMANENT_ERRORS = (
    StepFailedError,
    TerminalGenerationError,
    ValidationError,
    NotFoundError,
    pydantic.ValidationError,
)

# Workflow registry
WORKFLOWS: Dict[str, Type[BaseWorkflow]] = {
    DailyComplianceCheckWorkflow.NAME: DailyComplianceCheckWorkflow,
    SendReminderWorkflow.NAME: SendReminderWorkflow,
    ItemReminderWorkflow.NAME: ItemReminderWorkflow,
    GrantGenerationWorkflow.NAME: GrantGenerationWorkflow,
}


class Worker:
    """Background worker for processing workflow runs."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        llm_client=None,
        clock: Callable[[], datetime] = utcnow,
        retry_policy: Optional[RetryPolicy] = None,
        schedule_daily_check: Optional[bool] = None,
    ):
        """Initialize worker."""
        self.session_factory = session_factory
        self.llm_client = llm_client or LLMClient()
        self.clock = clock
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.schedule_daily_check = (
            settings.SCHEDULE_DAILY_CHECK if schedule_daily_check is None else schedule_daily_check
        )
        self.poll_interval = settings.WORKER_POLL_INTERVAL
        self.max_retries = settings.MAX_RUN_RETRIES
        self.lease = timedelta(seconds=settings.WORKFLOW_LEASE_SECONDS)
        self.workflows = dict(WORKFLOWS)

    def run(self, stop_event=None):
        """Main worker loop.

        Args:
            stop_event: Optional threading.Event to signal worker to stop
        """
        logger.info("Worker started - waiting for database to be ready...")

        # Wait for database tables to be created
        max_wait = 60  # Wait up to 60 seconds for migrations
        waited = 0
        while waited < max_wait:
            try:
                db = self.session_factory()
                db.execute(sqlalchemy.text("SELECT 1 FROM workflow_runs LIMIT 1"))
                db.close()
                logger.info("Database is ready, starting worker loop")
                break
            except Exception as e:
                if "does not exist" in str(e) or "no such table" in str(e):
                    logger.info(f"Waiting for migrations to complete... ({waited}s)")
                else:
                    logger.error(f"Database error: {e}")
                time.sleep(2)
                waited += 2

        if waited >= max_wait:
            logger.error("Database not ready after 60 seconds, starting anyway...")

        while True:
            # Check if stop signal received
            if stop_event and stop_event.is_set():
                logger.info("Worker stop signal received")
                break

            try:
                if self.schedule_daily_check:
                    self.maybe_start_daily_check()

                db = self.session_factory()
                run = self.get_next_run(db)

                if run:
                    self.process_run(run, db)
                else:
                    db.close()
                    time.sleep(self.poll_interval)

            except KeyboardInterrupt:
                logger.info("Worker shutting down")
                break
            except Exception as e:
                logger.error(f"Worker error: {e}", exc_info=True)
                time.sleep(self.poll_interval)

    def run_pending(self, max_runs: int = 1000) -> int:
        """Process every run that is due now; returns how many were processed."""
        processed = 0
        while processed < max_runs:
            db = self.session_factory()
            run = self.get_next_run(db)
            if not run:
                db.close()
                break
            self.process_run(run, db)
            processed += 1
        return processed

    def maybe_start_daily_check(self) -> Optional[WorkflowRun]:
        """Start today's compliance check once the configured hour has passed."""
        now = self.clock()
        if now.hour < settings.DAILY_CHECK_HOUR_UTC:
            return None

        key = daily_check_key(now.date())
        db = self.session_factory()
        try:
            if find_run_by_key(db, key):
                return None
            run = start_workflow(db, DailyComplianceCheckWorkflow.NAME, {}, idempotency_key=key, now=now)
            logger.info(f"Scheduled daily compliance check {run.run_id}")
            return run
        finally:
            db.close()

    def get_next_run(self, db: Session) -> Optional[WorkflowRun]:
        """Get the next due run: queued, woken, or abandoned by a crashed worker."""
        now = self.clock()
        stale_before = now - self.lease
        run = (
            db.query(WorkflowRun)
            .filter(
                or_(
                    WorkflowRun.status == "queued",
                    and_(WorkflowRun.status == "sleeping", WorkflowRun.wake_at <= now),
                    and_(WorkflowRun.status == "running", WorkflowRun.claimed_at < stale_before),
                )
            )
            .order_by(WorkflowRun.created_at)
            .with_for_update(skip_locked=True)
            .first()
        )
        return run

    def process_run(self, run: WorkflowRun, db: Session):
        """Process a single run until it completes, fails or suspends."""
        logger.info(f"Processing run {run.run_id} (workflow: {run.workflow})")

        # Mark as running
        run.status = "running"
        run.claimed_at = self.clock()
        run.wake_at = None
        db.commit()

        workflow = None
        try:
            # Get workflow
            workflow_class = self.workflows.get(run.workflow)
            if not workflow_class:
                raise ValueError(f"Unknown workflow: {run.workflow}")

            workflow = workflow_class(
                run,
                db,
                llm_client=self.llm_client,
                clock=self.clock,
                retry_policy=self.retry_policy,
            )

            # Execute
            result = workflow.execute()

            # Mark done
            run.status = "degraded" if result.get("degraded") else "completed"
            run.result = result
            run.last_error = None
            run.finished_at = self.clock()
            db.commit()

            logger.info(f"Run {run.run_id} {run.status}")

        except WorkflowSuspended as e:
            run.status = "sleeping"
            run.wake_at = e.wake_at
            db.commit()
            logger.info(f"Run {run.run_id} suspended until {e.wake_at}")

        except PERMANENT_ERRORS as e:
            # Step exhausted, terminal generation failure, bad payload, missing entity
            db.rollback()
            run.status = "failed"
            run.last_error = str(e)
            run.result = workflow.failure_result(e) if workflow else {"success": False, "error": str(e)}
            run.finished_at = self.clock()
            db.commit()
            logger.error(f"Run {run.run_id} failed: {e}")

        except Exception as e:
            logger.error(f"Run {run.run_id} failed: {e}", exc_info=True)
            db.rollback()

            # Handle failure
            run.attempts += 1
            run.last_error = str(e)

            if run.attempts >= self.max_retries:
                run.status = "failed"
                run.result = workflow.failure_result(e) if workflow else {"success": False, "error": str(e)}
                run.finished_at = self.clock()
                logger.error(f"Run {run.run_id} failed after {run.attempts} attempts")
            else:
                run.status = "sleeping"
                run.wake_at = self.retry_policy.next_attempt_at(self.clock(), run.attempts)
                logger.warning(f"Run {run.run_id} retry {run.attempts}/{self.max_retries} at {run.wake_at}")

            db.commit()

        finally:
            db.close()


def worker_loop(stop_event=None):
    """Run worker loop (for use as background thread).

    Args:
        stop_event: Optional threading.Event to signal worker to stop
    """
    worker = Worker()
    worker.run(stop_event=stop_event)


def main():
    """Entry point for standalone worker."""
    worker = Worker()
    worker.run()


if __name__ == "__main__":
    main()
